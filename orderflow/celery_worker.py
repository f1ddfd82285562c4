# orderflow/celery_worker.py
from celery import Celery

from orderflow.utils.settings import CELERY_BROKER_URL, CELERY_RESULT_BACKEND

celery_app = Celery(
    "orderflow",
    broker=CELERY_BROKER_URL,
    backend=CELERY_RESULT_BACKEND,
)

# WAŻNE: Explicite importuj taski, żeby Celery je zarejestrował
celery_app.conf.imports = (
    "orderflow.services.notification_service",
)

celery_app.conf.timezone = "UTC"
# powiadomienie nie moze blokowac requestu gdy broker lezy
celery_app.conf.broker_connection_retry_on_startup = False
celery_app.conf.broker_transport_options = {"max_retries": 1}
