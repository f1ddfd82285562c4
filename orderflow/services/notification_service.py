# orderflow/services/notification_service.py
import smtplib
from email.message import EmailMessage

from orderflow.celery_worker import celery_app
from orderflow.utils.settings import SMTP_HOST, SMTP_PORT, SMTP_USER, SMTP_PASSWORD, MAIL_FROM
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)


class NotificationService:
    """
    Serwis do wysyłania powiadomień o zmianie statusu pozycji.
    Fire-and-forget: Celery, a błąd kolejkowania tylko logujemy.
    """

    @staticmethod
    def notify_item_status(
        email: str,
        name: str,
        order_ref: str,
        item_name: str,
        status: str,
        reason: str | None = None,
    ) -> None:
        try:
            send_item_status_task.delay(email, name, order_ref, item_name, status, reason)
        except Exception as e:
            logger.warning(f"Could not enqueue status e-mail for order {order_ref}: {e}")


def build_status_message(
    email: str,
    name: str,
    order_ref: str,
    item_name: str,
    status: str,
    reason: str | None = None,
) -> EmailMessage:
    msg = EmailMessage()
    msg["From"] = MAIL_FROM
    msg["To"] = email
    msg["Subject"] = f"Order #{order_ref}: {item_name} is now {status}"

    lines = [
        f"Hello {name},",
        "",
        f"The status of '{item_name}' in your order #{order_ref} changed to: {status}.",
    ]
    if reason:
        lines.append(f"Reason: {reason}")
    msg.set_content("\n".join(lines))
    return msg


@celery_app.task(name="orderflow.services.notification_service.send_item_status_task")
def send_item_status_task(email, name, order_ref, item_name, status, reason=None):
    msg = build_status_message(email, name, order_ref, item_name, status, reason)

    if not SMTP_HOST:
        logger.info(f"[NOTIFICATION] {email}: order {order_ref} item '{item_name}' -> {status}")
        return {"email": email, "order": order_ref, "status": "logged"}

    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=10) as smtp:
        smtp.starttls()
        if SMTP_USER:
            smtp.login(SMTP_USER, SMTP_PASSWORD or "")
        smtp.send_message(msg)

    return {"email": email, "order": order_ref, "status": "sent"}
