# orderflow/api/deps.py
from functools import lru_cache

from orderflow.services.lock_service import LockService
from orderflow.services.notification_service import NotificationService
from orderflow.services.product_client import ProductClient


@lru_cache
def get_product_client() -> ProductClient:
    return ProductClient()


@lru_cache
def get_lock_service() -> LockService:
    return LockService()


@lru_cache
def get_notification_service() -> NotificationService:
    return NotificationService()
