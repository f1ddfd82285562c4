import uuid
from contextlib import contextmanager

import redis

from orderflow.domain.errors import ConcurrencyConflict
from orderflow.utils.retry import redis_retry
from orderflow.utils.settings import REDIS_URL
from orderflow.utils.logging import get_logger

logger = get_logger(__name__)

#LUA porownaj i usun, atomicity
_RELEASE_LUA = """
if redis.call('GET', KEYS[1]) == ARGV[1] then
    return redis.call('DEL', KEYS[1])
else
    return 0
end
"""

#redis wykonuje skrypt lua atomowo, nie mozna wcisnac sie miedzy GET a DEL
#wiec lock zwolni tylko ten kto go zalozyl (token)


class LockService:
    """
    -mutex per zamowienie / per checkout uzytkownika (SET NX EX)
    -zwalnianie locka tylko przez wlasciciela tokenu
    -atomowosc przy pomocy lua
    """

    def __init__(self, url: str | None = None):
        self.redis = redis.Redis.from_url(
            url or REDIS_URL,
            decode_responses=True,
        )

    @redis_retry()
    def acquire(self, key: str, token: str, ttl: int) -> bool:
        logger.info(f"Acquire lock {key}")
        #SET order:1:lock "<token>" NX EX 30
        return bool(self.redis.set(name=key, value=token, nx=True, ex=ttl))

    @redis_retry()
    def release(self, key: str, token: str) -> bool:
        logger.info(f"Release lock {key}")
        res = self.redis.eval(_RELEASE_LUA, 1, key, token)
        return bool(res)

    @contextmanager
    def hold(self, key: str, ttl: int):
        token = uuid.uuid4().hex
        if not self.acquire(key, token, ttl):
            raise ConcurrencyConflict(f"Another operation is in progress ({key})")
        try:
            yield token
        finally:
            try:
                self.release(key, token)
            except redis.RedisError as e:
                # lock i tak wygasnie po ttl
                logger.warning(f"Failed to release lock {key}: {e}")


def order_lock_key(order_id: int) -> str:
    return f"order:{order_id}:lock"


def checkout_lock_key(user_id: int) -> str:
    return f"checkout:{user_id}:lock"
