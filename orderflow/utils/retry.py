# orderflow/utils/retry.py
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type
import requests
import redis


def _retry_on(exc_types, multiplier: float, max_wait: float, attempts: int = 3):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=multiplier, min=multiplier, max=max_wait),
        retry=retry_if_exception_type(exc_types),
    )


def http_retry():
    # odczyty z katalogu - kazdy blad requestu mozna powtorzyc
    return _retry_on(requests.RequestException, multiplier=0.3, max_wait=3)


def http_write_retry():
    # tylko bledy polaczenia - request nie dotarl, wiec ponowienie nie zdubluje zmiany stanu
    return _retry_on(requests.ConnectionError, multiplier=0.3, max_wait=3)


def redis_retry():
    return _retry_on(redis.RedisError, multiplier=0.2, max_wait=2)
