# agrimarket/utils/retry.py
import logging

import redis
import requests
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from agrimarket.utils.logging import get_logger

logger = get_logger(__name__)


def _retry_on(*errors, attempts: int = 3, base: float = 0.2, cap: float = 2):
    return retry(
        reraise=True,
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=base, min=base, max=cap),
        retry=retry_if_exception_type(errors),
        before_sleep=before_sleep_log(logger, logging.WARNING),
    )


def http_retry():
    # only transport failures; provider status codes are mapped by the caller
    return _retry_on(requests.ConnectionError, base=0.3, cap=3)


def redis_retry():
    return _retry_on(redis.RedisError)
