"""Retry helper for transient remote WebDriver faults."""

import time
import random
import logging
from typing import Callable, Tuple, Type, TypeVar
from selenium.common.exceptions import (
    StaleElementReferenceException,
    WebDriverException,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_ERRORS: Tuple[Type[BaseException], ...] = (
    StaleElementReferenceException,
    WebDriverException,
)


def retry_op(
    fn: Callable[[], T],
    retries: int = 2,
    base_delay: float = 0.15,
    retry_on: Tuple[Type[BaseException], ...] = TRANSIENT_ERRORS,
) -> T:
    """
    Call `fn`, retrying on transient Selenium exceptions with jittered backoff.

    Runs on a worker thread (the browser session wraps blocking WebDriver
    calls in asyncio.to_thread), so a blocking sleep is fine here.

    Raises:
        The last exception if all retries fail
    """
    for attempt in range(retries + 1):
        try:
            return fn()
        except retry_on as e:
            if attempt == retries:
                raise
            delay = base_delay * (attempt + 1) * (1.0 + random.random())
            logger.debug(f"Transient WebDriver error ({type(e).__name__}), retry {attempt + 1}/{retries} in {delay:.2f}s")
            time.sleep(delay)
    raise AssertionError("unreachable")


__all__ = ["retry_op", "TRANSIENT_ERRORS"]
