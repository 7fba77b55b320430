"""Retry policies built on tenacity."""

import logging
from typing import Callable, Optional

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    before_sleep_log,
    retry_if_exception_type,
    stop_never,
    wait_fixed,
    wait_random,
)

from cli.config_models import PublicationConfig

logger = structlog.stdlib.get_logger(__name__)


def publication_retrying(
    delay: float = 300.0,
    jitter: float = 3.0,
    exceptions: tuple = (Exception,),
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
) -> AsyncRetrying:
    """Unbounded retry loop for posting data feeds.

    Waits a fixed delay plus uniform random jitter between attempts and never
    stops; a fact that failed to post is retried until it succeeds.

    Args:
        delay: Fixed wait between attempts (seconds)
        jitter: Upper bound of random extra wait (seconds)
        exceptions: Exception types to retry on
        before_sleep: Called after each failed attempt, before waiting
    """
    return AsyncRetrying(
        stop=stop_never,
        wait=wait_fixed(delay) + wait_random(0, jitter),
        retry=retry_if_exception_type(exceptions),
        before_sleep=before_sleep or before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


def retrying_from_config(
    config: PublicationConfig,
    before_sleep: Optional[Callable[[RetryCallState], None]] = None,
) -> AsyncRetrying:
    """Create the publication retry loop from config."""
    return publication_retrying(
        delay=config.retry_delay_seconds,
        jitter=config.retry_jitter_seconds,
        before_sleep=before_sleep,
    )
