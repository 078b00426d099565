# supplier_inventory/utils/retry.py
import time
from typing import Callable, Optional, Tuple, Type

from supplier_inventory.exceptions import RateLimitError
from supplier_inventory.logging_setup import get_logger

logger = get_logger('retry')

class RetryPolicy:
    """Bounded retry with exponential backoff for external writes.

    Only the exception types in ``retry_on`` are retried (by default the
    429-class ``RateLimitError``); anything else propagates on the first
    attempt. A ``retry_after`` hint on the exception overrides the
    computed backoff for that attempt.
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay: float = 0.5,
        max_delay: float = 8.0,
        retry_on: Tuple[Type[BaseException], ...] = (RateLimitError,),
        sleep: Optional[Callable[[float], None]] = None
    ):
        """Initialize the retry policy.

        Args:
            max_retries: Retries after the first attempt (0 disables retrying)
            base_delay: Delay in seconds before the first retry
            max_delay: Upper bound for any single delay in seconds
            retry_on: Exception types that trigger a retry
            sleep: Sleep function, replaceable in tests
        """
        self.max_retries = max(0, int(max_retries))
        self.base_delay = max(0.0, float(base_delay))
        self.max_delay = max(0.0, float(max_delay))
        self.retry_on = retry_on
        self.sleep = sleep or time.sleep

    @classmethod
    def from_config(cls, import_config: dict, sleep: Optional[Callable[[float], None]] = None) -> 'RetryPolicy':
        """Build a policy from the IMPORT configuration section."""
        return cls(
            max_retries=import_config.get('max_retries', 3),
            base_delay=import_config.get('backoff_base_seconds', 0.5),
            max_delay=import_config.get('backoff_max_seconds', 8.0),
            sleep=sleep
        )

    def delay_for(self, attempt: int, error: Optional[BaseException] = None) -> float:
        """Delay before retry number ``attempt`` (1-based)."""
        retry_after = getattr(error, 'retry_after', None)
        if retry_after is not None:
            try:
                return min(self.max_delay, max(0.0, float(retry_after)))
            except (TypeError, ValueError):
                pass
        return min(self.max_delay, self.base_delay * (2 ** (attempt - 1)))

    def call(self, func: Callable, *args, **kwargs):
        """Call ``func`` and retry it on retryable errors.

        Returns:
            Whatever ``func`` returns

        Raises:
            The last retryable error once retries are exhausted, or any
            non-retryable error immediately
        """
        attempt = 0
        while True:
            try:
                return func(*args, **kwargs)
            except self.retry_on as e:
                attempt += 1
                if attempt > self.max_retries:
                    logger.warning(f"Giving up after {self.max_retries} retries: {e}")
                    raise
                delay = self.delay_for(attempt, e)
                logger.info(f"Retry {attempt}/{self.max_retries} in {delay:.2f}s after: {e}")
                self.sleep(delay)
