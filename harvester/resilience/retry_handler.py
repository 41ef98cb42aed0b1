"""
Retry handling with exponential backoff.
Manages retries for failed backend calls and keeps a record of permanent failures.
"""

import threading
import time
from datetime import datetime
from typing import Callable, Tuple, Any, Optional, List

from harvester.config import RetryConfig
from harvester.log import log


class RetryHandler:
    """Manages retry logic with exponential backoff and failure tracking."""

    def __init__(
        self,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Any] = time.sleep
    ):
        """
        Initialize retry handler.

        Args:
            config: RetryConfig instance, uses defaults if None
            sleep: Function used to wait between attempts
        """
        self.config = config or RetryConfig()
        self._sleep = sleep
        self._failed: List[dict] = []
        self._lock = threading.Lock()

    def execute_with_retry(
        self,
        func: Callable,
        *args,
        **kwargs
    ) -> Tuple[bool, Any]:
        """
        Execute function with retry logic.

        Args:
            func: Function to execute
            *args: Positional arguments for func
            **kwargs: Keyword arguments for func

        Returns:
            Tuple of (success: bool, result or last error message)
        """
        last_error = None
        delay = self.config.base_delay

        for attempt in range(1, self.config.max_retries + 1):
            try:
                result = func(*args, **kwargs)
                if result is not None:
                    return True, result
                else:
                    last_error = "Function returned None"
            except Exception as e:
                last_error = str(e)
                log("Retry", f"Attempt {attempt}/{self.config.max_retries} failed: {e}")

            # Don't sleep after last attempt
            if attempt < self.config.max_retries:
                sleep_time = min(delay, self.config.max_delay)
                if sleep_time > 0:
                    log("Retry", f"Retrying in {sleep_time:.1f}s...")
                    self._sleep(sleep_time)
                delay *= self.config.backoff_factor

        return False, last_error

    def record_permanent_failure(self, key: str, reason: str):
        """
        Record an operation that failed all retries.

        Args:
            key: Identifier of the failed item
            reason: Failure reason
        """
        with self._lock:
            self._failed.append({
                'key': key,
                'reason': reason,
                'attempts': self.config.max_retries,
                'last_attempt': datetime.now().isoformat(),
            })
        log("Retry", f"Recorded permanent failure for {key}: {reason}")

    def get_failed(self) -> List[dict]:
        with self._lock:
            return list(self._failed)

    def get_stats(self) -> dict:
        """
        Get retry handler statistics.

        Returns:
            Dict with handler state info
        """
        return {
            'total_failed': len(self.get_failed()),
            'max_retries': self.config.max_retries,
            'base_delay': self.config.base_delay
        }
