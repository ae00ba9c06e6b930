"""Retry decisions and backoff schedule for outbound API calls."""

from typing import Optional

from .log import LogSink, emit
from .models import AttemptOutcome, HttpFailure, RetryConfig, TransportFailure


class RetryPolicy:
    """Decides whether a failed attempt is retried and how long to wait.

    Attempts are counted from 0: ``attempt`` is the number of retries already
    made when the decision is taken, so ``max_retries`` is the number of
    extra attempts allowed after the first one.

    Only connect failures and responses with a 5xx status are retried.
    Every other response, 4xx included, is final.

    Attributes:
        config: The RetryConfig limits.
        log_sink: Optional sink receiving ``retry_attempt`` events.
    """

    def __init__(self, config: Optional[RetryConfig] = None, log_sink: Optional[LogSink] = None):
        self.config = config or RetryConfig()
        self.log_sink = log_sink

    def should_retry(self, attempt: int, outcome: AttemptOutcome, target: Optional[str] = None) -> bool:
        """Return True if another attempt should be made after ``outcome``.

        Args:
            attempt: Retries made so far (0 after the first attempt).
            outcome: The outcome of the latest attempt.
            target: URL of the request, used for logging only.
        """
        if attempt > 0:
            emit(
                self.log_sink,
                f"retry {attempt} of url {target}",
                "info",
                event="retry_attempt",
                attempt=attempt,
                target=target,
            )

        if attempt >= self.config.max_retries:
            return False

        if isinstance(outcome, TransportFailure):
            return outcome.connect

        if isinstance(outcome, HttpFailure):
            return outcome.http_code >= 500

        return False

    def delay_for(self, attempt: int) -> int:
        """Linear backoff in milliseconds before retry number ``attempt`` (1-based)."""
        return self.config.base_delay_ms * attempt
