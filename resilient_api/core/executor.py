"""Execution of one logical API call with retries and result normalization."""

import logging
import threading
import time
from types import MappingProxyType
from typing import Any, Callable, Mapping, Optional, Tuple

import requests
from tenacity import RetryCallState, Retrying, before_sleep_log

from ..clients.http import (
    ConnectError,
    Ok,
    RequestFailed,
    RequestsTransport,
    ResponseError,
    merge_headers,
)
from .log import LogSink
from .models import (
    API_REQUEST_ERROR,
    API_REQUEST_ERROR_NO_RESPONSE,
    REQUEST_CANCELLED,
    UNABLE_TO_CONNECT,
    AttemptOutcome,
    Cancelled,
    HttpFailure,
    RequestSpec,
    ResultEnvelope,
    RetryConfig,
    Success,
    TransportFailure,
)
from .retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_CONTENT_TYPE = "text/html"


def decode_response(response: requests.Response) -> Tuple[Any, str]:
    """Return the body and content type of ``response``.

    JSON content types are decoded; if decoding fails the raw text is kept.
    """
    content_type = response.headers.get("Content-Type") or DEFAULT_CONTENT_TYPE
    body: Any = response.text
    if "application/json" in content_type.lower():
        try:
            body = response.json()
        except ValueError:
            logger.debug("Response declared %s but is not valid JSON", content_type)
    return body, content_type


class RequestExecutor:
    """Runs a RequestSpec against the transport and returns a ResultEnvelope.

    The executor holds only read-only client configuration; the retry loop
    and policy are created per call so concurrent calls share no mutable
    state.

    Attributes:
        transport: The RequestsTransport (or compatible) used per attempt.
        base_url: Base URL without a trailing slash.
        default_headers: Client-wide headers merged under per-call headers.
        log_sink: Optional sink handed to each RetryPolicy.
    """

    def __init__(
        self,
        transport: RequestsTransport,
        base_url: str,
        default_headers: Optional[Mapping[str, Any]] = None,
        log_sink: Optional[LogSink] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        self.transport = transport
        self.base_url = base_url.rstrip("/")
        self.default_headers = MappingProxyType(dict(default_headers or {}))
        self.log_sink = log_sink
        self._sleep = sleep

    def build_url(self, path: str) -> str:
        path = (path or "").lstrip("/")
        return f"{self.base_url}/{path}" if path else self.base_url

    def execute(
        self,
        spec: RequestSpec,
        retry_config: Optional[RetryConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ResultEnvelope:
        """Perform ``spec`` with retries; never raises.

        Args:
            spec: The request to perform.
            retry_config: Retry limits; defaults to RetryConfig().
            cancel: Optional event; once set, pending backoff ends and no
                further attempt is made.

        Returns:
            The ResultEnvelope for the final outcome.
        """
        policy = RetryPolicy(retry_config, log_sink=self.log_sink)
        try:
            url = self.build_url(spec.path)
            headers = merge_headers(self.default_headers, spec.headers)
            retrying = self._retrying(policy, url, cancel)
            outcome = retrying(self._attempt, spec, url, headers, cancel)
        except Exception as e:
            logger.error("Request %s %s failed unexpectedly: %s", spec.method, spec.path, e)
            return ResultEnvelope(error=str(e))
        return self.to_envelope(outcome)

    def _retrying(self, policy: RetryPolicy, url: str, cancel: Optional[threading.Event]) -> Retrying:
        def should_retry(retry_state: RetryCallState) -> bool:
            if retry_state.outcome.failed:
                return False
            if cancel is not None and cancel.is_set():
                return False
            return policy.should_retry(retry_state.attempt_number - 1, retry_state.outcome.result(), target=url)

        def wait(retry_state: RetryCallState) -> float:
            return policy.delay_for(retry_state.attempt_number) / 1000.0

        return Retrying(
            retry=should_retry,
            wait=wait,
            sleep=cancel.wait if cancel is not None else self._sleep,
            before_sleep=before_sleep_log(logger, logging.DEBUG),
            reraise=True,
        )

    def _attempt(
        self,
        spec: RequestSpec,
        url: str,
        headers: Mapping[str, Any],
        cancel: Optional[threading.Event],
    ) -> AttemptOutcome:
        if cancel is not None and cancel.is_set():
            logger.debug("Skipping %s %s: cancelled", spec.method, url)
            return Cancelled()

        logger.debug("Making %s request to %s", spec.method, url)
        result = self.transport.send(
            spec.method,
            url,
            headers=headers,
            params=spec.params,
            json_body=spec.json_body,
            data=spec.data,
            options=spec.options,
        )

        if isinstance(result, Ok):
            body, content_type = decode_response(result.response)
            return Success(result.response.status_code, body, content_type)
        if isinstance(result, ResponseError):
            body, content_type = decode_response(result.response)
            return HttpFailure(result.response.status_code, body, content_type)
        if isinstance(result, ConnectError):
            logger.debug("Unable to connect to %s: %s", url, result.cause)
            return TransportFailure(result.cause, connect=True)
        if isinstance(result, RequestFailed):
            return TransportFailure(result.cause, connect=False)
        raise TypeError(f"Unknown transport result: {result!r}")

    @staticmethod
    def to_envelope(outcome: Optional[AttemptOutcome]) -> ResultEnvelope:
        """Map the final attempt outcome to a ResultEnvelope."""
        if isinstance(outcome, Success):
            return ResultEnvelope(
                status=1,
                http_code=outcome.http_code,
                body=outcome.body,
                content_type=outcome.content_type,
                error=None,
            )
        if isinstance(outcome, HttpFailure):
            logger.warning("Request failed with status %d", outcome.http_code)
            return ResultEnvelope(
                http_code=outcome.http_code,
                body=outcome.body,
                content_type=outcome.content_type,
                error=API_REQUEST_ERROR,
            )
        if isinstance(outcome, TransportFailure):
            error = UNABLE_TO_CONNECT if outcome.connect else API_REQUEST_ERROR_NO_RESPONSE
            logger.warning("%s: %s", error, outcome.cause)
            return ResultEnvelope(body=str(outcome.cause), error=error)
        if isinstance(outcome, Cancelled):
            return ResultEnvelope(error=REQUEST_CANCELLED)
        return ResultEnvelope()
