"""API client with retries, header injection and uniform results.

ApiClient holds the client-wide configuration (base URL, default headers,
options) and exposes the call entry points. Every call returns a
ResultEnvelope; transport and HTTP failures never propagate as exceptions.
"""

import logging
import threading
import time
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Optional

from ..core.executor import RequestExecutor
from ..core.log import ChannelLogger, LogSink, emit
from ..core.models import HeaderValue, RequestSpec, ResultEnvelope, RetryConfig
from .http import DEFAULT_TIMEOUT, RequestsTransport

logger = logging.getLogger(__name__)

JSON_HEADERS = {"Accept": "application/json", "X-Requested-With": "XMLHttpRequest"}


class ApiClient:
    """Client for a single HTTP API rooted at ``base_url``.

    Attributes:
        base_url: The base URL, trailing slash stripped.
        headers: Client-wide headers sent with every request (read-only).
        options: Client options (log_channel, timeout, http_errors,
            max_retries, retry_delay_ms).
        transport: The transport performing each attempt.
        executor: The RequestExecutor running calls.
    """

    def __init__(
        self,
        base_url: str,
        headers: Optional[Mapping[str, HeaderValue]] = None,
        options: Optional[Mapping[str, Any]] = None,
        transport: Optional[RequestsTransport] = None,
        log_sink: Optional[LogSink] = None,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        """Initialize the client.

        Args:
            base_url: The base URL for the API.
            headers: Default headers merged into every request.
            options: Client options; see the class docstring.
            transport: Transport to use; a RequestsTransport built from the
                options by default.
            log_sink: Sink for client events. Defaults to a ChannelLogger
                when ``log_channel`` is set, otherwise events are dropped.
            sleep: Function used for backoff delays.
        """
        self.base_url = base_url.rstrip("/")
        self.headers: Mapping[str, HeaderValue] = MappingProxyType(dict(headers or {}))
        self.options: Dict[str, Any] = {
            "log_channel": None,
            "timeout": DEFAULT_TIMEOUT,
            "http_errors": False,
            "max_retries": RetryConfig.max_retries,
            "retry_delay_ms": RetryConfig.base_delay_ms,
        }
        self.options.update(options or {})
        # raises ValueError for invalid retry options
        self.default_retry = RetryConfig(self.options["max_retries"], self.options["retry_delay_ms"])

        if log_sink is None and self.options["log_channel"]:
            log_sink = ChannelLogger(self.options["log_channel"])
        self.log_sink = log_sink

        self.transport = transport or RequestsTransport(
            timeout=self.options["timeout"],
            http_errors=self.options["http_errors"],
        )
        self.executor = RequestExecutor(
            self.transport,
            self.base_url,
            default_headers=self.headers,
            log_sink=self.log_sink,
            sleep=sleep,
        )

    @classmethod
    def from_config(cls, cfg, **kwargs) -> "ApiClient":
        """Build a client from a ClientConfig."""
        options = {
            "log_channel": cfg.log_channel,
            "timeout": cfg.timeout,
            "http_errors": cfg.http_errors,
            "max_retries": cfg.max_retries,
            "retry_delay_ms": cfg.retry_delay_ms,
        }
        return cls(cfg.base_url, headers=cfg.headers, options=options, **kwargs)

    def log(self, message: str, level: str = "info") -> None:
        emit(self.log_sink, message, level)

    def retry_config(self, max_retries: Optional[int] = None, retry_delay_ms: Optional[int] = None) -> RetryConfig:
        """Build a RetryConfig from per-call overrides over the client defaults."""
        if max_retries is None and retry_delay_ms is None:
            return self.default_retry
        return RetryConfig(
            max_retries=self.default_retry.max_retries if max_retries is None else max_retries,
            base_delay_ms=self.default_retry.base_delay_ms if retry_delay_ms is None else retry_delay_ms,
        )

    def make_request(
        self,
        path: str,
        method: str = "POST",
        *,
        json_body: Any = None,
        data: Any = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Mapping[str, HeaderValue]] = None,
        options: Optional[Mapping[str, Any]] = None,
        retry: Optional[RetryConfig] = None,
        cancel: Optional[threading.Event] = None,
    ) -> ResultEnvelope:
        """Perform a request and return its ResultEnvelope.

        Args:
            path: API path relative to the base URL.
            method: The HTTP method.
            json_body: Payload to send JSON encoded.
            data: Raw payload.
            params: Query parameters.
            headers: Per-call headers, merged over the client headers.
            options: Transport options for this call (timeout, verify, ...).
            retry: Retry limits; the client defaults when omitted.
            cancel: Optional event aborting pending retries once set.

        Returns:
            The ResultEnvelope for the call.
        """
        try:
            spec = RequestSpec(
                path=path,
                method=method,
                json_body=json_body,
                data=data,
                params=params,
                headers=dict(headers or {}),
                options=dict(options or {}),
            )
        except ValueError as e:
            logger.error("Invalid request for %s: %s", path, e)
            return ResultEnvelope(error=str(e))
        return self.executor.execute(spec, retry or self.retry_config(), cancel=cancel)

    def make_api_call_json(
        self,
        path: str,
        method: str = "POST",
        payload: Any = None,
        *,
        headers: Optional[Mapping[str, HeaderValue]] = None,
        **kwargs: Any,
    ) -> ResultEnvelope:
        """JSON-encode ``payload`` and send it as an AJAX-style JSON request.

        ``Accept`` and ``X-Requested-With`` replace any per-call values of the
        same names.
        """
        call_headers = {k: v for k, v in (headers or {}).items() if k.lower() not in ("accept", "x-requested-with")}
        call_headers.update(JSON_HEADERS)
        return self.make_request(path, method, json_body=payload, headers=call_headers, **kwargs)

    def make_api_call(
        self,
        path: str,
        method: str = "POST",
        payload: Any = None,
        **kwargs: Any,
    ) -> ResultEnvelope:
        """JSON-encode ``payload`` and send it."""
        return self.make_request(path, method, json_body=payload, **kwargs)

    def close(self) -> None:
        self.transport.close()

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc) -> None:
        self.close()
