"""Value types shared by the retry policy and the request executor.

Attempt outcomes are transient: the executor produces one per transport
attempt, the retry policy inspects it, and only the final one is turned into
a ResultEnvelope for the caller.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

UNABLE_TO_CONNECT = "Unable to connect"
API_REQUEST_ERROR = "Api Request Error"
API_REQUEST_ERROR_NO_RESPONSE = "Api Request Error(2)"
REQUEST_CANCELLED = "Request cancelled"
SOME_ERROR_OCCURRED = "Some error occurred"

HeaderValue = Union[str, List[str]]


@dataclass(frozen=True)
class RetryConfig:
    """Retry limits for a single call.

    Attributes:
        max_retries: Extra attempts allowed after the first one.
        base_delay_ms: Delay unit for the linear backoff schedule.
    """

    max_retries: int = 5
    base_delay_ms: int = 1000

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {self.max_retries}")
        if self.base_delay_ms <= 0:
            raise ValueError(f"base_delay_ms must be positive, got {self.base_delay_ms}")


@dataclass(frozen=True)
class RequestSpec:
    """Description of one outbound call.

    Attributes:
        path: Path appended to the client base URL.
        method: HTTP verb.
        json_body: Structured payload, JSON encoded on the wire.
        data: Raw payload (str, bytes or form mapping).
        params: Optional query parameters.
        headers: Per-call headers; a value may be a list for multi-valued headers.
        options: Extra keyword options for the transport (timeout, verify, ...).
    """

    path: str
    method: str = "POST"
    json_body: Any = None
    data: Any = None
    params: Optional[Dict[str, Any]] = None
    headers: Mapping[str, HeaderValue] = field(default_factory=dict)
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.json_body is not None and self.data is not None:
            raise ValueError("json_body and data are mutually exclusive")


@dataclass(frozen=True)
class Success:
    http_code: int
    body: Any
    content_type: str


@dataclass(frozen=True)
class HttpFailure:
    http_code: int
    body: Any
    content_type: str


@dataclass(frozen=True)
class TransportFailure:
    """No response was obtained.

    ``connect`` marks the connect-failure sub-kind (refused, DNS, timeout),
    which is the only transport failure worth retrying.
    """

    cause: BaseException
    connect: bool = True


@dataclass(frozen=True)
class Cancelled:
    pass


AttemptOutcome = Union[Success, HttpFailure, TransportFailure, Cancelled]


@dataclass(frozen=True)
class ResultEnvelope:
    """Uniform result of one logical API call.

    The defaults describe a failed call where no attempt completed, so every
    field is set on every exit path.
    """

    status: int = 0
    http_code: Optional[int] = None
    body: Any = None
    content_type: Optional[str] = None
    error: Optional[str] = SOME_ERROR_OCCURRED

    @property
    def ok(self) -> bool:
        return self.status == 1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status,
            "http_code": self.http_code,
            "body": self.body,
            "content_type": self.content_type,
            "error": self.error,
        }
