from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Union

import requests

DEFAULT_TIMEOUT = 30

# Raised while building the request, before anything is sent
MALFORMED_REQUEST_ERRORS = (
    requests.exceptions.URLRequired,
    requests.exceptions.InvalidURL,
    requests.exceptions.MissingSchema,
    requests.exceptions.InvalidSchema,
    requests.exceptions.InvalidHeader,
    requests.exceptions.InvalidJSONError,
)


@dataclass(frozen=True)
class Ok:
    response: requests.Response


@dataclass(frozen=True)
class ResponseError:
    """A response was received but the transport classifies it as an error."""

    response: requests.Response


@dataclass(frozen=True)
class ConnectError:
    cause: requests.RequestException


@dataclass(frozen=True)
class RequestFailed:
    """The request failed without a response and without a connect error."""

    cause: requests.RequestException


TransportResult = Union[Ok, ResponseError, ConnectError, RequestFailed]


def merge_headers(base: Optional[Mapping[str, Any]], extra: Optional[Mapping[str, Any]]) -> Dict[str, List[str]]:
    """Merge two header mappings, keeping every value of colliding names.

    Names compare case-insensitively; the first spelling seen wins. Values from
    ``base`` come before values from ``extra``.
    """
    merged: Dict[str, List[str]] = {}
    names: Dict[str, str] = {}
    for headers in (base or {}, extra or {}):
        for name, value in headers.items():
            key = names.setdefault(name.lower(), name)
            values = value if isinstance(value, (list, tuple)) else [value]
            merged.setdefault(key, []).extend(str(v) for v in values)
    return merged


def flatten_headers(headers: Mapping[str, List[str]]) -> Dict[str, str]:
    # requests sends one line per name; comma-joining is the equivalent form
    return {name: ", ".join(values) for name, values in headers.items()}


class RequestsTransport:
    """Performs single HTTP attempts over a shared requests.Session.

    Network and HTTP conditions are reported as TransportResult variants
    rather than raised; malformed requests (bad URL, header or JSON payload)
    raise. Responses with a 5xx status are ResponseError; with
    ``http_errors`` enabled every status >= 400 is.
    """

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        timeout: float = DEFAULT_TIMEOUT,
        http_errors: bool = False,
    ):
        self.session = session or requests.Session()
        self.timeout = timeout
        self.http_errors = http_errors

    def is_error(self, status_code: int) -> bool:
        return status_code >= (400 if self.http_errors else 500)

    def send(
        self,
        method: str,
        url: str,
        *,
        headers: Optional[Mapping[str, List[str]]] = None,
        params: Optional[Dict[str, Any]] = None,
        json_body: Any = None,
        data: Any = None,
        options: Optional[Mapping[str, Any]] = None,
    ) -> TransportResult:
        kwargs = {"timeout": self.timeout}
        kwargs.update(options or {})
        try:
            resp = self.session.request(
                method.upper(),
                url,
                params=params,
                json=json_body,
                data=data,
                headers=flatten_headers(headers or {}),
                **kwargs,
            )
        except MALFORMED_REQUEST_ERRORS:
            raise
        except (requests.ConnectionError, requests.Timeout) as e:
            return ConnectError(e)
        except requests.RequestException as e:
            if e.response is not None:
                return ResponseError(e.response)
            return RequestFailed(e)
        if self.is_error(resp.status_code):
            return ResponseError(resp)
        return Ok(resp)

    def close(self) -> None:
        self.session.close()
