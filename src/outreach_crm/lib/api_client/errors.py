"""Closed set of API failure variants and their display mapping.

Every failure crossing the HTTP boundary is one of:

* ``TransportError``: the server answered with a non-success status.
* ``NetworkError``: the request never completed (connect, timeout, protocol).
* ``UnknownError``: anything else raised while talking to the server.

``describe_error`` is the single place that turns any of them into a short
message suitable for direct display.
"""

from typing import Any

GENERIC_FAILURE = "Request failed"
UNKNOWN_FAILURE = "Unknown error"


class ApiError(Exception):
    """Base class for failures raised by the CRM API client."""


class TransportError(ApiError):
    """The server returned a non-success HTTP status.

    Args:
        status_code: HTTP status code.
        body: Decoded JSON body, raw text body, or None.
    """

    def __init__(self, status_code: int, body: Any = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(f"Request failed with status code {status_code}")


class NetworkError(ApiError):
    """The request could not complete (connection refused, timeout, ...)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class UnknownError(ApiError):
    """An unexpected exception wrapped at the HTTP boundary."""

    def __init__(self, raw: object) -> None:
        self.raw = raw
        super().__init__(str(raw))


def _body_message(body: Any) -> str | None:
    if not isinstance(body, dict):
        return None
    for key in ("message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value:
            return value
    return None


def describe_error(exc: BaseException) -> str:
    """Map an error to a non-empty human-readable message.

    Args:
        exc: Any exception, usually an ``ApiError`` variant.

    Returns:
        Display string; never empty.
    """
    if isinstance(exc, TransportError):
        return _body_message(exc.body) or str(exc) or GENERIC_FAILURE
    if isinstance(exc, NetworkError):
        return exc.message or "Network error"
    if isinstance(exc, UnknownError):
        text = str(exc.raw) if exc.raw is not None else ""
        return text or UNKNOWN_FAILURE
    return str(exc) or UNKNOWN_FAILURE
