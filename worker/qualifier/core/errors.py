"""Failure taxonomy for website scans and mapping of transport errors onto it."""

from __future__ import annotations

import errno
import socket
from typing import Iterator, Optional

import requests
from urllib3.exceptions import ReadTimeoutError


class ScanError(RuntimeError):
    """Raised when the primary page of a lead cannot be evaluated.

    ``str(exc)`` is the human readable message stored on the scan result.
    """

    default_message = "Scan failed"

    def __init__(self, message: Optional[str] = None) -> None:
        super().__init__(message or self.default_message)


class InvalidURL(ScanError):
    default_message = "Invalid URL"


class HttpStatus(ScanError):
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code
        super().__init__(f"Status {status_code}")


class PageTooLarge(ScanError):
    default_message = "Page too large"


class ScanTimeout(ScanError):
    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Scan timed out ({seconds:g}s)")


class DnsFailure(ScanError):
    default_message = "Domain not found (DNS error)"


class DnsLookupFailed(DnsFailure):
    default_message = "DNS Lookup failed"


class ConnectionRefused(ScanError):
    default_message = "Connection refused"


class ConnectionTimeout(ScanError):
    default_message = "Connection timed out"


class UnknownTransportError(ScanError):
    pass


_EAI_NONAME = getattr(socket, "EAI_NONAME", -2)
_EAI_NODATA = getattr(socket, "EAI_NODATA", -5)
_EAI_AGAIN = getattr(socket, "EAI_AGAIN", -3)


def _walk_causes(exc: BaseException) -> Iterator[BaseException]:
    """Yield ``exc`` and every exception nested inside it.

    urllib3 hides the socket error in ``reason`` or ``args`` rather than in
    ``__cause__``, so all of them are followed.
    """

    stack = [exc]
    seen = set()
    while stack:
        current = stack.pop()
        if id(current) in seen:
            continue
        seen.add(id(current))
        yield current

        nested = [current.__cause__, current.__context__, getattr(current, "reason", None)]
        nested.extend(arg for arg in getattr(current, "args", ()) if isinstance(arg, BaseException))
        stack.extend(item for item in nested if isinstance(item, BaseException))


def _classify_nested(exc: BaseException, timeout_seconds: float) -> Optional[ScanError]:
    if isinstance(exc, ReadTimeoutError):
        return ScanTimeout(timeout_seconds)
    if isinstance(exc, socket.gaierror):
        if exc.errno == _EAI_AGAIN:
            return DnsLookupFailed()
        if exc.errno in (_EAI_NONAME, _EAI_NODATA):
            return DnsFailure()
        return None
    if isinstance(exc, ConnectionRefusedError):
        return ConnectionRefused()
    if isinstance(exc, OSError) and exc.errno == errno.ECONNREFUSED:
        return ConnectionRefused()
    if isinstance(exc, OSError) and exc.errno == errno.ETIMEDOUT:
        return ConnectionTimeout()
    # socket.timeout carries no errno and only comes from a stalled read here.
    if isinstance(exc, TimeoutError):
        return ScanTimeout(timeout_seconds)
    return None


def classify_transport_error(exc: requests.RequestException, timeout_seconds: float) -> ScanError:
    """Map a ``requests`` failure onto the scan error taxonomy.

    A read that stalls in the middle of the body reaches us as a
    ``ConnectionError`` wrapping urllib3's ``ReadTimeoutError``, so the
    cause chain is searched as well as the outer type.
    """

    if isinstance(exc, requests.exceptions.ConnectTimeout):
        return ConnectionTimeout()
    if isinstance(exc, requests.exceptions.Timeout):
        return ScanTimeout(timeout_seconds)
    if isinstance(exc, (requests.exceptions.InvalidURL, requests.exceptions.MissingSchema, requests.exceptions.InvalidSchema)):
        return InvalidURL()

    for nested in _walk_causes(exc):
        classified = _classify_nested(nested, timeout_seconds)
        if classified is not None:
            return classified

    return UnknownTransportError(str(exc) or exc.__class__.__name__)
