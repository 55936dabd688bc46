"""Bounded single-page HTTP fetches for lead websites."""

from __future__ import annotations

import contextlib
import logging
import socket
import threading
from dataclasses import dataclass
from typing import Optional

import requests
from bs4.dammit import UnicodeDammit

from qualifier.core.errors import HttpStatus, PageTooLarge, ScanError, ScanTimeout, classify_transport_error

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = "Mozilla/5.0 (compatible; Lead2Close/1.0; +http://lead2close.com)"
SCAN_TIMEOUT_SECONDS = 12.0
MAX_PAGE_BYTES = 1_500_000
CHUNK_SIZE = 8192


@dataclass(frozen=True)
class FetchPolicy:
    timeout_seconds: float = SCAN_TIMEOUT_SECONDS
    max_bytes: int = MAX_PAGE_BYTES
    user_agent: str = DEFAULT_USER_AGENT


@dataclass(frozen=True)
class FetchedPage:
    requested_url: str
    final_url: str
    status_code: int
    html: str


def _abort(response) -> None:
    # Shutting the socket down wakes a read blocked in another thread.
    connection = getattr(getattr(response, "raw", None), "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is not None:
        with contextlib.suppress(OSError):
            sock.shutdown(socket.SHUT_RDWR)
    response.close()


class _Deadline:
    """Wall-clock budget for one fetch; aborts the attached response when it runs out."""

    def __init__(self, seconds: float) -> None:
        self.expired = threading.Event()
        self._lock = threading.Lock()
        self._response = None
        self._timer = threading.Timer(seconds, self._fire)
        self._timer.daemon = True

    def __enter__(self) -> "_Deadline":
        self._timer.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self._timer.cancel()
        return False

    def attach(self, response) -> None:
        with self._lock:
            self._response = response

    def _fire(self) -> None:
        self.expired.set()
        with self._lock:
            response = self._response
        if response is not None:
            logger.debug("Deadline reached; aborting %s", getattr(response, "url", None))
            _abort(response)


def _declared_encoding(response) -> Optional[str]:
    content_type = (getattr(response, "headers", None) or {}).get("Content-Type", "")
    if "charset=" not in content_type.lower():
        return None
    return response.encoding


def decode_body(body: bytes, declared_encoding: Optional[str] = None) -> str:
    """Decode a page body, trusting only a charset the server actually declared.

    Without one, a byte-order mark, then UTF-8, then ``<meta charset>`` are
    tried in turn.
    """

    known = [declared_encoding] if declared_encoding else []
    dammit = UnicodeDammit(body, known_definite_encodings=known, user_encodings=["utf-8"], is_html=True)
    if dammit.unicode_markup is None:
        return body.decode("utf-8", errors="replace")
    return dammit.unicode_markup


def fetch_page(session: requests.Session, url: str, policy: FetchPolicy) -> FetchedPage:
    """GET ``url`` under a wall-clock deadline and body size cap.

    Raises a :class:`~qualifier.core.errors.ScanError` subclass on failure.
    Once ``policy.timeout_seconds`` have passed the in-flight transfer is
    aborted from a timer thread, so a slow-drip server cannot hold the scan
    open. Connection setup is bounded by the connect timeout.
    """

    headers = {"User-Agent": policy.user_agent}

    with _Deadline(policy.timeout_seconds) as deadline:
        try:
            with session.get(
                url,
                headers=headers,
                timeout=(policy.timeout_seconds, policy.timeout_seconds),
                allow_redirects=True,
                stream=True,
            ) as response:
                deadline.attach(response)
                if deadline.expired.is_set():
                    raise ScanTimeout(policy.timeout_seconds)
                if not (200 <= response.status_code < 300):
                    raise HttpStatus(response.status_code)

                chunks = []
                received = 0
                for chunk in response.iter_content(CHUNK_SIZE):
                    if deadline.expired.is_set():
                        raise ScanTimeout(policy.timeout_seconds)
                    if not chunk:
                        continue
                    received += len(chunk)
                    if received > policy.max_bytes:
                        logger.info("Aborting %s after %d bytes (cap %d)", url, received, policy.max_bytes)
                        raise PageTooLarge()
                    chunks.append(chunk)

                if deadline.expired.is_set():
                    raise ScanTimeout(policy.timeout_seconds)

                html = decode_body(b"".join(chunks), _declared_encoding(response))
                final_url = response.url or url
                status_code = response.status_code
        except ScanError:
            raise
        except requests.RequestException as exc:
            if deadline.expired.is_set():
                raise ScanTimeout(policy.timeout_seconds) from exc
            raise classify_transport_error(exc, policy.timeout_seconds) from exc
        except Exception as exc:  # noqa: BLE001
            # Reads cut off by the deadline fail with arbitrary I/O errors.
            if not deadline.expired.is_set():
                raise
            raise ScanTimeout(policy.timeout_seconds) from exc

    logger.debug("Fetched %s -> %s (%d bytes)", url, final_url, received)
    return FetchedPage(requested_url=url, final_url=final_url, status_code=status_code, html=html)
