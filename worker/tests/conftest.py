import sys
from pathlib import Path

import pytest
import requests

# Ensure the `qualifier` package is importable when running pytest from the worker directory.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


class DummyResponse:
    def __init__(self, body="", status_code=200, url=None, encoding="utf-8", headers=None):
        self._body = body.encode(encoding) if isinstance(body, str) else body
        self.status_code = status_code
        self.url = url
        self.encoding = encoding
        self.headers = headers if headers is not None else {"Content-Type": f"text/html; charset={encoding}"}
        self.raw = None
        self.closed = False

    def close(self):
        self.closed = True

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.closed = True
        return False

    def iter_content(self, chunk_size=1):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]


class DummySession:
    """Routes GET requests to canned responses or exceptions by exact URL."""

    def __init__(self, routes=None):
        self.routes = dict(routes or {})
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        outcome = self.routes.get(url)
        if outcome is None:
            raise requests.exceptions.ConnectionError(f"no route for {url}")
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome.url is None:
            outcome.url = url
        return outcome


@pytest.fixture
def make_response():
    return DummyResponse


@pytest.fixture
def make_session():
    return DummySession
