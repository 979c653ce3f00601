"""Shared fixtures: request factory, silent logger, clean metrics."""
import io
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from starlette.requests import Request

from slowdown.logger import DelayLogger
from slowdown.metrics import DelayMetrics


def build_request(headers: dict | None = None, path: str = "/") -> Request:
    raw = [(k.lower().encode("latin-1"), v.encode("latin-1")) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": path,
        "query_string": b"",
        "headers": raw,
    })


@pytest.fixture
def make_request():
    return build_request


@pytest.fixture
def log_stream():
    return io.StringIO()


@pytest.fixture
def logger(log_stream):
    return DelayLogger(stream=log_stream, level="debug")


@pytest.fixture(autouse=True)
def clean_metrics():
    DelayMetrics().reset()
    yield
    DelayMetrics().reset()


def clock(f):
    """Run f(); return (result, elapsed seconds)."""
    t0 = time.monotonic()
    result = f()
    return result, time.monotonic() - t0


def assert_duration(observed: float, expected: float):
    """Elapsed time within [-50ms, +300ms] of the expectation."""
    assert observed >= expected - 0.05, f"too short: {observed:.3f}s, expected ~{expected:.3f}s"
    assert observed <= expected + 0.3, f"too long: {observed:.3f}s, expected ~{expected:.3f}s"
