"""
Request middleware — delay injection, cancellation, timing.

DelayMiddleware applies delay() to everything behind it.
CancellationMiddleware ties a CancellationToken to client disconnects (and
an optional deadline) so delayed endpoints stop waiting for gone clients.
RequestTracingMiddleware adds X-Request-Id and X-Duration-Ms response
headers, handy for checking how much latency was injected.
"""
import time
import uuid
from typing import Optional, Sequence

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from slowdown.delay import delay
from slowdown.options import Option, options_from_env
from slowdown.waiter import DEADLINE_EXCEEDED, SCOPE_KEY, CancellationToken, DisconnectWatcher


class DelayMiddleware:
    """Delays every HTTP request reaching the wrapped app.

    With options=None the SLOWDOWN_* environment settings are used.
    """

    def __init__(self, app, options: Optional[Sequence[Option]] = None):
        if options is None:
            options = options_from_env()
        self.app = delay(app, *options)

    async def __call__(self, scope, receive, send):
        await self.app(scope, receive, send)


class CancellationMiddleware:
    """Installs a per-request CancellationToken in the ASGI scope.

    Delayed handlers stop waiting once the client disconnects or `timeout`
    seconds have passed. A request abandoned on deadline is answered with
    504 Gateway Timeout.
    """

    def __init__(self, app, timeout: Optional[float] = None):
        self.app = app
        self.timeout = timeout

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http" or SCOPE_KEY in scope:
            await self.app(scope, receive, send)
            return

        if self.timeout is not None:
            token = CancellationToken.with_timeout(self.timeout)
        else:
            token = CancellationToken()
        started = False

        async def send_tracking_start(message):
            nonlocal started
            if message["type"] == "http.response.start":
                started = True
            await send(message)

        async with DisconnectWatcher(receive, token) as watcher:
            await self.app({**scope, SCOPE_KEY: token}, watcher.receive, send_tracking_start)

        # The app gave up on the request without answering. A client that is
        # still there after a deadline gets a 504, a gone client gets nothing.
        if not started and token.reason == DEADLINE_EXCEEDED:
            await PlainTextResponse("Request deadline exceeded", status_code=504)(scope, receive, send)


class RequestTracingMiddleware(BaseHTTPMiddleware):
    """Adds request ID and duration to every response."""

    async def dispatch(self, request: Request, call_next) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())[:8]
        t0 = time.monotonic()
        response = await call_next(request)
        duration_ms = int((time.monotonic() - t0) * 1000)
        response.headers["X-Request-Id"] = request_id
        response.headers["X-Duration-Ms"] = str(duration_ms)
        return response
