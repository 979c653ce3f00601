"""
Wrap a handler so it runs late, finishes late, or both.

    endpoint = delay(endpoint, header("delay"), max_delay(5))

means "accept request headers delay-before and delay-after and pause the
request accordingly, but never more than 5s per phase". With no options the
handler runs after a 1s pause. Useful to reproduce client-side races that
depend on the processing order of concurrent requests.

Per request: wait before → invoke handler → wait after. A cancelled
before-wait means the handler never runs; a cancellation noticed once the
handler returns skips the after-wait.
"""
import functools
import inspect
import time
from typing import Any, Awaitable, Callable

from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from slowdown.config import DelayConfig, build_config
from slowdown.resolver import resolve_both
from slowdown.types import Phase, WaitOutcome
from slowdown.validators import validate_config
from slowdown.waiter import SCOPE_KEY, CancellationToken, DisconnectWatcher, wait


class Delayer:
    """Runs the before → handler → after sequence for one config."""

    def __init__(self, cfg: DelayConfig):
        self.cfg = cfg

    async def _pause(self, phase: Phase, seconds: float, token: CancellationToken,
                     path: str) -> WaitOutcome:
        t0 = time.monotonic()
        outcome = await wait(seconds, token)
        if outcome is WaitOutcome.CANCELLED:
            waited_ms = int((time.monotonic() - t0) * 1000)
            if self.cfg.logger:
                self.cfg.logger.cancelled(phase.value, token.reason or "", path)
            if self.cfg.metrics:
                self.cfg.metrics.record_wait(phase.value, waited_ms, cancelled=True)
        elif seconds > 0:
            if self.cfg.logger:
                self.cfg.logger.wait_done(phase.value, seconds, outcome.value, path)
            if self.cfg.metrics:
                self.cfg.metrics.record_wait(phase.value, int(seconds * 1000))
        return outcome

    async def run(self, request: Request, token: CancellationToken,
                  invoke: Callable[[], Awaitable[Any]]) -> bool:
        """Returns True if the handler was invoked."""
        cfg = self.cfg
        path = request.scope.get("path", "")
        if cfg.metrics:
            cfg.metrics.record_request()

        before, after, applies = resolve_both(cfg, request)
        if not applies:
            if cfg.logger:
                cfg.logger.skipped(path)
            if cfg.metrics:
                cfg.metrics.record_skip()

        if await self._pause(Phase.BEFORE, before, token, path) is WaitOutcome.CANCELLED:
            return False

        await invoke()

        if token.cancelled:
            if cfg.logger:
                cfg.logger.cancelled(Phase.AFTER.value, token.reason or "", path)
            if cfg.metrics:
                cfg.metrics.record_wait(Phase.AFTER.value, 0, cancelled=True)
            return True

        await self._pause(Phase.AFTER, after, token, path)
        return True


def _is_endpoint(handler) -> bool:
    # Same rule as starlette.routing.Route: functions and methods take a
    # Request, anything else is an ASGI app.
    while isinstance(handler, functools.partial):
        handler = handler.func
    return inspect.isfunction(handler) or inspect.ismethod(handler)


class _Abandoned(Response):
    """Stand-in returned when the wait was cancelled before the handler ran.

    Sends nothing: what a cancelled request gets is up to the transport.
    """

    async def __call__(self, scope, receive, send):
        return


def _delay_endpoint(handler, delayer: Delayer):
    target = handler
    while isinstance(target, functools.partial):
        target = target.func
    is_async = inspect.iscoroutinefunction(target)

    async def run(request: Request, token: CancellationToken) -> Response:
        response = None

        async def invoke():
            nonlocal response
            if is_async:
                response = await handler(request)
            else:
                response = await run_in_threadpool(handler, request)

        if not await delayer.run(request, token, invoke):
            return _Abandoned()
        return response

    @functools.wraps(handler)
    async def delayed(request: Request) -> Response:
        token = request.scope.get(SCOPE_KEY)
        if token is not None:
            return await run(request, token)

        token = CancellationToken()
        async with DisconnectWatcher(request.receive, token) as watcher:
            watched = Request({**request.scope, SCOPE_KEY: token}, watcher.receive)
            return await run(watched, token)

    return delayed


class DelayedApp:
    """ASGI app wrapper.

    The final response body message is held until the after-wait is over so
    the client sees the extra latency. Non-HTTP scopes pass straight through.
    """

    def __init__(self, app, delayer: Delayer):
        self.app = app
        self.delayer = delayer

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        token = scope.get(SCOPE_KEY)
        if token is not None:
            await self._handle(scope, receive, send, token)
            return

        token = CancellationToken()
        async with DisconnectWatcher(receive, token) as watcher:
            scope = {**scope, SCOPE_KEY: token}
            await self._handle(scope, watcher.receive, send, token)

    async def _handle(self, scope, receive, send, token: CancellationToken):
        held = []

        async def send_holding_final(message):
            if message["type"] == "http.response.body" and not message.get("more_body", False):
                held.append(message)
                return
            await send(message)

        async def invoke():
            await self.app(scope, receive, send_holding_final)

        await self.delayer.run(Request(scope), token, invoke)
        for message in held:
            await send(message)


def delay(handler, *options):
    """Wrap a Starlette endpoint or an ASGI app with artificial latency.

    Returns a callable of the same shape: an async endpoint taking a Request
    for functions and methods, an ASGI app otherwise. By default the total
    added latency never exceeds 40s per request (20s before, 20s after);
    raise the cap with max_delay().
    """
    cfg = build_config(*options)
    ok, warnings = validate_config(cfg)
    if not ok and cfg.logger:
        for w in warnings:
            cfg.logger.config_warning(w)

    delayer = Delayer(cfg)
    if _is_endpoint(handler):
        return _delay_endpoint(handler, delayer)
    return DelayedApp(handler, delayer)
