"""
Cancellable waiter.

wait() races a timer against a CancellationToken and reports which one
won. It never polls: the task sleeps on an asyncio.Event until either the
timeout elapses or the token fires. Cancellation of the calling task itself
(asyncio.CancelledError) is not swallowed.
"""
import asyncio
from typing import Optional

from slowdown.types import WaitOutcome

# Where the disconnect watcher leaves the token in the ASGI scope.
SCOPE_KEY = "slowdown.cancellation"
DEADLINE_EXCEEDED = "deadline exceeded"


class CancellationToken:
    """Done/not-done flag with a reason, owned by the transport layer."""

    def __init__(self):
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._timer: Optional[asyncio.TimerHandle] = None

    @classmethod
    def with_timeout(cls, seconds: float, reason: str = DEADLINE_EXCEEDED) -> "CancellationToken":
        """Token that cancels itself after `seconds`. Needs a running loop."""
        token = cls()
        loop = asyncio.get_running_loop()
        token._timer = loop.call_later(seconds, token.cancel, reason)
        return token

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "cancelled"):
        """Fire the token. The first reason sticks."""
        if self._event.is_set():
            return
        self._reason = reason
        self._event.set()
        self.close()

    def close(self):
        """Drop a pending deadline timer."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def wait(self):
        await self._event.wait()

    def __repr__(self) -> str:
        state = f"cancelled: {self._reason}" if self.cancelled else "live"
        return f"<CancellationToken {state}>"


async def wait(duration: float, token: CancellationToken) -> WaitOutcome:
    """Sleep for `duration` seconds unless `token` fires first."""
    if token.cancelled:
        return WaitOutcome.CANCELLED
    if duration <= 0:
        return WaitOutcome.COMPLETED
    try:
        await asyncio.wait_for(token.wait(), timeout=duration)
    except asyncio.TimeoutError:
        return WaitOutcome.COMPLETED
    return WaitOutcome.CANCELLED


class DisconnectWatcher:
    """Reads an ASGI `receive` in the background and fires the token on
    http.disconnect.

    Every message is still handed to the app, in order, through
    watcher.receive. At most one message is read ahead of the app, so a
    request body the app has not asked for stays with the server. Once the
    upstream has reported a disconnect, further reads keep answering
    http.disconnect like a server would.
    """

    def __init__(self, receive, token: CancellationToken):
        self._upstream = receive
        self.token = token
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        self._task: Optional[asyncio.Task] = None

    async def _pump(self):
        try:
            while True:
                message = await self._upstream()
                if message["type"] == "http.disconnect":
                    # fire before a possibly blocking put
                    self.token.cancel("client disconnected")
                    await self._queue.put(message)
                    return
                await self._queue.put(message)
        except Exception:
            # unblock a reader parked on the queue, then surface the error
            self.token.cancel("receive failed")
            if not self._queue.full():
                self._queue.put_nowait({"type": "http.disconnect"})
            raise

    async def receive(self):
        if self._queue.empty() and self._task is not None and self._task.done():
            return {"type": "http.disconnect"}
        return await self._queue.get()

    async def __aenter__(self) -> "DisconnectWatcher":
        self._task = asyncio.create_task(self._pump())
        return self

    async def __aexit__(self, *exc_info):
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        finally:
            self.token.close()
