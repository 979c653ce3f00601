"""
FastAPI demo server — delayed endpoints for reproducing client races.

GET /hello     → "Hello world", delayed by delay-before / delay-after headers
GET /fixed     → "Hello world", 400ms before the handler
GET /resolve   → the durations /hello would apply for the same headers
GET /metrics   → injected latency counters
GET /health    → healthcheck

Run: python -m slowdown.api.server
"""
from fastapi import FastAPI, Request
from pydantic import BaseModel, Field
from starlette.responses import PlainTextResponse

from slowdown.config import SlowdownSettings, build_config
from slowdown.delay import delay
from slowdown.metrics import DelayMetrics
from slowdown.middleware import CancellationMiddleware, RequestTracingMiddleware
from slowdown.options import fixed, header, max_delay
from slowdown.resolver import resolve_both

SETTINGS = SlowdownSettings.from_env()
HEADER_PREFIX = SETTINGS.header_prefix or "delay"

app = FastAPI(
    title="slowdown",
    description=(
        "Artificial latency for reproducing timing-sensitive client bugs. "
        f"Send '{HEADER_PREFIX}-before' / '{HEADER_PREFIX}-after' headers to /hello."
    ),
    version="1.0.0",
)

# Last added is outermost: tracing sees the full delayed duration.
app.add_middleware(CancellationMiddleware)
app.add_middleware(RequestTracingMiddleware)


class PhaseStats(BaseModel):
    waits: int = 0
    total_ms: int = 0
    avg_ms: int = 0
    cancelled: int = 0


class MetricsSnapshot(BaseModel):
    uptime_s: float
    requests: int
    skipped: int
    invalid_headers: int
    phases: dict[str, PhaseStats] = Field(default_factory=dict)


class ResolvedDelay(BaseModel):
    """What /hello would do with the headers of this request."""
    before_ms: int
    after_ms: int
    applies: bool
    header_prefix: str


async def hello(request: Request):
    return PlainTextResponse("Hello world\n")


HEADER_OPTIONS = (header(HEADER_PREFIX), max_delay(SETTINGS.max_duration))
_preview_config = build_config(*HEADER_OPTIONS)

app.add_route("/hello", delay(hello, *HEADER_OPTIONS), methods=["GET"])
app.add_route("/fixed", delay(hello, fixed(0.4, 0)), methods=["GET"])


@app.get("/resolve", response_model=ResolvedDelay)
async def resolve(request: Request):
    before, after, applies = resolve_both(_preview_config, request)
    return ResolvedDelay(
        before_ms=int(before * 1000),
        after_ms=int(after * 1000),
        applies=applies,
        header_prefix=HEADER_PREFIX,
    )


@app.get("/metrics", response_model=MetricsSnapshot)
async def metrics():
    return DelayMetrics().snapshot()


@app.get("/health")
async def health():
    return {"status": "ok", "header_prefix": HEADER_PREFIX, "max_s": SETTINGS.max_duration}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("slowdown.api.server:app", host=SETTINGS.host, port=SETTINGS.port)
