"""
slowdown — artificial latency for HTTP handlers.

Public API:
    from slowdown import delay, fixed, header, max_delay, condition
    from slowdown import DelayMiddleware, CancellationMiddleware
    from slowdown import CancellationToken, wait, WaitOutcome
"""
from slowdown.config import DEFAULT_BEFORE, DEFAULT_MAX, DelayConfig, SlowdownSettings
from slowdown.delay import delay
from slowdown.durations import parse_duration
from slowdown.errors import ConfigError, DurationParseError, SlowdownError
from slowdown.middleware import CancellationMiddleware, DelayMiddleware, RequestTracingMiddleware
from slowdown.options import condition, fixed, header, log_to, max_delay, metrics_to, options_from_env
from slowdown.types import Phase, WaitOutcome
from slowdown.waiter import CancellationToken, wait

__version__ = "1.0.0"
__all__ = [
    "delay", "fixed", "header", "max_delay", "condition", "log_to", "metrics_to",
    "options_from_env", "DelayMiddleware", "CancellationMiddleware",
    "RequestTracingMiddleware", "CancellationToken", "wait", "WaitOutcome", "Phase",
    "DelayConfig", "SlowdownSettings", "DEFAULT_BEFORE", "DEFAULT_MAX",
    "parse_duration", "SlowdownError", "DurationParseError", "ConfigError",
]
