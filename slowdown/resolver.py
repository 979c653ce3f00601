"""
Duration resolver: how long to pause for a given request and phase.

Conditions gate everything: if any predicate rejects the request, both
phases resolve to zero. Otherwise the duration comes from the client's
headers (header mode) or the fixed values, and is clamped to
[0, max_duration].
"""
from starlette.requests import Request

from slowdown.config import DelayConfig
from slowdown.durations import parse_duration
from slowdown.errors import DurationParseError
from slowdown.types import Phase


def conditions_met(cfg: DelayConfig, request: Request) -> bool:
    return all(predicate(request) for predicate in cfg.conditions)


def header_name(prefix: str, phase: Phase) -> str:
    return f"{prefix}-{phase.value}"


def read_header_duration(cfg: DelayConfig, request: Request, phase: Phase) -> float:
    """Parse the phase header. Missing or malformed means zero."""
    name = header_name(cfg.header_prefix, phase)
    value = request.headers.get(name)
    if not value:
        return 0.0
    try:
        return parse_duration(value)
    except DurationParseError:
        if cfg.logger:
            cfg.logger.invalid_header(name, value)
        if cfg.metrics:
            cfg.metrics.record_invalid_header()
        return 0.0


def clamp(cfg: DelayConfig, seconds: float) -> float:
    return max(0.0, min(seconds, cfg.max_duration))


def _unconditional(cfg: DelayConfig, request: Request, phase: Phase) -> float:
    if cfg.header_prefix:
        d = read_header_duration(cfg, request, phase)
    elif phase is Phase.BEFORE:
        d = cfg.fixed_before
    else:
        d = cfg.fixed_after
    return clamp(cfg, d)


def resolve(cfg: DelayConfig, request: Request, phase: Phase) -> float:
    """Resolved duration in seconds for one phase."""
    if not conditions_met(cfg, request):
        return 0.0
    return _unconditional(cfg, request, phase)


def resolve_both(cfg: DelayConfig, request: Request) -> tuple[float, float, bool]:
    """(before, after, applies) with the predicates evaluated once.

    applies is False when a condition rejected the request.
    """
    if not conditions_met(cfg, request):
        return 0.0, 0.0, False
    return (
        _unconditional(cfg, request, Phase.BEFORE),
        _unconditional(cfg, request, Phase.AFTER),
        True,
    )
