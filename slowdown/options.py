"""
Option builders for delay().

Each option is a callable that mutates a ConfigBuilder in place. Options
apply in the order given; a later option overwrites an earlier one on the
same field. Values are not validated here: a negative max simply clamps
every delay to zero.
"""
from typing import Callable, Optional

from slowdown.config import ConfigBuilder, SlowdownSettings
from slowdown.durations import DurationLike, to_seconds
from slowdown.logger import DelayLogger
from slowdown.metrics import DelayMetrics
from slowdown.types import Predicate

Option = Callable[[ConfigBuilder], None]


def fixed(before: DurationLike, after: DurationLike) -> Option:
    """Pause for `before` ahead of the handler and `after` once it returns.

    Ignored when header() is also configured.
    """
    def apply(cfg: ConfigBuilder):
        cfg.fixed_before = to_seconds(before)
        cfg.fixed_after = to_seconds(after)
    return apply


def header(prefix: str) -> Option:
    """Let the client pick the durations through request headers.

    header("delay") reads "delay-before" and "delay-after", e.g.
    "delay-before: 300ms", "delay-after: 1.5s". A request that sends
    neither header gets no delay, and any fixed() durations are ignored.
    """
    def apply(cfg: ConfigBuilder):
        cfg.header_prefix = prefix
    return apply


def max_delay(duration: DurationLike) -> Option:
    """Cap each phase. Total added latency never exceeds twice this value."""
    def apply(cfg: ConfigBuilder):
        cfg.max_duration = to_seconds(duration)
    return apply


def condition(predicate: Predicate) -> Option:
    """Only delay requests for which predicate(request) is true.

    Multiple conditions must all hold.
    """
    def apply(cfg: ConfigBuilder):
        cfg.conditions.append(predicate)
    return apply


def log_to(logger: DelayLogger) -> Option:
    def apply(cfg: ConfigBuilder):
        cfg.logger = logger
    return apply


def metrics_to(metrics: DelayMetrics) -> Option:
    def apply(cfg: ConfigBuilder):
        cfg.metrics = metrics
    return apply


def options_from_env(settings: Optional[SlowdownSettings] = None) -> list[Option]:
    """Translate SLOWDOWN_* settings into options."""
    settings = settings or SlowdownSettings.from_env()
    opts = [
        fixed(settings.before, settings.after),
        max_delay(settings.max_duration),
        log_to(DelayLogger(level=settings.log_level)),
    ]
    if settings.header_prefix:
        opts.append(header(settings.header_prefix))
    return opts

