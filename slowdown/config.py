"""
Config — delay configuration and environment settings.

DelayConfig is built once per wrapped handler from the defaults below plus
an ordered list of options, then frozen and shared by every request.
SlowdownSettings reads SLOWDOWN_* environment variables for deployments
that switch delays on without code changes.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from slowdown.durations import parse_duration
from slowdown.errors import ConfigError, DurationParseError
from slowdown.logger import DelayLogger, LEVELS
from slowdown.metrics import DelayMetrics
from slowdown.types import Predicate

DEFAULT_BEFORE = 1.0   # seconds
DEFAULT_AFTER = 0.0
DEFAULT_MAX = 20.0     # per phase


@dataclass(frozen=True)
class DelayConfig:
    """Resolved, immutable delay parameters. Durations are float seconds."""

    fixed_before: float = DEFAULT_BEFORE
    fixed_after: float = DEFAULT_AFTER
    header_prefix: Optional[str] = None
    max_duration: float = DEFAULT_MAX
    conditions: tuple[Predicate, ...] = ()
    logger: Optional[DelayLogger] = None
    metrics: Optional[DelayMetrics] = None


@dataclass
class ConfigBuilder:
    """Mutable staging area that options write into."""

    fixed_before: float = DEFAULT_BEFORE
    fixed_after: float = DEFAULT_AFTER
    header_prefix: Optional[str] = None
    max_duration: float = DEFAULT_MAX
    conditions: list[Predicate] = field(default_factory=list)
    logger: Optional[DelayLogger] = None
    metrics: Optional[DelayMetrics] = None

    def build(self) -> DelayConfig:
        return DelayConfig(
            fixed_before=self.fixed_before,
            fixed_after=self.fixed_after,
            header_prefix=self.header_prefix,
            max_duration=self.max_duration,
            conditions=tuple(self.conditions),
            logger=self.logger if self.logger is not None else default_logger(),
            metrics=self.metrics if self.metrics is not None else DelayMetrics(),
        )


def build_config(*options) -> DelayConfig:
    """Apply options left to right onto the defaults."""
    builder = ConfigBuilder()
    for opt in options:
        opt(builder)
    return builder.build()


# ── Environment settings ─────────────────────────────────────

def _env_duration(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        return parse_duration(raw)
    except DurationParseError as e:
        raise ConfigError(f"{name}: {e}", variable=name) from e


@dataclass(frozen=True)
class SlowdownSettings:
    """Immutable settings. Env vars override defaults."""

    before: float = DEFAULT_BEFORE
    after: float = DEFAULT_AFTER
    header_prefix: Optional[str] = None
    max_duration: float = DEFAULT_MAX
    log_level: str = "info"

    # Demo server
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> "SlowdownSettings":
        log_level = os.getenv("SLOWDOWN_LOG_LEVEL", "info").lower()
        if log_level not in LEVELS:
            raise ConfigError(
                f"SLOWDOWN_LOG_LEVEL: expected one of {sorted(LEVELS)}, got {log_level!r}",
                variable="SLOWDOWN_LOG_LEVEL",
            )
        port = os.getenv("SLOWDOWN_PORT", "8000")
        if not port.isdigit():
            raise ConfigError(f"SLOWDOWN_PORT: not a port number: {port!r}", variable="SLOWDOWN_PORT")
        return cls(
            before=_env_duration("SLOWDOWN_BEFORE", "1s"),
            after=_env_duration("SLOWDOWN_AFTER", "0s"),
            header_prefix=os.getenv("SLOWDOWN_HEADER_PREFIX") or None,
            max_duration=_env_duration("SLOWDOWN_MAX", "20s"),
            log_level=log_level,
            host=os.getenv("SLOWDOWN_HOST", "127.0.0.1"),
            port=int(port),
        )


_default_logger: Optional[DelayLogger] = None


def default_logger() -> DelayLogger:
    """Process-wide logger, level taken from SLOWDOWN_LOG_LEVEL."""
    global _default_logger
    if _default_logger is None:
        level = os.getenv("SLOWDOWN_LOG_LEVEL", "info").lower()
        _default_logger = DelayLogger(level=level)
    return _default_logger
