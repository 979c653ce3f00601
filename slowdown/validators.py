"""
Config validators.

Nothing is rejected: options accept any value and degenerate settings
clamp to "no delay". These checks only surface likely mistakes as
warnings. Returns (is_clean, warnings) tuple.
"""
from slowdown.config import DelayConfig, DEFAULT_BEFORE, DEFAULT_AFTER
from slowdown.durations import format_duration


def validate_config(cfg: DelayConfig) -> tuple[bool, list[str]]:
    """Flag settings that silently disable or override delays."""
    warnings = []
    if cfg.max_duration < 0:
        warnings.append(
            f"Negative max duration {format_duration(cfg.max_duration)} disables all delays"
        )
    if cfg.fixed_before < 0 or cfg.fixed_after < 0:
        warnings.append("Negative fixed durations are treated as zero")
    if cfg.header_prefix is not None:
        if not cfg.header_prefix:
            warnings.append("Empty header prefix, fixed durations apply")
        elif (cfg.fixed_before, cfg.fixed_after) != (DEFAULT_BEFORE, DEFAULT_AFTER):
            warnings.append(
                f"Header prefix {cfg.header_prefix!r} set, fixed durations are ignored"
            )
    for name, value in (("before", cfg.fixed_before), ("after", cfg.fixed_after)):
        if not cfg.header_prefix and value > cfg.max_duration >= 0:
            warnings.append(
                f"Fixed {name} duration {format_duration(value)} exceeds max "
                f"{format_duration(cfg.max_duration)} and will be capped"
            )
    return len(warnings) == 0, warnings
