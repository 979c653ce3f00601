"""
Human-readable duration strings.

Accepts the same shapes clients send in delay headers: an optional sign
followed by one or more <number><unit> groups, e.g. "300ms", "1.5s",
"1h2m3.5s". Units: ns, us (µs, μs), ms, s, m, h. A bare "0" needs no unit.
All values are returned as float seconds.
"""
import re
from datetime import timedelta
from typing import Union

from slowdown.errors import DurationParseError

DurationLike = Union[int, float, timedelta]

_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,  # U+00B5 micro sign
    "μs": 1e-6,  # U+03BC greek mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_GROUP = re.compile(r"(?P<num>\d+(?:\.\d*)?|\.\d+)(?P<unit>[^\d.]+)")


def parse_duration(text: str) -> float:
    """Parse a duration string into seconds. Raises DurationParseError."""
    s = text.strip()
    if s[:1] in ("+", "-"):
        sign = -1.0 if s[0] == "-" else 1.0
        s = s[1:]
    else:
        sign = 1.0
    if s == "0":
        return 0.0
    if not s:
        raise DurationParseError(f"invalid duration {text!r}", text)

    total = 0.0
    pos = 0
    while pos < len(s):
        m = _GROUP.match(s, pos)
        if not m:
            raise DurationParseError(f"invalid duration {text!r}", text)
        unit = _UNITS.get(m.group("unit"))
        if unit is None:
            raise DurationParseError(
                f"unknown unit {m.group('unit')!r} in duration {text!r}", text
            )
        total += float(m.group("num")) * unit
        pos = m.end()
    return sign * total


def to_seconds(value: DurationLike) -> float:
    """Normalize a timedelta or a number of seconds to float seconds."""
    if isinstance(value, timedelta):
        return value.total_seconds()
    return float(value)


def format_duration(seconds: float) -> str:
    """Compact rendering for log lines: 0.3 -> '300ms', 90 -> '1m30s'."""
    if seconds < 0:
        return "-" + format_duration(-seconds)
    if seconds == 0:
        return "0s"
    if seconds < 1e-3:
        return f"{seconds * 1e6:g}us"
    if seconds < 1:
        return f"{round(seconds * 1e3, 3):g}ms"
    if seconds < 60:
        return f"{round(seconds, 3):g}s"
    minutes, rest = divmod(seconds, 60)
    if minutes < 60:
        return f"{int(minutes)}m{round(rest, 3):g}s" if rest else f"{int(minutes)}m"
    hours, minutes = divmod(int(minutes), 60)
    out = f"{hours}h"
    if minutes:
        out += f"{minutes}m"
    if rest:
        out += f"{round(rest, 3):g}s"
    return out
