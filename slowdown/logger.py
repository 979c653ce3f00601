"""
Structured JSON logger for delay observability.

Outputs one JSON object per log line — parseable by jq, Loki, CloudWatch.
Timestamps are ISO-8601 UTC. Records below the configured level are dropped.
"""
import json
import sys
import threading
import time
from datetime import datetime, timezone

LEVELS = {"debug": 10, "info": 20, "warn": 30, "error": 40}


class DelayLogger:
    """Structured logger that writes JSON lines to stderr."""

    def __init__(self, name: str = "slowdown", stream=None, level: str = "info"):
        self.name = name
        self.stream = stream or sys.stderr
        self.level = LEVELS.get(level, LEVELS["info"])
        self._start = time.monotonic()
        # sync endpoints run in worker threads
        self._lock = threading.Lock()

    def _emit(self, level: str, event: str, **fields):
        if LEVELS[level] < self.level:
            return
        record = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "event": event,
            "logger": self.name,
            "elapsed_ms": int((time.monotonic() - self._start) * 1000),
        }
        record.update(fields)
        line = json.dumps(record, default=str) + "\n"
        with self._lock:
            self.stream.write(line)
            self.stream.flush()

    def debug(self, event: str, **kw):
        self._emit("debug", event, **kw)

    def info(self, event: str, **kw):
        self._emit("info", event, **kw)

    def warn(self, event: str, **kw):
        self._emit("warn", event, **kw)

    def error(self, event: str, **kw):
        self._emit("error", event, **kw)

    def wait_done(self, phase: str, duration_s: float, outcome: str, path: str = ""):
        self._emit("info", "delay.wait", phase=phase,
                   duration_ms=int(duration_s * 1000), outcome=outcome, path=path)

    def skipped(self, path: str = ""):
        self._emit("debug", "delay.skipped", reason="condition unmet", path=path)

    def cancelled(self, phase: str, reason: str, path: str = ""):
        self._emit("info", "delay.cancelled", phase=phase, reason=reason, path=path)

    def invalid_header(self, header: str, value: str):
        self._emit("warn", "header.invalid", header=header, value=value[:64])

    def config_warning(self, message: str):
        self._emit("warn", "config.warning", message=message)
