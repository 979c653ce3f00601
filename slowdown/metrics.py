"""
Lightweight delay metrics collector.

Tracks how much latency was injected per phase, how often conditions
skipped a request, and how often waits were cut short by cancellation.
Thread-safe: sync endpoints record from worker threads.
"""
import time
import threading
from dataclasses import dataclass
from collections import defaultdict


@dataclass
class PhaseMetrics:
    """Per-phase wait statistics."""
    waits: int = 0
    total_ms: int = 0
    cancelled: int = 0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / max(1, self.waits)

    def record(self, duration_ms: int, cancelled: bool = False):
        self.waits += 1
        self.total_ms += duration_ms
        if cancelled:
            self.cancelled += 1


class DelayMetrics:
    """Global metrics singleton. Thread-safe."""

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._reset()
        return cls._instance

    def _reset(self):
        self._phases = defaultdict(PhaseMetrics)
        self._requests = 0
        self._skipped = 0
        self._invalid_headers = 0
        self._start = time.time()

    def reset(self):
        with self._lock:
            self._reset()

    def record_request(self):
        with self._lock:
            self._requests += 1

    def record_skip(self):
        with self._lock:
            self._skipped += 1

    def record_invalid_header(self):
        with self._lock:
            self._invalid_headers += 1

    def record_wait(self, phase: str, duration_ms: int, cancelled: bool = False):
        with self._lock:
            self._phases[phase].record(duration_ms, cancelled)

    def snapshot(self) -> dict:
        with self._lock:
            return {
                "uptime_s": round(time.time() - self._start, 1),
                "requests": self._requests,
                "skipped": self._skipped,
                "invalid_headers": self._invalid_headers,
                "phases": {
                    name: {
                        "waits": m.waits,
                        "total_ms": m.total_ms,
                        "avg_ms": round(m.avg_ms),
                        "cancelled": m.cancelled,
                    }
                    for name, m in self._phases.items()
                },
            }
