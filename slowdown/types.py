"""
Shared types for the delay engine.

Phases and wait outcomes are str-valued enums so they serialize
straight into log records and metrics snapshots.
"""
from __future__ import annotations
from enum import Enum
from typing import Callable

from starlette.requests import Request


class Phase(str, Enum):
    BEFORE = "before"
    AFTER = "after"


class WaitOutcome(str, Enum):
    COMPLETED = "completed"
    CANCELLED = "cancelled"


# A request gate. Must not touch the request body.
Predicate = Callable[[Request], bool]
