"""
Typed exception hierarchy for the delay engine.

Per-request code never lets these escape: a bad duration header is
recoverable and resolves to "no delay". Only settings loaded from the
environment raise at startup.
"""


class SlowdownError(Exception):
    """Base exception for all slowdown errors."""
    def __init__(self, message: str, phase: str = "", recoverable: bool = False):
        self.phase = phase
        self.recoverable = recoverable
        super().__init__(message)


class DurationParseError(SlowdownError):
    """A duration string could not be parsed."""
    def __init__(self, message: str, value: str = ""):
        self.value = value[:64]
        super().__init__(message, recoverable=True)


class ConfigError(SlowdownError):
    """An environment setting holds an invalid value."""
    def __init__(self, message: str, variable: str = ""):
        self.variable = variable
        super().__init__(message)
