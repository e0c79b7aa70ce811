"""
Small shared types for the watch manager threads
"""

# Standard
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

# Shortest time the timer sleeps between wake ups, in seconds
MIN_SLEEP_TIME = 0.1


@dataclass(order=True)
class TimerEvent:
    """A scheduled call. Events are ordered by their due time only."""

    time: datetime
    action: Callable = field(compare=False)
    args: tuple = field(default_factory=tuple, compare=False)
    kwargs: dict = field(default_factory=dict, compare=False)
    stale: bool = field(default=False, compare=False)

    def cancel(self):
        """Mark the event so the timer skips it"""
        self.stale = True

    def __str__(self):
        name = getattr(self.action, "__name__", repr(self.action))
        return f"TimerEvent<{name}@{self.time.isoformat()}>"


class Singleton(type):
    """Metaclass returning one shared instance per class. The instance is
    stored on the class itself, so subclasses get their own. Setting
    _disable_singleton on a class builds a new instance on every call.
    """

    def __call__(cls, *args: Any, **kwargs: Any):
        if getattr(cls, "_disable_singleton", False):
            return super().__call__(*args, **kwargs)
        if "_instance" not in cls.__dict__:
            cls._instance = super().__call__(*args, **kwargs)
        return cls._instance
