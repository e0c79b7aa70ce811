"""
The TimerThread runs delayed actions, such as requeues after a backoff, from
one shared thread
"""

# Standard
from datetime import datetime, timedelta
from heapq import heappop, heappush
from typing import Any, Callable, List, Optional
import threading

# First Party
import alog

# Local
from ..types import MIN_SLEEP_TIME, Singleton, TimerEvent
from .base import ThreadBase

log = alog.use_channel("TMRTHRD")


class TimerThread(ThreadBase, metaclass=Singleton):
    """A single process-wide thread that executes actions at a scheduled
    time. Unlike threading.Timer, no thread is spawned per action. Scheduled
    events are kept in a heap ordered by their due time.
    """

    def __init__(self, name: Optional[str] = None):
        super().__init__(name=name or "timer_thread", daemon=True)
        # The heap is only touched while holding the condition
        self._events: List[TimerEvent] = []
        self._condition = threading.Condition()

    def run(self):
        """Sleep until the earliest event is due, then run every due event.
        A failing action is logged and does not affect the others.
        """
        while not self.should_stop():
            for event in self._wait_for_due_events():
                log.debug("Running timer event %s", event)
                try:
                    event.action(*event.args, **event.kwargs)
                except Exception as err:  # pylint: disable=broad-except
                    log.error(
                        "Timer action for %s failed: %s", event, err, exc_info=True
                    )

    def stop_thread(self):
        super().stop_thread()
        with self._condition:
            self._condition.notify_all()

    ## Public Interface ########################################################

    def put_event(
        self, time: datetime, action: Callable, *args: Any, **kwargs: Any
    ) -> Optional[TimerEvent]:
        """Schedule an action

        Args:
            time:  datetime
                When the action is due
            action:  Callable
                The function to call
            *args, **kwargs:
                Arguments for the action

        Returns:
            event:  Optional[TimerEvent]
                Handle that can be cancelled, None if the timer is stopped
        """
        if self.should_stop():
            log.debug2("Timer stopped. Dropping action %s", action)
            return None

        event = TimerEvent(time=time, action=action, args=args, kwargs=kwargs)
        with self._condition:
            heappush(self._events, event)
            self._condition.notify_all()
        return event

    def put_event_after(
        self, delay: timedelta, action: Callable, *args: Any, **kwargs: Any
    ) -> Optional[TimerEvent]:
        """Schedule an action to run once the delay has passed"""
        return self.put_event(datetime.now() + delay, action, *args, **kwargs)

    @property
    def pending(self) -> int:
        """Number of scheduled events that have not been cancelled"""
        with self._condition:
            return sum(1 for event in self._events if not event.stale)

    ## Implementation Details ##################################################

    def _wait_for_due_events(self) -> List[TimerEvent]:
        """Block until at least one event is due, a new event is scheduled or
        the thread is stopped. Returns the due events that were not cancelled.
        """
        with self._condition:
            # stop_thread may have notified before the condition was taken
            if self.should_stop():
                return []
            timeout = None
            if self._events:
                timeout = max(
                    (self._events[0].time - datetime.now()).total_seconds(),
                    MIN_SLEEP_TIME,
                )
            log.debug4("Timer sleeping for %s", timeout)
            self._condition.wait(timeout=timeout)
            if self.should_stop():
                return []

            due_events = []
            now = datetime.now()
            while self._events and self._events[0].time <= now:
                event = heappop(self._events)
                if event.stale:
                    log.debug2("Skipping cancelled timer event %s", event)
                    continue
                due_events.append(event)
            return due_events
