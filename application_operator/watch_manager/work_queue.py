"""
The WorkQueue collapses reconcile requests for the same key and makes sure a
key is never handed to two workers at once
"""

# Standard
from collections import deque
from datetime import timedelta
from typing import Hashable, Optional
import threading

# First Party
import alog

# Local
from .threads.timer import TimerThread

log = alog.use_channel("WRKQ")


class WorkQueue:
    """A key-deduplicated FIFO queue shared by the reconcile workers.

    A key is queued at most once (the dirty set). A key handed out by get is
    in the processing set until done is called. When it is added again in the
    meantime, it is queued once processing is done.
    """

    def __init__(self, timer_thread: Optional[TimerThread] = None):
        """
        Args:
            timer_thread:  Optional[TimerThread]
                The timer used to schedule delayed adds. Defaults to the
                shared TimerThread.
        """
        self._condition = threading.Condition()
        self._queue = deque()
        self._dirty = set()
        self._processing = set()
        self._shutting_down = False
        self._timer_thread = timer_thread

    @property
    def timer_thread(self) -> TimerThread:
        """Lazy access to the timer used for delayed adds"""
        if self._timer_thread is None:
            self._timer_thread = TimerThread()
        return self._timer_thread

    ## Public ##################################################################

    def add(self, key: Hashable):
        """Mark the key as needing processing"""
        with self._condition:
            if self._shutting_down:
                log.debug2("Queue shutting down. Dropping %s", key)
                return
            if key in self._dirty:
                log.debug3("%s already queued", key)
                return

            self._dirty.add(key)
            if key in self._processing:
                log.debug3("%s is processing. Queueing it once done", key)
                return

            log.debug2("Queueing %s", key)
            self._queue.append(key)
            self._condition.notify()

    def add_after(self, key: Hashable, delay: timedelta):
        """Add the key once the delay has passed. The calling thread is never
        blocked.
        """
        if delay <= timedelta(0):
            self.add(key)
            return

        log.debug2("Queueing %s in %s", key, delay)
        self.timer_thread.start_thread()
        self.timer_thread.put_event_after(delay, self.add, key)

    def get(self, timeout: Optional[float] = None) -> Optional[Hashable]:
        """Block until a key is available and mark it as processing

        Args:
            timeout:  Optional[float]
                The longest time to wait for a key

        Returns:
            key:  Optional[Hashable]
                The next key, or None when the wait timed out or the queue is
                shutting down
        """
        with self._condition:
            self._condition.wait_for(
                lambda: self._queue or self._shutting_down, timeout=timeout
            )
            if not self._queue:
                return None

            key = self._queue.popleft()
            self._processing.add(key)
            self._dirty.discard(key)
            return key

    def done(self, key: Hashable):
        """Mark processing of the key as finished"""
        with self._condition:
            self._processing.discard(key)
            if key in self._dirty and not self._shutting_down:
                log.debug3("Requeueing %s added during processing", key)
                self._queue.append(key)
                self._condition.notify()

    def shut_down(self):
        """Stop accepting keys and wake every waiting worker"""
        log.debug("Shutting down work queue")
        with self._condition:
            self._shutting_down = True
            self._queue.clear()
            self._dirty.clear()
            self._condition.notify_all()

    @property
    def shutting_down(self) -> bool:
        with self._condition:
            return self._shutting_down

    @property
    def processing(self) -> set:
        """Snapshot of the keys currently being processed"""
        with self._condition:
            return set(self._processing)

    def __len__(self):
        with self._condition:
            return len(self._queue)
