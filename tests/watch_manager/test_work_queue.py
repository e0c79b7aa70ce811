"""
Tests for the WorkQueue
"""

# Standard
from datetime import timedelta
import threading
import time

# Third Party
import pytest

# Local
from application_operator.test_helpers.helpers import MockedTimerThread, wait_for
from application_operator.watch_manager import WorkQueue

## Happy Path ##################################################################


def test_fifo_order():
    """Make sure keys come out in the order they were added"""
    queue = WorkQueue()
    queue.add("a")
    queue.add("b")
    assert queue.get(timeout=0) == "a"
    assert queue.get(timeout=0) == "b"


def test_duplicates_collapse():
    """Make sure a key queued twice is only handed out once"""
    queue = WorkQueue()
    queue.add("a")
    queue.add("a")
    assert len(queue) == 1
    assert queue.get(timeout=0) == "a"
    assert queue.get(timeout=0) is None


def test_processing_key_not_handed_out_twice():
    """Make sure a key re-added while processing waits for done"""
    queue = WorkQueue()
    queue.add("a")
    assert queue.get(timeout=0) == "a"
    assert queue.processing == {"a"}

    queue.add("a")
    queue.add("a")
    assert queue.get(timeout=0) is None

    queue.done("a")
    assert queue.processing == set()
    assert queue.get(timeout=0) == "a"
    queue.done("a")
    assert queue.get(timeout=0) is None


def test_done_without_readd():
    """Make sure a finished key is not requeued on its own"""
    queue = WorkQueue()
    queue.add("a")
    queue.get(timeout=0)
    queue.done("a")
    assert len(queue) == 0


@pytest.mark.timeout(5)
def test_get_blocks_until_add():
    """Make sure a waiting get wakes up on add"""
    queue = WorkQueue()
    adder = threading.Timer(0.2, queue.add, args=("a",))
    adder.start()
    assert queue.get(timeout=3) == "a"
    adder.join()


@pytest.mark.timeout(5)
def test_add_after():
    """Make sure delayed adds arrive after the delay"""
    timer = MockedTimerThread()
    queue = WorkQueue(timer_thread=timer)
    try:
        start = time.time()
        queue.add_after("a", timedelta(seconds=0.5))
        assert len(queue) == 0
        assert queue.get(timeout=3) == "a"
        assert time.time() - start >= 0.4
    finally:
        timer.stop_thread()


def test_add_after_no_delay():
    """Make sure a zero delay adds immediately"""
    queue = WorkQueue()
    queue.add_after("a", timedelta(0))
    assert queue.get(timeout=0) == "a"


## Shutdown ####################################################################


@pytest.mark.timeout(5)
def test_shut_down_wakes_getters():
    """Make sure waiting workers are released on shutdown"""
    queue = WorkQueue()
    results = []
    getter = threading.Thread(target=lambda: results.append(queue.get()))
    getter.start()
    time.sleep(0.1)
    queue.shut_down()
    getter.join(timeout=2)
    assert results == [None]
    assert queue.shutting_down


def test_shut_down_drops_keys():
    """Make sure nothing is queued once shutting down"""
    queue = WorkQueue()
    queue.add("a")
    queue.shut_down()
    queue.add("b")
    assert queue.get(timeout=0) is None


@pytest.mark.timeout(5)
def test_concurrent_workers_never_share_a_key():
    """Make sure two workers never process the same key at the same time"""
    queue = WorkQueue()
    active = set()
    overlaps = []
    lock = threading.Lock()

    def _worker():
        while True:
            key = queue.get(timeout=0.5)
            if key is None:
                return
            with lock:
                if key in active:
                    overlaps.append(key)
                active.add(key)
            time.sleep(0.01)
            with lock:
                active.discard(key)
            queue.done(key)

    workers = [threading.Thread(target=_worker) for _ in range(4)]
    for worker in workers:
        worker.start()
    for _ in range(50):
        queue.add("a")
        queue.add("b")
        time.sleep(0.002)
    wait_for(lambda: len(queue) == 0 and not queue.processing, timeout=3)
    for worker in workers:
        worker.join(timeout=2)
    assert overlaps == []
