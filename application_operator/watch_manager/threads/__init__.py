"""
Threads used by the watch manager
"""

# Local
from .base import ThreadBase
from .reconcile import ReconcileThread
from .timer import TimerThread
from .watch import WatchThread
