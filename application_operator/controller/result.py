"""
Data models describing the outcome of a single reconcile pass
"""

# Standard
from dataclasses import dataclass, field
from typing import Optional
import datetime

# Local
from .. import config


@dataclass
class RequeueParams:
    """How long to wait before a requeued request is handed out again"""

    requeue_after: datetime.timedelta = field(
        default_factory=lambda: datetime.timedelta(
            seconds=float(config.requeue_after_seconds)
        )
    )


@dataclass
class ReconciliationResult:
    """Outcome of one reconcile pass and whether it must run again"""

    requeue: bool
    requeue_params: RequeueParams = field(default_factory=RequeueParams)
    # Set when the pass failed
    exception: Optional[Exception] = None

    @classmethod
    def done(cls) -> "ReconciliationResult":
        """The pass finished and only a new watch event re-enters it"""
        return cls(requeue=False)

    @classmethod
    def retry_after_error(cls, exception: Exception) -> "ReconciliationResult":
        """The pass failed and is retried after the configured backoff"""
        return cls(requeue=True, exception=exception)

    @classmethod
    def retry_now(cls) -> "ReconciliationResult":
        """The pass asked to be run again without delay"""
        return cls(
            requeue=True,
            requeue_params=RequeueParams(requeue_after=datetime.timedelta(0)),
        )
