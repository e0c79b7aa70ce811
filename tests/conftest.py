"""
Shared test config
"""
# Standard
from unittest import mock

# Third Party
import pytest

# Local
from application_operator.test_helpers.helpers import (
    MockedTimerThread,
    configure_logging,
)
from application_operator.watch_manager.threads import TimerThread

configure_logging()


@pytest.fixture(autouse=True)
def no_local_kubeconfig():
    """This fixture makes sure the tests run as if KUBECONFIG is not exported in
    the environment, even if it is
    """
    with mock.patch(
        "kubernetes.config.new_client_from_config", side_effect=RuntimeError
    ):
        yield


@pytest.fixture(autouse=True)
def fresh_timer_thread():
    """The TimerThread is a process wide singleton and a stopped thread cannot
    be restarted, so every test gets its own instance
    """
    timer = MockedTimerThread()
    TimerThread._instance = timer
    yield timer
    timer.stop_thread()
    del TimerThread._instance
