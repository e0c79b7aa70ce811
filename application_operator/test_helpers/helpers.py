"""
This module holds common helper functions for making testing easy
"""

# Standard
from contextlib import contextmanager
from typing import Callable, Optional
from unittest import mock
import copy
import inspect
import os
import time

# First Party
import alog

# Local
from application_operator import constants
from application_operator.config import library_config as config_detail_dict
from application_operator.store import InMemoryObjectStore
from application_operator.watch_manager.threads import TimerThread

log = alog.use_channel("TEST")


def configure_logging():
    alog.configure(
        os.environ.get("LOG_LEVEL", "off"),
        os.environ.get("LOG_FILTERS", ""),
        formatter="json"
        if os.environ.get("LOG_JSON", "").lower() == "true"
        else "pretty",
        thread_id=os.environ.get("LOG_THREAD_ID", "").lower() == "true",
    )


configure_logging()

TEST_APP_NAME = "test-app"
TEST_NAMESPACE = "test"
SOME_OTHER_NAMESPACE = "somewhere"

TEST_APP_LABELS = {"app": "test-app", "tier": "web"}
TEST_SELECTOR_LABELS = {"app": "test-app-pods"}

_MISSING = object()


## Manifests ###################################################################


def make_application(
    name=TEST_APP_NAME,
    namespace=TEST_NAMESPACE,
    labels=_MISSING,
    replicas=_MISSING,
    selector_labels=_MISSING,
    container_labels=None,
    ports=None,
    **kwargs,
) -> dict:
    """Build an Application manifest with a realistic deployment and service
    template. Passing replicas=None leaves the replica count unset.
    """
    labels = copy.deepcopy(TEST_APP_LABELS if labels is _MISSING else labels)
    selector_labels = copy.deepcopy(
        TEST_SELECTOR_LABELS if selector_labels is _MISSING else selector_labels
    )
    deployment = {
        "selector": {"matchLabels": selector_labels},
        "template": {
            "metadata": {"labels": container_labels or {"unrelated": "label"}},
            "spec": {
                "containers": [
                    {
                        "name": "web",
                        "image": "nginx:1.25",
                        "ports": [{"containerPort": 80}],
                    }
                ]
            },
        },
    }
    if replicas is not _MISSING and replicas is not None:
        deployment["replicas"] = replicas
    elif replicas is _MISSING:
        deployment["replicas"] = 2

    app = kwargs
    app.setdefault("apiVersion", constants.APPLICATION_API_VERSION)
    app.setdefault("kind", constants.APPLICATION_KIND)
    metadata = app.setdefault("metadata", {})
    metadata.setdefault("name", name)
    metadata.setdefault("namespace", namespace)
    if labels:
        metadata.setdefault("labels", labels)
    app.setdefault(
        "spec",
        {
            constants.SPEC_DEPLOYMENT_KEY: deployment,
            constants.SPEC_SERVICE_KEY: {
                "type": "ClusterIP",
                "ports": ports
                or [{"name": "http", "port": 80, "targetPort": 80, "protocol": "TCP"}],
            },
        },
    )
    return app


def make_deployment_status(ready_replicas=1, replicas=1, observed_generation=1):
    """Build a DeploymentStatus as the Deployment controller would report it"""
    return {
        "observedGeneration": observed_generation,
        "replicas": replicas,
        "updatedReplicas": replicas,
        "readyReplicas": ready_replicas,
        "availableReplicas": ready_replicas,
        "conditions": [
            {
                "type": "Available",
                "status": "True" if ready_replicas else "False",
                "reason": "MinimumReplicasAvailable",
            }
        ],
    }


def make_service_status(ingress_ip=None):
    """Build a ServiceStatus as the Service controller would report it"""
    if ingress_ip is None:
        return {"loadBalancer": {}}
    return {"loadBalancer": {"ingress": [{"ip": ingress_ip}]}}


def deployment_name(app_name=TEST_APP_NAME):
    return f"{app_name}{constants.DEPLOYMENT_NAME_SUFFIX}"


def service_name(app_name=TEST_APP_NAME):
    return f"{app_name}{constants.SERVICE_NAME_SUFFIX}"


## Config ######################################################################


@contextmanager
def library_config(**config_overrides):
    """This context manager sets library config values temporarily and reverts
    them on completion. Dict values are merged into nested sections.
    """
    # Override the configs and hang onto the old values
    old_vals = {}
    for key, val in config_overrides.items():
        current = config_detail_dict.get(key, _MISSING)
        if isinstance(val, dict) and isinstance(current, dict):
            old_vals[key] = {
                sub_key: current.get(sub_key, _MISSING) for sub_key in val
            }
            for sub_key, sub_val in val.items():
                current[sub_key] = sub_val
        else:
            old_vals[key] = current
            config_detail_dict[key] = val

    # Yield to the context
    try:
        yield
    finally:
        # Revert to the old values
        for key, old_val in old_vals.items():
            if isinstance(config_overrides[key], dict) and isinstance(old_val, dict):
                section = config_detail_dict[key]
                for sub_key, sub_val in old_val.items():
                    if sub_val is _MISSING:
                        del section[sub_key]
                    else:
                        section[sub_key] = sub_val
            elif old_val is _MISSING:
                del config_detail_dict[key]
            else:
                config_detail_dict[key] = old_val


## Failure Simulation ##########################################################


def get_failable_method(fail_flag, method):
    log.debug4(
        "Setting up failable mock of [%s] with fail flag: %s", str(method), fail_flag
    )

    def failable_method(*args, **kwargs):
        if isinstance(fail_flag, Exception) or (
            inspect.isclass(fail_flag) and issubclass(fail_flag, Exception)
        ):
            log.debug4("Raising in failable mock")
            raise fail_flag
        if callable(fail_flag):
            log.debug4("Calling callable fail flag")
            fail_flag()
        res = method(*args, **kwargs)
        log.debug4("Passthrough res: %s", res)
        return res

    return failable_method


class FailOnce:
    """Helper callable that will raise the given exception once on the N'th
    call
    """

    def __init__(self, fail_val, fail_number=1):
        self.call_count = 0
        self.fail_number = fail_number
        self.fail_val = fail_val

    def __call__(self, *_, **__):
        self.call_count += 1
        if self.call_count == self.fail_number:
            log.debug("Failing on call %d with %s", self.call_count, self.fail_val)
            if isinstance(self.fail_val, type) and issubclass(self.fail_val, Exception):
                raise self.fail_val("Raising!")
            raise self.fail_val
        log.debug("Not failing on call %d", self.call_count)


class MockObjectStore(InMemoryObjectStore):
    """The MockObjectStore wraps a standard InMemoryObjectStore and adds
    configuration options to simulate failures in each of its operations.
    Every public operation is a mock.Mock so tests can count calls.
    """

    def __init__(  # pylint: disable=too-many-arguments
        self,
        get_fail=False,
        list_fail=False,
        create_fail=False,
        update_fail=False,
        update_status_fail=False,
        delete_fail=False,
        watch_fail=False,
        resources=None,
    ):
        """Each *_fail flag may be an exception (type or instance) to raise on
        every call, or a callable such as FailOnce that is called first.
        """
        super().__init__(resources=resources)
        self.get = mock.Mock(side_effect=get_failable_method(get_fail, super().get))
        self.list = mock.Mock(side_effect=get_failable_method(list_fail, super().list))
        self.create = mock.Mock(
            side_effect=get_failable_method(create_fail, super().create)
        )
        self.update = mock.Mock(
            side_effect=get_failable_method(update_fail, super().update)
        )
        self.update_status = mock.Mock(
            side_effect=get_failable_method(update_status_fail, super().update_status)
        )
        self.delete = mock.Mock(
            side_effect=get_failable_method(delete_fail, super().delete)
        )
        self.watch = mock.Mock(
            side_effect=get_failable_method(watch_fail, super().watch)
        )

    def reset_mocks(self):
        """Reset the call records of all mocked operations"""
        for method in [
            self.get,
            self.list,
            self.create,
            self.update,
            self.update_status,
            self.delete,
            self.watch,
        ]:
            method.reset_mock()

    def write_count(self) -> int:
        """Number of write calls made against the store"""
        return (
            self.create.call_count
            + self.update.call_count
            + self.update_status.call_count
            + self.delete.call_count
        )

    def get_obj(self, kind, name, namespace=TEST_NAMESPACE, api_version=None):
        """Get an object without recording the call, None when missing"""
        matches = [
            obj
            for obj in InMemoryObjectStore.list(
                self, kind=kind, namespace=namespace, api_version=api_version
            )
            if obj["metadata"]["name"] == name
        ]
        return matches[0] if matches else None

    def has_obj(self, *args, **kwargs):
        return self.get_obj(*args, **kwargs) is not None


## Threads #####################################################################


class MockedTimerThread(TimerThread):
    _disable_singleton = True


def wait_for(
    condition: Callable[[], bool],
    timeout: float = 5,
    poll_time: float = 0.05,
    message: Optional[str] = None,
):
    """Poll the condition until it holds or fail the test after the timeout"""
    end_time = time.time() + timeout
    while time.time() < end_time:
        if condition():
            return
        time.sleep(poll_time)
    raise AssertionError(message or f"Condition not met within {timeout}s")
