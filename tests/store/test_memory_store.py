"""
Tests for the InMemoryObjectStore
"""

# Standard
from unittest import mock
import threading

# Third Party
import pytest

# Local
from application_operator import constants
from application_operator.exceptions import (
    AdmissionRejectedError,
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
)
from application_operator.store import (
    InMemoryObjectStore,
    KubeEventType,
    set_controller_reference,
)
from application_operator.store.memory_store import CREATE, DELETE, UPDATE
from application_operator.test_helpers.helpers import (
    TEST_NAMESPACE,
    make_application,
)

## Helpers #####################################################################


def make_config_map(name="foo", namespace=TEST_NAMESPACE, labels=None, **data):
    metadata = {"name": name, "namespace": namespace}
    if labels:
        metadata["labels"] = labels
    return {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": metadata,
        "data": data,
    }


def get_config_map(store, name="foo", namespace=TEST_NAMESPACE):
    return store.get(kind="ConfigMap", name=name, namespace=namespace, api_version="v1")


def get_app(store, name="test-app"):
    return store.get(
        kind=constants.APPLICATION_KIND,
        name=name,
        namespace=TEST_NAMESPACE,
        api_version=constants.APPLICATION_API_VERSION,
    )


class RecordingHook:
    """Admission hook recording its calls and optionally mutating or
    rejecting
    """

    def __init__(self, mutate=None, reject=False):
        self.calls = []
        self.mutate = mutate
        self.reject = reject

    def admit(self, operation, new, old):
        self.calls.append((operation, new, old))
        if self.reject:
            raise AdmissionRejectedError("rejected")
        if new is not None and self.mutate:
            self.mutate(new)
        return new


## Create / Get ################################################################


def test_create_and_get():
    """Make sure a created object can be fetched with store owned fields set"""
    store = InMemoryObjectStore()
    created = store.create(make_config_map(key="value"))
    fetched = get_config_map(store)
    assert created == fetched
    assert fetched["data"] == {"key": "value"}
    assert fetched["metadata"]["uid"]
    assert fetched["metadata"]["resourceVersion"]
    assert fetched["metadata"]["generation"] == 1
    assert fetched["metadata"]["creationTimestamp"]


def test_create_already_exists():
    """Make sure a second create of the same identity fails"""
    store = InMemoryObjectStore()
    store.create(make_config_map())
    with pytest.raises(AlreadyExistsError):
        store.create(make_config_map())


def test_create_drops_status():
    """Make sure status can only be written with update_status"""
    store = InMemoryObjectStore()
    app = make_application()
    app["status"] = {"workflow": {"replicas": 1}}
    assert "status" not in store.create(app)


def test_get_not_found():
    """Make sure NotFoundError is raised for missing objects"""
    store = InMemoryObjectStore()
    with pytest.raises(NotFoundError):
        get_config_map(store)
    store.create(make_config_map())
    with pytest.raises(NotFoundError):
        get_config_map(store, namespace="other")
    with pytest.raises(NotFoundError):
        store.get(
            kind="ConfigMap", name="foo", namespace=TEST_NAMESPACE, api_version="v2"
        )


def test_get_returns_copies():
    """Make sure mutating a returned object does not change the store"""
    store = InMemoryObjectStore()
    store.create(make_config_map(key="value"))
    fetched = get_config_map(store)
    fetched["data"]["key"] = "changed"
    assert get_config_map(store)["data"]["key"] == "value"


def test_seeded_resources():
    """Make sure resources given at construction are present"""
    store = InMemoryObjectStore(resources=[make_config_map(), make_config_map("bar")])
    assert get_config_map(store, "bar")["metadata"]["uid"]
    assert len(store.list(kind="ConfigMap")) == 2


## List ########################################################################


def test_list_filters():
    """Make sure list filters by namespace, api_version and labels"""
    store = InMemoryObjectStore()
    store.create(make_config_map("a", labels={"app": "x"}))
    store.create(make_config_map("b", labels={"app": "y"}))
    store.create(make_config_map("c", namespace="other", labels={"app": "x"}))

    assert len(store.list(kind="ConfigMap")) == 3
    assert len(store.list(kind="ConfigMap", namespace=TEST_NAMESPACE)) == 2
    assert len(store.list(kind="ConfigMap", api_version="v2")) == 0
    assert sorted(
        obj["metadata"]["name"]
        for obj in store.list(kind="ConfigMap", label_selector={"app": "x"})
    ) == ["a", "c"]
    assert store.list(kind="Secret") == []


## Update ######################################################################


def test_update_generation_and_version():
    """Make sure the generation only moves on spec changes and the
    resourceVersion moves on every write
    """
    store = InMemoryObjectStore()
    created = store.create(make_application())

    relabeled = get_app(store)
    relabeled["metadata"]["labels"]["new"] = "label"
    updated = store.update(relabeled)
    assert updated["metadata"]["generation"] == 1
    assert updated["metadata"]["resourceVersion"] != created["metadata"][
        "resourceVersion"
    ]
    assert updated["metadata"]["uid"] == created["metadata"]["uid"]

    respecced = get_app(store)
    respecced["spec"]["deployment"]["replicas"] = 5
    assert store.update(respecced)["metadata"]["generation"] == 2


def test_update_conflict():
    """Make sure a write against a stale resourceVersion is a conflict"""
    store = InMemoryObjectStore()
    store.create(make_config_map(key="one"))
    first = get_config_map(store)
    second = get_config_map(store)

    first["data"]["key"] = "two"
    store.update(first)
    second["data"]["key"] = "three"
    with pytest.raises(ConflictError):
        store.update(second)
    assert get_config_map(store)["data"]["key"] == "two"


def test_update_without_version_is_unconditional():
    """Make sure a write without a resourceVersion always applies"""
    store = InMemoryObjectStore()
    store.create(make_config_map(key="one"))
    store.update(make_config_map(key="two"))
    assert get_config_map(store)["data"]["key"] == "two"


def test_update_not_found():
    """Make sure updating a missing object fails"""
    store = InMemoryObjectStore()
    with pytest.raises(NotFoundError):
        store.update(make_config_map())
    with pytest.raises(NotFoundError):
        store.update_status(make_config_map())


def test_update_preserves_status():
    """Make sure a main resource update cannot change the status"""
    store = InMemoryObjectStore()
    store.create(make_application())
    app = get_app(store)
    app["status"] = {"workflow": {"replicas": 1}}
    store.update_status(app)

    app = get_app(store)
    app["status"] = {"workflow": {"replicas": 99}}
    app["spec"]["deployment"]["replicas"] = 4
    updated = store.update(app)
    assert updated["status"] == {"workflow": {"replicas": 1}}
    assert updated["spec"]["deployment"]["replicas"] == 4


def test_update_status_only_changes_status():
    """Make sure update_status ignores everything but the status"""
    store = InMemoryObjectStore()
    created = store.create(make_application())
    app = get_app(store)
    app["spec"]["deployment"]["replicas"] = 7
    app["status"] = {"network": {"loadBalancer": {}}}
    written = store.update_status(app)

    assert written["status"] == {"network": {"loadBalancer": {}}}
    assert written["spec"] == created["spec"]
    assert written["metadata"]["generation"] == 1
    assert written["metadata"]["resourceVersion"] != created["metadata"][
        "resourceVersion"
    ]
    assert get_app(store) == written


def test_update_status_conflict():
    """Make sure status writes also honor the resourceVersion"""
    store = InMemoryObjectStore()
    store.create(make_application())
    stale = get_app(store)
    store.update_status({**get_app(store), "status": {"workflow": {"replicas": 1}}})
    stale["status"] = {"workflow": {"replicas": 2}}
    with pytest.raises(ConflictError):
        store.update_status(stale)


## Delete ######################################################################


def test_delete():
    """Make sure deleted objects are gone"""
    store = InMemoryObjectStore()
    store.create(make_config_map())
    store.delete(kind="ConfigMap", name="foo", namespace=TEST_NAMESPACE)
    with pytest.raises(NotFoundError):
        get_config_map(store)
    with pytest.raises(NotFoundError):
        store.delete(kind="ConfigMap", name="foo", namespace=TEST_NAMESPACE)


def test_delete_cascades_to_dependents():
    """Make sure objects controlled by a deleted owner are garbage collected"""
    store = InMemoryObjectStore()
    owner = store.create(make_application())
    child = make_config_map("child")
    set_controller_reference(owner, child)
    store.create(child)
    store.create(make_config_map("unowned"))
    dependents = store.dependents(owner["metadata"]["uid"])
    assert [obj["metadata"]["name"] for obj in dependents] == ["child"]

    store.delete(
        kind=constants.APPLICATION_KIND,
        name="test-app",
        namespace=TEST_NAMESPACE,
        api_version=constants.APPLICATION_API_VERSION,
    )
    with pytest.raises(NotFoundError):
        get_config_map(store, "child")
    assert get_config_map(store, "unowned")
    assert store.dependents(owner["metadata"]["uid"]) == []


def test_delete_keeps_dependents_with_other_owners():
    """Make sure a dependent with a remaining owner is not collected"""
    store = InMemoryObjectStore()
    first = store.create(make_config_map("first"))
    second = store.create(make_config_map("second"))
    child = make_config_map("child")
    child["metadata"]["ownerReferences"] = [
        {
            "apiVersion": "v1",
            "kind": "ConfigMap",
            "name": owner["metadata"]["name"],
            "uid": owner["metadata"]["uid"],
        }
        for owner in [first, second]
    ]
    store.create(child)

    store.delete(kind="ConfigMap", name="first", namespace=TEST_NAMESPACE)
    assert get_config_map(store, "child")
    store.delete(kind="ConfigMap", name="second", namespace=TEST_NAMESPACE)
    with pytest.raises(NotFoundError):
        get_config_map(store, "child")


## Admission Hooks #############################################################


def test_admission_hook_called_on_writes():
    """Make sure hooks see every create, update and delete of their type"""
    store = InMemoryObjectStore()
    hook = RecordingHook()
    store.register_admission_hook(
        constants.APPLICATION_API_VERSION, constants.APPLICATION_KIND, hook
    )
    store.create(make_application())
    store.update(get_app(store))
    store.update_status({**get_app(store), "status": {"workflow": {}}})
    store.delete(
        kind=constants.APPLICATION_KIND,
        name="test-app",
        namespace=TEST_NAMESPACE,
    )
    store.create(make_config_map())

    assert [call[0] for call in hook.calls] == [CREATE, UPDATE, DELETE]
    create_call, update_call, delete_call = hook.calls
    assert create_call[2] is None
    assert update_call[2]["metadata"]["name"] == "test-app"
    assert delete_call[1] is None


def test_admission_hook_mutates():
    """Make sure the object returned by a hook is what gets stored"""
    store = InMemoryObjectStore()

    def _set_replicas(obj):
        obj["spec"]["deployment"]["replicas"] = 1

    store.register_admission_hook(
        constants.APPLICATION_API_VERSION,
        constants.APPLICATION_KIND,
        RecordingHook(mutate=_set_replicas),
    )
    assert store.create(make_application(replicas=None))["spec"]["deployment"][
        "replicas"
    ] == 1


def test_admission_hook_rejects():
    """Make sure a rejecting hook prevents the write"""
    store = InMemoryObjectStore()
    store.register_admission_hook(
        constants.APPLICATION_API_VERSION,
        constants.APPLICATION_KIND,
        RecordingHook(reject=True),
    )
    with pytest.raises(AdmissionRejectedError):
        store.create(make_application())
    assert store.list(kind=constants.APPLICATION_KIND) == []


## Watches #####################################################################


def test_registered_watch_callbacks():
    """Make sure registered callbacks see every change of their kind"""
    store = InMemoryObjectStore()
    callback = mock.Mock()
    watch_key = store.register_watch(
        api_version="v1", kind="ConfigMap", callback=callback
    )

    store.create(make_config_map())
    store.update(make_config_map(key="value"))
    store.delete(kind="ConfigMap", name="foo", namespace=TEST_NAMESPACE)
    store.create(make_application())
    assert [call.args[0] for call in callback.call_args_list] == [
        KubeEventType.ADDED,
        KubeEventType.MODIFIED,
        KubeEventType.DELETED,
    ]

    store.unregister_watch(watch_key, callback)
    store.create(make_config_map())
    assert callback.call_count == 3


def test_namespaced_watch_callbacks():
    """Make sure namespaced callbacks only see their namespace"""
    store = InMemoryObjectStore()
    callback = mock.Mock()
    store.register_watch(
        api_version="v1", kind="ConfigMap", namespace="other", callback=callback
    )
    store.create(make_config_map())
    store.create(make_config_map(namespace="other"))
    assert callback.call_count == 1
    assert callback.call_args.args[1]["metadata"]["namespace"] == "other"


@pytest.mark.timeout(5)
def test_watch_initial_and_live_events():
    """Make sure watch yields the existing objects then live changes"""
    store = InMemoryObjectStore()
    store.create(make_config_map("existing"))

    watch = store.watch(kind="ConfigMap", api_version="v1", timeout=3)
    first = next(watch)
    assert first.type == KubeEventType.ADDED
    assert first.resource.name == "existing"

    writer = threading.Timer(0.1, store.create, args=(make_config_map("new"),))
    writer.start()
    second = next(watch)
    assert second.type == KubeEventType.ADDED
    assert second.resource.name == "new"

    store.delete(kind="ConfigMap", name="existing", namespace=TEST_NAMESPACE)
    third = next(watch)
    assert third.type == KubeEventType.DELETED
    assert third.resource.name == "existing"
    watch.close()
    writer.join()

    # Closing the watch unregisters it
    assert not store._watches


@pytest.mark.timeout(5)
def test_watch_times_out():
    """Make sure a watch with a timeout ends"""
    store = InMemoryObjectStore()
    assert list(store.watch(kind="ConfigMap", timeout=1)) == []
