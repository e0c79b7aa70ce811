"""
The InMemoryObjectStore implements the object store interface without a
cluster. It holds the resources in a local map and emulates the parts of the
api server the operator relies on: resourceVersion concurrency, the status
subresource, admission hooks, owner garbage collection and watches.
"""

# Standard
from datetime import datetime, timedelta
from queue import Empty, Queue
from threading import RLock
from typing import Callable, Dict, Iterator, List, Optional, Set, Tuple
import copy
import itertools
import uuid

# First Party
import alog

# Local
from ..exceptions import AlreadyExistsError, ConflictError, NotFoundError
from ..managed_object import ManagedObject
from ..utils import canonical_json
from .base import ObjectStoreBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("MEMST")

# (namespace, kind, api_version, name)
ObjectKey = Tuple[str, str, str, str]

# Admission operations passed to registered hooks
CREATE = "CREATE"
UPDATE = "UPDATE"
DELETE = "DELETE"


class InMemoryObjectStore(ObjectStoreBase):
    """
    Object store which keeps all objects in memory
    """

    def __init__(self, resources: Optional[List[dict]] = None):
        """Construct with an optional list of resources to seed the store
        with. Seeded resources do not go through admission hooks or trigger
        watches.
        """
        self._lock = RLock()
        self._cluster_content = {}
        self._uid_index: Dict[str, ObjectKey] = {}
        self._dependents: Dict[str, Set[ObjectKey]] = {}
        self._resource_versions = itertools.count(1)

        # Dicts of registered watches and admission hooks
        self._watches = {}
        self._admission_hooks = {}

        for resource in resources or []:
            self._commit(self._prepare_new(copy.deepcopy(resource)), None)

    ## Interface ###############################################################

    def get(self, kind, name, namespace=None, api_version=None):
        log.debug2("get [%s/%s] in [%s]", kind, name, namespace)
        with self._lock:
            _, current = self._find(kind, name, namespace, api_version)
            return copy.deepcopy(current)

    def list(self, kind, namespace=None, api_version=None, label_selector=None):
        log.debug2("list [%s] in [%s]", kind, namespace)
        matches = []
        with self._lock:
            namespaces = (
                [namespace] if namespace is not None else list(self._cluster_content)
            )
            for nspace in namespaces:
                kind_entries = self._cluster_content.get(nspace, {}).get(kind, {})
                for api_ver, entries in kind_entries.items():
                    if api_version is not None and api_ver != api_version:
                        continue
                    for resource in entries.values():
                        if _match_labels(resource, label_selector):
                            matches.append(copy.deepcopy(resource))
        log.debug3("Found %d matches for [%s] in %s", len(matches), kind, namespace)
        return matches

    def create(self, resource_definition):
        resource = copy.deepcopy(resource_definition)
        key = _object_key(resource)
        log.debug("create %s", _key_str(key))
        with self._lock:
            if self._lookup(key) is not None:
                raise AlreadyExistsError(f"{_key_str(key)} already exists")

            resource = self._admit(CREATE, resource, None)
            resource = self._prepare_new(resource)
            self._commit(resource, None)
            return copy.deepcopy(resource)

    def update(self, resource_definition):
        resource = copy.deepcopy(resource_definition)
        key = _object_key(resource)
        log.debug("update %s", _key_str(key))
        with self._lock:
            current = self._get_for_write(key, resource)
            resource = self._admit(UPDATE, resource, copy.deepcopy(current))

            # Identity and status are owned by the store
            metadata = resource.setdefault("metadata", {})
            for field in ("uid", "creationTimestamp"):
                metadata[field] = current["metadata"][field]
            metadata["generation"] = current["metadata"].get("generation", 1)
            if "spec" in current or "spec" in resource:
                if canonical_json(current.get("spec")) != canonical_json(
                    resource.get("spec")
                ):
                    metadata["generation"] += 1
            resource.pop("status", None)
            if "status" in current:
                resource["status"] = copy.deepcopy(current["status"])

            metadata["resourceVersion"] = self._next_resource_version()
            self._commit(resource, current)
            return copy.deepcopy(resource)

    def update_status(self, resource_definition):
        key = _object_key(resource_definition)
        log.debug("update_status %s", _key_str(key))
        with self._lock:
            current = self._get_for_write(key, resource_definition)
            resource = copy.deepcopy(current)
            resource["status"] = copy.deepcopy(resource_definition.get("status"))
            if resource["status"] is None:
                del resource["status"]
            resource["metadata"]["resourceVersion"] = self._next_resource_version()
            self._commit(resource, current)
            return copy.deepcopy(resource)

    def delete(self, kind, name, namespace=None, api_version=None):
        log.debug("delete [%s/%s] in [%s]", kind, name, namespace)
        with self._lock:
            key, current = self._find(kind, name, namespace, api_version)
            self._admit(DELETE, None, copy.deepcopy(current))
            self._remove(key)

    def watch(  # pylint: disable=too-many-locals
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Watch the store for changes by registering a callback. The callback
        is registered atomically with the initial listing so that no change
        can be missed in between.
        """
        event_queue = Queue()

        def add_event(event_type: KubeEventType, manifest: dict):
            event_queue.put(
                KubeWatchEvent(type=event_type, resource=ManagedObject(manifest))
            )

        with self._lock:
            watch_key = self.register_watch(
                api_version=api_version,
                kind=kind,
                namespace=namespace,
                callback=add_event,
            )
            manifests = self.list(
                kind=kind, namespace=namespace, api_version=api_version
            )

        end_time = datetime.max
        if timeout:
            end_time = datetime.now() + timedelta(seconds=timeout)

        try:
            for manifest in manifests:
                event = KubeWatchEvent(
                    type=KubeEventType.ADDED, resource=ManagedObject(manifest)
                )
                log.debug2("Yielding initial event %s", event)
                yield event

            # Yield any events from the callback queue
            log.debug2("Waiting till %s", end_time)
            while datetime.now() < end_time:
                sec_till_end = min(
                    1.0, max((end_time - datetime.now()).total_seconds(), 0.01)
                )
                try:
                    event = event_queue.get(timeout=sec_till_end)
                except Empty:
                    continue
                log.debug2("Yielding event %s", event)
                yield event
        finally:
            self.unregister_watch(watch_key, add_event)

    ## In-Memory Methods #######################################################

    def register_watch(
        self,
        api_version: Optional[str],
        kind: str,
        callback: Callable[[KubeEventType, dict], None],
        namespace: Optional[str] = None,
    ) -> str:
        """Register a callback to be called with (event_type, manifest) on
        every change of a given api_version/kind
        """
        watch_key = self._watch_key(
            api_version=api_version, kind=kind, namespace=namespace
        )
        log.debug("Registering watch for %s", watch_key)
        with self._lock:
            self._watches.setdefault(watch_key, []).append(callback)
        return watch_key

    def unregister_watch(self, watch_key: str, callback: Callable):
        """Remove a callback added with register_watch"""
        log.debug("Unregistering watch for %s", watch_key)
        with self._lock:
            callbacks = self._watches.get(watch_key, [])
            if callback in callbacks:
                callbacks.remove(callback)
            if not callbacks:
                self._watches.pop(watch_key, None)

    def register_admission_hook(self, api_version: str, kind: str, hook):
        """Register a hook that is called synchronously on every create,
        update and delete of the given api_version/kind before the write is
        committed. The hook's admit(operation, new, old) method returns the
        (possibly mutated) new object or raises an AdmissionError to reject
        the write.
        """
        log.debug("Registering admission hook for %s/%s", api_version, kind)
        with self._lock:
            self._admission_hooks.setdefault((api_version, kind), []).append(hook)

    def dependents(self, owner_uid: str) -> List[dict]:
        """Get the objects that reference the given owner uid"""
        with self._lock:
            return [
                copy.deepcopy(self._lookup(key))
                for key in sorted(self._dependents.get(owner_uid, set()))
                if self._lookup(key) is not None
            ]

    ## Implementation Details ##################################################

    @staticmethod
    def _watch_key(api_version=None, kind=None, namespace=None):
        return ":".join([api_version or "", kind or "", namespace or ""])

    def _next_resource_version(self) -> str:
        return str(next(self._resource_versions))

    def _lookup(self, key: ObjectKey) -> Optional[dict]:
        namespace, kind, api_version, name = key
        return (
            self._cluster_content.get(namespace, {})
            .get(kind, {})
            .get(api_version, {})
            .get(name)
        )

    def _find(self, kind, name, namespace, api_version) -> Tuple[ObjectKey, dict]:
        """Find a single object, matching any api_version when none is given"""
        kind_entries = self._cluster_content.get(namespace or "", {}).get(kind, {})
        for api_ver, entries in kind_entries.items():
            if name in entries and (api_version is None or api_ver == api_version):
                return (namespace or "", kind, api_ver, name), entries[name]
        raise NotFoundError(f"{api_version}/{kind}/{namespace}/{name} not found")

    def _get_for_write(self, key: ObjectKey, resource: dict) -> dict:
        """Get the current object for a write, enforcing the resourceVersion
        precondition carried by the written resource
        """
        current = self._lookup(key)
        if current is None:
            raise NotFoundError(f"{_key_str(key)} not found")
        expected = (resource.get("metadata") or {}).get("resourceVersion")
        actual = current["metadata"]["resourceVersion"]
        if expected and expected != actual:
            log.debug2(
                "Conflict on %s: expected %s, found %s", _key_str(key), expected, actual
            )
            raise ConflictError(
                f"{_key_str(key)} has been modified: resourceVersion "
                f"{expected} != {actual}"
            )
        return current

    def _admit(self, operation: str, new: Optional[dict], old: Optional[dict]):
        """Run every admission hook registered for the object's type"""
        obj = new if new is not None else old
        hooks = self._admission_hooks.get((obj.get("apiVersion"), obj.get("kind")), [])
        for hook in hooks:
            log.debug2("Running admission hook %s for %s", hook, operation)
            result = hook.admit(operation, new, old)
            if new is not None and result is not None:
                new = result
        return new

    def _prepare_new(self, resource: dict) -> dict:
        """Fill in the fields the store owns on a newly created object"""
        metadata = resource.setdefault("metadata", {})
        metadata["uid"] = metadata.get("uid") or str(uuid.uuid4())
        metadata["creationTimestamp"] = datetime.now().strftime("%Y-%m-%dT%H:%M:%SZ")
        metadata["generation"] = 1
        metadata["resourceVersion"] = self._next_resource_version()
        # Status can only be written through the status subresource
        resource.pop("status", None)
        return resource

    def _commit(self, resource: dict, previous: Optional[dict]):
        """Store the resource, index its owners and notify the watchers"""
        key = _object_key(resource)
        namespace, kind, api_version, name = key
        (
            self._cluster_content.setdefault(namespace, {})
            .setdefault(kind, {})
            .setdefault(api_version, {})
        )[name] = resource
        self._uid_index[resource["metadata"]["uid"]] = key

        if previous is not None:
            for ref in previous["metadata"].get("ownerReferences") or []:
                self._dependents.get(ref.get("uid"), set()).discard(key)
        for ref in resource["metadata"].get("ownerReferences") or []:
            self._dependents.setdefault(ref.get("uid"), set()).add(key)

        event_type = KubeEventType.ADDED if previous is None else KubeEventType.MODIFIED
        self._notify(event_type, resource)

    def _remove(self, key: ObjectKey):
        """Remove the object and garbage collect every dependent that has no
        remaining owner
        """
        namespace, kind, api_version, name = key
        current = self._cluster_content[namespace][kind][api_version].pop(name)
        if not self._cluster_content[namespace][kind][api_version]:
            del self._cluster_content[namespace][kind][api_version]
        if not self._cluster_content[namespace][kind]:
            del self._cluster_content[namespace][kind]
        if not self._cluster_content[namespace]:
            del self._cluster_content[namespace]

        uid = current["metadata"]["uid"]
        self._uid_index.pop(uid, None)
        for ref in current["metadata"].get("ownerReferences") or []:
            self._dependents.get(ref.get("uid"), set()).discard(key)
        self._notify(KubeEventType.DELETED, current)

        for dependent_key in sorted(self._dependents.pop(uid, set())):
            dependent = self._lookup(dependent_key)
            if dependent is None:
                continue
            remaining_owners = [
                ref
                for ref in dependent["metadata"].get("ownerReferences") or []
                if ref.get("uid") in self._uid_index
            ]
            if remaining_owners:
                log.debug3("%s still has owners", _key_str(dependent_key))
                continue
            log.debug("Garbage collecting %s", _key_str(dependent_key))
            self._remove(dependent_key)

    def _notify(self, event_type: KubeEventType, resource: dict):
        """Call the watches registered for the resource's type. Called with
        the lock held so that watchers see events in commit order.
        """
        namespace, kind, api_version, _ = _object_key(resource)
        keys = {
            self._watch_key(api_version=api_version, kind=kind, namespace=namespace),
            self._watch_key(api_version=api_version, kind=kind),
            self._watch_key(kind=kind, namespace=namespace),
            self._watch_key(kind=kind),
        }
        for key in keys:
            for callback in list(self._watches.get(key, [])):
                log.debug3("Calling registered watch [%s] for [%s]", callback, key)
                callback(event_type, copy.deepcopy(resource))


def _object_key(resource: dict) -> ObjectKey:
    metadata = resource.get("metadata") or {}
    return (
        metadata.get("namespace") or "",
        resource.get("kind"),
        resource.get("apiVersion"),
        metadata.get("name"),
    )


def _key_str(key: ObjectKey) -> str:
    namespace, kind, api_version, name = key
    return f"{api_version}/{kind}/{namespace}/{name}"


def _match_labels(resource: dict, label_selector: Optional[dict]) -> bool:
    if not label_selector:
        return True
    labels = (resource.get("metadata") or {}).get("labels") or {}
    return all(labels.get(key) == value for key, value in label_selector.items())
