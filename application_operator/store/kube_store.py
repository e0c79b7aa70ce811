"""
The KubeObjectStore implements the object store interface against a live
cluster using the kubernetes DynamicClient
"""

# Standard
from typing import Iterator, Optional

# Third Party
from kubernetes import client
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic.exceptions import (
    ConflictError as KubeConflictError,
    DynamicApiError,
    NotFoundError as KubeNotFoundError,
    ResourceNotFoundError,
    ResourceNotUniqueError,
)
from kubernetes.dynamic.resource import Resource
from kubernetes.watch import Watch
import kubernetes
import urllib3

# First Party
import alog

# Local
from ..exceptions import (
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    StoreError,
    assert_store,
)
from ..managed_object import ManagedObject
from .base import ObjectStoreBase
from .kube_event import KubeEventType, KubeWatchEvent

log = alog.use_channel("KUBST")

# See this document for value reasonings
# https://github.com/kubernetes-client/python/blob/master/examples/watch/timeout-settings.md
CLIENT_WATCH_TIMEOUT = 30


class KubeObjectStore(ObjectStoreBase):
    """This store uses the kubernetes DynamicClient to interact with the
    cluster
    """

    def __init__(self, dynamic_client: Optional[DynamicClient] = None):
        """
        Args:
            dynamic_client:  Optional[DynamicClient]
                A preconfigured client. When not given, one is created lazily
                from the in-cluster or local kube config.
        """
        self._client = dynamic_client

    @property
    def client(self) -> DynamicClient:
        """Lazy property access to the client"""
        if self._client is None:
            self._client = self._setup_client()
        return self._client

    ## Interface ###############################################################

    def get(self, kind, name, namespace=None, api_version=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            return resource_handle.get(name=name, namespace=namespace).to_dict()
        except KubeNotFoundError as err:
            log.debug(
                "No object named [%s/%s] found in namespace [%s]", kind, name, namespace
            )
            raise NotFoundError(f"{kind}/{name} not found in {namespace}") from err
        except DynamicApiError as err:
            raise StoreError(f"Failed to get {kind}/{name}: {err.summary()}") from err

    def list(self, kind, namespace=None, api_version=None, label_selector=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        selector = None
        if label_selector:
            selector = ",".join(f"{key}={val}" for key, val in label_selector.items())
        try:
            result = resource_handle.get(
                namespace=namespace, label_selector=selector
            ).to_dict()
        except DynamicApiError as err:
            raise StoreError(f"Failed to list {kind}: {err.summary()}") from err
        items = result.get("items", [])
        log.debug3("Found %d objects of kind %s in %s", len(items), kind, namespace)
        return items

    def create(self, resource_definition):
        resource_handle, namespace = self._handle_for(resource_definition)
        try:
            return resource_handle.create(
                body=resource_definition, namespace=namespace
            ).to_dict()
        except KubeConflictError as err:
            raise AlreadyExistsError(
                f"{_describe(resource_definition)} already exists"
            ) from err
        except DynamicApiError as err:
            raise StoreError(
                f"Failed to create {_describe(resource_definition)}: {err.summary()}"
            ) from err

    def update(self, resource_definition):
        resource_handle, namespace = self._handle_for(resource_definition)
        return self._replace(resource_handle, resource_definition, namespace)

    def update_status(self, resource_definition):
        resource_handle, namespace = self._handle_for(resource_definition)
        return self._replace(resource_handle.status, resource_definition, namespace)

    def delete(self, kind, name, namespace=None, api_version=None):
        resource_handle = self._get_resource_handle(kind, api_version)
        try:
            resource_handle.delete(
                name=name,
                namespace=namespace,
                body={"propagationPolicy": "Background"},
            )
        except KubeNotFoundError as err:
            raise NotFoundError(f"{kind}/{name} not found in {namespace}") from err
        except DynamicApiError as err:
            raise StoreError(
                f"Failed to delete {kind}/{name}: {err.summary()}"
            ) from err

    def watch(
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
        watch_manager: Optional[Watch] = None,
    ) -> Iterator[KubeWatchEvent]:
        watch_manager = watch_manager if watch_manager else Watch()
        resource_handle = self._get_resource_handle(kind, api_version)

        try:
            for event_obj in watch_manager.stream(
                resource_handle.get,
                namespace=namespace,
                serialize=False,
                timeout_seconds=timeout,
                _request_timeout=CLIENT_WATCH_TIMEOUT + (timeout or 0),
            ):
                if event_obj["type"] == "ERROR":
                    status = event_obj.get("object") or {}
                    raise StoreError(
                        f"Watch of {api_version}/{kind} failed: "
                        f"{status.get('code')} {status.get('message')}"
                    )
                event_type = KubeEventType(event_obj["type"])
                event_resource = ManagedObject(event_obj["object"])
                yield KubeWatchEvent(event_type, event_resource)
        except client.exceptions.ApiException as exception:
            if exception.status == 410:
                log.debug2(
                    "Resource age expired, restarting watch %s/%s", kind, api_version
                )
                return
            raise StoreError(
                f"Watch of {api_version}/{kind} failed with {exception.status}"
            ) from exception
        except urllib3.exceptions.ReadTimeoutError:
            log.debug4("Watch Socket closed, restarting watch %s/%s", kind, api_version)
        except urllib3.exceptions.ProtocolError:
            log.debug2(
                "Invalid Chunk from server, restarting watch %s/%s", kind, api_version
            )

    ## Implementation Helpers ##################################################

    @staticmethod
    def _setup_client() -> DynamicClient:
        """Create a DynamicClient that will work based on where the operator is
        running
        """
        # Try in-cluster config
        try:
            log.debug2("Running with in-cluster config")

            # Create Empty Config and load in-cluster information
            kube_config = kubernetes.client.Configuration()
            kubernetes.config.load_incluster_config(client_configuration=kube_config)

            api_client = kubernetes.client.ApiClient(kube_config)
            return DynamicClient(api_client)

        # Fall back to out-of-cluster config
        except kubernetes.config.ConfigException:
            log.debug2("Running with out-of-cluster config")
            return DynamicClient(kubernetes.config.new_client_from_config())

    def _get_resource_handle(self, kind: str, api_version: Optional[str]) -> Resource:
        """Get the resource handle for a specified kind and api_version"""
        resources = None
        try:
            resources = self.client.resources.get(kind=kind, api_version=api_version)
        except (ResourceNotFoundError, ResourceNotUniqueError):
            log.debug(
                "No objects of kind [%s] found or multiple objects matching request found",
                kind,
            )
        assert_store(
            resources is not None,
            f"Failed to fetch resource handle for {api_version}/{kind}",
        )
        return resources

    def _handle_for(self, resource_definition: dict):
        metadata = resource_definition.get("metadata") or {}
        resource_handle = self._get_resource_handle(
            resource_definition.get("kind"), resource_definition.get("apiVersion")
        )
        return resource_handle, metadata.get("namespace")

    @staticmethod
    def _replace(resource_handle, resource_definition: dict, namespace) -> dict:
        try:
            return resource_handle.replace(
                body=resource_definition, namespace=namespace
            ).to_dict()
        except KubeConflictError as err:
            raise ConflictError(
                f"{_describe(resource_definition)} has been modified"
            ) from err
        except KubeNotFoundError as err:
            raise NotFoundError(f"{_describe(resource_definition)} not found") from err
        except DynamicApiError as err:
            raise StoreError(
                f"Failed to update {_describe(resource_definition)}: {err.summary()}"
            ) from err


def _describe(resource_definition: dict) -> str:
    metadata = resource_definition.get("metadata") or {}
    return (
        f"{resource_definition.get('apiVersion')}/{resource_definition.get('kind')}"
        f"/{metadata.get('namespace')}/{metadata.get('name')}"
    )

