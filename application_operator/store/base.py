"""
This defines the base class for all object stores. A store gives the operator
get/list/watch/create/update/delete access to resources with optimistic
concurrency on metadata.resourceVersion.
"""

# Standard
from typing import Iterator, List, Optional
import abc

# Local
from .kube_event import KubeWatchEvent


class ObjectStoreBase(abc.ABC):
    """
    Base class for the stores holding the resources the operator reconciles.
    All methods exchange plain dict manifests. Failures are reported by
    raising StoreError subclasses.
    """

    @abc.abstractmethod
    def get(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ) -> dict:
        """Fetch the current state of a single object by name

        Args:
            kind:  str
                The kind of the object to fetch
            name:  str
                The full name of the object to fetch
            namespace:  Optional[str]
                The namespace to search for the object
            api_version:  Optional[str]
                The api_version of the resource kind to fetch

        Returns:
            current_state:  dict
                The dict representation of the current object

        Raises:
            NotFoundError:  If the object does not exist
            StoreError:  If the fetch failed for any other reason
        """

    @abc.abstractmethod
    def list(
        self,
        kind: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
        label_selector: Optional[dict] = None,
    ) -> List[dict]:
        """List all objects of the given kind, optionally restricted to a
        namespace and to objects carrying all of the given labels
        """

    @abc.abstractmethod
    def create(self, resource_definition: dict) -> dict:
        """Create a new object

        Args:
            resource_definition:  dict
                The full manifest of the object to create

        Returns:
            created:  dict
                The object as persisted, including the assigned uid and
                resourceVersion

        Raises:
            AlreadyExistsError:  If an object with the same identity exists
        """

    @abc.abstractmethod
    def update(self, resource_definition: dict) -> dict:
        """Replace the object's content outside of status. If the definition
        carries a resourceVersion, the write is rejected with ConflictError
        when it does not match the stored version.
        """

    @abc.abstractmethod
    def update_status(self, resource_definition: dict) -> dict:
        """Replace only the status of the object through the status
        subresource. Same concurrency rules as update.
        """

    @abc.abstractmethod
    def delete(
        self,
        kind: str,
        name: str,
        namespace: Optional[str] = None,
        api_version: Optional[str] = None,
    ):
        """Delete the object. Objects it owns are removed by the store's
        garbage collection.

        Raises:
            NotFoundError:  If the object does not exist
        """

    @abc.abstractmethod
    def watch(
        self,
        kind: str,
        api_version: Optional[str] = None,
        namespace: Optional[str] = None,
        timeout: Optional[int] = None,
    ) -> Iterator[KubeWatchEvent]:
        """Watch objects of the given kind. Existing objects are first
        reported as ADDED, followed by every change until the timeout expires.
        """
