"""Object store interfaces following Black Box Design principles."""
from typing import Any, Dict, List, Optional, Protocol


class ClusterError(Exception):
    """Base error for every object store interaction."""


class NotFoundError(ClusterError):
    """Requested object does not exist."""

    def __init__(self, kind: str, name: str, namespace: Optional[str] = None):
        self.kind = kind
        self.name = name
        self.namespace = namespace
        where = f"{namespace}/{name}" if namespace else name
        super().__init__(f"{kind} {where} not found")


class KindNotServedError(NotFoundError):
    """The API server does not serve the requested kind (its CRD is not installed)."""

    def __init__(self, api_version: str, kind: str):
        self.api_version = api_version
        self.kind = kind
        self.name = ""
        self.namespace = None
        ClusterError.__init__(self, f"{kind} ({api_version}) is not served by the cluster")


class AlreadyExistsError(ClusterError):
    """Object with the same identity already exists."""


class ConflictError(ClusterError):
    """Object was modified concurrently (stale resource version)."""


class ObjectStore(Protocol):
    """
    Protocol for cluster object access - allows swappable implementations.

    Objects are plain dictionaries in their wire form
    (``apiVersion``, ``kind``, ``metadata``, ``spec``, ``status``).
    """

    async def get(
        self, api_version: str, kind: str, name: str, namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Fetch a single object.

        Raises:
            NotFoundError: If the object does not exist
        """
        ...

    async def create(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create an object.

        Raises:
            AlreadyExistsError: If the object already exists
        """
        ...

    async def update(
        self, obj: Dict[str, Any], subresource: Optional[str] = None
    ) -> Dict[str, Any]:
        """Replace an object (or its ``status`` sub-resource)."""
        ...

    async def patch(
        self, obj: Dict[str, Any], field_manager: str, patch_type: str = "apply"
    ) -> Dict[str, Any]:
        """
        Patch an object.

        Args:
            obj: Patch body, must carry apiVersion, kind and metadata.name
            field_manager: Name of the field manager owning the applied fields
            patch_type: "apply" (server-side apply) or "merge" (JSON merge patch)
        """
        ...

    async def delete(
        self, api_version: str, kind: str, name: str, namespace: Optional[str] = None
    ) -> None:
        """
        Delete an object; dependents are garbage-collected through owner references.

        Raises:
            NotFoundError: If the object does not exist
        """
        ...

    async def list(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """List objects, across all namespaces when namespace is None."""
        ...
