"""
Kubernetes object store.

Adapts the synchronous ``kubernetes`` dynamic client to the async
ObjectStore protocol. Blocking calls are pushed to a worker thread so the
event loop (and task cancellation) keeps working while the API server answers.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Tuple

from kubernetes import client as k8s_client
from kubernetes import config as k8s_config
from kubernetes.dynamic import DynamicClient
from kubernetes.dynamic import exceptions as dynamic_exceptions

from .interfaces import AlreadyExistsError, ConflictError, KindNotServedError, NotFoundError

logger = logging.getLogger("clusterfeatures.cluster")


def _identity(obj: Dict[str, Any]) -> Tuple[str, str, str, Optional[str]]:
    metadata = obj.get("metadata", {})
    return obj["apiVersion"], obj["kind"], metadata["name"], metadata.get("namespace")


class KubernetesObjectStore:
    """ObjectStore backed by a live API server."""

    def __init__(self, dynamic_client: DynamicClient):
        """
        Initialize the store.

        Args:
            dynamic_client: Configured kubernetes DynamicClient
        """
        self.dynamic = dynamic_client

    @classmethod
    def from_environment(cls) -> "KubernetesObjectStore":
        """Build a store from in-cluster config, falling back to the local kubeconfig."""
        try:
            k8s_config.load_incluster_config()
            logger.info("Using in-cluster Kubernetes configuration")
        except k8s_config.ConfigException:
            k8s_config.load_kube_config()
            logger.info("Using local kubeconfig")
        return cls(DynamicClient(k8s_client.ApiClient()))

    def _invoke(self, api_version: str, kind: str, subresource: Optional[str], verb: str, kwargs):
        """Resolve the API resource (discovery may hit the server) and call verb on it."""
        resource = self.dynamic.resources.get(api_version=api_version, kind=kind)
        if subresource:
            resource = resource.subresources[subresource]
        return getattr(resource, verb)(**kwargs)

    async def _call(
        self,
        api_version: str,
        kind: str,
        target: Tuple[str, Optional[str]],
        verb: str,
        subresource: Optional[str] = None,
        **kwargs,
    ):
        """
        Run a blocking dynamic client call in a worker thread and translate its errors.

        Args:
            api_version: API version of the resource
            kind: Kind of the resource
            target: (name, namespace) used for error reporting
            verb: Dynamic resource method to call
            subresource: Optional sub-resource (e.g. "status")
            **kwargs: Arguments forwarded to the method
        """
        name, namespace = target
        try:
            return await asyncio.to_thread(self._invoke, api_version, kind, subresource, verb, kwargs)
        except dynamic_exceptions.ResourceNotFoundError as e:
            raise KindNotServedError(api_version, kind) from e
        except dynamic_exceptions.NotFoundError as e:
            raise NotFoundError(kind, name, namespace) from e
        except dynamic_exceptions.ConflictError as e:
            # The API server answers 409 both for AlreadyExists and for stale versions
            if "AlreadyExists" in str(getattr(e, "body", "") or ""):
                raise AlreadyExistsError(f"{kind} {name} already exists") from e
            raise ConflictError(f"{kind} {name}: {e}") from e

    async def get(
        self, api_version: str, kind: str, name: str, namespace: Optional[str] = None
    ) -> Dict[str, Any]:
        result = await self._call(
            api_version, kind, (name, namespace), "get", name=name, namespace=namespace
        )
        return result.to_dict()

    async def create(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        api_version, kind, name, namespace = _identity(obj)
        result = await self._call(
            api_version, kind, (name, namespace), "create", body=obj, namespace=namespace
        )
        return result.to_dict()

    async def update(
        self, obj: Dict[str, Any], subresource: Optional[str] = None
    ) -> Dict[str, Any]:
        api_version, kind, name, namespace = _identity(obj)
        result = await self._call(
            api_version, kind, (name, namespace), "replace",
            subresource=subresource, body=obj, namespace=namespace,
        )
        return result.to_dict()

    async def patch(
        self, obj: Dict[str, Any], field_manager: str, patch_type: str = "apply"
    ) -> Dict[str, Any]:
        api_version, kind, name, namespace = _identity(obj)
        if patch_type == "apply":
            result = await self._call(
                api_version,
                kind,
                (name, namespace),
                "server_side_apply",
                body=obj,
                name=name,
                namespace=namespace,
                field_manager=field_manager,
                force_conflicts=True,
            )
        elif patch_type == "merge":
            result = await self._call(
                api_version,
                kind,
                (name, namespace),
                "patch",
                body=obj,
                name=name,
                namespace=namespace,
                content_type="application/merge-patch+json",
                field_manager=field_manager,
            )
        else:
            raise ValueError(f"Unsupported patch type: {patch_type}")
        return result.to_dict()

    async def delete(
        self, api_version: str, kind: str, name: str, namespace: Optional[str] = None
    ) -> None:
        await self._call(
            api_version,
            kind,
            (name, namespace),
            "delete",
            name=name,
            namespace=namespace,
            propagation_policy="Background",
        )

    async def list(
        self,
        api_version: str,
        kind: str,
        namespace: Optional[str] = None,
        label_selector: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        result = await self._call(
            api_version,
            kind,
            ("", namespace),
            "get",
            namespace=namespace,
            label_selector=label_selector,
        )
        return result.to_dict().get("items", [])
