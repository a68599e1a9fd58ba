"""
Service mesh feature data.

Descriptors shared by the service mesh and authorization features. They are
created once per reconciliation pass from the platform spec and wired into
every feature that needs them.
"""

import logging
from typing import List

from pydantic import BaseModel, Field

from ..cluster import NotFoundError, ObjectStore
from ..feature import DataKey
from ..platform import PlatformInitializationSpec, ServiceMeshSpec

logger = logging.getLogger("clusterfeatures.servicemesh")

AUTH_CONFIG_SELECTOR = "security.clusterfeatures.io/authorization-group=default"

DEFAULT_AUDIENCE = "https://kubernetes.default.svc"


class ControlPlane(BaseModel):
    """Service mesh control plane descriptor."""

    name: str
    namespace: str
    metrics_collection: str = "Istio"


class Authorization(BaseModel):
    """Authorization provider descriptor."""

    provider_name: str
    namespace: str
    audiences: List[str] = Field(default_factory=list)
    auth_config_selector: str = AUTH_CONFIG_SELECTOR


def _service_mesh(spec: PlatformInitializationSpec) -> ServiceMeshSpec:
    if spec.service_mesh is None:
        raise ValueError("service mesh is not configured in the platform spec")
    return spec.service_mesh


async def default_audiences(client: ObjectStore) -> List[str]:
    """
    Audiences accepted for service account tokens on this cluster.

    Reads the cluster authentication config's service account issuer and
    falls back to the in-cluster API audience when the config is absent.
    """
    try:
        authentication = await client.get("config.openshift.io/v1", "Authentication", "cluster")
    except NotFoundError:
        return [DEFAULT_AUDIENCE]

    issuer = authentication.get("spec", {}).get("serviceAccountIssuer")
    return [issuer] if issuer else [DEFAULT_AUDIENCE]


async def create_control_plane(client: ObjectStore, spec: PlatformInitializationSpec) -> ControlPlane:
    control_plane = _service_mesh(spec).control_plane
    return ControlPlane(
        name=control_plane.name,
        namespace=control_plane.namespace,
        metrics_collection=control_plane.metrics_collection,
    )


async def create_authorization(client: ObjectStore, spec: PlatformInitializationSpec) -> Authorization:
    auth = _service_mesh(spec).auth
    audiences = list(auth.audiences) if auth.audiences else await default_audiences(client)
    return Authorization(
        provider_name=f"{spec.applications_namespace}-auth-provider",
        namespace=auth.namespace or f"{spec.applications_namespace}-auth-provider",
        audiences=audiences,
    )


CONTROL_PLANE: DataKey[ControlPlane] = DataKey("control_plane", factory=create_control_plane)
AUTHORIZATION: DataKey[Authorization] = DataKey("authorization", factory=create_authorization)
