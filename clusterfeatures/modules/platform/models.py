"""
Top-level platform configuration object.

PlatformInitialization is the declarative object owning every feature
tracker created for the platform capabilities.
"""

from enum import Enum
from typing import List, Optional

from pydantic import Field

from ..feature.tracker import Condition, KubeObject, ObjectMeta, WireModel

PLATFORM_API_VERSION = "platform.clusterfeatures.io/v1"
PLATFORM_KIND = "PlatformInitialization"


class ManagementState(str, Enum):
    """How the operator manages a capability."""

    MANAGED = "Managed"
    UNMANAGED = "Unmanaged"
    REMOVED = "Removed"


class ControlPlaneSpec(WireModel):
    name: str = "platform-smcp"
    namespace: str = "istio-system"
    metrics_collection: str = "Istio"


class AuthSpec(WireModel):
    namespace: str = ""
    audiences: Optional[List[str]] = None


class ServiceMeshSpec(WireModel):
    management_state: ManagementState = ManagementState.REMOVED
    control_plane: ControlPlaneSpec = Field(default_factory=ControlPlaneSpec)
    auth: AuthSpec = Field(default_factory=AuthSpec)


class PlatformInitializationSpec(WireModel):
    applications_namespace: str = "platform-apps"
    service_mesh: Optional[ServiceMeshSpec] = None


class PlatformInitializationStatus(WireModel):
    phase: Optional[str] = None
    conditions: List[Condition] = Field(default_factory=list)


class PlatformInitialization(KubeObject):
    api_version: str = PLATFORM_API_VERSION
    kind: str = PLATFORM_KIND
    spec: PlatformInitializationSpec = Field(default_factory=PlatformInitializationSpec)
    status: PlatformInitializationStatus = Field(default_factory=PlatformInitializationStatus)

    @classmethod
    def new(cls, name: str, applications_namespace: str, service_mesh: Optional[ServiceMeshSpec] = None):
        return cls(
            metadata=ObjectMeta(name=name),
            spec=PlatformInitializationSpec(
                applications_namespace=applications_namespace, service_mesh=service_mesh
            ),
        )
