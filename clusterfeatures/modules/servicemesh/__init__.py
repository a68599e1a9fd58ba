"""
Service Mesh Module - Black Box Interface

Purpose: Service mesh and mesh authorization capabilities
Interface: ServiceMeshCapabilities, configure_service_mesh(), remove_service_mesh(),
           CONTROL_PLANE / AUTHORIZATION data keys, mesh readiness checks,
           shared configuration config maps
Hidden: Manifest templates, control plane readiness parsing, extension provider cleanup
"""

from .capabilities import (
    CAPABILITY_SERVICE_MESH,
    CAPABILITY_SERVICE_MESH_AUTHORIZATION,
    ServiceMeshCapabilities,
    authorization_condition,
    configure_service_mesh,
    remove_service_mesh,
    service_mesh_condition,
)
from .cleanup import remove_extension_provider
from .conditions import (
    AUTHORIZATION_OPERATOR,
    SERVICE_MESH_OPERATOR,
    SMCP_API_VERSION,
    SMCP_KIND,
    check_control_plane_component_readiness,
    ensure_auth_namespace_exists,
    ensure_service_mesh_installed,
    ensure_service_mesh_operator_installed,
    wait_for_control_plane_to_be_ready,
    wait_for_service_mesh_member,
)
from .data import AUTHORIZATION, CONTROL_PLANE, Authorization, ControlPlane
from .resources import CONFIG_MAP_AUTH_REF, CONFIG_MAP_MESH_REF, auth_refs, mesh_refs

__all__ = [
    "CAPABILITY_SERVICE_MESH",
    "CAPABILITY_SERVICE_MESH_AUTHORIZATION",
    "ServiceMeshCapabilities",
    "authorization_condition",
    "configure_service_mesh",
    "remove_service_mesh",
    "service_mesh_condition",
    "remove_extension_provider",
    "AUTHORIZATION_OPERATOR",
    "SERVICE_MESH_OPERATOR",
    "SMCP_API_VERSION",
    "SMCP_KIND",
    "check_control_plane_component_readiness",
    "ensure_auth_namespace_exists",
    "ensure_service_mesh_installed",
    "ensure_service_mesh_operator_installed",
    "wait_for_control_plane_to_be_ready",
    "wait_for_service_mesh_member",
    "AUTHORIZATION",
    "CONTROL_PLANE",
    "Authorization",
    "ControlPlane",
    "CONFIG_MAP_AUTH_REF",
    "CONFIG_MAP_MESH_REF",
    "auth_refs",
    "mesh_refs",
]
