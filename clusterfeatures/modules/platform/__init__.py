"""
Platform Module - Black Box Interface

Purpose: Top-level platform configuration object and platform-wide RBAC
Interface: PlatformInitialization, ManagementState, create_or_update_platform_rbac()
Hidden: Policy rule synthesis, operator service account binding
"""

from .models import (
    PLATFORM_API_VERSION,
    PLATFORM_KIND,
    AuthSpec,
    ControlPlaneSpec,
    ManagementState,
    PlatformInitialization,
    PlatformInitializationSpec,
    PlatformInitializationStatus,
    ServiceMeshSpec,
)
from .roles import ObjectReference, create_or_update_platform_rbac, create_policy_rules

__all__ = [
    "PLATFORM_API_VERSION",
    "PLATFORM_KIND",
    "AuthSpec",
    "ControlPlaneSpec",
    "ManagementState",
    "PlatformInitialization",
    "PlatformInitializationSpec",
    "PlatformInitializationStatus",
    "ServiceMeshSpec",
    "ObjectReference",
    "create_or_update_platform_rbac",
    "create_policy_rules",
]
