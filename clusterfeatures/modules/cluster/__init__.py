"""
Cluster Module - Black Box Interface

Purpose: Access cluster objects
Interface: ObjectStore protocol, resource helpers (namespaces, config maps,
           subscriptions, RBAC, owner references)
Hidden: Kubernetes dynamic client, API error translation, threading

Any object store honouring the ObjectStore protocol can replace the
Kubernetes-backed implementation (tests use an in-memory one).
"""

from .interfaces import (
    AlreadyExistsError,
    ClusterError,
    ConflictError,
    KindNotServedError,
    NotFoundError,
    ObjectStore,
)
from .kubernetes import KubernetesObjectStore
from .resources import (
    FIELD_MANAGER,
    OWNED_NAMESPACE_LABEL,
    create_namespace_if_absent,
    create_or_update_cluster_role,
    create_or_update_cluster_role_binding,
    create_or_update_config_map,
    get_operator_namespace,
    owner_reference,
    subscription_exists,
    with_owner_reference,
)

__all__ = [
    "AlreadyExistsError",
    "ClusterError",
    "ConflictError",
    "KindNotServedError",
    "NotFoundError",
    "ObjectStore",
    "KubernetesObjectStore",
    "FIELD_MANAGER",
    "OWNED_NAMESPACE_LABEL",
    "create_namespace_if_absent",
    "create_or_update_cluster_role",
    "create_or_update_cluster_role_binding",
    "create_or_update_config_map",
    "get_operator_namespace",
    "owner_reference",
    "subscription_exists",
    "with_owner_reference",
]
