"""Platform RBAC: lets the operator service account manage platform-referenced resources."""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from ..cluster import (
    ObjectStore,
    create_or_update_cluster_role,
    create_or_update_cluster_role_binding,
    get_operator_namespace,
    owner_reference,
)
from ..feature.tracker import KubeObject

OPERATOR_SERVICE_ACCOUNT = "clusterfeatures-controller-manager"

PLATFORM_VERBS = ["get", "list", "watch", "update", "patch"]


@dataclass(frozen=True)
class ObjectReference:
    """API group and resource (plural) a platform capability operates on."""

    group: str
    resources: str


def create_policy_rules(references: List[ObjectReference]) -> List[Dict[str, Any]]:
    return [
        {
            "apiGroups": [ref.group for ref in references],
            "resources": [ref.resources for ref in references],
            "verbs": list(PLATFORM_VERBS),
        }
    ]


def create_platform_role_binding(role_name: str, namespace: str) -> Tuple[List[Dict[str, Any]], Dict[str, Any]]:
    subjects = [
        {
            "kind": "ServiceAccount",
            "name": OPERATOR_SERVICE_ACCOUNT,
            "namespace": namespace,
        }
    ]
    role_ref = {
        "apiGroup": "rbac.authorization.k8s.io",
        "kind": "ClusterRole",
        "name": role_name,
    }
    return subjects, role_ref


async def create_or_update_platform_rbac(
    client: ObjectStore,
    role_name: str,
    references: List[ObjectReference],
    owner: Optional[KubeObject] = None,
) -> None:
    """
    Apply the cluster role and binding granting access to the referenced resources.

    Raises:
        RuntimeError: If the operator namespace cannot be determined
        ClusterError: If applying either object failed
    """
    owner_ref = owner_reference(owner.to_object()) if owner else None

    await create_or_update_cluster_role(
        client, role_name, create_policy_rules(references), owner_ref=owner_ref
    )

    # The platform controllers run inside the operator, under its service account
    namespace = get_operator_namespace()
    subjects, role_ref = create_platform_role_binding(role_name, namespace)
    await create_or_update_cluster_role_binding(
        client, role_name, subjects, role_ref, owner_ref=owner_ref
    )
