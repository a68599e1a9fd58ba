"""
Cluster resource helpers.

Small, idempotent helpers built on top of the ObjectStore protocol: owner
references, namespaces, config maps, operator subscriptions and RBAC objects.
"""

import logging
import os
from typing import Any, Dict, List, Optional

from .interfaces import AlreadyExistsError, KindNotServedError, NotFoundError, ObjectStore

logger = logging.getLogger("clusterfeatures.cluster")

FIELD_MANAGER = "clusterfeatures"

OWNED_NAMESPACE_LABEL = "clusterfeatures.io/owned-namespace"

SUBSCRIPTION_API_VERSION = "operators.coreos.com/v1alpha1"

_SERVICE_ACCOUNT_NAMESPACE_FILE = "/var/run/secrets/kubernetes.io/serviceaccount/namespace"


def owner_reference(obj: Dict[str, Any], controller: bool = True) -> Dict[str, Any]:
    """
    Build an owner reference pointing at obj.

    Raises:
        ValueError: If obj has not been persisted yet (no uid)
    """
    metadata = obj.get("metadata", {})
    if not metadata.get("uid"):
        raise ValueError(
            f"cannot reference {obj.get('kind')} {metadata.get('name')} as owner: missing uid"
        )
    return {
        "apiVersion": obj["apiVersion"],
        "kind": obj["kind"],
        "name": metadata["name"],
        "uid": metadata["uid"],
        "controller": controller,
        "blockOwnerDeletion": True,
    }


def with_owner_reference(obj: Dict[str, Any], reference: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Add reference to obj's ownerReferences unless an entry with the same uid exists."""
    if reference is None:
        return obj
    references = obj.setdefault("metadata", {}).setdefault("ownerReferences", [])
    if not any(ref.get("uid") == reference["uid"] for ref in references):
        references.append(dict(reference))
    return obj


async def create_namespace_if_absent(
    client: ObjectStore,
    name: str,
    owner_ref: Optional[Dict[str, Any]] = None,
    labels: Optional[Dict[str, str]] = None,
) -> Dict[str, Any]:
    """
    Create a namespace unless it exists already.

    Existing namespaces are returned untouched, the helper never adopts them.
    """
    try:
        return await client.get("v1", "Namespace", name)
    except NotFoundError:
        pass

    namespace = {
        "apiVersion": "v1",
        "kind": "Namespace",
        "metadata": {"name": name, "labels": dict(labels or {})},
    }
    with_owner_reference(namespace, owner_ref)

    try:
        created = await client.create(namespace)
        logger.info(f"Created namespace {name}")
        return created
    except AlreadyExistsError:
        # Lost a race with another writer, which is fine
        return await client.get("v1", "Namespace", name)


async def create_or_update_config_map(
    client: ObjectStore,
    name: str,
    namespace: str,
    data: Dict[str, str],
    owner_ref: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    """Apply a config map holding data, replacing any previous content."""
    config_map = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": {"name": name, "namespace": namespace},
        "data": dict(data),
    }
    with_owner_reference(config_map, owner_ref)
    return await client.patch(config_map, field_manager=FIELD_MANAGER)


async def subscription_exists(client: ObjectStore, name: str) -> bool:
    """
    Check whether an operator subscription with the given name exists in any namespace.

    A cluster without the Subscription kind (no operator lifecycle manager)
    has no subscriptions at all.

    Returns:
        True if at least one Subscription named name is found
    """
    try:
        subscriptions = await client.list(SUBSCRIPTION_API_VERSION, "Subscription")
    except KindNotServedError as e:
        logger.warning(f"Cannot look up subscription {name}: {e}")
        return False
    return any(sub.get("metadata", {}).get("name") == name for sub in subscriptions)


async def create_or_update_cluster_role(
    client: ObjectStore,
    name: str,
    rules: List[Dict[str, Any]],
    owner_ref: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    role = {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRole",
        "metadata": {"name": name},
        "rules": rules,
    }
    with_owner_reference(role, owner_ref)
    return await client.patch(role, field_manager=FIELD_MANAGER)


async def create_or_update_cluster_role_binding(
    client: ObjectStore,
    name: str,
    subjects: List[Dict[str, Any]],
    role_ref: Dict[str, Any],
    owner_ref: Optional[Dict[str, Any]] = None,
) -> Dict[str, Any]:
    binding = {
        "apiVersion": "rbac.authorization.k8s.io/v1",
        "kind": "ClusterRoleBinding",
        "metadata": {"name": name},
        "subjects": subjects,
        "roleRef": role_ref,
    }
    with_owner_reference(binding, owner_ref)
    return await client.patch(binding, field_manager=FIELD_MANAGER)


def get_operator_namespace() -> str:
    """
    Resolve the namespace the operator runs in.

    Uses OPERATOR_NAMESPACE when set, otherwise the mounted service account namespace.

    Raises:
        RuntimeError: If neither source is available
    """
    namespace = os.getenv("OPERATOR_NAMESPACE")
    if namespace:
        return namespace
    try:
        with open(_SERVICE_ACCOUNT_NAMESPACE_FILE) as f:
            return f.read().strip()
    except OSError as e:
        raise RuntimeError("unable to determine operator namespace") from e
