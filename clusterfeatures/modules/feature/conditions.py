"""
Reusable preconditions and postconditions.

Each factory returns an action ``async def action(feature) -> None`` that
raises when the condition does not hold.
"""

import logging
from typing import Any, Dict, List, Optional

from ..cluster import (
    OWNED_NAMESPACE_LABEL,
    NotFoundError,
    ObjectStore,
    create_namespace_if_absent,
    subscription_exists,
)
from .errors import OperatorNotInstalledError
from .feature import Action, Feature
from .poller import DEFAULT_INTERVAL, DEFAULT_TIMEOUT, poll_until_ready

logger = logging.getLogger("clusterfeatures.conditions")


def _is_pod_ready(pod: Dict[str, Any]) -> bool:
    status = pod.get("status", {})
    # Completed pods (e.g. from Jobs) never report Ready
    if status.get("phase") == "Succeeded":
        return True
    for condition in status.get("conditions", []) or []:
        if condition.get("type") == "Ready":
            return condition.get("status") == "True"
    return False


async def check_pods_ready(client: ObjectStore, namespace: str) -> bool:
    """
    Check whether every pod in namespace is ready.

    A namespace without pods is considered ready.
    """
    pods: List[Dict[str, Any]] = await client.list("v1", "Pod", namespace=namespace)
    if not pods:
        return True
    ready = sum(1 for pod in pods if _is_pod_ready(pod))
    logger.debug(f"{ready}/{len(pods)} pod(s) ready in namespace {namespace}")
    return ready == len(pods)


def wait_for_pods_to_be_ready(
    namespace: str, interval: float = DEFAULT_INTERVAL, timeout: float = DEFAULT_TIMEOUT
) -> Action:
    async def action(feature: Feature) -> None:
        feature.log.info(f"Waiting for pods in namespace {namespace} to be ready")
        await poll_until_ready(
            lambda: check_pods_ready(feature.client, namespace),
            interval=interval,
            timeout=timeout,
            what=f"pods in namespace {namespace}",
        )

    return action


def wait_for_resource_to_be_created(
    api_version: str,
    kind: str,
    name: str,
    namespace: Optional[str] = None,
    interval: float = DEFAULT_INTERVAL,
    timeout: float = DEFAULT_TIMEOUT,
) -> Action:
    async def action(feature: Feature) -> None:
        async def exists() -> bool:
            try:
                await feature.client.get(api_version, kind, name, namespace)
            except NotFoundError:
                return False
            return True

        await poll_until_ready(
            exists, interval=interval, timeout=timeout, what=f"{kind} {name} to be created"
        )

    return action


def ensure_operator_is_installed(subscription: str) -> Action:
    async def action(feature: Feature) -> None:
        if not await subscription_exists(feature.client, subscription):
            raise OperatorNotInstalledError(subscription)

    return action


def create_namespace_if_not_exists(namespace: str) -> Action:
    """Create namespace, owned by the feature's owner, unless it exists."""

    async def action(feature: Feature) -> None:
        await create_namespace_if_absent(
            feature.client,
            namespace,
            owner_ref=feature.as_owner_reference(None),
            labels={OWNED_NAMESPACE_LABEL: "true"},
        )

    return action
