"""Service mesh preconditions and readiness checks."""

import logging
from typing import Any, Dict

from ..cluster import OWNED_NAMESPACE_LABEL, NotFoundError, ObjectStore, create_namespace_if_absent
from ..feature import (
    DEFAULT_INTERVAL,
    DEFAULT_TIMEOUT,
    Action,
    DependencyNotReadyError,
    Feature,
    ensure_operator_is_installed,
    poll_until_ready,
)
from .data import AUTHORIZATION, CONTROL_PLANE

logger = logging.getLogger("clusterfeatures.servicemesh")

SERVICE_MESH_OPERATOR = "servicemeshoperator"
AUTHORIZATION_OPERATOR = "authorino-operator"

SMCP_API_VERSION = "maistra.io/v2"
SMCP_KIND = "ServiceMeshControlPlane"
SMM_API_VERSION = "maistra.io/v1"
SMM_KIND = "ServiceMeshMember"


async def ensure_service_mesh_operator_installed(feature: Feature) -> None:
    try:
        await ensure_operator_is_installed(SERVICE_MESH_OPERATOR)(feature)
    except DependencyNotReadyError as e:
        raise DependencyNotReadyError(
            "failed to find the pre-requisite Service Mesh Operator subscription, "
            f"please ensure Service Mesh Operator is installed. {e}"
        ) from e


async def check_control_plane_component_readiness(
    client: ObjectStore, name: str, namespace: str
) -> bool:
    """
    Check whether a mesh control plane reports all of its components ready.

    A control plane without any configured component is never ready.

    Raises:
        NotFoundError: If the control plane does not exist
    """
    smcp = await client.get(SMCP_API_VERSION, SMCP_KIND, name, namespace)

    components: Dict[str, Any] = (
        smcp.get("status", {}).get("readiness", {}).get("components") or {}
    )
    if not components:
        logger.debug(f"Control plane {namespace}/{name} does not report readiness yet")
        return False

    ready = len(components.get("ready") or [])
    pending = len(components.get("pending") or [])
    unready = len(components.get("unready") or [])
    return pending == 0 and unready == 0 and ready > 0


def wait_for_control_plane_to_be_ready(
    interval: float = DEFAULT_INTERVAL, timeout: float = DEFAULT_TIMEOUT
) -> Action:
    async def action(feature: Feature) -> None:
        control_plane = CONTROL_PLANE.extract(feature)
        feature.log.info(
            f"Waiting for control plane {control_plane.namespace}/{control_plane.name} "
            f"components to be ready (timeout {timeout}s)"
        )
        await poll_until_ready(
            lambda: check_control_plane_component_readiness(
                feature.client, control_plane.name, control_plane.namespace
            ),
            interval=interval,
            timeout=timeout,
            what=f"control plane {control_plane.name}",
        )
        feature.log.info(f"Control plane {control_plane.name} is ready")

    return action


def ensure_service_mesh_installed(
    interval: float = DEFAULT_INTERVAL, timeout: float = DEFAULT_TIMEOUT
) -> Action:
    """Require the mesh operator and a ready control plane."""
    wait_for_control_plane = wait_for_control_plane_to_be_ready(interval, timeout)

    async def action(feature: Feature) -> None:
        await ensure_service_mesh_operator_installed(feature)
        try:
            await wait_for_control_plane(feature)
        except (DependencyNotReadyError, NotFoundError) as e:
            control_plane = CONTROL_PLANE.extract(feature)
            feature.log.error(
                f"Failed waiting for control plane {control_plane.namespace}/{control_plane.name}: {e}"
            )
            raise DependencyNotReadyError(f"service mesh control plane is not ready: {e}") from e

    return action


def wait_for_service_mesh_member(
    namespace: str, interval: float = DEFAULT_INTERVAL, timeout: float = DEFAULT_TIMEOUT
) -> Action:
    async def action(feature: Feature) -> None:
        async def member_ready() -> bool:
            try:
                smm = await feature.client.get(SMM_API_VERSION, SMM_KIND, "default", namespace)
            except NotFoundError:
                return False
            for condition in smm.get("status", {}).get("conditions", []) or []:
                if condition.get("type") == "Ready" and condition.get("status") == "True":
                    return True
            return False

        feature.log.info(f"Waiting for {SMM_KIND} in namespace {namespace}")
        await poll_until_ready(
            member_ready, interval=interval, timeout=timeout,
            what=f"{SMM_KIND} in namespace {namespace}",
        )

    return action


async def ensure_auth_namespace_exists(feature: Feature) -> None:
    """Create the authorization provider namespace, collected together with the owner."""
    authorization = AUTHORIZATION.extract(feature)
    await create_namespace_if_absent(
        feature.client,
        authorization.namespace,
        owner_ref=feature.as_owner_reference(None),
        labels={OWNED_NAMESPACE_LABEL: "true"},
    )
