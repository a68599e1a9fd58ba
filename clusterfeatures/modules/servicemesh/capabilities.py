"""
Service mesh capabilities.

Wires the service mesh and authorization features into capabilities reported
on the PlatformInitialization object, and drives them according to the
service mesh management state.
"""

import logging
from typing import Optional

from ...config import EngineConfig
from ..cluster import ObjectStore, subscription_exists
from ..feature import (
    EMPTY_FEATURES_HANDLER,
    CapabilityReporter,
    ClusterFeaturesHandler,
    Condition,
    ConditionReason,
    ConditionStatus,
    Feature,
    FeaturesProvider,
    FeaturesRegistry,
    HandlerWithReporter,
    create_namespace_if_not_exists,
    define,
    ensure_operator_is_installed,
    location,
    wait_for_pods_to_be_ready,
)
from ..platform import ManagementState, PlatformInitialization
from .cleanup import remove_extension_provider
from .conditions import (
    AUTHORIZATION_OPERATOR,
    ensure_auth_namespace_exists,
    ensure_service_mesh_installed,
    ensure_service_mesh_operator_installed,
)
from .data import AUTHORIZATION, CONTROL_PLANE
from .resources import auth_refs, mesh_refs

logger = logging.getLogger("clusterfeatures.servicemesh")

CAPABILITY_SERVICE_MESH = "CapabilityServiceMesh"
CAPABILITY_SERVICE_MESH_AUTHORIZATION = "CapabilityServiceMeshAuthorization"

SERVICE_MESH_DIR = "servicemesh"
METRICS_DIR = "metrics-collection"
AUTHORINO_DIR = "authorino"


def service_mesh_condition(reason: ConditionReason, message: str) -> Condition:
    return Condition(
        type=CAPABILITY_SERVICE_MESH, status=ConditionStatus.TRUE, reason=reason, message=message
    )


def authorization_condition(reason: ConditionReason, message: str) -> Condition:
    return Condition(
        type=CAPABILITY_SERVICE_MESH_AUTHORIZATION,
        status=ConditionStatus.TRUE,
        reason=reason,
        message=message,
    )


class ServiceMeshCapabilities:
    """Service mesh and authorization capabilities of a PlatformInitialization."""

    def __init__(self, client: ObjectStore, config: Optional[EngineConfig] = None):
        self.client = client
        self.config = config or EngineConfig()

    async def configure(self, instance: PlatformInitialization) -> None:
        """
        Reconcile the service mesh capabilities for the current management state.

        Raises:
            Exception: The first capability failure, after it was reported on instance
        """
        service_mesh = instance.spec.service_mesh
        if service_mesh is None:
            logger.info("Service mesh is not configured, same as default to 'Removed'")
            state = ManagementState.REMOVED
        else:
            state = service_mesh.management_state

        if state == ManagementState.MANAGED:
            capabilities = [
                self.service_mesh_capability(
                    instance,
                    service_mesh_condition(ConditionReason.CONFIGURED, "Service Mesh configured"),
                ),
                await self.authorization_capability(
                    instance,
                    authorization_condition(
                        ConditionReason.CONFIGURED, "Service Mesh Authorization configured"
                    ),
                ),
            ]
            for capability in capabilities:
                try:
                    await capability.apply()
                except Exception as e:
                    logger.error(f"Failed applying service mesh resources: {e}")
                    raise
        elif state == ManagementState.UNMANAGED:
            logger.info("Service mesh is not managed by the operator, nothing to do")
        else:
            logger.info("Existing service mesh resources (owned by the operator) will be removed")
            await self.remove(instance)

    async def remove(self, instance: PlatformInitialization) -> None:
        """Delete the service mesh capabilities of a previously managed mesh."""
        service_mesh = instance.spec.service_mesh
        # A state just switched to Removed still carries the configuration to clean up
        if service_mesh is None or service_mesh.management_state == ManagementState.UNMANAGED:
            return

        capabilities = [
            self.service_mesh_capability(
                instance, service_mesh_condition(ConditionReason.REMOVED, "Service Mesh removed")
            ),
            await self.authorization_capability(
                instance,
                authorization_condition(ConditionReason.REMOVED, "Service Mesh Authorization removed"),
            ),
        ]
        for capability in capabilities:
            try:
                await capability.delete()
            except Exception as e:
                logger.error(f"Failed deleting service mesh resources: {e}")
                raise

    def service_mesh_capability(
        self, instance: PlatformInitialization, condition: Condition
    ) -> HandlerWithReporter:
        return HandlerWithReporter(
            self._handler(instance, self.service_mesh_features(instance)),
            CapabilityReporter(self.client, instance, condition),
        )

    async def authorization_capability(
        self, instance: PlatformInitialization, condition: Condition
    ) -> HandlerWithReporter:
        """
        Authorization capability, inert when its operator is not installed.

        Raises:
            ClusterError: If subscriptions could not be listed
        """
        if not await subscription_exists(self.client, AUTHORIZATION_OPERATOR):
            missing_operator = Condition(
                type=CAPABILITY_SERVICE_MESH_AUTHORIZATION,
                status=ConditionStatus.FALSE,
                reason=ConditionReason.MISSING_OPERATOR,
                message="Authorino operator is not installed on the cluster, skipping authorization capability",
            )
            return HandlerWithReporter(
                EMPTY_FEATURES_HANDLER,
                CapabilityReporter(self.client, instance, missing_operator),
            )

        return HandlerWithReporter(
            self._handler(instance, self.authorization_features(instance)),
            CapabilityReporter(self.client, instance, condition),
        )

    def _handler(self, instance: PlatformInitialization, provider: FeaturesProvider) -> ClusterFeaturesHandler:
        return ClusterFeaturesHandler(
            instance,
            provider,
            self.client,
            target_namespace=instance.spec.applications_namespace,
        )

    def _manifests(self, *paths: str):
        return location(self.config.templates_location).include(*paths)

    def service_mesh_features(self, instance: PlatformInitialization) -> FeaturesProvider:
        interval, timeout = self.config.poll_interval, self.config.poll_timeout

        async def provider(registry: FeaturesRegistry) -> None:
            control_plane_spec = instance.spec.service_mesh.control_plane

            async def metrics_collection_enabled(_: Feature) -> bool:
                return control_plane_spec.metrics_collection == "Istio"

            control_plane = await CONTROL_PLANE.create(self.client, instance.spec)
            authorization = await AUTHORIZATION.create(self.client, instance.spec)

            registry.add(
                define("mesh-control-plane-creation")
                .field_manager(self.config.field_manager)
                .manifests(self._manifests(SERVICE_MESH_DIR))
                .with_data(control_plane)
                .pre_conditions(
                    ensure_service_mesh_operator_installed,
                    create_namespace_if_not_exists(control_plane_spec.namespace),
                )
                .post_conditions(
                    wait_for_pods_to_be_ready(control_plane_spec.namespace, interval, timeout),
                ),
                define("mesh-metrics-collection")
                .field_manager(self.config.field_manager)
                .enabled_when(metrics_collection_enabled)
                .manifests(self._manifests(METRICS_DIR))
                .with_data(control_plane)
                .pre_conditions(ensure_service_mesh_installed(interval, timeout)),
                define("mesh-shared-configmap")
                .field_manager(self.config.field_manager)
                .with_resources(mesh_refs, auth_refs)
                .with_data(control_plane, authorization),
            )

        return provider

    def authorization_features(self, instance: PlatformInitialization) -> FeaturesProvider:
        interval, timeout = self.config.poll_interval, self.config.poll_timeout

        async def provider(registry: FeaturesRegistry) -> None:
            service_mesh = instance.spec.service_mesh

            control_plane = await CONTROL_PLANE.create(self.client, instance.spec)
            authorization = await AUTHORIZATION.create(self.client, instance.spec)

            async def wait_for_authorization_pods(feature: Feature) -> None:
                namespace = AUTHORIZATION.extract(feature).namespace
                await wait_for_pods_to_be_ready(namespace, interval, timeout)(feature)

            registry.add(
                define("mesh-control-plane-external-authz")
                .field_manager(self.config.field_manager)
                .manifests(
                    self._manifests(
                        f"{AUTHORINO_DIR}/auth-smm.tmpl.yaml",
                        f"{AUTHORINO_DIR}/base",
                        f"{AUTHORINO_DIR}/mesh-authz-ext-provider.patch.tmpl.yaml",
                    )
                )
                .with_data(control_plane, authorization)
                .pre_conditions(
                    ensure_operator_is_installed(AUTHORIZATION_OPERATOR),
                    ensure_service_mesh_installed(interval, timeout),
                    ensure_auth_namespace_exists,
                )
                .post_conditions(
                    wait_for_pods_to_be_ready(service_mesh.control_plane.namespace, interval, timeout),
                )
                .on_delete(
                    remove_extension_provider(
                        service_mesh.control_plane,
                        f"{instance.spec.applications_namespace}-auth-provider",
                    )
                ),
                # The authorization operator creates the deployment itself without
                # propagating labels, so mesh sidecar injection is patched in.
                define("enable-proxy-injection-in-authorino-deployment")
                .field_manager(self.config.field_manager)
                .manifests(self._manifests(f"{AUTHORINO_DIR}/deployment.injection.patch.tmpl.yaml"))
                .with_data(control_plane, authorization)
                .pre_conditions(wait_for_authorization_pods),
            )

        return provider


async def configure_service_mesh(
    client: ObjectStore, instance: PlatformInitialization, config: Optional[EngineConfig] = None
) -> None:
    await ServiceMeshCapabilities(client, config).configure(instance)


async def remove_service_mesh(
    client: ObjectStore, instance: PlatformInitialization, config: Optional[EngineConfig] = None
) -> None:
    await ServiceMeshCapabilities(client, config).remove(instance)
