"""
Shared service mesh configuration.

Control plane and authorization parameters are published as config maps in
the feature's target namespace, so components relying on them do not need to
know anything about feature data.
"""

from ..cluster import create_or_update_config_map
from ..feature import Feature
from .data import AUTHORIZATION, CONTROL_PLANE

CONFIG_MAP_MESH_REF = "service-mesh-refs"
CONFIG_MAP_AUTH_REF = "auth-refs"


async def mesh_refs(feature: Feature) -> None:
    control_plane = CONTROL_PLANE.extract(feature)
    await create_or_update_config_map(
        feature.client,
        CONFIG_MAP_MESH_REF,
        feature.target_namespace,
        {
            "CONTROL_PLANE_NAME": control_plane.name,
            "MESH_NAMESPACE": control_plane.namespace,
        },
        owner_ref=feature.as_owner_reference(feature.target_namespace),
    )


async def auth_refs(feature: Feature) -> None:
    authorization = AUTHORIZATION.extract(feature)
    await create_or_update_config_map(
        feature.client,
        CONFIG_MAP_AUTH_REF,
        feature.target_namespace,
        {
            "AUTH_AUDIENCE": ",".join(authorization.audiences),
            "AUTH_PROVIDER": authorization.provider_name,
            "AUTHORINO_LABEL": authorization.auth_config_selector,
        },
        owner_ref=feature.as_owner_reference(feature.target_namespace),
    )
