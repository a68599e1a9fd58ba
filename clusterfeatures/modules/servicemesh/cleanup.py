"""Service mesh on-delete actions."""

from ..cluster import NotFoundError
from ..feature import Action, Feature
from ..platform import ControlPlaneSpec
from .conditions import SMCP_API_VERSION, SMCP_KIND


def remove_extension_provider(control_plane: ControlPlaneSpec, provider_name: str) -> Action:
    """
    Drop provider_name from the control plane's extension providers.

    The control plane is not owned by the authorization feature (it is only
    patched), so the entry has to be removed explicitly.
    """

    async def action(feature: Feature) -> None:
        try:
            smcp = await feature.client.get(
                SMCP_API_VERSION, SMCP_KIND, control_plane.name, control_plane.namespace
            )
        except NotFoundError:
            feature.log.info(
                f"Control plane {control_plane.namespace}/{control_plane.name} not found, "
                "nothing to remove"
            )
            return

        mesh_config = smcp.get("spec", {}).get("techPreview", {}).get("meshConfig", {})
        providers = mesh_config.get("extensionProviders") or []
        remaining = [p for p in providers if p.get("name") != provider_name]
        if len(remaining) == len(providers):
            return

        mesh_config["extensionProviders"] = remaining
        await feature.client.update(smcp)
        feature.log.info(f"Removed extension provider {provider_name} from control plane {control_plane.name}")

    return action
