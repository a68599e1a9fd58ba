"""
Clusterfeatures reconcile entry point.

Reads a PlatformInitialization object and reconciles its service mesh
capabilities once, or repeatedly when a requeue interval is given. Retries
of failed passes are driven from here, never from inside the engine.
"""

import asyncio
import logging
from typing import Optional

from clusterfeatures.config.provider import ConfigProvider, EngineConfig, EnvConfigProvider
from clusterfeatures.logging_config import configure_logging
from clusterfeatures.modules.cluster import ClusterError, KubernetesObjectStore, ObjectStore
from clusterfeatures.modules.feature import FeatureError
from clusterfeatures.modules.platform import PLATFORM_API_VERSION, PLATFORM_KIND, PlatformInitialization
from clusterfeatures.modules.servicemesh import configure_service_mesh

logger = logging.getLogger("clusterfeatures.main")


async def reconcile(client: ObjectStore, name: str, config: EngineConfig) -> None:
    """
    Run one reconciliation pass for the named PlatformInitialization.

    Raises:
        NotFoundError: If the object does not exist
        FeatureError: If a capability failed (already reported on the object)
        ClusterError: If the cluster could not be reached
    """
    obj = await client.get(PLATFORM_API_VERSION, PLATFORM_KIND, name)
    instance = PlatformInitialization.from_object(obj)
    logger.info(f"Reconciling {PLATFORM_KIND} {name}")
    await configure_service_mesh(client, instance, config)
    logger.info(f"Reconciled {PLATFORM_KIND} {name}")


async def run(name: str, requeue_after: float = 0, config_provider: Optional[ConfigProvider] = None) -> int:
    config = (config_provider or EnvConfigProvider()).get_engine_config()
    client = KubernetesObjectStore.from_environment()

    while True:
        try:
            await reconcile(client, name, config)
            failed = False
        except (FeatureError, ClusterError) as e:
            logger.error(f"Reconciliation of {name} failed: {e}")
            failed = True

        if requeue_after <= 0:
            return 1 if failed else 0

        logger.info(f"Requeueing {name} in {requeue_after}s")
        await asyncio.sleep(requeue_after)


async def main():
    """Main entry point"""
    import argparse

    parser = argparse.ArgumentParser(
        description="Reconcile platform capabilities of a PlatformInitialization object"
    )
    parser.add_argument("name", help="Name of the PlatformInitialization object")
    parser.add_argument("--requeue-after", type=float, default=0,
                        help="Seconds between passes (default: run a single pass)")

    args = parser.parse_args()

    provider = EnvConfigProvider()
    configure_logging(provider.get_engine_config().log_level)

    return await run(args.name, args.requeue_after, provider)


if __name__ == "__main__":
    raise SystemExit(asyncio.run(main()))
