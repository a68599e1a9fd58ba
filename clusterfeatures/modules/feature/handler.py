"""
Features handlers.

A handler binds an owner object to a features provider and applies or
deletes every registered feature, in registration order, stopping at the
first failure. The next reconciliation pass starts over from the first
feature, so everything a feature does must be safe to repeat.
"""

import logging
from typing import Optional, Protocol

from ..cluster import ObjectStore
from .registry import FeaturesProvider, FeaturesRegistry, build_registry
from .tracker import KubeObject, Source, SourceType

logger = logging.getLogger("clusterfeatures.handler")


class FeaturesHandler(Protocol):
    """Capability interface shared by the handler variants."""

    async def apply(self) -> None:
        ...

    async def delete(self) -> None:
        ...


class ClusterFeaturesHandler:
    """Handler operating on the features produced by a provider."""

    def __init__(
        self,
        owner: KubeObject,
        provider: FeaturesProvider,
        client: ObjectStore,
        target_namespace: str,
        app_namespace: Optional[str] = None,
    ):
        """
        Initialize the handler.

        Args:
            owner: Top-level object owning every feature tracker
            provider: Coroutine function populating a registry
            client: Object store used by the features
            target_namespace: Namespace the features (and trackers) live in
            app_namespace: Namespace the features act on (defaults to target_namespace)
        """
        self.owner = owner
        self.provider = provider
        self.client = client
        self.target_namespace = target_namespace
        self.app_namespace = app_namespace or target_namespace
        self.source = Source(
            type=SourceType.from_kind(owner.kind), name=owner.metadata.name
        )

    async def registry(self) -> FeaturesRegistry:
        """Build a fresh registry for this pass."""
        return await build_registry(
            self.provider,
            FeaturesRegistry(
                client=self.client,
                target_namespace=self.target_namespace,
                app_namespace=self.app_namespace,
                source=self.source,
                owner=self.owner,
            ),
        )

    async def apply(self) -> None:
        registry = await self.registry()
        for feature in registry:
            await feature.apply()
        logger.info(f"Applied {len(registry)} feature(s) for {self.source.type.value} {self.source.name}")

    async def delete(self) -> None:
        registry = await self.registry()
        for feature in registry:
            await feature.delete()
        logger.info(f"Deleted {len(registry)} feature(s) for {self.source.type.value} {self.source.name}")


class EmptyFeaturesHandler:
    """Handler used when a capability is structurally disabled; never touches the cluster."""

    async def apply(self) -> None:
        return None

    async def delete(self) -> None:
        return None


EMPTY_FEATURES_HANDLER = EmptyFeaturesHandler()
