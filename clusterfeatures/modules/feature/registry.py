"""Feature registry, populated once per reconciliation pass by a provider."""

import logging
from typing import Awaitable, Callable, Dict, Iterator, List, Optional

from ..cluster import ObjectStore
from .errors import FeatureRegistryError, FeaturesProviderError, InvalidFeatureError
from .feature import Feature, FeatureBuilder
from .tracker import KubeObject, Source

logger = logging.getLogger("clusterfeatures.registry")


class FeaturesRegistry:
    """
    Ordered mapping of feature name to Feature.

    Builders added to the registry inherit the registry's defaults (client,
    namespaces, source, owner) for every setting they leave unset.
    """

    def __init__(
        self,
        client: Optional[ObjectStore] = None,
        target_namespace: Optional[str] = None,
        app_namespace: Optional[str] = None,
        source: Optional[Source] = None,
        owner: Optional[KubeObject] = None,
    ):
        self.client = client
        self.target_namespace = target_namespace
        self.app_namespace = app_namespace
        self.source = source
        self.owner = owner
        self._features: Dict[str, Feature] = {}

    def add(self, *builders: FeatureBuilder) -> None:
        """
        Register features atomically.

        Every builder is validated before anything is registered; all
        violations are reported together.

        Raises:
            FeatureRegistryError: If any builder is invalid or duplicates a name
        """
        errors: List[str] = []
        batch: Dict[str, Feature] = {}
        positions: Dict[str, int] = {}

        for position, builder in enumerate(builders, start=1):
            name = builder.name
            if not name or not name.strip():
                errors.append(f"feature #{position} has an empty name")
                continue
            if name in self._features:
                errors.append(f"feature '{name}' is already registered")
                continue
            if name in positions:
                errors.append(
                    f"feature '{name}' is defined more than once (#{positions[name]} and #{position})"
                )
                continue
            positions[name] = position

            builder.with_defaults(
                client=self.client,
                target_namespace=self.target_namespace,
                app_namespace=self.app_namespace,
                source=self.source,
                owner=self.owner,
            )
            try:
                batch[name] = builder.create()
            except InvalidFeatureError as e:
                errors.append(str(e))

        if errors:
            raise FeatureRegistryError(errors)

        self._features.update(batch)
        logger.debug(f"Registered features: {', '.join(batch)}")

    def get(self, name: str) -> Optional[Feature]:
        return self._features.get(name)

    @property
    def names(self) -> List[str]:
        return list(self._features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(list(self._features.values()))

    def __len__(self) -> int:
        return len(self._features)

    def __contains__(self, name: str) -> bool:
        return name in self._features


FeaturesProvider = Callable[[FeaturesRegistry], Awaitable[None]]


async def build_registry(provider: FeaturesProvider, registry: FeaturesRegistry) -> FeaturesRegistry:
    """
    Populate registry through provider.

    Raises:
        FeatureRegistryError: If the provider registered invalid features
        FeaturesProviderError: If the provider itself failed
    """
    try:
        await provider(registry)
    except FeatureRegistryError:
        raise
    except Exception as e:
        logger.error(f"Features provider failed: {e}")
        raise FeaturesProviderError(f"failed to build features registry: {e}") from e
    return registry
