from unittest.mock import MagicMock

import pytest

from clusterfeatures.modules.feature import (
    FeatureRegistryError,
    FeaturesProviderError,
    FeaturesRegistry,
    Source,
    SourceType,
    build_registry,
    define,
)


@pytest.fixture
def client():
    return MagicMock()


@pytest.fixture
def registry(client):
    return FeaturesRegistry(
        client=client,
        target_namespace="apps",
        source=Source(type=SourceType.COMPONENT, name="dashboard"),
    )


def test_features_keep_registration_order(registry):
    registry.add(define("b"), define("a"))
    registry.add(define("c"))

    assert registry.names == ["b", "a", "c"]
    assert [f.name for f in registry] == ["b", "a", "c"]
    assert len(registry) == 3
    assert "a" in registry


def test_features_inherit_registry_defaults(registry, client):
    registry.add(define("inherits"), define("overrides").target_namespace("other"))

    inherits = registry.get("inherits")
    overrides = registry.get("overrides")
    assert inherits.client is client
    assert inherits.target_namespace == "apps"
    assert inherits.app_namespace == "apps"
    assert inherits.source.name == "dashboard"
    assert overrides.target_namespace == "other"


def test_all_errors_reported_and_nothing_registered(registry):
    registry.add(define("existing"))

    with pytest.raises(FeatureRegistryError) as exc_info:
        registry.add(define("valid"), define("dup"), define(""), define("dup"), define("existing"))

    errors = exc_info.value.errors
    assert len(errors) == 3
    assert "feature #3 has an empty name" in errors
    assert "feature 'dup' is defined more than once (#2 and #4)" in errors
    assert "feature 'existing' is already registered" in errors
    assert "3 feature(s)" in str(exc_info.value)
    assert registry.names == ["existing"]


def test_incomplete_feature_fails_registration():
    registry = FeaturesRegistry(target_namespace="apps")

    with pytest.raises(FeatureRegistryError) as exc_info:
        registry.add(define("no-client"))

    assert "no cluster client" in exc_info.value.errors[0]
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_build_registry_runs_provider(registry):
    async def provider(r):
        r.add(define("one"), define("two"))

    result = await build_registry(provider, registry)

    assert result is registry
    assert result.names == ["one", "two"]


@pytest.mark.asyncio
async def test_provider_failure_is_wrapped(registry):
    async def provider(r):
        raise KeyError("control plane")

    with pytest.raises(FeaturesProviderError) as exc_info:
        await build_registry(provider, registry)

    assert isinstance(exc_info.value.__cause__, KeyError)


@pytest.mark.asyncio
async def test_registration_errors_pass_through(registry):
    async def provider(r):
        r.add(define("x"), define("x"))

    with pytest.raises(FeatureRegistryError):
        await build_registry(provider, registry)
