import pytest

from clusterfeatures.modules.cluster import OWNED_NAMESPACE_LABEL, KindNotServedError
from clusterfeatures.modules.feature import (
    OperatorNotInstalledError,
    PollTimeoutError,
    check_pods_ready,
    create_namespace_if_not_exists,
    define,
    ensure_operator_is_installed,
    wait_for_pods_to_be_ready,
    wait_for_resource_to_be_created,
)

from conftest import pod, subscription


@pytest.fixture
def feature(cluster):
    return define("conditions").using_client(cluster).target_namespace("platform-apps").create()


@pytest.fixture
def owned_feature(cluster, platform):
    return (
        define("conditions")
        .using_client(cluster)
        .target_namespace("platform-apps")
        .owned_by(platform)
        .create()
    )


@pytest.mark.asyncio
async def test_namespace_without_pods_is_ready(cluster):
    assert await check_pods_ready(cluster, "empty") is True


@pytest.mark.asyncio
async def test_pods_ready_requires_every_pod(cluster):
    cluster.add(pod("a", "mesh"))
    cluster.add(pod("b", "mesh", ready=False))
    cluster.add(pod("job", "mesh", ready=False, phase="Succeeded"))

    assert await check_pods_ready(cluster, "mesh") is False

    cluster.objects[("v1", "Pod", "mesh", "b")]["status"]["conditions"][0]["status"] = "True"

    assert await check_pods_ready(cluster, "mesh") is True


@pytest.mark.asyncio
async def test_wait_for_pods_times_out(cluster, feature):
    cluster.add(pod("stuck", "mesh", ready=False))

    with pytest.raises(PollTimeoutError):
        await wait_for_pods_to_be_ready("mesh", interval=0.01, timeout=0.05)(feature)


@pytest.mark.asyncio
async def test_wait_for_resource_to_be_created(cluster, feature):
    cluster.add({"apiVersion": "v1", "kind": "Secret", "metadata": {"name": "token", "namespace": "mesh"}})

    await wait_for_resource_to_be_created("v1", "Secret", "token", "mesh", interval=0.01, timeout=0.1)(feature)

    with pytest.raises(PollTimeoutError):
        await wait_for_resource_to_be_created("v1", "Secret", "other", "mesh", interval=0.01, timeout=0.05)(feature)


@pytest.mark.asyncio
async def test_operator_subscription_found_in_any_namespace(cluster, feature):
    cluster.add(subscription("servicemeshoperator", namespace="custom-operators"))

    await ensure_operator_is_installed("servicemeshoperator")(feature)

    with pytest.raises(OperatorNotInstalledError) as exc_info:
        await ensure_operator_is_installed("authorino-operator")(feature)
    assert exc_info.value.subscription == "authorino-operator"


@pytest.mark.asyncio
async def test_created_namespace_is_owned_by_feature_owner(cluster, platform, owned_feature):
    await owned_feature.apply()

    await create_namespace_if_not_exists("istio-system")(owned_feature)

    namespace = cluster.find("Namespace", "istio-system")
    assert namespace["metadata"]["labels"] == {OWNED_NAMESPACE_LABEL: "true"}
    refs = namespace["metadata"]["ownerReferences"]
    assert [(ref["kind"], ref["uid"]) for ref in refs] == [("PlatformInitialization", platform.metadata.uid)]


@pytest.mark.asyncio
async def test_created_namespace_without_owner_is_unowned(cluster, feature):
    await feature.apply()

    await create_namespace_if_not_exists("istio-system")(feature)

    namespace = cluster.find("Namespace", "istio-system")
    assert "ownerReferences" not in namespace["metadata"]


@pytest.mark.asyncio
async def test_existing_namespace_is_not_adopted(cluster, feature):
    cluster.add({"apiVersion": "v1", "kind": "Namespace", "metadata": {"name": "istio-system"}})
    await feature.apply()

    await create_namespace_if_not_exists("istio-system")(feature)

    namespace = cluster.find("Namespace", "istio-system")
    assert "ownerReferences" not in namespace["metadata"]
    assert cluster.count("create", "Namespace") == 0


@pytest.mark.asyncio
async def test_operator_missing_when_subscription_kind_not_served(cluster, feature):
    cluster.fail_on("list", "Subscription", KindNotServedError("operators.coreos.com/v1alpha1", "Subscription"))

    with pytest.raises(OperatorNotInstalledError):
        await ensure_operator_is_installed("servicemeshoperator")(feature)
