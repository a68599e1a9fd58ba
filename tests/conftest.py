"""
Shared pytest fixtures for clusterfeatures tests.

This module provides common fixtures including:
- InMemoryObjectStore: ObjectStore implementation honouring owner-reference
  garbage collection, resource versions, server-side apply and merge patches
- Persisted PlatformInitialization owner objects
- Fast polling configuration
"""

import copy
import os
import sys
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Dict, List, Optional, Tuple

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from clusterfeatures.config import EngineConfig
from clusterfeatures.modules.cluster import AlreadyExistsError, ConflictError, NotFoundError
from clusterfeatures.modules.feature import TRACKER_API_VERSION, TRACKER_KIND, FeatureTracker
from clusterfeatures.modules.platform import (
    ControlPlaneSpec,
    ManagementState,
    PlatformInitialization,
    ServiceMeshSpec,
)


# =============================================================================
# In-memory cluster
# =============================================================================

ObjectKey = Tuple[str, str, Optional[str], str]


@dataclass
class StoreCall:
    """Record of an object store call made during testing."""
    verb: str
    kind: str
    name: str
    namespace: Optional[str] = None


def _merge(target: Dict[str, Any], patch: Dict[str, Any], delete_nulls: bool) -> Dict[str, Any]:
    """Recursive dict merge; lists and scalars are replaced."""
    for key, value in patch.items():
        if value is None and delete_nulls:
            target.pop(key, None)
        elif isinstance(value, dict) and isinstance(target.get(key), dict):
            _merge(target[key], value, delete_nulls)
        else:
            target[key] = copy.deepcopy(value)
    return target


class InMemoryObjectStore:
    """
    Mock cluster keeping objects in a dictionary.

    Usage:
        async def test_something(cluster):
            cluster.add({"apiVersion": "v1", "kind": "Pod", ...})

            await feature.apply()

            assert cluster.find("ConfigMap", "service-mesh-refs", "apps")
            assert cluster.count("create", "FeatureTracker") == 1
    """

    def __init__(self):
        self.objects: Dict[ObjectKey, Dict[str, Any]] = {}
        self.calls: List[StoreCall] = []
        self.failures: Dict[Tuple[str, str], Exception] = {}
        self._resource_version = 0

    # -- test helpers ---------------------------------------------------------

    def add(self, obj: Dict[str, Any]) -> Dict[str, Any]:
        """Seed an object synchronously, assigning uid and resource version."""
        stored = copy.deepcopy(obj)
        self._check_owner_references(stored)
        self._stamp_new(stored)
        self.objects[self._key_of(stored)] = stored
        return copy.deepcopy(stored)

    def find(self, kind: str, name: str, namespace: Optional[str] = None) -> Optional[Dict[str, Any]]:
        for (_, obj_kind, obj_namespace, obj_name), obj in self.objects.items():
            if (obj_kind, obj_name, obj_namespace) == (kind, name, namespace):
                return copy.deepcopy(obj)
        return None

    def tracker(self, name: str, namespace: str) -> Optional[FeatureTracker]:
        obj = self.objects.get((TRACKER_API_VERSION, TRACKER_KIND, namespace, name))
        return FeatureTracker.from_object(obj) if obj else None

    def count(self, verb: str, kind: Optional[str] = None) -> int:
        return sum(1 for c in self.calls if c.verb == verb and (kind is None or c.kind == kind))

    def fail_on(self, verb: str, kind: str, error: Exception) -> None:
        """Make every `verb` call for `kind` raise error."""
        self.failures[(verb, kind)] = error

    # -- internals ------------------------------------------------------------

    @staticmethod
    def _key(api_version: str, kind: str, name: str, namespace: Optional[str]) -> ObjectKey:
        return api_version, kind, namespace, name

    def _key_of(self, obj: Dict[str, Any]) -> ObjectKey:
        metadata = obj["metadata"]
        return self._key(obj["apiVersion"], obj["kind"], metadata["name"], metadata.get("namespace"))

    def _next_version(self) -> str:
        self._resource_version += 1
        return str(self._resource_version)

    def _stamp_new(self, obj: Dict[str, Any]) -> None:
        metadata = obj.setdefault("metadata", {})
        metadata["uid"] = str(uuid.uuid4())
        metadata["resourceVersion"] = self._next_version()
        metadata["creationTimestamp"] = datetime.now(UTC).isoformat()

    def _record(self, verb: str, kind: str, name: str, namespace: Optional[str]) -> None:
        self.calls.append(StoreCall(verb, kind, name, namespace))
        failure = self.failures.get((verb, kind))
        if failure is not None:
            raise failure

    def _existing(self, key: ObjectKey) -> Dict[str, Any]:
        if key not in self.objects:
            raise NotFoundError(key[1], key[3], key[2])
        return self.objects[key]

    def _check_owner_references(self, obj: Dict[str, Any]) -> None:
        """
        Reject owner references the garbage collector could not resolve.

        A real cluster treats such owners as absent and collects the
        dependent, or never collects it at all.
        """
        metadata = obj.get("metadata", {})
        namespace = metadata.get("namespace")
        for ref in metadata.get("ownerReferences", []) or []:
            owner = next(
                (o for o in self.objects.values() if o["metadata"].get("uid") == ref.get("uid")), None
            )
            if owner is None:
                raise ValueError(f"{obj['kind']} {metadata['name']} references missing owner {ref.get('name')}")
            owner_namespace = owner["metadata"].get("namespace")
            if owner_namespace is not None and owner_namespace != namespace:
                raise ValueError(
                    f"{obj['kind']} {metadata['name']} in namespace {namespace} cannot be owned by "
                    f"{owner['kind']} {owner['metadata']['name']} in namespace {owner_namespace}"
                )

    def _store_if_changed(self, key: ObjectKey, before: Dict[str, Any], after: Dict[str, Any]) -> Dict[str, Any]:
        self._check_owner_references(after)
        if after != before:
            after["metadata"]["resourceVersion"] = self._next_version()
        self.objects[key] = after
        return copy.deepcopy(after)

    # -- ObjectStore protocol ---------------------------------------------------

    async def get(self, api_version, kind, name, namespace=None):
        self._record("get", kind, name, namespace)
        return copy.deepcopy(self._existing(self._key(api_version, kind, name, namespace)))

    async def create(self, obj):
        key = self._key_of(obj)
        self._record("create", key[1], key[3], key[2])
        if key in self.objects:
            raise AlreadyExistsError(f"{key[1]} {key[3]} already exists")
        return self.add(obj)

    async def update(self, obj, subresource=None):
        key = self._key_of(obj)
        self._record("update" if subresource is None else f"update/{subresource}", key[1], key[3], key[2])
        existing = self._existing(key)

        version = obj["metadata"].get("resourceVersion")
        if version and version != existing["metadata"]["resourceVersion"]:
            raise ConflictError(f"{key[1]} {key[3]} was modified")

        if subresource == "status":
            updated = copy.deepcopy(existing)
            updated["status"] = copy.deepcopy(obj.get("status", {}))
        else:
            updated = copy.deepcopy(obj)
            updated["metadata"]["uid"] = existing["metadata"]["uid"]
            updated["metadata"]["resourceVersion"] = existing["metadata"]["resourceVersion"]
            updated["metadata"]["creationTimestamp"] = existing["metadata"]["creationTimestamp"]
            if "status" in existing:
                updated["status"] = copy.deepcopy(existing["status"])
        return self._store_if_changed(key, existing, updated)

    async def patch(self, obj, field_manager, patch_type="apply"):
        key = self._key_of(obj)
        self._record(f"patch/{patch_type}", key[1], key[3], key[2])
        if patch_type == "apply" and key not in self.objects:
            return self.add(obj)

        existing = self._existing(key)
        body = copy.deepcopy(obj)
        body.get("metadata", {}).pop("resourceVersion", None)
        updated = _merge(copy.deepcopy(existing), body, delete_nulls=patch_type == "merge")
        return self._store_if_changed(key, existing, updated)

    async def delete(self, api_version, kind, name, namespace=None):
        key = self._key(api_version, kind, name, namespace)
        self._record("delete", kind, name, namespace)
        removed = self.objects.pop(key, None)
        if removed is None:
            raise NotFoundError(kind, name, namespace)
        self._collect_garbage(removed["metadata"]["uid"])

    def _collect_garbage(self, owner_uid: str) -> None:
        dependents = [
            key for key, obj in self.objects.items()
            if any(ref.get("uid") == owner_uid for ref in obj["metadata"].get("ownerReferences", []))
        ]
        for key in dependents:
            removed = self.objects.pop(key, None)
            if removed is not None:
                self._collect_garbage(removed["metadata"]["uid"])

    async def list(self, api_version, kind, namespace=None, label_selector=None):
        self._record("list", kind, "", namespace)
        wanted = {}
        if label_selector:
            for term in label_selector.split(","):
                k, _, v = term.partition("=")
                wanted[k.strip()] = v.strip()

        items = []
        for (obj_api_version, obj_kind, obj_namespace, _), obj in self.objects.items():
            if (obj_api_version, obj_kind) != (api_version, kind):
                continue
            if namespace is not None and obj_namespace != namespace:
                continue
            labels = obj["metadata"].get("labels", {})
            if any(labels.get(k) != v for k, v in wanted.items()):
                continue
            items.append(copy.deepcopy(obj))
        return items


# =============================================================================
# Object factories
# =============================================================================

def pod(name: str, namespace: str, ready: bool = True, phase: str = "Running") -> Dict[str, Any]:
    return {
        "apiVersion": "v1",
        "kind": "Pod",
        "metadata": {"name": name, "namespace": namespace},
        "status": {
            "phase": phase,
            "conditions": [{"type": "Ready", "status": "True" if ready else "False"}],
        },
    }


def subscription(name: str, namespace: str = "openshift-operators") -> Dict[str, Any]:
    return {
        "apiVersion": "operators.coreos.com/v1alpha1",
        "kind": "Subscription",
        "metadata": {"name": name, "namespace": namespace},
    }


def control_plane(
    name: str = "platform-smcp",
    namespace: str = "istio-system",
    ready: Optional[List[str]] = None,
    pending: Optional[List[str]] = None,
    unready: Optional[List[str]] = None,
) -> Dict[str, Any]:
    return {
        "apiVersion": "maistra.io/v2",
        "kind": "ServiceMeshControlPlane",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {},
        "status": {
            "readiness": {
                "components": {
                    "ready": ready if ready is not None else ["istiod", "ingress"],
                    "pending": pending or [],
                    "unready": unready or [],
                }
            }
        },
    }


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def cluster():
    """Create an empty in-memory cluster."""
    return InMemoryObjectStore()


@pytest.fixture
def platform(cluster):
    """Create a PlatformInitialization persisted in the cluster."""
    instance = PlatformInitialization.new(
        "default-platform",
        "platform-apps",
        service_mesh=ServiceMeshSpec(
            management_state=ManagementState.MANAGED,
            control_plane=ControlPlaneSpec(),
        ),
    )
    stored = cluster.add(instance.to_object())
    return PlatformInitialization.from_object(stored)


@pytest.fixture
def fast_config():
    """Engine configuration with millisecond polling."""
    return EngineConfig(poll_interval=0.01, poll_timeout=0.2)
