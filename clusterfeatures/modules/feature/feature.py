"""
Feature - a named, idempotent unit of cluster change.

A feature is assembled with the fluent ``FeatureBuilder`` (see ``define``)
and only touches the cluster through ``apply`` and ``delete``.

Apply sequence:
1. Skip entirely when the enablement predicate says no
2. Upsert the FeatureTracker record (owned by the feature's owner, if any)
3. Resolve lazily declared data
4. Run preconditions, first failure aborts
5. Render and apply manifests (see ``Feature.as_owner_reference`` for ownership)
6. Run resource producers
7. Run postconditions (failures never roll back applied resources)
8. Record the outcome on the tracker status
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Type

from ..cluster import (
    FIELD_MANAGER,
    ClusterError,
    NotFoundError,
    ObjectStore,
    owner_reference,
    with_owner_reference,
)
from . import manifest
from .data import DataEntry, FeatureData
from .errors import (
    CleanupError,
    DataLoadError,
    DataNotFoundError,
    EnablementError,
    FeatureError,
    FeatureStageError,
    InvalidFeatureError,
    ManifestApplyError,
    PostConditionError,
    PreConditionError,
    ResourceCreationError,
    TrackerError,
)
from .tracker import (
    TRACKER_API_VERSION,
    TRACKER_KIND,
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
    FeatureTracker,
    KubeObject,
    Phase,
    Source,
    set_status_condition,
)

logger = logging.getLogger("clusterfeatures.feature")

Action = Callable[["Feature"], Awaitable[None]]
EnabledPredicate = Callable[["Feature"], Awaitable[bool]]


class Feature:
    """Executable feature. Build instances with ``define(name)...create()``."""

    def __init__(
        self,
        name: str,
        client: ObjectStore,
        target_namespace: str,
        app_namespace: str,
        source: Source,
        data: FeatureData,
        owner: Optional[KubeObject] = None,
        manifests: Optional[List[manifest.ManifestSource]] = None,
        pre_conditions: Optional[List[Action]] = None,
        post_conditions: Optional[List[Action]] = None,
        resources: Optional[List[Action]] = None,
        cleanups: Optional[List[Action]] = None,
        enabled_when: Optional[EnabledPredicate] = None,
        field_manager: str = FIELD_MANAGER,
    ):
        self.name = name
        self.client = client
        self.target_namespace = target_namespace
        self.app_namespace = app_namespace
        self.source = source
        self.data = data
        self.owner = owner
        self.manifests = list(manifests or [])
        self.pre_conditions = list(pre_conditions or [])
        self.post_conditions = list(post_conditions or [])
        self.resources = list(resources or [])
        self.cleanups = list(cleanups or [])
        self.enabled_when = enabled_when
        self.field_manager = field_manager

        self.tracker: Optional[FeatureTracker] = None
        self.log = logging.LoggerAdapter(logger, {"feature": name})

    def __repr__(self) -> str:
        return f"Feature({self.name!r}, namespace={self.target_namespace!r})"

    async def is_enabled(self) -> bool:
        if self.enabled_when is None:
            return True
        return await self.enabled_when(self)

    def as_owner_reference(self, namespace: Optional[str]) -> Optional[Dict[str, Any]]:
        """
        Owner reference for an object this feature creates in namespace.

        Objects in the tracker's namespace are owned by the tracker, so they
        go away with the feature. Anything else (other namespaces, cluster
        scoped objects) is owned by the feature's owner directly, provided
        the garbage collector can resolve it from there: the owner must be
        cluster scoped or live in the same namespace.

        Returns:
            The reference, or None when no valid owner exists for namespace

        Raises:
            FeatureError: If the tracker has not been created yet
        """
        if self.tracker is None:
            raise FeatureError(f"feature '{self.name}' has no tracker yet, apply it first")
        if namespace is not None and namespace == self.tracker.metadata.namespace:
            return owner_reference(self.tracker.to_object())
        if self.owner is not None and self.owner.metadata.namespace in (None, namespace):
            return owner_reference(self.owner.to_object())
        return None

    def template_context(self) -> Dict[str, Any]:
        context = self.data.as_context()
        context.update(
            feature_name=self.name,
            target_namespace=self.target_namespace,
            app_namespace=self.app_namespace,
        )
        return context

    async def apply(self) -> None:
        """
        Bring the feature into existence.

        Raises:
            FeatureStageError: A stage failed (the tracker records it)
            DataNotFoundError: An action read data the feature was not given
            EnablementError: The enablement predicate failed
            TrackerError: The tracker itself could not be written
        """
        try:
            enabled = await self.is_enabled()
        except DataNotFoundError:
            raise
        except Exception as e:
            self.log.error(f"Feature {self.name} failed in {EnablementError.stage}: {e}")
            raise EnablementError(self.name, e) from e

        if not enabled:
            self.log.info(f"Feature {self.name} is disabled, skipping")
            return

        self.log.info(f"Applying feature {self.name}")
        try:
            await self._ensure_tracker()
        except ClusterError as e:
            self.log.error(f"Feature {self.name} failed in {TrackerError.stage}: {e}")
            raise TrackerError(self.name, e) from e

        await self._stage(DataLoadError, self.data.resolve, self)
        await self._stage(PreConditionError, self._run_actions, self.pre_conditions)
        await self._stage(ManifestApplyError, self._apply_manifests)
        await self._stage(ResourceCreationError, self._run_actions, self.resources)
        await self._stage(PostConditionError, self._run_actions, self.post_conditions)

        await self._record_outcome(None)
        self.log.info(f"Feature {self.name} applied")

    async def delete(self) -> None:
        """
        Remove the feature.

        Runs the on-delete actions, then deletes the tracker; whatever the
        tracker owns is garbage-collected by the cluster. Objects that are
        already gone are not an error.
        """
        self.log.info(f"Deleting feature {self.name}")

        if self.cleanups:
            try:
                await self.data.resolve(self)
            except DataNotFoundError:
                raise
            except Exception as e:
                raise DataLoadError(self.name, e) from e

        for cleanup in self.cleanups:
            try:
                await cleanup(self)
            except NotFoundError as e:
                self.log.debug(f"Nothing to clean up for feature {self.name}: {e}")
            except DataNotFoundError:
                raise
            except Exception as e:
                self.log.error(f"Cleanup of feature {self.name} failed: {e}")
                raise CleanupError(self.name, e) from e

        try:
            await self.client.delete(
                TRACKER_API_VERSION, TRACKER_KIND, self.name, self.target_namespace
            )
        except NotFoundError:
            self.log.debug(f"Tracker for feature {self.name} already gone")
        self.tracker = None

    async def _stage(self, error_cls: Type[FeatureStageError], func, *args) -> None:
        try:
            await func(*args)
        except DataNotFoundError as e:
            self.log.error(f"Feature {self.name} is missing data in {error_cls.stage}: {e}")
            await self._record_outcome(error_cls.reason, e)
            raise
        except Exception as e:
            self.log.error(f"Feature {self.name} failed in {error_cls.stage}: {e}")
            await self._record_outcome(error_cls.reason, e)
            raise error_cls(self.name, e) from e

    async def _run_actions(self, actions: List[Action]) -> None:
        for action in actions:
            await action(self)

    async def _apply_manifests(self) -> None:
        if not self.manifests:
            return

        context = self.template_context()
        for source in self.manifests:
            for item in manifest.render(source, context):
                if item.patch:
                    # Patches target objects this feature does not own
                    await self.client.patch(item.obj, self.field_manager, patch_type="merge")
                else:
                    namespace = item.obj.get("metadata", {}).get("namespace")
                    with_owner_reference(item.obj, self.as_owner_reference(namespace))
                    await self.client.patch(item.obj, self.field_manager)
                self.log.debug(f"Applied {item.identity} from {item.source}")

    async def _ensure_tracker(self) -> None:
        owner_refs = [owner_reference(self.owner.to_object())] if self.owner else []

        try:
            existing = await self.client.get(
                TRACKER_API_VERSION, TRACKER_KIND, self.name, self.target_namespace
            )
        except NotFoundError:
            tracker = FeatureTracker.new(
                self.name, self.target_namespace, self.source, self.app_namespace
            )
            obj = tracker.to_object()
            obj["metadata"]["ownerReferences"] = owner_refs
            created = await self.client.create(obj)
            self.tracker = FeatureTracker.from_object(created)
            self.log.info(f"Created tracker for feature {self.name}")
            return

        tracker = FeatureTracker.from_object(existing)
        desired_spec = tracker.spec.model_copy(
            update={"source": self.source, "app_namespace": self.app_namespace}
        )
        current_refs = [ref.model_dump(by_alias=True, exclude_none=True) for ref in tracker.metadata.owner_references]
        if desired_spec == tracker.spec and current_refs == owner_refs:
            self.tracker = tracker
            return

        existing["spec"] = desired_spec.model_dump(by_alias=True, mode="json")
        existing["metadata"]["ownerReferences"] = owner_refs
        updated = await self.client.update(existing)
        self.tracker = FeatureTracker.from_object(updated)

    async def _record_outcome(
        self, reason: Optional[ConditionReason], error: Optional[BaseException] = None
    ) -> None:
        """Write phase and conditions; failures to write are logged, not raised."""
        if self.tracker is None:
            return

        tracker = self.tracker.model_copy(deep=True)
        conditions = tracker.status.conditions
        if error is None:
            tracker.status.phase = Phase.READY
            message = f"Applied feature [{self.name}] successfully"
            set_status_condition(conditions, Condition(
                type=ConditionType.AVAILABLE, status=ConditionStatus.TRUE,
                reason=ConditionReason.FEATURE_CREATED, message=message,
            ))
            set_status_condition(conditions, Condition(
                type=ConditionType.DEGRADED, status=ConditionStatus.FALSE,
                reason=ConditionReason.FEATURE_CREATED, message=message,
            ))
        else:
            tracker.status.phase = Phase.ERROR
            message = str(error)
            set_status_condition(conditions, Condition(
                type=ConditionType.AVAILABLE, status=ConditionStatus.FALSE,
                reason=reason, message=message,
            ))
            set_status_condition(conditions, Condition(
                type=ConditionType.DEGRADED, status=ConditionStatus.TRUE,
                reason=reason, message=message,
            ))

        if tracker.status == self.tracker.status:
            return

        try:
            updated = await self.client.update(tracker.to_object(), subresource="status")
        except ClusterError as e:
            self.log.error(f"Failed to record status of feature {self.name}: {e}")
            return
        self.tracker = FeatureTracker.from_object(updated)


class FeatureBuilder:
    """Fluent builder for Feature; construction never touches the cluster."""

    def __init__(self, name: str):
        self.name = name
        self._client: Optional[ObjectStore] = None
        self._target_namespace: Optional[str] = None
        self._app_namespace: Optional[str] = None
        self._source: Optional[Source] = None
        self._owner: Optional[KubeObject] = None
        self._manifests: List[manifest.ManifestSource] = []
        self._data: List[DataEntry] = []
        self._pre_conditions: List[Action] = []
        self._post_conditions: List[Action] = []
        self._resources: List[Action] = []
        self._cleanups: List[Action] = []
        self._enabled_when: Optional[EnabledPredicate] = None
        self._field_manager = FIELD_MANAGER

    def using_client(self, client: ObjectStore) -> "FeatureBuilder":
        self._client = client
        return self

    def target_namespace(self, namespace: str) -> "FeatureBuilder":
        self._target_namespace = namespace
        return self

    def app_namespace(self, namespace: str) -> "FeatureBuilder":
        self._app_namespace = namespace
        return self

    def source(self, source: Source) -> "FeatureBuilder":
        self._source = source
        return self

    def owned_by(self, owner: KubeObject) -> "FeatureBuilder":
        self._owner = owner
        return self

    def field_manager(self, name: str) -> "FeatureBuilder":
        self._field_manager = name
        return self

    def manifests(self, *sources: manifest.ManifestSource) -> "FeatureBuilder":
        self._manifests.extend(sources)
        return self

    def with_data(self, *entries: DataEntry) -> "FeatureBuilder":
        self._data.extend(entries)
        return self

    def pre_conditions(self, *actions: Action) -> "FeatureBuilder":
        self._pre_conditions.extend(actions)
        return self

    def post_conditions(self, *actions: Action) -> "FeatureBuilder":
        self._post_conditions.extend(actions)
        return self

    def with_resources(self, *producers: Action) -> "FeatureBuilder":
        self._resources.extend(producers)
        return self

    def on_delete(self, *actions: Action) -> "FeatureBuilder":
        self._cleanups.extend(actions)
        return self

    def enabled_when(self, predicate: EnabledPredicate) -> "FeatureBuilder":
        self._enabled_when = predicate
        return self

    def with_defaults(
        self,
        client: Optional[ObjectStore] = None,
        target_namespace: Optional[str] = None,
        app_namespace: Optional[str] = None,
        source: Optional[Source] = None,
        owner: Optional[KubeObject] = None,
    ) -> "FeatureBuilder":
        """Fill in settings the feature definition left unset."""
        if self._client is None:
            self._client = client
        if self._target_namespace is None:
            self._target_namespace = target_namespace
        if self._app_namespace is None:
            self._app_namespace = app_namespace
        if self._source is None:
            self._source = source
        if self._owner is None:
            self._owner = owner
        return self

    def create(self) -> Feature:
        """
        Build the feature.

        Raises:
            InvalidFeatureError: If the definition is incomplete or inconsistent
        """
        if not self.name or not self.name.strip():
            raise InvalidFeatureError("feature name must not be empty")
        if self._client is None:
            raise InvalidFeatureError(f"feature '{self.name}' has no cluster client")
        if not self._target_namespace:
            raise InvalidFeatureError(f"feature '{self.name}' has no target namespace")

        data = FeatureData(self.name)
        for entry in self._data:
            data.add(entry)

        return Feature(
            name=self.name,
            client=self._client,
            target_namespace=self._target_namespace,
            app_namespace=self._app_namespace or self._target_namespace,
            source=self._source or Source(),
            data=data,
            owner=self._owner,
            manifests=self._manifests,
            pre_conditions=self._pre_conditions,
            post_conditions=self._post_conditions,
            resources=self._resources,
            cleanups=self._cleanups,
            enabled_when=self._enabled_when,
            field_manager=self._field_manager,
        )


def define(name: str) -> FeatureBuilder:
    """Start the definition of a feature."""
    return FeatureBuilder(name)
