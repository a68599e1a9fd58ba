"""
Feature Module - Black Box Interface

Purpose: Define, apply, track and remove named units of cluster change
Interface: define(), FeaturesRegistry, ClusterFeaturesHandler,
           EMPTY_FEATURES_HANDLER, HandlerWithReporter, CapabilityReporter,
           DataKey, poll_until_ready(), precondition library
Hidden: Manifest rendering, tracker bookkeeping, stage error wrapping

Features are applied sequentially in registration order; a failing feature
stops the pass and the outer reconcile loop owns the retry cadence.
"""

from .conditions import (
    check_pods_ready,
    create_namespace_if_not_exists,
    ensure_operator_is_installed,
    wait_for_pods_to_be_ready,
    wait_for_resource_to_be_created,
)
from .data import DataEntry, DataKey, FeatureData
from .errors import (
    CleanupError,
    DataLoadError,
    DataNotFoundError,
    DependencyNotReadyError,
    EnablementError,
    FeatureError,
    FeatureRegistryError,
    FeaturesProviderError,
    FeatureStageError,
    InvalidFeatureError,
    ManifestApplyError,
    OperatorNotInstalledError,
    PostConditionError,
    PreConditionError,
    ResourceCreationError,
    TrackerError,
)
from .feature import Action, EnabledPredicate, Feature, FeatureBuilder, define
from .handler import (
    EMPTY_FEATURES_HANDLER,
    ClusterFeaturesHandler,
    EmptyFeaturesHandler,
    FeaturesHandler,
)
from .manifest import ManifestObject, ManifestSource, location
from .poller import DEFAULT_INTERVAL, DEFAULT_TIMEOUT, PollTimeoutError, poll_until_ready
from .registry import FeaturesProvider, FeaturesRegistry, build_registry
from .reporter import CapabilityReporter, HandlerWithReporter
from .tracker import (
    TRACKER_API_VERSION,
    TRACKER_KIND,
    Condition,
    ConditionReason,
    ConditionStatus,
    ConditionType,
    FeatureTracker,
    KubeObject,
    ObjectMeta,
    Phase,
    Source,
    SourceType,
    find_condition,
    set_status_condition,
)

__all__ = [
    "check_pods_ready",
    "create_namespace_if_not_exists",
    "ensure_operator_is_installed",
    "wait_for_pods_to_be_ready",
    "wait_for_resource_to_be_created",
    "DataEntry",
    "DataKey",
    "FeatureData",
    "CleanupError",
    "DataLoadError",
    "DataNotFoundError",
    "DependencyNotReadyError",
    "EnablementError",
    "FeatureError",
    "FeatureRegistryError",
    "FeaturesProviderError",
    "FeatureStageError",
    "InvalidFeatureError",
    "ManifestApplyError",
    "OperatorNotInstalledError",
    "PostConditionError",
    "PreConditionError",
    "ResourceCreationError",
    "TrackerError",
    "Action",
    "EnabledPredicate",
    "Feature",
    "FeatureBuilder",
    "define",
    "EMPTY_FEATURES_HANDLER",
    "ClusterFeaturesHandler",
    "EmptyFeaturesHandler",
    "FeaturesHandler",
    "ManifestObject",
    "ManifestSource",
    "location",
    "DEFAULT_INTERVAL",
    "DEFAULT_TIMEOUT",
    "PollTimeoutError",
    "poll_until_ready",
    "FeaturesProvider",
    "FeaturesRegistry",
    "build_registry",
    "CapabilityReporter",
    "HandlerWithReporter",
    "TRACKER_API_VERSION",
    "TRACKER_KIND",
    "Condition",
    "ConditionReason",
    "ConditionStatus",
    "ConditionType",
    "FeatureTracker",
    "KubeObject",
    "ObjectMeta",
    "Phase",
    "Source",
    "SourceType",
    "find_condition",
    "set_status_condition",
]
