"""
Feature engine error taxonomy.

Cluster interaction failures are ``ClusterError`` (see the cluster module) and
never derive from ``FeatureError``, so wiring defects such as a missing data
key can always be told apart from an unreachable cluster.
"""

from typing import List, Optional

from .tracker import ConditionReason


class FeatureError(Exception):
    """Base class for feature engine errors."""


class InvalidFeatureError(FeatureError):
    """Feature definition is malformed (e.g. missing name)."""


class FeatureRegistryError(FeatureError):
    """One or more features could not be registered; nothing was registered."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        details = "; ".join(self.errors)
        super().__init__(f"failed to register {len(self.errors)} feature(s): {details}")


class FeaturesProviderError(FeatureError):
    """The features provider failed while populating the registry."""


class DataNotFoundError(FeatureError):
    """A data key was read from a feature which never received it."""

    def __init__(self, key: str, feature_name: Optional[str] = None):
        self.key = key
        self.feature_name = feature_name
        owner = f" in feature '{feature_name}'" if feature_name else ""
        super().__init__(f"data key '{key}' not found{owner}")


class DependencyNotReadyError(FeatureError):
    """An external dependency did not become ready."""


class OperatorNotInstalledError(DependencyNotReadyError):
    """Required operator subscription is missing."""

    def __init__(self, subscription: str):
        self.subscription = subscription
        super().__init__(f"operator subscription '{subscription}' not found")


class FeatureStageError(FeatureError):
    """
    A stage of Feature.apply failed.

    Carries the feature name and the failing stage; the original error is
    chained as ``__cause__``.
    """

    reason: Optional[ConditionReason] = None
    stage = "apply"

    def __init__(self, feature_name: str, cause: BaseException):
        self.feature_name = feature_name
        self.cause = cause
        super().__init__(f"feature '{feature_name}' failed in {self.stage}: {cause}")


class DataLoadError(FeatureStageError):
    reason = ConditionReason.LOAD_TEMPLATE_DATA
    stage = "data loading"


class PreConditionError(FeatureStageError):
    reason = ConditionReason.PRE_CONDITIONS
    stage = "preconditions"


class ManifestApplyError(FeatureStageError):
    reason = ConditionReason.APPLY_MANIFESTS
    stage = "manifest application"


class ResourceCreationError(FeatureStageError):
    reason = ConditionReason.RESOURCE_CREATION
    stage = "resource creation"


class PostConditionError(FeatureStageError):
    reason = ConditionReason.POST_CONDITIONS
    stage = "postconditions"


class CleanupError(FeatureStageError):
    stage = "cleanup"


class EnablementError(FeatureStageError):
    """The enablement predicate itself failed; nothing was written."""

    stage = "enablement check"


class TrackerError(FeatureStageError):
    """The FeatureTracker record could not be read or written."""

    stage = "tracker bookkeeping"
