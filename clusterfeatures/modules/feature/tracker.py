"""
Feature tracking data models.

These models define the persisted shape of FeatureTracker records and of
the status conditions surfaced on owner objects. Field names follow the
Kubernetes wire format (camelCase) through aliases.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

TRACKER_API_VERSION = "features.clusterfeatures.io/v1"
TRACKER_KIND = "FeatureTracker"

# Enums


class ConditionStatus(str, Enum):
    """Status of a condition."""

    TRUE = "True"
    FALSE = "False"
    UNKNOWN = "Unknown"


class ConditionType(str, Enum):
    """Feature-level condition types."""

    AVAILABLE = "Available"
    DEGRADED = "Degraded"
    PROGRESSING = "Progressing"


class ConditionReason(str, Enum):
    """Closed set of condition reasons."""

    # Feature level
    FEATURE_CREATED = "FeatureCreated"
    LOAD_TEMPLATE_DATA = "LoadTemplateData"
    PRE_CONDITIONS = "PreConditions"
    APPLY_MANIFESTS = "ApplyManifests"
    RESOURCE_CREATION = "ResourceCreation"
    POST_CONDITIONS = "PostConditions"

    # Capability level
    CONFIGURED = "Configured"
    REMOVED = "Removed"
    MISSING_OPERATOR = "MissingOperator"


class Phase(str, Enum):
    """Lifecycle phase of a FeatureTracker."""

    PROGRESSING = "Progressing"
    READY = "Ready"
    ERROR = "Error"


class SourceType(str, Enum):
    """Kind of top-level object that caused a feature to exist."""

    PLATFORM_INITIALIZATION = "PlatformInitialization"
    COMPONENT = "Component"
    UNKNOWN = "Unknown"

    @classmethod
    def from_kind(cls, kind: str) -> "SourceType":
        for member in cls:
            if member.value == kind:
                return member
        return cls.UNKNOWN


class WireModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Conditions


class Condition(WireModel):
    """Immutable snapshot of one status condition."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)

    type: str
    status: ConditionStatus
    reason: str
    message: str = ""
    last_transition_time: Optional[datetime] = None

    @field_validator("type", "reason", mode="before")
    @classmethod
    def enum_to_value(cls, v):
        """Store enum members as their plain string value."""
        if isinstance(v, Enum):
            return v.value
        return v

    def failed(self, message: str) -> "Condition":
        """Variant of this condition reporting a failure."""
        return self.model_copy(update={"status": ConditionStatus.FALSE, "message": message})


def find_condition(conditions: List[Condition], condition_type: str) -> Optional[Condition]:
    """Return the condition of the given type, or None."""
    wanted = condition_type.value if isinstance(condition_type, Enum) else condition_type
    for condition in conditions:
        if condition.type == wanted:
            return condition
    return None


def set_status_condition(conditions: List[Condition], new: Condition) -> bool:
    """
    Insert or replace the condition of new's type in place.

    The last transition time only moves when the status changes.

    Returns:
        True if the list was modified
    """
    now = datetime.now(UTC)
    for i, existing in enumerate(conditions):
        if existing.type != new.type:
            continue
        if (existing.status, existing.reason, existing.message) == (
            new.status,
            new.reason,
            new.message,
        ):
            return False
        if existing.status == new.status and existing.last_transition_time:
            transition = existing.last_transition_time
        else:
            transition = now
        conditions[i] = new.model_copy(update={"last_transition_time": transition})
        return True

    conditions.append(new.model_copy(update={"last_transition_time": new.last_transition_time or now}))
    return True


# Object metadata


class OwnerReference(WireModel):
    api_version: str
    kind: str
    name: str
    uid: str
    controller: Optional[bool] = None
    block_owner_deletion: Optional[bool] = None


class ObjectMeta(WireModel):
    name: str
    namespace: Optional[str] = None
    uid: Optional[str] = None
    resource_version: Optional[str] = None
    generation: Optional[int] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)
    owner_references: List[OwnerReference] = Field(default_factory=list)


class KubeObject(WireModel):
    """Typed view over a cluster object."""

    api_version: str
    kind: str
    metadata: ObjectMeta

    def to_object(self) -> Dict[str, Any]:
        """Convert to the wire form accepted by the object store."""
        return self.model_dump(by_alias=True, mode="json", exclude_none=True)

    @classmethod
    def from_object(cls, obj: Dict[str, Any]):
        """Create from the wire form returned by the object store."""
        return cls.model_validate(obj)


# FeatureTracker


class Source(WireModel):
    """Provenance of a feature."""

    type: SourceType = SourceType.UNKNOWN
    name: str = ""


class FeatureTrackerSpec(WireModel):
    source: Source = Field(default_factory=Source)
    app_namespace: str = ""


class FeatureTrackerStatus(WireModel):
    phase: Phase = Phase.PROGRESSING
    conditions: List[Condition] = Field(default_factory=list)


class FeatureTracker(KubeObject):
    """Persisted record mirroring one feature's last-known health."""

    api_version: str = TRACKER_API_VERSION
    kind: str = TRACKER_KIND
    spec: FeatureTrackerSpec = Field(default_factory=FeatureTrackerSpec)
    status: FeatureTrackerStatus = Field(default_factory=FeatureTrackerStatus)

    @classmethod
    def new(
        cls, name: str, namespace: str, source: Source, app_namespace: str
    ) -> "FeatureTracker":
        return cls(
            metadata=ObjectMeta(name=name, namespace=namespace),
            spec=FeatureTrackerSpec(source=source, app_namespace=app_namespace),
        )

    def condition(self, condition_type: str) -> Optional[Condition]:
        return find_condition(self.status.conditions, condition_type)
