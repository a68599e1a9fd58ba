"""
Typed feature data.

Features share structured values (e.g. a control plane descriptor) through
named keys. A key is declared once per logical dependency; providers create
entries from it and feature actions read values back through ``extract``,
which fails loudly when the entry was never wired into the feature.
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from .errors import DataNotFoundError, InvalidFeatureError

if TYPE_CHECKING:
    from .feature import Feature

T = TypeVar("T")

Loader = Callable[["Feature"], Awaitable[Any]]


@dataclass(frozen=True)
class DataEntry(Generic[T]):
    """A value (or a loader producing it) bound to a data key."""

    key: str
    value: Any = None
    loader: Optional[Loader] = None
    _resolved: Dict[str, Any] = field(default_factory=dict, init=False, repr=False, compare=False)

    @property
    def is_lazy(self) -> bool:
        return self.loader is not None

    async def load(self, feature: "Feature") -> Any:
        """Run the loader on first use; every feature sharing this entry gets the same value."""
        if "value" not in self._resolved:
            self._resolved["value"] = await self.loader(feature)
        return self._resolved["value"]


class DataKey(Generic[T]):
    """
    Named, typed slot in a feature's data bag.

    Example:
        CONTROL_PLANE = DataKey("control_plane", factory=create_control_plane)

        entry = await CONTROL_PLANE.create(client, instance)
        define("mesh").with_data(entry)
        ...
        control_plane = CONTROL_PLANE.extract(feature)
    """

    def __init__(self, name: str, factory: Optional[Callable[..., Awaitable[T]]] = None):
        self.name = name
        self.factory = factory

    async def create(self, *args, **kwargs) -> DataEntry[T]:
        """Run the factory once and bind its result to this key."""
        if self.factory is None:
            raise TypeError(f"data key '{self.name}' has no factory")
        return DataEntry(self.name, value=await self.factory(*args, **kwargs))

    def define(self, value: T) -> DataEntry[T]:
        return DataEntry(self.name, value=value)

    def lazy(self, loader: Loader) -> DataEntry[T]:
        """Entry resolved on first apply of any feature it is wired into, then shared."""
        return DataEntry(self.name, loader=loader)

    def extract(self, feature: "Feature") -> T:
        """
        Read this key's value from a feature.

        Raises:
            DataNotFoundError: If the feature was built without this key
        """
        return feature.data.get(self.name)

    def __repr__(self) -> str:
        return f"DataKey({self.name!r})"


class FeatureData:
    """Write-once-per-key, read-many data bag of a single feature."""

    def __init__(self, feature_name: str):
        self.feature_name = feature_name
        self._values: Dict[str, Any] = {}
        self._loaders: Dict[str, DataEntry] = {}

    def add(self, entry: DataEntry) -> None:
        if entry.key in self._values or entry.key in self._loaders:
            raise InvalidFeatureError(
                f"data key '{entry.key}' provided more than once for feature '{self.feature_name}'"
            )
        if entry.is_lazy:
            self._loaders[entry.key] = entry
        else:
            self._values[entry.key] = entry.value

    async def resolve(self, feature: "Feature") -> None:
        """Run pending loaders; values loaded once are never reloaded."""
        for key in list(self._loaders):
            self._values[key] = await self._loaders[key].load(feature)
            del self._loaders[key]

    def get(self, key: str) -> Any:
        if key in self._values:
            return self._values[key]
        raise DataNotFoundError(key, self.feature_name)

    def as_context(self) -> Dict[str, Any]:
        """Resolved values keyed by name, used as template context."""
        return dict(self._values)

    def __contains__(self, key: str) -> bool:
        return key in self._values or key in self._loaders

    def __len__(self) -> int:
        return len(self._values) + len(self._loaders)
