"""Configuration provider following Black Box Design principles."""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from ..modules.cluster import FIELD_MANAGER
from ..modules.feature import DEFAULT_INTERVAL, DEFAULT_TIMEOUT

DEFAULT_TEMPLATES_LOCATION = Path(__file__).resolve().parent.parent / "modules" / "servicemesh" / "templates"


@dataclass
class EngineConfig:
    """Feature engine configuration."""
    poll_interval: float = DEFAULT_INTERVAL
    poll_timeout: float = DEFAULT_TIMEOUT
    templates_location: Path = DEFAULT_TEMPLATES_LOCATION
    field_manager: str = FIELD_MANAGER
    log_level: str = "INFO"

    def __post_init__(self):
        if self.poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        if self.poll_timeout < self.poll_interval:
            raise ValueError("poll_timeout must not be shorter than poll_interval")


class ConfigProvider(Protocol):
    """Protocol for configuration providers."""

    def get_engine_config(self) -> EngineConfig:
        """Get feature engine configuration."""
        ...


class EnvConfigProvider:
    """Environment-based configuration provider."""

    def get_engine_config(self) -> EngineConfig:
        """Get feature engine configuration from environment variables."""
        return EngineConfig(
            poll_interval=float(os.getenv("CLUSTERFEATURES_POLL_INTERVAL", str(DEFAULT_INTERVAL))),
            poll_timeout=float(os.getenv("CLUSTERFEATURES_POLL_TIMEOUT", str(DEFAULT_TIMEOUT))),
            templates_location=Path(
                os.getenv("CLUSTERFEATURES_TEMPLATES_LOCATION", str(DEFAULT_TEMPLATES_LOCATION))
            ),
            field_manager=os.getenv("CLUSTERFEATURES_FIELD_MANAGER", FIELD_MANAGER),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
