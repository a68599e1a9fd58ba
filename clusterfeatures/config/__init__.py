"""
Config Module - Black Box Interface

Purpose: Feature engine configuration
Interface: EngineConfig, ConfigProvider, EnvConfigProvider
Hidden: Environment parsing, defaults

Can be replaced with any provider returning an EngineConfig.
"""

from .provider import ConfigProvider, EngineConfig, EnvConfigProvider

__all__ = ["ConfigProvider", "EngineConfig", "EnvConfigProvider"]
