import logging
from pathlib import Path

import pytest

from clusterfeatures.config import EngineConfig, EnvConfigProvider
from clusterfeatures.logging_config import FeatureContextFilter, get_logging_config


def test_defaults(monkeypatch):
    for name in (
        "CLUSTERFEATURES_POLL_INTERVAL",
        "CLUSTERFEATURES_POLL_TIMEOUT",
        "CLUSTERFEATURES_TEMPLATES_LOCATION",
        "CLUSTERFEATURES_FIELD_MANAGER",
        "LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)

    config = EnvConfigProvider().get_engine_config()

    assert config.poll_interval == 2.0
    assert config.poll_timeout == 300.0
    assert config.field_manager == "clusterfeatures"
    assert config.log_level == "INFO"
    assert (config.templates_location / "servicemesh" / "create-smcp.tmpl.yaml").is_file()


def test_environment_overrides(monkeypatch, tmp_path):
    monkeypatch.setenv("CLUSTERFEATURES_POLL_INTERVAL", "0.5")
    monkeypatch.setenv("CLUSTERFEATURES_POLL_TIMEOUT", "30")
    monkeypatch.setenv("CLUSTERFEATURES_TEMPLATES_LOCATION", str(tmp_path))
    monkeypatch.setenv("CLUSTERFEATURES_FIELD_MANAGER", "platform-operator")
    monkeypatch.setenv("LOG_LEVEL", "debug")

    config = EnvConfigProvider().get_engine_config()

    assert config.poll_interval == 0.5
    assert config.poll_timeout == 30.0
    assert config.templates_location == Path(tmp_path)
    assert config.field_manager == "platform-operator"
    assert config.log_level == "DEBUG"


@pytest.mark.parametrize("interval,timeout", [(0, 10), (-1, 10), (5, 1)])
def test_invalid_polling_rejected(interval, timeout):
    with pytest.raises(ValueError):
        EngineConfig(poll_interval=interval, poll_timeout=timeout)


def test_logging_config_level():
    config = get_logging_config("DEBUG")

    assert config["loggers"]["clusterfeatures"]["level"] == "DEBUG"
    assert config["loggers"]["kubernetes"]["level"] == "WARNING"
    assert config["root"]["level"] == "DEBUG"


def test_feature_filter_defaults_context():
    record = logging.LogRecord("clusterfeatures.feature", logging.INFO, __file__, 1, "msg", None, None)

    assert FeatureContextFilter().filter(record) is True
    assert record.feature == "-"


def test_feature_filter_keeps_existing_context():
    record = logging.LogRecord("clusterfeatures.feature", logging.INFO, __file__, 1, "msg", None, None)
    record.feature = "mesh-shared-configmap"

    FeatureContextFilter().filter(record)

    assert record.feature == "mesh-shared-configmap"
