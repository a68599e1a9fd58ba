"""
Custom logging configuration with feature context
"""

import logging
import logging.config
from typing import Any, Dict


class FeatureContextFilter(logging.Filter):
    """Filter guaranteeing every record carries a ``feature`` attribute."""

    def filter(self, record: logging.LogRecord) -> bool:
        """Default the feature name for records logged outside a feature."""
        if not hasattr(record, "feature"):
            record.feature = "-"
        return True  # Never suppress anything


def get_logging_config(level: str = "INFO") -> Dict[str, Any]:
    """Get logging configuration for the feature engine loggers."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "filters": {
            "feature_context": {
                "()": FeatureContextFilter
            }
        },
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
            },
            "feature": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - [%(feature)s] %(message)s"
            }
        },
        "handlers": {
            "default": {
                "class": "logging.StreamHandler",
                "formatter": "default",
                "stream": "ext://sys.stdout"
            },
            "feature": {
                "class": "logging.StreamHandler",
                "formatter": "feature",
                "stream": "ext://sys.stdout",
                "filters": ["feature_context"]  # Formatter needs the attribute
            }
        },
        "loggers": {
            "clusterfeatures": {
                "handlers": ["feature"],
                "level": level,
                "propagate": False
            },
            "kubernetes": {
                "handlers": ["default"],
                "level": "WARNING",
                "propagate": False
            }
        },
        "root": {
            "level": level,
            "handlers": ["default"]
        }
    }


def configure_logging(level: str = "INFO") -> None:
    """Apply the logging configuration."""
    logging.config.dictConfig(get_logging_config(level))
