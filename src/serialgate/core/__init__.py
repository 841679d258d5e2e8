"""
Core gateway functionality.

Contains configuration, data models, and the exception hierarchy.
"""

from serialgate.core.config import Config, load_config
from serialgate.core.exceptions import (
    ConfigError,
    PortClosedError,
    PortError,
    PortOpenError,
    SerialGateError,
)
from serialgate.core.models import (
    ABSENT,
    IntervalField,
    LifecycleAction,
    LifecycleEvent,
    PortConfig,
    PortState,
    Record,
    ScalarField,
    SessionConfig,
)

__all__ = [
    "Config",
    "load_config",
    "SerialGateError",
    "ConfigError",
    "PortError",
    "PortOpenError",
    "PortClosedError",
    "PortState",
    "LifecycleAction",
    "LifecycleEvent",
    "PortConfig",
    "SessionConfig",
    "ScalarField",
    "IntervalField",
    "ABSENT",
    "Record",
]
