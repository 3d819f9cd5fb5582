"""Configuration system for compiling and loading machine configurations.

This package provides:
- **compiler**: Compile raw configurations into state, transition and message tables
- **loader**: Load raw configurations from dicts and JSON/YAML files
- **remote**: Fetch configuration fragments asynchronously
- **schema**: Pydantic models for guarded transitions and machine settings
"""

from declarative_fsm.config.compiler import INITIAL_STATE, MachineConfiguration
from declarative_fsm.config.loader import ConfigLoader
from declarative_fsm.config.remote import ConfigSource, RemoteConfigFetcher
from declarative_fsm.config.schema import Edge, GuardedTransition, MachineSettings, StrategyMode

__all__ = [
    "INITIAL_STATE",
    "MachineConfiguration",
    "ConfigLoader",
    "ConfigSource",
    "RemoteConfigFetcher",
    "Edge",
    "GuardedTransition",
    "MachineSettings",
    "StrategyMode",
]
