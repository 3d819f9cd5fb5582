"""Declarative finite state machine.

Given a configuration describing states, the messages that trigger
transitions between them and optional per-state actions, the machine tracks
the current state, validates which messages are legal from it, runs the
target state's action and atomically advances to the resulting state.
"""

__version__ = "0.1.0"

from .config.compiler import MachineConfiguration
from .config.loader import ConfigLoader
from .config.remote import ConfigSource, RemoteConfigFetcher
from .config.schema import GuardedTransition, MachineSettings, StrategyMode
from .core.state import State, StateSnapshot
from .exceptions import (
    ActionFailure,
    AmbiguousGuardError,
    ConfigurationError,
    FSMError,
    ReentrantOperationError,
    RemoteConfigurationError,
    TransitionRejected,
    UninitializedMachineError,
)
from .functions.invoker import ActionInvoker, CallInvoker, FunctionRegistry, InjectingInvoker
from .machine import StateMachine, create_state_machine
from .strategies import SerializedStrategy, SyncStrategy, TransitionStrategy
from .utils.merge import deep_merge

__all__ = [
    "__version__",
    # Machine
    "StateMachine",
    "create_state_machine",
    # Strategies
    "TransitionStrategy",
    "SyncStrategy",
    "SerializedStrategy",
    # Config
    "MachineConfiguration",
    "ConfigLoader",
    "ConfigSource",
    "RemoteConfigFetcher",
    "GuardedTransition",
    "MachineSettings",
    "StrategyMode",
    # State
    "State",
    "StateSnapshot",
    # Functions
    "ActionInvoker",
    "CallInvoker",
    "FunctionRegistry",
    "InjectingInvoker",
    # Errors
    "FSMError",
    "ConfigurationError",
    "AmbiguousGuardError",
    "TransitionRejected",
    "ActionFailure",
    "UninitializedMachineError",
    "ReentrantOperationError",
    "RemoteConfigurationError",
    # Utils
    "deep_merge",
]
