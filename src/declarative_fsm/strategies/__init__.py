"""Execution strategies of the machine."""

from declarative_fsm.strategies.base import PendingTransition, TransitionStrategy
from declarative_fsm.strategies.serialized import SerializedStrategy
from declarative_fsm.strategies.sync import SyncStrategy

__all__ = [
    "PendingTransition",
    "TransitionStrategy",
    "SerializedStrategy",
    "SyncStrategy",
]
