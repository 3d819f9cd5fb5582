"""Core machine components."""

from declarative_fsm.core.resolver import resolve_edge
from declarative_fsm.core.state import State, StateSnapshot

__all__ = [
    "State",
    "StateSnapshot",
    "resolve_edge",
]
