"""Configuration schema definitions using Pydantic.

This module defines:
- Guarded transition entries of a multi-way edge
- Machine settings used by the factory to pick a strategy
"""

from enum import Enum
from typing import Any, Callable, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# A predicate is a callable or a string reference resolved by the invoker.
PredicateReference = Union[Callable[..., Any], str]


class GuardedTransition(BaseModel):
    """One candidate target of a guarded edge.

    The predicate is evaluated against the current state snapshot; the edge
    resolves to ``to`` only when exactly one predicate of the list holds.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True, populate_by_name=True)

    predicate: PredicateReference
    to: str = Field(alias="target")

    @field_validator("to")
    @classmethod
    def validate_target(cls, v: str) -> str:
        """Validate the target state name."""
        if not v:
            raise ValueError("Guarded transition target cannot be empty")
        return v

    @field_validator("predicate")
    @classmethod
    def validate_predicate(cls, v: Any) -> Any:
        """Validate that the predicate can be resolved."""
        if isinstance(v, str):
            if not v.strip():
                raise ValueError("Predicate reference cannot be empty")
        elif not callable(v):
            raise ValueError("Predicate must be a callable or a reference string")
        return v


# A compiled edge: a plain target name or an ordered list of guarded transitions.
Edge = Union[str, List[GuardedTransition]]


class StrategyMode(str, Enum):
    """Available execution strategies."""

    SYNC = "sync"
    SERIALIZED = "serialized"


class MachineSettings(BaseModel):
    """Settings used to build a state machine.

    Attributes:
        config: Raw configuration mapping (may be partial when ``source`` is set)
        source: URL or file path of an additional configuration fragment
        mode: Execution strategy; defaults to serialized for URL sources
        timeout: Seconds allowed for a remote fetch
        headers: Extra HTTP headers for a remote fetch
    """

    config: Dict[str, Any] = Field(default_factory=dict)
    source: str | None = None
    mode: StrategyMode | None = None
    timeout: float = Field(default=30.0, gt=0)
    headers: Dict[str, str] = Field(default_factory=dict)

    @property
    def is_remote(self) -> bool:
        return self.source is not None and self.source.startswith(("http://", "https://"))

    @model_validator(mode="after")
    def resolve_mode(self) -> "MachineSettings":
        """Default the mode from the kind of source."""
        if self.mode is None:
            self.mode = StrategyMode.SERIALIZED if self.is_remote else StrategyMode.SYNC
        elif self.mode == StrategyMode.SYNC and self.is_remote:
            raise ValueError("A remote source requires the serialized mode")
        return self
