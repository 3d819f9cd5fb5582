"""State definitions for the machine.

Architecture:
    **State (compiled node):**
    - Created once per top-level key of the raw configuration
    - Holds the optional entry action and the params carried between states
    - Never removed once compiled; ``params`` is replaced or merged on every
      transition that lands in the state

    **StateSnapshot (action argument):**
    - Immutable copy of the current state taken before an action runs
    - Carries the state name and a read-only view of its params
    - Never exposes the action itself
"""

import copy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Callable, Dict, Mapping, Union

from declarative_fsm.utils.merge import deep_merge

# An action is a callable or a string reference resolved by the invoker.
ActionReference = Union[Callable[..., Any], str]


@dataclass
class State:
    """A named node of the machine.

    Attributes:
        name: State name, derived from its key in the raw configuration
        action: Optional callable (or reference) invoked on entry
        params: Mapping carried forward between states, ``None`` until the
            state is first entered
        attributes: Any other keys declared for the state, kept as-is
    """

    name: str
    action: ActionReference | None = None
    params: Dict[str, Any] | None = None
    attributes: Dict[str, Any] = field(default_factory=dict)

    @property
    def has_action(self) -> bool:
        return self.action is not None

    def update(self, definition: Mapping[str, Any]) -> None:
        """Apply a raw state definition (without its transitions) to this state."""
        for key, value in definition.items():
            if key == "action":
                self.action = value
            elif key == "params":
                self.params = deep_merge(self.params, value)
            elif key != "name":
                self.attributes[key] = value

    def snapshot(self, parameters: Mapping[str, Any] | None = None) -> "StateSnapshot":
        """Take an immutable snapshot, optionally merging extra parameters.

        Args:
            parameters: Parameters supplied with a ``send``; merged over a copy
                of the state params.

        Returns:
            StateSnapshot holding the name and the merged params.
        """
        params = copy.deepcopy(self.params) if self.params is not None else None
        if parameters:
            params = deep_merge(params, parameters)
        return StateSnapshot(self.name, params)


@dataclass(frozen=True)
class StateSnapshot:
    """Read-only copy of a state handed to actions and predicates."""

    name: str
    params: Mapping[str, Any] | None = None

    def __post_init__(self) -> None:
        if self.params is not None and not isinstance(self.params, MappingProxyType):
            object.__setattr__(self, "params", MappingProxyType(dict(self.params)))

    def to_dict(self) -> Dict[str, Any]:
        """Arguments mapping used for action invocation."""
        return {
            "name": self.name,
            "params": dict(self.params) if self.params is not None else None,
        }
