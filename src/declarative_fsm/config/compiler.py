"""Configuration compiler.

Translates the raw, nested configuration into the tables used by the
machine:

- **states**: state name -> :class:`State`
- **transitions**: state name -> message name -> edge
- **messages**: every message name mentioned under a ``transitions`` block,
  deduplicated, in first-seen order

Raw configuration format:
    ```python
    {
        "init": {"transitions": {"go": "mid"}},
        "mid": {
            "action": on_mid,
            "transitions": {
                "finish": [
                    {"predicate": is_valid, "to": "end"},
                    {"predicate": is_invalid, "to": "init"},
                ],
            },
        },
        "end": {},
    }
    ```

The configuration can arrive in pieces (for example a local part plus a
remotely fetched one). ``extend`` deep-merges a fragment into the raw
configuration and the next ``configure`` recompiles, accumulating into the
existing tables.
"""

import copy
import logging
from collections.abc import Mapping
from typing import Any, Dict, List

from pydantic import ValidationError

from declarative_fsm.config.schema import Edge, GuardedTransition
from declarative_fsm.core.state import State
from declarative_fsm.exceptions import ConfigurationError
from declarative_fsm.utils.merge import deep_merge

logger = logging.getLogger(__name__)

INITIAL_STATE = "init"


class MachineConfiguration:
    """Compiles a raw configuration into state, transition and message tables."""

    def __init__(self, config: Mapping[str, Any] | None = None):
        """Initialize the configuration.

        Args:
            config: Raw configuration. It is copied, never mutated.
        """
        self._config: Dict[str, Any] = _copy_config(config or {})
        self._states: Dict[str, State] = {}
        self._transitions: Dict[str, Dict[str, Edge]] = {}
        self._messages: List[str] = []
        self._configured = False

    @property
    def is_configured(self) -> bool:
        """True once compiled and not extended since."""
        return self._configured

    def get_states(self) -> Dict[str, State]:
        return self._states

    def get_messages(self) -> List[str]:
        return self._messages

    def get_transitions(self) -> Dict[str, Dict[str, Edge]]:
        return self._transitions

    def get_raw(self) -> Dict[str, Any]:
        """Return a copy of the raw (uncompiled) configuration."""
        return _copy_config(self._config)

    def extend(self, extension: Mapping[str, Any] | None) -> None:
        """Extend the raw configuration with another fragment.

        Useful to build distributed configuration sets. The fragment's values
        win on conflicts. Takes effect on the next ``configure``.

        Args:
            extension: Raw configuration fragment.
        """
        if not extension:
            return
        self._config = deep_merge(self._config, _copy_config(extension))
        self._configured = False
        logger.debug(f"Configuration extended with states: {list(extension.keys())}")

    def configure(self) -> None:
        """Compile the raw configuration.

        Creates the states, the messages and the transitions available to the
        machine. Existing tables are updated rather than replaced.

        Raises:
            ConfigurationError: If the ``init`` state is missing or a state or
                edge definition is malformed.
        """
        if INITIAL_STATE not in self._config:
            raise ConfigurationError(
                f"You have to create '{INITIAL_STATE}' state.",
                context={"states": list(self._config.keys())},
            )

        for name, definition in self._config.items():
            _require_name("State", name, context={"state": name})
            if definition is None:
                definition = {}
            if not isinstance(definition, Mapping):
                raise ConfigurationError(
                    f"State '{name}' must be defined by a mapping, got {type(definition).__name__}",
                    context={"state": name},
                )

            definition = dict(definition)
            transitions = definition.pop("transitions", None) or {}
            if not isinstance(transitions, Mapping):
                raise ConfigurationError(
                    f"Transitions of state '{name}' must be a mapping",
                    context={"state": name},
                )

            edges = self._transitions.setdefault(name, {})
            for message, edge in transitions.items():
                _require_name("Message", message, context={"state": name, "message": message})
                if message not in self._messages:
                    self._messages.append(message)
                edges[message] = _compile_edge(name, message, edge)

            state = self._states.get(name)
            if state is None:
                state = State(name=name)
                self._states[name] = state
            state.update(definition)

        self._configured = True
        logger.debug(
            f"Configured {len(self._states)} states and {len(self._messages)} messages"
        )


def _require_name(kind: str, name: Any, context: Dict[str, Any]) -> None:
    # YAML 1.1 turns keys such as `on` or `no` into booleans
    if not isinstance(name, str):
        raise ConfigurationError(
            f"{kind} name {name!r} must be a string, got {type(name).__name__}; "
            f"quote it in YAML documents",
            context=context,
        )


def _compile_edge(state: str, message: str, edge: Any) -> Edge:
    if isinstance(edge, str):
        if not edge:
            raise ConfigurationError(
                f"Empty target for message '{message}' in state '{state}'",
                context={"state": state, "message": message},
            )
        return edge

    if isinstance(edge, (list, tuple)):
        guarded: List[GuardedTransition] = []
        for entry in edge:
            if isinstance(entry, GuardedTransition):
                guarded.append(entry)
                continue
            try:
                guarded.append(GuardedTransition.model_validate(entry))
            except ValidationError as e:
                raise ConfigurationError(
                    f"Invalid guarded transition for message '{message}' in state '{state}'",
                    context={"state": state, "message": message, "errors": e.errors()},
                ) from e
        return guarded

    raise ConfigurationError(
        f"Transition for message '{message}' in state '{state}' must be a state name "
        f"or a list of guarded transitions",
        context={"state": state, "message": message},
    )


def _copy_config(config: Mapping[str, Any]) -> Dict[str, Any]:
    # Deep copy the structure; callables and other leaves stay shared
    def copy_value(value: Any) -> Any:
        if isinstance(value, Mapping):
            return {k: copy_value(v) for k, v in value.items()}
        if isinstance(value, list):
            return [copy_value(v) for v in value]
        if callable(value):
            return value
        return copy.copy(value)

    return {k: copy_value(v) for k, v in config.items()}
