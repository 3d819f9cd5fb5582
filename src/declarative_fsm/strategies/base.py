"""Base transition strategy.

A strategy is the way the machine resolves transitions to go ahead state by
state. All strategies share the transition logic implemented here and differ
only in how the work is scheduled:

- :class:`~declarative_fsm.strategies.sync.SyncStrategy` runs every
  operation immediately and returns plain values.
- :class:`~declarative_fsm.strategies.serialized.SerializedStrategy` queues
  every operation on a single FIFO chain and returns awaitables.

Transition lifecycle:
    **1. Prepare:** the message is validated against the current state, the
    edge is resolved and the action arguments are built from a snapshot of
    the current state merged with the send parameters.

    **2. Invoke:** the target state's action (if any) is called through the
    invoker. Its result may be a value or an awaitable.

    **3. Complete:** the result is merged into the target state's params and
    the cursor moves to the target state. Nothing is committed before this
    step, so a failure anywhere earlier leaves the cursor untouched.
"""

import copy
import logging
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, List

from declarative_fsm.config.compiler import INITIAL_STATE, MachineConfiguration
from declarative_fsm.core.resolver import resolve_edge
from declarative_fsm.core.state import State, StateSnapshot
from declarative_fsm.exceptions import (
    ActionFailure,
    ConfigurationError,
    ReentrantOperationError,
    TransitionRejected,
    UninitializedMachineError,
)
from declarative_fsm.functions.invoker import ActionInvoker
from declarative_fsm.utils.merge import deep_merge

logger = logging.getLogger(__name__)


@dataclass
class PendingTransition:
    """A validated transition waiting for its action result."""

    message: str
    source: State
    target: State
    arguments: Dict[str, Any]


class TransitionStrategy(ABC):
    """Interface shared by all execution strategies.

    Args:
        configuration: The machine configuration
        invoker: Invoker used for actions and predicates
    """

    def __init__(self, configuration: MachineConfiguration, invoker: ActionInvoker):
        self.configuration = configuration
        self.invoker = invoker
        self._current: State | None = None

    @property
    def is_initialized(self) -> bool:
        return self._current is not None

    @abstractmethod
    def initialize(self) -> Any:
        """Initialize the machine and set the current state to ``init``."""

    @abstractmethod
    def get_states(self) -> Any:
        """Names of all states."""

    @abstractmethod
    def get_messages(self) -> Any:
        """All message names of the machine."""

    @abstractmethod
    def has_message(self, message: str) -> Any:
        """Whether ``message`` is one of the messages of the machine."""

    @abstractmethod
    def is_available(self, message: str) -> Any:
        """Whether ``message`` has an outgoing edge from the current state."""

    @abstractmethod
    def available(self) -> Any:
        """Messages with an outgoing edge from the current state."""

    @abstractmethod
    def send(self, message: str, parameters: Mapping[str, Any] | None = None) -> Any:
        """Send a message and move to the resulting state."""

    @abstractmethod
    def get_current_state(self) -> Any:
        """Name of the current state."""

    @abstractmethod
    def get_current_params(self) -> Any:
        """Copy of the params of the current state."""

    # ------------------------------------------------------------------
    # Immediate operations shared by the strategies
    # ------------------------------------------------------------------

    def _initialize_now(self) -> str:
        if self._current is not None:
            logger.info("Re-initializing machine; previous progress is discarded")
        if not self.configuration.is_configured:
            self.configuration.configure()

        state = self.configuration.get_states()[INITIAL_STATE]
        state.params = {}
        self._current = state
        logger.info(f"Machine initialized in state '{INITIAL_STATE}'")
        return state.name

    def _require_current(self, operation: str) -> State:
        if self._current is None:
            raise UninitializedMachineError(operation)
        return self._current

    def _states_now(self) -> List[str]:
        self._require_current("get_states")
        return list(self.configuration.get_states().keys())

    def _messages_now(self) -> List[str]:
        self._require_current("get_messages")
        return list(self.configuration.get_messages())

    def _has_message_now(self, message: str) -> bool:
        self._require_current("has_message")
        return message in self.configuration.get_messages()

    def _edges(self, state: State) -> Dict[str, Any]:
        return self.configuration.get_transitions().get(state.name, {})

    def _is_available_now(self, message: str) -> bool:
        current = self._require_current("is_available")
        return message in self._edges(current)

    def _available_now(self) -> List[str]:
        current = self._require_current("available")
        return list(self._edges(current).keys())

    def _current_state_now(self) -> str:
        return self._require_current("get_current_state").name

    def _current_params_now(self) -> Dict[str, Any] | None:
        current = self._require_current("get_current_params")
        return copy.deepcopy(current.params)

    # ------------------------------------------------------------------
    # Transition steps
    # ------------------------------------------------------------------

    def _prepare(self, message: str, parameters: Mapping[str, Any] | None) -> PendingTransition:
        """Validate the message and build the pending transition.

        Raises:
            TransitionRejected: If the message is unknown, unavailable or no
                guard matched.
            AmbiguousGuardError: If more than one guard matched.
        """
        current = self._require_current("send")

        if not self._has_message_now(message):
            logger.warning(f"Unknown message '{message}' in state '{current.name}'")
            raise TransitionRejected(message, current.name, "unknown message")
        if not self._is_available_now(message):
            logger.warning(f"Message '{message}' not available in state '{current.name}'")
            raise TransitionRejected(message, current.name, "message not available")

        edge = self._edges(current)[message]
        target_name = resolve_edge(
            edge,
            current.snapshot(),
            self._evaluate_predicate,
            source=current.name,
            message=message,
        )
        if target_name is None:
            logger.warning(f"No guard matched for '{message}' in state '{current.name}'")
            raise TransitionRejected(message, current.name, "no guard matched")

        target = self.configuration.get_states().get(target_name)
        if target is None:
            raise ConfigurationError(
                f"Transition '{message}' from '{current.name}' targets unknown state "
                f"'{target_name}'",
                context={"state": current.name, "message": message, "target": target_name},
            )

        arguments = current.snapshot(parameters).to_dict()
        return PendingTransition(message, current, target, arguments)

    def _evaluate_predicate(self, predicate: Any, snapshot: StateSnapshot) -> Any:
        arguments = {**snapshot.to_dict(), "state": snapshot}
        return self.invoker.invoke(predicate, self, arguments)

    def _invoke_action(self, pending: PendingTransition) -> Any:
        """Call the target state's action; returns its raw result."""
        if not pending.target.has_action:
            return None
        try:
            return self.invoker.invoke(pending.target.action, self, pending.arguments)
        except (ConfigurationError, ReentrantOperationError):
            raise
        except Exception as e:
            raise self._action_failure(pending, e) from e

    def _action_failure(self, pending: PendingTransition, error: BaseException) -> ActionFailure:
        logger.error(
            f"Action of state '{pending.target.name}' failed on '{pending.message}': {error}"
        )
        return ActionFailure(
            pending.source.name,
            pending.target.name,
            str(error) or type(error).__name__,
            details={"message": pending.message, "error_type": type(error).__name__},
        )

    def _complete(self, pending: PendingTransition, result: Any) -> str:
        """Merge the action result and commit the target state."""
        source, target = pending.source, pending.target

        if isinstance(result, Mapping):
            target.params = deep_merge(target.params or {}, result)
        elif not result:
            if source.params is not None:
                target.params = source.params
        else:
            raise self._action_failure(
                pending,
                TypeError(f"action returned {type(result).__name__}, expected a mapping"),
            )

        self._current = target
        logger.info(f"Transition {source.name} --{pending.message}--> {target.name}")
        return target.name
