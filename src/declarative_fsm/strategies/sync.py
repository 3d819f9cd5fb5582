"""Immediate (synchronous) transition strategy."""

import inspect
import logging
from collections.abc import Mapping
from typing import Any, Dict, List

from declarative_fsm.strategies.base import TransitionStrategy

logger = logging.getLogger(__name__)


class SyncStrategy(TransitionStrategy):
    """Strategy running every operation immediately.

    Actions must return their result directly. An action returning an
    awaitable fails with :class:`~declarative_fsm.exceptions.ActionFailure`;
    use :class:`~declarative_fsm.strategies.serialized.SerializedStrategy`
    for asynchronous actions.
    """

    def initialize(self) -> str:
        return self._initialize_now()

    def get_states(self) -> List[str]:
        return self._states_now()

    def get_messages(self) -> List[str]:
        return self._messages_now()

    def has_message(self, message: str) -> bool:
        return self._has_message_now(message)

    def is_available(self, message: str) -> bool:
        return self._is_available_now(message)

    def available(self) -> List[str]:
        return self._available_now()

    def get_current_state(self) -> str:
        return self._current_state_now()

    def get_current_params(self) -> Dict[str, Any] | None:
        return self._current_params_now()

    def send(self, message: str, parameters: Mapping[str, Any] | None = None) -> str:
        """Send a message and move to the resulting state.

        Returns:
            Name of the new current state.

        Raises:
            TransitionRejected: If the message cannot be processed now.
            AmbiguousGuardError: If more than one guard matched.
            ActionFailure: If the action raised or returned an awaitable.
        """
        pending = self._prepare(message, parameters)
        result = self._invoke_action(pending)

        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise self._action_failure(
                pending,
                TypeError("asynchronous action requires the serialized strategy"),
            )

        return self._complete(pending, result)
