"""Exception hierarchy for declarative_fsm.

All errors raised by the machine derive from :class:`FSMError`, which carries
an optional context dictionary with structured information about the failure.

The errors fall in two groups:

- Configuration-time errors (:class:`ConfigurationError` and its subclasses)
  signal a programming or configuration bug. They are never recovered by the
  machine.
- Per-send errors (:class:`TransitionRejected`, :class:`ActionFailure`) are
  scoped to the result of a single ``send`` call and never corrupt the current
  state or block later sends.

Example:
    ```python
    from declarative_fsm.exceptions import FSMError, TransitionRejected

    try:
        machine.send("checkout")
    except TransitionRejected as e:
        logger.warning(f"Rejected: {e}")
    except FSMError as e:
        logger.error(f"Error: {e}")
        if e.context:
            logger.error(f"Context: {e.context}")
    ```
"""

from typing import Any, Dict, List


class FSMError(Exception):
    """Base exception for all machine errors.

    Attributes:
        context: Dictionary containing contextual information about the error
        details: Alias for context

    Args:
        message: Human-readable error message
        context: Optional dictionary with error context
        details: Alternative to context (takes precedence if both are given)
    """

    def __init__(
        self,
        message: str,
        context: Dict[str, Any] | None = None,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.context = details or context or {}
        self.details = self.context


class ConfigurationError(FSMError):
    """Raised when the machine configuration is invalid or incomplete.

    Common scenarios include:
    - Missing ``init`` state
    - A state definition that is not a mapping
    - Malformed guarded transitions
    - Unresolvable action or predicate references
    - Missing required environment variables during loading
    """

    pass


class AmbiguousGuardError(ConfigurationError):
    """Raised when more than one guard predicate holds for a message."""

    def __init__(self, state: str, message: str, targets: List[str]):
        super().__init__(
            f"Unable to execute transition in state '{state}'. "
            f"More than one predicate is passed for message '{message}': "
            f"{', '.join(targets)}",
            context={"state": state, "message": message, "targets": list(targets)},
        )
        self.state = state
        self.message = message
        self.targets = list(targets)


class TransitionRejected(FSMError):
    """Raised when a message is unknown or unavailable from the current state.

    The cursor is left unchanged and later sends are not affected.
    """

    def __init__(self, message_name: str, state: str | None, reason: str):
        super().__init__(
            f"Message '{message_name}' rejected in state '{state}': {reason}",
            context={"message": message_name, "state": state, "reason": reason},
        )
        self.message_name = message_name
        self.state = state
        self.reason = reason


class ActionFailure(FSMError):
    """Raised when the action of the target state fails.

    The original exception is available as ``__cause__``.
    """

    def __init__(
        self,
        state: str,
        target: str,
        message: str,
        details: Dict[str, Any] | None = None,
    ):
        super().__init__(
            f"Action of state '{target}' failed on transition from '{state}': {message}",
            context={"state": state, "target": target, **(details or {})},
        )
        self.state = state
        self.target = target


class UninitializedMachineError(FSMError):
    """Raised when the machine is used before ``initialize`` was called."""

    def __init__(self, operation: str):
        super().__init__(
            f"You have to initialize the machine before calling '{operation}'.",
            context={"operation": operation},
        )
        self.operation = operation


class ReentrantOperationError(FSMError):
    """Raised when a queued operation schedules another one on the same queue.

    The new operation would wait for the one that scheduled it, so awaiting
    it from inside an action never completes.
    """

    def __init__(self, operation: str, running: str):
        super().__init__(
            f"Cannot schedule '{operation}' from inside the running operation "
            f"'{running}'; send follow-up messages after it settles.",
            context={"operation": operation, "running": running},
        )
        self.operation = operation
        self.running = running


class RemoteConfigurationError(ConfigurationError):
    """Raised when a remote configuration document cannot be retrieved."""

    def __init__(self, url: str, message: str, status: int | None = None):
        if status is not None:
            text = f"Unable to load '{url}'. The server responds with status {status}."
        else:
            text = f"Unable to load '{url}': {message}"
        super().__init__(text, context={"url": url, "status": status, "error": message})
        self.url = url
        self.status = status


__all__ = [
    "FSMError",
    "ConfigurationError",
    "AmbiguousGuardError",
    "TransitionRejected",
    "ActionFailure",
    "UninitializedMachineError",
    "ReentrantOperationError",
    "RemoteConfigurationError",
]
