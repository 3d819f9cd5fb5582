"""Serialized (asynchronous) transition strategy.

Every operation is scheduled on a single-slot queue: the strategy keeps a
handle on the last scheduled task (the tail) and each new operation is a
task that first waits for the tail to settle and then becomes the new tail.
This gives strict FIFO ordering across overlapping callers::

    first = machine.send("go")        # action still pending
    second = machine.send("finish")   # evaluated after `first` settles
    await second

Queries (``available``, ``is_available``, ``get_current_state``, ...) go
through the same queue, so they reflect the state after every previously
scheduled transition has settled.

A failed operation propagates its error to its own awaiter only. When it is
still the tail, the tail is reset to idle so later operations start a fresh
chain. An operation cannot schedule another one while it runs: the new
operation would wait for its own caller, so an action calling ``machine.send``
raises :class:`~declarative_fsm.exceptions.ReentrantOperationError` instead.
There is no built-in timeout: an action that never settles stalls the
queue; wrap such actions with ``asyncio.wait_for`` before registering them.
"""

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Dict, List, Tuple

from declarative_fsm.config.compiler import MachineConfiguration
from declarative_fsm.config.remote import ConfigSource
from declarative_fsm.exceptions import (
    ConfigurationError,
    ReentrantOperationError,
    UninitializedMachineError,
)
from declarative_fsm.functions.invoker import ActionInvoker
from declarative_fsm.strategies.base import TransitionStrategy

logger = logging.getLogger(__name__)


class SerializedStrategy(TransitionStrategy):
    """Strategy queueing every operation on a FIFO chain of asyncio tasks.

    Operations must be called from a running event loop and return
    ``asyncio.Task`` objects.

    Args:
        configuration: The machine configuration
        invoker: Invoker used for actions and predicates
        source: Optional source fetched and merged into the configuration
            during ``initialize``
    """

    def __init__(
        self,
        configuration: MachineConfiguration,
        invoker: ActionInvoker,
        source: ConfigSource | None = None,
    ):
        super().__init__(configuration, invoker)
        self.source = source
        self._tail: asyncio.Task | None = None
        self._running: Tuple[asyncio.Task, str] | None = None
        self._scheduled = False
        self._fetched = False

    @property
    def is_idle(self) -> bool:
        """True when no operation is queued or running."""
        return self._tail is None or self._tail.done()

    def _schedule(
        self, name: str, operation: Callable[[], Any], *, initializing: bool = False
    ) -> "asyncio.Task[Any]":
        """Attach an operation to the tail of the queue.

        Args:
            name: Operation name, used for the task name and errors
            operation: Callable run once the previous tail settled; may
                return an awaitable
            initializing: Allow scheduling before the first ``initialize``

        Returns:
            The task running the operation.

        Raises:
            UninitializedMachineError: If ``initialize`` was never called.
            ReentrantOperationError: If called from inside a running operation
                (for example an action awaiting ``machine.send``).
        """
        if not (self._scheduled or initializing):
            raise UninitializedMachineError(name)

        loop = asyncio.get_running_loop()
        running = self._running
        if running is not None and asyncio.current_task() is running[0]:
            raise ReentrantOperationError(name, running[1])

        previous = self._tail

        async def run() -> Any:
            current = asyncio.current_task()
            if previous is not None and not previous.done():
                # Settle without re-raising; the error belongs to its own awaiter
                await asyncio.wait([previous])
            self._running = (current, name)
            try:
                result = operation()
                if inspect.isawaitable(result):
                    result = await result
            except BaseException:
                if self._tail is current:
                    logger.debug(f"Operation '{name}' failed; queue reset")
                    self._tail = None
                raise
            finally:
                self._running = None
            return result

        task = loop.create_task(run(), name=f"fsm-{name}")
        if not task.done():
            self._tail = task
        self._scheduled = True
        logger.debug(f"Scheduled '{name}' (waiting: {previous is not None and not previous.done()})")
        return task

    def initialize(self) -> "asyncio.Task[str]":
        """Schedule the initialization.

        Fetches the configured source (once), extends the configuration with
        it, compiles and moves to ``init``.
        """
        return self._schedule("initialize", self._initialize, initializing=True)

    async def _initialize(self) -> str:
        if self.source is not None and not self._fetched:
            fragment = await self.source.fetch()
            if not isinstance(fragment, Mapping):
                raise ConfigurationError(
                    f"Configuration source returned {type(fragment).__name__}, expected a mapping"
                )
            self.configuration.extend(fragment)
            self._fetched = True
        return self._initialize_now()

    def get_states(self) -> "asyncio.Task[List[str]]":
        return self._schedule("get_states", self._states_now)

    def get_messages(self) -> "asyncio.Task[List[str]]":
        return self._schedule("get_messages", self._messages_now)

    def has_message(self, message: str) -> "asyncio.Task[bool]":
        return self._schedule("has_message", lambda: self._has_message_now(message))

    def is_available(self, message: str) -> "asyncio.Task[bool]":
        return self._schedule("is_available", lambda: self._is_available_now(message))

    def available(self) -> "asyncio.Task[List[str]]":
        return self._schedule("available", self._available_now)

    def get_current_state(self) -> "asyncio.Task[str]":
        return self._schedule("get_current_state", self._current_state_now)

    def get_current_params(self) -> "asyncio.Task[Dict[str, Any] | None]":
        return self._schedule("get_current_params", self._current_params_now)

    def send(
        self, message: str, parameters: Mapping[str, Any] | None = None
    ) -> "asyncio.Task[str]":
        """Schedule a message; the task result is the new current state name.

        Validation happens when the operation runs, against the state left by
        every previously scheduled operation.
        """
        return self._schedule(f"send:{message}", lambda: self._send(message, parameters))

    async def _send(self, message: str, parameters: Mapping[str, Any] | None) -> str:
        pending = self._prepare(message, parameters)
        result = self._invoke_action(pending)

        if inspect.isawaitable(result):
            result = await self._settle(pending, result)

        return self._complete(pending, result)

    async def _settle(self, pending: Any, awaitable: Awaitable[Any]) -> Any:
        try:
            return await awaitable
        except (ConfigurationError, ReentrantOperationError):
            raise
        except Exception as e:
            raise self._action_failure(pending, e) from e
