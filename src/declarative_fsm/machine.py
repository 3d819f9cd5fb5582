"""State machine facade and factory.

:class:`StateMachine` exposes the public operations and delegates them to the
strategy selected at construction time. :func:`create_state_machine` picks the
strategy from the arguments:

- a remote source (URL or :class:`~declarative_fsm.config.remote.ConfigSource`)
  or ``mode="serialized"`` selects the serialized (asyncio) strategy
- otherwise the immediate (synchronous) strategy is used

Example:
    ```python
    from declarative_fsm import create_state_machine

    def on_mid(name):
        return {"x": 1}

    machine = create_state_machine({
        "init": {"transitions": {"go": "mid"}},
        "mid": {"transitions": {"finish": "end"}, "action": on_mid},
        "end": {},
    })
    machine.initialize()
    machine.send("go")
    machine.send("finish")
    machine.get_current_state()   # 'end'
    machine.get_current_params()  # {'x': 1}
    ```

With the serialized strategy every operation returns an awaitable::

    machine = create_state_machine(local_config, source="https://example.com/machine.json")
    machine.initialize()
    machine.send("go")
    state = await machine.get_current_state()
"""

import logging
from collections.abc import Mapping
from typing import Any

from declarative_fsm.config.compiler import MachineConfiguration
from declarative_fsm.config.loader import ConfigLoader
from declarative_fsm.config.remote import ConfigSource, RemoteConfigFetcher, local_path
from declarative_fsm.config.schema import MachineSettings, StrategyMode
from declarative_fsm.functions.invoker import ActionInvoker, FunctionRegistry, InjectingInvoker
from declarative_fsm.strategies.base import TransitionStrategy
from declarative_fsm.strategies.serialized import SerializedStrategy
from declarative_fsm.strategies.sync import SyncStrategy

logger = logging.getLogger(__name__)


class StateMachine:
    """Manage a state machine through a transition strategy.

    Args:
        strategy: Strategy executing the operations
    """

    def __init__(self, strategy: TransitionStrategy):
        self._strategy = strategy

    @classmethod
    def from_settings(
        cls,
        settings: MachineSettings,
        registry: FunctionRegistry | None = None,
        invoker: ActionInvoker | None = None,
    ) -> "StateMachine":
        """Build a machine from validated settings."""
        return create_state_machine(
            settings.config,
            source=settings.source,
            mode=settings.mode,
            registry=registry,
            invoker=invoker,
            timeout=settings.timeout,
            headers=settings.headers,
        )

    @property
    def strategy(self) -> TransitionStrategy:
        return self._strategy

    @property
    def configuration(self) -> MachineConfiguration:
        return self._strategy.configuration

    @property
    def is_serialized(self) -> bool:
        return isinstance(self._strategy, SerializedStrategy)

    def extend(self, extension: Mapping[str, Any]) -> None:
        """Extend the raw configuration.

        Must not be called while a transition is outstanding. The change is
        compiled by the next ``initialize``.
        """
        self._strategy.configuration.extend(extension)

    def initialize(self) -> Any:
        """Initialize the machine and set the current state to ``init``.

        Calling it again discards any progress.
        """
        return self._strategy.initialize()

    def get_states(self) -> Any:
        """Get the names of the states."""
        return self._strategy.get_states()

    def get_messages(self) -> Any:
        """Get the names of the messages."""
        return self._strategy.get_messages()

    def has_message(self, message: str) -> Any:
        """Check if the message is one of the messages of the machine."""
        return self._strategy.has_message(message)

    def is_available(self, message: str) -> Any:
        """Check if the message is available for the current state."""
        return self._strategy.is_available(message)

    def available(self) -> Any:
        """Get the messages available for the current state."""
        return self._strategy.available()

    def get_current_state(self) -> Any:
        """Get the name of the current state."""
        return self._strategy.get_current_state()

    def get_current_params(self) -> Any:
        """Get a copy of the params of the current state."""
        return self._strategy.get_current_params()

    def send(self, message: str, parameters: Mapping[str, Any] | None = None) -> Any:
        """Send a message and change the current state according to the transitions.

        Args:
            message: Message name
            parameters: Optional parameters merged into the action arguments
        """
        return self._strategy.send(message, parameters)

    def __repr__(self) -> str:
        return f"StateMachine(strategy={type(self._strategy).__name__})"


def create_state_machine(
    config: Mapping[str, Any] | None = None,
    *,
    source: str | ConfigSource | None = None,
    mode: StrategyMode | str | None = None,
    registry: FunctionRegistry | None = None,
    invoker: ActionInvoker | None = None,
    timeout: float = 30.0,
    headers: Mapping[str, str] | None = None,
) -> StateMachine:
    """Create a state machine.

    Args:
        config: Raw configuration (may be partial when ``source`` is given)
        source: URL, file path or ConfigSource of an additional fragment
        mode: ``"sync"`` or ``"serialized"``; defaults from ``source``
        registry: Registry resolving string action/predicate references
        invoker: Custom invoker; defaults to an InjectingInvoker with the
            machine registered as the ``machine`` service
        timeout: Timeout of a remote fetch
        headers: Extra headers of a remote fetch

    Returns:
        A new StateMachine.
    """
    configuration = MachineConfiguration(config)

    config_source: ConfigSource | None = None
    if isinstance(source, str):
        if source.startswith(("http://", "https://")):
            config_source = RemoteConfigFetcher(source, timeout=timeout, headers=dict(headers or {}))
        else:
            configuration.extend(ConfigLoader().load_from_file(local_path(source)))
    elif source is not None:
        config_source = source

    if mode is None:
        mode = StrategyMode.SERIALIZED if config_source is not None else StrategyMode.SYNC
    mode = StrategyMode(mode)
    if mode == StrategyMode.SYNC and config_source is not None:
        raise ValueError("A remote configuration source requires the serialized mode")

    injecting = None
    if invoker is None:
        injecting = InjectingInvoker(registry)
        invoker = injecting

    strategy: TransitionStrategy
    if mode == StrategyMode.SERIALIZED:
        strategy = SerializedStrategy(configuration, invoker, source=config_source)
    else:
        strategy = SyncStrategy(configuration, invoker)

    machine = StateMachine(strategy)
    if injecting is not None:
        injecting.add_service("machine", machine)

    logger.debug(f"Created {machine!r}")
    return machine
