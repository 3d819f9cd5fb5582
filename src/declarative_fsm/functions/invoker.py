"""Invocation of actions and predicates.

The machine never calls an action or a predicate directly. It hands the
reference, a context object and an arguments mapping to an
:class:`ActionInvoker`, which returns either a plain value or an awaitable.

Two invokers are provided:

- :class:`InjectingInvoker` fills the callable's parameters by name, so an
  action can declare exactly the values it needs::

      def on_checkout(name, cart, machine):
          ...

  receives the name of the previous state, the ``cart`` entry of its params
  and the machine registered as a service.

- :class:`CallInvoker` passes the arguments mapping as a single positional
  argument.

References are resolved through a :class:`FunctionRegistry`: a callable is
used as-is, a string is looked up among registered names and then treated as
an import path ``"package.module:attribute"``.
"""

import importlib
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Callable, Dict, Protocol, Union, runtime_checkable

from declarative_fsm.exceptions import ConfigurationError

logger = logging.getLogger(__name__)

FunctionReference = Union[Callable[..., Any], str]


@runtime_checkable
class ActionInvoker(Protocol):
    """Host capability used to call actions and predicates."""

    def invoke(self, func: FunctionReference, context: Any, arguments: Mapping[str, Any]) -> Any:
        """Call ``func`` and return its result (a value or an awaitable)."""
        ...


class FunctionRegistry:
    """Registry of named functions usable as actions and predicates."""

    def __init__(self) -> None:
        self._functions: Dict[str, Callable[..., Any]] = {}

    def register(self, name: str, func: Callable[..., Any]) -> Callable[..., Any]:
        """Register a function under a name.

        Args:
            name: Reference name used in configurations
            func: The function (sync or async)

        Returns:
            The registered function
        """
        if not callable(func):
            raise ConfigurationError(
                f"Cannot register '{name}': not callable", context={"name": name}
            )
        self._functions[name] = func
        logger.debug(
            f"Registered {'async' if inspect.iscoroutinefunction(func) else 'sync'} "
            f"function '{name}'"
        )
        return func

    def register_functions(self, functions: Mapping[str, Callable[..., Any]]) -> None:
        """Register multiple functions."""
        for name, func in functions.items():
            self.register(name, func)

    def register_module(self, module_name: str) -> int:
        """Register the public functions of a module under their own names.

        Returns:
            Number of registered functions
        """
        module = importlib.import_module(module_name)
        count = 0
        for name, func in inspect.getmembers(module, inspect.isfunction):
            if not name.startswith("_") and func.__module__ == module.__name__:
                self.register(name, func)
                count += 1
        return count

    def has_function(self, name: str) -> bool:
        return name in self._functions

    def list_functions(self) -> list[str]:
        return list(self._functions)

    def resolve(self, reference: FunctionReference) -> Callable[..., Any]:
        """Resolve a function reference to a callable.

        Args:
            reference: Callable, registered name or ``module:attribute`` path

        Returns:
            The callable

        Raises:
            ConfigurationError: If the reference cannot be resolved.
        """
        if callable(reference):
            return reference

        if isinstance(reference, str):
            if reference in self._functions:
                return self._functions[reference]
            if ":" in reference:
                return self._import(reference)

        raise ConfigurationError(
            f"Unable to resolve function reference '{reference}'",
            context={"reference": str(reference), "registered": self.list_functions()},
        )

    def _import(self, path: str) -> Callable[..., Any]:
        module_name, _, attribute = path.partition(":")
        try:
            target: Any = importlib.import_module(module_name)
            for part in attribute.split("."):
                target = getattr(target, part)
        except (ImportError, AttributeError) as e:
            raise ConfigurationError(
                f"Unable to import function '{path}': {e}", context={"reference": path}
            ) from e

        if not callable(target):
            raise ConfigurationError(
                f"Imported object '{path}' is not callable", context={"reference": path}
            )
        self._functions[path] = target
        return target


class InjectingInvoker:
    """Invoker that injects arguments by parameter name.

    Parameter values are looked up, in order, in the arguments mapping
    (``name``, ``params``), the entries of ``arguments["params"]``, the
    registered services and finally ``context`` for a parameter named
    ``context``. A ``**kwargs`` parameter receives the whole arguments
    mapping.

    Args:
        registry: Registry used to resolve string references
        services: Named injectables available to every call
    """

    def __init__(
        self,
        registry: FunctionRegistry | None = None,
        services: Mapping[str, Any] | None = None,
    ) -> None:
        self.registry = registry or FunctionRegistry()
        self._services: Dict[str, Any] = dict(services or {})

    def add_service(self, name: str, service: Any) -> None:
        """Make ``service`` injectable under ``name``."""
        self._services[name] = service

    def invoke(self, func: FunctionReference, context: Any, arguments: Mapping[str, Any]) -> Any:
        target = self.registry.resolve(func)
        args, kwargs = self._bind(target, context, arguments)
        return target(*args, **kwargs)

    def _bind(
        self, func: Callable[..., Any], context: Any, arguments: Mapping[str, Any]
    ) -> tuple[list[Any], Dict[str, Any]]:
        try:
            signature = inspect.signature(func)
        except (TypeError, ValueError):
            # Builtins without a signature get the arguments mapping
            return [dict(arguments)], {}

        params = arguments.get("params") or {}
        args: list[Any] = []
        kwargs: Dict[str, Any] = {}

        for parameter in signature.parameters.values():
            if parameter.kind == inspect.Parameter.VAR_POSITIONAL:
                continue
            if parameter.kind == inspect.Parameter.VAR_KEYWORD:
                for key, value in arguments.items():
                    kwargs.setdefault(key, value)
                continue

            found, value = self._lookup(parameter.name, context, arguments, params)
            if not found:
                if parameter.default is not inspect.Parameter.empty:
                    continue
                raise ConfigurationError(
                    f"Unable to inject argument '{parameter.name}' into "
                    f"'{getattr(func, '__name__', func)}'",
                    context={"parameter": parameter.name, "available": sorted(arguments)},
                )

            if parameter.kind == inspect.Parameter.POSITIONAL_ONLY:
                args.append(value)
            else:
                kwargs[parameter.name] = value

        return args, kwargs

    def _lookup(
        self, name: str, context: Any, arguments: Mapping[str, Any], params: Mapping[str, Any]
    ) -> tuple[bool, Any]:
        if name in arguments:
            return True, arguments[name]
        if name in params:
            return True, params[name]
        if name in self._services:
            return True, self._services[name]
        if name == "context":
            return True, context
        return False, None


class CallInvoker:
    """Invoker calling ``func(arguments)`` without any injection."""

    def __init__(self, registry: FunctionRegistry | None = None) -> None:
        self.registry = registry or FunctionRegistry()

    def invoke(self, func: FunctionReference, context: Any, arguments: Mapping[str, Any]) -> Any:
        return self.registry.resolve(func)(dict(arguments))
