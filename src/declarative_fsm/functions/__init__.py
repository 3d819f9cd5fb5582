"""Invocation of host-provided actions and predicates."""

from declarative_fsm.functions.invoker import (
    ActionInvoker,
    CallInvoker,
    FunctionReference,
    FunctionRegistry,
    InjectingInvoker,
)

__all__ = [
    "ActionInvoker",
    "CallInvoker",
    "FunctionReference",
    "FunctionRegistry",
    "InjectingInvoker",
]
