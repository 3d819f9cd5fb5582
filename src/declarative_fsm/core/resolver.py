"""Resolution of an edge into a target state name."""

import inspect
import logging
from typing import Any, Callable, List

from declarative_fsm.config.schema import Edge, GuardedTransition
from declarative_fsm.core.state import StateSnapshot
from declarative_fsm.exceptions import AmbiguousGuardError, ConfigurationError

logger = logging.getLogger(__name__)

# Evaluates a predicate reference against the current state snapshot.
PredicateEvaluator = Callable[[Any, StateSnapshot], Any]


def resolve_edge(
    edge: Edge,
    snapshot: StateSnapshot,
    evaluate: PredicateEvaluator,
    *,
    source: str,
    message: str,
) -> str | None:
    """Resolve an edge to a single target state name.

    A plain name is returned unchanged. For a list of guarded transitions each
    predicate is evaluated in order and exactly one of them must hold.

    Args:
        edge: State name or list of guarded transitions
        snapshot: Snapshot of the current state passed to every predicate
        evaluate: Callable evaluating a predicate reference
        source: Name of the current state, for error reporting
        message: Message being processed, for error reporting

    Returns:
        The target state name, or None when no predicate holds.

    Raises:
        AmbiguousGuardError: If more than one predicate holds.
        ConfigurationError: If the edge is malformed or a predicate is async.
    """
    if isinstance(edge, str):
        return edge

    if not isinstance(edge, list):
        raise ConfigurationError(
            f"Invalid edge for message '{message}' in state '{source}'",
            context={"state": source, "message": message},
        )

    passed: List[str] = []
    for transition in edge:
        if not isinstance(transition, GuardedTransition):
            raise ConfigurationError(
                f"Invalid guarded transition for message '{message}' in state '{source}'",
                context={"state": source, "message": message},
            )

        result = evaluate(transition.predicate, snapshot)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise ConfigurationError(
                f"Predicate for '{transition.to}' in state '{source}' must be synchronous",
                context={"state": source, "message": message, "target": transition.to},
            )

        logger.debug(f"Guard {source} --{message}--> {transition.to}: {bool(result)}")
        if result:
            passed.append(transition.to)

    if len(passed) > 1:
        raise AmbiguousGuardError(source, message, passed)

    return passed[0] if passed else None
