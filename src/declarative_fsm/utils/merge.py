"""Deep merge of nested mappings."""

from collections.abc import Mapping
from typing import Any, Dict


def deep_merge(left: Mapping[str, Any] | None, right: Mapping[str, Any] | None) -> Dict[str, Any]:
    """Recursively merge two mappings into a new dictionary.

    Keys of ``left`` keep their position and keys only present in ``right`` are
    appended after them. When both sides hold a mapping for the same key the
    values are merged recursively; otherwise the right-hand value wins.

    Neither input is modified. Nested mappings in the result are new
    dictionaries, while any other values (lists, objects, callables) are
    shared with the inputs.

    Args:
        left: Base mapping. ``None`` is treated as empty.
        right: Mapping whose values take precedence. ``None`` is treated as empty.

    Returns:
        A new merged dictionary.

    Example:
        ```python
        deep_merge({"a": {"x": 1, "y": 2}}, {"a": {"y": 3}, "b": 4})
        # {'a': {'x': 1, 'y': 3}, 'b': 4}
        ```
    """
    left = left or {}
    right = right or {}
    result: Dict[str, Any] = {}

    for key, value in left.items():
        if key in right:
            other = right[key]
            if isinstance(value, Mapping) and isinstance(other, Mapping):
                result[key] = deep_merge(value, other)
            else:
                result[key] = _fresh(other)
        else:
            result[key] = _fresh(value)

    for key, value in right.items():
        if key not in result:
            result[key] = _fresh(value)

    return result


def _fresh(value: Any) -> Any:
    # Nested mappings are rebuilt so the result never aliases an input dict
    if isinstance(value, Mapping):
        return deep_merge(value, None)
    return value
