"""Deep merge of nested documents."""

from __future__ import annotations

import copy
from typing import Any


def deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Merge *override* into a copy of *base*.

    Mappings are merged key by key; any other value in *override*, including
    sequences, replaces the value in *base* wholesale (last write wins).
    Neither argument is mutated.

    Example::

        deep_merge({"a": {"x": 1, "y": [1]}}, {"a": {"y": [2], "z": 3}})
        # {"a": {"x": 1, "y": [2], "z": 3}}
    """
    result = copy.deepcopy(base)
    for key, value in override.items():
        current = result.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            result[key] = deep_merge(current, value)
        else:
            result[key] = copy.deepcopy(value)
    return result
