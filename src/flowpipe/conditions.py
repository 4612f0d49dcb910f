"""Conditions used by conditional and branch steps.

Only a small, fixed vocabulary is supported: no ``eval`` and no
expression parser.

Named predicates
~~~~~~~~~~~~~~~~
``always_true``, ``always_false``, ``is_string``, ``is_numeric``,
``is_array``, ``is_empty``, ``is_not_empty``. Any other string is treated as
a dotted field path whose value is tested for truthiness
(``"user.is_active"``).

Field comparisons
~~~~~~~~~~~~~~~~~
A mapping ``{"field": ..., "operator": ..., "value": ...}`` with one of
``equals``, ``not_equals``, ``greater_than``, ``less_than``, ``contains``,
``starts_with``, ``ends_with``.

Examples::

    build_condition("is_string")
    build_condition({"field": "order.total", "operator": "greater_than", "value": 100})
"""

from __future__ import annotations

import operator
from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from numbers import Number
from typing import Any, Callable

from .core.errors import FlowValidationError

_MISSING = object()


class Condition(ABC):
    """Predicate over a payload."""

    @abstractmethod
    def evaluate(self, payload: Any) -> bool:
        """Return True when the guarded step should run."""
        ...


class CallableCondition(Condition):
    """Adapts a plain ``payload -> bool`` callable."""

    def __init__(self, func: Callable[[Any], Any], description: str | None = None) -> None:
        self.func = func
        self.description = description or getattr(func, "__name__", "condition")

    def evaluate(self, payload: Any) -> bool:
        return bool(self.func(payload))

    def __repr__(self) -> str:
        return f"CallableCondition({self.description!r})"


def as_condition(value: Condition | Callable[[Any], Any] | str | Mapping) -> Condition:
    """Coerce a Condition, callable, named predicate or comparison mapping."""
    if isinstance(value, Condition):
        return value
    if isinstance(value, (str, Mapping)):
        return build_condition(value)
    if callable(value):
        return CallableCondition(value)
    raise FlowValidationError(f"Unsupported condition type: {type(value).__name__}")


def data_get(target: Any, path: str, default: Any = None) -> Any:
    """Read a dotted *path* from nested mappings, sequences and attributes.

    Missing segments return *default*.
    """
    current = target
    for segment in path.split("."):
        current = _get_segment(current, segment)
        if current is _MISSING:
            return default
    return current


def _get_segment(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, _MISSING)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        try:
            return current[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return getattr(current, segment, _MISSING)


def _is_numeric(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, Number):
        return True
    if isinstance(value, str):
        try:
            float(value)
        except ValueError:
            return False
        return True
    return False


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple, dict))


_NAMED: dict[str, Callable[[Any], bool]] = {
    "always_true": lambda payload: True,
    "always_false": lambda payload: False,
    "is_string": lambda payload: isinstance(payload, str),
    "is_numeric": _is_numeric,
    "is_array": _is_array,
    "is_empty": lambda payload: not payload,
    "is_not_empty": lambda payload: bool(payload),
}


def _contains(actual: Any, expected: Any) -> bool:
    if actual is None:
        return False
    try:
        return expected in actual
    except TypeError:
        return False


def _starts_with(actual: Any, expected: Any) -> bool:
    return isinstance(actual, str) and actual.startswith(str(expected))


def _ends_with(actual: Any, expected: Any) -> bool:
    return isinstance(actual, str) and actual.endswith(str(expected))


def _ordered(op: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    def compare(actual: Any, expected: Any) -> bool:
        try:
            return bool(op(actual, expected))
        except TypeError:
            return False
    return compare


OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    "equals": operator.eq,
    "not_equals": operator.ne,
    "greater_than": _ordered(operator.gt),
    "less_than": _ordered(operator.lt),
    "contains": _contains,
    "starts_with": _starts_with,
    "ends_with": _ends_with,
}


def build_condition(definition: str | Mapping) -> Condition:
    """Build a :class:`Condition` from a named predicate, field path or comparison.

    Raises:
        FlowValidationError: If the mapping is incomplete or the operator is
            unknown.
    """
    if isinstance(definition, str):
        name = definition.strip()
        if not name:
            raise FlowValidationError("Condition name must not be empty")
        if "." not in name and name in _NAMED:
            return CallableCondition(_NAMED[name], description=name)
        return CallableCondition(
            lambda payload: bool(data_get(payload, name)), description=name
        )

    field = definition.get("field")
    op_name = definition.get("operator")
    if not field or not op_name:
        raise FlowValidationError(
            'Condition mapping must have "field" and "operator" fields'
        )
    if op_name not in OPERATORS:
        raise FlowValidationError(f"Unknown condition operator: {op_name}")

    compare = OPERATORS[op_name]
    expected = definition.get("value")
    return CallableCondition(
        lambda payload: compare(data_get(payload, field), expected),
        description=f"{field} {op_name} {expected!r}",
    )
