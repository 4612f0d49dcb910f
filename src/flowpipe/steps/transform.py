"""
Transform Step

Author: flowpipe Team
Date: 2025-06-11
"""

from collections.abc import Mapping
from typing import Any, Callable

from ..conditions import data_get
from ..core.step import Continuation, Step

_MISSING = object()


class TransformStep(Step):
    """
    Replace the payload with ``transformer(payload)`` and continue.

    Example:
        TransformStep(str.strip)
        TransformStep.map(lambda item: item * 2)
        TransformStep.filter(lambda user: user["active"])
        TransformStep.pluck("email")
    """

    def __init__(self, transformer: Callable[[Any], Any]):
        if not callable(transformer):
            raise TypeError(f"TransformStep expects a callable, got {type(transformer)}")
        self.transformer = transformer

    @classmethod
    def map(cls, mapper: Callable[[Any], Any]) -> 'TransformStep':
        """Apply ``mapper`` to every item (values of a mapping) or to a scalar."""
        def transform(payload: Any) -> Any:
            if isinstance(payload, Mapping):
                return {key: mapper(value) for key, value in payload.items()}
            if isinstance(payload, (list, tuple)):
                return [mapper(item) for item in payload]
            return mapper(payload)
        return cls(transform)

    @classmethod
    def filter(cls, predicate: Callable[[Any], Any]) -> 'TransformStep':
        """Keep items for which ``predicate`` holds; a rejected scalar becomes None."""
        def transform(payload: Any) -> Any:
            if isinstance(payload, Mapping):
                return {key: value for key, value in payload.items() if predicate(value)}
            if isinstance(payload, (list, tuple)):
                return [item for item in payload if predicate(item)]
            return payload if predicate(payload) else None
        return cls(transform)

    @classmethod
    def pluck(cls, key: str) -> 'TransformStep':
        """
        Extract ``key`` (dotted paths allowed) from each item of a list, or
        from a single record. Items without the key are skipped.
        """
        def transform(payload: Any) -> Any:
            if isinstance(payload, (list, tuple)):
                values = (data_get(item, key, _MISSING) for item in payload)
                return [value for value in values if value is not _MISSING]
            return data_get(payload, key)
        return cls(transform)

    def handle(self, payload: Any, next: Continuation) -> Any:
        return next(self.transformer(payload))

    def __repr__(self) -> str:
        name = getattr(self.transformer, "__name__", type(self.transformer).__name__)
        return f"TransformStep(transformer={name})"
