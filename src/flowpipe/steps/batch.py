"""
Batch Step

Author: flowpipe Team
Date: 2025-06-11
"""

from collections.abc import Mapping
from itertools import islice
from typing import Any, Dict, Iterator, List

from loguru import logger

from ..core.step import Continuation, Step


def _chunks(items: List[Any], size: int) -> Iterator[List[Any]]:
    iterator = iter(items)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class BatchStep(Step):
    """
    Run the rest of the chain once per chunk of a collection payload.

    Lists and tuples are split into lists of at most ``batch_size`` items.
    Mappings are split into chunks of their items; with ``preserve_keys``
    each chunk is a dict, otherwise a list of values. Any other payload is
    forwarded unchanged in a single call.

    The per-chunk results are gathered into one output: list results are
    concatenated, other results appended. With ``preserve_keys`` over a
    mapping, mapping results are merged into a dict instead.

    Example:
        # [1, 2, 3, 4, 5] -> next([1, 2]), next([3, 4]), next([5])
        BatchStep(batch_size=2)
    """

    def __init__(self, batch_size: int = 100, preserve_keys: bool = False):
        """
        Initialize batch step.

        Args:
            batch_size: Maximum number of items per chunk
            preserve_keys: Keep mapping keys in chunks and in the output

        Raises:
            ValueError: If batch_size is not positive
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.batch_size = batch_size
        self.preserve_keys = preserve_keys

    def handle(self, payload: Any, next: Continuation) -> Any:
        if isinstance(payload, Mapping):
            if self.preserve_keys:
                return self._run_keyed(payload, next)
            return self._run(list(payload.values()), next)

        if isinstance(payload, (list, tuple)):
            return self._run(list(payload), next)

        return next(payload)

    def _run(self, items: List[Any], next: Continuation) -> List[Any]:
        results: List[Any] = []
        for index, batch in enumerate(_chunks(items, self.batch_size), start=1):
            logger.debug(f"Processing batch {index} ({len(batch)} items)")
            batch_result = next(batch)
            if isinstance(batch_result, (list, tuple)):
                results.extend(batch_result)
            else:
                results.append(batch_result)
        return results

    def _run_keyed(self, payload: Mapping, next: Continuation) -> Dict[Any, Any]:
        results: Dict[Any, Any] = {}
        for index, items in enumerate(_chunks(list(payload.items()), self.batch_size), start=1):
            logger.debug(f"Processing batch {index} ({len(items)} items)")
            batch_result = next(dict(items))
            if not isinstance(batch_result, Mapping):
                raise TypeError(
                    f"BatchStep with preserve_keys expects mapping results, "
                    f"got {type(batch_result).__name__}"
                )
            results.update(batch_result)
        return results

    def __repr__(self) -> str:
        return f"BatchStep(batch_size={self.batch_size}, preserve_keys={self.preserve_keys})"
