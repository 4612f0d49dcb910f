"""
Flow Context Module

Per-run bookkeeping that travels beside the payload: a run identifier, free
form tags and metadata, and the optional tracer.

Author: flowpipe Team
Date: 2025-06-02
"""

import uuid
from typing import Any, Dict, Optional


class FlowContext:
    """
    Execution context of one pipeline.

    Created when the pipeline is constructed and discarded with it. Steps
    may use tags and metadata for side-channel bookkeeping; nothing here is
    persisted.

    Attributes:
        _id: Unique run identifier (UUID4 string)
        _tracer: Optional tracer receiving one record per executed step
        _tags: Free-form tags
        _metadata: Free-form metadata
    """

    def __init__(self, tracer: Optional[Any] = None):
        self._id = str(uuid.uuid4())
        self._tracer = tracer
        self._tags: Dict[str, Any] = {}
        self._metadata: Dict[str, Any] = {}

    @property
    def id(self) -> str:
        """Unique identifier of this run."""
        return self._id

    @property
    def tracer(self) -> Optional[Any]:
        """Attached tracer, if any."""
        return self._tracer

    # =========================================================================
    # Tags
    # =========================================================================

    def tag(self, key: str, value: Any) -> None:
        """Set a tag."""
        self._tags[key] = value

    def tags(self) -> Dict[str, Any]:
        """Copy of all tags."""
        return dict(self._tags)

    # =========================================================================
    # Metadata
    # =========================================================================

    def meta(self, key: str, value: Any) -> None:
        """Set a metadata entry."""
        self._metadata[key] = value

    def get_meta(self, key: str, default: Any = None) -> Any:
        """Get a metadata entry."""
        return self._metadata.get(key, default)

    def all_meta(self) -> Dict[str, Any]:
        """Copy of all metadata."""
        return dict(self._metadata)

    def __repr__(self) -> str:
        tracer = type(self._tracer).__name__ if self._tracer is not None else None
        return (
            f"FlowContext(id='{self._id}', tracer={tracer}, "
            f"n_tags={len(self._tags)}, n_meta={len(self._metadata)})"
        )
