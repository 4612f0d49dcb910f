"""
Validation Result Module

Outcome of checking a flow definition.

Author: flowpipe Team
Date: 2025-06-12
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ValidationResult:
    """
    Immutable list of errors and warnings for one flow.

    Example:
        result = ValidationResult("checkout", errors=["Step 2 has no type"])
        if not result.is_valid:
            print(result.first_error)
    """

    flow_name: str
    errors: Tuple[str, ...] = field(default_factory=tuple)
    warnings: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, "errors", tuple(self.errors))
        object.__setattr__(self, "warnings", tuple(self.warnings))

    @property
    def is_valid(self) -> bool:
        return not self.errors

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def first_error(self) -> Optional[str]:
        return self.errors[0] if self.errors else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'flow': self.flow_name,
            'valid': self.is_valid,
            'errors': list(self.errors),
            'warnings': list(self.warnings),
        }


__all__ = ["ValidationResult"]
