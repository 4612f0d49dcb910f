"""
Steps Module

Reusable steps built on the Step interface: composition (conditional,
composite, nested, group), error handling and cross-cutting behaviour
(retry, rate limiting, caching, batching, transformation, validation).

Author: flowpipe Team
Date: 2025-06-09
"""

from .composite import CompositeStep, NestedFlowStep, GroupStep
from .conditional import ConditionalStep, BranchStep
from .error_handler import ErrorHandlerStep
from .retry import RetryStep
from .cache import CacheStep, MemoryCacheStore
from .rate_limit import RateLimitStep, RateLimiter
from .batch import BatchStep
from .transform import TransformStep
from .validation import ValidationStep

__all__ = [
    # Composition
    'CompositeStep',
    'NestedFlowStep',
    'GroupStep',
    'ConditionalStep',
    'BranchStep',

    # Error handling
    'ErrorHandlerStep',
    'RetryStep',

    # Cross-cutting
    'CacheStep',
    'MemoryCacheStore',
    'RateLimitStep',
    'RateLimiter',
    'BatchStep',
    'TransformStep',
    'ValidationStep',
]
