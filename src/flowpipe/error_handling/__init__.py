"""
Error Handling Module

Recovery strategies consulted by ErrorHandlerStep.

Author: flowpipe Team
Date: 2025-06-10
"""

from .result import ErrorHandlerAction, ErrorHandlerResult
from .strategies import (
    ErrorHandlerStrategy,
    RetryStrategy,
    FallbackStrategy,
    CompensationStrategy,
    CompositeStrategy,
    exponential_delay,
    linear_delay
)

__all__ = [
    # Results
    'ErrorHandlerAction',
    'ErrorHandlerResult',

    # Strategies
    'ErrorHandlerStrategy',
    'RetryStrategy',
    'FallbackStrategy',
    'CompensationStrategy',
    'CompositeStrategy',

    # Delay calculators
    'exponential_delay',
    'linear_delay',
]
