"""
flowpipe - Composable step pipelines for Python

Build pipelines from small steps that each receive a payload and a
continuation, with conditional and nested composition, named step groups,
pluggable error-recovery strategies and execution tracing.

Author: flowpipe Team
Date: 2025-06-02
Version: 1.0.0
"""

__version__ = "1.0.0"
__author__ = "flowpipe Team"

# Core architecture
from .core import (
    # Pipeline
    Flowpipe,
    PipelineState,
    FlowContext,

    # Steps
    Step,
    FunctionStep,
    compose,

    # Resolution and groups
    StepResolver,
    StepTypeRegistry,
    register_step,
    GroupRegistry,
    register_group,
    get_group,
    has_group,
    clear_groups,

    # Exceptions
    FlowpipeError,
    ResolutionError,
    GroupNotFoundError,
    StepExecutionError,
    MaxAttemptsExceededError,
    AbortError,
    FlowValidationError,
    RateLimitExceededError,
    PayloadValidationError
)

from .conditions import Condition, CallableCondition, as_condition, build_condition

from .steps import (
    CompositeStep,
    NestedFlowStep,
    GroupStep,
    ConditionalStep,
    BranchStep,
    ErrorHandlerStep,
    RetryStep,
    CacheStep,
    RateLimitStep,
    BatchStep,
    TransformStep,
    ValidationStep
)

from .error_handling import (
    ErrorHandlerAction,
    ErrorHandlerResult,
    ErrorHandlerStrategy,
    RetryStrategy,
    FallbackStrategy,
    CompensationStrategy,
    CompositeStrategy
)

from .tracing import (
    Tracer,
    TestTracer,
    BasicTracer,
    PerformanceTracer,
    DebugTracer,
    create_tracer
)

from .validation import ValidationResult
from .config import FlowpipeSettings, get_settings, configure, reset_settings
from .logging_config import configure_logging

__all__ = [
    # Version
    '__version__',
    '__author__',

    # Core
    'Flowpipe',
    'PipelineState',
    'FlowContext',
    'Step',
    'FunctionStep',
    'compose',
    'StepResolver',
    'StepTypeRegistry',
    'register_step',
    'GroupRegistry',
    'register_group',
    'get_group',
    'has_group',
    'clear_groups',

    # Exceptions
    'FlowpipeError',
    'ResolutionError',
    'GroupNotFoundError',
    'StepExecutionError',
    'MaxAttemptsExceededError',
    'AbortError',
    'FlowValidationError',
    'RateLimitExceededError',
    'PayloadValidationError',

    # Conditions
    'Condition',
    'CallableCondition',
    'as_condition',
    'build_condition',

    # Steps
    'CompositeStep',
    'NestedFlowStep',
    'GroupStep',
    'ConditionalStep',
    'BranchStep',
    'ErrorHandlerStep',
    'RetryStep',
    'CacheStep',
    'RateLimitStep',
    'BatchStep',
    'TransformStep',
    'ValidationStep',

    # Error handling
    'ErrorHandlerAction',
    'ErrorHandlerResult',
    'ErrorHandlerStrategy',
    'RetryStrategy',
    'FallbackStrategy',
    'CompensationStrategy',
    'CompositeStrategy',

    # Tracing
    'Tracer',
    'TestTracer',
    'BasicTracer',
    'PerformanceTracer',
    'DebugTracer',
    'create_tracer',

    # Validation
    'ValidationResult',

    # Configuration
    'FlowpipeSettings',
    'get_settings',
    'configure',
    'reset_settings',
    'configure_logging',
]


def pipeline(*steps, tracer=None) -> Flowpipe:
    """
    Convenience constructor: ``pipeline(step_a, step_b).send(x).then_return()``.

    Args:
        *steps: Step references in execution order
        tracer: Optional tracer

    Returns:
        Flowpipe with the steps attached
    """
    return Flowpipe.make(tracer=tracer).through(list(steps))


__all__.append('pipeline')
