"""
Core Module

This module contains the core infrastructure for flowpipe pipelines.

Author: flowpipe Team
Date: 2025-06-02
"""

from .context import FlowContext
from .errors import (
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
from .step import Step, FunctionStep, Continuation, compose, identity, step_label
from .groups import (
    GroupRegistry,
    default_registry,
    register_group,
    get_group,
    has_group,
    clear_groups
)
from .resolver import StepResolver, StepTypeRegistry, register_step, default_resolver
from .pipeline import Flowpipe, PipelineState

__all__ = [
    # Context
    'FlowContext',

    # Errors
    'FlowpipeError',
    'ResolutionError',
    'GroupNotFoundError',
    'StepExecutionError',
    'MaxAttemptsExceededError',
    'AbortError',
    'FlowValidationError',
    'RateLimitExceededError',
    'PayloadValidationError',

    # Steps
    'Step',
    'FunctionStep',
    'Continuation',
    'compose',
    'identity',
    'step_label',

    # Groups
    'GroupRegistry',
    'default_registry',
    'register_group',
    'get_group',
    'has_group',
    'clear_groups',

    # Resolution
    'StepResolver',
    'StepTypeRegistry',
    'register_step',
    'default_resolver',

    # Pipeline
    'Flowpipe',
    'PipelineState',
]
