"""asyncval: cold, single-value asynchronous pipelines.

Build a pipeline once, choose where it runs, transform and observe its
value, recover from failures, and wait for it synchronously or from async
code.

Flat imports (preferred):
    from asyncval import AsyncValue, single, Ok, Err, Some, Nothing

Submodule imports (for organization):
    from asyncval.value import AsyncValue
    from asyncval.context import WorkerPoolContext, PortalContext
    from asyncval.errors import ComputationFailureError
"""

from asyncval._config import ContextKind, RuntimeConfig, get_config, init
from asyncval._logging import add_log_hook, clear_log_hooks, configure_logging, get_logger, remove_log_hook
from asyncval.context import (
    ExecutionContext,
    ImmediateContext,
    PortalContext,
    WorkerPoolContext,
    default_context,
    immediate,
    shared_pool,
    single,
)
from asyncval.errors import (
    ComputationFailure,
    ComputationFailureError,
    ContextClosed,
    ContextClosedError,
    PipelineError,
    RecoveryFailure,
    RecoveryFailureError,
    Timeout,
    TimeoutError,
    TransformFailure,
    TransformFailureError,
)
from asyncval.result import Err, Nothing, NothingType, Ok, Option, Result, Some, collect
from asyncval.value import AsyncValue, ValueState

__all__ = [
    # Core
    'AsyncValue',
    # Errors
    'ComputationFailure',
    'ComputationFailureError',
    # Config
    'ContextClosed',
    'ContextClosedError',
    'ContextKind',
    # Result / Option
    'Err',
    # Contexts
    'ExecutionContext',
    'ImmediateContext',
    'Nothing',
    'NothingType',
    'Ok',
    'Option',
    'PipelineError',
    'PortalContext',
    'RecoveryFailure',
    'RecoveryFailureError',
    'Result',
    'RuntimeConfig',
    'Some',
    'Timeout',
    'TimeoutError',
    'TransformFailure',
    'TransformFailureError',
    'ValueState',
    'WorkerPoolContext',
    # Logging
    'add_log_hook',
    'clear_log_hooks',
    'collect',
    'configure_logging',
    'default_context',
    'get_config',
    'get_logger',
    'immediate',
    'init',
    'remove_log_hook',
    'shared_pool',
    'single',
]
