"""Runtime configuration: ContextKind enum, RuntimeConfig, and initialization."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum

import psutil

from asyncval._logging import configure_logging

__all__ = [
    'ContextKind',
    'RuntimeConfig',
    'get_config',
    'init',
    'reset_config',
]

MAX_WORKERS = 256


class ContextKind(Enum):
    """Execution context used when a pipeline does not declare one."""

    IMMEDIATE = 'immediate'
    SINGLE = 'single'
    POOL = 'pool'


@dataclass(frozen=True)
class RuntimeConfig:
    """Configuration for asyncval.

    Attributes:
        default_context: Context kind returned by ``default_context()``.
        workers: Worker threads for the shared pool.
        log_level: Logging level (e.g., "DEBUG", "INFO"). None = not configured.
        await_timeout: Default timeout in seconds for blocking awaits. None = wait forever.
    """

    default_context: ContextKind = ContextKind.IMMEDIATE
    workers: int = 1
    log_level: str | None = None
    await_timeout: float | None = None


# Global configuration (set by init())
_config: RuntimeConfig | None = None


def _detect_context_kind() -> ContextKind:
    """Detect the default context kind from ``ASYNCVAL_CONTEXT``."""
    env_kind = os.environ.get('ASYNCVAL_CONTEXT', '').lower()
    if not env_kind:
        return ContextKind.IMMEDIATE
    try:
        return ContextKind(env_kind)
    except ValueError:
        logging.warning("Unknown ASYNCVAL_CONTEXT value '%s', defaulting to immediate", env_kind)
        return ContextKind.IMMEDIATE


def _detect_workers(kind: ContextKind) -> int:
    """Detect the worker count for the shared pool.

    Priority:
    1. ASYNCVAL_WORKERS environment variable
    2. Physical CPU cores for the POOL kind
    3. One worker otherwise
    """
    env_workers = os.environ.get('ASYNCVAL_WORKERS', '')
    if env_workers:
        try:
            return _clamp(int(env_workers))
        except ValueError:
            logging.warning("Invalid ASYNCVAL_WORKERS value '%s', ignoring", env_workers)

    if kind is not ContextKind.POOL:
        return 1

    try:
        cores = psutil.cpu_count(logical=False) or psutil.cpu_count(logical=True) or 4
    except Exception:
        return 4
    return _clamp(cores)


def _clamp(workers: int) -> int:
    return max(1, min(MAX_WORKERS, workers))


def init(
    default_context: ContextKind | str | None = None,
    workers: int | None = None,
    log_level: str | None = None,
    await_timeout: float | None = None,
) -> RuntimeConfig:
    """Initialize asyncval with the given configuration.

    Args:
        default_context: Context kind for ``default_context()``. Read from
            ``ASYNCVAL_CONTEXT`` if None. Accepts the enum or its string value.
        workers: Shared pool size. Read from ``ASYNCVAL_WORKERS`` or detected if None.
        log_level: Logging level. Read from ``ASYNCVAL_LOG_LEVEL`` if None;
            logging is left untouched when neither is set.
        await_timeout: Default timeout for blocking awaits.

    Returns:
        The RuntimeConfig that was set.

    Example:
        ```python
        from asyncval import init, ContextKind

        init()
        init(default_context=ContextKind.SINGLE, log_level='INFO')
        init(default_context='pool', workers=8)
        ```
    """
    global _config  # noqa: PLW0603

    if default_context is None:
        resolved_kind = _detect_context_kind()
    elif isinstance(default_context, str):
        resolved_kind = ContextKind(default_context.lower())
    else:
        resolved_kind = default_context

    resolved_workers = _detect_workers(resolved_kind) if workers is None else _clamp(workers)

    if log_level is None:
        log_level = os.environ.get('ASYNCVAL_LOG_LEVEL') or None

    _config = RuntimeConfig(
        default_context=resolved_kind,
        workers=resolved_workers,
        log_level=log_level,
        await_timeout=await_timeout,
    )

    if log_level is not None:
        configure_logging(log_level)

    return _config


def get_config() -> RuntimeConfig:
    """Get the current configuration, initializing from the environment on first use."""
    if _config is None:
        return init()
    return _config


def reset_config() -> None:
    """Forget the current configuration so the next ``get_config()`` re-reads the environment."""
    global _config  # noqa: PLW0603
    _config = None
