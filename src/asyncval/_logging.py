"""Structured logging for asyncval.

Pipelines log from whichever thread runs them, so every event is stamped
with the emitting thread's name. Events:

    pipeline.recovering          warning, once per recovered failure
    pipeline.unhandled_failure   error, failure delivered to subscribe() without on_error
    pipeline.subscriber_failed   a subscribe() callback raised
    context.task_failed          a task escaped its context with an exception
    cell.callback_failed         a completion callback raised

structlog events and plain stdlib records share one pre-chain and one
stderr handler, rendered as JSON or as console output.
"""

from __future__ import annotations

import logging
import sys
import threading
from collections.abc import Callable
from typing import Any

import structlog

__all__ = [
    'add_log_hook',
    'clear_log_hooks',
    'configure_logging',
    'get_logger',
    'remove_log_hook',
]

LogHook = Callable[[dict[str, Any]], None]

_hooks: list[LogHook] = []


def _add_thread_name(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    event_dict.setdefault('thread', threading.current_thread().name)
    return event_dict


def _call_hooks(_logger: Any, _method: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for hook in tuple(_hooks):
        try:
            hook(dict(event_dict))
        except Exception:  # noqa: BLE001, S112
            # Hooks never break logging.
            continue
    return event_dict


_PRE_CHAIN: tuple[Any, ...] = (
    structlog.contextvars.merge_contextvars,
    structlog.stdlib.add_log_level,
    structlog.stdlib.add_logger_name,
    structlog.processors.TimeStamper(fmt='iso'),
    _add_thread_name,
    _call_hooks,
)


def configure_logging(level: str = 'INFO', *, json_output: bool = True) -> None:
    """Route structlog and stdlib logging through one stderr handler.

    Safe to call repeatedly: the root handler is replaced, not added to, and
    module-level loggers pick up the new setup because they are never cached.

    Args:
        level: Root level name ("DEBUG", "INFO", ...). Unknown names mean INFO.
        json_output: Render JSON lines if True, human-readable console output otherwise.
    """
    if json_output:
        renderers: list[Any] = [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
    else:
        renderers = [structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())]

    structlog.configure(
        processors=[
            *_PRE_CHAIN,
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=list(_PRE_CHAIN),
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, *renderers],
        )
    )

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))


def get_logger(name: str | None = None) -> Any:
    """Return a structlog logger bound to ``name``."""
    return structlog.get_logger(name)


def add_log_hook(hook: LogHook) -> None:
    """Call ``hook`` with a copy of every event dict.

    Hooks run on the emitting thread, after the thread name and level are
    added. Exceptions raised by a hook are ignored.
    """
    _hooks.append(hook)


def remove_log_hook(hook: LogHook) -> None:
    """Unregister ``hook``; unknown hooks are ignored."""
    if hook in _hooks:
        _hooks.remove(hook)


def clear_log_hooks() -> None:
    _hooks.clear()
