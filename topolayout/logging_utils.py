"""DEBUG call tracing for the layout helpers.

Modules opt in with ``apply_debug_logging(globals(), logger=logger)`` at their
end. Arguments and results are summarized so that large node maps and point
arrays do not flood the log.
"""

from __future__ import annotations

import inspect
import logging
import reprlib
import time
from functools import wraps
from typing import Any, Callable, Iterable, Mapping, MutableMapping, Optional, Sequence, TypeVar, cast

import numpy as np

from .model import CachedNode, Edge, Layout, Node

F = TypeVar("F", bound=Callable[..., Any])

_WRAPPED_ATTR = "_topolayout_traced"

_repr = reprlib.Repr()
_repr.maxother = 120
_repr.maxstring = 80
_repr.maxlist = 6
_repr.maxtuple = 6


def _summarize(value: Any) -> Optional[str]:
    if isinstance(value, Node):
        return f"Node({value.id!r} @ {value.x},{value.y} rank={value.rank} deg={value.degree})"
    if isinstance(value, CachedNode):
        return f"CachedNode({value.x},{value.y} rank={value.rank})"
    if isinstance(value, Edge):
        points = "none" if value.points is None else len(value.points)
        return f"Edge({value.id!r}, points={points})"
    if isinstance(value, Layout):
        return (
            f"Layout({len(value.nodes)} nodes, {len(value.edges)} edges, "
            f"{value.width:.1f}x{value.height:.1f})"
        )
    if isinstance(value, np.ndarray):
        if value.size and np.issubdtype(value.dtype, np.number):
            return f"ndarray{tuple(value.shape)} [{float(value.min()):.4g}..{float(value.max()):.4g}]"
        return f"ndarray{tuple(value.shape)}"
    return None


def _safe_repr(value: Any, *, max_items: int = 4) -> str:
    summary = _summarize(value)
    if summary is not None:
        return summary

    if isinstance(value, Mapping):
        shown = [f"{key!r}: {_safe_repr(val)}" for key, val in list(value.items())[:max_items]]
        if len(value) > max_items:
            shown.append(f"+{len(value) - max_items} more")
        return "{" + ", ".join(shown) + "}"

    if isinstance(value, list) and len(value) > max_items:
        head = ", ".join(_safe_repr(item) for item in value[:max_items])
        return f"[{head}, +{len(value) - max_items} more]"

    try:
        return _repr.repr(value)
    except Exception as exc:  # pragma: no cover
        return f"<unrepresentable {type(value).__name__}: {exc!r}>"


def _format_call(args: Sequence[Any], kwargs: Mapping[str, Any]) -> str:
    rendered = [_safe_repr(arg) for arg in args]
    rendered.extend(f"{key}={_safe_repr(value)}" for key, value in kwargs.items())
    return ", ".join(rendered)


def debug_log_call(logger: logging.Logger, *, name: Optional[str] = None) -> Callable[[F], F]:
    """Decorator logging arguments, result and wall time of each call at DEBUG."""

    def decorator(func: F) -> F:
        if getattr(func, _WRAPPED_ATTR, False):
            return func
        label = name or func.__qualname__

        @wraps(func)
        def wrapper(*args: Any, **kwargs: Any):
            if not logger.isEnabledFor(logging.DEBUG):
                return func(*args, **kwargs)
            logger.debug("-> %s(%s)", label, _format_call(args, kwargs))
            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception:
                logger.debug("!! %s raised", label, exc_info=True)
                raise
            elapsed_ms = (time.perf_counter() - started) * 1000.0
            logger.debug("<- %s = %s [%.2f ms]", label, _safe_repr(result), elapsed_ms)
            return result

        setattr(wrapper, _WRAPPED_ATTR, True)
        return cast(F, wrapper)

    return decorator


def apply_debug_logging(
    namespace: MutableMapping[str, Any],
    *,
    logger: Optional[logging.Logger] = None,
    skip: Optional[Iterable[str]] = None,
) -> None:
    """Trace every public function defined in the module owning ``namespace``."""

    module_name = namespace.get("__name__")
    logger = logger or logging.getLogger(module_name if isinstance(module_name, str) else __name__)
    skipped = frozenset(skip or ())

    for attr, value in list(namespace.items()):
        if attr.startswith("_") or attr in skipped:
            continue
        if inspect.isfunction(value) and value.__module__ == module_name:
            namespace[attr] = debug_log_call(logger, name=attr)(value)


__all__ = ["apply_debug_logging", "debug_log_call"]
