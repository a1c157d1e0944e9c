from __future__ import annotations
import logging
import os
import time
from typing import Any


def _short(obj: Any) -> str:
    if obj is None or isinstance(obj, (int, float, bool, str)):
        s = repr(obj)
        return s if len(s) <= 64 else s[:61] + "..."
    if isinstance(obj, (list, tuple)):
        s = repr(obj)
        return s if len(s) <= 64 else f"<{type(obj).__name__} len={len(obj)}>"
    value = getattr(obj, "value", None)
    if isinstance(value, str):
        return value
    return f"<{obj.__class__.__name__}>"


def engine_trace_enabled() -> bool:
    """PSTG_ENGINE_TRACE toggles call tracing; on unless set to 0/false/empty."""
    val = os.getenv("PSTG_ENGINE_TRACE")
    if val is None:
        return True
    return val not in ("0", "false", "False", "")


class _LoggingProxy:
    """Transparent proxy that logs every engine call.

    - INFO: [engine] Class.method() ok in X ms
    - DEBUG: arguments and return value summaries
    - WARNING: failures, which are re-raised untouched
    """

    def __init__(self, target: Any, logger: logging.Logger | None = None):
        super().__setattr__("_target", target)
        super().__setattr__("_logger", logger or logging.getLogger("pubsub_topo_gen.engine"))

    def __repr__(self) -> str:  # pragma: no cover - debug aid
        return f"<_LoggingProxy for {super().__getattribute__('_target')!r}>"

    def __getattr__(self, name: str) -> Any:
        t = super().__getattribute__("_target")
        logger: logging.Logger = super().__getattribute__("_logger")
        attr = getattr(t, name)
        if not callable(attr):
            return attr

        def _callable_wrapper(*args: Any, **kwargs: Any):
            cls_name = type(t).__name__
            start = time.perf_counter()
            if logger.isEnabledFor(logging.DEBUG):
                parts = [_short(a) for a in args] + [f"{k}={_short(v)}" for k, v in kwargs.items()]
                logger.debug("[engine] %s.%s(%s) -> calling", cls_name, name, ", ".join(parts))
            try:
                result = attr(*args, **kwargs)
            except Exception as e:
                took_ms = (time.perf_counter() - start) * 1000.0
                logger.warning("[engine] %s.%s() failed in %.1f ms: %s", cls_name, name, took_ms, e)
                raise
            took_ms = (time.perf_counter() - start) * 1000.0
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("[engine] %s.%s() ok in %.1f ms -> %s", cls_name, name, took_ms, _short(result))
            else:
                logger.info("[engine] %s.%s() ok in %.1f ms", cls_name, name, took_ms)
            return result

        _callable_wrapper.__name__ = getattr(attr, "__name__", name)
        return _callable_wrapper

    def __setattr__(self, name: str, value: Any) -> None:
        setattr(super().__getattribute__("_target"), name, value)


def wrap_engine(engine: Any, logger: logging.Logger | None = None) -> Any:
    if isinstance(engine, _LoggingProxy):
        return engine
    return _LoggingProxy(engine, logger)


def unwrap_engine(engine: Any) -> Any:
    if isinstance(engine, _LoggingProxy):
        return object.__getattribute__(engine, "_target")
    return engine
