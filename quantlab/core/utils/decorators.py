"""
Utility decorators for ledger operations.
"""

import functools
import inspect
import time
import uuid
from collections.abc import Callable
from typing import Any

from loguru import logger

_CONTEXT_PARAMETERS = ("symbol", "signal", "stop_loss", "take_profit")


def _serialize_parameter_value(value: Any) -> Any:
    """Serialize parameter value for logging."""
    if hasattr(value, "action") and hasattr(value, "price"):
        return f"{value.action.value}@{value.price}"  # Signals
    if hasattr(value, "value"):
        return str(value.value)  # Enums
    return value


def _build_context(func: Callable[..., Any], args: tuple[Any, ...], kwargs: dict[str, Any]) -> dict[str, Any]:
    """Extract the loggable arguments of a ledger call."""
    bound_args = inspect.signature(func).bind(*args, **kwargs)
    bound_args.apply_defaults()

    context: dict[str, Any] = {"correlation_id": str(uuid.uuid4())[:8]}
    for param_name, value in bound_args.arguments.items():
        if param_name in _CONTEXT_PARAMETERS:
            context[param_name] = _serialize_parameter_value(value)
    return context


def log_ledger_operation[F: Callable[..., Any]](func: F) -> F:
    """Decorator to log ledger operations with correlation IDs and timing."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        context = _build_context(func, args, kwargs)
        func_name = func.__name__
        start_time = time.perf_counter()

        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
            logger.bind(**context, execution_time_ms=elapsed_ms).error(
                f"Ledger operation failed: {func_name} ({type(e).__name__}: {e})"
            )
            raise

        elapsed_ms = round((time.perf_counter() - start_time) * 1000, 2)
        logger.bind(**context, execution_time_ms=elapsed_ms, executed=result is not None).debug(
            f"Ledger operation completed: {func_name}"
        )
        return result

    return wrapper  # type: ignore
