import os
import sys
import time
import logging
import functools
import traceback
import structlog
import orjson
import psutil
from typing import Callable, Any


def _orjson_dumps(obj, **kwargs) -> str:
    return orjson.dumps(obj, **kwargs).decode()


def _stderr_logger(*args) -> structlog.PrintLogger:
    return structlog.PrintLogger(file=sys.stderr)


def configure_logging(level: str | int = "INFO") -> None:
    """
    Configures structlog to render one JSON line per event with orjson.
    Events go to stderr; stdout is reserved for query results.
    """
    if isinstance(level, str):
        level = getattr(logging, level.upper(), logging.INFO)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(serializer=_orjson_dumps),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        logger_factory=_stderr_logger,
    )


configure_logging(os.environ.get("LOG_LEVEL", "INFO"))

logger = structlog.get_logger()


def get_memory_usage_mb() -> float:
    """Returns the current process memory usage (RSS) in MB using psutil."""
    process = psutil.Process(os.getpid())
    return round(process.memory_info().rss / (1024 * 1024), 2)


class WideEventContext:
    """Accumulates context, metrics, and non-fatal errors for a Wide Event."""

    def __init__(self):
        self.steps = {}
        self.metrics = {}
        self.extra_context = {}
        self.errors = []

    def add_step(self, name: str, duration_ms: float, **metadata):
        # Capture current memory at the end of the step
        self.steps[name] = {
            "duration_ms": duration_ms,
            "memory_mb": get_memory_usage_mb(),
            **metadata,
        }

    def add_metric(self, name: str, value: Any):
        self.metrics[name] = value

    def add_context(self, **kwargs):
        self.extra_context.update(kwargs)

    def register_error(self, error_type: str, message: str, **details):
        """Registers a non-fatal edge case (e.g. a skipped blank line)."""
        self.errors.append(
            {
                "type": error_type,
                "message": message,
                "timestamp": time.time(),
                **details,
            }
        )


def canonical_logger(event_name: str):
    """
    Decorator for Canonical Logging (Wide Events) using structlog.
    Injects a 'ctx' object into the function to accumulate metadata.
    Emits ONE single structured JSON log event upon completion with time and memory.
    Failures are logged with their kind and offending line, then re-raised.
    """

    def decorator(func: Callable):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            ctx = WideEventContext()
            start_time = time.perf_counter()
            start_mem = get_memory_usage_mb()
            error = None
            stack_trace = None

            try:
                return func(*args, ctx=ctx, **kwargs)
            except Exception as e:
                error = e
                stack_trace = traceback.format_exc()
                raise
            finally:
                end_mem = get_memory_usage_mb()
                log_data = {
                    "event": event_name,
                    "status": "failure" if error is not None else "success",
                    "total_duration_ms": round(
                        (time.perf_counter() - start_time) * 1000, 2
                    ),
                    "memory_usage": {
                        "start_mb": start_mem,
                        "end_mb": end_mem,
                        "delta_mb": round(end_mem - start_mem, 2),
                    },
                    "context": {
                        "function": func.__name__,
                        **ctx.extra_context,
                    },
                    "metrics": ctx.metrics,
                    "steps": ctx.steps,
                }

                if ctx.errors:
                    log_data["non_fatal_errors"] = ctx.errors

                if error is not None:
                    log_data["error_kind"] = getattr(
                        error, "kind", type(error).__name__
                    )
                    log_data["line_number"] = getattr(error, "line_number", None)
                    log_data["failure_reason"] = str(error)
                    log_data["stack_trace"] = stack_trace
                    logger.error(**log_data)
                else:
                    logger.info(**log_data)

        return wrapper

    return decorator
