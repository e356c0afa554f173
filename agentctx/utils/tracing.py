"""OpenTelemetry span helpers.

Spans are emitted through the OpenTelemetry API. Without an SDK tracer
provider configured by the host application they are no-ops.
"""

import functools
import inspect
from collections.abc import Callable
from typing import Any

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

_TRACER_NAME = "agentctx"


def get_tracer():
    """Get the package tracer from the globally configured tracer provider."""
    return trace.get_tracer(_TRACER_NAME)


def traced(span_name: str) -> Callable:
    """Decorator that wraps a sync or async function in a span.

    Exceptions are recorded on the span and re-raised.

    Usage:
        @traced("ContextCompactor.compact")
        async def compact(...):
            ...
    """

    def decorator(func: Callable) -> Callable:
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
                with get_tracer().start_as_current_span(span_name) as span:
                    try:
                        return await func(*args, **kwargs)
                    except Exception as e:
                        span.record_exception(e)
                        span.set_status(Status(StatusCode.ERROR, str(e)))
                        raise

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            with get_tracer().start_as_current_span(span_name) as span:
                try:
                    return func(*args, **kwargs)
                except Exception as e:
                    span.record_exception(e)
                    span.set_status(Status(StatusCode.ERROR, str(e)))
                    raise

        return wrapper

    return decorator


def set_span_attributes(**attributes: Any) -> None:
    """Attach attributes to the current span, skipping None values."""
    span = trace.get_current_span()
    for key, value in attributes.items():
        if value is not None:
            span.set_attribute(f"agentctx.{key}", value)
