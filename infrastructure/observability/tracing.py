"""
OpenTelemetry Tracing

Spans wrap order creation and the payment callback. When tracing is disabled
the API tracer hands out no-op spans, so call sites never need to check.
"""

import logging

from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

tracer = trace.get_tracer("mercato")

_initialized = False


def setup_tracing(service_name: str = "mercato", enable: bool = True, console_export: bool = False) -> None:
    """
    Install the SDK tracer provider.

    Args:
        service_name: Resource name attached to every span
        enable: Leave the no-op provider in place when False
        console_export: Print finished spans to stdout (local debugging)
    """
    global _initialized

    if _initialized:
        logger.debug("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    if console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(provider)

    _initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """
    Add custom attributes to a span.

    Example:
        with tracer.start_as_current_span("order.create") as span:
            add_span_attributes(span, order_id=order.id, total=order.total_amount)
    """
    for key, value in attributes.items():
        span.set_attribute(key, str(value))
