"""
Quote Engine OpenTelemetry Setup

Tracing for quote calculations:
- One span per calculation, tagged with course / rule counts
- Totals recorded as span attributes once the pipeline finishes
- No provider configured means every span is a no-op
"""
from __future__ import annotations
from typing import Optional
import os

from opentelemetry import trace
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

TRACER_NAME = "quote-engine"


def setup_otel(
    service_name: str = "quote-engine",
    endpoint: Optional[str] = None,
):
    """Initialize OpenTelemetry, exporting over OTLP when an endpoint is set."""
    resource = Resource.create({"service.name": service_name})
    provider = TracerProvider(resource=resource)

    otlp_endpoint = endpoint or os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT")
    if otlp_endpoint:
        # Exporter ships in the ``otlp`` extra.
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
        exporter = OTLPSpanExporter(endpoint=otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))

    trace.set_tracer_provider(provider)
    return trace.get_tracer(TRACER_NAME)


def get_tracer():
    """Tracer for quote spans; a no-op until ``setup_otel`` runs."""
    return trace.get_tracer(TRACER_NAME)


def start_quote_span(tracer, course_count: int, rule_count: int):
    """Start the span wrapping one quote calculation (use as a context manager)."""
    return tracer.start_as_current_span(
        "quote.calculate",
        attributes={
            "quote.course_count": course_count,
            "quote.rule_count": rule_count,
        },
    )
