"""Tracing setup shared by the HTTP server and the Lambda entry point."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from .config import TelemetrySettings

logger = logging.getLogger(__name__)

EXPORT_TIMEOUT_SECONDS = 10


def setup_telemetry(settings: TelemetrySettings, *, runtime: str = "http") -> TracerProvider:
    """Install the global tracer provider and instrument outbound httpx calls.

    ``skill.dispatch`` spans and the token and DataStore calls they wrap all
    report under the configured service name. Spans are only exported when an
    OTLP endpoint is set.
    """
    resource = Resource.create(
        {
            SERVICE_NAME: settings.service_name,
            SERVICE_VERSION: settings.service_version,
            "plantcare.runtime": runtime,
        }
    )
    provider = TracerProvider(resource=resource)
    if settings.exporter_endpoint:
        exporter = OTLPSpanExporter(
            endpoint=f"{settings.exporter_endpoint.rstrip('/')}/v1/traces",
            timeout=EXPORT_TIMEOUT_SECONDS,
        )
        provider.add_span_processor(BatchSpanProcessor(exporter))
        logger.info("Exporting %s spans to %s", runtime, settings.exporter_endpoint)
    else:
        logger.info("Span export disabled for %s (no OTLP endpoint)", settings.service_name)

    trace.set_tracer_provider(provider)
    HTTPXClientInstrumentor().instrument()
    return provider


def flush_telemetry(provider: TracerProvider) -> None:
    """Export buffered spans before a Lambda invocation returns."""
    if not provider.force_flush(timeout_millis=EXPORT_TIMEOUT_SECONDS * 1000):
        logger.warning("Span flush did not complete within %ss", EXPORT_TIMEOUT_SECONDS)


def instrument_fastapi(app: FastAPI) -> None:
    FastAPIInstrumentor.instrument_app(app, excluded_urls="health,readyz,metrics")
