"""OpenTelemetry tracing configuration."""

import logging

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from mediaset import __version__

logger = logging.getLogger(__name__)


def configure_tracing(
    service_name: str = "mediaset",
    environment: str = "development",
    otlp_endpoint: str | None = None,
    enable_console_exporter: bool = False,
) -> TracerProvider:
    """Install a global tracer provider and instrument httpx.

    Args:
        service_name: Name of the service for tracing
        environment: Environment name (development, staging, production)
        otlp_endpoint: OTLP exporter endpoint (e.g. "http://localhost:4317");
                      without one, development falls back to the console exporter
        enable_console_exporter: Force the console exporter on

    Returns:
        Configured tracer provider
    """
    resource = Resource.create(
        {
            "service.name": service_name,
            "service.version": __version__,
            "deployment.environment": environment,
        }
    )
    provider = TracerProvider(resource=resource)

    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        logger.info("OTLP trace exporter configured: %s", otlp_endpoint)

    if enable_console_exporter or (not otlp_endpoint and environment == "development"):
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        logger.info("Console trace exporter enabled")

    trace.set_tracer_provider(provider)
    HTTPXClientInstrumentor().instrument()

    logger.info(
        "Tracing configured",
        extra={
            "service_name": service_name,
            "environment": environment,
            "otlp_endpoint": otlp_endpoint,
        },
    )
    return provider


def get_tracer(name: str) -> trace.Tracer:
    """Get a tracer instance (a no-op tracer until configure_tracing runs)."""
    return trace.get_tracer(name)
