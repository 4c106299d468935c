"""
OpenTelemetry tracing setup.

Spans are exported over OTLP/HTTP when an endpoint is configured through
OTEL_EXPORTER_OTLP_ENDPOINT (or OTEL_EXPORTER_OTLP_TRACES_ENDPOINT). For a
local Jaeger all-in-one container that is ``http://localhost:4318``. Without
an endpoint the global tracer stays the API's no-op tracer.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, SpanExporter

from .config import TelemetrySettings

logger = logging.getLogger(__name__)


def build_tracer_provider(settings: TelemetrySettings,
                          exporter: Optional[SpanExporter] = None) -> TracerProvider:
    """
    Create a tracer provider for the given settings.

    Args:
        settings: Service name and collector endpoint
        exporter: Span exporter to use instead of the OTLP/HTTP one

    Returns:
        TracerProvider with a batch span processor attached
    """
    resource = Resource.create({SERVICE_NAME: settings.service_name})
    provider = TracerProvider(resource=resource)

    if exporter is None:
        # The exporter reads the endpoint, headers and timeout from OTEL_* itself
        exporter = OTLPSpanExporter()

    provider.add_span_processor(BatchSpanProcessor(exporter))
    return provider


def configure_tracing(settings: Optional[TelemetrySettings] = None) -> Optional[TracerProvider]:
    """
    Install a global tracer provider if tracing is configured.

    Returns:
        The installed provider, or None when trace export is disabled
    """
    settings = settings or TelemetrySettings.from_env()
    if not settings.enabled:
        logger.debug("Trace export disabled: %r", settings)
        return None

    provider = build_tracer_provider(settings)
    trace.set_tracer_provider(provider)
    logger.info("Exporting traces for %s to %s", settings.service_name, settings.endpoint)
    return provider


def shutdown_tracing(provider: Optional[TracerProvider]) -> None:
    """Flush and stop span export. Safe to call with None."""
    if provider is None:
        return
    provider.force_flush()
    provider.shutdown()
