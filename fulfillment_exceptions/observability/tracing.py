# ==== OPENTELEMETRY TRACING CONFIGURATION ==== #

"""
OpenTelemetry tracing for the fulfillment exception engine.

Spans are created around each sweep, each order-type sweep, each
pick-completion chunk and each collaborator retry. Export happens only when
an OTLP endpoint is configured; otherwise the no-op tracer provider stays
in place.
"""

from typing import Dict, Optional

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

from fulfillment_exceptions.settings import Settings


def parse_key_values(raw: Optional[str]) -> Dict[str, str]:
    """Parse the comma-separated ``key=value`` format used by OTEL_* variables."""
    pairs: Dict[str, str] = {}
    for part in (raw or "").split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            pairs[key.strip()] = value.strip()
    return pairs


def init_tracing(settings: Settings) -> bool:
    """
    Install an OTLP-exporting tracer provider.

    Args:
        settings: Settings carrying the OTEL_* values

    Returns:
        bool: True when a provider was installed, False without an endpoint
    """
    # ⚠️ Allow local runs without an APM backend
    if not settings.OTEL_EXPORTER_OTLP_ENDPOINT:
        return False

    attributes = parse_key_values(settings.OTEL_RESOURCE_ATTRIBUTES)
    attributes["service.name"] = settings.OTEL_SERVICE_NAME or settings.SERVICE_NAME

    provider = TracerProvider(resource=Resource.create(attributes))
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(
        endpoint=settings.OTEL_EXPORTER_OTLP_ENDPOINT,
        headers=parse_key_values(settings.OTEL_EXPORTER_OTLP_HEADERS),
    )))
    trace.set_tracer_provider(provider)
    return True


def get_tracer(name: str) -> trace.Tracer:
    return trace.get_tracer(name)
