"""
OpenTelemetry tracing setup.

Queue operations open spans through get_tracer(), which works whether or
not tracing was set up: without a configured provider the spans are
no-ops.
"""

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.trace import Tracer

from queuesync import __version__
from queuesync.config import Settings, get_settings

# Set once tracing is configured
_tracer: Tracer | None = None


def build_tracer_provider(
    settings: Settings,
    exporters: list[SpanExporter] | None = None,
) -> TracerProvider:
    """
    Create a tracer provider describing this queue server.

    Args:
        settings: Service name and OTLP endpoint come from here.
        exporters: Exporters to attach. Defaults to OTLP over gRPC, plus
            the console when `otel_console_export` is set.

    Returns:
        TracerProvider: Not yet installed globally.
    """
    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
            "queue.delta_buffer_max": settings.delta_buffer_max,
            "queue.default_max": settings.queue_default_max,
        }
    )
    provider = TracerProvider(resource=resource)

    if exporters is None:
        exporters = [OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint, insecure=True)]
        if settings.otel_console_export:
            exporters.append(ConsoleSpanExporter())

    for exporter in exporters:
        provider.add_span_processor(BatchSpanProcessor(exporter))

    return provider


def setup_tracing(settings: Settings | None = None) -> Tracer:
    """
    Install a tracer provider globally and return the service tracer.

    Args:
        settings: Defaults to the cached application settings.

    Returns:
        Tracer: The tracer queue operations will use.
    """
    global _tracer

    settings = settings or get_settings()
    trace.set_tracer_provider(build_tracer_provider(settings))
    _tracer = trace.get_tracer(settings.otel_service_name, __version__)
    return _tracer


def instrument_fastapi(app: FastAPI) -> None:
    """Trace every HTTP request handled by `app`."""
    FastAPIInstrumentor.instrument_app(app)


def get_tracer() -> Tracer:
    """
    Get the service tracer.

    Returns:
        Tracer: The configured tracer, or the API's proxy tracer when
        setup_tracing() has not run.
    """
    if _tracer is None:
        return trace.get_tracer(get_settings().otel_service_name, __version__)
    return _tracer
