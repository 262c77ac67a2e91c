"""OpenTelemetry tracing configuration for the affinity planner."""

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

from irq_affinity import __version__
from irq_affinity.infrastructure.config import Config, get_config


def setup_tracing(config: Config | None = None) -> trace.Tracer:
    """Configure OpenTelemetry tracing.

    Spans are exported over OTLP when an endpoint is configured and to
    the console when tracing is enabled without one. With tracing disabled
    the global no-op tracer is returned.
    """
    config = config or get_config()
    if not config.observability.enable_tracing:
        return trace.get_tracer("irq_affinity")

    resource = Resource.create(
        {
            "service.name": "irq_affinity",
            "service.version": __version__,
            "deployment.environment": config.observability.environment,
        }
    )

    provider = TracerProvider(resource=resource)

    if config.observability.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(
            endpoint=config.observability.otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
    else:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    return trace.get_tracer("irq_affinity")

