"""Request tracing for the intake backend.

``OBSERVABILITY`` picks the exporter:

- ``"logfire"``: Pydantic Logfire (spans are sent when ``LOGFIRE_TOKEN`` is set)
- ``"otel"``: OpenTelemetry SDK with the OTLP HTTP exporter
- ``"off"``: nothing is traced (default)

Health checks are never traced.  Model calls get their own spans through
the PydanticAI agent (``create_chat_agent(..., instrument=True)``).
"""

from __future__ import annotations

from collections.abc import Callable

from fastapi import FastAPI
from loguru import logger

from promaallem import __version__
from promaallem.config import Settings

_UNTRACED_URLS = "/health"


def _resource_attributes(settings: Settings) -> dict[str, str]:
    return {
        "service.name": settings.otel_service_name,
        "service.namespace": "promaallem",
        "service.version": __version__,
    }


def _setup_logfire(app: FastAPI, settings: Settings) -> None:
    import logfire

    logfire.configure(
        service_name=settings.otel_service_name,
        service_version=__version__,
        send_to_logfire="if-token-present",
    )
    logfire.instrument_fastapi(app, excluded_urls=_UNTRACED_URLS)


def _setup_otel(app: FastAPI, settings: Settings) -> None:
    from opentelemetry import trace
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
    from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
    from opentelemetry.sdk.resources import Resource
    from opentelemetry.sdk.trace import TracerProvider
    from opentelemetry.sdk.trace.export import (
        BatchSpanProcessor,
        ConsoleSpanExporter,
        SimpleSpanProcessor,
    )

    provider = TracerProvider(resource=Resource.create(_resource_attributes(settings)))
    endpoint = settings.otel_exporter_otlp_endpoint.rstrip("/") + "/v1/traces"
    provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=endpoint)))
    if settings.otel_console_exporter:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)
    FastAPIInstrumentor.instrument_app(app, excluded_urls=_UNTRACED_URLS)


_BACKENDS: dict[str, Callable[[FastAPI, Settings], None]] = {
    "logfire": _setup_logfire,
    "otel": _setup_otel,
}


def is_observability_active(settings: Settings) -> bool:
    return settings.observability in _BACKENDS


def setup_telemetry(app: FastAPI, settings: Settings) -> None:
    """Instrument *app* for the configured backend; a no-op when ``off``."""
    setup = _BACKENDS.get(settings.observability)
    if setup is None:
        logger.info("Tracing disabled (OBSERVABILITY=off)")
        return

    setup(app, settings)
    logger.info(
        "Tracing enabled | backend={} service={} version={}",
        settings.observability,
        settings.otel_service_name,
        __version__,
    )
