"""
OpenTelemetry tracing setup.

Each job run is wrapped in an execute_job span. The API and the SQLAlchemy
engine are instrumented so a span shows the lock and transition statements
issued for the job.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.trace import Span, Tracer

from jobqueue import __version__
from jobqueue.config import get_settings
from jobqueue.constants import SPAN_EXECUTE_JOB

# Global tracer instance
_tracer: Tracer | None = None


def setup_tracing() -> Tracer:
    """
    Set up OpenTelemetry tracing.

    Spans go to the OTLP collector when otel_exporter_enabled is set and to
    stdout when otel_console_export is set. With neither, spans are recorded
    for log correlation only.

    Returns:
        Tracer: The tracer instance.
    """
    global _tracer

    settings = get_settings()

    resource = Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": __version__,
        }
    )
    provider = TracerProvider(resource=resource)

    if settings.otel_exporter_enabled:
        otlp_exporter = OTLPSpanExporter(
            endpoint=settings.otel_exporter_otlp_endpoint,
            insecure=True,
        )
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    if settings.otel_console_export:
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    trace.set_tracer_provider(provider)

    _tracer = trace.get_tracer(settings.otel_service_name, __version__)
    return _tracer


def get_tracer() -> Tracer:
    """Get the tracer instance, setting up tracing on first use."""
    global _tracer
    if _tracer is None:
        _tracer = setup_tracing()
    return _tracer


@contextmanager
def job_span(job_id: int, job_type: str, queue: str, worker_id: str) -> Iterator[Span]:
    """
    Open the execute_job span for one job run.

    Exceptions raised inside are recorded on the span and re-raised.

    Args:
        job_id: The job id.
        job_type: The handler's job type.
        queue: The job's queue.
        worker_id: Identity of the worker running the job.
    """
    attributes = {
        "jobqueue.job_id": job_id,
        "jobqueue.job_type": job_type,
        "jobqueue.queue": queue,
        "jobqueue.worker_id": worker_id,
    }
    with get_tracer().start_as_current_span(SPAN_EXECUTE_JOB, attributes=attributes) as span:
        yield span


def instrument_fastapi(app: Any) -> None:
    """
    Instrument FastAPI application with OpenTelemetry.

    Args:
        app: The FastAPI application instance.
    """
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine: Any) -> None:
    """
    Instrument an async SQLAlchemy engine with OpenTelemetry.

    Args:
        engine: The SQLAlchemy async engine instance.
    """
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)
