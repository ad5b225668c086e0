# Copyright (c) Microsoft. All rights reserved.

"""
Observability module for the AI Foundry chat proxy.

Provides spans for the layers of the proxy:
- HTTP request lifecycle
- Agent Service calls (threads, messages, runs)
- Request validation

Tracer providers are configured once at startup by init_observability().
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from azure.monitor.opentelemetry import configure_azure_monitor
from opentelemetry import metrics, trace
from opentelemetry._logs import set_logger_provider
from opentelemetry.exporter.otlp.proto.http._log_exporter import OTLPLogExporter
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk._logs import LoggerProvider, LoggingHandler
from opentelemetry.sdk._logs.export import BatchLogRecordProcessor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Span, SpanKind, Status, StatusCode

logger = logging.getLogger(__name__)

TRACER_NAME = "aifoundry_chat_proxy"


class ProxyAttr:
    """Custom semantic attributes for the chat proxy."""

    # Conversation context
    THREAD_ID = "chat_proxy.thread.id"
    RUN_ID = "chat_proxy.run.id"
    AGENT_ID = "chat_proxy.agent.id"

    # Agent Service call attributes
    AGENT_OPERATION = "chat_proxy.agent.operation"
    SIMULATED = "chat_proxy.simulated"


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in ("1", "true", "yes", "on")


def init_observability() -> None:
    """Configure OpenTelemetry exporters.

    Call once at Azure Functions app startup.

    Environment variables used:
    - ENABLE_OTEL: Enable OpenTelemetry (default: false)
    - APPLICATIONINSIGHTS_CONNECTION_STRING: Azure Monitor connection
    - OTLP_ENDPOINT: OTLP/HTTP collector base URL for traces, metrics and logs,
      used when no Azure Monitor connection is set
    - OTEL_SERVICE_NAME: Service name (default: aifoundry_chat_proxy)
    """
    if not _env_flag("ENABLE_OTEL"):
        logger.info("Observability disabled (ENABLE_OTEL not set)")
        return

    service_name = os.environ.get("OTEL_SERVICE_NAME", TRACER_NAME)
    connection_string = os.environ.get("APPLICATIONINSIGHTS_CONNECTION_STRING")
    otlp_endpoint = os.environ.get("OTLP_ENDPOINT")
    try:
        if connection_string:
            configure_azure_monitor(
                connection_string=connection_string,
                resource=Resource.create({SERVICE_NAME: service_name}),
            )
        elif otlp_endpoint:
            _configure_otlp(otlp_endpoint, Resource.create({SERVICE_NAME: service_name}))
        else:
            logger.warning(
                "ENABLE_OTEL is set but neither APPLICATIONINSIGHTS_CONNECTION_STRING "
                "nor OTLP_ENDPOINT is configured"
            )
            return
        logger.info("Observability initialized successfully")
    except Exception as e:
        logger.warning(f"Failed to initialize observability: {e}")


def _configure_otlp(endpoint: str, resource: Resource) -> None:
    """Export traces, metrics and logs to an OTLP/HTTP collector."""
    base = endpoint.rstrip("/")

    tracer_provider = TracerProvider(resource=resource)
    tracer_provider.add_span_processor(
        BatchSpanProcessor(OTLPSpanExporter(endpoint=f"{base}/v1/traces"))
    )
    trace.set_tracer_provider(tracer_provider)

    reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=f"{base}/v1/metrics"))
    metrics.set_meter_provider(MeterProvider(resource=resource, metric_readers=[reader]))

    logger_provider = LoggerProvider(resource=resource)
    logger_provider.add_log_record_processor(
        BatchLogRecordProcessor(OTLPLogExporter(endpoint=f"{base}/v1/logs"))
    )
    set_logger_provider(logger_provider)
    logging.getLogger().addHandler(LoggingHandler(logger_provider=logger_provider))


@asynccontextmanager
async def http_request_span(
    method: str,
    path: str,
    thread_id: Optional[str] = None,
) -> AsyncIterator[Span]:
    """Create a top-level HTTP request span.

    Wraps the entire request lifecycle. Agent Service spans are nested under it.

    The span is yielded so callers can set http.status_code before exiting.

    Args:
        method: HTTP method (GET, POST, OPTIONS)
        path: Route pattern (e.g., "/chat")
        thread_id: Thread identifier for correlation
    """
    tracer = trace.get_tracer(TRACER_NAME)
    attributes = {
        "http.method": method,
        "http.route": path,
    }
    if thread_id:
        attributes[ProxyAttr.THREAD_ID] = thread_id

    with tracer.start_as_current_span(
        f"http.request {method} {path}",
        kind=SpanKind.SERVER,
        attributes=attributes,
    ) as span:
        try:
            yield span
            status_code = span.attributes.get("http.status_code") if hasattr(
                span, "attributes"
            ) else None
            if status_code and status_code >= 400:
                span.set_status(Status(StatusCode.ERROR))
            else:
                span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


@asynccontextmanager
async def agent_span(
    operation: str,
    thread_id: Optional[str] = None,
    run_id: Optional[str] = None,
    agent_id: Optional[str] = None,
) -> AsyncIterator[None]:
    """Create an Agent Service call span.

    Args:
        operation: Agent Service operation (create_thread, get_run, list_messages, ...)
        thread_id: Thread the call targets
        run_id: Run the call targets
        agent_id: Agent the call targets
    """
    tracer = trace.get_tracer(TRACER_NAME)
    attributes = {ProxyAttr.AGENT_OPERATION: operation}
    if thread_id:
        attributes[ProxyAttr.THREAD_ID] = thread_id
    if run_id:
        attributes[ProxyAttr.RUN_ID] = run_id
    if agent_id:
        attributes[ProxyAttr.AGENT_ID] = agent_id

    with tracer.start_as_current_span(
        f"agents.{operation}",
        kind=SpanKind.CLIENT,
        attributes=attributes,
    ) as span:
        try:
            yield
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise


@asynccontextmanager
async def validation_span(operation: str) -> AsyncIterator[None]:
    """Create a request validation span.

    Args:
        operation: Validation operation name (e.g., "parse_chat_request")
    """
    tracer = trace.get_tracer(TRACER_NAME)

    with tracer.start_as_current_span(
        f"request.validate {operation}",
        kind=SpanKind.INTERNAL,
    ) as span:
        try:
            yield
            span.set_status(Status(StatusCode.OK))
        except Exception as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            span.record_exception(e)
            raise
