"""
OpenTelemetry tracing

Spans come from three places:
- inbound requests (FastAPI instrumentation)
- database statements (SQLAlchemy instrumentation on the async engine's sync core)
- outbound calls to M-PESA and Resend (httpx instrumentation), tagged with the
  provider so a slow checkout can be pinned on the right dependency

Export goes to OTEL_EXPORTER_OTLP_ENDPOINT when set; OTEL_CONSOLE_EXPORT=true
prints spans locally.
"""

import os
from typing import Any

import httpx
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.httpx import HTTPXClientInstrumentor, RequestInfo
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, SERVICE_VERSION, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import ALWAYS_ON
from opentelemetry.trace import Span


# Host suffix -> provider tag on outbound spans
OUTBOUND_PROVIDERS = {
    'safaricom.co.ke': 'mpesa',
    'resend.com': 'resend',
}

UNTRACED_ROUTES = 'health,docs,openapi.json'


def outbound_provider(host: str) -> str:
    for suffix, provider in OUTBOUND_PROVIDERS.items():
        if host == suffix or host.endswith(f'.{suffix}'):
            return provider
    return 'other'


async def _tag_outbound_request(span: Span, request: RequestInfo) -> None:
    if span.is_recording():
        span.set_attribute('peer.service', outbound_provider(httpx.URL(request.url).host))


class TracingConfig:
    def __init__(
        self,
        *,
        service_name: str,
        service_version: str = '',
        otlp_endpoint: str | None = None,
        enable_console: bool = False,
    ) -> None:
        self.service_name = service_name
        self.service_version = service_version
        self.otlp_endpoint = otlp_endpoint or os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
        self.enable_console = (
            enable_console or os.getenv('OTEL_CONSOLE_EXPORT', 'false').lower() == 'true'
        )
        self._provider: TracerProvider | None = None

    def setup(self) -> None:
        """Install the global tracer provider. Call once at application startup."""
        resource = Resource(
            attributes={SERVICE_NAME: self.service_name, SERVICE_VERSION: self.service_version}
        )
        # Sampling is left to the collector
        self._provider = TracerProvider(resource=resource, sampler=ALWAYS_ON)

        if self.otlp_endpoint:
            self._provider.add_span_processor(
                BatchSpanProcessor(OTLPSpanExporter(endpoint=self.otlp_endpoint))
            )
        if self.enable_console:
            self._provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(self._provider)

    @staticmethod
    def instrument_fastapi(*, app: Any, excluded_urls: str = UNTRACED_ROUTES) -> None:
        FastAPIInstrumentor.instrument_app(app, excluded_urls=excluded_urls)

    @staticmethod
    def instrument_sqlalchemy(*, engine: Any) -> None:
        SQLAlchemyInstrumentor().instrument(engine=getattr(engine, 'sync_engine', engine))

    @staticmethod
    def instrument_httpx() -> None:
        HTTPXClientInstrumentor().instrument(async_request_hook=_tag_outbound_request)

    def shutdown(self) -> None:
        if self._provider:
            self._provider.shutdown()
