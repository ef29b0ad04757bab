# © Copyright 2025-2026, Query.Farm LLC - https://query.farm
# SPDX-License-Identifier: Apache-2.0

"""OpenTelemetry client-side instrumentation for genai-transport.

Provides ``OtelConfig`` and ``instrument_client()`` for adding distributed
tracing (spans) and metrics (counters, histograms) to every HTTP request an
``ApiClient`` sends: unary calls, streaming calls and upload chunks.

Requires ``pip install genai-transport[otel]`` (opentelemetry-api).

Usage::

    from genai_transport.otel import OtelConfig, instrument_client

    client = ApiClient(config)
    instrument_client(client)  # uses global TracerProvider / MeterProvider
"""

from __future__ import annotations

import logging
import time
from collections.abc import Mapping
from dataclasses import dataclass, field

import httpx
from opentelemetry import propagate, trace
from opentelemetry.metrics import Counter, Histogram, Meter, MeterProvider, get_meter_provider
from opentelemetry.trace import SpanKind, StatusCode, Tracer, TracerProvider, get_tracer_provider

from genai_transport._debug import redact_url
from genai_transport.http._client import ApiClient

__all__ = ["OtelConfig", "instrument_client"]

_logger = logging.getLogger("genai_transport.otel")

_INSTRUMENTATION_NAME = "genai_transport"


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class OtelConfig:
    """Configuration for OpenTelemetry instrumentation.

    Attributes:
        tracer_provider: Custom ``TracerProvider``; uses the global provider when ``None``.
        meter_provider: Custom ``MeterProvider``; uses the global provider when ``None``.
        enable_tracing: Enable span creation (default ``True``).
        enable_metrics: Enable counter/histogram recording (default ``True``).
        record_exceptions: Record exceptions on error spans (default ``True``).
        propagate_context: Inject W3C ``traceparent`` into outgoing requests.
        custom_attributes: Extra span/metric attributes merged into every request.

    """

    tracer_provider: TracerProvider | None = None
    meter_provider: MeterProvider | None = None
    enable_tracing: bool = True
    enable_metrics: bool = True
    record_exceptions: bool = True
    propagate_context: bool = True
    custom_attributes: Mapping[str, str] = field(default_factory=dict)


def instrument_client(client: ApiClient, config: OtelConfig | None = None) -> ApiClient:
    """Attach OpenTelemetry tracing and metrics to a client.

    Call before the client is shared between threads.  A second call
    replaces the previous instrumentation.

    Args:
        client: The ``ApiClient`` to instrument.
        config: Optional configuration; uses global providers and defaults when ``None``.

    Returns:
        The same *client* instance (for chaining).

    """
    if config is None:
        config = OtelConfig()
    client._request_hook = _OtelRequestHook(config, client.strategy.backend.value)
    _logger.debug("OpenTelemetry instrumentation attached (backend=%s)", client.strategy.backend.value)
    return client


# ---------------------------------------------------------------------------
# Internal request hook
# ---------------------------------------------------------------------------


@dataclass
class _OtelHookToken:
    """Internal token carrying span + timing for on_request_end."""

    span: trace.Span | None
    start_time: float
    method: str
    operation: str


class _OtelRequestHook:
    """Implements ``RequestHook`` with OpenTelemetry spans and metrics."""

    __slots__ = ("_backend", "_config", "_counter", "_histogram", "_meter", "_tracer")

    def __init__(self, config: OtelConfig, backend: str) -> None:
        self._config = config
        self._backend = backend

        from genai_transport import __version__

        tp = config.tracer_provider or get_tracer_provider()
        self._tracer: Tracer = tp.get_tracer(_INSTRUMENTATION_NAME, __version__)

        mp: MeterProvider = config.meter_provider or get_meter_provider()
        self._meter: Meter = mp.get_meter(_INSTRUMENTATION_NAME, __version__)
        self._counter: Counter = self._meter.create_counter(
            "genai.client.requests",
            unit="{request}",
            description="Number of HTTP requests sent",
        )
        self._histogram: Histogram = self._meter.create_histogram(
            "genai.client.duration",
            unit="s",
            description="Time until response headers arrive",
        )

    def on_request_start(self, request: httpx.Request, operation: str) -> _OtelHookToken:
        """Start a CLIENT span and inject trace context into *request*."""
        span: trace.Span | None = None
        if self._config.enable_tracing:
            attrs: dict[str, str] = {
                "http.request.method": request.method,
                "url.full": redact_url(str(request.url)),
                "genai.backend": self._backend,
                "genai.operation": operation,
            }
            attrs.update(self._config.custom_attributes)
            span = self._tracer.start_span(
                f"genai/{operation}",
                kind=SpanKind.CLIENT,
                attributes=attrs,
            )
            if self._config.propagate_context:
                propagate.inject(request.headers, context=trace.set_span_in_context(span))
        return _OtelHookToken(span=span, start_time=time.monotonic(), method=request.method, operation=operation)

    def on_request_end(
        self,
        token: object,
        response: httpx.Response | None,
        error: BaseException | None,
    ) -> None:
        """End the span and record metrics."""
        if not isinstance(token, _OtelHookToken):
            return

        duration = time.monotonic() - token.start_time
        failed = error is not None or (response is not None and response.status_code >= 400)

        if token.span is not None:
            if response is not None:
                token.span.set_attribute("http.response.status_code", response.status_code)
            if error is not None:
                token.span.set_status(StatusCode.ERROR, str(error))
                token.span.set_attribute("error.type", type(error).__name__)
                if self._config.record_exceptions:
                    token.span.record_exception(error)
            elif failed:
                token.span.set_status(StatusCode.ERROR)
            else:
                token.span.set_status(StatusCode.OK)
            token.span.end()

        if self._config.enable_metrics:
            metric_attrs: dict[str, str | int] = {
                "http.request.method": token.method,
                "genai.backend": self._backend,
                "genai.operation": token.operation,
                "status": "error" if failed else "ok",
            }
            if response is not None:
                metric_attrs["http.response.status_code"] = response.status_code
            self._counter.add(1, metric_attrs)
            self._histogram.record(duration, metric_attrs)
