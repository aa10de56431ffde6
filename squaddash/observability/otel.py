"""OpenTelemetry + Prometheus fallback wiring for SquadDash.

Everything here is a no-op until `initialize()` runs with
SQUADDASH_OTEL_ENABLED set. OTel packages are imported lazily so the parsers
stay importable without a collector configured.
"""
from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

from fastapi import FastAPI

from squaddash import config

logger = logging.getLogger("squaddash.observability")

_INGESTION_EVENTS = ("squaddash_ingestion_events_total", "Count of squad file parse batches")
_INGESTION_LATENCY = ("squaddash_ingestion_latency_ms", "Latency for squad file parse batches")
_PARSER_FAILURES = ("squaddash_parser_failures_total", "Count of squad files skipped by a parser")
_CACHE_REFRESHES = ("squaddash_cache_refreshes_total", "Count of provider cache invalidations")


@dataclass
class _Telemetry:
    initialized: bool = False
    enabled: bool = False
    tracer: Any = None
    trace_provider: Any = None
    meter_provider: Any = None
    instrumentor: Any = None
    ingestion_counter: Any = None
    ingestion_latency: Any = None
    parser_failures: Any = None
    cache_refreshes: Any = None


@dataclass
class _PromMetrics:
    enabled: bool = False
    ingestion_counter: Any = None
    ingestion_latency: Any = None
    parser_failures: Any = None
    cache_refreshes: Any = None


_otel = _Telemetry()
_prom = _PromMetrics()


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip().rstrip("/")
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _label(value: str | None) -> str:
    return (value or "").strip() or "unknown"


def _start_prometheus(port: int) -> None:
    try:
        from prometheus_client import Counter, Histogram, start_http_server

        start_http_server(port)
        _prom.ingestion_counter = Counter(*_INGESTION_EVENTS, ["entity", "result"])
        _prom.ingestion_latency = Histogram(*_INGESTION_LATENCY, ["entity", "result"])
        _prom.parser_failures = Counter(*_PARSER_FAILURES, ["parser"])
        _prom.cache_refreshes = Counter(*_CACHE_REFRESHES, ["trigger"])
        _prom.enabled = True
        logger.info("Prometheus fallback metrics server listening on port %s", port)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Prometheus fallback not started: %s", exc)
        _prom.enabled = False


def initialize(app: FastAPI | None = None) -> None:
    if _otel.initialized:
        if _otel.enabled and app and _otel.instrumentor:
            _otel.instrumentor.instrument_app(app)
        return
    _otel.initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (SQUADDASH_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    service_name = config.OTEL_SERVICE_NAME or "squaddash"
    resource = Resource.create({"service.name": service_name, "service.namespace": "squaddash"})

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=metrics_endpoint or None))
    meter_provider = MeterProvider(resource=resource, metric_readers=[reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("squaddash")

    _otel.tracer = trace.get_tracer("squaddash")
    _otel.trace_provider = trace_provider
    _otel.meter_provider = meter_provider
    _otel.ingestion_counter = meter.create_counter(_INGESTION_EVENTS[0], unit="1", description=_INGESTION_EVENTS[1])
    _otel.ingestion_latency = meter.create_histogram(_INGESTION_LATENCY[0], unit="ms", description=_INGESTION_LATENCY[1])
    _otel.parser_failures = meter.create_counter(_PARSER_FAILURES[0], unit="1", description=_PARSER_FAILURES[1])
    _otel.cache_refreshes = meter.create_counter(_CACHE_REFRESHES[0], unit="1", description=_CACHE_REFRESHES[1])
    _otel.instrumentor = FastAPIInstrumentor()
    _otel.enabled = True

    if app:
        _otel.instrumentor.instrument_app(app)
    if config.PROM_PORT > 0:
        _start_prometheus(config.PROM_PORT)

    logger.info("OpenTelemetry initialized (service=%s endpoint=%s)", service_name, config.OTEL_ENDPOINT)


def shutdown(app: FastAPI | None = None) -> None:
    if not _otel.initialized:
        return
    if app and _otel.instrumentor:
        try:
            _otel.instrumentor.uninstrument_app(app)
        except Exception as exc:  # noqa: BLE001
            logger.debug("FastAPI uninstrument failed: %s", exc)
    for provider in (_otel.meter_provider, _otel.trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.debug("Telemetry provider shutdown failed: %s", exc)
    _otel.enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _otel.enabled or _otel.tracer is None:
        yield None
        return
    with _otel.tracer.start_as_current_span(name) as span:
        for key, value in (attributes or {}).items():
            if value is not None:
                span.set_attribute(key, value)
        yield span


def record_ingestion(entity: str, result: str, duration_ms: float) -> None:
    """One parse batch (logs or decisions) finished."""
    labels = {"entity": _label(entity), "result": _label(result)}
    latency = max(0.0, float(duration_ms))
    if _otel.enabled:
        _otel.ingestion_counter.add(1, labels)
        _otel.ingestion_latency.record(latency, labels)
    if _prom.enabled:
        _prom.ingestion_counter.labels(**labels).inc()
        _prom.ingestion_latency.labels(**labels).observe(latency)


def record_parser_failure(parser: str) -> None:
    labels = {"parser": _label(parser)}
    if _otel.enabled:
        _otel.parser_failures.add(1, labels)
    if _prom.enabled:
        _prom.parser_failures.labels(**labels).inc()


def record_cache_refresh(trigger: str) -> None:
    labels = {"trigger": _label(trigger)}
    if _otel.enabled:
        _otel.cache_refreshes.add(1, labels)
    if _prom.enabled:
        _prom.cache_refreshes.labels(**labels).inc()
