"""OpenTelemetry + Prometheus fallback wiring for session ingestion."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any

from sessionview import config

logger = logging.getLogger("sessionview.observability")


_initialized = False
_enabled = False
_tracer: Any | None = None
_trace_provider: Any | None = None
_meter_provider: Any | None = None

_ingestion_counter: Any | None = None
_ingestion_latency_hist: Any | None = None
_parser_failure_counter: Any | None = None

_prom_enabled = False
_prom_ingestion_counter: Any | None = None
_prom_ingestion_latency_hist: Any | None = None
_prom_parser_failure_counter: Any | None = None


def _normalize_otlp_endpoint(base_endpoint: str, signal_path: str) -> str:
    endpoint = (base_endpoint or "").strip()
    if not endpoint:
        return ""
    if endpoint.endswith(signal_path):
        return endpoint
    if endpoint.endswith("/"):
        endpoint = endpoint[:-1]
    if endpoint.endswith("/v1"):
        return f"{endpoint}{signal_path[3:]}"
    return f"{endpoint}{signal_path}"


def _prom_labels(**values: str) -> dict[str, str]:
    return {key: (value or "").strip() or "unknown" for key, value in values.items()}


def initialize() -> None:
    global _initialized, _enabled, _tracer, _trace_provider, _meter_provider
    global _ingestion_counter, _ingestion_latency_hist, _parser_failure_counter
    global _prom_enabled, _prom_ingestion_counter, _prom_ingestion_latency_hist, _prom_parser_failure_counter

    if _initialized:
        return
    _initialized = True

    if not config.OTEL_ENABLED:
        logger.info("OpenTelemetry disabled (SESSIONVIEW_OTEL_ENABLED=false)")
        return

    try:
        from opentelemetry import metrics, trace
        from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
        from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError as exc:
        logger.warning("OpenTelemetry dependencies unavailable: %s", exc)
        return

    traces_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/traces")
    metrics_endpoint = _normalize_otlp_endpoint(config.OTEL_ENDPOINT, "/v1/metrics")
    service_name = config.OTEL_SERVICE_NAME or "sessionview"

    resource = Resource.create({"service.name": service_name, "service.namespace": "sessionview"})

    trace_provider = TracerProvider(resource=resource)
    trace_provider.add_span_processor(BatchSpanProcessor(OTLPSpanExporter(endpoint=traces_endpoint or None)))
    trace.set_tracer_provider(trace_provider)

    metric_reader = PeriodicExportingMetricReader(OTLPMetricExporter(endpoint=metrics_endpoint or None))
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    meter = metrics.get_meter("sessionview.ingest")

    _ingestion_counter = meter.create_counter(
        "sessionview_ingestion_total",
        unit="1",
        description="Count of session parse and poll operations",
    )
    _ingestion_latency_hist = meter.create_histogram(
        "sessionview_ingestion_latency_ms",
        unit="ms",
        description="Latency for session parse and poll operations",
    )
    _parser_failure_counter = meter.create_counter(
        "sessionview_parser_skips_total",
        unit="1",
        description="Transcript records skipped by the per-line decoder",
    )

    _trace_provider = trace_provider
    _meter_provider = meter_provider
    _tracer = trace.get_tracer("sessionview.ingest")
    _enabled = True

    if config.PROM_PORT > 0:
        try:
            from prometheus_client import Counter, Histogram, start_http_server

            start_http_server(config.PROM_PORT)
            _prom_ingestion_counter = Counter(
                "sessionview_ingestion_total",
                "Count of session parse and poll operations",
                ["entity", "result", "source"],
            )
            _prom_ingestion_latency_hist = Histogram(
                "sessionview_ingestion_latency_ms",
                "Latency for session parse and poll operations",
                ["entity", "result", "source"],
            )
            _prom_parser_failure_counter = Counter(
                "sessionview_parser_skips_total",
                "Transcript records skipped by the per-line decoder",
                ["parser", "source"],
            )
            _prom_enabled = True
            logger.info("Prometheus fallback metrics server listening on port %s", config.PROM_PORT)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Prometheus fallback not started: %s", exc)
            _prom_enabled = False

    logger.info("OpenTelemetry initialized (service=%s endpoint=%s)", service_name, config.OTEL_ENDPOINT)


def shutdown() -> None:
    global _enabled
    if not _initialized:
        return
    for provider in (_meter_provider, _trace_provider):
        if provider is None:
            continue
        try:
            provider.shutdown()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Telemetry provider shutdown failed: %s", exc)
    _enabled = False


@contextmanager
def start_span(name: str, attributes: dict[str, Any] | None = None):
    if not _enabled or _tracer is None:
        yield None
        return
    with _tracer.start_as_current_span(name) as span:
        if attributes:
            for key, value in attributes.items():
                if value is not None:
                    span.set_attribute(key, value)
        yield span


def record_ingestion(entity: str, result: str, duration_ms: float, *, source: str) -> None:
    labels = {
        "entity": entity or "unknown",
        "result": result or "unknown",
        "source": source or "unknown",
    }
    if _enabled and _ingestion_counter is not None:
        _ingestion_counter.add(1, labels)
    if _enabled and _ingestion_latency_hist is not None:
        _ingestion_latency_hist.record(max(0.0, float(duration_ms)), labels)
    if _prom_enabled and _prom_ingestion_counter is not None:
        _prom_ingestion_counter.labels(**_prom_labels(entity=entity, result=result, source=source)).inc()
    if _prom_enabled and _prom_ingestion_latency_hist is not None:
        prom = _prom_labels(entity=entity, result=result, source=source)
        _prom_ingestion_latency_hist.labels(**prom).observe(max(0.0, float(duration_ms)))


def record_parser_failure(parser: str, *, source: str) -> None:
    labels = {
        "parser": parser or "unknown",
        "source": source or "unknown",
    }
    if _enabled and _parser_failure_counter is not None:
        _parser_failure_counter.add(1, labels)
    if _prom_enabled and _prom_parser_failure_counter is not None:
        _prom_parser_failure_counter.labels(**_prom_labels(parser=parser, source=source)).inc()
