# src/kubechain/core/telemetry.py
"""Initializes OpenTelemetry services for the KubeChain discovery agent."""

import logging
import os

from opentelemetry import metrics, trace
from opentelemetry.exporter.otlp.proto.http.metric_exporter import OTLPMetricExporter
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor

logger = logging.getLogger(__name__)

# In k8s this would be http://otel-collector.<namespace>.svc.cluster.local:4318
OTEL_EXPORTER_OTLP_ENDPOINT = os.getenv("OTEL_EXPORTER_OTLP_ENDPOINT", "http://localhost:4318")


def initialize_telemetry():
    """
    Configures and initializes the TracerProvider and MeterProvider for OpenTelemetry.
    Data will be exported via OTLP/HTTP.
    """
    resource = Resource(attributes={SERVICE_NAME: "kubechain"})

    tracer_provider = TracerProvider(resource=resource)
    span_exporter = OTLPSpanExporter(endpoint=f"{OTEL_EXPORTER_OTLP_ENDPOINT}/v1/traces")
    tracer_provider.add_span_processor(BatchSpanProcessor(span_exporter))
    trace.set_tracer_provider(tracer_provider)

    metric_reader = PeriodicExportingMetricReader(
        OTLPMetricExporter(endpoint=f"{OTEL_EXPORTER_OTLP_ENDPOINT}/v1/metrics")
    )
    meter_provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
    metrics.set_meter_provider(meter_provider)
    logger.info(f"OpenTelemetry initialized. Exporting to: {OTEL_EXPORTER_OTLP_ENDPOINT}")


tracer = trace.get_tracer("kubechain.tracer")
meter = metrics.get_meter("kubechain.meter")

owner_cache_hits = meter.create_counter(
    "kubechain.ownership.cache_hits", description="Controller lookups answered from the ownership cache"
)
owner_cache_misses = meter.create_counter(
    "kubechain.ownership.cache_misses", description="Controller lookups that walked the owner references"
)
