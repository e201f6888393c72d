# SPDX-License-Identifier: Apache-2.0

"""
OpenTelemetry Configuration

Sets up tracing and logging for the relief intake core. Store operations
open one span each; failed operations mark their span as errored.
"""

import os
import logging
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

logger = logging.getLogger(__name__)

SERVICE_NAME = 'relief-intake'


def build_tracer_provider(environment: str, otlp_endpoint: Optional[str] = None) -> TracerProvider:
    """Create a tracer provider with environment-specific sampling and exporters."""
    service_version = os.getenv('SERVICE_VERSION', '0.1.0')

    # Environment-specific sampling
    if environment == 'production':
        sampler = TraceIdRatioBased(0.1)  # 10% sampling in production
    elif environment == 'staging':
        sampler = TraceIdRatioBased(0.5)
    else:
        sampler = TraceIdRatioBased(1.0)

    resource = Resource.create({
        "service.name": SERVICE_NAME,
        "service.version": service_version,
        "deployment.environment": environment
    })

    tracer_provider = TracerProvider(sampler=sampler, resource=resource)

    if otlp_endpoint:
        tracer_provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint), max_export_batch_size=512)
        )
    elif environment == 'development':
        # Development: spans go to the console
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))

    return tracer_provider


def setup_observability() -> Optional[TracerProvider]:
    """
    Initialize tracing and logging from the environment.

    Returns:
        The installed tracer provider, or None when ``OTEL_ENABLED`` is false
    """
    environment = os.getenv('ENVIRONMENT', 'development')
    otel_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'

    setup_structured_logging(environment)

    if not otel_enabled:
        # Spans fall back to the API's no-op tracer
        logger.info("Tracing disabled")
        return None

    tracer_provider = build_tracer_provider(
        environment, os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    )
    trace.set_tracer_provider(tracer_provider)
    logger.info(f"Tracing enabled for {SERVICE_NAME} ({environment})")
    return tracer_provider


def log_level_for(environment: str) -> int:
    return {
        'production': logging.WARNING,
        'staging': logging.INFO,
        'development': logging.DEBUG,
        'test': logging.WARNING
    }.get(environment, logging.INFO)


def setup_structured_logging(environment: str):
    """Configure root logging with per-environment levels."""
    logging.basicConfig(
        level=log_level_for(environment),
        format='%(asctime)s %(levelname)s %(name)s %(message)s',
        handlers=[logging.StreamHandler()]
    )

    if environment == 'production':
        # Production: only statement errors from the driver
        logging.getLogger('sqlalchemy.engine').setLevel(logging.ERROR)
    elif environment == 'development':
        logging.getLogger('relief_intake.domain').setLevel(logging.DEBUG)
        logging.getLogger('relief_intake.services').setLevel(logging.DEBUG)
