# SPDX-License-Identifier: Apache-2.0

"""
Tests for tracing and logging setup.
"""

import logging

from relief_intake.observability.config import (
    SERVICE_NAME,
    build_tracer_provider,
    log_level_for,
    setup_observability,
    setup_structured_logging,
)


class TestTracerProvider:

    def test_resource_attributes(self):
        provider = build_tracer_provider("staging")

        attributes = provider.resource.attributes
        assert attributes["service.name"] == SERVICE_NAME
        assert attributes["deployment.environment"] == "staging"
        provider.shutdown()

    def test_disabled_tracing(self, monkeypatch):
        monkeypatch.setenv("OTEL_ENABLED", "false")

        assert setup_observability() is None


class TestStructuredLogging:

    def test_levels_by_environment(self):
        assert log_level_for("production") == logging.WARNING
        assert log_level_for("development") == logging.DEBUG
        assert log_level_for("unknown") == logging.INFO

    def test_development_package_loggers(self):
        setup_structured_logging("development")

        assert logging.getLogger("relief_intake.domain").level == logging.DEBUG
        assert logging.getLogger("relief_intake.services").level == logging.DEBUG
