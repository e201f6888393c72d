# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import date

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

from relief_intake.domain.context import DomainContext, FixedClock
from relief_intake.models.entities import Location, Person
from relief_intake.services.database import GatewayConfig
from relief_intake.services.diagnostics import ErrorLog
from relief_intake.services.gateway import ReliefGateway


@pytest.fixture
def clock():
    """Clock pinned to 1 January 2025."""
    return FixedClock(date(2025, 1, 1))


@pytest.fixture(autouse=True)
def domain_context(clock):
    """Fresh identifier sequence and fixed clock for every test."""
    context = DomainContext(clock=clock)
    with context.activate():
        yield context


@pytest.fixture
def error_log(tmp_path):
    """Error log written under the test's temporary directory."""
    return ErrorLog(tmp_path / "errorlog.txt")


@pytest.fixture
def gateway_config(tmp_path):
    """File-backed SQLite store in the test's temporary directory."""
    return GatewayConfig(
        database_url=f"sqlite:///{tmp_path / 'relief.db'}",
        error_log_path=str(tmp_path / "errorlog.txt")
    )


@pytest.fixture
def gateway(gateway_config, error_log, domain_context):
    """Open gateway with the schema created."""
    relief_gateway = ReliefGateway(gateway_config, error_log, domain_context)
    assert relief_gateway.open()
    yield relief_gateway
    relief_gateway.close()


@pytest.fixture
def shelter():
    return Location(name="Community Hall", address="1 Main Street")


@pytest.fixture
def freda():
    return Person(
        first_name="Freda",
        last_name="Jones",
        entry_date="2025-01-01",
        date_of_birth="1980-05-17",
        gender="woman"
    )
