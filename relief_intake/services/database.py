# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Relational schema and engine configuration for the relief store.
"""

import os
import logging
from dataclasses import dataclass
from sqlalchemy import (
    CheckConstraint,
    Column,
    Date,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

logger = logging.getLogger(__name__)


@dataclass
class GatewayConfig:
    """Relief store connection settings."""
    database_url: str = 'sqlite:///data/relief.db'
    error_log_path: str = 'data/errorlog.txt'
    echo: bool = False
    create_schema: bool = True


def config_from_env() -> GatewayConfig:
    """Build a ``GatewayConfig`` from ``RELIEF_*`` environment variables."""
    return GatewayConfig(
        database_url=os.getenv('RELIEF_DATABASE_URL', 'sqlite:///data/relief.db'),
        error_log_path=os.getenv('RELIEF_ERROR_LOG', 'data/errorlog.txt'),
        echo=os.getenv('RELIEF_DB_ECHO', 'false').lower() == 'true',
        create_schema=os.getenv('RELIEF_DB_CREATE_SCHEMA', 'true').lower() == 'true'
    )


def build_engine(config: GatewayConfig) -> Engine:
    """Create the SQLAlchemy engine; in-memory SQLite shares one connection."""
    url = config.database_url
    kwargs = {"echo": config.echo}
    if url.startswith("sqlite") and ":memory:" in url:
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = StaticPool
    logger.info(f"Building relief store engine for {url.split('@')[-1]}")
    return create_engine(url, **kwargs)


metadata = MetaData()

person_table = Table(
    "person", metadata,
    Column("person_id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100)),
    Column("date_of_birth", Date),
    Column("gender", String(32)),
    Column("comments", Text),
    Column("family_group", String(100)),
    Column("entry_date", Date),
)

location_table = Table(
    "location", metadata,
    Column("location_id", Integer, primary_key=True, autoincrement=True),
    Column("name", String(200), nullable=False),
    Column("address", String(500)),
)

supply_table = Table(
    "supply", metadata,
    Column("supply_id", Integer, primary_key=True, autoincrement=True),
    Column("type", String(100), nullable=False),
    Column("quantity", Integer, nullable=False, default=1),
    Column("comments", Text),
)

supply_allocation_table = Table(
    "supply_allocation", metadata,
    Column("allocation_id", Integer, primary_key=True, autoincrement=True),
    Column("supply_id", Integer, ForeignKey("supply.supply_id"), nullable=False),
    Column("person_id", Integer, ForeignKey("person.person_id")),
    Column("location_id", Integer, ForeignKey("location.location_id")),
    Column("allocation_date", Date),
    CheckConstraint(
        "person_id IS NULL OR location_id IS NULL",
        name="ck_allocation_single_holder"
    ),
)

inquirer_table = Table(
    "inquirer", metadata,
    Column("inquirer_id", Integer, primary_key=True, autoincrement=True),
    Column("first_name", String(100), nullable=False),
    Column("last_name", String(100)),
    Column("phone_number", String(40)),
    Column("info", Text),
    Column("person_id", Integer, ForeignKey("person.person_id")),
)

inquiry_table = Table(
    "inquiry", metadata,
    Column("inquiry_id", Integer, primary_key=True, autoincrement=True),
    Column("inquirer_id", Integer, ForeignKey("inquirer.inquirer_id"), nullable=False),
    Column("seeking_id", Integer, ForeignKey("person.person_id"), nullable=False),
    Column("location_id", Integer, ForeignKey("location.location_id")),
    Column("date_of_inquiry", Date, nullable=False),
    Column("comments", Text),
)

medical_record_table = Table(
    "medical_record", metadata,
    Column("medical_record_id", Integer, primary_key=True, autoincrement=True),
    Column("person_id", Integer, ForeignKey("person.person_id"), nullable=False),
    Column("location_id", Integer, ForeignKey("location.location_id"), nullable=False),
    Column("date_of_treatment", Date, nullable=False),
    Column("treatment_details", Text, nullable=False),
)
