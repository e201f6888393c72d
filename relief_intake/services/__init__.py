# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Services package - Persistence and diagnostics.
"""

from .diagnostics import ErrorLog, DiagnosticEntry, describe_error
from .database import GatewayConfig, build_engine, config_from_env, metadata
from .gateway import ReliefGateway, ReliefSnapshot, OrphanedReference, create_gateway, keyed

__all__ = [
    "ErrorLog",
    "DiagnosticEntry",
    "describe_error",
    "GatewayConfig",
    "build_engine",
    "config_from_env",
    "metadata",
    "ReliefGateway",
    "ReliefSnapshot",
    "OrphanedReference",
    "create_gateway",
    "keyed"
]
