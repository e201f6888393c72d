# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Base entity model and shared date validation helpers.
"""

import re
from datetime import date, datetime
from typing import Any, Optional
from pydantic import BaseModel, ConfigDict


ISO_DATE_PATTERN = re.compile(r'^\d{4}-\d{2}-\d{2}$')


def validate_iso_date(value: Any, label: str) -> str:
    """
    Validate a ``YYYY-MM-DD`` date and return it as a string.

    ``date`` objects are accepted and formatted; strings must match the
    pattern exactly and name a real calendar day.
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not ISO_DATE_PATTERN.match(value):
        raise ValueError(f'Invalid date format for {label}. Expected format: YYYY-MM-DD')
    try:
        date.fromisoformat(value)
    except ValueError:
        raise ValueError(f'Invalid calendar date for {label}: {value}')
    return value


def parse_iso_date(value: Optional[str]) -> Optional[date]:
    """Convert a validated ISO date string to a ``date``."""
    if value is None:
        return None
    return date.fromisoformat(value)


class BaseEntity(BaseModel):
    """Base for mutable domain entities.

    Entities are linked to each other in both directions (occupants,
    holders, family members), so equality and hashing are by identity.
    """

    model_config = ConfigDict(
        # Allow population by field name or alias
        populate_by_name=True,
        # Re-run validators on every attribute assignment
        validate_assignment=True,
        # Entities reference each other
        arbitrary_types_allowed=True
    )

    def __eq__(self, other: object) -> bool:
        return self is other

    def __hash__(self) -> int:
        return id(self)
