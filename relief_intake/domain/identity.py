# SPDX-License-Identifier: Apache-2.0

"""
Identity resolution for persons and locations.

Two distinct identities exist. In memory every person receives a strictly
increasing integer from an ``IdentifierSequence``. In the store a person is
found by its natural key, the exact (first name, last name) pair, and a
location by its name. Natural keys are only as reliable as name uniqueness
in the data set: two people with the same names resolve to the same row.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Sequence, Tuple

logger = logging.getLogger(__name__)

NaturalKey = Tuple[str, Optional[str]]


class IdentifierSequence:
    """Monotonic identifier generator starting at 1; values are never reused."""

    def __init__(self, start: int = 1):
        if start < 1:
            raise ValueError('Identifier sequence must start at 1 or higher')
        self._next = start

    def next_value(self) -> int:
        value = self._next
        self._next += 1
        return value

    @property
    def last_issued(self) -> Optional[int]:
        """Most recent value handed out, or None before the first call."""
        return self._next - 1 if self._next > 1 else None


class UpsertAction(str, Enum):
    """What a save should do with an entity."""
    INSERT = "insert"
    UPDATE = "update"


@dataclass
class UpsertPlan:
    """Outcome of a natural-key lookup."""
    action: UpsertAction
    record_id: Optional[int] = None
    duplicate_count: int = 0


def natural_key(person: Any) -> NaturalKey:
    """Natural key of a person as used for store lookups."""
    return (person.first_name, person.last_name)


def location_key(location: Any) -> str:
    """Natural key of a location as used for store lookups."""
    return location.name


def resolve_upsert(matching_ids: Sequence[int]) -> UpsertPlan:
    """
    Decide between insert and update from the ids matching a natural key.

    Args:
        matching_ids: Store ids whose natural key equals the entity's, in
            ascending order

    Returns:
        UpsertPlan to insert when nothing matched, otherwise to update the
        first match
    """
    if not matching_ids:
        return UpsertPlan(action=UpsertAction.INSERT)

    if len(matching_ids) > 1:
        logger.warning(
            f"Natural key matches {len(matching_ids)} rows; updating lowest id {matching_ids[0]}"
        )

    return UpsertPlan(
        action=UpsertAction.UPDATE,
        record_id=matching_ids[0],
        duplicate_count=len(matching_ids) - 1
    )
