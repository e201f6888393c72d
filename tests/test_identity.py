# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for identity resolution and the domain context.
"""

import logging
import pytest
from datetime import date

from relief_intake.domain.context import DomainContext, FixedClock, SystemClock, current_context
from relief_intake.domain.identity import (
    IdentifierSequence,
    UpsertAction,
    location_key,
    natural_key,
    resolve_upsert,
)
from relief_intake.models import Person


class TestIdentifierSequence:
    """Test in-memory identifier generation."""

    def test_starts_at_one(self):
        sequence = IdentifierSequence()

        assert sequence.last_issued is None
        assert sequence.next_value() == 1
        assert sequence.next_value() == 2
        assert sequence.last_issued == 2

    def test_invalid_start(self):
        with pytest.raises(ValueError):
            IdentifierSequence(start=0)


class TestDomainContext:
    """Test context activation."""

    def test_nested_context_has_own_sequence(self, domain_context):
        outer = Person(first_name="Ann", entry_date="2025-01-01")
        inner_context = DomainContext(sequence=IdentifierSequence(start=100))

        with inner_context.activate():
            assert current_context() is inner_context
            inner = Person(first_name="Bob", entry_date="2025-01-01")

        after = Person(first_name="Cid", entry_date="2025-01-01")

        assert outer.assigned_id == 1
        assert inner.assigned_id == 100
        assert after.assigned_id == 2
        assert current_context() is domain_context

    def test_default_clock(self):
        context = DomainContext()

        assert isinstance(context.clock, SystemClock)
        assert context.clock.today() == date.today()

    def test_fixed_clock(self):
        clock = FixedClock(date(2025, 1, 1))

        assert clock.advance(2) == date(2025, 1, 3)
        clock.set(date(2024, 12, 31))
        assert clock.today() == date(2024, 12, 31)


class TestNaturalKeys:
    """Test natural keys and upsert decisions."""

    def test_natural_key(self, freda, shelter):
        assert natural_key(freda) == ("Freda", "Jones")
        assert natural_key(Person(first_name="Madonna", entry_date="2025-01-01")) == ("Madonna", None)
        assert location_key(shelter) == "Community Hall"

    def test_no_match_inserts(self):
        plan = resolve_upsert([])

        assert plan.action is UpsertAction.INSERT
        assert plan.record_id is None

    def test_single_match_updates(self):
        plan = resolve_upsert([7])

        assert plan.action is UpsertAction.UPDATE
        assert plan.record_id == 7
        assert plan.duplicate_count == 0

    def test_duplicates_update_lowest_id(self, caplog):
        """Test duplicate natural keys update the first match and warn."""
        with caplog.at_level(logging.WARNING, logger="relief_intake.domain.identity"):
            plan = resolve_upsert([2, 5, 9])

        assert plan.record_id == 2
        assert plan.duplicate_count == 2
        assert "matches 3 rows" in caplog.text
