# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Unit tests for the supply allocation engine.
"""

import pytest
from datetime import date

from relief_intake.domain import allocation
from relief_intake.models import (
    Cot,
    GenericSupply,
    NotFoundError,
    OwnershipState,
    Person,
    PersonalBelonging,
    SupplyPlacementError,
    Water,
)


class TestAllocate:
    """Test moves between owners."""

    def test_unowned_to_person(self, freda):
        blanket = GenericSupply(type_label="Blanket")

        allocation.allocate(blanket, None, freda)

        assert freda.supplies == [blanket]
        assert blanket.holder is freda
        assert blanket.ownership is OwnershipState.HELD_BY_PERSON

    def test_location_to_person(self, shelter, freda):
        """Test a move removes the unit from its source."""
        cot = Cot(room="101", grid="A1")
        shelter.add_supply(cot)

        allocation.allocate(cot, shelter, freda)

        assert shelter.supplies == []
        assert freda.supplies == [cot]
        assert cot.holder is freda

    def test_person_to_location(self, shelter, freda):
        water = Water()
        freda.add_supply(water)

        shelter.add_supply(water)

        assert freda.supplies == []
        assert shelter.supplies == [water]
        assert water.ownership is OwnershipState.HELD_BY_LOCATION

    def test_person_to_person_rejected(self, freda):
        """Test units never move directly between two people."""
        other = Person(first_name="Tom", entry_date="2025-01-01")
        blanket = GenericSupply(type_label="Blanket")
        freda.add_supply(blanket)

        with pytest.raises(SupplyPlacementError):
            allocation.allocate(blanket, freda, other)

        assert freda.supplies == [blanket]
        assert other.supplies == []
        assert blanket.holder is freda

    def test_personal_belonging_at_location_rejected(self, shelter, freda):
        """Test a personal belonging cannot be stored at a location."""
        ring = PersonalBelonging(description="Wedding ring")
        freda.add_supply(ring)
        cot = Cot(room="101", grid="A1")
        shelter.add_supply(cot)

        with pytest.raises(SupplyPlacementError):
            shelter.add_supply(ring)

        assert shelter.supplies == [cot]
        assert freda.supplies == [ring]
        assert ring.holder is freda

    def test_unowned_personal_belonging_at_location_rejected(self, shelter):
        ring = PersonalBelonging(description="Wedding ring")

        with pytest.raises(SupplyPlacementError):
            allocation.allocate(ring, None, shelter)

        assert shelter.supplies == []
        assert ring.ownership is OwnershipState.UNOWNED

    def test_source_must_hold_unit(self, shelter, freda):
        """Test naming the wrong source fails before any change."""
        blanket = GenericSupply(type_label="Blanket")

        with pytest.raises(NotFoundError):
            allocation.allocate(blanket, shelter, freda)

        assert freda.supplies == []
        assert blanket.holder is None

    def test_held_unit_needs_its_source(self, shelter, freda):
        blanket = GenericSupply(type_label="Blanket")
        shelter.add_supply(blanket)

        with pytest.raises(SupplyPlacementError):
            allocation.allocate(blanket, None, freda)

        assert shelter.supplies == [blanket]

    def test_adding_held_unit_again_is_noop(self, freda):
        blanket = GenericSupply(type_label="Blanket")
        freda.add_supply(blanket)
        freda.add_supply(blanket)

        assert freda.supplies == [blanket]


class TestRelease:
    """Test removing supplies from an owner."""

    def test_release_keeps_order(self, shelter):
        first = GenericSupply(type_label="Blanket")
        second = Water()
        third = Cot(room="101", grid="A1")
        for supply in (first, second, third):
            shelter.add_supply(supply)

        shelter.remove_supply(second)

        assert shelter.supplies == [first, third]
        assert second.holder is None

    def test_release_absent_unit(self, freda):
        with pytest.raises(NotFoundError):
            freda.remove_supply(Water())


class TestWaterExpiry:
    """Test water allocation dates and expiry."""

    def test_allocation_date_set_for_person(self, freda, clock):
        water = Water()

        freda.add_supply(water)

        assert water.allocation_date == "2025-01-01"

    def test_allocation_date_cleared_at_location(self, shelter, freda):
        water = Water()
        freda.add_supply(water)

        shelter.add_supply(water)

        assert water.allocation_date is None
        assert not water.is_expired(date(2030, 1, 1))

    def test_expiry_boundary(self, freda, clock):
        """Test water expires once more than one full day has passed."""
        water = Water()
        freda.add_supply(water)

        assert not water.is_expired()
        clock.advance()
        assert not water.is_expired()
        clock.advance()
        assert water.is_expired()

    def test_unowned_water_never_expires(self):
        water = Water(allocation_date="2024-01-01")

        assert not water.is_expired(date(2025, 1, 1))

    def test_remove_expired_water(self, freda, clock):
        """Test only expired water is dropped and order is kept."""
        old_water = Water()
        blanket = GenericSupply(type_label="Blanket")
        freda.add_supply(old_water)
        freda.add_supply(blanket)
        clock.advance(2)
        fresh_water = Water()
        freda.add_supply(fresh_water)

        dropped = freda.remove_expired_water()

        assert dropped == [old_water]
        assert freda.supplies == [blanket, fresh_water]
        assert old_water.holder is None

    def test_sweep_all(self, freda, clock):
        other = Person(first_name="Tom", entry_date="2025-01-01")
        first, second = Water(), Water()
        freda.add_supply(first)
        other.add_supply(second)

        dropped = allocation.sweep_all([freda, other], today=date(2025, 1, 3))

        assert dropped == [first, second]
        assert freda.supplies == []
        assert other.supplies == []
