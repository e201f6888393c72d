# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Supply models.

Supplies form a closed tagged union keyed on ``category``. Each unit is
held by at most one owner (a person or a location); the holder is tracked
privately and changed only through the allocation engine.
"""

from datetime import date, timedelta
from typing import Annotated, Any, ClassVar, Dict, Literal, Optional, Union
from pydantic import Field, PrivateAttr, TypeAdapter, field_validator

from .base import BaseEntity, parse_iso_date, validate_iso_date
from .enums import OwnershipState, SupplyCategory
from ..domain.context import current_context


class Supply(BaseEntity):
    """Common fields and ownership tracking for every supply unit."""

    category: SupplyCategory = Field(..., description="Supply category discriminator")
    quantity: int = Field(default=1, ge=0, description="Number of items in this unit")
    record_id: Optional[int] = Field(None, description="Store surrogate key once saved")

    # Whether a location may store this category
    is_locatable: ClassVar[bool] = True

    _holder: Any = PrivateAttr(default=None)

    @property
    def holder(self) -> Any:
        """The person or location currently holding this unit, if any."""
        return self._holder

    @property
    def ownership(self) -> OwnershipState:
        """Current ownership state."""
        if self._holder is None:
            return OwnershipState.UNOWNED
        return self._holder.holds_as

    @property
    def type(self) -> str:
        """Type label as stored and displayed."""
        return self.category.value

    def is_expired(self, today: Optional[date] = None) -> bool:
        """Only water expires."""
        return False

    def attach(self, owner: Any, today: date) -> None:
        """Record ``owner`` as holder and apply category side effects."""
        self._holder = owner
        self.on_enter_state(owner.holds_as, today)

    def detach(self) -> None:
        """Clear the holder."""
        self._holder = None

    def on_enter_state(self, state: OwnershipState, today: date) -> None:
        """Hook for category-specific bookkeeping on ownership change."""


class GenericSupply(Supply):
    """Any supply without extra fields, e.g. a blanket."""

    category: Literal[SupplyCategory.GENERIC] = Field(default=SupplyCategory.GENERIC, frozen=True)
    type_label: str = Field(..., min_length=1, max_length=100, description="Free-text supply type")

    @field_validator('type_label')
    @classmethod
    def validate_type_label(cls, v):
        """Validate the type label."""
        if not v.strip():
            raise ValueError('Supply type cannot be empty')
        return v.strip()

    @property
    def type(self) -> str:
        return self.type_label


class Water(Supply):
    """Water ration; expires more than one full day after a person receives it."""

    category: Literal[SupplyCategory.WATER] = Field(default=SupplyCategory.WATER, frozen=True)
    allocation_date: Optional[str] = Field(None, description="Date handed to a person (YYYY-MM-DD)")

    @field_validator('allocation_date', mode='before')
    @classmethod
    def validate_allocation_date(cls, v):
        """Validate allocation date format."""
        if v is None:
            return v
        return validate_iso_date(v, 'allocation date')

    def on_enter_state(self, state: OwnershipState, today: date) -> None:
        if state is OwnershipState.HELD_BY_PERSON:
            self.allocation_date = today.isoformat()
        elif state is OwnershipState.HELD_BY_LOCATION:
            self.allocation_date = None

    def is_expired(self, today: Optional[date] = None) -> bool:
        """
        True when held by a person and more than one full day has passed
        since the allocation date. Water at a location never expires.
        """
        if self.ownership is not OwnershipState.HELD_BY_PERSON or self.allocation_date is None:
            return False
        if today is None:
            today = current_context().clock.today()
        return today > parse_iso_date(self.allocation_date) + timedelta(days=1)


class Cot(Supply):
    """A cot placed in a room at a grid cell."""

    category: Literal[SupplyCategory.COT] = Field(default=SupplyCategory.COT, frozen=True)
    room: str = Field(..., min_length=1, max_length=20, description="Room number")
    grid: str = Field(..., min_length=1, max_length=20, description="Grid cell within the room")

    @field_validator('room', 'grid', mode='before')
    @classmethod
    def validate_single_token(cls, v):
        """Room and grid are single tokens."""
        v = str(v).strip()
        if not v or len(v.split()) != 1:
            raise ValueError('Room and grid must be non-empty and contain no spaces')
        return v


class PersonalBelonging(Supply):
    """An item belonging to a person; may never be stored at a location."""

    category: Literal[SupplyCategory.PERSONAL_BELONGING] = Field(
        default=SupplyCategory.PERSONAL_BELONGING, frozen=True
    )
    description: str = Field(..., min_length=1, max_length=500, description="Item description")

    is_locatable: ClassVar[bool] = False

    @field_validator('description')
    @classmethod
    def validate_description(cls, v):
        """Validate description."""
        if not v.strip():
            raise ValueError('Description cannot be empty')
        return v.strip()


SupplyVariant = Annotated[
    Union[GenericSupply, Water, Cot, PersonalBelonging],
    Field(discriminator='category')
]

_supply_adapter: TypeAdapter = TypeAdapter(SupplyVariant)


def parse_supply(data: Dict[str, Any]) -> Supply:
    """Build the supply variant named by ``data['category']``."""
    return _supply_adapter.validate_python(data)
