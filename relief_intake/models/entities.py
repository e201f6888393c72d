# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the relief intake core.
"""

from datetime import date
from typing import Any, ClassVar, Iterable, List, Optional
from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, ValidationInfo, field_validator

from .base import BaseEntity, validate_iso_date
from .enums import Gender, OwnershipState
from .supplies import Supply
from ..domain import allocation
from ..domain.context import DomainContext, current_context


class Location(BaseEntity):
    """A physical site holding occupants and non-personal supplies."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1, max_length=200, description="Location name")
    address: str = Field(..., min_length=1, max_length=500, description="Street address")
    record_id: Optional[int] = Field(None, description="Store surrogate key once loaded or saved")

    holds_as: ClassVar[OwnershipState] = OwnershipState.HELD_BY_LOCATION

    _occupants: List[Any] = PrivateAttr(default_factory=list)
    _supplies: List[Supply] = PrivateAttr(default_factory=list)

    @field_validator('name', 'address')
    @classmethod
    def validate_text(cls, v):
        """Validate name and address."""
        if not v.strip():
            raise ValueError('Location name and address cannot be empty')
        return v.strip()

    @property
    def supplies(self) -> List[Supply]:
        """Copy of the supplies stored here; change them through the allocation engine."""
        return list(self._supplies)

    @property
    def occupants(self) -> List["Person"]:
        """Copy of the current occupants."""
        return list(self._occupants)

    def add_occupant(self, person: "Person") -> None:
        """Add an occupant; adding someone already present does nothing."""
        if not any(occupant is person for occupant in self._occupants):
            self._occupants.append(person)

    def remove_occupant(self, person: "Person") -> None:
        """Remove an occupant if present."""
        self._occupants = [occupant for occupant in self._occupants if occupant is not person]

    def add_supply(self, supply: Supply, *, context: Optional[DomainContext] = None) -> None:
        """
        Store a supply here, taking it from its current holder if any.

        Raises:
            SupplyPlacementError: for personal belongings
        """
        if supply.holder is self:
            return
        allocation.allocate(supply, supply.holder, self, context=context)

    def remove_supply(self, supply: Supply) -> None:
        """
        Remove a stored supply.

        Raises:
            NotFoundError: if the supply is not stored here
        """
        allocation.release(supply, self)


class MedicalRecord(BaseModel):
    """Treatment given to a person at a location. Immutable once created."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    location: Location = Field(..., description="Where treatment was given")
    date_of_treatment: str = Field(..., description="Treatment date (YYYY-MM-DD)")
    treatment_details: str = Field(..., min_length=1, max_length=2000, description="Treatment notes")
    record_id: Optional[int] = Field(None, description="Store surrogate key once loaded or saved")

    @field_validator('date_of_treatment', mode='before')
    @classmethod
    def validate_date_of_treatment(cls, v):
        """Validate treatment date format."""
        return validate_iso_date(v, 'date of treatment')

    @field_validator('treatment_details')
    @classmethod
    def validate_treatment_details(cls, v):
        """Validate treatment details."""
        if not v.strip():
            raise ValueError('Treatment details cannot be empty')
        return v.strip()


class Person(BaseEntity):
    """A displaced individual registered at intake."""

    model_config = ConfigDict(extra="forbid")

    first_name: str = Field(..., min_length=1, max_length=100, description="First name")
    last_name: Optional[str] = Field(None, max_length=100, description="Last name")
    entry_date: str = Field(..., frozen=True, description="Date of arrival (YYYY-MM-DD)")
    date_of_birth: Optional[str] = Field(None, description="Date of birth (YYYY-MM-DD)")
    gender: Optional[Gender] = Field(None, description="Canonical gender token")
    comments: Optional[str] = Field(None, max_length=2000, description="Free-text comments")
    record_id: Optional[int] = Field(None, description="Store surrogate key once loaded or saved")

    holds_as: ClassVar[OwnershipState] = OwnershipState.HELD_BY_PERSON

    _assigned_id: int = PrivateAttr(default=0)
    _family_group: Any = PrivateAttr(default=None)
    _medical_records: List[MedicalRecord] = PrivateAttr(default_factory=list)
    _supplies: List[Supply] = PrivateAttr(default_factory=list)

    def model_post_init(self, __context: Any) -> None:
        self._assigned_id = current_context().sequence.next_value()

    @field_validator('first_name')
    @classmethod
    def validate_first_name(cls, v):
        """Validate first name."""
        if not v.strip():
            raise ValueError('First name cannot be empty')
        return v.strip()

    @field_validator('last_name')
    @classmethod
    def validate_last_name(cls, v):
        """Blank last names are stored as missing."""
        if v is None or not v.strip():
            return None
        return v.strip()

    @field_validator('entry_date', mode='before')
    @classmethod
    def validate_entry_date(cls, v):
        """Validate entry date format."""
        return validate_iso_date(v, 'entry date')

    @field_validator('date_of_birth', mode='before')
    @classmethod
    def validate_date_of_birth(cls, v, info: ValidationInfo):
        """Validate date of birth format; a person cannot be born after entering a centre."""
        if v is None:
            return v
        v = validate_iso_date(v, 'date of birth')
        entry_date = info.data.get('entry_date')
        if entry_date is not None and v > entry_date:
            raise ValueError('Birthdate must be the same as or before entry date')
        return v

    @field_validator('gender', mode='before')
    @classmethod
    def validate_gender(cls, v):
        """Canonicalize gender labels."""
        if v is None or isinstance(v, Gender):
            return v
        if not isinstance(v, str):
            raise ValueError('Gender must be text')
        return Gender.canonicalize(v)

    @property
    def assigned_id(self) -> int:
        """Identifier assigned at creation; never changes."""
        return self._assigned_id

    @property
    def family_group(self) -> Optional["FamilyGroup"]:
        """Family group this person belongs to, if any."""
        return self._family_group

    @property
    def medical_records(self) -> List[MedicalRecord]:
        """Copy of the treatments in the order they were recorded."""
        return list(self._medical_records)

    @property
    def supplies(self) -> List[Supply]:
        """Copy of the supplies currently held."""
        return list(self._supplies)

    @property
    def full_name(self) -> str:
        if self.last_name:
            return f"{self.first_name} {self.last_name}"
        return self.first_name

    def join_family_group(self, group: "FamilyGroup") -> None:
        """Move this person into ``group``."""
        group.add_member(self)

    def leave_family_group(self) -> None:
        """Leave the current family group, if any."""
        if self._family_group is not None:
            self._family_group.remove_member(self)

    def add_medical_record(self, record: MedicalRecord) -> None:
        self._medical_records.append(record)

    def set_medical_records(self, records: Iterable[MedicalRecord]) -> None:
        """Replace all medical records, keeping the given order."""
        self._medical_records = list(records)

    def add_supply(self, supply: Supply, *, context: Optional[DomainContext] = None) -> None:
        """Take a supply, removing it from its current holder if any."""
        if supply.holder is self:
            return
        allocation.allocate(supply, supply.holder, self, context=context)

    def remove_supply(self, supply: Supply) -> None:
        """
        Give up a held supply.

        Raises:
            NotFoundError: if the person does not hold it
        """
        allocation.release(supply, self)

    def remove_expired_water(self, today: Optional[date] = None) -> List[Supply]:
        """Drop expired water; returns the dropped units."""
        return allocation.sweep_expired_water(self, today=today)


class FamilyGroup(BaseEntity):
    """An exclusive-membership grouping of persons.

    Re-adding a person who belongs to another group transfers them: they are
    removed from the old group before joining this one.
    """

    group_id: str = Field(..., min_length=1, max_length=100, description="Caller supplied group id")

    _members: List[Person] = PrivateAttr(default_factory=list)

    @field_validator('group_id')
    @classmethod
    def validate_group_id(cls, v):
        """Validate group id."""
        if not v.strip():
            raise ValueError('Family group id cannot be empty')
        return v.strip()

    @property
    def members(self) -> List[Person]:
        """Copy of the members in joining order."""
        return list(self._members)

    @property
    def size(self) -> int:
        return len(self._members)

    def has_member(self, person: Person) -> bool:
        return person.family_group is self

    def add_member(self, person: Person) -> None:
        current = person.family_group
        if current is self:
            return
        if current is not None:
            current.remove_member(person)
        self._members.append(person)
        person._family_group = self

    def remove_member(self, person: Person) -> None:
        """Remove a member; removing a non-member does nothing."""
        if person.family_group is not self:
            return
        self._members = [member for member in self._members if member is not person]
        person._family_group = None

    @staticmethod
    def collect(persons: Iterable[Person]) -> List["FamilyGroup"]:
        """Distinct family groups of ``persons`` in first-seen order."""
        groups: List[FamilyGroup] = []
        for person in persons:
            group = person.family_group
            if group is not None and not any(seen is group for seen in groups):
                groups.append(group)
        return groups
