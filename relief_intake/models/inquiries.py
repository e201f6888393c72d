# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Inquiry models: who is asking about a missing person, and what they know.
"""

from typing import Optional
from pydantic import Field, field_validator

from .base import BaseEntity, validate_iso_date
from .entities import Location, Person
from .enums import InquirerKind


class Inquirer(BaseEntity):
    """A party asking about a missing person; may be a registered person."""

    first_name: str = Field(..., min_length=1, max_length=100, description="Inquirer first name")
    last_name: Optional[str] = Field(None, max_length=100, description="Inquirer last name")
    phone: Optional[str] = Field(None, max_length=40, description="Services phone number")
    info: Optional[str] = Field(None, max_length=2000, description="What the inquirer told intake")
    person: Optional[Person] = Field(None, description="Registered person acting as inquirer")
    record_id: Optional[int] = Field(None, description="Store surrogate key once loaded or saved")

    @field_validator('first_name')
    @classmethod
    def validate_first_name(cls, v):
        """Validate first name."""
        if not v.strip():
            raise ValueError('Inquirer first name cannot be empty')
        return v.strip()

    @classmethod
    def from_person(cls, person: Person, phone: Optional[str] = None,
                    info: Optional[str] = None) -> "Inquirer":
        """Build an inquirer backed by a registered person."""
        return cls(
            first_name=person.first_name,
            last_name=person.last_name,
            phone=phone,
            info=info,
            person=person
        )

    @property
    def kind(self) -> InquirerKind:
        """``victim`` when a registered person is asking, otherwise ``external``."""
        return InquirerKind.VICTIM if self.person is not None else InquirerKind.EXTERNAL


class Inquiry(BaseEntity):
    """An inquiry about a missing person."""

    inquirer: Inquirer = Field(..., description="Who is asking")
    missing_person: Person = Field(..., description="Person being sought")
    date_of_inquiry: str = Field(..., description="Date of inquiry (YYYY-MM-DD)")
    info_provided: Optional[str] = Field(None, max_length=2000, description="Information provided")
    last_known_location: Optional[Location] = Field(None, description="Last known location")
    record_id: Optional[int] = Field(None, description="Store surrogate key once loaded or saved")

    @field_validator('date_of_inquiry', mode='before')
    @classmethod
    def validate_date_of_inquiry(cls, v):
        """Validate date of inquiry format on every assignment."""
        return validate_iso_date(v, 'date of inquiry')

    @property
    def inquirer_type(self) -> InquirerKind:
        return self.inquirer.kind

    def log_details(self) -> str:
        """One-line summary of the inquiry for the intake log."""
        location_name = self.last_known_location.name if self.last_known_location else ""
        return (
            f"Inquirer: {self.inquirer.first_name}, "
            f"Missing Person: {self.missing_person.full_name}, "
            f"Date of Inquiry: {self.date_of_inquiry}, "
            f"Info Provided: {self.info_provided or ''}, "
            f"Last Known Location: {location_name}"
        )
