# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic entity models for the relief intake core.
"""

# Base models
from .base import BaseEntity, validate_iso_date, parse_iso_date

# Enumerations
from .enums import (
    Gender,
    SupplyCategory,
    OwnershipState,
    InquirerKind
)

# Errors
from .errors import ReliefError, SupplyPlacementError, NotFoundError

# Supplies
from .supplies import (
    Supply,
    GenericSupply,
    Water,
    Cot,
    PersonalBelonging,
    SupplyVariant,
    parse_supply
)

# Core entities
from .entities import (
    Location,
    MedicalRecord,
    Person,
    FamilyGroup
)

# Inquiries
from .inquiries import Inquirer, Inquiry

__all__ = [
    # Base models
    "BaseEntity",
    "validate_iso_date",
    "parse_iso_date",

    # Enumerations
    "Gender",
    "SupplyCategory",
    "OwnershipState",
    "InquirerKind",

    # Errors
    "ReliefError",
    "SupplyPlacementError",
    "NotFoundError",

    # Supplies
    "Supply",
    "GenericSupply",
    "Water",
    "Cot",
    "PersonalBelonging",
    "SupplyVariant",
    "parse_supply",

    # Core entities
    "Location",
    "MedicalRecord",
    "Person",
    "FamilyGroup",

    # Inquiries
    "Inquirer",
    "Inquiry"
]
