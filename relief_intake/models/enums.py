# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the relief intake core.
"""

from enum import Enum
from typing import Optional


class Gender(str, Enum):
    """Canonical gender tokens stored for a person."""
    MAN = "man"
    WOMAN = "woman"
    NON_BINARY = "non-binary person"

    @classmethod
    def canonicalize(cls, value: str) -> "Gender":
        """Map a case-insensitive gender label or alias to its canonical token."""
        token = _GENDER_ALIASES.get(value.strip().lower())
        if token is None:
            raise ValueError(
                "Invalid gender. Acceptable values are man, woman, or non-binary person."
            )
        return token


_GENDER_ALIASES = {
    "man": Gender.MAN,
    "male": Gender.MAN,
    "woman": Gender.WOMAN,
    "female": Gender.WOMAN,
    "non-binary person": Gender.NON_BINARY,
    "non-binary": Gender.NON_BINARY,
    "nonbinary": Gender.NON_BINARY,
    "other": Gender.NON_BINARY,
}


class SupplyCategory(str, Enum):
    """Closed set of supply categories."""
    GENERIC = "generic"
    WATER = "water"
    COT = "cot"
    PERSONAL_BELONGING = "personal belonging"

    @classmethod
    def from_type_label(cls, label: Optional[str]) -> "SupplyCategory":
        """Resolve a stored type label; unknown labels are generic supplies."""
        normalized = (label or "").strip().lower()
        for category in cls:
            if category is not cls.GENERIC and category.value == normalized:
                return category
        return cls.GENERIC


class OwnershipState(str, Enum):
    """Who currently holds a supply unit."""
    UNOWNED = "unowned"
    HELD_BY_LOCATION = "held_by_location"
    HELD_BY_PERSON = "held_by_person"


class InquirerKind(str, Enum):
    """Whether an inquirer is a registered person or an outside party."""
    VICTIM = "victim"
    EXTERNAL = "external"
