# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Exception types raised by the domain model.

Field-level validation failures surface as ``pydantic.ValidationError``;
the classes here cover the rules that span more than one entity.
"""


class ReliefError(Exception):
    """Base class for relief intake domain exceptions."""

    def __init__(self, message: str, error_type: str = "relief-error"):
        super().__init__(message)
        self.message = message
        self.error_type = error_type


class SupplyPlacementError(ReliefError, ValueError):
    """Raised when a supply is moved to an owner that may not hold it."""

    def __init__(self, message: str):
        super().__init__(message, "supply-placement")


class NotFoundError(ReliefError, LookupError):
    """Raised when an entity is not present in the collection it is taken from."""

    def __init__(self, message: str):
        super().__init__(message, "not-found")
