# SPDX-License-Identifier: Apache-2.0

"""
Supply allocation engine.

Moves supply units between locations and persons. An owner is any object
with a private ``_supplies`` list and a ``holds_as`` ownership state
(``Person`` and ``Location``); only this module changes that list. Units only move between a location and a person, or from
unowned to either; every move is exclusive, removing the unit from its
source before it is added to the destination.
"""

import logging
from datetime import date
from typing import Any, Iterable, List, Optional

from relief_intake.models.enums import OwnershipState
from relief_intake.models.errors import NotFoundError, SupplyPlacementError
from relief_intake.models.supplies import Supply
from .context import DomainContext, current_context

logger = logging.getLogger(__name__)


def _index_of(supplies: List[Supply], supply: Supply) -> Optional[int]:
    for index, held in enumerate(supplies):
        if held is supply:
            return index
    return None


def check_placement(supply: Supply, owner: Any) -> None:
    """
    Raise if ``owner`` may not hold ``supply``.

    Raises:
        SupplyPlacementError: personal belongings at a location
    """
    if owner.holds_as is OwnershipState.HELD_BY_LOCATION and not supply.is_locatable:
        raise SupplyPlacementError(
            f"A {supply.type} cannot be stored at a location"
        )


def place(supply: Supply, owner: Any, *, context: Optional[DomainContext] = None) -> None:
    """
    Attach an unowned supply to ``owner``.

    Raises:
        SupplyPlacementError: if the unit is already held or the owner may
            not hold it
    """
    if supply.holder is not None:
        raise SupplyPlacementError("Supply is already held; allocate it from its holder")
    check_placement(supply, owner)

    ctx = context or current_context()
    owner._supplies.append(supply)
    supply.attach(owner, ctx.clock.today())


def release(supply: Supply, owner: Any) -> None:
    """
    Detach ``supply`` from ``owner``, keeping the order of the remaining items.

    Raises:
        NotFoundError: if the owner does not hold the unit
    """
    index = _index_of(owner._supplies, supply)
    if index is None:
        raise NotFoundError(f"Supply {supply.type} is not held by this owner")
    del owner._supplies[index]
    if supply.holder is owner:
        supply.detach()


def allocate(
    supply: Supply,
    from_owner: Any,
    to_owner: Any,
    *,
    context: Optional[DomainContext] = None
) -> Supply:
    """
    Transfer a supply unit from one owner to another.

    Args:
        supply: Unit to move
        from_owner: Current holder, or None for a unit that is not held yet
        to_owner: Destination person or location
        context: Domain context supplying the clock (defaults to current)

    Returns:
        The moved supply

    Raises:
        SupplyPlacementError: destination may not hold the unit, or the move
            is not between a location and a person
        NotFoundError: ``from_owner`` does not hold the unit
    """
    check_placement(supply, to_owner)

    if from_owner is None and supply.holder is not None:
        raise SupplyPlacementError("Supply is already held; name its current holder")

    if from_owner is not None:
        if _index_of(from_owner._supplies, supply) is None:
            raise NotFoundError(f"Supply {supply.type} is not held by the source owner")
        if from_owner.holds_as is to_owner.holds_as:
            raise SupplyPlacementError(
                "Supplies move only between a location and a person"
            )
        release(supply, from_owner)

    place(supply, to_owner, context=context)
    logger.debug(f"Allocated {supply.type} to {to_owner.holds_as.value}")
    return supply


def sweep_expired_water(person: Any, *, today: Optional[date] = None) -> List[Supply]:
    """
    Drop expired water from a person's held supplies.

    Args:
        person: Person whose supplies are rebuilt
        today: Date to evaluate expiry against (defaults to the context clock)

    Returns:
        The dropped water units, in their original order
    """
    kept: List[Supply] = []
    dropped: List[Supply] = []
    for supply in person._supplies:
        if supply.is_expired(today):
            dropped.append(supply)
        else:
            kept.append(supply)

    if dropped:
        person._supplies[:] = kept
        for supply in dropped:
            supply.detach()
        logger.info(f"Removed {len(dropped)} expired water unit(s) from a person")

    return dropped


def sweep_all(persons: Iterable[Any], *, today: Optional[date] = None) -> List[Supply]:
    """Run ``sweep_expired_water`` for every person; returns all dropped units."""
    dropped: List[Supply] = []
    for person in persons:
        dropped.extend(sweep_expired_water(person, today=today))
    return dropped
