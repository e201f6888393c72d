# SPDX-License-Identifier: Apache-2.0

"""
Process-wide domain context.

Holds the identifier sequence used to number new persons and the clock
used for date stamping and expiry checks. A default context is always
available; tests and sessions that need their own numbering or a fixed
date activate a separate one.
"""

from contextlib import contextmanager
from datetime import date, timedelta
from typing import Iterator, List, Optional

from .identity import IdentifierSequence


class SystemClock:
    """Clock backed by the local calendar date."""

    def today(self) -> date:
        return date.today()


class FixedClock:
    """Clock pinned to a given day; can be moved forward."""

    def __init__(self, today: date):
        self._today = today

    def today(self) -> date:
        return self._today

    def set(self, today: date) -> None:
        self._today = today

    def advance(self, days: int = 1) -> date:
        self._today = self._today + timedelta(days=days)
        return self._today


class DomainContext:
    """Owns the identifier sequence and clock shared by domain objects."""

    def __init__(self, sequence: Optional[IdentifierSequence] = None, clock=None):
        self.sequence = sequence or IdentifierSequence()
        self.clock = clock or SystemClock()

    @contextmanager
    def activate(self) -> Iterator["DomainContext"]:
        """Make this the current context for the duration of the block."""
        _active_contexts.append(self)
        try:
            yield self
        finally:
            _active_contexts.remove(self)


_default_context = DomainContext()
_active_contexts: List[DomainContext] = []


def current_context() -> DomainContext:
    """Return the innermost active context, or the process default."""
    if _active_contexts:
        return _active_contexts[-1]
    return _default_context
