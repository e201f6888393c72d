# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Append-only diagnostics log for recoverable store failures.
"""

import logging
import os
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import List, Optional, Union

logger = logging.getLogger(__name__)


@dataclass
class DiagnosticEntry:
    """One recorded failure."""
    operation: str
    detail: str
    timestamp: datetime = field(default_factory=datetime.now)

    def format(self) -> str:
        return f"{self.timestamp.isoformat(timespec='seconds')} | {self.operation} | {self.detail}"


def describe_error(error: Union[BaseException, str]) -> str:
    """Render an exception as ``Type: message``; strings pass through."""
    if isinstance(error, BaseException):
        message = str(error).strip().splitlines()[0] if str(error).strip() else ""
        return f"{type(error).__name__}: {message}" if message else type(error).__name__
    return error


class ErrorLog:
    """Text file with one timestamped line per recoverable failure.

    Lines are only ever appended. Entries recorded by this process are also
    kept in ``entries`` so callers can inspect what went wrong.
    """

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path or os.getenv('RELIEF_ERROR_LOG', 'data/errorlog.txt'))
        self.entries: List[DiagnosticEntry] = []

    def record(self, operation: str, error: Union[BaseException, str]) -> DiagnosticEntry:
        """
        Append a failure to the log.

        Args:
            operation: What was being attempted
            error: The underlying exception or a description

        Returns:
            The recorded entry
        """
        entry = DiagnosticEntry(operation=operation, detail=describe_error(error))
        self.entries.append(entry)
        logger.error(f"{operation} failed: {entry.detail}")

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with self.path.open('a', encoding='utf-8') as handle:
                handle.write(entry.format() + "\n")
        except OSError as e:
            logger.warning(f"Could not append to error log {self.path}: {e}")

        return entry

    def read_lines(self) -> List[str]:
        """Lines currently in the log file."""
        if not self.path.exists():
            return []
        return self.path.read_text(encoding='utf-8').splitlines()
