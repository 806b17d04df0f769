"""Faults raised by the directory search pipeline."""

from __future__ import annotations
from typing import Optional


class DirectoryError(Exception):
    """Base class for all directory pipeline faults."""


class ValidationFault(DirectoryError, ValueError):
    """The query (or display) spec is malformed; nothing was sent."""


class QueryFault(DirectoryError, RuntimeError):
    """The directory query could not be executed or its output not read."""


class SelectionFault(DirectoryError):
    """Operator typed something that is not a valid row number."""

    def __init__(self, raw: str, low: int, high: int, message: Optional[str] = None):
        self.raw = raw
        self.low = low
        self.high = high
        super().__init__(message or f"Invalid selection {raw!r}: enter a number from {low} to {high}")
