"""Core module for passenger-reconciler."""

from dataclasses import dataclass, field
from typing import Optional

# Provenance labels (train = reference A, test = reference B)
MATCH_TRAIN = 'TRAIN'
MATCH_TEST = 'TEST'
MATCH_NONE = 'NONE'

MATCH_TYPES = (MATCH_TRAIN, MATCH_TEST, MATCH_NONE)

# Value written to the derived column; None is exported as an empty field
EXPORT_CODES: dict[str, Optional[int]] = {
    MATCH_TRAIN: 0,
    MATCH_TEST: 1,
    MATCH_NONE: None,
}


class ReconcileError(Exception):
    """Base class for all errors raised by this package."""


class ConfigurationError(ReconcileError, ValueError):
    """An input table is missing, unreadable or lacks required columns."""


@dataclass
class PassengerRecord:
    """Represents a passenger row from one of the input tables."""

    row_num: int
    name: str
    ticket: str
    fields: dict[str, str] = field(default_factory=dict)  # all columns, file order


@dataclass
class MatchResult:
    """Classification of a primary record against the reference tables."""

    record: PassengerRecord
    match_type: str       # TRAIN, TEST, NONE
    issues: list[str] = field(default_factory=list)
    suggestion: Optional[str] = None  # closest reference name for NONE rows

    @property
    def code(self) -> Optional[int]:
        return EXPORT_CODES[self.match_type]


class Table(list):
    """List of records or results that remembers the source column order."""

    def __init__(self, items=(), columns=()):
        super().__init__(items)
        self.columns: list[str] = list(columns)
