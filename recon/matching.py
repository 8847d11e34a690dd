"""Name normalization and two-key set-membership matching."""

import re
from dataclasses import dataclass, field
from typing import Iterable

from recon import MATCH_NONE, MATCH_TEST, MATCH_TRAIN, PassengerRecord

# Quote, backslash, parentheses and any whitespace, anywhere in the string
_TRIM_RE = re.compile(r'["\\()\s]')


def strip_quotes(value: str) -> str:
    """Remove all literal double quotes (nickname markers) from a name."""
    return value.replace('"', '')


def normalize_name(name: str) -> str:
    """Build the exact-match key for a passenger name.

    The sources format names differently (quoted nicknames, parenthesized
    maiden names, irregular spacing). Quotes are dropped, the name is
    lower-cased and every quote, backslash, parenthesis and whitespace
    character is removed. Text inside parentheses is kept.
    """
    return _TRIM_RE.sub('', strip_quotes(name).lower())


def normalize_ticket(ticket: str) -> str:
    """Tickets are compared lower-cased, otherwise verbatim."""
    return ticket.lower()


@dataclass(frozen=True)
class ReferenceIndex:
    """Key sets of one reference table, built once and reused for every lookup."""

    names: frozenset[str] = field(default_factory=frozenset)
    tickets: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def from_records(cls, records: Iterable[PassengerRecord]) -> 'ReferenceIndex':
        names: set[str] = set()
        tickets: set[str] = set()
        for r in records:
            name_key = normalize_name(r.name)
            ticket_key = normalize_ticket(r.ticket)
            # Blank keys never match
            if name_key:
                names.add(name_key)
            if ticket_key:
                tickets.add(ticket_key)
        return cls(frozenset(names), frozenset(tickets))

    def has_name(self, record: PassengerRecord) -> bool:
        return normalize_name(record.name) in self.names

    def has_ticket(self, record: PassengerRecord) -> bool:
        return normalize_ticket(record.ticket) in self.tickets

    def contains(self, record: PassengerRecord) -> bool:
        """Conjunctive test: normalized name AND lower-cased ticket are known."""
        return self.has_name(record) and self.has_ticket(record)


def classify_record(
    record: PassengerRecord,
    train_index: ReferenceIndex,
    test_index: ReferenceIndex,
) -> str:
    """Classify a primary record as TRAIN, TEST or NONE.

    Train is tested first and wins, so a record known to both reference
    tables is labelled TRAIN.
    """
    if train_index.contains(record):
        return MATCH_TRAIN
    if test_index.contains(record):
        return MATCH_TEST
    return MATCH_NONE
