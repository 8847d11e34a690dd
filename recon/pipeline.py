"""Reconciliation pass over the primary passenger table."""

import logging
from collections import Counter
from dataclasses import dataclass, field

from recon import (
    MATCH_NONE, MATCH_TEST, MATCH_TRAIN, MATCH_TYPES, MatchResult, PassengerRecord, Table,
)
from recon.diagnostics import DEFAULT_SUGGEST_THRESHOLD, detect_issues, suggest_candidate
from recon.matching import ReferenceIndex, classify_record, normalize_name, strip_quotes

log = logging.getLogger(__name__)


@dataclass
class ReconciliationSummary:
    """Advisory counts and the names left for manual follow-up."""

    counts: dict[str, int] = field(default_factory=dict)
    unmatched: list[str] = field(default_factory=list)
    flagged: int = 0

    @property
    def total(self) -> int:
        return sum(self.counts.values())


def _reference_names(*tables: list[PassengerRecord]) -> dict[str, str]:
    """Map normalized key -> display name over all reference tables."""
    names: dict[str, str] = {}
    for records in tables:
        for r in records:
            key = normalize_name(r.name)
            if key:
                names.setdefault(key, strip_quotes(r.name))
    return names


def reconcile(
    primary: list[PassengerRecord],
    train: list[PassengerRecord],
    test: list[PassengerRecord],
    suggest_threshold: float = DEFAULT_SUGGEST_THRESHOLD,
) -> Table:
    """Classify every primary record against the train and test tables.

    Each record is decided by two set lookups per reference table; the key
    sets are built once. Unmatched or ambiguous rows never stop the pass.

    Args:
        primary: Records of the extended passenger table.
        train: Records of reference table A.
        test: Records of reference table B.
        suggest_threshold: Minimum similarity for review suggestions (0–1).

    Returns:
        One MatchResult per primary record, in input order. The column
        order of the primary table is carried along in ``columns``.
    """
    train_index = ReferenceIndex.from_records(train)
    test_index = ReferenceIndex.from_records(test)
    reference_names = _reference_names(train, test)

    name_counts = Counter(normalize_name(r.name) for r in primary)

    results = Table(columns=getattr(primary, 'columns', ()))
    for record in primary:
        key = normalize_name(record.name)
        match_type = classify_record(record, train_index, test_index)
        issues = detect_issues(
            record, match_type, train_index, test_index,
            duplicate_name=bool(key) and name_counts[key] > 1,
        )
        suggestion = None
        if match_type == MATCH_NONE:
            suggestion = suggest_candidate(record.name, reference_names, suggest_threshold)
        results.append(MatchResult(
            record=record,
            match_type=match_type,
            issues=issues,
            suggestion=suggestion,
        ))

    summary = summarize(results)
    log.info(
        "Abgleich abgeschlossen: %d Passagiere (TRAIN %d, TEST %d, NONE %d)",
        summary.total,
        summary.counts[MATCH_TRAIN],
        summary.counts[MATCH_TEST],
        summary.counts[MATCH_NONE],
    )
    for name in summary.unmatched:
        log.warning("Kein Match gefunden: %s", name)
    return results


def summarize(results: list[MatchResult]) -> ReconciliationSummary:
    """Count results per match type and collect unmatched names in row order."""
    counts = {t: 0 for t in MATCH_TYPES}
    unmatched: list[str] = []
    flagged = 0
    for r in results:
        counts[r.match_type] += 1
        if r.match_type == MATCH_NONE:
            unmatched.append(strip_quotes(r.record.name))
        if r.issues:
            flagged += 1
    return ReconciliationSummary(counts=counts, unmatched=unmatched, flagged=flagged)
