"""Advisory issue detection and review suggestions for reconciled records."""

from rapidfuzz.distance import JaroWinkler

from recon import MATCH_NONE, PassengerRecord
from recon.matching import ReferenceIndex, normalize_name

DEFAULT_SUGGEST_THRESHOLD = 0.90

ISSUE_CODES = (
    'IN_BOTH_REFERENCES',
    'DUPLICATE_NAME',
    'TICKET_MISMATCH',
    'NAME_MISMATCH',
    'NO_MATCH',
)


def detect_issues(
    record: PassengerRecord,
    match_type: str,
    train_index: ReferenceIndex,
    test_index: ReferenceIndex,
    duplicate_name: bool = False,
) -> list[str]:
    """Detect everything a reviewer should look at for one primary record.

    Issues never change the classification; they only make residual
    ambiguity visible.

    Args:
        record: Record from the primary table.
        match_type: Classification from classify_record().
        train_index: Key sets of the train table.
        test_index: Key sets of the test table.
        duplicate_name: Whether another primary row shares the normalized name.

    Returns:
        List of issue codes.
    """
    issues: list[str] = []

    in_train = train_index.has_name(record)
    in_test = test_index.has_name(record)

    if in_train and in_test:
        issues.append('IN_BOTH_REFERENCES')

    if duplicate_name:
        issues.append('DUPLICATE_NAME')

    if match_type == MATCH_NONE:
        if ((in_train and not train_index.has_ticket(record))
                or (in_test and not test_index.has_ticket(record))):
            issues.append('TICKET_MISMATCH')
        if ((not in_train and train_index.has_ticket(record))
                or (not in_test and test_index.has_ticket(record))):
            issues.append('NAME_MISMATCH')
        issues.append('NO_MATCH')

    return issues


def suggest_candidate(
    name: str,
    reference_names: dict[str, str],
    threshold: float = DEFAULT_SUGGEST_THRESHOLD,
) -> str | None:
    """Find the most similar reference name for an unmatched record.

    Compares normalized keys with Jaro-Winkler. On equal scores the first
    reference name wins.

    Args:
        name: Raw name of the unmatched record.
        reference_names: Mapping normalized key -> display name.
        threshold: Minimum similarity (0–1).

    Returns:
        Display name of the best candidate, or None below the threshold.
    """
    key = normalize_name(name)
    if not key:
        return None

    best_name: str | None = None
    best_sim = -1.0
    for ref_key, display in reference_names.items():
        sim = JaroWinkler.similarity(key, ref_key)
        if sim >= threshold and sim > best_sim:
            best_sim = sim
            best_name = display
    return best_name
