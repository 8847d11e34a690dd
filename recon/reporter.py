"""Report generation for reconciliation results (CSV, HTML, summary)."""

import csv
import logging
from pathlib import Path

from jinja2 import Environment, FileSystemLoader

from recon import MATCH_NONE, MATCH_TEST, MATCH_TRAIN, MatchResult
from recon.diagnostics import ISSUE_CODES
from recon.matching import strip_quotes

log = logging.getLogger(__name__)

TEMPLATE_DIR = Path(__file__).resolve().parent.parent / 'templates'

DEFAULT_OUTPUT_COLUMN = 'test'

REVIEW_COLUMNS = [
    'Row',
    'Name',
    'Ticket',
    'Match_Type',
    'Issues',
    'Suggestion',
]


def _output_columns(results: list[MatchResult], column: str) -> list[str]:
    """Original columns in file order, followed by the derived column."""
    columns = list(getattr(results, 'columns', ()))
    if not columns and results:
        columns = list(results[0].record.fields)
    if not columns:
        columns = ['name', 'ticket']
    if column not in columns:
        columns.append(column)
    return columns


def _result_to_row(result: MatchResult, column: str) -> dict:
    """Convert a MatchResult to a flat dict for the enriched export."""
    row = dict(result.record.fields)
    if 'name' in row:
        row['name'] = strip_quotes(row['name'])
    code = result.code
    row[column] = '' if code is None else str(code)
    return row


def _result_to_review_row(result: MatchResult) -> dict:
    """Convert a MatchResult to a flat dict for review CSV/HTML output."""
    rec = result.record
    return {
        'Row': str(rec.row_num),
        'Name': strip_quotes(rec.name),
        'Ticket': rec.ticket,
        'Match_Type': result.match_type,
        'Issues': ', '.join(result.issues),
        'Suggestion': result.suggestion or '',
        # Set of issue codes for targeted cell highlighting in HTML
        '_issues': set(result.issues),
    }


def write_csv_report(
    results: list[MatchResult],
    output_path: Path,
    column: str = DEFAULT_OUTPUT_COLUMN,
) -> None:
    """Write the enriched primary table.

    All original columns are kept in order; the derived column holds 0
    (train), 1 (test) or an empty field (unmatched). Missing values are
    written as empty fields.

    Args:
        results: Reconciliation results in primary-table order.
        output_path: Path for the output CSV file.
        column: Name of the derived column.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(
            f, fieldnames=_output_columns(results, column),
            restval='', extrasaction='ignore',
        )
        writer.writeheader()
        for result in results:
            writer.writerow(_result_to_row(result, column))

    log.info("CSV geschrieben: %s (%d Zeilen)", output_path, len(results))


def write_review_report(results: list[MatchResult], output_path: Path) -> int:
    """Write all rows that carry at least one issue.

    Args:
        results: Reconciliation results.
        output_path: Path for the review CSV file.

    Returns:
        Number of rows written.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    flagged = [r for r in results if r.issues]
    with open(output_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.DictWriter(
            f, fieldnames=REVIEW_COLUMNS, extrasaction='ignore',
        )
        writer.writeheader()
        for result in flagged:
            writer.writerow(_result_to_review_row(result))

    log.info("Review-Report geschrieben: %s (%d Zeilen)", output_path, len(flagged))
    return len(flagged)


def write_html_report(
    results: list[MatchResult],
    output_path: Path,
    title: str = '',
) -> None:
    """Write flagged rows and statistics as an HTML report using Jinja2.

    Args:
        results: Reconciliation results.
        output_path: Path for the output HTML file.
        title: Name of the primary table (for the report title).
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    env = Environment(
        loader=FileSystemLoader(str(TEMPLATE_DIR)),
        autoescape=True,
    )
    template = env.get_template('report.html')

    rows = [_result_to_review_row(r) for r in results if r.issues]
    stats = compute_stats(results)

    html = template.render(
        title=title,
        rows=rows,
        stats=stats,
        columns=REVIEW_COLUMNS,
    )

    output_path.write_text(html, encoding='utf-8')
    log.info("HTML-Report geschrieben: %s", output_path)


def compute_stats(results: list[MatchResult]) -> dict:
    """Compute summary statistics from reconciliation results."""
    all_issues = []
    for r in results:
        all_issues.extend(r.issues)

    stats = {
        'total': len(results),
        'train': sum(1 for r in results if r.match_type == MATCH_TRAIN),
        'test': sum(1 for r in results if r.match_type == MATCH_TEST),
        'none': sum(1 for r in results if r.match_type == MATCH_NONE),
        'suggested': sum(1 for r in results if r.suggestion),
        'flagged': sum(1 for r in results if r.issues),
    }
    for code in ISSUE_CODES:
        stats[code.lower()] = all_issues.count(code)
    return stats


def print_summary(results: list[MatchResult], title: str = '') -> None:
    """Print a summary of reconciliation results to stdout.

    Args:
        results: Reconciliation results.
        title: Name of the primary table.
    """
    stats = compute_stats(results)

    print(f"\n=== Abgleich: {title} ===")
    print(f"Passagiere gesamt:         {stats['total']:>5}")
    print(f"Zugeordnet zu train (0):   {stats['train']:>5}")
    print(f"Zugeordnet zu test (1):    {stats['test']:>5}")
    print(f"Kein Match gefunden:       {stats['none']:>5}")
    print("---")
    print(f"Zur Pruefung markiert:     {stats['flagged']:>5}")
    print(f"  - In beiden Referenzen:  {stats['in_both_references']:>5}")
    print(f"  - Doppelter Name:        {stats['duplicate_name']:>5}")
    print(f"  - Ticket abweichend:     {stats['ticket_mismatch']:>5}")
    print(f"  - Name abweichend:       {stats['name_mismatch']:>5}")
    print(f"  - Mit Vorschlag:         {stats['suggested']:>5}")

    unmatched = [strip_quotes(r.record.name) for r in results if r.match_type == MATCH_NONE]
    if unmatched:
        print("---")
        print("Ohne Match:")
        for name in unmatched:
            print(f"  {name}")
    print()
