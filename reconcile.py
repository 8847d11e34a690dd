"""passenger-reconciler – CLI-Tool zum Abgleich der Titanic-Passagierlisten."""

import argparse
import logging
import sys
from pathlib import Path

from recon import ConfigurationError
from recon.diagnostics import DEFAULT_SUGGEST_THRESHOLD
from recon.pipeline import reconcile, summarize
from recon.reader import read_passengers
from recon.reporter import (
    DEFAULT_OUTPUT_COLUMN,
    print_summary,
    write_csv_report,
    write_html_report,
    write_review_report,
)

log = logging.getLogger('reconcile')


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        description='Ordnet Passagiere der erweiterten Liste den Tabellen train/test zu.',
        prog='reconcile',
    )
    parser.add_argument(
        '--primary', required=True, type=Path,
        help='Pfad zur erweiterten Passagierliste (CSV, .xlsx oder .xls)',
    )
    parser.add_argument(
        '--train', required=True, type=Path,
        help='Pfad zur Referenz-CSV "train" (Code 0)',
    )
    parser.add_argument(
        '--test', required=True, type=Path,
        help='Pfad zur Referenz-CSV "test" (Code 1)',
    )
    parser.add_argument(
        '--output', required=True, type=Path,
        help='Pfad fuer die angereicherte Ausgabe (CSV)',
    )
    parser.add_argument(
        '--review', type=Path,
        help='Pfad fuer eine CSV mit allen zu pruefenden Zeilen',
    )
    parser.add_argument(
        '--html', action='store_true',
        help='Zusaetzlich einen HTML-Report erzeugen',
    )
    parser.add_argument(
        '--summary', action='store_true',
        help='Zusammenfassung auf stdout ausgeben',
    )
    parser.add_argument(
        '--column', default=DEFAULT_OUTPUT_COLUMN,
        help=f'Name der abgeleiteten Spalte (Standard: {DEFAULT_OUTPUT_COLUMN})',
    )
    parser.add_argument(
        '--suggest-threshold', type=float, default=DEFAULT_SUGGEST_THRESHOLD,
        help=f'Schwellenwert fuer Namensvorschlaege (Standard: {DEFAULT_SUGGEST_THRESHOLD})',
    )
    parser.add_argument(
        '--verbose', '-v', action='store_true',
        help='Debug-Ausgaben aktivieren',
    )
    return parser


def run(args: argparse.Namespace) -> int:
    """Read all inputs, reconcile and write the outputs. Returns the exit code."""
    # All inputs are read before anything is written
    try:
        primary = read_passengers(args.primary)
        train = read_passengers(args.train)
        test = read_passengers(args.test)
    except ConfigurationError as exc:
        log.error("%s", exc)
        return 2

    results = reconcile(primary, train, test, args.suggest_threshold)

    write_csv_report(results, args.output, args.column)

    if args.review:
        write_review_report(results, args.review)

    if args.html:
        html_path = args.output.with_suffix('.html')
        write_html_report(results, html_path, args.primary.name)

    if args.summary:
        print_summary(results, args.primary.name)

    summary = summarize(results)
    if summary.unmatched:
        log.info("%d Passagiere ohne Match, bitte manuell pruefen.", len(summary.unmatched))
    return 0


def main() -> None:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(levelname)s: %(message)s',
    )

    sys.exit(run(args))


if __name__ == '__main__':
    main()
