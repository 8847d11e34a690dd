"""Tests for recon.reporter module."""

import csv

import pytest

from recon import MATCH_NONE, MATCH_TEST, MATCH_TRAIN, MatchResult, PassengerRecord
from recon.pipeline import reconcile
from recon.reader import read_passengers
from recon.reporter import (
    REVIEW_COLUMNS,
    compute_stats,
    print_summary,
    write_csv_report,
    write_html_report,
    write_review_report,
)


def _result(name='Doe, Jane', ticket='113803', match_type=MATCH_NONE, issues=None,
            **fields) -> MatchResult:
    """Create a MatchResult with a small primary record."""
    row = {'pclass': '3', 'name': name, 'ticket': ticket, 'body': ''}
    row.update(fields)
    record = PassengerRecord(row_num=2, name=name, ticket=ticket, fields=row)
    return MatchResult(record=record, match_type=match_type, issues=issues or [])


def _read(path):
    with open(path, newline='', encoding='utf-8') as f:
        return list(csv.DictReader(f))


@pytest.fixture
def sample_results(primary_records, train_records, test_records):
    return reconcile(primary_records, train_records, test_records)


class TestWriteCsvReport:
    """Tests for the enriched export."""

    def test_codes_and_empty_fields(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([
            _result(match_type=MATCH_TRAIN),
            _result(match_type=MATCH_TEST),
            _result(match_type=MATCH_NONE, issues=['NO_MATCH']),
        ], path)
        rows = _read(path)
        assert [r['test'] for r in rows] == ['0', '1', '']
        assert rows[0]['body'] == ''
        assert 'NA' not in path.read_text(encoding='utf-8')

    def test_columns_keep_order_and_append_derived(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([_result()], path)
        header = path.read_text(encoding='utf-8').splitlines()[0]
        assert header == 'pclass,name,ticket,body,test'

    def test_custom_column_name(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([_result(match_type=MATCH_TEST)], path, column='source')
        assert _read(path)[0]['source'] == '1'

    def test_existing_column_is_overwritten(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([_result(match_type=MATCH_TRAIN, test='x')], path)
        header = path.read_text(encoding='utf-8').splitlines()[0]
        assert header.count('test') == 1
        assert _read(path)[0]['test'] == '0'

    def test_name_quotes_stripped(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([_result(name='Kelly, Mrs. Florence "Fannie"')], path)
        assert _read(path)[0]['name'] == 'Kelly, Mrs. Florence Fannie'

    def test_creates_parent_dirs(self, tmp_path):
        path = tmp_path / 'sub' / 'dir' / 'out.csv'
        write_csv_report([_result()], path)
        assert path.exists()

    def test_header_only_primary_keeps_columns(self, tmp_path):
        primary = tmp_path / 'primary.csv'
        primary.write_text('pclass,name,ticket,fare\n', encoding='utf-8')
        path = tmp_path / 'out.csv'
        write_csv_report(reconcile(read_passengers(primary), [], []), path)
        assert path.read_text(encoding='utf-8').strip() == 'pclass,name,ticket,fare,test'

    def test_plain_empty_list_writes_key_columns(self, tmp_path):
        path = tmp_path / 'out.csv'
        write_csv_report([], path)
        assert path.read_text(encoding='utf-8').strip() == 'name,ticket,test'

    def test_sample_data_row_order(self, tmp_path, sample_results, primary_records):
        path = tmp_path / 'titanic_passengers.csv'
        write_csv_report(sample_results, path)
        rows = _read(path)
        assert len(rows) == len(primary_records)
        assert [r['ticket'] for r in rows] == [p.ticket for p in primary_records]
        assert [r['test'] for r in rows] == [
            '0', '0', '0', '0', '1', '0', '1', '1', '1', '0', '', '', '0',
        ]


class TestWriteReviewReport:
    """Tests for the review export."""

    def test_only_flagged_rows(self, tmp_path, sample_results):
        path = tmp_path / 'review.csv'
        count = write_review_report(sample_results, path)
        rows = _read(path)
        assert count == len(rows) == 6
        assert list(rows[0]) == REVIEW_COLUMNS

    def test_suggestion_column(self, tmp_path, sample_results):
        path = tmp_path / 'review.csv'
        write_review_report(sample_results, path)
        braund = [r for r in _read(path) if r['Name'] == 'Braund, Mr. Owen Harriss'][0]
        assert braund['Suggestion'] == 'Braund, Mr. Owen Harris'
        assert braund['Issues'] == 'NAME_MISMATCH, NO_MATCH'
        assert braund['Row'] == '13'


class TestWriteHtmlReport:
    """Tests for the HTML report."""

    def test_html_written(self, tmp_path, sample_results):
        path = tmp_path / 'report.html'
        write_html_report(sample_results, path, 'titanic3.csv')
        html = path.read_text(encoding='utf-8')
        assert 'titanic3.csv' in html
        assert 'Braund, Mr. Owen Harriss' in html
        # Unflagged rows are not listed
        assert 'Myles, Mr. Thomas Francis' not in html

    def test_html_escapes_names(self, tmp_path):
        path = tmp_path / 'report.html'
        write_html_report([_result(name='<b>Doe</b>', issues=['NO_MATCH'])], path)
        html = path.read_text(encoding='utf-8')
        assert '&lt;b&gt;Doe&lt;/b&gt;' in html


class TestStatsAndSummary:
    """Tests for statistics and the console summary."""

    def test_compute_stats(self, sample_results):
        stats = compute_stats(sample_results)
        assert stats['total'] == 13
        assert stats['train'] == 7
        assert stats['test'] == 4
        assert stats['none'] == 2
        assert stats['flagged'] == 6
        assert stats['in_both_references'] == 4
        assert stats['duplicate_name'] == 4
        assert stats['name_mismatch'] == 1
        assert stats['no_match'] == 2
        assert stats['suggested'] == 1

    def test_print_summary(self, capsys, sample_results):
        print_summary(sample_results, 'titanic3.csv')
        out = capsys.readouterr().out
        assert 'Abgleich: titanic3.csv' in out
        line = [l for l in out.splitlines() if l.startswith('Kein Match gefunden:')][0]
        assert line.split()[-1] == '2'
        assert '  Doe, Mr. Johnathan' in out
