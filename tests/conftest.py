"""Shared test fixtures."""

import csv
from pathlib import Path

import openpyxl
import pytest

from recon.reader import read_passengers


DATA_DIR = Path(__file__).resolve().parent.parent / 'data'


@pytest.fixture(scope='session')
def data_dir() -> Path:
    """Path to the data directory."""
    return DATA_DIR


@pytest.fixture(scope='session')
def primary_records():
    """All passengers from titanic3.csv."""
    return read_passengers(DATA_DIR / 'titanic3.csv')


@pytest.fixture(scope='session')
def train_records():
    """All passengers from train.csv."""
    return read_passengers(DATA_DIR / 'train.csv')


@pytest.fixture(scope='session')
def test_records():
    """All passengers from test.csv."""
    return read_passengers(DATA_DIR / 'test.csv')


@pytest.fixture(scope='session')
def titanic3_workbook(tmp_path_factory) -> Path:
    """titanic3.csv saved as an .xlsx workbook, numbers stored as numbers."""
    wb = openpyxl.Workbook()
    ws = wb.active
    with open(DATA_DIR / 'titanic3.csv', newline='', encoding='utf-8') as f:
        for i, row in enumerate(csv.reader(f)):
            if i == 0:
                ws.append([c.upper() if c == 'name' else c for c in row])
                continue
            cells = []
            for value in row:
                try:
                    number = float(value)
                except ValueError:
                    cells.append(value or None)
                else:
                    cells.append(int(number) if number.is_integer() else number)
            ws.append(cells)
    path = tmp_path_factory.mktemp('workbooks') / 'titanic3.xlsx'
    wb.save(path)
    return path
