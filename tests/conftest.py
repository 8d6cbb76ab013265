"""Shared pytest fixtures for stmtrecon tests."""

import csv
import os
import tempfile
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from stmtrecon.config import Settings
from stmtrecon.database.factories import create_sqlite_database
from stmtrecon.domain.consolidation import statement_reference
from stmtrecon.domain.entities import AccountType, BankConsolidatedRow, SecuConsolidatedRow
from stmtrecon.domain.formats import BANK_COLUMNS, LHV_BANK, SECU_COLUMNS, SWEDBANK
from stmtrecon.domain.pipeline import StatementPipeline
from stmtrecon.domain.reference_data import ReferenceDataService
from stmtrecon.domain.statement import StatementService

BANK_CODE = "LHVBEE22"

LHV_HEADER = [
    "Kliendi konto",
    "Dokumendi number",
    "Kuupäev",
    "Saaja/maksja konto",
    "Saaja/maksja nimi",
    "Saaja/maksja panga kood",
    "Tühi",
    "Deebet/Kreedit (D/C)",
    "Summa",
    "Viitenumber",
    "Arhiveerimistunnus",
    "Selgitus",
    "Teenustasu",
    "Valuuta",
    "Isikukood või registrikood",
    "Saaja/maksja panga BIC",
    "Makse algataja nimi",
    "Kande viide",
    "Konto teenusepakkuja viide",
]

SWEDBANK_HEADER = [
    "Kliendi konto",
    "Dok nr",
    "Kuupäev",
    "Saaja/Maksja konto",
    "Saaja/Maksja",
    "Panga kood",
    "Deebet/Kreedit",
    "Summa",
    "Viitenumber",
    "Arhiveerimistunnus",
    "Selgitus",
    "Teenustasu",
    "Valuuta",
    "Isikukood",
]

SECU_HEADER = [
    "Väärtuspäev",
    "Tehingupäev",
    "Tüüp",
    "Sümbol",
    "Kirjeldus",
    "Kogus",
    "Hind",
    "Valuuta",
    "Summa",
    "Teenustasu",
    "Kokku",
    "Viide",
    "Kommentaar",
]

BANK_DEFAULTS = {
    "account_number": "EE127700771001234567",
    "payment_date": "2024-01-15",
    "d_c": "D",
    "payment_amount": "-10.00",
    "transaction_fee": "0.00",
    "currency": "EUR",
}

SECU_DEFAULTS = {
    "value_date": "2024-03-05",
    "transaction_date": "2024-03-01",
    "type": "ost",
    "currency": "EUR",
    "fee": "0.00",
}


def _values(columns, defaults, fields):
    merged = {**defaults, **fields}
    return [merged.get(name, "") for name in columns]


def _write(path: Path, header: list[str], lines: list[list[str]], delimiter: str) -> str:
    with open(path, "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f, delimiter=delimiter)
        writer.writerow(header)
        writer.writerows(lines)
    return str(path)


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def settings():
    """Default pipeline settings."""
    return Settings()


@pytest.fixture
def statement_service(temp_db):
    """Create a StatementService with a temporary database."""
    return StatementService(temp_db)


@pytest.fixture
def reference_service(temp_db):
    """Create a ReferenceDataService with a temporary database."""
    return ReferenceDataService(temp_db)


@pytest.fixture
def pipeline(temp_db, settings):
    """Create a StatementPipeline with a temporary database."""
    return StatementPipeline(temp_db, settings=settings)


@pytest.fixture
def lhv_csv(tmp_path):
    """Return a writer for LHV bank statement files.

    Each row is a dict of bank column overrides; the always-empty LHV column
    is inserted at index 6.
    """

    def write(rows: list[dict], name: str = "lhv.csv") -> str:
        lines = []
        for fields in rows:
            values = _values(BANK_COLUMNS, BANK_DEFAULTS, fields)
            values.insert(LHV_BANK.dropped_index, "")
            lines.append(values)
        return _write(tmp_path / name, LHV_HEADER, lines, LHV_BANK.delimiter)

    return write


@pytest.fixture
def swedbank_csv(tmp_path):
    """Return a writer for Swedbank statement files (first 14 bank columns)."""

    def write(rows: list[dict], name: str = "swedbank.csv") -> str:
        lines = [
            _values(BANK_COLUMNS, BANK_DEFAULTS, fields)[: SWEDBANK.column_count]
            for fields in rows
        ]
        return _write(tmp_path / name, SWEDBANK_HEADER, lines, SWEDBANK.delimiter)

    return write


@pytest.fixture
def secu_csv(tmp_path):
    """Return a writer for securities statement files."""

    def write(rows: list[dict], name: str = "secu.csv") -> str:
        lines = [_values(SECU_COLUMNS, SECU_DEFAULTS, fields) for fields in rows]
        return _write(tmp_path / name, SECU_HEADER, lines, ",")

    return write


@pytest.fixture
def make_statement(statement_service):
    """Return a helper that registers a statement for a file."""

    def create(
        file_path: str,
        account_type: str = "bank",
        bank_code: str = BANK_CODE,
        from_date: date | None = date(2024, 1, 1),
        to_date: date | None = date(2024, 1, 31),
    ) -> str:
        return statement_service.create_statement(
            account_type=account_type,
            bank_code=bank_code,
            from_date=from_date,
            to_date=to_date,
            file_path=file_path,
        )

    return create


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


def _bank_total(statement_id: str, sequence: int, fields: dict) -> BankConsolidatedRow:
    values = dict(
        account_number="EE127700771001234567",
        document_nr=str(sequence),
        payment_date="2024-01-15",
        other_side_account=None,
        other_side_name=None,
        other_side_bank=None,
        d_c="D",
        payment_description=None,
        currency="EUR",
        customer_id=None,
        other_side_bic=None,
        transaction_fee=Decimal("0.00"),
        provider_reference=f"P{sequence}",
    )
    values.update(fields)
    values["payment_amount"] = Decimal(str(values.pop("amount")))
    return BankConsolidatedRow(
        statement_id=statement_id,
        statement_reference=statement_reference("STMT2024", sequence),
        **values,
    )


def _secu_total(statement_id: str, sequence: int, fields: dict) -> SecuConsolidatedRow:
    values = dict(
        value_date="2024-03-05",
        transaction_date="2024-03-01",
        type="ost",
        ticker="TKM1T",
        description="Tallinna Kaubamaja",
        currency="EUR",
        quantity=Decimal("100"),
        price=Decimal("10"),
        amount=Decimal("0"),
        fee=Decimal("0"),
        total_amount=Decimal("0"),
        reference=f"R{sequence}",
    )
    for name, value in fields.items():
        if name in ("quantity", "price", "amount", "fee", "total_amount") and value is not None:
            value = Decimal(str(value))
        values[name] = value
    return SecuConsolidatedRow(
        statement_id=statement_id,
        statement_reference=statement_reference("STMT2024", sequence),
        **values,
    )


@pytest.fixture
def bank_totals(temp_db):
    """Return a helper that stores consolidated bank rows for a statement.

    Each entry is a dict of field overrides and must carry `amount`.
    """

    def insert(statement_id: str, *overrides: dict) -> list[BankConsolidatedRow]:
        rows = [_bank_total(statement_id, i, fields) for i, fields in enumerate(overrides, start=1)]
        ids = temp_db.insert_consolidated_rows(AccountType.BANK, rows, "tester")
        return [temp_db.get_consolidated_row(AccountType.BANK, row_id) for row_id in ids]

    return insert


@pytest.fixture
def secu_totals(temp_db):
    """Return a helper that stores consolidated securities rows for a statement."""

    def insert(statement_id: str, *overrides: dict) -> list[SecuConsolidatedRow]:
        rows = [_secu_total(statement_id, i, fields) for i, fields in enumerate(overrides, start=1)]
        ids = temp_db.insert_consolidated_rows(AccountType.SECU, rows, "tester")
        return [temp_db.get_consolidated_row(AccountType.SECU, row_id) for row_id in ids]

    return insert
