"""End-to-end tests for the statement pipeline."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from stmtrecon.config import Settings
from stmtrecon.domain.entities import AccountType, RowStatus, StatementStatus
from stmtrecon.domain.errors import ValidationError
from stmtrecon.domain.parser import StatementParser
from stmtrecon.domain.pipeline import StatementPipeline

S = StatementStatus


def fragmented_bank_rows(count: int = 161) -> list[dict]:
    """Card payments split into fragments of four lines per purchase."""
    rows = []
    for i in range(count):
        group = i // 4
        rows.append(
            {
                "document_nr": f"{1000 + group}",
                "payment_date": f"2024-01-{1 + group % 28:02d}",
                "other_side_name": f"Merchant {group:02d}",
                "payment_description": f"Card purchase {group}",
                "payment_amount": "-1.25",
                "provider_reference": f"REF{i:04d}",
            }
        )
    return rows


def connection_lost(*args, **kwargs):
    raise OperationalError("SELECT", {}, Exception("connection lost"))


def history(temp_db, statement_id):
    return [
        (c.from_status, c.to_status)
        for c in temp_db.list_status_changes("statement", statement_id)
    ]


class TestImport:
    def test_import_lhv_fixture(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.import_statement(statement_id)

        assert result.succeeded
        assert result.status == S.IMPORTED
        assert result.details["format"] == "LHV_BANK"
        assert result.details["imported"] == 3
        assert result.details["duplicates"] == 0

        raw_rows = temp_db.list_raw_rows(AccountType.BANK, statement_id)
        assert [r.transaction_id for r in raw_rows] == ["001", "002", "003"]
        assert raw_rows[0].provider_reference == "A1B2C3D4E5"
        assert all(r.status == RowStatus.NEW for r in raw_rows)

        statement = temp_db.get_statement(statement_id)
        assert statement.row_count == 3
        assert statement.duplicate_count == 0
        assert statement.processing_timestamp is not None
        assert history(temp_db, statement_id) == [("new", "importing"), ("importing", "imported")]

    def test_overlapping_statement_rows_are_duplicates(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        path = str(fixtures_dir / "lhv_bank_statement.csv")
        first = make_statement(path)
        second = make_statement(path, from_date=date(2024, 1, 3), to_date=date(2024, 2, 15))
        pipeline.import_statement(first)

        result = pipeline.import_statement(second)

        assert result.succeeded
        assert result.details["imported"] == 0
        assert result.details["duplicates"] == 3
        assert temp_db.get_statement(second).duplicate_count == 3

    def test_non_overlapping_period_is_not_checked(
        self, pipeline, make_statement, fixtures_dir
    ):
        path = str(fixtures_dir / "lhv_bank_statement.csv")
        pipeline.import_statement(make_statement(path))
        later = make_statement(path, from_date=date(2024, 2, 1), to_date=date(2024, 2, 29))

        assert pipeline.import_statement(later).details["duplicates"] == 0

    def test_other_bank_is_not_checked(self, pipeline, make_statement, fixtures_dir):
        path = str(fixtures_dir / "lhv_bank_statement.csv")
        pipeline.import_statement(make_statement(path))
        other = make_statement(path, bank_code="HABAEE2X")

        assert pipeline.import_statement(other).details["duplicates"] == 0

    def test_new_and_failed_statements_contribute_no_keys(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        path = str(fixtures_dir / "lhv_bank_statement.csv")
        first = make_statement(path)
        pipeline.import_statement(first)
        temp_db.set_statement_status(first, S.ERROR)

        assert pipeline.import_statement(make_statement(path)).details["duplicates"] == 0

    def test_swedbank_import_uses_composite_keys(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        path = str(fixtures_dir / "swedbank_statement.csv")
        first = make_statement(path)
        assert pipeline.import_statement(first).details["imported"] == 2

        result = pipeline.import_statement(make_statement(path))
        assert result.details["duplicates"] == 2

        raw = temp_db.list_raw_rows(AccountType.BANK, first)[1]
        assert raw.payment_amount == "1 250,00"
        assert raw.provider_reference is None

    def test_reimport_replaces_rows(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))
        pipeline.import_statement(statement_id)
        first_ids = {r.id for r in temp_db.list_raw_rows(AccountType.BANK, statement_id)}

        result = pipeline.import_statement(statement_id)

        rows = temp_db.list_raw_rows(AccountType.BANK, statement_id)
        assert result.succeeded
        assert len(rows) == 3
        assert first_ids.isdisjoint(r.id for r in rows)


class TestConsolidate:
    def test_161_raw_rows_consolidate_to_fewer(
        self, temp_db, pipeline, make_statement, lhv_csv
    ):
        statement_id = make_statement(lhv_csv(fragmented_bank_rows()))

        assert pipeline.import_statement(statement_id).details["imported"] == 161
        result = pipeline.consolidate_statement(statement_id)

        assert result.succeeded
        assert result.status == S.CONSOLIDATED
        assert result.details["raw_rows"] == 161
        assert result.details["consolidated"] == 41

        rows = temp_db.list_consolidated_rows(AccountType.BANK, statement_id)
        assert len(rows) < 161
        assert rows[0].statement_reference == "STMT2024.001"
        assert rows[-1].statement_reference == "STMT2024.041"
        assert rows[0].payment_amount == Decimal("-5.00")
        assert rows[0].provider_reference == "REF0000,REF0001,REF0002,REF0003"
        assert temp_db.get_statement(statement_id).total_count == 41

    def test_secu_fixture_consolidates_lhv1t_fragments(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        statement_id = make_statement(
            str(fixtures_dir / "secu_statement.csv"),
            account_type="secu",
            from_date=date(2024, 3, 1),
            to_date=date(2024, 3, 31),
        )
        pipeline.import_statement(statement_id)
        pipeline.consolidate_statement(statement_id)

        lhv, tkm = temp_db.list_consolidated_rows(AccountType.SECU, statement_id)
        assert lhv.statement_reference == "STMT2024.001"
        assert lhv.ticker == "LHV1T"
        assert lhv.quantity == Decimal("2300")
        assert lhv.amount == Decimal("-8050.00")
        assert lhv.price == Decimal("3.5")
        assert tkm.statement_reference == "STMT2024.002"
        assert tkm.price is None

    def test_reference_year_defaults_to_current_year(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        statement_id = make_statement(
            str(fixtures_dir / "lhv_bank_statement.csv"), from_date=None, to_date=None
        )
        pipeline.import_statement(statement_id)
        pipeline.consolidate_statement(statement_id)

        rows = temp_db.list_consolidated_rows(AccountType.BANK, statement_id)
        assert rows[0].statement_reference == f"STMT{date.today().year}.001"

    def test_consolidation_rerun_is_identical(
        self, temp_db, pipeline, make_statement, lhv_csv
    ):
        statement_id = make_statement(lhv_csv(fragmented_bank_rows(40)))
        pipeline.import_statement(statement_id)
        pipeline.consolidate_statement(statement_id)
        first = temp_db.list_consolidated_rows(AccountType.BANK, statement_id)

        pipeline.consolidate_statement(statement_id)
        second = temp_db.list_consolidated_rows(AccountType.BANK, statement_id)

        def view(rows):
            return [(r.statement_reference, r.payment_amount, r.provider_reference) for r in rows]

        assert view(first) == view(second)

    def test_consolidate_before_import_fails(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.consolidate_statement(statement_id)

        assert not result.succeeded
        assert result.status == S.ERROR
        assert "from 'new' to 'consolidating'" in result.error_message


class TestRecognize:
    @pytest.fixture
    def securities_setup(self, temp_db, pipeline, make_statement, lhv_csv, secu_csv, reference_service):
        """A bank statement with a 1000.00 payment and a 5.00 fee, processed."""
        reference_service.add_transaction_type("SECSELL", "secu", "in", "SCR01")
        bank_path = lhv_csv(
            [
                {"payment_amount": "1000.00", "d_c": "C", "payment_description": "Sale TKM1T",
                 "provider_reference": "B1"},
                {"payment_amount": "5.00", "d_c": "C", "payment_description": "Fee refund",
                 "provider_reference": "B2"},
            ]
        )
        bank_id = make_statement(bank_path)
        assert pipeline.process(bank_id).succeeded
        return bank_id

    def secu_statement(self, make_statement, secu_csv, total: str, reference: str = "S1") -> str:
        path = secu_csv(
            [
                {"type": "müük", "ticker": "TKM1T", "description": "Tallinna Kaubamaja",
                 "quantity": "-100", "price": "10", "amount": "1000.00", "fee": "5.00",
                 "total_amount": total, "reference": reference},
            ],
            name=f"{reference}.csv",
        )
        return make_statement(path, account_type="secu")

    def test_securities_row_matches_payment_and_fee(
        self, temp_db, pipeline, make_statement, secu_csv, securities_setup
    ):
        bank_id = securities_setup
        secu_id = self.secu_statement(make_statement, secu_csv, "1005.00")

        result = pipeline.process(secu_id)

        assert result.succeeded
        assert result.details["recognize"]["matched"] == 1
        assert result.details["recognize"]["postings"] == 1

        [posting] = temp_db.list_postings()
        main, fee = temp_db.list_consolidated_rows(AccountType.BANK, bank_id)
        assert posting.statement_id == secu_id
        assert posting.bank_total_trx_id == main.id
        assert posting.bank_fee_trx_id == fee.id
        assert main.type == "secupmt"
        assert fee.type == "secufee"

        [secu_row] = temp_db.list_consolidated_rows(AccountType.SECU, secu_id)
        assert secu_row.status == RowStatus.POSTED
        assert secu_row.acc_post_id == posting.id
        raw = temp_db.list_raw_rows(AccountType.SECU, secu_id)
        assert {r.acc_post_id for r in raw} == {posting.id}
        bank_raw = temp_db.list_raw_rows(AccountType.BANK, bank_id)
        assert {r.status for r in bank_raw} == {RowStatus.POSTED}

    def test_unbalanced_total_leaves_row_unposted(
        self, temp_db, pipeline, make_statement, secu_csv, securities_setup
    ):
        secu_id = self.secu_statement(make_statement, secu_csv, "1004.00")

        result = pipeline.process(secu_id)

        assert result.succeeded
        assert result.details["recognize"]["matched"] == 0
        assert result.details["recognize"]["unmatched"] == 1
        assert temp_db.list_postings() == []
        [secu_row] = temp_db.list_consolidated_rows(AccountType.SECU, secu_id)
        assert secu_row.status == RowStatus.NEW
        assert secu_row.acc_post_id is None

    def test_recognition_is_monotonic(
        self, temp_db, pipeline, make_statement, secu_csv, securities_setup
    ):
        secu_id = self.secu_statement(make_statement, secu_csv, "1005.00")
        pipeline.process(secu_id)
        [posting] = temp_db.list_postings()

        result = pipeline.recognize_statement(secu_id)

        assert result.succeeded
        assert result.details["matched"] == 0
        assert [p.id for p in temp_db.list_postings()] == [posting.id]
        [secu_row] = temp_db.list_consolidated_rows(AccountType.SECU, secu_id)
        assert secu_row.acc_post_id == posting.id

    def test_unmatched_rows_are_retried(
        self, temp_db, pipeline, make_statement, lhv_csv, secu_csv, reference_service
    ):
        reference_service.add_transaction_type("SECSELL", "secu", "in", "SCR01")
        secu_id = self.secu_statement(make_statement, secu_csv, "1000.00")
        first = pipeline.process(secu_id)
        assert first.details["recognize"]["unmatched"] == 1

        bank_id = make_statement(lhv_csv([{"payment_amount": "1000.00", "provider_reference": "B1"}]))
        pipeline.process(bank_id)
        # Recognizing the bank statement only runs the bank processor
        assert temp_db.list_postings() == []

        retry = pipeline.recognize_statement(secu_id)
        assert retry.details["matched"] == 1

    def test_rerun_of_posted_statement_is_refused(
        self, temp_db, pipeline, make_statement, secu_csv, securities_setup
    ):
        bank_id = securities_setup
        secu_id = self.secu_statement(make_statement, secu_csv, "1005.00")
        pipeline.process(secu_id)
        [posting] = temp_db.list_postings()
        audit_size = len(history(temp_db, bank_id))

        reimport = pipeline.import_statement(bank_id)
        reconsolidate = pipeline.consolidate_statement(secu_id)

        assert not reimport.succeeded
        assert "already posted" in reimport.error_message
        assert reimport.status == S.CONSOLIDATED
        assert not reconsolidate.succeeded
        assert reconsolidate.status == S.CONSOLIDATED
        assert [p.id for p in temp_db.list_postings()] == [posting.id]
        assert len(history(temp_db, bank_id)) == audit_size
        assert temp_db.get_statement(bank_id).error_message is None
        for account_type, statement_id in ((AccountType.BANK, bank_id), (AccountType.SECU, secu_id)):
            rows = temp_db.list_consolidated_rows(account_type, statement_id)
            assert {(r.acc_post_id, r.status) for r in rows} == {(posting.id, RowStatus.POSTED)}
            raw = temp_db.list_raw_rows(account_type, statement_id)
            assert {r.acc_post_id for r in raw} == {posting.id}

    def test_unposted_statement_can_be_rerun_next_to_posted_one(
        self, temp_db, pipeline, make_statement, secu_csv, securities_setup
    ):
        bank_id = securities_setup
        posted_id = self.secu_statement(make_statement, secu_csv, "1005.00")
        pipeline.process(posted_id)
        unmatched_id = self.secu_statement(make_statement, secu_csv, "1004.00", reference="S2")
        pipeline.process(unmatched_id)

        result = pipeline.process(unmatched_id)

        assert result.succeeded
        assert len(temp_db.list_postings()) == 1
        main, fee = temp_db.list_consolidated_rows(AccountType.BANK, bank_id)
        assert main.status == fee.status == RowStatus.POSTED

    def test_split_rows_share_one_posting(
        self, temp_db, pipeline, make_statement, secu_csv, reference_service
    ):
        reference_service.add_transaction_type("SL", "secu", "in", "SCR01")
        path = secu_csv(
            [
                {"type": "split-", "ticker": "LHV1T", "description": "Split 1:10",
                 "quantity": "-100", "amount": "0", "total_amount": "0", "reference": "X1"},
                {"type": "split+", "ticker": "LHV1T", "description": "Split 1:10",
                 "quantity": "1000", "amount": "0", "total_amount": "0", "reference": "X2"},
            ]
        )
        secu_id = make_statement(path, account_type="secu")

        result = pipeline.process(secu_id)

        assert result.details["recognize"]["matched"] == 2
        [posting] = temp_db.list_postings()
        rows = temp_db.list_consolidated_rows(AccountType.SECU, secu_id)
        assert {r.acc_post_id for r in rows} == {posting.id}
        assert posting.quantity == Decimal("1000")

    def test_splits_without_type_stay_unmatched(
        self, temp_db, pipeline, make_statement, secu_csv
    ):
        path = secu_csv(
            [
                {"type": "split-", "ticker": "LHV1T", "quantity": "-100", "reference": "X1"},
                {"type": "split+", "ticker": "LHV1T", "quantity": "1000", "reference": "X2"},
            ]
        )
        secu_id = make_statement(path, account_type="secu")

        result = pipeline.process(secu_id)

        assert result.succeeded
        assert result.details["recognize"]["unmatched"] == 2
        assert temp_db.list_postings() == []

    def test_bank_rows_matched_to_customers(
        self, temp_db, pipeline, make_statement, fixtures_dir, reference_service
    ):
        reference_service.add_customer("ORG-1", registration_number="12345678")
        reference_service.add_customer(
            "FIE-1", ind_business_name="Mari Maasikas FIE", account_number="EE471000001020145678"
        )
        reference_service.add_transaction_type("CUSTIN", "bank", "in", "CSH01", "yes")
        reference_service.add_transaction_type("CUSTOUT", "bank", "out", "CSH01", "yes")
        reference_service.add_ledger_operation_type("INVOICE", "CUSTIN", included_words="invoice")
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.process(statement_id)

        recognize = result.details["recognize"]
        assert (recognize["matched"], recognize["unmatched"]) == (2, 1)
        postings = {p.customer_ref: p for p in temp_db.list_postings(statement_id)}
        assert postings["ORG-1"].transaction_type == "CUSTIN"
        assert postings["ORG-1"].type == "INVOICE"
        assert postings["FIE-1"].transaction_type == "CUSTOUT"
        assert postings["FIE-1"].type == "out"
        assert postings["FIE-1"].fee == Decimal("0.38")

    def test_zero_amount_bank_rows_are_skipped(
        self, pipeline, make_statement, lhv_csv, reference_service
    ):
        statement_id = make_statement(lhv_csv([{"payment_amount": "0.00", "customer_id": "12345678"}]))
        result = pipeline.process(statement_id)
        assert result.details["recognize"]["skipped"] == 1

    def test_recognize_requires_consolidated_statement(
        self, pipeline, make_statement, fixtures_dir
    ):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))
        pipeline.import_statement(statement_id)

        result = pipeline.recognize_statement(statement_id)

        assert not result.succeeded
        assert "must be consolidated" in result.error_message


class TestProcess:
    def test_process_runs_every_stage(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.process(statement_id)

        assert result.succeeded
        assert result.stage == "process"
        assert result.status == S.CONSOLIDATED
        assert set(result.details) == {"import", "consolidate", "recognize"}
        assert history(temp_db, statement_id) == [
            ("new", "importing"),
            ("importing", "imported"),
            ("imported", "consolidating"),
            ("consolidating", "consolidated"),
        ]

    def test_rerun_is_idempotent(self, temp_db, pipeline, make_statement, lhv_csv):
        statement_id = make_statement(lhv_csv(fragmented_bank_rows()))

        first = pipeline.process(statement_id)
        statement = temp_db.get_statement(statement_id)
        counts = (statement.row_count, statement.duplicate_count, statement.total_count)
        references = [
            r.statement_reference for r in temp_db.list_consolidated_rows(AccountType.BANK)
        ]

        second = pipeline.process(statement_id)
        statement = temp_db.get_statement(statement_id)

        assert first.succeeded and second.succeeded
        assert first.details == second.details
        assert (statement.row_count, statement.duplicate_count, statement.total_count) == counts
        assert [
            r.statement_reference for r in temp_db.list_consolidated_rows(AccountType.BANK)
        ] == references
        assert len(temp_db.list_raw_rows(AccountType.BANK, statement_id)) == 161

    def test_process_stops_at_first_failure(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "unknown.csv"))

        result = pipeline.process(statement_id)

        assert not result.succeeded
        assert result.stage == "import"
        assert temp_db.list_consolidated_rows(AccountType.BANK, statement_id) == []


class TestErrors:
    def test_unknown_format_moves_statement_to_error(
        self, temp_db, pipeline, make_statement, fixtures_dir
    ):
        statement_id = make_statement(str(fixtures_dir / "unknown.csv"))

        result = pipeline.import_statement(statement_id)

        assert not result.succeeded
        assert result.status == S.ERROR
        statement = temp_db.get_statement(statement_id)
        assert statement.error_message.startswith("Unrecognised statement format")
        assert history(temp_db, statement_id) == [("new", "importing"), ("importing", "error")]

    def test_account_type_mismatch(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(
            str(fixtures_dir / "lhv_bank_statement.csv"), account_type="secu"
        )

        result = pipeline.import_statement(statement_id)

        assert not result.succeeded
        assert "declared as 'secu'" in result.error_message
        assert temp_db.list_raw_rows(AccountType.SECU, statement_id) == []

    def test_missing_statement(self, pipeline):
        result = pipeline.import_statement("missing")
        assert not result.succeeded
        assert result.status is None
        assert result.error_message == "Statement missing not found"

    def test_error_message_is_truncated(self, temp_db, make_statement, fixtures_dir):
        class FailingParser(StatementParser):
            def detect(self, file_path):
                raise ValidationError("x" * 5000)

        pipeline = StatementPipeline(temp_db, parser=FailingParser())
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.import_statement(statement_id)

        assert len(result.error_message) == 1000
        assert len(temp_db.get_statement(statement_id).error_message) == 1000

    def test_custom_error_message_limit(self, temp_db, make_statement, fixtures_dir):
        class FailingParser(StatementParser):
            def detect(self, file_path):
                raise ValidationError("y" * 50)

        pipeline = StatementPipeline(
            temp_db, settings=Settings(error_message_limit=20), parser=FailingParser()
        )
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        assert pipeline.import_statement(statement_id).error_message == "y" * 20

    def test_empty_exception_message(self, temp_db, make_statement, fixtures_dir):
        class FailingParser(StatementParser):
            def detect(self, file_path):
                raise RuntimeError()

        pipeline = StatementPipeline(temp_db, parser=FailingParser())
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))

        result = pipeline.import_statement(statement_id)

        assert result.error_message == "Unknown error"
        assert temp_db.get_statement(statement_id).error_message == "Unknown error"

    def test_orphan_posting_forces_error_status(
        self, temp_db, pipeline, make_statement, fixtures_dir, reference_service, monkeypatch
    ):
        reference_service.add_customer("ORG-1", registration_number="12345678")
        reference_service.add_transaction_type("CUSTIN", "bank", "in", "CSH01", "yes")
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))
        pipeline.import_statement(statement_id)
        pipeline.consolidate_statement(statement_id)
        monkeypatch.setattr(temp_db, "mark_bank_row_posted", lambda *args, **kwargs: 0)

        result = pipeline.recognize_statement(statement_id)

        assert not result.succeeded
        assert result.status == S.ERROR
        assert result.error_message.startswith("Orphan posting:")
        assert temp_db.list_postings() == []
        last = temp_db.list_status_changes("statement", statement_id)[-1]
        assert (last.from_status, last.to_status) == ("consolidated", "error")
        assert last.note.startswith("forced: Orphan posting:")

    def test_failed_statement_can_be_rerun(self, temp_db, pipeline, make_statement, fixtures_dir):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))
        pipeline.consolidate_statement(statement_id)
        assert temp_db.get_statement(statement_id).status == S.ERROR

        result = pipeline.process(statement_id)

        assert result.succeeded
        assert temp_db.get_statement(statement_id).error_message is None

    def test_store_failure_while_recording_error_returns_failure(
        self, temp_db, pipeline, make_statement, fixtures_dir, monkeypatch
    ):
        statement_id = make_statement(str(fixtures_dir / "lhv_bank_statement.csv"))
        monkeypatch.setattr(temp_db, "get_statement", connection_lost)

        result = pipeline.import_statement(statement_id)

        assert not result.succeeded
        assert result.status is None
        assert "connection lost" in result.error_message

    def test_existing_key_load_failure_fails_import(
        self, temp_db, pipeline, make_statement, fixtures_dir, monkeypatch
    ):
        path = str(fixtures_dir / "lhv_bank_statement.csv")
        assert pipeline.import_statement(make_statement(path)).succeeded
        statement_id = make_statement(path)
        monkeypatch.setattr(temp_db, "list_overlapping_raw_rows", connection_lost)

        result = pipeline.import_statement(statement_id)

        assert not result.succeeded
        assert result.status == S.ERROR
        assert temp_db.list_raw_rows(AccountType.BANK, statement_id) == []
        statement = temp_db.get_statement(statement_id)
        assert statement.row_count is None
        assert "connection lost" in statement.error_message

    def test_partial_consolidation_insert_rolls_back(
        self, temp_db, make_statement, lhv_csv, monkeypatch
    ):
        pipeline = StatementPipeline(temp_db, settings=Settings(batch_size=10))
        statement_id = make_statement(lhv_csv(fragmented_bank_rows()))
        pipeline.import_statement(statement_id)
        assert pipeline.consolidate_statement(statement_id).succeeded
        before = [
            (r.id, r.statement_reference, r.payment_amount)
            for r in temp_db.list_consolidated_rows(AccountType.BANK, statement_id)
        ]
        insert = temp_db.insert_consolidated_rows

        def insert_one_batch(account_type, rows, created_by, batch_size=500):
            insert(account_type, rows[:batch_size], created_by, batch_size)
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(temp_db, "insert_consolidated_rows", insert_one_batch)

        result = pipeline.consolidate_statement(statement_id)

        assert not result.succeeded
        assert result.status == S.ERROR
        after = [
            (r.id, r.statement_reference, r.payment_amount)
            for r in temp_db.list_consolidated_rows(AccountType.BANK, statement_id)
        ]
        assert len(before) == 41
        assert after == before
        assert temp_db.get_statement(statement_id).total_count == 41
