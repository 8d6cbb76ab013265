"""Recognition of consolidated rows as business transactions."""

import logging
from typing import Callable, Optional, Sequence, TypeVar

from stmtrecon.config import Settings
from stmtrecon.database.base import Database
from stmtrecon.domain.entities import (
    AccountType,
    BankConsolidatedRow,
    RecognitionResult,
    RowOutcome,
    RowStatus,
    SecuConsolidatedRow,
    Statement,
)
from stmtrecon.domain.errors import DomainError, StoreError
from stmtrecon.domain.matching import MatchingEngine, flow_type, is_split
from stmtrecon.domain.posting import PostingRegistrar
from stmtrecon.domain.trx_types import CUSTOMER_YES, TransactionTypeResolver

logger = logging.getLogger(__name__)

Row = TypeVar("Row")
Evaluation = tuple[RowOutcome, Optional[str]]


class RecognitionService:
    """Runs the recognition processors over unposted consolidated rows.

    Processors visit every unposted row of the account type, not only the
    rows of the statement being processed, so rows that could not be
    matched earlier are retried. Every visited row gets exactly one
    RowOutcome. A row whose own data cannot be evaluated is recorded as
    failed and the pass continues; store and orphan-posting errors abort it.
    """

    def __init__(
        self,
        db: Database,
        settings: Settings,
        resolver: Optional[TransactionTypeResolver] = None,
        matcher: Optional[MatchingEngine] = None,
        registrar: Optional[PostingRegistrar] = None,
    ):
        """Initialize recognition service.

        Args:
            db: Database instance
            settings: Pipeline settings
            resolver: Transaction type resolver (created when omitted)
            matcher: Matching engine (created when omitted)
            registrar: Posting registrar (created when omitted)
        """
        self.db = db
        self.settings = settings
        self.resolver = resolver or TransactionTypeResolver(db)
        self.matcher = matcher or MatchingEngine(db)
        self.registrar = registrar or PostingRegistrar(db, self.resolver, settings)

    def recognize(self, statement: Statement) -> RecognitionResult:
        """Run the processors for the statement's account type.

        Args:
            statement: Statement whose processing triggered the pass; new
                postings are attributed to it

        Returns:
            Accumulated outcomes and created posting IDs
        """
        self.resolver.reload()
        if statement.account_type == AccountType.SECU:
            result = self.recognize_securities(statement.id)
            result.merge(self.recognize_splits(statement.id))
        else:
            result = self.recognize_bank(statement.id)

        logger.info(
            "Recognition for statement %s: %d matched, %d unmatched, %d skipped, %d failed",
            statement.id,
            result.matched,
            result.unmatched,
            result.skipped,
            result.failed,
        )
        return result

    def recognize_securities(self, statement_id: str) -> RecognitionResult:
        """Match unposted non-split securities rows against bank payments."""
        rows = [
            row
            for row in self.db.list_consolidated_rows(AccountType.SECU, status=RowStatus.NEW)
            if not is_split(row)
        ]
        return self._run(rows, lambda row: self._evaluate_securities(row, statement_id))

    def recognize_splits(self, statement_id: str) -> RecognitionResult:
        """Pair and post unposted split rows."""
        result = RecognitionResult()
        rows = [
            row
            for row in self.db.list_consolidated_rows(AccountType.SECU, status=RowStatus.NEW)
            if is_split(row)
        ]
        pairs = self.matcher.pair_splits(rows)
        paired_ids = {row.id for pair in pairs for row in pair}
        trx_type = self.resolver.resolve_by_code(self.settings.split_type_code)

        for minus_row, plus_row in pairs:
            if trx_type is None:
                result.record(RowOutcome.UNMATCHED)
                result.record(RowOutcome.UNMATCHED)
                continue
            posting_id = self.registrar.register_split(trx_type, minus_row, plus_row, statement_id)
            result.record(RowOutcome.MATCHED, posting_id)
            result.record(RowOutcome.MATCHED)

        for row in rows:
            if row.id not in paired_ids:
                result.record(RowOutcome.UNMATCHED)

        if pairs and trx_type is None:
            logger.warning(
                "No transaction type with code %s configured; %d split pairs left unposted",
                self.settings.split_type_code,
                len(pairs),
            )
        return result

    def recognize_bank(self, statement_id: str) -> RecognitionResult:
        """Match unposted bank rows to customers."""
        rows = self.db.list_consolidated_rows(AccountType.BANK, status=RowStatus.NEW)
        return self._run(rows, lambda row: self._evaluate_bank(row, statement_id))

    def _run(
        self, rows: Sequence[Row], evaluate: Callable[[Row], Evaluation]
    ) -> RecognitionResult:
        result = RecognitionResult()
        for row in rows:
            try:
                outcome, posting_id = evaluate(row)
            except StoreError:
                raise
            except DomainError as e:
                logger.warning("Could not evaluate row %s: %s", row.statement_reference, e)
                outcome, posting_id = RowOutcome.FAILED, None
            logger.debug("Row %s: %s", row.statement_reference, outcome.value)
            result.record(outcome, posting_id)
        return result

    def _evaluate_securities(self, row: SecuConsolidatedRow, statement_id: str) -> Evaluation:
        if row.acc_post_id is not None:
            return RowOutcome.SKIPPED, None
        if not row.amount:
            return RowOutcome.SKIPPED, None

        match = self.matcher.match_securities(row)
        if match is None or not match.matched:
            return RowOutcome.UNMATCHED, None

        trx_type = self.resolver.resolve(
            AccountType.SECU.value,
            flow_type(match.main_row.payment_amount),
            self.settings.securities_asset_type,
        )
        if trx_type is None:
            return RowOutcome.UNMATCHED, None

        posting_id = self.registrar.register_securities(trx_type, row, match, statement_id)
        return RowOutcome.MATCHED, posting_id

    def _evaluate_bank(self, row: BankConsolidatedRow, statement_id: str) -> Evaluation:
        if row.acc_post_id is not None:
            return RowOutcome.SKIPPED, None
        if not row.payment_amount:
            return RowOutcome.SKIPPED, None

        customer = self.matcher.match_bank_counterparty(row)
        if customer is None:
            return RowOutcome.UNMATCHED, None

        flow = flow_type(row.payment_amount)
        trx_type = self.resolver.resolve(
            AccountType.BANK.value, flow, self.settings.cash_asset_type, CUSTOMER_YES
        )
        if trx_type is None:
            return RowOutcome.UNMATCHED, None

        posting_id = self.registrar.register_bank(
            trx_type, row, customer, statement_id, default_type=flow
        )
        return RowOutcome.MATCHED, posting_id
