"""Posting registration for recognized transactions."""

import logging
from datetime import date
from typing import Optional

from stmtrecon.config import Settings
from stmtrecon.database.base import Database
from stmtrecon.domain.entities import (
    AccountType,
    BankConsolidatedRow,
    Customer,
    InternalTransactionType,
    PostingDraft,
    SecuConsolidatedRow,
)
from stmtrecon.domain.errors import OrphanPostingError
from stmtrecon.domain.matching import SecuMatch
from stmtrecon.domain.trx_types import TransactionTypeResolver

logger = logging.getLogger(__name__)

SECU_PAYMENT_TYPE = "secupmt"
SECU_FEE_TYPE = "secufee"
MIN_CLASSIFIABLE_LENGTH = 3


class PostingRegistrar:
    """Creates postings and cross-references their source rows.

    Each registration is one unit of work: the posting insert and every
    source-row update commit together. Source rows are only updated while
    they are still unposted; if fewer rows than expected take the posting,
    the posting would be orphaned, so OrphanPostingError is raised and the
    unit of work is rolled back.
    """

    def __init__(self, db: Database, resolver: TransactionTypeResolver, settings: Settings):
        """Initialize posting registrar.

        Args:
            db: Database instance
            resolver: Resolver used for ledger operation classification
            settings: Pipeline settings
        """
        self.db = db
        self.resolver = resolver
        self.settings = settings

    def register_securities(
        self,
        trx_type: InternalTransactionType,
        row: SecuConsolidatedRow,
        match: SecuMatch,
        statement_id: str,
    ) -> str:
        """Post a securities row together with its bank payment and fee rows.

        Returns:
            Posting ID

        Raises:
            OrphanPostingError: If a source row could not be cross-referenced
        """
        main_row = match.main_row
        fee_row = match.fee_row
        draft = PostingDraft(
            account_type=AccountType.SECU,
            transaction_type=trx_type.code,
            type=self._posting_type(trx_type.code, row.description, row.type),
            amount=row.amount,
            fee=match.fee_amount,
            total_amount=row.total_amount,
            quantity=row.quantity,
            price=row.price,
            currency=row.currency,
            ticker=row.ticker,
            description=row.description,
            transaction_date=row.transaction_date,
            secu_total_trx_id=row.id,
            bank_total_trx_id=main_row.id,
            bank_fee_trx_id=fee_row.id if fee_row is not None else None,
        )

        with self.db.unit_of_work():
            posting_id = self._create(draft, statement_id)
            expected = 2
            updated = self.db.mark_secu_row_posted(
                row.id,
                posting_id,
                trx_type.code,
                bank_payment_trx_id=main_row.id,
                bank_fee_trx_id=draft.bank_fee_trx_id,
            )
            updated += self.db.mark_bank_row_posted(
                main_row.id, posting_id, trx_type.code, type=SECU_PAYMENT_TYPE
            )
            if fee_row is not None:
                expected += 1
                updated += self.db.mark_bank_row_posted(
                    fee_row.id,
                    posting_id,
                    trx_type.code,
                    type=SECU_FEE_TYPE,
                    main_bank_total_trx=main_row.id,
                )
            self._check_cross_references(posting_id, expected, updated)

            self.db.mark_raw_rows_posted(AccountType.SECU, row, posting_id)
            self.db.mark_raw_rows_posted(AccountType.BANK, main_row, posting_id)
            if fee_row is not None:
                self.db.mark_raw_rows_posted(AccountType.BANK, fee_row, posting_id)

        logger.info(
            "Posted securities row %s as %s (posting %s)",
            row.statement_reference,
            trx_type.code,
            posting_id,
        )
        return posting_id

    def register_split(
        self,
        trx_type: InternalTransactionType,
        minus_row: SecuConsolidatedRow,
        plus_row: SecuConsolidatedRow,
        statement_id: str,
    ) -> str:
        """Post both sides of a split with one posting.

        Returns:
            Posting ID

        Raises:
            OrphanPostingError: If either row could not be cross-referenced
        """
        draft = PostingDraft(
            account_type=AccountType.SECU,
            transaction_type=trx_type.code,
            type=self._posting_type(trx_type.code, minus_row.description, minus_row.type),
            amount=minus_row.amount,
            fee=minus_row.fee,
            total_amount=minus_row.total_amount,
            quantity=plus_row.quantity,
            price=plus_row.price,
            currency=minus_row.currency,
            ticker=minus_row.ticker,
            description=minus_row.description,
            transaction_date=minus_row.transaction_date,
            secu_total_trx_id=minus_row.id,
            paired_secu_total_trx_id=plus_row.id,
        )

        with self.db.unit_of_work():
            posting_id = self._create(draft, statement_id)
            updated = self.db.mark_secu_row_posted(minus_row.id, posting_id, trx_type.code)
            updated += self.db.mark_secu_row_posted(plus_row.id, posting_id, trx_type.code)
            self._check_cross_references(posting_id, 2, updated)
            self.db.mark_raw_rows_posted(AccountType.SECU, minus_row, posting_id)
            self.db.mark_raw_rows_posted(AccountType.SECU, plus_row, posting_id)

        logger.info(
            "Posted split %s/%s (posting %s)",
            minus_row.statement_reference,
            plus_row.statement_reference,
            posting_id,
        )
        return posting_id

    def register_bank(
        self,
        trx_type: InternalTransactionType,
        row: BankConsolidatedRow,
        customer: Customer,
        statement_id: str,
        default_type: Optional[str] = None,
    ) -> str:
        """Post a bank row matched to a customer.

        Returns:
            Posting ID

        Raises:
            OrphanPostingError: If the row could not be cross-referenced
        """
        draft = PostingDraft(
            account_type=AccountType.BANK,
            transaction_type=trx_type.code,
            type=self._posting_type(
                trx_type.code, row.payment_description, row.type or default_type
            ),
            amount=row.payment_amount,
            fee=row.transaction_fee,
            total_amount=row.payment_amount,
            currency=row.currency,
            description=row.payment_description,
            transaction_date=row.payment_date,
            customer_id=customer.id,
            customer_ref=customer.customer_ref,
            bank_total_trx_id=row.id,
        )

        with self.db.unit_of_work():
            posting_id = self._create(draft, statement_id)
            updated = self.db.mark_bank_row_posted(row.id, posting_id, trx_type.code)
            self._check_cross_references(posting_id, 1, updated)
            self.db.mark_raw_rows_posted(AccountType.BANK, row, posting_id)

        logger.info(
            "Posted bank row %s for customer %s (posting %s)",
            row.statement_reference,
            customer.customer_ref,
            posting_id,
        )
        return posting_id

    def _create(self, draft: PostingDraft, statement_id: str) -> str:
        return self.db.create_posting(draft, statement_id, date.today(), self.settings.actor)

    def _posting_type(
        self, basis_code: str, description: Optional[str], default: Optional[str]
    ) -> Optional[str]:
        if description is not None and len(description.strip()) >= MIN_CLASSIFIABLE_LENGTH:
            classified = self.resolver.classify(basis_code, description)
            if classified is not None:
                return classified
        return default

    @staticmethod
    def _check_cross_references(posting_id: str, expected: int, updated: int) -> None:
        if updated != expected:
            error = OrphanPostingError(posting_id, expected, updated)
            logger.error("%s", error)
            raise error
