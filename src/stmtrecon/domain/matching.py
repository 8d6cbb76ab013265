"""Matching of consolidated rows against counterpart rows and customers."""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Sequence

from stmtrecon.database.base import Database
from stmtrecon.domain.entities import (
    BankConsolidatedRow,
    Customer,
    RowStatus,
    SecuConsolidatedRow,
)
from stmtrecon.domain.errors import NotFoundError, statement_not_found
from stmtrecon.domain.trx_types import FLOW_IN, FLOW_OUT
from stmtrecon.utils.amount_parser import round_half_up

logger = logging.getLogger(__name__)

SPLIT_PREFIX = "split"
SPLIT_MINUS = "split-"
SPLIT_PLUS = "split+"

REGISTRATION_NUMBER_LENGTH = 8
NATIONAL_ID_LENGTH = 11
MIN_ACCOUNT_LENGTH = 6


def flow_type(amount: Decimal) -> str:
    """Return 'in' for a positive amount and 'out' otherwise."""
    return FLOW_IN if amount > 0 else FLOW_OUT


def is_split(row: SecuConsolidatedRow) -> bool:
    """Return True for split (split+ / split-) securities rows."""
    return (row.type or "").strip().lower().startswith(SPLIT_PREFIX)


@dataclass(frozen=True)
class SecuMatch:
    """Bank rows found for a securities row and the resulting balance check."""

    main_row: BankConsolidatedRow
    fee_row: Optional[BankConsolidatedRow]
    difference: Decimal

    @property
    def matched(self) -> bool:
        return self.difference == 0

    @property
    def fee_amount(self) -> Decimal:
        if self.fee_row is None:
            return Decimal("0")
        return self.fee_row.payment_amount


class MatchingEngine:
    """Finds counterparts for consolidated rows."""

    def __init__(self, db: Database):
        """Initialize matching engine.

        Args:
            db: Database instance
        """
        self.db = db
        self._bank_codes: dict[str, str] = {}

    def match_securities(self, row: SecuConsolidatedRow) -> Optional[SecuMatch]:
        """Find the bank payment (and fee) rows behind a securities row.

        The main payment is an unposted bank row of the same bank with the
        same currency and an amount equal to the row's amount. A fee row is
        searched the same way for a non-zero fee. The match only balances
        when round(total, 2) equals round(main + fee, 2), where the fee only
        counts if a fee row was found.

        Args:
            row: Unposted consolidated securities row

        Returns:
            SecuMatch with the balance difference, or None if no main row exists
        """
        bank_code = self._bank_code(row.statement_id)
        candidates = self.db.find_unposted_bank_rows(bank_code, row.currency, row.amount)
        if not candidates:
            logger.debug(
                "No bank payment for %s (%s %s)", row.statement_reference, row.amount, row.currency
            )
            return None
        main_row = candidates[0]

        fee_row = None
        if row.fee:
            fee_candidates = self.db.find_unposted_bank_rows(
                bank_code, row.currency, row.fee, exclude_ids=[main_row.id]
            )
            if fee_candidates:
                fee_row = fee_candidates[0]

        fee_amount = fee_row.payment_amount if fee_row is not None else Decimal("0")
        difference = round_half_up(row.total_amount) - round_half_up(
            main_row.payment_amount + fee_amount
        )
        match = SecuMatch(main_row=main_row, fee_row=fee_row, difference=difference)
        if not match.matched:
            logger.debug(
                "Securities row %s does not balance: difference %s",
                row.statement_reference,
                difference,
            )
        return match

    def pair_splits(
        self, rows: Sequence[SecuConsolidatedRow]
    ) -> list[tuple[SecuConsolidatedRow, SecuConsolidatedRow]]:
        """Pair unposted split- rows with unposted split+ rows.

        A pair shares transaction date, ticker, description and currency,
        with a negative quantity on the split- side and a positive one on
        the split+ side. Each row is used in at most one pair.
        """
        minus_rows = []
        plus_rows = []
        for row in rows:
            if row.status != RowStatus.NEW or row.acc_post_id is not None:
                continue
            kind = (row.type or "").strip().lower()
            if kind == SPLIT_MINUS and row.quantity < 0:
                minus_rows.append(row)
            elif kind == SPLIT_PLUS and row.quantity > 0:
                plus_rows.append(row)

        pairs = []
        used: set[str] = set()
        for minus in minus_rows:
            for plus in plus_rows:
                if plus.id in used:
                    continue
                if _split_key(minus) == _split_key(plus):
                    pairs.append((minus, plus))
                    used.add(plus.id)
                    break
        return pairs

    def match_bank_counterparty(self, row: BankConsolidatedRow) -> Optional[Customer]:
        """Resolve the customer behind a bank row.

        An 8-character customer id is a registration number and an
        11-character one a national id. Otherwise a counterparty account
        longer than 5 characters is looked up together with the counterparty
        name, first as organisation name and then as business name.

        Returns:
            Matching customer, or None
        """
        customer_id = (row.customer_id or "").strip()
        if len(customer_id) == REGISTRATION_NUMBER_LENGTH:
            return self.db.find_customer_by_registration_number(customer_id)
        if len(customer_id) == NATIONAL_ID_LENGTH:
            return self.db.find_customer_by_national_id(customer_id)

        account = (row.other_side_account or "").strip()
        if len(account) < MIN_ACCOUNT_LENGTH:
            return None
        name = (row.other_side_name or "").strip()
        customer = self.db.find_customer_by_org_account(name, account)
        if customer is None:
            customer = self.db.find_customer_by_business_account(name, account)
        return customer

    def _bank_code(self, statement_id: str) -> str:
        if statement_id not in self._bank_codes:
            statement = self.db.get_statement(statement_id)
            if statement is None:
                raise NotFoundError(statement_not_found(statement_id))
            self._bank_codes[statement_id] = statement.bank_code
        return self._bank_codes[statement_id]


def _split_key(row: SecuConsolidatedRow) -> tuple:
    return (row.transaction_date, row.ticker, row.description, row.currency)
