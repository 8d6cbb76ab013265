"""Consolidation of raw statement rows into canonical transaction summaries."""

import logging
from decimal import Decimal
from typing import Any, Optional, Sequence, Union

from stmtrecon.domain.entities import (
    AccountType,
    BankConsolidatedRow,
    SecuConsolidatedRow,
)
from stmtrecon.domain.errors import ValidationError
from stmtrecon.domain.formats import RawRow, get_policy
from stmtrecon.utils.amount_parser import parse_optional_amount, round_half_up

logger = logging.getLogger(__name__)

ConsolidatedRow = Union[BankConsolidatedRow, SecuConsolidatedRow]

MONEY_PLACES = 2
QUANTITY_PLACES = 6
PRICE_PLACES = 6
REFERENCE_SEPARATOR = ","


def statement_reference_prefix(year: int) -> str:
    """Return the statement reference prefix for a statement year."""
    return f"STMT{year}"


def statement_reference(prefix: str, sequence: int) -> str:
    """Format a statement reference, e.g. STMT2024.001."""
    return f"{prefix}.{sequence:03d}"


class ConsolidationEngine:
    """Groups raw rows by identity tuple and aggregates each group.

    Groups keep the natural order of their raw rows, so reference lists are
    joined in file order. The result is sorted by the account type's
    ordering fields (stable, so ties keep first-appearance order) and
    numbered sequentially from 1.
    """

    def __init__(self, account_type: AccountType):
        self.account_type = AccountType(account_type)
        self.policy = get_policy(self.account_type)

    def consolidate(
        self, statement_id: str, raw_rows: Sequence[RawRow], year: int
    ) -> list[ConsolidatedRow]:
        """Consolidate a statement's raw rows.

        Args:
            statement_id: Statement the rows belong to
            raw_rows: Raw rows in natural (transaction id) order
            year: Statement year used for the reference prefix

        Returns:
            Consolidated rows in reference order

        Raises:
            ValidationError: If a numeric field cannot be parsed
        """
        groups: dict[tuple, list[RawRow]] = {}
        for row in raw_rows:
            identity = tuple(getattr(row, name) for name in self.policy.identity_fields)
            groups.setdefault(identity, []).append(row)

        aggregated = [self._aggregate(rows) for rows in groups.values()]
        aggregated.sort(
            # Text ordering ignores case
            key=lambda fields: tuple(
                (fields[name] or "").casefold() for name in self.policy.order_fields
            )
        )

        prefix = statement_reference_prefix(year)
        if self.account_type == AccountType.BANK:
            row_class = BankConsolidatedRow
        else:
            row_class = SecuConsolidatedRow
        result = [
            row_class(
                statement_id=statement_id,
                statement_reference=statement_reference(prefix, sequence),
                **fields,
            )
            for sequence, fields in enumerate(aggregated, start=1)
        ]

        logger.info(
            "Consolidated %d %s raw rows into %d rows for statement %s",
            len(raw_rows),
            self.account_type.value,
            len(result),
            statement_id,
        )
        return result

    def _aggregate(self, rows: list[RawRow]) -> dict[str, Any]:
        first = rows[0]
        fields = {name: getattr(first, name) for name in self.policy.identity_fields}
        fields[self.policy.reference_field] = _join_references(
            getattr(row, self.policy.reference_field) for row in rows
        )

        if self.account_type == AccountType.BANK:
            fields["payment_amount"] = round_half_up(
                _sum(rows, "payment_amount"), MONEY_PLACES
            )
            fields["transaction_fee"] = round_half_up(
                _sum(rows, "transaction_fee"), MONEY_PLACES
            )
        else:
            fields["quantity"] = round_half_up(_sum(rows, "quantity"), QUANTITY_PLACES)
            fields["price"] = _average(rows, "price")
            for name in ("amount", "fee", "total_amount"):
                fields[name] = round_half_up(_sum(rows, name), MONEY_PLACES)
        return fields


def _numeric(row: RawRow, name: str) -> Optional[Decimal]:
    value = getattr(row, name)
    try:
        return parse_optional_amount(value)
    except ValueError as e:
        raise ValidationError(
            f"Row {row.transaction_id or '?'}: invalid {name} '{value}'"
        ) from e


def _sum(rows: list[RawRow], name: str) -> Decimal:
    total = Decimal("0")
    for row in rows:
        value = _numeric(row, name)
        if value is not None:
            total += value
    return total


def _average(rows: list[RawRow], name: str) -> Optional[Decimal]:
    # Unweighted mean over rows that carry a value
    values = [value for value in (_numeric(row, name) for row in rows) if value is not None]
    if not values:
        return None
    return round_half_up(sum(values, Decimal("0")) / len(values), PRICE_PLACES)


def _join_references(references) -> Optional[str]:
    present = [reference for reference in references if reference is not None]
    if not present:
        return None
    return REFERENCE_SEPARATOR.join(present)
