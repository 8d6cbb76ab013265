"""Statement formats and the declarative column-mapping table.

Every format-specific detail lives here: the fixed column order of each
account type, which columns form the deduplication keys, which columns make
up the consolidation identity tuple and how consolidated rows are ordered.
Parsers, the dedup engine, the consolidation engine and the store all read
from these tables instead of carrying their own column lists.
"""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

from stmtrecon.domain.entities import AccountType, BankRawRow, SecuRawRow

RawRow = Union[BankRawRow, SecuRawRow]

BANK_COLUMNS = (
    "account_number",
    "document_nr",
    "payment_date",
    "other_side_account",
    "other_side_name",
    "other_side_bank",
    "d_c",
    "payment_amount",
    "reference_number",
    "archival_number",
    "payment_description",
    "transaction_fee",
    "currency",
    "customer_id",
    "other_side_bic",
    "initiator",
    "transaction_reference",
    "provider_reference",
)

SECU_COLUMNS = (
    "value_date",
    "transaction_date",
    "type",
    "ticker",
    "description",
    "quantity",
    "price",
    "currency",
    "amount",
    "fee",
    "total_amount",
    "reference",
    "comment",
)


@dataclass(frozen=True)
class AccountPolicy:
    """Column policy shared by every format of one account type."""

    account_type: AccountType
    columns: tuple[str, ...]
    primary_key_field: str
    composite_key_fields: tuple[str, ...]
    identity_fields: tuple[str, ...]
    order_fields: tuple[str, ...]
    reference_field: str
    row_class: type

    @property
    def primary_key_index(self) -> int:
        return self.columns.index(self.primary_key_field)

    @property
    def composite_key_indices(self) -> tuple[int, ...]:
        return tuple(self.columns.index(name) for name in self.composite_key_fields)


BANK_POLICY = AccountPolicy(
    account_type=AccountType.BANK,
    columns=BANK_COLUMNS,
    primary_key_field="provider_reference",
    composite_key_fields=(
        "account_number",
        "document_nr",
        "payment_date",
        "payment_amount",
        "currency",
    ),
    identity_fields=(
        "account_number",
        "document_nr",
        "payment_date",
        "other_side_account",
        "other_side_name",
        "other_side_bank",
        "d_c",
        "payment_description",
        "currency",
        "customer_id",
        "other_side_bic",
    ),
    order_fields=("payment_date", "d_c", "other_side_name"),
    reference_field="provider_reference",
    row_class=BankRawRow,
)

SECU_POLICY = AccountPolicy(
    account_type=AccountType.SECU,
    columns=SECU_COLUMNS,
    primary_key_field="reference",
    composite_key_fields=(
        "value_date",
        "transaction_date",
        "type",
        "ticker",
        "amount",
        "currency",
    ),
    identity_fields=(
        "value_date",
        "transaction_date",
        "type",
        "ticker",
        "description",
        "currency",
    ),
    order_fields=("value_date", "type", "ticker"),
    reference_field="reference",
    row_class=SecuRawRow,
)

POLICIES = {
    AccountType.BANK: BANK_POLICY,
    AccountType.SECU: SECU_POLICY,
}


@dataclass(frozen=True)
class StatementFormat:
    """One concrete file layout produced by a bank."""

    name: str
    account_type: AccountType
    delimiter: str
    header_markers: tuple[str, ...]
    column_count: int
    dropped_index: Optional[int] = None

    @property
    def policy(self) -> AccountPolicy:
        return POLICIES[self.account_type]


SECURITIES = StatementFormat(
    name="SECURITIES",
    account_type=AccountType.SECU,
    delimiter=",",
    header_markers=("väärtuspäev", "tehingupäev"),
    column_count=13,
)

LHV_BANK = StatementFormat(
    name="LHV_BANK",
    account_type=AccountType.BANK,
    delimiter=",",
    header_markers=("dokumendi number",),
    column_count=18,
    # LHV exports an always-empty column between bank code and debit/credit flag
    dropped_index=6,
)

SWEDBANK = StatementFormat(
    name="SWEDBANK",
    account_type=AccountType.BANK,
    delimiter=";",
    header_markers=("dok nr",),
    column_count=14,
)

# Detection order matters: the securities header is checked first
FORMATS = (SECURITIES, LHV_BANK, SWEDBANK)


def get_policy(account_type: AccountType) -> AccountPolicy:
    """Get the column policy for an account type."""
    return POLICIES[AccountType(account_type)]


def get_format(name: str) -> StatementFormat:
    """Get a statement format by name.

    Raises:
        KeyError: If no format has that name
    """
    for fmt in FORMATS:
        if fmt.name == name.upper():
            return fmt
    raise KeyError(name)


def values_to_raw_row(
    account_type: AccountType, values: Sequence[Optional[str]], **bookkeeping
) -> RawRow:
    """Build a typed raw row from values in the policy's column order.

    Missing trailing values become None; extra values are ignored.
    """
    policy = get_policy(account_type)
    fields = {
        name: (values[index] if index < len(values) else None)
        for index, name in enumerate(policy.columns)
    }
    return policy.row_class(**fields, **bookkeeping)


def raw_row_to_values(account_type: AccountType, row: RawRow) -> list[Optional[str]]:
    """Return a raw row's values in the policy's column order."""
    policy = get_policy(account_type)
    return [getattr(row, name) for name in policy.columns]
