"""Domain model entities for stmtrecon.

These are pure data classes representing business concepts, independent of
database schema. Raw rows keep the text exactly as it was read from the
statement file; consolidated rows and postings carry parsed decimals.
"""

from dataclasses import dataclass, field
from datetime import datetime, date
from decimal import Decimal
from enum import Enum
from typing import Optional


class AccountType(str, Enum):
    """Kind of account a statement belongs to."""

    BANK = "bank"
    SECU = "secu"


class StatementStatus(str, Enum):
    """Statement-level pipeline states."""

    NEW = "new"
    IMPORTING = "importing"
    IMPORTED = "imported"
    CONSOLIDATING = "consolidating"
    CONSOLIDATED = "consolidated"
    ERROR = "error"


class RowStatus(str, Enum):
    """Recognition status of raw and consolidated rows."""

    NEW = "new"
    POSTED = "posted"


class RowOutcome(str, Enum):
    """Outcome of evaluating one consolidated row during recognition."""

    MATCHED = "matched"
    UNMATCHED = "unmatched"
    SKIPPED = "skipped"
    FAILED = "failed"


class EntityType(str, Enum):
    """Entities tracked by the status store."""

    STATEMENT = "statement"


@dataclass(frozen=True)
class Statement:
    """One uploaded bank or securities statement."""

    id: str
    account_type: AccountType
    bank_code: str
    from_date: Optional[date]
    to_date: Optional[date]
    status: StatementStatus
    file_path: Optional[str]
    created_at: datetime
    row_count: Optional[int] = None
    duplicate_count: Optional[int] = None
    total_count: Optional[int] = None
    error_message: Optional[str] = None
    processing_timestamp: Optional[datetime] = None
    consolidation_timestamp: Optional[datetime] = None


@dataclass(frozen=True)
class StatusChange:
    """Audit record of one status change."""

    id: int
    entity_type: str
    entity_id: str
    from_status: Optional[str]
    to_status: str
    actor: str
    note: Optional[str]
    created_at: datetime


@dataclass(frozen=True)
class BankRawRow:
    """One bank statement line as imported."""

    account_number: Optional[str] = None
    document_nr: Optional[str] = None
    payment_date: Optional[str] = None
    other_side_account: Optional[str] = None
    other_side_name: Optional[str] = None
    other_side_bank: Optional[str] = None
    d_c: Optional[str] = None
    payment_amount: Optional[str] = None
    reference_number: Optional[str] = None
    archival_number: Optional[str] = None
    payment_description: Optional[str] = None
    transaction_fee: Optional[str] = None
    currency: Optional[str] = None
    customer_id: Optional[str] = None
    other_side_bic: Optional[str] = None
    initiator: Optional[str] = None
    transaction_reference: Optional[str] = None
    provider_reference: Optional[str] = None
    # Store bookkeeping, unset until persisted
    id: Optional[str] = None
    statement_id: Optional[str] = None
    transaction_id: Optional[str] = None
    status: RowStatus = RowStatus.NEW
    acc_post_id: Optional[str] = None


@dataclass(frozen=True)
class SecuRawRow:
    """One securities statement line as imported."""

    value_date: Optional[str] = None
    transaction_date: Optional[str] = None
    type: Optional[str] = None
    ticker: Optional[str] = None
    description: Optional[str] = None
    quantity: Optional[str] = None
    price: Optional[str] = None
    currency: Optional[str] = None
    amount: Optional[str] = None
    fee: Optional[str] = None
    total_amount: Optional[str] = None
    reference: Optional[str] = None
    comment: Optional[str] = None
    id: Optional[str] = None
    statement_id: Optional[str] = None
    transaction_id: Optional[str] = None
    status: RowStatus = RowStatus.NEW
    acc_post_id: Optional[str] = None


@dataclass(frozen=True)
class BankConsolidatedRow:
    """Aggregate of bank raw rows sharing one identity tuple."""

    statement_id: str
    statement_reference: str
    account_number: Optional[str]
    document_nr: Optional[str]
    payment_date: Optional[str]
    other_side_account: Optional[str]
    other_side_name: Optional[str]
    other_side_bank: Optional[str]
    d_c: Optional[str]
    payment_description: Optional[str]
    currency: Optional[str]
    customer_id: Optional[str]
    other_side_bic: Optional[str]
    payment_amount: Decimal
    transaction_fee: Decimal
    provider_reference: Optional[str]
    id: Optional[str] = None
    status: RowStatus = RowStatus.NEW
    type: Optional[str] = None
    acc_post_id: Optional[str] = None
    transaction_type: Optional[str] = None
    main_bank_total_trx: Optional[str] = None


@dataclass(frozen=True)
class SecuConsolidatedRow:
    """Aggregate of securities raw rows sharing one identity tuple."""

    statement_id: str
    statement_reference: str
    value_date: Optional[str]
    transaction_date: Optional[str]
    type: Optional[str]
    ticker: Optional[str]
    description: Optional[str]
    currency: Optional[str]
    quantity: Decimal
    price: Optional[Decimal]
    amount: Decimal
    fee: Decimal
    total_amount: Decimal
    reference: Optional[str]
    id: Optional[str] = None
    status: RowStatus = RowStatus.NEW
    acc_post_id: Optional[str] = None
    transaction_type: Optional[str] = None
    bank_payment_trx_id: Optional[str] = None
    bank_fee_trx_id: Optional[str] = None


@dataclass(frozen=True)
class InternalTransactionType:
    """Configured transaction type lookup rule."""

    id: int
    code: str
    statement_type: str
    flow_type: str
    asset_type: Optional[str]
    is_customer: Optional[str]
    name: Optional[str] = None


@dataclass(frozen=True)
class LedgerOperationType:
    """Free-text classification rule for a transaction type."""

    id: int
    code: str
    basis_trx_type: str
    included_words: Optional[str]
    excluded_words: Optional[str]
    name: Optional[str] = None


@dataclass(frozen=True)
class Customer:
    """Counterparty identity record."""

    id: int
    customer_ref: str
    registration_number: Optional[str] = None
    national_id: Optional[str] = None
    org_name: Optional[str] = None
    ind_business_name: Optional[str] = None
    account_number: Optional[str] = None


@dataclass(frozen=True)
class PostingDraft:
    """Fields of a posting about to be written."""

    account_type: AccountType
    transaction_type: str
    type: Optional[str]
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    ticker: Optional[str] = None
    description: Optional[str] = None
    transaction_date: Optional[str] = None
    customer_id: Optional[int] = None
    customer_ref: Optional[str] = None
    secu_total_trx_id: Optional[str] = None
    paired_secu_total_trx_id: Optional[str] = None
    bank_total_trx_id: Optional[str] = None
    bank_fee_trx_id: Optional[str] = None


@dataclass(frozen=True)
class Posting:
    """Immutable accounting entry produced by recognition."""

    id: str
    statement_id: str
    account_type: AccountType
    transaction_type: str
    type: Optional[str]
    acc_post_date: date
    created_at: datetime
    amount: Optional[Decimal] = None
    fee: Optional[Decimal] = None
    total_amount: Optional[Decimal] = None
    quantity: Optional[Decimal] = None
    price: Optional[Decimal] = None
    currency: Optional[str] = None
    ticker: Optional[str] = None
    description: Optional[str] = None
    transaction_date: Optional[str] = None
    customer_id: Optional[int] = None
    customer_ref: Optional[str] = None
    secu_total_trx_id: Optional[str] = None
    paired_secu_total_trx_id: Optional[str] = None
    bank_total_trx_id: Optional[str] = None
    bank_fee_trx_id: Optional[str] = None

    @property
    def source_row_ids(self) -> list[str]:
        """Ids of every consolidated row this posting references."""
        ids = [
            self.secu_total_trx_id,
            self.paired_secu_total_trx_id,
            self.bank_total_trx_id,
            self.bank_fee_trx_id,
        ]
        return [row_id for row_id in ids if row_id is not None]


@dataclass(frozen=True)
class DeduplicationResult:
    """Partition of candidate rows into new rows and a duplicate count."""

    non_duplicate_rows: list[list[Optional[str]]]
    duplicate_count: int
    total_count: int


@dataclass
class RecognitionResult:
    """Accumulated per-row outcomes of one recognition pass."""

    outcomes: dict[RowOutcome, int] = field(
        default_factory=lambda: {outcome: 0 for outcome in RowOutcome}
    )
    posting_ids: list[str] = field(default_factory=list)

    def record(self, outcome: RowOutcome, posting_id: Optional[str] = None) -> None:
        """Record the outcome of one row."""
        self.outcomes[outcome] += 1
        if posting_id is not None:
            self.posting_ids.append(posting_id)

    def merge(self, other: "RecognitionResult") -> None:
        """Add another result's counts to this one."""
        for outcome, count in other.outcomes.items():
            self.outcomes[outcome] += count
        self.posting_ids.extend(other.posting_ids)

    @property
    def matched(self) -> int:
        return self.outcomes[RowOutcome.MATCHED]

    @property
    def unmatched(self) -> int:
        return self.outcomes[RowOutcome.UNMATCHED]

    @property
    def skipped(self) -> int:
        return self.outcomes[RowOutcome.SKIPPED]

    @property
    def failed(self) -> int:
        return self.outcomes[RowOutcome.FAILED]

    @property
    def total(self) -> int:
        return sum(self.outcomes.values())
