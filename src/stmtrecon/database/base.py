"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from decimal import Decimal
from typing import Optional, Any, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from stmtrecon.domain.entities import (
    AccountType,
    BankConsolidatedRow,
    Customer,
    InternalTransactionType,
    LedgerOperationType,
    Posting,
    PostingDraft,
    RowStatus,
    Statement,
    StatementStatus,
    StatusChange,
)
from stmtrecon.domain.formats import RawRow
from stmtrecon.domain.consolidation import ConsolidatedRow


class Database(ABC):
    """Abstract database interface for stmtrecon."""

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self) -> AbstractContextManager[None]:
        """Open a transaction scope.

        Commits when the block exits normally and rolls back on any
        exception. Store failures are raised as StoreError. Writes made
        inside the block are not committed on their own.
        """
        pass

    # Statement operations
    @abstractmethod
    def create_statement(
        self,
        account_type: AccountType,
        bank_code: str,
        from_date: Optional[date],
        to_date: Optional[date],
        file_path: Optional[str],
    ) -> str:
        """Create a statement with status 'new'. Returns statement ID."""
        pass

    @abstractmethod
    def get_statement(self, statement_id: str) -> Optional[Statement]:
        """Get statement by ID."""
        pass

    @abstractmethod
    def list_statements(self, account_type: Optional[AccountType] = None) -> list[Statement]:
        """List statements, optionally filtered by account type."""
        pass

    @abstractmethod
    def set_statement_status(self, statement_id: str, status: StatementStatus) -> None:
        """Write a statement's status without any transition check."""
        pass

    @abstractmethod
    def update_statement_metadata(self, statement_id: str, **fields: Any) -> None:
        """Update statement metadata columns (counts, timestamps, error message)."""
        pass

    @abstractmethod
    def add_status_change(
        self,
        entity_type: str,
        entity_id: str,
        from_status: Optional[str],
        to_status: str,
        actor: str,
        note: Optional[str] = None,
    ) -> int:
        """Record a status change in the audit trail. Returns audit ID."""
        pass

    @abstractmethod
    def list_status_changes(self, entity_type: str, entity_id: str) -> list[StatusChange]:
        """List status changes of an entity, oldest first."""
        pass

    # Raw row operations
    @abstractmethod
    def delete_raw_rows(self, account_type: AccountType, statement_id: str) -> int:
        """Delete a statement's raw rows. Returns number deleted."""
        pass

    @abstractmethod
    def insert_raw_rows(
        self,
        account_type: AccountType,
        rows: Sequence[RawRow],
        created_by: str,
        batch_size: int = 500,
    ) -> int:
        """Insert raw rows that carry id, statement_id and transaction_id. Returns count."""
        pass

    @abstractmethod
    def list_raw_rows(self, account_type: AccountType, statement_id: str) -> list[RawRow]:
        """List a statement's raw rows in transaction id order."""
        pass

    @abstractmethod
    def list_overlapping_raw_rows(self, statement: Statement) -> list[RawRow]:
        """List raw rows of other statements that overlap the statement's period.

        Only statements of the same account type and bank code whose status
        is neither 'new' nor 'error' are considered.
        """
        pass

    @abstractmethod
    def mark_raw_rows_posted(
        self, account_type: AccountType, consolidated_row: ConsolidatedRow, posting_id: str
    ) -> int:
        """Cross-reference the unposted raw rows behind a consolidated row. Returns count."""
        pass

    # Consolidated row operations
    @abstractmethod
    def delete_consolidated_rows(self, account_type: AccountType, statement_id: str) -> int:
        """Delete a statement's consolidated rows. Returns number deleted."""
        pass

    @abstractmethod
    def insert_consolidated_rows(
        self,
        account_type: AccountType,
        rows: Sequence[ConsolidatedRow],
        created_by: str,
        batch_size: int = 500,
    ) -> list[str]:
        """Insert consolidated rows. Returns the generated IDs in input order."""
        pass

    @abstractmethod
    def list_consolidated_rows(
        self,
        account_type: AccountType,
        statement_id: Optional[str] = None,
        status: Optional[RowStatus] = None,
    ) -> list[ConsolidatedRow]:
        """List consolidated rows ordered by statement and statement reference."""
        pass

    @abstractmethod
    def get_consolidated_row(
        self, account_type: AccountType, row_id: str
    ) -> Optional[ConsolidatedRow]:
        """Get a consolidated row by ID."""
        pass

    @abstractmethod
    def find_unposted_bank_rows(
        self,
        bank_code: str,
        currency: Optional[str],
        amount: Decimal,
        exclude_ids: Sequence[str] = (),
    ) -> list[BankConsolidatedRow]:
        """Find unposted bank rows by bank code, currency and exact amount.

        Results are ordered by payment date and statement reference.
        """
        pass

    @abstractmethod
    def mark_bank_row_posted(
        self,
        row_id: str,
        posting_id: str,
        transaction_type: str,
        type: Optional[str] = None,
        main_bank_total_trx: Optional[str] = None,
    ) -> int:
        """Cross-reference an unposted bank row to a posting. Returns rows updated."""
        pass

    @abstractmethod
    def mark_secu_row_posted(
        self,
        row_id: str,
        posting_id: str,
        transaction_type: str,
        bank_payment_trx_id: Optional[str] = None,
        bank_fee_trx_id: Optional[str] = None,
    ) -> int:
        """Cross-reference an unposted securities row to a posting. Returns rows updated."""
        pass

    # Posting operations
    @abstractmethod
    def create_posting(
        self, draft: PostingDraft, statement_id: str, acc_post_date: date, created_by: str
    ) -> str:
        """Create a posting. Returns posting ID."""
        pass

    @abstractmethod
    def get_posting(self, posting_id: str) -> Optional[Posting]:
        """Get posting by ID."""
        pass

    @abstractmethod
    def list_postings(self, statement_id: Optional[str] = None) -> list[Posting]:
        """List postings, optionally filtered by the statement that created them."""
        pass

    @abstractmethod
    def count_posted_rows(self, account_type: AccountType, statement_id: str) -> int:
        """Count a statement's raw and consolidated rows that carry a posting id."""
        pass

    # Reference data operations
    @abstractmethod
    def create_transaction_type(
        self,
        code: str,
        statement_type: str,
        flow_type: str,
        asset_type: Optional[str] = None,
        is_customer: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        """Create an internal transaction type. Returns ID."""
        pass

    @abstractmethod
    def list_transaction_types(self) -> list[InternalTransactionType]:
        """List internal transaction types in configuration order."""
        pass

    @abstractmethod
    def find_transaction_types(
        self,
        statement_type: str,
        flow_type: str,
        asset_type: Optional[str],
        is_customer: Optional[str] = None,
    ) -> list[InternalTransactionType]:
        """Find transaction types by lookup tuple, in configuration order.

        is_customer is only part of the filter when given.
        """
        pass

    @abstractmethod
    def get_transaction_type_by_code(self, code: str) -> Optional[InternalTransactionType]:
        """Get transaction type by code."""
        pass

    @abstractmethod
    def create_ledger_operation_type(
        self,
        code: str,
        basis_trx_type: str,
        included_words: Optional[str] = None,
        excluded_words: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        """Create a ledger operation type. Returns ID."""
        pass

    @abstractmethod
    def list_ledger_operation_types(
        self, basis_trx_type: Optional[str] = None
    ) -> list[LedgerOperationType]:
        """List ledger operation types in configuration order."""
        pass

    @abstractmethod
    def create_customer(
        self,
        customer_ref: str,
        registration_number: Optional[str] = None,
        national_id: Optional[str] = None,
        org_name: Optional[str] = None,
        ind_business_name: Optional[str] = None,
        account_number: Optional[str] = None,
    ) -> int:
        """Create a customer. Returns customer ID."""
        pass

    @abstractmethod
    def list_customers(self) -> list[Customer]:
        """List all customers."""
        pass

    @abstractmethod
    def find_customer_by_registration_number(self, registration_number: str) -> Optional[Customer]:
        """Find a customer by company registration number."""
        pass

    @abstractmethod
    def find_customer_by_national_id(self, national_id: str) -> Optional[Customer]:
        """Find a customer by personal identification code."""
        pass

    @abstractmethod
    def find_customer_by_org_account(self, name: str, account_number: str) -> Optional[Customer]:
        """Find a customer by organisation name and account number."""
        pass

    @abstractmethod
    def find_customer_by_business_account(
        self, name: str, account_number: str
    ) -> Optional[Customer]:
        """Find a customer by individual business name and account number."""
        pass
