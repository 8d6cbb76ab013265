"""Reference data service: transaction types, ledger operation types and customers."""

from typing import Optional

from stmtrecon.database.base import Database
from stmtrecon.domain.entities import (
    AccountType,
    Customer,
    InternalTransactionType,
    LedgerOperationType,
)
from stmtrecon.domain.errors import ConflictError, ValidationError, duplicate_code
from stmtrecon.domain.trx_types import CUSTOMER_YES, FLOW_IN, FLOW_OUT

FLOW_TYPES = (FLOW_IN, FLOW_OUT)
CUSTOMER_FLAGS = (CUSTOMER_YES, "no")


class ReferenceDataService:
    """Service for managing the read-only reference data used by recognition."""

    def __init__(self, db: Database):
        """Initialize reference data service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_transaction_type(
        self,
        code: str,
        statement_type: str,
        flow_type: str,
        asset_type: Optional[str] = None,
        is_customer: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        """Add an internal transaction type.

        Args:
            code: Unique type code
            statement_type: 'bank' or 'secu'
            flow_type: 'in' or 'out'
            asset_type: Asset type code, e.g. SCR01 or CSH01
            is_customer: 'yes' or 'no'; None when the type does not depend on it
            name: Optional display name

        Returns:
            Transaction type ID

        Raises:
            ValidationError: If a field has an unsupported value
            ConflictError: If the code already exists
        """
        if not code or not code.strip():
            raise ValidationError("Transaction type code is required")
        if statement_type not in {t.value for t in AccountType}:
            raise ValidationError(f"Invalid statement type '{statement_type}'")
        if flow_type not in FLOW_TYPES:
            raise ValidationError(
                f"Invalid flow type '{flow_type}'. Must be one of: {', '.join(FLOW_TYPES)}"
            )
        if is_customer is not None and is_customer not in CUSTOMER_FLAGS:
            raise ValidationError(
                f"Invalid customer flag '{is_customer}'. Must be one of: "
                f"{', '.join(CUSTOMER_FLAGS)}"
            )
        if self.db.get_transaction_type_by_code(code.strip()) is not None:
            raise ConflictError(duplicate_code("Transaction type", code.strip()))

        return self.db.create_transaction_type(
            code=code.strip(),
            statement_type=statement_type,
            flow_type=flow_type,
            asset_type=asset_type,
            is_customer=is_customer,
            name=name,
        )

    def list_transaction_types(self) -> list[InternalTransactionType]:
        """List transaction types in configuration order."""
        return self.db.list_transaction_types()

    def add_ledger_operation_type(
        self,
        code: str,
        basis_trx_type: str,
        included_words: Optional[str] = None,
        excluded_words: Optional[str] = None,
        name: Optional[str] = None,
    ) -> int:
        """Add a ledger operation classification rule.

        Rules are evaluated in the order they were added.

        Raises:
            ValidationError: If code or basis type is missing
            ConflictError: If the code already exists
        """
        if not code or not code.strip():
            raise ValidationError("Ledger operation code is required")
        if not basis_trx_type or not basis_trx_type.strip():
            raise ValidationError("Basis transaction type is required")
        if any(op.code == code.strip() for op in self.db.list_ledger_operation_types()):
            raise ConflictError(duplicate_code("Ledger operation type", code.strip()))

        return self.db.create_ledger_operation_type(
            code=code.strip(),
            basis_trx_type=basis_trx_type.strip(),
            included_words=included_words,
            excluded_words=excluded_words,
            name=name,
        )

    def list_ledger_operation_types(self) -> list[LedgerOperationType]:
        """List ledger operation types in configuration order."""
        return self.db.list_ledger_operation_types()

    def add_customer(
        self,
        customer_ref: str,
        registration_number: Optional[str] = None,
        national_id: Optional[str] = None,
        org_name: Optional[str] = None,
        ind_business_name: Optional[str] = None,
        account_number: Optional[str] = None,
    ) -> int:
        """Add a customer record.

        Raises:
            ValidationError: If the customer reference is missing
        """
        if not customer_ref or not customer_ref.strip():
            raise ValidationError("Customer reference is required")
        return self.db.create_customer(
            customer_ref=customer_ref.strip(),
            registration_number=registration_number,
            national_id=national_id,
            org_name=org_name,
            ind_business_name=ind_business_name,
            account_number=account_number,
        )

    def list_customers(self) -> list[Customer]:
        """List customers."""
        return self.db.list_customers()
