"""Statement domain service."""

from datetime import date
from typing import Optional

from stmtrecon.database.base import Database
from stmtrecon.domain.entities import (
    AccountType,
    EntityType,
    Statement as StatementEntity,
    StatusChange,
)
from stmtrecon.domain.errors import NotFoundError, ValidationError, statement_not_found


class StatementService:
    """Service for registering and inspecting statements."""

    def __init__(self, db: Database):
        """Initialize statement service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_statement(
        self,
        account_type: str,
        bank_code: str,
        from_date: Optional[date] = None,
        to_date: Optional[date] = None,
        file_path: Optional[str] = None,
    ) -> str:
        """Register a new statement.

        Args:
            account_type: 'bank' or 'secu'
            bank_code: BIC of the bank that issued the statement
            from_date: First day covered by the statement
            to_date: Last day covered by the statement
            file_path: Path to the statement file

        Returns:
            Statement ID

        Raises:
            ValidationError: If account type, bank code or period is invalid
        """
        try:
            account_type = AccountType(account_type)
        except ValueError:
            allowed = ", ".join(t.value for t in AccountType)
            raise ValidationError(
                f"Invalid account type '{account_type}'. Must be one of: {allowed}"
            )

        if not bank_code or not bank_code.strip():
            raise ValidationError("Bank code is required")

        if from_date is not None and to_date is not None and from_date > to_date:
            raise ValidationError(
                f"Statement period starts after it ends ({from_date} > {to_date})"
            )

        return self.db.create_statement(
            account_type=account_type,
            bank_code=bank_code.strip(),
            from_date=from_date,
            to_date=to_date,
            file_path=file_path,
        )

    def get_statement(self, statement_id: str) -> Optional[StatementEntity]:
        """Get statement by ID.

        Args:
            statement_id: Statement ID

        Returns:
            Statement entity or None if not found
        """
        return self.db.get_statement(statement_id)

    def list_statements(self, account_type: Optional[str] = None) -> list[StatementEntity]:
        """List statements, optionally filtered by account type."""
        if account_type is not None:
            return self.db.list_statements(AccountType(account_type))
        return self.db.list_statements()

    def get_status_history(self, statement_id: str) -> list[StatusChange]:
        """Get the status audit trail of a statement, oldest first.

        Raises:
            NotFoundError: If the statement does not exist
        """
        if self.db.get_statement(statement_id) is None:
            raise NotFoundError(statement_not_found(statement_id))
        return self.db.list_status_changes(EntityType.STATEMENT.value, statement_id)
