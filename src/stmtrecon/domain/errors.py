"""Shared domain error messages and error types."""

from typing import Optional


class DomainError(ValueError):
    """Base class for domain-level errors.

    Subclasses provide semantic categories while preserving ValueError
    compatibility for existing error handling.
    """


class ValidationError(DomainError):
    """Invalid input or failed validation in domain logic."""


class NotFoundError(DomainError):
    """Requested domain entity does not exist."""


class ConflictError(DomainError):
    """Domain conflict, such as uniqueness violations."""


class UnrecognisedFormatError(ValidationError):
    """Statement file header does not match any known format."""

    def __init__(self, header_line: Optional[str]):
        self.header_line = header_line
        super().__init__(unrecognised_format(header_line))


class AccountTypeMismatchError(ValidationError):
    """Detected file format belongs to a different account type than declared."""


class InvalidTransitionError(DomainError):
    """Status change not allowed from the entity's current state."""


class PostedRowsError(ConflictError):
    """Statement rows already carry postings, so a re-run would orphan them."""

    def __init__(self, statement_id: str, stage: str, posted: int):
        self.statement_id = statement_id
        self.posted = posted
        super().__init__(posted_rows_block_rerun(statement_id, stage, posted))


class StoreError(DomainError):
    """Relational store failure inside a unit of work."""


class OrphanPostingError(StoreError):
    """Posting was written but its source rows could not be cross-referenced."""

    def __init__(self, posting_id: str, expected: int, updated: int):
        self.posting_id = posting_id
        self.expected = expected
        self.updated = updated
        super().__init__(orphan_posting(posting_id, expected, updated))


def statement_not_found(statement_id: str) -> str:
    """Return message for missing statement."""
    return f"Statement {statement_id} not found"


def unrecognised_format(header_line: Optional[str]) -> str:
    """Return message for a header that matches no format."""
    if not header_line:
        return "Unrecognised statement format: file is empty"
    return f"Unrecognised statement format, header: {header_line}"


def account_type_mismatch(declared: str, detected: str, format_name: str) -> str:
    """Return message when the file does not belong to the declared account type."""
    return (
        f"Statement declared as '{declared}' but file is a {format_name} "
        f"statement of account type '{detected}'"
    )


def invalid_transition(
    entity_id: str, from_status: Optional[str], to_status: str
) -> str:
    """Return message for a disallowed status change."""
    return f"Cannot move {entity_id} from '{from_status}' to '{to_status}'"


def orphan_posting(posting_id: str, expected: int, updated: int) -> str:
    """Return message for a posting whose cross-reference update failed."""
    return (
        f"Orphan posting: posting {posting_id} was created but only {updated} of "
        f"{expected} source rows could be cross-referenced"
    )


def duplicate_code(kind: str, code: str) -> str:
    """Return message for a reference-data code that already exists."""
    return f"{kind} with code '{code}' already exists"


def posted_rows_block_rerun(statement_id: str, stage: str, posted: int) -> str:
    """Return message for a re-run refused because rows are already posted."""
    return (
        f"Cannot {stage} statement {statement_id}: {posted} of its raw and consolidated "
        f"rows are already posted"
    )
