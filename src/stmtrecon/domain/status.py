"""Statement status state machine."""

import logging
from typing import Optional

from stmtrecon.database.base import Database
from stmtrecon.domain.entities import EntityType, StatementStatus
from stmtrecon.domain.errors import (
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
    invalid_transition,
    statement_not_found,
)

logger = logging.getLogger(__name__)

S = StatementStatus

# consolidated and error end the automatic flow; their outgoing edges are
# explicit re-runs of a stage
ALLOWED_TRANSITIONS: dict[StatementStatus, frozenset[StatementStatus]] = {
    S.NEW: frozenset({S.IMPORTING, S.ERROR}),
    S.IMPORTING: frozenset({S.IMPORTED, S.ERROR}),
    S.IMPORTED: frozenset({S.CONSOLIDATING, S.IMPORTING, S.ERROR}),
    S.CONSOLIDATING: frozenset({S.CONSOLIDATED, S.ERROR}),
    S.CONSOLIDATED: frozenset({S.IMPORTING, S.CONSOLIDATING}),
    S.ERROR: frozenset({S.IMPORTING, S.CONSOLIDATING}),
}

FORCED_NOTE_PREFIX = "forced: "


def can_transition(from_status: StatementStatus, to_status: StatementStatus) -> bool:
    """Return True if the state machine allows moving between two states."""
    return StatementStatus(to_status) in ALLOWED_TRANSITIONS[StatementStatus(from_status)]


class StatusManager:
    """Guards and records statement status changes."""

    def __init__(self, db: Database):
        """Initialize status manager.

        Args:
            db: Database instance
        """
        self.db = db

    def transition(
        self,
        entity_type: EntityType,
        entity_id: str,
        to_status: StatementStatus,
        actor: str,
        note: Optional[str] = None,
        from_status: Optional[StatementStatus] = None,
    ) -> None:
        """Move an entity to a new status.

        Args:
            entity_type: Kind of entity (only statements carry a status machine)
            entity_id: Entity ID
            to_status: Target status
            actor: Who requested the change
            note: Optional free-text note stored in the audit trail
            from_status: Expected current status; checked when given

        Raises:
            NotFoundError: If the entity does not exist
            InvalidTransitionError: If the current status disallows the change
                or differs from from_status
        """
        self._check_entity_type(entity_type)
        to_status = StatementStatus(to_status)
        current = self._current_status(entity_id)

        if from_status is not None and current != StatementStatus(from_status):
            raise InvalidTransitionError(
                f"{invalid_transition(entity_id, current.value, to_status.value)}: "
                f"expected current status '{StatementStatus(from_status).value}'"
            )
        if not can_transition(current, to_status):
            raise InvalidTransitionError(
                invalid_transition(entity_id, current.value, to_status.value)
            )

        self.db.set_statement_status(entity_id, to_status)
        self.db.add_status_change(
            EntityType.STATEMENT.value, entity_id, current.value, to_status.value, actor, note
        )
        logger.info("Statement %s: %s -> %s", entity_id, current.value, to_status.value)

    def force_status(
        self,
        entity_type: EntityType,
        entity_id: str,
        to_status: StatementStatus,
        actor: str,
        note: Optional[str] = None,
    ) -> None:
        """Write a status without checking the state machine.

        Used as the fallback when moving to 'error' is not a legal
        transition. The audit note is prefixed with 'forced: '.
        """
        self._check_entity_type(entity_type)
        to_status = StatementStatus(to_status)
        current = self._current_status(entity_id)
        self.db.set_statement_status(entity_id, to_status)
        self.db.add_status_change(
            EntityType.STATEMENT.value,
            entity_id,
            current.value,
            to_status.value,
            actor,
            FORCED_NOTE_PREFIX + (note or ""),
        )
        logger.warning("Statement %s: forced %s -> %s", entity_id, current.value, to_status.value)

    def _current_status(self, statement_id: str) -> StatementStatus:
        statement = self.db.get_statement(statement_id)
        if statement is None:
            raise NotFoundError(statement_not_found(statement_id))
        return statement.status

    @staticmethod
    def _check_entity_type(entity_type: EntityType) -> None:
        if entity_type != EntityType.STATEMENT:
            raise ValidationError(f"Entity type '{entity_type}' has no status machine")
