"""Statement processing pipeline: import, consolidation and recognition."""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from typing import Any, Callable, Optional

from stmtrecon.config import Settings
from stmtrecon.database.base import Database
from stmtrecon.domain.consolidation import ConsolidationEngine
from stmtrecon.domain.dedup import DeduplicationEngine
from stmtrecon.domain.entities import EntityType, Statement, StatementStatus
from stmtrecon.domain.errors import (
    AccountTypeMismatchError,
    DomainError,
    NotFoundError,
    PostedRowsError,
    StoreError,
    ValidationError,
    account_type_mismatch,
    statement_not_found,
)
from stmtrecon.domain.formats import raw_row_to_values, values_to_raw_row
from stmtrecon.domain.parser import StatementParser
from stmtrecon.domain.recognition import RecognitionService
from stmtrecon.domain.status import StatusManager
from stmtrecon.utils.date_parser import year_of

logger = logging.getLogger(__name__)

STAGE_IMPORT = "import"
STAGE_CONSOLIDATE = "consolidate"
STAGE_RECOGNIZE = "recognize"
STAGE_PROCESS = "process"

UNKNOWN_ERROR = "Unknown error"


@dataclass
class StageResult:
    """Outcome of one pipeline stage.

    `succeeded` is the failure indicator for callers; stage exceptions are
    never re-raised.
    """

    statement_id: str
    stage: str
    succeeded: bool
    status: Optional[StatementStatus]
    error_message: Optional[str] = None
    details: dict[str, Any] = field(default_factory=dict)


class StatementPipeline:
    """Sequences the processing stages of a statement and drives its status."""

    def __init__(
        self,
        db: Database,
        settings: Optional[Settings] = None,
        parser: Optional[StatementParser] = None,
        status_manager: Optional[StatusManager] = None,
        recognition: Optional[RecognitionService] = None,
    ):
        """Initialize statement pipeline.

        Args:
            db: Database instance
            settings: Pipeline settings (defaults to Settings())
            parser: Statement file parser (defaults to StatementParser())
            status_manager: Status state machine (created when omitted)
            recognition: Recognition service (created when omitted)
        """
        self.db = db
        self.settings = settings or Settings()
        self.parser = parser or StatementParser()
        self.status = status_manager or StatusManager(db)
        self.recognition = recognition or RecognitionService(db, self.settings)

    def import_statement(self, statement_id: str) -> StageResult:
        """Parse, deduplicate and store a statement's raw rows."""
        return self._run_stage(STAGE_IMPORT, statement_id, self._import)

    def consolidate_statement(self, statement_id: str) -> StageResult:
        """Aggregate a statement's raw rows into consolidated rows."""
        return self._run_stage(STAGE_CONSOLIDATE, statement_id, self._consolidate)

    def recognize_statement(self, statement_id: str) -> StageResult:
        """Match and post unposted consolidated rows of the statement's account type."""
        return self._run_stage(STAGE_RECOGNIZE, statement_id, self._recognize)

    def process(self, statement_id: str) -> StageResult:
        """Run import, consolidation and recognition, stopping at the first failure.

        Returns:
            Result of the failing stage, or a combined result whose details
            hold every stage's counts keyed by stage name
        """
        details: dict[str, Any] = {}
        result = None
        for run in (self.import_statement, self.consolidate_statement, self.recognize_statement):
            result = run(statement_id)
            details[result.stage] = result.details
            if not result.succeeded:
                return result
        return StageResult(
            statement_id=statement_id,
            stage=STAGE_PROCESS,
            succeeded=True,
            status=result.status,
            details=details,
        )

    def _run_stage(
        self, stage: str, statement_id: str, work: Callable[[Statement], dict[str, Any]]
    ) -> StageResult:
        logger.info("Starting %s for statement %s", stage, statement_id)
        try:
            with self.db.unit_of_work():
                statement = self.db.get_statement(statement_id)
            if statement is None:
                raise NotFoundError(statement_not_found(statement_id))
            details = work(statement)
        except PostedRowsError as e:
            # Refused before any write; the statement keeps its status
            logger.warning("Refusing %s for statement %s: %s", stage, statement_id, e)
            return self._failure(stage, statement_id, str(e))
        except Exception as e:
            logger.exception("Stage %s failed for statement %s", stage, statement_id)
            return self._failure(stage, statement_id, self._record_error(statement_id, e))

        logger.info("Finished %s for statement %s: %s", stage, statement_id, details)
        return StageResult(
            statement_id=statement_id,
            stage=stage,
            succeeded=True,
            status=self._current_status(statement_id),
            details=details,
        )

    def _failure(self, stage: str, statement_id: str, message: str) -> StageResult:
        return StageResult(
            statement_id=statement_id,
            stage=stage,
            succeeded=False,
            status=self._current_status(statement_id),
            error_message=message,
        )

    def _ensure_unposted(self, statement: Statement, stage: str) -> None:
        """Refuse to rebuild rows that recognition has already posted."""
        with self.db.unit_of_work():
            posted = self.db.count_posted_rows(statement.account_type, statement.id)
        if posted:
            raise PostedRowsError(statement.id, stage, posted)

    def _import(self, statement: Statement) -> dict[str, Any]:
        account_type = statement.account_type
        actor = self.settings.actor

        self._ensure_unposted(statement, STAGE_IMPORT)
        with self.db.unit_of_work():
            self.db.delete_consolidated_rows(account_type, statement.id)
            self.db.delete_raw_rows(account_type, statement.id)
            self.status.transition(
                EntityType.STATEMENT, statement.id, StatementStatus.IMPORTING, actor
            )

        fmt = self.parser.detect(statement.file_path)
        if fmt.account_type != account_type:
            raise AccountTypeMismatchError(
                account_type_mismatch(account_type.value, fmt.account_type.value, fmt.name)
            )
        rows = self.parser.parse(statement.file_path, fmt)

        engine = DeduplicationEngine(account_type)
        with self.db.unit_of_work():
            existing_keys = engine.existing_keys(
                raw_row_to_values(account_type, row)
                for row in self.db.list_overlapping_raw_rows(statement)
            )
            result = engine.check(rows, existing_keys)
            raw_rows = [
                values_to_raw_row(
                    account_type,
                    values,
                    id=str(uuid.uuid4()),
                    statement_id=statement.id,
                    transaction_id=f"{sequence:03d}",
                )
                for sequence, values in enumerate(result.non_duplicate_rows, start=1)
            ]
            inserted = self.db.insert_raw_rows(
                account_type, raw_rows, actor, self.settings.batch_size
            )
            self.db.update_statement_metadata(
                statement.id,
                row_count=inserted,
                duplicate_count=result.duplicate_count,
                processing_timestamp=datetime.now(UTC),
                error_message=None,
            )
            self.status.transition(
                EntityType.STATEMENT,
                statement.id,
                StatementStatus.IMPORTED,
                actor,
                note=f"{fmt.name}: {inserted} rows, {result.duplicate_count} duplicates",
            )

        return {
            "format": fmt.name,
            "rows": result.total_count,
            "imported": inserted,
            "duplicates": result.duplicate_count,
        }

    def _consolidate(self, statement: Statement) -> dict[str, Any]:
        account_type = statement.account_type
        actor = self.settings.actor
        self._ensure_unposted(statement, STAGE_CONSOLIDATE)
        with self.db.unit_of_work():
            self.status.transition(
                EntityType.STATEMENT, statement.id, StatementStatus.CONSOLIDATING, actor
            )

        engine = ConsolidationEngine(account_type)
        with self.db.unit_of_work():
            self.db.delete_consolidated_rows(account_type, statement.id)
            raw_rows = self.db.list_raw_rows(account_type, statement.id)
            rows = engine.consolidate(statement.id, raw_rows, year_of(statement.from_date))
            self.db.insert_consolidated_rows(
                account_type, rows, actor, self.settings.batch_size
            )
            self.db.update_statement_metadata(
                statement.id,
                total_count=len(rows),
                consolidation_timestamp=datetime.now(UTC),
                error_message=None,
            )
            self.status.transition(
                EntityType.STATEMENT,
                statement.id,
                StatementStatus.CONSOLIDATED,
                actor,
                note=f"{len(raw_rows)} raw rows into {len(rows)}",
            )

        return {
            "raw_rows": len(raw_rows),
            "consolidated": len(rows),
        }

    def _recognize(self, statement: Statement) -> dict[str, Any]:
        if statement.status != StatementStatus.CONSOLIDATED:
            raise ValidationError(
                f"Statement {statement.id} must be consolidated before recognition "
                f"(status is '{statement.status.value}')"
            )
        result = self.recognition.recognize(statement)
        return {
            "matched": result.matched,
            "unmatched": result.unmatched,
            "skipped": result.skipped,
            "failed": result.failed,
            "postings": len(result.posting_ids),
        }

    def _record_error(self, statement_id: str, error: Exception) -> str:
        """Move the statement to 'error' and store a truncated message."""
        message = (str(error) or UNKNOWN_ERROR)[: self.settings.error_message_limit]
        try:
            with self.db.unit_of_work():
                exists = self.db.get_statement(statement_id) is not None
        except StoreError:
            logger.exception("Could not record error for statement %s", statement_id)
            return message
        if not exists:
            return message

        actor = self.settings.actor
        try:
            with self.db.unit_of_work():
                self.status.transition(
                    EntityType.STATEMENT, statement_id, StatementStatus.ERROR, actor, note=message
                )
        except DomainError as transition_error:
            logger.warning(
                "Falling back to direct status write for %s: %s", statement_id, transition_error
            )
            try:
                with self.db.unit_of_work():
                    self.status.force_status(
                        EntityType.STATEMENT,
                        statement_id,
                        StatementStatus.ERROR,
                        actor,
                        note=message,
                    )
            except StoreError:
                logger.exception("Could not force error status for statement %s", statement_id)

        try:
            with self.db.unit_of_work():
                self.db.update_statement_metadata(statement_id, error_message=message)
        except StoreError:
            logger.exception("Could not store error message for statement %s", statement_id)
        return message

    def _current_status(self, statement_id: str) -> Optional[StatementStatus]:
        try:
            with self.db.unit_of_work():
                statement = self.db.get_statement(statement_id)
        except StoreError:
            logger.exception("Could not read status of statement %s", statement_id)
            return None
        return statement.status if statement is not None else None
