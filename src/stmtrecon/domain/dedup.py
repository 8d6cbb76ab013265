"""Deduplication of statement rows against previously imported statements."""

import logging
from typing import Iterable, Optional, Sequence

from stmtrecon.domain.entities import AccountType, DeduplicationResult
from stmtrecon.domain.formats import AccountPolicy, get_policy

logger = logging.getLogger(__name__)

KEY_SEPARATOR = "|"


class RowKeyExtractor:
    """Computes the deduplication key of one row for an account type.

    The primary key is the trimmed provider reference (bank) or reference
    (securities). When it is missing, empty or beyond the end of a short row,
    a composite key of the policy's key fields is used instead. Every
    composite segment is followed by the separator, including the last one.
    """

    def __init__(self, account_type: AccountType):
        self.policy: AccountPolicy = get_policy(account_type)

    def key(self, row: Sequence[Optional[str]]) -> str:
        """Return the deduplication key for a row."""
        primary = self._value(row, self.policy.primary_key_index)
        if primary:
            return primary
        return self.composite_key(row)

    def composite_key(self, row: Sequence[Optional[str]]) -> str:
        """Return the composite key for a row."""
        return "".join(
            self._value(row, index) + KEY_SEPARATOR
            for index in self.policy.composite_key_indices
        )

    @staticmethod
    def _value(row: Sequence[Optional[str]], index: int) -> str:
        if index >= len(row) or row[index] is None:
            return ""
        return row[index].strip()


class DeduplicationEngine:
    """Partitions candidate rows into new rows and duplicates of existing ones."""

    def __init__(self, account_type: AccountType):
        self.account_type = AccountType(account_type)
        self.extractor = RowKeyExtractor(self.account_type)

    def existing_keys(self, rows: Iterable[Sequence[Optional[str]]]) -> set[str]:
        """Build the existing-key set from already stored rows."""
        return {self.extractor.key(row) for row in rows}

    def check(
        self, rows: Sequence[Sequence[Optional[str]]], existing_keys: set[str]
    ) -> DeduplicationResult:
        """Drop rows whose key is already present in the existing-key set.

        Rows are only compared against existing keys, never against each
        other: a file may legitimately repeat a line (e.g. order fragments).

        Args:
            rows: Candidate rows in file order
            existing_keys: Keys of rows stored for overlapping statements

        Returns:
            DeduplicationResult with surviving rows in input order
        """
        non_duplicates = []
        duplicate_count = 0
        normalized_keys = {key.strip() for key in existing_keys if key is not None}

        for row in rows:
            if self.extractor.key(row) in normalized_keys:
                duplicate_count += 1
            else:
                non_duplicates.append(list(row))

        logger.info(
            "Deduplicated %d %s rows: %d new, %d duplicates",
            len(rows),
            self.account_type.value,
            len(non_duplicates),
            duplicate_count,
        )
        return DeduplicationResult(
            non_duplicate_rows=non_duplicates,
            duplicate_count=duplicate_count,
            total_count=len(rows),
        )
