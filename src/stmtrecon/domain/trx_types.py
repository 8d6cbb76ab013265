"""Transaction type resolution and ledger operation classification."""

import logging
from typing import Optional

from stmtrecon.database.base import Database
from stmtrecon.domain.entities import InternalTransactionType, LedgerOperationType

logger = logging.getLogger(__name__)

FLOW_IN = "in"
FLOW_OUT = "out"
CUSTOMER_YES = "yes"


def parse_word_list(words: Optional[str]) -> list[str]:
    """Split a comma-separated word list into trimmed, lowercased words."""
    if not words:
        return []
    return [word.strip().lower() for word in words.split(",") if word.strip()]


def rule_matches(rule: LedgerOperationType, free_text: str) -> bool:
    """Return True if free text satisfies a ledger operation rule.

    The text must contain at least one included word (any text matches when
    the list is empty) and none of the excluded words.
    """
    text = free_text.lower()
    included = parse_word_list(rule.included_words)
    excluded = parse_word_list(rule.excluded_words)
    if included and not any(word in text for word in included):
        return False
    return not any(word in text for word in excluded)


class TransactionTypeResolver:
    """Looks up configured transaction types and classifies descriptions."""

    def __init__(self, db: Database):
        """Initialize transaction type resolver.

        Args:
            db: Database instance
        """
        self.db = db
        self._rules: Optional[list[LedgerOperationType]] = None

    def resolve(
        self,
        statement_type: str,
        flow_type: str,
        asset_type: Optional[str],
        customer_flag: Optional[str] = None,
    ) -> Optional[InternalTransactionType]:
        """Find the transaction type configured for a lookup tuple.

        Args:
            statement_type: 'bank' or 'secu'
            flow_type: 'in' or 'out'
            asset_type: Asset type code (e.g. SCR01)
            customer_flag: Required customer flag; not filtered on when None

        Returns:
            First matching type in configuration order, or None
        """
        types = self.db.find_transaction_types(
            statement_type, flow_type, asset_type, customer_flag
        )
        if not types:
            logger.debug(
                "No transaction type for (%s, %s, %s, %s)",
                statement_type,
                flow_type,
                asset_type,
                customer_flag,
            )
            return None
        return types[0]

    def resolve_by_code(self, code: str) -> Optional[InternalTransactionType]:
        """Find a transaction type by its code."""
        return self.db.get_transaction_type_by_code(code)

    def classify(self, basis_code: str, free_text: Optional[str]) -> Optional[str]:
        """Classify free text against the ledger operation rules of a basis type.

        Args:
            basis_code: Transaction type code the rules are attached to
            free_text: Description to classify

        Returns:
            Code of the first matching rule in configuration order, or None
        """
        if free_text is None:
            return None
        for rule in self._ledger_rules():
            if rule.basis_trx_type == basis_code and rule_matches(rule, free_text):
                return rule.code
        return None

    def reload(self) -> None:
        """Drop cached ledger operation rules so the next call reads them again."""
        self._rules = None

    def _ledger_rules(self) -> list[LedgerOperationType]:
        if self._rules is None:
            self._rules = self.db.list_ledger_operation_types()
        return self._rules
