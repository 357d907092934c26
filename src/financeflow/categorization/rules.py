import re
from typing import Dict, List, Optional

from financeflow.categorization.base import CategorizationRule
from financeflow.domain.enums import TransactionType
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)


class KeywordRule(CategorizationRule):
    """
    Rule that matches keywords in transaction descriptions.


    Features:
    - Case-insensitive substring matching
    - Can match multiple keywords per category
    - Categories are tried in insertion order, first match wins
    - Can be transaction-type specific (expense vs income)

    Example:
        ```
        # Match "ZOMATO" or "SWIGGY" -> "Food & Dining"
        rule = KeywordRule({
            "Food & Dining": ["zomato", "swiggy"]
        })
        ```
    """

    def __init__(
            self,
            keyword_map: Dict[str, List[str]],
            transaction_type: Optional[TransactionType] = None
        ):
        """
        Initialize keyword rule

        Args:
            keyword_map: Dict mapping categories to list of keywords.
                Example: `{"Transportation": ["uber", "ola", "metro"]}`
            transaction_type: Optional filter for a single transaction type
        """
        super().__init__()
        self.keyword_map = keyword_map
        self.transaction_type = transaction_type

        # Pre-process keywords to lowercase for case-insensitive matching
        self._normalized_map: Dict[str, List[str]] = {}
        for category, keywords in keyword_map.items():
            self._normalized_map[category] = [kw.lower() for kw in keywords if kw]

    def _find(
        self,
        description: str,
        transaction_type: Optional[TransactionType]
    ) -> Optional[str]:
        if self.transaction_type and transaction_type != self.transaction_type:
            return None

        description_lower = (description or "").lower()

        for category, keywords in self._normalized_map.items():
            for keyword in keywords:
                if keyword in description_lower:
                    return category

        return None

    def _matches(self, description, transaction_type=None) -> bool:
        """Check if any keyword matches the description"""
        return self._find(description, transaction_type) is not None

    def _get_category(self, description, transaction_type=None) -> str:
        """Return the category for the matched keyword."""
        category = self._find(description, transaction_type)
        if category is None:
            raise RuntimeError("_get_category called but no match found")
        return category

    def __repr__(self):
        num_categories = len(self.keyword_map)
        type_filter = f", type={self.transaction_type.value}" if self.transaction_type else ""
        return f"KeywordRule({num_categories} categories{type_filter})"


class RegexRule(CategorizationRule):
    """
    Rule that matches regex patterns in descriptions.

    More powerful than KeywordRule - can match complex patterns.

    Example:
        # Match Swiggy and Swiggy Instamart UPI handles
        rule = RegexRule({
            "Food & Dining": [r"^UPI-SWIGGY", r"swiggy\\.in"]
        })
    """

    def __init__(
        self,
        pattern_map: Dict[str, List[str]],
        transaction_type: Optional[TransactionType] = None
    ):
        """
        Initialize regex rule.

        Args:
            pattern_map: Dict mapping categories to regex patterns
            transaction_type: Optional filter for a single transaction type

        Raises:
            re.error: If a pattern does not compile
        """
        super().__init__()
        self.pattern_map = pattern_map
        self.transaction_type = transaction_type

        self._compiled_patterns: Dict[str, List[re.Pattern]] = {}
        for category, patterns in pattern_map.items():
            self._compiled_patterns[category] = [
                re.compile(pattern, re.IGNORECASE) for pattern in patterns
            ]

    def _find(
        self,
        description: str,
        transaction_type: Optional[TransactionType]
    ) -> Optional[str]:
        if self.transaction_type and transaction_type != self.transaction_type:
            return None

        for category, patterns in self._compiled_patterns.items():
            for pattern in patterns:
                if pattern.search(description or ""):
                    return category

        return None

    def _matches(self, description, transaction_type=None) -> bool:
        """Check if any pattern matches the description"""
        return self._find(description, transaction_type) is not None

    def _get_category(self, description, transaction_type=None) -> str:
        """Return the category for the matched pattern"""
        category = self._find(description, transaction_type)
        if category is None:
            raise RuntimeError("_get_category called but no match found")
        return category

    def __repr__(self) -> str:
        num_categories = len(self.pattern_map)
        type_filter = f", type={self.transaction_type.value}" if self.transaction_type else ""
        return f"RegexRule({num_categories} categories{type_filter})"


class UserDefinedRule(CategorizationRule):
    """
    Rule built from a list of rule definitions in config.

    Used both for the user's own categorization_rules.json (highest
    priority) and for the bundled defaults/rules.json. Definitions are
    tried in the order they are listed.

    Config format:
        {
            "rules": [
                {
                    "category": "Food & Dining",
                    "patterns": ["zomato", "swiggy"],
                    "type": "keyword"
                },
                {
                    "category": "Refunds",
                    "patterns": ["^REV-.*AMAZON"],
                    "type": "regex",
                    "transaction_type": "income"  // optional
                }
            ]
        }
    """
    def __init__(
        self,
        rules_config: List[Dict]
    ):
        """
        Initialize with rule definitions from config.

        Args:
            rules_config: List of rule definitions from JSON config
        """
        super().__init__()
        self.rules = rules_config

        self._rules: List[CategorizationRule] = []

        for rule_def in self.rules:
            category = rule_def["category"]
            patterns = rule_def["patterns"]
            rule_type = rule_def.get("type", "keyword")

            txn_type = None
            if "transaction_type" in rule_def:
                txn_type = TransactionType(str(rule_def["transaction_type"]).lower())

            if rule_type == "keyword":
                self._rules.append(KeywordRule({category: patterns}, txn_type))
            elif rule_type == "regex":
                self._rules.append(RegexRule({category: patterns}, txn_type))
            else:
                logger.warning(
                    "Ignoring rule for %r with unknown type %r", category, rule_type
                )

    def _first_match(
        self,
        description: str,
        transaction_type: Optional[TransactionType]
    ) -> Optional[CategorizationRule]:
        for rule in self._rules:
            if rule._matches(description, transaction_type):
                return rule
        return None

    def _matches(self, description, transaction_type=None) -> bool:
        """Check if any configured rule matched."""
        return self._first_match(description, transaction_type) is not None

    def _get_category(self, description, transaction_type=None) -> str:
        "Get category from the first matching rule"
        rule = self._first_match(description, transaction_type)
        if rule is None:
            raise RuntimeError("_get_category called but no match found")
        return rule._get_category(description, transaction_type)


    def __repr__(self) -> str:
        num_rules = len(self.rules)
        return f"UserDefinedRule({num_rules} rules)"

class DefaultRule(CategorizationRule):
    """
    Fallback rule that always matches.

    Should be the last rule in the chain.
    Returns the defined default category for every description.
    """

    def __init__(self, default_category = 'Other'):
        """
        Initialize the default rule.

        Args:
            default_category: The default category to return
        """
        super().__init__()
        self.default_category = default_category

    def _matches(self, description, transaction_type=None) -> bool:
        """Always matches"""
        return True

    def _get_category(self, description, transaction_type=None) -> str:
        """Only returns the default category."""
        return self.default_category

    def __repr__(self) -> str:
        return f"DefaultRule('{self.default_category}')"
