import json
from dataclasses import replace
from typing import Dict, Any, List, Optional

from financeflow.categorization.base import CategorizationRule
from financeflow.categorization.rules import UserDefinedRule, DefaultRule
from financeflow.categorization.categories import OTHER
from financeflow.config.settings import ConfigLoader, PACKAGE_CONFIG_DIR
from financeflow.domain.enums import TransactionType
from financeflow.domain.models import Transaction
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

class CategorizationEngine:
    """
    Main engine for categorizing transactions.

    Builds a chain of rules in priority order:
    1. User-defined rules (from config)
    2. Built-in keyword rules (Food & Dining -> ... -> Transfers)
    3. Default ("Other")

    Usage:
        # Production - loads from ConfigLoader
        engine = CategorizationEngine()

        # Testing - inject custom config
        test_config = {"rules": [...]}
        engine = CategorizationEngine(config=test_config)

        # Categorize descriptions and stored transactions
        category = engine.categorize("UPI-ZOMATO ORDER 4521")
        categorized = engine.categorize_many(transactions)
    """

    def __init__(
        self,
        config: Optional[Dict[str, Any]] = None,
        use_defaults: bool = True,
        builtin_config: Optional[Dict[str, Any]] = None,
    ):
        """
        Initialize categorization engine.

        Args:
            config: Optional user rules config. If None, loads from ConfigLoader.
                Useful for testing with custom configs.
            use_defaults: Whether to include built-in default rules
            builtin_config: Optional replacement for the bundled keyword table
        """
        self.use_defaults = use_defaults
        self._rule_chain: Optional[CategorizationRule] = None

        # Build the rule chain
        self._build_rule_chain(config, builtin_config)


    def _load_user_rules_config(
        self,
        config: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Load user rules configuration.

        Args:
            config: Optional config dict. If None, loads from the ConfigLoader.

        Returns:
            Config dictionary with rules
        """
        if config is not None:
            return config

        try:
            return ConfigLoader.load_config('categorization_rules.json')
        except FileNotFoundError:
            # User hasn't created custom rules yet - that's fine.
            return {"rules": []}

    def _load_builtin_rules_config(self) -> Dict[str, Any]:
        """
        Load built-in default rules.

        Returns:
            Config dictionary with built-in rules
        """
        # Built-in rules are always in the package config/defaults folder
        builtin_path = PACKAGE_CONFIG_DIR / "rules.json"

        if not builtin_path.exists():
            logger.warning("Built-in rules not found at %s", builtin_path)
            return {"rules": []}

        try:
            with open(builtin_path) as f:
                return json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Could not load built-in rules: %s", e)
            return {"rules": []}

    def _build_rule_chain(
        self,
        user_config: Optional[Dict[str, Any]] = None,
        builtin_config: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Build the chain of responsibility for categorization rules.

        Priority order:
        1. User-defined rules (highest priority)
        2. Built-in default rules
        3. Default fallback (always matches)
        """
        rules: List[CategorizationRule] = []

        user_rules_config = self._load_user_rules_config(user_config)
        user_rules = user_rules_config.get("rules", [])
        if user_rules:
            rules.append(UserDefinedRule(user_rules))

        if self.use_defaults:
            if builtin_config is None:
                builtin_config = self._load_builtin_rules_config()
            builtin_rules = builtin_config.get("rules", [])
            if builtin_rules:
                rules.append(UserDefinedRule(builtin_rules))

        rules.append(DefaultRule(OTHER))

        self._rule_chain = rules[0]
        for i in range(len(rules) - 1):
            rules[i].set_next(rules[i+1])

    def categorize(
        self,
        description: Optional[str],
        transaction_type: Optional[TransactionType] = None,
    ) -> str:
        """
        Categorize a single description.

        Always returns a category; anything that matches no rule
        (including an empty description) is "Other".

        Args:
            description: Free-text transaction description
            transaction_type: Optional type, used by type-restricted rules

        Returns:
            Category name

        Example:
            ```
            >>> engine = CategorizationEngine()
            >>> engine.categorize("UPI-ZOMATO ORDER Rs. 450.00 Dr")
            'Food & Dining'
            ```
        """
        if not self._rule_chain:
            raise RuntimeError("Rule chain not initialized")

        category = self._rule_chain.categorize(description or "", transaction_type)

        assert category is not None, "Rule chain should never return None"

        return category

    def categorize_many(
        self,
        transactions: List[Transaction],
        overwrite: bool = False
    ) -> List[Transaction]:
        """
        Categorize multiple stored transactions.

        Args:
            transactions: List of transactions to categorize
            overwrite: If True, re-categorize even if already categorized.
                      If False, only categorize uncategorized ("Other" or empty) ones.

        Returns:
            List of transactions with categories assigned. Inputs are not mutated.
        """
        categorized = []

        for txn in transactions:
            if not overwrite and txn.category and txn.category != OTHER:
                categorized.append(txn)
                continue

            category = self.categorize(txn.description, txn.type)
            categorized.append(replace(txn, category=category))

        return categorized

    def get_rule_chain_info(self) -> str:
        """
        Get information about the current rule chain.

        Useful for debugging and understanding which rules are active.

        Returns:
            String description of the current rule chain.
        """
        if not self._rule_chain:
            return "No rules loaded"

        rules = []
        current = self._rule_chain
        priority = 1

        while current:
            rules.append(f"{priority}. {current}")
            current = current._next_rule
            priority +=1

        return "\n".join(rules)


    def __repr__(self) -> str:
        num_rules = 0
        current = self._rule_chain
        while current:
            num_rules+=1
            current = current._next_rule

        return f"CategorizationEngine({num_rules} rules in chain)"
