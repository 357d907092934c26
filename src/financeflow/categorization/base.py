from abc import ABC, abstractmethod
from typing import Optional

from financeflow.domain.enums import TransactionType

class CategorizationRule(ABC):
    """
    Abstract base class for all categorization rules.

    Implements Chain of Responsibility:
    - Each rule tries to categorize a description
    - If it can't it passes to the next rule
    - Rules are tried in priority order

    Usage:
        Create chain: specific -> general -> default
        ```
        user_rule = UserDefinedRule(...)
        keyword_rule = KeywordRule(...)
        default_rule = DefaultRule()

        user_rule.set_next(keyword_rule).set_next(default_rule)

        category = user_rule.categorize("UPI-ZOMATO ORDER")
        ```
    """

    def __init__(self):
        self._next_rule: Optional['CategorizationRule'] = None


    def set_next(self, rule: 'CategorizationRule') -> 'CategorizationRule':
        """
        Set the next rule in the chain.

        Args:
            rule: The next rule to try if this one doesn't match

        Returns:
            The rule that was set (for chaining)

        Example:
            `rule1.set_next(rule2).set_next(rule3)`
        """
        self._next_rule = rule
        return rule

    @abstractmethod
    def _matches(
        self,
        description: str,
        transaction_type: Optional[TransactionType] = None
    ) -> bool:
        """
        Check if this rule matches the description.

        Subclasses implement their specific matching logic here.

        Args:
            description: Free-text transaction description
            transaction_type: Optional type of the transaction being categorized

        Returns:
            True if this rule can categorize this description
        """
        pass


    @abstractmethod
    def _get_category(
        self,
        description: str,
        transaction_type: Optional[TransactionType] = None
    ) -> str:
        """
        Get the category for the description.

        Called only if _matches() returns True.

        Returns:
            Category name
        """
        pass


    def categorize(
        self,
        description: str,
        transaction_type: Optional[TransactionType] = None
    ) -> Optional[str]:
        """
        Attempt to categorize a description.

        This is the main method called by clients. It:
        1. Checks if a rule matches
        2. If yes, returns the category
        3. If no, tries the next rule in the chain

        Args:
            description: Free-text transaction description
            transaction_type: Optional type used by type-restricted rules

        Returns:
            Category name, or None if no rules matched
        """
        if self._matches(description, transaction_type):
            return self._get_category(description, transaction_type)

        if self._next_rule:
            return self._next_rule.categorize(description, transaction_type)

        return None

    def __repr__(self):
        return f"{self.__class__.__name__}()"
