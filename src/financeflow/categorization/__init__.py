"""
Categorization system for FinanceFlow.

Maps free-text transaction descriptions to a category using a chain of
responsibility with configurable keyword and regex rules.

Quick Start:
    >>> from financeflow.categorization import CategorizationEngine
    >>>
    >>> engine = CategorizationEngine()
    >>> engine.categorize("UPI-SWIGGY 8812 Dr")
    'Food & Dining'
"""
from financeflow.categorization.categorizer import CategorizationEngine
from financeflow.categorization.base import CategorizationRule
from financeflow.categorization.rules import (
    KeywordRule,
    RegexRule,
    UserDefinedRule,
    DefaultRule
)
from financeflow.categorization import categories

__all__ = [
    "CategorizationEngine",
    "CategorizationRule",
    "KeywordRule",
    "RegexRule",
    "UserDefinedRule",
    "DefaultRule",
    "categories",
]
