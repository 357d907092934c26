"""
Post-processing for parsed statement transactions.

    >>> from financeflow.normalization import StatementNormalizer
    >>> StatementNormalizer().normalize(records)
"""
from financeflow.normalization.deduplication import deduplicate, is_duplicate
from financeflow.normalization.normalizer import StatementNormalizer, to_transactions
from financeflow.normalization.payee import extract_payee

__all__ = [
    "StatementNormalizer",
    "deduplicate",
    "extract_payee",
    "is_duplicate",
    "to_transactions",
]
