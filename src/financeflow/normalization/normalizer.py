import math
import re
from dataclasses import replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, List, Mapping, Optional

from financeflow.categorization import CategorizationEngine
from financeflow.domain.enums import EntryDirection
from financeflow.domain.models import ParsedTransaction, Transaction, UNKNOWN_DESCRIPTION
from financeflow.normalization.deduplication import MAX_AMOUNT_DIGITS, deduplicate
from financeflow.normalization.payee import extract_payee
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIDENCE = 0.5

# Values of "type" that mean money went out
DEBIT_MARKERS = {"debit", "dr", "expense", "subscription", "withdrawal"}

# Currency markers and separators allowed around a numeric amount string
_AMOUNT_NOISE_RE = re.compile(r"(Rs\.?|INR|₹|\$|,|\s|\(|\))", re.IGNORECASE)


def coerce_amount(value: Any) -> Decimal:
    """Signed Decimal from a number or numeric string; 0 when unparseable."""
    if value is None or isinstance(value, bool):
        return Decimal("0")

    try:
        if isinstance(value, (int, float, Decimal)):
            raw = str(value)
        else:
            raw = _AMOUNT_NOISE_RE.sub("", str(value))
        amount = Decimal(raw)
    except (ArithmeticError, ValueError):
        return Decimal("0")

    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return Decimal("0")
    return amount


def coerce_confidence(value: Any) -> float:
    """Float clamped to [0, 1]; missing or non-numeric becomes 0.5."""
    if value is None or isinstance(value, bool):
        return DEFAULT_CONFIDENCE
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if math.isnan(confidence):
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def coerce_direction(value: Any, signed_amount: Decimal) -> EntryDirection:
    """
    Map the loosely-typed "type" field onto debit/credit.

    Without a type, a negative amount is a debit and anything else a credit.
    """
    if isinstance(value, EntryDirection):
        return value
    if value is None or str(value).strip() == "":
        return EntryDirection.DEBIT if signed_amount < 0 else EntryDirection.CREDIT
    if str(value).strip().lower() in DEBIT_MARKERS:
        return EntryDirection.DEBIT
    return EntryDirection.CREDIT


def _coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _coerce_date(value: Any) -> str:
    if isinstance(value, (date, datetime)):
        return value.isoformat()[:10]
    return _coerce_text(value)


class StatementNormalizer:
    """
    Turns loosely-typed parsed records into clean ParsedTransactions.

    Pipeline:
    1. Coerce fields to safe values (never raises)
    2. Back-fill payee and category when missing
    3. Drop duplicates, keeping the first occurrence

    Usage:
        normalizer = StatementNormalizer()
        clean = normalizer.normalize(llm_output["transactions"])
    """

    def __init__(self, categorization_engine: Optional[CategorizationEngine] = None):
        self._categorization_engine = categorization_engine

    @property
    def categorization_engine(self) -> CategorizationEngine:
        """Lazy-load categorization engine"""
        if self._categorization_engine is None:
            self._categorization_engine = CategorizationEngine()
        return self._categorization_engine

    def coerce(self, record: Mapping[str, Any]) -> ParsedTransaction:
        """
        Build a ParsedTransaction from one raw record.

        Missing or malformed fields fall back to defaults: amount 0,
        description "Unknown Transaction", confidence 0.5 (clamped to [0, 1]).
        """
        signed_amount = coerce_amount(record.get("amount"))
        payee = _coerce_text(record.get("payee")) or None
        description = _coerce_text(record.get("description")) or UNKNOWN_DESCRIPTION
        direction = coerce_direction(record.get("type"), signed_amount)

        category = _coerce_text(record.get("category")) or None
        if category is None:
            category = self.categorization_engine.categorize(
                description, direction.to_transaction_type()
            )

        return ParsedTransaction(
            date=_coerce_date(record.get("date")),
            description=description,
            amount=abs(signed_amount),
            type=direction,
            confidence=coerce_confidence(record.get("confidence")),
            payee=payee or extract_payee(description),
            category=category,
        )

    def normalize(self, records: Iterable[Any]) -> List[ParsedTransaction]:
        """
        Normalize a parsed batch.

        Entries that are not mappings (None, strings, ...) are skipped.

        Args:
            records: Ordered raw records with date/description/amount/type/
                payee/category/confidence keys

        Returns:
            Normalized, de-duplicated transactions in input order
        """
        coerced: List[ParsedTransaction] = []

        for index, record in enumerate(records or []):
            if isinstance(record, ParsedTransaction):
                coerced.append(self._backfill(record))
                continue
            if not isinstance(record, Mapping):
                logger.warning("Skipping record %d: expected an object, got %s",
                               index, type(record).__name__)
                continue
            coerced.append(self.coerce(record))

        unique = deduplicate(coerced)
        if len(unique) != len(coerced):
            logger.info("Removed %d duplicate transactions", len(coerced) - len(unique))

        return unique

    def _backfill(self, txn: ParsedTransaction) -> ParsedTransaction:
        description = txn.description.strip() or UNKNOWN_DESCRIPTION
        return replace(
            txn,
            description=description,
            amount=abs(coerce_amount(txn.amount)),
            confidence=coerce_confidence(txn.confidence),
            payee=txn.payee or extract_payee(description),
            category=txn.category or self.categorization_engine.categorize(
                description, txn.type.to_transaction_type()
            ),
        )


def to_transactions(parsed: Iterable[ParsedTransaction], user_id: str) -> List[Transaction]:
    """
    Reconcile normalized records into Transactions owned by `user_id`.

    Raises:
        ValueError: If a record's date is not a valid ISO 8601 day
    """
    return [txn.to_transaction(user_id) for txn in parsed]
