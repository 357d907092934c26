from decimal import Decimal
from typing import Any, Dict, Iterable, List, Tuple, TypeVar

T = TypeVar("T")

# Amounts closer than this are the same amount
AMOUNT_TOLERANCE = Decimal("0.01")

# Amounts with more integer digits than this are garbage, not money
MAX_AMOUNT_DIGITS = 15


def _as_decimal(value: Any) -> Decimal:
    try:
        amount = Decimal(str(value))
    except (ArithmeticError, ValueError):
        return Decimal("0")
    if not amount.is_finite() or amount.adjusted() >= MAX_AMOUNT_DIGITS:
        return Decimal("0")
    return amount


def is_duplicate(a: Any, b: Any, tolerance: Decimal = AMOUNT_TOLERANCE) -> bool:
    """
    Two records are duplicates iff they share date and description and
    their amounts differ by less than `tolerance`.
    """
    return (
        a.date == b.date
        and a.description == b.description
        and abs(_as_decimal(a.amount) - _as_decimal(b.amount)) < tolerance
    )


def deduplicate(
    transactions: Iterable[T],
    tolerance: Decimal = AMOUNT_TOLERANCE,
) -> List[T]:
    """
    Drop duplicates from a batch, keeping the first occurrence.

    Works with any record exposing `date`, `description` and `amount`
    (ParsedTransaction and Transaction both do). Order of the surviving
    records is the input order. Each record is only compared against
    records already kept.

    Args:
        transactions: Ordered batch
        tolerance: Amount difference below which amounts are considered equal

    Returns:
        New list without duplicates
    """
    kept: List[T] = []
    seen: Dict[Tuple[Any, Any], List[Decimal]] = {}

    for txn in transactions:
        key = (txn.date, txn.description)
        amount = _as_decimal(txn.amount)
        amounts = seen.setdefault(key, [])

        if any(abs(amount - other) < tolerance for other in amounts):
            continue

        amounts.append(amount)
        kept.append(txn)

    return kept
