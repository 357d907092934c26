"""
Recurring payment detection.

Outgoing transactions are grouped by payee, and each group's payment
intervals are checked against monthly, quarterly and yearly rhythms.
Groups whose payee looks like a digital service are reported as
subscriptions, the rest as other recurring payments (rent, EMIs, bills).
"""
import re
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal, ROUND_CEILING
from enum import Enum
from typing import Iterable, List, Optional

import pandas as pd

from financeflow.categorization.categories import BANKING, UTILITIES
from financeflow.domain.enums import TransactionType
from financeflow.domain.models import Transaction
from financeflow.normalization.payee import extract_payee, UNKNOWN_PAYEE
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

LOOKBACK_DAYS = 365
UNUSED_AFTER_DAYS = 60
MIN_PAYMENTS = 2
BUDGET_BUFFER = Decimal("1.1")

SUBSCRIPTIONS = "Subscriptions"
HOUSING = "Housing"
INSURANCE = "Insurance"
RECURRING_PAYMENTS = "Recurring Payments"

SUBSCRIPTION_KEYWORDS = [
    "netflix", "prime", "spotify", "youtube", "adobe", "microsoft", "office",
    "subscription", "premium", "pro", "plus", "unlimited", "plan",
    "google", "apple", "dropbox", "zoom", "slack", "github",
]
_SUBSCRIPTION_RE = re.compile(
    r"\b(" + "|".join(SUBSCRIPTION_KEYWORDS) + r")\b", re.IGNORECASE
)

# Checked in order; whole words only so "premium" is not an EMI
_CATEGORY_HINTS = [
    (re.compile(r"\b(electricity|power|water|gas|internet|broadband|mobile|phone)\b", re.IGNORECASE), UTILITIES),
    (re.compile(r"\brent\b", re.IGNORECASE), HOUSING),
    (re.compile(r"\binsurance\b", re.IGNORECASE), INSURANCE),
    (re.compile(r"\b(emi|loan)\b", re.IGNORECASE), BANKING),
]

_GROUP_NOISE_RE = re.compile(r"(payment|pay|bill|subscription|sub|monthly|annual)")
_GROUP_KEY_LENGTH = 20


class Frequency(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"

    @property
    def months(self) -> int:
        return {"monthly": 1, "quarterly": 3, "yearly": 12}[self.value]


@dataclass
class DetectedSubscription:
    """One recurring payment stream"""
    name: str
    payee: str
    amount: Decimal
    frequency: Frequency
    category: str
    last_payment: date
    payment_count: int
    confidence: float
    is_subscription: bool = True

    @property
    def monthly_cost(self) -> Decimal:
        """Average payment spread over a month"""
        return (self.amount / self.frequency.months).quantize(Decimal("0.01"))

    @property
    def suggested_budget(self) -> Decimal:
        """Monthly cost plus 10%, rounded up to a whole rupee"""
        return (self.monthly_cost * BUDGET_BUFFER).to_integral_value(rounding=ROUND_CEILING)

    def days_since_last_payment(self, today: date) -> int:
        return (today - self.last_payment).days


@dataclass
class SubscriptionReport:
    subscriptions: List[DetectedSubscription] = field(default_factory=list)
    recurring_payments: List[DetectedSubscription] = field(default_factory=list)
    unused: List[DetectedSubscription] = field(default_factory=list)

    @property
    def total_monthly_cost(self) -> Decimal:
        return sum((s.monthly_cost for s in self.subscriptions), Decimal("0"))

    @property
    def potential_savings(self) -> Decimal:
        """What cancelling the unused subscriptions would save per month"""
        return sum((s.monthly_cost for s in self.unused), Decimal("0"))


def group_key(name: str) -> str:
    """
    Loose payee key so "NETFLIX.COM" and "Netflix subscription" land together.
    """
    key = re.sub(r"[^a-z0-9\s]", "", (name or "").lower())
    key = re.sub(r"\s+", " ", key)
    key = _GROUP_NOISE_RE.sub("", key)
    return key.strip()[:_GROUP_KEY_LENGTH]


def classify_intervals(intervals: List[int], payment_count: int) -> Optional[tuple]:
    """
    Match payment gaps (in days) to a frequency.

    Returns:
        (Frequency, confidence) or None if the gaps aren't regular
    """
    if len(intervals) == 0:
        return None

    gaps = pd.Series(intervals, dtype="float64")
    average = float(gaps.mean())
    variance = float(gaps.var(ddof=0))

    if 25 <= average <= 35 and variance < 50:
        return Frequency.MONTHLY, max(0.7, 1 - variance / 100)
    if 350 <= average <= 380 and variance < 200:
        return Frequency.YEARLY, max(0.6, 1 - variance / 500)
    if 85 <= average <= 95 and variance < 100:
        return Frequency.QUARTERLY, max(0.6, 1 - variance / 200)
    if 20 <= average <= 40 and payment_count >= 3:
        # Irregular, but roughly monthly
        return Frequency.MONTHLY, max(0.4, 0.8 - variance / 100)

    return None


def _amount_bonus(amounts: List[Decimal]) -> float:
    values = pd.Series([float(a) for a in amounts], dtype="float64")
    average = values.mean()
    variance = values.var(ddof=0)
    if variance < average * 0.1:
        return 0.2
    if variance < average * 0.3:
        return 0.1
    return 0.0


def _category(description: str, is_subscription: bool) -> str:
    for pattern, category in _CATEGORY_HINTS:
        if pattern.search(description):
            return category
    return SUBSCRIPTIONS if is_subscription else RECURRING_PAYMENTS


def _analyze(group: pd.DataFrame) -> Optional[DetectedSubscription]:
    group = group.sort_values("date", kind="stable")
    payments: List[Transaction] = group["txn"].tolist()
    intervals = group["date"].diff().dt.days.dropna().astype(int).tolist()

    match = classify_intervals(intervals, len(payments))
    if match is None:
        return None
    frequency, confidence = match

    amounts = [abs(t.amount) for t in payments]
    confidence = min(1.0, confidence + _amount_bonus(amounts))
    average_amount = (sum(amounts, Decimal("0")) / len(amounts)).quantize(Decimal("0.01"))

    first = payments[0]
    payee = first.payee or extract_payee(first.description)
    is_subscription = bool(
        _SUBSCRIPTION_RE.search(first.description) or _SUBSCRIPTION_RE.search(first.payee or "")
    )

    return DetectedSubscription(
        name=payee if payee != UNKNOWN_PAYEE else first.description,
        payee=payee,
        amount=average_amount,
        frequency=frequency,
        category=_category(first.description, is_subscription),
        last_payment=payments[-1].date,
        payment_count=len(payments),
        confidence=round(confidence, 2),
        is_subscription=is_subscription,
    )


def detect_subscriptions(
    transactions: Iterable[Transaction],
    today: Optional[date] = None,
) -> SubscriptionReport:
    """
    Find recurring payments in a user's history.

    Only expense and subscription transactions from the last year are
    considered. A payee needs at least two payments at a regular interval.

    Args:
        transactions: Persisted transactions, any order
        today: Reference date for the lookback and unused checks

    Returns:
        SubscriptionReport, each list sorted by confidence then amount
    """
    today = today or date.today()
    cutoff = today - timedelta(days=LOOKBACK_DAYS)

    rows = [
        {"key": group_key(txn.payee or txn.description), "date": pd.Timestamp(txn.date), "txn": txn}
        for txn in transactions
        if txn.type != TransactionType.INCOME and txn.date >= cutoff
    ]

    report = SubscriptionReport()
    if not rows:
        return report

    df = pd.DataFrame(rows)
    df = df[df["key"] != ""]

    for key, group in df.groupby("key", sort=False):
        if len(group) < MIN_PAYMENTS:
            continue

        detected = _analyze(group)
        if detected is None:
            logger.debug("No regular interval for payee group %r", key)
            continue

        if detected.is_subscription:
            report.subscriptions.append(detected)
        else:
            report.recurring_payments.append(detected)

    def rank(s: DetectedSubscription):
        return (-s.confidence, -s.amount)

    report.subscriptions.sort(key=rank)
    report.recurring_payments.sort(key=rank)
    report.unused = [
        s for s in report.subscriptions
        if s.days_since_last_payment(today) > UNUSED_AFTER_DAYS
    ]

    logger.info(
        "Found %d subscriptions and %d other recurring payments",
        len(report.subscriptions),
        len(report.recurring_payments),
    )
    return report
