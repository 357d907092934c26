"""
Service layer DTOs.

These describe the outcome of a service call; they are not persisted.
"""
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from financeflow.domain.models import Transaction

UNCATEGORIZED = "Uncategorized"


@dataclass
class ImportResult:
    """
    What happened when a statement was imported.

    `total_parsed` counts normalized records; each of them ends up in
    exactly one of imported, skipped (already stored) or errors.
    """
    total_parsed: int
    new_transactions: int
    duplicates_skipped: int
    errors: int = 0

    imported: List[Transaction] = field(default_factory=list)
    skipped: List[Transaction] = field(default_factory=list)
    error_messages: List[str] = field(default_factory=list)

    filepath: str = ""
    source: str = ""
    bank_name: Optional[str] = None
    account_number: Optional[str] = None
    statement_period: Optional[str] = None
    parsing_notes: Optional[str] = None

    @property
    def success(self) -> bool:
        """At least one transaction made it in"""
        return self.new_transactions > 0

    @property
    def partial_success(self) -> bool:
        return self.new_transactions > 0 and self.errors > 0

    def __str__(self) -> str:
        lines = [
            f"Import summary for {self.bank_name or self.source}:",
            f" 📄 File: {self.filepath}",
            f" ✅ New transactions: {self.new_transactions}",
            f" ⏭️ Duplicates Skipped: {self.duplicates_skipped}"
        ]

        if self.errors:
            lines.append(f"  ❌ Errors: {self.errors}")

        return "\n".join(lines)

    def __post_init__(self):
        if self.new_transactions != len(self.imported):
            raise ValueError(
                f"Count mismatch: new_transactions={self.new_transactions} "
                f"but len(imported)={len(self.imported)}"
            )
        if self.duplicates_skipped != len(self.skipped):
            raise ValueError(
                f"Count mismatch: duplicates_skipped={self.duplicates_skipped} "
                f"but len(skipped)={len(self.skipped)}"
            )


@dataclass
class MonthlySummary:
    """
    One month of a user's money in and out.

    Subscriptions count as expenses.
    """

    year: int
    month: int

    expenses: List[Transaction] = field(default_factory=list)
    income: List[Transaction] = field(default_factory=list)

    @property
    def start_date(self) -> date:
        return date(self.year, self.month, 1)

    @property
    def total_expenses(self) -> Decimal:
        return sum((t.amount for t in self.expenses), Decimal("0"))

    @property
    def total_income(self) -> Decimal:
        return sum((t.amount for t in self.income), Decimal("0"))

    @property
    def net_flow(self) -> Decimal:
        """Income minus expenses"""
        return self.total_income - self.total_expenses

    @property
    def total_transactions(self) -> int:
        return len(self.expenses) + len(self.income)

    @property
    def spending_by_category(self) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self.expenses:
            totals[txn.category or UNCATEGORIZED] += txn.amount
        return dict(totals)

    @property
    def income_by_category(self) -> Dict[str, Decimal]:
        totals: Dict[str, Decimal] = defaultdict(Decimal)
        for txn in self.income:
            totals[txn.category or UNCATEGORIZED] += txn.amount
        return dict(totals)

    @property
    def top_spending_categories(self) -> List[Tuple[str, Decimal]]:
        """Categories sorted by spending, largest first"""
        return sorted(
            self.spending_by_category.items(),
            key=lambda x: x[1],
            reverse=True
        )

    def __str__(self) -> str:
        month_name = self.start_date.strftime("%B %Y")

        lines = [
            f"📊 Monthly Summary - {month_name}",
            "",
            f"Transactions: {self.total_transactions}",
            f"  💸 Expenses: ₹{self.total_expenses:,.2f} ({len(self.expenses)} transactions)",
            f"  💰 Income:   ₹{self.total_income:,.2f} ({len(self.income)} transactions)",
            f"  {'📈' if self.net_flow >= 0 else '📉'} Net:      ₹{self.net_flow:,.2f}",
        ]

        if self.spending_by_category:
            lines.append("\nTop Spending Categories:")
            for category, amount in self.top_spending_categories[:5]:
                lines.append(f"  • {category}: ₹{amount:,.2f}")

        return "\n".join(lines)
