from dataclasses import dataclass, field
from decimal import Decimal
from datetime import date
from typing import List, Optional
from financeflow.domain.enums import TransactionType, EntryDirection

UNKNOWN_DESCRIPTION = "Unknown Transaction"

@dataclass
class Transaction:
    """Core domain model representing a single stored transaction"""
    date: date
    description: str
    amount: Decimal
    type: TransactionType
    user_id: str
    category: Optional[str] = None
    payee: Optional[str] = None
    id: Optional[int] = None

    def __hash__(self):
        """Hash for duplicate detection"""
        return hash((self.user_id, self.date, self.description, self.amount, self.type))

    @property
    def signed_amount(self) -> Decimal:
        """Return amount with sign for net calculations"""
        return self.amount if self.type == TransactionType.INCOME else -self.amount

    def __repr__(self):
        sign = "+" if self.type == TransactionType.INCOME else "-"
        return f"Transaction({self.date}, {self.description[:30]}, {sign}{self.amount})"


@dataclass
class ParsedTransaction:
    """
    A transaction as it comes out of statement parsing.

    Lives only between parsing and persistence. `date` stays an ISO 8601
    string here; it is turned into a real date when the record is
    reconciled into a Transaction.
    """
    date: str
    description: str
    amount: Decimal
    type: EntryDirection
    confidence: float
    payee: Optional[str] = None
    category: Optional[str] = None

    def to_transaction(self, user_id: str) -> Transaction:
        """
        Reconcile into a persistable Transaction.

        Raises:
            ValueError: If the date is not a valid ISO 8601 day
        """
        return Transaction(
            date=date.fromisoformat(self.date.strip()[:10]),
            description=self.description,
            amount=abs(self.amount),
            type=self.type.to_transaction_type(),
            user_id=user_id,
            category=self.category,
            payee=self.payee,
        )


@dataclass
class ParsedStatement:
    """A parsed batch plus whatever statement metadata could be recovered"""
    transactions: List[ParsedTransaction] = field(default_factory=list)
    account_number: Optional[str] = None
    statement_period: Optional[str] = None
    bank_name: Optional[str] = None
    parsing_notes: Optional[str] = None
