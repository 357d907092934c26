import sqlite3
from datetime import date
from decimal import Decimal
from typing import List, Optional

from financeflow.database.connection import DatabaseManager
from financeflow.domain.models import Transaction
from financeflow.domain.enums import TransactionType
from financeflow.normalization.deduplication import AMOUNT_TOLERANCE
from financeflow.repositories.base import TransactionRepository, DuplicateTransactionError, TransactionNotFoundError

_INSERT_SQL = """
    INSERT INTO transactions (
        user_id, date, description, amount, type, category, payee
    ) VALUES (?, ?, ?, ?, ?, ?, ?)
"""

class SQLiteTransactionRepository(TransactionRepository):
    """
    SQLite implementation of the TransactionRepository.

    Handles all database operations for transactions using raw SQL.
    """

    def __init__(self, db_manager: DatabaseManager):
        self.db = db_manager

    def save(self, transaction: Transaction) -> Transaction:
        """Save a single transaction."""

        # Check for duplicates
        if self.exists(
            transaction.user_id,
            transaction.date,
            transaction.description,
            transaction.amount,
        ):
            raise DuplicateTransactionError(
                f"Transaction already exists: {transaction.description} ({transaction.amount}) "
                f"on {transaction.date}"
            )

        with self.db.transaction() as conn:
            cursor = conn.execute(_INSERT_SQL, self._to_params(transaction))
            transaction.id = cursor.lastrowid

        return transaction

    def save_many(self, transactions: List[Transaction]) -> List[Transaction]:
        """Save multiple transactions efficiently"""
        saved = []

        with self.db.transaction() as conn:
            for txn in transactions:
                if self.exists(txn.user_id, txn.date, txn.description, txn.amount):
                    continue

                cursor = conn.execute(_INSERT_SQL, self._to_params(txn))
                txn.id = cursor.lastrowid
                saved.append(txn)

        return saved

    def get_by_id(self, transaction_id: int, user_id: Optional[str] = None) -> Optional[Transaction]:
        """Retrieve a transaction by ID, or None if it doesn't exist"""
        query = "SELECT * FROM transactions WHERE id = ?"
        params: list = [transaction_id]

        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        conn = self.db.get_connection()
        row = conn.execute(query, params).fetchone()

        if row is None:
            return None

        return self._row_to_transaction(row)

    def get_all(
            self,
            user_id: Optional[str] = None,
            start_date: Optional[date] = None,
            end_date: Optional[date] = None,
            transaction_type: Optional[TransactionType] = None,
            category: Optional[str] = None
    ) -> List[Transaction]:
        """Retrieve transactions with optional filtering."""
        query = "SELECT * FROM transactions WHERE 1=1"
        params = []

        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        if start_date:
            query += " AND date >= ?"
            params.append(start_date.isoformat())

        if end_date:
            query += " AND date <= ?"
            params.append(end_date.isoformat())

        if transaction_type:
            query += " AND type = ?"
            params.append(transaction_type.value)

        if category:
            query += " AND category = ?"
            params.append(category)

        query += " ORDER BY date DESC, id DESC"

        conn = self.db.get_connection()
        rows = conn.execute(query, params).fetchall()

        return [self._row_to_transaction(row) for row in rows]

    def update(self, transaction: Transaction) -> Transaction:
        """Update an existing transaction."""
        if transaction.id is None:
            raise ValueError("Cannot update transaction without ID")

        with self.db.transaction() as conn:
            cursor = conn.execute(
                """
                UPDATE transactions
                SET date = ?, description = ?, amount = ?, type = ?,
                    category = ?, payee = ?, updated_at = CURRENT_TIMESTAMP
                WHERE id = ? AND user_id = ?
                """,
                (
                    transaction.date.isoformat(),
                    transaction.description,
                    str(abs(transaction.amount)),
                    transaction.type.value,
                    transaction.category,
                    transaction.payee,
                    transaction.id,
                    transaction.user_id,
                )
            )

            if cursor.rowcount == 0:
                raise TransactionNotFoundError(
                    f"Transaction with ID {transaction.id} not found"
                )

        return transaction

    def delete(self, transaction_id: int, user_id: Optional[str] = None) -> bool:
        """Delete a transaction by ID."""
        query = "DELETE FROM transactions WHERE id = ?"
        params: list = [transaction_id]

        if user_id is not None:
            query += " AND user_id = ?"
            params.append(user_id)

        with self.db.transaction() as conn:
            cursor = conn.execute(query, params)
            return cursor.rowcount > 0

    def exists(
            self,
            user_id: str,
            date: date,
            description: str,
            amount: Decimal,
        ) -> bool:
        """Check if a transaction exists for deduplication"""
        conn = self.db.get_connection()
        rows = conn.execute(
            """
            SELECT amount FROM transactions
            WHERE user_id = ? AND date = ? AND description = ?
            """,
            (user_id, date.isoformat(), description),
        ).fetchall()

        amount = abs(Decimal(str(amount)))
        return any(
            abs(Decimal(row["amount"]) - amount) < AMOUNT_TOLERANCE for row in rows
        )

    @staticmethod
    def _to_params(txn: Transaction) -> tuple:
        return (
            txn.user_id,
            txn.date.isoformat(),
            txn.description,
            str(abs(txn.amount)), # Store as string for precision
            txn.type.value,
            txn.category,
            txn.payee,
        )

    def _row_to_transaction(self, row: sqlite3.Row) -> Transaction:
        """Convert database row to Transaction object."""
        raw_date = row["date"]
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            date=raw_date if isinstance(raw_date, date) else date.fromisoformat(str(raw_date)[:10]),
            description=row["description"],
            amount=Decimal(row["amount"]),
            type=TransactionType(row["type"]),
            category=row["category"],
            payee=row["payee"],
        )
