from abc import ABC, abstractmethod
from datetime import date
from decimal import Decimal
from typing import List, Optional

from financeflow.domain.models import Transaction
from financeflow.domain.enums import TransactionType

class DuplicateTransactionError(Exception):
    """Raised when attempting to save a duplicate transaction."""
    pass

class TransactionNotFoundError(Exception):
    """Raised when a transaction cannot be found."""
    pass

class TransactionRepository(ABC):
    """
    Abstract repository for transaction persistence.

    The repository pattern abstracts the data access, making it easy
    to swap storage backends in the future. Every query is scoped to one
    user; transactions are never shared between users.
    """

    @abstractmethod
    def save(self, transaction: Transaction) -> Transaction:
        """
        Save a transaction to the repository.

        Args:
            transaction: Transaction to save

        Returns:
            Transaction with ID populated

        Raises:
            DuplicateTransactionError: If transaction already exists
        """
        pass

    @abstractmethod
    def save_many(self, transactions: List[Transaction]) -> List[Transaction]:
        """
        Save multiple transactions in a single operation.

        Transactions already stored are skipped.

        Args:
            transactions: List of transactions to save.

        Returns:
            List of saved transactions with IDs
        """
        pass

    @abstractmethod
    def get_by_id(self, transaction_id: int, user_id: Optional[str] = None) -> Optional[Transaction]:
        """
        Retrieve a transaction by ID.

        Args:
            transaction_id: Transaction ID
            user_id: If given, only return the transaction when it belongs to this user

        Returns:
            Transaction if found, None otherwise
        """
        pass

    @abstractmethod
    def get_all(
        self,
        user_id: Optional[str] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Retrieve transactions with optional filtering.

        Args:
            user_id: Owner of the transactions
            start_date: Filter transactions on or after this date
            end_date: Filter transactions on or before this date
            transaction_type: Filter by expense, income or subscription
            category: Filter by category

        Returns:
            List of matching transactions, newest first
        """
        pass

    @abstractmethod
    def update(self, transaction: Transaction) -> Transaction:
        """
        Update an existing transaction.

        Args:
            transaction: Transaction with updated values

        Returns:
            Updated transaction

        Raises:
            TransactionNotFoundError: If transaction doesn't exist
        """
        pass

    def update_many(self, transactions: List[Transaction]) -> List[Transaction]:
        """Update several transactions; returns the updated ones."""
        return [self.update(txn) for txn in transactions]

    @abstractmethod
    def delete(self, transaction_id: int, user_id: Optional[str] = None) -> bool:
        """
        Delete a transaction by ID.

        Args:
            transaction_id: ID of transaction to delete
            user_id: If given, only delete when the transaction belongs to this user

        Returns:
            True if deleted, False if not found
        """
        pass

    @abstractmethod
    def exists(
        self,
        user_id: str,
        date: date,
        description: str,
        amount: Decimal,
    ) -> bool:
        """
        Check if a transaction already exists.

        Used for deduplication during imports: same owner, date and
        description, and an amount less than 0.01 away.

        Returns:
            True if transaction exists
        """
        pass
