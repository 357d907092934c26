from pathlib import Path
from typing import Any, Iterable, List, Optional, Union
from datetime import date
from calendar import monthrange
from dataclasses import replace
from decimal import Decimal, InvalidOperation

from financeflow.analysis.subscriptions import SubscriptionReport, detect_subscriptions
from financeflow.categorization import CategorizationEngine
from financeflow.domain.enums import TransactionType
from financeflow.domain.models import ParsedStatement, Transaction
from financeflow.normalization import StatementNormalizer
from financeflow.parsers.factory import ParserFactory
from financeflow.repositories.base import TransactionRepository, TransactionNotFoundError
from financeflow.services.models import ImportResult, MonthlySummary
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

# Fields a caller may change through update_transaction
EDITABLE_FIELDS = {"date", "description", "amount", "type", "category", "payee"}


class TransactionService:
    """
    Application entry point for one user's transactions.

    Ties parsing, normalization, categorization and storage together:
    statements go in through import_statement/import_records, reports come
    out of get_monthly_summary and detect_subscriptions.
    """

    def __init__(
        self,
        repository: TransactionRepository,
        user_id: str,
        categorization_engine: Optional[CategorizationEngine] = None,
    ):
        self.repository = repository
        self.user_id = user_id
        self._categorization_engine: Optional[CategorizationEngine] = categorization_engine
        self._normalizer: Optional[StatementNormalizer] = None

    @property
    def categorization_engine(self) -> CategorizationEngine:
        """Lazy-load categorization engine"""
        if self._categorization_engine is None:
            self._categorization_engine = CategorizationEngine()
        return self._categorization_engine

    @property
    def normalizer(self) -> StatementNormalizer:
        """Normalizer sharing this service's categorization engine"""
        if self._normalizer is None:
            self._normalizer = StatementNormalizer(self.categorization_engine)
        return self._normalizer

    def import_statement(
        self,
        filepath: Union[str, Path],
        source: str,
        dry_run: bool = False,
        password: Optional[str] = None,
    ) -> ImportResult:
        """
        Import transactions from a statement file.

        Args:
            filepath: The path to the statement file
            source: Parser to use ('llm-json', 'pdf', 'spreadsheet')
            dry_run: Preview without saving
            password: Password for protected PDF statements

        Returns:
            An ImportResult.

        Raises:
            ValueError: If the source is unknown or the file can't be parsed
            FileNotFoundError: If the file doesn't exist
        """
        kwargs: dict = {"normalizer": self.normalizer}
        if password is not None:
            kwargs["password"] = password

        parser = ParserFactory.create_parser(source, **kwargs)
        statement = parser.parse(filepath)

        logger.info("Parsed %d transactions from %s", len(statement.transactions), filepath)
        return self._store(statement, dry_run=dry_run, filepath=str(filepath), source=source)

    def import_records(
        self,
        records: Iterable[Any],
        source: str = "records",
        dry_run: bool = False,
    ) -> ImportResult:
        """
        Import already-loaded records (e.g. the transactions array of an
        LLM reply) without going through a file.
        """
        statement = ParsedStatement(transactions=self.normalizer.normalize(records))
        return self._store(statement, dry_run=dry_run, source=source)

    def _store(
        self,
        statement: ParsedStatement,
        dry_run: bool,
        filepath: str = "",
        source: str = "",
    ) -> ImportResult:
        transactions: List[Transaction] = []
        error_messages: List[str] = []

        for parsed in statement.transactions:
            try:
                transactions.append(parsed.to_transaction(self.user_id))
            except ValueError as e:
                error_messages.append(f"{parsed.description} ({parsed.date!r}): {e}")

        for message in error_messages:
            logger.warning("Skipping transaction: %s", message)

        if dry_run:
            # Check duplicates WITHOUT saving
            new_transactions = []
            skipped = []
            for txn in transactions:
                if self.repository.exists(
                    user_id=txn.user_id,
                    date=txn.date,
                    description=txn.description,
                    amount=txn.amount,
                ):
                    skipped.append(txn)
                else:
                    new_transactions.append(txn)
        else:
            new_transactions = self.repository.save_many(transactions)

            new_ids = {id(t) for t in new_transactions}
            skipped = [t for t in transactions if id(t) not in new_ids]

        return ImportResult(
            total_parsed=len(statement.transactions),
            new_transactions=len(new_transactions),
            duplicates_skipped=len(skipped),
            errors=len(error_messages),
            imported=new_transactions,
            skipped=skipped,
            error_messages=error_messages,
            filepath=filepath,
            source=source,
            bank_name=statement.bank_name,
            account_number=statement.account_number,
            statement_period=statement.statement_period,
            parsing_notes=statement.parsing_notes,
        )

    def get_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        transaction_type: Optional[TransactionType] = None,
        category: Optional[str] = None,
    ) -> List[Transaction]:
        """
        Query this user's transactions.

        Example:
            ### All March 2024 subscriptions
            transactions = service.get_transactions(
                start_date=date(2024, 3, 1),
                end_date=date(2024, 3, 31),
                transaction_type=TransactionType.SUBSCRIPTION
            )
        """
        return self.repository.get_all(
            user_id=self.user_id,
            start_date=start_date,
            end_date=end_date,
            transaction_type=transaction_type,
            category=category,
        )

    def get_monthly_summary(
        self,
        year: int,
        month: int
    ) -> MonthlySummary:
        """Income, expenses and spending by category for one month"""
        start_date = date(year, month, 1)
        _, last_day = monthrange(year, month)
        end_date = date(year, month, last_day)

        transactions = self.get_transactions(start_date=start_date, end_date=end_date)

        income = [t for t in transactions if t.type == TransactionType.INCOME]
        expenses = [t for t in transactions if t.type != TransactionType.INCOME]

        return MonthlySummary(
            year=year,
            month=month,
            expenses=expenses,
            income=income,
        )

    def categorize_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        overwrite: bool = False
    ) -> int:
        """
        Categorize stored transactions.

        Args:
            start_date: Only categorize transactions on or after this date
            end_date: Only categorize transactions on or before this date
            overwrite: If True, re-categorize already categorized transactions

        Returns:
            Number of transactions whose category changed
        """
        transactions = self.get_transactions(start_date=start_date, end_date=end_date)

        if not transactions:
            return 0

        categorized = self.categorization_engine.categorize_many(
            transactions,
            overwrite=overwrite
        )

        to_update = [
            new for old, new in zip(transactions, categorized)
            if new.category != old.category
        ]

        updated = self.repository.update_many(to_update)
        logger.info("Re-categorized %d of %d transactions", len(updated), len(transactions))
        return len(updated)

    def update_transaction(self, transaction_id: int, **changes: Any) -> Transaction:
        """
        Change fields of one of this user's transactions.

        Raises:
            TransactionNotFoundError: If the user has no such transaction
            ValueError: If a field can't be edited
        """
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")

        current = self.repository.get_by_id(transaction_id, user_id=self.user_id)
        if current is None:
            raise TransactionNotFoundError(f"Transaction with ID {transaction_id} not found")

        if "type" in changes and not isinstance(changes["type"], TransactionType):
            changes["type"] = TransactionType(str(changes["type"]).lower())
        if "amount" in changes:
            try:
                changes["amount"] = abs(Decimal(str(changes["amount"])))
            except InvalidOperation:
                raise ValueError(f"Invalid amount: {changes['amount']!r}")
        if isinstance(changes.get("date"), str):
            changes["date"] = date.fromisoformat(changes["date"])

        return self.repository.update(replace(current, **changes))

    def delete_transaction(self, transaction_id: int) -> bool:
        """Delete one of this user's transactions; False if it didn't exist"""
        return self.repository.delete(transaction_id, user_id=self.user_id)

    def detect_subscriptions(self, today: Optional[date] = None) -> SubscriptionReport:
        """Recurring payments found in this user's stored history"""
        return detect_subscriptions(self.get_transactions(), today=today)
