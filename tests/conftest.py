import pytest
from datetime import date
from decimal import Decimal
from typing import Optional

from financeflow.categorization import CategorizationEngine
from financeflow.database.connection import DatabaseConfig, DatabaseManager
from financeflow.domain.enums import TransactionType
from financeflow.domain.models import Transaction
from financeflow.normalization import StatementNormalizer
from financeflow.parsers.factory import ParserFactory


@pytest.fixture
def engine() -> CategorizationEngine:
    """Built-in rules only; ignores any categorization_rules.json on disk"""
    return CategorizationEngine(config={"rules": []})


@pytest.fixture
def normalizer(engine: CategorizationEngine) -> StatementNormalizer:
    return StatementNormalizer(engine)


@pytest.fixture
def clean_parser_registry():
    """Empty, unlocked registry for the test; restored afterwards"""
    saved_registry, saved_locked = ParserFactory._registry, ParserFactory._locked
    ParserFactory._registry = {}
    ParserFactory._locked = False

    yield ParserFactory

    ParserFactory._registry = saved_registry
    ParserFactory._locked = saved_locked


@pytest.fixture
def test_db(tmp_path):
    """
    Real SQLite database in pytest's tmp_path, schema applied.
    """
    db_manager = DatabaseManager(DatabaseConfig(tmp_path / "test.db"))
    db_manager.initialize()

    yield db_manager

    db_manager.close()


@pytest.fixture
def make_transaction():
    """Build a Transaction with sensible defaults"""

    def _make(
        txn_date: date = date(2024, 3, 15),
        description: str = "UPI-ZOMATO ORDER",
        amount: str = "450.00",
        txn_type: TransactionType = TransactionType.EXPENSE,
        user_id: str = "user-1",
        category: Optional[str] = None,
        payee: Optional[str] = None,
    ) -> Transaction:
        return Transaction(
            date=txn_date,
            description=description,
            amount=Decimal(amount),
            type=txn_type,
            user_id=user_id,
            category=category,
            payee=payee,
        )

    return _make
