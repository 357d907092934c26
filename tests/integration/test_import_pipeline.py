import json
import pytest
from datetime import date
from decimal import Decimal

from financeflow.categorization import CategorizationEngine
from financeflow.domain.enums import TransactionType
from financeflow.parsers.factory import ParserFactory
from financeflow.repositories.sqlite_transaction_repository import SQLiteTransactionRepository
from financeflow.services.transaction_service import TransactionService


@pytest.fixture
def service(test_db, engine, clean_parser_registry) -> TransactionService:
    ParserFactory.load_parsers_from_config()
    return TransactionService(SQLiteTransactionRepository(test_db), user_id="priya", categorization_engine=engine)


@pytest.fixture
def reply_file(tmp_path):
    reply = {
        "transactions": [
            {"date": "2024-03-01", "description": "NEFT-ACME PAYROLL", "amount": 85000, "type": "credit", "confidence": 0.99},
            {"date": "2024-03-05", "description": "NETFLIX.COM", "amount": 649, "type": "subscription", "confidence": 0.95},
            {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER", "amount": 450, "type": "debit", "confidence": 0.9},
            {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER", "amount": 450.004, "type": "debit", "confidence": 0.9},
            {"date": "sometime in March", "description": "UBER TRIP", "amount": 210, "type": "debit"},
        ],
        "accountNumber": "4521",
        "bankName": "HDFC Bank",
    }
    path = tmp_path / "reply.json"
    path.write_text(json.dumps(reply), encoding="utf-8")
    return path


@pytest.mark.integration
class TestImportPipeline:

    def test_import_then_reimport(self, service: TransactionService, reply_file):
        # Act
        first = service.import_statement(reply_file, "llm-json")
        second = service.import_statement(reply_file, "llm-json")

        # Assert
        assert first.total_parsed == 4
        assert first.new_transactions == 3
        assert first.errors == 1
        assert first.bank_name == "HDFC Bank"
        assert second.new_transactions == 0
        assert second.duplicates_skipped == 3

    def test_dry_run_leaves_database_untouched(self, service: TransactionService, reply_file):
        result = service.import_statement(reply_file, "llm-json", dry_run=True)

        assert result.new_transactions == 3
        assert service.get_transactions() == []

    def test_stored_rows_and_monthly_summary(self, service: TransactionService, reply_file):
        # Arrange
        service.import_statement(reply_file, "llm-json")

        # Act
        summary = service.get_monthly_summary(2024, 3)

        # Assert
        assert summary.total_income == Decimal("85000")
        assert summary.total_expenses == Decimal("1099")
        assert summary.spending_by_category == {
            "Entertainment": Decimal("649"),
            "Food & Dining": Decimal("450"),
        }
        stored = service.get_transactions()
        assert all(t.type in (TransactionType.EXPENSE, TransactionType.INCOME) for t in stored)
        assert {t.payee for t in stored} == {"ACME PAYROLL", "NETFLIX.COM", "ZOMATO ORDER"}

    def test_users_are_isolated(self, service: TransactionService, test_db, engine, reply_file):
        service.import_statement(reply_file, "llm-json")
        other = TransactionService(SQLiteTransactionRepository(test_db), user_id="rahul", categorization_engine=engine)

        assert other.get_transactions() == []
        assert other.import_statement(reply_file, "llm-json").new_transactions == 3

    def test_edit_and_delete(self, service: TransactionService, reply_file):
        # Arrange
        service.import_statement(reply_file, "llm-json")
        [netflix] = service.get_transactions(category="Entertainment")

        # Act
        service.update_transaction(netflix.id, type=TransactionType.SUBSCRIPTION, category="Streaming")

        # Assert
        [updated] = service.get_transactions(transaction_type=TransactionType.SUBSCRIPTION)
        assert updated.category == "Streaming"
        assert updated.date == date(2024, 3, 5)
        assert service.delete_transaction(updated.id) is True
        assert len(service.get_transactions()) == 2

    def test_recategorize_after_rule_change(self, test_db, reply_file, clean_parser_registry):
        # Arrange
        ParserFactory.load_parsers_from_config()
        repo = SQLiteTransactionRepository(test_db)
        TransactionService(repo, user_id="priya").import_statement(reply_file, "llm-json")
        custom = {"rules": [{"category": "Office Lunch", "type": "keyword", "patterns": ["zomato"]}]}
        service = TransactionService(repo, user_id="priya", categorization_engine=CategorizationEngine(config=custom))

        # Act
        count = service.categorize_transactions(overwrite=True)

        # Assert
        assert count >= 1
        assert service.get_transactions(category="Office Lunch")[0].description == "UPI-ZOMATO ORDER"
