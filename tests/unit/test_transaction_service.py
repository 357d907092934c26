import pytest
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import List

from financeflow.domain.enums import EntryDirection, TransactionType
from financeflow.domain.models import ParsedStatement, ParsedTransaction, Transaction
from financeflow.repositories.base import TransactionRepository, TransactionNotFoundError
from financeflow.services.transaction_service import TransactionService


@pytest.fixture
def mock_repository(mocker) -> TransactionRepository:
    return mocker.Mock()


@pytest.fixture
def service(mock_repository, engine) -> TransactionService:
    """Service with a mocked repository and built-in rules"""
    return TransactionService(repository=mock_repository, user_id="user-1", categorization_engine=engine)


@pytest.fixture
def sample_transactions(make_transaction) -> List[Transaction]:
    return [
        make_transaction(description="UPI-ZOMATO ORDER", amount="450.00"),
        make_transaction(
            txn_date=date(2024, 3, 1),
            description="NEFT-ACME PAYROLL",
            amount="85000.00",
            txn_type=TransactionType.INCOME,
        ),
    ]


@pytest.fixture
def parsed_statement() -> ParsedStatement:
    return ParsedStatement(
        transactions=[
            ParsedTransaction(
                date="2024-03-15",
                description="UPI-ZOMATO ORDER",
                amount=Decimal("450.00"),
                type=EntryDirection.DEBIT,
                confidence=0.95,
                payee="ZOMATO ORDER",
                category="Food & Dining",
            ),
            ParsedTransaction(
                date="2024-03-01",
                description="NEFT-ACME PAYROLL",
                amount=Decimal("85000.00"),
                type=EntryDirection.CREDIT,
                confidence=0.99,
                payee="ACME PAYROLL",
                category="Other",
            ),
        ],
        bank_name="HDFC Bank",
        account_number="4521",
        parsing_notes="Successfully processed 2 transactions.",
    )


@pytest.fixture
def mock_parser(mocker, parsed_statement):
    parser = mocker.Mock()
    parser.parse.return_value = parsed_statement
    mocker.patch(
        'financeflow.parsers.factory.ParserFactory.create_parser',
        return_value=parser
    )
    return parser


@pytest.mark.unit
class TestTransactionServiceQuery:
    """Query operations"""

    def test_get_transactions_calls_repository(
            self,
            service: TransactionService,
            mock_repository: TransactionRepository,
            sample_transactions: List[Transaction]
    ):
        # Arrange
        mock_repository.get_all.return_value = sample_transactions

        # Act
        result = service.get_transactions()

        # Assert
        mock_repository.get_all.assert_called_once_with(
            user_id="user-1",
            start_date=None,
            end_date=None,
            transaction_type=None,
            category=None
        )
        assert result == sample_transactions

    def test_get_transactions_passes_filters(
            self,
            service: TransactionService,
            mock_repository: TransactionRepository,
    ):
        # Arrange
        mock_repository.get_all.return_value = []

        # Act
        service.get_transactions(
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            transaction_type=TransactionType.SUBSCRIPTION,
            category="Entertainment",
        )

        # Assert
        mock_repository.get_all.assert_called_once_with(
            user_id="user-1",
            start_date=date(2024, 3, 1),
            end_date=date(2024, 3, 31),
            transaction_type=TransactionType.SUBSCRIPTION,
            category="Entertainment",
        )

    def test_monthly_summary_splits_income_and_expenses(
            self,
            service: TransactionService,
            mock_repository: TransactionRepository,
            sample_transactions: List[Transaction],
            make_transaction,
    ):
        # Arrange
        netflix = make_transaction(description="NETFLIX.COM", amount="649.00", txn_type=TransactionType.SUBSCRIPTION)
        mock_repository.get_all.return_value = sample_transactions + [netflix]

        # Act
        summary = service.get_monthly_summary(2024, 2)

        # Assert
        kwargs = mock_repository.get_all.call_args.kwargs
        assert kwargs["start_date"] == date(2024, 2, 1)
        assert kwargs["end_date"] == date(2024, 2, 29)
        assert kwargs["user_id"] == "user-1"
        assert summary.total_expenses == Decimal("1099.00")
        assert summary.total_income == Decimal("85000.00")


@pytest.mark.unit
class TestTransactionServiceImport:
    """Import operations"""

    def test_import_dry_run_doesnt_save(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
        mock_parser,
    ):
        # Arrange
        mock_repository.exists.return_value = False

        # Act
        result = service.import_statement(
            filepath=Path('statement.json'),
            source='llm-json',
            dry_run=True
        )

        # Assert
        from financeflow.parsers.factory import ParserFactory
        ParserFactory.create_parser.assert_called_once_with('llm-json', normalizer=service.normalizer)
        mock_parser.parse.assert_called_once_with(Path('statement.json'))
        mock_repository.save_many.assert_not_called()
        assert mock_repository.exists.call_count == 2
        assert result.total_parsed == 2
        assert result.new_transactions == 2
        assert result.duplicates_skipped == 0

    def test_import_dry_run_reports_stored_duplicates(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
        mock_parser,
    ):
        mock_repository.exists.side_effect = [True, False]

        result = service.import_statement(Path('statement.json'), 'llm-json', dry_run=True)

        assert result.duplicates_skipped == 1
        assert result.skipped[0].description == "UPI-ZOMATO ORDER"
        assert result.new_transactions == 1

    def test_import_saves_reconciled_transactions(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
        mock_parser,
    ):
        # Arrange
        mock_repository.save_many.side_effect = lambda txns: txns[1:]

        # Act
        result = service.import_statement(Path('statement.json'), 'llm-json')

        # Assert
        [saved] = mock_repository.save_many.call_args.args
        assert [t.type for t in saved] == [TransactionType.EXPENSE, TransactionType.INCOME]
        assert all(t.user_id == "user-1" for t in saved)
        assert saved[0].date == date(2024, 3, 15)
        assert result.new_transactions == 1
        assert result.duplicates_skipped == 1
        assert result.bank_name == "HDFC Bank"
        assert result.account_number == "4521"
        assert result.source == "llm-json"
        assert result.filepath == "statement.json"

    def test_import_passes_pdf_password(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
        mock_parser,
    ):
        mock_repository.save_many.return_value = []

        service.import_statement(Path('statement.pdf'), 'pdf', password="ABCD1234")

        from financeflow.parsers.factory import ParserFactory
        ParserFactory.create_parser.assert_called_once_with(
            'pdf', normalizer=service.normalizer, password="ABCD1234"
        )

    def test_import_records_counts_bad_dates_as_errors(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
    ):
        # Arrange
        mock_repository.save_many.side_effect = lambda txns: txns
        records = [
            {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER", "amount": 450, "type": "debit"},
            {"date": "15th March", "description": "UBER TRIP", "amount": 210, "type": "debit"},
            {"description": "NO DATE", "amount": 10},
        ]

        # Act
        result = service.import_records(records)

        # Assert
        assert result.total_parsed == 3
        assert result.new_transactions == 1
        assert result.errors == 2
        assert len(result.error_messages) == 2
        assert "UBER TRIP" in result.error_messages[0]
        assert result.imported[0].category == "Food & Dining"


@pytest.mark.unit
class TestTransactionServiceEdits:

    def test_categorize_updates_only_changed_rows(
        self,
        service: TransactionService,
        mock_repository: TransactionRepository,
        make_transaction,
    ):
        # Arrange
        mock_repository.get_all.return_value = [
            make_transaction(description="UPI-ZOMATO ORDER", category=None),
            make_transaction(description="XYZ HOLDINGS", category="Other"),
            make_transaction(description="UBER TRIP", category="Transportation"),
        ]
        mock_repository.update_many.side_effect = lambda txns: txns

        # Act
        count = service.categorize_transactions()

        # Assert
        [updated] = mock_repository.update_many.call_args.args
        assert [t.description for t in updated] == ["UPI-ZOMATO ORDER"]
        assert count == 1

    def test_categorize_with_nothing_stored(self, service, mock_repository):
        mock_repository.get_all.return_value = []

        assert service.categorize_transactions() == 0
        mock_repository.update_many.assert_not_called()

    def test_update_transaction(self, service, mock_repository, make_transaction):
        # Arrange
        stored = make_transaction(description="UPI-ZOMATO ORDER")
        stored.id = 7
        mock_repository.get_by_id.return_value = stored
        mock_repository.update.side_effect = lambda txn: txn

        # Act
        updated = service.update_transaction(7, category="Team Lunch", type="subscription", amount="500")

        # Assert
        mock_repository.get_by_id.assert_called_once_with(7, user_id="user-1")
        assert updated.category == "Team Lunch"
        assert updated.type == TransactionType.SUBSCRIPTION
        assert updated.amount == Decimal("500")
        assert updated.id == 7

    def test_update_missing_transaction(self, service, mock_repository):
        mock_repository.get_by_id.return_value = None

        with pytest.raises(TransactionNotFoundError):
            service.update_transaction(99, category="X")

    def test_update_rejects_unknown_fields(self, service, mock_repository):
        with pytest.raises(ValueError, match="user_id"):
            service.update_transaction(1, user_id="someone-else")

        mock_repository.get_by_id.assert_not_called()

    def test_delete_is_scoped_to_user(self, service, mock_repository):
        mock_repository.delete.return_value = True

        assert service.delete_transaction(3) is True
        mock_repository.delete.assert_called_once_with(3, user_id="user-1")

    def test_detect_subscriptions_uses_user_history(self, service, mock_repository, mocker):
        # Arrange
        detect = mocker.patch("financeflow.services.transaction_service.detect_subscriptions")
        mock_repository.get_all.return_value = []

        # Act
        service.detect_subscriptions(today=date(2024, 6, 1))

        # Assert
        detect.assert_called_once_with([], today=date(2024, 6, 1))
        assert mock_repository.get_all.call_args.kwargs["user_id"] == "user-1"
