import pytest
from decimal import Decimal

import pandas as pd

from financeflow.domain.enums import EntryDirection
from financeflow.parsers.spreadsheet import SpreadsheetStatementParser

NET_BANKING_EXPORT = """Account Statement for XXXX4521
Period: 01/03/2024 - 31/03/2024

Date,Narration,Withdrawal Amt.,Deposit Amt.,Closing Balance
15/03/2024,UPI-ZOMATO ORDER,450.00,0.00,9550.00
16/03/2024,NEFT-ACME PAYROLL,,85000.00,94550.00
,,,,
17/03/2024,UBER TRIP,210.00,,94340.00
"""

SIGNED_EXPORT = """Date,Description,Amount,Type,Category
2024-03-15,NETFLIX.COM,-649.00,,
2024-03-16,Refund from store,120.00,credit,Refunds
"""


@pytest.fixture
def parser(normalizer) -> SpreadsheetStatementParser:
    return SpreadsheetStatementParser(normalizer=normalizer)


@pytest.mark.unit
class TestSpreadsheetStatementParser:

    def test_parse_export_with_preamble(self, parser: SpreadsheetStatementParser, tmp_path):
        # Arrange
        export = tmp_path / "statement.csv"
        export.write_text(NET_BANKING_EXPORT, encoding="utf-8")

        # Act
        statement = parser.parse(export)

        # Assert
        assert [(t.date, t.description, t.amount, t.type) for t in statement.transactions] == [
            ("2024-03-15", "UPI-ZOMATO ORDER", Decimal("450.00"), EntryDirection.DEBIT),
            ("2024-03-16", "NEFT-ACME PAYROLL", Decimal("85000.00"), EntryDirection.CREDIT),
            ("2024-03-17", "UBER TRIP", Decimal("210.00"), EntryDirection.DEBIT),
        ]
        assert all(t.confidence == 1.0 for t in statement.transactions)
        assert statement.transactions[0].category == "Food & Dining"
        assert statement.parsing_notes == "Imported 3 transactions from statement.csv."

    def test_parse_signed_amount_column(self, parser: SpreadsheetStatementParser, tmp_path):
        # Arrange
        export = tmp_path / "signed.csv"
        export.write_text(SIGNED_EXPORT, encoding="utf-8")

        # Act
        netflix, refund = parser.parse(export).transactions

        # Assert
        assert netflix.type == EntryDirection.DEBIT
        assert netflix.amount == Decimal("649.00")
        assert netflix.category == "Entertainment"
        assert refund.type == EntryDirection.CREDIT
        assert refund.category == "Refunds"

    def test_parse_excel(self, parser: SpreadsheetStatementParser, tmp_path):
        # Arrange
        export = tmp_path / "statement.xlsx"
        pd.DataFrame({
            "Txn Date": ["2024-03-15", "2024-03-18"],
            "Particulars": ["UPI-SWIGGY 8812", "ATM WDL"],
            "Debit": [320.0, 2000.0],
            "Credit": [None, None],
        }).to_excel(export, index=False)

        # Act
        statement = parser.parse(export)

        # Assert
        assert [t.description for t in statement.transactions] == ["UPI-SWIGGY 8812", "ATM WDL"]
        assert statement.transactions[1].amount == Decimal("2000.0")

    def test_missing_header_row(self, parser: SpreadsheetStatementParser, tmp_path):
        export = tmp_path / "notes.csv"
        export.write_text("just,some,cells\n1,2,3\n", encoding="utf-8")

        with pytest.raises(ValueError, match="header row"):
            parser.parse(export)

    def test_missing_file(self, parser: SpreadsheetStatementParser, tmp_path):
        with pytest.raises(FileNotFoundError):
            parser.parse(tmp_path / "missing.csv")

    def test_wrong_extension(self, parser: SpreadsheetStatementParser, tmp_path):
        export = tmp_path / "statement.json"
        export.write_text("{}", encoding="utf-8")

        with pytest.raises(ValueError):
            parser.parse(export)
