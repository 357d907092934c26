import json
import pytest

from financeflow.parsers.factory import ParserFactory


@pytest.mark.integration
@pytest.mark.usefixtures("clean_parser_registry")
class TestParserFactoryE2E:

    def test_llm_reply_parsed_through_registry(self, tmp_path, normalizer):
        """Parsers registered from the bundled config parse a real file"""
        # Arrange
        reply = tmp_path / "gemini_reply.json"
        reply.write_text(
            "```json\n" + json.dumps({
                "transactions": [
                    {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER", "amount": -450, "confidence": 0.9},
                    {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER", "amount": -450.004, "confidence": 0.9},
                ],
                "bankName": "HDFC Bank",
            }) + "\n```",
            encoding="utf-8",
        )
        ParserFactory.load_parsers_from_config()

        # Act
        parser = ParserFactory.create_parser('llm-json', normalizer=normalizer)
        statement = parser.parse(reply)

        # Assert
        assert len(statement.transactions) == 1, "Duplicate within tolerance should be dropped"
        assert statement.transactions[0].payee == "ZOMATO ORDER"
        assert statement.bank_name == "HDFC Bank"

    def test_spreadsheet_parsed_through_registry(self, tmp_path, normalizer):
        export = tmp_path / "export.csv"
        export.write_text("Date,Description,Amount\n2024-03-15,UBER TRIP,-210.00\n", encoding="utf-8")
        ParserFactory.load_parsers_from_config()

        statement = ParserFactory.create_parser('spreadsheet', normalizer=normalizer).parse(export)

        assert statement.transactions[0].category == "Transportation"
