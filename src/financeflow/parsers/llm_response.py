import json
import re
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from financeflow.domain.models import ParsedStatement
from financeflow.parsers.base import StatementParser
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

# Flat JSON objects; transaction objects never nest
_OBJECT_RE = re.compile(r"\{[^{}]*\}")

_FENCE_RE = re.compile(r"```(?:json)?\s*", re.IGNORECASE)

METADATA_FIELDS = {
    "account_number": ("accountNumber", "account_number"),
    "statement_period": ("statementPeriod", "statement_period"),
    "bank_name": ("bankName", "bank_name"),
}


def clean_json_response(response: str) -> str:
    """
    Strip an LLM reply down to its JSON payload.

    Removes markdown code fences and any prose before the first '{' (or '[')
    and after the matching last '}' (or ']'). A truncated reply keeps its
    tail so complete objects can still be recovered from it.
    """
    cleaned = _FENCE_RE.sub("", (response or "").strip()).strip()

    starts = [i for i in (cleaned.find("{"), cleaned.find("[")) if i >= 0]
    if not starts:
        return cleaned

    start = min(starts)
    closer = "}" if cleaned[start] == "{" else "]"
    end = cleaned.rfind(closer)

    if end > start:
        return cleaned[start:end + 1]
    return cleaned[start:]


def extract_field(payload: str, field_name: str) -> Optional[str]:
    """Pull a top-level string field out of (possibly broken) JSON text."""
    match = re.search(rf'"{re.escape(field_name)}"\s*:\s*"([^"]*)"', payload, re.IGNORECASE)
    return match.group(1) if match else None


def recover_transactions(payload: str) -> List[Dict[str, Any]]:
    """
    Salvage complete transaction objects from malformed or truncated JSON.

    Every flat {...} object that parses and carries a date, a description
    and an amount is kept; anything cut off mid-object is dropped.
    """
    recovered = []
    for match in _OBJECT_RE.finditer(payload):
        try:
            candidate = json.loads(match.group(0))
        except ValueError:
            continue
        if not isinstance(candidate, dict):
            continue
        if candidate.get("date") and candidate.get("description") and "amount" in candidate:
            recovered.append(candidate)
    return recovered


class LlmResponseParser(StatementParser):
    """
    Parser for the JSON an LLM returns when asked to read a bank statement.

    Expected shape (camelCase, as the model emits it):
        {
            "transactions": [
                {"date": "2024-03-15", "description": "UPI-ZOMATO ORDER",
                 "amount": 450.0, "type": "debit", "confidence": 0.95}
            ],
            "accountNumber": "4521",
            "statementPeriod": "01/03/2024 - 31/03/2024",
            "bankName": "HDFC Bank"
        }

    Malformed or truncated replies are salvaged where possible instead of
    failing the whole import.

    Example:
        parser = LlmResponseParser()
        statement = parser.parse_response(reply_text)
    """

    EXTENSIONS = (".json", ".txt")

    def validate_file(self, filepath: Union[str, Path]) -> None:
        """Check the reply file exists and has a text/JSON extension."""
        self._check_path(filepath, self.EXTENSIONS)

    def parse(self, filepath: Union[str, Path]) -> ParsedStatement:
        """
        Parse a saved LLM reply.

        Raises:
            FileNotFoundError: If the file doesn't exist
            ValueError: If the file has the wrong extension or can't be read
        """
        self.validate_file(filepath)

        try:
            response = Path(filepath).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise ValueError(f"Could not read response file: {e}")

        return self.parse_response(response)

    def parse_response(self, response: str) -> ParsedStatement:
        """Parse raw reply text into a normalized statement."""
        payload = clean_json_response(response)

        try:
            data = json.loads(payload)
        except ValueError as e:
            logger.warning("LLM reply is not valid JSON (%s), attempting recovery", e)
            return self._recover(payload)

        if isinstance(data, list):
            data = {"transactions": data}

        if not isinstance(data, dict):
            return ParsedStatement(
                parsing_notes="No valid transaction data found in the response."
            )

        records = data.get("transactions")
        if not isinstance(records, list):
            records = []

        statement = self._build(records, data)
        notes = self._notes(len(statement.transactions), len(records))
        if data.get("parsingNotes"):
            notes = f"{data['parsingNotes']} {notes}"
        statement.parsing_notes = notes
        return statement

    def _recover(self, payload: str) -> ParsedStatement:
        records = recover_transactions(payload)

        if not records:
            return ParsedStatement(
                parsing_notes="No valid transaction data found in the response."
            )

        metadata = {
            camel: extract_field(payload, camel)
            for camel, _ in METADATA_FIELDS.values()
        }
        statement = self._build(records, metadata)
        statement.parsing_notes = (
            f"Recovered {len(statement.transactions)} transactions from a malformed response."
        )
        logger.info("Recovered %d transactions from malformed JSON", len(statement.transactions))
        return statement

    def _build(self, records: List[Any], data: Dict[str, Any]) -> ParsedStatement:
        metadata = {}
        for field_name, keys in METADATA_FIELDS.items():
            value = next((data.get(key) for key in keys if data.get(key)), None)
            metadata[field_name] = str(value) if value is not None else None

        return ParsedStatement(
            transactions=self.normalizer.normalize(records),
            **metadata,
        )

    @staticmethod
    def _notes(processed: int, total: int) -> str:
        notes = f"Successfully processed {processed} transactions"
        if processed != total:
            notes += f" (filtered from {total} total)"
        return notes + "."
