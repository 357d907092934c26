import csv
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd

from financeflow.domain.models import ParsedStatement
from financeflow.normalization.normalizer import coerce_amount
from financeflow.parsers.base import StatementParser
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)


class SpreadsheetStatementParser(StatementParser):
    """
    Parser for CSV/Excel statement exports.

    Net banking exports put a block of account details above the table, so
    the header row is searched for instead of assumed. Two layouts are
    understood:
    - a single signed "Amount" column (optionally with a "Type" column)
    - separate "Withdrawal"/"Deposit" (or "Debit"/"Credit") columns

    Rows come from a structured export, so they get full confidence.
    """

    EXTENSIONS = (".csv", ".xlsx", ".xls")

    # Header aliases, all lower-case
    DATE_COLS = ("date", "txn date", "transaction date", "value date", "value dt")
    DESCRIPTION_COLS = ("description", "narration", "particulars", "details", "remarks")
    AMOUNT_COLS = ("amount", "transaction amount")
    DEBIT_COLS = ("debit", "withdrawal", "withdrawal amt", "withdrawal amt.", "withdrawal amount", "debit amount")
    CREDIT_COLS = ("credit", "deposit", "deposit amt", "deposit amt.", "deposit amount", "credit amount")
    TYPE_COLS = ("type", "dr/cr", "cr/dr")
    PAYEE_COLS = ("payee",)
    CATEGORY_COLS = ("category",)

    HEADER_SEARCH_ROWS = 30
    ROW_CONFIDENCE = 1.0

    def validate_file(self, filepath: Union[str, Path]) -> None:
        """
        Check the file exists, is CSV/Excel, and has a transaction header.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If the file can't be read or no header row is found
        """
        self._check_path(filepath, self.EXTENSIONS)

        df_raw = self._read(filepath)
        if self._find_header_row(df_raw) is None:
            raise ValueError("Could not find a header row with date, description and amount columns")

    def parse(self, filepath: Union[str, Path]) -> ParsedStatement:
        """
        Parse a spreadsheet export.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is invalid
        """
        self.validate_file(filepath)

        df_raw = self._read(filepath)
        header_row = self._find_header_row(df_raw)

        df = df_raw.iloc[header_row + 1:].copy()
        df.columns = [
            str(col).strip().lower() if pd.notna(col) else f"unnamed_{i}"
            for i, col in enumerate(df_raw.iloc[header_row])
        ]

        records = []
        for index, row in df.iterrows():
            try:
                record = self._row_to_record(row)
            except (TypeError, ValueError) as e:
                logger.warning("Skipping row %s due to error: %s", index, e)
                continue
            if record is not None:
                records.append(record)

        transactions = self.normalizer.normalize(records)

        return ParsedStatement(
            transactions=transactions,
            parsing_notes=f"Imported {len(transactions)} transactions from {Path(filepath).name}.",
        )

    def _read(self, filepath: Union[str, Path]) -> pd.DataFrame:
        """Read the whole sheet without a header; preamble rows included."""
        path = Path(filepath)
        try:
            if path.suffix.lower() == ".csv":
                # Preamble lines are shorter than the table, so size the frame up front
                with open(path, newline="", encoding="utf-8-sig") as f:
                    width = max((len(line) for line in csv.reader(f)), default=1)
                return pd.read_csv(
                    path,
                    header=None,
                    names=list(range(width)),
                    dtype=str,
                    skip_blank_lines=False,
                    encoding="utf-8-sig",
                )
            return pd.read_excel(path, header=None)
        except Exception as e:
            raise ValueError(f"Failed to read spreadsheet: {e}")

    def _find_header_row(self, df_raw: pd.DataFrame) -> Optional[int]:
        """
        Find the row index that contains the column headers.

        Returns:
            Row index if found, None otherwise
        """
        for i in range(min(self.HEADER_SEARCH_ROWS, len(df_raw))):
            cells = {str(x).strip().lower() for x in df_raw.iloc[i] if pd.notna(x)}

            has_date = any(col in cells for col in self.DATE_COLS)
            has_description = any(col in cells for col in self.DESCRIPTION_COLS)
            has_amount = any(col in cells for col in self.AMOUNT_COLS) or (
                any(col in cells for col in self.DEBIT_COLS)
                and any(col in cells for col in self.CREDIT_COLS)
            )

            if has_date and has_description and has_amount:
                return i

        return None

    @staticmethod
    def _first(row: pd.Series, names: tuple) -> Any:
        for name in names:
            if name in row.index and pd.notna(row[name]) and str(row[name]).strip() != "":
                return row[name]
        return None

    def _row_to_record(self, row: pd.Series) -> Optional[Dict[str, Any]]:
        raw_date = self._first(row, self.DATE_COLS)
        if raw_date is None:
            # Blank separator rows and closing-balance lines
            return None

        record: Dict[str, Any] = {
            "date": self._iso_date(raw_date),
            "description": self._first(row, self.DESCRIPTION_COLS),
            "payee": self._first(row, self.PAYEE_COLS),
            "category": self._first(row, self.CATEGORY_COLS),
            "confidence": self.ROW_CONFIDENCE,
        }

        amount = self._first(row, self.AMOUNT_COLS)
        if amount is not None:
            record["amount"] = amount
            record["type"] = self._first(row, self.TYPE_COLS)
            return record

        # Exports often fill the unused side with 0.00
        debit = self._non_zero(self._first(row, self.DEBIT_COLS))
        credit = self._non_zero(self._first(row, self.CREDIT_COLS))
        if debit is not None:
            record["amount"] = debit
            record["type"] = "debit"
        elif credit is not None:
            record["amount"] = credit
            record["type"] = "credit"
        else:
            return None

        return record

    @staticmethod
    def _non_zero(value: Any) -> Any:
        if value is None:
            return None
        if coerce_amount(value) == 0:
            return None
        return value

    @staticmethod
    def _iso_date(value: Any) -> str:
        if isinstance(value, pd.Timestamp):
            return value.date().isoformat()

        text = str(value).strip()
        # Already ISO: don't let dayfirst swap month and day
        fmt = "ISO8601" if len(text) >= 10 and text[4] == "-" else None
        parsed = pd.to_datetime(text, dayfirst=fmt is None, format=fmt, errors="coerce")
        if pd.isna(parsed):
            return text
        return parsed.date().isoformat()
