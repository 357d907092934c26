"""
Helpers for raw bank statement text.

Statement text usually comes out of a PDF and is either sent to an LLM in
chunks or, when no LLM is available, scanned line by line with regexes.
"""
import re
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Iterable, List, Optional

from financeflow.domain.enums import EntryDirection
from financeflow.domain.models import ParsedStatement, ParsedTransaction
from financeflow.normalization import deduplicate
from financeflow.logging_setup import get_logger

logger = get_logger(__name__)

MAX_CHUNK_SIZE = 50000
MIN_STATEMENT_LENGTH = 100

# Regex line scanning is less reliable than an LLM read
BASIC_PARSE_CONFIDENCE = 0.6

_DATE = r"(?:\d{4}-\d{2}-\d{2}|\d{1,2}[/\-]\d{1,2}[/\-]\d{2,4})"

_NOISE_PATTERNS = [
    re.compile(r"Page \d+ of \d+", re.IGNORECASE),
    re.compile(r"Statement of Account|Account Statement|Transaction History", re.IGNORECASE),
]

STATEMENT_INDICATORS = [
    re.compile(r"balance|transaction|credit|debit|statement", re.IGNORECASE),
    re.compile(r"₹|\brs\.?|\binr\b|\$|amount", re.IGNORECASE),
    re.compile(_DATE),
    re.compile(r"account|bank|branch", re.IGNORECASE),
]

# date, description, amount with paise, optional Dr/Cr marker
_LINE_RE = re.compile(
    rf"^\s*({_DATE})\s+(.+?)\s+(-)?\s*₹?\s*(\d[\d,]*\.\d{{1,2}})(?=\s|$)(?:\s*(Dr|Cr)\b)?",
    re.IGNORECASE,
)

# same, but the amount may be a whole number
_LOOSE_LINE_RE = re.compile(
    rf"^\s*({_DATE})\s+(.+?)\s+(-)?\s*₹?\s*(\d[\d,]*)(?=\s|$)(?:\s*(Dr|Cr)\b)?",
    re.IGNORECASE,
)

_DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d/%m/%y", "%d-%m-%Y", "%d-%m-%y")


def split_into_chunks(text: str, max_chunk_size: int = MAX_CHUNK_SIZE) -> List[str]:
    """
    Split statement text into chunks no larger than `max_chunk_size`,
    breaking only between lines so a transaction is never cut in half.

    A single line longer than the limit becomes its own chunk.
    """
    if max_chunk_size <= 0:
        raise ValueError("max_chunk_size must be positive")

    chunks: List[str] = []
    current = ""

    for line in text.split("\n"):
        if current and len(current) + len(line) + 1 > max_chunk_size:
            if current.strip():
                chunks.append(current.strip())
            current = line
        else:
            current = f"{current}\n{line}" if current else line

    if current.strip():
        chunks.append(current.strip())

    return chunks


def merge_statements(parts: Iterable[ParsedStatement]) -> ParsedStatement:
    """
    Combine per-chunk results into one statement.

    Metadata comes from the first chunk that has it; transactions repeated
    across chunk boundaries are removed.
    """
    merged = ParsedStatement()
    combined: List[ParsedTransaction] = []
    chunk_count = 0

    for part in parts:
        chunk_count += 1
        combined.extend(part.transactions)
        merged.account_number = merged.account_number or part.account_number
        merged.statement_period = merged.statement_period or part.statement_period
        merged.bank_name = merged.bank_name or part.bank_name

    merged.transactions = deduplicate(combined)
    removed = len(combined) - len(merged.transactions)
    merged.parsing_notes = (
        f"Successfully processed {len(merged.transactions)} transactions from "
        f"{chunk_count} document chunks. {removed} duplicates removed."
    )
    return merged


def preprocess_statement_text(text: str) -> str:
    """
    Clean extracted statement text before parsing.

    Drops page counters and statement banners, normalizes date separators
    to '/', rewrites Rs./INR amounts to ₹ and collapses runs of spaces.
    Line breaks are kept.
    """
    lines = []
    for line in text.splitlines():
        for pattern in _NOISE_PATTERNS:
            line = pattern.sub("", line)
        line = re.sub(r"(?<!\d)(\d{1,2})[/\-](\d{1,2})[/\-](\d{2,4})(?!\d)", r"\1/\2/\3", line)
        line = re.sub(r"\bRs\.?\s*(?=\d)", "₹", line, flags=re.IGNORECASE)
        line = re.sub(r"\bINR\s*(?=\d)", "₹", line, flags=re.IGNORECASE)
        line = re.sub(r"\s*₹\s*", " ₹", line)
        line = re.sub(r"[ \t]+", " ", line).strip()
        if line:
            lines.append(line)
    return "\n".join(lines)


def validate_statement_text(text: str) -> None:
    """
    Check that text plausibly came from a bank statement.

    Raises:
        ValueError: If fewer than two statement indicators are present or
            the text is too short
    """
    found = [pattern for pattern in STATEMENT_INDICATORS if pattern.search(text or "")]

    if len(found) < 2:
        raise ValueError("Document does not appear to contain bank transaction data")

    if len(text.strip()) < MIN_STATEMENT_LENGTH:
        raise ValueError("Document appears to be too short for a bank statement")


def to_iso_date(raw: str) -> str:
    """DD/MM/YYYY style dates to YYYY-MM-DD; unknown formats are returned as-is."""
    value = raw.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date().isoformat()
        except ValueError:
            continue
    return value


def _match_line(line: str) -> Optional[re.Match]:
    return _LINE_RE.match(line) or _LOOSE_LINE_RE.match(line)


def extract_basic_transactions(text: str) -> List[ParsedTransaction]:
    """
    Regex fallback: one transaction per line of the form
    "<date> <description> <amount> [Dr|Cr]".

    A Dr/Cr marker decides the direction; without one a leading minus means
    debit and anything else credit. Lines with a zero amount are ignored.
    """
    transactions: List[ParsedTransaction] = []

    for line in text.splitlines():
        match = _match_line(line)
        if not match:
            continue

        raw_date, description, minus, raw_amount, marker = match.groups()
        try:
            amount = Decimal(raw_amount.replace(",", ""))
        except InvalidOperation:
            logger.debug("Unreadable amount %r in line %r", raw_amount, line)
            continue

        if amount == 0:
            continue

        if marker:
            direction = EntryDirection.DEBIT if marker.lower() == "dr" else EntryDirection.CREDIT
        else:
            direction = EntryDirection.DEBIT if minus else EntryDirection.CREDIT

        transactions.append(ParsedTransaction(
            date=to_iso_date(raw_date),
            description=description.strip(),
            amount=amount,
            type=direction,
            confidence=BASIC_PARSE_CONFIDENCE,
        ))

    return transactions
