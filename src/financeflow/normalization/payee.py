"""Best-effort payee names from raw bank statement descriptions."""
import re

UNKNOWN_PAYEE = "Unknown"

# Transaction channel markers banks put in front of the counterparty,
# possibly stacked ("UPI-NEFT-ACME")
PAYEE_PREFIX_RE = re.compile(
    r"^\s*(?:(?:UPI-|NEFT-|RTGS-|ATM-|CARD-|UPI Payment to |ECOM Purchase )\s*)+",
    re.IGNORECASE,
)

# Everything from a trailing direction marker or bank name onwards
PAYEE_SUFFIX_RE = re.compile(
    r"\s+(Dr|Cr|DEBIT|CREDIT|AXIS BANK|YES BANK|HDFC BANK|SBI|CANARA BANK|ICICI|State Bank)\b.*$",
    re.IGNORECASE,
)

# Embedded amounts such as "Rs. 1,250.00", "INR 99" or "₹450"
CURRENCY_AMOUNT_RE = re.compile(r"(?<!\w)(Rs\.?|INR|₹)\s*[\d,]+(?:\.\d+)?", re.IGNORECASE)

# Separators like "-" or "|" left standing between words
PUNCTUATION_TOKEN_RE = re.compile(r"^[^\w&]+$")

MAX_PAYEE_TOKENS = 2


def extract_payee(description: str) -> str:
    """
    Derive a short, human-readable payee from a statement description.

    Strips currency amounts, channel prefixes and the trailing Dr/Cr or
    bank-name run, drops stray punctuation, then keeps the first two words.
    Running it on its own output gives the same output.

    Args:
        description: Raw description, e.g. "UPI Payment to Zomato Rs. 450.00 AXIS BANK"

    Returns:
        Payee name ("Zomato" for the example), or "Unknown" if nothing is left

    Example:
        >>> extract_payee("UPI-SWIGGY INSTAMART 9912 Dr")
        'SWIGGY INSTAMART'
    """
    if not description:
        return UNKNOWN_PAYEE

    cleaned = str(description)
    previous = None
    # Stripping one piece can expose another
    while cleaned != previous:
        previous = cleaned
        cleaned = CURRENCY_AMOUNT_RE.sub("", cleaned)
        cleaned = PAYEE_PREFIX_RE.sub("", cleaned)
        cleaned = PAYEE_SUFFIX_RE.sub("", cleaned)
        cleaned = " ".join(t for t in cleaned.split() if not PUNCTUATION_TOKEN_RE.match(t))

    tokens = cleaned.split()
    return " ".join(tokens[:MAX_PAYEE_TOKENS]) or UNKNOWN_PAYEE
