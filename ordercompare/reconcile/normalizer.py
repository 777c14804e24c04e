"""Value normalizer — canonical text keys, amount parsing and tolerant equality."""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import NamedTuple, Optional

from rapidfuzz import fuzz

from ordercompare.schemas.common import MatchQuality

_WS_RE = re.compile(r"\s+")
_PUNCT_RE = re.compile(r"[^\w\s]|_")
_FIELD_NAME_RE = re.compile(r"[\s_\-.]+")

CURRENCY_SYMBOLS: dict[str, str] = {
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₩": "KRW",
    "₽": "RUB",
}

CURRENCY_CODES: frozenset[str] = frozenset({
    "AED", "AUD", "BRL", "CAD", "CHF", "CNY", "DKK", "EUR", "GBP", "HKD",
    "INR", "JPY", "KRW", "MXN", "NOK", "NZD", "PLN", "RUB", "SAR", "SEK",
    "SGD", "TRY", "USD", "ZAR",
})

# [currency] [sign] [currency] digits [)] [currency | unit word]
_AMOUNT_RE = re.compile(
    r"""^
    (?P<pre>[A-Za-z]{3}|[^\w\s.,+\-()'])?\s*
    (?P<sign>[-+(])?\s*
    (?P<pre2>[^\w\s.,+\-()'])?\s*
    (?P<digits>\d[\d,.'\s]*?)
    \s*\)?\s*
    (?P<post>[A-Za-z]{1,10}\.?|[^\w\s.,+\-()']|%)?
    $""",
    re.VERBOSE,
)
_THOUSANDS_COMMA_RE = re.compile(r"\d{1,3}(,\d{3})+")
_THOUSANDS_DOT_RE = re.compile(r"\d{1,3}(\.\d{3})+")


class Amount(NamedTuple):
    """A numeric value read from display text, with its currency and unit if any."""
    value: Decimal
    currency: Optional[str]
    unit: Optional[str] = None


# ---------------------------------------------------------------------------
# Text keys
# ---------------------------------------------------------------------------

def normalize_text(value: str | None) -> str:
    """Case-fold and collapse whitespace."""
    if value is None:
        return ""
    return _WS_RE.sub(" ", value).strip().casefold()


def normalize_field_name(name: str) -> str:
    """Key for header field labels: 'Total Tax', 'total_tax' and 'totalTax' agree."""
    return _FIELD_NAME_RE.sub("", name).casefold()


def description_key(description: str | None) -> str:
    """Case-folded, punctuation-stripped, whitespace-collapsed description."""
    if not description:
        return ""
    stripped = _PUNCT_RE.sub(" ", description.casefold())
    return _WS_RE.sub(" ", stripped).strip()


def description_similarity(a: str, b: str) -> float:
    """Similarity of two description keys on a 0.0 - 1.0 scale."""
    if a == b:
        return 1.0
    if not a or not b:
        return 0.0
    return fuzz.token_sort_ratio(a, b) / 100.0


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

def _currency_of(marker: str | None) -> tuple[bool, Optional[str]]:
    """Return (accepted, currency) for a marker found around the digits."""
    if not marker:
        return True, None
    if marker in CURRENCY_SYMBOLS:
        return True, CURRENCY_SYMBOLS[marker]
    upper = marker.rstrip(".").upper()
    if upper in CURRENCY_CODES:
        return True, upper
    return False, None


def _unit_of(word: str) -> str:
    """Canonical unit word: 'Days', 'day' and 'day.' agree, as do 'pcs' and 'pc'."""
    unit = word.rstrip(".").casefold()
    if len(unit) > 2 and unit.endswith("s"):
        unit = unit[:-1]
    return unit


def _to_decimal(digits: str) -> Optional[Decimal]:
    digits = digits.replace(" ", "").replace("'", "")
    if "," in digits and "." in digits:
        if digits.rfind(",") > digits.rfind("."):
            digits = digits.replace(".", "").replace(",", ".")
        else:
            digits = digits.replace(",", "")
    elif "," in digits:
        if _THOUSANDS_COMMA_RE.fullmatch(digits):
            digits = digits.replace(",", "")
        else:
            digits = digits.replace(",", ".")
    elif digits.count(".") > 1:
        if not _THOUSANDS_DOT_RE.fullmatch(digits):
            return None
        digits = digits.replace(".", "")
    try:
        return Decimal(digits)
    except InvalidOperation:
        return None


def parse_amount(value: str | None) -> Optional[Amount]:
    """Read a number out of display text such as '$1,234.50' or '12 pcs'.

    Returns None when the text is not a plain amount (dates, references,
    free text). Unit words after the number are ignored; currency symbols
    and ISO codes are kept so that '$100' and '100' can be told apart.
    """
    if value is None:
        return None
    text = value.strip()
    if not text:
        return None
    m = _AMOUNT_RE.match(text)
    if not m:
        return None

    pre = m.group("pre") or m.group("pre2")
    if m.group("pre") and m.group("pre2"):
        return None
    ok_pre, currency = _currency_of(pre)
    if not ok_pre:
        return None

    unit: Optional[str] = None
    post = m.group("post")
    if post == "%":
        unit = "%"
    elif post:
        _, post_currency = _currency_of(post)
        if post_currency is not None:
            if currency is not None and currency != post_currency:
                return None
            currency = post_currency
        elif post.rstrip(".").isalpha():
            unit = _unit_of(post)
        else:
            return None

    number = _to_decimal(m.group("digits"))
    if number is None:
        return None
    if m.group("sign") in ("-", "("):
        number = -number
    return Amount(number, currency, unit)


def within_tolerance(a: Decimal, b: Decimal, tolerance: float) -> bool:
    """True when a and b differ by less than `tolerance` relative to the smaller magnitude."""
    if a == b:
        return True
    smallest = min(abs(a), abs(b))
    if smallest == 0:
        return False
    return abs(a - b) / smallest < Decimal(str(tolerance))


def compare_values(
    a: str | None,
    b: str | None,
    tolerance: float,
) -> Optional[MatchQuality]:
    """Compare two display values.

    Returns EXACT when they are textually equal (case/whitespace-insensitive)
    or numerically equal, FUZZY when numerically equal within `tolerance`,
    and None when they differ. A value present on one side only differs, as
    do amounts in different currencies or different units ("10 kg" vs "10 lb").
    A unit written on one side only is ignored.
    """
    if a is None or b is None:
        return MatchQuality.EXACT if a is None and b is None else None
    if normalize_text(a) == normalize_text(b):
        return MatchQuality.EXACT

    amount_a = parse_amount(a)
    amount_b = parse_amount(b)
    if amount_a is None or amount_b is None:
        return None
    if amount_a.currency != amount_b.currency:
        return None
    if amount_a.unit and amount_b.unit and amount_a.unit != amount_b.unit:
        return None
    if amount_a.value == amount_b.value:
        return MatchQuality.EXACT
    if within_tolerance(amount_a.value, amount_b.value, tolerance):
        return MatchQuality.FUZZY
    return None


def describe_difference(po_value: str, so_value: str, tolerance: float) -> str:
    """Short reason explaining why two present values do not match."""
    amount_po = parse_amount(po_value)
    amount_so = parse_amount(so_value)
    if amount_po is None or amount_so is None:
        return "values differ"

    same_number = within_tolerance(amount_po.value, amount_so.value, tolerance)
    if same_number and amount_po.currency != amount_so.currency:
        if amount_po.currency is None or amount_so.currency is None:
            return "one side missing currency unit"
        return f"currency differs ({amount_po.currency} vs {amount_so.currency})"
    if same_number and amount_po.unit and amount_so.unit and amount_po.unit != amount_so.unit:
        return f"unit differs ({amount_po.unit} vs {amount_so.unit})"
    return f"numeric values differ (PO {po_value.strip()} vs SO {so_value.strip()})"
