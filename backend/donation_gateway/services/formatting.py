"""Display helpers shared by the webhook forwarder and the public feed."""
import hashlib
import re
from decimal import Decimal
from typing import Iterable, Optional

ZERO_DECIMAL_CURRENCIES = frozenset(
    {
        "BIF", "CLP", "DJF", "GNF", "JPY", "KMF", "KRW", "MGA",
        "PYG", "RWF", "UGX", "VND", "VUV", "XAF", "XOF", "XPF",
    }
)

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "KRW": "₩",
    "CAD": "CA$",
    "AUD": "A$",
}

FALLBACK_NAME = "Someone"
TEXT_LIMIT = 140

_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f]")
_NAME_SEPARATORS = re.compile(r"[\s._+-]+")


def to_major_units(minor: int, currency: str) -> Decimal:
    if (currency or "").upper() in ZERO_DECIMAL_CURRENCIES:
        return Decimal(minor)
    return Decimal(minor) / 100


def format_amount(minor: int, currency: str) -> str:
    """Render a minor-unit amount, e.g. ``(1000, "usd") -> "$10.00"``."""
    code = (currency or "USD").upper()
    value = to_major_units(minor, code)
    if code in ZERO_DECIMAL_CURRENCIES:
        number = f"{value:,.0f}"
    else:
        number = f"{value:,.2f}"
    symbol = CURRENCY_SYMBOLS.get(code)
    if symbol:
        return f"{symbol}{number}"
    return f"{code} {number}"


def display_name(name: Optional[str], email: Optional[str] = None) -> str:
    """First name plus last initial, never the full legal name."""
    raw = (name or "").strip()
    if not raw and email:
        raw = email.strip().split("@")[0]
    tokens = [t for t in _NAME_SEPARATORS.split(raw) if t and not t.isdigit()]
    if not tokens:
        return FALLBACK_NAME
    first = tokens[0][:1].upper() + tokens[0][1:].lower()
    if len(tokens) > 1:
        return f"{first} {tokens[-1][:1].upper()}."
    return first


def initials(name: Optional[str]) -> str:
    return "".join(w[0] for w in (name or "").split() if w).upper()[:3]


def donation_text(name: str, amount: str, recurring: bool) -> str:
    if recurring:
        return f"{name} became a Partner ({amount}/mo)"
    return f"{name} just gave {amount}"


def sanitize_text(value: Optional[str], limit: int = TEXT_LIMIT) -> str:
    return _CONTROL_CHARS.sub("", str(value or "")).strip()[:limit]


def hash_email(email: Optional[str]) -> str:
    return hashlib.sha256((email or "").strip().lower().encode("utf-8")).hexdigest()


def is_excluded(email: Optional[str], excluded: Iterable[str]) -> bool:
    if not email:
        return False
    return email.strip().lower() in excluded
