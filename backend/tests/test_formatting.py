import hashlib
from decimal import Decimal

import pytest

from donation_gateway.services import formatting


@pytest.mark.parametrize("currency", ["JPY", "krw", "VND", "CLP", "XOF"])
def test_zero_decimal_currencies_keep_whole_units(currency):
    assert formatting.to_major_units(1000, currency) == Decimal(1000)


@pytest.mark.parametrize("currency", ["USD", "eur", "GBP", "CAD"])
def test_other_currencies_divide_by_100(currency):
    assert formatting.to_major_units(1000, currency) == Decimal("10.00")


@pytest.mark.parametrize(
    "minor,currency,expected",
    [
        (500, "usd", "$5.00"),
        (123456, "USD", "$1,234.56"),
        (1000, "JPY", "¥1,000"),
        (50000, "krw", "₩50,000"),
        (2500, "EUR", "€25.00"),
        (1999, "CHF", "CHF 19.99"),
        (1000, "CLP", "CLP 1,000"),
    ],
)
def test_format_amount(minor, currency, expected):
    assert formatting.format_amount(minor, currency) == expected


@pytest.mark.parametrize(
    "name,email,expected",
    [
        ("Jane Doe", "x@example.com", "Jane D."),
        ("  maria  ", None, "Maria"),
        ("JOHN ronald reuel TOLKIEN", None, "John T."),
        (None, "jane.doe@example.com", "Jane D."),
        ("", "bob_smith-jr@example.com", "Bob J."),
        (None, "kim@example.com", "Kim"),
        (None, "12345@example.com", "Someone"),
        (None, None, "Someone"),
        ("   ", "", "Someone"),
    ],
)
def test_display_name(name, email, expected):
    assert formatting.display_name(name, email) == expected


def test_donation_text():
    assert formatting.donation_text("Jane D.", "$5.00", False) == "Jane D. just gave $5.00"
    assert (
        formatting.donation_text("Jane D.", "$20.00", True)
        == "Jane D. became a Partner ($20.00/mo)"
    )


def test_sanitize_text_strips_control_chars_and_caps():
    assert formatting.sanitize_text("  pray\x00 for\x1f us\x7f  ") == "pray for us"
    assert len(formatting.sanitize_text("x" * 500)) == 140
    assert formatting.sanitize_text(None) == ""


def test_hash_email_is_deterministic_and_one_way():
    h = formatting.hash_email("Jane@Example.com")
    assert h == formatting.hash_email(" jane@example.com ")
    assert h == hashlib.sha256(b"jane@example.com").hexdigest()
    assert "jane" not in h


def test_initials():
    assert formatting.initials("jane mary doe smith") == "JMD"
    assert formatting.initials(None) == ""


def test_is_excluded_case_insensitive():
    excluded = frozenset({"staff@example.org"})
    assert formatting.is_excluded("STAFF@example.ORG", excluded)
    assert formatting.is_excluded(" staff@example.org ", excluded)
    assert not formatting.is_excluded("staff@example.org.evil", excluded)
    assert not formatting.is_excluded(None, excluded)
