from datetime import date, datetime
from decimal import Decimal

import pytest

from payroll_control.infrastructure.parsing.periods import normalize_period, period_or_raw
from payroll_control.infrastructure.parsing.utils import (
    clean_cell,
    normalize_header,
    parse_amount,
    to_two_decimals,
)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("1.234,56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("(12,00)", Decimal("-12.00")),
        ("$ 10", Decimal("10")),
        ("-5,5", Decimal("-5.5")),
        ("", Decimal("0")),
        ("-", Decimal("0")),
        (None, Decimal("0")),
        (3, Decimal("3")),
        (2.5, Decimal("2.5")),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["abc", "12a", True, Decimal("NaN")])
def test_parse_amount_rejects_text(raw):
    assert parse_amount(raw) is None


def test_to_two_decimals():
    assert to_two_decimals("2,345") == Decimal("2.35")
    assert to_two_decimals("abc") == Decimal("0.00")
    assert str(to_two_decimals("")) == "0.00"


def test_normalize_header_strips_accents_and_spaces():
    assert normalize_header("  Período ") == "periodo"
    assert normalize_header("APELLIDO   Y  NOMBRE") == "apellido y nombre"


def test_clean_cell():
    assert clean_cell(None) == ""
    assert clean_cell(" nan ") == ""
    assert clean_cell(" 12 ") == "12"


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("01/2024", "01/2024"),
        ("1/2024", "01/2024"),
        ("3-24", "03/2024"),
        ("2024-03", "03/2024"),
        ("15/03/2024", "03/2024"),
        ("2024-03-15", "03/2024"),
        ("2024-01-01 00:00:00", "01/2024"),
        ("marzo 2024", "03/2024"),
        ("Sept-24", "09/2024"),
        ("dic. 2023", "12/2023"),
        ("2024 enero", "01/2024"),
        ("202403", "03/2024"),
        ("032024", "03/2024"),
        (date(2024, 5, 17), "05/2024"),
        (datetime(2023, 11, 2, 10, 30), "11/2023"),
        (45292, "01/2024"),
        (202406, "06/2024"),
    ],
)
def test_normalize_period(raw, expected):
    assert normalize_period(raw) == expected


@pytest.mark.parametrize("raw", ["MANUAL", "", None, "13/2024", "hola"])
def test_normalize_period_unparseable(raw):
    assert normalize_period(raw) == ""


def test_period_or_raw_keeps_unparseable_text():
    assert period_or_raw(" MANUAL ") == "MANUAL"
    assert period_or_raw("2024-01") == "01/2024"
    assert period_or_raw(None) == ""
