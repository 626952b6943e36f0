"""Normalization of payroll periods to ``MM/YYYY``."""
from __future__ import annotations

import re
from datetime import date, datetime, timedelta

MONTHS = {
    "ene": 1, "enero": 1,
    "feb": 2, "febrero": 2,
    "mar": 3, "marzo": 3,
    "abr": 4, "abril": 4,
    "may": 5, "mayo": 5,
    "jun": 6, "junio": 6,
    "jul": 7, "julio": 7,
    "ago": 8, "agosto": 8,
    "sep": 9, "sept": 9, "set": 9, "septiembre": 9, "setiembre": 9,
    "oct": 10, "octubre": 10,
    "nov": 11, "noviembre": 11,
    "dic": 12, "diciembre": 12,
}

EXCEL_EPOCH = date(1899, 12, 30)

_MONTH_YEAR = re.compile(r"^(\d{1,2})[/\-.](\d{2}|\d{4})$")
_YEAR_MONTH = re.compile(r"^(\d{4})[/\-.](\d{1,2})$")
_ISO_DATE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})(?:[ t]\d{1,2}:\d{2}(?::\d{2}(?:\.\d+)?)?)?$")
_DAY_MONTH_YEAR = re.compile(r"^(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{2}|\d{4})$")
_NAME_YEAR = re.compile(r"^([a-záéíóúñ.]{3,12})[ \-_/.]*(\d{2}|\d{4})$")
_YEAR_NAME = re.compile(r"^(\d{4})[ \-_/.]*([a-záéíóúñ.]{3,12})$")


def _full_year(year: str) -> int:
    value = int(year)
    if len(year) == 2:
        return 1900 + value if value >= 80 else 2000 + value
    return value


def _format(month: int, year: int) -> str:
    if 1 <= month <= 12 and 1900 <= year <= 2099:
        return f"{month:02d}/{year}"
    return ""


def _month_from_name(name: str) -> int | None:
    name = name.rstrip(".")
    return MONTHS.get(name)


def normalize_period(value: object) -> str:
    """Return ``MM/YYYY`` or ``""`` when the value cannot be read as a period."""
    if isinstance(value, datetime):
        return _format(value.month, value.year)
    if isinstance(value, date):
        return _format(value.month, value.year)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        text = str(int(value)) if float(value).is_integer() else ""
        if len(text) != 6 and 0 < value < 100000:
            serial = EXCEL_EPOCH + timedelta(days=int(value))
            return _format(serial.month, serial.year)
        value = text

    raw = "" if value is None else str(value).strip()
    if not raw:
        return ""
    s = re.sub(r"\s+", " ", raw.lower())

    match = _MONTH_YEAR.match(s)
    if match:
        result = _format(int(match.group(1)), _full_year(match.group(2)))
        if result:
            return result

    match = _YEAR_MONTH.match(s)
    if match:
        result = _format(int(match.group(2)), int(match.group(1)))
        if result:
            return result

    match = _ISO_DATE.match(s)
    if match:
        result = _format(int(match.group(2)), int(match.group(1)))
        if result:
            return result

    match = _DAY_MONTH_YEAR.match(s)
    if match:
        result = _format(int(match.group(2)), _full_year(match.group(3)))
        if result:
            return result

    match = _NAME_YEAR.match(s)
    if match:
        month = _month_from_name(match.group(1))
        if month:
            result = _format(month, _full_year(match.group(2)))
            if result:
                return result

    match = _YEAR_NAME.match(s)
    if match:
        month = _month_from_name(match.group(2))
        if month:
            result = _format(month, int(match.group(1)))
            if result:
                return result

    digits = re.sub(r"\D", "", s)
    if len(digits) == 6 and digits == s:
        # YYYYMM wins over MMYYYY when both read as valid.
        result = _format(int(digits[4:]), int(digits[:4]))
        if result:
            return result
        result = _format(int(digits[:2]), int(digits[2:]))
        if result:
            return result

    return ""


def period_or_raw(value: object) -> str:
    """Normalized period, or the trimmed raw text when it cannot be parsed."""
    normalized = normalize_period(value)
    if normalized:
        return normalized
    return "" if value is None else str(value).strip()
