"""Identity keys linking receipts to official payroll rows.

A key is ``legajo||periodo``. Parsing is lenient on purpose: receipts carry
hand-entered legajos and periods (including synthetic ones such as
``MANUAL``), so nothing in here raises on malformed input.
"""
from __future__ import annotations

KEY_SEPARATOR = "||"


def _clean(value: object) -> str:
    return "" if value is None else str(value).strip()


def build_key(legajo: object, periodo: object) -> str:
    return f"{_clean(legajo)}{KEY_SEPARATOR}{_clean(periodo)}"


def split_key(key: str) -> tuple[str, str]:
    """Return ``(legajo, periodo)``; both empty when the separator is absent."""
    if not key or KEY_SEPARATOR not in key:
        return "", ""
    legajo, periodo = key.split(KEY_SEPARATOR, 1)
    return legajo, periodo


def _to_int(value: str) -> int:
    value = value.strip()
    if not (value.isascii() and value.isdigit()):
        return 0
    return int(value)


def legajo_ordinal(legajo: object) -> int:
    return _to_int(_clean(legajo))


def period_ordinal(periodo: object) -> int:
    """``MM/YYYY`` as ``YYYYMM``; malformed components count as 0."""
    parts = _clean(periodo).split("/")
    if len(parts) != 2:
        return 0
    month, year = parts
    return _to_int(year) * 100 + _to_int(month)


def receipt_sort_key(legajo: object, periodo: object) -> tuple[int, int]:
    return legajo_ordinal(legajo), period_ordinal(periodo)
