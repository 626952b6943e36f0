"""Shared parsing utilities for spreadsheet ingestion."""
from __future__ import annotations

import hashlib
import re
import unicodedata
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from io import BytesIO
from pathlib import Path

TWO_PLACES = Decimal("0.01")

_SPACES = re.compile(r"\s+")
_EMPTY_MARKERS = {"", "-", "—", "NAN", "NONE", "NULL"}


def ensure_bytes(source: BytesIO | Path | bytes | str) -> bytes:
    if isinstance(source, bytes):
        return source
    if isinstance(source, BytesIO):
        return source.getvalue()
    if isinstance(source, (Path, str)):
        return Path(source).read_bytes()
    raise TypeError(f"Unsupported source type: {type(source)!r}")


def compute_file_hash(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def parse_amount(value: object) -> Decimal | None:
    """Parse amounts written as ``1.234,56``, ``1,234.56``, ``(12,00)`` or ``$ 10``.

    Blank cells and dashes are zero; anything else that is not a number
    returns ``None``.
    """
    if value is None:
        return Decimal("0")
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        try:
            result = Decimal(str(value))
        except InvalidOperation:
            return None
        return result if result.is_finite() else None

    s = _SPACES.sub("", str(value))
    if s.upper() in _EMPTY_MARKERS:
        return Decimal("0")
    negative = False
    if s.startswith("(") and s.endswith(")"):
        negative = True
        s = s[1:-1]
    for ch in ("$", "€", "£"):
        s = s.replace(ch, "")
    if s.startswith("-"):
        negative = not negative
        s = s[1:]

    last_dot = s.rfind(".")
    last_comma = s.rfind(",")
    if last_comma > last_dot:
        s = s.replace(".", "").replace(",", ".")
    else:
        s = s.replace(",", "")
    try:
        result = Decimal(s)
    except InvalidOperation:
        return None
    if not result.is_finite():
        return None
    return -result if negative else result


def to_two_decimals(value: object) -> Decimal:
    """Coerce to a two-decimal amount; non-numeric input becomes ``0.00``."""
    parsed = parse_amount(value)
    if parsed is None:
        parsed = Decimal("0")
    return parsed.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


def normalize_header(raw: object) -> str:
    text = "" if raw is None else str(raw)
    text = unicodedata.normalize("NFKD", text.lower())
    text = "".join(ch for ch in text if not unicodedata.combining(ch))
    text = re.sub(r"[^\w\s.%/()-]", "", text)
    return re.sub(r"\s+", " ", text).strip()


def clean_cell(value: object) -> str:
    if value is None:
        return ""
    text = str(value).strip()
    return "" if text.upper() == "NAN" else text
