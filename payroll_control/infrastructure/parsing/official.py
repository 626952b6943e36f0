"""Official payroll spreadsheet loader producing canonical official records."""
from __future__ import annotations

import logging
import re
import zipfile
from dataclasses import dataclass, field
from datetime import date, datetime
from io import BytesIO
from pathlib import Path
from typing import Mapping, Sequence

import pandas as pd
from xlrd import XLRDError

from payroll_control.domain.concepts import is_concept_code
from payroll_control.domain.errors import OfficialDatasetError
from payroll_control.domain.keys import build_key
from payroll_control.domain.models import OfficialRecord
from payroll_control.infrastructure.parsing.periods import period_or_raw
from payroll_control.infrastructure.parsing.utils import (
    clean_cell,
    ensure_bytes,
    normalize_header,
    to_two_decimals,
)

logger = logging.getLogger(__name__)

HEADER_SCAN_ROWS = 20

# Labelled columns seen in company exports that carry a tracked concept.
DEFAULT_HEADER_ALIASES: dict[str, str] = {
    "CUOTA SIND. 3% S/REM.": "20540",
    "CONTRIBUCION SOLIDARIA": "20540",
    "CONTR.SOLIDARIA": "20540",
    "CUOTA SEP 1,5% S/REM.": "20590",
    "SEGURO SEPELIO": "20590",
    "SEGURO DE SEPELIO": "20590",
    "SEG.SEPELIO": "20590",
    "APORT. SOLID. MUTUAL 16 DE ABRIL": "20595",
    "CUOTA MUTUAL": "20595",
    "RESGUARDO MUTUAL": "20610",
    "RESGUARDO MUTUAL FLIAR.": "20610",
    "RESGUARDO MUTUAL FAM.": "20620",
    "DESC. MUTUAL": "20620",
}


@dataclass(frozen=True)
class OfficialRow:
    """Spreadsheet row with concept values kept as two-decimal strings."""

    key: str
    valores: dict[str, str] = field(default_factory=dict)
    nombre: str = ""
    cuil: str = ""


@dataclass(frozen=True)
class _Layout:
    header_row: int
    legajo: int | None
    periodo: int | None
    nombre: int | None
    cuil: int | None
    concepts: tuple[tuple[int, str], ...]


def _list_sheets(source: BytesIO, engine: str) -> list[str]:
    xls = pd.ExcelFile(source, engine=engine)
    return xls.sheet_names


def _pick_sheet(source: BytesIO, engine: str, preferred: str | None) -> str | int:
    sheets = _list_sheets(source, engine)
    if not sheets:
        raise OfficialDatasetError("Official workbook has no sheets")
    if not preferred:
        return sheets[0]
    if preferred in sheets:
        return preferred
    lower_map = {name.lower(): name for name in sheets}
    if preferred.lower() in lower_map:
        return lower_map[preferred.lower()]
    for name in sheets:
        if preferred.lower() in name.lower():
            return name
    return sheets[0]


def _excel_engine(raw: bytes) -> str | None:
    if raw[:4] == b"PK\x03\x04":
        return "openpyxl"
    if raw[:4] == b"\xd0\xcf\x11\xe0":
        return "xlrd"
    return None


_DELIMITERS = (";", ",", "\t")


def _sniff_delimiter(lines: Sequence[str]) -> str:
    """Delimiter found on the most lines of the header scan window."""
    sample = [line for line in lines[:HEADER_SCAN_ROWS] if line.strip()]
    best, best_score = ",", (0, 0)
    for candidate in _DELIMITERS:
        score = (
            sum(1 for line in sample if candidate in line),
            sum(line.count(candidate) for line in sample),
        )
        if score > best_score:
            best, best_score = candidate, score
    return best


def _read_csv(raw: bytes) -> pd.DataFrame:
    try:
        text = raw.decode("utf-8-sig")
    except UnicodeDecodeError:
        text = raw.decode("latin-1")
    lines = text.splitlines()
    if lines and lines[0].lower().startswith("sep="):
        delimiter = lines[0][4:5] or _sniff_delimiter(lines[1:])
        lines = lines[1:]
    else:
        delimiter = _sniff_delimiter(lines)
    if not any(line.strip() for line in lines):
        return pd.DataFrame()
    # Title rows have fewer fields than the table below them.
    width = max(line.count(delimiter) + 1 for line in lines)
    return pd.read_csv(
        BytesIO("\n".join(lines).encode("utf-8")),
        sep=delimiter,
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
    )


def _cell_text(value: object) -> str:
    if value is None or (not isinstance(value, str) and pd.isna(value)):
        return ""
    if isinstance(value, (datetime, date)):
        return value.strftime("%Y-%m-%d")
    return str(value)


def read_sheet_raw(source: BytesIO | Path | bytes, sheet_name: str | None = None) -> pd.DataFrame:
    """Read the first (or named) sheet, or a CSV, as text cells.

    Date cells become ``YYYY-MM-DD`` so period columns stay parseable.
    """
    raw = ensure_bytes(source)
    if not raw:
        return pd.DataFrame()
    engine = _excel_engine(raw)
    try:
        if engine is None:
            frame = _read_csv(raw)
        else:
            chosen = _pick_sheet(BytesIO(raw), engine, sheet_name)
            frame = pd.read_excel(
                BytesIO(raw),
                sheet_name=chosen,
                engine=engine,
                dtype=object,
                header=None,
            ).map(_cell_text)
    except OfficialDatasetError:
        raise
    except (ValueError, zipfile.BadZipFile, XLRDError) as exc:
        raise OfficialDatasetError(f"Could not read spreadsheet: {exc}") from exc
    return frame.fillna("")


def _header_code(header: str, aliases: Mapping[str, str]) -> str | None:
    text = header.strip()
    if re.fullmatch(r"\d+\.0+", text):
        text = text.split(".", 1)[0]
    if is_concept_code(text):
        return text
    return aliases.get(normalize_header(text))


def _find_column(headers: Sequence[str], *needles: str, exact: Sequence[str] = ()) -> int | None:
    normalized = [normalize_header(h) for h in headers]
    for idx, value in enumerate(normalized):
        if value in exact:
            return idx
    for idx, value in enumerate(normalized):
        if value and any(needle in value for needle in needles):
            return idx
    return None


def _detect_layout(frame: pd.DataFrame, aliases: Mapping[str, str]) -> _Layout:
    for row_idx in range(min(HEADER_SCAN_ROWS, len(frame))):
        headers = [clean_cell(v) for v in frame.iloc[row_idx].tolist()]
        legajo = _find_column(headers, "legajo")
        cuil = _find_column(headers, "cuil", "dni")
        if legajo is None and cuil is None:
            continue
        concepts = []
        for col_idx, header in enumerate(headers):
            if col_idx in (legajo, cuil):
                continue
            code = _header_code(header, aliases)
            if code:
                concepts.append((col_idx, code))
        return _Layout(
            header_row=row_idx,
            legajo=legajo,
            periodo=_find_column(headers, "periodo", exact=("per",)),
            nombre=_find_column(headers, "apellido", "nombre"),
            cuil=cuil,
            concepts=tuple(concepts),
        )
    raise OfficialDatasetError("No LEGAJO column found in the official spreadsheet")


def _clean_id(value: object) -> str:
    text = clean_cell(value)
    if re.fullmatch(r"\d+\.0+", text):
        return text.split(".", 1)[0]
    return text


def read_official_rows(
    source: BytesIO | Path | bytes,
    period_override: str | None = None,
    header_aliases: Mapping[str, str] | None = None,
    sheet_name: str | None = None,
) -> list[OfficialRow]:
    """Parse an official payroll export.

    ``period_override`` forces the period of every row, for exports that carry
    no period column. ``header_aliases`` maps labelled column headers to
    concept codes; digit-only headers are always taken as concept codes.
    """
    aliases = {
        normalize_header(label): str(code).strip()
        for label, code in (DEFAULT_HEADER_ALIASES if header_aliases is None else header_aliases).items()
    }
    frame = read_sheet_raw(source, sheet_name=sheet_name)
    if frame.empty:
        return []
    layout = _detect_layout(frame, aliases)
    if layout.periodo is None and not period_override:
        raise OfficialDatasetError("No PERIODO column found and no period override given")
    if not layout.concepts:
        logger.warning("Official spreadsheet has no concept columns")

    rows: list[OfficialRow] = []
    skipped = 0
    for _, line in frame.iloc[layout.header_row + 1 :].iterrows():
        cells = line.tolist()
        cuil = _clean_id(cells[layout.cuil]) if layout.cuil is not None else ""
        if layout.legajo is not None:
            legajo = _clean_id(cells[layout.legajo])
        else:
            legajo = re.sub(r"\D", "", cuil)
        if period_override:
            periodo = period_or_raw(period_override)
        else:
            periodo = period_or_raw(clean_cell(cells[layout.periodo]))
        if not legajo or not periodo:
            skipped += 1
            continue
        valores = {code: str(to_two_decimals(cells[col_idx])) for col_idx, code in layout.concepts}
        nombre = clean_cell(cells[layout.nombre]) if layout.nombre is not None else ""
        rows.append(
            OfficialRow(key=build_key(legajo, periodo), valores=valores, nombre=nombre, cuil=cuil)
        )
    if skipped:
        logger.info("Skipped %d official rows without legajo or period", skipped)
    logger.debug("Read %d official rows with concepts %s", len(rows), [c for _, c in layout.concepts])
    return rows


def official_rows_to_records(rows: Sequence[OfficialRow]) -> dict[str, OfficialRecord]:
    """Coerce rows to records; a later row for the same key replaces an earlier one."""
    records: dict[str, OfficialRecord] = {}
    for row in rows:
        if row.key in records:
            logger.debug("Official key %s imported twice; keeping the last row", row.key)
        records[row.key] = OfficialRecord(
            key=row.key,
            nombre=row.nombre,
            values={code: to_two_decimals(value) for code, value in row.valores.items()},
            cuil=row.cuil,
        )
    return records


def read_official_records(
    source: BytesIO | Path | bytes,
    period_override: str | None = None,
    header_aliases: Mapping[str, str] | None = None,
) -> dict[str, OfficialRecord]:
    return official_rows_to_records(
        read_official_rows(source, period_override=period_override, header_aliases=header_aliases)
    )
