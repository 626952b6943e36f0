"""Conversion of receipt field maps into computed records."""
from __future__ import annotations

import logging
from decimal import Decimal
from io import BytesIO
from pathlib import Path
from typing import Iterable, Mapping

from payroll_control.domain.models import ComputedRecord
from payroll_control.infrastructure.parsing.official import read_sheet_raw
from payroll_control.infrastructure.parsing.periods import period_or_raw
from payroll_control.infrastructure.parsing.utils import clean_cell, parse_amount

logger = logging.getLogger(__name__)

META_FIELDS = {
    "LEGAJO": "legajo",
    "PERIODO": "periodo",
    "NOMBRE": "nombre",
    "CUIL": "cuil",
    "EMPRESA": "empresa",
    "ARCHIVO": "archivo",
}


def _split_fields(fields: Mapping[str, object]) -> tuple[dict[str, str], dict[str, Decimal]]:
    meta: dict[str, str] = {}
    values: dict[str, Decimal] = {}
    for name, raw in fields.items():
        label = str(name).strip().upper()
        if label in META_FIELDS:
            meta[META_FIELDS[label]] = clean_cell(raw)
            continue
        if isinstance(raw, str) and not raw.strip():
            continue
        amount = parse_amount(raw)
        if amount is not None:
            values[str(name).strip()] = amount
    return meta, values


def field_map_to_record(fields: Mapping[str, object]) -> ComputedRecord:
    """Build a record from the flat field map the receipt parser yields.

    Numeric fields land in ``values``; text fields other than the identity
    metadata are ignored.
    """
    meta, values = _split_fields(fields)
    archivo = meta.get("archivo", "")
    return ComputedRecord.create(
        legajo=meta.get("legajo", ""),
        periodo=period_or_raw(meta.get("periodo", "")),
        values=values,
        nombre=meta.get("nombre", ""),
        cuil=meta.get("cuil", ""),
        empresa=meta.get("empresa", ""),
        archivos=(archivo,) if archivo else (),
    )


def consolidate_field_maps(field_maps: Iterable[Mapping[str, object]]) -> list[ComputedRecord]:
    """One record per key; pages of the same receipt have their amounts summed."""
    merged: dict[str, ComputedRecord] = {}
    for fields in field_maps:
        record = field_map_to_record(fields)
        if not record.legajo:
            logger.debug("Skipping receipt row without legajo: %s", record.archivos)
            continue
        current = merged.get(record.key)
        if current is None:
            merged[record.key] = record
            continue
        values = dict(current.values)
        for code, amount in record.values.items():
            values[code] = values.get(code, Decimal("0")) + amount
        archivos = current.archivos + tuple(a for a in record.archivos if a not in current.archivos)
        merged[record.key] = ComputedRecord(
            key=current.key,
            legajo=current.legajo,
            periodo=current.periodo,
            nombre=current.nombre or record.nombre,
            cuil=current.cuil or record.cuil,
            empresa=current.empresa or record.empresa,
            values=values,
            archivos=archivos,
        )
    return list(merged.values())


def read_computed_records(source: BytesIO | Path | bytes) -> list[ComputedRecord]:
    """Load a consolidated receipts export (CSV or workbook, header on the first row)."""
    frame = read_sheet_raw(source)
    if frame.empty:
        return []
    headers = [clean_cell(v) for v in frame.iloc[0].tolist()]
    field_maps = []
    for _, line in frame.iloc[1:].iterrows():
        cells = line.tolist()
        field_maps.append({h: cells[i] for i, h in enumerate(headers) if h})
    records = consolidate_field_maps(field_maps)
    logger.debug("Read %d computed records from %d rows", len(records), len(field_maps))
    return records

