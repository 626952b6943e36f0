"""Tabular projections and CSV / HTML renderers for control results."""
from __future__ import annotations

import csv
import html
import io
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, Mapping, Sequence

from payroll_control.domain.concepts import ConceptCode
from payroll_control.domain.keys import receipt_sort_key
from payroll_control.domain.results import STATUS_DIF, STATUS_OK, ReconciliationSummary

DISCREPANCY_COLUMNS = [
    "LEGAJO",
    "NOMBRE",
    "PERIODO",
    "CODIGO",
    "CONCEPTO",
    "OFICIAL",
    "CALCULADO",
    "DIFERENCIA",
    "DIRECCION",
]
SUMMARY_COLUMNS = ["LEGAJO", "NOMBRE", "PERIODO", "ESTADO", "#DIFERENCIAS"]
MISSING_COLUMNS = ["LEGAJO", "NOMBRE", "PERIODO"]
COMPARISON_BASE_COLUMNS = ["LEGAJO", "NOMBRE", "PERIODO", "ESTADO"]

TWO_PLACES = Decimal("0.01")


def format_amount(value: Decimal | None) -> str:
    if value is None:
        value = Decimal("0")
    quantized = value.quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    if quantized.is_zero():
        quantized = quantized.copy_abs()
    return f"{quantized:f}"


class NameResolver:
    """Display name for a key: receipt name, then official name, then blank."""

    def __init__(
        self,
        computed_names: Mapping[str, str] | None = None,
        official_names: Mapping[str, str] | None = None,
    ) -> None:
        self._computed = dict(computed_names or {})
        self._official = dict(official_names or {})

    @classmethod
    def from_summary(
        cls, summary: ReconciliationSummary, official_names: Mapping[str, str] | None = None
    ) -> "NameResolver":
        computed = {r.key: r.record.nombre for r in summary.reconciled() if r.record.nombre}
        official = {r.key: r.official.nombre for r in summary.reconciled() if r.official.nombre}
        official.update({k: v for k, v in (official_names or {}).items() if v})
        return cls(computed, official)

    def name_for(self, key: str) -> str:
        return (self._computed.get(key) or self._official.get(key) or "").strip()


def _resolver(summary: ReconciliationSummary, names: NameResolver | None) -> NameResolver:
    return names if names is not None else NameResolver.from_summary(summary)


def discrepancy_rows(
    summary: ReconciliationSummary, names: NameResolver | None = None
) -> list[dict[str, str]]:
    """One row per receipt and diverging concept, in concept declaration order."""
    names = _resolver(summary, names)
    rows: list[dict[str, str]] = []
    for receipt, item in summary.iter_discrepancies():
        rows.append(
            {
                "LEGAJO": receipt.legajo,
                "NOMBRE": names.name_for(receipt.key),
                "PERIODO": receipt.periodo,
                "CODIGO": item.code,
                "CONCEPTO": item.label,
                "OFICIAL": format_amount(item.official),
                "CALCULADO": format_amount(item.computed),
                "DIFERENCIA": format_amount(item.delta),
                "DIRECCION": item.direction,
            }
        )
    return rows


def summary_rows(
    summary: ReconciliationSummary,
    names: NameResolver | None = None,
    include_ok: bool = False,
) -> list[dict[str, str]]:
    """Receipt-level verdicts: DIF receipts first, then OK ones when requested."""
    names = _resolver(summary, names)
    rows = [
        {
            "LEGAJO": receipt.legajo,
            "NOMBRE": names.name_for(receipt.key),
            "PERIODO": receipt.periodo,
            "ESTADO": STATUS_DIF,
            "#DIFERENCIAS": str(len(receipt.discrepancies)),
        }
        for receipt in summary.difs
    ]
    if include_ok:
        rows.extend(
            {
                "LEGAJO": receipt.legajo,
                "NOMBRE": names.name_for(receipt.key),
                "PERIODO": receipt.periodo,
                "ESTADO": STATUS_OK,
                "#DIFERENCIAS": "0",
            }
            for receipt in summary.oks
        )
    return rows


def missing_rows(
    summary: ReconciliationSummary, names: NameResolver | None = None
) -> list[dict[str, str]]:
    names = _resolver(summary, names)
    return [
        {"LEGAJO": item.legajo, "NOMBRE": names.name_for(item.key), "PERIODO": item.periodo}
        for item in summary.missing
    ]


def comparison_columns(concepts: Iterable[ConceptCode]) -> list[str]:
    columns = list(COMPARISON_BASE_COLUMNS)
    for concept in concepts:
        columns.extend(
            [f"{concept.code} OFICIAL", f"{concept.code} CALCULADO", f"{concept.code} DIF"]
        )
    return columns


def comparison_rows(
    summary: ReconciliationSummary,
    concepts: Iterable[ConceptCode],
    names: NameResolver | None = None,
    include_ok: bool = True,
) -> list[dict[str, str]]:
    """Wide export: official, computed and delta per concept, in concept order."""
    names = _resolver(summary, names)
    concept_list = list(concepts)
    receipts = list(summary.difs) + (list(summary.oks) if include_ok else [])
    receipts.sort(key=lambda r: receipt_sort_key(r.legajo, r.periodo))
    rows: list[dict[str, str]] = []
    for receipt in receipts:
        row = {
            "LEGAJO": receipt.legajo,
            "NOMBRE": names.name_for(receipt.key),
            "PERIODO": receipt.periodo,
            "ESTADO": receipt.status,
        }
        for concept in concept_list:
            official = receipt.official.value_for(concept) or Decimal("0")
            computed = receipt.record.value_for(concept) or Decimal("0")
            row[f"{concept.code} OFICIAL"] = format_amount(official)
            row[f"{concept.code} CALCULADO"] = format_amount(computed)
            row[f"{concept.code} DIF"] = format_amount(official - computed)
        rows.append(row)
    return rows


def render_csv(
    rows: Sequence[Mapping[str, str]],
    fieldnames: Sequence[str],
    delimiter: str = ",",
) -> bytes:
    """UTF-8 with a byte-order mark so spreadsheet tools pick up accents."""
    buffer = io.StringIO()
    writer = csv.DictWriter(
        buffer, fieldnames=list(fieldnames), delimiter=delimiter, lineterminator="\r\n"
    )
    writer.writeheader()
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8-sig")


def _table(rows: Sequence[Mapping[str, str]], columns: Sequence[str], empty: str) -> str:
    if not rows:
        return f"<p>{html.escape(empty)}</p>"
    header = "".join(f"<th>{html.escape(col)}</th>" for col in columns)
    body_parts = []
    for row in rows:
        cells = "".join(f"<td>{html.escape(str(row.get(col, '')))}</td>" for col in columns)
        body_parts.append(f"<tr>{cells}</tr>")
    body_html = "".join(body_parts)
    return f"<table><thead><tr>{header}</tr></thead><tbody>{body_html}</tbody></table>"


def render_html(summary: ReconciliationSummary, names: NameResolver | None = None) -> str:
    names = _resolver(summary, names)
    stats = summary.stats
    parts = [
        "<h2>Resumen</h2>",
        (
            f"<p>Comparaciones: {stats.comparisons} &middot; OK: {stats.concept_matches} "
            f"&middot; DIF: {stats.concept_mismatches}</p>"
        ),
        f"<p>Recibos OK: {stats.ok_receipts} &middot; Recibos con diferencias: {stats.dif_receipts} "
        f"&middot; Faltantes: {stats.missing}</p>",
        "<h2>Diferencias</h2>",
        _table(discrepancy_rows(summary, names), DISCREPANCY_COLUMNS, "Sin diferencias"),
        "<h2>Faltantes en recibos</h2>",
        _table(missing_rows(summary, names), MISSING_COLUMNS, "No hay registros faltantes"),
    ]
    return "".join(parts)
