import csv
import io
from decimal import Decimal

from payroll_control.domain.concepts import ConceptRegistry
from payroll_control.domain.keys import build_key
from payroll_control.domain.models import ComputedRecord, OfficialRecord
from payroll_control.domain.services import ReconciliationEngine
from payroll_control.presentation.diff_report import (
    DISCREPANCY_COLUMNS,
    SUMMARY_COLUMNS,
    NameResolver,
    comparison_columns,
    comparison_rows,
    discrepancy_rows,
    format_amount,
    missing_rows,
    render_csv,
    render_html,
    summary_rows,
)

CONCEPTS = ConceptRegistry.from_pairs(
    [("20590", "SEGURO DE SEPELIO"), ("20540", "CONTRIBUCION SOLIDARIA")]
)


def build_summary():
    records = [
        ComputedRecord.create("10", "01/2024", {"20540": Decimal("5"), "20590": Decimal("2")}, nombre="PÉREZ"),
        ComputedRecord.create("2", "01/2024", {"20540": Decimal("5"), "20590": Decimal("3")}),
    ]
    officials = {
        build_key("10", "01/2024"): OfficialRecord(
            key=build_key("10", "01/2024"),
            nombre="PEREZ JUAN",
            values={"20540": Decimal("4"), "20590": Decimal("3")},
        ),
        build_key("2", "01/2024"): OfficialRecord(
            key=build_key("2", "01/2024"),
            nombre="GOMEZ ANA",
            values={"20540": Decimal("5"), "20590": Decimal("3")},
        ),
    }
    return ReconciliationEngine().reconcile(
        records, officials, CONCEPTS, ["2||01/2024", "10||01/2024", "8||01/2024"]
    )


def read_csv(payload: bytes) -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(payload.decode("utf-8-sig"))))


def test_format_amount_rounds_half_up_and_drops_negative_zero():
    assert format_amount(Decimal("1.005")) == "1.01"
    assert format_amount(Decimal("-0.001")) == "0.00"
    assert format_amount(None) == "0.00"
    assert format_amount(Decimal("-2.5")) == "-2.50"


def test_name_resolver_fallback_chain():
    names = NameResolver({"a": "RECIBO"}, {"a": "OFICIAL", "b": "OFICIAL B", "c": ""})
    assert names.name_for("a") == "RECIBO"
    assert names.name_for("b") == "OFICIAL B"
    assert names.name_for("c") == ""
    assert names.name_for("zzz") == ""


def test_discrepancy_rows_follow_concept_order():
    rows = discrepancy_rows(build_summary())

    assert [row["CODIGO"] for row in rows] == ["20590", "20540"]
    first, second = rows
    assert first["LEGAJO"] == "10"
    assert first["NOMBRE"] == "PÉREZ"
    assert first["OFICIAL"] == "3.00"
    assert first["CALCULADO"] == "2.00"
    assert first["DIFERENCIA"] == "1.00"
    assert first["DIRECCION"] == "a favor"
    assert second["CONCEPTO"] == "CONTRIBUCION SOLIDARIA"
    assert second["DIFERENCIA"] == "-1.00"
    assert second["DIRECCION"] == "en contra"


def test_summary_rows_hide_ok_by_default():
    summary = build_summary()

    rows = summary_rows(summary)
    assert rows == [
        {"LEGAJO": "10", "NOMBRE": "PÉREZ", "PERIODO": "01/2024", "ESTADO": "DIF", "#DIFERENCIAS": "2"}
    ]

    with_ok = summary_rows(summary, include_ok=True)
    assert [row["ESTADO"] for row in with_ok] == ["DIF", "OK"]
    assert with_ok[1]["NOMBRE"] == "GOMEZ ANA"


def test_missing_rows_use_official_names():
    summary = build_summary()
    names = NameResolver.from_summary(summary, {"8||01/2024": "LOPEZ"})

    assert missing_rows(summary, names) == [{"LEGAJO": "8", "NOMBRE": "LOPEZ", "PERIODO": "01/2024"}]
    assert missing_rows(summary) == [{"LEGAJO": "8", "NOMBRE": "", "PERIODO": "01/2024"}]


def test_render_csv_has_bom_and_header():
    payload = render_csv(discrepancy_rows(build_summary()), DISCREPANCY_COLUMNS)

    assert payload.startswith(b"\xef\xbb\xbf")
    rows = read_csv(payload)
    assert list(rows[0].keys()) == DISCREPANCY_COLUMNS
    assert rows[0]["NOMBRE"] == "PÉREZ"


def test_render_csv_writes_header_for_empty_rows():
    payload = render_csv([], SUMMARY_COLUMNS)
    assert payload.decode("utf-8-sig") == "LEGAJO,NOMBRE,PERIODO,ESTADO,#DIFERENCIAS\r\n"


def test_comparison_export_is_wide_and_sorted():
    summary = build_summary()
    columns = comparison_columns(CONCEPTS)
    rows = comparison_rows(summary, CONCEPTS)

    assert columns[4:7] == ["20590 OFICIAL", "20590 CALCULADO", "20590 DIF"]
    assert [row["LEGAJO"] for row in rows] == ["2", "10"]
    assert rows[1]["20540 DIF"] == "-1.00"
    assert rows[0]["ESTADO"] == "OK"
    assert [row["LEGAJO"] for row in comparison_rows(summary, CONCEPTS, include_ok=False)] == ["10"]


def test_render_html_escapes_names():
    summary = ReconciliationEngine().reconcile(
        [ComputedRecord.create("1", "01/2024", {"20540": Decimal("1")}, nombre="<b>X</b>")],
        {"1||01/2024": OfficialRecord(key="1||01/2024", values={"20540": Decimal("2")})},
        CONCEPTS,
    )

    document = render_html(summary)
    assert "&lt;b&gt;X&lt;/b&gt;" in document
    assert "<b>X</b>" not in document
    assert "No hay registros faltantes" in document
