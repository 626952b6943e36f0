import csv
import io
import json
from pathlib import Path

import pytest

from payroll_control.cli import main

COMPUTED = (
    "LEGAJO,PERIODO,NOMBRE,EMPRESA,ARCHIVO,20540,20590\n"
    "10,01/2024,PEREZ JUAN,ACME,a.pdf,100.00,5\n"
    "2,01/2024,,ACME,b.pdf,50,5\n"
)
OFFICIAL = (
    "LEGAJO;NOMBRE;PERIODO;20540;20590\n"
    "10;PEREZ JUAN;01/2024;100,00;5,00\n"
    "2;GOMEZ ANA;01/2024;52,00;5,00\n"
    "7;LOPEZ;01/2024;1,00;1,00\n"
)


@pytest.fixture
def inputs(tmp_path: Path) -> tuple[Path, Path, Path]:
    computed = tmp_path / "recibos.csv"
    official = tmp_path / "oficial.csv"
    concepts = tmp_path / "concepts.json"
    computed.write_text(COMPUTED, encoding="utf-8")
    official.write_text(OFFICIAL, encoding="utf-8")
    concepts.write_text(json.dumps([["20540", "CONTRIBUCION SOLIDARIA"], ["20590", "SEGURO DE SEPELIO"]]))
    return computed, official, concepts


def read_export(path: Path) -> list[dict[str, str]]:
    return list(csv.DictReader(io.StringIO(path.read_bytes().decode("utf-8-sig"))))


def test_cli_reports_differences_and_writes_exports(inputs, tmp_path: Path, capsys):
    computed, official, concepts = inputs
    out_dir = tmp_path / "out"

    code = main([str(computed), str(official), "--concepts", str(concepts), "--output-dir", str(out_dir), "--show-ok"])

    assert code == 1
    printed = capsys.readouterr().out
    assert "DIF receipts: 1" in printed
    assert "Missing in receipts: 1" in printed

    diffs = read_export(out_dir / "diferencias.csv")
    assert diffs == [
        {
            "LEGAJO": "2",
            "NOMBRE": "GOMEZ ANA",
            "PERIODO": "01/2024",
            "CODIGO": "20540",
            "CONCEPTO": "CONTRIBUCION SOLIDARIA",
            "OFICIAL": "52.00",
            "CALCULADO": "50.00",
            "DIFERENCIA": "2.00",
            "DIRECCION": "a favor",
        }
    ]
    summary = read_export(out_dir / "resumen.csv")
    assert [(row["LEGAJO"], row["ESTADO"]) for row in summary] == [("2", "DIF"), ("10", "OK")]
    missing = read_export(out_dir / "faltantes.csv")
    assert missing == [{"LEGAJO": "7", "NOMBRE": "LOPEZ", "PERIODO": "01/2024"}]
    assert (out_dir / "comparacion.csv").is_file()


def test_cli_clean_run_exits_zero(tmp_path: Path, inputs):
    computed, _, concepts = inputs
    official = tmp_path / "oficial_ok.csv"
    official.write_text(
        "LEGAJO;PERIODO;20540;20590\n10;01/2024;100;5\n2;01/2024;50;5\n", encoding="utf-8"
    )

    assert main([str(computed), str(official), "--concepts", str(concepts)]) == 0


def test_cli_tolerance_option(inputs):
    computed, official, concepts = inputs

    code = main([str(computed), str(official), "--concepts", str(concepts), "--tolerance", "2", "--periodo", "01/2024"])

    # legajo 7 is still missing
    assert code == 1


def test_cli_rejects_negative_tolerance(inputs):
    computed, official, concepts = inputs
    assert main([str(computed), str(official), "--concepts", str(concepts), "--tolerance", "-1"]) == 2


def test_cli_missing_file_is_reported(tmp_path: Path, inputs):
    _, official, concepts = inputs
    assert main([str(tmp_path / "nope.csv"), str(official), "--concepts", str(concepts)]) == 2


def test_cli_rejects_non_numeric_tolerance(inputs):
    computed, official, _ = inputs
    with pytest.raises(SystemExit):
        main([str(computed), str(official), "--tolerance", "abc"])


def test_cli_unreadable_official_file_is_reported(tmp_path: Path, inputs):
    computed, _, concepts = inputs
    broken = tmp_path / "oficial.xlsx"
    broken.write_bytes(b"PK\x03\x04not really a workbook")

    assert main([str(computed), str(broken), "--concepts", str(concepts)]) == 2
