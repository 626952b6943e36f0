"""Command-line entrypoint for payroll receipt control."""
from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

from payroll_control.application.archive.use_cases import ArchiveControlUseCase
from payroll_control.application.dto import ReconciliationFilters
from payroll_control.application.use_cases import ReconcilePayrollUseCase, ReconciliationContext
from payroll_control.config import SETTINGS, Settings
from payroll_control.domain.archive.entities import ArchiveFile, ControlArchiveRequest
from payroll_control.domain.errors import PayrollControlError
from payroll_control.domain.services import ReconciliationEngine
from payroll_control.infrastructure.archive.file_repository import FileSystemArchiveRepository
from payroll_control.infrastructure.parsing.utils import ensure_bytes
from payroll_control.infrastructure.repositories.excel_repositories import (
    SpreadsheetComputedRepository,
    SpreadsheetOfficialRepository,
)
from payroll_control.infrastructure.storage.concept_store import load_concepts
from payroll_control.presentation.diff_report import (
    DISCREPANCY_COLUMNS,
    MISSING_COLUMNS,
    SUMMARY_COLUMNS,
    NameResolver,
    comparison_columns,
    comparison_rows,
    discrepancy_rows,
    missing_rows,
    render_csv,
    summary_rows,
)

logger = logging.getLogger("payroll_control")


def _decimal_arg(value: str) -> Decimal:
    try:
        return Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from exc


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Reconcile parsed payroll receipts against the official payroll export")
    parser.add_argument("computed", type=str, help="Path to the consolidated receipts export (CSV or Excel)")
    parser.add_argument("official", type=str, help="Path to the official payroll spreadsheet")
    parser.add_argument("--periodo", type=str, help="Only reconcile this period (MM/YYYY)")
    parser.add_argument("--empresa", type=str, help="Only reconcile receipts of this company")
    parser.add_argument("--official-periodo", type=str, help="Period for official exports without a period column")
    parser.add_argument("--tolerance", type=_decimal_arg, help="Absolute tolerance per concept")
    parser.add_argument("--concepts", type=Path, help="JSON file with [code, label] pairs to check")
    parser.add_argument("--show-ok", action="store_true", help="Include passing receipts in the summary export")
    parser.add_argument("--output-dir", type=Path, help="Write CSV exports to this directory")
    parser.add_argument("--archive", action="store_true", help="Save this control run in the archive")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _settings_for(args: argparse.Namespace) -> Settings:
    settings = SETTINGS
    if args.tolerance is not None:
        settings = replace(settings, tolerance_abs=args.tolerance)
    if args.concepts is not None:
        settings = replace(settings, concepts=load_concepts(args.concepts))
    if args.show_ok:
        settings = replace(settings, show_passing=True)
    return settings


def run(args: argparse.Namespace, settings: Settings) -> int:
    computed_bytes = ensure_bytes(Path(args.computed))
    official_bytes = ensure_bytes(Path(args.official))

    context = ReconciliationContext(
        computed_repository=SpreadsheetComputedRepository(computed_bytes),
        official_repository=SpreadsheetOfficialRepository(
            official_bytes, period_override=args.official_periodo
        ),
        engine=ReconciliationEngine(settings.tolerance_abs),
        concepts=settings.concepts,
        max_workers=settings.fetch_workers,
    )
    filters = ReconciliationFilters(periodo=args.periodo, empresa=args.empresa)
    response = ReconcilePayrollUseCase(context).execute(filters)
    summary = response.summary
    names = NameResolver.from_summary(summary, response.official_names)

    print("Control Summary")
    print("===============")
    stats = summary.stats
    print(f"Comparisons: {stats.comparisons}")
    print(f"Concepts OK: {stats.concept_matches}")
    print(f"Concepts DIF: {stats.concept_mismatches}")
    print(f"OK receipts: {stats.ok_receipts}")
    print(f"DIF receipts: {stats.dif_receipts}")
    print(f"Missing in receipts: {stats.missing}")

    if summary.difs:
        print("\nDiscrepancies detected:")
        for row in discrepancy_rows(summary, names):
            print(
                f"- {row['LEGAJO']} {row['PERIODO']} {row['CODIGO']} {row['CONCEPTO']}: "
                f"oficial {row['OFICIAL']} / calculado {row['CALCULADO']} ({row['DIFERENCIA']} {row['DIRECCION']})"
            )
    else:
        print("\nNo discrepancies detected.")

    outputs = [
        ArchiveFile("diferencias.csv", render_csv(discrepancy_rows(summary, names), DISCREPANCY_COLUMNS)),
        ArchiveFile(
            "resumen.csv",
            render_csv(summary_rows(summary, names, include_ok=settings.show_passing), SUMMARY_COLUMNS),
        ),
        ArchiveFile("faltantes.csv", render_csv(missing_rows(summary, names), MISSING_COLUMNS)),
        ArchiveFile(
            "comparacion.csv",
            render_csv(
                comparison_rows(summary, response.concepts, names),
                comparison_columns(response.concepts),
            ),
        ),
    ]

    if args.output_dir:
        args.output_dir.mkdir(parents=True, exist_ok=True)
        for output in outputs:
            (args.output_dir / output.name).write_bytes(output.content)
        print(f"\nExports written to {args.output_dir}")

    if args.archive:
        request = ControlArchiveRequest(
            run_id=datetime.now().strftime("%Y%m%d_%H%M%S"),
            empresa=args.empresa or "",
            periodo=args.periodo or "",
            summary=summary.to_dict(),
            inputs=[
                ArchiveFile(Path(args.computed).name, computed_bytes),
                ArchiveFile(Path(args.official).name, official_bytes),
            ],
            outputs=outputs,
            official_names=response.official_names,
        )
        saved = ArchiveControlUseCase(FileSystemArchiveRepository(settings.archive_dir)).execute(request)
        print(f"Control archived at {saved.location}")

    return 1 if summary.has_issues() else 0


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    configure_logging(args.verbose)
    try:
        return run(args, _settings_for(args))
    except (PayrollControlError, OSError) as exc:
        logger.error("%s", exc)
        return 2


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
