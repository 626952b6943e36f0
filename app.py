"""Streamlit front-end for payroll receipt control."""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Sequence

import pandas as pd
import streamlit as st

from payroll_control import (
    ReconcilePayrollUseCase,
    ReconciliationContext,
    ReconciliationEngine,
    ReconciliationFilters,
    SpreadsheetComputedRepository,
    SpreadsheetOfficialRepository,
)
from payroll_control.application.archive.use_cases import ArchiveControlUseCase
from payroll_control.application.dto import ReconciliationResponse
from payroll_control.config import SETTINGS
from payroll_control.domain.archive.entities import ArchiveFile, ControlArchiveRequest
from payroll_control.domain.concepts import ConceptCode, ConceptRegistry
from payroll_control.domain.errors import PayrollControlError
from payroll_control.domain.models import ComputedRecord
from payroll_control.infrastructure.archive.file_repository import FileSystemArchiveRepository
from payroll_control.infrastructure.storage import concept_store
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
    render_html,
    summary_rows,
)


st.set_page_config(page_title="Control de recibos", layout="wide")
st.title("Control de recibos de sueldo")


def load_concepts_dataframe() -> pd.DataFrame:
    registry = concept_store.load_concepts()
    return pd.DataFrame(
        [{"code": c.code, "label": c.label, "delete": False} for c in registry],
        columns=["code", "label", "delete"],
    )


def records_to_dataframe(records: Sequence[ComputedRecord], registry: Sequence[ConceptCode]) -> pd.DataFrame:
    return pd.DataFrame(
        [
            {
                "legajo": r.legajo,
                "periodo": r.periodo,
                "nombre": r.nombre,
                "empresa": r.empresa,
                **{c.code: r.values.get(c.code) for c in registry},
                "archivos": ", ".join(r.archivos),
            }
            for r in records
        ]
    )


def run_control(
    computed_bytes: bytes,
    official_bytes: bytes,
    filters: ReconciliationFilters,
    tolerance: Decimal,
    official_period: str | None,
    concepts: ConceptRegistry,
) -> ReconciliationResponse:
    context = ReconciliationContext(
        computed_repository=SpreadsheetComputedRepository(computed_bytes),
        official_repository=SpreadsheetOfficialRepository(official_bytes, period_override=official_period),
        engine=ReconciliationEngine(tolerance),
        concepts=concepts,
        max_workers=SETTINGS.fetch_workers,
    )
    return ReconcilePayrollUseCase(context).execute(filters)


if "view" not in st.session_state:
    st.session_state["view"] = "control"
if "result" not in st.session_state:
    st.session_state["result"] = None

archive = ArchiveControlUseCase(FileSystemArchiveRepository(SETTINGS.archive_dir))

with st.sidebar:
    st.header("Controles guardados")
    company_filter = st.text_input("Filtrar por empresa", key="archive_empresa")
    saved_runs = archive.list_saved(company_filter or None)
    if not saved_runs:
        st.caption("Sin controles guardados")
    for run in saved_runs:
        with st.expander(f"{run.run_id} · {run.empresa or '-'} · {run.periodo or '-'}"):
            st.write(
                f"OK: {run.stats.get('ok_receipts', 0)} · DIF: {run.stats.get('dif_receipts', 0)} "
                f"· Faltantes: {run.stats.get('missing', 0)}"
            )
            if st.button("Eliminar", key=f"delete_run_{run.run_id}"):
                archive.delete(run.run_id)
                st.rerun()


if st.session_state["view"] == "control":
    col1, col2 = st.columns(2)
    with col1:
        computed_file = st.file_uploader("Recibos consolidados", type=["csv", "xls", "xlsx"])
    with col2:
        official_file = st.file_uploader("Planilla oficial", type=["csv", "xls", "xlsx"])

    col3, col4, col5, col6 = st.columns(4)
    with col3:
        periodo = st.text_input("Período (MM/YYYY)", key="filter_periodo")
    with col4:
        empresa = st.text_input("Empresa", key="filter_empresa")
    with col5:
        tolerance_text = st.text_input("Tolerancia", value=str(SETTINGS.tolerance_abs))
    with col6:
        official_period = st.text_input("Período de la planilla (si no tiene columna)")

    st.subheader("Conceptos controlados")
    with st.expander("Editar códigos y etiquetas", expanded=False):
        concepts_df = load_concepts_dataframe()
        edited_df = st.data_editor(concepts_df, num_rows="dynamic", hide_index=True, key="concepts_editor")
        col_ops1, col_ops2 = st.columns([1, 1])
        with col_ops1:
            del_selected = st.button("Eliminar seleccionados", key="delete_concepts_btn")
        with col_ops2:
            save_concepts = st.button("Guardar", key="save_concepts_btn")

        def edited_pairs(frame: pd.DataFrame, drop_selected: bool) -> list[list[str]]:
            frame = frame.copy()
            if drop_selected and "delete" in frame.columns:
                frame = frame[~frame["delete"].astype(bool)]
            return [
                [str(row["code"]).strip(), str(row["label"] or "").strip()]
                for _, row in frame.iterrows()
                if str(row["code"] or "").strip()
            ]

        if del_selected or save_concepts:
            try:
                concept_store.save_concepts(edited_pairs(edited_df, drop_selected=del_selected))
            except PayrollControlError as exc:
                st.error(str(exc))
            else:
                st.success("Conceptos guardados")
                st.rerun()

    run_btn = st.button("Ejecutar control", disabled=not (computed_file and official_file))
    if run_btn and computed_file and official_file:
        computed_bytes = computed_file.read()
        official_bytes = official_file.read()
        filters = ReconciliationFilters(periodo=periodo or None, empresa=empresa or None)
        try:
            with st.spinner("Controlando..."):
                response = run_control(
                    computed_bytes,
                    official_bytes,
                    filters,
                    Decimal(tolerance_text.strip() or "0"),
                    official_period or None,
                    concept_store.load_concepts(),
                )
        except (PayrollControlError, ArithmeticError) as exc:
            st.error(f"No se pudo ejecutar el control: {exc}")
        else:
            st.session_state["result"] = {
                "response": response,
                "inputs": [
                    ArchiveFile(computed_file.name, computed_bytes),
                    ArchiveFile(official_file.name, official_bytes),
                ],
            }
            st.session_state["view"] = "results"
            st.rerun()
else:
    back_clicked = st.button("← Volver", key="back_to_control")
    if back_clicked:
        st.session_state["view"] = "control"
        st.session_state["result"] = None
        st.rerun()

    result = st.session_state.get("result")
    if not result:
        st.info("No hay resultados. Cargá los archivos y ejecutá el control.")
    else:
        response: ReconciliationResponse = result["response"]
        summary = response.summary
        registry = response.concepts
        names = NameResolver.from_summary(summary, response.official_names)

        st.subheader("Resumen")
        stats = summary.stats
        metrics = st.columns(6)
        metrics[0].metric("Comparaciones", stats.comparisons)
        metrics[1].metric("Conceptos OK", stats.concept_matches)
        metrics[2].metric("Conceptos DIF", stats.concept_mismatches)
        metrics[3].metric("Recibos OK", stats.ok_receipts)
        metrics[4].metric("Recibos DIF", stats.dif_receipts)
        metrics[5].metric("Faltantes", stats.missing)

        show_ok = st.checkbox("Mostrar recibos sin diferencias", value=SETTINGS.show_passing)
        summary_export = render_csv(summary_rows(summary, names, include_ok=show_ok), SUMMARY_COLUMNS)
        diff_export = render_csv(discrepancy_rows(summary, names), DISCREPANCY_COLUMNS)
        missing_export = render_csv(missing_rows(summary, names), MISSING_COLUMNS)
        comparison_export = render_csv(
            comparison_rows(summary, registry, names), comparison_columns(registry)
        )

        tabs = st.tabs(["Resumen", "Diferencias", "Faltantes", "Recibos"])
        with tabs[0]:
            st.dataframe(pd.DataFrame(summary_rows(summary, names, include_ok=show_ok), columns=SUMMARY_COLUMNS))
            st.download_button("Descargar resumen CSV", data=summary_export, file_name="resumen.csv", mime="text/csv")
        with tabs[1]:
            for receipt in summary.difs:
                title = f"{receipt.legajo} - {names.name_for(receipt.key) or 'N/A'} - {receipt.periodo}"
                with st.expander(f"{title} ({len(receipt.discrepancies)})"):
                    st.dataframe(
                        pd.DataFrame(
                            [row for row in discrepancy_rows(summary, names) if row["LEGAJO"] == receipt.legajo and row["PERIODO"] == receipt.periodo],
                            columns=DISCREPANCY_COLUMNS,
                        )
                    )
            st.download_button("Descargar diferencias CSV", data=diff_export, file_name="diferencias.csv", mime="text/csv")
            st.download_button("Descargar comparación CSV", data=comparison_export, file_name="comparacion.csv", mime="text/csv")
            st.download_button(
                "Descargar HTML",
                data=render_html(summary, names).encode("utf-8"),
                file_name="control.html",
                mime="text/html",
            )
        with tabs[2]:
            st.dataframe(pd.DataFrame(missing_rows(summary, names), columns=MISSING_COLUMNS))
            st.download_button("Descargar faltantes CSV", data=missing_export, file_name="faltantes.csv", mime="text/csv")
        with tabs[3]:
            st.dataframe(records_to_dataframe(response.computed_records, registry))

        if st.button("Guardar control", key="save_control_btn"):
            request = ControlArchiveRequest(
                run_id=datetime.now().strftime("%Y%m%d_%H%M%S"),
                empresa=response.filters.empresa or "",
                periodo=response.filters.periodo or "",
                summary=summary.to_dict(),
                inputs=result["inputs"],
                outputs=[
                    ArchiveFile("resumen.csv", summary_export),
                    ArchiveFile("diferencias.csv", diff_export),
                    ArchiveFile("faltantes.csv", missing_export),
                    ArchiveFile("comparacion.csv", comparison_export),
                ],
                official_names=response.official_names,
            )
            saved = archive.execute(request)
            st.success(f"Control guardado: {saved.run_id}")
