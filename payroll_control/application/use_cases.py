"""Application services orchestrating the payroll control workflow."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterable, Sequence

from payroll_control.application.dto import ReconciliationFilters, ReconciliationResponse
from payroll_control.domain.concepts import ConceptCode
from payroll_control.domain.models import ComputedRecord, OfficialRecord
from payroll_control.domain.repositories import (
    ComputedRecordRepository,
    OfficialRecordRepository,
)
from payroll_control.domain.services import ReconciliationEngine

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class ReconciliationContext:
    computed_repository: ComputedRecordRepository
    official_repository: OfficialRecordRepository
    engine: ReconciliationEngine
    concepts: Iterable[ConceptCode]
    max_workers: int = 8


class ReconcilePayrollUseCase:
    """Filters the working set, fetches official counterparts, runs the engine.

    Every call starts from the repositories, so it can be re-run on filter
    changes without carrying anything over from a previous run.
    """

    def __init__(self, context: ReconciliationContext) -> None:
        self._context = context

    def execute(self, filters: ReconciliationFilters | None = None) -> ReconciliationResponse:
        filters = filters or ReconciliationFilters()
        computed = [
            record
            for record in self._context.computed_repository.list_computed_records()
            if filters.matches(record)
        ]
        official_records = self._context.official_repository.list_official_records()
        universe = sorted({record.key for record in official_records if filters.allows_key(record.key)})
        official_by_key = self._fetch_counterparts(computed)
        concepts = tuple(self._context.concepts)

        summary = self._context.engine.reconcile(
            computed,
            official_by_key,
            concepts,
            universe,
        )
        logger.info(
            "Control %s: %d OK, %d DIF, %d missing",
            filters.filter_key,
            summary.stats.ok_receipts,
            summary.stats.dif_receipts,
            summary.stats.missing,
        )
        return ReconciliationResponse(
            summary=summary,
            filters=filters,
            computed_records=computed,
            official_by_key=official_by_key,
            official_names={r.key: r.nombre for r in official_records if r.nombre},
            concepts=concepts,
        )

    def _fetch_counterparts(self, records: Sequence[ComputedRecord]) -> dict[str, OfficialRecord]:
        keys = list(dict.fromkeys(record.key for record in records))
        if not keys:
            return {}
        workers = max(1, min(self._context.max_workers, len(keys)))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            fetched = list(executor.map(self._context.official_repository.get_official_record, keys))
        return {key: record for key, record in zip(keys, fetched) if record is not None}
