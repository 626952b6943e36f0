"""Domain services implementing the receipt control rules."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Collection, Iterable, Mapping, Sequence

from .concepts import ConceptCode
from .errors import ReconciliationInputError
from .keys import legajo_ordinal, period_ordinal, receipt_sort_key, split_key
from .models import (
    DIRECTION_AGAINST,
    DIRECTION_IN_FAVOR,
    ComputedRecord,
    Discrepancy,
    OfficialRecord,
)
from .results import (
    MissingRecord,
    ReceiptResult,
    ReconciliationStats,
    ReconciliationSummary,
)

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class ConceptComparison:
    concept: ConceptCode
    official: Decimal
    computed: Decimal
    delta: Decimal
    matches: bool

    @property
    def direction(self) -> str | None:
        if self.matches:
            return None
        return DIRECTION_IN_FAVOR if self.delta > 0 else DIRECTION_AGAINST

    def to_discrepancy(self) -> Discrepancy:
        if self.matches:
            raise ValueError(f"Concept {self.concept.code} is within tolerance")
        return Discrepancy(
            concept=self.concept,
            official=self.official,
            computed=self.computed,
            delta=self.delta,
            direction=self.direction,
        )


def validate_tolerance(tolerance: object) -> Decimal:
    if isinstance(tolerance, bool):
        raise ReconciliationInputError(f"Tolerance must be numeric, got {tolerance!r}")
    try:
        value = tolerance if isinstance(tolerance, Decimal) else Decimal(str(tolerance))
    except (InvalidOperation, ValueError, TypeError) as exc:
        raise ReconciliationInputError(f"Tolerance must be numeric, got {tolerance!r}") from exc
    if not value.is_finite():
        raise ReconciliationInputError(f"Tolerance must be finite, got {tolerance!r}")
    if value < 0:
        raise ReconciliationInputError(f"Tolerance must be >= 0, got {tolerance!r}")
    return value


def compare_concept(
    concept: ConceptCode,
    official: Decimal | None,
    computed: Decimal | None,
    tolerance: Decimal,
) -> ConceptComparison:
    """Compare one concept; a missing value on either side counts as zero."""
    official_value = ZERO if official is None else official
    computed_value = ZERO if computed is None else computed
    delta = official_value - computed_value
    return ConceptComparison(
        concept=concept,
        official=official_value,
        computed=computed_value,
        delta=delta,
        matches=abs(delta) <= tolerance,
    )


class ConceptComparator:
    """Applies a shared tolerance to every tracked concept."""

    def __init__(self, tolerance: Decimal | None = None) -> None:
        if tolerance is None:
            tolerance = Decimal("0.01")
        self._tolerance = validate_tolerance(tolerance)

    @property
    def tolerance(self) -> Decimal:
        return self._tolerance

    def compare(
        self, concept: ConceptCode, official: Decimal | None, computed: Decimal | None
    ) -> ConceptComparison:
        return compare_concept(concept, official, computed, self._tolerance)

    def compare_records(
        self,
        concepts: Iterable[ConceptCode],
        computed_record: ComputedRecord,
        official_record: OfficialRecord,
    ) -> list[ConceptComparison]:
        return [
            self.compare(
                concept,
                official_record.value_for(concept),
                computed_record.value_for(concept),
            )
            for concept in concepts
        ]


class ReconciliationEngine:
    """Reconciles computed receipts against the official payroll dataset.

    A pure, in-memory pass: no I/O, no state kept between calls. Filtering is
    the caller's job; the engine works on whatever working set it is given.
    """

    def __init__(self, tolerance: Decimal | None = None) -> None:
        self._comparator = ConceptComparator(tolerance)

    @property
    def tolerance(self) -> Decimal:
        return self._comparator.tolerance

    def reconcile(
        self,
        computed_records: Iterable[ComputedRecord],
        official_by_key: Mapping[str, OfficialRecord],
        concepts: Iterable[ConceptCode],
        official_keys_universe: Collection[str] = (),
    ) -> ReconciliationSummary:
        concept_list = self._validate_concepts(concepts)
        working_set = self._dedupe(computed_records)

        matched = [
            (record, official_by_key[record.key])
            for record in working_set
            if record.key in official_by_key
        ]
        if matched and not concept_list:
            raise ReconciliationInputError(
                "Concept code list is empty but there are receipts to compare"
            )

        comparisons = concept_matches = concept_mismatches = 0
        oks: list[ReceiptResult] = []
        difs: list[ReceiptResult] = []

        for record, official in matched:
            results = self._comparator.compare_records(concept_list, record, official)
            discrepancies = tuple(r.to_discrepancy() for r in results if not r.matches)
            comparisons += len(results)
            concept_mismatches += len(discrepancies)
            concept_matches += len(results) - len(discrepancies)
            receipt = ReceiptResult(
                record=record,
                official=official,
                discrepancies=discrepancies,
                total_official=sum((r.official for r in results), ZERO),
                total_computed=sum((r.computed for r in results), ZERO),
            )
            (difs if discrepancies else oks).append(receipt)

        oks.sort(key=lambda r: receipt_sort_key(r.legajo, r.periodo))
        difs.sort(key=lambda r: receipt_sort_key(r.legajo, r.periodo))
        missing = self._find_missing(working_set, official_keys_universe)

        stats = ReconciliationStats(
            comparisons=comparisons,
            concept_matches=concept_matches,
            concept_mismatches=concept_mismatches,
            ok_receipts=len(oks),
            dif_receipts=len(difs),
            missing=len(missing),
        )
        logger.debug(
            "Reconciled %d receipts (%d OK, %d DIF, %d missing, %d comparisons)",
            len(matched),
            stats.ok_receipts,
            stats.dif_receipts,
            stats.missing,
            stats.comparisons,
        )
        return ReconciliationSummary(
            stats=stats,
            oks=tuple(oks),
            difs=tuple(difs),
            missing=tuple(missing),
        )

    @staticmethod
    def _validate_concepts(concepts: Iterable[ConceptCode]) -> list[ConceptCode]:
        if concepts is None:
            raise ReconciliationInputError("Concept code list is required")
        concept_list = list(concepts)
        for concept in concept_list:
            if not isinstance(concept, ConceptCode):
                raise ReconciliationInputError(f"Expected ConceptCode, got {concept!r}")
        return concept_list

    @staticmethod
    def _dedupe(records: Iterable[ComputedRecord]) -> list[ComputedRecord]:
        by_key: dict[str, ComputedRecord] = {}
        for record in records:
            if record.key in by_key:
                logger.warning("Receipt %s appears more than once; keeping the last one", record.key)
                del by_key[record.key]
            by_key[record.key] = record
        return list(by_key.values())

    @staticmethod
    def _find_missing(
        working_set: Sequence[ComputedRecord], universe: Collection[str]
    ) -> list[MissingRecord]:
        computed_keys = {record.key for record in working_set}
        missing: list[MissingRecord] = []
        for key in sorted(set(universe or ())):
            if key in computed_keys:
                continue
            legajo, periodo = split_key(key)
            missing.append(MissingRecord(key=key, legajo=legajo, periodo=periodo))
        missing.sort(key=lambda m: (legajo_ordinal(m.legajo), period_ordinal(m.periodo)))
        return missing


def reconcile(
    computed_records: Iterable[ComputedRecord],
    official_by_key: Mapping[str, OfficialRecord],
    concepts: Iterable[ConceptCode],
    tolerance: Decimal,
    official_keys_universe: Collection[str] = (),
) -> ReconciliationSummary:
    return ReconciliationEngine(tolerance).reconcile(
        computed_records, official_by_key, concepts, official_keys_universe
    )
