"""Application-level DTOs for payroll receipt control."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Sequence

from payroll_control.domain.concepts import ConceptCode
from payroll_control.domain.keys import build_key, split_key
from payroll_control.domain.models import ComputedRecord, OfficialRecord
from payroll_control.domain.results import ReconciliationSummary


@dataclass(slots=True, frozen=True)
class ReconciliationFilters:
    """Period / company selection applied before the engine runs."""

    periodo: str | None = None
    empresa: str | None = None

    @property
    def filter_key(self) -> str:
        return build_key(self.periodo or "", self.empresa or "")

    def matches(self, record: ComputedRecord) -> bool:
        if self.periodo and record.periodo.strip() != self.periodo.strip():
            return False
        if self.empresa and record.empresa.strip().upper() != self.empresa.strip().upper():
            return False
        return True

    def allows_key(self, key: str) -> bool:
        """Official keys carry no company, so only the period applies."""
        if not self.periodo:
            return True
        return split_key(key)[1].strip() == self.periodo.strip()


@dataclass(slots=True, frozen=True)
class ReconciliationResponse:
    summary: ReconciliationSummary
    filters: ReconciliationFilters
    computed_records: Sequence[ComputedRecord]
    official_by_key: Mapping[str, OfficialRecord]
    official_names: Mapping[str, str]
    concepts: Sequence[ConceptCode] = ()
