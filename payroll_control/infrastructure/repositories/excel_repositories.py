"""Spreadsheet-backed repositories for computed and official payroll data."""
from __future__ import annotations

from io import BytesIO
from pathlib import Path
from typing import Iterable, Mapping, Sequence

from payroll_control.domain.models import ComputedRecord, OfficialRecord
from payroll_control.domain.repositories import (
    ComputedRecordRepository,
    OfficialRecordRepository,
)
from payroll_control.infrastructure.parsing.computed import read_computed_records
from payroll_control.infrastructure.parsing.official import read_official_records
from payroll_control.infrastructure.parsing.utils import ensure_bytes


class SpreadsheetComputedRepository(ComputedRecordRepository):
    def __init__(self, source: BytesIO | Path | bytes) -> None:
        self._source = ensure_bytes(source)

    def list_computed_records(self) -> Sequence[ComputedRecord]:
        return read_computed_records(BytesIO(self._source))


class InMemoryOfficialRepository(OfficialRecordRepository):
    def __init__(self, records: Mapping[str, OfficialRecord] | Iterable[OfficialRecord]) -> None:
        if isinstance(records, Mapping):
            self._records = dict(records)
        else:
            self._records = {record.key: record for record in records}

    def list_official_records(self) -> Sequence[OfficialRecord]:
        return list(self._records.values())

    def get_official_record(self, key: str) -> OfficialRecord | None:
        return self._records.get(key)


class SpreadsheetOfficialRepository(InMemoryOfficialRepository):
    """Official records parsed once from an uploaded spreadsheet."""

    def __init__(
        self,
        source: BytesIO | Path | bytes,
        period_override: str | None = None,
        header_aliases: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(
            read_official_records(
                BytesIO(ensure_bytes(source)),
                period_override=period_override,
                header_aliases=header_aliases,
            )
        )
