"""Repository interfaces anchoring the domain layer."""
from __future__ import annotations

from typing import Protocol, Sequence

from .models import ComputedRecord, OfficialRecord


class ComputedRecordRepository(Protocol):
    """Provides records consolidated from parsed receipts."""

    def list_computed_records(self) -> Sequence[ComputedRecord]:
        ...


class OfficialRecordRepository(Protocol):
    """Provides rows of the most recent official spreadsheet import."""

    def list_official_records(self) -> Sequence[OfficialRecord]:
        ...

    def get_official_record(self, key: str) -> OfficialRecord | None:
        ...
