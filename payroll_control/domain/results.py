"""Domain-level results of a reconciliation pass."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Iterable, Sequence

from .models import ComputedRecord, Discrepancy, OfficialRecord

STATUS_OK = "OK"
STATUS_DIF = "DIF"


@dataclass(frozen=True)
class ReceiptResult:
    """Verdict for one computed record that has an official counterpart."""

    record: ComputedRecord
    official: OfficialRecord
    discrepancies: tuple[Discrepancy, ...] = ()
    total_official: Decimal = Decimal("0")
    total_computed: Decimal = Decimal("0")

    @property
    def key(self) -> str:
        return self.record.key

    @property
    def legajo(self) -> str:
        return self.record.legajo

    @property
    def periodo(self) -> str:
        return self.record.periodo

    @property
    def has_differences(self) -> bool:
        return bool(self.discrepancies)

    @property
    def status(self) -> str:
        return STATUS_DIF if self.discrepancies else STATUS_OK


@dataclass(frozen=True)
class MissingRecord:
    """Official key with no computed record in the working set."""

    key: str
    legajo: str
    periodo: str


@dataclass(frozen=True)
class ReconciliationStats:
    comparisons: int = 0
    concept_matches: int = 0
    concept_mismatches: int = 0
    ok_receipts: int = 0
    dif_receipts: int = 0
    missing: int = 0


@dataclass(frozen=True)
class ReconciliationSummary:
    stats: ReconciliationStats = field(default_factory=ReconciliationStats)
    oks: Sequence[ReceiptResult] = field(default_factory=tuple)
    difs: Sequence[ReceiptResult] = field(default_factory=tuple)
    missing: Sequence[MissingRecord] = field(default_factory=tuple)
    generated_at: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc), compare=False
    )

    def has_issues(self) -> bool:
        return bool(self.difs or self.missing)

    def reconciled(self) -> Iterable[ReceiptResult]:
        yield from self.oks
        yield from self.difs

    def iter_discrepancies(self) -> Iterable[tuple[ReceiptResult, Discrepancy]]:
        for receipt in self.difs:
            for discrepancy in receipt.discrepancies:
                yield receipt, discrepancy

    def to_dict(self) -> dict[str, Any]:
        """Plain structure used when archiving a control run."""
        return {
            "generated_at": self.generated_at.isoformat(),
            "stats": {
                "comparisons": self.stats.comparisons,
                "concept_matches": self.stats.concept_matches,
                "concept_mismatches": self.stats.concept_mismatches,
                "ok_receipts": self.stats.ok_receipts,
                "dif_receipts": self.stats.dif_receipts,
                "missing": self.stats.missing,
            },
            "oks": [
                {"key": r.key, "legajo": r.legajo, "periodo": r.periodo} for r in self.oks
            ],
            "difs": [
                {
                    "key": r.key,
                    "legajo": r.legajo,
                    "periodo": r.periodo,
                    "difs": [
                        {
                            "codigo": d.code,
                            "label": d.label,
                            "oficial": str(d.official),
                            "calculado": str(d.computed),
                            "delta": str(d.delta),
                            "dir": d.direction,
                        }
                        for d in r.discrepancies
                    ],
                }
                for r in self.difs
            ],
            "missing": [
                {"key": m.key, "legajo": m.legajo, "periodo": m.periodo} for m in self.missing
            ],
        }
