"""Domain models for payroll receipt control.

Computed records come from parsed receipts, official records from the
authoritative payroll spreadsheet. Both are keyed by ``legajo||periodo``.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Mapping

from .concepts import ConceptCode
from .keys import build_key, split_key

DIRECTION_IN_FAVOR = "a favor"
DIRECTION_AGAINST = "en contra"


@dataclass(frozen=True)
class ComputedRecord:
    """One employee's figures for one period, as extracted from receipts."""

    key: str
    legajo: str
    periodo: str
    nombre: str = ""
    cuil: str = ""
    empresa: str = ""
    values: Mapping[str, Decimal] = field(default_factory=dict)
    archivos: tuple[str, ...] = ()

    @classmethod
    def create(
        cls,
        legajo: str,
        periodo: str,
        values: Mapping[str, Decimal] | None = None,
        nombre: str = "",
        cuil: str = "",
        empresa: str = "",
        archivos: Iterable[str] = (),
    ) -> "ComputedRecord":
        legajo = str(legajo or "").strip()
        periodo = str(periodo or "").strip()
        return cls(
            key=build_key(legajo, periodo),
            legajo=legajo,
            periodo=periodo,
            nombre=nombre,
            cuil=cuil,
            empresa=empresa,
            values=dict(values or {}),
            archivos=tuple(archivos),
        )

    def value_for(self, concept: ConceptCode) -> Decimal | None:
        return self.values.get(concept.code)


@dataclass(frozen=True)
class OfficialRecord:
    """One row of the authoritative payroll spreadsheet."""

    key: str
    nombre: str = ""
    values: Mapping[str, Decimal] = field(default_factory=dict)
    cuil: str = ""

    @property
    def legajo(self) -> str:
        return split_key(self.key)[0]

    @property
    def periodo(self) -> str:
        return split_key(self.key)[1]

    def value_for(self, concept: ConceptCode) -> Decimal | None:
        return self.values.get(concept.code)


@dataclass(frozen=True)
class Discrepancy:
    """A concept whose official and computed values differ beyond tolerance."""

    concept: ConceptCode
    official: Decimal
    computed: Decimal
    delta: Decimal
    direction: str

    @property
    def code(self) -> str:
        return self.concept.code

    @property
    def label(self) -> str:
        return self.concept.label
