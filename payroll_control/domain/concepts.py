"""Registry of tracked payroll concept codes."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Iterator, Sequence

from .errors import ConceptRegistryError


@dataclass(frozen=True)
class ConceptCode:
    """A payroll line item checked by the comparator."""

    code: str
    label: str


# Order here is the order discrepancies and export columns are reported in.
DEFAULT_CONCEPTS: tuple[tuple[str, str], ...] = (
    ("20540", "CONTRIBUCION SOLIDARIA"),
    ("20590", "SEGURO DE SEPELIO"),
    ("20595", "CUOTA MUTUAL"),
    ("20610", "RESGUARDO MUTUAL"),
    ("20620", "DESC. MUTUAL"),
)


def is_concept_code(value: object) -> bool:
    text = "" if value is None else str(value).strip()
    return bool(text) and text.isascii() and text.isdigit()


class ConceptRegistry:
    """Closed, ordered set of concept codes.

    Iterating yields :class:`ConceptCode` entries in declaration order.
    """

    def __init__(self, concepts: Iterable[ConceptCode]) -> None:
        entries: list[ConceptCode] = []
        seen: set[str] = set()
        for concept in concepts:
            code = str(concept.code).strip()
            if not is_concept_code(code):
                raise ConceptRegistryError(f"Concept code must be numeric, got {concept.code!r}")
            if code in seen:
                raise ConceptRegistryError(f"Duplicate concept code {code}")
            seen.add(code)
            label = str(concept.label or "").strip() or code
            entries.append(ConceptCode(code=code, label=label))
        self._entries: tuple[ConceptCode, ...] = tuple(entries)
        self._by_code = {entry.code: entry for entry in self._entries}

    @classmethod
    def from_pairs(cls, pairs: Iterable[Sequence[str]]) -> "ConceptRegistry":
        concepts = []
        for pair in pairs:
            if len(pair) != 2:
                raise ConceptRegistryError(f"Expected (code, label) pair, got {pair!r}")
            code, label = pair
            concepts.append(ConceptCode(code=str(code), label=str(label or "")))
        return cls(concepts)

    @classmethod
    def default(cls) -> "ConceptRegistry":
        return cls.from_pairs(DEFAULT_CONCEPTS)

    def __iter__(self) -> Iterator[ConceptCode]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, item: object) -> bool:
        if isinstance(item, ConceptCode):
            return self._by_code.get(item.code) == item
        return str(item).strip() in self._by_code

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ConceptRegistry):
            return NotImplemented
        return self._entries == other._entries

    def __repr__(self) -> str:
        return f"ConceptRegistry({', '.join(self.codes())})"

    def get(self, code: str) -> ConceptCode | None:
        return self._by_code.get(str(code).strip())

    def label_for(self, code: str) -> str:
        concept = self.get(code)
        return concept.label if concept else str(code).strip()

    def codes(self) -> list[str]:
        return [entry.code for entry in self._entries]

    def to_pairs(self) -> list[list[str]]:
        return [[entry.code, entry.label] for entry in self._entries]
