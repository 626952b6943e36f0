"""Storage helpers for the tracked concept code list."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Sequence

from payroll_control.domain.concepts import DEFAULT_CONCEPTS, ConceptRegistry
from payroll_control.domain.errors import ConceptRegistryError

logger = logging.getLogger(__name__)

DEFAULT_PATH = Path(__file__).resolve().parents[3] / "concepts_override.json"


def _normalize_pairs(raw: Any) -> list[list[str]]:
    """Accept ``[[code, label], ...]`` or ``{code: label}``; drop blank codes."""
    if isinstance(raw, dict):
        items: Iterable[Any] = raw.items()
    elif isinstance(raw, list):
        items = raw
    else:
        return []
    normalized: list[list[str]] = []
    for item in items:
        if not isinstance(item, (list, tuple)) or len(item) != 2:
            continue
        code, label = item
        code_str = "" if code is None else str(code).strip()
        if not code_str:
            continue
        label_str = "" if label is None else str(label).strip()
        normalized.append([code_str, label_str])
    return normalized


def load_concepts(path: Path | None = None) -> ConceptRegistry:
    """Concept list from the override file, or the defaults when it is absent or unreadable."""
    override_path = path or DEFAULT_PATH
    if not override_path.exists():
        return ConceptRegistry.from_pairs(DEFAULT_CONCEPTS)
    try:
        data = json.loads(override_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning("Concept override %s is not valid JSON; using defaults", override_path)
        return ConceptRegistry.from_pairs(DEFAULT_CONCEPTS)
    pairs = _normalize_pairs(data)
    if not pairs:
        return ConceptRegistry.from_pairs(DEFAULT_CONCEPTS)
    try:
        return ConceptRegistry.from_pairs(pairs)
    except ConceptRegistryError as exc:
        logger.warning("Concept override %s rejected (%s); using defaults", override_path, exc)
        return ConceptRegistry.from_pairs(DEFAULT_CONCEPTS)


def save_concepts(pairs: Sequence[Sequence[str]], path: Path | None = None) -> ConceptRegistry:
    """Validate and persist a concept list; returns the registry that was saved."""
    override_path = path or DEFAULT_PATH
    registry = ConceptRegistry.from_pairs(_normalize_pairs(list(pairs)))
    override_path.write_text(
        json.dumps(registry.to_pairs(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return registry
