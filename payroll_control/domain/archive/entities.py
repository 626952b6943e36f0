"""Archive domain entities for saved control runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping, Sequence

from payroll_control.domain.keys import build_key


@dataclass(frozen=True)
class ArchiveFile:
    name: str
    content: bytes


@dataclass(frozen=True)
class ControlArchiveRequest:
    run_id: str
    empresa: str
    periodo: str
    summary: Mapping[str, Any]
    inputs: Sequence[ArchiveFile] = ()
    outputs: Sequence[ArchiveFile] = ()
    official_names: Mapping[str, str] = field(default_factory=dict)

    @property
    def filter_key(self) -> str:
        return build_key(self.periodo, self.empresa)


@dataclass(frozen=True)
class SavedControl:
    run_id: str
    empresa: str
    periodo: str
    filter_key: str
    created_at: str
    location: Path
    stats: Mapping[str, int] = field(default_factory=dict)


def iter_all_files(request: ControlArchiveRequest) -> Iterable[ArchiveFile]:
    yield from request.inputs
    yield from request.outputs
