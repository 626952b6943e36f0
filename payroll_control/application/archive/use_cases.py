"""Archive application use cases."""
from __future__ import annotations

from dataclasses import dataclass

from payroll_control.domain.archive.entities import ControlArchiveRequest, SavedControl
from payroll_control.infrastructure.archive.file_repository import FileSystemArchiveRepository


@dataclass(slots=True)
class ArchiveControlUseCase:
    repository: FileSystemArchiveRepository

    def execute(self, request: ControlArchiveRequest) -> SavedControl:
        return self.repository.save_run(request)

    def list_saved(self, empresa: str | None = None) -> list[SavedControl]:
        return self.repository.list_runs(empresa)

    def delete(self, run_id: str) -> bool:
        return self.repository.delete_run(run_id)
