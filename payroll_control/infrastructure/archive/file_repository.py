"""Filesystem repository for saved control runs."""
from __future__ import annotations

import json
import logging
import re
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from payroll_control.domain.archive.entities import (
    ArchiveFile,
    ControlArchiveRequest,
    SavedControl,
    iter_all_files,
)

logger = logging.getLogger(__name__)

MANIFEST_NAME = "manifest.json"
SUMMARY_NAME = "summary.json"


def _normalize_run_id(run_id: str) -> str:
    if not run_id:
        return "run"
    digits = re.findall(r"\d", run_id)
    if len(digits) >= 14:
        date_part = "".join(digits[:8])
        time_part = "".join(digits[8:14])
        rest = "".join(digits[14:])
        normalized = f"{date_part}_{time_part}"
        if rest:
            normalized += rest
        return normalized
    sanitized = re.sub(r"[^0-9A-Za-z_-]+", "", run_id.strip())
    return sanitized or "run"


class FileSystemArchiveRepository:
    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def save_run(self, request: ControlArchiveRequest) -> SavedControl:
        normalized_run_id = _normalize_run_id(request.run_id)
        run_dir = self._root / normalized_run_id
        run_dir.mkdir(parents=True, exist_ok=True)

        for file in iter_all_files(request):
            self._write_file(run_dir, file)

        (run_dir / SUMMARY_NAME).write_text(
            json.dumps(request.summary, ensure_ascii=False, indent=2), encoding="utf-8"
        )

        created_at = datetime.now(timezone.utc).isoformat()
        stats = dict(request.summary.get("stats", {}))
        manifest = {
            "run_id": normalized_run_id,
            "empresa": request.empresa,
            "periodo": request.periodo,
            "filter_key": request.filter_key,
            "created_at": created_at,
            "stats": stats,
            "official_names": dict(request.official_names),
            "inputs": [self._manifest_entry(file) for file in request.inputs],
            "outputs": [self._manifest_entry(file) for file in request.outputs],
        }
        (run_dir / MANIFEST_NAME).write_text(
            json.dumps(manifest, ensure_ascii=False, indent=2), encoding="utf-8"
        )
        logger.info("Saved control run %s for %s", normalized_run_id, request.filter_key)

        return SavedControl(
            run_id=normalized_run_id,
            empresa=request.empresa,
            periodo=request.periodo,
            filter_key=request.filter_key,
            created_at=created_at,
            location=run_dir,
            stats=stats,
        )

    def list_runs(self, empresa: str | None = None) -> list[SavedControl]:
        """Saved runs, newest first, optionally restricted to one company."""
        if not self._root.is_dir():
            return []
        wanted = empresa.strip().upper() if empresa else None
        runs: list[SavedControl] = []
        for manifest_path in self._root.glob(f"*/{MANIFEST_NAME}"):
            manifest = self._read_json(manifest_path)
            if manifest is None:
                continue
            if wanted and str(manifest.get("empresa", "")).strip().upper() != wanted:
                continue
            runs.append(
                SavedControl(
                    run_id=str(manifest.get("run_id", manifest_path.parent.name)),
                    empresa=str(manifest.get("empresa", "")),
                    periodo=str(manifest.get("periodo", "")),
                    filter_key=str(manifest.get("filter_key", "")),
                    created_at=str(manifest.get("created_at", "")),
                    location=manifest_path.parent,
                    stats=dict(manifest.get("stats", {})),
                )
            )
        runs.sort(key=lambda run: (run.created_at, run.run_id), reverse=True)
        return runs

    def load_summary(self, run_id: str) -> dict[str, Any] | None:
        return self._read_json(self._root / _normalize_run_id(run_id) / SUMMARY_NAME)

    def delete_run(self, run_id: str) -> bool:
        run_dir = self._root / _normalize_run_id(run_id)
        if not run_dir.is_dir():
            return False
        shutil.rmtree(run_dir)
        logger.info("Deleted control run %s", run_dir.name)
        return True

    @staticmethod
    def _read_json(path: Path) -> dict[str, Any] | None:
        if not path.is_file():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable archive file %s", path)
            return None

    @staticmethod
    def _write_file(run_dir: Path, archive_file: ArchiveFile) -> None:
        target = run_dir / archive_file.name
        target.write_bytes(archive_file.content)

    @staticmethod
    def _manifest_entry(archive_file: ArchiveFile) -> dict[str, object]:
        return {"name": archive_file.name, "bytes": len(archive_file.content)}
