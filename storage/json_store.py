"""JSON file run store."""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from exceptions import StorageError
from run_types import TestRun
from storage.base import RunStore


class JsonRunStore(RunStore):
    """One ``<run id>.json`` file per run, replaced atomically on each write."""

    def __init__(self, runs_folder: Path):
        self.runs_folder = Path(runs_folder)

    def _path(self, run_id: str) -> Path:
        return self.runs_folder / f"{run_id}.json"

    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        path = self._path(run_id)
        if not path.exists():
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            raise StorageError(f"Failed to read run record: {exc}", {"run_id": run_id}) from exc

    def create(self, run: TestRun) -> None:
        self._write(run.id, run.to_dict())

    def record(self, run_id: str, payload: Dict[str, Any]) -> None:
        existing = self.get(run_id) or {"id": run_id}
        existing.update(payload)
        self._write(run_id, existing)

    def _write(self, run_id: str, data: Dict[str, Any]) -> None:
        try:
            self.runs_folder.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{run_id}-", suffix=".json", dir=self.runs_folder
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(data, f, indent=2)
                os.replace(tmp_name, self._path(run_id))
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Failed to write run record: {exc}", {"run_id": run_id}) from exc
