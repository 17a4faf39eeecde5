"""Local filesystem artifact store."""
from __future__ import annotations

from pathlib import Path

from exceptions import StorageError
from storage.base import ArtifactStore


class LocalArtifactStore(ArtifactStore):
    """Writes ``<run id>.png`` and hands back a ``file://`` URI."""

    def __init__(self, screenshots_folder: Path):
        self.screenshots_folder = Path(screenshots_folder)

    def put_screenshot(self, run_id: str, image: bytes) -> str:
        target = self.screenshots_folder / f"{run_id}.png"
        try:
            self.screenshots_folder.mkdir(parents=True, exist_ok=True)
            target.write_bytes(image)
        except OSError as exc:
            raise StorageError(f"Failed to store screenshot: {exc}", {"run_id": run_id}) from exc
        return target.resolve().as_uri()
