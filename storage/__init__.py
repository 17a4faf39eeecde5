"""Run record and artifact collaborators."""
from storage.artifacts import LocalArtifactStore
from storage.base import ArtifactStore, RunStore
from storage.json_store import JsonRunStore

__all__ = [
    "ArtifactStore",
    "RunStore",
    "JsonRunStore",
    "LocalArtifactStore",
]
