"""Interfaces of the run-record and artifact collaborators."""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from run_types import TestRun


class RunStore(ABC):
    """Persistence for run records."""

    @abstractmethod
    def create(self, run: TestRun) -> None:
        """
        Write the initial RUNNING record.

        Args:
            run: Freshly started run
        """
        pass

    @abstractmethod
    def record(self, run_id: str, payload: Dict[str, Any]) -> None:
        """
        Apply one terminal write to a run record.

        Args:
            run_id: Identifier of the run
            payload: Either the completion or the crash shape
        """
        pass

    @abstractmethod
    def get(self, run_id: str) -> Optional[Dict[str, Any]]:
        """Return the stored record, or None."""
        pass


class ArtifactStore(ABC):
    """Storage for the final screenshot of a run."""

    @abstractmethod
    def put_screenshot(self, run_id: str, image: bytes) -> str:
        """
        Store one PNG keyed by run id.

        Returns:
            Reference under which the image can be fetched
        """
        pass
