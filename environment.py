"""Host cleanup that runs before every browser launch.

A warm host may still carry browser processes and temp files from a run that
was killed mid-flight. ``reset()`` terminates those processes and scrubs the
temp directory so each invocation starts from the same state.
"""
from __future__ import annotations

import logging
import os
import shutil
import signal
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Sequence

from config import CleanupConfig


@dataclass
class CleanupReport:
    killed_pids: List[int] = field(default_factory=list)
    removed_paths: List[Path] = field(default_factory=list)


class EnvironmentReset(ABC):
    """Narrow interface over OS-facing cleanup."""

    @abstractmethod
    def reset(self) -> CleanupReport:
        """Idempotent; must never raise."""
        pass


class NoopEnvironmentReset(EnvironmentReset):
    """For hosts without a process table we can scan, and for tests."""

    def reset(self) -> CleanupReport:
        return CleanupReport()


class ProcEnvironmentReset(EnvironmentReset):
    """Linux cleanup reading ``/proc`` directly, no shell commands."""

    def __init__(
        self,
        process_markers: Sequence[str] = ("chromium", "headless_shell"),
        temp_dir: Path = Path("/tmp"),
        temp_patterns: Sequence[str] = ("*.png", "playwright*", "core.*"),
        proc_root: Path = Path("/proc"),
        kill: Optional[Callable[[int, int], None]] = None,
        own_pid: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.process_markers = list(process_markers)
        self.temp_dir = Path(temp_dir)
        self.temp_patterns = list(temp_patterns)
        self.proc_root = Path(proc_root)
        self.kill = kill or os.kill
        self.own_pid = own_pid if own_pid is not None else os.getpid()
        self.logger = logger or logging.getLogger("environment")

    def reset(self) -> CleanupReport:
        report = CleanupReport()
        report.killed_pids = self._kill_orphans()
        report.removed_paths = self._scrub_temp()
        self.logger.info(
            f"Environment cleaned: {len(report.killed_pids)} process(es) killed, "
            f"{len(report.removed_paths)} temp path(s) removed"
        )
        return report

    def _iter_pids(self) -> Iterable[int]:
        try:
            entries = list(self.proc_root.iterdir())
        except OSError as e:
            self.logger.warning(f"Process cleanup skipped: {e}")
            return []
        return sorted(int(entry.name) for entry in entries if entry.name.isdigit())

    def _read_cmdline(self, pid: int) -> Optional[str]:
        try:
            raw = (self.proc_root / str(pid) / "cmdline").read_bytes()
        except OSError:
            # Process exited between listing and reading.
            return None
        return raw.replace(b"\x00", b" ").decode("utf-8", errors="replace")

    def _is_orphan_browser(self, cmdline: str) -> bool:
        return any(marker in cmdline for marker in self.process_markers)

    def _kill_orphans(self) -> List[int]:
        killed: List[int] = []
        for pid in self._iter_pids():
            if pid == self.own_pid:
                continue
            cmdline = self._read_cmdline(pid)
            if not cmdline or not self._is_orphan_browser(cmdline):
                continue
            try:
                self.kill(pid, signal.SIGKILL)
            except ProcessLookupError:
                continue
            except OSError as e:
                self.logger.warning(f"Could not kill process {pid}: {e}")
                continue
            self.logger.info(f"Killed orphaned browser process {pid}")
            killed.append(pid)
        return killed

    def _scrub_temp(self) -> List[Path]:
        removed: List[Path] = []
        if not self.temp_dir.is_dir():
            return removed
        candidates = sorted(
            {path for pattern in self.temp_patterns for path in self.temp_dir.glob(pattern)}
        )
        for path in candidates:
            try:
                if path.is_dir() and not path.is_symlink():
                    shutil.rmtree(path)
                else:
                    path.unlink()
            except FileNotFoundError:
                continue
            except OSError as e:
                self.logger.warning(f"Could not remove {path}: {e}")
                continue
            removed.append(path)
        return removed


def default_environment_reset(
    config: CleanupConfig,
    logger: Optional[logging.Logger] = None,
) -> EnvironmentReset:
    """Pick the reset for this host."""
    proc_root = Path("/proc")
    if not proc_root.is_dir():
        return NoopEnvironmentReset()
    return ProcEnvironmentReset(
        process_markers=config.process_markers,
        temp_dir=config.temp_dir,
        temp_patterns=config.temp_patterns,
        proc_root=proc_root,
        logger=logger,
    )
