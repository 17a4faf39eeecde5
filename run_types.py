"""Typed objects for a single autonomous test run."""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional

from exceptions import InvalidTransitionError, InvocationError

DECISION_FAILURE_MESSAGE = "AI Brain Failure"
MAX_STEPS_MESSAGE = "Maximum steps exceeded."

_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)
_RUN_ID_RE = re.compile(r"^[A-Za-z0-9._-]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def isoformat(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


class RunStatus(str, Enum):
    """Lifecycle states of a test run."""

    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING


class StepOutcome(str, Enum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


class ActionType(str, Enum):
    """Actions the oracle may propose."""

    CLICK = "click"
    FILL = "fill"
    PRESS = "press"
    WAIT = "wait"
    FINISH = "finish"


def _optional_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"true", "yes", "1"}
    return bool(value)


@dataclass
class Decision:
    """The oracle's proposal for the next step.

    ``action`` is ``None`` when the oracle answered with an object that does
    not name one of the known actions. ``fallback`` marks the wait decision
    produced locally when the oracle could not be consulted at all.
    """

    action: Optional[ActionType]
    target: Optional[str] = None
    value: Optional[str] = None
    key: Optional[str] = None
    success: bool = False
    desc: Optional[str] = None
    fallback: bool = False
    raw: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Decision":
        """Build a decision from the parsed oracle object."""
        raw_action = str(payload.get("action") or "").strip().lower()
        try:
            action: Optional[ActionType] = ActionType(raw_action)
        except ValueError:
            action = None
        return cls(
            action=action,
            target=_optional_str(payload.get("target")),
            value=_optional_str(payload.get("value")),
            key=_optional_str(payload.get("key")),
            success=_as_bool(payload.get("success", False)),
            desc=_optional_str(payload.get("desc")),
            raw=dict(payload),
        )

    @classmethod
    def fallback_wait(cls, reason: str = "Oracle unavailable, waiting...") -> "Decision":
        return cls(action=ActionType.WAIT, desc=reason, fallback=True)

    @property
    def is_usable(self) -> bool:
        return self.action is not None

    def describe(self) -> str:
        if self.action is None:
            return f"unusable decision {self.raw!r}"
        if self.action is ActionType.PRESS:
            return f"press '{self.key}'"
        if self.action is ActionType.FILL:
            return f"fill '{self.target}' with '{self.value}'"
        if self.action is ActionType.FINISH:
            return f"finish success={self.success} desc='{self.desc}'"
        if self.action is ActionType.WAIT:
            return "wait"
        return f"{self.action.value} '{self.target}'"


@dataclass
class ExecutedStep:
    """One executed click/fill/press and whether it succeeded."""

    action: str
    target: Optional[str]
    outcome: StepOutcome
    timestamp: datetime = field(default_factory=utcnow)
    value: Optional[str] = None
    error: Optional[str] = None

    def summary(self) -> str:
        """Compact line shown to the oracle."""
        subject = self.target if self.target is not None else self.value
        return f"{self.outcome.value}: {self.action} on '{subject}'"

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "action": self.action,
            "target": self.target,
            "outcome": self.outcome.value,
            "timestamp": isoformat(self.timestamp),
        }
        if self.value is not None:
            data["value"] = self.value
        if self.error:
            data["error"] = self.error
        return data


@dataclass
class RunRequest:
    """Inbound trigger for one run."""

    url: str
    instructions: str
    outcome: str
    test_id: str

    REQUIRED_FIELDS = ("url", "instructions", "outcome", "testId")

    @classmethod
    def from_event(cls, event: Mapping[str, Any]) -> "RunRequest":
        """Validate a trigger payload; every field is required."""
        if not isinstance(event, Mapping):
            raise InvocationError(list(cls.REQUIRED_FIELDS))
        values = {name: str(event.get(name) or "").strip() for name in cls.REQUIRED_FIELDS}
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise InvocationError(missing)
        # The run id names the record and screenshot files.
        if not _RUN_ID_RE.match(values["testId"]) or values["testId"] in {".", ".."}:
            raise InvocationError(
                invalid={"testId": "only letters, digits, '.', '_' and '-' are allowed"}
            )
        return cls(
            url=normalize_url(values["url"]),
            instructions=values["instructions"],
            outcome=values["outcome"],
            test_id=values["testId"],
        )


@dataclass
class TestDefinition:
    """Reusable test template."""

    __test__ = False  # not a pytest class

    id: str
    url: str
    instructions: str
    desired_outcome: str
    name: Optional[str] = None

    def to_request(self, test_id: str) -> RunRequest:
        return RunRequest.from_event(
            {
                "url": self.url,
                "instructions": self.instructions,
                "outcome": self.desired_outcome,
                "testId": test_id,
            }
        )


def normalize_url(url: str) -> str:
    """Prefix bare hosts with https://."""
    url = url.strip()
    if not _SCHEME_RE.match(url):
        return f"https://{url}"
    return url


@dataclass
class TestRun:
    """State of one run: RUNNING until a single terminal transition."""

    __test__ = False  # not a pytest class

    id: str
    url: str
    instructions: str
    desired_outcome: str
    status: RunStatus = RunStatus.RUNNING
    result: Optional[str] = None
    history: List[ExecutedStep] = field(default_factory=list)
    screenshot: Optional[str] = None
    error: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    @classmethod
    def start(cls, request: RunRequest) -> "TestRun":
        return cls(
            id=request.test_id,
            url=request.url,
            instructions=request.instructions,
            desired_outcome=request.outcome,
        )

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    @property
    def goal(self) -> str:
        """Goal text handed to the oracle."""
        return f"{self.instructions}\nDesired outcome: {self.desired_outcome}"

    def record_step(
        self,
        decision: Decision,
        outcome: StepOutcome,
        error: Optional[str] = None,
    ) -> ExecutedStep:
        self._ensure_running("record a step")
        step = ExecutedStep(
            action=decision.action.value if decision.action else "unknown",
            target=decision.target if decision.action is not ActionType.PRESS else decision.key,
            value=decision.value,
            outcome=outcome,
            error=error,
        )
        self.history.append(step)
        return step

    def recent_summaries(self, window: int) -> List[str]:
        """Most recent ``window`` step summaries, oldest first."""
        if window <= 0:
            return []
        return [step.summary() for step in self.history[-window:]]

    def completion_record(
        self,
        status: RunStatus,
        result: str,
        screenshot_ref: Optional[str],
        updated_at: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """Terminal write shape for a run that reached a verdict."""
        if not status.is_terminal:
            raise InvalidTransitionError(self.id, self.status.value, status.value)
        return {
            "status": status.value,
            "result": result,
            "screenshotRef": screenshot_ref,
            "history": [step.to_dict() for step in self.history],
            "updatedAt": isoformat(updated_at or utcnow()),
        }

    def crash_record(self, error: str, updated_at: Optional[datetime] = None) -> Dict[str, Any]:
        """Terminal write shape for a run that crashed."""
        return {
            "status": RunStatus.FAILED.value,
            "error": error,
            "updatedAt": isoformat(updated_at or utcnow()),
        }

    def finish(self, status: RunStatus, result: str, screenshot_ref: Optional[str]) -> None:
        """Apply the verdict; allowed exactly once."""
        if not status.is_terminal:
            raise InvalidTransitionError(self.id, self.status.value, status.value)
        self._ensure_running(status.value)
        self.status = status
        self.result = result
        self.screenshot = screenshot_ref
        self.updated_at = utcnow()

    def crash(self, error: str) -> None:
        self._ensure_running(RunStatus.FAILED.value)
        self.status = RunStatus.FAILED
        self.error = error
        self.updated_at = utcnow()

    def _ensure_running(self, requested: str) -> None:
        if self.is_terminal:
            raise InvalidTransitionError(self.id, self.status.value, requested)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "status": self.status.value,
            "url": self.url,
            "outcome": self.desired_outcome,
            "createdAt": isoformat(self.created_at),
            "history": [step.to_dict() for step in self.history],
        }
        if self.result is not None:
            data["result"] = self.result
        if self.screenshot is not None:
            data["screenshotRef"] = self.screenshot
        if self.error is not None:
            data["error"] = self.error
        if self.updated_at is not None:
            data["updatedAt"] = isoformat(self.updated_at)
        return data


@dataclass
class Verdict:
    """How the loop ended, before it is written anywhere."""

    status: RunStatus
    result: str
    steps_taken: int = 0
