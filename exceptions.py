"""Custom exception hierarchy for the AutoQA runner."""
from __future__ import annotations

from typing import Any, Optional, Sequence


class AutoQAError(Exception):
    """Base exception for all AutoQA errors."""

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# Browser-related exceptions
class BrowserError(AutoQAError):
    """Base exception for browser session errors."""

    pass


class NavigationError(BrowserError):
    """Raised when page navigation fails."""

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        details = {}
        if url:
            details["url"] = url
        if timeout:
            details["timeout"] = timeout
        super().__init__(message, details)
        self.url = url
        self.timeout = timeout


class BrowserNotStartedError(BrowserError):
    """Raised when attempting to use browser before starting."""

    def __init__(self):
        super().__init__("Browser has not been started. Call start() first.")


class ScreenshotError(BrowserError):
    """Raised when screenshot capture fails."""

    pass


# Step-level exceptions: absorbed by the agent loop and recorded in history
class StepError(AutoQAError):
    """Base exception for a single failed step."""

    pass


class ElementNotFoundError(StepError):
    """Raised when a target descriptor resolves to no element on the page."""

    def __init__(self, message: str, target: Optional[str] = None):
        details = {"target": target} if target else {}
        super().__init__(message, details)
        self.target = target


class InteractionError(StepError):
    """Raised when every interaction strategy for a step failed."""

    def __init__(
        self,
        message: str,
        action: Optional[str] = None,
        attempts: Optional[Sequence[str]] = None,
    ):
        details: dict[str, Any] = {}
        if action:
            details["action"] = action
        if attempts:
            details["attempts"] = list(attempts)
        super().__init__(message, details)
        self.action = action
        self.attempts = list(attempts or [])


# Oracle-related exceptions
class OracleError(AutoQAError):
    """Base exception for decision oracle errors."""

    pass


class OracleConnectionError(OracleError):
    """Raised when the text-generation service cannot be reached."""

    def __init__(self, message: str, base_url: Optional[str] = None):
        details = {"base_url": base_url} if base_url else {}
        super().__init__(message, details)
        self.base_url = base_url


class OracleResponseError(OracleError):
    """Raised when the oracle returns an empty or unparseable response."""

    def __init__(self, message: str, response: Optional[str] = None):
        details = {"response_preview": response[:200] if response else None}
        super().__init__(message, details)
        self.response = response


# Run lifecycle exceptions
class RunStateError(AutoQAError):
    """Base exception for run lifecycle errors."""

    pass


class InvalidTransitionError(RunStateError):
    """Raised when a terminal run is asked to change state again."""

    def __init__(self, run_id: str, current: str, requested: str):
        super().__init__(
            f"Run {run_id} is already {current}; cannot move to {requested}",
            {"run_id": run_id, "current": current, "requested": requested},
        )
        self.run_id = run_id
        self.current = current
        self.requested = requested


class InvocationError(AutoQAError):
    """Raised when a trigger payload is missing or has malformed required fields."""

    def __init__(self, missing: Sequence[str] = (), invalid: Optional[dict[str, str]] = None):
        missing = list(missing)
        invalid = dict(invalid or {})
        problems = []
        if missing:
            problems.append(f"Missing required fields: {', '.join(missing)}")
        if invalid:
            problems.append(
                "Invalid fields: " + ", ".join(f"{name} ({reason})" for name, reason in invalid.items())
            )
        details: dict[str, Any] = {"missing": missing}
        if invalid:
            details["invalid"] = invalid
        super().__init__("; ".join(problems) or "Invalid invocation", details)
        self.missing = missing
        self.invalid = invalid


# Test definition exceptions
class DefinitionError(AutoQAError):
    """Base exception for test definition loading errors."""

    pass


class DefinitionLoadError(DefinitionError):
    """Raised when a definition file cannot be loaded or parsed."""

    def __init__(self, message: str, file_path: Optional[str] = None):
        details = {"file_path": file_path} if file_path else {}
        super().__init__(message, details)
        self.file_path = file_path


class DefinitionValidationError(DefinitionError):
    """Raised when a definition is missing a required field."""

    def __init__(
        self,
        message: str,
        definition_id: Optional[str] = None,
        field: Optional[str] = None,
    ):
        details = {}
        if definition_id:
            details["definition_id"] = definition_id
        if field:
            details["field"] = field
        super().__init__(message, details)
        self.definition_id = definition_id
        self.field = field


# Collaborator exceptions
class StorageError(AutoQAError):
    """Raised when a run record or artifact cannot be written."""

    pass


# Configuration exceptions
class ConfigurationError(AutoQAError):
    """Raised when configuration is invalid."""

    pass


class ConfigFileNotFoundError(ConfigurationError):
    """Raised when a required config file is not found."""

    def __init__(self, file_path: str):
        super().__init__(f"Configuration file not found: {file_path}", {"file_path": file_path})
        self.file_path = file_path
