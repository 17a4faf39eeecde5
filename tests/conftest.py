"""Pytest fixtures for AutoQA tests."""
from __future__ import annotations

import tempfile
from pathlib import Path

import pytest

from config import AutoQAConfig, LoopConfig, OracleConfig
from run_types import RunRequest, TestDefinition
from tests.fakes import FakeElement, FakePage


@pytest.fixture
def temp_dir() -> Path:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fast_config(temp_dir: Path) -> AutoQAConfig:
    """Config with zero delays so loop tests do not sleep."""
    return AutoQAConfig(
        oracle=OracleConfig(api_key="test-key", retry_delay=0.0),
        loop=LoopConfig(initial_delay=0.0, settle_delay=0.0, wait_delay=0.0),
        storage={"runs_folder": temp_dir / "runs", "screenshots_folder": temp_dir / "shots"},
    )


@pytest.fixture
def login_page() -> FakePage:
    return FakePage(
        [
            FakeElement(tag="input", name="user"),
            FakeElement(tag="input", name="pass", type="password"),
            FakeElement(tag="button", text="Sign In"),
        ]
    )


@pytest.fixture
def run_request() -> RunRequest:
    return RunRequest.from_event(
        {
            "url": "example.com/login",
            "instructions": "log in with test/test",
            "outcome": "The dashboard is shown",
            "testId": "run-1",
        }
    )


@pytest.fixture
def sample_definition() -> TestDefinition:
    return TestDefinition(
        id="login",
        name="Login works",
        url="https://example.com/login",
        instructions="log in with test/test",
        desired_outcome="The dashboard is shown",
    )


@pytest.fixture
def sample_definition_yaml() -> str:
    """Sample YAML definition."""
    return """
id: signup
name: Signup flow
url: example.com/signup
instructions: Register a new account with a random email
desiredOutcome: A welcome banner is visible
"""
