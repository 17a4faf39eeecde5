"""Pydantic configuration models for the AutoQA runner."""
from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator, model_validator

from exceptions import ConfigFileNotFoundError, ConfigurationError


# Load .env file if present
load_dotenv()

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/119.0.0.0 Safari/537.36"
)


class OracleConfig(BaseModel):
    """Decision oracle (LLM) configuration."""

    model: str = Field(
        default="gemini-2.5-flash",
        description="Model name to use for the oracle",
    )
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai",
        description="Base URL of an OpenAI-compatible chat completions endpoint",
    )
    api_key: str = Field(
        default="",
        description="API key for the oracle service",
    )
    temperature: float = Field(
        default=0.1,
        ge=0.0,
        le=2.0,
        description="Temperature for model generation",
    )
    max_tokens: int = Field(
        default=512,
        ge=64,
        le=8192,
        description="Maximum tokens for model response",
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per decision before falling back to wait",
    )
    retry_delay: float = Field(
        default=1.0,
        ge=0.0,
        le=30.0,
        description="Fixed delay in seconds between oracle attempts",
    )
    history_window: int = Field(
        default=5,
        ge=1,
        le=50,
        description="Number of most recent history entries shown to the oracle",
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base_url doesn't have trailing slash."""
        return v.rstrip("/")

    @model_validator(mode="before")
    @classmethod
    def load_from_env(cls, data: dict[str, Any]) -> dict[str, Any]:
        """Load values from environment variables if not explicitly set."""
        env_mapping = {
            "base_url": ("AUTOQA_BASE_URL",),
            "api_key": ("AUTOQA_API_KEY", "GEMINI_API_KEY"),
            "model": ("AUTOQA_MODEL",),
        }
        for field_name, env_vars in env_mapping.items():
            if field_name not in data or data[field_name] is None:
                for env_var in env_vars:
                    env_value = os.getenv(env_var)
                    if env_value:
                        data[field_name] = env_value
                        break
        return data


class BrowserConfig(BaseModel):
    """Browser session configuration."""

    browser: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use",
    )
    headless: bool = Field(
        default=True,
        description="Run browser in headless mode",
    )
    viewport_width: int = Field(
        default=1920,
        ge=320,
        le=3840,
        description="Browser viewport width",
    )
    viewport_height: int = Field(
        default=1080,
        ge=320,
        le=2160,
        description="Browser viewport height",
    )
    user_agent: Optional[str] = Field(
        default=DEFAULT_USER_AGENT,
        description="User agent string for the browser context",
    )
    launch_args: list[str] = Field(
        default_factory=lambda: [
            "--disable-blink-features=AutomationControlled",
            "--disable-gpu",
            "--no-sandbox",
            "--disable-dev-shm-usage",
        ],
        description="Extra command line switches (chromium only)",
    )
    action_timeout_ms: int = Field(
        default=2000,
        ge=100,
        le=60000,
        description="Timeout for a single click/fill attempt",
    )
    navigation_timeout_ms: int = Field(
        default=30000,
        ge=1000,
        le=120000,
        description="Timeout for the initial navigation",
    )
    screenshot_timeout_ms: int = Field(
        default=5000,
        ge=100,
        le=60000,
        description="Timeout for the closing screenshot",
    )


class LoopConfig(BaseModel):
    """Agent loop pacing and budget."""

    max_steps: int = Field(
        default=20,
        ge=1,
        le=200,
        description="Maximum loop iterations per run",
    )
    initial_delay: float = Field(
        default=3.0,
        ge=0.0,
        le=60.0,
        description="Seconds to wait after the first navigation",
    )
    settle_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Seconds to wait after each executed step",
    )
    wait_delay: float = Field(
        default=2.0,
        ge=0.0,
        le=60.0,
        description="Seconds to pause on a wait decision",
    )


class StorageConfig(BaseModel):
    """Run record and artifact locations."""

    runs_folder: Path = Field(
        default=Path("./runs"),
        description="Directory for run records",
    )
    screenshots_folder: Path = Field(
        default=Path("./screenshots"),
        description="Directory for final screenshots",
    )

    @field_validator("runs_folder", "screenshots_folder", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v


class CleanupConfig(BaseModel):
    """Pre-run host cleanup settings."""

    process_markers: list[str] = Field(
        default_factory=lambda: ["chromium", "headless_shell"],
        description="Substrings of a process command line that mark an orphaned browser",
    )
    temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory scrubbed of stale browser artifacts",
    )
    temp_patterns: list[str] = Field(
        default_factory=lambda: ["*.png", "playwright*", "core.*"],
        description="Glob patterns removed from temp_dir",
    )

    @field_validator("temp_dir", mode="before")
    @classmethod
    def convert_to_path(cls, v: Any) -> Path:
        """Convert string to Path."""
        if isinstance(v, str):
            return Path(v)
        return v


class AutoQAConfig(BaseModel):
    """Root configuration model combining all config sections."""

    oracle: OracleConfig = Field(default_factory=OracleConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    loop: LoopConfig = Field(default_factory=LoopConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    cleanup: CleanupConfig = Field(default_factory=CleanupConfig)

    verbose: bool = Field(
        default=False,
        description="Enable verbose logging",
    )


def load_config(
    config_path: Optional[Path] = None,
    cli_overrides: Optional[dict[str, Any]] = None,
) -> AutoQAConfig:
    """
    Load configuration from file with CLI overrides.

    Priority (highest to lowest):
    1. CLI arguments
    2. Environment variables
    3. Config file
    4. Defaults
    """
    config_data: dict[str, Any] = {}

    explicit = config_path is not None
    if config_path is None:
        config_path = Path("config.json")

    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                if config_path.suffix in {".yaml", ".yml"}:
                    config_data = yaml.safe_load(f) or {}
                else:
                    config_data = json.load(f)
        except (OSError, ValueError, yaml.YAMLError) as exc:
            raise ConfigurationError(
                f"Failed to read configuration: {exc}", {"file_path": str(config_path)}
            ) from exc
    elif explicit:
        raise ConfigFileNotFoundError(str(config_path))

    config = AutoQAConfig.model_validate(config_data)

    if cli_overrides:
        config_dict = config.model_dump()
        _apply_overrides(config_dict, cli_overrides)
        config = AutoQAConfig.model_validate(config_dict)

    return config


def _apply_overrides(config_dict: dict[str, Any], overrides: dict[str, Any]) -> None:
    """Apply CLI overrides to config dictionary."""
    override_mapping = {
        "browser": ("browser", "browser"),
        "headless": ("browser", "headless"),
        "headful": ("browser", "headless"),  # inverted
        "max_steps": ("loop", "max_steps"),
        "verbose": ("verbose", None),
        "base_url": ("oracle", "base_url"),
        "model": ("oracle", "model"),
        "runs_folder": ("storage", "runs_folder"),
    }

    for key, value in overrides.items():
        if value is None:
            continue

        if key == "headful":
            config_dict["browser"]["headless"] = not value
            continue

        mapping = override_mapping.get(key)
        if mapping:
            section, field = mapping
            if field is None:
                config_dict[section] = value
            else:
                config_dict[section][field] = value
