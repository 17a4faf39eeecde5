"""Filesystem-backed loader for reusable test definitions."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import yaml

from exceptions import DefinitionLoadError, DefinitionValidationError
from run_types import TestDefinition


def _required_text(data: Dict[str, Any], keys: Iterable[str], definition_id: str, field: str) -> str:
    """First non-empty value among ``keys``."""
    for key in keys:
        value = data.get(key)
        if value:
            return str(value)
    raise DefinitionValidationError(
        f"Definition is missing a '{field}' field",
        definition_id=definition_id,
        field=field,
    )


def _parse_definition(data: Dict[str, Any], fallback_id: str) -> TestDefinition:
    """Parse a dictionary into a TestDefinition."""
    if not isinstance(data, dict):
        raise DefinitionLoadError("Definition payload must be a mapping")

    definition_id = str(data.get("id") or fallback_id)
    url = _required_text(data, ("url", "start_url"), definition_id, "url")
    instructions = _required_text(data, ("instructions", "objective"), definition_id, "instructions")
    desired_outcome = _required_text(
        data, ("desiredOutcome", "desired_outcome", "outcome"), definition_id, "desiredOutcome"
    )

    return TestDefinition(
        id=definition_id,
        name=data.get("name"),
        url=url,
        instructions=instructions,
        desired_outcome=desired_outcome,
    )


def load_definition_file(path: Path) -> TestDefinition:
    """Load a single definition file (YAML or JSON)."""
    try:
        raw = path.read_text(encoding="utf-8")
        if path.suffix.lower() in {".yml", ".yaml"}:
            data = yaml.safe_load(raw)
        else:
            data = json.loads(raw)
        return _parse_definition(data, fallback_id=path.stem)
    except (DefinitionLoadError, DefinitionValidationError):
        raise
    except Exception as exc:
        raise DefinitionLoadError(f"Failed to load definition file: {exc}", file_path=str(path)) from exc


def discover_definitions(
    definitions_dir: Path,
    only_ids: Optional[Iterable[str]] = None,
) -> List[TestDefinition]:
    """
    Load every definition in a directory.

    Args:
        definitions_dir: Directory containing YAML/JSON files
        only_ids: If provided, only return definitions with these IDs

    Returns:
        Definitions in file name order
    """
    definitions_dir = definitions_dir.expanduser().resolve()

    if not definitions_dir.exists():
        raise DefinitionLoadError(f"Definitions directory does not exist: {definitions_dir}")

    id_filter = set(only_ids or [])
    found: List[TestDefinition] = []

    yaml_files = sorted(definitions_dir.glob("*.yaml")) + sorted(definitions_dir.glob("*.yml"))
    json_files = sorted(definitions_dir.glob("*.json"))

    for path in yaml_files + json_files:
        definition = load_definition_file(path)
        if id_filter and definition.id not in id_filter:
            continue
        found.append(definition)

    if id_filter:
        missing = id_filter - {d.id for d in found}
        if missing:
            raise DefinitionLoadError(f"Definitions not found: {', '.join(sorted(missing))}")

    return found
