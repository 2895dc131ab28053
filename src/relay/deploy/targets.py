"""Deployment targets and targets-file handling.

A target names one destination (e.g. ``a-store.myshopify.com``) and the
resource on it that receives the artifact (e.g. a theme ID). Targets come
from a JSON or YAML file::

    {
      "targets": [
        {"destination": "prod.example.com", "resource": "123456789012"},
        {"url": "staging.example.com", "theme_id": 234567890123}
      ]
    }

The legacy ``stores`` key and ``url`` / ``theme_id`` field names are
accepted. Entries with missing fields are loaded as-is: the orchestrator
reports them as failures instead of the loader rejecting the whole file.

Key Concepts:
    Target: Frozen pydantic model; ``is_valid`` is False when a field is
        missing or empty.
    load_targets(): Parse and shape-check a targets file.
    write_example(): Create a starter file (never overwrites).
    find_target(): Select one target by destination.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import yaml
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from relay.core.errors import TargetFileError, TargetNotFoundError
from relay.core.logging import get_logger

logger = get_logger(__name__)

EXAMPLE_TARGETS: dict[str, Any] = {
    "targets": [
        {"destination": "your-production-store.myshopify.com", "resource": "123456789012"},
        {"destination": "your-staging-store.myshopify.com", "resource": "234567890123"},
        {"destination": "your-dev-store.myshopify.com", "resource": "345678901234"},
    ]
}


class Target(BaseModel):
    """One destination the artifact is deployed to."""

    model_config = ConfigDict(frozen=True, coerce_numbers_to_str=True, populate_by_name=True)

    destination: str | None = Field(
        default=None,
        validation_alias=AliasChoices("destination", "url"),
        description="Where to deploy (host, store URL, ...)",
    )
    resource: str | None = Field(
        default=None,
        validation_alias=AliasChoices("resource", "theme_id"),
        description="What to deploy into on the destination (theme ID, ...)",
    )

    @property
    def is_valid(self) -> bool:
        return bool(self.destination) and bool(self.resource)

    @property
    def label(self) -> str:
        """Human-readable name used in logs and summaries."""
        return self.destination or "Unknown"

    def __str__(self) -> str:
        return f"{self.label} ({self.resource or '?'})"


def _parse(path: Path, text: str) -> Any:
    if path.suffix.lower() in (".yaml", ".yml"):
        return yaml.safe_load(text)
    return json.loads(text)


def load_targets(path: str | Path) -> list[Target]:
    """Load targets from a JSON or YAML file.

    Raises:
        TargetFileError: Missing file, invalid syntax, wrong shape, or no
            targets at all.
    """
    path = Path(path)
    if not path.exists():
        raise TargetFileError(
            f"Targets file '{path}' not found. Run 'relay targets init' to create one."
        ).with_context(path=str(path))

    try:
        data = _parse(path, path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise TargetFileError(f"Invalid syntax in '{path}': {e}", cause=e).with_context(
            path=str(path)
        ) from e

    entries = None
    if isinstance(data, dict):
        entries = data.get("targets", data.get("stores"))
    if not isinstance(entries, list):
        raise TargetFileError(
            f"Invalid targets file format in '{path}'. Expected {{\"targets\": [...]}}"
        ).with_context(path=str(path))
    if not entries:
        raise TargetFileError(f"No targets found in '{path}'").with_context(path=str(path))

    targets = []
    for position, entry in enumerate(entries):
        if not isinstance(entry, dict):
            raise TargetFileError(
                f"Entry {position} in '{path}' is not an object"
            ).with_context(path=str(path))
        try:
            targets.append(Target.model_validate(entry))
        except ValidationError as e:
            raise TargetFileError(
                f"Entry {position} in '{path}' is invalid: {e}", cause=e
            ).with_context(path=str(path)) from e

    logger.debug("targets.loaded", path=str(path), count=len(targets))
    return targets


def write_example(path: str | Path) -> Path:
    """Write an example targets file.

    Raises:
        FileExistsError: If ``path`` already exists.
    """
    path = Path(path)
    if path.exists():
        raise FileExistsError(f"{path} already exists. Use --file to specify a different file.")
    if path.suffix.lower() in (".yaml", ".yml"):
        text = yaml.safe_dump(EXAMPLE_TARGETS, sort_keys=False)
    else:
        text = json.dumps(EXAMPLE_TARGETS, indent=2) + "\n"
    path.write_text(text, encoding="utf-8")
    return path


def find_target(targets: list[Target], destination: str) -> Target:
    """Return the target whose destination equals ``destination``."""
    for target in targets:
        if target.destination == destination:
            return target
    raise TargetNotFoundError(destination)


__all__ = ["EXAMPLE_TARGETS", "Target", "find_target", "load_targets", "write_example"]
