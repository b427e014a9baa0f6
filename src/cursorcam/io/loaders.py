"""JSON loaders for the transform inputs."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from ..core.errors import InputError
from ..core.project_model import Config, MouseEvent, SourceWindowInfo


@dataclass
class TransformInputs:
    config: Config
    mouse_events: List[MouseEvent]
    window: SourceWindowInfo


def _read_json(path: Path, what: str) -> Any:
    try:
        return json.loads(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise InputError(f"Could not open {what} file {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise InputError(f"Failed to parse {what} JSON {path}: {exc}") from exc


def load_config(path: Path) -> Config:
    data = _read_json(path, "config")
    if not isinstance(data, dict):
        raise InputError(f"Config {path} must be a JSON object")
    try:
        config = Config.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise InputError(f"Malformed config {path}: {exc!r}") from exc
    config.validate()
    return config


def load_mouse_events(path: Path) -> List[MouseEvent]:
    data = _read_json(path, "mouse events")
    if not isinstance(data, list):
        raise InputError(f"Mouse events {path} must be a JSON array")
    try:
        return [MouseEvent.from_dict(item) for item in data]
    except (KeyError, TypeError, ValueError) as exc:
        raise InputError(f"Malformed mouse event in {path}: {exc!r}") from exc


def load_window(path: Path) -> SourceWindowInfo:
    data = _read_json(path, "window data")
    if not isinstance(data, dict):
        raise InputError(f"Window data {path} must be a JSON object")
    try:
        return SourceWindowInfo.from_dict(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise InputError(f"Malformed window data {path}: {exc!r}") from exc


def load_inputs(config_path: Path) -> TransformInputs:
    """Load the config and the two files it points at, relative to the config."""
    config_path = Path(config_path)
    config = load_config(config_path)
    base = config_path.parent
    return TransformInputs(
        config=config,
        mouse_events=load_mouse_events(base / config.positions_file),
        window=load_window(base / config.source_file),
    )
