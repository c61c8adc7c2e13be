# This module defines the runtime configuration for the yearly name-file import.
# Defaults come from the repo YAML file and environment variables override individual knobs.
# CLI flags are applied last by the entrypoint so ad-hoc runs never need to edit the YAML.

from __future__ import annotations

import os
import re
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("configs/import.yaml")

_DEFAULTS: dict[str, str] = {
    "jurisdiction_code": "US",
    "input_dir": "names-example",
    "filename_glob": "yob*.txt",
    "filename_pattern": r"^yob(\d{4})\.txt$",
    "file_type": "SSA-TXT",
}

_ENV_OVERRIDES: dict[str, str] = {
    "jurisdiction_code": "IMPORT_JURISDICTION_CODE",
    "input_dir": "IMPORT_INPUT_DIR",
    "filename_glob": "IMPORT_FILENAME_GLOB",
    "file_type": "IMPORT_FILE_TYPE",
}


@dataclass(frozen=True)
class ImportConfig:
    jurisdiction_code: str
    input_dir: Path
    filename_glob: str
    filename_pattern: re.Pattern[str]
    file_type: str

    def with_overrides(self, **overrides: Any) -> ImportConfig:
        values = {key: value for key, value in overrides.items() if value is not None}
        if "input_dir" in values:
            values["input_dir"] = Path(values["input_dir"])
        return replace(self, **values)


def _load_yaml(path: Path) -> dict[str, Any]:
    with open(path, encoding="utf-8") as handle:
        loaded = yaml.safe_load(handle) or {}
    if not isinstance(loaded, dict):
        raise ValueError(f"Config at {path} must be a mapping, got: {type(loaded).__name__}")
    return dict(loaded)


def _env_str(name: str, default: str) -> str:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value


def load_import_config(path: Path | None = None) -> ImportConfig:
    """Resolve import settings from YAML defaults plus environment overrides."""

    config_path = path or DEFAULT_CONFIG_PATH
    raw: dict[str, Any] = dict(_DEFAULTS)
    if config_path.exists():
        for key, value in _load_yaml(config_path).items():
            if key not in _DEFAULTS:
                continue
            # YAML 1.1 reads unquoted codes such as NO or ON as booleans.
            if not isinstance(value, str):
                raise ValueError(
                    f"Config key {key!r} in {config_path} must be a string, got {type(value).__name__} "
                    f"({value!r}); quote the value"
                )
            raw[key] = value

    for key, env_name in _ENV_OVERRIDES.items():
        raw[key] = _env_str(env_name, raw[key])

    pattern = re.compile(raw["filename_pattern"])
    if pattern.groups != 1:
        raise ValueError(f"filename_pattern must capture exactly one group (the year): {raw['filename_pattern']!r}")

    return ImportConfig(
        jurisdiction_code=raw["jurisdiction_code"],
        input_dir=Path(raw["input_dir"]),
        filename_glob=raw["filename_glob"],
        filename_pattern=pattern,
        file_type=raw["file_type"],
    )
