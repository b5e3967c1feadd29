"""Configuration for dspc builds.

A project may keep its settings in `dspc.yaml`:

    package: app.views          # namespace of the generated modules
    input_dir: templates        # where *.dsp files are searched
    output_dir: app/views       # where generated modules are written
    project_root: .             # optional, enables ignore-file bookkeeping

Relative paths are resolved against the directory holding the file.
Command line options override file values.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from dspc.exceptions import ConfigError

CONFIG_FILENAME = "dspc.yaml"
PROJECT_DIR_ENV = "DSPC_PROJECT_DIR"


class CompilerConfig(BaseModel):
    """Settings for one dspc build."""

    package: Optional[str] = Field(
        default=None, description="Dotted module path used as prefix"
    )
    input_dir: Optional[Path] = Field(
        default=None, description="Input path to search for templates"
    )
    output_dir: Optional[Path] = Field(
        default=None, description="Output path to write generated modules"
    )
    suffix: str = Field(default=".dsp", description="Template file suffix")
    project_root: Optional[Path] = Field(
        default=None, description="Project root whose ignore files list the output"
    )
    ignore_files: list[str] = Field(
        default_factory=lambda: [".gitignore", ".hgignore"],
        description="Ignore files (relative to project_root) to update",
    )
    keep_going: bool = Field(
        default=False, description="Continue with other files after a failure"
    )

    @classmethod
    def load(cls, path: Path) -> "CompilerConfig":
        """Load config from a yaml file"""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except OSError as e:
            raise ConfigError(f"Could not read config file {path}: {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if not isinstance(data, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")

        base = path.parent
        for key in ("input_dir", "output_dir", "project_root"):
            value = data.get(key)
            if value is not None and not Path(value).is_absolute():
                data[key] = base / value

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            raise ConfigError(f"Invalid config in {path}: {e}") from e

    def merged(self, **overrides: Any) -> "CompilerConfig":
        """Return a copy with every non-None override applied."""
        updates = {k: v for k, v in overrides.items() if v is not None}
        return self.model_copy(update=updates)

    def with_env(self) -> "CompilerConfig":
        """Fill `project_root` from DSPC_PROJECT_DIR when not configured."""
        if self.project_root is not None:
            return self
        root = os.environ.get(PROJECT_DIR_ENV)
        if not root:
            return self
        return self.model_copy(update={"project_root": Path(root)})

    def require(self) -> None:
        """Check that the options needed for a build are present."""
        missing = [
            f"--{name.split('_')[0]}"
            for name in ("package", "input_dir", "output_dir")
            if getattr(self, name) is None
        ]
        if missing:
            raise ConfigError(f"Please specify {', '.join(missing)}!")


def find_config_file(start: Optional[Path] = None) -> Optional[Path]:
    """Find dspc.yaml in the start directory or its parents."""
    cwd = start or Path.cwd()
    for parent in [cwd] + list(cwd.parents):
        candidate = parent / CONFIG_FILENAME
        if candidate.exists():
            return candidate
    return None


def load_config(path: Optional[Path] = None) -> CompilerConfig:
    """Load the given config file, or the nearest dspc.yaml, or defaults."""
    if path is not None:
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")
        return CompilerConfig.load(path)

    found = find_config_file()
    if found is None:
        return CompilerConfig()
    return CompilerConfig.load(found)
