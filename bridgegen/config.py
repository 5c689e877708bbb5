"""Generator configuration.

Parsed from ``bridgegen.yaml`` in the working directory (or a path given on
the command line). Every key is optional::

    module_name: native_bridge
    markers:
      struct: [native_struct]
      sync_export: [export]
      async_export: [export_async]
    output:
      directory: generated
      facade: generated_api.py
"""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

DEFAULT_CONFIG_FILE = "bridgegen.yaml"


class ConfigError(Exception):
    """Raised when a configuration file cannot be read or is invalid."""


class MarkerConfig(BaseModel):
    """Decorator names recognised in schema source."""

    struct: list[str] = Field(default_factory=lambda: ["native_struct"])
    sync_export: list[str] = Field(default_factory=lambda: ["export"])
    async_export: list[str] = Field(default_factory=lambda: ["export_async"])


class OutputConfig(BaseModel):
    """Output directory and per-artifact file names."""

    directory: str = "generated"
    structs_header: str = "generated_structs.hpp"
    structs_source: str = "generated_structs.cpp"
    api_header: str = "generated_api.hpp"
    api_source: str = "generated_api.cpp"
    runtime_header: str = "bridge_runtime.hpp"
    facade: str = "generated_api.py"
    stub: str = "implementation.cpp"

    def get_output_path(self, project_root: Path) -> Path:
        output_dir = Path(self.directory)
        if output_dir.is_absolute():
            return output_dir
        return project_root / output_dir


class BridgeConfig(BaseModel):
    """Complete generator configuration."""

    module_name: str = "native_bridge"
    markers: MarkerConfig = Field(default_factory=MarkerConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)

    @field_validator("module_name")
    @classmethod
    def _check_module_name(cls, value: str) -> str:
        if not value.isidentifier():
            raise ValueError(f"module_name must be a Python identifier, got {value!r}")
        return value


def load_config(path: str | Path | None = None) -> BridgeConfig:
    """Load configuration from YAML.

    Args:
        path: Config file. When omitted, ``bridgegen.yaml`` in the current
            directory is used if present.

    Returns:
        BridgeConfig with parsed values or defaults.
    """
    if path is None:
        path = Path(DEFAULT_CONFIG_FILE)
        if not path.exists():
            return BridgeConfig()
    path = Path(path)

    if not path.exists():
        raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"{path}: top level must be a mapping")

    try:
        return BridgeConfig.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e
