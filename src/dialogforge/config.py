"""Project configuration loading."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from ruamel.yaml import YAML

from dialogforge.graph.history import DEFAULT_HISTORY_LIMIT

CONFIG_FILENAME = "dialogforge.yaml"

# Default configuration values
DEFAULT_RECORDS_DIR = "characters"
DEFAULT_OUTPUT_DIR = "game"
DEFAULT_SPRITE_ZOOM = 1.3
DEFAULT_TRANSITION = "dissolve"
DEFAULT_HEADER = "# The script of the game goes in this file."


@dataclass
class CompilerConfig:
    """Output options for the Ren'Py compiler.

    Attributes:
        sprite_zoom: Zoom of the ``half_size`` transform applied to avatars.
        transition: Transition used after scene and show statements.
        header: Comment line at the top of the script.
    """

    sprite_zoom: float = DEFAULT_SPRITE_ZOOM
    transition: str = DEFAULT_TRANSITION
    header: str = DEFAULT_HEADER

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> CompilerConfig:
        return cls(
            sprite_zoom=float(data.get("sprite_zoom", DEFAULT_SPRITE_ZOOM)),
            transition=str(data.get("transition", DEFAULT_TRANSITION)),
            header=str(data.get("header", DEFAULT_HEADER)),
        )


@dataclass
class ProjectConfig:
    """Configuration for a dialog project.

    Directory options are relative to the project root unless absolute.
    ``DIALOGFORGE_RECORDS_DIR`` and ``DIALOGFORGE_OUTPUT_DIR`` override the
    values from the file.
    """

    name: str
    version: int = 1
    records_dir: str = DEFAULT_RECORDS_DIR
    output_dir: str = DEFAULT_OUTPUT_DIR
    history_limit: int = DEFAULT_HISTORY_LIMIT
    compiler: CompilerConfig = field(default_factory=CompilerConfig)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ProjectConfig:
        """Create config from dictionary.

        Args:
            data: Dictionary containing config fields.

        Returns:
            ProjectConfig instance.
        """
        history_limit = int(data.get("history_limit", DEFAULT_HISTORY_LIMIT))
        if history_limit < 1:
            raise ValueError(f"history_limit must be at least 1, got {history_limit}")

        return cls(
            name=data.get("name", "unnamed"),
            version=data.get("version", 1),
            records_dir=os.getenv("DIALOGFORGE_RECORDS_DIR")
            or data.get("records_dir", DEFAULT_RECORDS_DIR),
            output_dir=os.getenv("DIALOGFORGE_OUTPUT_DIR")
            or data.get("output_dir", DEFAULT_OUTPUT_DIR),
            history_limit=history_limit,
            compiler=CompilerConfig.from_dict(dict(data.get("compiler") or {})),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the layout :meth:`from_dict` reads."""
        return {
            "name": self.name,
            "version": self.version,
            "records_dir": self.records_dir,
            "output_dir": self.output_dir,
            "history_limit": self.history_limit,
            "compiler": {
                "sprite_zoom": self.compiler.sprite_zoom,
                "transition": self.compiler.transition,
                "header": self.compiler.header,
            },
        }

    def resolve(self, project_path: Path, directory: str) -> Path:
        """Resolve a configured directory against the project root."""
        path = Path(directory)
        return path if path.is_absolute() else project_path / path


class ProjectConfigError(Exception):
    """Raised when project configuration cannot be loaded."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to load project config at {path}: {reason}")


def load_project_config(project_path: Path) -> ProjectConfig:
    """Load project configuration from dialogforge.yaml.

    Args:
        project_path: Path to the project root directory.

    Returns:
        ProjectConfig instance.

    Raises:
        ProjectConfigError: If config cannot be loaded.
    """
    config_path = project_path / CONFIG_FILENAME

    if not config_path.exists():
        raise ProjectConfigError(config_path, "File not found")

    yaml = YAML()
    try:
        with config_path.open("r", encoding="utf-8") as f:
            data = yaml.load(f)

        if data is None:
            raise ProjectConfigError(config_path, "Empty file")

        return ProjectConfig.from_dict(dict(data))
    except Exception as e:
        if isinstance(e, ProjectConfigError):
            raise
        raise ProjectConfigError(config_path, str(e)) from e


def create_default_config(name: str) -> ProjectConfig:
    """Create a default project configuration."""
    return ProjectConfig(name=name)


def write_project_config(config: ProjectConfig, project_path: Path) -> Path:
    """Write *config* as dialogforge.yaml in *project_path*."""
    config_file = project_path / CONFIG_FILENAME
    yaml_writer = YAML()
    yaml_writer.default_flow_style = False
    with config_file.open("w", encoding="utf-8") as f:
        yaml_writer.dump(config.to_dict(), f)
    return config_file
