"""Application paths configuration."""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional

APP_DIR_NAME = "ClipStack"
HISTORY_FILE_NAME = "history.txt"


def resolve_data_dir(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
) -> Path:
    """Per-user application data directory following the OS convention."""
    platform = sys.platform if platform is None else platform
    environ = os.environ if environ is None else environ
    home = Path.home() if home is None else Path(home)

    if platform.startswith("win"):
        app_data = environ.get("APPDATA")
        base = Path(app_data) if app_data else home / "AppData" / "Roaming"
    elif platform == "darwin":
        base = home / "Library" / "Application Support"
    else:
        xdg_data_home = environ.get("XDG_DATA_HOME")
        base = Path(xdg_data_home) if xdg_data_home else home / ".local" / "share"
    return base / APP_DIR_NAME


def resolve_storage_location(
    platform: Optional[str] = None,
    environ: Optional[Mapping[str, str]] = None,
    home: Optional[Path] = None,
    file_name: str = HISTORY_FILE_NAME,
) -> Path:
    """Full path of the history file. Pure function of its arguments and the environment."""
    return resolve_data_dir(platform, environ, home) / file_name


@dataclass(frozen=True)
class AppPaths:
    history_path: Path

    @classmethod
    def from_settings(cls, history_settings) -> "AppPaths":
        if history_settings.data_dir is not None:
            history_path = Path(history_settings.data_dir).expanduser() / history_settings.file_name
        else:
            history_path = resolve_storage_location(file_name=history_settings.file_name)
        return cls(history_path=history_path)
