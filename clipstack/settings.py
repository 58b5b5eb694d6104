#!/usr/bin/env python3
"""
ClipStack Settings Management
Loads and validates settings from settings.yml using Pydantic
"""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

logger = logging.getLogger(__name__)


class ControlSettings(BaseModel):
    """Loopback control channel settings"""
    host: str = Field(
        default="127.0.0.1",
        description="Interface the control server binds to"
    )
    port: int = Field(
        default=51515,
        ge=1,
        le=65535,
        description="TCP port of the control server (1-65535)"
    )
    connect_timeout: float = Field(
        default=1.0,
        gt=0,
        description="Seconds a client waits to connect to a running instance"
    )
    read_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds the server waits for a command line"
    )

    @field_validator('host')
    @classmethod
    def validate_host(cls, v: str) -> str:
        """Keep the control channel on loopback"""
        if v not in ("127.0.0.1", "localhost", "::1"):
            raise ValueError("control host must be a loopback address")
        return v


class ClipboardSettings(BaseModel):
    """Clipboard polling settings"""
    poll_interval_ms: int = Field(
        default=300,
        ge=10,
        le=60000,
        description="Milliseconds between clipboard polls (10-60000)"
    )


class HistorySettings(BaseModel):
    """History retention and storage settings"""
    max_items: int = Field(
        default=1000,
        ge=1,
        le=100000,
        description="Maximum number of entries kept in memory and on disk"
    )
    data_dir: Optional[Path] = Field(
        default=None,
        description="Directory for the history file; OS default when unset"
    )
    file_name: str = Field(
        default="history.txt",
        description="Name of the history file inside data_dir"
    )

    @field_validator('file_name')
    @classmethod
    def validate_file_name(cls, v: str) -> str:
        """File name must not point outside data_dir"""
        if not v or "/" in v or "\\" in v:
            raise ValueError("file_name must be a plain file name")
        return v


class DisplaySettings(BaseModel):
    """Presentation-related settings"""
    max_visible: int = Field(
        default=20,
        ge=1,
        le=500,
        description="Maximum number of entries shown in the popup (1-500)"
    )
    preview_chars: int = Field(
        default=80,
        ge=10,
        le=1000,
        description="Length of the single-line preview (10-1000)"
    )


class Settings(BaseModel):
    """Main settings model"""
    control: ControlSettings = Field(default_factory=ControlSettings)
    clipboard: ClipboardSettings = Field(default_factory=ClipboardSettings)
    history: HistorySettings = Field(default_factory=HistorySettings)
    display: DisplaySettings = Field(default_factory=DisplaySettings)


def default_config_path() -> Path:
    """Return $XDG_CONFIG_HOME/clipstack/settings.yml"""
    xdg_config_home = os.environ.get('XDG_CONFIG_HOME', str(Path.home() / '.config'))
    return Path(xdg_config_home) / 'clipstack' / 'settings.yml'


class SettingsManager:
    """Manages loading and accessing settings"""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager

        Args:
            config_path: Path to settings.yml file. Defaults to the XDG config dir
        """
        if config_path is None:
            config_path = default_config_path()

        self.config_path = Path(config_path)
        self.settings = self._load_settings()

    def _load_settings(self) -> Settings:
        """Load and validate settings from YAML file"""
        try:
            if not self.config_path.exists():
                logger.info(f"Settings file not found at {self.config_path}, using defaults")
                return Settings()

            with open(self.config_path, 'r') as f:
                config_data = yaml.safe_load(f)

            if config_data is None:
                logger.info("Settings file is empty, using defaults")
                return Settings()

            settings = Settings(**config_data)
            logger.info(f"Loaded settings from {self.config_path}")
            logger.debug(f"  - Control port: {settings.control.port}")
            logger.debug(f"  - Max history: {settings.history.max_items}")
            return settings

        except yaml.YAMLError as e:
            logger.error(f"Error parsing settings YAML: {e}. Using default settings")
            return Settings()
        except (ValidationError, TypeError) as e:
            logger.error(f"Invalid settings in {self.config_path}: {e}. Using default settings")
            return Settings()
        except OSError as e:
            logger.error(f"Error loading settings: {e}. Using default settings")
            return Settings()

    def reload(self):
        """Reload settings from file"""
        self.settings = self._load_settings()

    @property
    def control(self) -> ControlSettings:
        return self.settings.control

    @property
    def clipboard(self) -> ClipboardSettings:
        return self.settings.clipboard

    @property
    def history(self) -> HistorySettings:
        return self.settings.history

    @property
    def display(self) -> DisplaySettings:
        return self.settings.display

    @property
    def control_port(self) -> int:
        """Get the control server port"""
        return self.settings.control.port

    @property
    def poll_interval_ms(self) -> int:
        """Get the clipboard poll interval"""
        return self.settings.clipboard.poll_interval_ms

    @property
    def max_items(self) -> int:
        """Get the history bound"""
        return self.settings.history.max_items

    def update_settings(self, **kwargs):
        """Update settings, validate and save to file

        Keys may be dotted to reach nested sections, e.g. ``history.max_items``.
        """
        data = self.settings.model_dump()
        for key, value in kwargs.items():
            parts = key.split('.')
            target = data
            for part in parts[:-1]:
                target = target[part]
            target[parts[-1]] = value

        self.settings = Settings(**data)
        self._save_settings()

    def _save_settings(self):
        """Save current settings to YAML file"""
        config_data = self.settings.model_dump(mode='json')
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w') as f:
            yaml.dump(config_data, f, default_flow_style=False)
