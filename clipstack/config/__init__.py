"""Configuration management."""

from .paths import AppPaths, resolve_data_dir, resolve_storage_location

__all__ = ["AppPaths", "resolve_data_dir", "resolve_storage_location"]
