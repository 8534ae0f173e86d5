"""Configuration management for the storefront service."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Tuple

import yaml

from .admin import DEFAULT_MASTER_CODE
from .database import resolve_database_path

SUPPORTED_BACKENDS = ("sqlite", "firestore")


@dataclass(frozen=True)
class Settings:
    """Runtime settings resolved from the environment and an optional YAML file."""

    backend: str
    database_path: Path
    master_code: str = DEFAULT_MASTER_CODE
    firebase_credentials: Optional[Path] = None
    cors_origins: Tuple[str, ...] = ("*",)

    def __post_init__(self) -> None:
        if self.backend not in SUPPORTED_BACKENDS:
            raise ValueError(
                f"Unsupported storage backend '{self.backend}'. Expected one of: {', '.join(SUPPORTED_BACKENDS)}"
            )
        if not self.master_code.strip():
            raise ValueError("The master access code must not be empty")


def _split_origins(value: object) -> Tuple[str, ...]:
    if isinstance(value, str):
        items = value.split(",")
    elif isinstance(value, (list, tuple)):
        items = [str(item) for item in value]
    else:
        raise ValueError("cors_origins must be a string or a list of strings")
    origins = tuple(item.strip() for item in items if item.strip())
    return origins or ("*",)


def resolve_config_path(env_value: Optional[str]) -> Path:
    """Resolve the path to the optional YAML configuration file."""
    if env_value:
        return Path(env_value).expanduser().resolve(strict=False)
    return (Path(__file__).resolve().parent.parent / "config" / "storefront.yaml").resolve(strict=False)


def load_config_file(config_path: Path) -> Dict[str, object]:
    """Read the YAML configuration file, returning an empty mapping if it is absent."""
    if not config_path.exists():
        return {}
    with config_path.open("r", encoding="utf-8") as handle:
        raw = yaml.safe_load(handle) or {}
    if not isinstance(raw, dict):
        raise ValueError(f"Configuration file {config_path} must contain a mapping")
    return raw


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings`; environment variables override the YAML file."""

    environ = os.environ if env is None else env
    file_values = load_config_file(resolve_config_path(environ.get("STOREFRONT_CONFIG")))

    def pick(env_name: str, key: str) -> Optional[object]:
        value = environ.get(env_name)
        if value:
            return value
        return file_values.get(key)

    backend = str(pick("STOREFRONT_BACKEND", "backend") or "sqlite").strip().lower()
    database_path = pick("STOREFRONT_DB_PATH", "database_path")
    master_code = pick("STOREFRONT_MASTER_CODE", "master_code")
    credentials = pick("STOREFRONT_FIREBASE_CREDENTIALS", "firebase_credentials")
    origins = pick("STOREFRONT_CORS_ORIGINS", "cors_origins")

    return Settings(
        backend=backend,
        database_path=resolve_database_path(str(database_path) if database_path else None),
        master_code=str(master_code) if master_code else DEFAULT_MASTER_CODE,
        firebase_credentials=Path(str(credentials)).expanduser() if credentials else None,
        cors_origins=_split_origins(origins) if origins is not None else ("*",),
    )


__all__ = ["SUPPORTED_BACKENDS", "Settings", "load_config_file", "load_settings", "resolve_config_path"]
