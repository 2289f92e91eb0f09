"""Centralised configuration for the ReformAI API."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class StorageBackend(str, Enum):
    database = "database"
    supabase = "supabase"


def _int_setting(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"Environment variable {name} must be an integer, got {value!r}") from exc


def _str_setting(name: str, default: str) -> str:
    return os.getenv(name, default)


def _optional_str_setting(*names: str) -> Optional[str]:
    for name in names:
        value = os.getenv(name)
        if value:
            return value
    return None


def _bool_setting(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _list_setting(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class ApiSettings:
    database_url: str = "sqlite:///./reformai.db"
    storage_backend: StorageBackend = StorageBackend.database
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    history_limit: int = 100
    max_upload_bytes: int = 25 * 1024 * 1024
    llm_model: str = "auto"
    cors_enabled: bool = True
    cors_origins: list[str] = field(default_factory=lambda: ["http://localhost:3000", "http://localhost:5173"])


def load_settings() -> ApiSettings:
    defaults = ApiSettings()
    backend_name = _str_setting("REFORMAI_STORAGE_BACKEND", defaults.storage_backend.value).strip().lower()
    try:
        storage_backend = StorageBackend(backend_name)
    except ValueError as exc:
        raise ValueError(
            f"REFORMAI_STORAGE_BACKEND must be one of {[b.value for b in StorageBackend]}, got {backend_name!r}"
        ) from exc

    history_limit = _int_setting("REFORMAI_HISTORY_LIMIT", defaults.history_limit)
    if history_limit < 1:
        raise ValueError("REFORMAI_HISTORY_LIMIT must be at least 1")

    return ApiSettings(
        database_url=_str_setting("DATABASE_URL", defaults.database_url),
        storage_backend=storage_backend,
        supabase_url=_optional_str_setting("SUPABASE_URL", "VITE_SUPABASE_URL"),
        supabase_key=_optional_str_setting("SUPABASE_SERVICE_ROLE_KEY", "SUPABASE_KEY", "VITE_SUPABASE_ANON_KEY"),
        history_limit=history_limit,
        max_upload_bytes=_int_setting("REFORMAI_MAX_UPLOAD_BYTES", defaults.max_upload_bytes),
        llm_model=_str_setting("REFORMAI_LLM_MODEL", defaults.llm_model),
        cors_enabled=_bool_setting("REFORMAI_CORS_ENABLED", defaults.cors_enabled),
        cors_origins=_list_setting("REFORMAI_CORS_ORIGINS", defaults.cors_origins),
    )


API_SETTINGS = load_settings()
