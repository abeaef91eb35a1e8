"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class StoreConfig(BaseModel):
    backend: Literal["memory", "json"] = "memory"
    path: Path | None = None

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _require_path(self) -> "StoreConfig":
        if self.backend == "json" and self.path is None:
            raise ValueError("store.path is required for the json backend")
        return self


class RepositoryConfig(BaseModel):
    cache_ttl_seconds: float = Field(default=30.0, ge=0)

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    store: StoreConfig = Field(default_factory=StoreConfig)
    repository: RepositoryConfig = Field(default_factory=RepositoryConfig)
    log_level: str = "INFO"

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {
            "store": self.store.model_dump(exclude_none=True),
            "repository": self.repository.model_dump(),
        }
        if settings["store"].get("path") is not None:
            settings["store"]["path"] = str(settings["store"]["path"])
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
