"""Pydantic configuration schema for CLI YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, ValidationError


class NormalizationConfig(BaseModel):
    salary: dict[str, Any] | None = None


class ServiceConfig(BaseModel):
    base_url: str | None = None
    api_token: str | None = None
    timeout: float | None = None


class AppConfig(BaseModel):
    normalization: NormalizationConfig = Field(default_factory=NormalizationConfig)
    filters: dict[str, Any] | None = None
    orchestrator: dict[str, Any] | None = None
    service: ServiceConfig = Field(default_factory=ServiceConfig)

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        normalization = self.normalization.model_dump(exclude_none=True)
        if normalization:
            settings["normalization"] = normalization
        if self.filters:
            settings["filters"] = dict(self.filters)
        if self.orchestrator:
            settings["orchestrator"] = dict(self.orchestrator)
        service = self.service.model_dump(exclude_none=True)
        if service:
            settings["service"] = service
        return settings


def load_config(raw: Any) -> AppConfig:
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
