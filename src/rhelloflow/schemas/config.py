"""Pydantic configuration schema for YAML input."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator


class ScoringSection(BaseModel):
    max_score: int | None = Field(default=None, ge=2, le=5)
    correct_choice_score: int | None = Field(default=None, ge=0, le=5)
    incorrect_choice_score: int | None = Field(default=None, ge=0, le=5)

    model_config = ConfigDict(extra="forbid")

    @model_validator(mode="after")
    def _choices_within_scale(self) -> "ScoringSection":
        top = self.max_score or 5
        for name in ("correct_choice_score", "incorrect_choice_score"):
            value = getattr(self, name)
            if value is not None and value > top:
                raise ValueError(f"{name} must not exceed max_score ({top})")
        return self


class ExternalTestSection(BaseModel):
    default_expiration_days: int | None = Field(default=None, ge=1)
    token_prefix: str | None = None
    token_length: int | None = Field(default=None, ge=16)
    base_url: str | None = None
    path: str | None = None

    model_config = ConfigDict(extra="forbid")


class RankingSection(BaseModel):
    low_confidence_below: int | None = Field(default=None, ge=1)
    top_criteria: int | None = Field(default=None, ge=1)

    model_config = ConfigDict(extra="forbid")


class StoreSection(BaseModel):
    path: str | None = None

    model_config = ConfigDict(extra="forbid")


class AppConfig(BaseModel):
    scoring: ScoringSection = Field(default_factory=ScoringSection)
    external_tests: ExternalTestSection = Field(default_factory=ExternalTestSection)
    ranking: RankingSection = Field(default_factory=RankingSection)
    store: StoreSection = Field(default_factory=StoreSection)

    model_config = ConfigDict(extra="forbid")

    def to_settings(self) -> dict[str, Any]:
        settings: dict[str, Any] = {}
        for name in ("scoring", "external_tests", "ranking", "store"):
            section = getattr(self, name).model_dump(exclude_none=True)
            if section:
                settings[name] = section
        return settings


def load_config(raw: Any) -> AppConfig:
    if raw is None:
        return AppConfig()
    if not isinstance(raw, dict):
        raise ValidationError.from_exception_data(
            "AppConfig",
            [{"type": "dict_type", "loc": ("config",), "input": raw}],
        )
    return AppConfig.model_validate(raw)
