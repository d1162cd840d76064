"""Template and criterion schemas."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

QuestionType = Literal["rating", "open_text", "multiple_choice"]
CriterionCategory = Literal["hard_skills", "soft_skills", "experiencia", "fit_cultural", "outros"]
TemplateType = Literal["avaliacao", "teste_tecnico"]


class ChoiceOption(BaseModel):
    """One option of a multiple-choice criterion."""

    text: str
    is_correct: bool = False

    model_config = ConfigDict(extra="forbid", frozen=True)


class Criterion(BaseModel):
    """Weighted, typed question belonging to a template."""

    id: str
    template_id: str
    name: str
    description: str | None = None
    category: CriterionCategory = "outros"
    weight: int = Field(ge=1, le=100)
    question_type: QuestionType = "rating"
    display_order: int = 0
    options: list[ChoiceOption] = Field(default_factory=list)

    model_config = ConfigDict(extra="forbid", frozen=True)

    @model_validator(mode="after")
    def _require_options(self) -> "Criterion":
        if self.question_type == "multiple_choice" and not self.options:
            raise ValueError("multiple_choice criteria need at least one option")
        return self

    def correct_option_index(self) -> int | None:
        for index, option in enumerate(self.options):
            if option.is_correct:
                return index
        return None


class ScorecardTemplate(BaseModel):
    """Evaluation template grouping an ordered list of criteria."""

    id: str
    name: str
    description: str | None = None
    type: TemplateType = "avaliacao"
    active: bool = True

    model_config = ConfigDict(extra="forbid")
