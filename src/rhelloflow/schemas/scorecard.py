"""Scorecard session and answer schemas.

An answer is a common envelope (session, criterion, score, notes) plus a payload
tagged by the criterion's question type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal, Union
from uuid import uuid4

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from .criterion import QuestionType

Recommendation = Literal["strong_yes", "yes", "maybe", "no"]
ScorecardSource = Literal["interno", "externo"]

RECOMMENDATIONS: tuple[str, ...] = ("strong_yes", "yes", "maybe", "no")


def _new_id() -> str:
    return str(uuid4())


class RatingAnswer(BaseModel):
    """Rating payload; the score itself lives on the envelope."""

    question_type: Literal["rating"] = "rating"

    model_config = ConfigDict(extra="forbid")


class OpenTextAnswer(BaseModel):
    """Free-text answer, graded later by a human."""

    question_type: Literal["open_text"] = "open_text"
    text_answer: str | None = None
    graded_by: str | None = None
    graded_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class MultipleChoiceAnswer(BaseModel):
    """Selected option plus the correctness computed at answer time."""

    question_type: Literal["multiple_choice"] = "multiple_choice"
    selected_option_index: int | None = None
    is_correct: bool | None = None

    model_config = ConfigDict(extra="forbid")


AnswerPayload = Annotated[
    Union[RatingAnswer, OpenTextAnswer, MultipleChoiceAnswer],
    Field(discriminator="question_type"),
]


class Answer(BaseModel):
    """Stored response for one criterion within one scorecard."""

    id: str = Field(default_factory=_new_id)
    scorecard_id: str
    criterion_id: str
    score: int | None = Field(default=None, ge=0, le=5)
    notes: str | None = None
    payload: AnswerPayload = Field(default_factory=RatingAnswer)

    model_config = ConfigDict(extra="forbid")

    @property
    def question_type(self) -> QuestionType:
        return self.payload.question_type

    @property
    def is_graded(self) -> bool:
        return self.score is not None and self.score > 0


class Scorecard(BaseModel):
    """One evaluator's pass through a template for one candidate."""

    id: str = Field(default_factory=_new_id)
    candidate_id: str
    template_id: str
    evaluator_id: str
    vaga_id: str | None = None
    source: ScorecardSource = "interno"
    recommendation: Recommendation | None = None
    comments: str = ""
    total_score: float | None = None
    match_percentage: int | None = None
    submitted_at: datetime | None = None
    expires_at: datetime | None = None
    external_token: str | None = None
    created_by: str | None = None
    created_at: datetime | None = None

    model_config = ConfigDict(extra="forbid")


class User(BaseModel):
    """Signed-in user as reported by the identity provider."""

    id: str
    display_name: str = ""

    model_config = ConfigDict(extra="forbid", frozen=True)


class CandidateResponse(BaseModel):
    """One answer sent by a candidate from the public test page."""

    criterion_id: str = Field(validation_alias=AliasChoices("criterion_id", "criteria_id"))
    score: int | None = None
    text_answer: str | None = None
    selected_option_index: int | None = None
    notes: str | None = None

    model_config = ConfigDict(extra="ignore")
