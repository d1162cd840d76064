"""Pydantic schema definitions for templates, criteria and scorecards."""

from __future__ import annotations

from .criterion import (
    ChoiceOption,
    Criterion,
    CriterionCategory,
    QuestionType,
    ScorecardTemplate,
    TemplateType,
)
from .scorecard import (
    RECOMMENDATIONS,
    Answer,
    AnswerPayload,
    CandidateResponse,
    MultipleChoiceAnswer,
    OpenTextAnswer,
    RatingAnswer,
    Recommendation,
    Scorecard,
    ScorecardSource,
    User,
)

__all__ = [
    "RECOMMENDATIONS",
    "Answer",
    "AnswerPayload",
    "CandidateResponse",
    "ChoiceOption",
    "Criterion",
    "CriterionCategory",
    "MultipleChoiceAnswer",
    "OpenTextAnswer",
    "QuestionType",
    "RatingAnswer",
    "Recommendation",
    "Scorecard",
    "ScorecardSource",
    "ScorecardTemplate",
    "TemplateType",
    "User",
]
