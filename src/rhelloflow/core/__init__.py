"""Core scoring components."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .answers import (
    apply_candidate_response,
    empty_answer,
    graded_open_text,
    score_multiple_choice,
    validate_rating,
)
from .completion import CompletionGate, PendingGrading, PendingItem
from .ranking import CandidateRanking, CriterionAverage, RankingConfig, ScorecardRanker
from .scoring import EMPTY_RESULT, ScoreResult, ScoringConfig, ScoringEngine


@runtime_checkable
class ScoredAnswer(Protocol):
    """Anything the scoring engine can read a score from."""

    criterion_id: str
    score: int | None


__all__ = [
    "ScoredAnswer",
    "ScoringEngine",
    "ScoringConfig",
    "ScoreResult",
    "EMPTY_RESULT",
    "CompletionGate",
    "PendingGrading",
    "PendingItem",
    "ScorecardRanker",
    "RankingConfig",
    "CandidateRanking",
    "CriterionAverage",
    "apply_candidate_response",
    "empty_answer",
    "graded_open_text",
    "score_multiple_choice",
    "validate_rating",
]
