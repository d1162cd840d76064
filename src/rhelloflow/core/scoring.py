"""Weighted scorecard scoring."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Iterable


@dataclass
class ScoringConfig:
    """Scale used by every criterion and the fixed multiple-choice outcomes."""

    max_score: int = 5
    correct_choice_score: int | None = None
    incorrect_choice_score: int = 0

    def __post_init__(self) -> None:
        if self.correct_choice_score is None:
            self.correct_choice_score = self.max_score
        # answers store scores in 0..5, and 1..max must span at least two values
        if not 2 <= self.max_score <= 5:
            raise ValueError(f"max_score must be between 2 and 5, got {self.max_score}")
        for name in ("correct_choice_score", "incorrect_choice_score"):
            value = getattr(self, name)
            if not 0 <= value <= self.max_score:
                raise ValueError(f"{name} must be between 0 and max_score, got {value}")


@dataclass(slots=True, frozen=True)
class ScoreResult:
    """Aggregate produced from one set of criteria and answers."""

    total_score: float
    match_percentage: int
    graded_weight: int
    graded_count: int

    @property
    def display_total(self) -> float:
        return round_half_up(self.total_score, 2)


EMPTY_RESULT = ScoreResult(total_score=0.0, match_percentage=0, graded_weight=0, graded_count=0)


class ScoringEngine:
    """Pure computation from (criteria, answers) to total score and match percentage.

    Only answers with a score above zero count. Ungraded criteria are left out of
    both the weighted sum and the weight denominator, so the percentage reflects
    how well the candidate did on what has been graded so far.
    """

    def __init__(self, *, config: ScoringConfig | None = None) -> None:
        self._config = config or ScoringConfig()

    @property
    def config(self) -> ScoringConfig:
        return self._config

    def score(self, criteria: Iterable[Any], answers: Iterable[Any]) -> ScoreResult:
        """Score answers against criteria.

        ``answers`` may be any objects exposing ``criterion_id`` and ``score``.
        Answers whose criterion is not part of ``criteria`` are ignored.
        """
        by_criterion: dict[str, int | None] = {}
        for answer in answers:
            if answer.criterion_id in by_criterion:
                raise ValueError(f"More than one answer for criterion {answer.criterion_id!r}")
            by_criterion[answer.criterion_id] = answer.score

        return self.score_pairs(
            (criterion.weight, by_criterion.get(criterion.id)) for criterion in criteria
        )

    def score_pairs(self, pairs: Iterable[tuple[int, int | None]]) -> ScoreResult:
        """Score ``(weight, score)`` pairs; ``None`` or ``0`` scores are ungraded."""
        max_score = self._config.max_score
        weighted_sum = 0.0
        graded_weight = 0
        graded_count = 0

        for weight, score in pairs:
            if score is None or score == 0:
                continue
            if score < 0 or score > max_score:
                raise ValueError(f"Score {score} outside 0..{max_score}")
            weighted_sum += score * weight / max_score
            graded_weight += weight
            graded_count += 1

        if graded_weight <= 0:
            return EMPTY_RESULT

        return ScoreResult(
            total_score=weighted_sum,
            match_percentage=int(round_half_up(weighted_sum * 100 / graded_weight)),
            graded_weight=graded_weight,
            graded_count=graded_count,
        )


def round_half_up(value: float, places: int = 0) -> float:
    """Round like a spreadsheet does: halves go up, not to the even neighbour."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))
