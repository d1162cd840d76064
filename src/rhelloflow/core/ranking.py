"""Per-vacancy ranking of candidates from their scorecards."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from ..schemas import Answer, Criterion, Scorecard
from .scoring import ScoringConfig, round_half_up


@dataclass
class RankingConfig:
    """Thresholds for the per-vacancy ranking."""

    low_confidence_below: int = 2
    top_criteria: int = 3


@dataclass(slots=True)
class CriterionAverage:
    criterion: str
    average: float
    weight: int
    category: str


@dataclass(slots=True)
class CandidateRanking:
    """Aggregated view of every scorecard a candidate received for one vacancy."""

    candidate_id: str
    total_score: float
    evaluators_count: int
    last_evaluation_date: datetime | None
    breakdown: list[CriterionAverage]
    top_criteria: list[CriterionAverage]
    comments: list[dict[str, Any]] = field(default_factory=list)
    low_confidence: bool = False


class ScorecardRanker:
    """Group scorecards by candidate and rank candidates by average total score."""

    def __init__(
        self,
        *,
        config: RankingConfig | None = None,
        scoring: ScoringConfig | None = None,
    ) -> None:
        self._config = config or RankingConfig()
        self._scoring = scoring or ScoringConfig()

    def rank(
        self,
        entries: Iterable[tuple[Scorecard, list[Answer]]],
        criteria: Mapping[str, Criterion],
    ) -> list[CandidateRanking]:
        groups: dict[str, list[tuple[Scorecard, list[Answer]]]] = {}
        for scorecard, answers in entries:
            if scorecard.total_score is None:
                continue
            groups.setdefault(scorecard.candidate_id, []).append((scorecard, answers))

        rankings = [
            self._rank_candidate(candidate_id, group, criteria)
            for candidate_id, group in groups.items()
        ]
        rankings.sort(key=lambda item: item.total_score, reverse=True)
        return rankings

    def _rank_candidate(
        self,
        candidate_id: str,
        group: list[tuple[Scorecard, list[Answer]]],
        criteria: Mapping[str, Criterion],
    ) -> CandidateRanking:
        scores: dict[str, list[float]] = {}
        meta: dict[str, Criterion] = {}
        comments: list[dict[str, Any]] = []
        last_date: datetime | None = None

        for scorecard, answers in group:
            if scorecard.comments:
                comments.append(
                    {
                        "text": scorecard.comments,
                        "evaluator_id": scorecard.evaluator_id,
                        "date": scorecard.created_at,
                    }
                )
            if scorecard.created_at and (last_date is None or scorecard.created_at > last_date):
                last_date = scorecard.created_at

            for answer in answers:
                criterion = criteria.get(answer.criterion_id)
                if criterion is None or not answer.is_graded:
                    continue
                scores.setdefault(criterion.name, []).append(self._normalize(answer.score))
                meta.setdefault(criterion.name, criterion)

        breakdown = [
            CriterionAverage(
                criterion=name,
                average=round_half_up(sum(values) / len(values), 1),
                weight=meta[name].weight,
                category=meta[name].category,
            )
            for name, values in scores.items()
        ]
        breakdown.sort(key=lambda item: item.average, reverse=True)

        totals = [scorecard.total_score for scorecard, _ in group]
        average_total = sum(totals) / len(totals)

        return CandidateRanking(
            candidate_id=candidate_id,
            total_score=round_half_up(average_total, 1),
            evaluators_count=len(group),
            last_evaluation_date=last_date,
            breakdown=breakdown,
            top_criteria=breakdown[: self._config.top_criteria],
            comments=comments,
            low_confidence=len(group) < self._config.low_confidence_below,
        )

    def _normalize(self, score: int) -> float:
        # 1..max maps to 0..100
        return (score - 1) / (self._scoring.max_score - 1) * 100
