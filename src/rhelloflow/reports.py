"""Read-side reports built from stored scorecards."""

from __future__ import annotations

from dataclasses import dataclass, field

import structlog

from .core import CandidateRanking, ScorecardRanker
from .schemas import Answer, Criterion, Scorecard
from .stores import AnswerStore, ScorecardStore, TemplateStore


@dataclass(slots=True)
class VagaRanking:
    vaga_id: str
    candidates: list[CandidateRanking] = field(default_factory=list)

    @property
    def total_candidates(self) -> int:
        return len(self.candidates)


@dataclass(slots=True)
class HistoryEntry:
    scorecard: Scorecard
    answers: list[Answer]


@dataclass(slots=True)
class CandidateHistory:
    candidate_id: str
    entries: list[HistoryEntry] = field(default_factory=list)

    @property
    def average_match_percentage(self) -> float | None:
        values = [
            e.scorecard.match_percentage
            for e in self.entries
            if e.scorecard.match_percentage is not None
        ]
        if not values:
            return None
        return sum(values) / len(values)


class ScorecardReports:
    """Rankings per vacancy and per-candidate scorecard history."""

    def __init__(
        self,
        *,
        templates: TemplateStore,
        scorecards: ScorecardStore,
        answers: AnswerStore,
        ranker: ScorecardRanker | None = None,
    ) -> None:
        self._templates = templates
        self._scorecards = scorecards
        self._answers = answers
        self._ranker = ranker or ScorecardRanker()
        self._logger = structlog.get_logger(__name__)

    def rank_vaga(self, vaga_id: str) -> VagaRanking:
        scorecards = [
            s for s in self._scorecards.list_scorecards(vaga_id=vaga_id)
            if s.total_score is not None
        ]
        entries = [(s, self._answers.list_answers(s.id)) for s in scorecards]
        criteria = self._criteria_for(scorecards)
        ranking = VagaRanking(vaga_id=vaga_id, candidates=self._ranker.rank(entries, criteria))
        self._logger.info("reports.vaga_ranked", vaga_id=vaga_id, candidates=ranking.total_candidates)
        return ranking

    def candidate_history(self, candidate_id: str) -> CandidateHistory:
        scorecards = self._scorecards.list_scorecards(candidate_id=candidate_id)
        return CandidateHistory(
            candidate_id=candidate_id,
            entries=[HistoryEntry(scorecard=s, answers=self._answers.list_answers(s.id)) for s in scorecards],
        )

    def _criteria_for(self, scorecards: list[Scorecard]) -> dict[str, Criterion]:
        criteria: dict[str, Criterion] = {}
        for template_id in {s.template_id for s in scorecards}:
            for criterion in self._templates.list_criteria(template_id):
                criteria[criterion.id] = criterion
        return criteria
