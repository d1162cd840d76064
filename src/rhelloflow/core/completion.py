"""Completion rules deciding whether a scorecard can be finalized."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from ..errors import ScorecardValidationError


@dataclass(slots=True, frozen=True)
class PendingItem:
    """Open-text answer still waiting for a human grade."""

    answer_id: str
    criterion_id: str
    criterion_name: str
    weight: int


@dataclass(slots=True)
class PendingGrading:
    """Informational summary of ungraded open-text answers."""

    items: list[PendingItem] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)

    @property
    def total_weight(self) -> int:
        return sum(item.weight for item in self.items)

    def message(self) -> str:
        if not self.items:
            return "All open-text answers graded"
        noun = "question" if self.count == 1 else "questions"
        return f"{self.count} pending {noun}, weight {self.total_weight}% unaccounted for"


class CompletionGate:
    """Decide between final submission and partial display of a scorecard."""

    def all_scores_set(self, criteria: Sequence[Any], answers: Iterable[Any]) -> bool:
        if not criteria:
            return False
        scores = {answer.criterion_id: answer.score for answer in answers}
        return all(_is_scored(scores.get(criterion.id)) for criterion in criteria)

    def missing_requirements(
        self,
        criteria: Sequence[Any],
        answers: Iterable[Any],
        recommendation: str | None,
    ) -> list[str]:
        answers = list(answers)
        missing: list[str] = []
        if not criteria:
            missing.append("Template has no criteria to score")
        elif not self.all_scores_set(criteria, answers):
            scores = {answer.criterion_id: answer.score for answer in answers}
            names = [c.name for c in criteria if not _is_scored(scores.get(c.id))]
            missing.append(f"Score every criterion (missing: {', '.join(names)})")
        if not recommendation:
            missing.append("Select a recommendation")
        return missing

    def ensure_submittable(
        self,
        criteria: Sequence[Any],
        answers: Iterable[Any],
        recommendation: str | None,
    ) -> None:
        """Raise ``ScorecardValidationError`` unless submission is allowed."""
        missing = self.missing_requirements(criteria, answers, recommendation)
        if missing:
            raise ScorecardValidationError(missing)

    def pending_open_text(self, criteria: Iterable[Any], answers: Iterable[Any]) -> PendingGrading:
        by_id = {criterion.id: criterion for criterion in criteria}
        items: list[PendingItem] = []
        for answer in answers:
            criterion = by_id.get(answer.criterion_id)
            if criterion is None or criterion.question_type != "open_text":
                continue
            if _is_scored(answer.score):
                continue
            items.append(
                PendingItem(
                    answer_id=answer.id,
                    criterion_id=criterion.id,
                    criterion_name=criterion.name,
                    weight=criterion.weight,
                )
            )
        return PendingGrading(items=items)


def _is_scored(score: int | None) -> bool:
    return score is not None and score > 0
