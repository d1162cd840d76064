"""Dictionary-backed store implementing every persistence protocol."""

from __future__ import annotations

from typing import Any, Iterable, Sequence

import pendulum
from pydantic import ValidationError

from ..errors import PersistenceError, RecordNotFoundError
from ..schemas import Answer, Criterion, Scorecard, ScorecardTemplate, User


class InMemoryStore:
    """In-process store for templates, criteria, scorecards and answers.

    Every read returns a copy so that callers never share state with the store.
    """

    def __init__(
        self,
        *,
        templates: Iterable[ScorecardTemplate] = (),
        criteria: Iterable[Criterion] = (),
        scorecards: Iterable[Scorecard] = (),
        answers: Iterable[Answer] = (),
        now_provider: Any | None = None,
    ) -> None:
        self._templates: dict[str, ScorecardTemplate] = {t.id: t for t in templates}
        self._criteria: dict[str, Criterion] = {c.id: c for c in criteria}
        self._scorecards: dict[str, Scorecard] = {s.id: s for s in scorecards}
        self._answers: dict[str, Answer] = {a.id: a for a in answers}
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))

    # templates

    def add_template(self, template: ScorecardTemplate, criteria: Iterable[Criterion] = ()) -> None:
        self._templates[template.id] = template
        for criterion in criteria:
            if criterion.template_id != template.id:
                raise ValueError(
                    f"Criterion {criterion.id!r} belongs to template {criterion.template_id!r}"
                )
            self._criteria[criterion.id] = criterion

    def list_active_templates(self, template_type: str | None = None) -> list[ScorecardTemplate]:
        templates = [
            t.model_copy()
            for t in self._templates.values()
            if t.active and (template_type is None or t.type == template_type)
        ]
        return sorted(templates, key=lambda t: t.name)

    def get_template(self, template_id: str) -> ScorecardTemplate:
        try:
            return self._templates[template_id].model_copy()
        except KeyError as exc:
            raise RecordNotFoundError("template", template_id) from exc

    def list_criteria(self, template_id: str) -> list[Criterion]:
        criteria = [c for c in self._criteria.values() if c.template_id == template_id]
        return sorted(criteria, key=lambda c: c.display_order)

    # scorecards

    def create_scorecard(self, scorecard: Scorecard) -> Scorecard:
        if scorecard.id in self._scorecards:
            raise PersistenceError(f"Scorecard {scorecard.id!r} already exists")
        if scorecard.template_id not in self._templates:
            raise RecordNotFoundError("template", scorecard.template_id)
        stored = scorecard.model_copy(deep=True)
        if stored.created_at is None:
            stored.created_at = self._now_provider()
        self._scorecards[stored.id] = stored
        return stored.model_copy(deep=True)

    def update_scorecard(self, scorecard_id: str, changes: dict[str, Any]) -> Scorecard:
        current = self._get_scorecard(scorecard_id)
        try:
            updated = Scorecard.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise PersistenceError(f"Rejected scorecard update {scorecard_id!r}: {exc}") from exc
        self._scorecards[scorecard_id] = updated
        return updated.model_copy(deep=True)

    def get_scorecard(self, scorecard_id: str) -> Scorecard:
        return self._get_scorecard(scorecard_id).model_copy(deep=True)

    def find_scorecard_by_token(self, token: str) -> Scorecard | None:
        for scorecard in self._scorecards.values():
            if scorecard.source == "externo" and scorecard.external_token == token:
                return scorecard.model_copy(deep=True)
        return None

    def list_scorecards(
        self,
        *,
        vaga_id: str | None = None,
        candidate_id: str | None = None,
        source: str | None = None,
    ) -> list[Scorecard]:
        matches = [
            s.model_copy(deep=True)
            for s in self._scorecards.values()
            if (vaga_id is None or s.vaga_id == vaga_id)
            and (candidate_id is None or s.candidate_id == candidate_id)
            and (source is None or s.source == source)
        ]
        matches.sort(key=lambda s: s.created_at or pendulum.datetime(1970, 1, 1), reverse=True)
        return matches

    def delete_scorecard(self, scorecard_id: str) -> None:
        self._get_scorecard(scorecard_id)
        del self._scorecards[scorecard_id]
        for answer_id in [a.id for a in self._answers.values() if a.scorecard_id == scorecard_id]:
            del self._answers[answer_id]

    def _get_scorecard(self, scorecard_id: str) -> Scorecard:
        try:
            return self._scorecards[scorecard_id]
        except KeyError as exc:
            raise RecordNotFoundError("scorecard", scorecard_id) from exc

    # answers

    def insert_answers(self, scorecard_id: str, answers: Sequence[Answer]) -> list[Answer]:
        self._get_scorecard(scorecard_id)
        taken = {a.criterion_id for a in self._answers.values() if a.scorecard_id == scorecard_id}
        batch: list[Answer] = []
        for answer in answers:
            if answer.scorecard_id != scorecard_id:
                raise PersistenceError(
                    f"Answer {answer.id!r} belongs to scorecard {answer.scorecard_id!r}"
                )
            if answer.criterion_id in taken or answer.id in self._answers:
                raise PersistenceError(
                    f"Duplicate answer for criterion {answer.criterion_id!r} in scorecard {scorecard_id!r}"
                )
            taken.add(answer.criterion_id)
            batch.append(answer.model_copy(deep=True))
        for answer in batch:
            self._answers[answer.id] = answer
        return [answer.model_copy(deep=True) for answer in batch]

    def update_answer(self, answer_id: str, changes: dict[str, Any]) -> Answer:
        current = self._get_answer(answer_id)
        forbidden = {"id", "scorecard_id", "criterion_id"} & changes.keys()
        if forbidden:
            raise PersistenceError(f"Answer fields are immutable: {', '.join(sorted(forbidden))}")
        try:
            updated = Answer.model_validate({**current.model_dump(), **changes})
        except ValidationError as exc:
            raise PersistenceError(f"Rejected answer update {answer_id!r}: {exc}") from exc
        self._answers[answer_id] = updated
        return updated.model_copy(deep=True)

    def get_answer(self, answer_id: str) -> Answer:
        return self._get_answer(answer_id).model_copy(deep=True)

    def list_answers(self, scorecard_id: str) -> list[Answer]:
        return [
            a.model_copy(deep=True)
            for a in self._answers.values()
            if a.scorecard_id == scorecard_id
        ]

    def _get_answer(self, answer_id: str) -> Answer:
        try:
            return self._answers[answer_id]
        except KeyError as exc:
            raise RecordNotFoundError("answer", answer_id) from exc


class StaticIdentity:
    """Identity provider returning a fixed user."""

    def __init__(self, user: User | None = None) -> None:
        self._user = user

    def get_current_user(self) -> User | None:
        return self._user
