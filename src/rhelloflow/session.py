"""Recruiter-run (interno) scorecard sessions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Literal

import pendulum
import structlog

from .core import CompletionGate, ScoreResult, ScoringEngine, validate_rating
from .errors import (
    AuthenticationError,
    OperationInProgressError,
    PersistenceError,
    ScorecardValidationError,
    SessionClosedError,
)
from .schemas import RECOMMENDATIONS, Answer, Criterion, RatingAnswer, Scorecard, ScorecardTemplate
from .stores import AnswerStore, IdentityProvider, ScorecardStore, TemplateStore

SessionState = Literal["empty", "in_progress", "complete", "submitted"]


@dataclass(slots=True)
class AnswerDraft:
    """Unsaved score and notes for one criterion."""

    criterion_id: str
    score: int = 0
    notes: str = ""


@dataclass(slots=True, frozen=True)
class SubmittedScorecard:
    """Persisted result of a submitted session."""

    scorecard: Scorecard
    answers: tuple[Answer, ...]


class ScorecardSession:
    """One evaluator grading one candidate against one template.

    Scores live in memory until ``submit`` persists the scorecard and every
    answer together. A submitted session is closed; ``next_session`` prepares a
    fresh one for the same candidate.
    """

    def __init__(
        self,
        *,
        templates: TemplateStore,
        scorecards: ScorecardStore,
        answers: AnswerStore,
        identity: IdentityProvider,
        candidate_id: str,
        vaga_id: str | None = None,
        engine: ScoringEngine | None = None,
        gate: CompletionGate | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._templates = templates
        self._scorecards = scorecards
        self._answers = answers
        self._identity = identity
        self._candidate_id = candidate_id
        self._vaga_id = vaga_id
        self._engine = engine or ScoringEngine()
        self._gate = gate or CompletionGate()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._logger = structlog.get_logger(__name__)

        self._template: ScorecardTemplate | None = None
        self._criteria: list[Criterion] = []
        self._drafts: dict[str, AnswerDraft] = {}
        self._recommendation: str | None = None
        self._comments = ""
        self._saving = False
        self._submitted: SubmittedScorecard | None = None

    @property
    def candidate_id(self) -> str:
        return self._candidate_id

    @property
    def template(self) -> ScorecardTemplate | None:
        return self._template

    @property
    def criteria(self) -> list[Criterion]:
        return list(self._criteria)

    @property
    def drafts(self) -> list[AnswerDraft]:
        return [self._drafts[c.id] for c in self._criteria]

    @property
    def recommendation(self) -> str | None:
        return self._recommendation

    @property
    def comments(self) -> str:
        return self._comments

    @property
    def saving(self) -> bool:
        return self._saving

    @property
    def submitted(self) -> SubmittedScorecard | None:
        return self._submitted

    @property
    def state(self) -> SessionState:
        if self._submitted is not None:
            return "submitted"
        if self._template is None:
            return "empty"
        if self._recommendation and self.all_scores_set:
            return "complete"
        return "in_progress"

    @property
    def all_scores_set(self) -> bool:
        return self._gate.all_scores_set(self._criteria, self.drafts)

    @property
    def result(self) -> ScoreResult:
        return self._engine.score(self._criteria, self.drafts)

    def available_templates(self) -> list[ScorecardTemplate]:
        return self._templates.list_active_templates("avaliacao")

    def select_template(self, template_id: str) -> list[Criterion]:
        """Load a template's criteria and start over with empty drafts."""
        self._ensure_open()
        template = self._templates.get_template(template_id)
        if not template.active:
            raise ScorecardValidationError(f"Template {template.name!r} is not active")
        criteria = self._templates.list_criteria(template_id)
        unsupported = [c.name for c in criteria if c.question_type != "rating"]
        if unsupported:
            raise ScorecardValidationError(
                "Recruiter scorecards only rate criteria; send this template as a test link "
                f"(non-rating criteria: {', '.join(unsupported)})"
            )

        self._template = template
        self._criteria = criteria
        self._drafts = {c.id: AnswerDraft(criterion_id=c.id) for c in criteria}
        self._logger.debug("scorecard.template_selected", template_id=template_id, criteria=len(criteria))
        return self.criteria

    def set_score(self, criterion_id: str, score: int) -> None:
        self._draft(criterion_id).score = validate_rating(score, self._engine.config)

    def set_notes(self, criterion_id: str, notes: str) -> None:
        self._draft(criterion_id).notes = notes

    def set_recommendation(self, recommendation: str) -> None:
        self._ensure_open()
        if recommendation not in RECOMMENDATIONS:
            raise ScorecardValidationError(
                f"Recommendation must be one of {', '.join(RECOMMENDATIONS)}"
            )
        self._recommendation = recommendation

    def set_comments(self, comments: str) -> None:
        self._ensure_open()
        self._comments = comments

    def submit(self) -> SubmittedScorecard:
        """Persist the scorecard and all answers, all or nothing."""
        self._ensure_open()
        if self._saving:
            raise OperationInProgressError("Scorecard is already being saved")
        if self._template is None:
            raise ScorecardValidationError("Select a template")
        self._gate.ensure_submittable(self._criteria, self.drafts, self._recommendation)

        user = self._identity.get_current_user()
        if user is None:
            raise AuthenticationError("Sign in to submit a scorecard")

        self._saving = True
        try:
            result = self.result
            scorecard = self._scorecards.create_scorecard(
                Scorecard(
                    candidate_id=self._candidate_id,
                    template_id=self._template.id,
                    evaluator_id=user.id,
                    vaga_id=self._vaga_id,
                    source="interno",
                    recommendation=self._recommendation,
                    comments=self._comments,
                    total_score=result.total_score,
                    match_percentage=result.match_percentage,
                    created_by=user.id,
                    created_at=self._now_provider(),
                )
            )
            answers = [
                Answer(
                    scorecard_id=scorecard.id,
                    criterion_id=draft.criterion_id,
                    score=draft.score,
                    notes=draft.notes or None,
                    payload=RatingAnswer(),
                )
                for draft in self.drafts
            ]
            try:
                stored = self._answers.insert_answers(scorecard.id, answers)
            except PersistenceError:
                self._discard(scorecard.id)
                raise
        finally:
            self._saving = False

        self._submitted = SubmittedScorecard(scorecard=scorecard, answers=tuple(stored))
        self._logger.info(
            "scorecard.submitted",
            scorecard_id=scorecard.id,
            candidate_id=self._candidate_id,
            evaluator_id=user.id,
            match_percentage=result.match_percentage,
            recommendation=self._recommendation,
        )
        return self._submitted

    def next_session(self) -> "ScorecardSession":
        """Fresh, empty session for the same candidate and vacancy."""
        return ScorecardSession(
            templates=self._templates,
            scorecards=self._scorecards,
            answers=self._answers,
            identity=self._identity,
            candidate_id=self._candidate_id,
            vaga_id=self._vaga_id,
            engine=self._engine,
            gate=self._gate,
            now_provider=self._now_provider,
        )

    def _draft(self, criterion_id: str) -> AnswerDraft:
        self._ensure_open()
        try:
            return self._drafts[criterion_id]
        except KeyError as exc:
            raise ScorecardValidationError(f"Unknown criterion {criterion_id!r}") from exc

    def _ensure_open(self) -> None:
        if self._submitted is not None:
            raise SessionClosedError("Scorecard already submitted; start a new session to change it")

    def _discard(self, scorecard_id: str) -> None:
        # a scorecard without its answers is not a valid record
        try:
            self._scorecards.delete_scorecard(scorecard_id)
        except PersistenceError as exc:
            self._logger.error("scorecard.orphan_left", scorecard_id=scorecard_id, error=str(exc))
        else:
            self._logger.warning("scorecard.rolled_back", scorecard_id=scorecard_id)
