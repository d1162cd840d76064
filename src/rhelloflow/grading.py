"""Open-text grading and write-through score aggregation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

import pendulum
import structlog

from .audit import AuditLogger
from .core import (
    CompletionGate,
    PendingGrading,
    ScoreResult,
    ScoringEngine,
    graded_open_text,
    validate_rating,
)
from .errors import (
    AuthenticationError,
    OperationInProgressError,
    ScorecardValidationError,
)
from .schemas import Answer, Criterion, Scorecard
from .stores import AnswerStore, IdentityProvider, ScorecardStore, TemplateStore


@dataclass(slots=True)
class ScoreUpdate:
    """Aggregate change announced to observers."""

    scorecard_id: str
    total_score: float
    match_percentage: int
    answer_id: str | None = None
    tentative: bool = False


@dataclass(slots=True)
class RecordedScore:
    """Authoritative state read back after a recompute."""

    scorecard: Scorecard
    criteria: list[Criterion]
    answers: list[Answer]
    result: ScoreResult


class ScoreRecorder:
    """Recompute a scorecard aggregate from its stored answers and persist it.

    Every write path that changes an answer score finishes here, so the
    aggregate on the scorecard row never goes stale.
    """

    def __init__(
        self,
        *,
        templates: TemplateStore,
        scorecards: ScorecardStore,
        answers: AnswerStore,
        engine: ScoringEngine | None = None,
    ) -> None:
        self._templates = templates
        self._scorecards = scorecards
        self._answers = answers
        self._engine = engine or ScoringEngine()
        self._logger = structlog.get_logger(__name__)

    def compute(self, scorecard_id: str) -> RecordedScore:
        """Read the latest persisted state and score it without writing."""
        scorecard = self._scorecards.get_scorecard(scorecard_id)
        criteria = self._templates.list_criteria(scorecard.template_id)
        answers = self._answers.list_answers(scorecard_id)
        result = self._engine.score(criteria, answers)
        return RecordedScore(scorecard=scorecard, criteria=criteria, answers=answers, result=result)

    def refresh(self, scorecard_id: str, **extra: Any) -> RecordedScore:
        recorded = self.compute(scorecard_id)
        scorecard = self._scorecards.update_scorecard(
            scorecard_id,
            {
                "total_score": recorded.result.total_score,
                "match_percentage": recorded.result.match_percentage,
                **extra,
            },
        )
        self._logger.info(
            "scorecard.aggregate_refreshed",
            scorecard_id=scorecard_id,
            total_score=recorded.result.total_score,
            match_percentage=recorded.result.match_percentage,
            graded_count=recorded.result.graded_count,
        )
        recorded.scorecard = scorecard
        return recorded


class GradingEventHandler:
    """Apply one human grade to an ungraded open-text answer.

    The answer row is updated on its own, then the aggregate is recomputed from a
    fresh read of every answer and persisted on the scorecard.
    """

    def __init__(
        self,
        *,
        answers: AnswerStore,
        recorder: ScoreRecorder,
        identity: IdentityProvider,
        engine: ScoringEngine | None = None,
        audit_logger: AuditLogger | None = None,
        now_provider: Callable[[], Any] | None = None,
    ) -> None:
        self._answers = answers
        self._recorder = recorder
        self._identity = identity
        self._engine = engine or ScoringEngine()
        self._audit_logger = audit_logger
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._listeners: list[Callable[[ScoreUpdate], None]] = []
        self._logger = structlog.get_logger(__name__)

    def subscribe(self, listener: Callable[[ScoreUpdate], None]) -> Callable[[], None]:
        """Register an observer; returns a callable that unsubscribes it."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def check_gradable(
        self,
        scorecard: Scorecard,
        answer: Answer,
        criterion: Criterion | None,
        score: int,
    ) -> None:
        validate_rating(score, self._engine.config, label="Grade")
        if scorecard.source == "externo" and scorecard.submitted_at is None:
            raise ScorecardValidationError("The candidate has not submitted this test yet")
        if criterion is None or criterion.question_type != "open_text":
            raise ScorecardValidationError("Only open-text answers are graded by a person")
        if answer.is_graded:
            raise ScorecardValidationError("Answer has already been graded")

    def grade_open_text(self, scorecard_id: str, answer_id: str, score: int) -> RecordedScore:
        user = self._identity.get_current_user()
        if user is None:
            raise AuthenticationError("Sign in to grade answers")

        with structlog.contextvars.bound_contextvars(scorecard_id=scorecard_id, answer_id=answer_id):
            current = self._recorder.compute(scorecard_id)
            answer = next((a for a in current.answers if a.id == answer_id), None)
            if answer is None:
                raise ScorecardValidationError(f"Answer {answer_id!r} is not part of this scorecard")
            criterion = next((c for c in current.criteria if c.id == answer.criterion_id), None)
            self.check_gradable(current.scorecard, answer, criterion, score)

            graded_at = self._now_provider()
            self._answers.update_answer(answer_id, graded_open_text(answer, score, user.id, graded_at))
            try:
                recorded = self._recorder.refresh(scorecard_id)
            except Exception:
                # answer is stored; `rhelloflow score --persist` repairs the aggregate
                self._logger.error("grading.aggregate_stale", grader_id=user.id)
                raise

            self._logger.info(
                "grading.applied",
                grader_id=user.id,
                score=score,
                match_percentage=recorded.result.match_percentage,
            )
            if self._audit_logger:
                self._audit_logger.append(
                    {
                        "event": "open_text_graded",
                        "scorecard_id": scorecard_id,
                        "answer_id": answer_id,
                        "criterion_id": answer.criterion_id,
                        "score": score,
                        "graded_by": user.id,
                        "graded_at": graded_at,
                        "total_score": recorded.result.total_score,
                        "match_percentage": recorded.result.match_percentage,
                    }
                )

        self._notify(
            ScoreUpdate(
                scorecard_id=scorecard_id,
                total_score=recorded.result.total_score,
                match_percentage=recorded.result.match_percentage,
                answer_id=answer_id,
            )
        )
        return recorded

    def _notify(self, update: ScoreUpdate) -> None:
        for listener in list(self._listeners):
            listener(update)


class GradingView:
    """Local state of one scorecard as seen by a grading recruiter.

    A grade is shown at once as a tentative value; the view keeps it only once
    the handler confirms persistence, otherwise it reloads everything from the
    store.
    """

    def __init__(
        self,
        *,
        handler: GradingEventHandler,
        recorder: ScoreRecorder,
        scorecard_id: str,
        engine: ScoringEngine | None = None,
        gate: CompletionGate | None = None,
    ) -> None:
        self._handler = handler
        self._recorder = recorder
        self._scorecard_id = scorecard_id
        self._engine = engine or ScoringEngine()
        self._gate = gate or CompletionGate()
        self._observers: list[Callable[[ScoreUpdate], None]] = []
        self._busy = False
        self._logger = structlog.get_logger(__name__)
        self.reload()

    @property
    def scorecard(self) -> Scorecard:
        return self._scorecard

    @property
    def criteria(self) -> list[Criterion]:
        return list(self._criteria)

    @property
    def answers(self) -> list[Answer]:
        return list(self._answers)

    @property
    def result(self) -> ScoreResult:
        return self._result

    @property
    def busy(self) -> bool:
        return self._busy

    @property
    def pending(self) -> PendingGrading:
        return self._gate.pending_open_text(self._criteria, self._answers)

    def observe(self, observer: Callable[[ScoreUpdate], None]) -> None:
        self._observers.append(observer)

    def reload(self) -> None:
        recorded = self._recorder.compute(self._scorecard_id)
        self._adopt(recorded)

    def grade(self, answer_id: str, score: int) -> ScoreResult:
        if self._busy:
            raise OperationInProgressError("A grade is already being saved")

        answer = next((a for a in self._answers if a.id == answer_id), None)
        if answer is None:
            raise ScorecardValidationError(f"Answer {answer_id!r} is not part of this scorecard")
        criterion = next((c for c in self._criteria if c.id == answer.criterion_id), None)
        self._handler.check_gradable(self._scorecard, answer, criterion, score)

        self._busy = True
        try:
            self._answers = [
                a.model_copy(update={"score": score}) if a.id == answer_id else a
                for a in self._answers
            ]
            self._result = self._engine.score(self._criteria, self._answers)
            self._publish(answer_id, tentative=True)

            try:
                recorded = self._handler.grade_open_text(self._scorecard_id, answer_id, score)
            except Exception:
                self._logger.warning("grading.reconciled", scorecard_id=self._scorecard_id, answer_id=answer_id)
                self.reload()
                self._publish(answer_id)
                raise

            self._adopt(recorded)
            self._publish(answer_id)
            return self._result
        finally:
            self._busy = False

    def _adopt(self, recorded: RecordedScore) -> None:
        self._scorecard = recorded.scorecard
        self._criteria = recorded.criteria
        self._answers = recorded.answers
        self._result = recorded.result

    def _publish(self, answer_id: str, *, tentative: bool = False) -> None:
        update = ScoreUpdate(
            scorecard_id=self._scorecard_id,
            total_score=self._result.total_score,
            match_percentage=self._result.match_percentage,
            answer_id=answer_id,
            tentative=tentative,
        )
        for observer in list(self._observers):
            observer(update)
