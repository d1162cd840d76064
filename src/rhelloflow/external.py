"""Candidate-facing technical tests addressed by an opaque token."""

from __future__ import annotations

import secrets
import string
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, Iterable

import pendulum
import structlog

from .core import ScoringConfig, apply_candidate_response, empty_answer
from .errors import (
    AuthenticationError,
    ExternalTestExpiredError,
    ExternalTestNotFoundError,
    ExternalTestSubmittedError,
    InvalidTestTemplateError,
    PersistenceError,
    RecordNotFoundError,
    ScorecardValidationError,
)
from .grading import RecordedScore, ScoreRecorder
from .schemas import CandidateResponse, Criterion, OpenTextAnswer, Scorecard, ScorecardTemplate
from .stores import AnswerStore, IdentityProvider, ScorecardStore, TemplateStore

_TOKEN_ALPHABET = string.ascii_letters + string.digits


@dataclass
class ExternalTestConfig:
    """Link issuance settings."""

    default_expiration_days: int = 7
    token_prefix: str = "tt_"
    token_length: int = 24
    base_url: str = "http://localhost:8080"
    path: str = "/teste-tecnico"


@dataclass(slots=True)
class IssuedTest:
    scorecard_id: str
    token: str
    url: str
    expires_at: datetime


@dataclass(slots=True)
class PublicTest:
    """What the unauthenticated test page may see."""

    scorecard_id: str
    expires_at: datetime | None
    template: dict[str, Any]
    criteria: list[dict[str, Any]] = field(default_factory=list)


class ExternalTestService:
    """Issue, display and collect technical tests answered by candidates."""

    def __init__(
        self,
        *,
        templates: TemplateStore,
        scorecards: ScorecardStore,
        answers: AnswerStore,
        identity: IdentityProvider,
        recorder: ScoreRecorder,
        config: ExternalTestConfig | None = None,
        scoring: ScoringConfig | None = None,
        now_provider: Callable[[], Any] | None = None,
        token_factory: Callable[[], str] | None = None,
    ) -> None:
        self._templates = templates
        self._scorecards = scorecards
        self._answers = answers
        self._identity = identity
        self._recorder = recorder
        self._config = config or ExternalTestConfig()
        self._scoring = scoring or ScoringConfig()
        self._now_provider = now_provider or (lambda: pendulum.now("UTC"))
        self._token_factory = token_factory or self._generate_token
        self._logger = structlog.get_logger(__name__)

    def available_templates(self) -> list[ScorecardTemplate]:
        return self._templates.list_active_templates("teste_tecnico")

    def issue_link(
        self,
        candidate_id: str,
        template_id: str,
        *,
        vaga_id: str | None = None,
        expiration_days: int | None = None,
    ) -> IssuedTest:
        user = self._identity.get_current_user()
        if user is None:
            raise AuthenticationError("Sign in to send a technical test")
        if not candidate_id or not template_id:
            raise ScorecardValidationError("candidate_id and template_id are required")

        template = self._test_template(template_id)
        criteria = self._templates.list_criteria(template.id)
        days = expiration_days or self._config.default_expiration_days
        if days < 1:
            raise ScorecardValidationError("Expiration must be at least one day")

        now = pendulum.instance(self._now_provider())
        token = self._token_factory()
        scorecard = self._scorecards.create_scorecard(
            Scorecard(
                candidate_id=candidate_id,
                template_id=template.id,
                evaluator_id=user.id,
                vaga_id=vaga_id,
                source="externo",
                external_token=token,
                expires_at=now.add(days=days),
                created_by=user.id,
                created_at=now,
            )
        )
        try:
            self._answers.insert_answers(
                scorecard.id,
                [empty_answer(scorecard.id, criterion) for criterion in criteria],
            )
        except PersistenceError:
            self._scorecards.delete_scorecard(scorecard.id)
            raise

        issued = IssuedTest(
            scorecard_id=scorecard.id,
            token=token,
            url=self.url_for(token),
            expires_at=scorecard.expires_at,
        )
        self._logger.info(
            "external_test.issued",
            scorecard_id=scorecard.id,
            candidate_id=candidate_id,
            template_id=template.id,
            expires_at=issued.expires_at.isoformat(),
        )
        return issued

    def url_for(self, token: str) -> str:
        return f"{self._config.base_url.rstrip('/')}{self._config.path}/{token}"

    def load_test(self, token: str) -> PublicTest:
        scorecard = self._open_scorecard(token)
        template = self._templates.get_template(scorecard.template_id)
        criteria = self._templates.list_criteria(scorecard.template_id)
        return PublicTest(
            scorecard_id=scorecard.id,
            expires_at=scorecard.expires_at,
            template={
                "id": template.id,
                "name": template.name,
                "description": template.description,
            },
            criteria=[_sanitize(criterion) for criterion in criteria],
        )

    def submit_test(self, token: str, responses: Iterable[CandidateResponse | dict]) -> RecordedScore:
        """Store a candidate's answers and score what can be scored right away."""
        scorecard = self._open_scorecard(token)
        criteria = {c.id: c for c in self._templates.list_criteria(scorecard.template_id)}
        seeded = {a.criterion_id: a for a in self._answers.list_answers(scorecard.id)}

        changes: list[tuple[str, dict]] = []
        for raw in responses:
            response = CandidateResponse.model_validate(raw)
            criterion = criteria.get(response.criterion_id)
            answer = seeded.get(response.criterion_id)
            if criterion is None or answer is None:
                self._logger.warning(
                    "external_test.unknown_criterion",
                    scorecard_id=scorecard.id,
                    criterion_id=response.criterion_id,
                )
                continue
            if isinstance(answer.payload, OpenTextAnswer) and answer.payload.graded_by:
                # a human grade is final
                self._logger.warning(
                    "external_test.graded_answer_kept",
                    scorecard_id=scorecard.id,
                    criterion_id=response.criterion_id,
                )
                continue
            changes.append((answer.id, apply_candidate_response(answer, criterion, response, self._scoring)))

        for answer_id, update in changes:
            self._answers.update_answer(answer_id, update)

        recorded = self._recorder.refresh(scorecard.id, submitted_at=self._now_provider())
        self._logger.info(
            "external_test.submitted",
            scorecard_id=scorecard.id,
            answered=len(changes),
            match_percentage=recorded.result.match_percentage,
        )
        return recorded

    def _test_template(self, template_id: str) -> ScorecardTemplate:
        try:
            template = self._templates.get_template(template_id)
        except RecordNotFoundError as exc:
            raise InvalidTestTemplateError("Template not found") from exc
        if not template.active:
            raise InvalidTestTemplateError("Template not found")
        if template.type != "teste_tecnico":
            raise InvalidTestTemplateError("Template is not a technical test")
        return template

    def _open_scorecard(self, token: str) -> Scorecard:
        if not token:
            raise ExternalTestNotFoundError("Token is required")
        scorecard = self._scorecards.find_scorecard_by_token(token)
        if scorecard is None:
            raise ExternalTestNotFoundError("Test not found")
        if scorecard.submitted_at is not None:
            raise ExternalTestSubmittedError("Test already submitted")
        if scorecard.expires_at is not None and scorecard.expires_at < self._now_provider():
            raise ExternalTestExpiredError("Test link has expired")
        return scorecard

    def _generate_token(self) -> str:
        body = "".join(secrets.choice(_TOKEN_ALPHABET) for _ in range(self._config.token_length))
        return f"{self._config.token_prefix}{body}"


def _sanitize(criterion: Criterion) -> dict[str, Any]:
    data = criterion.model_dump(mode="json")
    if criterion.question_type == "multiple_choice":
        # correct answers never leave the server
        data["options"] = [{"text": option.text} for option in criterion.options]
    return data
