from __future__ import annotations

import pendulum
import pytest

from rhelloflow.errors import (
    AuthenticationError,
    ExternalTestError,
    InvalidTestTemplateError,
    PersistenceError,
    ScorecardValidationError,
)
from rhelloflow.external import ExternalTestConfig, ExternalTestService
from rhelloflow.grading import GradingEventHandler, ScoreRecorder
from rhelloflow.schemas import MultipleChoiceAnswer, OpenTextAnswer
from rhelloflow.stores import InMemoryStore, StaticIdentity

NOW = pendulum.datetime(2026, 6, 1, 10)


class FailingSeedStore(InMemoryStore):
    def insert_answers(self, scorecard_id, answers):
        raise PersistenceError("answers table unavailable")


def build_service(store, identity, *, now=NOW, **kwargs) -> ExternalTestService:
    recorder = ScoreRecorder(templates=store, scorecards=store, answers=store)
    return ExternalTestService(
        templates=store,
        scorecards=store,
        answers=store,
        identity=identity,
        recorder=recorder,
        now_provider=lambda: now,
        **kwargs,
    )


def scenario_responses() -> list[dict]:
    return [
        {"criterion_id": "Q-RATE", "score": 4},
        {"criterion_id": "Q-MC", "selected_option_index": 1},
        {"criterion_id": "Q-TEXT", "text_answer": "Retry with backoff and idempotency keys"},
    ]


def test_issue_link_creates_external_scorecard_with_seeded_answers(store, identity):
    service = build_service(store, identity, token_factory=lambda: "tt_fixedtoken")

    issued = service.issue_link("P-9", "T-TEST", vaga_id="V-1")

    assert issued.token == "tt_fixedtoken"
    assert issued.url == "http://localhost:8080/teste-tecnico/tt_fixedtoken"
    assert issued.expires_at == NOW.add(days=7)
    scorecard = store.get_scorecard(issued.scorecard_id)
    assert scorecard.source == "externo"
    assert scorecard.evaluator_id == "U-REC"
    assert scorecard.submitted_at is None
    answers = store.list_answers(scorecard.id)
    assert sorted(a.criterion_id for a in answers) == ["Q-MC", "Q-RATE", "Q-TEXT"]
    assert all(a.score is None for a in answers)


def test_generated_token_has_prefix_and_length(store, identity):
    issued = build_service(store, identity).issue_link("P-9", "T-TEST")

    assert issued.token.startswith("tt_")
    assert len(issued.token) == 3 + 24
    assert issued.token[3:].isalnum()


def test_issue_link_honours_custom_expiration(store, identity):
    service = build_service(store, identity, config=ExternalTestConfig(default_expiration_days=3))

    assert service.issue_link("P-9", "T-TEST").expires_at == NOW.add(days=3)
    assert service.issue_link("P-8", "T-TEST", expiration_days=10).expires_at == NOW.add(days=10)


def test_issue_link_rejects_evaluation_templates(store, identity):
    with pytest.raises(InvalidTestTemplateError) as excinfo:
        build_service(store, identity).issue_link("P-9", "T-INT")

    assert excinfo.value.code == "INVALID_TEMPLATE"
    assert store.list_scorecards() == []


def test_issue_link_rejects_unknown_template(store, identity):
    with pytest.raises(InvalidTestTemplateError, match="not found"):
        build_service(store, identity).issue_link("P-9", "T-NOPE")


def test_issue_link_requires_user_and_candidate(store, identity):
    with pytest.raises(AuthenticationError):
        build_service(store, StaticIdentity()).issue_link("P-9", "T-TEST")
    with pytest.raises(ScorecardValidationError):
        build_service(store, identity).issue_link("", "T-TEST")


def test_issue_link_rolls_back_when_seeding_fails(store_factory, identity):
    store = store_factory(FailingSeedStore)

    with pytest.raises(PersistenceError):
        build_service(store, identity).issue_link("P-9", "T-TEST")

    assert store.list_scorecards() == []


def test_available_templates_are_technical_tests(store, identity):
    assert [t.id for t in build_service(store, identity).available_templates()] == ["T-TEST"]


def test_load_test_hides_correct_answers(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")

    public = service.load_test(issued.token)

    assert public.scorecard_id == issued.scorecard_id
    assert public.template == {"id": "T-TEST", "name": "API technical test", "description": None}
    choice = next(c for c in public.criteria if c["id"] == "Q-MC")
    assert choice["options"] == [{"text": "POST"}, {"text": "PUT"}, {"text": "PATCH"}]
    assert "is_correct" not in str(public.criteria)


def test_submission_scores_then_grading_completes(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")

    recorded = service.submit_test(issued.token, scenario_responses())

    assert recorded.result.total_score == pytest.approx(62.0)
    assert recorded.result.match_percentage == 89
    scorecard = store.get_scorecard(issued.scorecard_id)
    assert scorecard.submitted_at == NOW
    assert scorecard.match_percentage == 89
    answers = {a.criterion_id: a for a in store.list_answers(scorecard.id)}
    assert answers["Q-RATE"].score == 4
    assert answers["Q-MC"].score == 5
    assert answers["Q-MC"].payload == MultipleChoiceAnswer(selected_option_index=1, is_correct=True)
    assert answers["Q-TEXT"].score is None
    assert isinstance(answers["Q-TEXT"].payload, OpenTextAnswer)

    handler = GradingEventHandler(
        answers=store,
        recorder=ScoreRecorder(templates=store, scorecards=store, answers=store),
        identity=identity,
        now_provider=lambda: NOW.add(hours=2),
    )
    graded = handler.grade_open_text(scorecard.id, answers["Q-TEXT"].id, 3)

    assert graded.result.display_total == 80.0
    assert graded.result.match_percentage == 80
    assert store.get_scorecard(scorecard.id).match_percentage == 80


def test_wrong_choice_scores_zero_and_drops_from_denominator(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")

    recorded = service.submit_test(
        issued.token,
        [
            {"criterion_id": "Q-RATE", "score": 5},
            {"criteria_id": "Q-MC", "selected_option_index": 0},
        ],
    )

    answers = {a.criterion_id: a for a in recorded.answers}
    assert answers["Q-MC"].score == 0
    assert answers["Q-MC"].payload.is_correct is False
    assert recorded.result.match_percentage == 100
    assert recorded.result.graded_weight == 40


def test_unknown_criteria_in_submission_are_skipped(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")

    recorded = service.submit_test(
        issued.token,
        [{"criterion_id": "Q-RATE", "score": 3}, {"criterion_id": "R-PY", "score": 5}],
    )

    assert recorded.result.graded_count == 1


def test_invalid_rating_rejects_whole_submission(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")

    with pytest.raises(ScorecardValidationError):
        service.submit_test(
            issued.token,
            [{"criterion_id": "Q-MC", "selected_option_index": 1}, {"criterion_id": "Q-RATE", "score": 7}],
        )

    assert all(a.score is None for a in store.list_answers(issued.scorecard_id))
    assert store.get_scorecard(issued.scorecard_id).submitted_at is None


def test_second_submission_is_refused(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")
    service.submit_test(issued.token, scenario_responses())

    with pytest.raises(ExternalTestError) as excinfo:
        service.submit_test(issued.token, scenario_responses())
    assert excinfo.value.code == "ALREADY_SUBMITTED"

    with pytest.raises(ExternalTestError) as excinfo:
        service.load_test(issued.token)
    assert excinfo.value.code == "ALREADY_SUBMITTED"


def test_expired_link_is_refused(store, identity):
    issued = build_service(store, identity).issue_link("P-9", "T-TEST")
    later = build_service(store, identity, now=NOW.add(days=8))

    with pytest.raises(ExternalTestError) as excinfo:
        later.load_test(issued.token)
    assert excinfo.value.code == "EXPIRED"

    with pytest.raises(ExternalTestError) as excinfo:
        later.submit_test(issued.token, scenario_responses())
    assert excinfo.value.code == "EXPIRED"


@pytest.mark.parametrize("token", ["", "tt_doesnotexist"])
def test_unknown_token_is_not_found(store, identity, token):
    with pytest.raises(ExternalTestError) as excinfo:
        build_service(store, identity).load_test(token)

    assert excinfo.value.code == "NOT_FOUND"


def test_link_still_open_just_before_expiry(store, identity):
    issued = build_service(store, identity).issue_link("P-9", "T-TEST")
    almost = build_service(store, identity, now=NOW.add(days=7).subtract(seconds=1))

    assert almost.load_test(issued.token).scorecard_id == issued.scorecard_id


def test_expiry_is_compared_in_utc(store, identity):
    issued = build_service(store, identity).issue_link("P-9", "T-TEST")
    local = pendulum.instance(NOW.add(days=6)).in_timezone("America/Sao_Paulo")

    assert build_service(store, identity, now=local).load_test(issued.token) is not None


def test_submission_never_overwrites_a_human_grade(store, identity):
    service = build_service(store, identity)
    issued = service.issue_link("P-9", "T-TEST")
    text = next(a for a in store.list_answers(issued.scorecard_id) if a.criterion_id == "Q-TEXT")
    store.update_answer(
        text.id,
        {"score": 5, "payload": OpenTextAnswer(text_answer="Imported", graded_by="U-REC", graded_at=NOW)},
    )

    recorded = service.submit_test(issued.token, scenario_responses())

    kept = store.get_answer(text.id)
    assert kept.score == 5
    assert kept.payload.graded_by == "U-REC"
    assert kept.payload.graded_at == NOW
    assert kept.payload.text_answer == "Imported"
    assert recorded.result.match_percentage == 92
