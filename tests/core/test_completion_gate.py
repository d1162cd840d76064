from __future__ import annotations

from typing import Any

import pytest

from rhelloflow.core import CompletionGate
from rhelloflow.errors import ScorecardValidationError
from rhelloflow.schemas import Answer, Criterion, OpenTextAnswer


def build_criterion(criterion_id: str, weight: int = 20, **kwargs: Any) -> Criterion:
    defaults: dict[str, Any] = {
        "id": criterion_id,
        "template_id": "T-001",
        "name": f"Criterion {criterion_id}",
        "weight": weight,
    }
    defaults.update(kwargs)
    return Criterion(**defaults)


def build_answer(criterion_id: str, score: int | None, **kwargs: Any) -> Answer:
    return Answer(scorecard_id="S-001", criterion_id=criterion_id, score=score, **kwargs)


@pytest.fixture
def gate() -> CompletionGate:
    return CompletionGate()


@pytest.mark.parametrize(
    ("scores", "recommendation", "accepted"),
    [
        ([4, 5], "yes", True),
        ([4, 0], "yes", False),
        ([4, None], "yes", False),
        ([4, 5], None, False),
        ([4, 5], "", False),
        ([0, 0], None, False),
    ],
)
def test_interno_submission_needs_every_score_and_a_recommendation(
    gate: CompletionGate,
    scores: list[int | None],
    recommendation: str | None,
    accepted: bool,
):
    criteria = [build_criterion("C1"), build_criterion("C2")]
    answers = [build_answer(c.id, s) for c, s in zip(criteria, scores)]

    assert (gate.missing_requirements(criteria, answers, recommendation) == []) is accepted


def test_ensure_submittable_lists_every_missing_requirement(gate: CompletionGate):
    criteria = [build_criterion("C1"), build_criterion("C2")]
    answers = [build_answer("C1", 3), build_answer("C2", 0)]

    with pytest.raises(ScorecardValidationError) as excinfo:
        gate.ensure_submittable(criteria, answers, None)

    assert len(excinfo.value.missing) == 2
    assert "Criterion C2" in excinfo.value.missing[0]
    assert "recommendation" in excinfo.value.missing[1]


def test_empty_template_is_never_complete(gate: CompletionGate):
    assert gate.all_scores_set([], []) is False
    assert gate.missing_requirements([], [], "yes") == ["Template has no criteria to score"]


def test_pending_open_text_counts_only_ungraded_open_text(gate: CompletionGate):
    criteria = [
        build_criterion("R1", 10),
        build_criterion("R2", 15),
        build_criterion("M1", 20, question_type="multiple_choice", options=[{"text": "a", "is_correct": True}]),
        build_criterion("T1", 25, question_type="open_text"),
        build_criterion("T2", 30, question_type="open_text"),
    ]
    answers = [
        build_answer("R1", None),
        build_answer("R2", 4),
        build_answer("M1", 0),
        build_answer("T1", None, payload=OpenTextAnswer(text_answer="first")),
        build_answer("T2", None, payload=OpenTextAnswer(text_answer="second")),
    ]

    pending = gate.pending_open_text(criteria, answers)

    assert pending.count == 2
    assert pending.total_weight == 55
    assert [item.criterion_id for item in pending.items] == ["T1", "T2"]
    assert pending.message() == "2 pending questions, weight 55% unaccounted for"


def test_graded_open_text_is_not_pending(gate: CompletionGate):
    criteria = [build_criterion("T1", 30, question_type="open_text")]
    answers = [build_answer("T1", 3, payload=OpenTextAnswer(text_answer="done"))]

    pending = gate.pending_open_text(criteria, answers)

    assert pending.count == 0
    assert pending.message() == "All open-text answers graded"
