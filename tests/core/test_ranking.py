from __future__ import annotations

from typing import Any

import pendulum
import pytest

from rhelloflow.core import RankingConfig, ScorecardRanker, ScoringConfig
from rhelloflow.schemas import Answer, Criterion, Scorecard


def build_scorecard(candidate_id: str, total_score: float | None, **kwargs: Any) -> Scorecard:
    defaults: dict[str, Any] = {
        "candidate_id": candidate_id,
        "template_id": "T-001",
        "evaluator_id": "E-001",
        "vaga_id": "V-001",
        "total_score": total_score,
        "created_at": pendulum.datetime(2026, 1, 10),
    }
    defaults.update(kwargs)
    return Scorecard(**defaults)


def build_answers(scorecard: Scorecard, scores: dict[str, int | None]) -> list[Answer]:
    return [
        Answer(scorecard_id=scorecard.id, criterion_id=criterion_id, score=score)
        for criterion_id, score in scores.items()
    ]


@pytest.fixture
def criteria() -> dict[str, Criterion]:
    items = [
        Criterion(id="C1", template_id="T-001", name="Python", weight=40, category="hard_skills"),
        Criterion(id="C2", template_id="T-001", name="Communication", weight=30, category="soft_skills"),
        Criterion(id="C3", template_id="T-001", name="Culture", weight=20, category="fit_cultural"),
        Criterion(id="C4", template_id="T-001", name="Experience", weight=10, category="experiencia"),
    ]
    return {c.id: c for c in items}


def test_rank_orders_candidates_by_average_total(criteria):
    first = build_scorecard("ana", 70.0)
    second = build_scorecard("ana", 90.0, evaluator_id="E-002", comments="Strong on APIs")
    third = build_scorecard("bruno", 85.0)
    entries = [
        (first, build_answers(first, {"C1": 4})),
        (second, build_answers(second, {"C1": 5})),
        (third, build_answers(third, {"C1": 5})),
    ]

    ranking = ScorecardRanker().rank(entries, criteria)

    assert [item.candidate_id for item in ranking] == ["bruno", "ana"]
    ana = ranking[1]
    assert ana.total_score == 80.0
    assert ana.evaluators_count == 2
    assert ana.low_confidence is False
    assert ana.comments == [
        {"text": "Strong on APIs", "evaluator_id": "E-002", "date": second.created_at}
    ]
    assert ranking[0].low_confidence is True


def test_breakdown_normalizes_scores_and_limits_top_criteria(criteria):
    scorecard = build_scorecard("ana", 60.0)
    answers = build_answers(scorecard, {"C1": 5, "C2": 3, "C3": 1, "C4": 4})

    ranking = ScorecardRanker().rank([(scorecard, answers)], criteria)

    breakdown = {item.criterion: item.average for item in ranking[0].breakdown}
    assert breakdown == {"Python": 100.0, "Experience": 75.0, "Communication": 50.0, "Culture": 0.0}
    assert [item.criterion for item in ranking[0].top_criteria] == ["Python", "Experience", "Communication"]


def test_ungraded_answers_and_unscored_scorecards_are_skipped(criteria):
    unscored = build_scorecard("carla", None)
    scored = build_scorecard("ana", 50.0)
    entries = [
        (unscored, build_answers(unscored, {"C1": 5})),
        (scored, build_answers(scored, {"C1": 3, "C2": None})),
    ]

    ranking = ScorecardRanker().rank(entries, criteria)

    assert [item.candidate_id for item in ranking] == ["ana"]
    assert [item.criterion for item in ranking[0].breakdown] == ["Python"]


def test_last_evaluation_date_is_most_recent(criteria):
    older = build_scorecard("ana", 40.0, created_at=pendulum.datetime(2026, 1, 1))
    newer = build_scorecard("ana", 60.0, created_at=pendulum.datetime(2026, 2, 1))

    ranking = ScorecardRanker(config=RankingConfig(low_confidence_below=3)).rank(
        [(older, []), (newer, [])], criteria
    )

    assert ranking[0].last_evaluation_date == newer.created_at
    assert ranking[0].low_confidence is True


def test_smallest_scale_normalizes_to_both_ends(criteria):
    scorecard = build_scorecard("ana", 50.0)
    answers = build_answers(scorecard, {"C1": 2, "C2": 1})

    ranking = ScorecardRanker(scoring=ScoringConfig(max_score=2)).rank([(scorecard, answers)], criteria)

    breakdown = {item.criterion: item.average for item in ranking[0].breakdown}
    assert breakdown == {"Python": 100.0, "Communication": 0.0}
