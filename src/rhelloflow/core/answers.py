"""Answer construction and automatic scoring by question type."""

from __future__ import annotations

from datetime import datetime

from ..errors import ScorecardValidationError
from ..schemas import (
    Answer,
    AnswerPayload,
    CandidateResponse,
    Criterion,
    MultipleChoiceAnswer,
    OpenTextAnswer,
    RatingAnswer,
)
from .scoring import ScoringConfig


def empty_payload(criterion: Criterion) -> AnswerPayload:
    if criterion.question_type == "open_text":
        return OpenTextAnswer()
    if criterion.question_type == "multiple_choice":
        return MultipleChoiceAnswer()
    return RatingAnswer()


def empty_answer(scorecard_id: str, criterion: Criterion) -> Answer:
    """Seed answer for a criterion, ungraded."""
    return Answer(
        scorecard_id=scorecard_id,
        criterion_id=criterion.id,
        payload=empty_payload(criterion),
    )


def validate_rating(score: int | None, config: ScoringConfig, *, label: str = "Score") -> int:
    if isinstance(score, bool) or not isinstance(score, int):
        raise ScorecardValidationError(f"{label} must be an integer between 1 and {config.max_score}")
    if not 1 <= score <= config.max_score:
        raise ScorecardValidationError(f"{label} must be between 1 and {config.max_score}")
    return score


def score_multiple_choice(
    criterion: Criterion,
    selected_option_index: int | None,
    config: ScoringConfig | None = None,
) -> tuple[int | None, bool | None]:
    """Return ``(score, is_correct)`` for a selected option.

    A missing or out-of-range selection leaves the answer ungraded.
    """
    config = config or ScoringConfig()
    if selected_option_index is None:
        return None, None
    if not 0 <= selected_option_index < len(criterion.options):
        return None, None
    is_correct = criterion.options[selected_option_index].is_correct
    score = config.correct_choice_score if is_correct else config.incorrect_choice_score
    return score, is_correct


def apply_candidate_response(
    base: Answer,
    criterion: Criterion,
    response: CandidateResponse,
    config: ScoringConfig | None = None,
) -> dict:
    """Build the field changes for a seeded answer from a candidate response.

    Rating and multiple-choice answers are scored on the spot; open text is
    captured with no score and waits for a human grade.
    """
    config = config or ScoringConfig()
    notes = response.notes or base.notes

    if criterion.question_type == "rating":
        score = None
        if response.score:
            score = validate_rating(response.score, config, label=f"Score for {criterion.name!r}")
        return {"score": score, "notes": notes, "payload": RatingAnswer()}

    if criterion.question_type == "multiple_choice":
        score, is_correct = score_multiple_choice(criterion, response.selected_option_index, config)
        return {
            "score": score,
            "notes": notes,
            "payload": MultipleChoiceAnswer(
                selected_option_index=response.selected_option_index,
                is_correct=is_correct,
            ),
        }

    return {
        "score": None,
        "notes": notes,
        "payload": OpenTextAnswer(text_answer=response.text_answer or None),
    }


def graded_open_text(answer: Answer, score: int, grader_id: str, graded_at: datetime) -> dict:
    """Field changes that record a human grade; the text itself is untouched."""
    if not isinstance(answer.payload, OpenTextAnswer):
        raise ScorecardValidationError("Only open-text answers are graded by a person")
    payload = answer.payload.model_copy(update={"graded_by": grader_id, "graded_at": graded_at})
    return {"score": score, "payload": payload}
