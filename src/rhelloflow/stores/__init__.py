"""Persistence collaborators for templates, scorecards and answers."""

from __future__ import annotations

from typing import Any, Protocol, Sequence, runtime_checkable

from ..schemas import Answer, Criterion, Scorecard, ScorecardTemplate, User
from .json_file import JsonFileStore
from .memory import InMemoryStore, StaticIdentity


@runtime_checkable
class TemplateStore(Protocol):
    """Read access to templates and their ordered criteria."""

    def list_active_templates(self, template_type: str | None = None) -> list[ScorecardTemplate]:
        """Return active templates, optionally of one type, ordered by name."""

    def get_template(self, template_id: str) -> ScorecardTemplate:
        """Return a template or raise ``RecordNotFoundError``."""

    def list_criteria(self, template_id: str) -> list[Criterion]:
        """Return the template's criteria ordered by display order."""


@runtime_checkable
class ScorecardStore(Protocol):
    """Scorecard (session) records."""

    def create_scorecard(self, scorecard: Scorecard) -> Scorecard:
        """Persist a new scorecard and return the stored copy."""

    def update_scorecard(self, scorecard_id: str, changes: dict[str, Any]) -> Scorecard:
        """Apply partial field changes and return the stored copy."""

    def get_scorecard(self, scorecard_id: str) -> Scorecard:
        """Return a scorecard or raise ``RecordNotFoundError``."""

    def find_scorecard_by_token(self, token: str) -> Scorecard | None:
        """Return the external scorecard addressed by ``token``, if any."""

    def list_scorecards(
        self,
        *,
        vaga_id: str | None = None,
        candidate_id: str | None = None,
        source: str | None = None,
    ) -> list[Scorecard]:
        """Return scorecards matching every given filter, newest first."""

    def delete_scorecard(self, scorecard_id: str) -> None:
        """Remove a scorecard and its answers."""


@runtime_checkable
class AnswerStore(Protocol):
    """Per-criterion answers of a scorecard."""

    def insert_answers(self, scorecard_id: str, answers: Sequence[Answer]) -> list[Answer]:
        """Insert a batch of answers; all or nothing."""

    def update_answer(self, answer_id: str, changes: dict[str, Any]) -> Answer:
        """Update one answer by its own identifier."""

    def get_answer(self, answer_id: str) -> Answer:
        """Return an answer or raise ``RecordNotFoundError``."""

    def list_answers(self, scorecard_id: str) -> list[Answer]:
        """Return every answer of a scorecard."""


@runtime_checkable
class IdentityProvider(Protocol):
    """Source of the signed-in user."""

    def get_current_user(self) -> User | None:
        """Return the current user or ``None`` when nobody is signed in."""


__all__ = [
    "AnswerStore",
    "IdentityProvider",
    "InMemoryStore",
    "JsonFileStore",
    "ScorecardStore",
    "StaticIdentity",
    "TemplateStore",
]
