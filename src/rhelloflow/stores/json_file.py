"""JSON document persistence for the in-memory store."""

from __future__ import annotations

import json
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Sequence

from ..errors import PersistenceError
from ..schemas import Answer, Criterion, Scorecard, ScorecardTemplate
from .memory import InMemoryStore


class JsonFileStore(InMemoryStore):
    """In-memory store written back to one JSON file after every change.

    The document has four top-level lists: ``templates``, ``criteria``,
    ``scorecards`` and ``answers``. A missing file starts an empty store.
    """

    def __init__(self, path: str | Path, **kwargs: Any) -> None:
        self._path = Path(path)
        data = self._read()
        try:
            super().__init__(
                templates=[ScorecardTemplate.model_validate(t) for t in data.get("templates", [])],
                criteria=[Criterion.model_validate(c) for c in data.get("criteria", [])],
                scorecards=[Scorecard.model_validate(s) for s in data.get("scorecards", [])],
                answers=[Answer.model_validate(a) for a in data.get("answers", [])],
                **kwargs,
            )
        except ValueError as exc:
            raise PersistenceError(f"Invalid store document {self._path}: {exc}") from exc

    @property
    def path(self) -> Path:
        return self._path

    def add_template(self, template: ScorecardTemplate, criteria=()) -> None:
        with self._committing():
            super().add_template(template, criteria)

    def create_scorecard(self, scorecard: Scorecard) -> Scorecard:
        with self._committing():
            stored = super().create_scorecard(scorecard)
        return stored

    def update_scorecard(self, scorecard_id: str, changes: dict[str, Any]) -> Scorecard:
        with self._committing():
            updated = super().update_scorecard(scorecard_id, changes)
        return updated

    def delete_scorecard(self, scorecard_id: str) -> None:
        with self._committing():
            super().delete_scorecard(scorecard_id)

    def insert_answers(self, scorecard_id: str, answers: Sequence[Answer]) -> list[Answer]:
        with self._committing():
            inserted = super().insert_answers(scorecard_id, answers)
        return inserted

    def update_answer(self, answer_id: str, changes: dict[str, Any]) -> Answer:
        with self._committing():
            updated = super().update_answer(answer_id, changes)
        return updated

    @contextmanager
    def _committing(self) -> Iterator[None]:
        # stored models are replaced, never mutated, so shallow copies suffice
        snapshot = (
            dict(self._templates),
            dict(self._criteria),
            dict(self._scorecards),
            dict(self._answers),
        )
        try:
            yield
            self._write()
        except Exception:
            self._templates, self._criteria, self._scorecards, self._answers = snapshot
            raise

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Invalid store JSON {self._path}: {exc}") from exc
        if not isinstance(data, dict):
            raise PersistenceError(f"Store document {self._path} must be a JSON object")
        return data

    def _write(self) -> None:
        document = {
            "templates": [t.model_dump(mode="json") for t in self._templates.values()],
            "criteria": [c.model_dump(mode="json") for c in self._criteria.values()],
            "scorecards": [s.model_dump(mode="json") for s in self._scorecards.values()],
            "answers": [a.model_dump(mode="json") for a in self._answers.values()],
        }
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(document, ensure_ascii=False, indent=2),
                encoding="utf-8",
            )
        except OSError as exc:
            raise PersistenceError(f"Could not write store {self._path}: {exc}") from exc
