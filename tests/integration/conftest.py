from __future__ import annotations

from typing import Callable

import pendulum
import pytest

from rhelloflow.schemas import Criterion, ScorecardTemplate, User
from rhelloflow.stores import InMemoryStore, StaticIdentity

NOW = pendulum.datetime(2026, 6, 1, 10)


def seed_templates(store: InMemoryStore) -> None:
    store.add_template(
        ScorecardTemplate(id="T-INT", name="Backend interview"),
        [
            Criterion(id="R-PY", template_id="T-INT", name="Python", weight=60, display_order=1),
            Criterion(id="R-COM", template_id="T-INT", name="Communication", weight=40, display_order=2),
        ],
    )
    store.add_template(
        ScorecardTemplate(id="T-TEST", name="API technical test", type="teste_tecnico"),
        [
            Criterion(id="Q-RATE", template_id="T-TEST", name="Self-rated SQL", weight=40, display_order=1),
            Criterion(
                id="Q-MC",
                template_id="T-TEST",
                name="Idempotent verb",
                weight=30,
                question_type="multiple_choice",
                display_order=2,
                options=[{"text": "POST"}, {"text": "PUT", "is_correct": True}, {"text": "PATCH"}],
            ),
            Criterion(
                id="Q-TEXT",
                template_id="T-TEST",
                name="Explain retries",
                weight=30,
                question_type="open_text",
                display_order=3,
            ),
        ],
    )


@pytest.fixture
def store_factory():
    def factory(store_class: Callable[..., InMemoryStore] = InMemoryStore) -> InMemoryStore:
        store = store_class(now_provider=lambda: NOW)
        seed_templates(store)
        return store

    return factory


@pytest.fixture
def store(store_factory) -> InMemoryStore:
    return store_factory()


@pytest.fixture
def recruiter() -> User:
    return User(id="U-REC", display_name="Recruiter")


@pytest.fixture
def identity(recruiter: User) -> StaticIdentity:
    return StaticIdentity(recruiter)
