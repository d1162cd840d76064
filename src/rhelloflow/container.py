"""Dependency injection container for the scorecard services."""

from __future__ import annotations

from typing import Any

from dependency_injector import containers, providers

from .core import CompletionGate, ScorecardRanker, ScoringEngine
from .core.ranking import RankingConfig
from .core.scoring import ScoringConfig
from .external import ExternalTestConfig, ExternalTestService
from .grading import GradingEventHandler, GradingView, ScoreRecorder
from .reports import ScorecardReports
from .session import ScorecardSession
from .stores import InMemoryStore, JsonFileStore, StaticIdentity


class ScorecardContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    store = providers.Singleton(InMemoryStore)
    identity = providers.Singleton(StaticIdentity)
    audit_logger = providers.Object(None)

    scoring_config = providers.Singleton(ScoringConfig)
    external_test_config = providers.Singleton(ExternalTestConfig)
    ranking_config = providers.Singleton(RankingConfig)

    scoring_engine = providers.Singleton(ScoringEngine, config=scoring_config)
    completion_gate = providers.Singleton(CompletionGate)

    score_recorder = providers.Singleton(
        ScoreRecorder,
        templates=store,
        scorecards=store,
        answers=store,
        engine=scoring_engine,
    )

    grading_handler = providers.Singleton(
        GradingEventHandler,
        answers=store,
        recorder=score_recorder,
        identity=identity,
        engine=scoring_engine,
        audit_logger=audit_logger,
    )

    grading_view = providers.Factory(
        GradingView,
        handler=grading_handler,
        recorder=score_recorder,
        engine=scoring_engine,
        gate=completion_gate,
    )

    session = providers.Factory(
        ScorecardSession,
        templates=store,
        scorecards=store,
        answers=store,
        identity=identity,
        engine=scoring_engine,
        gate=completion_gate,
    )

    external_tests = providers.Factory(
        ExternalTestService,
        templates=store,
        scorecards=store,
        answers=store,
        identity=identity,
        recorder=score_recorder,
        config=external_test_config,
        scoring=scoring_config,
    )

    ranker = providers.Singleton(ScorecardRanker, config=ranking_config, scoring=scoring_config)

    reports = providers.Factory(
        ScorecardReports,
        templates=store,
        scorecards=store,
        answers=store,
        ranker=ranker,
    )


def create_container(
    *,
    settings: dict[str, Any] | None = None,
    identity: Any | None = None,
    store: Any | None = None,
    audit_logger: Any | None = None,
) -> ScorecardContainer:
    """Instantiate container with optional overrides."""

    container = ScorecardContainer()
    settings = settings if isinstance(settings, dict) else {}
    container.config.from_dict(settings)

    if "scoring" in settings:
        container.scoring_config.override(providers.Singleton(ScoringConfig, **settings["scoring"]))

    if "external_tests" in settings:
        container.external_test_config.override(
            providers.Singleton(ExternalTestConfig, **settings["external_tests"])
        )

    if "ranking" in settings:
        container.ranking_config.override(providers.Singleton(RankingConfig, **settings["ranking"]))

    if store is not None:
        container.store.override(providers.Object(store))
    elif settings.get("store", {}).get("path"):
        container.store.override(providers.Singleton(JsonFileStore, settings["store"]["path"]))

    if identity is not None:
        container.identity.override(providers.Object(identity))

    if audit_logger is not None:
        container.audit_logger.override(providers.Object(audit_logger))

    return container
