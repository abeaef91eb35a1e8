"""Dependency injection container for the assessment engine."""

from __future__ import annotations

from dependency_injector import containers, providers

from .core import AnswerValidator, AssessmentBuilder, IdFactory
from .editor import AssessmentEditor
from .repository import AssessmentRepository
from .runtime import AssessmentSession
from .store import InMemoryRecordStore, JsonFileRecordStore


class AssessmentContainer(containers.DeclarativeContainer):
    """Dependency-injector container definition."""

    config = providers.Configuration()

    store = providers.Singleton(InMemoryRecordStore)

    repository = providers.Singleton(
        AssessmentRepository,
        store=store,
        cache_ttl=config.repository.cache_ttl_seconds,
    )

    id_factory = providers.Singleton(IdFactory)
    builder = providers.Singleton(AssessmentBuilder, ids=id_factory)
    validator = providers.Singleton(AnswerValidator)

    editor = providers.Factory(
        AssessmentEditor,
        repository=repository,
        builder=builder,
    )

    session = providers.Factory(
        AssessmentSession,
        repository=repository,
        validator=validator,
    )


def create_container(*, settings: dict | None = None) -> AssessmentContainer:
    """Instantiate container with optional overrides."""

    container = AssessmentContainer()

    if not settings:
        return container

    repository_settings = settings.get("repository", {}) if isinstance(settings, dict) else {}
    if repository_settings:
        container.config.override({"repository": repository_settings})

    store_settings = settings.get("store", {}) if isinstance(settings, dict) else {}
    if store_settings.get("backend") == "json":
        container.store.override(
            providers.Singleton(JsonFileRecordStore, path=store_settings["path"])
        )

    return container
