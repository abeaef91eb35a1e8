from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from talentassess.config import read_config_file
from talentassess.container import create_container
from talentassess.editor import AssessmentEditor
from talentassess.runtime import AssessmentSession
from talentassess.schemas import Assessment
from talentassess.schemas.config import AppConfig, load_config
from talentassess.store import InMemoryRecordStore, JsonFileRecordStore


def test_create_container_defaults():
    container = create_container()

    repository = container.repository()

    assert isinstance(container.store(), InMemoryRecordStore)
    assert repository is container.repository()
    assert isinstance(container.editor(), AssessmentEditor)


def test_create_container_with_overrides(tmp_path: Path):
    container = create_container(
        settings={
            "store": {"backend": "json", "path": str(tmp_path / "store.json")},
            "repository": {"cache_ttl_seconds": 0},
        }
    )

    store = container.store()
    session = container.session(assessment_id="A-001", candidate_id="cand-1")

    assert isinstance(store, JsonFileRecordStore)
    assert store.path == tmp_path / "store.json"
    assert isinstance(session, AssessmentSession)

    repository = container.repository()
    repository.cache.put(Assessment(id="probe", job_id="job-1", title="Probe"))
    assert "probe" not in repository.cache


def test_load_config_validation():
    app_config = load_config({"store": {"backend": "json", "path": "data.json"}, "repository": {"cache_ttl_seconds": 5}})

    assert isinstance(app_config, AppConfig)
    settings = app_config.to_settings()
    assert settings["store"] == {"backend": "json", "path": "data.json"}
    assert settings["repository"]["cache_ttl_seconds"] == 5


@pytest.mark.parametrize(
    "raw",
    [
        ["not", "a", "mapping"],
        {"store": {"backend": "json"}},
        {"repository": {"cache_ttl_seconds": -1}},
        {"unknown": True},
    ],
)
def test_load_config_rejects_invalid_input(raw):
    with pytest.raises(ValidationError):
        load_config(raw)


def test_read_config_file(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("repository:\n  cache_ttl_seconds: 12\nlog_level: DEBUG\n", encoding="utf-8")

    config = read_config_file(path)

    assert config.repository.cache_ttl_seconds == 12
    assert config.log_level == "DEBUG"
    assert config.store.backend == "memory"


def test_read_empty_config_file_uses_defaults(tmp_path: Path):
    path = tmp_path / "empty.yaml"
    path.write_text("", encoding="utf-8")

    assert read_config_file(path) == AppConfig()
