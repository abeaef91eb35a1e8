from __future__ import annotations

import asyncio

import pendulum
import pytest

from talentassess.core import new_assessment
from talentassess.errors import NotFoundError, PersistenceError
from talentassess.repository import AssessmentCache, AssessmentRepository
from talentassess.schemas import AssessmentResponse
from talentassess.store import InMemoryRecordStore


class FailingStore(InMemoryRecordStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.fail = True

    async def _persist(self) -> None:
        if self.fail:
            raise PersistenceError("write", "disk full")


class SlowStore(InMemoryRecordStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.active = 0
        self.max_active = 0

    async def save_assessment(self, assessment):
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        await asyncio.sleep(0.01)
        try:
            return await super().save_assessment(assessment)
        finally:
            self.active -= 1


@pytest.mark.asyncio
async def test_first_save_assigns_id_and_round_trips(clock):
    repository = AssessmentRepository(InMemoryRecordStore(clock=clock), cache_ttl=0)
    draft = new_assessment("job-1", clock=clock)

    saved = await repository.save_assessment(draft)
    fetched = await repository.get_assessment(saved.id)

    assert saved.id == "1"
    assert fetched is not None
    assert fetched == saved
    assert fetched.model_dump(exclude={"id", "updated_at"}) == draft.model_dump(exclude={"id", "updated_at"})
    assert pendulum.parse(fetched.updated_at) > pendulum.parse(draft.updated_at)


@pytest.mark.asyncio
async def test_update_advances_updated_at_and_keeps_created_at(clock):
    repository = AssessmentRepository(InMemoryRecordStore(clock=clock), cache_ttl=0)
    saved = await repository.save_assessment(new_assessment("job-1", clock=clock))

    resaved = await repository.save_assessment(saved.model_copy(update={"title": "Renamed"}))

    assert resaved.id == saved.id
    assert resaved.created_at == saved.created_at
    assert pendulum.parse(resaved.updated_at) > pendulum.parse(saved.updated_at)
    assert (await repository.get_assessment(saved.id)).title == "Renamed"


@pytest.mark.asyncio
async def test_updated_at_advances_with_frozen_clock():
    frozen = pendulum.datetime(2025, 1, 1, tz="UTC")
    store = InMemoryRecordStore(clock=lambda: frozen)
    repository = AssessmentRepository(store, cache_ttl=0)
    saved = await repository.save_assessment(new_assessment("job-1", clock=lambda: frozen))

    resaved = await repository.save_assessment(saved)

    assert pendulum.parse(resaved.updated_at) > pendulum.parse(saved.updated_at)


@pytest.mark.asyncio
async def test_new_ids_increment_from_numeric_max(make_assessment):
    store = InMemoryRecordStore(assessments=[make_assessment(id="7"), make_assessment(id="legacy")])
    repository = AssessmentRepository(store)

    saved = await repository.save_assessment(new_assessment("job-2"))

    assert saved.id == "8"


@pytest.mark.asyncio
async def test_returned_records_are_not_shared(demo_assessment):
    repository = AssessmentRepository(InMemoryRecordStore(assessments=[demo_assessment]))

    first = await repository.get_assessment("A-001")
    first.sections.pop()
    first.sections[0].questions.clear()
    second = await repository.get_assessment("A-001")

    assert len(second.sections) == 2
    assert len(second.sections[0].questions) == 3


@pytest.mark.asyncio
async def test_missing_records_return_none():
    repository = AssessmentRepository(InMemoryRecordStore())

    assert await repository.get_assessment("404") is None
    assert await repository.get_assessment_by_job_id("job-404") is None
    assert await repository.get_job("job-404") is None


@pytest.mark.asyncio
async def test_cache_serves_until_invalidated(make_assessment):
    store = InMemoryRecordStore(assessments=[make_assessment()])
    repository = AssessmentRepository(store, cache_ttl=60)

    await repository.get_assessment("A-001")
    await store.save_assessment(make_assessment(title="Changed behind the cache"))

    assert (await repository.get_assessment("A-001")).title == "Frontend Developer Assessment"
    repository.invalidate("A-001")
    assert (await repository.get_assessment("A-001")).title == "Changed behind the cache"


def test_cache_entries_expire(make_assessment):
    now = [0.0]
    cache = AssessmentCache(10, clock=lambda: now[0])
    cache.put(make_assessment())

    assert cache.get("A-001") is not None
    now[0] = 10.0
    assert cache.get("A-001") is None
    assert "A-001" not in cache


@pytest.mark.asyncio
async def test_saves_for_same_id_are_serialized(make_assessment):
    store = SlowStore(assessments=[make_assessment()])
    repository = AssessmentRepository(store)
    original = await repository.get_assessment("A-001")

    results = await asyncio.gather(
        repository.save_assessment(original.model_copy(update={"title": "First"})),
        repository.save_assessment(original.model_copy(update={"title": "Second"})),
    )

    assert store.max_active == 1
    assert [r.title for r in results] == ["First", "Second"]
    repository.invalidate()
    assert (await repository.get_assessment("A-001")).title == "Second"


@pytest.mark.asyncio
async def test_persistence_failure_propagates_without_commit(make_assessment):
    store = FailingStore(assessments=[make_assessment()])
    repository = AssessmentRepository(store, cache_ttl=0)
    original = await repository.get_assessment("A-001")

    with pytest.raises(PersistenceError):
        await repository.save_assessment(original.model_copy(update={"title": "Lost?"}))

    assert (await repository.get_assessment("A-001")).title == original.title


@pytest.mark.asyncio
async def test_list_filters_search_sort_and_pagination(make_assessment):
    store = InMemoryRecordStore(
        assessments=[
            make_assessment(id="1", jobId="job-1", title="Backend"),
            make_assessment(id="2", jobId="job-2", title="Frontend", isActive=False),
            make_assessment(id="3", jobId="job-1", title="Data", description="Frontend-adjacent"),
        ]
    )
    repository = AssessmentRepository(store)

    by_job = await repository.list_assessments(job_id="job-1", sort_by="title")
    inactive = await repository.list_assessments(is_active=False)
    searched = await repository.list_assessments(search="FRONTEND", sort_by="id", sort_order="desc")
    paged = await repository.list_assessments(sort_by="title", page=2, page_size=2)

    assert [a.title for a in by_job.assessments] == ["Backend", "Data"]
    assert [a.id for a in inactive.assessments] == ["2"]
    assert [a.id for a in searched.assessments] == ["3", "2"]
    assert paged.total == 3
    assert paged.total_pages == 2
    assert [a.title for a in paged.assessments] == ["Frontend"]


@pytest.mark.asyncio
async def test_list_rejects_unknown_sort_field():
    repository = AssessmentRepository(InMemoryRecordStore())

    with pytest.raises(ValueError):
        await repository.list_assessments(sort_by="colour")


@pytest.mark.asyncio
async def test_duplicate_assessment(demo_assessment):
    repository = AssessmentRepository(InMemoryRecordStore(assessments=[demo_assessment]))

    copy = await repository.duplicate_assessment("A-001", new_job_id="job-2")

    assert copy.id != "A-001"
    assert copy.title == "Copy of Frontend Developer Assessment"
    assert copy.job_id == "job-2"
    assert copy.is_active is False
    assert copy.sections == demo_assessment.sections


@pytest.mark.asyncio
async def test_duplicate_missing_assessment_raises():
    repository = AssessmentRepository(InMemoryRecordStore())

    with pytest.raises(NotFoundError):
        await repository.duplicate_assessment("404")


@pytest.mark.asyncio
async def test_delete_assessment_and_stats(demo_assessment, make_assessment):
    store = InMemoryRecordStore(
        assessments=[demo_assessment, make_assessment(id="B", jobId="job-2", isActive=False)]
    )
    repository = AssessmentRepository(store)

    stats = await repository.assessment_stats()
    grouped = await repository.jobs_with_assessments()

    assert (stats.total, stats.active, stats.inactive) == (2, 1, 1)
    assert stats.by_job == {"job-1": 1, "job-2": 1}
    assert {"id": "A-001", "title": demo_assessment.title, "question_count": 7} in stats.questions_per_assessment
    assert set(grouped) == {"job-1", "job-2"}

    assert await repository.delete_assessment("B") is True
    assert await repository.delete_assessment("B") is False
    assert await repository.get_assessment("B") is None


@pytest.mark.asyncio
async def test_responses_are_append_only():
    repository = AssessmentRepository(InMemoryRecordStore())
    response = AssessmentResponse(
        id="r-1",
        assessment_id="A-001",
        candidate_id="C-001",
        responses={"q1": "yes"},
        submitted_at="2025-01-01T00:00:00Z",
        score=100,
    )

    await repository.save_response(response)
    with pytest.raises(PersistenceError):
        await repository.save_response(response)

    assert [r.id for r in await repository.get_responses("A-001")] == ["r-1"]
    assert await repository.get_responses("other") == []


class FirstWriteFailsStore(InMemoryRecordStore):
    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.writes = 0

    async def _persist(self) -> None:
        self.writes += 1
        if self.writes == 1:
            await asyncio.sleep(0.05)
            raise PersistenceError("write", "disk full")
        await asyncio.sleep(0.01)


@pytest.mark.asyncio
async def test_failed_write_does_not_undo_concurrent_save(make_assessment):
    store = FirstWriteFailsStore()
    repository = AssessmentRepository(store, cache_ttl=0)

    results = await asyncio.gather(
        repository.save_assessment(make_assessment(id="A", jobId="job-a")),
        repository.save_assessment(make_assessment(id="B", jobId="job-b")),
        return_exceptions=True,
    )

    assert isinstance(results[0], PersistenceError)
    assert results[1].id == "B"
    assert await store.get_assessment("A") is None
    assert (await store.get_assessment("B")).id == "B"
    assert [a.id for a in await store.list_assessments()] == ["B"]


@pytest.mark.asyncio
async def test_save_locks_are_released(make_assessment):
    repository = AssessmentRepository(SlowStore(), cache_ttl=0)

    await asyncio.gather(
        repository.save_assessment(make_assessment(id="A")),
        repository.save_assessment(make_assessment(id="A", title="Again")),
        repository.save_assessment(new_assessment("job-2")),
    )
    await repository.delete_assessment("A")

    assert repository._locks == {}
    assert repository._lock_users == {}


@pytest.mark.asyncio
async def test_saved_response_is_not_shared_with_store():
    store = InMemoryRecordStore()
    response = AssessmentResponse(
        id="r-1",
        assessment_id="A-001",
        candidate_id="C-001",
        responses={"q2": ["react", "vue"]},
        submitted_at="2025-01-01T00:00:00Z",
        score=100,
    )

    stored = await store.save_assessment_response(response)
    stored.responses["q2"].append("angular")

    assert (await store.get_assessment_responses())[0].responses["q2"] == ["react", "vue"]
