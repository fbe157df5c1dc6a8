"""Tests for BackgroundImageLookupWorker.

Tests the scheduled pass: batch allocation, per-entity persistence and failure isolation.
"""

import asyncio
from datetime import UTC, datetime
from unittest.mock import AsyncMock, MagicMock

import pytest

from mediaset.application.workers.background_image_lookup_worker import (
    BackgroundImageLookupWorker,
    allocate_batch,
)
from mediaset.config.settings import BackgroundImageLookupSettings
from mediaset.domain.entities import (
    Book,
    EnrichmentOutcome,
    ImageMetadata,
    MediaType,
    Movie,
)
from mediaset.domain.exceptions import ConfigurationError
from mediaset.domain.ports import ICatalogRepository

# Hey future me - these tests verify the worker:
# 1. Splits batch_size exactly across the available media types
# 2. Persists one attempt per processed entity (success or failure)
# 3. Keeps going when an entity or a whole media type blows up
# 4. Starts/stops cleanly and refuses bad configuration


def _saved() -> ImageMetadata:
    return ImageMetadata(
        file_name="cover.jpg",
        file_path="book/b1-abc.jpg",
        content_type="image/jpeg",
        file_size=10,
    )


class TestAllocateBatch:
    """Tests for allocate_batch()."""

    def test_remainder_goes_to_first_types(self) -> None:
        allocation = allocate_batch(25, list(MediaType))

        assert allocation == {
            MediaType.BOOK: 7,
            MediaType.MOVIE: 6,
            MediaType.GAME: 6,
            MediaType.MUSIC: 6,
        }

    def test_fewer_slots_than_types(self) -> None:
        allocation = allocate_batch(2, list(MediaType))

        assert allocation == {
            MediaType.BOOK: 1,
            MediaType.MOVIE: 1,
            MediaType.GAME: 0,
            MediaType.MUSIC: 0,
        }

    @pytest.mark.parametrize("batch_size", [1, 7, 10, 99])
    def test_allocations_sum_to_batch_size(self, batch_size: int) -> None:
        allocation = allocate_batch(
            batch_size, [MediaType.BOOK, MediaType.GAME, MediaType.MUSIC]
        )

        assert sum(allocation.values()) == batch_size

    def test_nothing_to_allocate(self) -> None:
        assert allocate_batch(10, []) == {}
        assert allocate_batch(0, list(MediaType)) == {}


class TestBackgroundImageLookupWorker:
    """Test BackgroundImageLookupWorker functionality."""

    @pytest.fixture
    def settings(self) -> BackgroundImageLookupSettings:
        # High rpm keeps the pause between entities negligible
        return BackgroundImageLookupSettings(
            _env_file=None,
            enabled=True,
            batch_size=4,
            requests_per_minute=600000,
        )

    @pytest.fixture
    def registry(self) -> MagicMock:
        registry = MagicMock()
        registry.available_media_types.return_value = [MediaType.BOOK, MediaType.MOVIE]
        return registry

    @pytest.fixture
    def lookup_service(self) -> AsyncMock:
        service = AsyncMock()
        service.enrich.return_value = EnrichmentOutcome.ok("https://img/1.jpg", _saved())
        return service

    @pytest.fixture
    def catalog(self) -> dict[MediaType, list]:
        return {
            MediaType.BOOK: [Book(id="b1", isbn="1"), Book(id="b2", isbn="2")],
            MediaType.MOVIE: [Movie(id="m1", barcode="3")],
        }

    @pytest.fixture
    def repository(self, catalog: dict[MediaType, list]) -> AsyncMock:
        repository = AsyncMock(spec=ICatalogRepository)

        async def find_needing_enrichment(media_type: MediaType, limit: int) -> list:
            return catalog[media_type][:limit]

        repository.find_needing_enrichment.side_effect = find_needing_enrichment
        return repository

    @pytest.fixture
    def worker(
        self,
        settings: BackgroundImageLookupSettings,
        registry: MagicMock,
        lookup_service: AsyncMock,
        repository: AsyncMock,
    ) -> BackgroundImageLookupWorker:
        return BackgroundImageLookupWorker(settings, registry, lookup_service, repository)

    async def test_run_pass_processes_every_type(
        self,
        worker: BackgroundImageLookupWorker,
        repository: AsyncMock,
        lookup_service: AsyncMock,
    ) -> None:
        summary = await worker.run_pass()

        assert summary["skipped"] is False
        assert summary["totals"] == {"processed": 3, "succeeded": 3, "failed": 0}
        assert summary["per_type"]["book"] == {"processed": 2, "succeeded": 2, "failed": 0}
        assert summary["per_type"]["movie"] == {"processed": 1, "succeeded": 1, "failed": 0}
        # batch_size=4 over two types -> 2 each
        repository.find_needing_enrichment.assert_any_await(MediaType.BOOK, 2)
        repository.find_needing_enrichment.assert_any_await(MediaType.MOVIE, 2)
        assert lookup_service.enrich.await_count == 3

    async def test_success_persists_image_and_attempt(
        self, worker: BackgroundImageLookupWorker, repository: AsyncMock
    ) -> None:
        await worker.run_pass()

        media_type, entity_id, attempt, image = repository.update_attempt.await_args_list[
            0
        ].args
        assert (media_type, entity_id) == (MediaType.BOOK, "b1")
        assert attempt.failure_reason is None
        assert image == _saved()
        assert repository.update_attempt.await_count == 3

    async def test_failure_outcome_is_persisted(
        self,
        worker: BackgroundImageLookupWorker,
        repository: AsyncMock,
        lookup_service: AsyncMock,
    ) -> None:
        lookup_service.enrich.return_value = EnrichmentOutcome.failed(
            "No lookup strategy available for book/isbn", permanent=True
        )

        summary = await worker.run_pass()

        assert summary["totals"]["failed"] == 3
        _, _, attempt, image = repository.update_attempt.await_args_list[0].args
        assert attempt.failure_reason == "No lookup strategy available for book/isbn"
        assert attempt.permanent_failure is True
        assert image is None

    async def test_entity_exception_is_recorded_and_pass_continues(
        self,
        worker: BackgroundImageLookupWorker,
        repository: AsyncMock,
        lookup_service: AsyncMock,
    ) -> None:
        ok = EnrichmentOutcome.ok("https://img/1.jpg", _saved())
        lookup_service.enrich.side_effect = [RuntimeError("boom"), ok, ok]

        summary = await worker.run_pass()

        assert summary["totals"] == {"processed": 3, "succeeded": 2, "failed": 1}
        _, entity_id, attempt, _ = repository.update_attempt.await_args_list[0].args
        assert entity_id == "b1"
        assert attempt.failure_reason == "Processing error: boom"
        assert worker.get_status()["errors_total"] == 1

    async def test_failing_media_type_does_not_stop_others(
        self,
        worker: BackgroundImageLookupWorker,
        repository: AsyncMock,
        catalog: dict[MediaType, list],
    ) -> None:
        async def find_needing_enrichment(media_type: MediaType, limit: int) -> list:
            if media_type is MediaType.BOOK:
                raise RuntimeError("database is locked")
            return catalog[media_type][:limit]

        repository.find_needing_enrichment.side_effect = find_needing_enrichment

        summary = await worker.run_pass()

        assert summary["per_type"]["book"]["processed"] == 0
        assert summary["per_type"]["movie"]["processed"] == 1
        assert worker.get_status()["errors_total"] == 1

    async def test_entity_without_id_is_not_persisted(
        self,
        worker: BackgroundImageLookupWorker,
        repository: AsyncMock,
        lookup_service: AsyncMock,
        catalog: dict[MediaType, list],
    ) -> None:
        catalog[MediaType.BOOK] = [Book(id=None, isbn="1")]
        catalog[MediaType.MOVIE] = []
        lookup_service.enrich.return_value = EnrichmentOutcome.failed(
            "Entity does not have an Id", permanent=True
        )

        summary = await worker.run_pass()

        assert summary["totals"]["processed"] == 1
        repository.update_attempt.assert_not_awaited()

    async def test_no_strategies_skips_pass(
        self,
        worker: BackgroundImageLookupWorker,
        registry: MagicMock,
        repository: AsyncMock,
    ) -> None:
        registry.available_media_types.return_value = []

        summary = await worker.run_pass()

        assert summary["skipped"] is True
        repository.find_needing_enrichment.assert_not_awaited()

    async def test_exhausted_runtime_budget_processes_nothing(
        self, worker: BackgroundImageLookupWorker, lookup_service: AsyncMock
    ) -> None:
        worker.settings.max_runtime_minutes = 0

        summary = await worker.run_pass()

        assert summary["totals"]["processed"] == 0
        lookup_service.enrich.assert_not_awaited()

    async def test_pass_updates_status(self, worker: BackgroundImageLookupWorker) -> None:
        await worker.run_pass()

        status = worker.get_status()
        assert status["passes_completed"] == 1
        assert status["last_pass"]["totals"]["processed"] == 3
        assert status["last_pass_completed_at"] is not None

    async def test_pause_between_entities_follows_requests_per_minute(
        self, worker: BackgroundImageLookupWorker, mocker: MagicMock
    ) -> None:
        worker.settings.requests_per_minute = 30
        wait = mocker.patch.object(worker, "_wait", AsyncMock(return_value=False))

        await worker.run_pass()

        assert wait.await_count == 3
        wait.assert_awaited_with(2.0)

    async def test_stop_cuts_rate_limit_pause_short(
        self, worker: BackgroundImageLookupWorker, lookup_service: AsyncMock
    ) -> None:
        """With rpm=1 the pause is a minute; stop() must not sit it out."""
        worker.settings.requests_per_minute = 1
        task = asyncio.create_task(worker.run_pass())
        for _ in range(100):
            if lookup_service.enrich.await_count:
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.05)

        await worker.stop()
        summary = await asyncio.wait_for(task, timeout=1.0)

        lookup_service.enrich.assert_awaited_once()
        assert summary["totals"]["processed"] == 1


class TestWorkerLifecycle:
    """Start/stop and scheduling."""

    def _worker(self, **settings: object) -> BackgroundImageLookupWorker:
        return BackgroundImageLookupWorker(
            BackgroundImageLookupSettings(_env_file=None, **settings),
            MagicMock(),
            AsyncMock(),
            AsyncMock(spec=ICatalogRepository),
        )

    async def test_disabled_worker_does_not_start(self) -> None:
        worker = self._worker(enabled=False)

        await worker.start()

        assert not worker.is_running
        assert worker.get_status()["status"] == "stopped"

    async def test_invalid_schedule_is_rejected(self) -> None:
        worker = self._worker(enabled=True, schedule="*/5 * * * *")

        with pytest.raises(ConfigurationError, match="at least 1 hour"):
            await worker.start()
        assert not worker.is_running

    async def test_start_then_stop(self) -> None:
        worker = self._worker(enabled=True, schedule="0 2 * * *")

        await worker.start()
        assert worker.is_running
        assert worker.get_status()["status"] == "active"

        await worker.stop()
        assert not worker.is_running


    async def test_stop_signal_interrupts_schedule_sleep(self) -> None:
        worker = self._worker(enabled=True, schedule="0 2 * * *")
        await worker.start()
        await asyncio.sleep(0.01)

        worker._stop_event.set()
        await asyncio.wait_for(worker._task, timeout=1.0)

        assert not worker.is_running
        await worker.stop()

    async def test_loop_error_backs_off_and_keeps_running(self, mocker: MagicMock) -> None:
        worker = self._worker(enabled=True, schedule="0 2 * * *")
        mocker.patch(
            "mediaset.application.workers.background_image_lookup_worker."
            "LOOP_ERROR_BACKOFF_SECONDS",
            0.01,
        )
        next_occurrence = mocker.patch.object(
            worker, "next_occurrence", side_effect=RuntimeError("clock went away")
        )

        await worker.start()
        await asyncio.sleep(0.2)

        assert next_occurrence.call_count >= 3
        assert worker.is_running
        assert worker.get_status()["errors_total"] >= 3
        await worker.stop()
        assert not worker.is_running
    def test_next_occurrence(self) -> None:
        worker = self._worker(schedule="0 2 * * *")
        now = datetime(2026, 3, 1, 1, 30, tzinfo=UTC)

        assert worker.next_occurrence(now) == datetime(2026, 3, 1, 2, 0, tzinfo=UTC)

    def test_next_occurrence_rolls_to_next_day(self) -> None:
        worker = self._worker(schedule="0 2 * * *")
        now = datetime(2026, 3, 1, 2, 0, tzinfo=UTC)

        assert worker.next_occurrence(now) == datetime(2026, 3, 2, 2, 0, tzinfo=UTC)
