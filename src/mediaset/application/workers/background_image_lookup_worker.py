# Hey future me - BackgroundImageLookupWorker is the scheduled cover-art sweep!
#
# It wakes up on a cron schedule (local time zone, default 02:00 daily), runs ONE pass
# and goes back to sleep. A pass:
# 1. Asks the registry which media types have a strategy (movies/games need API keys)
# 2. Splits batch_size across those types (remainder to the first ones, in MediaType order)
# 3. For each type: fetch never-attempted entities, enrich each one, persist the attempt,
#    then sleep 60/requests_per_minute seconds
# 4. Stops early when max_runtime_minutes is used up
#
# FAILURE ISOLATION: one bad entity never kills its type, one bad type never kills the pass,
# and an error in the schedule loop itself backs off a minute instead of ending the worker.
#
# NO AUTO-RETRY: once an entity has an attempt record it's never selected again. Use
# CatalogRepository.reset_attempt() to make it eligible for the next pass.
"""Background Image Lookup Worker - scheduled cover-art enrichment passes."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from dataclasses import asdict, dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from croniter import CroniterBadDateError, croniter

from mediaset.domain.entities import CatalogEntity, EnrichmentOutcome, MediaType
from mediaset.domain.exceptions import ConfigurationError
from mediaset.infrastructure.observability.logger_template import (
    end_operation,
    log_operation,
    log_worker_health,
    start_operation,
)
from mediaset.infrastructure.observability.logging import set_correlation_id

if TYPE_CHECKING:
    from collections.abc import Sequence

    from mediaset.application.services.image_lookup_service import ImageLookupService
    from mediaset.application.services.lookup.registry import LookupStrategyRegistry
    from mediaset.config import BackgroundImageLookupSettings
    from mediaset.domain.ports import ICatalogRepository

logger = logging.getLogger(__name__)

LOOP_ERROR_BACKOFF_SECONDS = 60.0


def allocate_batch(
    batch_size: int, media_types: Sequence[MediaType]
) -> dict[MediaType, int]:
    """Split batch_size across media_types; the first (batch_size % n) types get one extra.

    The allocations always add up to batch_size exactly. With fewer slots than types the
    trailing types get 0 and are skipped for that pass.
    """
    if not media_types or batch_size <= 0:
        return {}
    per_type, remainder = divmod(batch_size, len(media_types))
    return {
        media_type: per_type + (1 if index < remainder else 0)
        for index, media_type in enumerate(media_types)
    }


@dataclass
class TypeCounts:
    processed: int = 0
    succeeded: int = 0
    failed: int = 0

    def add(self, other: TypeCounts) -> None:
        self.processed += other.processed
        self.succeeded += other.succeeded
        self.failed += other.failed


class BackgroundImageLookupWorker:
    """Runs enrichment passes on a cron schedule.

    Lifecycle:
    - start() spawns the schedule loop as an asyncio task (no-op when disabled)
    - stop() sets the stop event, which wakes any sleep immediately, then awaits the task
    - run_pass() runs one pass right now (used by the loop, handy for tests and manual runs)
    """

    def __init__(
        self,
        settings: BackgroundImageLookupSettings,
        registry: LookupStrategyRegistry,
        lookup_service: ImageLookupService,
        repository: ICatalogRepository,
    ) -> None:
        self.settings = settings
        self._registry = registry
        self._lookup = lookup_service
        self._repository = repository
        self._running = False
        self._task: asyncio.Task[None] | None = None
        self._stop_event = asyncio.Event()
        self._started_at: float | None = None
        self._stats: dict[str, Any] = {
            "passes_completed": 0,
            "errors_total": 0,
            "next_run_at": None,
            "last_pass_started_at": None,
            "last_pass_completed_at": None,
            "last_pass": None,
        }

    async def start(self) -> None:
        """Start the schedule loop."""
        if not self.settings.enabled:
            logger.info("Background image lookup is disabled, not starting")
            return

        problem = self.settings.validation_error()
        if problem is not None:
            raise ConfigurationError(f"Invalid background image lookup settings: {problem}")

        if self._running:
            logger.warning("BackgroundImageLookupWorker is already running")
            return

        self._running = True
        self._stop_event.clear()
        self._started_at = time.monotonic()
        self._task = asyncio.create_task(self._run_loop())
        logger.info(
            "BackgroundImageLookupWorker started (schedule='%s', batch_size=%d, "
            "max_runtime=%dmin, rpm=%d)",
            self.settings.schedule,
            self.settings.batch_size,
            self.settings.max_runtime_minutes,
            self.settings.requests_per_minute,
        )

    async def stop(self) -> None:
        """Stop the worker; an in-progress sleep is interrupted right away."""
        self._running = False
        self._stop_event.set()
        if self._task:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        logger.info("BackgroundImageLookupWorker stopped")

    @property
    def is_running(self) -> bool:
        return self._running

    def get_status(self) -> dict[str, Any]:
        """Worker status for monitoring."""
        next_run = self._stats["next_run_at"]
        return {
            "name": "Background Image Lookup Worker",
            "enabled": self.settings.enabled,
            "running": self._running,
            "status": "active" if self._running else "stopped",
            "schedule": self.settings.schedule,
            "batch_size": self.settings.batch_size,
            "max_runtime_minutes": self.settings.max_runtime_minutes,
            "requests_per_minute": self.settings.requests_per_minute,
            **self._stats,
            "next_run_at": next_run.isoformat() if next_run else None,
        }

    def next_occurrence(self, now: datetime | None = None) -> datetime | None:
        """Next cron occurrence after now, in the local time zone (None if there is none)."""
        base = now or datetime.now().astimezone()
        try:
            return croniter(self.settings.schedule, base).get_next(datetime)
        except CroniterBadDateError:
            return None

    async def _wait(self, seconds: float) -> bool:
        """Sleep for seconds unless stopped first. Returns True when stopped."""
        if self._stop_event.is_set():
            return True
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=max(0.0, seconds))
        except TimeoutError:
            return False
        return True

    async def _run_loop(self) -> None:
        while self._running:
            try:
                now = datetime.now().astimezone()
                next_run = self.next_occurrence(now)
                if next_run is None:
                    logger.warning(
                        "Schedule '%s' has no next occurrence, stopping", self.settings.schedule
                    )
                    break

                self._stats["next_run_at"] = next_run
                delay = (next_run - now).total_seconds()
                logger.info(
                    "Next image lookup pass at %s (in %.0fs)", next_run.isoformat(), delay
                )

                if await self._wait(delay):
                    break

                await self.run_pass()
            except Exception as e:
                self._stats["errors_total"] += 1
                logger.exception("BackgroundImageLookupWorker loop error: %s", e)
                if await self._wait(LOOP_ERROR_BACKOFF_SECONDS):
                    break

        self._running = False
        logger.info("BackgroundImageLookupWorker loop exited")

    async def run_pass(self) -> dict[str, Any]:
        """Run one enrichment pass across all media types that have a strategy."""
        correlation_id = set_correlation_id()
        pass_start = time.monotonic()
        budget_seconds = self.settings.max_runtime_minutes * 60
        self._stats["last_pass_started_at"] = datetime.now(UTC).isoformat()

        media_types = self._registry.available_media_types()
        if not media_types:
            logger.warning("No lookup strategies available, skipping pass")
            return {"skipped": True, "correlation_id": correlation_id}

        allocation = allocate_batch(self.settings.batch_size, media_types)
        per_type: dict[str, dict[str, int]] = {}
        totals = TypeCounts()

        async with log_operation(
            logger,
            "image_lookup.pass",
            batch_size=self.settings.batch_size,
            media_types=[mt.value for mt in media_types],
        ):
            for media_type in media_types:
                if self._stop_event.is_set():
                    break
                if time.monotonic() - pass_start >= budget_seconds:
                    logger.info(
                        "Max runtime of %d minutes reached, ending pass",
                        self.settings.max_runtime_minutes,
                    )
                    break

                limit = allocation.get(media_type, 0)
                if limit <= 0:
                    continue

                counts = await self._process_media_type(
                    media_type, limit, pass_start, budget_seconds
                )
                per_type[media_type.value] = asdict(counts)
                totals.add(counts)

        summary = {
            "skipped": False,
            "correlation_id": correlation_id,
            "duration_seconds": round(time.monotonic() - pass_start, 3),
            "totals": asdict(totals),
            "per_type": per_type,
        }
        self._stats["passes_completed"] += 1
        self._stats["last_pass_completed_at"] = datetime.now(UTC).isoformat()
        self._stats["last_pass"] = summary

        logger.info(
            "Image lookup pass done: processed=%d succeeded=%d failed=%d",
            totals.processed,
            totals.succeeded,
            totals.failed,
        )
        log_worker_health(
            logger,
            "image_lookup",
            cycles_completed=self._stats["passes_completed"],
            errors_total=self._stats["errors_total"],
            uptime_seconds=(
                time.monotonic() - self._started_at if self._started_at else 0.0
            ),
        )
        return summary

    async def _process_media_type(
        self,
        media_type: MediaType,
        limit: int,
        pass_start: float,
        budget_seconds: float,
    ) -> TypeCounts:
        counts = TypeCounts()
        try:
            entities = await self._repository.find_needing_enrichment(media_type, limit)
            logger.info(
                "Found %d %s entities needing a cover (limit %d)",
                len(entities),
                media_type.value,
                limit,
            )

            for entity in entities:
                if self._stop_event.is_set():
                    break
                if time.monotonic() - pass_start >= budget_seconds:
                    logger.info("Max runtime reached during %s processing", media_type.value)
                    break

                succeeded = await self._process_entity(entity)
                counts.processed += 1
                if succeeded:
                    counts.succeeded += 1
                else:
                    counts.failed += 1

                if await self._wait(60.0 / self.settings.requests_per_minute):
                    break
        except Exception as e:
            self._stats["errors_total"] += 1
            logger.exception("Error processing %s entities: %s", media_type.value, e)

        return counts

    async def _process_entity(self, entity: CatalogEntity) -> bool:
        media_type = entity.media_type
        start_time, op_id = start_operation(
            logger,
            "image_lookup.entity",
            log_level=logging.DEBUG,
            media_type=media_type.value,
            entity_id=entity.id,
        )
        try:
            outcome = await self._lookup.enrich(entity)
            await self._record(entity, outcome)
        except Exception as e:
            self._stats["errors_total"] += 1
            end_operation(
                logger,
                "image_lookup.entity",
                start_time,
                op_id,
                success=False,
                error=e,
                media_type=media_type.value,
                entity_id=entity.id,
            )
            # Best effort: mark the entity so it isn't picked up again every pass
            try:
                await self._record(entity, EnrichmentOutcome.failed(f"Processing error: {e}"))
            except Exception as update_error:
                logger.error(
                    "Failed to record failure on %s %s: %s",
                    media_type.value,
                    entity.id,
                    update_error,
                )
            return False

        end_operation(
            logger,
            "image_lookup.entity",
            start_time,
            op_id,
            log_level=logging.DEBUG,
            media_type=media_type.value,
            entity_id=entity.id,
        )
        if outcome.success:
            logger.info("Cover stored for %s %s", media_type.value, entity.id)
        else:
            logger.info(
                "No cover for %s %s: %s%s",
                media_type.value,
                entity.id,
                outcome.error_message,
                " (permanent)" if outcome.permanent_failure else "",
            )
        return outcome.success

    async def _record(self, entity: CatalogEntity, outcome: EnrichmentOutcome) -> None:
        if not entity.id:
            # Nothing to key the update on
            logger.warning(
                "Cannot record attempt on %s without an id: %s",
                entity.media_type.value,
                outcome.error_message,
            )
            return
        await self._repository.update_attempt(
            entity.media_type, entity.id, outcome.to_attempt(), outcome.saved_image
        )
