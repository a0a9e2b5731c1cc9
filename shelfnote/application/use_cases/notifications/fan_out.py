"""Bounded, failure isolated fan-out of one domain trigger to many recipients."""

from __future__ import annotations

import logging
import random
from collections.abc import Callable, Sequence
from dataclasses import replace
from functools import lru_cache
from uuid import UUID, uuid4

import anyio
import anyio.to_thread
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shelfnote.config import get_settings
from shelfnote.domain.entities import DomainTrigger, FanOutFailure, FanOutReport
from shelfnote.domain.errors import (
    NotificationError,
    OperationCancelledError,
    StorageError,
)
from shelfnote.infrastructure.database import SessionLocal, transaction
from shelfnote.infrastructure.dedup_cache import TriggerDedupCache
from shelfnote.utils import system_clock

from .publish import publish_event
from .triggers import Delivery, plan_deliveries

logger = logging.getLogger(__name__)


class FanOutDispatcher:
    """Publish one targeted event per recipient of a domain trigger.

    Publishes run in worker threads, at most ``max_concurrency`` at a time,
    each with its own session. A failing recipient never affects the others:
    transient errors are retried with exponential backoff and whatever still
    fails ends up in the returned :class:`FanOutReport`. Once the cancel event
    is set or the overall deadline passes, no further publish is started while
    the ones already running are allowed to finish.
    """

    def __init__(
        self,
        session_factory: Callable[[], Session] = SessionLocal,
        *,
        max_concurrency: int | None = None,
        max_attempts: int | None = None,
        backoff_base: float | None = None,
        backoff_factor: float | None = None,
        backoff_jitter: float | None = None,
        timeout: float | None = None,
        publish_timeout: float | None = None,
        dedup_cache: TriggerDedupCache | None = None,
        clock=system_clock,
        publisher: Callable[..., UUID] = publish_event,
    ) -> None:
        settings = get_settings()
        self._session_factory = session_factory
        self._max_concurrency = (
            max_concurrency
            if max_concurrency is not None
            else settings.fan_out_max_concurrency
        )
        self._max_attempts = (
            max_attempts if max_attempts is not None else settings.fan_out_max_attempts
        )
        self._backoff_base = (
            backoff_base
            if backoff_base is not None
            else settings.fan_out_backoff_base_ms / 1000
        )
        self._backoff_factor = (
            backoff_factor
            if backoff_factor is not None
            else settings.fan_out_backoff_factor
        )
        self._backoff_jitter = (
            backoff_jitter
            if backoff_jitter is not None
            else settings.fan_out_backoff_jitter
        )
        self._timeout = timeout if timeout is not None else settings.fan_out_timeout_seconds
        self._publish_timeout = (
            publish_timeout
            if publish_timeout is not None
            else settings.publish_timeout_seconds
        )
        self._dedup = (
            dedup_cache
            if dedup_cache is not None
            else TriggerDedupCache(settings.trigger_dedup_ttl_seconds)
        )
        if self._max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        if self._max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._clock = clock
        self._publisher = publisher

    async def fan_out(
        self,
        trigger: DomainTrigger,
        *,
        trigger_key: str | None = None,
        cancel_event: anyio.Event | None = None,
    ) -> FanOutReport:
        """Resolve the recipients of ``trigger`` and notify each of them."""

        report = FanOutReport()
        if trigger_key is not None and not self._dedup.claim(trigger_key):
            logger.info("Skipping fan-out for already handled trigger key %s", trigger_key)
            report.deduplicated = True
            return report

        deadline = anyio.current_time() + self._timeout
        if self._should_stop(deadline, cancel_event):
            report.cancelled = True
            return report

        try:
            deliveries = await anyio.to_thread.run_sync(self._plan, trigger)
        except BaseException:
            if trigger_key is not None:
                self._dedup.release(trigger_key)
            raise

        await self.dispatch(
            deliveries, report=report, deadline=deadline, cancel_event=cancel_event
        )
        logger.info(
            "Fan-out for %s finished: ok=%s failed=%s skipped=%s cancelled=%s",
            type(trigger).__name__,
            report.ok,
            len(report.failed),
            report.skipped,
            report.cancelled,
        )
        return report

    async def dispatch(
        self,
        deliveries: Sequence[Delivery],
        *,
        report: FanOutReport | None = None,
        deadline: float | None = None,
        cancel_event: anyio.Event | None = None,
    ) -> FanOutReport:
        """Run ``deliveries`` concurrently and accumulate their outcome."""

        report = report if report is not None else FanOutReport()
        if deadline is None:
            deadline = anyio.current_time() + self._timeout
        limiter = anyio.CapacityLimiter(self._max_concurrency)
        async with anyio.create_task_group() as task_group:
            for delivery in deliveries:
                # Pre-assigned ids make every retry of this delivery idempotent.
                if delivery.request.event_id is None:
                    delivery = replace(
                        delivery, request=replace(delivery.request, event_id=uuid4())
                    )
                task_group.start_soon(
                    self._deliver, delivery, limiter, report, deadline, cancel_event
                )
        return report

    async def _deliver(
        self,
        delivery: Delivery,
        limiter: anyio.CapacityLimiter,
        report: FanOutReport,
        deadline: float,
        cancel_event: anyio.Event | None,
    ) -> None:
        async with limiter:
            if self._should_stop(deadline, cancel_event):
                self._record_skip(delivery, report)
                return

            attempt = 0
            while True:
                attempt += 1
                try:
                    event_id = await self._publish_with_timeout(delivery)
                except NotificationError as exc:
                    if exc.transient and attempt < self._max_attempts:
                        if self._should_stop(deadline, cancel_event):
                            report.cancelled = True
                        else:
                            delay = self._backoff_delay(attempt)
                            logger.warning(
                                "Transient failure notifying user %s (attempt %s/%s): %s; retrying in %.3fs",
                                delivery.user_id,
                                attempt,
                                self._max_attempts,
                                exc.message,
                                delay,
                            )
                            await anyio.sleep(delay)
                            continue
                    self._record_failure(delivery, report, exc.kind, exc.message)
                    return
                except Exception as exc:  # pragma: no cover - unexpected failure
                    logger.exception("Unexpected failure notifying user %s", delivery.user_id)
                    self._record_failure(delivery, report, "InternalError", str(exc))
                    return

                report.ok += 1
                report.event_ids.append(event_id)
                return

    async def _publish_with_timeout(self, delivery: Delivery) -> UUID:
        with anyio.move_on_after(self._publish_timeout):
            return await anyio.to_thread.run_sync(
                self._publish_once, delivery, abandon_on_cancel=True
            )
        raise StorageError(
            f"Publishing to user {delivery.user_id} timed out after {self._publish_timeout:g}s"
        )

    def _plan(self, trigger: DomainTrigger) -> list[Delivery]:
        session = self._session_factory()
        try:
            with transaction(session):
                return plan_deliveries(trigger, session, now=self._clock.now())
        finally:
            session.close()

    def _publish_once(self, delivery: Delivery) -> UUID:
        session = self._session_factory()
        try:
            event_id = self._publisher(session, delivery.request, clock=self._clock)
            if delivery.after_publish is not None:
                try:
                    delivery.after_publish(session, self._clock.now())
                except SQLAlchemyError:
                    session.rollback()
                    logger.warning(
                        "Notified user %s but could not record the follow-up update",
                        delivery.user_id,
                        exc_info=True,
                    )
            return event_id
        finally:
            session.close()

    def _backoff_delay(self, attempt: int) -> float:
        delay = self._backoff_base * self._backoff_factor ** (attempt - 1)
        jitter = random.uniform(1 - self._backoff_jitter, 1 + self._backoff_jitter)
        return delay * jitter

    @staticmethod
    def _should_stop(deadline: float, cancel_event: anyio.Event | None) -> bool:
        if cancel_event is not None and cancel_event.is_set():
            return True
        return anyio.current_time() >= deadline

    @staticmethod
    def _record_skip(delivery: Delivery, report: FanOutReport) -> None:
        report.cancelled = True
        report.skipped += 1
        report.failed.append(
            FanOutFailure(user_id=delivery.user_id, error_kind=OperationCancelledError.kind)
        )

    @staticmethod
    def _record_failure(
        delivery: Delivery, report: FanOutReport, kind: str, detail: str | None
    ) -> None:
        logger.warning("Could not notify user %s: %s (%s)", delivery.user_id, kind, detail)
        report.failed.append(
            FanOutFailure(user_id=delivery.user_id, error_kind=kind, detail=detail)
        )


@lru_cache
def get_fan_out_dispatcher() -> FanOutDispatcher:
    """Return the process wide dispatcher sharing one dedup cache."""

    return FanOutDispatcher()


__all__ = ["FanOutDispatcher", "get_fan_out_dispatcher"]
