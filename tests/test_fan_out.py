"""Tests for trigger planning and the bounded fan-out dispatcher."""

from __future__ import annotations

import time
from datetime import timedelta
from uuid import uuid4

import anyio
import anyio.from_thread
import pytest

from shelfnote.application.use_cases.notifications import (
    FanOutDispatcher,
    handle_stock_change,
    list_feed,
    notify_trigger,
    publish_event,
)
from shelfnote.domain.entities import (
    BookAvailable,
    BorrowDueSoon,
    BorrowOverdue,
    EventType,
    ObjectKind,
    SubscriptionExpired,
)
from shelfnote.domain.errors import StorageError
from shelfnote.infrastructure.database import SessionLocal
from shelfnote.infrastructure.models import (
    RESERVATION_STATUS_CANCELLED,
    RESERVATION_STATUS_NOTIFIED,
    RESERVATION_STATUS_PENDING,
    ReservationModel,
)

pytestmark = pytest.mark.anyio


@pytest.fixture()
def anyio_backend():
    return "asyncio"


@pytest.fixture()
def dispatcher_factory(clock, dedup_cache):
    def factory(**overrides) -> FanOutDispatcher:
        options = {
            "max_concurrency": 4,
            "max_attempts": 3,
            "backoff_base": 0.0,
            "backoff_jitter": 0.0,
            "timeout": 10.0,
            "publish_timeout": 5.0,
            "dedup_cache": dedup_cache,
            "clock": clock,
        }
        options.update(overrides)
        return FanOutDispatcher(SessionLocal, **options)

    return factory


def _feed(user_id):
    db = SessionLocal()
    try:
        return list_feed(db, user_id).items
    finally:
        db.close()


def _reservation_statuses(book_id) -> dict:
    db = SessionLocal()
    try:
        return {
            model.user_id: model.status
            for model in db.query(ReservationModel).filter(ReservationModel.book_id == book_id)
        }
    finally:
        db.close()


async def test_book_available_notifies_every_pending_holder(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book(title="Piranesi")
    holders = [make_user(name=f"Holder {index}") for index in range(3)]
    for holder in holders:
        make_reservation(book_id, holder.id)
    former = make_user(name="Former holder")
    make_reservation(book_id, former.id, status=RESERVATION_STATUS_CANCELLED)

    report = await dispatcher_factory().fan_out(BookAvailable(book_id=book_id, title="Piranesi"))

    assert report.ok == 3
    assert report.failed == []
    assert report.cancelled is False
    assert len(set(report.event_ids)) == 3
    for holder in holders:
        items = _feed(holder.id)
        assert len(items) == 1
        event = items[0].event
        assert event.type is EventType.BOOK_AVAILABLE
        assert event.title == "Your reserved book is now available!"
        assert "Piranesi" in event.message
        assert event.object_ref.kind is ObjectKind.BOOK
        assert event.object_ref.id == book_id
        assert event.object_title == "Piranesi"
        assert items[0].is_read is False
    assert _feed(former.id) == []

    statuses = _reservation_statuses(book_id)
    assert all(statuses[holder.id] == RESERVATION_STATUS_NOTIFIED for holder in holders)
    assert statuses[former.id] == RESERVATION_STATUS_CANCELLED


async def test_one_failing_recipient_does_not_affect_the_others(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book()
    present = [make_user(), make_user()]
    ghost_id = uuid4()
    for user_id in (present[0].id, ghost_id, present[1].id):
        make_reservation(book_id, user_id)

    report = await dispatcher_factory().fan_out(BookAvailable(book_id=book_id, title="Kindred"))

    assert report.ok == 2
    assert [(failure.user_id, failure.error_kind) for failure in report.failed] == [
        (ghost_id, "UnknownUser")
    ]
    assert report.total == 3
    for user in present:
        assert len(_feed(user.id)) == 1
    assert _reservation_statuses(book_id)[ghost_id] == RESERVATION_STATUS_PENDING


async def test_no_pending_reservations_yields_an_empty_report(dispatcher_factory, make_book):
    report = await dispatcher_factory().fan_out(
        BookAvailable(book_id=make_book(), title="Nobody waits")
    )

    assert report.total == 0
    assert report.cancelled is False


async def test_transient_failures_are_retried_without_duplicates(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    calls = []

    def flaky(session, request, *, clock):
        calls.append(request.event_id)
        if len(calls) == 1:
            publish_event(session, request, clock=clock)
            raise StorageError("connection reset")
        return publish_event(session, request, clock=clock)

    report = await dispatcher_factory(publisher=flaky).fan_out(
        BookAvailable(book_id=book_id, title="Beloved")
    )

    assert report.ok == 1
    assert len(calls) == 2
    assert calls[0] == calls[1]
    assert len(_feed(reader.id)) == 1


async def test_persistent_transient_failure_is_reported(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    attempts = []

    def broken(session, request, *, clock):
        attempts.append(request.event_id)
        raise StorageError("database unavailable")

    report = await dispatcher_factory(publisher=broken, max_attempts=3).fan_out(
        BookAvailable(book_id=book_id, title="Beloved")
    )

    assert report.ok == 0
    assert len(attempts) == 3
    assert report.failed[0].user_id == reader.id
    assert report.failed[0].error_kind == "StorageError"


async def test_slow_publish_times_out(dispatcher_factory, make_user, make_book, make_reservation):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)

    def slow(session, request, *, clock):
        time.sleep(0.5)
        return request.event_id

    report = await dispatcher_factory(
        publisher=slow, publish_timeout=0.05, max_attempts=1
    ).fan_out(BookAvailable(book_id=book_id, title="Slow"))

    assert report.ok == 0
    assert report.failed[0].error_kind == "StorageError"


async def test_repeated_trigger_key_is_deduplicated(
    dispatcher_factory, dedup_cache, make_user, make_book, make_reservation
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    dispatcher = dispatcher_factory()
    trigger = BookAvailable(book_id=book_id, title="Circe")

    first = await dispatcher.fan_out(trigger, trigger_key=f"book:{book_id}:restock")
    second = await dispatcher.fan_out(trigger, trigger_key=f"book:{book_id}:restock")

    assert first.ok == 1
    assert second.deduplicated is True
    assert second.total == 0
    assert f"book:{book_id}:restock" in dedup_cache
    assert len(_feed(reader.id)) == 1


async def test_injected_dedup_cache_is_shared_between_dispatchers(
    dispatcher_factory, dedup_cache, make_user, make_book, make_reservation
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    trigger = BookAvailable(book_id=book_id, title="Shared")

    first = await dispatcher_factory().fan_out(trigger, trigger_key="shared-key")
    second = await dispatcher_factory().fan_out(trigger, trigger_key="shared-key")

    assert len(dedup_cache) == 1
    assert first.ok == 1
    assert second.deduplicated is True
    assert len(_feed(reader.id)) == 1


@pytest.mark.parametrize("option", ["max_concurrency", "max_attempts"])
async def test_explicit_zero_limits_are_rejected(dispatcher_factory, option):
    with pytest.raises(ValueError):
        dispatcher_factory(**{option: 0})


async def test_explicit_zero_backoff_factor_is_kept(
    dispatcher_factory, make_user, make_book, make_reservation, monkeypatch
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    delays = []

    async def record_sleep(delay):
        delays.append(delay)

    monkeypatch.setattr(anyio, "sleep", record_sleep)

    def broken(session, request, *, clock):
        raise StorageError("database unavailable")

    report = await dispatcher_factory(
        publisher=broken, backoff_base=1.0, backoff_factor=0.0, max_attempts=3
    ).fan_out(BookAvailable(book_id=book_id, title="Backoff"))

    assert report.failed[0].error_kind == "StorageError"
    assert delays == [1.0, 0.0]


async def test_planning_failure_releases_the_trigger_key(dispatcher_factory, dedup_cache):
    with pytest.raises(TypeError):
        await dispatcher_factory().fan_out(object(), trigger_key="bogus")

    assert "bogus" not in dedup_cache


async def test_cancel_before_start_publishes_nothing(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)
    cancel = anyio.Event()
    cancel.set()

    report = await dispatcher_factory().fan_out(
        BookAvailable(book_id=book_id, title="Cancelled"), cancel_event=cancel
    )

    assert report.cancelled is True
    assert report.ok == 0
    assert _feed(reader.id) == []


async def test_cancel_mid_run_skips_remaining_recipients(
    dispatcher_factory, make_user, make_book, make_reservation
):
    book_id = make_book()
    readers = [make_user() for _ in range(3)]
    for reader in readers:
        make_reservation(book_id, reader.id)
    cancel = anyio.Event()

    def cancel_after_first(session, request, *, clock):
        event_id = publish_event(session, request, clock=clock)
        anyio.from_thread.run_sync(cancel.set)
        return event_id

    report = await dispatcher_factory(publisher=cancel_after_first, max_concurrency=1).fan_out(
        BookAvailable(book_id=book_id, title="Interrupted"), cancel_event=cancel
    )

    assert report.cancelled is True
    assert report.ok == 1
    assert report.skipped == 2
    assert {failure.error_kind for failure in report.failed} == {"Cancelled"}
    assert sum(len(_feed(reader.id)) for reader in readers) == 1


async def test_borrow_due_soon_reminds_only_open_borrows_in_horizon(
    clock, dispatcher_factory, make_user, make_book, make_borrow
):
    book_id = make_book(title="Middlemarch")
    soon = make_user(name="Soon")
    later = make_user(name="Later")
    returned = make_user(name="Returned")
    now = clock.current
    borrow_id = make_borrow(book_id, soon.id, due_date=now + timedelta(hours=2))
    make_borrow(book_id, later.id, due_date=now + timedelta(days=3))
    make_borrow(
        book_id,
        returned.id,
        due_date=now + timedelta(hours=3),
        returned_at=now - timedelta(hours=1),
    )

    report = await dispatcher_factory().fan_out(BorrowDueSoon(horizon=timedelta(hours=24)))

    assert report.ok == 1
    items = _feed(soon.id)
    assert len(items) == 1
    event = items[0].event
    assert event.type is EventType.BORROW_DUE_SOON
    assert event.object_ref.kind is ObjectKind.BORROW
    assert event.object_ref.id == borrow_id
    assert event.object_title == "Middlemarch"
    assert event.metadata["due_at"].endswith("Z")
    assert _feed(later.id) == []
    assert _feed(returned.id) == []


async def test_borrow_overdue_warns_late_borrowers(
    clock, dispatcher_factory, make_user, make_book, make_borrow
):
    book_id = make_book()
    late = make_user()
    punctual = make_user()
    make_borrow(book_id, late.id, due_date=clock.current - timedelta(days=2))
    make_borrow(book_id, punctual.id, due_date=clock.current + timedelta(days=2))

    report = await dispatcher_factory().fan_out(BorrowOverdue())

    assert report.ok == 1
    assert _feed(late.id)[0].event.type is EventType.BORROW_OVERDUE
    assert _feed(punctual.id) == []


async def test_subscription_expired_notifies_the_subscriber(dispatcher_factory, make_user):
    subscriber = make_user()
    subscription_id = uuid4()

    report = await dispatcher_factory().fan_out(
        SubscriptionExpired(subscription_id=subscription_id, user_id=subscriber.id)
    )

    assert report.ok == 1
    event = _feed(subscriber.id)[0].event
    assert event.type is EventType.SUBSCRIPTION_EXPIRED
    assert event.object_ref.id == subscription_id


@pytest.mark.parametrize(
    ("previous", "current", "expected_ok"),
    [(0, 2, 1), (None, 1, 1), (1, 3, None), (0, 0, None)],
)
async def test_handle_stock_change_only_fires_on_restock(
    dispatcher_factory, make_user, make_book, make_reservation, previous, current, expected_ok
):
    book_id = make_book()
    reader = make_user()
    make_reservation(book_id, reader.id)

    report = await handle_stock_change(
        dispatcher_factory(),
        book_id=book_id,
        title="Restocked",
        previous_copies=previous,
        current_copies=current,
    )

    if expected_ok is None:
        assert report is None
        assert _feed(reader.id) == []
    else:
        assert report.ok == expected_ok


async def test_notify_trigger_never_raises():
    class ExplodingDispatcher:
        async def fan_out(self, trigger, *, trigger_key=None):
            raise RuntimeError("boom")

    result = await notify_trigger(
        ExplodingDispatcher(), BookAvailable(book_id=uuid4(), title="Boom")
    )

    assert result is None
