"""Endpoints exposing the notification feed and publishing operations."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from shelfnote.application.use_cases.notifications import (
    FanOutDispatcher,
    decode_cursor,
    encode_cursor,
    list_feed as list_feed_uc,
    mark_all_read as mark_all_read_uc,
    mark_read as mark_read_uc,
    publish_event as publish_event_uc,
    unread_count as unread_count_uc,
)
from shelfnote.domain.entities import User
from shelfnote.infrastructure.database import get_db
from shelfnote.interfaces.api.dependencies import (
    get_current_active_user,
    get_dispatcher,
    require_admin,
)
from shelfnote.interfaces.api.schemas import (
    ErrorResponse,
    FanOutReportRead,
    FanOutRequest,
    MarkAllReadResponse,
    MarkReadResponse,
    NotificationFeedRead,
    NotificationPublishRequest,
    NotificationPublishResponse,
    NotificationRead,
    UnreadCountRead,
)

router = APIRouter(
    prefix="/notifications",
    tags=["notifications"],
    responses={
        400: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)


@router.get("", response_model=NotificationFeedRead)
def list_notifications(
    cursor: str | None = Query(None, description="Opaque token returned as next_cursor"),
    limit: int | None = Query(None, description="Page size, capped at the configured maximum"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> NotificationFeedRead:
    """Return one page of the authenticated user's notification feed."""

    page = list_feed_uc(
        db,
        current_user.id,
        cursor=decode_cursor(cursor) if cursor else None,
        limit=limit,
    )
    return NotificationFeedRead(
        items=[NotificationRead.from_item(item) for item in page.items],
        next_cursor=encode_cursor(page.next_cursor) if page.next_cursor else None,
    )


@router.get("/unread_count", response_model=UnreadCountRead)
def read_unread_count(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> UnreadCountRead:
    return UnreadCountRead(count=unread_count_uc(db, current_user.id))


@router.post(
    "/mark_all_read",
    response_model=MarkAllReadResponse,
)
def mark_all_notifications_read(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MarkAllReadResponse:
    """Mark every notification currently visible to the user as read."""

    return MarkAllReadResponse(updated=mark_all_read_uc(db, current_user.id))


@router.post(
    "/{event_id}/read",
    response_model=MarkReadResponse,
    responses={403: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
)
def mark_notification_read(
    event_id: UUID,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> MarkReadResponse:
    result = mark_read_uc(db, current_user.id, event_id)
    return MarkReadResponse(changed=result.changed)


@router.post(
    "",
    response_model=NotificationPublishResponse,
    status_code=status.HTTP_201_CREATED,
)
def publish_notification(
    payload: NotificationPublishRequest,
    db: Session = Depends(get_db),
    _: User = Depends(require_admin),
) -> NotificationPublishResponse:
    """Publish a targeted or broadcast notification."""

    event_id = publish_event_uc(db, payload.to_domain())
    return NotificationPublishResponse(id=event_id)


@router.post("/fan-out", response_model=FanOutReportRead)
async def run_fan_out(
    payload: FanOutRequest,
    dispatcher: FanOutDispatcher = Depends(get_dispatcher),
    _: User = Depends(require_admin),
) -> FanOutReportRead:
    """Notify every recipient implied by a domain trigger."""

    report = await dispatcher.fan_out(payload.to_domain(), trigger_key=payload.trigger_key)
    return FanOutReportRead.from_report(report)
