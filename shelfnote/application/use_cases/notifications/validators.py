"""Validation helpers for publish requests."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from typing import Any
from uuid import UUID

from shelfnote.domain.entities import (
    MESSAGE_MAX_LENGTH,
    OBJECT_TITLE_MAX_LENGTH,
    TITLE_MAX_LENGTH,
    Audience,
    EventType,
    ObjectKind,
    ObjectRef,
    PublishRequest,
)
from shelfnote.domain.errors import NotificationValidationError

METADATA_MAX_KEYS = 50
METADATA_KEY_MAX_LENGTH = 100
METADATA_STRING_MAX_LENGTH = 500
_SCALAR_TYPES = (str, int, float, bool, type(None))


def ensure_event_type(value: EventType | str) -> EventType:
    """Return ``value`` as an :class:`EventType` or raise a validation error."""

    if isinstance(value, EventType):
        return value
    try:
        return EventType(str(value).strip().upper())
    except ValueError as exc:
        raise NotificationValidationError(f"Unknown event type '{value}'") from exc


def ensure_text(value: str | None, *, field: str, max_length: int) -> str:
    if value is None or not isinstance(value, str) or not value.strip():
        raise NotificationValidationError(f"{field} is required")
    if len(value) > max_length:
        raise NotificationValidationError(
            f"{field} must be at most {max_length} characters"
        )
    return value


def ensure_object_ref(object_ref: ObjectRef | None, object_title: str | None) -> None:
    if object_ref is None:
        if object_title is not None:
            raise NotificationValidationError("object_title requires object_ref")
        return

    if not isinstance(object_ref.id, UUID):
        raise NotificationValidationError("object_ref.id must be a UUID")
    try:
        ObjectKind(object_ref.kind)
    except ValueError as exc:
        raise NotificationValidationError(
            f"Unknown object kind '{object_ref.kind}'"
        ) from exc
    if object_title is not None and len(object_title) > OBJECT_TITLE_MAX_LENGTH:
        raise NotificationValidationError(
            f"object_title must be at most {OBJECT_TITLE_MAX_LENGTH} characters"
        )


def ensure_metadata(metadata: Mapping[str, Any] | None) -> dict[str, Any] | None:
    """Check that ``metadata`` is a flat mapping of short scalar values."""

    if metadata is None:
        return None
    if not isinstance(metadata, Mapping):
        raise NotificationValidationError("metadata must be an object")
    if len(metadata) > METADATA_MAX_KEYS:
        raise NotificationValidationError(
            f"metadata accepts at most {METADATA_MAX_KEYS} keys"
        )
    for key, value in metadata.items():
        if not isinstance(key, str) or not key or len(key) > METADATA_KEY_MAX_LENGTH:
            raise NotificationValidationError("metadata keys must be short strings")
        if not isinstance(value, _SCALAR_TYPES):
            raise NotificationValidationError(
                f"metadata value for '{key}' must be a scalar"
            )
        if isinstance(value, str) and len(value) > METADATA_STRING_MAX_LENGTH:
            raise NotificationValidationError(
                f"metadata value for '{key}' is too long"
            )
    return dict(metadata)


def ensure_audience(audience: Audience | None) -> Audience:
    if audience is None:
        raise NotificationValidationError("audience is required")
    if audience.broadcast and audience.user_ids:
        raise NotificationValidationError(
            "audience must be either broadcast or a set of users, not both"
        )
    if not audience.broadcast:
        if not audience.user_ids:
            raise NotificationValidationError("targeted audience cannot be empty")
        if not all(isinstance(user_id, UUID) for user_id in audience.user_ids):
            raise NotificationValidationError("audience user ids must be UUIDs")
    return audience


def validate_publish_request(request: PublishRequest) -> PublishRequest:
    """Return a normalized copy of ``request`` or raise a validation error."""

    event_type = ensure_event_type(request.type)
    ensure_text(request.title, field="title", max_length=TITLE_MAX_LENGTH)
    ensure_text(request.message, field="message", max_length=MESSAGE_MAX_LENGTH)
    ensure_object_ref(request.object_ref, request.object_title)
    metadata = ensure_metadata(request.metadata)
    ensure_audience(request.audience)
    if request.event_id is not None and not isinstance(request.event_id, UUID):
        raise NotificationValidationError("event_id must be a UUID")
    object_ref = request.object_ref
    if object_ref is not None:
        object_ref = ObjectRef(kind=ObjectKind(object_ref.kind), id=object_ref.id)
    return replace(request, type=event_type, object_ref=object_ref, metadata=metadata)


__all__ = [
    "ensure_audience",
    "ensure_event_type",
    "ensure_metadata",
    "ensure_object_ref",
    "ensure_text",
    "validate_publish_request",
]
