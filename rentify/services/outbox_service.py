"""
Notification outbox.

State changes commit first. Their notifications are then written as
``OutboxEvent`` rows in a separate transaction and delivered best-effort:
an in-app ``Notification`` plus a Telegram message when the profile has a
chat linked. Nothing here raises to the caller; failures are logged and
recorded on the event so the cron flush can retry them.
"""

from dataclasses import dataclass
from datetime import datetime

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from rentify.extensions import db
from rentify.models.outbox_event import OUTBOX_FAILED, OUTBOX_PENDING, OUTBOX_SENT, OutboxEvent
from rentify.models.profile import Profile
from rentify.models.rental import Rental
from rentify.services import notification_service, telegram_service
from rentify.utils.errors import ApiError


@dataclass
class Event:
    user_id: int
    kind: str
    title: str
    message: str
    rental_id: int | None = None
    action_url: str | None = None


def rental_event(user_id: int, rental_id: int, kind: str, title: str, message: str) -> Event:
    return Event(
        user_id=user_id,
        kind=kind,
        title=title,
        message=message,
        rental_id=rental_id,
        action_url=telegram_service.rental_url(rental_id),
    )


def _max_attempts() -> int:
    return max(1, int(current_app.config.get("OUTBOX_MAX_ATTEMPTS", 5)))


def enqueue(events: list[Event]) -> list[OutboxEvent]:
    if not events:
        return []
    try:
        rows = [
            OutboxEvent(
                user_id=e.user_id,
                rental_id=e.rental_id,
                kind=e.kind,
                title=e.title,
                message=e.message,
                action_url=e.action_url,
                status=OUTBOX_PENDING,
                attempts=0,
            )
            for e in events
        ]
        db.session.add_all(rows)
        db.session.commit()
        return rows
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[outbox] enqueue failed for %s event(s)", len(events))
        return []


def dispatch(row: OutboxEvent) -> bool:
    """Delivers one event. Returns True once it is marked sent."""
    event_id = row.id
    try:
        notification_service.add_notification(
            row.user_id,
            row.kind,
            row.title,
            row.message,
            related_id=row.rental_id,
        )

        profile: Profile | None = Profile.query.get(row.user_id)
        if profile and profile.telegram_chat_id:
            sent = telegram_service.send_to_profile(
                profile,
                row.kind,
                row.message,
                rental_id=row.rental_id,
                action_url=row.action_url,
            )
            if not sent:
                current_app.logger.info("[outbox] telegram delivery skipped for event %s", row.id)

        row.status = OUTBOX_SENT
        row.attempts = (row.attempts or 0) + 1
        row.dispatched_at = datetime.utcnow()
        row.last_error = None
        db.session.commit()
        return True
    except Exception as e:
        db.session.rollback()
        current_app.logger.exception("[outbox] dispatch failed for event %s", event_id)
        _record_failure(event_id, str(e))
        return False


def _record_failure(event_id: int, error: str) -> None:
    try:
        row: OutboxEvent | None = OutboxEvent.query.get(event_id)
        if row is None:
            return
        row.attempts = (row.attempts or 0) + 1
        row.last_error = error[:2000]
        if row.attempts >= _max_attempts():
            row.status = OUTBOX_FAILED
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.exception("[outbox] could not record failure for event %s", event_id)


def publish(events: list[Event]) -> None:
    """Queue events and, unless disabled, deliver them right away."""
    rows = enqueue(events)
    if not rows or not current_app.config.get("OUTBOX_DISPATCH_INLINE", True):
        return
    for row in rows:
        dispatch(row)


def flush_pending(limit: int = 100) -> dict:
    rows = (
        OutboxEvent.query.filter(OutboxEvent.status == OUTBOX_PENDING)
        .order_by(OutboxEvent.id.asc())
        .limit(limit)
        .all()
    )
    sent = 0
    for row in rows:
        if dispatch(row):
            sent += 1
    return {"processed": len(rows), "sent": sent, "failed": len(rows) - sent}


def queue_rental_notification(caller_id: int, data: dict) -> dict:
    """Lets a rental participant notify themselves or the other party."""
    rental: Rental | None = Rental.query.get(data["rental_id"])
    if not rental:
        raise ApiError("Rental not found", 404)
    if not rental.is_participant(caller_id):
        raise ApiError("Not authorized for this rental", 403)

    target_id = data.get("user_id") or caller_id
    if target_id not in (rental.renter_id, rental.owner_id):
        raise ApiError("Recipient must be a party to the rental", 400)

    kind = data["type"]
    event = rental_event(
        target_id,
        rental.id,
        kind,
        telegram_service.TITLE_BY_KIND.get(kind, "Rentify Notification"),
        data["message"],
    )
    publish([event])
    return {"queued": True, "user_id": target_id, "rental_id": rental.id}
