from datetime import date, timedelta

from flask import current_app

from rentify.extensions import db
from rentify.models.availability_block import AvailabilityBlock
from rentify.models.item import Item
from rentify.models.rental import BLOCKING_STATUSES, Rental
from rentify.utils import dates
from rentify.utils.errors import ApiError


def _rental_range_to_dict(rental: Rental) -> dict:
    return {
        "id": rental.id,
        "start_date": dates.iso(rental.start_date),
        "end_date": dates.iso(rental.end_date),
        "status": rental.status,
    }


def _block_to_dict(block: AvailabilityBlock) -> dict:
    return {
        "id": block.id,
        "item_id": block.item_id,
        "owner_id": block.owner_id,
        "start_date": dates.iso(block.start_date),
        "end_date": dates.iso(block.end_date),
        "reason": block.reason,
        "notes": block.notes,
        "created_at": dates.iso(block.created_at),
    }


def validate_range(start_date: date, end_date: date, allow_past: bool = False) -> None:
    """Rejects empty, inverted and past ranges before any conflict lookup."""
    if start_date >= end_date:
        raise ApiError("End date must be after start date", 400)
    if not allow_past and start_date < dates.today():
        raise ApiError("Start date cannot be in the past", 400)


def get_item_or_404(item_id: int) -> Item:
    item: Item | None = Item.query.get(item_id)
    if not item or item.status == "deleted":
        raise ApiError("Item not found", 404)
    return item


def lock_item(item_id: int, include_deleted: bool = False) -> Item | None:
    """
    Row lock on the item for the rest of the transaction.

    Bookings of the same item serialize on this lock, so the conflict check
    that follows sees every committed booking. With ``include_deleted`` the
    row is returned whatever its status (or None when it is gone).
    """
    item = Item.query.filter(Item.id == item_id).with_for_update().first()
    if include_deleted:
        return item
    if not item or item.status == "deleted":
        raise ApiError("Item not found", 404)
    return item


def conflicting_rentals(
    item_id: int,
    start_date: date,
    end_date: date,
    exclude_rental_id: int | None = None,
) -> list[Rental]:
    query = Rental.query.filter(
        Rental.item_id == item_id,
        Rental.status.in_(BLOCKING_STATUSES),
        Rental.start_date < end_date,
        Rental.end_date > start_date,
    )
    if exclude_rental_id is not None:
        query = query.filter(Rental.id != exclude_rental_id)
    return query.order_by(Rental.start_date.asc()).all()


def conflicting_blocks(item_id: int, start_date: date, end_date: date) -> list[AvailabilityBlock]:
    return (
        AvailabilityBlock.query.filter(
            AvailabilityBlock.item_id == item_id,
            AvailabilityBlock.start_date < end_date,
            AvailabilityBlock.end_date > start_date,
        )
        .order_by(AvailabilityBlock.start_date.asc())
        .all()
    )


def is_item_available(
    item_id: int,
    start_date: date,
    end_date: date,
    exclude_rental_id: int | None = None,
) -> bool:
    item: Item | None = Item.query.get(item_id)
    if not item or not item.is_bookable:
        return False
    if conflicting_rentals(item_id, start_date, end_date, exclude_rental_id):
        return False
    return not conflicting_blocks(item_id, start_date, end_date)


def get_next_available_date(item_id: int, after: date | None = None, duration_days: int = 1) -> date:
    """
    Earliest date on or after ``after`` (default today) where ``duration_days``
    consecutive days are free of blocking rentals and owner blocks.
    """
    cursor = after or dates.today()
    duration = timedelta(days=max(1, int(duration_days)))

    rentals = Rental.query.filter(
        Rental.item_id == item_id,
        Rental.status.in_(BLOCKING_STATUSES),
        Rental.end_date > cursor,
    ).all()
    blocks = AvailabilityBlock.query.filter(
        AvailabilityBlock.item_id == item_id,
        AvailabilityBlock.end_date > cursor,
    ).all()

    intervals = sorted(
        [(r.start_date, r.end_date) for r in rentals] + [(b.start_date, b.end_date) for b in blocks]
    )

    for start, end in intervals:
        if end <= cursor:
            continue
        if start >= cursor + duration:
            break
        cursor = end

    return cursor


def ensure_available(
    item_id: int,
    start_date: date,
    end_date: date,
    exclude_rental_id: int | None = None,
) -> None:
    """Raises a 400 carrying the conflicting rentals and blocks."""
    rentals = conflicting_rentals(item_id, start_date, end_date, exclude_rental_id)
    blocks = conflicting_blocks(item_id, start_date, end_date)
    if not rentals and not blocks:
        return

    raise ApiError(
        "Item is not available for the selected dates",
        400,
        payload={
            "conflict_details": {
                "rentals": [_rental_range_to_dict(r) for r in rentals],
                "blocks": [_block_to_dict(b) for b in blocks],
            },
            "next_available_date": dates.iso(
                get_next_available_date(item_id, start_date, (end_date - start_date).days)
            ),
        },
    )


def check_availability(
    item_id: int,
    start_date: date,
    end_date: date,
    exclude_rental_id: int | None = None,
) -> dict:
    validate_range(start_date, end_date)
    item = get_item_or_404(item_id)

    rentals = conflicting_rentals(item_id, start_date, end_date, exclude_rental_id)
    blocks = conflicting_blocks(item_id, start_date, end_date)
    available = item.is_bookable and not rentals and not blocks

    conflict_details = None
    if not available:
        conflict_details = {
            "rentals": [_rental_range_to_dict(r) for r in rentals],
            "blocks": [_block_to_dict(b) for b in blocks],
        }

    next_date = get_next_available_date(item_id, start_date, (end_date - start_date).days)

    return {
        "available": available,
        "next_available_date": dates.iso(next_date),
        "conflict_details": conflict_details,
        "checked_dates": {
            "start_date": dates.iso(start_date),
            "end_date": dates.iso(end_date),
        },
    }


def availability_summary(item_id: int) -> dict:
    item = get_item_or_404(item_id)
    today = dates.today()

    rentals = (
        Rental.query.filter(
            Rental.item_id == item_id,
            Rental.status.in_(BLOCKING_STATUSES),
            Rental.end_date > today,
        )
        .order_by(Rental.start_date.asc())
        .all()
    )
    blocks = (
        AvailabilityBlock.query.filter(
            AvailabilityBlock.item_id == item_id,
            AvailabilityBlock.end_date > today,
        )
        .order_by(AvailabilityBlock.start_date.asc())
        .all()
    )

    return {
        "item": {
            "id": item.id,
            "title": item.title,
            "base_available": item.is_bookable,
            "next_available_date": dates.iso(get_next_available_date(item_id, today)),
        },
        "upcoming_unavailable": {
            "rentals": [_rental_range_to_dict(r) for r in rentals],
            "blocks": [_block_to_dict(b) for b in blocks],
        },
    }


# ---------------------------------------------------------------------------
# Owner blocks
# ---------------------------------------------------------------------------

def _require_owner(item: Item, user_id: int) -> None:
    if item.owner_id != user_id:
        raise ApiError("Only the item owner can manage availability blocks", 403)


def list_blocks(item_id: int, user_id: int) -> list[dict]:
    item = get_item_or_404(item_id)
    _require_owner(item, user_id)

    blocks = (
        AvailabilityBlock.query.filter(AvailabilityBlock.item_id == item_id)
        .order_by(AvailabilityBlock.start_date.asc())
        .all()
    )
    return [_block_to_dict(b) for b in blocks]


def create_block(data: dict, user_id: int) -> dict:
    item_id = data["item_id"]
    start_date: date = data["start_date"]
    end_date: date = data["end_date"]

    validate_range(start_date, end_date)

    item = lock_item(item_id)
    _require_owner(item, user_id)

    rentals = conflicting_rentals(item_id, start_date, end_date)
    if rentals:
        db.session.rollback()
        raise ApiError(
            "Cannot block dates that have existing active rentals",
            400,
            payload={"conflicts": [_rental_range_to_dict(r) for r in rentals]},
        )

    block = AvailabilityBlock(
        item_id=item.id,
        owner_id=user_id,
        start_date=start_date,
        end_date=end_date,
        reason=(data.get("reason") or "").strip() or "Maintenance",
        notes=data.get("notes"),
    )
    db.session.add(block)
    db.session.commit()

    current_app.logger.info("Availability block %s created for item %s", block.id, item.id)
    return _block_to_dict(block)


def delete_block(block_id: int, user_id: int) -> None:
    block: AvailabilityBlock | None = AvailabilityBlock.query.get(block_id)
    if not block:
        raise ApiError("Availability block not found", 404)
    if block.owner_id != user_id:
        raise ApiError("Only the item owner can manage availability blocks", 403)

    db.session.delete(block)
    db.session.commit()
