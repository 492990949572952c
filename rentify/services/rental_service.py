from datetime import datetime
from decimal import Decimal

from flask import current_app

from rentify.extensions import db
from rentify.models.item import Item
from rentify.models.profile import Profile
from rentify.models.rental import (
    DELIVERY_DELIVERY,
    PAYMENT_FAILED,
    PAYMENT_PAID,
    PAYMENT_REFUND_REQUIRED,
    STATUS_ACTIVE,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_PENDING,
    STATUS_PENDING_PICKUP,
    Rental,
    can_transition,
)
from rentify.services import availability_service, outbox_service, pricing
from rentify.services.outbox_service import rental_event
from rentify.utils import dates
from rentify.utils.errors import ApiError


def _f(value) -> float | None:
    return float(value) if value is not None else None


def _fee_settings() -> dict:
    cfg = current_app.config
    return {
        "delivery_fee": Decimal(str(cfg.get("DELIVERY_FEE", pricing.DELIVERY_FEE))),
        "service_rate": Decimal(str(cfg.get("SERVICE_FEE_RATE", pricing.SERVICE_FEE_RATE))),
        "insurance_rate": Decimal(str(cfg.get("INSURANCE_FEE_RATE", pricing.INSURANCE_FEE_RATE))),
    }


def rental_to_dict(rental: Rental, user_id: int | None = None) -> dict:
    item: Item | None = rental.item
    data = {
        "id": rental.id,
        "item_id": rental.item_id,
        "renter_id": rental.renter_id,
        "owner_id": rental.owner_id,
        "item": {
            "id": item.id,
            "title": item.title,
            "late_fee_per_day": _f(item.late_fee_per_day),
        } if item else None,
        "start_date": dates.iso(rental.start_date),
        "end_date": dates.iso(rental.end_date),
        "status": rental.status,
        "payment_status": rental.payment_status,
        "price_per_day": _f(rental.price_per_day),
        "total_days": rental.total_days,
        "subtotal": _f(rental.subtotal),
        "service_fee": _f(rental.service_fee),
        "insurance_fee": _f(rental.insurance_fee),
        "delivery_fee": _f(rental.delivery_fee),
        "total_amount": _f(rental.total_amount),
        "security_deposit": _f(rental.security_deposit),
        "late_days": rental.late_days,
        "late_fee_amount": _f(rental.late_fee_amount),
        "security_deposit_deduction": _f(rental.security_deposit_deduction),
        "security_deposit_returned": _f(rental.security_deposit_returned),
        "security_deposit_reason": rental.security_deposit_reason,
        "delivery_method": rental.delivery_method,
        "delivery_address": rental.delivery_address,
        "special_instructions": rental.special_instructions,
        "pickup_confirmed_at": dates.iso(rental.pickup_confirmed_at),
        "pickup_confirmed_by": rental.pickup_confirmed_by,
        "pickup_notes": rental.pickup_notes,
        "return_initiated_at": dates.iso(rental.return_initiated_at),
        "return_initiated_by": rental.return_initiated_by,
        "return_confirmed_at": dates.iso(rental.return_confirmed_at),
        "return_confirmed_by": rental.return_confirmed_by,
        "actual_return_date": dates.iso(rental.actual_return_date),
        "damage_reported": bool(rental.damage_reported),
        "damage_description": rental.damage_description,
        "agreement_generated_at": dates.iso(rental.agreement_generated_at),
        "agreement_accepted_by_owner": bool(rental.agreement_accepted_by_owner),
        "agreement_accepted_by_renter": bool(rental.agreement_accepted_by_renter),
        "agreement_signed_at": dates.iso(rental.agreement_signed_at),
        "has_agreement": bool(rental.rental_agreement),
        "cancelled_at": dates.iso(rental.cancelled_at),
        "cancellation_reason": rental.cancellation_reason,
        "created_at": dates.iso(rental.created_at),
        "updated_at": dates.iso(rental.updated_at),
    }
    if user_id is not None:
        data["viewer_role"] = "renter" if user_id == rental.renter_id else (
            "owner" if user_id == rental.owner_id else None
        )
    return data


def get_rental_or_404(rental_id: int) -> Rental:
    rental: Rental | None = Rental.query.get(rental_id)
    if not rental:
        raise ApiError("Rental not found", 404)
    return rental


def _apply_transition(rental_id: int, source: str, values: dict, guards: tuple = ()) -> bool:
    """
    Conditional UPDATE: applies ``values`` only while the rental is still in
    ``source`` and every extra guard holds.

    The check and the write are one statement, so of two concurrent identical
    transitions exactly one matches the row. A status change must be an edge
    of the rental state machine.
    """
    target = values.get("status", source)
    if target != source and not can_transition(source, target):
        raise ValueError(f"Rental cannot move from {source} to {target}")

    values.setdefault("updated_at", datetime.utcnow())
    updated = (
        Rental.query.filter(Rental.id == rental_id, Rental.status == source, *guards)
        .update(values, synchronize_session=False)
    )
    if updated != 1:
        db.session.rollback()
        return False
    db.session.commit()
    return True


def _reload(rental_id: int) -> Rental:
    db.session.expire_all()
    return get_rental_or_404(rental_id)


def _state_conflict(rental_id: int, action: str, detail: str | None = None) -> ApiError:
    current = _reload(rental_id)
    message = f"Cannot {action}: rental is {current.status}"
    if detail:
        message = f"{detail} (rental is {current.status})"
    return ApiError(message, 400, payload={"current_status": current.status})


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------

def get_rental(rental_id: int, user_id: int, is_admin: bool = False) -> dict:
    rental = get_rental_or_404(rental_id)
    if not is_admin and not rental.is_participant(user_id):
        raise ApiError("You do not have access to this rental", 403)
    return rental_to_dict(rental, user_id=user_id)


def list_rentals(user_id: int, role: str | None = None) -> list[dict]:
    query = Rental.query
    if role == "renter":
        query = query.filter(Rental.renter_id == user_id)
    elif role == "owner":
        query = query.filter(Rental.owner_id == user_id)
    else:
        query = query.filter((Rental.renter_id == user_id) | (Rental.owner_id == user_id))

    rentals = query.order_by(Rental.created_at.desc(), Rental.id.desc()).all()
    return [rental_to_dict(r, user_id=user_id) for r in rentals]


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------

def create_rental(data: dict, user_id: int) -> dict:
    """
    Books an item for [start_date, end_date) in status 'pending'.

    The item row stays locked from the conflict check until the insert
    commits, so two overlapping bookings of one item cannot both pass.
    """
    item_id = data["item_id"]
    start_date = data["start_date"]
    end_date = data["end_date"]
    delivery_method = data.get("delivery_method") or "pickup"
    delivery_address = (data.get("delivery_address") or "").strip() or None

    availability_service.validate_range(start_date, end_date)

    if delivery_method == DELIVERY_DELIVERY and not delivery_address:
        raise ApiError("Delivery address is required for delivery", 400)

    renter: Profile | None = Profile.query.get(user_id)
    if not renter:
        raise ApiError("Profile not found", 404)
    if renter.account_status != "active":
        raise ApiError("Account is not active", 403)

    item = availability_service.lock_item(item_id)

    if item.owner_id == user_id:
        db.session.rollback()
        raise ApiError("You cannot rent your own item", 403)

    if not item.is_bookable:
        db.session.rollback()
        raise ApiError("Item is not available for rent", 400)

    try:
        availability_service.ensure_available(item.id, start_date, end_date)
    except ApiError:
        db.session.rollback()
        raise

    breakdown = pricing.compute_breakdown(
        item.price_per_day,
        start_date,
        end_date,
        delivery_method=delivery_method,
        **_fee_settings(),
    )

    rental = Rental(
        item_id=item.id,
        renter_id=user_id,
        owner_id=item.owner_id,
        start_date=start_date,
        end_date=end_date,
        price_per_day=breakdown.price_per_day,
        total_days=breakdown.total_days,
        subtotal=breakdown.subtotal,
        service_fee=breakdown.service_fee,
        insurance_fee=breakdown.insurance_fee,
        delivery_fee=breakdown.delivery_fee,
        total_amount=breakdown.total_amount,
        security_deposit=pricing.money(item.security_deposit),
        status=STATUS_PENDING,
        delivery_method=delivery_method,
        delivery_address=delivery_address,
        special_instructions=data.get("special_instructions"),
    )
    db.session.add(rental)
    db.session.commit()

    current_app.logger.info("Rental %s created for item %s by %s", rental.id, item.id, user_id)

    outbox_service.publish([
        rental_event(
            rental.owner_id, rental.id, "info", "New rental request",
            f"{renter.full_name} requested *{item.title}* from {start_date} to {end_date}.",
        ),
        rental_event(
            rental.renter_id, rental.id, "info", "Rental requested",
            f"Your request for *{item.title}* was created. Complete the payment to confirm it.",
        ),
    ])

    return rental_to_dict(rental, user_id=user_id)


def confirm_pickup(rental_id: int, user_id: int, notes: str | None = None) -> dict:
    rental = get_rental_or_404(rental_id)
    if rental.renter_id != user_id:
        raise ApiError("Only the renter can confirm pickup", 403)

    if rental.status != STATUS_PENDING_PICKUP:
        raise _state_conflict(rental_id, "confirm pickup")
    if rental.pickup_confirmed_at is not None:
        raise _state_conflict(rental_id, "confirm pickup", "Pickup already confirmed")

    ok = _apply_transition(
        rental_id,
        STATUS_PENDING_PICKUP,
        {
            "status": STATUS_ACTIVE,
            "pickup_confirmed_at": datetime.utcnow(),
            "pickup_confirmed_by": user_id,
            "pickup_notes": (notes or "").strip() or None,
        },
        (Rental.pickup_confirmed_at.is_(None),),
    )
    if not ok:
        raise _state_conflict(rental_id, "confirm pickup")

    rental = _reload(rental_id)
    title = rental.item.title if rental.item else "the item"
    outbox_service.publish([
        rental_event(
            rental.owner_id, rental.id, "confirmation", "Pickup confirmed",
            f"The renter confirmed pickup of *{title}*. The rental is now active.",
        ),
    ])
    return rental_to_dict(rental, user_id=user_id)


def initiate_return(rental_id: int, user_id: int) -> dict:
    rental = get_rental_or_404(rental_id)
    if rental.renter_id != user_id:
        raise ApiError("Only the renter can initiate a return", 403)

    if rental.status != STATUS_ACTIVE:
        raise _state_conflict(rental_id, "initiate return")
    if rental.return_initiated_at is not None:
        raise _state_conflict(rental_id, "initiate return", "Return already initiated")

    late_days = pricing.compute_late_days(rental.end_date, dates.today())

    ok = _apply_transition(
        rental_id,
        STATUS_ACTIVE,
        {
            "return_initiated_at": datetime.utcnow(),
            "return_initiated_by": user_id,
            "late_days": late_days,
        },
        (Rental.return_initiated_at.is_(None),),
    )
    if not ok:
        raise _state_conflict(rental_id, "initiate return")

    rental = _reload(rental_id)
    title = rental.item.title if rental.item else "the item"
    message = f"The renter started the return of *{title}*. Please confirm once you receive it."
    if late_days:
        message += f"\n\nReturned {late_days} day(s) late."
    outbox_service.publish([
        rental_event(rental.owner_id, rental.id, "return", "Return initiated", message),
    ])
    return rental_to_dict(rental, user_id=user_id)


def confirm_return(rental_id: int, user_id: int, data: dict) -> dict:
    rental = get_rental_or_404(rental_id)
    if rental.owner_id != user_id:
        raise ApiError("Only the owner can confirm a return", 403)

    if rental.return_initiated_at is None:
        raise _state_conflict(rental_id, "confirm return", "Return must be initiated first")
    if rental.return_confirmed_at is not None or rental.status != STATUS_ACTIVE:
        raise _state_conflict(rental_id, "confirm return", "Return already confirmed")

    late_fee_per_day = rental.item.late_fee_per_day if rental.item else None
    late_fee = pricing.compute_late_fee(rental.late_days or 0, late_fee_per_day or 0)
    deduction, returned = pricing.compute_deposit_return(
        rental.security_deposit,
        data.get("security_deposit_deduction") or 0,
        late_fee,
    )

    reason = (data.get("security_deposit_reason") or "").strip() or None
    if reason is None and late_fee > 0:
        reason = f"Late fees: {rental.late_days} days"

    ok = _apply_transition(
        rental_id,
        STATUS_ACTIVE,
        {
            "status": STATUS_COMPLETED,
            "return_confirmed_at": datetime.utcnow(),
            "return_confirmed_by": user_id,
            "actual_return_date": dates.today(),
            "late_fee_amount": late_fee,
            "security_deposit_deduction": deduction,
            "security_deposit_returned": returned,
            "security_deposit_reason": reason,
            "damage_reported": bool(data.get("damage_reported")),
            "damage_description": (data.get("damage_description") or "").strip() or None,
        },
        (Rental.return_initiated_at.isnot(None), Rental.return_confirmed_at.is_(None)),
    )
    if not ok:
        raise _state_conflict(rental_id, "confirm return")

    rental = _reload(rental_id)
    title = rental.item.title if rental.item else "the item"
    outbox_service.publish([
        rental_event(
            rental.renter_id, rental.id, "return", "Return confirmed",
            f"The owner confirmed the return of *{title}*. "
            f"Deposit returned: {pricing.money(returned)}.",
        ),
    ])
    return rental_to_dict(rental, user_id=user_id)


def cancel_rental(rental_id: int, user_id: int, reason: str | None = None) -> dict:
    rental = get_rental_or_404(rental_id)
    if not rental.is_participant(user_id):
        raise ApiError("You do not have access to this rental", 403)

    if not can_transition(rental.status, STATUS_CANCELLED):
        raise _state_conflict(rental_id, "cancel")

    previous = rental.status
    values = {
        "status": STATUS_CANCELLED,
        "cancelled_at": datetime.utcnow(),
        "cancellation_reason": (reason or "").strip() or None,
    }
    if rental.payment_status == PAYMENT_PAID:
        values["payment_status"] = PAYMENT_REFUND_REQUIRED

    ok = _apply_transition(rental_id, previous, values)
    if not ok:
        raise _state_conflict(rental_id, "cancel")

    rental = _reload(rental_id)
    other = rental.owner_id if user_id == rental.renter_id else rental.renter_id
    title = rental.item.title if rental.item else "the item"
    outbox_service.publish([
        rental_event(
            other, rental.id, "info", "Rental cancelled",
            f"The rental of *{title}* ({rental.start_date} → {rental.end_date}) was cancelled.",
        ),
    ])
    return rental_to_dict(rental, user_id=user_id)


# ---------------------------------------------------------------------------
# Payment outcomes (driven by Stripe webhooks)
# ---------------------------------------------------------------------------

def mark_paid(rental_id: int, session_id: str | None = None, payment_intent_id: str | None = None) -> str:
    """
    pending -> pending_pickup once the checkout completes.

    Returns a short outcome label; repeated deliveries of the same event are
    no-ops because only a 'pending' row matches the update.
    """
    rental: Rental | None = Rental.query.get(rental_id)
    if not rental:
        current_app.logger.warning("Payment for unknown rental %s", rental_id)
        return "not_found"

    if session_id and rental.stripe_session_id and rental.stripe_session_id != session_id:
        current_app.logger.warning(
            "Checkout session %s does not match rental %s (stored %s)",
            session_id, rental_id, rental.stripe_session_id,
        )
        return "session_mismatch"

    if rental.status != STATUS_PENDING:
        return "already_processed"

    item = availability_service.lock_item(rental.item_id, include_deleted=True)
    if item is None or not item.is_bookable:
        reason = "Item is no longer available for rent"
        notice = "the item was withdrawn by its owner"
    elif availability_service.conflicting_rentals(
        rental.item_id, rental.start_date, rental.end_date, exclude_rental_id=rental.id
    ) or availability_service.conflicting_blocks(rental.item_id, rental.start_date, rental.end_date):
        reason = "Dates were booked by another rental before payment completed"
        notice = "the dates were booked by someone else first"
    else:
        reason = None

    if reason:
        ok = _apply_transition(
            rental_id,
            STATUS_PENDING,
            {
                "status": STATUS_CANCELLED,
                "payment_status": PAYMENT_REFUND_REQUIRED,
                "payment_intent_id": payment_intent_id or rental.payment_intent_id,
                "cancelled_at": datetime.utcnow(),
                "cancellation_reason": reason,
            },
        )
        if not ok:
            return "already_processed"

        current_app.logger.warning("Rental %s paid but cannot be confirmed (%s); refund required", rental_id, reason)
        rental = _reload(rental_id)
        outbox_service.publish([
            rental_event(
                rental.renter_id, rental.id, "payment", "Booking could not be confirmed",
                f"Your payment went through but {notice}. "
                "The rental was cancelled and your payment will be refunded.",
            ),
        ])
        return "refund_required"

    values = {"status": STATUS_PENDING_PICKUP, "payment_status": PAYMENT_PAID}
    if payment_intent_id:
        values["payment_intent_id"] = payment_intent_id
    if not _apply_transition(rental_id, STATUS_PENDING, values):
        return "already_processed"

    rental = _reload(rental_id)
    title = rental.item.title if rental.item else "your item"
    outbox_service.publish([
        rental_event(
            rental.renter_id, rental.id, "payment", "Payment received",
            f"Payment for *{title}* succeeded. Coordinate pickup for {rental.start_date}.",
        ),
        rental_event(
            rental.owner_id, rental.id, "confirmation", "New booking confirmed",
            f"*{title}* was booked from {rental.start_date} to {rental.end_date}.",
        ),
    ])
    return "confirmed"


def mark_payment_failed(rental_id: int | None = None, payment_intent_id: str | None = None) -> str:
    """
    pending -> cancelled. A rental already in pending_pickup was confirmed by
    a successful payment, so a stray failure event for an earlier attempt
    leaves it alone; it can still be cancelled through cancel_rental.
    """
    rental: Rental | None = None
    if rental_id is not None:
        rental = Rental.query.get(rental_id)
    elif payment_intent_id:
        rental = Rental.query.filter_by(payment_intent_id=payment_intent_id).first()

    if not rental:
        current_app.logger.warning("Payment failure for unknown rental (id=%s, intent=%s)", rental_id, payment_intent_id)
        return "not_found"

    ok = _apply_transition(
        rental.id,
        STATUS_PENDING,
        {
            "status": STATUS_CANCELLED,
            "payment_status": PAYMENT_FAILED,
            "cancelled_at": datetime.utcnow(),
            "cancellation_reason": "Payment failed",
        },
    )
    if not ok:
        return "already_processed"

    rental = _reload(rental.id)
    outbox_service.publish([
        rental_event(
            rental.renter_id, rental.id, "payment", "Payment failed",
            "Your payment could not be processed and the booking was cancelled.",
        ),
    ])
    return "cancelled"


def mark_intent_succeeded(payment_intent_id: str) -> str:
    """
    A PaymentIntent created for a rental succeeded. A pending rental is
    confirmed exactly like a completed checkout; otherwise only the payment
    flag is brought up to date.
    """
    rental: Rental | None = Rental.query.filter_by(payment_intent_id=payment_intent_id).first()
    if not rental:
        return "already_processed"
    if rental.status == STATUS_PENDING:
        return mark_paid(rental.id, payment_intent_id=payment_intent_id)

    updated = (
        Rental.query.filter(
            Rental.id == rental.id,
            Rental.payment_status != PAYMENT_PAID,
            Rental.status == STATUS_PENDING_PICKUP,
        )
        .update({"payment_status": PAYMENT_PAID, "updated_at": datetime.utcnow()}, synchronize_session=False)
    )
    db.session.commit()
    return "updated" if updated else "already_processed"


def update_late_days(rental_id: int, user_id: int, is_admin: bool = False) -> dict:
    rental = get_rental_or_404(rental_id)
    if not is_admin and not rental.is_participant(user_id):
        raise ApiError("You do not have access to this rental", 403)

    late_days = pricing.compute_late_days(rental.end_date, dates.today())
    ok = _apply_transition(
        rental_id,
        STATUS_ACTIVE,
        {"late_days": late_days},
        (Rental.return_initiated_at.is_(None),),
    )
    if not ok:
        raise _state_conflict(rental_id, "update late days")
    return {"rental_id": rental_id, "late_days": late_days}
