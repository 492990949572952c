from datetime import timedelta

from flask import current_app

from rentify.extensions import db
from rentify.models.rental import STATUS_ACTIVE, STATUS_PENDING_PICKUP, Rental
from rentify.services import outbox_service, pricing
from rentify.services.outbox_service import rental_event
from rentify.services.rental_service import rental_to_dict
from rentify.utils import dates


def _title(rental: Rental) -> str:
    return rental.item.title if rental.item else f"Item #{rental.item_id}"


def _claim_flag(rental_id: int, flag) -> bool:
    """Sets a reminder flag only if it is still unset; True for the caller that set it."""
    updated = (
        Rental.query.filter(Rental.id == rental_id, flag == False)  # noqa: E712
        .update({flag.key: True}, synchronize_session=False)
    )
    db.session.commit()
    return updated == 1


def _late_fee_per_day(rental: Rental):
    return rental.item.late_fee_per_day if rental.item and rental.item.late_fee_per_day is not None else 0


def _start_reminders(tomorrow) -> int:
    rentals = Rental.query.filter(
        Rental.status == STATUS_PENDING_PICKUP,
        Rental.start_date == tomorrow,
        Rental.start_reminder_sent == False,  # noqa: E712
    ).all()

    sent = 0
    for rental in rentals:
        if not _claim_flag(rental.id, Rental.start_reminder_sent):
            continue
        outbox_service.publish([
            rental_event(
                rental.renter_id, rental.id, "reminder", "Rental starts tomorrow",
                f"Your rental of *{_title(rental)}* starts tomorrow ({rental.start_date})!\n\n"
                "Don't forget to coordinate pickup with the owner.",
            ),
        ])
        sent += 1
    return sent


def _return_reminders(tomorrow) -> int:
    rentals = Rental.query.filter(
        Rental.status == STATUS_ACTIVE,
        Rental.end_date == tomorrow,
        Rental.return_reminder_sent == False,  # noqa: E712
    ).all()

    sent = 0
    for rental in rentals:
        if not _claim_flag(rental.id, Rental.return_reminder_sent):
            continue
        title = _title(rental)
        outbox_service.publish([
            rental_event(
                rental.renter_id, rental.id, "return", "Return due tomorrow",
                f"Your rental of *{title}* ends tomorrow ({rental.end_date})!\n\n"
                "Please arrange to return the item on time.",
            ),
            rental_event(
                rental.owner_id, rental.id, "return", "Return due tomorrow",
                f"The rental of your *{title}* ends tomorrow ({rental.end_date})!\n\n"
                "Please coordinate the return with the renter.",
            ),
        ])
        sent += 1
    return sent


def _overdue_notices(today) -> int:
    rentals = Rental.query.filter(
        Rental.status == STATUS_ACTIVE,
        Rental.end_date < today,
        Rental.return_initiated_at.is_(None),
        Rental.overdue_reminder_sent == False,  # noqa: E712
    ).all()

    sent = 0
    for rental in rentals:
        if not _claim_flag(rental.id, Rental.overdue_reminder_sent):
            continue
        late_days = pricing.compute_late_days(rental.end_date, today)
        fee = pricing.compute_late_fee(late_days, _late_fee_per_day(rental))
        title = _title(rental)
        outbox_service.publish([
            rental_event(
                rental.renter_id, rental.id, "overdue", "Rental overdue",
                f"Your rental of *{title}* was due on {rental.end_date} and is {late_days} day(s) late.\n\n"
                f"Late fees so far: {fee}. Please return the item as soon as possible.",
            ),
            rental_event(
                rental.owner_id, rental.id, "overdue", "Rental overdue",
                f"*{title}* has not been returned. It was due on {rental.end_date}.",
            ),
        ])
        sent += 1
    return sent


def send_bulk_reminders() -> dict:
    today = dates.today()
    tomorrow = today + timedelta(days=1)

    result = {
        "start_reminders": _start_reminders(tomorrow),
        "return_reminders": _return_reminders(tomorrow),
        "overdue_notices": _overdue_notices(today),
        "outbox": outbox_service.flush_pending(),
    }
    current_app.logger.info("Reminder run finished: %s", result)
    return result


def overdue_report() -> dict:
    today = dates.today()
    tomorrow = today + timedelta(days=1)

    upcoming = (
        Rental.query.filter(
            Rental.status == STATUS_ACTIVE,
            Rental.return_reminder_sent == False,  # noqa: E712
            Rental.end_date >= today,
            Rental.end_date <= tomorrow,
        )
        .order_by(Rental.end_date.asc())
        .all()
    )
    overdue = (
        Rental.query.filter(
            Rental.status == STATUS_ACTIVE,
            Rental.end_date < today,
            Rental.return_initiated_at.is_(None),
        )
        .order_by(Rental.end_date.asc())
        .all()
    )

    overdue_rows = []
    for rental in overdue:
        late_days = pricing.compute_late_days(rental.end_date, today)
        row = rental_to_dict(rental)
        row["late_days"] = late_days
        row["late_fee_amount"] = float(pricing.compute_late_fee(late_days, _late_fee_per_day(rental)))
        overdue_rows.append(row)

    return {
        "upcoming_returns": [rental_to_dict(r) for r in upcoming],
        "overdue_rentals": overdue_rows,
        "summary": {
            "upcoming_count": len(upcoming),
            "overdue_count": len(overdue_rows),
        },
    }
