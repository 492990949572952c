from rentify.models.outbox_event import OutboxEvent
from rentify.models.rental import STATUS_ACTIVE, STATUS_PENDING_PICKUP, Rental

from .conftest import CRON_SECRET

CRON_HEADERS = {"Authorization": f"Bearer {CRON_SECRET}"}


def test_cron_requires_secret(client):
	assert client.get("/api/cron/telegram-reminders").status_code == 401
	assert client.get("/api/cron/telegram-reminders", headers={"Authorization": "Bearer nope"}).status_code == 401
	assert client.get("/api/overdue-rentals").status_code == 401


def test_cron_rejects_everything_without_configured_secret(app, client):
	app.config["CRON_SECRET"] = None
	try:
		assert client.get("/api/cron/telegram-reminders", headers={"Authorization": "Bearer "}).status_code == 401
	finally:
		app.config["CRON_SECRET"] = CRON_SECRET


def test_reminders_sent_once(client, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	starting = make_rental(item, renter.id, start_offset=1, days=2, status=STATUS_PENDING_PICKUP)
	# Ends tomorrow
	ending = make_rental(item, renter.id, start_offset=-2, days=3, status=STATUS_ACTIVE)
	# Ended three days ago
	overdue = make_rental(item, renter.id, start_offset=-6, days=3, status=STATUS_ACTIVE)

	first = client.get("/api/cron/telegram-reminders", headers=CRON_HEADERS)
	assert first.status_code == 200
	data = first.get_json()["data"]
	assert data["start_reminders"] == 1
	assert data["return_reminders"] == 1
	assert data["overdue_notices"] == 1

	assert reload(Rental, starting.id).start_reminder_sent is True
	assert reload(Rental, ending.id).return_reminder_sent is True
	assert reload(Rental, overdue.id).overdue_reminder_sent is True
	assert OutboxEvent.query.filter_by(rental_id=starting.id, kind="reminder").count() == 1
	assert OutboxEvent.query.filter_by(rental_id=ending.id, kind="return").count() == 2

	second = client.get("/api/cron/telegram-reminders", headers=CRON_HEADERS).get_json()["data"]
	assert second["start_reminders"] == 0
	assert second["return_reminders"] == 0
	assert second["overdue_notices"] == 0


def test_cron_retries_pending_outbox_events(client, db_session, make_user):
	user = make_user("renter@test.com")
	db_session.add(OutboxEvent(user_id=user.id, kind="info", title="Queued", message="Retry me"))
	db_session.commit()

	data = client.get("/api/cron/telegram-reminders", headers=CRON_HEADERS).get_json()["data"]
	assert data["outbox"] == {"processed": 1, "sent": 1, "failed": 0}


def test_overdue_report(client, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id, late_fee_per_day="15")
	make_rental(item, renter.id, start_offset=-5, days=2, status=STATUS_ACTIVE)
	make_rental(item, renter.id, start_offset=-1, days=1, status=STATUS_ACTIVE)

	data = client.get("/api/overdue-rentals", headers=CRON_HEADERS).get_json()["data"]
	assert data["summary"] == {"upcoming_count": 1, "overdue_count": 1}
	row = data["overdue_rentals"][0]
	assert row["late_days"] == 3
	assert row["late_fee_amount"] == 45.0


def test_update_late_days_action(client, auth_header, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	stranger = make_user("stranger@test.com")
	rental = make_rental(make_item(owner.id), renter.id, start_offset=-6, days=2, status=STATUS_ACTIVE)
	body = {"action": "update_late_days", "rental_id": rental.id}

	assert client.post("/api/overdue-rentals", json=body, headers=auth_header(stranger.id)).status_code == 403
	assert client.post("/api/overdue-rentals", json={**body, "action": "other"}, headers=auth_header(owner.id)).status_code == 400

	resp = client.post("/api/overdue-rentals", json=body, headers=auth_header(owner.id))
	assert resp.get_json()["data"] == {"rental_id": rental.id, "late_days": 4}
	assert reload(Rental, rental.id).late_days == 4


def test_manual_reminder_does_not_suppress_start_reminder(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	rental = make_rental(make_item(owner.id), renter.id, start_offset=1, days=2, status=STATUS_PENDING_PICKUP)

	queued = client.post(
		"/api/telegram/send-notification",
		json={"rental_id": rental.id, "user_id": renter.id, "type": "reminder", "message": "See you tomorrow"},
		headers=auth_header(owner.id),
	)
	assert queued.status_code == 200

	data = client.get("/api/cron/telegram-reminders", headers=CRON_HEADERS).get_json()["data"]
	assert data["start_reminders"] == 1
	assert OutboxEvent.query.filter_by(rental_id=rental.id, kind="reminder").count() == 2
