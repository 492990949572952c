from datetime import timedelta

import pytest

from rentify.models.outbox_event import OutboxEvent
from rentify.models.rental import (
	PAYMENT_PAID,
	PAYMENT_REFUND_REQUIRED,
	STATUS_ACTIVE,
	STATUS_CANCELLED,
	STATUS_COMPLETED,
	STATUS_PENDING,
	STATUS_PENDING_PICKUP,
	STATUSES,
	Rental,
	can_transition,
)
from rentify.services import rental_service

from .conftest import TODAY


def _d(offset: int) -> str:
	return (TODAY + timedelta(days=offset)).isoformat()


def test_create_rental_computes_fees(client, auth_header, make_user, make_item):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id, price_per_day="100")

	resp = client.post(
		"/api/rentals",
		json={"item_id": item.id, "start_date": _d(1), "end_date": _d(4)},
		headers=auth_header(renter.id),
	)
	assert resp.status_code == 201
	data = resp.get_json()["data"]
	assert data["status"] == STATUS_PENDING
	assert data["total_days"] == 3
	assert data["subtotal"] == 300.0
	assert data["total_amount"] == 345.0
	assert data["owner_id"] == owner.id
	assert data["viewer_role"] == "renter"


def test_create_rental_with_delivery(client, auth_header, make_user, make_item):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)

	missing = client.post(
		"/api/rentals",
		json={"item_id": item.id, "start_date": _d(1), "end_date": _d(4), "delivery_method": "delivery"},
		headers=auth_header(renter.id),
	)
	assert missing.status_code == 400

	resp = client.post(
		"/api/rentals",
		json={
			"item_id": item.id,
			"start_date": _d(1),
			"end_date": _d(4),
			"delivery_method": "delivery",
			"delivery_address": "12 Jalan Ampang",
		},
		headers=auth_header(renter.id),
	)
	assert resp.status_code == 201
	assert resp.get_json()["data"]["total_amount"] == 370.0


def test_cannot_rent_own_item(client, auth_header, make_user, make_item):
	owner = make_user("owner@test.com")
	item = make_item(owner.id)

	resp = client.post(
		"/api/rentals",
		json={"item_id": item.id, "start_date": _d(1), "end_date": _d(2)},
		headers=auth_header(owner.id),
	)
	assert resp.status_code == 403


def test_create_rejects_overlap_with_paid_booking(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	other = make_user("other@test.com")
	item = make_item(owner.id)
	make_rental(item, renter.id, start_offset=1, days=3, status=STATUS_PENDING_PICKUP)

	resp = client.post(
		"/api/rentals",
		json={"item_id": item.id, "start_date": _d(2), "end_date": _d(5)},
		headers=auth_header(other.id),
	)
	assert resp.status_code == 400
	body = resp.get_json()
	assert body["message"] == "Item is not available for the selected dates"
	assert body["payload"]["next_available_date"] == _d(4)

	adjacent = client.post(
		"/api/rentals",
		json={"item_id": item.id, "start_date": _d(4), "end_date": _d(6)},
		headers=auth_header(other.id),
	)
	assert adjacent.status_code == 201


def test_rental_visible_to_participants_only(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	stranger = make_user("stranger@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id)

	assert client.get(f"/api/rentals/{rental.id}", headers=auth_header(stranger.id)).status_code == 403
	owner_view = client.get(f"/api/rentals/{rental.id}", headers=auth_header(owner.id))
	assert owner_view.get_json()["data"]["viewer_role"] == "owner"
	admin_view = client.get(f"/api/rentals/{rental.id}", headers=auth_header(stranger.id, roles=["ADMIN"]))
	assert admin_view.status_code == 200


def test_list_rentals_by_role(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	make_rental(item, renter.id)

	as_owner = client.get("/api/rentals?role=owner", headers=auth_header(owner.id)).get_json()["data"]
	as_renter = client.get("/api/rentals?role=owner", headers=auth_header(renter.id)).get_json()["data"]
	assert len(as_owner) == 1
	assert as_renter == []
	assert client.get("/api/rentals?role=admin", headers=auth_header(owner.id)).status_code == 400


def test_confirm_pickup_requires_paid_state(client, auth_header, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING)

	resp = client.post("/api/confirm-pickup", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert resp.status_code == 400
	assert resp.get_json()["message"] == "Cannot confirm pickup: rental is pending"
	assert reload(Rental, rental.id).status == STATUS_PENDING


def test_confirm_pickup_wrong_actor(client, auth_header, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING_PICKUP)

	resp = client.post("/api/confirm-pickup", json={"rental_id": rental.id}, headers=auth_header(owner.id))
	assert resp.status_code == 403
	assert reload(Rental, rental.id).status == STATUS_PENDING_PICKUP


def test_confirm_pickup_twice_leaves_state_unchanged(client, auth_header, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING_PICKUP)

	first = client.post("/api/confirm-pickup", json={"rental_id": rental.id, "notes": "All good"}, headers=auth_header(renter.id))
	assert first.status_code == 200
	assert first.get_json()["data"]["status"] == STATUS_ACTIVE
	confirmed_at = reload(Rental, rental.id).pickup_confirmed_at

	second = client.post("/api/confirm-pickup", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert second.status_code == 400
	assert second.get_json()["payload"]["current_status"] == STATUS_ACTIVE

	after = reload(Rental, rental.id)
	assert after.status == STATUS_ACTIVE
	assert after.pickup_confirmed_at == confirmed_at
	assert after.pickup_notes == "All good"


def test_full_lifecycle_with_late_return(client, auth_header, make_user, make_item, make_rental, reload):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id, security_deposit="200", late_fee_per_day="10")
	# Ended two days before the pinned date
	rental = make_rental(item, renter.id, start_offset=-5, days=3, status=STATUS_PENDING_PICKUP, payment_status=PAYMENT_PAID)

	assert client.post("/api/confirm-pickup", json={"rental_id": rental.id}, headers=auth_header(renter.id)).status_code == 200

	# Owner cannot confirm before the renter initiates
	early = client.post("/api/confirm-return", json={"rental_id": rental.id}, headers=auth_header(owner.id))
	assert early.status_code == 400

	init = client.post("/api/initiate-return", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert init.status_code == 200
	assert init.get_json()["data"]["late_days"] == 2
	assert client.post("/api/initiate-return", json={"rental_id": rental.id}, headers=auth_header(renter.id)).status_code == 400

	done = client.post(
		"/api/confirm-return",
		json={"rental_id": rental.id, "security_deposit_deduction": "50", "damage_reported": True, "damage_description": "Scratch"},
		headers=auth_header(owner.id),
	)
	assert done.status_code == 200
	data = done.get_json()["data"]
	assert data["status"] == STATUS_COMPLETED
	assert data["late_fee_amount"] == 20.0
	assert data["security_deposit_deduction"] == 70.0
	assert data["security_deposit_returned"] == 130.0
	assert data["security_deposit_reason"] == "Late fees: 2 days"
	assert data["actual_return_date"] == TODAY.isoformat()
	assert data["damage_reported"] is True

	again = client.post("/api/confirm-return", json={"rental_id": rental.id}, headers=auth_header(owner.id))
	assert again.status_code == 400
	assert reload(Rental, rental.id).status == STATUS_COMPLETED


def test_confirm_return_only_owner(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_ACTIVE)

	assert client.post("/api/initiate-return", json={"rental_id": rental.id}, headers=auth_header(owner.id)).status_code == 403
	assert client.post("/api/initiate-return", json={"rental_id": rental.id}, headers=auth_header(renter.id)).status_code == 200
	assert client.post("/api/confirm-return", json={"rental_id": rental.id}, headers=auth_header(renter.id)).status_code == 403


def test_deposit_returned_never_negative(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id, security_deposit="100")
	rental = make_rental(item, renter.id, status=STATUS_ACTIVE)

	client.post("/api/initiate-return", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	resp = client.post(
		"/api/confirm-return",
		json={"rental_id": rental.id, "security_deposit_deduction": "150", "security_deposit_reason": "Broken lens"},
		headers=auth_header(owner.id),
	)
	data = resp.get_json()["data"]
	assert data["security_deposit_returned"] == 0.0
	assert data["security_deposit_reason"] == "Broken lens"


def test_cancel_pending_rental(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id)

	resp = client.post("/api/cancel-rental", json={"rental_id": rental.id, "reason": "Plans changed"}, headers=auth_header(renter.id))
	assert resp.status_code == 200
	data = resp.get_json()["data"]
	assert data["status"] == STATUS_CANCELLED
	assert data["cancellation_reason"] == "Plans changed"

	again = client.post("/api/cancel-rental", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert again.status_code == 400


def test_cancel_paid_rental_marks_refund(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING_PICKUP, payment_status=PAYMENT_PAID)

	resp = client.post("/api/cancel-rental", json={"rental_id": rental.id}, headers=auth_header(owner.id))
	assert resp.status_code == 200
	assert resp.get_json()["data"]["payment_status"] == PAYMENT_REFUND_REQUIRED


def test_cannot_cancel_active_rental(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_ACTIVE)

	resp = client.post("/api/cancel-rental", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert resp.status_code == 400
	assert resp.get_json()["payload"]["current_status"] == STATUS_ACTIVE


def test_transition_survives_notification_failure(client, auth_header, make_user, make_item, make_rental, reload, monkeypatch):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING_PICKUP)

	def boom(*args, **kwargs):
		raise RuntimeError("notification store down")

	monkeypatch.setattr("rentify.services.notification_service.add_notification", boom)

	resp = client.post("/api/confirm-pickup", json={"rental_id": rental.id}, headers=auth_header(renter.id))
	assert resp.status_code == 200
	assert reload(Rental, rental.id).status == STATUS_ACTIVE

	event = OutboxEvent.query.filter_by(rental_id=rental.id).one()
	assert event.status == "pending"
	assert event.attempts == 1
	assert "notification store down" in event.last_error


def test_state_machine_edges():
	edges = {
		(STATUS_PENDING, STATUS_PENDING_PICKUP),
		(STATUS_PENDING, STATUS_CANCELLED),
		(STATUS_PENDING_PICKUP, STATUS_ACTIVE),
		(STATUS_PENDING_PICKUP, STATUS_CANCELLED),
		(STATUS_ACTIVE, STATUS_COMPLETED),
	}
	for source in STATUSES:
		for target in STATUSES:
			assert can_transition(source, target) == ((source, target) in edges)


@pytest.mark.parametrize(
	"source,target",
	[
		(STATUS_PENDING, STATUS_ACTIVE),
		(STATUS_PENDING_PICKUP, STATUS_COMPLETED),
		(STATUS_ACTIVE, STATUS_CANCELLED),
		(STATUS_COMPLETED, STATUS_ACTIVE),
		(STATUS_CANCELLED, STATUS_PENDING),
	],
)
def test_status_update_off_the_state_machine_is_refused(make_user, make_item, make_rental, reload, source, target):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	rental = make_rental(make_item(owner.id), renter.id, status=source)

	with pytest.raises(ValueError):
		rental_service._apply_transition(rental.id, source, {"status": target})
	assert reload(Rental, rental.id).status == source


def test_completed_rental_cannot_be_cancelled(client, auth_header, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	rental = make_rental(make_item(owner.id), renter.id, status=STATUS_COMPLETED)

	resp = client.post("/api/cancel-rental", json={"rental_id": rental.id}, headers=auth_header(owner.id))
	assert resp.status_code == 400
	assert resp.get_json()["payload"]["current_status"] == STATUS_COMPLETED
