import pytest

from rentify.models.rental import STATUS_CANCELLED, STATUS_PENDING_PICKUP, Rental
from rentify.utils.deepseek import AgreementGenerationError


class FakeClient:
	def __init__(self, text="RENTAL AGREEMENT\n\n1. Parties", fail=False):
		self.text = text
		self.fail = fail
		self.calls = 0

	def generate_text(self, system, prompt, temperature=0.3):
		self.calls += 1
		if self.fail:
			raise AgreementGenerationError("upstream down")
		return self.text


@pytest.fixture()
def fake_llm(monkeypatch):
	fake = FakeClient()
	monkeypatch.setattr("rentify.services.agreement_service.get_client", lambda: fake)
	return fake


@pytest.fixture()
def rental_with_parties(make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	item = make_item(owner.id)
	rental = make_rental(item, renter.id, status=STATUS_PENDING_PICKUP)
	return owner, renter, rental


def _generate(client, auth_header, user_id, rental_id):
	return client.post("/api/generate-agreement", json={"rental_id": rental_id}, headers=auth_header(user_id))


def _accept(client, auth_header, user_id, rental_id, is_owner):
	return client.post(
		"/api/accept-agreement",
		json={"rental_id": rental_id, "is_owner": is_owner},
		headers=auth_header(user_id),
	)


def test_generate_once_then_reuse(client, auth_header, fake_llm, rental_with_parties):
	owner, renter, rental = rental_with_parties

	first = _generate(client, auth_header, renter.id, rental.id)
	assert first.status_code == 200
	assert first.get_json()["data"]["generated"] is True

	second = _generate(client, auth_header, owner.id, rental.id)
	assert second.get_json()["data"] == {"agreement": fake_llm.text, "generated": False}
	assert fake_llm.calls == 1


def test_generate_requires_participant(client, auth_header, make_user, fake_llm, rental_with_parties):
	_, _, rental = rental_with_parties
	stranger = make_user("stranger@test.com")
	assert _generate(client, auth_header, stranger.id, rental.id).status_code == 403


def test_generate_failure_is_500(client, auth_header, monkeypatch, rental_with_parties, reload):
	_, renter, rental = rental_with_parties
	monkeypatch.setattr("rentify.services.agreement_service.get_client", lambda: FakeClient(fail=True))

	resp = _generate(client, auth_header, renter.id, rental.id)
	assert resp.status_code == 500
	assert reload(Rental, rental.id).rental_agreement is None


def test_generate_rejected_for_cancelled(client, auth_header, fake_llm, make_user, make_item, make_rental):
	owner = make_user("owner@test.com")
	renter = make_user("renter@test.com")
	rental = make_rental(make_item(owner.id), renter.id, status=STATUS_CANCELLED)
	assert _generate(client, auth_header, renter.id, rental.id).status_code == 400


def test_accept_before_generation(client, auth_header, rental_with_parties):
	_, renter, rental = rental_with_parties
	resp = _accept(client, auth_header, renter.id, rental.id, False)
	assert resp.status_code == 400


def test_both_parties_sign(client, auth_header, fake_llm, rental_with_parties, reload):
	owner, renter, rental = rental_with_parties
	_generate(client, auth_header, renter.id, rental.id)

	first = _accept(client, auth_header, renter.id, rental.id, False)
	assert first.status_code == 200
	assert first.get_json()["data"]["both_accepted"] is False
	assert first.get_json()["data"]["agreement_signed_at"] is None

	second = _accept(client, auth_header, owner.id, rental.id, True)
	data = second.get_json()["data"]
	assert data["both_accepted"] is True
	assert data["agreement_signed_at"] is not None

	after = reload(Rental, rental.id)
	assert after.renter_signature == "renter@test.com - Digital Acceptance"
	assert after.owner_signature == "owner@test.com - Digital Acceptance"


def test_accept_twice_rejected(client, auth_header, fake_llm, rental_with_parties, reload):
	owner, renter, rental = rental_with_parties
	_generate(client, auth_header, renter.id, rental.id)
	_accept(client, auth_header, renter.id, rental.id, False)
	_accept(client, auth_header, owner.id, rental.id, True)
	signed_at = reload(Rental, rental.id).agreement_signed_at

	again = _accept(client, auth_header, owner.id, rental.id, True)
	assert again.status_code == 400
	assert again.get_json()["message"] == "Agreement already accepted"
	assert reload(Rental, rental.id).agreement_signed_at == signed_at


def test_accept_for_the_other_side_forbidden(client, auth_header, fake_llm, rental_with_parties):
	owner, renter, rental = rental_with_parties
	_generate(client, auth_header, renter.id, rental.id)

	assert _accept(client, auth_header, renter.id, rental.id, True).status_code == 403
	assert _accept(client, auth_header, owner.id, rental.id, False).status_code == 403
