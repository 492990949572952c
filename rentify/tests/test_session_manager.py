from datetime import datetime, timedelta

import pytest

from rentify.client import ApiClientError, RentifyClient
from rentify.utils.session_manager import Session, SessionManager, SessionRefreshError

NOW = datetime(2026, 3, 10, 12, 0, 0)


class Clock:
	def __init__(self, now=NOW):
		self.now = now

	def __call__(self):
		return self.now


def _session(token="tok-1", minutes=15, refresh="ref-1"):
	return Session(access_token=token, expires_at=NOW + timedelta(minutes=minutes), refresh_token=refresh)


def test_first_call_refreshes_then_caches():
	calls = []

	def refresh(refresh_token):
		calls.append(refresh_token)
		return _session()

	manager = SessionManager(refresh, clock=Clock(), sleep=lambda s: None)
	assert manager.get_access_token() == "tok-1"
	assert manager.get_access_token() == "tok-1"
	assert calls == [None]


def test_refreshes_inside_margin_with_stored_refresh_token():
	clock = Clock()
	tokens = iter(["tok-2"])
	seen = []

	def refresh(refresh_token):
		seen.append(refresh_token)
		return _session(token=next(tokens), minutes=30)

	manager = SessionManager(refresh, refresh_margin=timedelta(seconds=60), clock=clock, sleep=lambda s: None)
	manager.set_session(_session(minutes=2))
	assert manager.get_access_token() == "tok-1"

	clock.now = NOW + timedelta(seconds=70)
	assert manager.needs_refresh() is True
	assert manager.get_access_token() == "tok-2"
	assert seen == ["ref-1"]


def test_retries_with_exponential_backoff():
	sleeps = []
	attempts = {"n": 0}

	def refresh(refresh_token):
		attempts["n"] += 1
		if attempts["n"] < 3:
			raise ConnectionError("down")
		return _session(token="tok-ok")

	manager = SessionManager(refresh, max_retries=3, backoff_seconds=0.5, clock=Clock(), sleep=sleeps.append)
	assert manager.get_access_token() == "tok-ok"
	assert sleeps == [0.5, 1.0]


def test_gives_up_and_clears_session():
	sleeps = []

	def refresh(refresh_token):
		return None

	manager = SessionManager(refresh, max_retries=2, backoff_seconds=1, clock=Clock(), sleep=sleeps.append)
	manager.set_session(_session(minutes=0))

	with pytest.raises(SessionRefreshError):
		manager.get_access_token()
	assert manager.session is None
	assert sleeps == [1, 2]


def test_invalidate_forces_refresh():
	count = {"n": 0}

	def refresh(refresh_token):
		count["n"] += 1
		return _session(token=f"tok-{count['n']}")

	manager = SessionManager(refresh, clock=Clock(), sleep=lambda s: None)
	assert manager.get_access_token() == "tok-1"
	manager.invalidate()
	assert manager.get_access_token() == "tok-2"


def test_client_logs_in_and_retries_once_on_401(monkeypatch):
	client = RentifyClient("https://api.test", "me@test.com", "secret", sleep=lambda s: None)
	sent = []
	state = {"rejected": False}

	def fake_send(method, path, payload=None, token=None):
		sent.append((method, path, token))
		if path == "/api/auth/login":
			return {"data": {"access_token": f"access-{len(sent)}", "expires_in": 900, "refresh_token": "refresh"}}
		if not state["rejected"]:
			state["rejected"] = True
			raise ApiClientError(401, "Token has expired")
		return {"data": {"ok": True}}

	monkeypatch.setattr(client, "_send", fake_send)

	assert client.request("GET", "/api/rentals") == {"data": {"ok": True}}
	paths = [p for _, p, _ in sent]
	assert paths == ["/api/auth/login", "/api/rentals", "/api/auth/login", "/api/rentals"]
	assert sent[-1][2] == "access-3"


def test_client_propagates_other_errors(monkeypatch):
	client = RentifyClient("https://api.test", "me@test.com", "secret", sleep=lambda s: None)

	def fake_send(method, path, payload=None, token=None):
		if path == "/api/auth/login":
			return {"data": {"access_token": "a", "expires_in": 900}}
		raise ApiClientError(403, "Forbidden")

	monkeypatch.setattr(client, "_send", fake_send)

	with pytest.raises(ApiClientError) as exc:
		client.request("GET", "/api/admin/dashboard")
	assert exc.value.status == 403
