"""
Small HTTP client for the Rentify API, used by scripts and scheduled jobs.

Authentication state lives in a ``SessionManager``: the client logs in once,
then refreshes the access token through ``/api/auth/refresh`` shortly before
it expires.
"""

import json
import logging
import urllib.error
import urllib.request
from datetime import datetime, timedelta
from typing import Optional

from rentify.utils.session_manager import Session, SessionManager

logger = logging.getLogger(__name__)


class ApiClientError(Exception):
    def __init__(self, status: int, message: str):
        super().__init__(f"{status}: {message}")
        self.status = status
        self.message = message


class RentifyClient:
    def __init__(self, base_url: str, email: str, password: str, timeout: int = 10, **session_options):
        self.base_url = base_url.rstrip("/")
        self.email = email
        self.password = password
        self.timeout = timeout
        self.sessions = SessionManager(self._refresh_session, **session_options)

    def _send(self, method: str, path: str, payload: Optional[dict] = None, token: Optional[str] = None) -> dict:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        req = urllib.request.Request(
            f"{self.base_url}{path}",
            data=json.dumps(payload).encode("utf-8") if payload is not None else None,
            headers=headers,
            method=method,
        )
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as response:
                return json.loads(response.read().decode("utf-8") or "{}")
        except urllib.error.HTTPError as e:
            try:
                body = json.loads(e.read().decode("utf-8") or "{}")
            except ValueError:
                body = {}
            raise ApiClientError(e.code, body.get("message") or e.reason) from e

    def _session_from(self, data: dict, refresh_token: Optional[str]) -> Session:
        return Session(
            access_token=data["access_token"],
            expires_at=datetime.utcnow() + timedelta(seconds=int(data.get("expires_in") or 900)),
            refresh_token=data.get("refresh_token") or refresh_token,
        )

    def _refresh_session(self, refresh_token: Optional[str]) -> Session:
        if refresh_token:
            try:
                data = self._send("POST", "/api/auth/refresh", token=refresh_token)["data"]
                return self._session_from(data, refresh_token)
            except ApiClientError as e:
                if e.status != 401:
                    raise
                logger.info("Refresh token rejected; logging in again")

        data = self._send(
            "POST", "/api/auth/login", {"email": self.email, "password": self.password}
        )["data"]
        return self._session_from(data, None)

    def request(self, method: str, path: str, payload: Optional[dict] = None) -> dict:
        try:
            return self._send(method, path, payload, token=self.sessions.get_access_token())
        except ApiClientError as e:
            if e.status != 401:
                raise
        # Token revoked server side: start over once
        self.sessions.invalidate()
        return self._send(method, path, payload, token=self.sessions.get_access_token())
