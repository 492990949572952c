import logging
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class SessionRefreshError(Exception):
    """Raised when every refresh attempt in the retry budget failed."""


@dataclass
class Session:
    access_token: str
    expires_at: datetime
    refresh_token: Optional[str] = None


class SessionManager:
    """
    Holds one API session and keeps it fresh.

    ``refresh_callback`` receives the current refresh token (or None) and
    returns a new ``Session``. A refresh happens when no session is cached or
    the cached one expires within ``refresh_margin``. Failed refreshes are
    retried up to ``max_retries`` times with exponential backoff before
    ``SessionRefreshError`` is raised.
    """

    def __init__(
        self,
        refresh_callback: Callable[[Optional[str]], Session],
        refresh_margin: timedelta = timedelta(seconds=60),
        max_retries: int = 3,
        backoff_seconds: float = 0.5,
        clock: Callable[[], datetime] = datetime.utcnow,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self._refresh_callback = refresh_callback
        self._refresh_margin = refresh_margin
        self._max_retries = max(0, int(max_retries))
        self._backoff_seconds = backoff_seconds
        self._clock = clock
        self._sleep = sleep
        self._session: Optional[Session] = None
        self._lock = threading.Lock()

    @property
    def session(self) -> Optional[Session]:
        return self._session

    def set_session(self, session: Session) -> None:
        with self._lock:
            self._session = session

    def invalidate(self) -> None:
        with self._lock:
            self._session = None

    def needs_refresh(self) -> bool:
        s = self._session
        if s is None:
            return True
        return s.expires_at - self._refresh_margin <= self._clock()

    def get_access_token(self) -> str:
        with self._lock:
            if self.needs_refresh():
                self._session = self._refresh_locked()
            return self._session.access_token

    def _refresh_locked(self) -> Session:
        refresh_token = self._session.refresh_token if self._session else None
        last_error: Optional[Exception] = None

        for attempt in range(self._max_retries + 1):
            if attempt:
                self._sleep(self._backoff_seconds * (2 ** (attempt - 1)))
            try:
                session = self._refresh_callback(refresh_token)
            except Exception as e:
                last_error = e
                logger.warning("Session refresh attempt %s failed: %s", attempt + 1, e)
                continue
            if session is None or not session.access_token:
                last_error = SessionRefreshError("refresh returned no session")
                logger.warning("Session refresh attempt %s returned no session", attempt + 1)
                continue
            return session

        self._session = None
        raise SessionRefreshError(
            f"Session refresh failed after {self._max_retries + 1} attempt(s)"
        ) from last_error
