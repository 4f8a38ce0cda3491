import secrets
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from fastapi import Request, Response
from itsdangerous import BadData, Signer

from . import errors
from .config import Settings


@dataclass(frozen=True)
class Identity:
    user_id: int
    name: str
    email: str

    def to_public(self) -> dict:
        return {"id": self.user_id, "name": self.name, "email": self.email}


@dataclass
class _Entry:
    identity: Identity
    expires_at: float


class SessionManager:
    """
    Server-side session table keyed by an opaque token.

    Expiry is absolute: ``ttl_seconds`` after ``create``, never extended.
    The table lives in process memory, so sessions do not survive a restart
    and are not shared between worker processes.
    """

    def __init__(self, secret: str, ttl_seconds: int = 24 * 60 * 60, clock: Callable[[], float] = time.time):
        self._signer = Signer(secret, salt="finance-session")
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._sessions: Dict[str, _Entry] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def create(self, identity: Identity) -> str:
        self.purge_expired()
        token = secrets.token_urlsafe(32)
        self._sessions[token] = _Entry(identity=identity, expires_at=self._clock() + self.ttl_seconds)
        return token

    def resolve(self, token: Optional[str]) -> Optional[Identity]:
        if not token:
            return None
        entry = self._sessions.get(token)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            self._sessions.pop(token, None)
            return None
        return entry.identity

    def destroy(self, token: Optional[str]) -> None:
        if token:
            self._sessions.pop(token, None)

    def remaining_seconds(self, token: str) -> int:
        entry = self._sessions.get(token)
        if entry is None:
            return 0
        return max(0, int(entry.expires_at - self._clock()))

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [token for token, entry in self._sessions.items() if entry.expires_at <= now]
        for token in expired:
            del self._sessions[token]
        return len(expired)

    def sign(self, token: str) -> str:
        return self._signer.sign(token).decode("utf-8")

    def unsign(self, cookie_value: Optional[str]) -> Optional[str]:
        if not cookie_value:
            return None
        try:
            return self._signer.unsign(cookie_value).decode("utf-8")
        except BadData:
            return None


def set_session_cookie(response: Response, settings: Settings, manager: SessionManager, token: str) -> None:
    response.set_cookie(
        key=settings.session_cookie_name,
        value=manager.sign(token),
        max_age=manager.remaining_seconds(token),
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def clear_session_cookie(response: Response, settings: Settings) -> None:
    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
    )


def get_session_manager(request: Request) -> SessionManager:
    return request.app.state.session_manager


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def session_token(request: Request) -> Optional[str]:
    settings = get_settings(request)
    manager = get_session_manager(request)
    return manager.unsign(request.cookies.get(settings.session_cookie_name))


async def get_current_user(request: Request, response: Response) -> Identity:
    """Dependency for routes that need a logged-in user; refreshes the cookie on success."""
    manager = get_session_manager(request)
    token = session_token(request)
    identity = manager.resolve(token)
    if identity is None:
        raise errors.Unauthenticated()
    set_session_cookie(response, get_settings(request), manager, token)
    return identity
