from __future__ import annotations

import logging
import secrets
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from threading import Lock
from typing import Any, Callable, Optional
from urllib.parse import urlsplit

from fastapi import Request, Response
from itsdangerous import BadSignature, SignatureExpired, URLSafeTimedSerializer
from sqlalchemy.orm import Session, sessionmaker

from rankitpro.core import config
from rankitpro.models.user_session import UserSession

logger = logging.getLogger(__name__)

SESSION_SALT = "rankitpro-session"

Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class SessionRecord:
    session_id: str
    user_id: int
    created_at: datetime
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


def new_session_id() -> str:
    return secrets.token_urlsafe(32)


class SessionStore(ABC):
    """Server-side mapping from session id to user id with expiry."""

    def __init__(
        self,
        *,
        max_age_seconds: int = config.SESSION_MAX_AGE_SECONDS,
        max_sessions_per_user: int = config.MAX_SESSIONS_PER_USER,
        clock: Clock = _utcnow,
    ) -> None:
        self.max_age_seconds = max_age_seconds
        self.max_sessions_per_user = max_sessions_per_user
        self._clock = clock

    def _expiry(self, now: datetime, ttl_seconds: Optional[int]) -> datetime:
        return now + timedelta(seconds=ttl_seconds or self.max_age_seconds)

    @abstractmethod
    def create(self, user_id: int, *, ttl_seconds: Optional[int] = None) -> SessionRecord:
        """Open a session for ``user_id``, evicting the oldest ones above the per-user cap."""

    @abstractmethod
    def get(self, session_id: str) -> Optional[SessionRecord]:
        """Return the live session or None. Expired entries are dropped on read."""

    @abstractmethod
    def destroy(self, session_id: str) -> None:
        ...

    @abstractmethod
    def destroy_for_user(self, user_id: int) -> int:
        ...

    @abstractmethod
    def purge_expired(self) -> int:
        ...

    @abstractmethod
    def count_for_user(self, user_id: int) -> int:
        ...


class InMemorySessionStore(SessionStore):
    """Dict-backed store for dev and tests. Lost on restart, single process only."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._sessions: dict[str, SessionRecord] = {}
        self._lock = Lock()

    def create(self, user_id: int, *, ttl_seconds: Optional[int] = None) -> SessionRecord:
        now = self._clock()
        record = SessionRecord(
            session_id=new_session_id(),
            user_id=user_id,
            created_at=now,
            expires_at=self._expiry(now, ttl_seconds),
        )
        with self._lock:
            # dict preserva ordem de inserção: os primeiros são os mais antigos
            owned = [sid for sid, item in self._sessions.items() if item.user_id == user_id]
            overflow = len(owned) - self.max_sessions_per_user + 1
            for sid in owned[: max(0, overflow)]:
                del self._sessions[sid]
            self._sessions[record.session_id] = record
        if overflow > 0:
            logger.info("evicted %s old session(s) for user_id=%s", overflow, user_id)
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        now = self._clock()
        with self._lock:
            record = self._sessions.get(session_id)
            if record is None:
                return None
            if record.is_expired(now):
                del self._sessions[session_id]
                return None
            return record

    def destroy(self, session_id: str) -> None:
        with self._lock:
            self._sessions.pop(session_id, None)

    def destroy_for_user(self, user_id: int) -> int:
        with self._lock:
            owned = [sid for sid, item in self._sessions.items() if item.user_id == user_id]
            for sid in owned:
                del self._sessions[sid]
        return len(owned)

    def purge_expired(self) -> int:
        now = self._clock()
        with self._lock:
            expired = [sid for sid, item in self._sessions.items() if item.is_expired(now)]
            for sid in expired:
                del self._sessions[sid]
        return len(expired)

    def count_for_user(self, user_id: int) -> int:
        now = self._clock()
        with self._lock:
            return sum(
                1 for item in self._sessions.values() if item.user_id == user_id and not item.is_expired(now)
            )


class DatabaseSessionStore(SessionStore):
    """Store over the ``user_sessions`` table; survives restarts and works across workers."""

    def __init__(self, session_factory: sessionmaker, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._session_factory = session_factory

    @staticmethod
    def _to_record(row: UserSession) -> SessionRecord:
        return SessionRecord(
            session_id=row.session_id,
            user_id=row.user_id,
            created_at=row.created_at,
            expires_at=row.expires_at,
        )

    def create(self, user_id: int, *, ttl_seconds: Optional[int] = None) -> SessionRecord:
        now = self._clock()
        row = UserSession(
            session_id=new_session_id(),
            user_id=user_id,
            created_at=now,
            expires_at=self._expiry(now, ttl_seconds),
        )
        db: Session
        with self._session_factory() as db:
            owned = (
                db.query(UserSession)
                .filter(UserSession.user_id == user_id)
                .order_by(UserSession.created_at.asc())
                .all()
            )
            overflow = len(owned) - self.max_sessions_per_user + 1
            for old in owned[: max(0, overflow)]:
                db.delete(old)
            db.add(row)
            db.commit()
            record = self._to_record(row)
        if overflow > 0:
            logger.info("evicted %s old session(s) for user_id=%s", overflow, user_id)
        return record

    def get(self, session_id: str) -> Optional[SessionRecord]:
        now = self._clock()
        with self._session_factory() as db:
            row = db.get(UserSession, session_id)
            if row is None:
                return None
            if row.expires_at <= now:
                db.delete(row)
                db.commit()
                return None
            return self._to_record(row)

    def destroy(self, session_id: str) -> None:
        with self._session_factory() as db:
            db.query(UserSession).filter(UserSession.session_id == session_id).delete(
                synchronize_session=False
            )
            db.commit()

    def destroy_for_user(self, user_id: int) -> int:
        with self._session_factory() as db:
            removed = (
                db.query(UserSession)
                .filter(UserSession.user_id == user_id)
                .delete(synchronize_session=False)
            )
            db.commit()
        return removed

    def purge_expired(self) -> int:
        now = self._clock()
        with self._session_factory() as db:
            removed = (
                db.query(UserSession)
                .filter(UserSession.expires_at <= now)
                .delete(synchronize_session=False)
            )
            db.commit()
        return removed

    def count_for_user(self, user_id: int) -> int:
        now = self._clock()
        with self._session_factory() as db:
            return (
                db.query(UserSession)
                .filter(UserSession.user_id == user_id, UserSession.expires_at > now)
                .count()
            )


def build_session_store(kind: str, session_factory: sessionmaker) -> SessionStore:
    if kind == "database":
        return DatabaseSessionStore(session_factory)
    if kind == "memory":
        return InMemorySessionStore()
    raise RuntimeError(f"Unknown SESSION_STORE: {kind}")


# =========================
# Cookie assinado
# =========================
def _serializer() -> URLSafeTimedSerializer:
    if not config.SESSION_SECRET:
        raise RuntimeError("SESSION_SECRET is not configured")
    return URLSafeTimedSerializer(config.SESSION_SECRET, salt=SESSION_SALT)


def sign_session_id(session_id: str) -> str:
    return _serializer().dumps(session_id)


@dataclass(frozen=True)
class CookieSession:
    session_id: Optional[str]
    expired: bool = False


def read_session_cookie(token: str) -> CookieSession:
    """Verify the cookie signature.

    The signature age is checked against the longest lifetime a session can
    have; the store enforces the actual expiry of each session.
    """
    max_age = max(config.SESSION_MAX_AGE_SECONDS, config.REMEMBER_ME_MAX_AGE_SECONDS)
    try:
        session_id = _serializer().loads(token, max_age=max_age)
    except SignatureExpired:
        return CookieSession(session_id=None, expired=True)
    except BadSignature:
        return CookieSession(session_id=None)
    if not isinstance(session_id, str) or not session_id:
        return CookieSession(session_id=None)
    return CookieSession(session_id=session_id)


def build_session_cookie_options(request: Request | None = None) -> dict[str, Any]:
    secure = config.SESSION_COOKIE_SECURE
    samesite = config.SESSION_COOKIE_SAMESITE

    host = ""
    origin_host = ""
    if request is not None:
        host = (request.headers.get("x-forwarded-host") or request.headers.get("host") or "").lower()
        host = host.split(",")[0].strip().split(":")[0]

        origin = (request.headers.get("origin") or "").strip()
        if origin:
            origin_host = (urlsplit(origin).hostname or "").lower()

    is_cross_site_request = bool(origin_host and host and origin_host != host)

    # Frontend e API em domínios distintos exigem SameSite=None.
    if is_cross_site_request and secure:
        samesite = "none"

    # Browsers rejeitam SameSite=None sem Secure.
    if samesite == "none" and not secure:
        samesite = "lax"

    return {
        "domain": config.SESSION_COOKIE_DOMAIN,
        "httponly": config.SESSION_COOKIE_HTTPONLY,
        "samesite": samesite,
        "path": "/",
        "secure": secure,
    }


def set_session_cookie(
    response: Response,
    session_id: str,
    *,
    max_age: int,
    request: Request | None = None,
) -> None:
    response.set_cookie(
        key=config.SESSION_COOKIE_NAME,
        value=sign_session_id(session_id),
        max_age=max_age,
        **build_session_cookie_options(request),
    )


def clear_session_cookie(response: Response, request: Request | None = None) -> None:
    response.delete_cookie(
        key=config.SESSION_COOKIE_NAME,
        **build_session_cookie_options(request),
    )
