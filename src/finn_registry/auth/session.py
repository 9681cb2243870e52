"""
Session management for Finn Registry.

This module handles server-side sessions and the single-use auth codes
of the CLI handoff. Sessions have an absolute, non-renewing expiry; an
expired session is treated as absent whether or not its row still exists.
"""

from __future__ import annotations

from typing import List, Optional

from ..core import (
    get_logger,
    generate_auth_code,
    generate_session_token,
    log_auth_event,
)
from ..models import AuthCode, LoginRecord, SessionRecord, now_ms
from ..storage import RegistryStore


class SessionManager:
    """Creates, looks up and revokes sessions."""

    def __init__(self, store: RegistryStore, ttl_seconds: int):
        self.store = store
        self.ttl_ms = ttl_seconds * 1000
        self.logger = get_logger(__name__)

    def create_session(
        self,
        user_id: str,
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> SessionRecord:
        """
        Create a new session for a user.

        Also appends a login audit entry; failing to write it does not
        fail session creation.

        Args:
            user_id: Owning user id
            ip_address: Client IP address
            user_agent: User agent string

        Returns:
            Created session record
        """
        now = now_ms()
        session = SessionRecord(
            token=generate_session_token(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl_ms,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.store.insert_session(session)

        self._record_login(user_id, ip_address, user_agent)

        log_auth_event(
            self.logger,
            "session_created",
            user_id=user_id,
            success=True,
            details={"session_id": session.id, "client_ip": ip_address, "expires_at": session.expires_at},
        )
        return session

    def lookup(self, token: str) -> Optional[SessionRecord]:
        """
        Get a session by token.

        Expired sessions are reported as absent but not deleted.

        Args:
            token: Session token

        Returns:
            Session record if found and unexpired, None otherwise
        """
        if not token:
            return None

        session = self.store.get_session(token)
        if session is None or session.is_expired():
            return None
        return session

    def revoke(self, token: str) -> None:
        """
        Delete a session. Unknown tokens are ignored.

        Args:
            token: Session token
        """
        if not token:
            return

        if self.store.delete_session(token):
            log_auth_event(self.logger, "session_revoked", success=True)

    def list_user_sessions(self, user_id: str) -> List[SessionRecord]:
        """Active sessions of a user, newest first."""
        sessions = [s for s in self.store.list_sessions(user_id) if not s.is_expired()]
        return sorted(sessions, key=lambda s: s.created_at, reverse=True)

    def revoke_user_sessions(self, user_id: str) -> int:
        """
        Delete all sessions of a user.

        Returns:
            Number of sessions deleted
        """
        deleted = 0
        for session in self.store.list_sessions(user_id):
            if self.store.delete_session(session.token):
                deleted += 1

        if deleted:
            log_auth_event(
                self.logger,
                "user_sessions_revoked",
                user_id=user_id,
                success=True,
                details={"sessions_deleted": deleted},
            )
        return deleted

    def purge_expired(self) -> int:
        """
        Remove expired session rows.

        Returns:
            Number of sessions removed
        """
        now = now_ms()
        removed = 0
        for session in self.store.list_sessions():
            if session.is_expired(now) and self.store.delete_session(session.token):
                removed += 1

        if removed:
            self.logger.info("Expired sessions purged", count=removed)
        return removed

    def _record_login(
        self,
        user_id: str,
        ip_address: Optional[str],
        user_agent: Optional[str],
    ) -> None:
        try:
            self.store.insert_login(
                LoginRecord(
                    user_id=user_id,
                    ip_address=ip_address or "unknown",
                    user_agent=user_agent or "Unknown",
                )
            )
        except Exception as e:
            self.logger.warning("Failed to record login audit", user_id=user_id, error=str(e))


class AuthCodeManager:
    """Issues and redeems single-use auth codes."""

    def __init__(self, store: RegistryStore, ttl_seconds: int):
        self.store = store
        self.ttl_seconds = ttl_seconds
        self.logger = get_logger(__name__)

    def create_code(self, user_id: str) -> str:
        """
        Create an auth code bound to a user.

        Returns:
            The code
        """
        now = now_ms()
        auth_code = AuthCode(
            code=generate_auth_code(),
            user_id=user_id,
            created_at=now,
            expires_at=now + self.ttl_seconds * 1000,
        )
        self.store.insert_auth_code(auth_code)
        log_auth_event(self.logger, "auth_code_created", user_id=user_id, success=True)
        return auth_code.code

    def exchange(self, code: str) -> Optional[str]:
        """
        Redeem a code.

        The code is deleted before the bound user is returned, so a second
        exchange of the same code returns None.

        Returns:
            Bound user id, or None if unknown, expired or already used
        """
        if not code:
            return None

        auth_code = self.store.pop_auth_code(code)
        if auth_code is None:
            return None

        if auth_code.is_expired():
            log_auth_event(
                self.logger,
                "auth_code_expired",
                user_id=auth_code.user_id,
                success=False,
            )
            return None

        log_auth_event(self.logger, "auth_code_exchanged", user_id=auth_code.user_id, success=True)
        return auth_code.user_id
