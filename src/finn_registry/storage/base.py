"""
Persistence contract consumed by the authentication core.

Every operation is a point read or a single-row write; implementations
must make each write atomic but no multi-row transactions are assumed.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..models import (
    ApiKeyRecord,
    AuthCode,
    LoginRecord,
    SessionRecord,
    User,
)


class RegistryStore(Protocol):
    """Storage port for users, sessions, auth codes, API keys and logins."""

    # Users
    def get_user(self, user_id: str) -> Optional[User]: ...

    def get_user_by_github_id(self, github_id: int) -> Optional[User]: ...

    def insert_user(self, user: User) -> User: ...

    def save_user(self, user: User) -> User: ...

    # Sessions
    def insert_session(self, session: SessionRecord) -> SessionRecord: ...

    def get_session(self, token: str) -> Optional[SessionRecord]: ...

    def delete_session(self, token: str) -> bool: ...

    def list_sessions(self, user_id: Optional[str] = None) -> List[SessionRecord]: ...

    # Auth codes
    def insert_auth_code(self, auth_code: AuthCode) -> AuthCode: ...

    def pop_auth_code(self, code: str) -> Optional[AuthCode]: ...

    # API keys
    def insert_api_key(self, record: ApiKeyRecord) -> ApiKeyRecord: ...

    def get_api_key(self, key_id: str) -> Optional[ApiKeyRecord]: ...

    def list_api_keys(self, user_id: Optional[str] = None) -> List[ApiKeyRecord]: ...

    def delete_api_key(self, key_id: str, user_id: str) -> bool: ...

    def touch_api_key(self, key_id: str, used_at: int) -> None: ...

    # Login audit
    def insert_login(self, record: LoginRecord) -> LoginRecord: ...

    def list_logins(self, user_id: str, limit: int = 10) -> List[LoginRecord]: ...
