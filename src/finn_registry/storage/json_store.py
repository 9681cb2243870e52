"""
In-memory registry store with optional JSON-file persistence.

Tables are kept in dictionaries guarded by a single lock; when a storage
path is configured every mutation is flushed to disk with owner-only
permissions.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel

from ..core import get_logger
from ..models import (
    ApiKeyRecord,
    AuthCode,
    LoginRecord,
    SessionRecord,
    User,
)

RecordT = TypeVar("RecordT", bound=BaseModel)

_TABLES: Dict[str, Type[BaseModel]] = {
    "users": User,
    "sessions": SessionRecord,
    "auth_codes": AuthCode,
    "api_keys": ApiKeyRecord,
    "logins": LoginRecord,
}


class JsonRegistryStore:
    """Registry store backed by process memory and an optional JSON file."""

    def __init__(self, storage_path: Optional[Path] = None):
        self.logger = get_logger(__name__)
        self.storage_path = storage_path
        self._lock = threading.RLock()

        # Keyed by user id, session token, code, key id and login id
        self._users: Dict[str, User] = {}
        self._sessions: Dict[str, SessionRecord] = {}
        self._auth_codes: Dict[str, AuthCode] = {}
        self._api_keys: Dict[str, ApiKeyRecord] = {}
        self._logins: Dict[str, LoginRecord] = {}

        self._load_from_disk()

    # Users

    def get_user(self, user_id: str) -> Optional[User]:
        with self._lock:
            return self._copy(self._users.get(user_id))

    def get_user_by_github_id(self, github_id: int) -> Optional[User]:
        with self._lock:
            for user in self._users.values():
                if user.github_id == github_id:
                    return self._copy(user)
        return None

    def insert_user(self, user: User) -> User:
        with self._lock:
            if user.id in self._users:
                raise ValueError(f"User {user.id} already exists")
            if any(u.github_id == user.github_id for u in self._users.values()):
                raise ValueError(f"GitHub id {user.github_id} already linked")
            self._users[user.id] = self._copy(user)
            self._save_to_disk()
        return user

    def save_user(self, user: User) -> User:
        with self._lock:
            existing = self._users.get(user.id)
            if existing is None:
                raise KeyError(user.id)
            if existing.github_id != user.github_id:
                raise ValueError("github_id is immutable")
            self._users[user.id] = self._copy(user)
            self._save_to_disk()
        return user

    # Sessions

    def insert_session(self, session: SessionRecord) -> SessionRecord:
        with self._lock:
            if session.token in self._sessions:
                raise ValueError("Session token collision")
            self._sessions[session.token] = self._copy(session)
            self._save_to_disk()
        return session

    def get_session(self, token: str) -> Optional[SessionRecord]:
        with self._lock:
            return self._copy(self._sessions.get(token))

    def delete_session(self, token: str) -> bool:
        with self._lock:
            removed = self._sessions.pop(token, None)
            if removed is not None:
                self._save_to_disk()
        return removed is not None

    def list_sessions(self, user_id: Optional[str] = None) -> List[SessionRecord]:
        with self._lock:
            return [
                self._copy(s) for s in self._sessions.values()
                if user_id is None or s.user_id == user_id
            ]

    # Auth codes

    def insert_auth_code(self, auth_code: AuthCode) -> AuthCode:
        with self._lock:
            if auth_code.code in self._auth_codes:
                raise ValueError("Auth code collision")
            self._auth_codes[auth_code.code] = self._copy(auth_code)
            self._save_to_disk()
        return auth_code

    def pop_auth_code(self, code: str) -> Optional[AuthCode]:
        """Remove and return a code in one step so it can be redeemed once."""
        with self._lock:
            removed = self._auth_codes.pop(code, None)
            if removed is not None:
                self._save_to_disk()
        return removed

    # API keys

    def insert_api_key(self, record: ApiKeyRecord) -> ApiKeyRecord:
        with self._lock:
            if record.id in self._api_keys:
                raise ValueError(f"API key {record.id} already exists")
            self._api_keys[record.id] = self._copy(record)
            self._save_to_disk()
        return record

    def get_api_key(self, key_id: str) -> Optional[ApiKeyRecord]:
        with self._lock:
            return self._copy(self._api_keys.get(key_id))

    def list_api_keys(self, user_id: Optional[str] = None) -> List[ApiKeyRecord]:
        with self._lock:
            records = [
                self._copy(k) for k in self._api_keys.values()
                if user_id is None or k.user_id == user_id
            ]
        return sorted(records, key=lambda k: k.created_at)

    def delete_api_key(self, key_id: str, user_id: str) -> bool:
        """Delete a key only if ``user_id`` owns it."""
        with self._lock:
            record = self._api_keys.get(key_id)
            if record is None or record.user_id != user_id:
                return False
            del self._api_keys[key_id]
            self._save_to_disk()
        return True

    def touch_api_key(self, key_id: str, used_at: int) -> None:
        with self._lock:
            record = self._api_keys.get(key_id)
            if record is not None:
                record.last_used_at = used_at
                self._save_to_disk()

    # Login audit

    def insert_login(self, record: LoginRecord) -> LoginRecord:
        with self._lock:
            self._logins[record.id] = self._copy(record)
            self._save_to_disk()
        return record

    def list_logins(self, user_id: str, limit: int = 10) -> List[LoginRecord]:
        with self._lock:
            records = [self._copy(r) for r in self._logins.values() if r.user_id == user_id]
        records.sort(key=lambda r: r.created_at, reverse=True)
        return records[:limit]

    # Persistence

    @staticmethod
    def _copy(record: Optional[RecordT]) -> Optional[RecordT]:
        # Callers never hold references into the tables
        return record.model_copy(deep=True) if record is not None else None

    def _tables(self) -> Dict[str, Dict[str, Any]]:
        return {
            "users": self._users,
            "sessions": self._sessions,
            "auth_codes": self._auth_codes,
            "api_keys": self._api_keys,
            "logins": self._logins,
        }

    def _save_to_disk(self) -> None:
        """Save all tables to disk."""
        if self.storage_path is None:
            return

        self.storage_path.parent.mkdir(parents=True, exist_ok=True)

        data = {
            name: {key: record.model_dump(mode="json") for key, record in table.items()}
            for name, table in self._tables().items()
        }

        tmp_path = self.storage_path.with_suffix(self.storage_path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)

        # Set restrictive permissions before the file becomes visible
        tmp_path.chmod(0o600)
        tmp_path.replace(self.storage_path)

    def _load_from_disk(self) -> None:
        """Load all tables from disk."""
        if self.storage_path is None or not self.storage_path.exists():
            return

        try:
            with open(self.storage_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            self.logger.error("Failed to load registry store", path=str(self.storage_path), error=str(e))
            raise

        tables = self._tables()
        for name, model in _TABLES.items():
            for key, raw in data.get(name, {}).items():
                try:
                    tables[name][key] = model.model_validate(raw)
                except ValueError as e:
                    self.logger.warning("Skipping unreadable record", table=name, error=str(e))

