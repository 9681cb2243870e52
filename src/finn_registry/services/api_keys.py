"""
API key service for Finn Registry.

The plaintext key exists only in the response to its creation; the store
keeps ``hash_secret(key)``.
"""

from __future__ import annotations

from typing import List, Tuple

from ..core import (
    get_logger,
    generate_api_key,
    hash_secret,
    log_auth_event,
    mask_sensitive_data,
    NotFoundError,
)
from ..models import ApiKeyCreateRequest, ApiKeyRecord
from ..storage import RegistryStore


class ApiKeyService:
    """Creates, lists and revokes API keys."""

    def __init__(self, store: RegistryStore, key_prefix: str, default_scopes: List[str]):
        self.store = store
        self.key_prefix = key_prefix
        self.default_scopes = list(default_scopes)
        self.logger = get_logger(__name__)

    def create(self, user_id: str, request: ApiKeyCreateRequest) -> Tuple[str, ApiKeyRecord]:
        """
        Create an API key for a user.

        Returns:
            Tuple of (plaintext key, stored record)
        """
        plaintext = generate_api_key(self.key_prefix)
        scopes = request.scopes if request.scopes is not None else self.default_scopes

        record = ApiKeyRecord(
            user_id=user_id,
            name=request.name,
            description=request.description,
            key_hash=hash_secret(plaintext),
            scopes=",".join(scopes),
        )
        self.store.insert_api_key(record)

        log_auth_event(
            self.logger,
            "api_key_created",
            user_id=user_id,
            success=True,
            details={
                "key_id": record.id,
                "key_preview": mask_sensitive_data(plaintext, visible_chars=len(self.key_prefix)),
                "scopes": record.scopes,
            },
        )
        return plaintext, record

    def list_for_user(self, user_id: str) -> List[ApiKeyRecord]:
        """API keys owned by a user, oldest first."""
        return self.store.list_api_keys(user_id)

    def get(self, user_id: str, key_id: str) -> ApiKeyRecord:
        """
        Get a key owned by ``user_id``.

        Raises:
            NotFoundError: If the caller owns no key with this id
        """
        record = self.store.get_api_key(key_id)
        if record is None or record.user_id != user_id:
            raise NotFoundError("API key not found", error_code="api_key_not_found")
        return record

    def revoke(self, user_id: str, key_id: str) -> None:
        """
        Revoke a key owned by ``user_id``.

        Keys owned by someone else are reported exactly like missing ones.

        Raises:
            NotFoundError: If the caller owns no key with this id
        """
        if not self.store.delete_api_key(key_id, user_id):
            log_auth_event(
                self.logger,
                "api_key_revoke_denied",
                user_id=user_id,
                success=False,
                details={"key_id": key_id},
            )
            raise NotFoundError("API key not found", error_code="api_key_not_found")

        log_auth_event(
            self.logger,
            "api_key_revoked",
            user_id=user_id,
            success=True,
            details={"key_id": key_id},
        )
