"""
Security primitives for Finn Registry.

This module provides the secret and hash primitives the authentication
core is built on: CSPRNG string generation, salted scrypt hashing for
API keys with constant-time verification, and content checksums.
"""

from __future__ import annotations

import hashlib
import hmac
import secrets
import string
from typing import Dict, Mapping, Optional, Union


ALPHABET = string.ascii_letters + string.digits

# scrypt parameters for API key hashing
_SALT_BYTES = 16
_SCRYPT_N = 16384
_SCRYPT_R = 8
_SCRYPT_P = 1
_DERIVED_KEY_LENGTH = 64
_SEPARATOR = ":"


def random_string(length: int = 32) -> str:
    """
    Generate a uniformly random alphanumeric string.

    Args:
        length: Number of characters

    Returns:
        Random string drawn from [A-Za-z0-9] with the system CSPRNG
    """
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(ALPHABET) for _ in range(length))


def _derive(plaintext: str, salt: bytes) -> bytes:
    return hashlib.scrypt(
        plaintext.encode("utf-8"),
        salt=salt,
        n=_SCRYPT_N,
        r=_SCRYPT_R,
        p=_SCRYPT_P,
        dklen=_DERIVED_KEY_LENGTH,
    )


def hash_secret(plaintext: str) -> str:
    """
    Hash a secret with a fresh random salt.

    Args:
        plaintext: Secret to hash

    Returns:
        ``"<salt_hex>:<derived_hex>"``; two calls never return the same value
    """
    salt = secrets.token_bytes(_SALT_BYTES)
    derived = _derive(plaintext, salt)
    return f"{salt.hex()}{_SEPARATOR}{derived.hex()}"


def verify_secret(plaintext: str, stored: str) -> bool:
    """
    Verify a secret against its stored salted hash.

    Malformed stored values fail closed.

    Args:
        plaintext: Candidate secret
        stored: Value produced by :func:`hash_secret`

    Returns:
        True if the candidate matches
    """
    if not plaintext or not stored or _SEPARATOR not in stored:
        return False

    salt_hex, _, hash_hex = stored.partition(_SEPARATOR)
    try:
        salt = bytes.fromhex(salt_hex)
        expected = bytes.fromhex(hash_hex)
    except ValueError:
        return False

    if not salt or len(expected) != _DERIVED_KEY_LENGTH:
        return False

    try:
        derived = _derive(plaintext, salt)
    except (ValueError, MemoryError):
        return False

    return hmac.compare_digest(derived, expected)


def checksum(content: Union[str, bytes]) -> str:
    """
    Calculate a SHA-256 content checksum.

    Args:
        content: Text (UTF-8 encoded) or bytes

    Returns:
        Hex digest
    """
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


def generate_state() -> str:
    """Generate a CSRF state value for the OAuth redirect."""
    return random_string(32)


def generate_session_token() -> str:
    """Generate an opaque session token."""
    return random_string(48)


def generate_auth_code() -> str:
    """Generate a single-use auth code."""
    return random_string(16)


def generate_api_key(prefix: str = "fn_") -> str:
    """
    Generate a secure API key.

    Args:
        prefix: Public prefix identifying the credential type

    Returns:
        Random API key string
    """
    return f"{prefix}{random_string(48)}"


def generate_request_id() -> str:
    """
    Generate a unique request ID for tracing.

    Returns:
        Random request ID string
    """
    return secrets.token_urlsafe(16)


def get_security_headers() -> Dict[str, str]:
    """
    Get security headers for HTTP responses.

    Returns:
        Dictionary of security headers
    """
    return {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "X-XSS-Protection": "1; mode=block",
        "Referrer-Policy": "strict-origin-when-cross-origin",
    }


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging.

    Args:
        data: Sensitive data to mask
        visible_chars: Number of characters to show at the start

    Returns:
        Masked string
    """
    if len(data) <= visible_chars * 2:
        return "*" * len(data)

    return data[:visible_chars] + "*" * (len(data) - visible_chars)


def get_client_ip(headers: Mapping[str, str], client_host: Optional[str] = None) -> str:
    """
    Best-effort client IP for audit records.

    Args:
        headers: Request headers (case-insensitive mapping)
        client_host: Socket peer address, if known

    Returns:
        Client IP address or ``"unknown"``
    """
    forwarded_for = headers.get("x-forwarded-for")
    if forwarded_for:
        first = forwarded_for.split(",")[0].strip()
        if first:
            return first

    real_ip = headers.get("x-real-ip")
    if real_ip:
        return real_ip

    if client_host:
        return client_host

    return "unknown"
