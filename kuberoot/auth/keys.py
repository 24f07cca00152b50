"""API key generation and hashing.

Keys are ``kr_`` followed by 64 hex characters (32 random bytes).  Only the
SHA-256 hex digest is ever stored or compared.
"""

from __future__ import annotations

import hashlib
import secrets

API_KEY_HEADER = "X-API-Key"
API_KEY_PREFIX = "kr_"


def generate_api_key() -> str:
    return API_KEY_PREFIX + secrets.token_hex(32)


def hash_api_key(key: str) -> str:
    return hashlib.sha256(key.encode("utf-8")).hexdigest()
