#!/usr/bin/env python3
"""
Continuation tokens.

A token is 32 random bytes, URL-safe encoded. Only its SHA-256 is stored,
so a database read does not yield usable approve/waitlist links.
"""

import hashlib
import secrets
from typing import Tuple

TOKEN_BYTES = 32


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def mint_token() -> Tuple[str, str]:
    """Returns (token, token_hash)."""
    token = secrets.token_urlsafe(TOKEN_BYTES)
    return token, hash_token(token)
