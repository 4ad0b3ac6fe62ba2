"""
Cookie export/import for TemporaryAI.

Sessions are moved between machines by exporting the service's cookies to a
file, optionally sealed with a password, and importing them elsewhere.

Components:
    - CookieCrypto: PBKDF2-HMAC-SHA256 key derivation + AES-256-GCM
    - CookieCodec: Export container format, legacy list support, store fan-out
    - CookieStore: Async jar contract with memory and SQLite implementations
"""

from temporaryai.cookies.codec import CookieCodec, filter_cookies
from temporaryai.cookies.crypto import CookieCrypto, SealedPayload
from temporaryai.cookies.store import (
    CookieStore,
    MemoryCookieStore,
    SqliteCookieStore,
    rejection_reason,
)

__all__ = [
    "CookieCodec",
    "CookieCrypto",
    "CookieStore",
    "MemoryCookieStore",
    "SealedPayload",
    "SqliteCookieStore",
    "filter_cookies",
    "rejection_reason",
]
