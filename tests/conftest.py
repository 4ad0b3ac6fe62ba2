"""
Pytest configuration and fixtures for TemporaryAI tests.

This module provides shared fixtures used across unit, integration,
and security tests.
"""

import tempfile
from datetime import UTC, datetime
from pathlib import Path
from typing import Generator

import pytest

from temporaryai.cookies import CookieCodec, CookieCrypto, MemoryCookieStore
from temporaryai.policy import NavigationPolicyEngine
from temporaryai.schema import CookieRecord, NavigationPolicy, ServiceIdentity


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def navigation_policy() -> NavigationPolicy:
    """The built-in navigation policy."""
    return NavigationPolicy()


@pytest.fixture
def chatgpt_engine(navigation_policy: NavigationPolicy) -> NavigationPolicyEngine:
    """Policy engine for a ChatGPT session."""
    return NavigationPolicyEngine(navigation_policy, ServiceIdentity.CHATGPT)


@pytest.fixture
def gemini_engine(navigation_policy: NavigationPolicy) -> NavigationPolicyEngine:
    """Policy engine for a Gemini session."""
    return NavigationPolicyEngine(navigation_policy, ServiceIdentity.GEMINI)


@pytest.fixture
def sample_cookies() -> list[CookieRecord]:
    """Cookies from several sites, some belonging to ChatGPT."""
    return [
        CookieRecord(
            name="__Secure-next-auth.session-token",
            value="session-abc",
            domain=".chatgpt.com",
            path="/",
            is_secure=True,
            is_http_only=True,
            expires=datetime(2030, 1, 1, tzinfo=UTC),
        ),
        CookieRecord(
            name="oai-did",
            value="device-123",
            domain="chatgpt.com",
            path="/",
            is_secure=False,
            is_http_only=False,
            expires=None,
        ),
        CookieRecord(
            name="auth0",
            value="login-xyz",
            domain="auth.openai.com",
            path="/",
            is_secure=True,
            is_http_only=True,
            expires=datetime(2029, 6, 1, 12, 30, tzinfo=UTC),
        ),
        CookieRecord(
            name="tracker",
            value="ad",
            domain=".ads.example.com",
            path="/",
            is_secure=False,
            is_http_only=False,
            expires=None,
        ),
    ]


@pytest.fixture
def memory_store(sample_cookies: list[CookieRecord]) -> MemoryCookieStore:
    """In-memory jar holding the sample cookies."""
    return MemoryCookieStore(sample_cookies)


@pytest.fixture
def crypto() -> CookieCrypto:
    """Cookie crypto helper."""
    return CookieCrypto()


@pytest.fixture
def codec(crypto: CookieCrypto) -> CookieCodec:
    """Cookie codec."""
    return CookieCodec(crypto)


@pytest.fixture
def sample_settings_yaml() -> str:
    """Return a settings YAML overriding a few defaults."""
    return """
custom_user_agent: "TestAgent/1.0"
show_debug_hud: true
export_expiry_days: 30
scripts:
  global:
    enabled: true
    source: "console.log('global');"
navigation:
  login_hosts:
    - accounts.google.com
    - sso.example.org
"""
