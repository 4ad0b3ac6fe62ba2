"""
Schema definitions for TemporaryAI.

This module defines the Pydantic models used throughout TemporaryAI:
- ServiceIdentity/ServiceProfile: Which chat backend a session targets
- NavigationPolicy/TemporaryModeRules: Host allow-lists and per-service rules
- NavigationRequest/PolicyDecision: Input and output of the policy engine
- CookieRecord/ExportContainer: The cookie export file format
- AppSettings: User preferences passed explicitly to every component

Design Decisions:
    - Models are immutable (frozen=True); configuration changes replace objects
    - Wire models keep the exact field names of the export file via aliases
    - Wire models ignore unknown keys so files from newer writers still load
    - Service-specific URL heuristics are data, not code
"""

from datetime import UTC, datetime, timedelta
from enum import Enum
from pathlib import Path
from typing import Any

import yaml
from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_serializer,
    field_validator,
    model_validator,
)

from temporaryai.errors import SettingsError

# Cookie expiry timestamps are seconds relative to this date on the wire.
REFERENCE_DATE = datetime(2001, 1, 1, tzinfo=UTC)

# Upper bound for export expiry overrides (100 years)
MAX_EXPIRY_DAYS = 36500

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Safari/605.1.15"
)


# =============================================================================
# Enums
# =============================================================================


class ServiceIdentity(str, Enum):
    """The chat backend a session targets. Fixed for the life of a tab."""

    CHATGPT = "chatgpt"
    GEMINI = "gemini"

    @property
    def display_name(self) -> str:
        return {
            ServiceIdentity.CHATGPT: "ChatGPT",
            ServiceIdentity.GEMINI: "Gemini",
        }[self]


class NavigationType(str, Enum):
    """How the browser says a navigation was triggered."""

    LINK_ACTIVATED = "link_activated"
    FORM_SUBMITTED = "form_submitted"
    BACK_FORWARD = "back_forward"
    RELOAD = "reload"
    FORM_RESUBMITTED = "form_resubmitted"
    OTHER = "other"


class NavigationAction(str, Enum):
    """What the orchestrator must do with a navigation."""

    ALLOW = "allow"
    CANCEL = "cancel"
    FORCE_RESET = "force_reset"
    PROMPT_EXTERNAL = "prompt_external"


class ScriptScope(str, Enum):
    """Scope of a user script: every page, or one service's pages."""

    GLOBAL = "global"
    CHATGPT = "chatgpt"
    GEMINI = "gemini"

    @classmethod
    def for_service(cls, service: ServiceIdentity) -> "ScriptScope":
        return cls(service.value)


# =============================================================================
# Navigation Policy Models
# =============================================================================


class TemporaryModeRules(BaseModel):
    """
    Rules that decide whether a same-domain path leaves temporary mode.

    Attributes:
        always_allow_prefixes: Paths that must always load (login, OAuth callbacks, API)
        history_prefixes: Paths that show persisted history (library, saved or shared chats)
        home_paths: Paths that count as the service's home page
        required_query_param: Query parameter that marks the home page as temporary
        required_query_value: Value the parameter must carry
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    always_allow_prefixes: list[str] = Field(
        default_factory=lambda: ["/auth/", "/api/"],
        description="Path prefixes that are always allowed",
    )
    history_prefixes: list[str] = Field(
        default_factory=lambda: ["/library", "/c/", "/share/"],
        description="Path prefixes that open persisted history",
    )
    home_paths: list[str] = Field(
        default_factory=lambda: ["/", ""],
        description="Paths treated as the home page",
    )
    required_query_param: str = Field(
        default="temporary-chat",
        description="Query parameter marking the session as temporary",
        min_length=1,
    )
    required_query_value: str = Field(
        default="true",
        description="Required value of the temporary-mode query parameter",
    )


class ServiceProfile(BaseModel):
    """
    Everything the core knows about one chat service.

    Attributes:
        identity: Which service this profile describes
        entry_url: Canonical URL a session is reset to
        domain: The service's own domain (suffix-matched)
        cookie_domains: Domain suffixes whose cookies belong to the service
        temporary_mode: Temporary-mode rules, or None to allow all same-domain paths
        blocked_request_urls: Requests blocked outright by a content rule list
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    identity: ServiceIdentity = Field(..., description="Service identity")
    entry_url: str = Field(..., description="Canonical entry URL", min_length=1)
    domain: str = Field(..., description="The service's own domain", min_length=1)
    cookie_domains: list[str] = Field(
        default_factory=list,
        description="Domain suffixes exported and cleared for this service",
    )
    temporary_mode: TemporaryModeRules | None = Field(
        default=None,
        description="Temporary-mode rules (None = allow all same-domain navigation)",
    )
    blocked_request_urls: list[str] = Field(
        default_factory=list,
        description="URL prefixes blocked by the content rule list",
    )

    @field_validator("domain")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        return v.strip().lower().rstrip(".")


def default_service_profiles() -> dict[ServiceIdentity, ServiceProfile]:
    """Built-in profiles for the supported services."""
    return {
        ServiceIdentity.CHATGPT: ServiceProfile(
            identity=ServiceIdentity.CHATGPT,
            entry_url="https://chatgpt.com/?temporary-chat=true",
            domain="chatgpt.com",
            cookie_domains=["chatgpt.com", "openai.com"],
            temporary_mode=TemporaryModeRules(),
            blocked_request_urls=[
                "https://chatgpt.com/backend-api/conversations",
                "https://chatgpt.com/backend-api/conversation",
            ],
        ),
        ServiceIdentity.GEMINI: ServiceProfile(
            identity=ServiceIdentity.GEMINI,
            entry_url="https://gemini.google.com/app",
            domain="gemini.google.com",
            cookie_domains=["google.com"],
        ),
    }


class NavigationPolicy(BaseModel):
    """
    Static configuration for the navigation policy engine.

    Attributes:
        allowed_hosts: Primary domains whose content may load freely
        login_hosts: Identity-provider domains that must stay reachable
        allowed_schemes: URL schemes that may be navigated to at all
        services: Per-service profiles (missing services use built-in defaults)
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allowed_hosts: list[str] = Field(
        default_factory=lambda: [
            "chatgpt.com",
            "openai.com",
            "oaistatic.com",
            "oaiusercontent.com",
            "gemini.google.com",
        ],
        description="Primary domains allowed for the active service",
    )
    login_hosts: list[str] = Field(
        default_factory=lambda: [
            "auth.openai.com",
            "login.live.com",
            "accounts.google.com",
            "appleid.apple.com",
            "cdn.auth0.com",
        ],
        description="Identity-provider domains used by login flows",
    )
    allowed_schemes: list[str] = Field(
        default_factory=lambda: ["http", "https"],
        description="URL schemes that may be navigated to",
    )
    services: dict[ServiceIdentity, ServiceProfile] = Field(
        default_factory=default_service_profiles,
        description="Per-service profiles",
    )

    @field_validator("allowed_hosts", "login_hosts", "allowed_schemes")
    @classmethod
    def normalize_entries(cls, v: list[str]) -> list[str]:
        return [entry.strip().lower().rstrip(".") for entry in v if entry.strip()]

    @field_validator("services")
    @classmethod
    def fill_missing_services(
        cls, v: dict[ServiceIdentity, ServiceProfile]
    ) -> dict[ServiceIdentity, ServiceProfile]:
        """Services absent from a config file keep their built-in profile."""
        for identity, profile in v.items():
            if profile.identity != identity:
                msg = f"Profile for {identity.value} declares identity {profile.identity.value}"
                raise ValueError(msg)
        return {**default_service_profiles(), **v}

    def profile(self, service: ServiceIdentity) -> ServiceProfile:
        """Return the profile for a service."""
        return self.services[service]


# =============================================================================
# Navigation Runtime Models
# =============================================================================


class NavigationRequest(BaseModel):
    """
    One navigation attempt reported by the embedded browser.

    Attributes:
        url: Target URL as reported by the browser
        is_main_frame: Whether the top-level document is being replaced
        navigation_type: The browser's trigger classification
        is_user_initiated: Whether a user gesture (link click) started it
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str = Field(..., description="Target URL")
    is_main_frame: bool = Field(default=True, description="Targets the top-level frame")
    navigation_type: NavigationType = Field(
        default=NavigationType.OTHER,
        description="Trigger classification",
    )
    is_user_initiated: bool = Field(
        default=False,
        description="Directly triggered by a user gesture",
    )

    @classmethod
    def from_navigation(
        cls,
        url: str,
        navigation_type: NavigationType = NavigationType.OTHER,
        is_main_frame: bool = True,
    ) -> "NavigationRequest":
        """Build a request, treating only link activation as user-initiated."""
        return cls(
            url=url,
            is_main_frame=is_main_frame,
            navigation_type=navigation_type,
            is_user_initiated=navigation_type == NavigationType.LINK_ACTIVATED,
        )


class PolicyDecision(BaseModel):
    """
    Result of evaluating a navigation against the policy.

    Exactly one decision is produced per navigation. ``url`` is set only for
    PROMPT_EXTERNAL, where it names the page the user may open elsewhere.

    Attributes:
        action: What the orchestrator must do
        url: Target to offer for external opening (PROMPT_EXTERNAL only)
        reason: Human-readable explanation of the decision
        rule_matched: Which policy rule caused this decision
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: NavigationAction = Field(..., description="Decision kind")
    url: str | None = Field(default=None, description="External target URL")
    reason: str = Field(..., description="Human-readable explanation")
    rule_matched: str | None = Field(default=None, description="Rule that decided")

    @model_validator(mode="after")
    def check_url_matches_action(self) -> "PolicyDecision":
        if (self.action == NavigationAction.PROMPT_EXTERNAL) != (self.url is not None):
            msg = "url must be set exactly when action is prompt_external"
            raise ValueError(msg)
        return self

    @property
    def allowed(self) -> bool:
        return self.action == NavigationAction.ALLOW

    @classmethod
    def allow(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create an ALLOW decision."""
        return cls(action=NavigationAction.ALLOW, reason=reason, rule_matched=rule)

    @classmethod
    def cancel(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create a silent CANCEL decision."""
        return cls(action=NavigationAction.CANCEL, reason=reason, rule_matched=rule)

    @classmethod
    def force_reset(cls, reason: str, rule: str | None = None) -> "PolicyDecision":
        """Create a FORCE_RESET decision (reload the service's entry URL)."""
        return cls(action=NavigationAction.FORCE_RESET, reason=reason, rule_matched=rule)

    @classmethod
    def prompt_external(
        cls, url: str, reason: str, rule: str | None = None
    ) -> "PolicyDecision":
        """Create a PROMPT_EXTERNAL decision for ``url``."""
        return cls(
            action=NavigationAction.PROMPT_EXTERNAL,
            url=url,
            reason=reason,
            rule_matched=rule,
        )


# =============================================================================
# Cookie Export Models
# =============================================================================


class CookieRecord(BaseModel):
    """
    One browser cookie, as stored in an export file.

    ``expires`` is None for session-only cookies. On the wire it is a number
    of seconds since REFERENCE_DATE; ISO-8601 strings are accepted on input.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    name: str
    value: str
    domain: str
    path: str
    is_secure: bool = Field(..., alias="isSecure")
    is_http_only: bool = Field(..., alias="isHTTPOnly")
    expires: datetime | None = None

    @field_validator("expires", mode="before")
    @classmethod
    def parse_reference_timestamp(cls, v: Any) -> Any:
        if isinstance(v, bool):
            msg = "expires must be a timestamp"
            raise ValueError(msg)
        if isinstance(v, int | float):
            try:
                return REFERENCE_DATE + timedelta(seconds=v)
            except OverflowError:
                msg = "expires out of range"
                raise ValueError(msg) from None
        return v

    @field_validator("expires")
    @classmethod
    def ensure_timezone(cls, v: datetime | None) -> datetime | None:
        if v is not None and v.tzinfo is None:
            return v.replace(tzinfo=UTC)
        return v

    @field_serializer("expires")
    def serialize_expires(self, v: datetime | None) -> float | None:
        if v is None:
            return None
        return (v - REFERENCE_DATE).total_seconds()

    @property
    def identity(self) -> tuple[str, str, str]:
        """(domain, path, name): a store holds at most one cookie per identity."""
        return (self.domain, self.path, self.name)

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the export file's field names."""
        return self.model_dump(by_alias=True, mode="json")


class ExportContainer(BaseModel):
    """
    Versioned envelope of an export file.

    ``data`` holds the cookie list as JSON text when unencrypted, or
    base64(nonce || ciphertext || tag) when encrypted; ``salt`` is the base64
    key-derivation salt. The codec only ever writes containers where ``salt``
    is present exactly when ``is_encrypted`` is true. Parsing does not enforce
    this so that importing a broken file reports corrupted data.
    """

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    is_encrypted: bool = Field(..., alias="isEncrypted")
    data: str
    salt: str | None = None

    def to_wire(self) -> dict[str, Any]:
        """Serialize with the export file's field names."""
        return self.model_dump(by_alias=True, mode="json")


# =============================================================================
# Settings Models
# =============================================================================


class ScriptSettings(BaseModel):
    """A user script slot: whether it runs and its stored source."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    enabled: bool = Field(default=True, description="Whether the script is injected")
    source: str = Field(default="", description="Stored script source (blank = bundled)")


class AppSettings(BaseModel):
    """
    User preferences, passed explicitly to the components that read them.

    Attributes:
        navigation: Navigation policy configuration
        custom_user_agent: User agent override (blank = built-in desktop UA)
        allow_web_inspector: Enable the browser's developer tools
        show_debug_hud: Ask injected scripts to draw their debug overlay
        scripts: Per-scope user script settings
        bundled_scripts_dir: Directory with <service>_default_script.js fallbacks
        export_expiry_days: Default validity window applied to exported cookies
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    navigation: NavigationPolicy = Field(
        default_factory=NavigationPolicy,
        description="Navigation policy configuration",
    )
    custom_user_agent: str = Field(default="", description="User agent override")
    allow_web_inspector: bool = Field(default=False, description="Enable web inspector")
    show_debug_hud: bool = Field(default=False, description="Enable script debug HUD")
    scripts: dict[ScriptScope, ScriptSettings] = Field(
        default_factory=dict,
        description="Per-scope user script settings",
    )
    bundled_scripts_dir: Path | None = Field(
        default=None,
        description="Directory holding bundled default scripts",
    )
    export_expiry_days: float | None = Field(
        default=None,
        description="Default cookie validity override for exports, in days",
        gt=0,
        le=MAX_EXPIRY_DAYS,
    )

    @property
    def user_agent(self) -> str:
        return self.custom_user_agent.strip() or DEFAULT_USER_AGENT

    def script_settings(self, scope: ScriptScope) -> ScriptSettings:
        """Settings for a scope, falling back to an enabled, empty slot."""
        return self.scripts.get(scope, ScriptSettings())


# =============================================================================
# YAML Loading Helpers
# =============================================================================


def load_settings(path: Path | str) -> AppSettings:
    """
    Load settings from a YAML file.

    Args:
        path: Path to the YAML file

    Returns:
        Validated AppSettings object

    Raises:
        SettingsError: If the file can't be read or doesn't match the schema
    """
    path = Path(path)
    try:
        with path.open() as f:
            content = f.read()
    except OSError as e:
        raise SettingsError(path=str(path), underlying_error=str(e)) from e

    return load_settings_from_string(content, source=str(path))


def load_settings_from_string(content: str, source: str = "<string>") -> AppSettings:
    """Load settings from a YAML string. An empty document yields defaults."""
    try:
        data = yaml.safe_load(content)
        return AppSettings.model_validate(data or {})
    except (yaml.YAMLError, ValidationError) as e:
        raise SettingsError(path=source, underlying_error=str(e)) from e
