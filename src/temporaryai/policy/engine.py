"""
Navigation Policy Engine for TemporaryAI.

The policy engine is the privacy boundary of the wrapper. Every navigation
the embedded browser attempts passes through it, and every loophole here is
a way out of temporary mode.

Design Principles:
    - Total: Every URL/frame/trigger combination maps to exactly one decision
    - Fail-closed: Unparseable input becomes CANCEL, never an exception
    - Predictable: Same inputs always produce same decisions
    - Auditable: All decisions include a reason and the rule that fired

How it works (first match wins):
    1. Scheme not allowed                         -> CANCEL
    2. Not the top-level frame                    -> ALLOW
    3. No host, or ambiguous authority            -> CANCEL
    4. Host on an allow-list, active service's
       own domain                                 -> temporary-mode rules
    5. Host on an allow-list otherwise            -> ALLOW
    6. Unknown host, user clicked                 -> PROMPT_EXTERNAL
    7. Unknown host, anything else                -> FORCE_RESET

Security Note:
    Host matching is suffix-based on label boundaries, so
    "evilchatgpt.com" never matches "chatgpt.com".
"""

import logging
from urllib.parse import SplitResult, parse_qsl, urlsplit

from temporaryai.errors import (
    InvalidURLError,
    MissingHostError,
    NavigationError,
    UnsupportedSchemeError,
)
from temporaryai.schema import (
    NavigationPolicy,
    NavigationRequest,
    PolicyDecision,
    ServiceIdentity,
    ServiceProfile,
    TemporaryModeRules,
)

logger = logging.getLogger(__name__)


def domain_matches(host: str, entry: str) -> bool:
    """
    Check if a host matches an allow-list entry.

    Examples:
        chatgpt.com matches chatgpt.com
        auth.chatgpt.com matches chatgpt.com
        evilchatgpt.com does not match chatgpt.com
    """
    host = host.lower().rstrip(".")
    entry = entry.lower().rstrip(".")
    if not host or not entry:
        return False
    return host == entry or host.endswith("." + entry)


class NavigationPolicyEngine:
    """
    Decides what the browser may do with each navigation.

    Usage:
        engine = NavigationPolicyEngine(NavigationPolicy(), ServiceIdentity.CHATGPT)
        decision = engine.decide(NavigationRequest(url="https://chatgpt.com/c/1"))
        if decision.action == NavigationAction.FORCE_RESET:
            browser.load_url(engine.entry_url)

    The engine holds configuration only; it keeps no per-navigation state and
    is safe to call from any thread.

    Attributes:
        policy: The navigation policy being enforced
        service: The service identity of the session this engine guards
    """

    def __init__(self, policy: NavigationPolicy, service: ServiceIdentity) -> None:
        self.service = service
        self.set_policy(policy)

    def set_policy(self, policy: NavigationPolicy) -> None:
        """Replace the policy (e.g. after the user edits settings)."""
        self.policy = policy
        self._profile: ServiceProfile = policy.profile(self.service)
        self._allowed_schemes = frozenset(policy.allowed_schemes)
        self._known_hosts = tuple(dict.fromkeys(policy.allowed_hosts + policy.login_hosts))

    @property
    def profile(self) -> ServiceProfile:
        return self._profile

    @property
    def entry_url(self) -> str:
        """Where FORCE_RESET sends the browser."""
        return self._profile.entry_url

    def decide(self, request: NavigationRequest) -> PolicyDecision:
        """
        Evaluate one navigation request.

        Args:
            request: The navigation reported by the browser

        Returns:
            Exactly one PolicyDecision. Never raises.
        """
        try:
            decision = self._decide(request)
        except NavigationError as e:
            decision = PolicyDecision.cancel(e.message, rule=type(e).__name__)

        logger.debug(
            "%s navigation to %s -> %s (%s)",
            self.service.value,
            request.url,
            decision.action.value,
            decision.rule_matched,
        )
        return decision

    def is_external_domain(self, url: str) -> bool:
        """
        Check whether a URL's host is on neither allow-list.

        URLs without a parseable host are not considered external. Used to
        ignore route-change observations for pages that are not ours.
        """
        try:
            host = urlsplit(url).hostname
        except ValueError:
            return False
        if not host:
            return False
        return self._matching_entry(host) is None

    # =========================================================================
    # Decision steps
    # =========================================================================

    def _decide(self, request: NavigationRequest) -> PolicyDecision:
        parts = self._split(request.url)

        if parts.scheme not in self._allowed_schemes:
            raise UnsupportedSchemeError(url=request.url, scheme=parts.scheme)

        # Sub-resources and nested frames cannot move the user anywhere
        if not request.is_main_frame:
            return PolicyDecision.allow("Not a top-level navigation", rule="sub_frame")

        host = self._host(parts, request.url)

        matched = self._matching_entry(host)
        if matched is not None:
            if domain_matches(host, self._profile.domain):
                return self._evaluate_service_path(parts)
            return PolicyDecision.allow(
                f"Host allowed: {matched}",
                rule=f"allowed_hosts[{matched}]",
            )

        if request.is_user_initiated:
            return PolicyDecision.prompt_external(
                request.url,
                f"User opened external link: {host}",
                rule="external_user_initiated",
            )

        return PolicyDecision.force_reset(
            f"Unsolicited navigation to external host: {host}",
            rule="external_programmatic",
        )

    def _evaluate_service_path(self, parts: SplitResult) -> PolicyDecision:
        """Apply the active service's temporary-mode rules to a same-domain URL."""
        rules = self._profile.temporary_mode
        if rules is None:
            return PolicyDecision.allow(
                f"Same-domain navigation for {self.service.display_name}",
                rule="service_domain",
            )

        path = parts.path
        for prefix in rules.always_allow_prefixes:
            if path.startswith(prefix):
                return PolicyDecision.allow(
                    f"Authentication/API path: {path}",
                    rule=f"always_allow_prefixes[{prefix}]",
                )

        for prefix in rules.history_prefixes:
            if path.startswith(prefix):
                return PolicyDecision.force_reset(
                    f"Path opens persisted history: {path}",
                    rule=f"history_prefixes[{prefix}]",
                )

        if path in rules.home_paths and not self._has_temporary_marker(parts.query, rules):
            return PolicyDecision.force_reset(
                f"Home page without {rules.required_query_param}={rules.required_query_value}",
                rule="required_query_param",
            )

        return PolicyDecision.allow(
            f"Stays in temporary mode: {path or '/'}",
            rule="temporary_mode",
        )

    # =========================================================================
    # Helpers
    # =========================================================================

    def _split(self, url: str) -> SplitResult:
        try:
            return urlsplit(url.strip())
        except ValueError as e:
            raise InvalidURLError(url=url, underlying_error=str(e)) from e

    def _host(self, parts: SplitResult, url: str) -> str:
        # Browsers and urlsplit disagree on where such an authority's host is
        if "\\" in parts.netloc or "@" in parts.netloc:
            raise InvalidURLError(url=url, underlying_error="ambiguous authority")
        try:
            host = parts.hostname
        except ValueError as e:
            raise InvalidURLError(url=url, underlying_error=str(e)) from e
        if not host:
            raise MissingHostError(url=url)
        return host

    def _matching_entry(self, host: str) -> str | None:
        for entry in self._known_hosts:
            if domain_matches(host, entry):
                return entry
        return None

    @staticmethod
    def _has_temporary_marker(query: str, rules: TemporaryModeRules) -> bool:
        for key, value in parse_qsl(query, keep_blank_values=True):
            if key == rules.required_query_param and value == rules.required_query_value:
                return True
        return False
