"""
Chat session glue between the embedded browser and the policy engine.

A ChatSession is the toolkit-independent half of one browser tab. The GUI
layer forwards browser events to it and receives instructions back; the
browser itself is passed in on every call as a BrowserHandle, so a session
never holds a reference to a view that may already be gone.

Browser events handled:
    - handle_navigation:   interception hook, before every frame load
    - observe_url_change:  passive URL observation (single-page-app routing)
    - handle_new_window:   page asked to open a new window
"""

import json
import logging
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from temporaryai.policy import NavigationPolicyEngine
from temporaryai.schema import (
    AppSettings,
    NavigationAction,
    NavigationRequest,
    NavigationType,
    PolicyDecision,
    ServiceIdentity,
)
from temporaryai.scripts import UserScript, build_user_scripts

logger = logging.getLogger(__name__)

# Asks the user whether to open a URL outside the wrapper.
ExternalPrompt = Callable[[str], bool]
# Opens a URL in the system's default application.
ExternalOpener = Callable[[str], None]


class BrowserHandle(ABC):
    """Capability handle for the browser view a session is driving."""

    @abstractmethod
    def load_url(self, url: str) -> None:
        """Start loading a URL in the top-level frame."""


@dataclass(frozen=True)
class BrowserConfiguration:
    """
    Settings the GUI applies when it creates the browser view.

    Attributes:
        user_agent: User agent string to present
        developer_extras: Whether the web inspector is available
        user_scripts: Scripts to inject at document start
        content_rules_json: Content-blocker rule list (JSON) or None
        javascript_can_open_windows: Let pages request new windows
    """

    user_agent: str
    developer_extras: bool
    user_scripts: list[UserScript] = field(default_factory=list)
    content_rules_json: str | None = None
    javascript_can_open_windows: bool = True


def build_content_rules(blocked_urls: list[str]) -> str | None:
    """Render a content-blocker rule list blocking each URL prefix."""
    if not blocked_urls:
        return None
    rules = [
        {"trigger": {"url-filter": url}, "action": {"type": "block"}}
        for url in blocked_urls
    ]
    return json.dumps(rules, indent=2)


class ChatSession:
    """
    One tab's navigation state machine, minus the GUI.

    Usage:
        session = ChatSession(ServiceIdentity.CHATGPT, settings, prompt_external=ask)
        proceed = session.handle_navigation(request, browser)

    Attributes:
        service: The service this session is locked to
        settings: Current settings (replace with apply_settings)
        engine: The policy engine guarding this session
    """

    def __init__(
        self,
        service: ServiceIdentity,
        settings: AppSettings | None = None,
        prompt_external: ExternalPrompt | None = None,
        open_external: ExternalOpener | None = None,
    ) -> None:
        self.service = service
        self.settings = settings or AppSettings()
        self.engine = NavigationPolicyEngine(self.settings.navigation, service)
        self._prompt_external = prompt_external
        self._open_external = open_external

    @property
    def entry_url(self) -> str:
        return self.engine.entry_url

    def apply_settings(self, settings: AppSettings) -> None:
        """Replace settings; the navigation policy takes effect immediately."""
        self.settings = settings
        self.engine.set_policy(settings.navigation)

    def load_entry(self, browser: BrowserHandle) -> None:
        """Send the browser back to the service's temporary-mode entry URL."""
        browser.load_url(self.entry_url)

    # =========================================================================
    # Browser events
    # =========================================================================

    def handle_navigation(self, request: NavigationRequest, browser: BrowserHandle) -> bool:
        """
        Apply the policy to an intercepted navigation.

        Returns:
            True if the browser may proceed with the load, False to cancel it
        """
        decision = self.engine.decide(request)

        if decision.action == NavigationAction.ALLOW:
            return True
        if decision.action == NavigationAction.FORCE_RESET:
            self.load_entry(browser)
        elif decision.action == NavigationAction.PROMPT_EXTERNAL:
            self._offer_external(decision.url)
        return False

    def observe_url_change(self, url: str, browser: BrowserHandle) -> PolicyDecision | None:
        """
        Check a URL change the interception hook did not see.

        External pages are ignored; they never arrive through client-side
        routing and would otherwise be misclassified. Only FORCE_RESET is
        acted on.

        Returns:
            The decision, or None if the URL was ignored
        """
        if self.engine.is_external_domain(url):
            return None

        decision = self.engine.decide(NavigationRequest(url=url))
        if decision.action == NavigationAction.FORCE_RESET:
            logger.info("Route change left temporary mode, resetting: %s", url)
            self.load_entry(browser)
        return decision

    def handle_new_window(
        self,
        url: str,
        navigation_type: NavigationType,
        browser: BrowserHandle,
    ) -> PolicyDecision:
        """
        Handle a page asking to open a new window.

        No window is ever created. Allowed targets load in the current view,
        where the interception hook evaluates them again.
        """
        request = NavigationRequest(
            url=url,
            is_main_frame=True,
            navigation_type=navigation_type,
            is_user_initiated=True,
        )
        decision = self.engine.decide(request)

        if decision.action == NavigationAction.PROMPT_EXTERNAL:
            self._offer_external(decision.url)
        elif decision.action in (NavigationAction.ALLOW, NavigationAction.FORCE_RESET):
            browser.load_url(url)
        return decision

    # =========================================================================
    # Browser setup
    # =========================================================================

    def browser_configuration(self) -> BrowserConfiguration:
        """Everything needed to create this session's browser view."""
        return BrowserConfiguration(
            user_agent=self.settings.user_agent,
            developer_extras=self.settings.allow_web_inspector,
            user_scripts=build_user_scripts(self.service, self.settings),
            content_rules_json=build_content_rules(self.engine.profile.blocked_request_urls),
        )

    def _offer_external(self, url: str | None) -> None:
        if url is None or self._prompt_external is None:
            return
        if self._prompt_external(url) and self._open_external is not None:
            self._open_external(url)
