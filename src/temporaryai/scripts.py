"""
User script composition.

The browser injects scripts at document start on every page load. Their
contents are opaque to the core; this module only decides which sources are
injected for a service and in what order.
"""

import logging
from dataclasses import dataclass
from pathlib import Path

from temporaryai.schema import AppSettings, ScriptScope, ServiceIdentity

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UserScript:
    """A script handed to the browser's injection sink."""

    source: str
    injection_time: str = "document_start"
    main_frame_only: bool = True


def load_bundled_script(service: ServiceIdentity, scripts_dir: Path | None) -> str | None:
    """Read <service>_default_script.js from the bundled scripts directory."""
    if scripts_dir is None:
        return None
    path = Path(scripts_dir) / f"{service.value}_default_script.js"
    try:
        return path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except OSError as e:
        logger.warning("Could not read bundled script %s: %s", path, e)
        return None


def resolve_script_source(scope: ScriptScope, settings: AppSettings) -> str:
    """
    Return the source to inject for a scope.

    Service scopes fall back to the bundled default when the stored source is
    blank; the global scope has no default.
    """
    stored = settings.script_settings(scope).source
    if stored.strip() or scope == ScriptScope.GLOBAL:
        return stored
    bundled = load_bundled_script(ServiceIdentity(scope.value), settings.bundled_scripts_dir)
    return bundled or ""


def build_user_scripts(service: ServiceIdentity, settings: AppSettings) -> list[UserScript]:
    """
    Compose the scripts injected into every page of a session.

    The service script always comes first and always carries the debug HUD
    flag, even when the service scope is disabled. The global script follows
    only when enabled and non-blank.
    """
    hud = "true" if settings.show_debug_hud else "false"
    source = f"window.__ENABLE_DEBUG_HUD = {hud};\n"

    service_scope = ScriptScope.for_service(service)
    if settings.script_settings(service_scope).enabled:
        source += resolve_script_source(service_scope, settings)

    scripts = [UserScript(source=source)]

    if settings.script_settings(ScriptScope.GLOBAL).enabled:
        global_source = resolve_script_source(ScriptScope.GLOBAL, settings)
        if global_source.strip():
            scripts.append(UserScript(source=global_source))

    return scripts
