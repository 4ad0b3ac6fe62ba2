"""
Unit tests for user script composition.
"""

from pathlib import Path

import pytest

from temporaryai.schema import AppSettings, ScriptScope, ScriptSettings, ServiceIdentity
from temporaryai.scripts import (
    UserScript,
    build_user_scripts,
    load_bundled_script,
    resolve_script_source,
)


@pytest.fixture
def scripts_dir(temp_dir: Path) -> Path:
    """Directory holding a bundled ChatGPT script only."""
    (temp_dir / "chatgpt_default_script.js").write_text("/* bundled chatgpt */", encoding="utf-8")
    return temp_dir


class TestBundledScripts:
    """Tests for bundled default scripts."""

    def test_load_existing(self, scripts_dir: Path) -> None:
        assert load_bundled_script(ServiceIdentity.CHATGPT, scripts_dir) == "/* bundled chatgpt */"

    def test_missing_file(self, scripts_dir: Path) -> None:
        assert load_bundled_script(ServiceIdentity.GEMINI, scripts_dir) is None

    def test_no_directory(self) -> None:
        assert load_bundled_script(ServiceIdentity.CHATGPT, None) is None


class TestResolveScriptSource:
    """Stored source wins; blank service sources fall back to bundled."""

    def test_stored_source(self, scripts_dir: Path) -> None:
        settings = AppSettings(
            bundled_scripts_dir=scripts_dir,
            scripts={ScriptScope.CHATGPT: ScriptSettings(source="/* mine */")},
        )
        assert resolve_script_source(ScriptScope.CHATGPT, settings) == "/* mine */"

    def test_blank_falls_back_to_bundled(self, scripts_dir: Path) -> None:
        settings = AppSettings(
            bundled_scripts_dir=scripts_dir,
            scripts={ScriptScope.CHATGPT: ScriptSettings(source="   \n")},
        )
        assert resolve_script_source(ScriptScope.CHATGPT, settings) == "/* bundled chatgpt */"

    def test_no_bundled_gives_empty(self, scripts_dir: Path) -> None:
        settings = AppSettings(bundled_scripts_dir=scripts_dir)
        assert resolve_script_source(ScriptScope.GEMINI, settings) == ""

    def test_global_has_no_fallback(self, scripts_dir: Path) -> None:
        (scripts_dir / "global_default_script.js").write_text("/* never */")
        settings = AppSettings(bundled_scripts_dir=scripts_dir)
        assert resolve_script_source(ScriptScope.GLOBAL, settings) == ""


class TestBuildUserScripts:
    """Tests for the injected script list."""

    def test_defaults(self) -> None:
        scripts = build_user_scripts(ServiceIdentity.CHATGPT, AppSettings())
        assert scripts == [UserScript(source="window.__ENABLE_DEBUG_HUD = false;\n")]

    def test_debug_hud_flag(self) -> None:
        scripts = build_user_scripts(ServiceIdentity.GEMINI, AppSettings(show_debug_hud=True))
        assert scripts[0].source.startswith("window.__ENABLE_DEBUG_HUD = true;")

    def test_service_script_appended_to_flag(self, scripts_dir: Path) -> None:
        settings = AppSettings(bundled_scripts_dir=scripts_dir)
        scripts = build_user_scripts(ServiceIdentity.CHATGPT, settings)
        assert scripts[0].source == "window.__ENABLE_DEBUG_HUD = false;\n/* bundled chatgpt */"

    def test_disabled_service_script_keeps_flag(self, scripts_dir: Path) -> None:
        settings = AppSettings(
            bundled_scripts_dir=scripts_dir,
            scripts={ScriptScope.CHATGPT: ScriptSettings(enabled=False)},
        )
        scripts = build_user_scripts(ServiceIdentity.CHATGPT, settings)
        assert scripts[0].source == "window.__ENABLE_DEBUG_HUD = false;\n"

    def test_global_script_second(self) -> None:
        settings = AppSettings(
            scripts={ScriptScope.GLOBAL: ScriptSettings(source="console.log('g');")},
        )
        scripts = build_user_scripts(ServiceIdentity.CHATGPT, settings)
        assert len(scripts) == 2
        assert scripts[1].source == "console.log('g');"

    def test_disabled_global_script_omitted(self) -> None:
        settings = AppSettings(
            scripts={ScriptScope.GLOBAL: ScriptSettings(enabled=False, source="x();")},
        )
        assert len(build_user_scripts(ServiceIdentity.CHATGPT, settings)) == 1

    def test_blank_global_script_omitted(self) -> None:
        settings = AppSettings(scripts={ScriptScope.GLOBAL: ScriptSettings(source="  ")})
        assert len(build_user_scripts(ServiceIdentity.CHATGPT, settings)) == 1

    def test_scripts_run_at_document_start_in_main_frame(self) -> None:
        settings = AppSettings(scripts={ScriptScope.GLOBAL: ScriptSettings(source="g();")})
        for script in build_user_scripts(ServiceIdentity.GEMINI, settings):
            assert script.injection_time == "document_start"
            assert script.main_frame_only is True
