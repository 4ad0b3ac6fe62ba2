"""
Integration tests for the command-line interface.

Tests cover:
- check-url table and JSON output
- Settings loading via --config
- export / import / clear against SQLite cookie databases
- Error reporting and exit codes
"""

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from temporaryai import __version__
from temporaryai.cli import app
from temporaryai.cookies import SqliteCookieStore
from temporaryai.schema import CookieRecord

runner = CliRunner()


@pytest.fixture
def seeded_db(temp_dir: Path, sample_cookies: list[CookieRecord]) -> Path:
    """SQLite cookie database holding the sample cookies."""
    db = temp_dir / "source.db"
    with SqliteCookieStore(db) as store:
        for cookie in sample_cookies:
            store.upsert(cookie)
    return db


def cookie_names(db: Path) -> set[str]:
    with SqliteCookieStore(db) as store:
        return {c.name for c in store.list_cookies()}


class TestVersion:
    """Tests for --version."""

    def test_version(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output


class TestCheckUrl:
    """Tests for the check-url command."""

    def test_history_url_resets(self) -> None:
        result = runner.invoke(app, ["check-url", "https://chatgpt.com/c/123"])
        assert result.exit_code == 0
        assert "force_reset" in result.output
        assert "Reset to" in result.output

    def test_table_shows_full_rule_name(self) -> None:
        """Bracketed rule names are printed literally, not read as markup."""
        result = runner.invoke(app, ["check-url", "https://chatgpt.com/c/123"])
        assert result.exit_code == 0
        assert "history_prefixes[/c/]" in result.output

    def test_table_allow_listed_host(self) -> None:
        result = runner.invoke(app, ["check-url", "https://accounts.google.com/x"])
        assert result.exit_code == 0
        assert "allowed_hosts[accounts.google.com]" in result.output
        assert "Host allowed: accounts.google.com" in result.output

    def test_table_url_with_brackets(self) -> None:
        result = runner.invoke(app, ["check-url", "https://example.com/[/b]"])
        assert result.exit_code == 0
        assert "https://example.com/[/b]" in result.output

    def test_temporary_home_allowed(self) -> None:
        result = runner.invoke(app, ["check-url", "https://chatgpt.com/?temporary-chat=true"])
        assert result.exit_code == 0
        assert "allow" in result.output

    def test_json_output(self) -> None:
        result = runner.invoke(
            app, ["check-url", "https://example.com/", "--user-initiated", "--json"]
        )
        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["action"] == "prompt_external"
        assert data["url"] == "https://example.com/"
        assert data["external"] is True
        assert data["entry_url"] == "https://chatgpt.com/?temporary-chat=true"

    def test_sub_frame(self) -> None:
        result = runner.invoke(
            app, ["check-url", "https://ads.example.com/", "--sub-frame", "--json"]
        )
        data = json.loads(result.output)
        assert data["action"] == "allow"
        assert data["rule_matched"] == "sub_frame"

    def test_gemini_service(self) -> None:
        result = runner.invoke(
            app, ["check-url", "https://gemini.google.com/app/abc", "-s", "gemini", "--json"]
        )
        data = json.loads(result.output)
        assert data["action"] == "allow"
        assert data["entry_url"] == "https://gemini.google.com/app"

    def test_bad_scheme_cancelled(self) -> None:
        result = runner.invoke(app, ["check-url", "file:///etc/passwd", "--json"])
        assert result.exit_code == 0
        assert json.loads(result.output)["action"] == "cancel"

    def test_unknown_service(self) -> None:
        result = runner.invoke(app, ["check-url", "https://chatgpt.com/", "-s", "bard"])
        assert result.exit_code != 0


class TestConfig:
    """Tests for --config."""

    def test_config_changes_policy(self, temp_dir: Path) -> None:
        config = temp_dir / "settings.yaml"
        config.write_text(
            "navigation:\n"
            "  allowed_hosts: [chatgpt.com, docs.example.org]\n"
        )
        result = runner.invoke(
            app,
            ["-c", str(config), "check-url", "https://docs.example.org/page", "--json"],
        )
        assert result.exit_code == 0
        assert json.loads(result.output)["action"] == "allow"

    def test_invalid_config(self, temp_dir: Path) -> None:
        config = temp_dir / "settings.yaml"
        config.write_text("not_a_setting: 1\n")
        result = runner.invoke(app, ["-c", str(config), "check-url", "https://chatgpt.com/"])
        assert result.exit_code == 1
        assert "Error loading settings" in result.output

    def test_missing_config(self, temp_dir: Path) -> None:
        result = runner.invoke(
            app,
            ["-c", str(temp_dir / "nope.yaml"), "check-url", "https://chatgpt.com/"],
        )
        assert result.exit_code != 0


class TestExportImport:
    """Tests for export, import and clear."""

    def test_encrypted_round_trip(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        target_db = temp_dir / "target.db"

        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "--password", "pw"],
        )
        assert result.exit_code == 0
        assert "Exported encrypted cookies" in result.output
        assert json.loads(export_file.read_text())["isEncrypted"] is True

        result = runner.invoke(
            app,
            ["import", str(export_file), "--db", str(target_db), "--password", "pw"],
        )
        assert result.exit_code == 0
        assert "Imported 3 cookies" in result.output
        assert cookie_names(target_db) == {
            "__Secure-next-auth.session-token",
            "oai-did",
            "auth0",
        }

    def test_password_from_environment(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db)],
            env={"TEMPORARYAI_PASSWORD": "from-env"},
        )
        assert result.exit_code == 0
        assert json.loads(export_file.read_text())["isEncrypted"] is True

    def test_unencrypted_export(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db)],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 0
        assert "Exported unencrypted cookies" in result.output
        container = json.loads(export_file.read_text())
        assert container["isEncrypted"] is False
        assert container["salt"] is None

    def test_export_with_domain_option(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "-d", "example.com"],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 0
        data = json.loads(json.loads(export_file.read_text())["data"])
        assert [c["name"] for c in data] == ["tracker"]

    def test_export_expiry_override(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "--expiry-days", "1"],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 0
        data = json.loads(json.loads(export_file.read_text())["data"])
        assert all(c["expires"] is not None for c in data)

    def test_export_expiry_days_too_large(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        result = runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "--expiry-days", "4000000"],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code != 0
        assert not isinstance(result.exception, OverflowError)
        assert not export_file.exists()

    def test_import_out_of_range_expiry(
        self, temp_dir: Path, sample_cookies: list[CookieRecord]
    ) -> None:
        wire = sample_cookies[0].to_wire()
        wire["expires"] = 1e20
        legacy = temp_dir / "far-future.json"
        legacy.write_text(json.dumps([wire]))

        result = runner.invoke(
            app,
            ["import", str(legacy), "--db", str(temp_dir / "target.db")],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 1
        assert "E3003" in result.output

    def test_import_wrong_password(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "--password", "right"],
        )
        result = runner.invoke(
            app,
            [
                "import",
                str(export_file),
                "--db",
                str(temp_dir / "target.db"),
                "--password",
                "wrong",
            ],
        )
        assert result.exit_code == 1
        assert "E2002" in result.output
        assert "Invalid password" in result.output

    def test_import_without_password(self, temp_dir: Path, seeded_db: Path) -> None:
        export_file = temp_dir / "cookies.json"
        runner.invoke(
            app,
            ["export", str(export_file), "--db", str(seeded_db), "--password", "pw"],
        )
        result = runner.invoke(
            app,
            ["import", str(export_file), "--db", str(temp_dir / "target.db")],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 1
        assert "E3001" in result.output

    def test_import_legacy_file(
        self, temp_dir: Path, sample_cookies: list[CookieRecord]
    ) -> None:
        legacy = temp_dir / "legacy.json"
        legacy.write_text(json.dumps([c.to_wire() for c in sample_cookies]))
        target_db = temp_dir / "target.db"

        result = runner.invoke(
            app,
            ["import", str(legacy), "--db", str(target_db)],
            env={"TEMPORARYAI_PASSWORD": ""},
        )
        assert result.exit_code == 0
        assert "Imported 4 cookies" in result.output

    def test_import_garbage(self, temp_dir: Path) -> None:
        garbage = temp_dir / "garbage.json"
        garbage.write_text("hello")
        result = runner.invoke(
            app,
            ["import", str(garbage), "--db", str(temp_dir / "target.db")],
        )
        assert result.exit_code == 1
        assert "E3003" in result.output

    def test_clear(self, seeded_db: Path) -> None:
        result = runner.invoke(app, ["clear", "--db", str(seeded_db)])
        assert result.exit_code == 0
        assert "Cleared 3 cookies" in result.output
        assert cookie_names(seeded_db) == {"tracker"}

    def test_clear_gemini(self, seeded_db: Path) -> None:
        result = runner.invoke(app, ["clear", "--db", str(seeded_db), "-s", "gemini"])
        assert result.exit_code == 0
        assert "Cleared 0 cookies" in result.output
        assert len(cookie_names(seeded_db)) == 4
