"""
CLI entry point for TemporaryAI.

This module provides the Typer-based command-line interface used to inspect
the navigation policy and to move session cookies between machines.

Commands:
    check-url   Show the policy decision for a navigation
    export      Export a service's cookies from a cookie database
    import      Import an export file into a cookie database
    clear       Delete a service's cookies from a cookie database

Architecture Note:
    The CLI only parses arguments and prints results. Policy decisions and
    the export format live in the policy and cookies packages.
"""

import asyncio
import json
import logging
from datetime import timedelta
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from temporaryai import __version__
from temporaryai.cookies import CookieCodec, SqliteCookieStore
from temporaryai.errors import TemporaryAIError
from temporaryai.policy import NavigationPolicyEngine
from temporaryai.schema import (
    MAX_EXPIRY_DAYS,
    AppSettings,
    NavigationAction,
    NavigationRequest,
    NavigationType,
    ServiceIdentity,
    load_settings,
)

app = typer.Typer(
    name="temporaryai",
    help="Temporary-mode navigation policy and encrypted cookie transfer.",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()

_ACTION_STYLES = {
    NavigationAction.ALLOW: "green",
    NavigationAction.CANCEL: "yellow",
    NavigationAction.FORCE_RESET: "red",
    NavigationAction.PROMPT_EXTERNAL: "cyan",
}


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]temporaryai[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config: Annotated[
        Optional[Path],
        typer.Option(
            "--config",
            "-c",
            help="Path to a settings YAML file.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", help="Log policy decisions and cookie operations."),
    ] = False,
    version: Annotated[
        Optional[bool],
        typer.Option(
            "--version",
            "-v",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
) -> None:
    """
    TemporaryAI - keep a chat service locked to its temporary mode.
    """
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
        )
    try:
        ctx.obj = load_settings(config) if config else AppSettings()
    except TemporaryAIError as e:
        console.print(f"[red]Error loading settings: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)


def _settings(ctx: typer.Context) -> AppSettings:
    return ctx.obj if isinstance(ctx.obj, AppSettings) else AppSettings()


def _fail(error: TemporaryAIError) -> None:
    console.print(f"[red]{escape(str(error))}[/red]")
    raise typer.Exit(code=1)


ServiceOption = Annotated[
    ServiceIdentity,
    typer.Option("--service", "-s", help="Service the session is locked to."),
]
DbOption = Annotated[
    Path,
    typer.Option("--db", help="Path to the SQLite cookie database.", resolve_path=True),
]
PasswordOption = Annotated[
    Optional[str],
    typer.Option(
        "--password",
        "-p",
        help="Export password (empty = unencrypted).",
        envvar="TEMPORARYAI_PASSWORD",
    ),
]
DomainOption = Annotated[
    Optional[list[str]],
    typer.Option(
        "--domain",
        "-d",
        help="Cookie domain suffix (repeatable). Defaults to the service's domains.",
    ),
]


@app.command("check-url")
def check_url(
    ctx: typer.Context,
    url: Annotated[str, typer.Argument(help="Navigation target URL.")],
    service: ServiceOption = ServiceIdentity.CHATGPT,
    sub_frame: Annotated[
        bool,
        typer.Option("--sub-frame", help="Treat as a sub-resource / nested frame load."),
    ] = False,
    user_initiated: Annotated[
        bool,
        typer.Option("--user-initiated", help="Treat as a user link click."),
    ] = False,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output the decision as JSON."),
    ] = False,
) -> None:
    """
    Show what the policy engine decides for a navigation.

    Example:
        $ temporaryai check-url "https://chatgpt.com/c/123"
    """
    engine = NavigationPolicyEngine(_settings(ctx).navigation, service)
    request = NavigationRequest.from_navigation(
        url,
        NavigationType.LINK_ACTIVATED if user_initiated else NavigationType.OTHER,
        is_main_frame=not sub_frame,
    )
    decision = engine.decide(request)

    if json_output:
        print(json.dumps({
            **decision.model_dump(mode="json"),
            "entry_url": engine.entry_url,
            "external": engine.is_external_domain(url),
        }, indent=2))
        return

    style = _ACTION_STYLES[decision.action]
    table = Table(show_header=False, box=None)
    # Rule names such as history_prefixes[/c/] must not be read as markup
    table.add_row("URL", escape(url))
    table.add_row("Service", service.display_name)
    table.add_row("Decision", f"[{style}]{decision.action.value}[/{style}]")
    table.add_row("Reason", escape(decision.reason))
    table.add_row("Rule", escape(decision.rule_matched or "-"))
    if decision.action == NavigationAction.FORCE_RESET:
        table.add_row("Reset to", escape(engine.entry_url))
    console.print(table)


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    output: Annotated[Path, typer.Argument(help="Export file to write.", resolve_path=True)],
    db: DbOption,
    service: ServiceOption = ServiceIdentity.CHATGPT,
    domain: DomainOption = None,
    password: PasswordOption = None,
    expiry_days: Annotated[
        Optional[float],
        typer.Option(
            "--expiry-days",
            help="Override every cookie's expiry to now + N days.",
            min=0.0,
            max=MAX_EXPIRY_DAYS,
        ),
    ] = None,
) -> None:
    """
    Export a service's cookies, optionally encrypted with a password.

    Example:
        $ temporaryai export cookies.json --db cookies.db --password secret
    """
    settings = _settings(ctx)
    domains = domain or settings.navigation.profile(service).cookie_domains
    days = expiry_days if expiry_days is not None else settings.export_expiry_days
    duration = timedelta(days=days) if days else None

    try:
        with SqliteCookieStore(db) as store:
            text = asyncio.run(
                CookieCodec().export_cookies(store, domains, password, duration)
            )
        output.write_text(text, encoding="utf-8")
    except TemporaryAIError as e:
        _fail(e)
    except OSError as e:
        console.print(f"[red]Could not write {escape(str(output))}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    kind = "encrypted" if password else "unencrypted"
    console.print(
        f"[green]✓[/green] Exported {kind} cookies to [bold]{escape(str(output))}[/bold]"
    )


@app.command("import")
def import_cmd(
    input_path: Annotated[
        Path,
        typer.Argument(
            help="Export file to read.",
            exists=True,
            readable=True,
            resolve_path=True,
        ),
    ],
    db: DbOption,
    password: PasswordOption = None,
) -> None:
    """
    Import cookies from an export file (current or legacy format).

    Example:
        $ temporaryai import cookies.json --db cookies.db --password secret
    """
    try:
        content = input_path.read_text(encoding="utf-8")
        with SqliteCookieStore(db) as store:
            count = asyncio.run(CookieCodec().import_cookies(store, content, password))
    except TemporaryAIError as e:
        _fail(e)
    except (OSError, UnicodeDecodeError) as e:
        console.print(f"[red]Could not read {escape(str(input_path))}: {escape(str(e))}[/red]")
        raise typer.Exit(code=1)

    console.print(
        f"[green]✓[/green] Imported {count} cookies into [bold]{escape(str(db))}[/bold]"
    )


@app.command("clear")
def clear_cmd(
    ctx: typer.Context,
    db: DbOption,
    service: ServiceOption = ServiceIdentity.CHATGPT,
    domain: DomainOption = None,
) -> None:
    """
    Delete a service's cookies from a cookie database.

    Example:
        $ temporaryai clear --db cookies.db --service gemini
    """
    domains = domain or _settings(ctx).navigation.profile(service).cookie_domains
    try:
        with SqliteCookieStore(db) as store:
            count = asyncio.run(CookieCodec().clear_cookies(store, domains))
    except TemporaryAIError as e:
        _fail(e)

    console.print(f"[green]✓[/green] Cleared {count} cookies")


if __name__ == "__main__":
    app()
