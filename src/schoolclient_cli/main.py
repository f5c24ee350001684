"""CLI entry point for the schoolclient tool.

This module is the composition root of the application.  It is the only
place that imports concrete implementations (StoredTokenAuth,
SchoolClient).  All other layers depend solely on abstractions.
"""

import asyncio
import json
import logging
import sys
from datetime import datetime
from pathlib import Path

# Ensure UTF-8 output on Windows where stdout may default to cp1252.
# reconfigure() is a no-op when encoding is already utf-8.
if hasattr(sys.stdout, "reconfigure"):
    sys.stdout.reconfigure(encoding="utf-8", errors="replace")
if hasattr(sys.stderr, "reconfigure"):
    sys.stderr.reconfigure(encoding="utf-8", errors="replace")

import httpx
import typer
from rich.console import Console
from rich.table import Table

from schoolclient.auth import credentials as token_store
from schoolclient.client import SchoolClient
from schoolclient.config import Settings
from schoolclient.core.exceptions import (
    AuthenticationRequiredError,
    RequestBuildError,
    SessionExpiredError,
)
from schoolclient.providers.school_api.auth import StoredTokenAuth

app = typer.Typer(help="Authenticated client for the school API.")
auth_app = typer.Typer(help="Manage stored API tokens.")
api_app = typer.Typer(help="Call the school API.")

app.add_typer(auth_app, name="auth")
app.add_typer(api_app, name="api")

console = Console(legacy_windows=False)


@app.callback()
def main(
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Log requests and responses."
    ),
):
    """Authenticated client for the school API."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _get_settings() -> Settings:
    """Return settings from the environment, exiting on invalid values."""
    try:
        return Settings.from_env()
    except ValueError as e:
        console.print(f"[red]Invalid configuration:[/red] {e}")
        raise typer.Exit(1)


def _get_auth(settings: Settings) -> StoredTokenAuth:
    """Build the credential provider for *settings*."""
    return StoredTokenAuth(
        api_url=settings.api_url,
        refresh_path=settings.refresh_path,
        timeout=settings.timeout,
    )


def _parse_params(pairs: list[str]) -> dict[str, str]:
    """Turn ``key=value`` strings into a query-parameter dictionary."""
    params: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            console.print(f"[red]Invalid parameter (expected key=value):[/red] {pair}")
            raise typer.Exit(1)
        params[key] = value
    return params


def _print_response(response: httpx.Response) -> None:
    """Print a response body as pretty JSON, falling back to plain text."""
    try:
        body = response.json()
    except ValueError:
        print(response.text)
        return
    print(json.dumps(body, indent=2, ensure_ascii=False))


async def _call(
    settings: Settings, method: str, path: str, *, upload: bool = False, **kwargs
) -> httpx.Response:
    """Perform one call through the standard or the upload profile."""
    async with SchoolClient(_get_auth(settings), settings) as school:
        client = school.uploads if upload else school.api
        return await client.request(method, path, **kwargs)


def _run(settings: Settings, method: str, path: str, **kwargs) -> None:
    """Run a call, print its reply and map failures to exit codes."""
    try:
        response = asyncio.run(_call(settings, method, path, **kwargs))
    except SessionExpiredError as e:
        console.print(f"[red]✗ {e.message}[/red]")
        console.print("Run [bold]schoolclient auth set[/bold] to store new tokens.")
        raise typer.Exit(1)
    except httpx.HTTPStatusError as e:
        console.print(
            f"[red]✗ {e.response.status_code} {e.response.reason_phrase}[/red] "
            f"{e.request.method} {e.request.url}"
        )
        if e.response.text:
            console.print(e.response.text, markup=False)
        raise typer.Exit(1)
    except httpx.TransportError as e:
        console.print(f"[red]✗ No response from the server:[/red] {e!r}")
        raise typer.Exit(1)
    except RequestBuildError as e:
        console.print(f"[red]✗ {e}:[/red] {e.__cause__}")
        raise typer.Exit(1)
    _print_response(response)


# ---------------------------------------------------------------------------
# auth commands
# ---------------------------------------------------------------------------


@auth_app.command("set")
def set_tokens():
    """Save an access/refresh token pair issued by the web application."""
    console.print("\n[bold]School API token setup[/bold]\n")
    console.print(
        "Log in to the web application, then copy [cyan]accessToken[/cyan] "
        "and [cyan]refreshToken[/cyan] from the browser's local storage "
        "(DevTools → Application → Local Storage).\n"
    )
    access_token = typer.prompt("Paste the accessToken value", hide_input=True)
    refresh_token = typer.prompt(
        "Paste the refreshToken value (optional)",
        default="",
        show_default=False,
        hide_input=True,
    )
    token_store.save_tokens(access_token, refresh_token or None)
    console.print(
        f"[green]✓ Tokens saved to:[/green] {token_store.tokens_path()}"
    )


@auth_app.command()
def status():
    """Show the stored tokens and the user they belong to."""
    settings = _get_settings()
    auth = _get_auth(settings)
    try:
        auth.require_token()
    except AuthenticationRequiredError:
        console.print("[yellow]No tokens configured.[/yellow]")
        console.print("Run [bold]schoolclient auth set[/bold].")
        raise typer.Exit(1)

    console.print(f"[green]✓ Access token[/green]  {auth.token_source()}")
    claims = auth.current_user()
    if claims is None:
        console.print("  [yellow]Token is not a decodable JWT.[/yellow]")
        return

    exp = claims.get("exp")
    if isinstance(exp, (int, float)):
        expiry = datetime.fromtimestamp(exp).strftime(
            "%Y-%m-%d %H:%M:%S"
        )
        state = (
            "[green]valid[/green]"
            if auth.is_authenticated()
            else "[red]expired[/red]"
        )
        console.print(f"  Expires : {expiry} ({state})")
    elif exp is not None:
        console.print(f"  [yellow]Unreadable expiry:[/yellow] {exp!r}")

    table = Table(title="Current user", show_header=False)
    table.add_column("Claim", style="cyan")
    table.add_column("Value")
    for claim in ("_id", "email", "nombre", "apellidos", "tipo", "escuelaId"):
        if claim in claims:
            table.add_row(claim, str(claims[claim]))
    console.print(table)


@auth_app.command()
def clear():
    """Remove the locally saved tokens."""
    if token_store.clear_tokens():
        console.print("[green]✓ Tokens removed.[/green]")
    else:
        console.print("[yellow]No saved tokens found.[/yellow]")


# ---------------------------------------------------------------------------
# api commands
# ---------------------------------------------------------------------------


@api_app.command()
def get(
    path: str,
    param: list[str] = typer.Option(
        [], "--param", "-p", help="Query parameter as key=value (repeatable)."
    ),
):
    """GET a resource, e.g. ``schoolclient api get /usuarios``."""
    settings = _get_settings()
    _run(settings, "GET", path, params=_parse_params(param) or None)


@api_app.command()
def send(
    method: str,
    path: str,
    data: str | None = typer.Option(None, "--data", "-d", help="JSON request body."),
    param: list[str] = typer.Option(
        [], "--param", "-p", help="Query parameter as key=value (repeatable)."
    ),
):
    """Send METHOD to PATH with an optional JSON body."""
    settings = _get_settings()
    body = None
    if data is not None:
        try:
            body = json.loads(data)
        except json.JSONDecodeError as e:
            console.print(f"[red]Invalid JSON body:[/red] {e}")
            raise typer.Exit(1)
    _run(
        settings,
        method.upper(),
        path,
        json=body,
        params=_parse_params(param) or None,
    )


@api_app.command()
def upload(
    path: str,
    file: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True),
    field: str = typer.Option("archivo", "--field", "-f", help="Form field name."),
):
    """Upload FILE as multipart/form-data to PATH."""
    settings = _get_settings()
    content = file.read_bytes()
    _run(
        settings,
        "POST",
        path,
        upload=True,
        files={field: (file.name, content)},
    )
