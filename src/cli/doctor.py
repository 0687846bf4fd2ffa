"""Doctor command for environment diagnostics."""

from __future__ import annotations

import typer
from rich.console import Console
from rich.table import Table

from adapters.http_client import build_ssl_context
from core.config import ClientSettings, write_user_env_vars
from core.errors import BlackfireError
from core.services import BlackfireClient

app = typer.Typer(no_args_is_help=True, help="Environment diagnostics and configuration checks.")

_console = Console()


def _check_tls(settings: ClientSettings) -> tuple[bool, str]:
    try:
        build_ssl_context(settings)
    except (OSError, ValueError) as exc:
        return False, str(exc)
    return True, str(settings.ca_bundle_path or "certifi bundle")


def _check_api(settings: ClientSettings) -> tuple[bool, str]:
    try:
        with BlackfireClient(settings) as client:
            apps = client.list_apps()
    except BlackfireError as exc:
        return False, str(exc)
    return True, f"{len(apps)} app(s) visible"


@app.command()
def run() -> None:
    """Run baseline diagnostics and show recommended fixes."""

    settings = ClientSettings()

    table = Table(title="Blackfire Doctor")
    table.add_column("Check", style="bright_green", no_wrap=True)
    table.add_column("Status", style="white")
    table.add_column("Details", style="dim")

    table.add_row("Endpoint", "OK", settings.endpoint)
    if settings.has_credentials:
        table.add_row("Credentials", "OK", f"client id {settings.client_id}")
    else:
        table.add_row("Credentials", "FAIL", "Set BLACKFIRE_CLIENT_ID and BLACKFIRE_CLIENT_TOKEN")
    table.add_row("Default app", "OK", settings.app or "(first app)")

    ok_tls, detail_tls = _check_tls(settings)
    table.add_row("TLS trust store", "OK" if ok_tls else "FAIL", detail_tls)

    if settings.has_credentials and ok_tls:
        ok_api, detail_api = _check_api(settings)
        table.add_row("API access", "OK" if ok_api else "FAIL", detail_api)

    _console.print(table)

    if not settings.has_credentials:
        _console.print("\n[yellow]Note:[/yellow] run `blackfire doctor configure` to store credentials.")


@app.command()
def configure() -> None:
    """Interactive setup (stores credentials in the user config .env)."""

    endpoint = typer.prompt("API endpoint", default="https://blackfire.io", show_default=True).strip()
    client_id = typer.prompt("Client ID").strip()
    client_token = typer.prompt("Client token", hide_input=True, confirmation_prompt=False).strip()
    default_app = typer.prompt("Default app (empty = first app)", default="", show_default=False).strip()

    if not endpoint.lower().startswith("https://"):
        raise typer.BadParameter("endpoint must use https://")
    if not client_id or not client_token:
        raise typer.BadParameter("client id and client token are required")

    env_path = write_user_env_vars(
        {
            "BLACKFIRE_ENDPOINT": endpoint,
            "BLACKFIRE_CLIENT_ID": client_id,
            "BLACKFIRE_CLIENT_TOKEN": client_token,
            "BLACKFIRE_APP": default_app,
        }
    )

    _console.print(f"[green]Saved Blackfire config to:[/green] {env_path}")
