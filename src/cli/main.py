"""CLI principal (Typer).

Comandos:
- `apps`: lista las apps visibles con las credenciales actuales.
- `build start` / `build end`: abre y cierra builds (útil en CI).
- `doctor`: diagnóstico de entorno y configuración.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler

from cli import doctor
from cli.ui_components import build_apps_table, build_report_panel, print_banner
from core.config import ClientSettings
from core.domain.session import Build
from core.errors import BlackfireError
from core.services import BlackfireClient

app = typer.Typer(no_args_is_help=True, help="Blackfire profiling API client.")
build_app = typer.Typer(no_args_is_help=True, help="Open and close builds.")
app.add_typer(build_app, name="build")
app.add_typer(doctor.app, name="doctor")

_console = Console()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every API call."),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def _parse_metadata(values: list[str]) -> dict[str, str]:
    metadata: dict[str, str] = {}
    for item in values:
        if "=" not in item:
            raise typer.BadParameter(f"metadata must be key=value, got {item!r}")
        key, value = item.split("=", 1)
        metadata[key.strip()] = value.strip()
    return metadata


def _fail(exc: BlackfireError) -> NoReturn:
    _console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


@app.command()
def apps() -> None:
    """List the applications (collab tokens) visible with the current credentials."""

    print_banner(_console)
    try:
        with BlackfireClient(ClientSettings()) as client:
            tokens = client.list_apps()
    except BlackfireError as exc:
        _fail(exc)
    _console.print(build_apps_table(tokens))


@build_app.command("start")
def build_start(
    app_name: str = typer.Argument("", help="App name (substring match); empty = default app."),
    title: str | None = typer.Option(None, "--title", help="Build title."),
    trigger: str | None = typer.Option(None, "--trigger", help="Trigger name (e.g. CI provider)."),
    meta: list[str] = typer.Option([], "--meta", help="Metadata as key=value (repeatable)."),
) -> None:
    """Open a build and print its uuid and app token."""

    metadata = _parse_metadata(meta)
    settings = ClientSettings()
    try:
        with BlackfireClient(settings) as client:
            build = client.start_build(app_name or settings.app, title, trigger, metadata)
    except BlackfireError as exc:
        _fail(exc)
    _console.print(f"[green]Build started:[/green] {build.uuid}")
    _console.print(f"App token: {build.app}")


@build_app.command("end")
def build_end(
    uuid: str = typer.Argument(..., help="Build uuid returned by `build start`."),
    app_token: str = typer.Option(..., "--app", help="App collab token of the build."),
    jobs: int = typer.Option(0, "--jobs", min=0, help="Number of jobs run in the build."),
    wait: bool = typer.Option(True, "--wait/--no-wait", help="Wait for the build report."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the report as JSON."),
) -> None:
    """Close a build and (optionally) wait for its report."""

    build = Build(app=app_token, uuid=uuid, job_count=jobs)
    try:
        with BlackfireClient(ClientSettings()) as client:
            report = client.end_build(build, wait=wait)
    except BlackfireError as exc:
        _fail(exc)

    if report is None:
        _console.print(f"[green]Build closed:[/green] {uuid} ({jobs} job(s))")
        return

    _console.print(build_report_panel(report))
    if output is not None:
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(report.model_dump_json(indent=2) + "\n", encoding="utf-8")
        _console.print(f"[dim]Report written to {output}[/dim]")
    if report.is_errored:
        raise typer.Exit(code=1)


def run() -> None:
    app()


if __name__ == "__main__":
    run()
