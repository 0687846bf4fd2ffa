"""Componentes de UI para CLI (Rich).

Por qué separar componentes:
- Evita mezclar lógica de comandos con detalles visuales.
- Permite reutilizar tablas/paneles en múltiples comandos.
"""

from __future__ import annotations

from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from core.domain.models import CollabToken, Report


def print_banner(console: Console) -> None:
    title = Text("Blackfire SDK", style="bold cyan")
    subtitle = Text("Profiles • Builds • Referencias", style="dim")
    body = Align.center(Text.assemble(title, "\n", subtitle), vertical="middle")
    console.print(Panel(body, border_style="cyan", padding=(1, 4)))


def build_apps_table(tokens: list[CollabToken]) -> Table:
    """Tabla de apps (collab tokens) con sus slots de referencia."""

    table = Table(title="Applications")
    table.add_column("#", style="dim", no_wrap=True)
    table.add_column("Name", style="cyan")
    table.add_column("Collab token", style="white")
    table.add_column("Slots", style="green")
    table.add_column("Empty slots", style="magenta")
    for index, token in enumerate(tokens):
        empty = sum(1 for slot in token.profile_slots if slot.empty)
        table.add_row(
            str(index),
            token.name or "",
            token.token,
            str(len(token.profile_slots)),
            str(empty),
        )
    return table


def build_report_panel(report: Report) -> Panel:
    """Panel para presentar el `Report` de un build."""

    if report.is_successful:
        style = "green"
    elif report.is_errored:
        style = "red"
    else:
        style = "yellow"

    body = Text()
    body.append(f"Build: {report.uuid or 'N/A'}\n")
    body.append(f"State: {report.report_state or 'unknown'}\n", style=f"bold {style}")
    if report.url:
        body.append(f"\n{report.url}", style="dim")

    return Panel(body, title=Text("Build report", style=f"bold {style}"), border_style=style)
