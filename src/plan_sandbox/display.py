# display.py
# All terminal output for the plan runner.
#
# This module owns presentation entirely. pipeline.py never formats strings —
# it calls named functions here. The audit log is the durable record; nothing
# printed here is needed to reconstruct a run.
#
# Colour language:
#   cyan    — pipeline lifecycle
#   yellow  — attestation / integrity checkpoints
#   green   — success / confirmed
#   red     — failures and halts (stderr)

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from plan_sandbox.models import ArtifactRecord, IntegrityReport, Plan, RunResult

console = Console()
err_console = Console(stderr=True)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _label(tag: str, color: str) -> Text:
    t = Text()
    t.append(f" {tag} ", style=f"bold white on {color}")
    return t


def _short(digest: str) -> str:
    if len(digest) <= 32:
        return digest
    return f"{digest[:24]}…{digest[-8:]}"


def set_quiet(quiet: bool) -> None:
    """Silence progress output. Halts on stderr are always shown."""
    console.quiet = quiet


# ---------------------------------------------------------------------------
# Run lifecycle
# ---------------------------------------------------------------------------


def run_start(plan_id: str, plan_path: str) -> None:
    console.print()
    console.print(Rule(f"[cyan]PLAN {escape(plan_id)}[/cyan]", style="cyan"))
    console.print(f"  [dim]Source:[/dim] [white]{escape(plan_path)}[/white]")


def plan_parsed(plan: Plan) -> None:
    console.print(
        f"  [dim]Skill :[/dim] [white]{escape(plan.skill_id)} v{escape(plan.skill_version)}[/white]\n"
        f"  [dim]Steps :[/dim] [white]{len(plan.steps)}[/white]"
    )


def attest_ok(digest: str) -> None:
    console.print(f"  [bold green]✓ Attestation verified[/bold green]  [dim]{_short(digest)}[/dim]")


def attest_fail(reason: str, expected: str | None = None, actual: str | None = None) -> None:
    body = f"[bold red]{escape(reason)}[/bold red]"
    if expected is not None:
        body += f"\n\n[dim]expected:[/dim] [white]{escape(expected)}[/white]\n[dim]actual  :[/dim] [white]{escape(str(actual))}[/white]"
    body += "\n[dim]No step was executed. No artifact was written.[/dim]"
    err_console.print(
        Panel(body, title=_label("ATTESTATION FAILED ✗", "red"), border_style="red", padding=(0, 2))
    )


def step_written(number: int, total: int, description: str, record: ArtifactRecord) -> None:
    console.print(
        f"  [bold cyan]STEP [{number:02d}/{total:02d}][/bold cyan]  [white]{escape(record.filename)}[/white]"
        f"  [dim]{escape(description)}[/dim]"
    )
    console.print(f"           [dim]sha256 {_short(record.content_hash)}[/dim]")


def integrity_result(report: IntegrityReport) -> None:
    if report.ok:
        console.print("  [bold green]✓ Integrity check passed[/bold green]")
        return
    console.print(
        Panel(
            "[bold yellow]Required artifacts missing:[/bold yellow]\n"
            + "\n".join(f"  - {escape(name)}" for name in report.missing),
            title=_label("INTEGRITY WARNING", "yellow"),
            border_style="yellow",
            padding=(0, 2),
        )
    )


def completed(result: RunResult, audit_path: str) -> None:
    table = Table(box=box.SIMPLE, show_header=True, header_style="bold dim", padding=(0, 1))
    table.add_column("Artifact", style="white")
    table.add_column("SHA-256", style="dim")
    for record in result.artifacts:
        table.add_row(record.filename, _short(record.content_hash))

    console.print()
    console.print(table)
    console.print(
        Panel(
            f"[bold green]Completed:[/bold green] [white]{escape(result.plan_id)}[/white]\n"
            f"[dim]Artifacts:[/dim] [white]{escape(result.artifact_dir)}[/white]\n"
            f"[dim]Audit log:[/dim] [white]{escape(audit_path)}[/white]",
            title=_label("DONE ✓", "green"),
            border_style="green",
            padding=(0, 2),
        )
    )


def halt(reason: str) -> None:
    err_console.print(Text.assemble(("✗ ", "bold red"), reason))
