"""
CLI entry point for memoir-intake.
"""

import json
import logging
from datetime import datetime
from functools import wraps
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from memoir_intake.exceptions import MemoirIntakeError, format_error_for_cli
from memoir_intake.migrate.migrator import run_migration, save_report
from memoir_intake.onboarding import machine
from memoir_intake.onboarding.draft import OnboardingDraft, Stage
from memoir_intake.onboarding.registration import RegistrationDraft, build_private_payload
from memoir_intake.onboarding.steps import (
    ENTRY_OPTIONS,
    ENTRY_QUESTION,
    StepKind,
    get_path_label,
)
from memoir_intake.topics.classify import classify_topic
from memoir_intake.topics.routing import topic_destination
from memoir_intake.workspace import Workspace

app = typer.Typer(
    name="memoir-intake",
    help="Onboarding wizard, topic routing and profile migration for memoir workspaces",
    add_completion=False,
)
console = Console()
logger = logging.getLogger(__name__)

DRAFT_OPTION = typer.Option("default", "--draft", help="Draft id (user or session id)")


def handle_errors(func):
    """Decorator to handle exceptions in CLI commands with nice formatting."""

    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except typer.Exit:
            raise
        except MemoirIntakeError as e:
            console.print(format_error_for_cli(e))
            raise typer.Exit(1)
        except Exception as e:
            console.print(f"[red]Unexpected error:[/red] {str(e)}")
            console.print("\n[yellow]This may be a bug. Please report it with the command")
            console.print("you ran and the output of --verbose.[/yellow]")
            raise typer.Exit(1)

    return wrapper


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
):
    """Onboarding wizard, topic routing and profile migration for memoir workspaces."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(message)s",
            datefmt="[%X]",
            handlers=[RichHandler(console=console, rich_tracebacks=True)],
        )


# Onboarding subcommand group
onboarding_app = typer.Typer(help="Onboarding wizard commands (start, answer, next, complete)")
app.add_typer(onboarding_app, name="onboarding")


@app.command()
def init(
    workspace_dir: str = typer.Argument(..., help="Workspace directory to initialize"),
):
    """Initialize a new memoir-intake workspace."""
    console.print(f"[bold blue]Initializing workspace:[/bold blue] {workspace_dir}")

    workspace = Workspace(Path(workspace_dir))
    workspace.initialize()

    console.print(f"[green]✓ Created directory structure in {workspace_dir}[/green]")
    console.print("[green]✓ Wrote configuration to memoir-intake.yaml[/green]")

    console.print("\n[dim]Next steps:[/dim]")
    console.print(f"  cd {workspace_dir}")
    console.print("  memoir-intake onboarding start")


@app.command()
def classify(text: str = typer.Argument(..., help="Prompt text to classify")):
    """Classify a prompt into a topic and show where its answer is stored."""
    topic = classify_topic(text)
    destination = topic_destination(topic)
    console.print(f"[bold]Topic:[/bold] {topic}")
    console.print(f"[bold]Destination:[/bold] {destination}")


@app.command()
@handle_errors
def route(topic: str = typer.Argument(..., help="Topic name, e.g. 'family'")):
    """Show the storage destination of a topic."""
    console.print(str(topic_destination(topic)))


@app.command()
@handle_errors
def migrate(
    report: bool = typer.Option(False, "--report", help="Write a YAML run report to runs/"),
):
    """
    Move influences, role models and values out of life event records.

    Records titled "Influences: ...", "Werte: ..." and so on are merged into
    the user's profile and then deleted. Safe to run more than once.
    """
    workspace = Workspace(Path.cwd()).require()
    settings = workspace.migration_settings()

    console.print("[bold blue]Migrating profile data out of life events...[/bold blue]")
    result = run_migration(workspace.record_store(), settings)

    table = Table(title="Migration result")
    table.add_column("Analyzed", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_column("Updated", justify="right")
    table.add_column("Errors", justify="right")
    table.add_row(
        str(result.analyzed), str(result.deleted), str(result.updated), str(len(result.errors))
    )
    console.print(table)

    for error in result.errors:
        console.print(f"  [red]✗ {error}[/red]")

    if report:
        timestamp = datetime.now().isoformat().replace(":", "-").split(".")[0]
        report_file = save_report(result, workspace.root / "runs" / f"migrate-{timestamp}.yaml")
        relative = report_file.relative_to(workspace.root)
        console.print(f"[green]✓ Report written to {relative}[/green]")

    if result.errors:
        console.print("[yellow]⚠ Some users were not migrated; re-run after fixing them[/yellow]")
        raise typer.Exit(result.exit_code)

    console.print("[green]✓ Migration finished without errors[/green]")


@onboarding_app.command()
@handle_errors
def start(
    answer_id: str | None = typer.Argument(None, help="Entry answer id (entry_1 .. entry_5)"),
    draft_id: str = DRAFT_OPTION,
):
    """Show the entry question, or answer it to choose a path."""
    workspace = Workspace(Path.cwd()).require()
    store = workspace.draft_store()

    if answer_id is None:
        console.print(f"[bold]{ENTRY_QUESTION}[/bold]")
        for option in ENTRY_OPTIONS:
            console.print(f"  [cyan]{option.id}[/cyan] {option.label}")
            if option.description:
                console.print(f"    [dim]{option.description}[/dim]")
        return

    draft = machine.submit_entry_answer(store.load(draft_id), answer_id).unwrap()
    store.save(draft_id, draft)
    console.print(f"[green]✓ {get_path_label(draft.path)}[/green]")
    _print_draft(draft)


@onboarding_app.command()
@handle_errors
def answer(
    step_id: str = typer.Argument(..., help="Current step id, e.g. A2"),
    value: str = typer.Argument(..., help="Option id, or a JSON list/object/null"),
    draft_id: str = DRAFT_OPTION,
):
    """Answer the current step."""
    _transition(draft_id, machine.submit_step_answer, step_id, _parse_value(value))


@onboarding_app.command()
@handle_errors
def toggle(
    step_id: str = typer.Argument(..., help="Current multi step id"),
    option_id: str = typer.Argument(..., help="Option to select or deselect"),
    draft_id: str = DRAFT_OPTION,
):
    """Select or deselect an option of the current multi step."""
    _transition(draft_id, machine.toggle_option, step_id, option_id)


@onboarding_app.command(name="set-field")
@handle_errors
def set_field(
    step_id: str = typer.Argument(..., help="Current demographics step id"),
    field_id: str = typer.Argument(..., help="Field id, e.g. ageRange"),
    value: str = typer.Argument(..., help="Option id, or a JSON list for multiple fields"),
    draft_id: str = DRAFT_OPTION,
):
    """Set one field of the current demographics step."""
    _transition(draft_id, machine.set_field_value, step_id, field_id, _parse_value(value))


@onboarding_app.command(name="next")
@handle_errors
def next_step(draft_id: str = DRAFT_OPTION):
    """
    Move to the next step, or on to registration after the last one.

    A neutral choice on a decision step is not followed here; run
    `onboarding neutral` to open the neutral excursion.
    """
    _transition(draft_id, machine.advance)


@onboarding_app.command()
@handle_errors
def back(draft_id: str = DRAFT_OPTION):
    """Go back one step."""
    _transition(draft_id, machine.retreat)


@onboarding_app.command()
@handle_errors
def neutral(
    to_registration: bool = typer.Option(
        False, "--to-registration", help="Leave the excursion and continue to registration"
    ),
    draft_id: str = DRAFT_OPTION,
):
    """Open the neutral storytelling excursion, or leave it for registration."""
    if to_registration:
        _transition(draft_id, machine.exit_neutral_excursion, True)
    else:
        _transition(draft_id, machine.enter_neutral_excursion)


@onboarding_app.command()
@handle_errors
def resume(draft_id: str = DRAFT_OPTION):
    """Leave the neutral excursion and resume at the decision step."""
    _transition(draft_id, machine.exit_neutral_excursion)


@onboarding_app.command()
@handle_errors
def complete(
    first_name: str = typer.Option(..., "--first-name", help="First name or nickname"),
    email: str = typer.Option(..., "--email", help="E-mail address"),
    last_name: str = typer.Option("", "--last-name", help="Last name"),
    method: str = typer.Option("password", "--method", help="Sign-up method (password|google)"),
    address: str | None = typer.Option(None, "--address", help="Form of address (du|sie)"),
    draft_id: str = DRAFT_OPTION,
):
    """Complete registration and print the onboarding record."""
    registration = RegistrationDraft(
        first_name_or_nickname=first_name,
        email=email,
        method=method,
        last_name=last_name,
    )
    draft = _transition(
        draft_id, machine.complete_registration, registration, address, show=False
    )
    console.print("[green]✓ Onboarding completed[/green]")
    console.print_json(json.dumps(build_private_payload(draft), ensure_ascii=False))


@onboarding_app.command()
@handle_errors
def show(draft_id: str = DRAFT_OPTION):
    """Show the stored draft."""
    workspace = Workspace(Path.cwd()).require()
    _print_draft(workspace.draft_store().load(draft_id))


@onboarding_app.command()
@handle_errors
def reset(draft_id: str = DRAFT_OPTION):
    """Discard the stored draft and start over."""
    workspace = Workspace(Path.cwd()).require()
    workspace.draft_store().clear(draft_id)
    console.print(f"[green]✓ Draft {draft_id} discarded[/green]")


def _transition(draft_id: str, operation, *args: Any, show: bool = True) -> OnboardingDraft:
    """Load a draft, apply one state machine operation and save the result."""
    workspace = Workspace(Path.cwd()).require()
    store = workspace.draft_store()

    draft = operation(store.load(draft_id), *args).unwrap()
    store.save(draft_id, draft)
    if show:
        _print_draft(draft)
    return draft


def _parse_value(raw: str) -> Any:
    """Parse a JSON value; anything that is not JSON is taken as a plain option id."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        return raw


def _print_draft(draft: OnboardingDraft) -> None:
    console.print(f"[bold]Stage:[/bold] {draft.stage}")

    if draft.stage is Stage.ENTRY:
        console.print("[dim]Run 'memoir-intake onboarding start' to see the entry question[/dim]")
        return

    console.print(f"[bold]Path:[/bold] {get_path_label(draft.path)}")

    if draft.stage is Stage.NEUTRAL:
        console.print(
            "[dim]Neutral storytelling excursion. Use 'resume' or 'neutral "
            "--to-registration' to leave it.[/dim]"
        )
        return
    if draft.stage is Stage.REGISTRATION:
        console.print("[dim]Register with 'memoir-intake onboarding complete'[/dim]")
        return
    if draft.stage is Stage.COMPLETED:
        console.print(f"[bold]Completed:[/bold] {draft.completed_at}")
        return

    step = machine.current_step(draft)
    position, total = machine.progress(draft)
    console.print(f"[bold]{step.title}[/bold] ({position}/{total}, {step.kind})")
    console.print(step.prompt)

    for option in step.options:
        console.print(f"  [cyan]{option.id}[/cyan] {option.label}")
        if option.cta_url:
            console.print(f"    [dim]{option.cta_label}: {option.cta_url}[/dim]")
    for field in step.fields:
        console.print(f"  [cyan]{field.id}[/cyan] {field.label}")
        console.print(f"    [dim]{', '.join(field.option_ids())}[/dim]")

    answer_value = draft.responses.get(step.id)
    if step.kind is not StepKind.INFO and answer_value is not None:
        status = "complete" if machine.is_step_complete(step, answer_value) else "incomplete"
        rendered = json.dumps(answer_value, ensure_ascii=False)
        console.print(f"[bold]Answer:[/bold] {rendered} [dim]({status})[/dim]")


if __name__ == "__main__":
    app()
