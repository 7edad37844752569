"""
Main CLI application using Typer.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional, Annotated

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from ..adapters.json_store import JsonStore
from ..config import AppConfig, get_default_config_path
from ..domain.exceptions import AdmissionError, SchedulingError
from ..services.scheduling_service import SchedulingService

app = typer.Typer(
    name="slotbook",
    help="Publish bookable meeting slots and accept bookings without double booking",
    add_completion=False
)

console = Console()

ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to config file. Defaults to ./config.yaml"),
]
VerboseOption = Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging.")]


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build_service(config_file: Optional[Path], window_days: Optional[int] = None) -> SchedulingService:
    """Load the configuration and wire the JSON store into the service."""
    config_path = config_file or get_default_config_path()
    config = AppConfig.load_from_yaml(config_path)
    store = JsonStore.from_config(config)
    return SchedulingService(store=store, window_days=window_days or config.window_days)


@app.command()
def availability(
    event_type_id: Annotated[str, typer.Argument(help="Id of the event type")],
    config_file: ConfigOption = None,
    days: Annotated[Optional[int], typer.Option("--days", "-d", min=1, max=365, help="Number of days to look ahead")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print the raw availability list as JSON.")] = False,
    verbose: VerboseOption = False,
):
    """
    Show the bookable slots of an event type.

    Examples:

        slotbook availability intro-call
        slotbook availability intro-call --days 7 --json
    """
    _configure_logging(verbose)

    try:
        service = _build_service(config_file, window_days=days)
        result = asyncio.run(service.get_availability(event_type_id))
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if as_json:
        console.print_json(data=[day.to_dict() for day in result])
        return

    if not result:
        console.print(f"[yellow]⚠ No bookable slots for '{event_type_id}'.[/yellow]")
        return

    table = Table(
        title=f"Available slots: {event_type_id}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Date", style="bold yellow")
    table.add_column("Slots")

    for day in result:
        table.add_row(
            day.date.format("ddd, YYYY-MM-DD"),
            "  ".join(slot.label for slot in day.slots)
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def book(
    event_type_id: Annotated[str, typer.Argument(help="Id of the event type")],
    start: Annotated[str, typer.Argument(help="Start as ISO-8601, e.g. 2026-11-02T10:00+01:00")],
    name: Annotated[str, typer.Option("--name", "-n", help="Attendee name")],
    email: Annotated[str, typer.Option("--email", "-e", help="Attendee email")],
    note: Annotated[Optional[str], typer.Option("--note", help="Optional note for the owner")] = None,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    Book a slot of an event type.

    Example:

        slotbook book intro-call 2026-11-02T10:00 --name "Ada" --email ada@example.com
    """
    _configure_logging(verbose)

    try:
        service = _build_service(config_file)
        booking = asyncio.run(
            service.book(
                event_type_id=event_type_id,
                start=start,
                attendee_name=name,
                attendee_email=email,
                note=note,
            )
        )
    except AdmissionError as e:
        console.print(f"[bold red]✗ Rejected ({e.code}):[/bold red] {e}")
        raise typer.Exit(1)
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    console.print(Panel.fit(
        f"[bold green]✓ Booking confirmed[/bold green]\n\n"
        f"[bold]When:[/bold] {booking.interval}\n"
        f"[bold]Attendee:[/bold] {booking.attendee.name} <{booking.attendee.email}>\n"
        f"[bold]Id:[/bold] {booking.id}",
        title=event_type_id
    ))


@app.command()
def events(
    username: Annotated[str, typer.Argument(help="Public username of the owner")],
    include_private: Annotated[bool, typer.Option("--all", help="Include private event types.")] = False,
    config_file: ConfigOption = None,
    verbose: VerboseOption = False,
):
    """
    List the event types of an owner with their booking counts.
    """
    _configure_logging(verbose)

    try:
        service = _build_service(config_file)
        summaries = asyncio.run(service.list_event_types(username, include_private=include_private))
    except FileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)
    except (SchedulingError, ValueError) as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(1)

    if not summaries:
        console.print(f"[yellow]No event types for '{username}'.[/yellow]")
        return

    table = Table(
        title=f"Event types of {username}",
        show_header=True,
        header_style="bold cyan"
    )
    table.add_column("Id", style="bold yellow")
    table.add_column("Title")
    table.add_column("Duration", justify="right")
    table.add_column("Bookings", justify="right")
    table.add_column("Private", style="dim")

    for summary in summaries:
        event_type = summary.event_type
        table.add_row(
            event_type.id,
            event_type.title,
            f"{event_type.duration_minutes} min",
            str(summary.booking_count),
            "yes" if event_type.is_private else ""
        )

    console.print()
    console.print(table)
    console.print()


@app.command()
def version():
    """
    Show version information.
    """
    from .. import __version__
    console.print(f"\n[bold cyan]slotbook[/bold cyan] version [bold]{__version__}[/bold]\n")


if __name__ == "__main__":
    app()
