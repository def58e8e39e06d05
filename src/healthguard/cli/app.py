"""Main CLI application using Typer."""
import asyncio
from collections.abc import Callable

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..chat import ChatSession, MessageRole
from ..config import CREDITS_PER_MESSAGE
from ..diseases import search_diseases
from ..errors import HealthGuardError, InsufficientCreditsError, StreamInterruptedError
from ..places import AMENITY_TAGS, OverpassPlaceFinder, Place
from ..storage import HealthEntry
from ..tracking import load_stats
from .providers import get_context, get_settings, get_user_id, setup_logging

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="healthguard",
    help="Health assistant chat, lifestyle logging, disease lookup and credits from the terminal",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

USER_OPTION = typer.Option(None, "--user", "-u", help="User id (default: $HEALTHGUARD_USER)")


@app.callback()
def main(
    log_level: str = typer.Option(
        None,
        "--log-level",
        "-L",
        help="Logging level (default: $HEALTHGUARD_LOG_LEVEL or WARNING)"
    )
):
    """Configure logging for every command."""
    setup_logging(log_level or get_settings().log_level, console)


def _printer() -> Callable[[str], None]:
    """Build an on_delta callback that prints only the new part of the reply."""
    printed = 0

    def _print(content: str) -> None:
        nonlocal printed
        console.print(content[printed:], end="", markup=False, highlight=False)
        printed = len(content)

    return _print


async def _send(session: ChatSession, text: str) -> None:
    console.print("[bold magenta]AKASHII[/bold magenta] ", end="")
    try:
        await session.send(text, on_delta=_printer())
    finally:
        console.print()


@app.command()
def chat(
    user: str = USER_OPTION,
    history: bool = typer.Option(True, "--history/--no-history", help="Show stored history first"),
):
    """Chat with the health assistant (type /quit to leave, /credits for balance)."""
    user_id = get_user_id(user, console)

    async def _chat():
        async with get_context() as ctx:
            try:
                session = await ctx.init(user_id)
            except HealthGuardError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

            if ctx.daily_award:
                console.print(f"[green]+{ctx.daily_award} login credits![/green]")
            for message in session.messages if history else session.messages[:1]:
                speaker = "You" if message.role is MessageRole.USER else "AKASHII"
                console.print(f"[bold]{speaker}[/bold] {message.content}")

            while True:
                text = await asyncio.to_thread(console.input, "[bold cyan]You[/bold cyan] ")
                command = text.strip().lower()
                if command in ("/quit", "/exit"):
                    break
                if command == "/credits":
                    console.print(f"[dim]{await ctx.ledger.balance()} credits[/dim]")
                    continue
                if command == "/clear":
                    await session.clear()
                    console.print("[dim]History cleared.[/dim]")
                    continue
                if not command:
                    continue

                try:
                    await _send(session, text)
                except InsufficientCreditsError as e:
                    console.print(f"[yellow]Insufficient credits: {e}[/yellow]")
                except StreamInterruptedError as e:
                    console.print(f"[red]Connection error: {e}[/red]")
                except HealthGuardError as e:
                    console.print(f"[red]Error: {e}[/red]")

    try:
        asyncio.run(_chat())
    except (KeyboardInterrupt, EOFError):
        console.print("\n[dim]Bye.[/dim]")


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question for the assistant"),
    user: str = USER_OPTION,
):
    """Ask a single question and stream the reply."""
    user_id = get_user_id(user, console)

    async def _ask():
        async with get_context() as ctx:
            try:
                session = await ctx.init(user_id, load_history=False)
                await _send(session, question)
                console.print(f"[dim]{CREDITS_PER_MESSAGE} credits used, {await ctx.ledger.balance()} left[/dim]")
            except HealthGuardError as e:
                console.print(f"[red]Error: {e}[/red]")
                raise typer.Exit(code=1)

    asyncio.run(_ask())


@app.command()
def diseases(
    query: str = typer.Argument(None, help="Name, symptom or category to look for"),
    category: str = typer.Option(None, "--category", "-c", help="Restrict to one category ('all' for every category)"),
    remote: bool = typer.Option(False, "--remote", "-r", help="Query the search-disease function instead of the bundled catalog"),
    list_categories: bool = typer.Option(False, "--categories", help="List categories and exit"),
):
    """Search the disease catalog."""
    async def _remote() -> dict:
        async with get_context() as ctx:
            return await ctx.client.search_diseases(query, category)

    try:
        if remote:
            result = asyncio.run(_remote())
        else:
            result = search_diseases(query, category).model_dump(mode="json")
    except HealthGuardError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if list_categories:
        console.print(", ".join(result["categories"]))
        return

    if not result["diseases"]:
        console.print("[yellow]No matching conditions found[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Category", style="yellow")
    table.add_column("Severity", width=9)
    table.add_column("Prevalence", style="dim")
    table.add_column("Symptoms")

    severity_style = {"low": "green", "moderate": "yellow", "high": "red", "critical": "bold red"}
    for disease in result["diseases"]:
        severity = disease["severity"]
        table.add_row(
            disease["name"],
            disease["category"],
            f"[{severity_style.get(severity, 'white')}]{severity}[/]",
            disease["prevalence"],
            ", ".join(disease["symptoms"]),
        )

    console.print(table)
    console.print(f"[dim]{result['total']} conditions[/dim]")


@app.command()
def hospitals(
    lat: float = typer.Option(..., "--lat", help="Latitude of the search point"),
    lng: float = typer.Option(..., "--lng", help="Longitude of the search point"),
    place_type: str = typer.Option("hospital", "--type", "-t", help=f"One of: {', '.join(AMENITY_TAGS)}"),
    radius: int = typer.Option(5000, "--radius", help="Search radius in metres", min=1),
    remote: bool = typer.Option(False, "--remote", "-r", help="Query the find-hospitals function instead of Overpass directly"),
):
    """Find healthcare places nearby, nearest first."""
    async def _find() -> list[Place]:
        if remote:
            async with get_context() as ctx:
                return await ctx.client.find_hospitals(lat, lng, radius=radius, place_type=place_type)
        async with OverpassPlaceFinder(get_settings().overpass_url) as finder:
            return await finder.find(lat, lng, radius=radius, place_type=place_type)

    try:
        places = asyncio.run(_find())
    except HealthGuardError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1)

    if not places:
        console.print("[yellow]Nothing found in range[/yellow]")
        return

    table = Table(show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Km", justify="right")
    table.add_column("Address")
    table.add_column("Phone", style="dim")
    for place in places:
        name = f"{place.name} [red](ER)[/red]" if place.emergency else place.name
        table.add_row(name, f"{place.distance:.2f}", place.address, place.phone or "")
    console.print(table)


@app.command()
def credits(user: str = USER_OPTION):
    """Show the credit balance, claiming today's login credits if due."""
    user_id = get_user_id(user, console)

    async def _credits():
        async with get_context() as ctx:
            await ctx.init(user_id, load_history=False)
            row = await ctx.ledger.get()

            table = Table(show_header=False, box=None)
            table.add_column("Metric", style="bold cyan", width=18)
            table.add_column("Value")
            table.add_row("Balance", str(row.credits))
            table.add_row("Total earned", str(row.total_earned))
            table.add_row("Total spent", str(row.total_spent))
            table.add_row("Last daily grant", str(row.last_login_credit_date or "Never"))
            table.add_row("Claimed now", f"+{ctx.daily_award}")
            console.print(Panel(table, title=f"Credits for {user_id}", border_style="cyan"))

    asyncio.run(_credits())


@app.command()
def log(
    user: str = USER_OPTION,
    sleep_hours: float = typer.Option(None, "--sleep", help="Hours slept"),
    sleep_quality: int = typer.Option(None, "--sleep-quality", help="Sleep quality 1-10", min=1, max=10),
    stress_level: int = typer.Option(None, "--stress", help="Stress level 1-10", min=1, max=10),
    mood: int = typer.Option(None, "--mood", help="Mood 1-10", min=1, max=10),
    diet_quality: int = typer.Option(None, "--diet", help="Diet quality 1-10", min=1, max=10),
    activity: int = typer.Option(None, "--activity", help="Minutes of physical activity", min=0),
    intensity: str = typer.Option(None, "--intensity", help="light, moderate or vigorous"),
    water: float = typer.Option(None, "--water", help="Water intake in liters", min=0),
    heart_rate: int = typer.Option(None, "--heart-rate", help="Resting heart rate (bpm)", min=1),
    notes: str = typer.Option(None, "--notes", help="Free-text notes"),
):
    """Log today's lifestyle metrics."""
    user_id = get_user_id(user, console)

    async def _log():
        async with get_context() as ctx:
            await ctx.init(user_id, load_history=False)
            entry = await ctx.store.add_health_entry(HealthEntry(
                user_id=user_id,
                sleep_hours=sleep_hours,
                sleep_quality=sleep_quality,
                stress_level=stress_level,
                mood=mood,
                diet_quality=diet_quality,
                physical_activity_minutes=activity,
                activity_intensity=intensity,
                water_intake_liters=water,
                heart_rate=heart_rate,
                notes=notes,
            ))
            console.print(f"[green]Health entry saved for {entry.entry_date}[/green]")

    try:
        asyncio.run(_log())
    except ValidationError as e:
        console.print(f"[red]Invalid entry: {e.error_count()} field(s) out of range[/red]")
        raise typer.Exit(code=1)


@app.command()
def stats(user: str = USER_OPTION):
    """Show averages and the weekly mood trend of recent entries."""
    user_id = get_user_id(user, console)

    async def _stats():
        async with get_context() as ctx:
            await ctx.init(user_id, load_history=False)
            return await load_stats(ctx.store, user_id)

    result = asyncio.run(_stats())
    if result is None:
        console.print("[yellow]No health entries yet; add one with `healthguard log`[/yellow]")
        return

    trend_style = {"improving": "green", "stable": "yellow", "declining": "red"}
    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="bold cyan", width=18)
    table.add_column("Value")
    table.add_row("Entries", str(result.total_entries))
    table.add_row("Sleep", f"{result.avg_sleep_hours} h (quality {result.avg_sleep_quality})")
    table.add_row("Stress", str(result.avg_stress_level))
    table.add_row("Mood", str(result.avg_mood))
    table.add_row("Diet", str(result.avg_diet_quality))
    table.add_row("Activity", f"{result.avg_activity_minutes} min")
    trend = result.weekly_trend.value
    table.add_row("Weekly trend", f"[{trend_style[trend]}]{trend}[/]")
    console.print(Panel(table, title=f"Health stats for {user_id}", border_style="cyan"))


@app.command()
def history(
    user: str = USER_OPTION,
    clear: bool = typer.Option(False, "--clear", help="Delete the stored history"),
):
    """Show (or clear) stored chat history."""
    user_id = get_user_id(user, console)

    async def _history():
        async with get_context() as ctx:
            session = await ctx.init(user_id)
            if clear:
                if not typer.confirm("Delete all stored messages?"):
                    console.print("[dim]Aborted.[/dim]")
                    return
                await session.clear()
                console.print("[green]History cleared.[/green]")
                return
            for message in session.messages[1:]:
                style = "cyan" if message.role is MessageRole.USER else "magenta"
                console.print(
                    f"[dim]{message.timestamp:%Y-%m-%d %H:%M}[/dim] "
                    f"[{style}]{message.role.value}[/{style}] {message.content}"
                )

    asyncio.run(_history())


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Interface to bind"),
    port: int = typer.Option(8000, "--port", "-p", help="Port to listen on"),
    reload: bool = typer.Option(False, "--reload", help="Reload on code changes"),
):
    """Run the backend functions (health-chat, search-disease, claim-daily-credits, find-hospitals)."""
    import uvicorn

    settings = get_settings()
    if not settings.openrouter_api_key:
        console.print("[yellow]Warning: OPENROUTER_API_KEY not set, health-chat will answer 500[/yellow]")
    uvicorn.run(
        "healthguard.server:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    app()
