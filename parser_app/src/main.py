"""
Main entry point for PARSER APP
Command line access to parsing, history questions, templates and backups
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent.parent))

from shared.domain import MealSession, WorkoutSession

from parser_app.config.settings import settings, LOGS_DIR
from parser_app.agents import template_matcher
from parser_app.agents.batch import save_meals, save_workouts
from parser_app.agents.chat_session import HistoryChat, MealHistoryChat, WorkoutHistoryChat
from parser_app.agents.errors import FitLogError
from parser_app.src.backup import export_backup, import_backup, read_backup, write_backup
from parser_app.src.container import build_components


# Setup logging
def setup_logging():
    """Configure logging for PARSER APP"""
    LOGS_DIR.mkdir(exist_ok=True)

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=settings.log_format,
        handlers=[
            logging.handlers.RotatingFileHandler(
                LOGS_DIR / settings.log_file,
                maxBytes=settings.log_max_bytes,
                backupCount=settings.log_backup_count,
            ),
            RichHandler(rich_tracebacks=True),
        ],
    )
    # Request logs from the HTTP stack can include keys in headers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.debug(f"🚀 {settings.app_name} v{settings.version} starting up")
    return logger


# CLI application
app = typer.Typer(
    name="fitlog",
    help="FitLog - turn spoken workout and meal descriptions into records",
    rich_markup_mode="rich",
)

console = Console()


def _fail(error: FitLogError) -> None:
    hint = " [dim](you can try again)[/dim]" if error.retryable else ""
    console.print(f"❌ [red]{error.message}[/red]{hint}")
    raise typer.Exit(1)


def _fmt(value: Optional[float]) -> str:
    return "-" if value is None else f"{value:g}"


def _print_workouts(workouts: List[WorkoutSession]) -> None:
    for workout in workouts:
        title = f"🏋️ {workout.name or 'Workout'} - {workout.date.strftime('%a %Y-%m-%d %H:%M')}"
        if workout.is_template:
            title = f"🧩 Template: {workout.name}"
        table = Table(title=title)
        table.add_column("#", style="dim")
        table.add_column("Exercise", style="cyan")
        table.add_column("Sets", justify="right")
        table.add_column("Reps", justify="right")
        table.add_column("Weight", justify="right", style="yellow")
        table.add_column("RPE", justify="right", style="green")
        table.add_column("Notes")
        for ex in workout.exercises:
            table.add_row(
                str(ex.order + 1),
                ex.name,
                str(ex.sets),
                str(ex.reps),
                _fmt(ex.weight) if ex.weight else "BW",
                str(ex.rpe) if ex.rpe else "-",
                ex.notes or "",
            )
        console.print(table)
        console.print(f"   Total sets: {workout.total_sets} | Total reps: {workout.total_reps}")


def _print_meals(meals: List[MealSession]) -> None:
    for meal in meals:
        label = meal.meal_type.value.title() if meal.meal_type else "Meal"
        title = f"🍽️ {label} - {meal.date.strftime('%a %Y-%m-%d %H:%M')}"
        if meal.is_template:
            title = f"🧩 Template: {meal.name} ({label})"
        table = Table(title=title)
        table.add_column("Food", style="cyan")
        table.add_column("Portion")
        table.add_column("kcal", justify="right", style="yellow")
        table.add_column("Protein", justify="right", style="green")
        table.add_column("Carbs", justify="right")
        table.add_column("Fat", justify="right")
        for item in meal.food_items:
            table.add_row(
                item.name,
                item.portion_size or "",
                _fmt(item.calories),
                _fmt(item.protein),
                _fmt(item.carbs),
                _fmt(item.fat),
            )
        table.add_row(
            "[bold]Total[/bold]",
            "",
            _fmt(meal.total_calories),
            _fmt(meal.total_protein),
            _fmt(meal.total_carbs),
            _fmt(meal.total_fat),
        )
        console.print(table)


@app.command()
def init_db():
    """Create the database tables."""
    setup_logging()
    components = build_components()
    console.print(f"✅ [green]Database ready[/green] at {components.engine.url}")


@app.command()
def parse_workout(
    text: str = typer.Argument(..., help="Transcribed workout description"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the parsed workouts"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key (overrides settings)"),
):
    """Parse a workout description into one or more workouts."""
    logger = setup_logging()
    components = build_components(api_key=api_key)
    try:
        workouts = components.service.log_workouts(text, components.workouts)
    except FitLogError as e:
        logger.warning(f"Workout parse failed: {e.message}")
        _fail(e)

    if not workouts:
        console.print("⚠️ [yellow]No workouts found in that description[/yellow]")
        return
    _print_workouts(workouts)

    if save:
        try:
            result = save_workouts(components.workouts, workouts)
        except FitLogError as e:
            _fail(e)
        style = "green" if result.all_saved else "yellow" if result.partial else "red"
        console.print(f"💾 [{style}]{result.message}[/{style}]")
        if not result.saved:
            raise typer.Exit(1)


@app.command()
def parse_meal(
    text: str = typer.Argument(..., help="Transcribed meal description"),
    save: bool = typer.Option(False, "--save", "-s", help="Save the parsed meals"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key (overrides settings)"),
):
    """Parse a meal description into one or more meals."""
    logger = setup_logging()
    components = build_components(api_key=api_key)
    try:
        meals = components.service.log_meals(text, components.meals)
    except FitLogError as e:
        logger.warning(f"Meal parse failed: {e.message}")
        _fail(e)

    if not meals:
        console.print("⚠️ [yellow]No meals found in that description[/yellow]")
        return
    _print_meals(meals)

    if save:
        try:
            result = save_meals(components.meals, meals)
        except FitLogError as e:
            _fail(e)
        style = "green" if result.all_saved else "yellow" if result.partial else "red"
        console.print(f"💾 [{style}]{result.message}[/{style}]")
        if not result.saved:
            raise typer.Exit(1)


def _chat(components, meals: bool) -> HistoryChat:
    if meals:
        return MealHistoryChat(components.service, components.meals, window=components.settings.conversation_window)
    return WorkoutHistoryChat(components.service, components.workouts, window=components.settings.conversation_window)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question about your history"),
    meals: bool = typer.Option(False, "--meals", "-m", help="Ask about meals instead of workouts"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key (overrides settings)"),
):
    """Ask one question about your workout or meal history."""
    setup_logging()
    components = build_components(api_key=api_key)
    session = _chat(components, meals)
    reply = session.ask(question)
    if reply is None:
        console.print("⚠️ [yellow]Please enter a question[/yellow]")
        raise typer.Exit(1)
    console.print(f"🤖 {reply.content}")
    if session.last_error is not None:
        raise typer.Exit(1)


@app.command()
def chat(
    meals: bool = typer.Option(False, "--meals", "-m", help="Chat about meals instead of workouts"),
    api_key: Optional[str] = typer.Option(None, "--api-key", help="OpenAI API key (overrides settings)"),
):
    """Interactive chat about your history. Type /new to start over, /quit to leave."""
    setup_logging()
    components = build_components(api_key=api_key)
    session = _chat(components, meals)
    console.print(f"🤖 {session.messages[0].content}")
    for example in session.example_questions:
        console.print(f"   • [dim]{example}[/dim]")

    while True:
        try:
            question = console.input("[bold cyan]you> [/bold cyan]")
        except (EOFError, KeyboardInterrupt):
            break
        command = question.strip().lower()
        if command in ("/quit", "/exit"):
            break
        if command == "/new":
            session.new_conversation()
            console.print(f"🆕 {session.messages[0].content}")
            continue
        reply = session.ask(question)
        if reply is not None:
            console.print(f"🤖 {reply.content}")

    console.print("👋 [yellow]Bye![/yellow]")


@app.command()
def templates(
    meals: bool = typer.Option(False, "--meals", "-m", help="List meal templates instead of workout templates"),
    match: Optional[str] = typer.Option(None, "--match", help="Only show templates referenced by this text"),
):
    """List saved templates, optionally only those a phrase refers to."""
    setup_logging()
    components = build_components()
    repository = components.meals if meals else components.workouts
    found = repository.fetch_templates()
    if match is not None:
        found = template_matcher.match(found, match)

    if not found:
        console.print("📭 [yellow]No templates found[/yellow]")
        return
    if meals:
        _print_meals(found)
    else:
        _print_workouts(found)


@app.command(name="export")
def export_data(
    path: Path = typer.Argument(Path("."), help="Backup file or directory"),
):
    """Export every workout and meal (templates included) to a JSON backup."""
    setup_logging()
    components = build_components()
    doc = export_backup(components.workouts, components.meals)
    written = write_backup(doc, path)
    console.print(f"📦 [green]Exported {len(doc.workouts)} workouts and {len(doc.meals)} meals[/green] to {written}")


@app.command(name="import")
def import_data(
    path: Path = typer.Argument(..., help="Backup file to import"),
):
    """Import a JSON backup, updating records that already exist."""
    setup_logging()
    components = build_components()
    try:
        doc = read_backup(path)
    except FitLogError as e:
        _fail(e)
    result = import_backup(doc, components.workouts, components.meals)

    table = Table(title="Import Results")
    table.add_column("Kind", style="cyan")
    table.add_column("Imported", style="green")
    table.add_column("Total", style="yellow")
    table.add_row("Workouts", str(result.workouts_imported), str(result.workouts_total))
    table.add_row("Meals", str(result.meals_imported), str(result.meals_total))
    console.print(table)
    if not result.success:
        raise typer.Exit(1)


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", help="Port"),
):
    """Run the HTTP API."""
    setup_logging()
    import uvicorn

    console.print(f"🌐 [bold blue]Starting API server[/bold blue] on {host or settings.api_host}:{port or settings.api_port}")
    uvicorn.run("parser_app.src.api_server:app", host=host or settings.api_host, port=port or settings.api_port)


if __name__ == "__main__":
    app()
