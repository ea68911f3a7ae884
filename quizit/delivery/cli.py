"""
QuizIt: Terminal interface for spaced repetition study.

A Rich terminal interface over the local SQLite store.

Commands:
- quizit create      - Create a collection
- quizit collections - List collections with item and due counts
- quizit add         - Add an item to a collection
- quizit edit        - Edit a collection or one of its items
- quizit delete      - Delete a collection or one of its items
- quizit list        - List items with status and mastery
- quizit plan        - Show the recommended session
- quizit review      - Flashcard review with Again/Hard/Good/Easy ratings
- quizit learn       - Self-graded pass through the collection
- quizit test        - Adaptive multiple-choice assessment with replenishment
- quizit stats       - Collection and per-item statistics
- quizit history     - Recent study sessions
"""
from __future__ import annotations

import sys
import time
from datetime import datetime, timedelta, timezone
from typing import Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, IntPrompt, Prompt
from rich.table import Table

from quizit.analytics.stats import (
    PerformanceFilter,
    PerformanceSort,
    accuracy_by_mode,
    collection_stats,
    item_performance,
    session_history,
)
from quizit.config import get_settings
from quizit.core.errors import QuizItError, StorageError
from quizit.core.models import AttemptRecord, LearningItem, StudyMode
from quizit.core.priority import due_items, sort_by_priority
from quizit.core.scheduler import answer_quality, compute_next_schedule, format_interval, map_simple_rating
from quizit.core.status import ReviewStatus, classify, recommend_session
from quizit.delivery.state_store import StateStore
from quizit.study.choices import build_choices, is_choice_correct, is_written_answer_correct
from quizit.study.composer import AdaptiveSession

# =============================================================================
# CLI Setup
# =============================================================================

app = typer.Typer(
    name="quizit",
    help="QuizIt: spaced repetition study in the terminal",
    no_args_is_help=True,
)
console = Console()


# =============================================================================
# Styling
# =============================================================================

STYLES = {
    "correct": "bold green",
    "incorrect": "bold red",
    "info": "bold cyan",
    "status": {
        ReviewStatus.NEW: "blue",
        ReviewStatus.DUE: "yellow",
        ReviewStatus.LEARNING: "green",
    },
    "difficulty": {
        "easy": "green",
        "medium": "yellow",
        "hard": "red",
    },
}


def _styled(value: str, color: str) -> str:
    return f"[{color}]{value}[/{color}]"


# =============================================================================
# Helpers
# =============================================================================


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _open_store() -> StateStore:
    return StateStore(get_settings().db_path)


def _fail(message: str) -> None:
    console.print(f"[red]{message}[/red]")
    raise typer.Exit(1)


def _load_items(store: StateStore, collection_id: int) -> list[LearningItem]:
    """Load a collection's items, exiting with an error if there are none."""
    try:
        collection = store.get_collection(collection_id)
    except QuizItError as e:
        _fail(str(e))

    items = store.get_items(collection_id)
    if not items:
        _fail(f"Collection '{collection.name}' has no items!")

    console.print(f"\n[bold cyan]{collection.name}[/bold cyan]")
    console.print("=" * 40)
    return items


def _get_collection_item(store: StateStore, collection_id: int, item_id: int) -> LearningItem:
    item = store.get_item(item_id)
    if item.collection_id != collection_id:
        raise StorageError(f"Item {item_id} not found in collection {collection_id}")
    return item


def display_front(item: LearningItem, index: int, total: int, mode: StudyMode) -> None:
    """Display the question side of an item."""
    content = item.front
    if item.front_image:
        content += f"\n\n[dim]Image: {item.front_image}[/dim]"

    console.print(Panel(
        content,
        title=f"{mode.value.title()} {index}/{total}",
        title_align="left",
        border_style="cyan",
        padding=(1, 2),
    ))


def display_back(item: LearningItem, is_correct: bool | None = None) -> None:
    """Display the answer side, colored by outcome when known."""
    if is_correct is None:
        style = STYLES["info"]
        content = item.back
    else:
        style = STYLES["correct"] if is_correct else STYLES["incorrect"]
        icon = "[green]✓[/green]" if is_correct else "[red]✗[/red]"
        content = f"{icon} {item.back}"

    if item.back_image:
        content += f"\n\n[dim]Image: {item.back_image}[/dim]"

    console.print(Panel(content, border_style=style, padding=(1, 2)))


def _display_session_summary(correct: int, incorrect: int, elapsed: float) -> None:
    """Display end-of-session summary."""
    total = correct + incorrect
    accuracy = correct / total * 100 if total else 0.0
    console.print("\n")
    console.print(Panel(
        f"[bold]Session Complete![/bold]\n\n"
        f"Duration: {elapsed / 60:.1f} minutes\n"
        f"Items studied: {total}\n"
        f"Accuracy: {accuracy:.0f}%",
        title="Summary",
        border_style="green",
    ))


# =============================================================================
# Collection Commands
# =============================================================================


@app.command()
def create(
    name: str = typer.Argument(..., help="Collection name"),
    description: str = typer.Option("", "--description", "-d", help="Short description"),
) -> None:
    """Create a new collection."""
    store = _open_store()
    collection_id = store.create_collection(name, description)
    console.print(f"[green]Created collection {collection_id}: {name}[/green]")


@app.command()
def add(
    collection_id: int = typer.Argument(..., help="Collection to add to"),
    front: str = typer.Argument(..., help="Question side"),
    back: str = typer.Argument(..., help="Answer side"),
    front_image: Optional[str] = typer.Option(None, "--front-image", help="Image shown with the question"),
    back_image: Optional[str] = typer.Option(None, "--back-image", help="Image shown with the answer"),
) -> None:
    """Add an item to a collection."""
    store = _open_store()
    try:
        item = store.add_item(
            collection_id,
            front,
            back,
            front_image=front_image,
            back_image=back_image,
            initial_ease=get_settings().initial_ease,
        )
    except QuizItError as e:
        _fail(str(e))

    console.print(f"[green]Added item {item.id} to collection {collection_id}[/green]")


@app.command()
def collections() -> None:
    """List all collections with item and due counts."""
    store = _open_store()
    all_collections = store.list_collections()
    if not all_collections:
        console.print("[dim]No collections yet. Create one with 'quizit create'.[/dim]")
        return

    now = _now()
    table = Table()
    table.add_column("ID")
    table.add_column("Name")
    table.add_column("Items", justify="right")
    table.add_column("Due", justify="right")
    table.add_column("Description", style="dim")

    for collection in all_collections:
        items = store.get_items(collection.id)
        table.add_row(
            str(collection.id),
            collection.name,
            str(len(items)),
            str(len(due_items(items, now))),
            collection.description,
        )

    console.print(table)


@app.command()
def edit(
    collection_id: int = typer.Argument(..., help="Collection to edit"),
    item_id: Optional[int] = typer.Option(None, "--item", "-i", help="Edit this item instead of the collection"),
    name: Optional[str] = typer.Option(None, "--name", help="New collection name"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="New collection description"),
    front: Optional[str] = typer.Option(None, "--front", help="New question side"),
    back: Optional[str] = typer.Option(None, "--back", help="New answer side"),
    front_image: Optional[str] = typer.Option(None, "--front-image", help="New question image ('' clears it)"),
    back_image: Optional[str] = typer.Option(None, "--back-image", help="New answer image ('' clears it)"),
) -> None:
    """
    Edit a collection, or with --item one of its items.

    Scheduling progress is kept; only the given fields change.
    """
    store = _open_store()
    collection_fields = (name, description)
    item_fields = (front, back, front_image, back_image)

    if item_id is None:
        if any(value is not None for value in item_fields):
            _fail("--front/--back/--front-image/--back-image need --item")
        if all(value is None for value in collection_fields):
            _fail("Nothing to change: pass --name or --description")
    else:
        if any(value is not None for value in collection_fields):
            _fail("--name/--description apply to collections, not items")
        if all(value is None for value in item_fields):
            _fail("Nothing to change: pass --front, --back or an image option")

    try:
        if item_id is None:
            collection = store.update_collection(collection_id, name=name, description=description)
            console.print(f"[green]Updated collection {collection.id}: {collection.name}[/green]")
        else:
            _get_collection_item(store, collection_id, item_id)
            item = store.update_item_content(
                item_id,
                front=front,
                back=back,
                front_image=front_image,
                back_image=back_image,
            )
            console.print(f"[green]Updated item {item.id}: {item.front}[/green]")
    except QuizItError as e:
        _fail(str(e))


@app.command()
def delete(
    collection_id: int = typer.Argument(..., help="Collection to delete from"),
    item_id: Optional[int] = typer.Option(None, "--item", "-i", help="Delete only this item"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a collection, or with --item one of its items, including study history."""
    store = _open_store()
    try:
        collection = store.get_collection(collection_id)
        if item_id is None:
            target = f"collection '{collection.name}' with all its items and history"
        else:
            item = _get_collection_item(store, collection_id, item_id)
            target = f"item {item.id} ({item.front}) and its history"
    except QuizItError as e:
        _fail(str(e))

    if not yes and not Confirm.ask(f"Delete {target}?", default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        return

    if item_id is None:
        store.delete_collection(collection_id)
        console.print(f"[green]Deleted collection {collection_id}[/green]")
    else:
        store.delete_item(item_id)
        console.print(f"[green]Deleted item {item_id}[/green]")


@app.command(name="list")
def list_items(
    collection_id: int = typer.Argument(..., help="Collection to list"),
) -> None:
    """List items with their review status and mastery."""
    store = _open_store()
    items = _load_items(store, collection_id)
    now = _now()

    table = Table()
    table.add_column("ID")
    table.add_column("Front")
    table.add_column("Status")
    table.add_column("Difficulty")
    table.add_column("Mastery")
    table.add_column("Interval")

    for item in items:
        status = classify(item, now)
        table.add_row(
            str(item.id),
            item.front,
            _styled(status.status.value, STYLES["status"][status.status]),
            _styled(status.difficulty.value, STYLES["difficulty"][status.difficulty.value]),
            f"{status.mastery_percent}%",
            format_interval(item.interval_days),
        )

    console.print(table)


@app.command()
def plan(
    collection_id: int = typer.Argument(..., help="Collection to plan"),
) -> None:
    """Show the recommended mix of due and new items."""
    store = _open_store()
    items = _load_items(store, collection_id)
    session_plan = recommend_session(items, _now(), due_cap=get_settings().recommended_due_cap)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total items", str(session_plan.total_items))
    table.add_row("Due", str(session_plan.due_items))
    table.add_row("New", str(session_plan.new_items))
    table.add_row("Learning", str(session_plan.learning_items))
    table.add_row("Recommended", f"{session_plan.recommended_due} due + {session_plan.recommended_new} new")

    console.print(table)


# =============================================================================
# Study Commands
# =============================================================================


@app.command()
def review(
    collection_id: int = typer.Argument(..., help="Collection to review"),
) -> None:
    """
    Flashcard review in priority order.

    Rate each item 1 (Again), 2 (Hard), 3 (Good) or 4 (Easy).
    """
    store = _open_store()
    items = sort_by_priority(_load_items(store, collection_id), _now())
    config = get_settings().get_sm2_config()
    due = store.get_due_items(collection_id)
    console.print(f"[dim]{len(due)} of {len(items)} items due, most urgent first[/dim]\n")

    session_id = store.start_session(collection_id, StudyMode.FLASHCARDS)
    correct_count = incorrect_count = 0
    started = time.monotonic()

    try:
        for i, item in enumerate(items, 1):
            display_front(item, i, len(items), StudyMode.FLASHCARDS)
            shown = time.monotonic()
            Prompt.ask("\n[dim]Press Enter to reveal[/dim]", default="", show_default=False)
            display_back(item)

            rating = IntPrompt.ask("Again=1 Hard=2 Good=3 Easy=4", choices=["1", "2", "3", "4"])
            time_spent_ms = int((time.monotonic() - shown) * 1000)
            correct = rating >= 3
            now = _now()

            updated = compute_next_schedule(item, map_simple_rating(rating), now, config)
            store.save_item(updated)
            store.log_attempt(AttemptRecord(
                item_id=item.id,
                correct=correct,
                time_spent_ms=time_spent_ms,
                timestamp=now,
                confidence=rating,
                session_id=session_id,
            ))

            if correct:
                correct_count += 1
            else:
                incorrect_count += 1
            console.print(f"[dim]Next review: {format_interval(updated.interval_days)}[/dim]")

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Session interrupted.[/yellow]")

    store.end_session(session_id, correct_count + incorrect_count, correct_count, incorrect_count)
    _display_session_summary(correct_count, incorrect_count, time.monotonic() - started)


@app.command()
def learn(
    collection_id: int = typer.Argument(..., help="Collection to learn"),
) -> None:
    """Answer each item, reveal it, and mark yourself right or wrong."""
    store = _open_store()
    items = sort_by_priority(_load_items(store, collection_id), _now())
    config = get_settings().get_sm2_config()

    session_id = store.start_session(collection_id, StudyMode.LEARN)
    correct_count = incorrect_count = 0
    started = time.monotonic()

    try:
        for i, item in enumerate(items, 1):
            display_front(item, i, len(items), StudyMode.LEARN)
            shown = time.monotonic()
            Prompt.ask("Your answer")
            display_back(item)
            correct = Confirm.ask("Were you correct?", default=True)
            time_spent_ms = int((time.monotonic() - shown) * 1000)
            now = _now()

            quality = answer_quality(correct)
            store.save_item(compute_next_schedule(item, quality, now, config))
            store.log_attempt(AttemptRecord(
                item_id=item.id,
                correct=correct,
                time_spent_ms=time_spent_ms,
                timestamp=now,
                confidence=quality,
                session_id=session_id,
            ))

            if correct:
                correct_count += 1
            else:
                incorrect_count += 1

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Session interrupted.[/yellow]")

    store.end_session(session_id, correct_count + incorrect_count, correct_count, incorrect_count)
    _display_session_summary(correct_count, incorrect_count, time.monotonic() - started)


@app.command()
def test(
    collection_id: int = typer.Argument(..., help="Collection to test"),
    count: Optional[int] = typer.Option(
        None,
        "--count", "-c",
        help="Number of questions (defaults to collection size)",
    ),
) -> None:
    """
    Adaptive assessment.

    Picks the most urgent items; if more questions are requested than the
    collection holds, missed items come back three times as often as known
    ones. Each question offers up to four answers taken from the collection;
    a single-item collection asks for a written answer instead.
    """
    settings = get_settings()
    store = _open_store()
    items = _load_items(store, collection_id)
    target = count if count is not None else settings.default_test_count

    session_id = store.start_session(collection_id, StudyMode.TEST)
    session = AdaptiveSession(
        recorder=store,
        config=settings.get_sm2_config(),
        session_id=session_id,
        **settings.get_replenish_weights(),
    )
    session.start(items, target_count=target)
    started = time.monotonic()

    try:
        while not session.is_complete():
            item = session.current
            display_front(item, session.state.presented + 1, session.target_count, StudyMode.TEST)
            shown = time.monotonic()

            choices = build_choices(item, items, session.rng)
            if choices:
                for n, choice in enumerate(choices, 1):
                    console.print(f"  [bold]{n}.[/bold] {choice.back}")
                picked = IntPrompt.ask(
                    "\nYour choice",
                    choices=[str(n) for n in range(1, len(choices) + 1)],
                    show_choices=False,
                )
                correct = is_choice_correct(item, choices[picked - 1])
            else:
                answer = Prompt.ask("Your answer")
                correct = is_written_answer_correct(answer, item.back)

            time_spent_ms = int((time.monotonic() - shown) * 1000)
            display_back(item, correct)
            session.submit_answer(correct, time_spent_ms=time_spent_ms)

    except KeyboardInterrupt:
        console.print("\n\n[yellow]Session interrupted.[/yellow]")

    results = session.results()
    store.end_session(session_id, results.presented, results.correct, results.incorrect)
    _display_session_summary(results.correct, results.incorrect, time.monotonic() - started)


# =============================================================================
# Statistics
# =============================================================================


@app.command()
def stats(
    collection_id: int = typer.Argument(..., help="Collection to summarize"),
    which: PerformanceFilter = typer.Option(
        PerformanceFilter.ALL,
        "--filter", "-f",
        help="Which items to list",
    ),
    sort: PerformanceSort = typer.Option(
        PerformanceSort.DEFAULT,
        "--sort", "-s",
        help="Item ordering",
    ),
) -> None:
    """Show collection statistics and per-item performance."""
    store = _open_store()
    items = _load_items(store, collection_id)
    sessions = store.get_sessions(collection_id)
    summary = collection_stats(items, sessions)

    table = Table(show_header=False, box=None)
    table.add_column("Metric", style="dim")
    table.add_column("Value", style="bold")

    table.add_row("Total items", str(summary.total_items))
    table.add_row("Sessions", str(summary.total_sessions))
    table.add_row("Study time", f"{summary.total_time.total_seconds() / 60:.1f} min")
    table.add_row("Accuracy", f"{summary.accuracy:.0f}%")
    table.add_row("Mastery", f"{summary.mastery_level:.0f}%")
    for mode, accuracy in accuracy_by_mode(sessions).items():
        table.add_row(f"Accuracy ({mode.value})", f"{accuracy:.0f}%")

    console.print(table)

    rows = item_performance(items, store.get_attempts_by_item(collection_id), _now(), which, sort)
    if not rows:
        console.print("\n[dim]No items match the selected filter[/dim]")
        return

    item_table = Table()
    item_table.add_column("ID")
    item_table.add_column("Front")
    item_table.add_column("Attempts")
    item_table.add_column("Accuracy")
    item_table.add_column("Mastery")
    item_table.add_column("Last studied")

    for row in rows:
        last = row.stats.last_attempt_at
        item_table.add_row(
            str(row.item.id),
            row.item.front,
            str(row.stats.total_attempts),
            f"{row.stats.accuracy:.0f}%",
            f"{row.status.mastery_percent}%",
            last.strftime("%Y-%m-%d %H:%M") if last else "-",
        )

    console.print(item_table)


@app.command()
def history(
    collection_id: int = typer.Argument(..., help="Collection to show"),
    days: Optional[int] = typer.Option(None, "--days", help="Only sessions from the last N days"),
    limit: int = typer.Option(10, "--limit", "-n", help="Maximum sessions to show"),
) -> None:
    """Show recent finished study sessions, newest first."""
    store = _open_store()
    try:
        collection = store.get_collection(collection_id)
    except QuizItError as e:
        _fail(str(e))

    since = _now() - timedelta(days=days) if days is not None else None
    sessions = session_history(store.get_sessions(collection_id, since=since), limit=limit)

    console.print(f"\n[bold cyan]{collection.name}[/bold cyan] - session history")
    if not sessions:
        console.print("[dim]No study sessions yet[/dim]")
        return

    table = Table()
    table.add_column("Started")
    table.add_column("Mode")
    table.add_column("Items", justify="right")
    table.add_column("Accuracy", justify="right")
    table.add_column("Duration", justify="right")

    for session in sessions:
        answered = session.correct_count + session.incorrect_count
        accuracy = session.correct_count / answered * 100 if answered else 0.0
        table.add_row(
            session.started_at.strftime("%Y-%m-%d %H:%M"),
            session.mode.value,
            str(session.items_studied),
            f"{accuracy:.0f}%",
            f"{session.duration.total_seconds() / 60:.1f} min",
        )

    console.print(table)


# =============================================================================
# Entry Point
# =============================================================================

def main() -> None:
    """CLI entry point."""
    # Configure logging
    logger.remove()
    logger.add(
        sys.stderr,
        level=get_settings().log_level,
        format="<level>{message}</level>",
    )

    app()


if __name__ == "__main__":
    main()
