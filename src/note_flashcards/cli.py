"""Command-line interface for generating and studying flashcards."""

import asyncio
import logging
import sys
import time
from pathlib import Path
from typing import Optional

import anthropic
import click
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Prompt
from rich.table import Table

from .deck_manager import DeckManager
from .exceptions import FlashcardError
from .generator import AnthropicTextGenerator, FlashcardGenerator
from .learning_path import LearningPathFlashcardService
from .models import Card, Deck, FlashcardConfig, GenerationOptions, LearningFile, Rating
from .splitter import get_split_stats, split_document
from .storage import DeckStorage

console = Console()

RATING_CHOICES = {"0": Rating.FORGOT, "1": Rating.HARD, "2": Rating.GOOD, "3": Rating.EASY}


def setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True)],
    )


def run(coro):
    """Run a coroutine, turning library errors into a red message and exit code 1."""
    try:
        return asyncio.run(coro)
    except (FlashcardError, anthropic.AnthropicError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)


def build_manager(config: FlashcardConfig) -> DeckManager:
    return DeckManager(DeckStorage(config.deck_dir), config)


def display_decks(decks: list[Deck]) -> None:
    """Display a table of decks with their statistics."""
    table = Table(title="Decks")
    table.add_column("ID", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Cards", justify="right")
    table.add_column("New", justify="right", style="blue")
    table.add_column("Learning", justify="right", style="yellow")
    table.add_column("Review", justify="right", style="green")
    table.add_column("Mastered", justify="right", style="magenta")
    table.add_column("Mastery", justify="right")

    for deck in decks:
        stats = deck.stats
        table.add_row(
            deck.id,
            deck.name,
            str(stats.total),
            str(stats.new),
            str(stats.learning),
            str(stats.review),
            str(stats.mastered),
            f"{stats.mastery_rate:.0%}",
        )

    console.print(table)


def display_cards_preview(cards: list[Card], limit: int = 5) -> None:
    """Display a preview of cards."""
    num_shown = min(limit, len(cards))
    console.print(f"\n[bold]Sample Cards (showing {num_shown} of {len(cards)}):[/bold]\n")

    for card in cards[:limit]:
        console.print(f"[cyan]{card.source_section}[/cyan]")
        console.print(f"   {card.get_display_text()}")
        console.print()


@click.group()
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="JSON configuration file",
)
@click.option("--deck-dir", type=click.Path(file_okay=False), help="Directory holding the decks")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx, config_path: Optional[str], deck_dir: Optional[str], verbose: bool):
    """Note Flashcards - Generate and study spaced-repetition flashcards from notes."""
    setup_logging(verbose)
    config = FlashcardConfig.load(Path(config_path)) if config_path else FlashcardConfig()
    if deck_dir:
        config.deck_dir = Path(deck_dir)
    ctx.obj = config


@cli.command()
@click.argument("note", type=str)
@click.option("--count", "-c", type=int, default=10, show_default=True, help="Cards to generate")
@click.option("--deck-name", "-n", type=str, help="Deck name (defaults to the note name)")
@click.option("--vault", type=click.Path(exists=True, file_okay=False), help="Notes root directory")
@click.pass_obj
def generate(config: FlashcardConfig, note: str, count: int, deck_name: Optional[str], vault):
    """Generate a deck from a note."""
    if vault:
        config.vault_dir = Path(vault)
    options = GenerationOptions(
        source_note=note,
        deck_name=deck_name or Path(note).stem,
        count=count,
    )

    async def _generate():
        generator = FlashcardGenerator(AnthropicTextGenerator(), config)
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Generating flashcards...", total=100)

            def on_progress(percent: int, status: str) -> None:
                progress.update(task, completed=percent, description=status)

            bundle = await generator.generate_from_note(options, on_progress)
        await build_manager(config).create_deck(bundle)
        return bundle

    bundle = run(_generate())
    console.print(
        f"\n[bold green]Created deck[/bold green] {bundle.deck.name} "
        f"([cyan]{bundle.deck.id}[/cyan]) with {len(bundle.cards)} cards"
    )
    display_cards_preview(bundle.cards)


@cli.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--name", "-n", type=str, required=True, help="Learning path name")
@click.pass_obj
def path(config: FlashcardConfig, files: tuple, name: str):
    """Generate one deck per file of a learning path."""
    learning_files = [
        LearningFile(path=str(Path(file).resolve()), title=Path(file).stem) for file in files
    ]

    async def _generate():
        generator = FlashcardGenerator(AnthropicTextGenerator(), config)
        service = LearningPathFlashcardService(generator, build_manager(config))
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            console=console,
        ) as progress:
            task = progress.add_task("Generating learning path...", total=100)

            def on_progress(percent: int, status: str, current_file: Optional[str]) -> None:
                description = f"{status} ({current_file})" if current_file else status
                progress.update(task, completed=percent, description=description)

            return await service.generate_flashcards_from_path(learning_files, name, on_progress)

    result = run(_generate())
    for generated in result.decks:
        console.print(
            f"[green]O[/green] {generated.deck.name} ([cyan]{generated.deck.id}[/cyan]): "
            f"{len(generated.cards)} cards"
        )
    for error in result.errors:
        console.print(f"[red]X[/red] {error}")

    console.print(
        f"\n[bold]{result.total_decks} deck(s), {result.total_cards} card(s)[/bold]"
    )
    if not result.success:
        sys.exit(1)


@cli.command()
@click.pass_obj
def decks(config: FlashcardConfig):
    """List all decks."""
    all_decks = run(build_manager(config).list_decks())
    if not all_decks:
        console.print("[yellow]No decks found.[/yellow]")
        return
    display_decks(all_decks)


@cli.command()
@click.argument("deck_id")
@click.option("--limit", "-l", type=int, default=20, show_default=True, help="Cards to show")
@click.pass_obj
def show(config: FlashcardConfig, deck_id: str, limit: int):
    """Show a deck and its cards."""
    bundle = run(build_manager(config).get_deck(deck_id))
    deck = bundle.deck
    console.print(
        Panel(
            f"Notes: {', '.join(deck.source_notes) or '-'}\n"
            f"Cards: {deck.stats.total}  Reviews: {deck.stats.total_reviews}  "
            f"Mastery: {deck.stats.mastery_rate:.0%}",
            title=f"[bold]{deck.name}[/bold] ({deck.id})",
            border_style="green",
        )
    )

    table = Table()
    table.add_column("ID", style="cyan")
    table.add_column("Question")
    table.add_column("Status")
    table.add_column("Next review")
    for card in bundle.cards[:limit]:
        table.add_row(
            card.id,
            card.question,
            card.learning.status.value,
            card.learning.next_review.strftime("%Y-%m-%d %H:%M"),
        )
    console.print(table)


@cli.command()
@click.argument("deck_id")
@click.option(
    "--new",
    "new_limit",
    type=click.IntRange(min=0),
    help="Max new cards (defaults to deck setting)",
)
@click.option(
    "--reviews",
    "review_limit",
    type=click.IntRange(min=0),
    help="Max due reviews (defaults to deck setting)",
)
@click.pass_obj
def study(config: FlashcardConfig, deck_id: str, new_limit: Optional[int], review_limit):
    """Study due and new cards interactively."""
    manager = build_manager(config)
    cards = run(manager.select_study_set(deck_id, new_limit, review_limit))
    if not cards:
        console.print("[yellow]Nothing to study right now.[/yellow]")
        return

    console.print(f"\n[bold]Studying {len(cards)} card(s)[/bold] (q to stop)\n")
    for index, card in enumerate(cards, start=1):
        started = time.monotonic()
        console.print(Panel(card.question, title=f"Card {index}/{len(cards)}"))
        if Prompt.ask("Press enter to reveal", default="") == "q":
            break
        console.print(Panel(card.answer, border_style="green"))

        choice = Prompt.ask(
            "Rating: 0=forgot 1=hard 2=good 3=easy",
            choices=[*RATING_CHOICES, "q"],
            default="2",
        )
        if choice == "q":
            break

        reviewed = run(
            manager.apply_review(
                deck_id, card.id, RATING_CHOICES[choice], time.monotonic() - started
            )
        )
        console.print(
            f"[dim]Next review in {reviewed.learning.interval} day(s) "
            f"({reviewed.learning.status.value})[/dim]\n"
        )


@cli.command()
@click.argument("deck_id")
@click.argument("card_id")
@click.argument("rating", type=click.IntRange(0, 3))
@click.option("--time", "time_taken", type=float, default=0.0, help="Seconds spent on the card")
@click.pass_obj
def review(config: FlashcardConfig, deck_id: str, card_id: str, rating: int, time_taken: float):
    """Record a single review (0=forgot, 1=hard, 2=good, 3=easy)."""
    card = run(build_manager(config).apply_review(deck_id, card_id, rating, time_taken))
    console.print(
        f"Card [cyan]{card.id}[/cyan]: interval {card.learning.interval} day(s), "
        f"ease {card.learning.ease_factor:.2f}, {card.learning.status.value}"
    )


@cli.command()
@click.argument("deck_ids", nargs=-1, required=True)
@click.option("--name", "-n", type=str, required=True, help="Name of the merged deck")
@click.pass_obj
def merge(config: FlashcardConfig, deck_ids: tuple, name: str):
    """Merge decks into a new one, deleting the originals."""
    deck = run(build_manager(config).merge_decks(list(deck_ids), name))
    console.print(
        f"[bold green]Merged[/bold green] into {deck.name} ([cyan]{deck.id}[/cyan]) "
        f"with {deck.stats.total} cards"
    )


@cli.command()
@click.argument("deck_id")
@click.option("--yes", "-y", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def delete(config: FlashcardConfig, deck_id: str, yes: bool):
    """Delete a deck and its cards."""
    if not yes and not click.confirm(f"Delete deck {deck_id}?"):
        console.print("[yellow]Aborted.[/yellow]")
        return
    run(build_manager(config).delete_deck(deck_id))
    console.print(f"Deleted deck [cyan]{deck_id}[/cyan]")


@cli.command()
@click.argument("file", type=click.Path(exists=True, dir_okay=False))
@click.option("--max-size", type=int, help="Max characters per chunk")
@click.pass_obj
def chunks(config: FlashcardConfig, file: str, max_size: Optional[int]):
    """Preview how a document would be split for generation."""
    content = Path(file).read_text(encoding="utf-8")
    parts = split_document(content, max_size or config.max_chunk_size)
    stats = get_split_stats(parts)

    table = Table(title=f"{len(parts)} chunk(s), average {stats['average_length']} chars")
    table.add_column("#", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Length", justify="right")
    table.add_column("Start")
    for chunk in parts:
        preview = chunk.content[:60].replace("\n", " ")
        table.add_row(str(chunk.index + 1), chunk.title or "-", str(chunk.length), preview)
    console.print(table)


def main():
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
