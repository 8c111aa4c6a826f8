"""Tests for the command-line interface."""

import asyncio
from unittest.mock import patch

from click.testing import CliRunner
from fakes import ScriptedTextGenerator, numbered_cards

from note_flashcards.cli import cli
from note_flashcards.deck_manager import compute_deck_stats
from note_flashcards.models import Card, Deck
from note_flashcards.storage import DeckStorage

runner = CliRunner()


def seed_deck(deck_dir, deck_id: str = "deck1", cards: int = 2) -> None:
    card_list = [Card(id=f"c{i}", question=f"Q{i}?", answer=f"A{i}") for i in range(cards)]
    deck = Deck(id=deck_id, name="Seeded", stats=compute_deck_stats(card_list))
    asyncio.run(DeckStorage(deck_dir).save_deck(deck, card_list))


def test_cli_help():
    """Help lists the commands."""
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    for command in ["generate", "path", "decks", "study", "review", "merge", "delete", "chunks"]:
        assert command in result.output


def test_decks_empty(tmp_path):
    """Listing an empty deck directory says so."""
    result = runner.invoke(cli, ["--deck-dir", str(tmp_path), "decks"])

    assert result.exit_code == 0
    assert "No decks found" in result.output


def test_decks_and_show(tmp_path):
    """Seeded decks are listed and shown."""
    seed_deck(tmp_path)

    listed = runner.invoke(cli, ["--deck-dir", str(tmp_path), "decks"])
    shown = runner.invoke(cli, ["--deck-dir", str(tmp_path), "show", "deck1"])

    assert listed.exit_code == 0
    assert "deck1" in listed.output
    assert shown.exit_code == 0
    assert "Q0?" in shown.output


def test_review_updates_card(tmp_path):
    """Reviewing prints the new schedule."""
    seed_deck(tmp_path)

    result = runner.invoke(cli, ["--deck-dir", str(tmp_path), "review", "deck1", "c0", "2"])

    assert result.exit_code == 0
    assert "interval 1 day(s)" in result.output


def test_missing_deck_is_reported(tmp_path):
    """Library errors become a red message and a failing exit code."""
    result = runner.invoke(cli, ["--deck-dir", str(tmp_path), "show", "ghost"])

    assert result.exit_code == 1
    assert "Deck not found: ghost" in result.output


def test_merge_and_delete(tmp_path):
    """Merging replaces the source decks; deleting removes a deck."""
    seed_deck(tmp_path, "a")
    seed_deck(tmp_path, "b")

    merged = runner.invoke(cli, ["--deck-dir", str(tmp_path), "merge", "a", "b", "--name", "All"])
    assert merged.exit_code == 0
    assert "with 4 cards" in merged.output

    deleted = runner.invoke(cli, ["--deck-dir", str(tmp_path), "delete", "missing", "--yes"])
    assert deleted.exit_code == 0


def test_chunks_preview(tmp_path):
    """The chunk preview shows how a note would be split."""
    note = tmp_path / "note.md"
    note.write_text("# One\n\n" + "Sentence about one. " * 30 + "\n\n# Two\n\n" + "Two. " * 60)

    result = runner.invoke(cli, ["chunks", str(note), "--max-size", "400"])

    assert result.exit_code == 0
    assert "chunk(s)" in result.output


def test_generate_saves_deck(tmp_path):
    """Generate reads a note, calls the model and saves the deck."""
    (tmp_path / "note.md").write_text("# Note\n\nA short note about cells.")
    client = ScriptedTextGenerator(lambda prompt, n: numbered_cards(prompt))

    with patch("note_flashcards.cli.AnthropicTextGenerator", return_value=client):
        result = runner.invoke(
            cli,
            [
                "--deck-dir",
                str(tmp_path / "decks"),
                "generate",
                "note.md",
                "--vault",
                str(tmp_path),
                "--count",
                "3",
            ],
        )

    assert result.exit_code == 0, result.output
    assert "with 3 cards" in result.output
    assert len(list((tmp_path / "decks").glob("deck_*_cards.json"))) == 1


def test_study_rejects_negative_limits(tmp_path):
    """Study limits below zero are a usage error."""
    seed_deck(tmp_path)

    result = runner.invoke(cli, ["--deck-dir", str(tmp_path), "study", "deck1", "--new", "-1"])

    assert result.exit_code == 2
