"""End-to-end tests for the shelf CLI against a file-backed store."""
import json

import pytest

import shelf
from nextpage.client import CatalogClient
from nextpage.config import Config
from nextpage.models import Book
from nextpage.storage import JsonFileBackend, MemoryBackend
from nextpage.store import CollectionStore

MISTBORN = Book(id="g1", title="Mistborn", author="Brandon Sanderson", genre="Fantasy", average_rating=4.0)
ELANTRIS = Book(id="g2", title="Elantris", author="Brandon Sanderson", genre="Fantasy", average_rating=3.5)


@pytest.fixture
def config(tmp_path):
    config = Config()
    config.STORE_BACKEND = "file"
    config.STORE_DIR = str(tmp_path)
    config.AFFILIATE_TAG = None
    return config


@pytest.fixture
def catalog(monkeypatch):
    monkeypatch.setattr(CatalogClient, "search", lambda self, query, max_results=10: [MISTBORN, ELANTRIS])
    monkeypatch.setattr(CatalogClient, "query_by_genre", lambda self, genre, limit=10: [MISTBORN, ELANTRIS])


def run(config, *argv):
    args = shelf.build_parser().parse_args(list(argv))
    return shelf.COMMANDS[args.command](args, config)


def load(config):
    return CollectionStore(JsonFileBackend(config.STORE_DIR)).load()


def test_add_and_stats(config, capsys):
    run(config, "add", "Dune", "--author", "Frank Herbert", "--rating", "4")
    run(config, "stats")

    out = capsys.readouterr().out
    assert "Added 'Dune' by Frank Herbert - I liked it" in out
    assert "Total books: 1" in out
    assert "Average rating: 4.0" in out


def test_add_blank_title_fails(config):
    assert run(config, "add", "   ") == 1


def test_search_want_then_read(config, catalog):
    """A searched book can go onto the reading list and then be marked read."""
    run(config, "search", "mistborn", "--format", "compact")
    run(config, "want", "g1")
    assert [b.id for b in load(config).reading_list] == ["g1"]

    run(config, "read", "g1", "--rating", "4.5")

    store = load(config)
    assert store.reading_list == []
    assert store.find_read_book("g1").rating == 4.5


def test_read_unknown_id(config):
    assert run(config, "read", "nope") == 1


def test_recommend_excludes_owned_and_uses_feedback(config, catalog, capsys):
    run(config, "search", "sanderson")
    run(config, "read", "g1")
    run(config, "dislike", "g2")
    capsys.readouterr()

    run(config, "recommend", "--format", "json")

    recommendations = json.loads(capsys.readouterr().out)
    assert [r["id"] for r in recommendations] == ["g2"]
    assert recommendations[0]["score"] == 5.0
    assert 0.2 <= recommendations[0]["similarityScore"] < 0.8


def test_rate_and_list(config, capsys):
    run(config, "add", "Dune")
    book_id = load(config).read_books[0].id

    run(config, "rate", book_id, "1.5")
    run(config, "list")

    out = capsys.readouterr().out
    assert "Hated it" in out
    assert "Your reading list is empty" in out


def test_export_csv(config, tmp_path):
    run(config, "add", "Dune", "--rating", "3")
    output = tmp_path / "out.csv"

    run(config, "export", "--format", "csv", "--output", str(output))

    lines = output.read_text().splitlines()
    assert lines[0] == "ID,Title,Author,Genre,Rating,Date Added"
    assert ",Dune,Unknown Author,Unknown,3.0," in lines[1]


class ClosingBackend(MemoryBackend):
    def __init__(self):
        super().__init__()
        self.closed = 0

    def close(self):
        self.closed += 1


def test_commands_close_the_backend(config, monkeypatch):
    backends = []

    def create_backend(config):
        backends.append(ClosingBackend())
        return backends[-1]

    monkeypatch.setattr(shelf, "create_backend", create_backend)

    run(config, "add", "Dune")
    run(config, "stats")
    assert run(config, "read", "nope") == 1

    assert [b.closed for b in backends] == [1, 1, 1]


def test_recommend_top_zero_shows_nothing(config, catalog, capsys):
    run(config, "recommend", "--top", "0", "--format", "json")

    assert capsys.readouterr().out == ""
