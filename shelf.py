#!/usr/bin/env python3
"""Next Page CLI - track read books, a reading list and recommendations."""
import argparse
import asyncio
import csv
import json
import sys
from contextlib import contextmanager
from typing import List, Optional

from tabulate import tabulate

from nextpage.async_client import AsyncCatalogClient
from nextpage.client import CatalogClient
from nextpage.config import Config
from nextpage.debounce import Debouncer
from nextpage.links import storefront_link
from nextpage.models import Book
from nextpage.ratings import rating_label, render_stars
from nextpage.recommend import RecommendationEngine, RecommendationService, filter_by_genre
from nextpage.storage import create_backend
from nextpage.store import CollectionStore
import logging

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Last search/recommendation results, so ids can be picked up by later commands
LAST_RESULTS_KEY = "lastResults"


def _truncate(text: str, width: int) -> str:
    return text[:width] + "..." if len(text) > width else text


@contextmanager
def open_store(config: Config):
    """Create the configured backend, load the collections and close it afterwards."""
    backend = create_backend(config)
    try:
        yield CollectionStore(backend).load()
    finally:
        close = getattr(backend, "close", None)
        if close is not None:
            close()


def remember_results(store: CollectionStore, books: List[Book]):
    store.backend.set(LAST_RESULTS_KEY, json.dumps([book.as_book().to_dict() for book in books]))


def resolve_book(store: CollectionStore, book_id: str) -> Optional[Book]:
    """Find a book by id in the collections or the last shown results."""
    book = store.find_in_reading_list(book_id) or store.find_read_book(book_id)
    if book:
        return book

    raw = store.backend.get(LAST_RESULTS_KEY)
    if raw:
        try:
            for record in json.loads(raw):
                if str(record.get("id")) == book_id:
                    return Book.from_dict(record)
        except (ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable last results: {e}")
    return None


def display_books(books, format_type: str, config: Config = None):
    """Display catalog books or recommendations in the given format."""
    affiliate_tag = config.AFFILIATE_TAG if config else None

    if format_type == "table":
        headers = ["ID", "Title", "Author", "Genre", "Score", "Buy"]
        rows = [
            [
                book.id,
                _truncate(book.title, 40),
                _truncate(book.author, 25),
                _truncate(book.genre, 20),
                f"{book.score:.1f}" if hasattr(book, "score") else "",
                storefront_link(book.asin, affiliate_tag),
            ]
            for book in books
        ]
        print("\n" + tabulate(rows, headers=headers, tablefmt="grid"))

    elif format_type == "json":
        print(json.dumps([book.to_dict() for book in books], indent=2))

    elif format_type == "compact":
        for i, book in enumerate(books, 1):
            line = f"{i}. {book.title} - {book.author} [{book.id}]"
            if getattr(book, "reasoning", ""):
                line += f"\n   {book.reasoning}"
            print(line)


def search_books(args, config: Config):
    """Search the catalog by title."""
    if args.use_async:
        books = asyncio.run(_search_debounced(args.query, args.limit, config))
    else:
        with CatalogClient(
            api_key=config.GOOGLE_BOOKS_API_KEY,
            timeout=config.DEFAULT_TIMEOUT
        ) as client:
            books = client.search(args.query, max_results=args.limit)

    if not books:
        logger.info("No books found (queries need at least 3 characters)")
        return

    with open_store(config) as store:
        remember_results(store, books)
    display_books(books, args.format, config)


async def _search_debounced(query: str, limit: int, config: Config) -> List[Book]:
    async with AsyncCatalogClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT
    ) as client:
        debouncer = Debouncer(
            lambda q: client.search(q, max_results=limit),
            delay=config.SEARCH_DEBOUNCE_SECONDS,
            min_length=config.MIN_QUERY_LENGTH,
        )
        debouncer.feed(query)
        return await debouncer.flush() or []


def list_collections(args, config: Config):
    """Show read books and the reading list."""
    with open_store(config) as store:
        read_books = store.read_books
        reading_list = store.reading_list

    if args.format == "json":
        print(json.dumps({
            "books": [book.to_dict() for book in read_books],
            "readingList": [book.to_dict() for book in reading_list],
        }, indent=2))
        return

    read_rows = [
        [
            book.id,
            _truncate(book.title, 40),
            _truncate(book.author, 25),
            book.genre,
            render_stars(book.rating),
            rating_label(book.rating),
        ]
        for book in read_books
    ]
    print("\nBOOKS YOU'VE READ")
    if read_rows:
        print(tabulate(read_rows, headers=["ID", "Title", "Author", "Genre", "Rating", ""], tablefmt="grid"))
    else:
        print("You haven't added any books yet.")

    list_rows = [
        [position, book.id, _truncate(book.title, 40), _truncate(book.author, 25)]
        for position, book in enumerate(reading_list, 1)
    ]
    print("\nREADING LIST")
    if list_rows:
        print(tabulate(list_rows, headers=["#", "ID", "Title", "Author"], tablefmt="grid"))
    else:
        print("Your reading list is empty. Add books from recommendations.")


def add_book(args, config: Config):
    """Add a hand-typed book you've read."""
    if not args.title.strip():
        logger.error("A title is required")
        return 1
    with open_store(config) as store:
        book = store.add_free_text(args.title, args.author, args.rating)
    if book is None:
        logger.error(f"Could not save '{args.title}'")
        return 1
    print(f"Added '{book.title}' by {book.author} - {rating_label(book.rating)} [{book.id}]")


def _require_book(store: CollectionStore, book_id: str) -> Optional[Book]:
    book = resolve_book(store, book_id)
    if book is None:
        logger.error(f"Unknown book id {book_id}; search or recommend first")
    return book


def mark_read(args, config: Config):
    """Mark a found, recommended or listed book as read."""
    with open_store(config) as store:
        book = _require_book(store, args.book_id)
        if book is None:
            return 1
        if store.find_read_book(book.id):
            print(f"'{book.title}' is already in your read books")
            return
        if not store.mark_as_read(book, args.rating):
            logger.error(f"Could not save '{book.title}'")
            return 1
    print(f"Marked '{book.title}' as read")


def want_book(args, config: Config):
    """Add a book to the reading list (moving it out of read books if there)."""
    with open_store(config) as store:
        book = _require_book(store, args.book_id)
        if book is None:
            return 1
        if store.find_in_reading_list(book.id):
            print(f"'{book.title}' is already on your reading list")
            return
        if store.find_read_book(book.id):
            changed = store.move_to_reading_list(book)
        else:
            changed = store.add_to_reading_list(book)
        if not changed:
            logger.error(f"Could not save '{book.title}'")
            return 1
        print(f"Added '{book.title}' to your reading list at #{store.reading_position(book.id)}")


def rate_book(args, config: Config):
    with open_store(config) as store:
        if not store.find_read_book(args.book_id):
            logger.error(f"No read book with id {args.book_id}")
            return 1
        store.update_rating(args.book_id, args.rating)
        book = store.find_read_book(args.book_id)
    print(f"{book.title}: {render_stars(book.rating)} {rating_label(book.rating)}")


def remove_book(args, config: Config):
    with open_store(config) as store:
        if args.from_list:
            removed = store.remove_from_reading_list(args.book_id)
        else:
            removed = store.remove_read_book(args.book_id)
    if not removed:
        logger.error(f"Nothing removed for id {args.book_id}")
        return 1
    print(f"Removed {args.book_id}")


def give_feedback(args, config: Config):
    with open_store(config) as store:
        current = store.set_feedback(args.book_id, args.command)
    print(f"Feedback for {args.book_id}: {current.value if current else 'neutral'}")


def recommend_books(args, config: Config):
    """Show recommendations for your favourite genre."""
    top_n = config.RECOMMENDATION_TOP_N if args.top is None else args.top
    engine = RecommendationEngine(
        CatalogClient(api_key=config.GOOGLE_BOOKS_API_KEY, timeout=config.DEFAULT_TIMEOUT),
        batch_size=config.RECOMMENDATION_BATCH_SIZE,
        fallback_genre=config.FALLBACK_GENRE,
    )

    with open_store(config) as store:
        try:
            if args.use_async:
                ranked = asyncio.run(_refresh_async(store, engine, config))
            else:
                ranked = RecommendationService(store, engine, top_n=top_n).ranked()
        finally:
            engine.catalog.close()

        if args.genre:
            ranked = filter_by_genre(ranked, args.genre)

        shown = ranked[:top_n]
        if not shown:
            logger.info("No recommendations right now")
            return

        remember_results(store, shown)
    display_books(shown, args.format, config)


async def _refresh_async(store, engine, config: Config):
    async with AsyncCatalogClient(
        api_key=config.GOOGLE_BOOKS_API_KEY,
        timeout=config.DEFAULT_TIMEOUT
    ) as client:
        service = RecommendationService(store, engine, async_catalog=client)
        return await service.refresh_async()


def show_stats(args, config: Config):
    """Show reading statistics."""
    with open_store(config) as store:
        stats = store.stats()

    print("\n" + "=" * 50)
    print("YOUR READING STATS")
    print("=" * 50)
    if not stats.total_books:
        print("Add some books to see your stats.")
    else:
        print(f"Total books: {stats.total_books}")
        print(f"Average rating: {stats.average_rating}")
        print(f"Top genre: {stats.top_genre or 'N/A'}")
    print("=" * 50 + "\n")


def export_data(args, config: Config):
    """Export read books."""
    with open_store(config) as store:
        books = store.read_books

    if args.format == "json":
        data = [book.to_dict() for book in books]
        if args.output:
            with open(args.output, 'w') as f:
                json.dump(data, f, indent=2)
            logger.info(f"✅ Exported {len(books)} books to {args.output}")
        else:
            print(json.dumps(data, indent=2))

    elif args.format == "csv":
        output_file = args.output or "books_export.csv"
        with open(output_file, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(["ID", "Title", "Author", "Genre", "Rating", "Date Added"])
            for book in books:
                writer.writerow([book.id, book.title, book.author, book.genre, book.rating, book.date_added])
        logger.info(f"✅ Exported {len(books)} books to {output_file}")


COMMANDS = {
    "search": search_books,
    "list": list_collections,
    "add": add_book,
    "read": mark_read,
    "want": want_book,
    "rate": rate_book,
    "remove": remove_book,
    "like": give_feedback,
    "dislike": give_feedback,
    "recommend": recommend_books,
    "stats": show_stats,
    "export": export_data,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Next Page - track what you read and what to read next",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Find a book and mark it as read with 4.5 stars
  %(prog)s search "the name of the wind"
  %(prog)s read <id> --rating 4.5

  # Get five recommendations for your top genre
  %(prog)s recommend --top 5

  # Like a recommendation so it ranks higher next time
  %(prog)s like <id>
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to execute")

    search_parser = subparsers.add_parser("search", help="Search the catalog by title")
    search_parser.add_argument("query", help="Search text (at least 3 characters)")
    search_parser.add_argument("--limit", type=int, default=10, help="Max results (default: 10)")
    search_parser.add_argument("--format", choices=["table", "json", "compact"], default="table", help="Output format")
    search_parser.add_argument("--async", dest="use_async", action="store_true", help="Use the debounced async client")

    list_parser = subparsers.add_parser("list", help="Show read books and reading list")
    list_parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    add_parser = subparsers.add_parser("add", help="Add a book you've read by title")
    add_parser.add_argument("title", help="Book title")
    add_parser.add_argument("--author", help="Author (optional)")
    add_parser.add_argument("--rating", type=float, default=5, help="Rating 0-5 in half stars (default: 5)")

    read_parser = subparsers.add_parser("read", help="Mark a book as read")
    read_parser.add_argument("book_id", help="Book id from search, recommend or list")
    read_parser.add_argument("--rating", type=float, help="Rating 0-5 in half stars (default: 5)")

    want_parser = subparsers.add_parser("want", help="Add a book to your reading list")
    want_parser.add_argument("book_id", help="Book id from search, recommend or list")

    rate_parser = subparsers.add_parser("rate", help="Re-rate a book you've read")
    rate_parser.add_argument("book_id", help="Read book id")
    rate_parser.add_argument("rating", type=float, help="Rating 0-5 in half stars")

    remove_parser = subparsers.add_parser("remove", help="Remove a read book")
    remove_parser.add_argument("book_id", help="Book id")
    remove_parser.add_argument("--from-list", action="store_true", help="Remove from the reading list instead")

    for kind in ("like", "dislike"):
        feedback_parser = subparsers.add_parser(kind, help=f"Toggle '{kind}' feedback on a book")
        feedback_parser.add_argument("book_id", help="Book id")

    recommend_parser = subparsers.add_parser("recommend", help="Recommend books for your top genre")
    recommend_parser.add_argument("--top", type=int, help="How many to show (default: 5)")
    recommend_parser.add_argument("--genre", help="Only show this genre")
    recommend_parser.add_argument("--format", choices=["table", "json", "compact"], default="compact", help="Output format")
    recommend_parser.add_argument("--async", dest="use_async", action="store_true", help="Use async client")

    subparsers.add_parser("stats", help="Show reading statistics")

    export_parser = subparsers.add_parser("export", help="Export read books")
    export_parser.add_argument("--format", choices=["json", "csv"], default="json", help="Export format")
    export_parser.add_argument("--output", help="Output file (default: stdout for JSON)")

    return parser


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    config = Config()

    try:
        status = COMMANDS[args.command](args, config)
    except KeyboardInterrupt:
        logger.info("\n⚠️  Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"❌ Error: {e}", exc_info=True)
        sys.exit(1)

    sys.exit(status or 0)


if __name__ == "__main__":
    main()
