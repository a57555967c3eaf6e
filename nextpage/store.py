"""Collection store: read books, reading list and feedback, written through to a backend."""
import json
import logging
import time
from collections import Counter
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from nextpage.models import (
    Book,
    FeedbackKind,
    ReadBook,
    ReadingStats,
    UNKNOWN_AUTHOR,
    UNKNOWN_GENRE,
)
from nextpage.ratings import normalize_rating

logger = logging.getLogger(__name__)

BOOKS_KEY = "books"
READING_LIST_KEY = "readingList"
FEEDBACK_KEY = "bookFeedback"

COLLECTIONS = (BOOKS_KEY, READING_LIST_KEY, FEEDBACK_KEY)

_ATTRIBUTES = {
    BOOKS_KEY: "_books",
    READING_LIST_KEY: "_reading_list",
    FEEDBACK_KEY: "_feedback",
}


def genre_counts(books: List[Book]) -> Counter:
    """Count known genres; Counter keeps first-seen order for equal counts."""
    return Counter(book.genre for book in books if book.has_known_genre)


class CollectionStore:
    """
    Owns the canonical read-books, reading-list and feedback collections.

    A book id never appears in both read books and the reading list: adding
    to one collection moves the book out of the other, and adding a book
    that is already present is a no-op. Every mutation is persisted
    first and only then applied and announced to subscribers; a mutation
    whose save fails is logged and leaves the collections as they were.
    """

    def __init__(self, backend, clock: Callable[[], float] = time.time):
        self.backend = backend
        self.clock = clock
        self._books: List[ReadBook] = []
        self._reading_list: List[Book] = []
        self._feedback: Dict[str, FeedbackKind] = {}
        self._listeners: List[Callable[[str], None]] = []

    # -- read-only views -------------------------------------------------
    # Callers get copies of the entries; only the mutators below change them.

    @property
    def read_books(self) -> List[ReadBook]:
        return [replace(book) for book in self._books]

    @property
    def reading_list(self) -> List[Book]:
        return [replace(book) for book in self._reading_list]

    @property
    def feedback(self) -> Dict[str, FeedbackKind]:
        return dict(self._feedback)

    def owned_ids(self) -> set:
        """Ids present in either read books or the reading list."""
        return {b.id for b in self._books} | {b.id for b in self._reading_list}

    def find_read_book(self, book_id: str) -> Optional[ReadBook]:
        book = self._find(self._books, book_id)
        return replace(book) if book else None

    def find_in_reading_list(self, book_id: str) -> Optional[Book]:
        book = self._find(self._reading_list, book_id)
        return replace(book) if book else None

    # -- lifecycle ---------------------------------------------------------

    def load(self):
        """
        Load all three collections from the backend.

        A missing key starts that collection empty. A malformed blob or a
        backend that cannot be read is logged and also starts empty; load
        never raises for bad or unreachable data.
        """
        self._books = self._load_list(BOOKS_KEY, self._parse_read_book)
        self._reading_list = self._load_list(READING_LIST_KEY, self._parse_reading_entry)
        self._feedback = self._load_feedback()
        logger.info(
            f"Loaded {len(self._books)} read books, {len(self._reading_list)} "
            f"reading list entries, {len(self._feedback)} feedback entries"
        )
        return self

    def _read_json(self, key: str):
        try:
            raw = self.backend.get(key)
        except Exception as e:
            logger.error(f"Could not read '{key}', starting empty: {e}")
            return None
        if raw is None:
            return None
        return json.loads(raw)

    def _load_list(self, key: str, parse) -> list:
        try:
            data = self._read_json(key)
            if data is None:
                return []
            if not isinstance(data, list):
                raise ValueError(f"expected a list, got {type(data).__name__}")
            return [parse(record) for record in data]
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed data for '{key}', starting empty: {e}")
            return []

    def _load_feedback(self) -> Dict[str, FeedbackKind]:
        try:
            data = self._read_json(FEEDBACK_KEY)
            if data is None:
                return {}
            if not isinstance(data, dict):
                raise ValueError(f"expected an object, got {type(data).__name__}")
            return {str(book_id): FeedbackKind(kind) for book_id, kind in data.items()}
        except (ValueError, TypeError) as e:
            logger.error(f"Malformed data for '{FEEDBACK_KEY}', starting empty: {e}")
            return {}

    @staticmethod
    def _parse_read_book(record) -> ReadBook:
        book = ReadBook.from_dict(record)
        book.rating = normalize_rating(book.rating)
        return book

    @staticmethod
    def _parse_reading_entry(record) -> Book:
        return Book.from_dict(record).as_book()

    def save(self, collection_name: str, value=None):
        """
        Serialize and persist one collection.

        Args:
            collection_name: One of "books", "readingList", "bookFeedback"
            value: Collection to write; defaults to the store's current copy
        """
        if collection_name == BOOKS_KEY:
            value = self._books if value is None else value
            payload = [book.to_dict() for book in value]
        elif collection_name == READING_LIST_KEY:
            value = self._reading_list if value is None else value
            payload = [book.to_dict() for book in value]
        elif collection_name == FEEDBACK_KEY:
            value = self._feedback if value is None else value
            payload = {book_id: FeedbackKind(kind).value for book_id, kind in value.items()}
        else:
            raise ValueError(f"Unknown collection: {collection_name}")

        self.backend.set(collection_name, json.dumps(payload))
        logger.debug(f"Saved {collection_name} ({len(payload)} entries)")

    # -- change notification ----------------------------------------------

    def subscribe(self, listener: Callable[[str], None]) -> Callable[[], None]:
        """Register a listener called with the collection name after each change."""
        self._listeners.append(listener)
        return lambda: self._listeners.remove(listener)

    def _commit(self, changes: dict) -> bool:
        """
        Persist new collection values, then make them current and notify.

        If any write fails, collections already written are restored from
        the in-memory state, which is left unchanged, and no listener runs.

        Args:
            changes: Collection name mapped to its new value

        Returns:
            True if every write succeeded
        """
        written = []
        try:
            for name, value in changes.items():
                self.save(name, value)
                written.append(name)
        except Exception as e:
            logger.error(f"Failed to save {', '.join(changes)}, keeping previous state: {e}")
            for name in written:
                try:
                    self.save(name)
                except Exception as restore_error:
                    logger.error(f"Failed to restore {name}: {restore_error}")
            return False

        for name, value in changes.items():
            setattr(self, _ATTRIBUTES[name], value)
        for name in changes:
            for listener in list(self._listeners):
                listener(name)
        return True

    # -- read books ----------------------------------------------------------

    def add_read_book(self, book: Book, rating: Optional[float] = None) -> bool:
        """
        Add a book to read books, moving it out of the reading list if needed.

        Args:
            book: Book to add (a catalog result, recommendation or entry)
            rating: Personal rating; falls back to the book's rating, then 5

        Returns:
            True if the collections changed and were saved
        """
        if self._find(self._books, book.id):
            logger.debug(f"Book {book.id} already read, ignoring")
            return False

        if rating is None:
            rating = book.rating
        read_book = ReadBook.from_book(book, normalize_rating(rating))
        read_book.date_added = self._now_iso()

        changes = {BOOKS_KEY: self._books + [read_book]}
        reading_list = self._without(self._reading_list, book.id)
        if len(reading_list) != len(self._reading_list):
            changes[READING_LIST_KEY] = reading_list

        if not self._commit(changes):
            return False
        logger.info(f"Added read book: {book.title} ({read_book.rating})")
        return True

    def add_free_text(
        self,
        title: str,
        author: Optional[str] = None,
        rating: Optional[float] = None
    ) -> Optional[ReadBook]:
        """Add a hand-typed book; blank titles and failed saves return None."""
        title = (title or "").strip()
        if not title:
            return None

        book = Book(
            id=self._generate_id(),
            title=title,
            author=(author or "").strip() or UNKNOWN_AUTHOR,
            genre=UNKNOWN_GENRE,
        )
        if not self.add_read_book(book, rating):
            return None
        return self.find_read_book(book.id)

    def remove_read_book(self, book_id: str) -> bool:
        books = self._without(self._books, book_id)
        if len(books) == len(self._books):
            return False
        return self._commit({BOOKS_KEY: books})

    def update_rating(self, book_id: str, new_rating: float) -> bool:
        """Re-rate an owned book; date_added is left untouched."""
        book = self._find(self._books, book_id)
        if book is None:
            return False

        rating = normalize_rating(new_rating)
        if book.rating == rating:
            return False

        books = [replace(b, rating=rating) if b is book else b for b in self._books]
        return self._commit({BOOKS_KEY: books})

    # -- reading list --------------------------------------------------------

    def add_to_reading_list(self, book: Book) -> bool:
        """Append to the reading list, moving the book out of read books if needed."""
        if self._find(self._reading_list, book.id):
            logger.debug(f"Book {book.id} already on reading list, ignoring")
            return False

        changes = {READING_LIST_KEY: self._reading_list + [book.as_book()]}
        books = self._without(self._books, book.id)
        if len(books) != len(self._books):
            changes[BOOKS_KEY] = books

        if not self._commit(changes):
            return False
        logger.info(f"Added to reading list: {book.title}")
        return True

    def move_to_reading_list(self, book: Book) -> bool:
        """Send a read book back to the reading list, dropping its rating."""
        return self.add_to_reading_list(book)

    def remove_from_reading_list(self, book_id: str) -> bool:
        reading_list = self._without(self._reading_list, book_id)
        if len(reading_list) == len(self._reading_list):
            return False
        return self._commit({READING_LIST_KEY: reading_list})

    def mark_as_read(self, book: Book, rating: Optional[float] = None) -> bool:
        """Move a reading-list entry into read books with the given rating."""
        return self.add_read_book(book, rating)

    def reading_position(self, book_id: str) -> Optional[int]:
        """1-based display position on the reading list."""
        for index, book in enumerate(self._reading_list):
            if book.id == str(book_id):
                return index + 1
        return None

    # -- feedback ------------------------------------------------------------

    def set_feedback(self, book_id: str, kind) -> Optional[FeedbackKind]:
        """
        Toggle like/dislike for a book.

        Setting the value already stored clears it; setting the other value
        replaces it. If the change cannot be saved the old value stays.

        Returns:
            The feedback now recorded for the book, or None if neutral
        """
        book_id = str(book_id)
        kind = FeedbackKind(kind)

        feedback = dict(self._feedback)
        if feedback.get(book_id) == kind:
            del feedback[book_id]
        else:
            feedback[book_id] = kind

        self._commit({FEEDBACK_KEY: feedback})
        return self._feedback.get(book_id)

    # -- stats ---------------------------------------------------------------

    def stats(self) -> ReadingStats:
        total = len(self._books)
        if not total:
            return ReadingStats(total_books=0, average_rating=0.0, top_genre=None)

        average = round(sum(book.rating for book in self._books) / total, 1)
        counts = genre_counts(self._books)
        top_genre = counts.most_common(1)[0][0] if counts else None
        return ReadingStats(total_books=total, average_rating=average, top_genre=top_genre)

    # -- helpers -------------------------------------------------------------

    @staticmethod
    def _find(collection: list, book_id: str):
        return next((b for b in collection if b.id == str(book_id)), None)

    @staticmethod
    def _without(collection: list, book_id: str) -> list:
        return [b for b in collection if b.id != str(book_id)]

    def _now_iso(self) -> str:
        return datetime.fromtimestamp(self.clock(), timezone.utc).isoformat()

    def _generate_id(self) -> str:
        """Millisecond timestamp id, bumped until it is unused."""
        candidate = int(self.clock() * 1000)
        taken = self.owned_ids()
        while str(candidate) in taken:
            candidate += 1
        return str(candidate)
