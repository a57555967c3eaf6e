"""Data models for books, reading lists and recommendations."""
from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

UNKNOWN_AUTHOR = "Unknown Author"
UNKNOWN_GENRE = "Unknown"
UNKNOWN_TITLE = "Unknown Title"
NO_DESCRIPTION = "No description available."

# Persisted JSON keeps the web app's camelCase field names
_FIELD_TO_KEY = {
    "cover_image": "coverImage",
    "average_rating": "averageRating",
    "date_added": "dateAdded",
    "similarity_score": "similarityScore",
}
_KEY_TO_FIELD = {v: k for k, v in _FIELD_TO_KEY.items()}


class FeedbackKind(str, Enum):
    LIKE = "like"
    DISLIKE = "dislike"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass
class Book:
    """Normalized book representation."""
    id: str
    title: str
    author: str = UNKNOWN_AUTHOR
    genre: str = UNKNOWN_GENRE
    description: str = ""
    cover_image: Optional[str] = None
    asin: Optional[str] = None
    rating: Optional[float] = None
    average_rating: Optional[float] = None

    @property
    def has_known_genre(self) -> bool:
        return bool(self.genre) and self.genre != UNKNOWN_GENRE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with camelCase keys."""
        return {_FIELD_TO_KEY.get(k, k): v for k, v in asdict(self).items()}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]):
        """
        Build an instance from a persisted record.

        Unknown keys are ignored; a record without an id or title raises
        ValueError so callers can treat the blob as malformed.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Expected an object, got {type(data).__name__}")

        names = set(cls.__dataclass_fields__)
        kwargs = {}
        for key, value in data.items():
            name = _KEY_TO_FIELD.get(key, key)
            if name in names:
                kwargs[name] = value

        if kwargs.get("id") in (None, "") or not kwargs.get("title"):
            raise ValueError(f"Record is missing id or title: {data!r}")

        kwargs["id"] = str(kwargs["id"])
        return cls(**kwargs)

    def as_book(self) -> "Book":
        """Strip derived and owned fields, leaving a plain unrated Book."""
        return Book(
            id=self.id,
            title=self.title,
            author=self.author,
            genre=self.genre,
            description=self.description,
            cover_image=self.cover_image,
            asin=self.asin,
            average_rating=self.average_rating,
        )


@dataclass
class ReadBook(Book):
    """A book the user has finished, with a personal rating."""
    rating: float = 5.0
    date_added: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_book(cls, book: Book, rating: float) -> "ReadBook":
        plain = book.as_book()
        return cls(**{**asdict(plain), "rating": rating})


@dataclass
class Recommendation(Book):
    """A catalog book scored for the current user. Never persisted."""
    score: float = 0.0
    similarity_score: float = 0.0
    reasoning: str = ""


@dataclass
class ReadingStats:
    """Summary shown on the reading stats dashboard."""
    total_books: int
    average_rating: float
    top_genre: Optional[str]
