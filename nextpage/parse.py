"""Parse and normalize Google Books API responses."""
import logging
from typing import Dict, Any, List, Optional

from nextpage.models import (
    Book,
    NO_DESCRIPTION,
    UNKNOWN_AUTHOR,
    UNKNOWN_GENRE,
    UNKNOWN_TITLE,
)

logger = logging.getLogger(__name__)


def _extract_asin(volume_info: Dict[str, Any]) -> Optional[str]:
    """Book ASINs are ISBN-10s, so use the ISBN-10 identifier when listed."""
    for identifier in volume_info.get("industryIdentifiers") or []:
        if identifier.get("type") == "ISBN_10" and identifier.get("identifier"):
            return identifier["identifier"]
    return None


def parse_book(item: Dict[str, Any]) -> Optional[Book]:
    """
    Parse a single volume from the Google Books API.

    Args:
        item: Single item from a volumes response

    Returns:
        Book object or None if the item is unusable
    """
    try:
        volume_info = item.get("volumeInfo") or {}

        book_id = item.get("id", "")
        if not book_id:
            return None

        authors = volume_info.get("authors") or []
        categories = volume_info.get("categories") or []

        # Prefer the larger thumbnail
        image_links = volume_info.get("imageLinks") or {}
        cover_image = image_links.get("thumbnail") or image_links.get("smallThumbnail")

        average_rating = volume_info.get("averageRating")

        return Book(
            id=str(book_id),
            title=volume_info.get("title") or UNKNOWN_TITLE,
            author=", ".join(authors) if authors else UNKNOWN_AUTHOR,
            genre=categories[0] if categories else UNKNOWN_GENRE,
            description=volume_info.get("description") or NO_DESCRIPTION,
            cover_image=cover_image,
            asin=_extract_asin(volume_info),
            average_rating=float(average_rating) if average_rating is not None else None,
        )
    except (AttributeError, TypeError, ValueError) as e:
        # APIs can be unpredictable - skip the item rather than the batch
        logger.warning(f"Failed to parse book: {e}")
        return None


def parse_books_response(response_json: Optional[Dict[str, Any]]) -> List[Book]:
    """
    Parse a full volumes response.

    Args:
        response_json: Complete API response JSON

    Returns:
        De-duplicated list of Book objects (empty if no items found)
    """
    if not response_json:
        return []

    books = []
    for item in response_json.get("items") or []:
        book = parse_book(item)
        if book:
            books.append(book)

    return deduplicate_books(books)


def deduplicate_books(books: List[Book]) -> List[Book]:
    """Remove duplicate books by ID, keeping the first occurrence."""
    seen_ids = set()
    unique_books = []

    for book in books:
        if book.id not in seen_ids:
            seen_ids.add(book.id)
            unique_books.append(book)

    return unique_books
