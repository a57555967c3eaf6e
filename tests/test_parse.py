"""Tests for parsing functions."""
from nextpage.parse import parse_book, parse_books_response, deduplicate_books
from nextpage.models import Book, NO_DESCRIPTION


def test_parse_book_complete():
    """Test parsing a volume with all fields present."""
    item = {
        "id": "abc123",
        "volumeInfo": {
            "title": "The Name of the Wind",
            "authors": ["Patrick Rothfuss"],
            "description": "The tale of Kvothe",
            "categories": ["Fantasy", "Fiction"],
            "averageRating": 4.5,
            "industryIdentifiers": [
                {"type": "ISBN_13", "identifier": "9780756404741"},
                {"type": "ISBN_10", "identifier": "0756404746"}
            ],
            "imageLinks": {
                "smallThumbnail": "http://example.com/small.jpg",
                "thumbnail": "http://example.com/thumb.jpg"
            }
        }
    }

    book = parse_book(item)

    assert book is not None
    assert book.id == "abc123"
    assert book.title == "The Name of the Wind"
    assert book.author == "Patrick Rothfuss"
    assert book.genre == "Fantasy"
    assert book.cover_image == "http://example.com/thumb.jpg"
    assert book.asin == "0756404746"
    assert book.average_rating == 4.5
    assert book.rating is None


def test_parse_book_missing_fields():
    """Test defaults for a volume with nothing but an id."""
    book = parse_book({"id": "xyz789", "volumeInfo": {}})

    assert book is not None
    assert book.title == "Unknown Title"
    assert book.author == "Unknown Author"
    assert book.genre == "Unknown"
    assert book.description == NO_DESCRIPTION
    assert book.cover_image is None
    assert book.asin is None
    assert book.average_rating is None


def test_parse_book_joins_multiple_authors():
    item = {
        "id": "good-omens",
        "volumeInfo": {"title": "Good Omens", "authors": ["Terry Pratchett", "Neil Gaiman"]}
    }

    assert parse_book(item).author == "Terry Pratchett, Neil Gaiman"


def test_parse_book_small_thumbnail_fallback():
    item = {
        "id": "1",
        "volumeInfo": {"title": "Tiny", "imageLinks": {"smallThumbnail": "http://example.com/s.jpg"}}
    }

    assert parse_book(item).cover_image == "http://example.com/s.jpg"


def test_parse_book_no_id():
    """Test that a volume without an id is skipped."""
    assert parse_book({"volumeInfo": {"title": "No ID Book"}}) is None


def test_parse_books_response():
    """Test parsing a complete response, dropping duplicate ids."""
    response = {
        "items": [
            {"id": "1", "volumeInfo": {"title": "Book 1"}},
            {"id": "2", "volumeInfo": {"title": "Book 2"}},
            {"id": "1", "volumeInfo": {"title": "Book 1 again"}}
        ]
    }

    books = parse_books_response(response)

    assert [b.title for b in books] == ["Book 1", "Book 2"]


def test_parse_books_response_empty():
    assert parse_books_response({}) == []
    assert parse_books_response({"totalItems": 0}) == []
    assert parse_books_response(None) == []


def test_deduplicate_books():
    """Test deduplication by book ID."""
    books = [
        Book("1", "Book A"),
        Book("2", "Book B"),
        Book("1", "Book A Duplicate"),
    ]

    unique = deduplicate_books(books)

    assert len(unique) == 2
    assert unique[0].title == "Book A"
    assert unique[1].id == "2"


if __name__ == "__main__":
    # Run tests
    test_parse_book_complete()
    test_parse_book_missing_fields()
    test_parse_book_joins_multiple_authors()
    test_parse_book_small_thumbnail_fallback()
    test_parse_book_no_id()
    test_parse_books_response()
    test_parse_books_response_empty()
    test_deduplicate_books()
    print("✅ All tests passed!")
