"""Rating labels, star rendering and feedback score adjustments."""
from typing import Optional

from nextpage.models import FeedbackKind

MIN_RATING = 0.0
MAX_RATING = 5.0
DEFAULT_RATING = 5.0

LIKE_BOOST = 1.5
DISLIKE_PENALTY = 2.0

# Upper bounds are inclusive: 1.5 is still "Hated it"
_LABELS = [
    (1.5, "Hated it"),
    (2.5, "Not for me"),
    (3.5, "Pretty decent"),
    (4.5, "I liked it"),
    (5.0, "Loved it"),
]


def normalize_rating(rating: Optional[float], default: float = DEFAULT_RATING) -> float:
    """
    Clamp a rating to [0, 5] and round it to the nearest half star.

    Args:
        rating: Raw rating, or None to use the default
        default: Rating used when none was given

    Returns:
        Normalized rating
    """
    if rating is None:
        return default
    rating = min(max(float(rating), MIN_RATING), MAX_RATING)
    return round(rating * 2) / 2


def rating_label(rating: float) -> str:
    """Map a rating to the label shown under the star control."""
    if rating <= 0:
        return "No rating"
    for upper, label in _LABELS:
        if rating <= upper:
            return label
    return _LABELS[-1][1]


def render_stars(rating: float) -> str:
    """Render a five-position star strip, with a half star where needed."""
    rating = normalize_rating(rating)
    full = int(rating)
    half = 1 if rating - full >= 0.5 else 0
    return "★" * full + "⯪" * half + "☆" * (5 - full - half)


def apply_feedback(score: float, kind: Optional[FeedbackKind]) -> float:
    """
    Adjust a recommendation score by the user's like/dislike feedback.

    Args:
        score: Base score
        kind: Feedback recorded for the book, or None

    Returns:
        Adjusted score (never negative after a dislike)
    """
    if kind == FeedbackKind.LIKE:
        return score + LIKE_BOOST
    if kind == FeedbackKind.DISLIKE:
        return max(0.0, score - DISLIKE_PENALTY)
    return score
