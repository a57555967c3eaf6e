"""Tests for rating labels, stars and feedback adjustments."""
import pytest

from nextpage.models import FeedbackKind
from nextpage.ratings import apply_feedback, normalize_rating, rating_label, render_stars


@pytest.mark.parametrize("rating, label", [
    (0, "No rating"),
    (0.5, "Hated it"),
    (1, "Hated it"),
    (1.5, "Hated it"),
    (2, "Not for me"),
    (2.5, "Not for me"),
    (3, "Pretty decent"),
    (3.5, "Pretty decent"),
    (4, "I liked it"),
    (4.5, "I liked it"),
    (5, "Loved it"),
])
def test_rating_label_half_steps(rating, label):
    """Every half step maps to a label; thresholds are inclusive upper bounds."""
    assert rating_label(rating) == label


def test_rating_label_just_above_thresholds():
    assert rating_label(1.6) == "Not for me"
    assert rating_label(2.6) == "Pretty decent"
    assert rating_label(3.6) == "I liked it"
    assert rating_label(4.6) == "Loved it"


def test_normalize_rating():
    assert normalize_rating(None) == 5.0
    assert normalize_rating(3.3) == 3.5
    assert normalize_rating(3.2) == 3.0
    assert normalize_rating(-1) == 0.0
    assert normalize_rating(7) == 5.0


def test_render_stars():
    assert render_stars(5) == "★★★★★"
    assert render_stars(0) == "☆☆☆☆☆"
    assert render_stars(3.5) == "★★★⯪☆"


def test_apply_feedback():
    """Like adds 1.5, dislike subtracts 2 but never goes below zero."""
    assert apply_feedback(6.0, None) == 6.0
    assert apply_feedback(6.0, FeedbackKind.LIKE) == 7.5
    assert apply_feedback(6.0, FeedbackKind.DISLIKE) == 4.0
    assert apply_feedback(1.0, FeedbackKind.DISLIKE) == 0.0
    assert apply_feedback(6.0, "like") == 7.5
