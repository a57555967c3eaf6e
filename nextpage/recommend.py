"""Genre-affinity recommendations built on catalog search results."""
import logging
import random
from dataclasses import asdict
from typing import Dict, Iterable, List, Optional

from nextpage.models import Book, FeedbackKind, ReadBook, Recommendation
from nextpage.ratings import apply_feedback
from nextpage.store import genre_counts

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 10
DEFAULT_TOP_N = 5
FALLBACK_GENRE = "fiction"

NEUTRAL_SCORE = 5.0
MAX_SCORE = 10.0

# Placeholder affinity range; not a real similarity measure
SIMILARITY_LOW = 0.2
SIMILARITY_HIGH = 0.8


def target_genre(read_books: List[ReadBook], fallback: str = FALLBACK_GENRE) -> str:
    """
    Most frequent known genre among read books.

    Ties go to the genre seen first; with no known genres the fallback
    is returned.
    """
    counts = genre_counts(read_books)
    if not counts:
        return fallback
    return counts.most_common(1)[0][0]


def base_score(book: Book) -> float:
    """Scale the upstream 1-5 average rating to 0-10, or use the neutral score."""
    if book.average_rating is None:
        return NEUTRAL_SCORE
    return min(max(book.average_rating * 2, 0.0), MAX_SCORE)


def build_reasoning(genre: str, genre_count: int, kind: Optional[FeedbackKind]) -> str:
    if genre_count:
        plural = "s" if genre_count != 1 else ""
        reasoning = f"You've read {genre_count} {genre} book{plural}, so here's another {genre} pick."
    else:
        reasoning = f"A popular {genre} pick to get you started."

    if kind == FeedbackKind.LIKE:
        reasoning += " You liked this one before."
    elif kind == FeedbackKind.DISLIKE:
        reasoning += " You marked this as not for you, so it ranks lower."
    return reasoning


def rank_candidates(
    candidates: Iterable[Book],
    read_books: List[ReadBook],
    reading_list: List[Book],
    feedback: Dict[str, FeedbackKind],
    genre: str,
    rng: Optional[random.Random] = None
) -> List[Recommendation]:
    """
    Score and order catalog candidates.

    Candidates already read, already on the reading list, or repeated are
    dropped. Scores are sorted high to low with a stable sort, so equal
    scores keep catalog order; that tie order is not part of the contract.

    Args:
        candidates: Books returned by the catalog for ``genre``
        read_books: Current read books
        reading_list: Current reading list
        feedback: Current like/dislike map
        genre: Genre the candidates were fetched for
        rng: Source for the placeholder similarity score

    Returns:
        Full ranked list of recommendations
    """
    rng = rng or random.Random()
    excluded = {b.id for b in read_books} | {b.id for b in reading_list}
    genre_count = genre_counts(read_books).get(genre, 0)

    recommendations = []
    for book in candidates:
        if book.id in excluded:
            continue
        excluded.add(book.id)

        kind = feedback.get(book.id)
        recommendations.append(Recommendation(
            **asdict(book.as_book()),
            score=apply_feedback(base_score(book), kind),
            similarity_score=SIMILARITY_LOW + (SIMILARITY_HIGH - SIMILARITY_LOW) * rng.random(),
            reasoning=build_reasoning(genre, genre_count, kind),
        ))

    return sorted(recommendations, key=lambda r: r.score, reverse=True)


def filter_by_genre(ranked: List[Recommendation], genre: Optional[str]) -> List[Recommendation]:
    """Narrow an already ranked list to one genre (case-insensitive)."""
    if not genre:
        return list(ranked)
    wanted = genre.strip().lower()
    return [r for r in ranked if r.genre.lower() == wanted]


class RecommendationEngine:
    """Fetches candidates for the user's favourite genre and ranks them."""

    def __init__(
        self,
        catalog,
        batch_size: int = DEFAULT_BATCH_SIZE,
        fallback_genre: str = FALLBACK_GENRE,
        rng: Optional[random.Random] = None
    ):
        self.catalog = catalog
        self.batch_size = batch_size
        self.fallback_genre = fallback_genre
        self.rng = rng or random.Random()

    def genre_for(self, store) -> str:
        return target_genre(store.read_books, self.fallback_genre)

    def rank(self, candidates: List[Book], store, genre: str) -> List[Recommendation]:
        """Rank against the store's state as it is right now."""
        return rank_candidates(
            candidates,
            store.read_books,
            store.reading_list,
            store.feedback,
            genre,
            self.rng,
        )

    def recommend(self, store) -> List[Recommendation]:
        """Run the whole pipeline with a blocking catalog client."""
        genre = self.genre_for(store)
        candidates = self.catalog.query_by_genre(genre, self.batch_size)
        if not candidates:
            logger.warning(f"No candidates for genre '{genre}'")
            return []

        ranked = self.rank(candidates, store, genre)
        logger.info(f"Ranked {len(ranked)} recommendations for genre '{genre}'")
        return ranked


class RecommendationService:
    """
    Keeps the recommendation list in step with the store.

    Store mutations mark the list stale; the next read recomputes it.
    ``refresh_async`` fetches without blocking and re-reads the store when
    the response arrives, so owned books are excluded even if they were
    added while the request was in flight. A response is dropped if a
    request issued after it has already been applied.
    """

    def __init__(self, store, engine: RecommendationEngine, async_catalog=None, top_n: int = DEFAULT_TOP_N):
        self.store = store
        self.engine = engine
        self.async_catalog = async_catalog
        self.top_n = top_n

        self._ranked: List[Recommendation] = []
        self._dirty = True
        self._version = 0
        self._issued = 0
        self._applied = 0

        store.subscribe(self.invalidate)

    @property
    def is_stale(self) -> bool:
        return self._dirty

    def invalidate(self, collection_name: Optional[str] = None):
        self._version += 1
        self._dirty = True

    def ranked(self) -> List[Recommendation]:
        """Full ranked list, recomputed if anything changed since last time."""
        if self._dirty:
            version = self._version
            self._ranked = self.engine.recommend(self.store)
            self._dirty = self._version != version
        return list(self._ranked)

    def top(self, n: Optional[int] = None) -> List[Recommendation]:
        return self.ranked()[:self.top_n if n is None else n]

    def by_genre(self, genre: str) -> List[Recommendation]:
        return filter_by_genre(self.ranked(), genre)

    async def refresh_async(self) -> List[Recommendation]:
        if self.async_catalog is None:
            raise RuntimeError("No async catalog client configured")

        self._issued += 1
        generation = self._issued
        version = self._version
        genre = self.engine.genre_for(self.store)

        candidates = await self.async_catalog.query_by_genre(genre, self.engine.batch_size)

        if generation < self._applied:
            logger.info(f"Discarding superseded recommendations (request {generation})")
            return list(self._ranked)

        self._ranked = self.engine.rank(candidates, self.store, genre)
        self._applied = generation
        self._dirty = self._version != version
        return list(self._ranked)
