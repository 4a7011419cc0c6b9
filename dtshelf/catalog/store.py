"""
Search over the in-memory catalogue.

Two ways of ordering books for a query live here:

* ``score_books()`` — local keyword search. Query tokens are widened
  with the design-thinking synonym table and matched against title,
  keywords and recommendation text with decreasing weights.

* ``recommend()`` — the entry point used by the API. It asks the remote
  ranker first and falls back to ``score_books()`` when the ranker is
  not configured or fails.

``select_books()`` turns an ordered id list back into book records for
display.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

from ..ai import RankerClient, RemoteRankerError, rank_books
from ..config import SYNONYMS
from .schemas import Book


logger = logging.getLogger(__name__)

TITLE_WEIGHT = 10
KEYWORD_WEIGHT = 5
REASON_WEIGHT = 2


def _norm(s: Optional[str]) -> str:
    return (s or "").strip().lower()


def expand_tokens(query: str) -> List[str]:
    """Split a query into lowercase tokens and append their synonyms.

    The original tokens always come first and are kept as typed.
    """
    tokens = _norm(query).split()
    expanded = list(tokens)
    for token in tokens:
        expanded.extend(SYNONYMS.get(token, []))
    return expanded


def score_book(book: Book, tokens: Sequence[str]) -> int:
    title = _norm(book.title)
    keywords = " ".join(_norm(k) for k in book.keywords)
    reason = _norm(book.reason)

    score = 0
    for token in tokens:
        if token in title:
            score += TITLE_WEIGHT
        if token in keywords:
            score += KEYWORD_WEIGHT
        if token in reason:
            score += REASON_WEIGHT
    return score


def score_books(query: str, books: Sequence[Book]) -> List[str]:
    """Ids of books matching ``query``, best first.

    Books scoring zero are dropped. Equal scores keep catalog order.
    An empty query has no tokens and therefore matches nothing; showing
    the whole catalog for it is ``recommend()``'s job.
    """
    tokens = expand_tokens(query)
    if not tokens:
        return []

    scored = [(book.id, score_book(book, tokens)) for book in books]
    matches = [item for item in scored if item[1] > 0]
    # list.sort is stable, so ties stay in catalog order
    matches.sort(key=lambda item: item[1], reverse=True)
    return [book_id for book_id, _ in matches]


def all_ids(books: Sequence[Book]) -> List[str]:
    return [book.id for book in books]


async def recommend(
    query: str,
    books: Sequence[Book],
    client: Optional[RankerClient] = None,
    timeout: Optional[float] = None,
) -> List[str]:
    """Ordered book ids for a combined query.

    Blank query: the whole catalog, unranked. Otherwise the remote
    ranker's answer, or local scoring when there is no ranker client or
    the ranker fails. The two are never mixed.
    """
    q = (query or "").strip()
    if not q:
        return all_ids(books)

    if client is not None:
        try:
            return await rank_books(q, books, client, timeout=timeout)
        except RemoteRankerError as exc:
            logger.warning("AI ranking failed, switching to local search: %s", exc)

    return score_books(q, books)


def select_books(books: Sequence[Book], ids: Sequence[str]) -> List[Book]:
    """Books in ``ids`` order. Ids without a live record are skipped."""
    by_id: Dict[str, Book] = {book.id: book for book in books}
    selected: List[Book] = []
    seen = set()
    for book_id in ids:
        book = by_id.get(book_id)
        if book is None or book_id in seen:
            continue
        seen.add(book_id)
        selected.append(book)
    return selected
