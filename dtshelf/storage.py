import logging
from typing import List, Optional

from .catalog.schemas import Book
from .catalog.sheet_service import fetch_books, read_books_file
from .config import settings


logger = logging.getLogger(__name__)

# Current catalog snapshot. Replaced wholesale on reload, never mutated.
BOOKS: List[Book] = []


def replace_catalog(books: List[Book]) -> List[Book]:
    global BOOKS

    seen = set()
    unique: List[Book] = []
    for book in books:
        if book.id in seen:
            logger.warning("Duplicate book id %s in catalog, keeping the first row", book.id)
            continue
        seen.add(book.id)
        unique.append(book)

    BOOKS = unique
    return BOOKS


def list_books() -> List[Book]:
    return BOOKS


def get_book(book_id: str) -> Optional[Book]:
    return next((b for b in BOOKS if b.id == book_id), None)


async def load_catalog() -> List[Book]:
    """Catalog provider: fetch the configured source. ``[]`` on failure."""
    if settings.catalog_csv_path:
        return await read_books_file(settings.catalog_csv_path)
    return await fetch_books(settings.catalog_url, timeout=settings.http_timeout_seconds)


async def reload_catalog() -> List[Book]:
    return replace_catalog(await load_catalog())
