"""
Google Sheets integration for the catalogue.

The curated list is maintained in a spreadsheet and published as CSV.
This module exposes:

* ``parse_books_csv()`` — map CSV text (one header row, Korean column
  names) into ``Book`` records, filling placeholders for blank cells.

* ``fetch_books()`` — download the sheet export and parse it.  Runs the
  blocking HTTP request in a worker thread so the event loop keeps
  serving while the sheet is fetched.

* ``read_books_file()`` — same, from a local CSV export (offline use).

Loading never raises: on any failure the error is logged and an empty
list is returned, which the rest of the service treats as a valid,
if empty, catalog.
"""

from __future__ import annotations

import asyncio
import csv
import io
import logging
import urllib.request
import uuid
from pathlib import Path
from typing import Dict, List, Optional

from .schemas import Book


logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)


# Sheet header -> Book field
COLUMN_ID = "번호"
COLUMN_TITLE = "책 제목"
COLUMN_AUTHOR = "저자"
COLUMN_KEYWORDS = "키워드"
COLUMN_REASON = "추천 이유 및 활용 포인트"
COLUMN_PURCHASE_URL = "주문링크"
COLUMN_IMAGE_URL = "표지이미지 링크"

DEFAULT_TITLE = "제목 없음"
DEFAULT_AUTHOR = "저자 미상"
DEFAULT_PURCHASE_URL = "#"
DEFAULT_IMAGE_URL = "https://picsum.photos/200/300?grayscale"


def _http_get_text(url: str, timeout: float) -> Optional[str]:
    """Perform an HTTP GET and return the decoded body or ``None`` on failure.

    Google answers anonymous export requests more reliably with a
    browser-like User-Agent.
    """
    try:
        request = urllib.request.Request(
            url,
            headers={
                'User-Agent': (
                    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) '
                    'AppleWebKit/537.36 (KHTML, like Gecko) '
                    'Chrome/115.0 Safari/537.36'
                ),
                'Accept': 'text/csv',
            },
        )
        with urllib.request.urlopen(request, timeout=timeout) as response:
            if response.status != 200:
                logger.warning(
                    "Sheet request to %s returned status %s", url, response.status
                )
                return None
            # utf-8-sig drops the BOM Sheets sometimes prepends
            return response.read().decode('utf-8-sig', errors='ignore')
    except Exception as exc:
        logger.error("Error fetching %s: %s", url, exc)
        return None


def _split_keywords(raw: str) -> List[str]:
    return [k.strip() for k in raw.split(',') if k.strip()]


def _row_to_book(row: Dict[str, str]) -> Book:
    def cell(column: str) -> str:
        return (row.get(column) or '').strip()

    return Book(
        id=cell(COLUMN_ID) or str(uuid.uuid4().int),
        title=cell(COLUMN_TITLE) or DEFAULT_TITLE,
        author=cell(COLUMN_AUTHOR) or DEFAULT_AUTHOR,
        keywords=_split_keywords(cell(COLUMN_KEYWORDS)),
        reason=cell(COLUMN_REASON),
        purchase_url=cell(COLUMN_PURCHASE_URL) or DEFAULT_PURCHASE_URL,
        image_url=cell(COLUMN_IMAGE_URL) or DEFAULT_IMAGE_URL,
    )


def parse_books_csv(text: str) -> List[Book]:
    """Parse a sheet CSV export into books, skipping blank lines.

    Quoted cells may span several lines (long recommendation notes do).
    """
    reader = csv.DictReader(io.StringIO(text))
    books: List[Book] = []
    for row in reader:
        # DictReader keeps rows made only of separators (",,,,")
        if not any((value or '').strip() for value in row.values() if isinstance(value, str)):
            continue
        books.append(_row_to_book(row))
    return books


async def fetch_books(url: str, timeout: float = 10.0) -> List[Book]:
    """Download the catalog sheet. Returns ``[]`` on any failure."""
    text = await asyncio.to_thread(_http_get_text, url, timeout)
    if text is None:
        return []
    try:
        books = parse_books_csv(text)
    except Exception as exc:
        logger.error("Could not parse catalog sheet from %s: %s", url, exc)
        return []
    logger.info("Loaded %d books from %s", len(books), url)
    return books


async def read_books_file(path: str) -> List[Book]:
    """Load the catalog from a local CSV export. Returns ``[]`` on failure."""
    try:
        text = await asyncio.to_thread(Path(path).read_text, encoding='utf-8-sig')
        books = parse_books_csv(text)
    except Exception as exc:
        logger.error("Could not load catalog file %s: %s", path, exc)
        return []
    logger.info("Loaded %d books from %s", len(books), path)
    return books
