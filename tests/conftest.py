"""Pytest configuration for bookshelf tests."""
import asyncio
from typing import List, Optional

import pytest
from fastapi.testclient import TestClient

from dtshelf.catalog.schemas import Book


SHEET_CSV = (
    "번호,책 제목,저자,키워드,추천 이유 및 활용 포인트,주문링크,표지이미지 링크\n"
    '1,Empathy Maps,Kim,"공감, 인터뷰",Great for customer interviews,https://shop.example/1,https://img.example/1.jpg\n'
    '2,Growth,Lee,혁신,"Two\nlines",,\n'
    ",,,,,,\n"
    "3,,,,,,\n"
)


def make_book(book_id: str, title: str = "", keywords: Optional[List[str]] = None, reason: str = "") -> Book:
    return Book(
        id=book_id,
        title=title,
        author="Author",
        keywords=keywords or [],
        reason=reason,
        purchase_url="#",
        image_url="https://img.example/cover.jpg",
    )


class FakeRankerClient:
    """Stands in for the Gemini client; records prompts."""

    def __init__(self, reply: str = "", error: Optional[Exception] = None, delay: float = 0.0):
        self.reply = reply
        self.error = error
        self.delay = delay
        self.prompts: List[str] = []

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return self.reply


@pytest.fixture
def books() -> List[Book]:
    return [
        make_book("1", title="Empathy Maps", keywords=["공감"]),
        make_book("2", title="Growth", keywords=["혁신"]),
    ]


@pytest.fixture
def catalog_csv(tmp_path):
    path = tmp_path / "books.csv"
    path.write_text(SHEET_CSV, encoding="utf-8")
    return path


@pytest.fixture
def api_client(monkeypatch, catalog_csv):
    """App client backed by the local CSV, no Gemini key, fast timers."""
    from dtshelf.config import settings

    monkeypatch.setattr(settings, "catalog_csv_path", str(catalog_csv))
    monkeypatch.setattr(settings, "gemini_api_key", None)
    monkeypatch.setattr(settings, "debounce_seconds", 0.01)
    monkeypatch.setattr(settings, "min_display_seconds", 0.05)

    from dtshelf.main import app

    with TestClient(app) as client:
        yield client
