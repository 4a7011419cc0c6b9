"""
Route definitions for the catalogue API.

Endpoints under /api/catalog:
- GET  /tabs             : topic tabs, in display order
- GET  /books            : the whole catalog, in sheet order
- GET  /books/{book_id}  : one book
- POST /recommendations  : ordered books for a tab + search text
- POST /reload           : fetch the sheet again and replace the catalog
"""

from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Request

from .. import storage
from ..config import ALL_TAB, TOPIC_TABS, settings
from .schemas import Book, QueryContext, Recommendation
from .store import recommend, select_books


router = APIRouter(prefix="/api/catalog", tags=["catalog"])


@router.get("/tabs")
def list_tabs():
    return {"all": ALL_TAB, "tabs": TOPIC_TABS}


@router.get("/books", response_model=List[Book])
def list_books() -> List[Book]:
    return storage.list_books()


@router.get("/books/{book_id}", response_model=Book)
def get_book(book_id: str) -> Book:
    book = storage.get_book(book_id)
    if book is None:
        raise HTTPException(status_code=404, detail="Book not found")
    return book


@router.post("/recommendations", response_model=Recommendation)
async def recommend_books(context: QueryContext, request: Request) -> Recommendation:
    """
    Rank the catalog for the given tab and search text.

    The home state (all tab, empty text) returns every book unranked.
    Otherwise the AI curator ranks the books when an API key is
    configured, with local keyword search as the fallback. An empty
    ``ids`` list means nothing matched.
    """
    books = storage.list_books()
    ids = await recommend(
        context.combined_query,
        books,
        client=request.app.state.ranker_client,
        timeout=settings.ranker_timeout_seconds,
    )
    return Recommendation(
        combined_query=context.combined_query,
        ids=ids,
        items=select_books(books, ids),
    )


@router.post("/reload")
async def reload_catalog():
    books = await storage.reload_catalog()
    return {"status": "ok", "count": len(books)}
