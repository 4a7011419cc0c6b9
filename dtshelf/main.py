# dtshelf/main.py
import asyncio
import logging
import sys
from contextlib import asynccontextmanager, suppress
from functools import partial

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from . import storage
from .ai import build_ranker_client
from .catalog.router import router as catalog_router
from .catalog.schemas import QueryContext
from .catalog.store import recommend, select_books
from .config import settings
from .models import BrowseMessage, BrowseUpdate
from .pipeline import QueryPipelineController


logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app.state.ranker_client = build_ranker_client(settings)
    books = await storage.reload_catalog()
    logger.info("Catalog ready: %d books", len(books))
    yield


app = FastAPI(
    title="DT 서재",
    description=(
        "Curated design-thinking bookshelf: browse by topic tab or free-text "
        "search, ranked by an AI curator (Gemini) with a local keyword "
        "search fallback."
    ),
    version="1.0.0",
    lifespan=lifespan,
)

app.include_router(catalog_router)


# 🔹 Quick liveness check
@app.get("/")
def health_check():
    return {"status": "ok", "books": len(storage.list_books())}


@app.websocket("/ws/browse")
async def browse(websocket: WebSocket):
    """Live browsing: debounced ranking pushed as the user types."""
    await websocket.accept()

    updates: "asyncio.Queue[BrowseUpdate]" = asyncio.Queue()

    def publish(ids, busy):
        updates.put_nowait(
            BrowseUpdate(ids=ids, busy=busy, items=select_books(controller.books, ids))
        )

    controller = QueryPipelineController(
        recommend=partial(
            recommend,
            client=websocket.app.state.ranker_client,
            timeout=settings.ranker_timeout_seconds,
        ),
        publish=publish,
        debounce=settings.debounce_seconds,
        min_display=settings.min_display_seconds,
    )

    async def pump():
        while True:
            update = await updates.get()
            await websocket.send_json(update.model_dump())

    sender = asyncio.create_task(pump())
    controller.set_catalog(storage.list_books())
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                # Malformed JSON surfaces as a ValidationError too
                message = BrowseMessage.model_validate_json(raw)
                if message.reset:
                    controller.reset()
                    continue
                controller.set_context(
                    QueryContext(
                        tab=controller.context.tab if message.tab is None else message.tab,
                        query=controller.context.query if message.query is None else message.query,
                    )
                )
            except ValidationError as exc:
                await websocket.send_json({"error": exc.errors(include_url=False, include_context=False)})
    except WebSocketDisconnect:
        logger.debug("Browse socket closed")
    finally:
        controller.close()
        sender.cancel()
        with suppress(asyncio.CancelledError, Exception):
            await sender
