# dtshelf/ai.py
import asyncio
import logging
import re
from typing import List, Optional, Protocol, Sequence

from google import genai
from google.genai import types

from .catalog.schemas import Book
from .config import Settings


logger = logging.getLogger(__name__)

NO_MATCH_SENTINEL = "none"

_NOT_ID_CHARS = re.compile(r"[^0-9, ]")


class RemoteRankerError(Exception):
    """The ranking service could not produce a usable answer."""


class RankerClient(Protocol):
    async def complete(self, prompt: str) -> str:
        ...


class GeminiRankerClient:
    """Text completion against Gemini. The SDK client is built on first use."""

    def __init__(self, api_key: str, model: str, temperature: float = 0.1) -> None:
        self.api_key = api_key
        self.model = model
        self.temperature = temperature
        self._client: Optional[genai.Client] = None

    async def complete(self, prompt: str) -> str:
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        response = await self._client.aio.models.generate_content(
            model=self.model,
            contents=prompt,
            config=types.GenerateContentConfig(temperature=self.temperature),
        )
        return response.text or ""


def build_ranker_client(settings: Settings) -> Optional[RankerClient]:
    """Return a Gemini client, or ``None`` when no API key is configured."""
    api_key = (settings.gemini_api_key or "").strip()
    if not api_key:
        logger.info("No Gemini API key configured, using local search only")
        return None
    return GeminiRankerClient(
        api_key=api_key,
        model=settings.gemini_model,
        temperature=settings.gemini_temperature,
    )


def build_prompt(query: str, books: Sequence[Book]) -> str:
    lines = [
        f"ID:{b.id} | Title:{b.title} | Reason:{b.reason} | Keywords:{','.join(b.keywords)}"
        for b in books
    ]
    catalog = "\n".join(lines)

    return (
        "[Role] Design Thinking Book Curator.\n"
        f'[Context] User Inquiry: "{query}"\n'
        f"[Books]\n{catalog}\n"
        "[Task] Return ONLY a comma-separated list of relevant Book IDs, "
        "ranked by relevance. No explanation. "
        f'If none, return "{NO_MATCH_SENTINEL}".'
    )


def parse_ranked_ids(reply: str) -> List[str]:
    """Pull the id list out of a model reply.

    Anything other than digits, commas and spaces is dropped first, so
    chatty answers ("Sure! The best matches are: 1, 3") still parse.
    The ``none`` sentinel gives an empty list.
    """
    text = (reply or "").strip()
    if not text:
        raise RemoteRankerError("Empty reply from ranking service")
    # The prompt quotes the sentinel, so replies often do too.
    if text.strip(" \"'.`").lower() == NO_MATCH_SENTINEL:
        return []

    cleaned = _NOT_ID_CHARS.sub("", text)
    ids = [token.strip() for token in cleaned.split(",")]
    ids = [token for token in ids if token]
    if not ids:
        raise RemoteRankerError(f"No book ids in reply: {text[:80]!r}")
    return ids


async def rank_books(
    query: str,
    books: Sequence[Book],
    client: RankerClient,
    timeout: Optional[float] = None,
) -> List[str]:
    """Ask the remote service to rank ``books`` for ``query``.

    Returns catalog ids in ranked order, possibly empty. Raises
    ``RemoteRankerError`` on transport failure, timeout or an
    unusable reply; the caller decides what to fall back to.
    """
    prompt = build_prompt(query, books)
    try:
        reply = await asyncio.wait_for(client.complete(prompt), timeout=timeout)
    except asyncio.TimeoutError as exc:
        raise RemoteRankerError(f"Ranking service timed out after {timeout}s") from exc
    except Exception as exc:
        raise RemoteRankerError(f"Ranking service call failed: {exc}") from exc

    ranked = parse_ranked_ids(reply)
    if not ranked:
        return []

    known = {b.id for b in books}
    result: List[str] = []
    for book_id in ranked:
        if book_id in known and book_id not in result:
            result.append(book_id)
    if not result:
        raise RemoteRankerError(f"Reply named no catalog ids: {ranked}")
    return result
