"""
Pydantic schema definitions for the catalog module.

The ``Book`` model mirrors one curated row of the bookshelf sheet. It is
frozen: a catalog snapshot is never edited in place, a reload replaces
the whole list. ``QueryContext`` captures what the user is currently
looking at (a topic tab plus free text) and knows how to fold the two
into the single query string handed to the rankers.
"""

from typing import List

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..config import ALL_TAB, TOPIC_TABS


class Book(BaseModel):
    """A single curated book.

    Every field is populated by the loader, which substitutes
    placeholders (``제목 없음``, a grayscale cover, ...) for blank cells,
    so nothing downstream has to deal with missing values.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    author: str
    keywords: List[str] = Field(default_factory=list)
    # Why the curator recommends it and how to use it in a workshop.
    reason: str = ""
    purchase_url: str = "#"
    image_url: str = ""


class QueryContext(BaseModel):
    """The active topic tab and the free-text search box."""

    model_config = ConfigDict(frozen=True)

    tab: str = ALL_TAB
    query: str = ""

    @field_validator("tab")
    @classmethod
    def _known_tab(cls, value: str) -> str:
        if value not in TOPIC_TABS:
            raise ValueError(f"Unknown tab {value!r}; expected one of {TOPIC_TABS}")
        return value

    @property
    def combined_query(self) -> str:
        if self.tab == ALL_TAB:
            return self.query.strip()
        return f"{self.tab} {self.query}".strip()

    @property
    def is_default(self) -> bool:
        """True for the home state: every book, unranked."""
        return self.tab == ALL_TAB and not self.query.strip()


class Recommendation(BaseModel):
    """Ordered ids for a query, plus the books they resolve to."""

    combined_query: str
    ids: List[str]
    items: List[Book]
