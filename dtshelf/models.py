from typing import List, Optional
from pydantic import BaseModel, Field

from .catalog.schemas import Book


class BrowseMessage(BaseModel):
    """Client -> server message on the browse socket.

    Omitted fields keep their current value, so a tab click can send
    just ``{"tab": ...}`` and typing just ``{"query": ...}``.
    """

    tab: Optional[str] = None
    query: Optional[str] = None
    reset: bool = Field(
        default=False,
        description="Go back to the home state (all tab, empty search).",
    )


class BrowseUpdate(BaseModel):
    ids: List[str]
    busy: bool
    items: List[Book] = Field(default_factory=list)
