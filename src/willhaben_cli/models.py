"""
willhaben-cli — Data models

Listings and search results are parsed once and never mutated, so every
model here is a frozen pydantic model. A fresh search yields fresh
instances even for listings with the same id.
"""

from __future__ import annotations

from datetime import datetime
from typing import Union

from pydantic import BaseModel, Field, field_validator

BASE_URL = "https://www.willhaben.at"

_FROZEN = {"frozen": True}


def listing_url(listing_id: str) -> str:
    return f"{BASE_URL}/iad/object?adId={listing_id}"


class Listing(BaseModel):
    """A single classified ad as shown in result lists."""
    model_config = _FROZEN

    id: str
    title: str = "No Title"
    price: float | None = None
    price_text: str = ""
    location: str = ""
    description: str = ""
    url: str = ""
    image_url: str | None = None
    seller_id: str | None = None
    seller_name: str = ""
    condition: str = ""
    paylivery: bool = False

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v) -> str:
        # The site sends ids as numbers in some payloads
        return str(v)


class ListingDetail(Listing):
    """Listing plus the fields only the detail page carries."""
    full_description: str = ""
    images: list[str] = Field(default_factory=list)
    attributes: dict[str, Union[list[str], str]] = Field(default_factory=dict)
    phone: str | None = None

    @property
    def primary_image(self) -> str | None:
        if self.images:
            return self.images[0]
        return self.image_url


class CategorySuggestion(BaseModel):
    """A facet value that narrows a search to one category branch."""
    model_config = _FROZEN

    id: str
    name: str = ""
    count: int = 0

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, v) -> str:
        return str(v)

    @field_validator("count", mode="before")
    @classmethod
    def non_negative(cls, v) -> int:
        try:
            return max(0, int(v or 0))
        except (TypeError, ValueError):
            return 0


class SearchResult(BaseModel):
    """One page of results. Replaced wholesale on every search."""
    model_config = _FROZEN

    items: list[Listing] = Field(default_factory=list)
    total_found: int = 0
    categories: list[CategorySuggestion] = Field(default_factory=list)


class StarredItem(Listing):
    """A listing the user starred, as stored locally."""
    starred_at: datetime | None = None


class HistoryItem(BaseModel):
    """A past search."""
    model_config = _FROZEN

    id: int
    query: str
    category_id: str | None = None
    category_name: str | None = None
    created_at: datetime | None = None


class UserProfile(BaseModel):
    """Logged-in user, read from the home page document."""
    model_config = _FROZEN

    id: str = "current-user"
    display_name: str | None = None
    email: str | None = None
    post_code: str | None = None
    city: str | None = None
    member_since: str | None = None
