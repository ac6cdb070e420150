"""
willhaben-cli — Result Parser

Turns the loosely typed JSON document embedded in willhaben pages
(`<script id="__NEXT_DATA__">`) into typed models.

Design principles:
1. Only the primary container is mandatory; everything below it degrades
   to empty lists and defaults
2. Category extraction is an ordered fallback chain; the order matters
3. Pure functions, no I/O (HTML → JSON extraction excepted, still no I/O)
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Union

from bs4 import BeautifulSoup

from willhaben_cli.errors import MissingDataError, ParseError
from willhaben_cli.models import (
    CategorySuggestion,
    Listing,
    ListingDetail,
    SearchResult,
    UserProfile,
    listing_url,
)

logger = logging.getLogger("willhaben.parser")

CATEGORY_PARAM = "ATTRIBUTE_TREE"


# ═══════════════════════════════════════════════════════════════════════════
# Document access
# ═══════════════════════════════════════════════════════════════════════════


def extract_next_data(html: str) -> dict[str, Any]:
    """Pull the `__NEXT_DATA__` JSON document out of a page."""
    soup = BeautifulSoup(html, "html.parser")
    script = soup.find("script", id="__NEXT_DATA__")
    if script is None or not script.string:
        raise ParseError("Could not find data on page (missing __NEXT_DATA__)")
    try:
        data = json.loads(script.string)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid __NEXT_DATA__ JSON: {e}") from e
    if not isinstance(data, dict):
        raise ParseError("__NEXT_DATA__ is not a JSON object")
    return data


def page_props(document: dict[str, Any]) -> dict[str, Any]:
    """Accept either the full Next.js document or its `pageProps`."""
    if isinstance(document, dict) and "props" in document:
        props = document.get("props") or {}
        return _as_dict(props.get("pageProps"))
    return _as_dict(document)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


# ═══════════════════════════════════════════════════════════════════════════
# Listings
# ═══════════════════════════════════════════════════════════════════════════


def parse_attributes(item: dict[str, Any]) -> dict[str, list[str]]:
    """Flatten `attributes` (bare list or `{"attribute": [...]}`) to name → values."""
    raw = item.get("attributes") or {}
    if isinstance(raw, dict):
        entries = _as_list(raw.get("attribute"))
    else:
        entries = _as_list(raw)

    attributes: dict[str, list[str]] = {}
    for entry in entries:
        if not isinstance(entry, dict) or not entry.get("name"):
            continue
        values = entry.get("values")
        if values is None:
            values = []
        elif not isinstance(values, list):
            values = [values]
        attributes[entry["name"]] = [str(v) for v in values]
    return attributes


def _first(attributes: dict[str, list[str]], name: str) -> str | None:
    values = attributes.get(name)
    if values:
        return values[0]
    return None


def format_price(amount: float) -> str:
    """`1234.5` → `€ 1.234,50` (Austrian grouping, two decimals)."""
    grouped = f"{amount:,.2f}"
    return "€ " + grouped.replace(",", "\x00").replace(".", ",").replace("\x00", ".")


def _parse_price(attributes: dict[str, list[str]]) -> tuple[float | None, str]:
    price_text = _first(attributes, "PRICE_FOR_DISPLAY") or ""
    raw = _first(attributes, "PRICE/AMOUNT") or _first(attributes, "PRICE")
    if raw is None:
        return None, price_text

    try:
        price = float(raw)
    except ValueError:
        return None, price_text
    if price != price:  # NaN
        return None, price_text

    if not price_text:
        price_text = format_price(price)
    return price, price_text


def _title(item: dict[str, Any]) -> str:
    description = item.get("description")
    if isinstance(description, str):
        return description
    if isinstance(description, dict) and description.get("header"):
        return str(description["header"])
    return "No Title"


def _image_urls(item: dict[str, Any]) -> list[str]:
    images = _as_list(_as_dict(item.get("advertImageList")).get("advertImage"))
    if not images:
        images = _as_list(item.get("images"))
    urls = []
    for img in images:
        url = img.get("mainImageUrl") if isinstance(img, dict) else img
        if isinstance(url, str) and url:
            urls.append(url)
    return urls


def _listing_fields(item: dict[str, Any], attributes: dict[str, list[str]]) -> dict[str, Any]:
    price, price_text = _parse_price(attributes)
    location = ", ".join(attributes.get("POSTCODE", []) + attributes.get("LOCATION", []))
    listing_id = str(item.get("id", ""))
    images = _image_urls(item)

    return {
        "id": listing_id,
        "title": _title(item),
        "price": price,
        "price_text": price_text,
        "location": location,
        "description": item.get("body") or "",
        "url": listing_url(listing_id),
        "image_url": item.get("mainImageUrl") or (images[0] if images else None),
        "seller_id": _first(attributes, "SELLER_ID"),
        "seller_name": _first(attributes, "SELLER_NAME") or "",
        "condition": _first(attributes, "CONDITION") or "",
        "paylivery": "PAYLIVERY" in attributes,
    }


def parse_listing(item: dict[str, Any]) -> Listing:
    """One `advertSummary` record → Listing."""
    return Listing(**_listing_fields(item, parse_attributes(item)))


def parse_listing_detail(document: dict[str, Any]) -> ListingDetail:
    """Detail page document → ListingDetail. `advertDetails` is required."""
    ad = page_props(document).get("advertDetails")
    if not isinstance(ad, dict):
        raise MissingDataError("advertDetails")

    attributes = parse_attributes(ad)
    fields = _listing_fields(ad, attributes)

    # Single-valued attributes read better as plain strings
    flat: dict[str, Union[list[str], str]] = {
        name: values[0] if len(values) == 1 else values
        for name, values in attributes.items()
    }

    return ListingDetail(
        **fields,
        full_description=ad.get("body") or "",
        images=_image_urls(ad),
        attributes=flat,
        phone=_first(attributes, "PHONE"),
    )


def parse_user_profile(document: dict[str, Any]) -> UserProfile | None:
    """Home page document → UserProfile, or None when not logged in."""
    profile = page_props(document).get("profileData")
    if not isinstance(profile, dict):
        return None
    return UserProfile(
        id=str(profile.get("userId") or profile.get("id") or "current-user"),
        display_name=_text(profile.get("displayName") or profile.get("firstName")),
        email=_text(profile.get("email")),
        post_code=_text(profile.get("postCode")),
        city=_text(profile.get("city")),
        member_since=_text(profile.get("memberSince")),
    )


def _text(value: Any) -> str | None:
    # Post codes and dates sometimes arrive as numbers
    if value is None or value == "":
        return None
    return str(value)


# ═══════════════════════════════════════════════════════════════════════════
# Category nodes: tagged union over navigator group payloads
# ═══════════════════════════════════════════════════════════════════════════


@dataclass
class NavigatorNode:
    """A navigator group. Subclasses say which value layout it carries."""
    id: str | None = None
    name: str | None = None
    label: str | None = None
    children: list["NavigatorNode"] = field(default_factory=list)

    def is_category_group(self) -> bool:
        return (
            self.id == "attribute_tree"
            or self.name == CATEGORY_PARAM
            or self.id == "category"
            or self.label == "Kategorie"
        )

    def categories(self) -> list[CategorySuggestion]:
        return []


@dataclass
class FlatValuesGroup(NavigatorNode):
    """Group exposing `values: [{value, label, hits}]`."""
    values: list[dict[str, Any]] = field(default_factory=list)

    def categories(self) -> list[CategorySuggestion]:
        return [
            CategorySuggestion(id=v.get("value") or "", name=str(v.get("label") or ""), count=v.get("hits") or 0)
            for v in self.values
            if isinstance(v, dict)
        ]


@dataclass
class GroupedValuesGroup(NavigatorNode):
    """Group exposing `groupedPossibleValues[0].possibleValues`."""
    possible_values: list[dict[str, Any]] = field(default_factory=list)

    def categories(self) -> list[CategorySuggestion]:
        result = []
        for v in self.possible_values:
            if not isinstance(v, dict):
                continue
            category_id = _category_param(v)
            if not category_id:
                continue
            result.append(CategorySuggestion(id=category_id, name=str(v.get("label") or ""), count=v.get("hits") or 0))
        return result


@dataclass
class OpaqueGroup(NavigatorNode):
    """Group with no value layout we understand."""


def _category_param(value: dict[str, Any]) -> str | None:
    for param in _as_list(value.get("urlParamRepresentationForValue")):
        if isinstance(param, dict) and param.get("urlParameterName") == CATEGORY_PARAM:
            found = param.get("value")
            return str(found) if found not in (None, "") else None
    return None


def build_node(raw: Any) -> NavigatorNode:
    """Classify one raw group dict into its node type, recursing into `navigatorList`."""
    raw = _as_dict(raw)
    common = {
        "id": raw.get("id"),
        "name": raw.get("name"),
        "label": raw.get("label"),
        "children": [build_node(child) for child in _as_list(raw.get("navigatorList"))],
    }

    if isinstance(raw.get("values"), list):
        return FlatValuesGroup(**common, values=raw["values"])

    grouped = _as_list(raw.get("groupedPossibleValues"))
    if grouped and isinstance(grouped[0], dict) and isinstance(grouped[0].get("possibleValues"), list):
        return GroupedValuesGroup(**common, possible_values=grouped[0]["possibleValues"])

    return OpaqueGroup(**common)


def find_category_group(nodes: list[NavigatorNode], max_depth: int = 1) -> NavigatorNode | None:
    """
    Breadth-ordered search for the category group.

    Level 0 is scanned completely before any nested list; within a level,
    parents are visited in array order and the first match wins.
    """
    level = nodes
    for _ in range(max_depth + 1):
        for node in level:
            if node.is_category_group():
                return node
        level = [child for node in level for child in node.children]
        if not level:
            break
    return None


def extract_categories(search_result: dict[str, Any], props: dict[str, Any]) -> list[CategorySuggestion]:
    """Ordered fallback chain: navigator groups, then categorySuggestions; sorted by count."""
    nodes = [build_node(g) for g in _as_list(search_result.get("navigatorGroups"))]
    group = find_category_group(nodes)

    categories = group.categories() if group else []

    if not categories:
        categories = [
            CategorySuggestion(id=c.get("id") or "", name=str(c.get("name") or ""), count=c.get("count") or 0)
            for c in _as_list(props.get("categorySuggestions"))
            if isinstance(c, dict)
        ]

    # sorted() is stable, ties keep source order
    return sorted(categories, key=lambda c: c.count, reverse=True)


# ═══════════════════════════════════════════════════════════════════════════
# Search result
# ═══════════════════════════════════════════════════════════════════════════


def parse_search_result(document: dict[str, Any]) -> SearchResult:
    """Search page document → SearchResult. `searchResult` is required."""
    props = page_props(document)
    search_result = props.get("searchResult")
    if not isinstance(search_result, dict):
        raise MissingDataError("searchResult")

    ads = _as_list(_as_dict(search_result.get("advertSummaryList")).get("advertSummary"))
    items = []
    for ad in ads:
        if not isinstance(ad, dict):
            continue
        try:
            items.append(parse_listing(ad))
        except ValueError as e:
            # pydantic ValidationError subclasses ValueError
            logger.debug(f"Skipping malformed advert: {e}")

    total = search_result.get("rowsFound")
    if not isinstance(total, int) or total <= 0:
        total = len(items)

    return SearchResult(
        items=items,
        total_found=total,
        categories=extract_categories(search_result, props),
    )
