"""
willhaben-cli — Navigation Controller

Finite state machine over the UI sections. Exactly one section has focus;
each section owns a selection cursor into its own list.

The controller performs no I/O. Key presses mutate NavigationState and
return effect requests (search, detail fetch, star toggle, command, image
selection) that the session executes. Async completions come back through
search_completed / detail_loaded and friends, keyed by monotonic tokens so
a late response for a superseded request is dropped.

Sections:
    search      text entry; Enter searches, Down enters the result lists
    categories  "All Categories" + result facets; Right drills, Enter commits
    products    listings; Space stars, n/p pages, Right/Enter opens detail
    detail      one listing; Up/Down switch image, Left/Esc go back
    history     past searches; Enter re-runs
    starred     starred listings; Space/u unstars, Enter opens detail
    profile     logged-in user
    command     slash-command palette; Tab completes
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from willhaben_cli.models import (
    CategorySuggestion,
    HistoryItem,
    Listing,
    ListingDetail,
    SearchResult,
    StarredItem,
    UserProfile,
)

logger = logging.getLogger("willhaben.navigation")

WINDOW_SIZE = 10

ALL_CATEGORIES = CategorySuggestion(id="all", name="All Categories", count=0)


class Section(str, enum.Enum):
    SEARCH = "search"
    CATEGORIES = "categories"
    PRODUCTS = "products"
    DETAIL = "detail"
    COMMAND = "command"
    HISTORY = "history"
    STARRED = "starred"
    PROFILE = "profile"


class Key(str, enum.Enum):
    UP = "up"
    DOWN = "down"
    LEFT = "left"
    RIGHT = "right"
    ENTER = "enter"
    ESCAPE = "escape"
    TAB = "tab"
    BACKSPACE = "backspace"
    CHAR = "char"


@dataclass(frozen=True)
class KeyPress:
    key: Key
    char: str = ""

    @classmethod
    def text(cls, char: str) -> "KeyPress":
        return cls(Key.CHAR, char)


# Product-list shortcuts
STAR_KEY = " "
UNSTAR_KEYS = (" ", "u")
NEXT_PAGE_KEY = "n"
PREV_PAGE_KEY = "p"


# ═══════════════════════════════════════════════════════════════════════════
# Effect requests
# ═══════════════════════════════════════════════════════════════════════════


class Advance(str, enum.Enum):
    """Where focus goes when a search completes."""
    PRODUCTS = "products"   # always focus products
    DRILL = "drill"         # products only if the result has no sub-categories
    STAY = "stay"           # pagination: products, cursor back to 0


@dataclass(frozen=True)
class SearchRequest:
    token: int
    query: str
    category_id: str | None = None
    category_name: str | None = None
    page: int = 1
    advance: Advance = Advance.PRODUCTS


@dataclass(frozen=True)
class DetailRequest:
    token: int
    listing_id: str


@dataclass(frozen=True)
class ToggleStar:
    listing: Listing


@dataclass(frozen=True)
class Unstar:
    listing_id: str


@dataclass(frozen=True)
class RunCommand:
    name: str


@dataclass(frozen=True)
class CloseDetail:
    """Detail view left: drop art, cancel rotation."""


@dataclass(frozen=True)
class SelectImage:
    image_url: str | None


Effect = Union[SearchRequest, DetailRequest, ToggleStar, Unstar, RunCommand, CloseDetail, SelectImage]


# ═══════════════════════════════════════════════════════════════════════════
# State
# ═══════════════════════════════════════════════════════════════════════════


def _fresh_selection() -> dict[Section, int]:
    return {section: 0 for section in Section}


@dataclass
class NavigationState:
    """Everything the views need. Mutated only by NavigationController."""

    section: Section = Section.SEARCH
    selection: dict[Section, int] = field(default_factory=_fresh_selection)
    page: int = 1
    query: str = ""
    category_id: str | None = None
    category_name: str | None = None
    result: SearchResult | None = None

    # Detail
    detail: ListingDetail | None = None
    detail_listing: Listing | None = None
    return_section: Section = Section.PRODUCTS

    command_input: str = ""
    history_items: list[HistoryItem] = field(default_factory=list)
    starred_items: list[StarredItem] = field(default_factory=list)
    starred_ids: set[str] = field(default_factory=set)
    profile: UserProfile | None = None

    searching: bool = False
    loading_detail: bool = False
    error: str | None = None
    message: str | None = None

    @property
    def busy(self) -> bool:
        return self.searching or self.loading_detail

    @property
    def categories(self) -> list[CategorySuggestion]:
        if self.result and self.result.categories:
            return [ALL_CATEGORIES, *self.result.categories]
        return []

    @property
    def items(self) -> list[Listing]:
        return list(self.result.items) if self.result else []

    @property
    def images(self) -> list[str]:
        if self.detail is None:
            return []
        if self.detail.images:
            return list(self.detail.images)
        return [self.detail.image_url] if self.detail.image_url else []

    @property
    def shown_listing(self) -> Listing | None:
        """Listing displayed in detail, loaded or still loading."""
        return self.detail or self.detail_listing

    def entries(self, section: Section) -> list[Any]:
        if section is Section.CATEGORIES:
            return self.categories
        if section is Section.PRODUCTS:
            return self.items
        if section is Section.DETAIL:
            return self.images
        if section is Section.HISTORY:
            return self.history_items
        if section is Section.STARRED:
            return self.starred_items
        return []

    def index(self, section: Section) -> int:
        return self.selection.get(section, 0)

    def selected(self, section: Section) -> Any | None:
        entries = self.entries(section)
        if not entries:
            return None
        return entries[self.index(section)]

    def window(self, section: Section, size: int = WINDOW_SIZE) -> tuple[int, int]:
        """Visible [start, end) slice: fixed pages of `size` around the cursor."""
        start = (self.index(section) // size) * size
        end = min(start + size, len(self.entries(section)))
        return start, end


# ═══════════════════════════════════════════════════════════════════════════
# Controller
# ═══════════════════════════════════════════════════════════════════════════


class NavigationController:
    """Owns NavigationState and every transition on it."""

    def __init__(self, command_names: Iterable[str] = (), state: NavigationState | None = None):
        self.state = state or NavigationState()
        self.command_names = list(command_names)
        self._search_token = 0
        self._detail_token = 0

    # ──────────────────────────────────────────────────────────
    # Cursor discipline
    # ──────────────────────────────────────────────────────────

    def clamp(self, section: Section):
        """Keep selection[section] inside its list (0 when empty)."""
        last = max(0, len(self.state.entries(section)) - 1)
        self.state.selection[section] = min(max(0, self.state.index(section)), last)

    def clamp_all(self):
        for section in Section:
            self.clamp(section)

    def _move(self, section: Section, delta: int) -> bool:
        before = self.state.index(section)
        self.state.selection[section] = before + delta
        self.clamp(section)
        return self.state.index(section) != before

    def focus(self, section: Section):
        self.state.section = section
        self.clamp(section)

    # ──────────────────────────────────────────────────────────
    # Key dispatch
    # ──────────────────────────────────────────────────────────

    def handle_key(self, press: KeyPress) -> list[Effect]:
        s = self.state

        # Global rules first
        if press.key is Key.ESCAPE and s.section not in (Section.COMMAND, Section.DETAIL):
            return self.reset_search()

        if press.key is Key.CHAR and press.char == "/" and s.section not in (Section.SEARCH, Section.COMMAND):
            effects = self._leave_detail() if s.section is Section.DETAIL else []
            s.command_input = "/"
            s.section = Section.COMMAND
            return effects

        handler = {
            Section.SEARCH: self._on_search,
            Section.CATEGORIES: self._on_categories,
            Section.PRODUCTS: self._on_products,
            Section.DETAIL: self._on_detail,
            Section.HISTORY: self._on_history,
            Section.STARRED: self._on_starred,
            Section.PROFILE: self._on_profile,
            Section.COMMAND: self._on_command,
        }[s.section]
        return handler(press)

    def _on_search(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.CHAR:
            s.query += press.char
        elif press.key is Key.BACKSPACE:
            s.query = s.query[:-1]
        elif press.key is Key.DOWN:
            if s.categories:
                self.focus(Section.CATEGORIES)
            elif s.items:
                self.focus(Section.PRODUCTS)
        elif press.key is Key.ENTER:
            text = s.query.strip()
            if text.startswith("/"):
                effects = self._command(text)
                if effects:
                    s.query = ""
                return effects
            if text:
                return [self._search(text, None, None, 1, Advance.PRODUCTS)]
        return []

    def _on_categories(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.UP:
            self._move(Section.CATEGORIES, -1)
        elif press.key is Key.DOWN:
            self._move(Section.CATEGORIES, 1)
        elif press.key is Key.LEFT:
            self.focus(Section.SEARCH)
        elif press.key in (Key.RIGHT, Key.ENTER):
            category = s.selected(Section.CATEGORIES)
            if category is None:
                return []
            if category.id == ALL_CATEGORIES.id:
                category_id, category_name = None, None
            else:
                category_id, category_name = category.id, category.name
            advance = Advance.DRILL if press.key is Key.RIGHT else Advance.PRODUCTS
            return [self._search(s.query.strip(), category_id, category_name, 1, advance)]
        return []

    def _on_products(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.UP:
            self._move(Section.PRODUCTS, -1)
        elif press.key is Key.DOWN:
            self._move(Section.PRODUCTS, 1)
        elif press.key is Key.LEFT:
            self.focus(Section.CATEGORIES if s.categories else Section.SEARCH)
        elif press.key in (Key.RIGHT, Key.ENTER):
            listing = s.selected(Section.PRODUCTS)
            if listing is not None:
                return self.open_detail(listing, Section.PRODUCTS)
        elif press.key is Key.CHAR:
            if press.char == STAR_KEY:
                listing = s.selected(Section.PRODUCTS)
                if listing is not None:
                    return [self._toggle_star(listing)]
            elif press.char == NEXT_PAGE_KEY:
                return self._page(s.page + 1)
            elif press.char == PREV_PAGE_KEY:
                if s.page > 1:
                    return self._page(s.page - 1)
        return []

    def _on_detail(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key in (Key.LEFT, Key.ESCAPE):
            effects = self._leave_detail()
            self.focus(s.return_section)
            return effects
        if press.key is Key.CHAR and press.char == STAR_KEY:
            listing = s.shown_listing
            if listing is not None:
                return [self._toggle_star(listing)]
        elif press.key in (Key.UP, Key.DOWN):
            if self._move(Section.DETAIL, -1 if press.key is Key.UP else 1):
                return [SelectImage(s.selected(Section.DETAIL))]
        return []

    def _on_history(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.UP:
            self._move(Section.HISTORY, -1)
        elif press.key is Key.DOWN:
            self._move(Section.HISTORY, 1)
        elif press.key is Key.ENTER:
            entry = s.selected(Section.HISTORY)
            if entry is not None:
                s.query = entry.query
                return [self._search(entry.query, entry.category_id, entry.category_name, 1, Advance.PRODUCTS)]
        return []

    def _on_starred(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.UP:
            self._move(Section.STARRED, -1)
        elif press.key is Key.DOWN:
            self._move(Section.STARRED, 1)
        elif press.key in (Key.RIGHT, Key.ENTER):
            item = s.selected(Section.STARRED)
            if item is not None:
                return self.open_detail(item, Section.STARRED)
        elif press.key is Key.CHAR and press.char in UNSTAR_KEYS:
            item = s.selected(Section.STARRED)
            if item is not None:
                s.starred_items = [i for i in s.starred_items if i.id != item.id]
                s.starred_ids.discard(item.id)
                self.clamp(Section.STARRED)
                return [Unstar(item.id)]
        return []

    def _on_profile(self, press: KeyPress) -> list[Effect]:
        if press.key is Key.LEFT:
            self.focus(Section.SEARCH)
        return []

    def _on_command(self, press: KeyPress) -> list[Effect]:
        s = self.state
        if press.key is Key.CHAR:
            s.command_input += press.char
        elif press.key is Key.BACKSPACE:
            s.command_input = s.command_input[:-1]
        elif press.key is Key.TAB:
            match = self.complete(s.command_input)
            if match:
                s.command_input = match
        elif press.key is Key.ESCAPE:
            s.command_input = ""
            self.focus(Section.SEARCH)
        elif press.key is Key.ENTER:
            effects = self._command(s.command_input.strip())
            if effects:
                s.command_input = ""
            return effects
        return []

    # ──────────────────────────────────────────────────────────
    # Transitions
    # ──────────────────────────────────────────────────────────

    def complete(self, prefix: str) -> str | None:
        """First registered command starting with `prefix`."""
        if not prefix:
            return None
        for name in self.command_names:
            if name.startswith(prefix):
                return name
        return None

    def _command(self, name: str) -> list[Effect]:
        if name in self.command_names:
            return [RunCommand(name)]
        logger.debug(f"Ignoring unknown command {name!r}")
        return []

    def _search(
        self,
        query: str,
        category_id: str | None,
        category_name: str | None,
        page: int,
        advance: Advance,
    ) -> SearchRequest:
        self._search_token += 1
        self.state.searching = True
        self.state.error = None
        return SearchRequest(
            token=self._search_token,
            query=query,
            category_id=category_id,
            category_name=category_name,
            page=max(1, page),
            advance=advance,
        )

    def _page(self, page: int) -> list[Effect]:
        s = self.state
        if not s.query.strip():
            return []
        return [self._search(s.query.strip(), s.category_id, s.category_name, page, Advance.STAY)]

    def _toggle_star(self, listing: Listing) -> ToggleStar:
        if listing.id in self.state.starred_ids:
            self.state.starred_ids.discard(listing.id)
        else:
            self.state.starred_ids.add(listing.id)
        return ToggleStar(listing)

    def open_detail(self, listing: Listing, return_section: Section) -> list[Effect]:
        s = self.state
        effects: list[Effect] = []
        if s.section is Section.DETAIL:
            effects.extend(self._leave_detail())
        self._detail_token += 1
        s.return_section = return_section
        s.detail = None
        s.detail_listing = listing
        s.loading_detail = True
        s.error = None
        s.selection[Section.DETAIL] = 0
        s.section = Section.DETAIL
        effects.append(DetailRequest(token=self._detail_token, listing_id=listing.id))
        return effects

    def _leave_detail(self) -> list[Effect]:
        s = self.state
        self._detail_token += 1  # drop any in-flight detail response
        s.detail = None
        s.detail_listing = None
        s.loading_detail = False
        s.selection[Section.DETAIL] = 0
        return [CloseDetail()]

    def reset_search(self) -> list[Effect]:
        """Clear result, query, category filter and page; focus search."""
        s = self.state
        self._search_token += 1  # drop any in-flight search response
        s.result = None
        s.query = ""
        s.category_id = None
        s.category_name = None
        s.page = 1
        s.searching = False
        s.error = None
        s.message = None
        s.selection[Section.CATEGORIES] = 0
        s.selection[Section.PRODUCTS] = 0
        s.section = Section.SEARCH
        return []

    # ──────────────────────────────────────────────────────────
    # Async completions
    # ──────────────────────────────────────────────────────────

    def is_current_search(self, request: SearchRequest) -> bool:
        return request.token == self._search_token

    def search_completed(self, request: SearchRequest, result: SearchResult) -> bool:
        """Apply a search result. False when the request was superseded."""
        if not self.is_current_search(request):
            logger.debug(f"Dropping stale search response (token {request.token})")
            return False

        s = self.state
        s.result = result
        s.query = request.query
        s.category_id = request.category_id
        s.category_name = request.category_name
        s.page = request.page
        s.searching = False
        s.error = None
        s.selection[Section.CATEGORIES] = 0
        s.selection[Section.PRODUCTS] = 0

        if request.advance is Advance.DRILL and result.categories:
            landing = Section.CATEGORIES
        else:
            landing = Section.PRODUCTS

        # An open detail keeps focus; leaving it lands on the new result
        if s.section is Section.DETAIL:
            s.return_section = landing
        else:
            s.section = landing
        self.clamp_all()
        return True

    def search_failed(self, request: SearchRequest, message: str) -> bool:
        if not self.is_current_search(request):
            return False
        self.state.searching = False
        self.state.error = message
        return True

    def is_current_detail(self, request: DetailRequest) -> bool:
        return request.token == self._detail_token and self.state.section is Section.DETAIL

    def detail_loaded(self, request: DetailRequest, detail: ListingDetail) -> list[Effect]:
        """Show a fetched detail; returns the image selection to render."""
        if not self.is_current_detail(request):
            logger.debug(f"Dropping stale detail response (token {request.token})")
            self._settle_detail(request)
            return []
        s = self.state
        s.detail = detail
        s.loading_detail = False
        s.selection[Section.DETAIL] = 0
        return [SelectImage(s.selected(Section.DETAIL))]

    def detail_failed(self, request: DetailRequest, message: str) -> bool:
        if not self.is_current_detail(request):
            self._settle_detail(request)
            return False
        self.state.loading_detail = False
        self.state.error = message
        return True

    def _settle_detail(self, request: DetailRequest):
        # Latest request answered after focus moved away: nothing is loading any more
        if request.token == self._detail_token:
            self.state.loading_detail = False

    # ──────────────────────────────────────────────────────────
    # Command / store hooks
    # ──────────────────────────────────────────────────────────

    def show_history(self, items: list[HistoryItem]):
        self.state.history_items = list(items)
        self.state.selection[Section.HISTORY] = 0
        self.state.command_input = ""
        self.focus(Section.HISTORY)

    def show_starred(self, items: list[StarredItem]):
        self.state.starred_items = list(items)
        self.state.starred_ids = {item.id for item in items}
        self.state.selection[Section.STARRED] = 0
        self.state.command_input = ""
        self.focus(Section.STARRED)

    def show_profile(self, profile: UserProfile | None):
        self.state.profile = profile
        self.state.command_input = ""
        self.focus(Section.PROFILE)

    def set_starred(self, listing_id: str, starred: bool):
        """Reconcile the local star set with the store's answer."""
        if starred:
            self.state.starred_ids.add(listing_id)
        else:
            self.state.starred_ids.discard(listing_id)

    def set_message(self, message: str | None):
        self.state.message = message
