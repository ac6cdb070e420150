"""
willhaben-cli — Views

Pure rendering: Session state in, ANSI text out. Everything is drawn with
Rich into an in-memory console and handed to prompt_toolkit as ANSI, so the
views never touch the terminal and can be asserted on in tests.

Screen layout:
  ┌ header: app name · location · status (busy / error / message)
  ├ search box
  ├ body: categories | products, or detail, history, starred, profile, commands
  └ key hints for the focused section
"""

from __future__ import annotations

import io

from rich.console import Console, Group, RenderableType
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from willhaben_cli import __version__
from willhaben_cli.commands import COMMANDS
from willhaben_cli.models import Listing, ListingDetail
from willhaben_cli.navigation import NavigationState, Section
from willhaben_cli.session import Session
from willhaben_cli.theme import WILLHABEN_THEME, Assets

CATEGORY_COLUMN_WIDTH = 32

KEY_HINTS: dict[Section, str] = {
    Section.SEARCH: "type to search · enter search · ↓ results · / commands · esc clear",
    Section.CATEGORIES: "↑↓ move · → drill down · enter filter · ← search · esc clear",
    Section.PRODUCTS: "↑↓ move · enter open · space star · n/p page · ← back · esc clear",
    Section.DETAIL: "↑↓ image · space star · ← back · / commands",
    Section.HISTORY: "↑↓ move · enter search again · esc back",
    Section.STARRED: "↑↓ move · enter open · space/u unstar · esc back",
    Section.PROFILE: "← back · esc back",
    Section.COMMAND: "tab complete · enter run · esc cancel",
}


# ═══════════════════════════════════════════════════════════════════════════
# Building blocks
# ═══════════════════════════════════════════════════════════════════════════


def _panel(body: RenderableType, title: str, focused: bool, subtitle: str | None = None) -> Panel:
    return Panel(
        body,
        title=Text(title, style="focus" if focused else "muted"),
        title_align="left",
        subtitle=Text(subtitle, style="muted") if subtitle else None,
        subtitle_align="right",
        border_style=Assets.border_style(focused),
        padding=(0, 1),
    )


def _window_label(state: NavigationState, section: Section) -> str | None:
    total = len(state.entries(section))
    if not total:
        return None
    start, end = state.window(section)
    return f"{start + 1}-{end} of {total}"


def _row_style(state: NavigationState, section: Section, index: int) -> str:
    if state.section is section and state.index(section) == index:
        return "selected"
    return "text"


def price_label(listing: Listing) -> str:
    if listing.price_text:
        return listing.price_text
    return "Price on request"


# ═══════════════════════════════════════════════════════════════════════════
# Sections
# ═══════════════════════════════════════════════════════════════════════════


def header(session: Session) -> Text:
    state = session.state
    line = Text()
    line.append("willhaben", style="title")
    line.append(f" v{__version__}", style="muted")

    location = session.config.get().location_name
    line.append(f"  ·  {location or 'Österreich'}", style="muted")

    if state.category_name:
        line.append(f"  ·  {state.category_name}", style="focus")

    if state.busy:
        line.append(f"  {Assets.SPINNER[0]} loading…", style="focus")
    elif state.error:
        line.append(f"  {state.error}", style="error")
    elif state.message:
        line.append(f"  {state.message}", style="muted")
    return line


def search_box(state: NavigationState) -> Panel:
    focused = state.section is Section.SEARCH
    text = Text(f"{Assets.PROMPT} ", style="focus" if focused else "muted")
    if state.query:
        text.append(state.query, style="text")
    elif not focused:
        text.append("search willhaben", style="muted")
    if focused:
        text.append("▏", style="focus")
    return _panel(text, "Search", focused)


def categories_panel(state: NavigationState) -> Panel:
    section = Section.CATEGORIES
    entries = state.entries(section)
    start, end = state.window(section)
    body = Text()
    for i in range(start, end):
        category = entries[i]
        if i > start:
            body.append("\n")
        body.append(category.name, style=_row_style(state, section, i))
        if category.count:
            body.append(f" ({category.count})", style="muted")
    return _panel(body, "Categories", state.section is section, _window_label(state, section))


def listing_table(state: NavigationState, section: Section, listings: list[Listing]) -> Table:
    table = Table.grid(expand=True, padding=(0, 1))
    table.add_column(width=1)
    table.add_column(ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column(justify="right", no_wrap=True)
    table.add_column(no_wrap=True, overflow="ellipsis", max_width=24)

    start, end = state.window(section)
    for i in range(start, end):
        listing = listings[i]
        starred = listing.id in state.starred_ids
        style = _row_style(state, section, i)
        table.add_row(
            Text(Assets.STAR_ON if starred else Assets.STAR_OFF, style="star" if starred else "muted"),
            Text(listing.title, style=style),
            Text(price_label(listing), style="price"),
            Text(listing.location, style="muted"),
        )
    return table


def products_panel(state: NavigationState) -> Panel:
    section = Section.PRODUCTS
    items = state.items
    title = f"Results · page {state.page}"
    if state.result is not None:
        title += f" · {state.result.total_found} found"

    if not items:
        body: RenderableType = Text("No results" if state.result is not None else "", style="muted")
    else:
        body = listing_table(state, section, items)
    return _panel(body, title, state.section is section, _window_label(state, section))


def results_body(state: NavigationState) -> RenderableType:
    if state.result is None:
        return Text("")
    if not state.categories:
        return products_panel(state)

    grid = Table.grid(expand=True)
    grid.add_column(width=CATEGORY_COLUMN_WIDTH)
    grid.add_column(ratio=1)
    grid.add_row(categories_panel(state), products_panel(state))
    return grid


def _detail_facts(listing: Listing, starred: bool) -> Text:
    text = Text()
    text.append(f"{Assets.STAR_ON if starred else Assets.STAR_OFF} ", style="star" if starred else "muted")
    text.append(listing.title, style="title")
    text.append("\n")
    text.append(price_label(listing), style="price")
    if listing.location:
        text.append(f"  ·  {listing.location}", style="muted")
    if listing.condition:
        text.append(f"  ·  {listing.condition}", style="muted")
    if listing.paylivery:
        text.append("  ·  PayLivery", style="success")
    if listing.seller_name:
        text.append(f"\nSeller: {listing.seller_name}", style="muted")
    if listing.url:
        text.append(f"\n{listing.url}", style="muted")
    return text


def _attributes_table(detail: ListingDetail) -> Table | None:
    if not detail.attributes:
        return None
    table = Table.grid(padding=(0, 2))
    table.add_column(style="muted", no_wrap=True)
    table.add_column(style="text")
    for name, value in detail.attributes.items():
        table.add_row(name, value if isinstance(value, str) else ", ".join(value))
    return table


def art_block(session: Session) -> RenderableType:
    state = session.state
    images = state.images
    if state.detail is None:
        return Text("")
    if not images:
        return Text("No image", style="muted")

    label = f"image {state.index(Section.DETAIL) + 1}/{len(images)}"
    frame = session.frame
    if frame is not None and frame.glyphs:
        label += f" · {frame.contrast_level}"
        body: RenderableType = Text(frame.glyphs, style="art", no_wrap=True, overflow="crop")
    elif session.art_error:
        body = Text(session.art_error, style="muted")
    elif session.art_loading:
        body = Text("rendering…", style="muted")
    else:
        body = Text("")
    return Group(Text(label, style="muted"), body)


def detail_panel(session: Session) -> Panel:
    state = session.state
    listing = state.shown_listing
    if listing is None:
        return _panel(Text(""), "Listing", True)

    parts: list[RenderableType] = [_detail_facts(listing, listing.id in state.starred_ids)]
    detail = state.detail
    if detail is None:
        parts.append(Text("\nloading…", style="muted"))
    else:
        description = detail.full_description or detail.description
        if description:
            parts.append(Text(f"\n{description}", style="text"))
        attributes = _attributes_table(detail)
        if attributes is not None:
            parts.append(Text(""))
            parts.append(attributes)
        if detail.phone:
            parts.append(Text(f"\nPhone: {detail.phone}", style="text"))
        parts.append(Text(""))
        parts.append(art_block(session))
    return _panel(Group(*parts), "Listing", True)


def history_panel(state: NavigationState) -> Panel:
    section = Section.HISTORY
    entries = state.history_items
    if not entries:
        return _panel(Text("No searches yet", style="muted"), "History", True)

    table = Table.grid(expand=True, padding=(0, 2))
    table.add_column(ratio=1, no_wrap=True, overflow="ellipsis")
    table.add_column(no_wrap=True)
    table.add_column(justify="right", no_wrap=True)
    start, end = state.window(section)
    for i in range(start, end):
        entry = entries[i]
        when = entry.created_at.strftime("%d.%m.%Y %H:%M") if entry.created_at else ""
        table.add_row(
            Text(entry.query, style=_row_style(state, section, i)),
            Text(entry.category_name or "", style="muted"),
            Text(when, style="muted"),
        )
    return _panel(table, "History", True, _window_label(state, section))


def starred_panel(state: NavigationState) -> Panel:
    section = Section.STARRED
    if not state.starred_items:
        return _panel(Text("Nothing starred yet", style="muted"), "Starred", True)
    return _panel(
        listing_table(state, section, state.starred_items),
        "Starred",
        True,
        _window_label(state, section),
    )


def profile_panel(state: NavigationState) -> Panel:
    profile = state.profile
    if profile is None:
        return _panel(Text("No profile loaded", style="muted"), "Profile", True)

    table = Table.grid(padding=(0, 2))
    table.add_column(style="muted")
    table.add_column(style="text")
    table.add_row("Name", profile.display_name or "-")
    table.add_row("E-mail", profile.email or "-")
    table.add_row("Location", " ".join(p for p in (profile.post_code, profile.city) if p) or "-")
    if profile.member_since:
        table.add_row("Member since", profile.member_since)
    table.add_row("User id", profile.id)
    return _panel(table, "Profile", True)


def command_panel(state: NavigationState) -> Panel:
    prompt = Text(f"{Assets.COMMAND_PROMPT} ", style="focus")
    prompt.append(state.command_input, style="text")
    prompt.append("▏", style="focus")

    table = Table.grid(padding=(0, 2))
    table.add_column(no_wrap=True)
    table.add_column(style="muted")
    for command in COMMANDS:
        if command.name.startswith(state.command_input):
            table.add_row(Text(command.name, style="focus"), command.description)
    return _panel(Group(prompt, Text(""), table), "Commands", True)


def footer(state: NavigationState) -> Text:
    return Text(KEY_HINTS[state.section], style="muted")


# ═══════════════════════════════════════════════════════════════════════════
# Screen
# ═══════════════════════════════════════════════════════════════════════════


def body(session: Session) -> RenderableType:
    state = session.state
    if state.section is Section.DETAIL:
        return detail_panel(session)
    if state.section is Section.HISTORY:
        return history_panel(state)
    if state.section is Section.STARRED:
        return starred_panel(state)
    if state.section is Section.PROFILE:
        return profile_panel(state)
    if state.section is Section.COMMAND:
        return command_panel(state)
    return results_body(state)


def screen(session: Session) -> Group:
    return Group(header(session), search_box(session.state), body(session), footer(session.state))


def render_screen(session: Session, width: int = 100, color: bool = True) -> str:
    """Render the whole screen to a string (ANSI-coloured unless color=False)."""
    console = Console(
        file=io.StringIO(),
        width=width,
        theme=WILLHABEN_THEME,
        force_terminal=color,
        color_system="truecolor" if color else None,
        legacy_windows=False,
    )
    console.print(screen(session))
    return console.file.getvalue()
