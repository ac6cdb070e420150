"""
willhaben-cli — Slash commands

Registry behind the command palette. Lookup is by exact name; Tab
completion picks the first registered name with the typed prefix, so the
registry order is the completion order.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from willhaben_cli.client import MarketplaceClient
from willhaben_cli.config import LOCATIONS, VALID_ASCII_CONTRASTS, VALID_ASCII_WIDTHS, Config, UserConfig, next_in_cycle
from willhaben_cli.errors import WillhabenError
from willhaben_cli.navigation import NavigationController, Section
from willhaben_cli.store import HistoryStore, StarStore

logger = logging.getLogger("willhaben.commands")


@dataclass
class CommandContext:
    """What a command may touch."""
    controller: NavigationController
    config: Config
    stars: StarStore
    history: HistoryStore
    client: MarketplaceClient
    exit: Callable[[], None]
    on_settings_changed: Callable[[UserConfig], None] = field(default=lambda settings: None)


CommandAction = Callable[[CommandContext], Awaitable[None]]


@dataclass(frozen=True)
class Command:
    name: str
    description: str
    action: CommandAction


# ═══════════════════════════════════════════════════════════════════════════
# Actions
# ═══════════════════════════════════════════════════════════════════════════


async def _search(ctx: CommandContext):
    ctx.controller.state.command_input = ""
    ctx.controller.focus(Section.SEARCH)


async def _history(ctx: CommandContext):
    ctx.controller.show_history(ctx.history.list())


async def _starred(ctx: CommandContext):
    ctx.controller.show_starred(ctx.stars.list())


async def _me(ctx: CommandContext):
    controller = ctx.controller
    controller.show_profile(controller.state.profile)
    if not ctx.client.cookies:
        controller.set_message("Not logged in: set WILLHABEN_COOKIES to see your profile")
        return
    try:
        profile = await ctx.client.fetch_profile()
    except WillhabenError as e:
        logger.warning(f"Profile fetch failed: {e}")
        controller.state.error = str(e)
        return
    controller.state.profile = profile
    if profile is None:
        controller.set_message("No profile data for these cookies")


async def _width(ctx: CommandContext):
    current = ctx.config.get().ascii_width
    settings = ctx.config.set(ascii_width=next_in_cycle(VALID_ASCII_WIDTHS, current))
    ctx.controller.set_message(f"ASCII width: {settings.ascii_width}")
    ctx.on_settings_changed(settings)


async def _contrast(ctx: CommandContext):
    current = ctx.config.get().ascii_contrast
    settings = ctx.config.set(ascii_contrast=next_in_cycle(VALID_ASCII_CONTRASTS, current))
    ctx.controller.set_message(f"ASCII contrast: {settings.ascii_contrast}")
    ctx.on_settings_changed(settings)


async def _location(ctx: CommandContext):
    current = ctx.config.get().preferred_location
    settings = ctx.config.set(preferred_location=next_in_cycle([*LOCATIONS, None], current))
    ctx.controller.set_message(f"Location: {settings.location_name or 'all of Austria'}")
    ctx.on_settings_changed(settings)


async def _help(ctx: CommandContext):
    ctx.controller.set_message("  ".join(f"{c.name} {c.description}" for c in COMMANDS))


async def _quit(ctx: CommandContext):
    ctx.exit()


COMMANDS: list[Command] = [
    Command("/search", "focus the search box", _search),
    Command("/history", "recent searches", _history),
    Command("/starred", "starred listings", _starred),
    Command("/me", "your profile", _me),
    Command("/width", "cycle ASCII art width", _width),
    Command("/contrast", "cycle ASCII art contrast", _contrast),
    Command("/location", "cycle preferred Bundesland", _location),
    Command("/help", "list commands", _help),
    Command("/quit", "exit", _quit),
]


# ═══════════════════════════════════════════════════════════════════════════
# Public API
# ═══════════════════════════════════════════════════════════════════════════


def command_names() -> list[str]:
    return [c.name for c in COMMANDS]


def get_command(name: str) -> Command | None:
    for command in COMMANDS:
        if command.name == name:
            return command
    return None


async def execute_command(name: str, ctx: CommandContext) -> bool:
    """Run the command called exactly `name`. False when there is none."""
    command = get_command(name.strip())
    if command is None:
        return False
    logger.info(f"Command {command.name}")
    await command.action(ctx)
    return True
