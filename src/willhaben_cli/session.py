"""
willhaben-cli — Session

Glue between key presses, the navigation controller and the outside world.

    key → NavigationController.handle_key → effects → Session.apply
        SearchRequest  → task: client.search   → controller.search_completed (+ history)
        DetailRequest  → task: client.fetch_detail → controller.detail_loaded → SelectImage
        SelectImage    → art task: fetch bytes → decode/render in a thread → rotate contrast
        CloseDetail    → cancel art task
        ToggleStar / Unstar → StarStore
        RunCommand     → task: commands.execute_command

Everything runs on one event loop. The art task is the only long-lived
activity; it is cancelled whenever the image it renders stops being shown.
"""

from __future__ import annotations

import asyncio
import logging
import sqlite3
from typing import Callable, Coroutine

from willhaben_cli.ascii_art import AsciiFrame, AsciiRenderer, ContrastCycle, ContrastLevel, decode_image
from willhaben_cli.client import MarketplaceClient
from willhaben_cli.commands import CommandContext, command_names, execute_command
from willhaben_cli.config import Config, UserConfig
from willhaben_cli.errors import RenderError, WillhabenError
from willhaben_cli.navigation import (
    CloseDetail,
    DetailRequest,
    Effect,
    Key,
    KeyPress,
    NavigationController,
    NavigationState,
    RunCommand,
    SearchRequest,
    Section,
    SelectImage,
    ToggleStar,
    Unstar,
)
from willhaben_cli.store import HistoryStore, StarStore

logger = logging.getLogger("willhaben.session")

ROTATION_INTERVAL = 2.0

UNEXPECTED_ERROR = "Something went wrong, see ~/.willhaben/logs/willhaben.log"


class Session:
    """One interactive run: controller, stores, client and background tasks."""

    def __init__(
        self,
        client: MarketplaceClient,
        config: Config,
        stars: StarStore | None = None,
        history: HistoryStore | None = None,
        on_change: Callable[[], None] | None = None,
        on_exit: Callable[[], None] | None = None,
        rotation_interval: float = ROTATION_INTERVAL,
    ):
        self.client = client
        self.config = config
        self.stars = stars or StarStore()
        self.history = history or HistoryStore()
        self.on_change = on_change
        self.on_exit = on_exit
        self.rotation_interval = rotation_interval

        settings = config.get()
        self.controller = NavigationController(command_names())
        self.controller.state.starred_ids = self.stars.ids()
        self.renderer = AsciiRenderer(settings.ascii_width)
        self.art_error: str | None = None
        self.exited = False

        self._tasks: set[asyncio.Task] = set()
        self._art_task: asyncio.Task | None = None

        self.commands = CommandContext(
            controller=self.controller,
            config=config,
            stars=self.stars,
            history=self.history,
            client=client,
            exit=self.exit,
            on_settings_changed=self._settings_changed,
        )

    @property
    def state(self) -> NavigationState:
        return self.controller.state

    @property
    def frame(self) -> AsciiFrame | None:
        return self.renderer.frame

    @property
    def art_loading(self) -> bool:
        return self._art_task is not None and not self._art_task.done() and self.renderer.frame is None

    def _changed(self):
        if self.on_change:
            self.on_change()

    # ──────────────────────────────────────────────────────────
    # Input
    # ──────────────────────────────────────────────────────────

    def press(self, press: KeyPress):
        """Handle one key press. Never blocks; I/O is scheduled as tasks."""
        effects = self.controller.handle_key(press)
        self.apply(effects)
        self._changed()

    def submit_query(self, query: str):
        """Type `query` into the search box and submit it."""
        self.controller.focus(Section.SEARCH)
        self.state.query = query
        self.press(KeyPress(Key.ENTER))

    def apply(self, effects: list[Effect]):
        for effect in effects:
            if isinstance(effect, SearchRequest):
                self._spawn(self._run_search(effect))
            elif isinstance(effect, DetailRequest):
                self._cancel_art()
                self._spawn(self._run_detail(effect))
            elif isinstance(effect, SelectImage):
                self._start_art(effect.image_url)
            elif isinstance(effect, CloseDetail):
                self._cancel_art()
            elif isinstance(effect, ToggleStar):
                self._toggle_star(effect)
            elif isinstance(effect, Unstar):
                self._unstar(effect)
            elif isinstance(effect, RunCommand):
                self._spawn(self._run_command(effect.name))

    def _spawn(self, coro: Coroutine) -> asyncio.Task:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # ──────────────────────────────────────────────────────────
    # Fetch tasks
    # ──────────────────────────────────────────────────────────

    async def _run_search(self, request: SearchRequest):
        location = self.config.get().preferred_location
        try:
            result = await self.client.search(
                request.query,
                category_id=request.category_id,
                page=request.page,
                location_id=location,
            )
        except WillhabenError as e:
            logger.warning(f"Search '{request.query}' failed: {e}")
            self.controller.search_failed(request, str(e))
        except Exception as e:
            logger.error(f"Search '{request.query}' crashed: {e}", exc_info=True)
            self.controller.search_failed(request, UNEXPECTED_ERROR)
        else:
            if self.controller.search_completed(request, result):
                self._record_history(request)
        finally:
            self._changed()

    def _record_history(self, request: SearchRequest):
        try:
            self.history.add(request.query, request.category_id, request.category_name)
        except sqlite3.Error as e:
            logger.warning(f"Could not record search history: {e}")

    async def _run_detail(self, request: DetailRequest):
        try:
            detail = await self.client.fetch_detail(request.listing_id)
        except WillhabenError as e:
            logger.warning(f"Detail {request.listing_id} failed: {e}")
            self.controller.detail_failed(request, str(e))
        except Exception as e:
            logger.error(f"Detail {request.listing_id} crashed: {e}", exc_info=True)
            self.controller.detail_failed(request, UNEXPECTED_ERROR)
        else:
            self.apply(self.controller.detail_loaded(request, detail))
        finally:
            self._changed()

    async def _run_command(self, name: str):
        try:
            await execute_command(name, self.commands)
        except (WillhabenError, sqlite3.Error) as e:
            logger.warning(f"Command {name} failed: {e}")
            self.state.error = str(e)
        except Exception as e:
            logger.error(f"Command {name} crashed: {e}", exc_info=True)
            self.state.error = UNEXPECTED_ERROR
        finally:
            self._changed()

    # ──────────────────────────────────────────────────────────
    # Stars
    # ──────────────────────────────────────────────────────────

    def _toggle_star(self, effect: ToggleStar):
        try:
            starred = self.stars.toggle(effect.listing)
        except sqlite3.Error as e:
            logger.warning(f"Star toggle for {effect.listing.id} failed: {e}")
            self.state.error = f"Could not save star: {e}"
            self.controller.set_starred(effect.listing.id, self._is_starred(effect.listing.id))
            return
        self.controller.set_starred(effect.listing.id, starred)

    def _is_starred(self, listing_id: str) -> bool:
        try:
            return self.stars.is_starred(listing_id)
        except sqlite3.Error:
            return False

    def _unstar(self, effect: Unstar):
        try:
            self.stars.remove(effect.listing_id)
        except sqlite3.Error as e:
            logger.warning(f"Unstar {effect.listing_id} failed: {e}")
            self.state.error = f"Could not remove star: {e}"

    # ──────────────────────────────────────────────────────────
    # ASCII art
    # ──────────────────────────────────────────────────────────

    def _start_art(self, image_url: str | None):
        self._cancel_art()
        if not image_url:
            return
        self._art_task = asyncio.create_task(self._run_art(image_url))

    def _cancel_art(self):
        if self._art_task is not None and not self._art_task.done():
            self._art_task.cancel()
        self._art_task = None
        self.art_error = None
        self.renderer.reset()

    async def _run_art(self, image_url: str):
        try:
            image_bytes = await self.client.fetch_image(image_url)
        except WillhabenError as e:
            logger.warning(f"Image {image_url} failed: {e}")
            self.art_error = "Image unavailable"
            self._changed()
            return

        # Decoding and resizing run off the event loop; results are adopted
        # only if this task was not cancelled meanwhile
        try:
            image = await asyncio.to_thread(decode_image, image_bytes)
        except RenderError as e:
            logger.warning(f"{image_url}: {e}")
            self.art_error = "Image could not be rendered"
            self._changed()
            return
        self.renderer.use(image_url, image)

        contrast = self.config.get().ascii_contrast
        if contrast != "rotate":
            await self._draw(contrast)
            return

        for level in ContrastCycle():
            await self._draw(level)
            await asyncio.sleep(self.rotation_interval)

    async def _draw(self, level: ContrastLevel):
        self.renderer.frame = await asyncio.to_thread(self.renderer.draw, level)
        self._changed()

    def _settings_changed(self, settings: UserConfig):
        self.renderer.width = settings.ascii_width
        if self.state.section is Section.DETAIL and self.state.detail is not None:
            self._start_art(self.state.selected(Section.DETAIL))

    # ──────────────────────────────────────────────────────────
    # Lifecycle
    # ──────────────────────────────────────────────────────────

    @property
    def rotating(self) -> bool:
        return self._art_task is not None and not self._art_task.done()

    async def wait_idle(self):
        """Wait until no search, detail or command task is outstanding."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def exit(self):
        if self.exited:
            return
        self.exited = True
        logger.info("Session exit requested")
        if self.on_exit:
            self.on_exit()

    async def close(self):
        """Cancel background work and release the HTTP client."""
        self._cancel_art()
        for task in list(self._tasks):
            task.cancel()
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        await self.client.close()
