"""
willhaben-cli — CLI

Full-screen prompt_toolkit application around a Session.

Architecture:
  - one Window whose content is views.render_screen() as ANSI text
  - every key binding turns into a KeyPress for Session.press
  - Session.on_change invalidates the app; redraws happen on the event loop
  - /quit (or Ctrl-C / Ctrl-D) exits the app, then the session is closed
"""

from __future__ import annotations

import logging

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import ANSI
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import Layout, Window
from prompt_toolkit.layout.controls import FormattedTextControl

from willhaben_cli.client import MarketplaceClient
from willhaben_cli.config import Config, load_config
from willhaben_cli.navigation import Key, KeyPress
from willhaben_cli.session import Session
from willhaben_cli.views import render_screen

logger = logging.getLogger("willhaben.cli")

# prompt_toolkit key name → navigation key
KEY_MAP: dict[str, Key] = {
    "up": Key.UP,
    "down": Key.DOWN,
    "left": Key.LEFT,
    "right": Key.RIGHT,
    "enter": Key.ENTER,
    "escape": Key.ESCAPE,
    "tab": Key.TAB,
    "backspace": Key.BACKSPACE,
}


def key_press_for(data: str) -> KeyPress | None:
    """KeyPress for typed text; None for control sequences."""
    if len(data) == 1 and data.isprintable():
        return KeyPress.text(data)
    return None


# ═══════════════════════════════════════════════════════════════════════════
# CLI
# ═══════════════════════════════════════════════════════════════════════════


class WillhabenCLI:
    """Terminal front end: owns the prompt_toolkit Application and the Session."""

    def __init__(self, config: Config | None = None):
        self.config = config or load_config()
        self.client = MarketplaceClient(cookies=self.config.get().cookies)
        self.app: Application | None = None
        self.session = Session(
            self.client,
            self.config,
            on_change=self._invalidate,
            on_exit=self._exit,
        )

    # ──────────────────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────────────────

    async def run(self, initial_query: str | None = None):
        self.app = Application(
            layout=Layout(Window(FormattedTextControl(self._render, focusable=True), wrap_lines=False)),
            key_bindings=self._create_keybindings(),
            full_screen=True,
            mouse_support=False,
        )
        if initial_query:
            self.session.submit_query(initial_query)

        try:
            await self.app.run_async()
        finally:
            await self.session.close()
            logger.info("Session closed")

    def _render(self) -> ANSI:
        width = self.app.output.get_size().columns if self.app else 100
        return ANSI(render_screen(self.session, width=width))

    def _invalidate(self):
        if self.app is not None and self.app.is_running:
            self.app.invalidate()

    def _exit(self):
        if self.app is not None and self.app.is_running:
            self.app.exit()

    # ──────────────────────────────────────────────────────────
    # Keys
    # ──────────────────────────────────────────────────────────

    def _create_keybindings(self) -> KeyBindings:
        """Keyboard shortcuts."""
        kb = KeyBindings()

        for name, key in KEY_MAP.items():
            kb.add(name, eager=(key is Key.ESCAPE))(self._forward(KeyPress(key)))

        @kb.add("<any>")
        def _(event):
            press = key_press_for(event.data)
            if press is not None:
                self.session.press(press)

        @kb.add("c-c")
        @kb.add("c-d")
        def _(event):
            self.session.exit()

        return kb

    def _forward(self, press: KeyPress):
        def handler(event):
            self.session.press(press)
        return handler
