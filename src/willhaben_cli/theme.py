"""
Theme System for willhaben-cli
==============================
Dark terminal palette: willhaben blue for focus, amber for prices and stars.
"""

from rich.theme import Theme

# ═══════════════════════════════════════════════════════════════════════════
# COLOR PALETTE
# ═══════════════════════════════════════════════════════════════════════════

# Primary
WILLHABEN_BLUE = "#00a6e6"   # Focus, headings
DEEP_BLUE = "#0074c8"        # Selected row background

# Accent colors
PRICE_GOLD = "#ffc94d"       # Prices, stars
ALERT_RED = "#ff5555"        # Errors
OK_GREEN = "#5fd75f"         # Confirmations, paylivery

# System colors
TEXT = "#d4d4d4"             # Content
DIM_GRAY = "#8a8a8a"         # Labels, counters
BORDER = "#444444"           # Panel borders, separators

WILLHABEN_THEME = Theme({
    "title": f"bold {WILLHABEN_BLUE}",
    "focus": f"bold {WILLHABEN_BLUE}",
    "selected": f"bold #ffffff on {DEEP_BLUE}",
    "price": f"bold {PRICE_GOLD}",
    "star": f"bold {PRICE_GOLD}",
    "error": f"bold {ALERT_RED}",
    "success": f"bold {OK_GREEN}",
    "muted": DIM_GRAY,
    "text": TEXT,
    "border": BORDER,
    "art": TEXT,
})


class Assets:
    """Glyphs used across views. Plain text, no emoji."""

    STAR_ON = "★"
    STAR_OFF = "☆"
    CURSOR = "›"
    PROMPT = "⌕"
    COMMAND_PROMPT = ">"

    SPINNER = ["⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏"]

    @staticmethod
    def border_style(focused: bool) -> str:
        return WILLHABEN_BLUE if focused else BORDER
