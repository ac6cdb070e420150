"""
willhaben-cli — ASCII Art

Listing photos rendered as glyph grids for the detail view.

Pipeline:
  bytes → Pillow decode → RGB → resize to (width, width * aspect * 0.5)
        → per-pixel mean luminance → index into a light→dark glyph ramp

Terminal cells are roughly twice as tall as wide, hence the 0.5 factor.
"""

from __future__ import annotations

import io
import logging
import math
import shutil
from dataclasses import dataclass
from typing import Iterator, Literal, Union

from PIL import Image, UnidentifiedImageError

from willhaben_cli.errors import RenderError

logger = logging.getLogger("willhaben.ascii_art")

ContrastLevel = Literal["low", "medium", "high"]
AsciiWidth = Union[int, Literal["auto"]]

# Ordered light → dark, increasing density
ASCII_CHAR_SETS: dict[str, str] = {
    "low": " ░▒▓█",
    "medium": " .·░▒▓█",
    "high": " .·░▒▓█#@",
}

ROTATION_ORDER: tuple[ContrastLevel, ...] = ("low", "medium", "high")

HEIGHT_FACTOR = 0.5
MIN_AUTO_WIDTH = 20
AUTO_WIDTH_MARGIN = 4


# ═══════════════════════════════════════════════════════════════════════════
# Core conversion
# ═══════════════════════════════════════════════════════════════════════════


def target_size(orig_width: int, orig_height: int, target_width: int) -> tuple[int, int]:
    """Aspect-correct (columns, rows) for a terminal rendering."""
    if orig_width <= 0 or target_width < 1:
        return target_width, 0
    height = math.floor(target_width * (orig_height / orig_width) * HEIGHT_FACTOR)
    return target_width, height


def glyph_for(luminance: float, ramp: str) -> str:
    fraction = max(0.0, min(1.0, luminance / 255))
    return ramp[math.floor(fraction * (len(ramp) - 1))]


def image_to_ascii(img: Image.Image, target_width: int, ramp: str) -> str:
    """Render an already-decoded image. Empty string for degenerate sizes."""
    width, height = target_size(img.width, img.height, target_width)
    if width < 1 or height < 1 or not ramp:
        return ""

    rgb = img.convert("RGB").resize((width, height))
    pixels = rgb.load()

    lines = []
    for y in range(height):
        row = []
        for x in range(width):
            r, g, b = pixels[x, y]
            row.append(glyph_for((r + g + b) / 3, ramp))
        lines.append("".join(row))
    return "\n".join(lines)


def decode_image(image_bytes: bytes) -> Image.Image:
    """Decode to an RGB image. Raises RenderError on corrupt or unknown data."""
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            img.load()
            return img.convert("RGB")
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
        raise RenderError(f"Cannot decode image: {e}") from e


def render_ascii(image_bytes: bytes, target_width: int, ramp: str) -> str | None:
    """
    Decode image bytes and render them.

    Returns None when the bytes cannot be decoded so the caller can show a
    placeholder; never raises.
    """
    try:
        img = decode_image(image_bytes)
    except RenderError as e:
        logger.warning(f"ASCII render failed: {e}")
        return None
    return image_to_ascii(img, target_width, ramp)


def resolve_width(setting: AsciiWidth) -> int:
    """Literal widths pass through; "auto" follows the terminal at call time."""
    if setting == "auto":
        columns = shutil.get_terminal_size().columns
        return max(MIN_AUTO_WIDTH, columns - AUTO_WIDTH_MARGIN)
    return int(setting)


# ═══════════════════════════════════════════════════════════════════════════
# Frames and rotation
# ═══════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class AsciiFrame:
    """One rendered image. Replaced, never mutated."""
    glyphs: str
    contrast_level: ContrastLevel
    image_url: str = ""


class ContrastCycle:
    """Endless low → medium → high → low ... sequence."""

    def __init__(self, start: ContrastLevel = "low"):
        self._index = ROTATION_ORDER.index(start)

    @property
    def current(self) -> ContrastLevel:
        return ROTATION_ORDER[self._index]

    def advance(self) -> ContrastLevel:
        self._index = (self._index + 1) % len(ROTATION_ORDER)
        return self.current

    def __iter__(self) -> Iterator[ContrastLevel]:
        while True:
            yield self.current
            self.advance()


class AsciiRenderer:
    """
    Renders frames for the image currently shown in the detail view.

    Keeps the decoded image for the active URL so contrast rotation only
    re-maps glyphs. Switching to another URL drops the cached image and
    frame.
    """

    def __init__(self, width: AsciiWidth = "auto"):
        self.width = width
        self._image_url: str | None = None
        self._image: Image.Image | None = None
        self.frame: AsciiFrame | None = None

    @property
    def image_url(self) -> str | None:
        return self._image_url

    def use(self, image_url: str, image: Image.Image):
        """Adopt an already-decoded image for `image_url`."""
        self.reset()
        self._image_url = image_url
        self._image = image

    def reset(self):
        self._image_url = None
        self._image = None
        self.frame = None

    def draw(self, level: ContrastLevel) -> AsciiFrame | None:
        """Build a frame for the loaded image without storing it."""
        image, image_url = self._image, self._image_url
        if image is None:
            return None
        glyphs = image_to_ascii(image, resolve_width(self.width), ASCII_CHAR_SETS[level])
        return AsciiFrame(glyphs=glyphs, contrast_level=level, image_url=image_url or "")

    def render(self, level: ContrastLevel) -> AsciiFrame | None:
        """Render the loaded image at `level`; None without a loaded image."""
        self.frame = self.draw(level)
        return self.frame

    def render_strict(self, image_url: str, image_bytes: bytes, level: ContrastLevel) -> AsciiFrame:
        """
        Decode (unless `image_url` is already loaded) and render.

        Unlike `render_ascii`, raises RenderError on undecodable bytes.
        """
        if image_url != self._image_url or self._image is None:
            self.use(image_url, decode_image(image_bytes))
        return self.render(level)

