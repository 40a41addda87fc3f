"""
Frame compositor for TextOnGif.

This module draws the laid-out text onto every frame, in order, and hands
each composited frame to the encoder. Per frame:

1. Paint the frame's pixels onto the working surface
2. Snapshot the surface unless the frame restores to background
3. Draw stroked and filled text rows
4. Commit the surface with the frame's delay and disposal
5. In cumulative mode, write the composited pixels back to the frame store
6. Clear the surface, or put the snapshot back to erase the text

The working surface persists across frames, so a frame with transparent
areas is painted over whatever the previous frame's disposal left behind.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Optional, Tuple

import cv2
import numpy as np
from PIL import Image, ImageColor, ImageDraw

from .config import CompositingMode, RenderConfig
from .encoder import GifEncoder
from .frames import DisposalMethod, Frame, FrameStore
from .layout import HorizontalMode, LayoutResult, VerticalMode

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int, int]

WHITESPACE_AS_SPACE = str.maketrans("\t\n\r\f\v", "     ")

HORIZONTAL_ANCHORS = {
    HorizontalMode.LEFT: "l",
    HorizontalMode.CENTER: "m",
    HorizontalMode.RIGHT: "r",
    HorizontalMode.EXPLICIT: "l",
}

VERTICAL_ANCHORS = {
    VerticalMode.HANGING: "t",
    VerticalMode.MIDDLE: "m",
    VerticalMode.TOP: "a",
    VerticalMode.BOTTOM: "d",
    VerticalMode.EXPLICIT: "a",
}


def single_line(text: str) -> str:
    """Render line breaks and tabs as spaces; anchored text must be one line."""
    return text.translate(WHITESPACE_AS_SPACE)


def resolve_color(value: str) -> Optional[Color]:
    """Parse a colour string, returning None if Pillow cannot read it."""
    try:
        return ImageColor.getcolor(value, "RGBA")
    except (ValueError, AttributeError, TypeError) as e:
        logger.warning(f"Unreadable colour {value!r}, skipping: {e}")
        return None


def stroke_px(value) -> int:
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        logger.warning(f"Unreadable stroke width {value!r}, using 1")
        return 1


def pil_anchor(layout: LayoutResult) -> str:
    return HORIZONTAL_ANCHORS[layout.horizontal_mode] + VERTICAL_ANCHORS[layout.vertical_mode]


@dataclass(frozen=True)
class TextStyle:
    """Resolved drawing parameters shared by every frame of a render."""
    font: object
    fill: Optional[Color]
    stroke_fill: Optional[Color]
    stroke_width: int
    anchor: str

    @classmethod
    def from_config(cls, config: RenderConfig, font, layout: LayoutResult) -> "TextStyle":
        stroke_fill = resolve_color(config.stroke_color) if config.stroke_enabled else None
        return cls(
            font=font,
            fill=resolve_color(config.font_color),
            stroke_fill=stroke_fill,
            stroke_width=stroke_px(config.stroke_width),
            anchor=pil_anchor(layout),
        )


class Compositor:
    """Draws text onto frames and feeds the results to an encoder."""

    def __init__(self, width: int, height: int, layout: LayoutResult, style: TextStyle,
                 mode: CompositingMode = CompositingMode.FRESH, debug_dir: Optional[Path] = None):
        self.width = width
        self.height = height
        self.layout = layout
        self.style = style
        self.mode = mode
        self.debug_dir = debug_dir
        self.surface = Image.new("RGBA", (width, height), (0, 0, 0, 0))

        if self.mode == CompositingMode.CUMULATIVE:
            logger.warning("Cumulative text mode is experimental and may not composite correctly")
        if self.debug_dir is not None:
            self.debug_dir.mkdir(parents=True, exist_ok=True)

    def composite_all(self, store: FrameStore, encoder: GifEncoder,
                      on_frame_start: Optional[Callable[[int], None]] = None):
        """Composite every stored frame, in order, into the encoder."""
        logger.info(f"Compositing {len(store)} frame(s)")
        for frame in store:
            if on_frame_start is not None:
                on_frame_start(frame.index)
            self.composite_frame(frame, store, encoder)

    def composite_frame(self, frame: Frame, store: FrameStore, encoder: GifEncoder) -> np.ndarray:
        """
        Run one frame through the compositing steps.

        Args:
            frame: Frame to composite
            store: Store the frame belongs to, updated in cumulative mode
            encoder: Encoder receiving the composited surface

        Returns:
            The composited RGBA pixels that were committed
        """
        self._restore_pixels(frame)

        without_text = None
        if frame.disposal != DisposalMethod.RESTORE_TO_BACKGROUND:
            without_text = self.snapshot()

        self._draw_text()

        encoder.set_delay(frame.delay_ms)
        encoder.set_dispose(frame.disposal)
        encoder.add_frame(self.surface)

        composited = self.snapshot()
        if self.mode == CompositingMode.CUMULATIVE:
            store.replace_pixels(frame.index, composited)
        if self.debug_dir is not None:
            self.save_debug_frame(frame.index, composited)

        if without_text is None:
            self.clear()
        else:
            self.surface.paste(Image.fromarray(without_text), (0, 0))

        return composited

    def _restore_pixels(self, frame: Frame):
        """Paint the frame over the surface; a bad frame is logged and left unpainted."""
        try:
            pixels = np.asarray(frame.pixels, dtype=np.uint8)
            self.surface.alpha_composite(Image.fromarray(pixels).convert("RGBA"))
        except Exception as e:
            logger.error(f"Could not paint frame {frame.index}, drawing text on current surface: {e}")

    def _draw_text(self):
        draw = ImageDraw.Draw(self.surface)
        style = self.style

        for text, x, y in self.layout.placements():
            text = single_line(text)
            if style.stroke_fill is not None:
                draw.text((x, y), text, font=style.font, fill=style.stroke_fill, anchor=style.anchor,
                          stroke_width=style.stroke_width, stroke_fill=style.stroke_fill)
            if style.fill is not None:
                draw.text((x, y), text, font=style.font, fill=style.fill, anchor=style.anchor)

    def snapshot(self) -> np.ndarray:
        """Copy of the current surface pixels."""
        return np.array(self.surface, dtype=np.uint8)

    def clear(self):
        self.surface.paste((0, 0, 0, 0), (0, 0, self.width, self.height))

    def save_debug_frame(self, index: int, pixels: np.ndarray):
        """Write a composited frame to the debug directory for inspection."""
        path = self.debug_dir / f"frame_{index:04d}.png"
        cv2.imwrite(str(path), cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGRA))
        logger.debug(f"Debug frame saved: {path}")
