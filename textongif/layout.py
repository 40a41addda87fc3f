"""
Text layout for TextOnGif.

This module handles:
1. Greedy word wrapping of the overlay text against the canvas width
2. Anchor point and anchor mode calculation from alignment settings
3. Per-row placement, drawing rows bottom-up from the anchor

Layout runs once per render and the result is reused for every frame.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterator, List, Tuple

from .config import RenderConfig

logger = logging.getLogger(__name__)

REFERENCE_GLYPH = "M"

MeasureFn = Callable[[str], float]


class HorizontalMode(Enum):
    LEFT = "left"
    CENTER = "center"
    RIGHT = "right"
    EXPLICIT = "explicit"  # left edge at position_x


class VerticalMode(Enum):
    HANGING = "hanging"
    MIDDLE = "middle"
    TOP = "top"
    BOTTOM = "bottom"
    EXPLICIT = "explicit"  # top edge at position_y


@dataclass(frozen=True)
class TextRow:
    """One wrapped line of overlay text."""
    text: str

    @property
    def words(self) -> List[str]:
        return self.text.split(" ")


@dataclass(frozen=True)
class LayoutResult:
    """Rows plus anchor information, computed once per render."""
    rows: Tuple[TextRow, ...]
    anchor_x: float
    anchor_y: float
    horizontal_mode: HorizontalMode
    vertical_mode: VerticalMode
    line_height: float
    row_gap: float

    def placements(self) -> Iterator[Tuple[str, float, float]]:
        """
        Yield ``(text, x, y)`` for every row in draw order.

        Rows are drawn in reverse: the last wrapped row sits on the anchor
        and each earlier row moves up by one line pitch.
        """
        pitch = self.line_height + self.row_gap
        for row_index, row in enumerate(reversed(self.rows)):
            yield row.text, self.anchor_x, self.anchor_y - row_index * pitch


def wrap_text(text: str, max_width: float, measure: MeasureFn) -> List[TextRow]:
    """
    Greedily wrap text into rows no wider than ``max_width``.

    Words are never split: a word wider than ``max_width`` gets a row to
    itself. Empty text yields a single empty row.

    Args:
        text: Text to wrap, words separated by single spaces
        max_width: Maximum rendered row width in pixels
        measure: Returns the rendered width of a string

    Returns:
        Rows in reading order
    """
    rows: List[TextRow] = []
    preview: List[str] = []
    line: List[str] = []

    for word in text.split(" "):
        preview.append(word)

        if measure(" ".join(preview)) > max_width:
            if line:
                rows.append(TextRow(" ".join(line)))
            preview = [word]
            line = []

        line.append(word)

    rows.append(TextRow(" ".join(line)))

    logger.debug(f"Wrapped text into {len(rows)} row(s) at max width {max_width}")
    return rows


def compute_anchor(rows: List[TextRow], config: RenderConfig, canvas_width: float,
                   canvas_height: float, line_height: float
                   ) -> Tuple[float, float, HorizontalMode, VerticalMode]:
    """
    Compute the anchor point and modes for a block of rows.

    Args:
        rows: Wrapped rows
        config: Render configuration
        canvas_width: Frame width in pixels
        canvas_height: Frame height in pixels
        line_height: Approximate height of one row

    Returns:
        Tuple of (anchor_x, anchor_y, horizontal_mode, vertical_mode)
    """
    # Horizontal
    if config.position_x is not None:
        anchor_x = config.position_x
        horizontal_mode = HorizontalMode.EXPLICIT
    elif config.alignment_x == "right":
        anchor_x = canvas_width - config.offset_x
        horizontal_mode = HorizontalMode.RIGHT
    elif config.alignment_x == "left":
        anchor_x = config.offset_x
        horizontal_mode = HorizontalMode.LEFT
    elif config.alignment_x == "center":
        anchor_x = canvas_width / 2
        horizontal_mode = HorizontalMode.CENTER
    else:
        logger.warning(f"Unknown alignment_x {config.alignment_x!r}, anchoring at the left edge")
        anchor_x = 0
        horizontal_mode = HorizontalMode.LEFT

    # Vertical
    row_count = len(rows)
    if config.position_y is not None:
        anchor_y = config.position_y
        vertical_mode = VerticalMode.EXPLICIT
    elif config.alignment_y == "top":
        anchor_y = config.offset_y
        vertical_mode = VerticalMode.HANGING
    elif row_count <= 1:
        if config.alignment_y == "middle":
            anchor_y = canvas_height / 2
            vertical_mode = VerticalMode.MIDDLE
        else:
            anchor_y = canvas_height - config.offset_y
            vertical_mode = VerticalMode.BOTTOM
    elif config.alignment_y == "middle":
        block_height = row_count * line_height + (row_count - 1) * config.row_gap
        anchor_y = (canvas_height - block_height) / 2
        vertical_mode = VerticalMode.TOP
    else:
        anchor_y = canvas_height - ((row_count - 1) * (line_height + config.row_gap) + config.offset_y)
        vertical_mode = VerticalMode.BOTTOM

    return anchor_x, anchor_y, horizontal_mode, vertical_mode


def layout_text(text: str, config: RenderConfig, canvas_width: int, canvas_height: int,
                measure: MeasureFn) -> LayoutResult:
    """
    Wrap text and compute its anchor for a canvas.

    The line height is approximated by the rendered width of a single
    reference glyph; true ascent/descent metrics are not queried.
    """
    line_height = measure(REFERENCE_GLYPH)
    rows = wrap_text(text, canvas_width, measure)
    anchor_x, anchor_y, horizontal_mode, vertical_mode = compute_anchor(
        rows, config, canvas_width, canvas_height, line_height
    )

    logger.info(
        f"Layout: {len(rows)} row(s) anchored at ({anchor_x:.1f}, {anchor_y:.1f}) "
        f"[{horizontal_mode.value}/{vertical_mode.value}]"
    )
    return LayoutResult(
        rows=tuple(rows),
        anchor_x=anchor_x,
        anchor_y=anchor_y,
        horizontal_mode=horizontal_mode,
        vertical_mode=vertical_mode,
        line_height=line_height,
        row_gap=config.row_gap,
    )
