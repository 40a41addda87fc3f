"""
Decoded frame storage for TextOnGif.
"""

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterator, List

import numpy as np

logger = logging.getLogger(__name__)


class DisposalMethod(IntEnum):
    """GIF frame disposal methods."""
    UNSPECIFIED = 0
    DO_NOT_DISPOSE = 1
    RESTORE_TO_BACKGROUND = 2
    RESTORE_TO_PREVIOUS = 3

    @classmethod
    def from_value(cls, value) -> "DisposalMethod":
        """Map a raw disposal value to a member, treating unknown values as unspecified."""
        try:
            return cls(int(value))
        except (TypeError, ValueError):
            logger.debug(f"Unknown disposal value {value!r}, treating as unspecified")
            return cls.UNSPECIFIED


@dataclass
class Frame:
    """A decoded animation frame."""
    pixels: np.ndarray  # (height, width, 4) uint8 RGBA
    delay_ms: int
    disposal: DisposalMethod
    index: int = 0

    def __post_init__(self):
        if self.delay_ms < 0:
            raise ValueError(f"Frame delay must be non-negative, got {self.delay_ms}")
        self.disposal = DisposalMethod.from_value(self.disposal)


class FrameStore:
    """Ordered collection of decoded frames sharing one canvas size."""

    def __init__(self):
        self.width = 0
        self.height = 0
        self.expected_count = 0
        self._frames: List[Frame] = []

    def set_dimensions(self, width: int, height: int, frame_count: int):
        """Record canvas dimensions and the frame count reported by the decoder."""
        self.width = width
        self.height = height
        self.expected_count = frame_count

    @property
    def has_dimensions(self) -> bool:
        return self.width > 0 and self.height > 0

    def append(self, frame: Frame):
        frame.index = len(self._frames)
        self._frames.append(frame)

    def replace_pixels(self, index: int, pixels: np.ndarray):
        """Overwrite the stored pixels of one frame."""
        self._frames[index].pixels = pixels

    def clear(self):
        self._frames = []

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> Frame:
        return self._frames[index]
