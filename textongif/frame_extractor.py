"""
Frame extraction module for TextOnGif.

This module handles:
1. Resolving the source (local path, URL or raw bytes) to a readable file
2. Reporting canvas dimensions and frame count as soon as they are known
3. Decoding every frame to RGBA pixels with its delay and disposal method
"""

import logging
from pathlib import Path
from typing import Callable, Optional, Union

import numpy as np
from imageio.core import Request
from PIL import Image

from .frames import DisposalMethod, Frame, FrameStore

logger = logging.getLogger(__name__)

Source = Union[str, Path, bytes]
DimensionsCallback = Callable[[int, int, int], None]


class SourceDecodeError(Exception):
    """The source could not be read or decoded as an animation."""


def describe_source(source: Source) -> str:
    if isinstance(source, (bytes, bytearray)):
        return f"<{len(source)} bytes>"
    return str(source)


class FrameExtractor:
    """Decodes an animated image into a FrameStore."""

    def __init__(self, source: Source):
        self.source = source
        self._request = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.cleanup()

    def cleanup(self):
        """Release the source file."""
        if self._request is not None:
            self._request.finish()
            self._request = None

    def extract(self, store: FrameStore, on_dimensions: Optional[DimensionsCallback] = None) -> FrameStore:
        """
        Decode all frames into ``store``.

        ``on_dimensions`` is called with (width, height, frame_count) before
        any frame pixels are decoded.

        Args:
            store: Frame store to fill, cleared first
            on_dimensions: Optional callback for early dimension reporting

        Returns:
            The filled store

        Raises:
            SourceDecodeError: If the source cannot be opened or yields no frames
        """
        logger.info(f"Extracting frames from {describe_source(self.source)}")
        store.clear()

        gif = None
        try:
            gif = Image.open(self._open_source())
            width, height = gif.size
            frame_count = getattr(gif, "n_frames", 1)
        except Exception as e:
            if gif is not None:
                gif.close()
            logger.error(f"Failed to open source {describe_source(self.source)}: {e}")
            self.cleanup()
            raise SourceDecodeError(f"Could not decode {describe_source(self.source)}: {e}") from e

        try:
            store.set_dimensions(width, height, frame_count)
            logger.info(f"Source: {width}x{height}, {frame_count} frame(s)")
            if on_dimensions is not None:
                on_dimensions(width, height, frame_count)

            for index in range(frame_count):
                try:
                    gif.seek(index)
                    store.append(self._decode_current(gif))
                except Exception as e:
                    logger.warning(f"Error decoding frame {index}: {e}")
                    continue
        finally:
            gif.close()
            self.cleanup()

        if len(store) == 0:
            raise SourceDecodeError(f"No frames could be decoded from {describe_source(self.source)}")

        logger.info(f"Successfully extracted {len(store)}/{store.expected_count} frame(s)")
        return store

    def _open_source(self):
        """Open the source through imageio, which resolves paths, URLs and bytes alike."""
        source = bytes(self.source) if isinstance(self.source, bytearray) else self.source
        self._request = Request(source, "ri")
        return self._request.get_file()

    @staticmethod
    def _decode_current(gif: Image.Image) -> Frame:
        pixels = np.array(gif.convert("RGBA"), dtype=np.uint8)
        delay_ms = int(gif.info.get("duration", 0) or 0)
        disposal = DisposalMethod.from_value(getattr(gif, "disposal_method", 0))
        return Frame(pixels=pixels, delay_ms=delay_ms, disposal=disposal)
