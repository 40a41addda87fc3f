"""
GIF encoder adapter for TextOnGif.

Composited frames are quantized to a palette as they arrive and written
as one animated GIF by Pillow when the encoder is finished. Per-frame
delay and disposal are carried through unchanged.
"""

import logging
from io import BytesIO
from typing import Callable, List, Optional, Union

import numpy as np
from PIL import Image, features

from .frames import DisposalMethod

logger = logging.getLogger(__name__)

TRANSPARENT_INDEX = 255

QUANTIZERS = {
    "mediancut": Image.Quantize.MEDIANCUT,
    "maxcoverage": Image.Quantize.MAXCOVERAGE,
    "fastoctree": Image.Quantize.FASTOCTREE,
    "libimagequant": Image.Quantize.LIBIMAGEQUANT,
}


def resolve_quantizer(name: str) -> Image.Quantize:
    """Map a quantizer name to a Pillow method, falling back to median cut."""
    method = QUANTIZERS.get(str(name).lower())
    if method is None:
        logger.warning(f"Unknown quantizer '{name}', using mediancut")
        return Image.Quantize.MEDIANCUT
    if method == Image.Quantize.LIBIMAGEQUANT and not features.check_feature("libimagequant"):
        logger.warning("libimagequant is not available in this Pillow build, using mediancut")
        return Image.Quantize.MEDIANCUT
    return method


class GifEncoder:
    """Accumulates frames and produces a single animated GIF buffer."""

    def __init__(self, width: int, height: int, quantizer: str = "mediancut",
                 transparent: bool = False, frame_count: int = 0,
                 on_progress: Optional[Callable[[int], None]] = None):
        if width <= 0 or height <= 0:
            raise ValueError(f"Encoder dimensions must be positive, got {width}x{height}")

        self.width = width
        self.height = height
        self.transparent = transparent
        self.frame_count = frame_count
        self.on_progress = on_progress
        self._method = resolve_quantizer(quantizer)

        self._repeat = 0
        self._delay = 0
        self._dispose = DisposalMethod.UNSPECIFIED
        self._frames: List[Image.Image] = []
        self._delays: List[int] = []
        self._disposals: List[int] = []
        self._finished = False

    @property
    def size(self):
        return (self.width, self.height)

    def set_repeat(self, repeat: int):
        """
        Set the loop behaviour.

        -1 plays once, 0 loops forever, n > 0 loops exactly n times.
        """
        if repeat < -1:
            raise ValueError(f"Repeat must be -1, 0 or a positive count, got {repeat}")
        self._repeat = int(repeat)

    def set_delay(self, delay_ms: int):
        self._delay = max(0, int(delay_ms))

    def set_dispose(self, disposal: Union[int, DisposalMethod]):
        self._dispose = DisposalMethod.from_value(disposal)

    def add_frame(self, surface: Union[Image.Image, np.ndarray]):
        """Quantize a composited surface and queue it with the current delay and disposal."""
        if self._finished:
            raise RuntimeError("Cannot add frames to a finished encoder")

        image = Image.fromarray(surface) if isinstance(surface, np.ndarray) else surface
        if image.size != self.size:
            raise ValueError(f"Frame size {image.size} does not match encoder size {self.size}")

        self._frames.append(self._keep_distinct(self._to_palette(image)))
        self._delays.append(self._delay)
        self._disposals.append(int(self._dispose))

        if self.on_progress is not None and self.frame_count > 0:
            self.on_progress(min(100, int(len(self._frames) * 100 / self.frame_count)))

    def _to_palette(self, image: Image.Image) -> Image.Image:
        """
        Flatten an RGBA surface onto black and reduce it to a palette.

        With transparency enabled, fully transparent and pure black pixels
        are mapped to a reserved transparent palette index.
        """
        rgba = image.convert("RGBA")
        background = Image.new("RGBA", self.size, (0, 0, 0, 255))
        rgb = Image.alpha_composite(background, rgba).convert("RGB")

        if not self.transparent:
            return rgb.quantize(colors=256, method=self._method)

        pixels = np.asarray(rgba)
        mask = (pixels[..., 3] == 0) | np.all(pixels[..., :3] == 0, axis=-1)

        paletted = rgb.quantize(colors=TRANSPARENT_INDEX, method=self._method)
        indices = np.array(paletted, dtype=np.uint8)
        indices[mask] = TRANSPARENT_INDEX

        palette = (paletted.getpalette() or [])[:TRANSPARENT_INDEX * 3]
        palette = palette + [0] * (768 - len(palette))

        result = Image.frombytes("P", self.size, indices.tobytes())
        result.putpalette(palette)
        result.info["transparency"] = TRANSPARENT_INDEX
        return result

    def _keep_distinct(self, paletted: Image.Image) -> Image.Image:
        """
        Make a frame that repeats the previous one differ from it.

        Pillow drops a frame identical to its predecessor and folds its
        delay into the previous one, losing the frame's own disposal. One
        palette colour is moved by a single red step so every committed
        frame is written with its own delay and disposal.
        """
        if not self._frames:
            return paletted
        previous = np.asarray(self._frames[-1].convert("RGBA"))
        if not np.array_equal(previous, np.asarray(paletted.convert("RGBA"))):
            return paletted

        indices = np.asarray(paletted)
        visible = indices[indices != TRANSPARENT_INDEX] if self.transparent else indices.ravel()
        entry = int(visible[0]) if visible.size else int(indices.flat[0])

        palette = paletted.getpalette()
        palette[entry * 3] ^= 1
        paletted.putpalette(palette)
        logger.debug(f"Frame {len(self._frames)} repeats the previous frame, palette entry {entry} nudged")
        return paletted

    def finish(self) -> bytes:
        """
        Write all queued frames and return the encoded GIF.

        Must be called exactly once, after the last frame.
        """
        if self._finished:
            raise RuntimeError("Encoder already finished")
        if not self._frames:
            raise RuntimeError("No frames were added to the encoder")
        self._finished = True

        save_kwargs = {
            "format": "GIF",
            "save_all": True,
            "append_images": self._frames[1:],
            "duration": self._delays,
            "disposal": self._disposals,
        }
        # A lone frame goes through Pillow's single-frame writer, which takes scalars
        if len(self._frames) == 1:
            save_kwargs["duration"] = self._delays[0]
            save_kwargs["disposal"] = self._disposals[0]
        # No loop extension at all means play once
        if self._repeat >= 0:
            save_kwargs["loop"] = self._repeat
        if self.transparent:
            save_kwargs["transparency"] = TRANSPARENT_INDEX

        buffer = BytesIO()
        self._frames[0].save(buffer, **save_kwargs)
        data = buffer.getvalue()

        logger.info(f"Encoded {len(self._frames)} frame(s), {len(data)} bytes")
        self._frames = []
        return data
