"""
Shared fixtures for the TextOnGif tests.
"""

from io import BytesIO

import pytest
from PIL import Image

FRAME_COLORS = [(200, 30, 30), (30, 200, 30), (30, 30, 200)]


def build_gif(size=(100, 50), delays=(100, 150, 100), disposals=(1, 2, 1), colors=None, loop=0) -> bytes:
    """Create an animated GIF in memory, one solid colour per frame."""
    colors = colors or FRAME_COLORS[:len(delays)]
    frames = [Image.new("RGB", size, color) for color in colors]

    buffer = BytesIO()
    frames[0].save(
        buffer,
        format="GIF",
        save_all=True,
        append_images=frames[1:],
        # Pillow writes a lone frame with scalar timing
        duration=list(delays) if len(frames) > 1 else delays[0],
        disposal=list(disposals) if len(frames) > 1 else disposals[0],
        loop=loop,
    )
    return buffer.getvalue()


def decode_gif(data: bytes):
    """Return (frame_count, durations, disposals, info) for encoded GIF bytes."""
    with Image.open(BytesIO(data)) as im:
        durations = []
        disposals = []
        for index in range(im.n_frames):
            im.seek(index)
            durations.append(im.info.get("duration"))
            disposals.append(im.disposal_method)
        im.seek(0)
        return im.n_frames, durations, disposals, dict(im.info)


def char_measure(text: str) -> float:
    """Fixed-width measure: every character is 10 pixels wide."""
    return 10.0 * len(text)


@pytest.fixture
def gif_bytes():
    return build_gif()


@pytest.fixture
def gif_path(tmp_path, gif_bytes):
    path = tmp_path / "source.gif"
    path.write_bytes(gif_bytes)
    return path
