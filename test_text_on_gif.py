"""
End-to-end tests for TextOnGif.
"""

import numpy as np
import pytest

from conftest import build_gif, decode_gif
from textongif import events, frame_extractor
from textongif.fonts import FontRegistry
from textongif.frame_extractor import SourceDecodeError
from textongif.frames import DisposalMethod
from textongif.text_on_gif import EmptyOutputError, TextOnGif

MISSING_FAMILY = "no-such-font-family"


def two_row_font_size(width=100):
    """Find a font size at which "A B" fits the width and "A B C" does not."""
    registry = FontRegistry()
    for size in range(4, 120):
        font = registry.load(MISSING_FAMILY, size)
        if font.getlength("A B") <= width < font.getlength("A B C"):
            return size
    pytest.fail("No font size wraps 'A B C' into two rows")


class TestEndToEnd:
    """Three frame animation: 100x50, delays 100/150/100, disposals 1/2/1."""

    def test_three_frames_keep_timing_and_wrap_into_two_rows(self, gif_bytes):
        gif = TextOnGif(gif_bytes)
        gif.set_text("A B C", font_family=MISSING_FAMILY, font_size=f"{two_row_font_size()}px")

        count, durations, disposals, info = decode_gif(gif.to_buffer())

        assert count == 3
        assert durations == [100, 150, 100]
        assert disposals == [1, 2, 1]
        assert info["loop"] == 0

        layout = gif._layout
        assert [row.text for row in layout.rows] == ["A B", "C"]
        placements = {text: y for text, _, y in layout.placements()}
        anchor_distance = {text: abs(layout.anchor_y - y) for text, y in placements.items()}
        assert anchor_distance["C"] < anchor_distance["A B"]

    def test_source_from_path(self, gif_path, tmp_path):
        output = tmp_path / "out.gif"
        result = TextOnGif(str(gif_path)).set_text("Hello").to_file(output)

        assert result == output
        assert decode_gif(output.read_bytes())[0] == 3

    def test_line_breaks_render_as_spaces(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello\nWorld", stroke_color="black", stroke_width=2)
        assert decode_gif(gif.to_buffer())[0] == 3

    def test_play_once(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello", repeat=-1)
        assert "loop" not in decode_gif(gif.to_buffer())[3]

    def test_loop_count(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello", {"repeat": 5})
        assert decode_gif(gif.to_buffer())[3]["loop"] == 5


class TestEvents:
    """Progress signals emitted during extraction and rendering."""

    def test_event_order(self, gif_bytes):
        seen = []
        gif = TextOnGif(gif_bytes)
        gif.on(events.DIMENSIONS_KNOWN, lambda w, h, n: seen.append(("dimensions", w, h, n)))
        gif.on(events.EXTRACTION_COMPLETE, lambda: seen.append(("extracted",)))
        gif.on(events.FRAME_INDEX, lambda index: seen.append(("frame", index)))
        gif.on(events.PROGRESS, lambda percent: seen.append(("progress", percent)))
        gif.on(events.FINISHED, lambda: seen.append(("finished",)))

        gif.set_text("Hello").render()

        assert seen[0] == ("dimensions", 100, 50, 3)
        assert seen[1] == ("extracted",)
        assert [e[1] for e in seen if e[0] == "frame"] == [0, 1, 2]
        assert [e[1] for e in seen if e[0] == "progress"][-1] == 100
        assert seen[-1] == ("finished",)

    def test_unknown_event_rejected(self, gif_bytes):
        with pytest.raises(ValueError):
            TextOnGif(gif_bytes).on("frameDataExtracted", lambda: None)

    def test_listener_error_does_not_break_render(self, gif_bytes):
        gif = TextOnGif(gif_bytes)

        def broken(index):
            raise RuntimeError("listener failure")

        gif.on(events.FRAME_INDEX, broken)
        assert decode_gif(gif.set_text("Hello").to_buffer())[0] == 3


class TestDimensions:
    """Dimensions are available before full extraction completes."""

    def test_getters_trigger_extraction(self, gif_bytes):
        gif = TextOnGif(gif_bytes)
        assert (gif.get_width(), gif.get_height(), gif.get_frame_count()) == (100, 50, 3)

    def test_background_extraction(self, gif_bytes):
        gif = TextOnGif(gif_bytes)
        done = gif.extract_in_background()

        assert gif.get_width(timeout=10) == 100
        assert gif.get_height(timeout=10) == 50
        done.result(timeout=10)
        assert len(gif.frames) == 3
        assert gif.frames.has_dimensions
        assert gif.frames.expected_count == 3


class TestErrors:
    """Fatal errors surface as distinct exception types."""

    def test_undecodable_bytes(self):
        with pytest.raises(SourceDecodeError):
            TextOnGif(b"definitely not a gif").set_text("Hello")

    def test_missing_file(self, tmp_path):
        with pytest.raises(SourceDecodeError):
            TextOnGif(str(tmp_path / "missing.gif")).set_text("Hello")

    def test_dimension_getter_raises_after_failed_extraction(self):
        gif = TextOnGif(b"definitely not a gif")
        with pytest.raises(SourceDecodeError):
            gif.get_width()

    def test_image_closed_when_header_unreadable(self, gif_bytes, monkeypatch):
        closed = []

        class UnreadableImage:
            @property
            def size(self):
                raise OSError("truncated header")

            def close(self):
                closed.append(True)

        monkeypatch.setattr(frame_extractor.Image, "open", lambda fp: UnreadableImage())

        with pytest.raises(SourceDecodeError):
            TextOnGif(gif_bytes).set_text("Hello")
        assert closed == [True]

    def test_empty_output(self, gif_bytes, tmp_path, monkeypatch):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        monkeypatch.setattr(gif, "render", lambda: b"")

        with pytest.raises(EmptyOutputError):
            gif.to_file(tmp_path / "out.gif")

    def test_corrupt_frame_still_rendered(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        gif.frames[0].pixels = None

        assert decode_gif(gif.to_buffer())[0] == 3


class TestRerender:
    """Output is deterministic and cached per text and options."""

    def test_same_text_same_bytes(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        assert gif.to_buffer() == gif.to_buffer()

    def test_changed_text_renders_again(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        first = gif.to_buffer()
        gif.set_text("Goodbye")
        assert gif.to_buffer() != first

    def test_options_merge_last_write_wins(self, gif_bytes):
        gif = TextOnGif(gif_bytes)
        gif.set_text("Hello", font_color="red", repeat=3)
        gif.set_text("Hello", {"repeat": 2, "not_an_option": True})

        assert gif.config.font_color == "red"
        assert gif.config.repeat == 2

    def test_extraction_runs_once(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        gif.set_text("Again")
        assert len(gif.frames) == 3


def test_cumulative_text_accumulates_on_stored_frames():
    gif = TextOnGif(build_gif()).set_text("Hello", retain=True)
    original = gif.frames[0].pixels.copy()

    gif.render()

    assert not np.array_equal(gif.frames[0].pixels, original)


def test_registered_font_is_used(gif_bytes, tmp_path):
    gif = TextOnGif(gif_bytes)
    gif.register_font(tmp_path / "missing.ttf", "Custom")

    assert gif.fonts.is_registered("custom")
    # A missing file degrades to the default font rather than failing
    assert decode_gif(gif.set_text("Hello", font_family="Custom").to_buffer())[0] == 3


class TestRepeatedFrames:
    """Frames that composite to the same image keep their own timing."""

    def test_static_animation(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        for frame in gif.frames:
            frame.pixels = gif.frames[0].pixels.copy()

        count, durations, disposals, _ = decode_gif(gif.to_buffer())

        assert count == 3
        assert durations == [100, 150, 100]
        assert disposals == [1, 2, 1]

    def test_held_frame(self, gif_bytes):
        gif = TextOnGif(gif_bytes).set_text("Hello")
        gif.frames[1].pixels = gif.frames[0].pixels.copy()
        gif.frames[1].disposal = DisposalMethod.DO_NOT_DISPOSE

        count, durations, disposals, _ = decode_gif(gif.to_buffer())

        assert count == 3
        assert durations == [100, 150, 100]
        assert disposals == [1, 1, 1]

    def test_single_frame_source(self):
        gif = TextOnGif(build_gif(delays=(80,), disposals=(1,))).set_text("Hello")
        assert decode_gif(gif.to_buffer())[:2] == (1, [80])


@pytest.mark.parametrize("options", [
    {"font_color": 16777215},
    {"stroke_color": None},
    {"font_family": None},
    {"stroke_width": "thick"},
])
def test_malformed_style_values_still_render(gif_bytes, options):
    gif = TextOnGif(gif_bytes).set_text("Hello", options)
    assert decode_gif(gif.to_buffer())[0] == 3
