"""
TextOnGif - overlay word-wrapped text onto every frame of an animated GIF.

The pipeline runs in this order:
1. Frame extraction (once per source)
2. Text layout (once per text/options change)
3. Per-frame compositing, strictly in decode order
4. GIF encoding with the original delays, disposals and repeat count
"""

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Tuple, Union

from .compositor import Compositor, TextStyle, single_line
from .config import CompositingMode, RenderConfig, build_config, merge_overrides
from .encoder import GifEncoder
from .events import (
    DIMENSIONS_KNOWN,
    EXTRACTION_COMPLETE,
    FINISHED,
    FRAME_INDEX,
    PROGRESS,
    EventEmitter,
)
from .fonts import FontRegistry
from .frame_extractor import FrameExtractor, Source, describe_source
from .frames import FrameStore
from .layout import LayoutResult, layout_text

logger = logging.getLogger(__name__)

DEFAULT_TEXT = "Hello World!"


class EmptyOutputError(RuntimeError):
    """Rendering finished without producing any GIF data."""

    def __init__(self, message: str = "No output produced"):
        super().__init__(message)


class TextOnGif:
    """Adds text to an animated GIF while keeping its timing intact."""

    def __init__(self, source: Source, fonts: Optional[FontRegistry] = None):
        """
        Create a TextOnGif for a source.

        Args:
            source: Local path, http(s) URL or raw GIF bytes
            fonts: Font registry to share between instances, a new one by default
        """
        self.source = source
        self.text = DEFAULT_TEXT
        self.fonts = fonts or FontRegistry()
        self.events = EventEmitter()
        self.frames = FrameStore()

        self._overrides: Dict[str, Any] = {}
        self._layout: Optional[LayoutResult] = None
        self._buffer: Optional[bytes] = None
        self._cache_key: Optional[Tuple[str, RenderConfig]] = None

        self._dimensions: Future = Future()
        self._extraction_started = False
        self._extracted = False
        self._extract_lock = threading.Lock()
        self._render_lock = threading.Lock()

    # Events

    def on(self, event: str, callback: Callable[..., Any]) -> Callable[..., Any]:
        """Register a listener for one of the progress events."""
        return self.events.on(event, callback)

    def off(self, event: str, callback: Callable[..., Any]):
        self.events.off(event, callback)

    # Configuration

    @property
    def config(self) -> RenderConfig:
        """The configuration the next render will use."""
        return build_config(self._overrides)

    def set_text(self, text: str, options: Optional[Dict[str, Any]] = None, **kwargs) -> "TextOnGif":
        """
        Set the text and merge options over the current ones.

        Options may be passed as a dict, as keyword arguments, or both;
        later values win. The computed rows are discarded so the next
        render lays the text out again. Frames are extracted if that has
        not happened yet.

        Returns:
            self, for chaining
        """
        self._overrides = merge_overrides(self._overrides, options)
        self._overrides = merge_overrides(self._overrides, kwargs)
        self.text = text
        self._layout = None
        self._cache_key = None

        self.extract_frames()
        return self

    def register_font(self, path: Union[str, Path], family: str):
        """Register a font file so ``font_family=family`` can use it."""
        self.fonts.register_font(path, family)
        self._layout = None
        self._cache_key = None

    # Extraction

    def extract_frames(self):
        """Extract every frame from the source, once."""
        self._extraction_started = True
        with self._extract_lock:
            if self._extracted:
                return

            try:
                with FrameExtractor(self.source) as extractor:
                    extractor.extract(self.frames, on_dimensions=self._on_dimensions)
            except Exception as e:
                if not self._dimensions.done():
                    self._dimensions.set_exception(e)
                raise

            self._extracted = True

        self.events.emit(EXTRACTION_COMPLETE)

    def extract_in_background(self) -> Future:
        """
        Start extraction on a worker thread.

        The dimension getters resolve as soon as the decoder reports them,
        before the returned future (full extraction) completes.
        """
        self._extraction_started = True
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="textongif-extract")
        future = executor.submit(self.extract_frames)
        executor.shutdown(wait=False)
        return future

    def _on_dimensions(self, width: int, height: int, frame_count: int):
        if not self._dimensions.done():
            self._dimensions.set_result((width, height, frame_count))
        self.events.emit(DIMENSIONS_KNOWN, width, height, frame_count)

    def _wait_for_dimensions(self, timeout: Optional[float]) -> Tuple[int, int, int]:
        if not self._extraction_started:
            self.extract_frames()
        return self._dimensions.result(timeout)

    def get_width(self, timeout: Optional[float] = None) -> int:
        return self._wait_for_dimensions(timeout)[0]

    def get_height(self, timeout: Optional[float] = None) -> int:
        return self._wait_for_dimensions(timeout)[1]

    def get_frame_count(self, timeout: Optional[float] = None) -> int:
        """Number of frames reported by the decoder."""
        return self._wait_for_dimensions(timeout)[2]

    # Rendering

    def render(self) -> bytes:
        """
        Composite the text onto every frame and encode the result.

        Output is cached per text and configuration; cumulative mode
        always renders again because it changes the stored frames.

        Returns:
            The encoded GIF
        """
        with self._render_lock:
            config = self.config
            cumulative = config.compositing_mode == CompositingMode.CUMULATIVE
            key = (self.text, config)

            if not cumulative and self._buffer and self._cache_key == key:
                logger.info("Text and options unchanged, reusing the last render")
                self.events.emit(FINISHED)
                return self._buffer

            self.extract_frames()
            width, height = self.frames.width, self.frames.height
            if len(self.frames) == 0 or not self.frames.has_dimensions:
                raise EmptyOutputError(f"No frames available from {describe_source(self.source)}")

            font = self.fonts.load(config.font_family, config.font_px)
            if self._layout is None:
                self._layout = layout_text(
                    self.text, config, width, height, lambda text: font.getlength(single_line(text))
                )

            encoder = GifEncoder(
                width,
                height,
                quantizer=config.quantizer,
                transparent=config.transparent,
                frame_count=len(self.frames),
                on_progress=lambda percent: self.events.emit(PROGRESS, percent),
            )
            encoder.set_repeat(config.repeat)

            compositor = Compositor(
                width,
                height,
                self._layout,
                TextStyle.from_config(config, font, self._layout),
                mode=config.compositing_mode,
                debug_dir=config.debug_dir,
            )
            compositor.composite_all(
                self.frames,
                encoder,
                on_frame_start=lambda index: self.events.emit(FRAME_INDEX, index),
            )

            self._buffer = encoder.finish()
            self._cache_key = None if cumulative else key

        logger.info(f"Rendered {len(self.frames)} frame(s) with text {self.text!r}")
        self.events.emit(FINISHED)
        return self._buffer

    def to_buffer(self) -> bytes:
        """Render and return the GIF bytes."""
        buffer = self.render()
        if not buffer:
            raise EmptyOutputError()
        return buffer

    def to_file(self, file_path: Union[str, Path]) -> Path:
        """Render and write the GIF to ``file_path``."""
        output = Path(file_path)
        buffer = self.to_buffer()
        output.write_bytes(buffer)
        logger.info(f"Result GIF written: {output}")
        return output
