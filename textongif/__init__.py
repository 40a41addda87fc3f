"""
Package initialization for TextOnGif.
"""

# Import main classes for easy access
from .config import RenderConfig, CompositingMode, build_config, default_config, load_config
from .frames import DisposalMethod, Frame, FrameStore
from .frame_extractor import FrameExtractor, SourceDecodeError
from .layout import LayoutResult, TextRow, compute_anchor, layout_text, wrap_text
from .compositor import Compositor, TextStyle
from .encoder import GifEncoder
from .fonts import FontRegistry
from .text_on_gif import TextOnGif, EmptyOutputError

__version__ = "1.0.0"
__author__ = "TextOnGif"

__all__ = [
    'RenderConfig',
    'CompositingMode',
    'build_config',
    'default_config',
    'load_config',
    'DisposalMethod',
    'Frame',
    'FrameStore',
    'FrameExtractor',
    'SourceDecodeError',
    'LayoutResult',
    'TextRow',
    'compute_anchor',
    'layout_text',
    'wrap_text',
    'Compositor',
    'TextStyle',
    'GifEncoder',
    'FontRegistry',
    'TextOnGif',
    'EmptyOutputError',
]
