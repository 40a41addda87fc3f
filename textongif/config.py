"""
Configuration management for TextOnGif.

This module holds the immutable render configuration, the defaults every
render starts from, override merging, and YAML load/save helpers.
"""

import logging
import re
from dataclasses import dataclass, fields, replace
from enum import Enum
from pathlib import Path
from typing import Dict, Any, Optional, Union

import yaml

logger = logging.getLogger(__name__)

NO_STROKE = "transparent"
DEFAULT_FONT_SIZE = 32


class CompositingMode(Enum):
    """How frame pixels are restored before text is drawn."""
    FRESH = "fresh"
    # Experimental: frame i's composited output becomes its stored base pixels
    CUMULATIVE = "cumulative"


@dataclass(frozen=True)
class RenderConfig:
    """Style, layout and encoding options for a single render."""

    # Text style
    font_size: str = "32px"
    font_family: str = "calibri"
    font_color: str = "white"
    stroke_color: str = NO_STROKE
    stroke_width: int = 1

    # Alignment
    alignment_x: str = "center"  # left | center | right
    alignment_y: str = "bottom"  # top | middle | bottom
    position_x: Optional[float] = None
    position_y: Optional[float] = None
    offset_x: float = 10
    offset_y: float = 10
    row_gap: float = 5

    # Encoding
    repeat: int = 0  # -1 once, 0 forever, n > 0 exactly n times
    transparent: bool = False
    quantizer: str = "mediancut"

    # Deprecated, see CompositingMode.CUMULATIVE
    retain: bool = False

    debug_dir: Optional[Path] = None

    def __post_init__(self):
        if isinstance(self.debug_dir, str):
            object.__setattr__(self, "debug_dir", Path(self.debug_dir))

    @property
    def compositing_mode(self) -> CompositingMode:
        return CompositingMode.CUMULATIVE if self.retain else CompositingMode.FRESH

    @property
    def stroke_enabled(self) -> bool:
        return self.stroke_color != NO_STROKE

    @property
    def font_px(self) -> int:
        """Font size in whole pixels, parsed from strings like ``"32px"``."""
        return parse_font_size(self.font_size)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for serialization."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["debug_dir"] = str(self.debug_dir) if self.debug_dir else None
        return data


def parse_font_size(font_size: Union[str, int, float]) -> int:
    """
    Parse a CSS-like font size into pixels.

    Accepts ``"32px"``, ``"32"``, ``32`` or ``32.5``. Anything else is not
    rejected; it falls back to the default size so the render still runs.
    """
    if isinstance(font_size, (int, float)):
        return max(1, int(round(font_size)))

    match = re.match(r'^\s*(\d+(?:\.\d+)?)\s*(px)?\s*$', str(font_size).lower())
    if not match:
        logger.warning(f"Unrecognised font size {font_size!r}, using {DEFAULT_FONT_SIZE}px")
        return DEFAULT_FONT_SIZE
    return max(1, int(round(float(match.group(1)))))


def default_config() -> RenderConfig:
    """Return the configuration every render starts from."""
    return RenderConfig()


def config_keys():
    return {f.name for f in fields(RenderConfig)}


def merge_overrides(current: Dict[str, Any], updates: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Merge option updates over existing overrides.

    The last write per key wins. Keys that are not render options are
    logged and dropped.

    Args:
        current: Overrides collected so far
        updates: New overrides, may be None

    Returns:
        A new overrides dictionary
    """
    merged = dict(current)
    if not updates:
        return merged

    known = config_keys()
    for key, value in updates.items():
        if key not in known:
            logger.warning(f"Ignoring unknown text option: {key}")
            continue
        merged[key] = value
    return merged


def build_config(overrides: Optional[Dict[str, Any]] = None) -> RenderConfig:
    """Build a fresh immutable config from the defaults plus overrides."""
    return replace(default_config(), **merge_overrides({}, overrides))


def load_config(config_path: Union[str, Path]) -> RenderConfig:
    """Load configuration from a YAML file."""
    config_file = Path(config_path)

    if not config_file.exists():
        logger.info(f"No configuration file at {config_file}, using defaults")
        return default_config()

    with open(config_file, 'r') as f:
        config_dict = yaml.safe_load(f) or {}

    if not isinstance(config_dict, dict):
        raise ValueError(f"Configuration file {config_file} must contain a mapping")

    return build_config(config_dict)


def save_config(config: RenderConfig, config_path: Union[str, Path]):
    """Save configuration to YAML file."""
    with open(config_path, 'w') as f:
        yaml.dump(config.to_dict(), f, default_flow_style=False, indent=2)


def create_example_config() -> str:
    """Create an example configuration file."""
    example_config = """# TextOnGif Configuration

# Text style
font_size: "32px"          # CSS-like size, "px" suffix optional
font_family: "calibri"     # Registered family or installed font name
font_color: "white"
stroke_color: "transparent"  # "transparent" disables the outline
stroke_width: 1

# Alignment
alignment_x: "center"      # left | center | right
alignment_y: "bottom"      # top | middle | bottom
position_x: null           # Explicit pixel position overrides alignment_x
position_y: null           # Explicit pixel position overrides alignment_y
offset_x: 10
offset_y: 10
row_gap: 5                 # Vertical gap between wrapped rows in pixels

# Encoding
repeat: 0                  # -1 play once, 0 loop forever, n loop n times
transparent: false         # Transparent and black pixels become transparent
quantizer: "mediancut"     # mediancut | maxcoverage | fastoctree | libimagequant

# Deprecated: keep drawn text on the stored frames between renders
retain: false

# Dump composited frames here for inspection
debug_dir: null
"""

    return example_config


if __name__ == "__main__":
    example = create_example_config()
    with open("config_example.yaml", "w") as f:
        f.write(example)
    print("Example configuration saved to config_example.yaml")
