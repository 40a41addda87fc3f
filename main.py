#!/usr/bin/env python3
"""
TextOnGif - Main Application

Writes word-wrapped, optionally outlined text onto every frame of an
animated GIF and saves the result with the original frame delays,
disposal methods and loop count.

Options are read from a YAML config file (see config_example.yaml) and
command line flags take precedence over it.
"""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from textongif.config import create_example_config, load_config
from textongif.events import DIMENSIONS_KNOWN, PROGRESS
from textongif.frame_extractor import SourceDecodeError
from textongif.text_on_gif import EmptyOutputError, TextOnGif

logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False):
    """Log to stdout and to textongif.log."""
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            logging.FileHandler('textongif.log')
        ]
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="TextOnGif - Add text to every frame of an animated GIF"
    )
    parser.add_argument("source", nargs="?", help="Source GIF: file path, URL")
    parser.add_argument("output", nargs="?", help="Path of the result GIF")
    parser.add_argument("--text", "-t", default=None, help="Text to write onto the GIF")
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="Path to configuration file (default: config.yaml)"
    )
    parser.add_argument(
        "--font",
        nargs=2,
        action="append",
        metavar=("PATH", "FAMILY"),
        default=[],
        help="Register a font file under a family name (repeatable)"
    )
    parser.add_argument("--font-family", dest="font_family", help="Font family")
    parser.add_argument("--font-size", dest="font_size", help='Font size, e.g. "32px"')
    parser.add_argument("--font-color", dest="font_color", help="Text colour")
    parser.add_argument("--stroke-color", dest="stroke_color", help="Outline colour")
    parser.add_argument("--stroke-width", dest="stroke_width", type=int, help="Outline width")
    parser.add_argument("--align-x", dest="alignment_x", choices=["left", "center", "right"])
    parser.add_argument("--align-y", dest="alignment_y", choices=["top", "middle", "bottom"])
    parser.add_argument("--x", dest="position_x", type=float, help="Explicit x position in pixels")
    parser.add_argument("--y", dest="position_y", type=float, help="Explicit y position in pixels")
    parser.add_argument("--repeat", type=int, help="-1 play once, 0 loop forever, n loop n times")
    parser.add_argument("--transparent", action="store_true", default=None,
                        help="Render transparent and black pixels as transparent")
    parser.add_argument("--debug-dir", dest="debug_dir", help="Save composited frames here")
    parser.add_argument(
        "--info",
        action="store_true",
        help="Only print the source dimensions and frame count"
    )
    parser.add_argument(
        "--example-config",
        action="store_true",
        help="Write config_example.yaml and exit"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


OPTION_FLAGS = (
    "font_family", "font_size", "font_color", "stroke_color", "stroke_width",
    "alignment_x", "alignment_y", "position_x", "position_y", "repeat",
    "transparent", "debug_dir",
)


def collect_options(args: argparse.Namespace) -> Dict[str, Any]:
    """Config file options with command line flags applied on top."""
    options = load_config(args.config).to_dict()
    for name in OPTION_FLAGS:
        value = getattr(args, name)
        if value is not None:
            options[name] = value
    return options


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for TextOnGif."""
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.debug)

    if args.example_config:
        with open("config_example.yaml", "w") as f:
            f.write(create_example_config())
        logger.info("Example configuration saved to config_example.yaml")
        return 0

    if not args.source:
        parser.error("a source GIF is required")

    try:
        gif = TextOnGif(args.source)
        for font_path, family in args.font:
            gif.register_font(font_path, family)

        gif.on(DIMENSIONS_KNOWN, lambda w, h, n: logger.info(f"Source is {w}x{h} with {n} frame(s)"))

        if args.info:
            print(f"{gif.get_width()}x{gif.get_height()}, {gif.get_frame_count()} frame(s)")
            return 0

        if not args.output or args.text is None:
            parser.error("output path and --text are required")

        gif.on(PROGRESS, lambda percent: logger.debug(f"Encoding {percent}%"))
        gif.set_text(args.text, collect_options(args))
        gif.to_file(args.output)

    except KeyboardInterrupt:
        logger.info("Processing interrupted by user")
        return 1
    except (SourceDecodeError, EmptyOutputError) as e:
        logger.error(f"Fatal error: {e}")
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
