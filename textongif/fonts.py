"""
Font registration and lookup for TextOnGif.
"""

import logging
from pathlib import Path
from typing import Dict, Tuple, Union

from PIL import ImageFont

logger = logging.getLogger(__name__)


class FontRegistry:
    """Maps logical family names to font files and caches loaded fonts."""

    def __init__(self):
        self._families: Dict[str, Path] = {}
        self._cache: Dict[Tuple[str, int], ImageFont.FreeTypeFont] = {}

    def register_font(self, path: Union[str, Path], family: str):
        """
        Register a font file under a family name.

        Must be called before rendering text that uses ``family``.
        """
        font_path = Path(path)
        if not font_path.exists():
            logger.warning(f"Font file not found: {font_path}")
        self._families[family.lower()] = font_path
        # Fonts already loaded for this family are stale now
        self._cache = {key: font for key, font in self._cache.items() if key[0] != family.lower()}
        logger.info(f"Registered font family '{family}' from {font_path}")

    def is_registered(self, family: str) -> bool:
        return family.lower() in self._families

    def load(self, family: str, size: int):
        """
        Load a font for a family at a pixel size.

        Lookup order is the registered file, then the family name as an
        installed font, then Pillow's built-in font. Unknown families
        degrade to the built-in font instead of failing.
        """
        family = str(family)
        key = (family.lower(), size)
        if key in self._cache:
            return self._cache[key]

        candidates = []
        if key[0] in self._families:
            candidates.append(str(self._families[key[0]]))
        candidates.extend([family, f"{family}.ttf"])

        font = None
        for candidate in candidates:
            try:
                font = ImageFont.truetype(candidate, size)
                break
            except (OSError, ValueError):
                continue

        if font is None:
            logger.warning(f"Font family '{family}' not found, using Pillow's default font")
            font = ImageFont.load_default(size=size)

        self._cache[key] = font
        return font
