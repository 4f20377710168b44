"""
Font management for the layout engine.

Handles font discovery from system directories and custom font paths,
builds font manifests, and provides font loading for measurement and
rendering.
"""

import json
import platform
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from fontTools.ttLib import TTFont, TTLibError
from PIL import ImageFont

from ..logging_config import LogManager

logger = LogManager().get_logger("layout.fonts")

BOLD_MARKERS = ("bold", "black", "heavy", "semibold", "extrabold")
ITALIC_MARKERS = ("italic", "oblique")


class FontManager:
    """
    Manages font discovery and loading.

    Discovers fonts from:
    - System font directories (platform-specific)
    - Custom font directories from config
    """

    def __init__(
        self,
        manifest_path: Optional[Path] = None,
        custom_dirs: Optional[List[Path]] = None,
        discover: bool = True,
    ):
        """
        Initialize the font manager.

        Args:
            manifest_path: Path to fonts_manifest.json (if exists)
            custom_dirs: Additional directories to scan for fonts
            discover: Scan font directories when no manifest is available
        """
        self.manifest_path = manifest_path
        self.custom_dirs = custom_dirs or []
        self._manifest: Dict[str, Dict] = {}
        self._pil_cache: Dict[Tuple[str, float], ImageFont.FreeTypeFont] = {}
        self._design_cache: Dict[str, Optional[Dict[str, float]]] = {}

        if manifest_path and manifest_path.exists():
            try:
                self._manifest = json.loads(manifest_path.read_text(encoding="utf-8"))
                logger.info(f"Loaded font manifest from {manifest_path}")
            except (OSError, json.JSONDecodeError) as e:
                logger.error(f"Failed to load font manifest: {e}")
        elif discover:
            self.discover_fonts()

    def discover_fonts(self) -> None:
        """Discover fonts from system directories and custom paths."""
        logger.info("Starting font discovery...")

        font_dirs = self._get_system_font_dirs()
        font_dirs.extend(self.custom_dirs)

        discovered = 0
        for font_dir in font_dirs:
            if not font_dir.exists():
                continue

            logger.debug(f"Scanning font directory: {font_dir}")

            for ext in ["*.ttf", "*.otf", "*.TTF", "*.OTF"]:
                for font_file in font_dir.rglob(ext):
                    self.register_font(font_file)
                    discovered += 1

        logger.info(f"Font discovery complete. Found {discovered} fonts across {len(self._manifest)} families.")

    def _get_system_font_dirs(self) -> List[Path]:
        """Get platform-specific system font directories."""
        system = platform.system()

        if system == "Windows":
            return [
                Path("C:/Windows/Fonts"),
                Path.home() / "AppData/Local/Microsoft/Windows/Fonts"
            ]
        elif system == "Darwin":  # macOS
            return [
                Path("/System/Library/Fonts"),
                Path("/Library/Fonts"),
                Path.home() / "Library/Fonts"
            ]
        else:  # Linux and others
            return [
                Path("/usr/share/fonts"),
                Path("/usr/local/share/fonts"),
                Path.home() / ".fonts",
                Path.home() / ".local/share/fonts"
            ]

    def register_font(self, font_path: Path, family_name: Optional[str] = None) -> None:
        """
        Add a font file to the manifest.

        The family name comes from the file stem (``FamilyName-Weight.ttf``)
        unless given explicitly.
        """
        if family_name is None:
            stem = font_path.stem
            parts = stem.split("-")
            family_name = parts[0] if parts else stem

        entry = self._manifest.setdefault(family_name, {"family": family_name, "files": []})
        if str(font_path) not in entry["files"]:
            entry["files"].append(str(font_path))

    def save_manifest(self, path: Path) -> None:
        """Save the current font manifest to a JSON file."""
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self._manifest, indent=2), encoding="utf-8")
        logger.info(f"Saved font manifest to {path}")

    def _family_files(self, family: str) -> List[str]:
        if family in self._manifest:
            return self._manifest[family].get("files", [])

        family_lower = family.lower()
        for manifest_family, entry in self._manifest.items():
            if manifest_family.lower() == family_lower:
                return entry.get("files", [])

        # Fuzzy match
        for manifest_family, entry in self._manifest.items():
            name = manifest_family.lower()
            if family_lower in name or name in family_lower:
                return entry.get("files", [])
        return []

    @staticmethod
    def _variant_score(path: str, weight: str, italic: bool) -> int:
        stem = Path(path).stem.lower()
        is_bold = any(marker in stem for marker in BOLD_MARKERS)
        is_italic = any(marker in stem for marker in ITALIC_MARKERS)
        score = 0
        if is_bold == (weight == "bold"):
            score += 2
        if is_italic == italic:
            score += 1
        return score

    def select_font_file(self, families: List[str], weight: str = "normal", italic: bool = False) -> Optional[Path]:
        """
        Select a font file from the manifest based on family priority.

        Args:
            families: Priority-ordered list of font family names
            weight: ``normal`` or ``bold``; picks the closest variant file
            italic: Whether to prefer an italic variant

        Returns:
            Path to the font file, or None if no match found
        """
        for family in families:
            files = self._family_files(family)
            if files:
                best = max(files, key=lambda f: self._variant_score(f, weight, italic))
                return Path(best)
        return None

    def pil_font(
        self,
        families: List[str],
        size_px: float,
        weight: str = "normal",
        italic: bool = False
    ) -> ImageFont.FreeTypeFont:
        """
        Load a PIL ImageFont based on family and size.

        Args:
            families: Priority-ordered list of font family names
            size_px: Font size in pixels
            weight: ``normal`` or ``bold``
            italic: Whether to prefer italic variant

        Returns:
            ImageFont.FreeTypeFont instance (falls back to Pillow's default
            scalable font if no match)
        """
        font_path = self.select_font_file(families, weight, italic)
        key = (str(font_path) if font_path else "", size_px)
        cached = self._pil_cache.get(key)
        if cached is not None:
            return cached

        font = None
        if font_path and font_path.exists():
            try:
                font = ImageFont.truetype(str(font_path), size_px)
            except OSError as e:
                logger.warning(f"Failed to load font {font_path}: {e}")

        if font is None:
            logger.debug(f"Using default font for families {families}")
            font = ImageFont.load_default(size=size_px)

        self._pil_cache[key] = font
        return font

    def design_metrics(self, families: List[str], weight: str = "normal", italic: bool = False) -> Optional[Dict[str, float]]:
        """
        Read cap-height and x-height from the font's OS/2 table.

        Returns:
            ``{"cap_height": ratio, "x_height": ratio}`` as fractions of the
            em, or None when no font file resolves or the table lacks them.
        """
        font_path = self.select_font_file(families, weight, italic)
        if font_path is None:
            return None

        key = str(font_path)
        if key in self._design_cache:
            return self._design_cache[key]

        ratios = None
        try:
            tt = TTFont(str(font_path), lazy=True, fontNumber=0)
            units_per_em = tt["head"].unitsPerEm
            os2 = tt["OS/2"] if "OS/2" in tt else None
            cap = getattr(os2, "sCapHeight", 0) if os2 is not None else 0
            x_height = getattr(os2, "sxHeight", 0) if os2 is not None else 0
            tt.close()
            if units_per_em and cap > 0 and x_height > 0:
                ratios = {"cap_height": cap / units_per_em, "x_height": x_height / units_per_em}
        except (OSError, TTLibError, KeyError) as e:
            logger.debug(f"No design metrics for {font_path}: {e}")

        self._design_cache[key] = ratios
        return ratios

    def get_available_families(self) -> List[str]:
        """Get a list of all available font families."""
        return sorted(self._manifest.keys())
