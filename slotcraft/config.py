"""Configuration management for SlotCraft."""

import json
import logging
from pathlib import Path
from typing import Optional, Dict, Any, List

from .constants import get_user_data_dir

logger = logging.getLogger(__name__)


class ConfigManager:
    """Manages application configuration and persistence."""

    def __init__(self, config_dir: Optional[Path] = None):
        """Initialize configuration manager.

        Args:
            config_dir: Override for the configuration directory (tests and
                portable installs). Defaults to the platform directory.
        """
        self.config_dir = Path(config_dir) if config_dir else self._get_config_dir()
        self.config_path = self.config_dir / "config.json"
        self.config = self._load_config()

    def _get_config_dir(self) -> Path:
        """Get platform-specific configuration directory."""
        return get_user_data_dir()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from disk."""
        self.config_dir.mkdir(parents=True, exist_ok=True)

        if self.config_path.exists():
            try:
                return json.loads(self.config_path.read_text(encoding="utf-8"))
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Ignoring unreadable config {self.config_path}: {e}")
                return {}
        return {}

    def save(self) -> None:
        """Save current configuration to disk."""
        self.config_path.write_text(
            json.dumps(self.config, indent=2),
            encoding="utf-8"
        )

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self.config.get(key, default)

    def set(self, key: str, value: Any) -> None:
        """Set configuration value."""
        self.config[key] = value

    # Layout configuration

    def get_layout_config(self) -> Dict[str, Any]:
        """Get layout defaults overrides (min spot size, debounce, ...)."""
        return self.config.get("layout", {})

    def set_layout_config(self, layout_config: Dict[str, Any]) -> None:
        """Set layout defaults overrides."""
        self.config["layout"] = layout_config

    def get_font_dirs(self) -> List[Path]:
        """Get custom font directories that exist on disk."""
        dirs = []
        for entry in self.config.get("font_dirs", []):
            path = Path(entry)
            if path.exists() and path.is_dir():
                dirs.append(path)
        return dirs

    def add_font_dir(self, path: Path) -> None:
        """Register an additional font directory."""
        entries = self.config.setdefault("font_dirs", [])
        if str(path) not in entries:
            entries.append(str(path))

    # Collaborator endpoints

    def get_preset_store_url(self) -> Optional[str]:
        """Base URL of the remote preset store, if configured."""
        return self.config.get("preset_store_url")

    def set_preset_store_url(self, url: str) -> None:
        self.config["preset_store_url"] = url

    def get_asset_store_url(self) -> Optional[str]:
        """Base URL of the media asset store, if configured."""
        return self.config.get("asset_store_url")

    def set_asset_store_url(self, url: str) -> None:
        self.config["asset_store_url"] = url

    def get_api_token(self) -> Optional[str]:
        """Bearer token sent to the preset and asset stores."""
        return self.config.get("api_token")

    def get_exports_dir(self) -> Path:
        """Get directory for rendered page exports."""
        exports_dir = self.config_dir / "exports"
        exports_dir.mkdir(parents=True, exist_ok=True)
        return exports_dir
