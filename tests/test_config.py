"""
Unit tests for configuration, the registry and logging setup.
"""

import logging

import pytest

from slotcraft import ConfigManager, LayoutDefaults, Registry
from slotcraft.constants import DEFAULT_MIN_SPOT_SIZE, RENDER_DEBOUNCE_MS
from slotcraft import logging_config
from slotcraft.logging_config import LogManager, setup_logging


@pytest.fixture
def config(tmp_path):
    return ConfigManager(config_dir=tmp_path / "config")


class TestConfigManager:
    """Tests for ConfigManager persistence."""

    def test_load_when_no_file_then_empty(self, config):
        assert config.config == {}
        assert config.get_layout_config() == {}
        assert config.get_preset_store_url() is None

    def test_save_when_values_set_then_reloaded(self, config, tmp_path):
        config.set_layout_config({"min_spot_size": 80})
        config.set_preset_store_url("https://api.example.com")
        config.set_asset_store_url("https://assets.example.com")
        config.save()

        reloaded = ConfigManager(config_dir=tmp_path / "config")
        assert reloaded.get_layout_config() == {"min_spot_size": 80}
        assert reloaded.get_preset_store_url() == "https://api.example.com"
        assert reloaded.get_asset_store_url() == "https://assets.example.com"

    def test_load_when_file_corrupt_then_empty(self, tmp_path):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "config.json").write_text("{not json", encoding="utf-8")
        assert ConfigManager(config_dir=config_dir).config == {}

    def test_font_dirs_when_missing_on_disk_then_skipped(self, config, tmp_path):
        fonts = tmp_path / "fonts"
        fonts.mkdir()
        config.add_font_dir(fonts)
        config.add_font_dir(fonts)
        config.add_font_dir(tmp_path / "gone")
        assert config.get_font_dirs() == [fonts]
        assert len(config.get("font_dirs")) == 2

    def test_exports_dir_when_requested_then_created(self, config):
        assert config.get_exports_dir().is_dir()


class TestRegistry:
    """Tests for LayoutDefaults and Registry."""

    def test_defaults_when_empty_then_constants(self):
        defaults = LayoutDefaults.from_dict({})
        assert defaults.min_spot_size == DEFAULT_MIN_SPOT_SIZE
        assert defaults.render_debounce_ms == RENDER_DEBOUNCE_MS

    def test_defaults_when_spot_size_below_floor_then_floored(self):
        assert LayoutDefaults.from_dict({"min_spot_size": 4}).min_spot_size == 10

    def test_defaults_when_unknown_key_then_ignored_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING, logger="slotcraft.registry"):
            defaults = LayoutDefaults.from_dict({"spot_colour": "red", "render_debounce_ms": 100})
        assert defaults.render_debounce_ms == 100
        assert "spot_colour" in caplog.text

    def test_from_config_when_layout_section_then_applied(self, config, tmp_path):
        fonts = tmp_path / "fonts"
        fonts.mkdir()
        (fonts / "Brand-Regular.ttf").write_bytes(b"")
        config.add_font_dir(fonts)
        config.set_layout_config({"min_spot_size": 80, "font_families": ["Brand"]})

        registry = Registry.from_config(config, discover_fonts=False)

        assert registry.defaults.min_spot_size == 80
        assert registry.defaults.font_families == ("Brand",)
        assert registry.font_manager.custom_dirs == [fonts]
        assert registry.config is config

    def test_font_manager_when_custom_dir_scanned_then_family_registered(self, config, tmp_path):
        fonts = tmp_path / "fonts"
        fonts.mkdir()
        (fonts / "Brand-Regular.ttf").write_bytes(b"")
        config.add_font_dir(fonts)

        registry = Registry.from_config(config)
        assert "Brand" in registry.font_manager.get_available_families()


class TestLogging:
    """Tests for logging setup."""

    def test_logger_when_requested_twice_then_same_namespaced_logger(self):
        first = LogManager().get_logger("layout.test")
        assert first is LogManager().get_logger("layout.test")
        assert first.name == "slotcraft.layout.test"

    def test_setup_when_file_logging_then_log_written(self, tmp_path, monkeypatch):
        monkeypatch.setattr(logging_config, "get_log_dir", lambda: tmp_path / "logs")
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            log_file = setup_logging(logging.DEBUG, log_to_file=True)
            logging.getLogger("slotcraft.test").info("hello log")
            for handler in root.handlers:
                handler.flush()
            assert log_file.parent == tmp_path / "logs"
            assert "hello log" in log_file.read_text(encoding="utf-8")
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
            logging.captureWarnings(False)

    def test_setup_when_console_only_then_no_file(self):
        root = logging.getLogger()
        saved_handlers, saved_level = list(root.handlers), root.level
        try:
            assert setup_logging(log_to_file=False) is None
            assert len(root.handlers) == 1
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
