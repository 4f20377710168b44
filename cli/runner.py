"""CLI runner for SlotCraft."""

import json
import logging
from pathlib import Path
from typing import Dict, Optional

from slotcraft import ConfigManager, Registry
from slotcraft.assets import AssetStore
from slotcraft.layout import (
    DecodedMedia,
    DecodeError,
    FontConfig,
    HttpPresetStore,
    ImageProcessor,
    LayoutEngine,
    Padding,
    Page,
    PersistenceError,
    PresetPageManager,
    Rect,
    SlotConfig,
    SlotCraftError,
    TextBlockSpec,
    load_page_json,
)

logger = logging.getLogger(__name__)


def build_engine(config: Optional[ConfigManager] = None) -> LayoutEngine:
    """Registry and engine from the saved configuration."""
    registry = Registry.from_config(config or ConfigManager())
    return LayoutEngine(registry)


def parse_font_size(value: str):
    if value == "auto":
        return "auto"
    try:
        return float(value)
    except ValueError:
        raise ValueError(f"Font size must be a number or 'auto', got {value!r}")


def handle_detect(args, engine: LayoutEngine) -> int:
    """Flow text and print the detected spots and grid."""
    width, height = args.canvas
    padding = Padding.uniform(args.padding)
    families = [f.strip() for f in args.font.split(",")] if args.font else engine.registry.defaults.font_families
    main_text = TextBlockSpec(
        text=args.text.replace("\\n", "\n"),
        container=Rect(0, 0, width, height).inset(padding),
        font=FontConfig(family=tuple(families), size=parse_font_size(args.size)),
        alignment=args.align,
    )

    result = engine.design_pass((width, height), main_text, padding=padding, min_spot_size=args.min_spot_size)

    output = {
        "font_size": result.layout.font_size,
        "lines": [
            {"text": line.text, "box": line.box.to_dict(), "baseline": line.baseline}
            for line in result.layout.lines
        ],
        "spots": [spot.to_dict() for spot in result.spots],
        "grid": result.grid.to_dict(),
    }
    print(json.dumps(output, indent=2))

    if args.out:
        page = Page(
            page_name="Untitled Page",
            page_number=1,
            canvas=(width, height),
            main_text=main_text,
            grid=result.grid,
        )
        out = Path(args.out)
        out.parent.mkdir(parents=True, exist_ok=True)
        out.write_text(json.dumps(page.to_dict(), indent=2), encoding="utf-8")
        print(f"Page written to {out}")
    return 0


def handle_capture(args, engine: LayoutEngine) -> int:
    """Capture one cell of a page as a content slot."""
    page_path = Path(args.page)
    page = load_page_json(page_path)
    if page.grid is None:
        page.grid = engine.design_pass(page.canvas, page.main_text).grid

    for slot in page.content_slots:
        engine.slots.add_slot(slot)

    slot = engine.capture_slot(
        page.grid,
        args.cell_id,
        SlotConfig(
            field_name=args.field_name,
            field_label=args.field_label,
            field_description=args.description,
            required=args.required,
        ),
    )
    print(json.dumps(slot.to_dict(), indent=2))

    if args.save:
        page.content_slots.append(slot)
        page_path.write_text(json.dumps(page.to_dict(), indent=2), encoding="utf-8")
        print(f"Slot {slot.slot_id} saved to {page_path}")
    return 0


def handle_render(args, engine: LayoutEngine) -> int:
    """Render a page with the given values to PNG."""
    page = load_page_json(Path(args.page))
    values: Dict[str, str] = dict(args.value)

    processor = ImageProcessor()
    images: Dict[str, DecodedMedia] = {}
    for slot_id, source in args.image:
        try:
            images[slot_id] = processor.load(source)
        except DecodeError as e:
            logger.error(f"Skipping image for {slot_id}: {e}")
            print(f"Warning: {e}")

    background_url = page.background.get("image_url")
    if background_url:
        try:
            images[background_url] = processor.load(background_url)
        except DecodeError as e:
            logger.error(f"Skipping background image: {e}")

    out = Path(args.out) if args.out else _config(engine).get_exports_dir() / f"{Path(args.page).stem}.png"
    out = engine.render_page_png(page, out, values, images, args.size)
    print(f"Rendered page {page.page_number} to {out}")
    return 0


def _config(engine: LayoutEngine) -> ConfigManager:
    return engine.registry.config or ConfigManager()


def build_preset_manager(engine: LayoutEngine) -> PresetPageManager:
    """Preset manager over the configured preset store."""
    config = _config(engine)
    url = config.get_preset_store_url()
    if not url:
        raise PersistenceError("No preset store configured (set preset_store_url in config.json)")
    store = HttpPresetStore(url, api_token=config.get_api_token())
    return PresetPageManager.for_registry(store, engine.registry)


def handle_save(args, engine: LayoutEngine) -> int:
    """Save a page file into a new or existing preset."""
    page = load_page_json(Path(args.page))
    manager = build_preset_manager(engine)

    if args.preset_id:
        manager.add_page_to_existing_preset(args.preset_id, page, args.page_number)
        print(f"Page {args.page_number} saved to preset {args.preset_id}")
    else:
        preset_id = manager.save_to_new_preset(args.preset_name or page.page_name, page, args.page_number)
        print(f"Created preset {preset_id}")
    return 0


def handle_presets(args, engine: LayoutEngine) -> int:
    """List saved presets."""
    summaries = build_preset_manager(engine).list_presets()
    if not summaries:
        print("No presets found")
        return 0
    for summary in summaries:
        pages = ", ".join(str(n) for n in summary["pages"]) or "-"
        print(f"{summary['preset_id']}  {summary['preset_name']}  (pages: {pages})")
    return 0


def handle_upload(args, engine: LayoutEngine) -> int:
    """Upload an image to the asset store and print its URL."""
    config = _config(engine)
    url = config.get_asset_store_url()
    if not url:
        raise PersistenceError("No asset store configured (set asset_store_url in config.json)")
    file_url = AssetStore(url, api_token=config.get_api_token()).upload_file(Path(args.path))
    print(file_url)
    return 0


COMMANDS = {
    "detect": handle_detect,
    "capture": handle_capture,
    "render": handle_render,
    "save": handle_save,
    "presets": handle_presets,
    "upload": handle_upload,
}


def run_cli(args) -> int:
    """
    Run CLI with parsed arguments.

    Args:
        args: Parsed command-line arguments

    Returns:
        Exit code (0 for success)
    """
    handler = COMMANDS.get(args.command)
    if handler is None:
        print(f"Unknown command: {args.command}")
        return 2

    try:
        engine = build_engine()
        return handler(args, engine)
    except SlotCraftError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        return 1
    except (KeyError, ValueError, OSError) as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e}")
        return 1
