"""Argument parser for SlotCraft CLI."""

import argparse
from slotcraft.constants import VERSION, __author__, __email__, __copyright__


def _size(value: str):
    """Parse ``WIDTHxHEIGHT``."""
    try:
        width, height = value.lower().split("x", 1)
        size = (int(width), int(height))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got {value!r}")
    if size[0] <= 0 or size[1] <= 0:
        raise argparse.ArgumentTypeError(f"size must be positive, got {value!r}")
    return size


def _key_value(value: str):
    """Parse ``KEY=VALUE``."""
    if "=" not in value:
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    key, _, val = value.partition("=")
    return key, val


def build_arg_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser for CLI."""
    parser = argparse.ArgumentParser(
        prog="slotcraft",
        description="Flow text, detect open spots and render content slots"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {VERSION}\n{__copyright__}\nAuthor: {__author__} <{__email__}>"
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Minimum level written to the log file (default: INFO)"
    )
    parser.add_argument(
        "--no-log-file",
        action="store_true",
        help="Do not write a log file"
    )

    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    commands.required = True

    # detect
    detect = commands.add_parser("detect", help="Flow text on a canvas and print spots and grid as JSON")
    detect.add_argument("text", help="Main text (use \\n for line breaks)")
    detect.add_argument("--canvas", type=_size, default=(1080, 1350), help="Canvas size (default: 1080x1350)")
    detect.add_argument("--padding", type=float, default=20, help="Canvas padding in pixels (default: 20)")
    detect.add_argument("--font", default=None, help="Comma-separated font families")
    detect.add_argument("--size", default="auto", help="Font size in pixels or 'auto' (default: auto)")
    detect.add_argument(
        "--align",
        choices=["left", "center", "right"],
        default="center",
        help="Text alignment (default: center)"
    )
    detect.add_argument("--min-spot-size", type=int, default=None, help="Minimum spot width/height")
    detect.add_argument("-o", "--out", help="Write a page JSON (without slots) to this path")

    # capture
    capture = commands.add_parser("capture", help="Capture a grid cell of a page as a content slot")
    capture.add_argument("page", help="Page JSON file")
    capture.add_argument("cell_id", help="Cell id (e.g. main-text-0, content-2)")
    capture.add_argument("--field-name", required=True, help="Form field name")
    capture.add_argument("--field-label", required=True, help="Form field label")
    capture.add_argument("--description", default="", help="Form field description")
    capture.add_argument("--required", action="store_true", help="Mark the field as required")
    capture.add_argument("--save", action="store_true", help="Append the slot to the page file")

    # render
    render = commands.add_parser("render", help="Render a page with values to PNG")
    render.add_argument("page", help="Page JSON file")
    render.add_argument("-o", "--out", default=None, help="Output PNG path (default: exports directory)")
    render.add_argument(
        "--value",
        action="append",
        type=_key_value,
        default=[],
        metavar="SLOT_ID=TEXT",
        help="Text for a slot (repeatable)"
    )
    render.add_argument(
        "--image",
        action="append",
        type=_key_value,
        default=[],
        metavar="SLOT_ID=SOURCE",
        help="Image path, URL or data URL for a slot (repeatable)"
    )
    render.add_argument("--size", type=_size, default=None, help="Output size (default: canvas size)")

    # save
    save = commands.add_parser("save", help="Save a page file to the preset store")
    save.add_argument("page", help="Page JSON file")
    save.add_argument("--preset-name", default=None, help="Name for a new preset (default: page name)")
    save.add_argument("--preset-id", default=None, help="Add the page to this existing preset")
    save.add_argument("--page-number", type=int, default=1, help="Page position in the preset, 1-5 (default: 1)")

    # presets
    commands.add_parser("presets", help="List presets in the preset store")

    # upload
    upload = commands.add_parser("upload", help="Upload an image to the asset store and print its URL")
    upload.add_argument("path", help="Image file")

    return parser
