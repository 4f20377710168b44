"""Command-line interface for SlotCraft."""

from .parser import build_arg_parser
from .runner import run_cli

__all__ = ["build_arg_parser", "run_cli"]
