#!/usr/bin/env python3
"""
SlotCraft - Template text layout and content slots

Flows a designer's text on a canvas, finds the open spots around it and
renders end-user content into locked content slots.
"""

import logging
import sys
import threading


def main():
    """Main entry point for SlotCraft."""
    from cli import build_arg_parser, run_cli
    from slotcraft.logging_config import setup_logging

    parser = build_arg_parser()
    args = parser.parse_args()

    setup_logging(
        log_level=getattr(logging, args.log_level),
        log_to_file=not args.no_log_file,
    )

    def _log_unhandled(exc_type, exc_value, exc_traceback):
        logger = logging.getLogger(__name__)
        logger.error("Unhandled exception", exc_info=(exc_type, exc_value, exc_traceback))
        print("\nAn unexpected error occurred. See the log file for details.")
    sys.excepthook = _log_unhandled

    def _thread_excepthook(hook_args):
        logger = logging.getLogger(__name__)
        logger.error(
            "Unhandled thread exception",
            exc_info=(hook_args.exc_type, hook_args.exc_value, hook_args.exc_traceback),
        )
    threading.excepthook = _thread_excepthook

    sys.exit(run_cli(args))


if __name__ == "__main__":
    main()
