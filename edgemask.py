#!/usr/bin/env python3
"""
Command line interface for edge mask extraction.

Usage:
    edgemask edges <image> [<image> ...]    # Sobel + percentile black point
    edgemask regions <image> [<image> ...]  # Histogram mode + dilation
    edgemask regions a.png b.png -o out/    # Writes out/output_1.png, out/output_2.png
"""

import argparse
import logging
import sys

from logging_utils import configure_logging, add_logging_args
from cli.run import add_recipe_subparsers

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="edgemask",
        description="Edge mask extraction - turn images into binary structure masks",
    )
    add_logging_args(parser)
    subparsers = parser.add_subparsers(dest="command", help="Recipe to run")
    add_recipe_subparsers(subparsers)
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(args.log_level, args.verbose, args.quiet)

    cmd = getattr(args, "_cmd", None)
    if args.command is None or cmd is None:
        parser.print_help()
        return 1
    return cmd(args)


if __name__ == "__main__":
    sys.exit(main())
