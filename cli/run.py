"""Recipe commands (edges, regions) CLI parsing and control flow."""

from __future__ import annotations

import argparse
import dataclasses
import logging

from batch import run_batch
from errors import EdgeMaskError
from pipeline import EdgeMaskConfig, Recipe

logger = logging.getLogger(__name__)

# CLI flag -> EdgeMaskConfig field, per recipe
EDGE_OPTIONS = {
    "--denoise-count": ("denoise_count", "Box-average passes after Sobel"),
    "--denoise-radius": ("denoise_radius", "Window radius of the denoise passes"),
    "--percentile-divisor": ("percentile_divisor", "Black point rank divisor (4 = 25th percentile)"),
}

REGION_OPTIONS = {
    "--pre-blur-count": ("pre_blur_count", "Blur passes before Sobel"),
    "--blur-count": ("blur_count", "Blur passes after Sobel"),
    "--blur-radius": ("blur_radius", "Window radius of the blur passes"),
    "--certainty": ("certainty", "Band around the histogram mode kept as foreground"),
    "--dilate-count": ("dilate_count", "Dilation passes closing the mask"),
    "--dilate-radius": ("dilate_radius", "Window radius of the dilation passes"),
}


def _add_common_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "inputs",
        nargs="+",
        help="Image files to process (output_N.png is written for the N-th file)",
    )
    parser.add_argument(
        "-o", "--output-dir",
        default=".",
        help="Directory for the output masks (default: current directory)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=None,
        help="Threads per kernel pass (default: one per CPU)",
    )
    parser.add_argument(
        "--fail-fast",
        action="store_true",
        help="Stop at the first file that fails instead of continuing",
    )
    parser.add_argument(
        "--artifact-dir",
        help="Save every intermediate buffer under this directory",
    )


def _add_config_options(parser: argparse.ArgumentParser, options: dict) -> None:
    defaults = EdgeMaskConfig()
    for flag, (field_name, help_text) in options.items():
        parser.add_argument(
            flag,
            dest=field_name,
            type=int,
            default=None,
            help=f"{help_text} (default: {getattr(defaults, field_name)})",
        )


def add_recipe_subparsers(subparsers: argparse._SubParsersAction) -> None:
    edges_parser = subparsers.add_parser(
        "edges",
        help="Edge mask: Sobel, denoise, percentile black point",
    )
    _add_common_arguments(edges_parser)
    _add_config_options(edges_parser, EDGE_OPTIONS)
    edges_parser.set_defaults(_cmd=cmd_run, recipe=Recipe.EDGES)

    regions_parser = subparsers.add_parser(
        "regions",
        help="Region mask: blur, Sobel, blur, histogram mode, dilation",
    )
    _add_common_arguments(regions_parser)
    _add_config_options(regions_parser, REGION_OPTIONS)
    regions_parser.set_defaults(_cmd=cmd_run, recipe=Recipe.REGIONS)


def config_from_args(args: argparse.Namespace) -> EdgeMaskConfig:
    """Build an EdgeMaskConfig from defaults plus any flags given."""
    overrides = {}
    for field in dataclasses.fields(EdgeMaskConfig):
        value = getattr(args, field.name, None)
        if value is not None:
            overrides[field.name] = value
    return EdgeMaskConfig(**overrides)


def cmd_run(args: argparse.Namespace) -> int:
    config = config_from_args(args)

    try:
        stats = run_batch(
            args.inputs,
            recipe=args.recipe,
            config=config,
            output_dir=args.output_dir,
            fail_fast=args.fail_fast,
            artifact_dir=args.artifact_dir,
        )
    except EdgeMaskError as exc:
        logger.error("%s", exc)
        return 1

    logger.info("%s", "=" * 50)
    logger.info("Batch Complete!")
    logger.info("%s", "=" * 50)
    logger.info("Files found:     %s", stats["files_found"])
    logger.info("Files processed: %s", stats["files_processed"])
    logger.info("Files failed:    %s", stats["files_failed"])
    return 1 if stats["files_failed"] else 0
