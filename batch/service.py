"""Batch entrypoints: run a recipe over a list of image files."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from tqdm import tqdm

from config import OUTPUT_NAME_TEMPLATE
from errors import ConfigError
from image_io import load_image, write_mask
from logging_utils import progress_disabled
from pipeline import EdgeMaskConfig, MaskResult, Recipe, run_pipeline

logger = logging.getLogger(__name__)


def output_path_for(index: int, output_dir: str | Path = ".") -> Path:
    """Output mask path for the input at 1-based position `index`."""
    if index < 1:
        raise ValueError(f"index is 1-based, got {index}")
    return Path(output_dir) / OUTPUT_NAME_TEMPLATE.format(index=index)


def process_file(
    input_path: str | Path,
    output_path: str | Path,
    recipe: Recipe | str = Recipe.EDGES,
    config: EdgeMaskConfig | None = None,
    artifact_dir: str | None = None,
) -> MaskResult:
    """Load one image, run a recipe on it and write the mask.

    Raises:
        ImageLoadError: If the input cannot be decoded.
        ImageWriteError: If the mask cannot be written.
        ConfigError: If the configuration is invalid.
    """
    image = load_image(input_path)
    logger.info("Loaded image %s (%dx%d)", input_path, image.width, image.height)

    result = run_pipeline(image.pixels, config, recipe, artifact_dir=artifact_dir)
    logger.info(
        "Computed %s mask for %s (threshold=%s, foreground=%.1f%%)",
        result.recipe,
        input_path,
        result.threshold,
        result.foreground_ratio * 100,
    )

    written = write_mask(output_path, result.mask)
    logger.info("Saved mask as %s", written)
    return result


def run_batch(
    input_paths: Sequence[str | Path],
    recipe: Recipe | str = Recipe.EDGES,
    config: EdgeMaskConfig | None = None,
    output_dir: str | Path = ".",
    fail_fast: bool = False,
    artifact_dir: str | None = None,
) -> dict:
    """Run a recipe over every input, one image at a time.

    The N-th input (1-based) is written to output_N.png in output_dir.
    Failures are logged and counted and the remaining files are still
    processed, unless fail_fast is set, in which case the first failure is
    re-raised.

    Args:
        input_paths: Image files, in output numbering order.
        recipe: Which recipe to run.
        config: Pipeline configuration. If None, uses default settings.
        output_dir: Directory for the output masks.
        fail_fast: Abort on the first failing file.
        artifact_dir: Optional directory for intermediate buffers; each
                     input gets its own numbered subdirectory.

    Returns:
        Stats dict with files_found, files_processed, files_failed and
        outputs (list of written paths).

    Raises:
        ConfigError: If no input paths are given or the config is invalid.
    """
    if not input_paths:
        raise ConfigError("no files provided")

    if config is None:
        config = EdgeMaskConfig()
    config.validate()
    recipe = Recipe(recipe)

    stats = {
        "files_found": len(input_paths),
        "files_processed": 0,
        "files_failed": 0,
        "outputs": [],
    }

    logger.info("Running %s recipe on %d file(s)...", recipe.value, len(input_paths))
    for index, input_path in enumerate(
        tqdm(
            input_paths,
            total=len(input_paths),
            desc="Processing",
            disable=progress_disabled(logger),
        ),
        start=1,
    ):
        output_path = output_path_for(index, output_dir)
        step_dir = f"{artifact_dir}/{index}" if artifact_dir else None
        try:
            process_file(input_path, output_path, recipe, config, artifact_dir=step_dir)
        except Exception as e:
            if fail_fast:
                raise
            logger.exception("Error processing %s: %s", input_path, e)
            stats["files_failed"] += 1
            continue

        stats["files_processed"] += 1
        stats["outputs"].append(str(output_path))

    return stats
