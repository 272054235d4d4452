"""
The two fixed edge mask recipes.

run_pipeline() is the main entry point: it validates the input and the
configuration, builds the requested recipe as a Pipeline and returns the
final mask together with every intermediate result.

Recipes:
- edges:   Intensity -> Sobel -> denoise xN -> percentile black point
- regions: Intensity -> blur xN -> Sobel -> blur xN -> histogram mode
           -> dilate xN
"""

from __future__ import annotations

import logging
from enum import Enum

import numpy as np

from filters import SobelOperator, BoxAverageOperator
from .config import EdgeMaskConfig, MaskResult
from .steps import (
    Pipeline,
    PipelineStep,
    IntensityStep,
    KernelStep,
    PercentileThresholdStep,
    ModeThresholdStep,
    DilateStep,
)

logger = logging.getLogger(__name__)


class Recipe(str, Enum):
    """Available pipeline recipes."""

    EDGES = "edges"
    REGIONS = "regions"


def _validate_input(img: np.ndarray) -> None:
    """Check that img is a non-empty (H, W) or (H, W, C) array.

    Raises:
        TypeError: If img is not a numpy array.
        ValueError: If img has the wrong rank or no pixels.
    """
    if not isinstance(img, np.ndarray):
        raise TypeError(f"image must be a numpy.ndarray, got {type(img).__name__}")
    if img.ndim not in (2, 3):
        raise ValueError(f"image must be (H, W) or (H, W, C), got shape {img.shape}")
    if img.size == 0:
        raise ValueError(f"image is empty (shape {img.shape})")


def build_edge_steps(config: EdgeMaskConfig) -> list[PipelineStep]:
    """Steps of the edge recipe: Sobel, denoise, percentile black point."""
    return [
        IntensityStep(),
        KernelStep(SobelOperator()),
        KernelStep(
            BoxAverageOperator(radius=config.denoise_radius),
            iterations=config.denoise_count,
            label="denoise",
        ),
        PercentileThresholdStep(divisor=config.percentile_divisor),
    ]


def build_region_steps(config: EdgeMaskConfig) -> list[PipelineStep]:
    """Steps of the region recipe: blur, Sobel, blur, histogram mode, dilate."""
    blur = BoxAverageOperator(radius=config.blur_radius)
    return [
        IntensityStep(),
        KernelStep(blur, iterations=config.pre_blur_count, label="pre_blur"),
        KernelStep(SobelOperator()),
        KernelStep(blur, iterations=config.blur_count, label="blur"),
        ModeThresholdStep(
            certainty=config.certainty,
            low=config.mode_low,
            high=config.mode_high,
        ),
        DilateStep(
            radius=config.dilate_radius,
            iterations=config.dilate_count,
            cutoff=config.binarize_cutoff,
        ),
    ]


def build_pipeline(config: EdgeMaskConfig, recipe: Recipe | str = Recipe.EDGES) -> Pipeline:
    """Build a Pipeline for a recipe from an EdgeMaskConfig.

    Args:
        config: Pipeline configuration.
        recipe: Recipe.EDGES or Recipe.REGIONS (or their string values).

    Returns:
        Pipeline configured according to the config.

    Raises:
        ValueError: If recipe is not a known recipe name.
    """
    recipe = Recipe(recipe)
    if recipe is Recipe.EDGES:
        steps = build_edge_steps(config)
    else:
        steps = build_region_steps(config)
    return Pipeline(steps=steps, workers=config.workers)


def run_pipeline(
    img: np.ndarray,
    config: EdgeMaskConfig | None = None,
    recipe: Recipe | str = Recipe.EDGES,
    artifact_dir: str | None = None,
) -> MaskResult:
    """Turn a decoded image into a 0/255 mask.

    The input is never modified. Every stage keeps the image's height and
    width.

    Args:
        img: Decoded image as (H, W, C) or (H, W) numpy array.
        config: Pipeline configuration. If None, uses default settings.
        recipe: Which recipe to run.
        artifact_dir: Optional directory to save intermediate buffers.

    Returns:
        MaskResult with the uint8 mask and the chosen threshold.

    Raises:
        ConfigError: If configuration is invalid.
        ValueError: If the image cannot be processed or recipe is unknown.
        TypeError: If inputs are of wrong type.

    Examples:
        >>> img = np.full((4, 4, 3), 100, dtype=np.uint8)
        >>> result = run_pipeline(img)
        >>> bool((result.mask == 255).all())
        True
    """
    if config is None:
        config = EdgeMaskConfig()

    config.validate()
    _validate_input(img)

    recipe = Recipe(recipe)
    original = img.copy()

    pipeline = build_pipeline(config, recipe)
    pipeline_result = pipeline.run(original, artifact_dir=artifact_dir)

    mask = pipeline_result.final
    if mask.shape != original.shape[:2]:
        raise ValueError(
            f"Pipeline changed image dimensions from {original.shape[:2]} to {mask.shape}"
        )

    return MaskResult(
        original=original,
        mask=mask,
        threshold=pipeline_result.threshold,
        recipe=recipe.value,
        config=config,
        artifact_paths=pipeline_result.artifact_paths,
        metadata=pipeline_result.all_metadata,
    )
