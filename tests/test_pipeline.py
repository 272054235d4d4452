"""
Unit tests for the pipeline module: behavioral tests only.

Covers: configuration validation, step behavior, recipe composition,
end-to-end masks, and artifact saving.
"""

import dataclasses

import numpy as np
import pytest

from errors import ConfigError
from filters import KernelEngine, SobelOperator, BoxAverageOperator
from pipeline import (
    EdgeMaskConfig,
    MaskResult,
    Recipe,
    run_pipeline,
    build_pipeline,
    IntensityStep,
    KernelStep,
    PercentileThresholdStep,
    ModeThresholdStep,
    DilateStep,
    Pipeline,
)


def stripe_image(height=40, width=21, column=10, value=245):
    """Black RGB image with a one-pixel-wide vertical stripe."""
    img = np.zeros((height, width, 3), dtype=np.uint8)
    img[:, column] = value
    return img


class TestEdgeMaskConfig:
    """Tests for EdgeMaskConfig validation."""

    def test_defaults_are_valid(self):
        EdgeMaskConfig().validate()

    def test_default_values(self):
        config = EdgeMaskConfig()
        assert (config.denoise_count, config.denoise_radius) == (10, 6)
        assert (config.blur_count, config.blur_radius) == (20, 3)
        assert config.certainty == 5
        assert config.percentile_divisor == 4
        assert (config.dilate_count, config.dilate_radius) == (8, 9)

    @pytest.mark.parametrize(
        "field", ["denoise_count", "pre_blur_count", "blur_count", "dilate_count"]
    )
    def test_negative_count_raises(self, field):
        with pytest.raises(ConfigError, match=field):
            EdgeMaskConfig(**{field: -1}).validate()

    @pytest.mark.parametrize("field", ["denoise_radius", "blur_radius", "dilate_radius"])
    def test_negative_radius_raises(self, field):
        with pytest.raises(ConfigError, match=field):
            EdgeMaskConfig(**{field: -2}).validate()

    def test_zero_divisor_raises(self):
        with pytest.raises(ConfigError, match="percentile_divisor"):
            EdgeMaskConfig(percentile_divisor=0).validate()

    def test_zero_certainty_raises(self):
        with pytest.raises(ConfigError, match="certainty"):
            EdgeMaskConfig(certainty=0).validate()

    def test_inverted_mode_range_raises(self):
        with pytest.raises(ConfigError, match="mode range"):
            EdgeMaskConfig(mode_low=40, mode_high=10).validate()

    def test_cutoff_out_of_range_raises(self):
        with pytest.raises(ConfigError, match="binarize_cutoff"):
            EdgeMaskConfig(binarize_cutoff=300).validate()

    def test_zero_workers_raises(self):
        with pytest.raises(ConfigError, match="workers"):
            EdgeMaskConfig(workers=0).validate()

    def test_config_error_is_value_error(self):
        with pytest.raises(ValueError):
            EdgeMaskConfig(certainty=-1).validate()


class TestMaskResult:
    def test_dimensions_and_foreground_ratio(self):
        mask = np.zeros((2, 4), dtype=np.uint8)
        mask[0, :] = 255
        result = MaskResult(
            original=np.zeros((2, 4, 3), dtype=np.uint8),
            mask=mask,
            threshold=10.0,
            recipe="edges",
            config=EdgeMaskConfig(),
        )
        assert result.dimensions == (4, 2)
        assert result.foreground_ratio == 0.5


class TestBuildPipeline:
    def test_edge_recipe_steps(self):
        pipeline = build_pipeline(EdgeMaskConfig(), Recipe.EDGES)
        assert [step.name for step in pipeline] == [
            "intensity",
            "sobel",
            "denoise(6)",
            "percentile(4)",
        ]

    def test_region_recipe_steps(self):
        pipeline = build_pipeline(EdgeMaskConfig(), "regions")
        assert [step.name for step in pipeline] == [
            "intensity",
            "pre_blur(3)",
            "sobel",
            "blur(3)",
            "mode(5)",
            "dilate(9)",
        ]

    def test_iterations_follow_config(self):
        pipeline = build_pipeline(EdgeMaskConfig(blur_count=7, pre_blur_count=2), Recipe.REGIONS)
        assert pipeline.steps[1].iterations == 2
        assert pipeline.steps[3].iterations == 7
        assert pipeline.steps[5].iterations == 8

    def test_workers_passed_through(self):
        assert build_pipeline(EdgeMaskConfig(workers=3)).workers == 3

    def test_unknown_recipe_raises(self):
        with pytest.raises(ValueError):
            build_pipeline(EdgeMaskConfig(), "contours")


class TestEdgeRecipe:
    """End-to-end tests for the edge (percentile) recipe."""

    def test_uniform_image_is_all_white(self):
        img = np.full((4, 4, 3), 100, dtype=np.uint8)
        result = run_pipeline(img, recipe=Recipe.EDGES)
        assert result.mask.shape == (4, 4)
        assert result.mask.dtype == np.uint8
        assert np.all(result.mask == 255)

    def test_strong_edge_is_black(self):
        img = np.zeros((30, 30, 3), dtype=np.uint8)
        img[:, 15:] = 255
        config = EdgeMaskConfig(denoise_count=1, denoise_radius=1)
        result = run_pipeline(img, config, Recipe.EDGES)
        assert result.mask[15, 14] == 0
        assert result.mask[15, 15] == 0
        assert result.mask[15, 5] == 255
        assert result.mask[15, 25] == 255

    def test_preserves_dimensions(self, rng):
        img = rng.integers(0, 256, size=(7, 13, 3), dtype=np.uint8)
        result = run_pipeline(img, EdgeMaskConfig(denoise_count=2), Recipe.EDGES)
        assert result.mask.shape == (7, 13)
        assert result.dimensions == (13, 7)

    def test_threshold_reported(self, rng):
        img = rng.integers(0, 256, size=(10, 10, 3), dtype=np.uint8)
        result = run_pipeline(img, EdgeMaskConfig(denoise_count=1))
        assert result.recipe == "edges"
        assert 0.0 < result.threshold <= 255.0

    def test_grayscale_input_degrades_to_white(self):
        img = np.full((6, 6), 180, dtype=np.uint8)
        result = run_pipeline(img, EdgeMaskConfig(denoise_count=1))
        assert np.all(result.mask == 255)


class TestRegionRecipe:
    """End-to-end tests for the region (histogram mode) recipe."""

    def test_vertical_stripe_gives_band_at_stripe(self):
        # One blur pass after Sobel and one dilation pass keep the
        # intermediate values exact: the interior rows settle at 40 over
        # columns 4..16 and 20 at columns 3 and 17.
        config = EdgeMaskConfig(blur_count=1, dilate_count=1)
        result = run_pipeline(stripe_image(), config, Recipe.REGIONS)

        assert result.threshold == 40
        row = result.mask[20]
        assert row[10] == 255
        assert np.all(row[4:17] == 255)
        assert np.all(row[:4] == 0)
        assert np.all(row[17:] == 0)

    def test_mask_is_binary(self):
        result = run_pipeline(stripe_image(), EdgeMaskConfig(blur_count=4, dilate_count=2), "regions")
        assert result.mask.dtype == np.uint8
        assert result.mask.shape == (40, 21)
        assert set(np.unique(result.mask)) <= {0, 255}

    def test_flat_image_has_no_mode(self):
        img = np.zeros((12, 12, 3), dtype=np.uint8)
        result = run_pipeline(img, EdgeMaskConfig(blur_count=2, dilate_count=1), Recipe.REGIONS)
        assert result.threshold is None
        assert np.all(result.mask == 0)

    def test_worker_count_does_not_change_mask(self, rng):
        img = rng.integers(0, 60, size=(20, 25, 3), dtype=np.uint8)
        base = EdgeMaskConfig(blur_count=3, dilate_count=2, dilate_radius=2)
        single = run_pipeline(img, dataclasses.replace(base, workers=1), Recipe.REGIONS)
        multi = run_pipeline(img, dataclasses.replace(base, workers=6), Recipe.REGIONS)
        assert single.threshold == multi.threshold
        assert np.array_equal(single.mask, multi.mask)


class TestRunPipeline:
    """Tests for run_pipeline input handling."""

    def test_pipeline_preserves_original(self, rng):
        img = rng.integers(0, 256, size=(8, 8, 3), dtype=np.uint8)
        original_data = img.copy()
        result = run_pipeline(img, EdgeMaskConfig(denoise_count=1))
        assert np.array_equal(img, original_data)
        assert np.array_equal(result.original, original_data)
        assert result.original is not img

    def test_invalid_config_raises(self):
        img = np.zeros((4, 4, 3), dtype=np.uint8)
        with pytest.raises(ConfigError):
            run_pipeline(img, EdgeMaskConfig(denoise_count=-1))

    def test_invalid_input_raises(self):
        with pytest.raises(TypeError):
            run_pipeline("not an image")

    def test_empty_image_raises(self):
        with pytest.raises(ValueError, match="empty"):
            run_pipeline(np.zeros((0, 4, 3), dtype=np.uint8))

    def test_saves_artifacts(self, tmp_path):
        img = np.full((6, 6, 3), 50, dtype=np.uint8)
        result = run_pipeline(
            img, EdgeMaskConfig(denoise_count=1), Recipe.EDGES, artifact_dir=str(tmp_path)
        )
        assert set(result.artifact_paths) == {"intensity", "sobel", "denoise", "percentile"}
        for path in result.artifact_paths.values():
            assert (tmp_path / path.split("/")[-1]).exists()

    def test_metadata_collected(self):
        img = np.full((5, 5, 3), 10, dtype=np.uint8)
        result = run_pipeline(img, EdgeMaskConfig(denoise_count=3))
        assert result.metadata["iterations"] == 3
        assert "threshold" in result.metadata


class TestPipelineSteps:
    """Tests for the step classes and the Pipeline runner."""

    def test_empty_pipeline_returns_original(self, rng):
        img = rng.integers(0, 256, size=(4, 4, 3), dtype=np.uint8)
        result = Pipeline(steps=[]).run(img)
        assert np.array_equal(result.final, img)
        assert result.final is not img

    def test_tracks_intermediates(self):
        pipeline = Pipeline(steps=[IntensityStep(), KernelStep(SobelOperator())], workers=2)
        img = np.full((5, 6, 3), 30, dtype=np.uint8)
        result = pipeline.run(img)
        assert [step.name for step in result.steps] == ["intensity", "sobel"]
        assert result.get_intermediate("intensity").shape == (5, 6)
        assert result.get_intermediate("unknown") is None

    def test_kernel_step_zero_iterations_is_copy(self):
        step = KernelStep(BoxAverageOperator(radius=2), iterations=0)
        pixels = np.arange(12, dtype=np.float32).reshape(3, 4)
        with KernelEngine(workers=1) as engine:
            result = step.apply(pixels, engine)
        assert np.array_equal(result, pixels)
        assert result is not pixels

    def test_threshold_steps_report_metadata(self):
        pixels = np.array([[0, 10, 10, 40, 40, 40, 40, 40, 255]], dtype=np.float32)
        with KernelEngine(workers=1) as engine:
            percentile = PercentileThresholdStep(divisor=4)
            percentile.apply(pixels, engine)
            mode = ModeThresholdStep(certainty=3)
            mode.apply(pixels, engine)
        assert percentile.get_metadata()["threshold"] == pytest.approx(40.0)
        assert mode.get_metadata()["threshold"] == 40

    def test_dilate_step_returns_uint8_mask(self):
        mask = np.zeros((9, 9), dtype=np.uint8)
        mask[2:7, 2:7] = 255
        with KernelEngine(workers=2) as engine:
            result = DilateStep(radius=1, iterations=2).apply(mask, engine)
        assert result.dtype == np.uint8
        assert result[4, 4] == 255
        assert np.all(result[mask == 0] == 0)


@pytest.mark.slow
class TestDefaultRecipesFullSize:
    """Default parameters on a larger synthetic scene."""

    @pytest.fixture
    def scene(self):
        img = np.zeros((256, 256, 3), dtype=np.uint8)
        img[64:192, 64:192] = (200, 120, 40)
        img[100:110, :] = 255
        return img

    @pytest.mark.parametrize("recipe", [Recipe.EDGES, Recipe.REGIONS])
    def test_mask_is_binary_and_full_size(self, scene, recipe):
        result = run_pipeline(scene, recipe=recipe)
        assert result.mask.shape == (256, 256)
        assert set(np.unique(result.mask)) <= {0, 255}

    def test_edges_marks_square_outline(self, scene):
        result = run_pipeline(scene, recipe=Recipe.EDGES)
        assert result.mask[150, 64] == 0
        # Over 60 px (10 passes of radius 6) from any gradient.
        assert result.mask[255, 255] == 255
