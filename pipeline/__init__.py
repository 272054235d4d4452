"""
Edge mask pipeline.

This module composes the filters into the two fixed recipes. All steps are
pure: they take an input and return a new output with no mutation of the
original arrays.

Key components:
- config: EdgeMaskConfig dataclass for parameterizing all steps
- steps: Class-based steps with a common PipelineStep interface
- recipes: run_pipeline() / build_pipeline() for the edge and region recipes

Two APIs are available:
1. Function-based: run_pipeline(img, config, recipe) -> MaskResult
2. Class-based: Pipeline(steps=[...]).run(img) -> PipelineStepResults
"""

from .config import EdgeMaskConfig, MaskResult
from .recipes import Recipe, run_pipeline, build_pipeline
from .steps import (
    PipelineStep,
    IntensityStep,
    KernelStep,
    PercentileThresholdStep,
    ModeThresholdStep,
    DilateStep,
    Pipeline,
    PipelineStepResults,
    StepResult,
)

__all__ = [
    # Config and results
    "EdgeMaskConfig",
    "MaskResult",
    # Function API
    "Recipe",
    "run_pipeline",
    "build_pipeline",
    # Class-based API
    "PipelineStep",
    "IntensityStep",
    "KernelStep",
    "PercentileThresholdStep",
    "ModeThresholdStep",
    "DilateStep",
    "Pipeline",
    "PipelineStepResults",
    "StepResult",
]
