"""
Pipeline step classes with a common interface.

Each step is a dataclass implementing the PipelineStep interface. Steps are
pure: they take an input buffer and return a new output without mutating
the original array. Steps that run kernels receive the shared KernelEngine
from the pipeline.

Usage:
    from pipeline.steps import IntensityStep, KernelStep, Pipeline
    from filters import SobelOperator

    pipeline = Pipeline(steps=[
        IntensityStep(),
        KernelStep(SobelOperator()),
    ])
    result = pipeline.run(image)
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import cv2
import numpy as np

from config import BINARIZE_CUTOFF, CERTAINTY, MODE_HIGH, MODE_LOW, PERCENTILE_DIVISOR
from filters import (
    KernelEngine,
    KernelOperator,
    DilationOperator,
    MASK_DTYPE,
    reduce_to_intensity,
    apply_percentile_threshold,
    apply_mode_threshold,
    rebinarize,
)

logger = logging.getLogger(__name__)


class PipelineStep(ABC):
    """One stage of a recipe.

    A step turns one buffer into a new one and never writes to its input.
    Kernel passes go through the engine handed in by the Pipeline so that
    all passes of a run share its thread pool. Values a step wants to report
    (a chosen threshold, an iteration count) come back from get_metadata().
    """

    @abstractmethod
    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        """Return the step's output for `img`.

        Args:
            img: Output of the previous step (the decoded image for the
                first one).
            engine: Shared kernel engine.
        """

    @property
    @abstractmethod
    def name(self) -> str:
        """Step name used in logs; the part before "(" names artifacts."""

    def get_metadata(self) -> dict[str, Any]:
        """Values recorded by the most recent apply(); none by default."""
        return {}


@dataclass(frozen=True)
class IntensityStep(PipelineStep):
    """Reduce a decoded image to a float32 intensity buffer."""

    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        return reduce_to_intensity(img)

    @property
    def name(self) -> str:
        return "intensity"


@dataclass(frozen=True)
class KernelStep(PipelineStep):
    """Run a kernel operator over the buffer one or more times.

    Each pass feeds its output into the next.

    Attributes:
        operator: The per-pixel operator to run.
        iterations: Number of passes. 0 returns a copy of the input.
        label: Name used in logs and artifact file names. Defaults to the
              operator's own name.
    """

    operator: KernelOperator
    iterations: int = 1
    label: str | None = None

    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        current = img.copy()
        for index in range(self.iterations):
            current = engine.apply(current, self.operator)
            if self.iterations > 1:
                logger.debug(
                    "%s %.0f%% complete",
                    self.name,
                    (index + 1) / self.iterations * 100,
                )
        return current

    @property
    def name(self) -> str:
        base = self.label or self.operator.name.split("(")[0]
        radius = getattr(self.operator, "radius", None)
        if radius is None:
            return base
        return f"{base}({radius})"

    def get_metadata(self) -> dict[str, Any]:
        return {"iterations": self.iterations}


@dataclass(frozen=True)
class PercentileThresholdStep(PipelineStep):
    """Binarize against the percentile black point.

    Attributes:
        divisor: Rank divisor for the black point (4 = 25th percentile).
    """

    divisor: int = PERCENTILE_DIVISOR
    _threshold: float | None = field(default=None, init=False, repr=False)

    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        mask, threshold = apply_percentile_threshold(img, self.divisor)
        object.__setattr__(self, "_threshold", threshold)
        logger.debug("Black point %.3f (divisor=%d)", threshold, self.divisor)
        return mask

    @property
    def name(self) -> str:
        return f"percentile({self.divisor})"

    def get_metadata(self) -> dict[str, Any]:
        return {"threshold": self._threshold}


@dataclass(frozen=True)
class ModeThresholdStep(PipelineStep):
    """Binarize around the histogram mode.

    Attributes:
        certainty: Pixels less than this far from the mode become foreground.
        low: Smallest truncated value that votes.
        high: Largest truncated value that votes.
    """

    certainty: int = CERTAINTY
    low: int = MODE_LOW
    high: int = MODE_HIGH
    _threshold: int | None = field(default=None, init=False, repr=False)

    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        mask, threshold = apply_mode_threshold(img, self.certainty, self.low, self.high)
        object.__setattr__(self, "_threshold", threshold)
        logger.debug("Histogram mode t=%s (certainty=%d)", threshold, self.certainty)
        return mask

    @property
    def name(self) -> str:
        return f"mode({self.certainty})"

    def get_metadata(self) -> dict[str, Any]:
        return {"threshold": self._threshold}


@dataclass(frozen=True)
class DilateStep(PipelineStep):
    """Close a binary mask by repeated dilation and re-binarization.

    Requires a 0/255 mask as input; returns a uint8 mask.

    Attributes:
        radius: Window radius of the dilation operator.
        iterations: Number of dilate + re-binarize rounds.
        cutoff: Values above this snap to 255 after each round.
    """

    radius: int = 9
    iterations: int = 8
    cutoff: int = BINARIZE_CUTOFF

    def apply(self, img: np.ndarray, engine: KernelEngine) -> np.ndarray:
        operator = DilationOperator(radius=self.radius)
        current = img.astype(np.float32)
        for _ in range(self.iterations):
            current = rebinarize(engine.apply(current, operator), self.cutoff)
        return current.astype(MASK_DTYPE)

    @property
    def name(self) -> str:
        return f"dilate({self.radius})"

    def get_metadata(self) -> dict[str, Any]:
        return {"dilate_iterations": self.iterations}


def step_key(step_name: str) -> str:
    """Short key for a step name: "blur(3)" -> "blur"."""
    return step_name.split("(", 1)[0]


@dataclass
class StepResult:
    """One step's output buffer plus what it reported.

    Attributes:
        name: Step name, e.g. "blur(3)".
        image: Buffer the step returned.
        metadata: Values from get_metadata() after the step ran.
        artifact_path: PNG written for this buffer, when artifacts are on.
    """

    name: str
    image: np.ndarray
    metadata: dict[str, Any] = field(default_factory=dict)
    artifact_path: str | None = None

    @property
    def key(self) -> str:
        return step_key(self.name)


@dataclass
class PipelineStepResults:
    """Every buffer a pipeline run produced, in step order."""

    original: np.ndarray
    steps: list[StepResult] = field(default_factory=list)

    @property
    def final(self) -> np.ndarray:
        """Output of the last step (the input itself for an empty pipeline)."""
        return self.steps[-1].image if self.steps else self.original

    def get_intermediate(self, step_name: str) -> np.ndarray | None:
        """Buffer produced by a step, looked up by full name or key.

        Both "blur(3)" and "blur" find the post-Sobel blur; None if no
        step matches.
        """
        for step in self.steps:
            if step_name in (step.name, step.key):
                return step.image
        return None

    def get_metadata(self, key: str) -> Any | None:
        """First value any step reported under `key`."""
        return next((s.metadata[key] for s in self.steps if key in s.metadata), None)

    @property
    def threshold(self) -> float | None:
        """Threshold picked by the thresholding step, if it found one."""
        return self.get_metadata("threshold")

    @property
    def all_metadata(self) -> dict[str, Any]:
        # Later steps win on key collisions.
        return {k: v for s in self.steps for k, v in s.metadata.items()}

    @property
    def artifact_paths(self) -> dict[str, str]:
        return {s.key: s.artifact_path for s in self.steps if s.artifact_path}


def to_displayable(img: np.ndarray) -> np.ndarray:
    """Convert a buffer to uint8 for saving, stretching floats to 0-255."""
    if img.dtype == np.uint8:
        return img
    values = np.asarray(img, dtype=np.float64)
    peak = float(values.max()) if values.size else 0.0
    if peak <= 0:
        return np.zeros(values.shape, dtype=np.uint8)
    return np.clip(values * (255.0 / peak), 0, 255).astype(np.uint8)


def _save_artifact(img: np.ndarray, artifact_dir: str, key: str) -> str:
    """Write an intermediate buffer as <artifact_dir>/<key>.png."""
    path = Path(artifact_dir) / f"{key}.png"
    path.parent.mkdir(parents=True, exist_ok=True)
    if not cv2.imwrite(str(path), to_displayable(img)):
        logger.warning("Could not save artifact %s", path)
    return str(path)


@dataclass
class Pipeline:
    """An ordered list of steps run over one image.

    Each step's output feeds the next, and every output is kept. A single
    KernelEngine (and its thread pool) serves all kernel passes of a run.

    Attributes:
        steps: PipelineStep instances, in execution order.
        workers: Threads per kernel pass. None means one per CPU.
    """

    steps: list[PipelineStep]
    workers: int | None = None

    def run(
        self,
        img: np.ndarray,
        artifact_dir: str | None = None,
    ) -> PipelineStepResults:
        """Run every step on a copy of `img`.

        Args:
            img: Decoded image, or any buffer the first step accepts.
            artifact_dir: If set, each step's output is also written there
                         as <step key>.png.

        Returns:
            PipelineStepResults with one StepResult per step.
        """
        results = PipelineStepResults(original=img.copy())
        buffer = img.copy()

        with KernelEngine(self.workers) as engine:
            for step in self.steps:
                buffer = step.apply(buffer, engine)
                logger.debug("Finished step %s", step.name)
                record = StepResult(step.name, buffer, step.get_metadata())
                if artifact_dir:
                    record.artifact_path = _save_artifact(buffer, artifact_dir, record.key)
                results.steps.append(record)

        return results

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)
