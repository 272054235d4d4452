"""
Fork-join execution of per-pixel kernels.

A kernel pass splits the column range [0, width) into contiguous chunks, one
per worker. Every worker walks all rows of its own chunk and writes into the
matching columns of a fresh output buffer, so workers never touch the same
output element and no locking is needed. The input buffer is shared
read-only. A pass returns only after every chunk has finished.

Usage:
    from filters import BoxAverageOperator, KernelEngine, SobelOperator

    with KernelEngine(workers=4) as engine:
        edges = engine.apply(intensity, SobelOperator())
        smooth = engine.apply(edges, BoxAverageOperator(radius=3))
"""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor, wait

import numpy as np

from config import KERNEL_THREAD_PREFIX
from .operators import KernelOperator, as_kernel
from .reduction import INTENSITY_DTYPE

logger = logging.getLogger(__name__)


def resolve_worker_count(workers: int | None = None) -> int:
    """Return the number of workers to use for a kernel pass.

    Args:
        workers: Explicit worker count. None means "one per CPU".

    Returns:
        Worker count, at least 1.

    Raises:
        ValueError: If an explicit count is not positive.
    """
    if workers is None:
        return os.cpu_count() or 1
    if workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")
    return workers


def partition_columns(width: int, workers: int) -> list[tuple[int, int]]:
    """Split [0, width) into `workers` contiguous column chunks.

    Every chunk is width // workers columns wide except the last one, which
    also takes the remainder. When there are more workers than columns the
    leading chunks are empty.

    Examples:
        >>> partition_columns(10, 3)
        [(0, 3), (3, 6), (6, 10)]
        >>> partition_columns(2, 3)
        [(0, 0), (0, 0), (0, 2)]
    """
    if workers < 1:
        raise ValueError(f"workers must be positive, got {workers}")
    chunk_size = width // workers
    chunks = []
    for index in range(workers):
        start = chunk_size * index
        end = width if index == workers - 1 else start + chunk_size
        chunks.append((start, end))
    return chunks


def _validate_buffer(pixels: np.ndarray) -> None:
    if not isinstance(pixels, np.ndarray):
        raise TypeError(f"Expected numpy.ndarray, got {type(pixels).__name__}")
    if pixels.ndim != 2:
        raise ValueError(
            f"Kernel input must be a 2D intensity buffer, got {pixels.ndim}D array "
            f"with shape {pixels.shape}"
        )


class KernelEngine:
    """Worker pool that runs kernel passes over intensity buffers.

    The pool is created once and reused for every pass until close(), so a
    multi-pass pipeline does not pay thread start-up per pass. Each call to
    apply() is still a full fork-join: it submits one task per column chunk
    and waits for all of them before returning.

    Attributes:
        workers: Number of column chunks (and threads) per pass.
    """

    def __init__(self, workers: int | None = None):
        self.workers = resolve_worker_count(workers)
        self._executor: ThreadPoolExecutor | None = None

    def __enter__(self) -> KernelEngine:
        self._ensure_executor()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _ensure_executor(self) -> ThreadPoolExecutor:
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.workers,
                thread_name_prefix=KERNEL_THREAD_PREFIX,
            )
        return self._executor

    def close(self) -> None:
        """Shut the worker pool down. The engine can be reused afterwards."""
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None

    def apply(self, pixels: np.ndarray, kernel) -> np.ndarray:
        """Run one kernel pass and return a new buffer.

        Args:
            pixels: 2D intensity buffer. Never modified.
            kernel: A KernelOperator, or a callable with the signature
                   (pixels, x, y, width, height) -> float.

        Returns:
            New float32 buffer with the same shape as pixels.

        Raises:
            TypeError: If pixels is not a numpy array.
            ValueError: If pixels is not 2D.
            Exception: The first exception raised by a worker, after all
                      workers have stopped.
        """
        _validate_buffer(pixels)
        operator = as_kernel(kernel)

        source = np.array(pixels, dtype=INTENSITY_DTYPE, order="C")
        source.setflags(write=False)
        height, width = source.shape
        output = np.zeros((height, width), dtype=INTENSITY_DTYPE)

        chunks = [
            (start, end)
            for start, end in partition_columns(width, self.workers)
            if end > start
        ]
        if not chunks:
            return output

        executor = self._ensure_executor()
        futures = [
            executor.submit(_run_chunk, operator, source, output, start, end)
            for start, end in chunks
        ]
        # Join barrier: every chunk finishes before any error is reported.
        wait(futures)
        for future in futures:
            future.result()

        return output


def _run_chunk(
    operator: KernelOperator,
    source: np.ndarray,
    output: np.ndarray,
    start: int,
    end: int,
) -> None:
    output[:, start:end] = operator.evaluate_columns(source, start, end)


def apply_kernel(pixels: np.ndarray, kernel, workers: int | None = None) -> np.ndarray:
    """Run a single kernel pass on a fresh worker set.

    Convenience wrapper around KernelEngine for one-off passes. Pipelines
    that run many passes should keep one KernelEngine open instead.

    Args:
        pixels: 2D intensity buffer. Never modified.
        kernel: A KernelOperator or a per-pixel callable.
        workers: Worker count. None means one per CPU.

    Returns:
        New float32 buffer with the same shape as pixels.
    """
    with KernelEngine(workers) as engine:
        return engine.apply(pixels, kernel)
