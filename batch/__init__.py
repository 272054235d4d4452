"""Batch processing package."""

from .service import run_batch, process_file, output_path_for

__all__ = [
    "run_batch",
    "process_file",
    "output_path_for",
]
