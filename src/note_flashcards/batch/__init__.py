"""Bounded-concurrency batch task processing."""

from .processor import (
    BatchProcessor,
    BatchTask,
    MergedResults,
    ProgressInfo,
    TaskResult,
    create_tasks,
    get_progress,
    merge_results,
    process_in_batches,
)

__all__ = [
    "BatchProcessor",
    "BatchTask",
    "MergedResults",
    "ProgressInfo",
    "TaskResult",
    "create_tasks",
    "get_progress",
    "merge_results",
    "process_in_batches",
]
