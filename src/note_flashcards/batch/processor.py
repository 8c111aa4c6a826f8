"""Bounded-concurrency batch processing with retries, cancellation and progress."""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from ..exceptions import BatchCancelledError, TaskCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

DEFAULT_MAX_RETRIES = 3
DEFAULT_MAX_CONCURRENT = 5

ProgressCallback = Callable[[int, int], None]


@dataclass
class BatchTask(Generic[T, R]):
    """A unit of asynchronous work with its own retry budget."""

    id: str
    input: T
    execute: Callable[[T], Awaitable[R]]
    max_retries: Optional[int] = None

    @property
    def retry_budget(self) -> int:
        return DEFAULT_MAX_RETRIES if self.max_retries is None else self.max_retries


@dataclass(frozen=True)
class TaskResult(Generic[R]):
    """Outcome of a single task. Success carries data, failure carries the last error."""

    task_id: str
    success: bool
    data: Optional[R] = None
    error: Optional[BaseException] = None
    retries: int = 0

    def __post_init__(self):
        if self.success and self.data is None:
            raise ValueError("successful TaskResult requires data")
        if not self.success and self.error is None:
            raise ValueError("failed TaskResult requires an error")


@dataclass
class MergedResults(Generic[R]):
    """Successful outputs and failed results of a batch."""

    successful: list[R] = field(default_factory=list)
    failed: list[TaskResult[R]] = field(default_factory=list)
    total_processed: int = 0

    @property
    def success_rate(self) -> float:
        if self.total_processed == 0:
            return 0.0
        return len(self.successful) / self.total_processed


@dataclass
class ProgressInfo:
    """Summary counts over a list of results."""

    total: int
    completed: int
    failed: int
    retries: int


def merge_results(results: list[TaskResult[R]]) -> MergedResults[R]:
    """
    Partition results into successful outputs and failures.

    Successful outputs keep the order of ``results`` (completion order).
    """
    merged: MergedResults[R] = MergedResults(total_processed=len(results))
    for result in results:
        if result.success:
            merged.successful.append(result.data)
        else:
            merged.failed.append(result)
    return merged


def get_progress(results: list[TaskResult[Any]]) -> ProgressInfo:
    """Summarize how a batch went."""
    failed = sum(1 for r in results if not r.success)
    return ProgressInfo(
        total=len(results),
        completed=len(results) - failed,
        failed=failed,
        retries=sum(r.retries for r in results),
    )


def create_tasks(
    inputs: list[T],
    execute: Callable[[T], Awaitable[R]],
    max_retries: Optional[int] = None,
    id_prefix: str = "task",
) -> list[BatchTask[T, R]]:
    """Create one task per input, with ids derived from the input position."""
    return [
        BatchTask(id=f"{id_prefix}_{index}", input=item, execute=execute, max_retries=max_retries)
        for index, item in enumerate(inputs)
    ]


class BatchProcessor(Generic[T, R]):
    """
    Run asynchronous tasks with a sliding concurrency window.

    At most ``max_concurrent`` tasks are in flight; as soon as one settles the
    next task (in input order) is admitted. Failed attempts are retried with
    exponential backoff. One task failing never affects the others.
    """

    def __init__(
        self,
        max_concurrent: int = DEFAULT_MAX_CONCURRENT,
        batch_size: Optional[int] = None,
        retry_delay: float = 1.0,
        on_progress: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ):
        """
        Initialize the processor.

        Args:
            max_concurrent: Maximum number of tasks in flight at once
            batch_size: Optional group size; groups run one after another
                with a full barrier in between (None = a single group)
            retry_delay: Base backoff delay in seconds, doubled on every retry
            on_progress: Optional callback(completed, total) after each task settles
            cancel_event: Optional event; once set, no new attempts are started
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if batch_size is not None and batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        self.max_concurrent = max_concurrent
        self.batch_size = batch_size
        self.retry_delay = retry_delay
        self.on_progress = on_progress
        self.cancel_event = cancel_event
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled or (self.cancel_event is not None and self.cancel_event.is_set())

    def cancel(self) -> None:
        """Stop starting new attempts. In-flight attempts finish but are marked failed."""
        self._cancelled = True

    async def process_batch(self, tasks: list[BatchTask[T, R]]) -> list[TaskResult[R]]:
        """
        Run all tasks and return one result per task.

        Results are in completion order, not input order; use ``task_id`` to
        match them back to their tasks.

        Raises:
            BatchCancelledError: If cancellation was requested before starting
        """
        if self.cancelled:
            raise BatchCancelledError("Batch processing was cancelled")
        if not tasks:
            return []

        total = len(tasks)
        size = self.batch_size or total
        groups = [tasks[i : i + size] for i in range(0, total, size)]
        logger.info(
            "Processing %d tasks (concurrency %d, %d group(s))",
            total,
            self.max_concurrent,
            len(groups),
        )

        results: list[TaskResult[R]] = []
        for group_index, group in enumerate(groups):
            if self.cancelled:
                for task in group:
                    results.append(self._cancelled_result(task, retries=0))
                    self._report_progress(len(results), total)
                continue
            await self._process_window(group, results, total)
            logger.debug("Group %d/%d finished", group_index + 1, len(groups))

        merged = merge_results(results)
        logger.info("Batch finished: %d/%d succeeded", len(merged.successful), total)
        for failure in merged.failed:
            logger.warning(
                "Task %s failed after %d retries: %s",
                failure.task_id,
                failure.retries,
                failure.error,
            )
        return results

    async def _process_window(
        self,
        tasks: list[BatchTask[T, R]],
        results: list[TaskResult[R]],
        total: int,
    ) -> None:
        pending = iter(tasks)
        in_flight: set[asyncio.Task] = set()

        def admit() -> None:
            while len(in_flight) < self.max_concurrent:
                task = next(pending, None)
                if task is None:
                    return
                logger.debug("Starting task %s", task.id)
                in_flight.add(asyncio.create_task(self._execute_task(task)))

        admit()
        while in_flight:
            done, in_flight = await asyncio.wait(in_flight, return_when=asyncio.FIRST_COMPLETED)
            for finished in done:
                results.append(finished.result())
                self._report_progress(len(results), total)
            admit()

    async def _execute_task(self, task: BatchTask[T, R]) -> TaskResult[R]:
        max_retries = task.retry_budget
        attempt = 0
        while True:
            if self.cancelled:
                logger.info("Task %s cancelled after %d attempt(s)", task.id, attempt)
                return self._cancelled_result(task, retries=attempt)

            try:
                data = await task.execute(task.input)
                if data is None:
                    raise ValueError(f"Task {task.id} returned no data")
            except Exception as exc:
                error: BaseException = exc
            else:
                if self.cancelled:
                    return self._cancelled_result(task, retries=attempt)
                if attempt > 0:
                    logger.info("Task %s succeeded after %d retries", task.id, attempt)
                return TaskResult(task_id=task.id, success=True, data=data, retries=attempt)

            attempt += 1
            if attempt > max_retries:
                return TaskResult(task_id=task.id, success=False, error=error, retries=max_retries)

            delay = self.retry_delay * 2 ** (attempt - 1)
            logger.debug("Task %s failed (%s), retrying in %.2fs", task.id, error, delay)
            await asyncio.sleep(delay)

    @staticmethod
    def _cancelled_result(task: BatchTask[T, R], retries: int) -> TaskResult[R]:
        return TaskResult(
            task_id=task.id,
            success=False,
            error=TaskCancelledError(f"Task {task.id} was cancelled"),
            retries=retries,
        )

    def _report_progress(self, completed: int, total: int) -> None:
        if self.on_progress is None:
            return
        try:
            self.on_progress(completed, total)
        except Exception:
            logger.exception("Progress callback failed")


async def process_in_batches(
    inputs: list[T],
    execute: Callable[[T], Awaitable[R]],
    **options: Any,
) -> list[R]:
    """Run ``execute`` over every input and return only the successful outputs."""
    max_retries = options.pop("max_retries", None)
    tasks = create_tasks(inputs, execute, max_retries=max_retries)
    results = await BatchProcessor(**options).process_batch(tasks)
    return merge_results(results).successful
