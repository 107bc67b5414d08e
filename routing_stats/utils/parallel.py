"""
Parallel Processing Utilities for routing-stats

Provides thread pool execution with progress tracking and error handling,
plus the chunked fold used by classification and aggregation.
"""

import atexit
import logging
import os
import signal
import sys
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Callable, Iterator, List, Optional, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


@dataclass
class ParallelResult:
    """Result from parallel execution"""
    item: Any
    success: bool
    result: Optional[Any] = None
    error: Optional[str] = None
    duration: float = 0.0


class ParallelExecutor:
    """Execute tasks in parallel with progress tracking and resource management"""

    def __init__(self, max_workers: int = 4, show_progress: bool = False,
                 handle_signals: bool = False):
        """
        Initialize parallel executor

        Args:
            max_workers: Maximum concurrent threads
            show_progress: Display progress indicators on stderr
            handle_signals: Install SIGTERM/SIGINT handlers (main thread only)
        """
        self.max_workers = max(1, max_workers)
        self.show_progress = show_progress
        self.logger = logging.getLogger(self.__class__.__name__)

        # Resource tracking
        self._active_executors = set()
        self._cleanup_lock = threading.Lock()
        self._shutdown_requested = False

        atexit.register(self._emergency_cleanup)

        # signal.signal() only works from the main thread
        if handle_signals and threading.current_thread() is threading.main_thread():
            signal.signal(signal.SIGTERM, self._signal_handler)
            signal.signal(signal.SIGINT, self._signal_handler)

    def __enter__(self):
        """Context manager entry"""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit with cleanup"""
        self.shutdown()
        return False  # Don't suppress exceptions

    def shutdown(self):
        """Explicitly shutdown all resources"""
        self.logger.debug("Shutting down ParallelExecutor")
        self._shutdown_requested = True
        self._cleanup_all_executors()
        atexit.unregister(self._emergency_cleanup)

    def execute_batch(self,
                      items: List[Any],
                      task_func: Callable,
                      task_name: str = "Processing",
                      **kwargs) -> List[ParallelResult]:
        """
        Execute task function on items in parallel, one result per item

        Failures are captured in the returned ParallelResult objects instead
        of being raised. Results are returned in input order.

        Args:
            items: List of items to process
            task_func: Function to execute for each item
            task_name: Description for progress display
            **kwargs: Additional arguments for task_func

        Returns:
            List of ParallelResult objects
        """
        if self._shutdown_requested:
            self.logger.warning("Executor shutdown requested, aborting batch execution")
            return []

        total = len(items)
        results: List[Optional[ParallelResult]] = [None] * total
        completed = 0

        if self.show_progress:
            print(f"\n{task_name} {total} items with {self.max_workers} workers...",
                  file=sys.stderr)

        with self._managed_thread_pool() as executor:
            future_to_index = {
                executor.submit(self._execute_task, task_func, item, **kwargs): index
                for index, item in enumerate(items)
            }

            for future in as_completed(future_to_index):
                index = future_to_index[future]
                result = future.result()
                results[index] = result

                completed += 1
                if self.show_progress:
                    self._show_progress(completed, total, result.success)

        if self.show_progress:
            successful = sum(1 for r in results if r is not None and r.success)
            print(f"\n{task_name} complete: {successful}/{total} successful",
                  file=sys.stderr)

        return [r for r in results if r is not None]

    def map_ordered(self, items: Sequence[T], task_func: Callable[[T], R]) -> List[R]:
        """
        Apply task_func to every item concurrently, results in input order

        Unlike execute_batch, the first task exception is re-raised.
        """
        if self._shutdown_requested:
            raise RuntimeError("ParallelExecutor has been shut down")

        with self._managed_thread_pool() as executor:
            futures = [executor.submit(task_func, item) for item in items]
            return [future.result() for future in futures]

    def _execute_task(self, task_func: Callable, item: Any, **kwargs) -> ParallelResult:
        """
        Execute single task with error handling

        Args:
            task_func: Function to execute
            item: Item to process
            **kwargs: Additional arguments for task_func

        Returns:
            ParallelResult with execution details
        """
        start_time = time.time()

        try:
            result = task_func(item, **kwargs)
            duration = time.time() - start_time

            return ParallelResult(
                item=item,
                success=True,
                result=result,
                duration=duration
            )

        except Exception as e:
            duration = time.time() - start_time
            self.logger.error(f"Task failed for {item}: {e}")

            return ParallelResult(
                item=item,
                success=False,
                error=str(e),
                duration=duration
            )

    @contextmanager
    def _managed_thread_pool(self) -> Iterator[ThreadPoolExecutor]:
        """Context manager for thread pool with resource leak prevention"""
        executor = ThreadPoolExecutor(max_workers=self.max_workers,
                                      thread_name_prefix="routing-stats")
        with self._cleanup_lock:
            self._active_executors.add(executor)

        try:
            yield executor
        finally:
            executor.shutdown(wait=True)
            with self._cleanup_lock:
                self._active_executors.discard(executor)

    def _signal_handler(self, signum, frame):
        """Handle termination signals with resource cleanup"""
        self.logger.info(f"Received signal {signum}, initiating graceful shutdown")
        self._shutdown_requested = True
        self._cleanup_all_executors()

    def _cleanup_all_executors(self):
        """Clean up all active executors"""
        with self._cleanup_lock:
            if not self._active_executors:
                return

            self.logger.info(f"Cleaning up {len(self._active_executors)} active executors")

            for executor in list(self._active_executors):
                executor.shutdown(wait=False, cancel_futures=True)

            self._active_executors.clear()

    def _emergency_cleanup(self):
        """Emergency cleanup for atexit handler"""
        try:
            self._cleanup_all_executors()
        except RuntimeError as e:
            self.logger.debug(f"Cleanup at exit failed: {e}")

    def _show_progress(self, completed: int, total: int, last_success: bool):
        """
        Display progress indicator

        Args:
            completed: Number of completed tasks
            total: Total number of tasks
            last_success: Whether last task succeeded
        """
        percentage = (completed / total) * 100
        bar_length = 40
        filled = int(bar_length * completed / total)
        bar = '=' * filled + '-' * (bar_length - filled)

        status = "✓" if last_success else "✗"
        print(f"\r[{bar}] {percentage:.1f}% ({completed}/{total}) {status}",
              end='', flush=True, file=sys.stderr)


def auto_workers(item_count: int, configured: Optional[int] = None) -> int:
    """Pick a worker count: the configured value, else CPU-bound sizing"""
    if configured:
        return max(1, configured)
    cpu_count = os.cpu_count() or 4
    return max(1, min(cpu_count * 2, item_count, 16))


def chunked(items: Sequence[T], chunk_size: int) -> List[Sequence[T]]:
    """Split a sequence into consecutive slices of at most chunk_size"""
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")
    return [items[i:i + chunk_size] for i in range(0, len(items), chunk_size)]


def parallel_fold(items: Sequence[T],
                  map_func: Callable[[Sequence[T]], R],
                  merge_func: Callable[[R, R], R],
                  initial: R,
                  max_workers: int = 4,
                  chunk_size: int = 50000) -> R:
    """
    Partition items, map each chunk concurrently and merge the partial results

    Partials are merged left to right in chunk order, so the outcome is the
    same as a sequential ``merge_func(initial, map_func(items))`` whenever
    merge_func is associative.

    Args:
        items: Input sequence
        map_func: Turns one chunk into a partial result
        merge_func: Combines two partial results
        initial: Identity value for merge_func
        max_workers: Thread pool size
        chunk_size: Maximum items per chunk

    Returns:
        The merged result
    """
    chunks = chunked(items, chunk_size)
    if not chunks:
        return initial

    if len(chunks) == 1 or max_workers <= 1:
        partials = [map_func(chunk) for chunk in chunks]
    else:
        logger.debug(f"Folding {len(items)} items in {len(chunks)} chunks "
                     f"with {max_workers} workers")
        with ParallelExecutor(max_workers=min(max_workers, len(chunks))) as executor:
            partials = executor.map_ordered(chunks, map_func)

    result = initial
    for partial in partials:
        result = merge_func(result, partial)
    return result
