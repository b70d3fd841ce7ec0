"""Parallel Executor - bounded thread-pool fan-out for external calls."""

import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Any, Callable, Optional


class ParallelExecutor:
    """Runs a batch of callables with bounded concurrency, keeping input order in the results."""

    def __init__(self, logger: Any, max_workers: int = 5):
        """
        Initialize parallel executor.

        Args:
            logger: Logger instance
            max_workers: Default worker cap
        """
        self.logger = logger
        self.max_workers = max_workers

    def execute_batch(
        self,
        tasks: list[Callable[[], Any]],
        task_names: Optional[list[str]] = None,
        max_workers: Optional[int] = None,
    ) -> list[tuple[Any, Optional[Exception]]]:
        """
        Execute tasks concurrently and wait for all of them.

        A failing task never cancels the others; its exception is returned in
        its slot instead.

        Args:
            tasks: Zero-argument callables
            task_names: Optional names for logging
            max_workers: Worker cap for this batch (defaults to the executor's)

        Returns:
            One (result, exception) tuple per task, aligned with `tasks`
        """
        if not tasks:
            return []

        workers = max(1, min(max_workers or self.max_workers, len(tasks)))
        names = [
            task_names[i] if task_names and i < len(task_names) else f"task_{i + 1}"
            for i in range(len(tasks))
        ]
        results: list[tuple[Any, Optional[Exception]]] = [(None, None)] * len(tasks)
        start_time = time.time()

        if workers == 1:
            for i, task in enumerate(tasks):
                results[i] = self._run(task, names[i])
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                future_to_index = {executor.submit(self._run, task, names[i]): i for i, task in enumerate(tasks)}
                for future in as_completed(future_to_index):
                    results[future_to_index[future]] = future.result()

        successful = sum(1 for _, error in results if error is None)
        self.logger.debug(
            f"Batch complete: {successful}/{len(tasks)} successful in {time.time() - start_time:.2f}s "
            f"(max {workers} workers)"
        )
        return results

    def _run(self, task: Callable[[], Any], name: str) -> tuple[Any, Optional[Exception]]:
        try:
            return task(), None
        except Exception as e:
            self.logger.warning(f"❌ {name} failed: {e}")
            return None, e
