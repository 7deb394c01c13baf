"""Worker pool for DOM-bound work and bounded article concurrency."""

import asyncio
from collections.abc import Awaitable, Iterable
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

T = TypeVar("T")
R = TypeVar("R")


class WorkerPool:
    """
    Thread pool for parsing and tree work, plus a limit on how many
    articles are in flight at once.

    Extraction of a single article is synchronous; running it in the pool
    keeps the event loop free for page fetches of other articles.

    Example:
        async with WorkerPool(max_workers=4, max_concurrent=5) as pool:
            async with pool.slot():
                result = await pool.run_cpu_bound(extract_article, html, rule, url)

            results = await pool.map_bounded(normalizer.extract_url, urls)
    """

    def __init__(self, max_workers: int = 4, max_concurrent: int = 5) -> None:
        """
        Initialize the worker pool.

        Args:
            max_workers: Number of thread pool workers
            max_concurrent: Maximum articles processed at the same time
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.max_workers = max_workers
        self.max_concurrent = max_concurrent
        self._executor: Optional[ThreadPoolExecutor] = None
        self._semaphore = asyncio.Semaphore(max_concurrent)

    @property
    def executor(self) -> ThreadPoolExecutor:
        """Get or create the thread pool executor."""
        if self._executor is None:
            self._executor = ThreadPoolExecutor(
                max_workers=self.max_workers,
                thread_name_prefix="article-normalizer-cpu-",
            )
        return self._executor

    def slot(self) -> asyncio.Semaphore:
        """Async context manager holding one of the ``max_concurrent`` slots."""
        return self._semaphore

    async def run_cpu_bound(
        self,
        func: Callable[..., T],
        *args: Any,
        **kwargs: Any,
    ) -> T:
        """
        Run a synchronous function in the thread pool.

        Args:
            func: The function to execute
            *args: Positional arguments for the function
            **kwargs: Keyword arguments for the function

        Returns:
            The result of the function call
        """
        loop = asyncio.get_running_loop()

        if kwargs:

            def wrapper() -> T:
                return func(*args, **kwargs)

            return await loop.run_in_executor(self.executor, wrapper)
        else:
            return await loop.run_in_executor(self.executor, func, *args)

    async def map_bounded(
        self,
        func: Callable[[T], Awaitable[R]],
        items: Iterable[T],
    ) -> list[R]:
        """
        Await ``func(item)`` for every item, at most ``max_concurrent`` at a time.

        Results keep the order of ``items``. If one call raises, the others
        are cancelled and the exception propagates.
        """

        async def _bounded(item: T) -> R:
            async with self._semaphore:
                return await func(item)

        return list(await asyncio.gather(*(_bounded(item) for item in items)))

    def shutdown(self, wait: bool = True) -> None:
        """
        Shutdown the thread pool executor.

        Args:
            wait: If True, wait for pending tasks to complete.
        """
        if self._executor is not None:
            self._executor.shutdown(wait=wait)
            self._executor = None

    async def __aenter__(self) -> "WorkerPool":
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context and shutdown executor."""
        self.shutdown(wait=True)

    def __enter__(self) -> "WorkerPool":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.shutdown(wait=True)
