"""
Background execution for a FilterPipeline.

Large sigmas and stroke sizes are CPU-bound and can take a while on big
images, so callers (the API server, a UI) queue them here instead of
blocking. A single worker keeps destructive filters strictly in submission
order; a queued task can still be cancelled through its Future.
"""

from __future__ import annotations

import asyncio
import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from .filter_pipeline import FilterPipeline

logger = logging.getLogger(__name__)


class FilterTaskRunner:
    """Runs pipeline methods one at a time on a dedicated worker thread."""

    def __init__(self, pipeline: FilterPipeline):
        self.pipeline = pipeline
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="filter-task")

    def submit(self, method: str, *args: Any, **kwargs: Any) -> Future:
        """
        Queue pipeline.<method>(*args, **kwargs).

        Returns:
            Future: resolves to the method's return value; .cancel() succeeds
            while the task is still queued.
        """
        target: Callable[..., Any] = getattr(self.pipeline, method)
        logger.debug(f"Queued {method}")
        return self._executor.submit(target, *args, **kwargs)

    async def run_async(self, method: str, *args: Any, **kwargs: Any) -> Any:
        """Awaitable form of submit(); cancelling the awaiter cancels the task if still queued."""
        return await asyncio.wrap_future(self.submit(method, *args, **kwargs))

    def shutdown(self, wait: bool = True, cancel_pending: bool = False) -> None:
        self._executor.shutdown(wait=wait, cancel_futures=cancel_pending)

    def __enter__(self) -> "FilterTaskRunner":
        return self

    def __exit__(self, *exc) -> None:
        self.shutdown()
