"""
Dispatch contexts for change notifications.

A store either delivers its events on the mutating thread or posts them
to a DispatchContext, which owns the scheduling.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class DispatchContext(ABC):
    """Target onto which event deliveries are posted"""

    @abstractmethod
    def post(self, callback: Callable[[], None]) -> None:
        """Schedule callback for execution; must not block on the callback"""
        pass


class ImmediateDispatchContext(DispatchContext):
    """Runs callbacks synchronously on the posting thread"""

    def post(self, callback: Callable[[], None]) -> None:
        callback()


class ExecutorDispatchContext(DispatchContext):
    """
    Posts callbacks onto a concurrent.futures executor.

    The default executor has a single worker, so deliveries keep their
    posting order.
    """

    def __init__(self, executor: Optional[Executor] = None):
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(
            max_workers=1, thread_name_prefix="datastores-dispatch"
        )

    def post(self, callback: Callable[[], None]) -> None:
        future = self._executor.submit(callback)
        future.add_done_callback(self._log_failure)

    @staticmethod
    def _log_failure(future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Dispatched callback failed: {error}")

    def shutdown(self, wait: bool = True) -> None:
        """Shut down the executor if this context created it"""
        if self._owns_executor:
            self._executor.shutdown(wait=wait)


class EventLoopDispatchContext(DispatchContext):
    """Posts callbacks onto an asyncio event loop, from any thread"""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self._loop = loop or asyncio.get_running_loop()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    def post(self, callback: Callable[[], None]) -> None:
        self._loop.call_soon_threadsafe(callback)
