"""
Persistent store decorator.

Wraps an in-memory store with a persistence strategy:
- Single-flight initialization (exactly one load for any number of callers)
- Fire-and-forget auto-save on every mutation, serialized and coalesced
- Per-entity updates for observable entities
- Mutations issued during a load wait until the load has been applied

All strategy calls run on a private persistence worker, an asyncio loop on
a daemon thread, so stores can be mutated from any thread and initialized
from any event loop.
"""

import asyncio
import concurrent.futures
import functools
import logging
import threading
from enum import Enum
from typing import Any, Callable, Iterable, List, Optional, Set, Tuple

from ..exceptions import InvalidOperationError, LoadError, SaveError
from ..models.events import ChangeEvent
from ..runtime.store import ChangeHandler, DataStore
from .base import PersistenceStrategy
from .binder import PropertyChangedBinder

logger = logging.getLogger(__name__)

# Origin tag of the bulk add that applies loaded items
LOAD_ORIGIN = "load"

SaveErrorCallback = Callable[[SaveError], None]


class LifecycleState(Enum):
    """Initialization state of a persistent store"""
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"


class _PersistenceWorker:
    """Event loop running on a daemon thread, started on first use"""

    def __init__(self, name: str, stop_timeout: float = 5.0):
        self._name = name
        self._stop_timeout = stop_timeout
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._stopped = False

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def is_worker_thread(self) -> bool:
        return self._thread is not None and threading.current_thread() is self._thread

    def submit(self, coro) -> concurrent.futures.Future:
        with self._lock:
            if self._stopped:
                coro.close()
                raise InvalidOperationError(f"Persistence worker '{self._name}' is stopped")

            if self._loop is None:
                self._loop = asyncio.new_event_loop()
                self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
                self._thread.start()
                logger.debug(f"Started persistence worker '{self._name}'")

            return asyncio.run_coroutine_threadsafe(coro, self._loop)

    def _run(self) -> None:
        loop = self._loop
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            pending = asyncio.all_tasks(loop)
            for task in pending:
                task.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.close()

    def stop(self) -> None:
        with self._lock:
            if self._stopped:
                return
            self._stopped = True
            loop, thread = self._loop, self._thread

        if loop is None:
            return

        loop.call_soon_threadsafe(loop.stop)
        if thread is not None and thread is not threading.current_thread():
            thread.join(self._stop_timeout)
            if thread.is_alive():
                logger.warning(f"Persistence worker '{self._name}' did not stop in time")


class PersistentStoreDecorator(DataStore):
    """
    Adds loading and saving to an inner store through a PersistenceStrategy.

    Reads and writes are forwarded to the inner store. Change handlers
    subscribed through the decorator are registered on the inner store and
    receive it as the sender.
    """

    def __init__(
        self,
        inner_store: DataStore,
        strategy: PersistenceStrategy,
        auto_load: bool = True,
        auto_save_on_change: bool = True,
        on_save_error: Optional[SaveErrorCallback] = None
    ):
        if inner_store is None:
            raise ValueError("Inner store is required")
        if strategy is None:
            raise ValueError("Persistence strategy is required")

        self._inner = inner_store
        self._strategy = strategy
        self._auto_load = auto_load
        self._auto_save_on_change = auto_save_on_change
        self._on_save_error = on_save_error

        # Initialization state
        self._state = LifecycleState.UNINITIALIZED
        self._state_lock = threading.RLock()
        self._generation = 0
        self._load_future: Optional[concurrent.futures.Future] = None
        self._committing: Optional[int] = None
        self._load_done = threading.Event()
        self._load_done.set()
        self._closed = False

        # Saves
        self._worker = _PersistenceWorker(f"{type(inner_store).__name__}-persistence")
        self._io_lock: Optional[asyncio.Lock] = None
        self._save_lock = threading.Lock()
        self._queued_save: Optional[concurrent.futures.Future] = None
        self._pending: Set[concurrent.futures.Future] = set()
        self._last_save_error: Optional[SaveError] = None

        self._strategy.set_items_provider(lambda: self._inner.items)

        self._binder: Optional[PropertyChangedBinder] = None
        if self._auto_save_on_change:
            self._inner.subscribe(self._on_inner_changed)
            self._binder = PropertyChangedBinder(self._on_entity_changed)
            self._binder.attach_to_store(self._inner)

    # Properties

    @property
    def inner_store(self) -> DataStore:
        return self._inner

    @property
    def strategy(self) -> PersistenceStrategy:
        return self._strategy

    @property
    def auto_load(self) -> bool:
        return self._auto_load

    @property
    def auto_save_on_change(self) -> bool:
        return self._auto_save_on_change

    @property
    def state(self) -> LifecycleState:
        with self._state_lock:
            return self._state

    @property
    def is_initialized(self) -> bool:
        return self.state == LifecycleState.INITIALIZED

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending_save_count(self) -> int:
        with self._save_lock:
            return len(self._pending)

    @property
    def last_save_error(self) -> Optional[SaveError]:
        return self._last_save_error

    # Forwarded store operations

    @property
    def items(self) -> Tuple[Any, ...]:
        return self._inner.items

    def subscribe(self, handler: ChangeHandler) -> None:
        self._inner.subscribe(handler)

    def unsubscribe(self, handler: ChangeHandler) -> None:
        self._inner.unsubscribe(handler)

    def add(self, item: Any) -> None:
        self._wait_for_load()
        self._inner.add(item)

    def add_range(self, items: Iterable[Any], origin: Optional[str] = None) -> None:
        self._wait_for_load()
        self._inner.add_range(items, origin=origin)

    def add_or_replace(self, item: Any) -> bool:
        self._wait_for_load()
        return self._inner.add_or_replace(item)

    def remove(self, item: Any) -> bool:
        self._wait_for_load()
        return self._inner.remove(item)

    def clear(self) -> None:
        self._wait_for_load()
        self._inner.clear()

    def contains(self, item: Any) -> bool:
        return self._inner.contains(item)

    # Initialization

    async def initialize(self) -> None:
        """
        Load persisted items into the inner store.

        Idempotent. Concurrent callers share the single in-flight load and
        observe its outcome. A failed or cancelled load resets the store to
        UNINITIALIZED so initialize() can be retried.

        Raises:
            LoadError: If the strategy failed to load
            asyncio.CancelledError: If the shared load was cancelled
            InvalidOperationError: If the store has been closed
        """
        with self._state_lock:
            if self._closed:
                raise InvalidOperationError("Cannot initialize a closed store")
            if self._state == LifecycleState.INITIALIZED:
                return

            if not self._auto_load:
                self._state = LifecycleState.INITIALIZED
                logger.info(f"Initialized {self._strategy!r} without loading (auto_load disabled)")
                return

            if self._state == LifecycleState.UNINITIALIZED:
                self._start_load()
            future = self._load_future

        await asyncio.wrap_future(future)

    def _start_load(self) -> None:
        # Caller holds self._state_lock
        self._generation += 1
        generation = self._generation
        self._state = LifecycleState.INITIALIZING
        self._load_done.clear()

        future = self._worker.submit(self._load(generation))
        self._load_future = future
        future.add_done_callback(functools.partial(self._on_load_future_done, generation))

    async def _load(self, generation: int) -> None:
        try:
            async with self._get_io_lock():
                items = await self._strategy.load_all()

                with self._state_lock:
                    if generation != self._generation:
                        raise asyncio.CancelledError()
                    # A cancellation arriving from here on no longer rolls the load back
                    self._committing = generation

                # Listeners of the load event run without the state lock held
                self._inner.add_range(items or [], origin=LOAD_ORIGIN)

                with self._state_lock:
                    self._finish_load(LifecycleState.INITIALIZED)
        except asyncio.CancelledError:
            with self._state_lock:
                if generation == self._generation and self._state == LifecycleState.INITIALIZING:
                    self._finish_load(LifecycleState.UNINITIALIZED)
            logger.info(f"Load cancelled for {self._strategy!r}")
            raise
        except Exception as e:
            with self._state_lock:
                if generation == self._generation:
                    self._finish_load(LifecycleState.UNINITIALIZED)
            logger.error(f"Failed to load items from {self._strategy!r}: {e}")
            raise LoadError(f"Failed to load items: {e}", e) from e

        logger.info(f"Loaded {len(items or [])} items from {self._strategy!r}")

    def _on_load_future_done(self, generation: int, future: concurrent.futures.Future) -> None:
        # Runs synchronously in the cancelling thread, before any awaiting
        # caller resumes, so a retry right after cancellation starts fresh.
        if not future.cancelled():
            return

        with self._state_lock:
            if (
                generation == self._generation
                and self._state == LifecycleState.INITIALIZING
                and self._committing != generation
            ):
                self._generation += 1
                self._finish_load(LifecycleState.UNINITIALIZED)

    def _finish_load(self, state: LifecycleState) -> None:
        # Caller holds self._state_lock
        self._state = state
        self._load_future = None
        self._committing = None
        self._load_done.set()

    def _wait_for_load(self) -> None:
        if self._worker.is_worker_thread():
            return
        self._load_done.wait()

    # Saving

    def _get_io_lock(self) -> asyncio.Lock:
        # Only called on the worker loop
        if self._io_lock is None:
            self._io_lock = asyncio.Lock()
        return self._io_lock

    def _on_inner_changed(self, store: DataStore, event: ChangeEvent) -> None:
        if self._closed or event.origin == LOAD_ORIGIN:
            return

        try:
            self._schedule_save()
        except InvalidOperationError as e:
            logger.debug(f"Save not scheduled: {e}")

    def _on_entity_changed(self, entity: Any) -> None:
        if self._closed:
            return

        try:
            future = self._worker.submit(self._update(entity))
        except InvalidOperationError as e:
            logger.debug(f"Update not scheduled: {e}")
            return
        self._track(future)

    def _schedule_save(self) -> concurrent.futures.Future:
        with self._save_lock:
            # A save that has not started yet takes its snapshot later and
            # therefore covers this request too
            if self._queued_save is not None:
                return self._queued_save

            future = self._worker.submit(self._save())
            self._queued_save = future
            self._pending.add(future)

        future.add_done_callback(self._on_save_done)
        return future

    def _track(self, future: concurrent.futures.Future) -> None:
        with self._save_lock:
            self._pending.add(future)
        future.add_done_callback(self._on_save_done)

    def _on_save_done(self, future: concurrent.futures.Future) -> None:
        with self._save_lock:
            self._pending.discard(future)
            if self._queued_save is future:
                self._queued_save = None

    async def _save(self) -> None:
        async with self._get_io_lock():
            with self._save_lock:
                self._queued_save = None

            items = self._inner.items
            try:
                await self._strategy.save_all(items)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise self._report_save_error(f"Failed to save {len(items)} items: {e}", e) from e

        logger.debug(f"Saved {len(items)} items via {self._strategy!r}")

    async def _update(self, entity: Any) -> None:
        async with self._get_io_lock():
            try:
                await self._strategy.update_single(entity)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                raise self._report_save_error(f"Failed to update {entity!r}: {e}", e) from e

    def _report_save_error(self, message: str, cause: Exception) -> SaveError:
        error = SaveError(message, cause)
        self._last_save_error = error
        logger.error(message)

        if self._on_save_error is not None:
            try:
                self._on_save_error(error)
            except Exception as e:
                logger.error(f"Save error callback failed: {e}", exc_info=True)
        return error

    async def save(self) -> None:
        """
        Save the current snapshot and wait for the save to finish.

        Raises:
            SaveError: If the strategy failed to save
        """
        if self._closed:
            raise InvalidOperationError("Cannot save a closed store")
        # The save may be shared with auto-saves; cancelling this caller must not cancel it
        await asyncio.shield(asyncio.wrap_future(self._schedule_save()))

    async def flush(self) -> List[SaveError]:
        """
        Wait until every outstanding save and update has finished.

        Returns:
            Errors of the saves that failed while flushing
        """
        errors: List[SaveError] = []
        while True:
            with self._save_lock:
                pending = list(self._pending)
            if not pending:
                return errors

            results = await asyncio.shield(asyncio.gather(
                *(asyncio.wrap_future(future) for future in pending),
                return_exceptions=True
            ))
            errors.extend(result for result in results if isinstance(result, SaveError))

    # Lifecycle

    def close(self) -> None:
        """Detach from the inner store, stop the worker and release the strategy"""
        with self._state_lock:
            if self._closed:
                return
            self._closed = True

        try:
            if self._auto_save_on_change:
                self._inner.unsubscribe(self._on_inner_changed)
            if self._binder is not None:
                self._binder.close()

            self._worker.stop()
            self._load_done.set()
            self._strategy.close()
            logger.debug(f"Closed persistent store for {self._strategy!r}")
        except Exception as e:
            logger.warning(f"Error while closing persistent store: {e}")

    def __enter__(self) -> 'PersistentStoreDecorator':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    async def __aenter__(self) -> 'PersistentStoreDecorator':
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.flush()
        self.close()

    def __repr__(self) -> str:
        return (
            f"PersistentStoreDecorator(state={self.state.value}, "
            f"count={len(self.items)}, strategy={self._strategy!r})"
        )
