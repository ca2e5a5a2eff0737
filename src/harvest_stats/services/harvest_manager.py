"""Write-behind cache of per-player harvest statistics.

The manager keeps every tracked player's ``HarvestRecord`` in memory and
persists changes through a ``HarvestStorage`` backend without blocking the
caller:

- ``record_harvest`` / ``record_quality_item`` mutate the resident record and
  mark the player dirty with the time of the *oldest* unflushed mutation.
- A background task sweeps the dirty index once per tick and dispatches a
  save for every player dirty for at least ``flush_delay_seconds`` to a
  bounded thread pool. The entry is dropped from the dirty index before the
  save runs; a crash in between loses at most that one flush window.
- A failed save is logged and not retried; the player is saved again only if
  it is touched again. ``stop()`` saves every resident record, dirty or not.
- While no backend is ready (before ``start``, or between ``stop`` and the
  next ``start``) a first reference creates an empty, *unloaded* record.
  Unloaded records are never saved; ``start`` adds the stored counts to them
  once the new backend is initialized.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable, Iterable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import wait as wait_futures
from threading import Event, Lock
from uuid import UUID

from harvest_stats.core.settings import Settings
from harvest_stats.models import HarvestRecord
from harvest_stats.storage import HarvestStorage, NullStorage, StorageError, create_storage

# Configure logger for this module
logger = logging.getLogger(__name__)


class HarvestDataManager:
    """Owns the resident records, the dirty index and the storage backend.

    Lookups and mutations are plain methods safe to call from any thread.
    ``start``, ``stop``, ``reload`` and the presence hooks are coroutines run
    on the host's event loop.
    """

    def __init__(
        self,
        config: Settings,
        *,
        storage_factory: Callable[[Settings], HarvestStorage] = create_storage,
        online_entities: Callable[[], Iterable[UUID]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the manager; nothing is connected until ``start``.

        Args:
            config: Harvest settings, read again on every ``start``
            storage_factory: Builds the backend from the settings
            online_entities: Returns the players active when ``start`` runs
            clock: Monotonic seconds used to age dirty entries
        """
        self._config = config
        self._storage_factory = storage_factory
        self._online_entities = online_entities
        self._clock = clock

        self._storage: HarvestStorage = NullStorage()
        self._resident: dict[UUID, HarvestRecord] = {}
        self._dirty: dict[UUID, float] = {}
        self._load_locks: dict[UUID, Lock] = {}
        self._unloaded: set[UUID] = set()
        self._storage_ready = Event()

        self._executor: ThreadPoolExecutor | None = None
        self._in_flight: set[Future[bool]] = set()
        self._in_flight_lock = Lock()

        self._task: asyncio.Task[None] | None = None
        self._stopping = asyncio.Event()
        self._pending_evictions: dict[UUID, asyncio.TimerHandle] = {}
        self._running = False
        self._read_timings(config)

    def _read_timings(self, config: Settings) -> None:
        self._flush_delay = float(config.flush_delay_seconds)
        self._keep_after_quit = float(config.keep_after_quit_seconds)
        self._flush_interval = max(0.01, float(config.flush_interval_seconds))
        self._shutdown_timeout = float(config.shutdown_timeout_seconds)

    # --- Diagnostics ----------------------------------------------------------------
    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def storage_kind(self) -> str:
        return self._storage.kind()

    @property
    def storage_available(self) -> bool:
        return self._storage.available

    @property
    def resident_count(self) -> int:
        return len(self._resident)

    @property
    def dirty_count(self) -> int:
        return len(self._dirty)

    def dirty_since(self, player_id: UUID) -> float | None:
        """Return the clock reading of the oldest unflushed mutation, if any."""
        return self._dirty.get(player_id)

    # --- Lookup ---------------------------------------------------------------------
    def get(self, player_id: UUID) -> HarvestRecord | None:
        """Return the resident record without ever touching storage."""
        return self._resident.get(player_id)

    def get_or_create(self, player_id: UUID) -> HarvestRecord:
        """Return the resident record, loading it from storage on first use.

        The load runs on the calling thread. Concurrent first references to
        the same player share a single load and receive the same record.
        Without a ready backend the record starts empty and unloaded.
        """
        record = self._resident.get(player_id)
        if record is not None:
            return record

        lock = self._load_locks.setdefault(player_id, Lock())
        with lock:
            record = self._resident.get(player_id)
            if record is None:
                record = self._load_if_ready(player_id)
                self._resident[player_id] = record
        self._load_locks.pop(player_id, None)
        return record

    def _load_if_ready(self, player_id: UUID) -> HarvestRecord:
        if self._storage_ready.is_set():
            record = self._load_or_new(player_id)
            # Storage may have been stopped while the load ran.
            if self._storage_ready.is_set():
                return record
        self._unloaded.add(player_id)
        return HarvestRecord(player_id)

    def _load_or_new(self, player_id: UUID) -> HarvestRecord:
        try:
            record = self._storage.load(player_id)
        except StorageError:
            logger.exception("Failed to load harvest data for player %s; starting empty", player_id)
            record = None
        if record is None:
            record = HarvestRecord(player_id)
        return record

    def load_player(self, player_id: UUID) -> None:
        """Make sure a player's record is resident."""
        if player_id not in self._resident:
            self.get_or_create(player_id)

    # --- Mutation -------------------------------------------------------------------
    def record_harvest(self, player_id: UUID, crop_id: str, amount: int = 1) -> None:
        """Count ``amount`` harvests of ``crop_id`` for a player."""
        record = self.get_or_create(player_id)
        if amount <= 0:
            return
        record.add_harvest(crop_id, amount)
        self._mark_dirty(player_id)

    def record_quality_item(self, player_id: UUID, item_id: str, amount: int = 1) -> None:
        """Count ``amount`` obtained quality items ``item_id`` for a player."""
        record = self.get_or_create(player_id)
        if amount <= 0:
            return
        record.add_quality_item(item_id, amount)
        self._mark_dirty(player_id)

    def _mark_dirty(self, player_id: UUID) -> None:
        # setdefault keeps the oldest timestamp, bounding staleness.
        self._dirty.setdefault(player_id, self._clock())

    def evict(self, player_id: UUID) -> HarvestRecord | None:
        """Drop a player from memory immediately; unflushed changes are lost."""
        self._dirty.pop(player_id, None)
        self._unloaded.discard(player_id)
        return self._resident.pop(player_id, None)

    def _saveable(self, player_id: UUID) -> HarvestRecord | None:
        if player_id in self._unloaded:
            return None
        return self._resident.get(player_id)

    # --- Read helpers (never load) --------------------------------------------------
    def harvest_count(self, player_id: UUID, crop_id: str) -> int:
        record = self.get(player_id)
        return record.harvest_count(crop_id) if record is not None else 0

    def total_harvests(self, player_id: UUID) -> int:
        record = self.get(player_id)
        return record.total_harvests if record is not None else 0

    def has_harvested(self, player_id: UUID, crop_id: str) -> bool:
        record = self.get(player_id)
        return record is not None and record.has_harvested(crop_id)

    def quality_item_count(self, player_id: UUID, item_id: str) -> int:
        record = self.get(player_id)
        return record.quality_item_count(item_id) if record is not None else 0

    def has_quality_item(self, player_id: UUID, item_id: str) -> bool:
        record = self.get(player_id)
        return record is not None and record.has_quality_item(item_id)

    def unique_crops(self, player_id: UUID) -> int:
        record = self.get(player_id)
        return len(record.harvests) if record is not None else 0

    def unique_quality_items(self, player_id: UUID) -> int:
        record = self.get(player_id)
        return len(record.quality_items) if record is not None else 0

    # --- Persistence ----------------------------------------------------------------
    def flush_dirty(self, now: float | None = None) -> list[Future[bool]]:
        """Dispatch saves for players dirty for at least the flush delay.

        Returns:
            Futures of the dispatched saves, resolving to True on success
        """
        now = self._clock() if now is None else now
        dispatched: list[Future[bool]] = []
        for player_id, dirty_since in list(self._dirty.items()):
            if now - dirty_since < self._flush_delay or player_id in self._unloaded:
                continue
            if self._dirty.pop(player_id, None) is None:
                continue
            record = self._resident.get(player_id)
            if record is not None:
                dispatched.append(self._dispatch_save(record))
        return dispatched

    def flush_all(self) -> int:
        """Save every loaded resident record synchronously, dirty or not.

        Returns:
            Number of records saved successfully
        """
        if not self._resident:
            return 0

        logger.info("Flushing all harvest data...")
        saved = attempted = 0
        for player_id in list(self._resident):
            record = self._saveable(player_id)
            if record is None:
                continue
            self._dirty.pop(player_id, None)
            attempted += 1
            if self._save_quietly(self._storage, record):
                saved += 1
        logger.info("All harvest data flushed (%d/%d saved)", saved, attempted)
        return saved

    def _dispatch_save(self, record: HarvestRecord) -> Future[bool]:
        storage = self._storage
        executor = self._executor
        if executor is not None:
            try:
                future = executor.submit(self._save_quietly, storage, record)
            except RuntimeError:
                logger.warning("Save pool is shut down; saving %s inline", record.player_id)
            else:
                with self._in_flight_lock:
                    self._in_flight.add(future)
                future.add_done_callback(self._forget_save)
                return future

        done: Future[bool] = Future()
        done.set_result(self._save_quietly(storage, record))
        return done

    def _forget_save(self, future: Future[bool]) -> None:
        with self._in_flight_lock:
            self._in_flight.discard(future)

    @staticmethod
    def _save_quietly(storage: HarvestStorage, record: HarvestRecord) -> bool:
        try:
            storage.save(record)
        except StorageError:
            logger.exception("Failed to save harvest data for player %s", record.player_id)
            return False
        return True

    # --- Lifecycle ------------------------------------------------------------------
    async def start(self) -> None:
        """Initialize storage, load active players and begin periodic flushing."""
        if self._running:
            return

        self._read_timings(self._config)
        storage = self._storage_factory(self._config)
        await asyncio.to_thread(storage.initialize)
        self._storage = storage

        self._executor = ThreadPoolExecutor(
            max_workers=self._config.save_workers,
            thread_name_prefix="harvest-save",
        )
        self._running = True
        self._storage_ready.set()
        if self._unloaded:
            await asyncio.to_thread(self._merge_unloaded, storage)

        if self._online_entities is not None:
            online = list(self._online_entities())
            if online:
                await asyncio.to_thread(self._preload, online)

        self._stopping = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="harvest-data-flush")
        logger.info("HarvestDataManager loaded with %s storage", self._storage.kind())

    def _merge_unloaded(self, storage: HarvestStorage) -> None:
        """Add stored counts to records created while no backend was ready."""
        while self._unloaded:
            for player_id in list(self._unloaded):
                record = self._resident.get(player_id)
                stored = None
                if record is not None:
                    try:
                        stored = storage.load(player_id)
                    except StorageError:
                        logger.exception(
                            "Failed to load harvest data for player %s; keeping in-memory counts",
                            player_id,
                        )
                if stored is not None:
                    record.merge_counts(stored.harvests, stored.quality_items)
                self._unloaded.discard(player_id)

    def _preload(self, player_ids: Iterable[UUID]) -> None:
        for player_id in player_ids:
            self.load_player(player_id)

    async def _run(self) -> None:
        while not self._stopping.is_set():
            try:
                self.flush_dirty()
            except RuntimeError:
                logger.exception("Harvest flush sweep failed")
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self._flush_interval)
            except asyncio.TimeoutError:
                continue

    async def stop(self) -> None:
        """Flush everything, stop background work and release storage.

        In-flight saves get ``shutdown_timeout_seconds`` to finish; whatever
        is still pending afterwards is abandoned and logged. Records first
        referenced once stopping began stay resident, unloaded, until the
        next ``start``.
        """
        if not self._running:
            return
        self._running = False
        self._storage_ready.clear()

        for handle in self._pending_evictions.values():
            handle.cancel()
        self._pending_evictions.clear()

        self._stopping.set()
        if self._task is not None:
            try:
                await asyncio.wait_for(self._task, timeout=self._shutdown_timeout)
            except asyncio.TimeoutError:
                logger.warning(
                    "Harvest flush task did not stop within %.1fs; cancelled",
                    self._shutdown_timeout,
                )
            self._task = None

        executor, self._executor = self._executor, None
        if executor is not None:
            await asyncio.to_thread(self._drain, executor)

        await asyncio.to_thread(self.flush_all)
        self._storage.close()

        for player_id in list(self._resident):
            if player_id not in self._unloaded:
                self._resident.pop(player_id, None)
                self._dirty.pop(player_id, None)
        self._load_locks.clear()

    def _drain(self, executor: ThreadPoolExecutor) -> None:
        with self._in_flight_lock:
            pending = set(self._in_flight)
        if pending:
            _, not_done = wait_futures(pending, timeout=self._shutdown_timeout)
            if not_done:
                logger.warning(
                    "Abandoning %d harvest saves still running after %.1fs",
                    len(not_done),
                    self._shutdown_timeout,
                )
        executor.shutdown(wait=False, cancel_futures=True)

    async def reload(self, config: Settings | None = None) -> None:
        """Restart with a new storage backend, optionally with new settings."""
        await self.stop()
        if config is not None:
            self._config = config
        await self.start()

    # --- Player presence ------------------------------------------------------------
    async def on_entity_join(self, player_id: UUID) -> HarvestRecord:
        """Load a player who became active, keeping a record awaiting eviction."""
        pending = self._pending_evictions.pop(player_id, None)
        if pending is not None:
            pending.cancel()
        return await asyncio.to_thread(self.get_or_create, player_id)

    async def on_entity_quit(self, player_id: UUID) -> None:
        """Save a departing player now and evict after the grace period."""
        record = self._saveable(player_id)
        if record is not None:
            self._dirty.pop(player_id, None)
            self._dispatch_save(record)

        previous = self._pending_evictions.pop(player_id, None)
        if previous is not None:
            previous.cancel()

        if self._keep_after_quit > 0:
            loop = asyncio.get_running_loop()
            self._pending_evictions[player_id] = loop.call_later(
                self._keep_after_quit, self._expire, player_id
            )
        else:
            self.evict(player_id)

    def _expire(self, player_id: UUID) -> None:
        self._pending_evictions.pop(player_id, None)
        if player_id in self._dirty:
            record = self._saveable(player_id)
            if record is not None:
                self._dispatch_save(record)
        self.evict(player_id)
