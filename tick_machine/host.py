"""Hosts: the owner that commits snapshots and decides batch boundaries.

A machine never runs its own effects. It publishes every new snapshot to
its host and asks the host to schedule the effect pass. The host commits
the latest snapshot of each machine to its observers once per batch, then
runs the scheduled callbacks once each. Work scheduled while a batch runs
lands in the next batch.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from tick_machine.config import HostConfig
from tick_machine.types import Snapshot, UpdateDepthError

logger = logging.getLogger(__name__)

Observer = Callable[[Snapshot], None]


class Host(Protocol):
    def publish(self, source: object, snapshot: Snapshot) -> None: ...

    def schedule(self, callback: Callable[[], None]) -> None: ...


class BatchHost:
    """Deterministic host. Nothing happens until ``flush()`` is called.

    Several machines may share one host. Each publisher's latest snapshot
    is committed once per batch, in the order publishers first published.
    """

    def __init__(self, config: HostConfig | None = None) -> None:
        self.config: HostConfig = config if config is not None else HostConfig()
        self._observers: list[Observer] = []
        self._queue: list[Callable[[], None]] = []
        self._published: dict[object, Snapshot] = {}  # publisher -> latest snapshot
        self._tick_number = 0
        self._flushing = False

    @property
    def tick_number(self) -> int:
        """Number of batches run so far."""
        return self._tick_number

    @property
    def pending(self) -> bool:
        return bool(self._published) or bool(self._queue)

    def subscribe(self, observer: Observer) -> None:
        self._observers.append(observer)

    def unsubscribe(self, observer: Observer) -> None:
        try:
            self._observers.remove(observer)
        except ValueError:
            pass

    def publish(self, source: object, snapshot: Snapshot) -> None:
        """Record ``snapshot`` as the latest one from ``source``."""
        self._published[source] = snapshot

    def schedule(self, callback: Callable[[], None]) -> None:
        """Queue ``callback`` for the next batch. Duplicates collapse."""
        if callback not in self._queue:
            self._queue.append(callback)

    def flush(self) -> int:
        """Run batches until nothing is pending. Returns the number run.

        A flush requested from inside a running batch returns 0; the outer
        flush picks up the new work. Raises UpdateDepthError after
        ``config.max_depth`` batches. If an observer or callback raises,
        the callbacks of that batch that did not run yet stay queued for
        the next flush.
        """
        if self._flushing:
            return 0
        self._flushing = True
        batches = 0
        try:
            while self.pending:
                if batches >= self.config.max_depth:
                    raise UpdateDepthError(batches)
                batches += 1
                self._run_batch()
        finally:
            self._flushing = False
        return batches

    def _run_batch(self) -> None:
        self._tick_number += 1
        snapshots, self._published = self._published, {}
        batch, self._queue = self._queue, []
        logger.debug(
            "Batch %d: %d commits, %d scheduled",
            self._tick_number, len(snapshots), len(batch),
        )
        started = 0
        try:
            for snapshot in snapshots.values():
                for observer in list(self._observers):
                    observer(snapshot)
            for callback in batch:
                started += 1
                callback()
        finally:
            leftover = [cb for cb in batch[started:] if cb not in self._queue]
            self._queue[:0] = leftover


class LoopHost(BatchHost):
    """Host driven by an asyncio event loop.

    Publishing or scheduling arranges a ``flush`` with ``loop.call_soon``,
    so everything done synchronously in the current callback forms one
    batch. Without an explicit ``loop`` the running loop is used.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        config: HostConfig | None = None,
    ) -> None:
        super().__init__(config)
        self._loop = loop
        self._handle: asyncio.Handle | None = None

    def publish(self, source: object, snapshot: Snapshot) -> None:
        super().publish(source, snapshot)
        self._arm()

    def schedule(self, callback: Callable[[], None]) -> None:
        super().schedule(callback)
        self._arm()

    def close(self) -> None:
        """Cancel a pending flush. Queued work is dropped."""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._queue.clear()
        self._published.clear()

    def _arm(self) -> None:
        if self._handle is not None or self._flushing:
            return
        loop = self._loop if self._loop is not None else asyncio.get_running_loop()
        self._handle = loop.call_soon(self._run)

    def _run(self) -> None:
        self._handle = None
        self.flush()
