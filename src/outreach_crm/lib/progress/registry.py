"""Observable in-memory registry of job progress snapshots.

One registry exists per job kind.  It maps ``job_id`` to the last snapshot
received for that job and notifies subscribers after each change, so any
consumer can react to progress without polling.
"""

from __future__ import annotations

from collections.abc import Callable, Iterator
from typing import Generic, TypeVar

from loguru import logger

from outreach_crm.lib.progress.types import SNAPSHOT_TYPES, ExportProgress, ImportProgress, JobKind

S = TypeVar("S", ImportProgress, ExportProgress)

RegistryListener = Callable[[str, S], None]


class JobRegistry(Generic[S]):
    """Last-write-wins mapping of job id to progress snapshot.

    Each incoming payload replaces the stored snapshot wholesale.  When both
    the stored and the incoming snapshot carry a backend ``seq`` number, an
    incoming snapshot with a lower ``seq`` is dropped as stale.
    """

    def __init__(self, kind: JobKind) -> None:
        self.kind = kind
        self._snapshot_type = SNAPSHOT_TYPES[kind]
        self._entries: dict[str, S] = {}
        self._listeners: list[RegistryListener[S]] = []

    def on_event(self, payload: object) -> S | None:
        """Merge a raw progress payload into the registry.

        Args:
            payload: Raw ``<kind>:progress`` event payload.

        Returns:
            The stored snapshot, or None if the payload was malformed or stale.
        """
        snapshot = self._snapshot_type.from_payload(payload)
        if snapshot is None:
            return None
        return self.put(snapshot)  # type: ignore[arg-type]

    def put(self, snapshot: S) -> S | None:
        """Store an already-parsed snapshot and notify subscribers.

        Args:
            snapshot: Snapshot to store under its ``job_id``.

        Returns:
            The stored snapshot, or None if it was dropped as stale.
        """
        previous = self._entries.get(snapshot.job_id)
        if previous is not None and previous.seq is not None and snapshot.seq is not None:
            if snapshot.seq < previous.seq:
                logger.debug(
                    "Dropping stale {} snapshot for {} (seq {} < {})",
                    self.kind,
                    snapshot.job_id,
                    snapshot.seq,
                    previous.seq,
                )
                return None

        self._entries[snapshot.job_id] = snapshot
        for listener in list(self._listeners):
            try:
                listener(snapshot.job_id, snapshot)
            except Exception:
                logger.exception("Registry listener failed for {} job {}", self.kind, snapshot.job_id)
        return snapshot

    def get(self, job_id: str) -> S | None:
        """Return the latest snapshot for a job, or None if nothing was observed."""
        return self._entries.get(job_id)

    def snapshot(self) -> dict[str, S]:
        """Return a copy of the whole job-id to snapshot mapping."""
        return dict(self._entries)

    def subscribe(self, listener: RegistryListener[S]) -> Callable[[], None]:
        """Register a change listener.

        Args:
            listener: Called as ``listener(job_id, snapshot)`` after each change.

        Returns:
            A function that removes the listener; safe to call more than once.
        """
        self._listeners.append(listener)
        active = True

        def unsubscribe() -> None:
            nonlocal active
            if not active:
                return
            active = False
            self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        """Forget every stored snapshot."""
        self._entries.clear()

    def __contains__(self, job_id: object) -> bool:
        return job_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)
