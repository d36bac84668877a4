# =============================================================================
# pos_core/offline/sync_engine.py
# Queue of offline writes and their replay to a remote backend
# =============================================================================
"""
SyncQueue - writes that landed on the local store while a remote backend was
unusable, kept in order until they can be replayed.

Entries persist under ``charnoks_sync_queue`` as JSON:

    {"data_type": "transactions", "payload": {...draft...},
     "enqueued_at_ms": 1718000000000, "operation": "save",
     "local_id": "local-1718000000000"}

Replay is FIFO and stops at the first failure. Delivery is at-least-once: an
entry applied remotely right before a crash can be sent again.
"""

from __future__ import annotations
import threading
from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional
import logging

from pos_core.errors.exceptions import ValidationError
from pos_core.models import BackendKind, EntityType, ProductDraft, draft_from_dict
from pos_core.offline.local_database import LocalStore, StoreKeys

if TYPE_CHECKING:
    from pos_core.backends.base import StorageBackend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SyncQueueEntry:
    """One pending write."""
    data_type: str
    payload: Dict[str, Any]
    enqueued_at_ms: int
    operation: str = "save"
    local_id: Optional[str] = None

    @property
    def entity(self) -> EntityType:
        return EntityType(self.data_type)

    def to_draft(self) -> Any:
        if self.entity is EntityType.PRODUCTS:
            return ProductDraft.from_dict(self.payload)
        return draft_from_dict(self.payload)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "data_type": self.data_type,
            "payload": self.payload,
            "enqueued_at_ms": self.enqueued_at_ms,
            "operation": self.operation,
            "local_id": self.local_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> SyncQueueEntry:
        return cls(
            data_type=data["data_type"],
            payload=dict(data["payload"]),
            enqueued_at_ms=int(data["enqueued_at_ms"]),
            operation=data.get("operation", "save"),
            local_id=data.get("local_id"),
        )


@dataclass(frozen=True)
class ReplayResult:
    """Outcome of one replay pass."""
    succeeded: int
    remaining: int
    error: Optional[str] = None


class SyncQueue:
    """
    Persistent FIFO of offline writes.

    Usage:
        queue = SyncQueue(local_store)
        queue.enqueue("transactions", draft.to_dict(), local_id=txn.id)
        result = queue.replay(supabase_backend)
    """

    def __init__(self, local_store: LocalStore, clock: Callable[[], datetime] = datetime.now):
        self._store = local_store
        self._clock = clock
        self._replay_lock = threading.Lock()
        self.last_replay: Optional[datetime] = None

    @property
    def pending_count(self) -> int:
        return len(self._raw_entries())

    @property
    def is_replaying(self) -> bool:
        return self._replay_lock.locked()

    def enqueue(
        self,
        data_type: str,
        payload: Dict[str, Any],
        local_id: Optional[str] = None,
    ) -> SyncQueueEntry:
        """Append a write to the end of the queue."""
        EntityType(data_type)  # unknown types are a programming error
        entry = SyncQueueEntry(
            data_type=data_type,
            payload=payload,
            enqueued_at_ms=int(self._clock().timestamp() * 1000),
            local_id=local_id,
        )
        self._store.update_json(StoreKeys.SYNC_QUEUE, lambda queue: (queue or []) + [entry.to_dict()], [])
        logger.info(f"Queued {data_type} write for sync ({local_id or 'no local id'})")
        return entry

    def pending(self) -> List[SyncQueueEntry]:
        """Entries in replay order. Unreadable entries are skipped."""
        entries = []
        for raw in self._raw_entries():
            try:
                entries.append(SyncQueueEntry.from_dict(raw))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed sync queue entry: {e}")
        return entries

    def clear(self) -> None:
        self._store.set_json(StoreKeys.SYNC_QUEUE, [])
        logger.info("Sync queue cleared")

    def replay(self, backend: StorageBackend) -> ReplayResult:
        """
        Apply pending entries to ``backend`` in order.

        Each success is removed from the persisted queue right away and the
        local-origin record is swapped for the remote one. The first failure
        stops the pass; that entry and everything after it stay queued.
        A call made while another replay is running returns at once.
        """
        if backend.kind is BackendKind.LOCAL:
            return ReplayResult(succeeded=0, remaining=self.pending_count)

        if not self._replay_lock.acquire(blocking=False):
            logger.debug("Replay already in progress")
            return ReplayResult(succeeded=0, remaining=self.pending_count)

        succeeded = 0
        error = None
        try:
            self.last_replay = self._clock()
            entries = self.pending()
            if entries:
                logger.info(f"Replaying {len(entries)} queued writes to {backend.kind.value}")

            for entry in entries:
                try:
                    record = backend.create(entry.entity, entry.to_draft())
                except Exception as e:
                    error = str(e)
                    if isinstance(e, ValidationError):
                        logger.error(f"Queued {entry.data_type} write rejected by {backend.kind.value}: {e}")
                    else:
                        logger.warning(f"Replay stopped at {entry.local_id or entry.data_type}: {e}")
                    break

                self._remove(entry)
                succeeded += 1
                self._reconcile(entry, record)

            remaining = self.pending_count
            logger.info(f"Sync complete: {succeeded} applied, {remaining} remaining")
            return ReplayResult(succeeded=succeeded, remaining=remaining, error=error)
        finally:
            self._replay_lock.release()

    # =========================================================================
    # HELPERS
    # =========================================================================

    def _raw_entries(self) -> List[Dict[str, Any]]:
        raw = self._store.get_json(StoreKeys.SYNC_QUEUE, [])
        return raw if isinstance(raw, list) else []

    def _remove(self, entry: SyncQueueEntry) -> None:
        # Stored entries are compared in normalized form so ones written
        # without optional keys still match
        target = entry.to_dict()

        def matches(raw: Any) -> bool:
            try:
                return SyncQueueEntry.from_dict(raw).to_dict() == target
            except (KeyError, TypeError, ValueError):
                return False

        def drop_first(queue):
            queue = list(queue or [])
            for index, raw in enumerate(queue):
                if matches(raw):
                    del queue[index]
                    break
            return queue

        self._store.update_json(StoreKeys.SYNC_QUEUE, drop_first, [])

    def _reconcile(self, entry: SyncQueueEntry, record: Any) -> None:
        if not entry.local_id:
            self._store.cache(entry.entity, record)
            return
        if self._store.reconcile(entry.entity, entry.local_id, record):
            logger.debug(f"Reconciled {entry.local_id} -> {record.id}")
        else:
            logger.debug(f"{entry.local_id} no longer cached; stored {record.id}")
