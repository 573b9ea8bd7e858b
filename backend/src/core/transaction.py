"""
Transaction scope for multi-step booking operations.

A TransactionScope wraps one SQLAlchemy session and gives the booking flow a
single commit point:

    with TransactionScope(db) as scope:
        BookingService.create_booking(scope, ...)

Leaving the block normally commits; any exception rolls back every write made
through the scope and is re-raised. Callbacks registered with `after_commit`
run only once the commit has succeeded, and their failures are logged, never
propagated.

Check-then-insert on a resource must be serialized. On databases with row
locks (PostgreSQL) `lock_resource` issues SELECT ... FOR UPDATE on the
resource row. SQLite has no row locks, so a process-wide mutex keyed by
(resource_type, resource_id) is held until the scope ends instead.
"""

import logging
import threading
from typing import Callable, Dict, List, Optional, Tuple, Type

from sqlalchemy.orm import Session

from core.exceptions import ConflictError

logger = logging.getLogger(__name__)

ResourceKey = Tuple[str, int]

# Seconds to wait for another booking holding the same resource
RESOURCE_LOCK_TIMEOUT_SECONDS = 30.0


class ResourceLockRegistry:
    """Process-wide registry of per-resource mutexes."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[ResourceKey, threading.Lock] = {}

    def get(self, key: ResourceKey) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._locks[key] = lock
            return lock


resource_locks = ResourceLockRegistry()


class TransactionScope:
    """Single commit/abort point threaded through the booking steps."""

    def __init__(self, session: Session, lock_registry: Optional[ResourceLockRegistry] = None):
        self.session = session
        self._lock_registry = lock_registry or resource_locks
        self._held: Dict[ResourceKey, threading.Lock] = {}
        self._after_commit: List[Callable[[], None]] = []
        self._finished = False

    def __enter__(self) -> "TransactionScope":
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        try:
            if exc_type is None:
                try:
                    self.commit()
                except Exception:
                    self.rollback()
                    raise
            else:
                self.rollback()
        finally:
            self._release_all()
        if exc_type is None:
            self._run_after_commit()
        return False

    @property
    def supports_row_locks(self) -> bool:
        """True when the backing database honours SELECT ... FOR UPDATE."""
        return self.session.get_bind().dialect.name != "sqlite"

    def lock_resource(self, resource_type: str, resource_id: int, model: Type) -> None:
        """
        Serialize check-then-insert for one resource until the scope ends.

        Args:
            resource_type: Ledger resource type ("room" or "employee")
            resource_id: Primary key of the resource row
            model: Mapped class holding the resource row (Room or User)

        Raises:
            ConflictError: If another booking holds the resource past the timeout
        """
        key = (resource_type, resource_id)
        if key in self._held:
            return

        if self.supports_row_locks:
            self.session.query(model).filter(model.id == resource_id).with_for_update().first()
            self._held[key] = None  # type: ignore[assignment]
            return

        lock = self._lock_registry.get(key)
        if not lock.acquire(timeout=RESOURCE_LOCK_TIMEOUT_SECONDS):
            logger.warning(f"Timed out waiting for lock on {resource_type} {resource_id}")
            raise ConflictError("Resource is busy, please try again")
        self._held[key] = lock

    def unlock_resource(self, resource_type: str, resource_id: int) -> None:
        """
        Give up a resource that turned out not to be needed.

        Row locks cannot be dropped before the transaction ends, so this only
        releases the in-process mutex.
        """
        lock = self._held.pop((resource_type, resource_id), None)
        if lock is not None:
            lock.release()

    def after_commit(self, callback: Callable[[], None]) -> None:
        """Register a side effect to run after a successful commit."""
        self._after_commit.append(callback)

    def flush(self) -> None:
        self.session.flush()

    def commit(self) -> None:
        if self._finished:
            return
        self.session.commit()
        self._finished = True

    def rollback(self) -> None:
        if self._finished:
            return
        self.session.rollback()
        self._finished = True

    def _release_all(self) -> None:
        for lock in self._held.values():
            if lock is not None:
                lock.release()
        self._held.clear()

    def _run_after_commit(self) -> None:
        callbacks, self._after_commit = self._after_commit, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.exception(f"Post-commit side effect failed: {e}")
