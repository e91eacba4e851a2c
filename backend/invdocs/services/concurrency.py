# Overview: Locking and retry helpers shared by the ledger, numbering and activity services.

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from typing import Hashable

from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from ..extensions import db
from ..validation import ConflictError, StoreUnavailableError


_registry_guard = threading.Lock()
_key_locks: dict[Hashable, threading.Lock] = {}


def _lock_for_key(key: Hashable) -> threading.Lock:
    with _registry_guard:
        lock = _key_locks.get(key)
        if lock is None:
            lock = threading.Lock()
            _key_locks[key] = lock
        return lock


@contextmanager
def keyed_lock(key: Hashable):
    """
    Serialize a read-then-write sequence per key inside this process.

    Used together with lock_for_update(): SQLite ignores SELECT ... FOR UPDATE,
    so the in-process lock is what closes the race on a single worker.
    """
    lock = _lock_for_key(key)
    with lock:
        yield


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    NOTE: SQLite ignores SELECT ... FOR UPDATE, but other DBs will honor it.
    """
    return query.with_for_update()


def run_with_retry(func, *, attempts: int = 3, backoff_base: float = 0.1):
    """
    Execute a DB operation with retry on concurrency-related failures.

    Retries on OperationalError (deadlocks, locks) and StaleDataError
    (optimistic locking conflicts). When the last attempt still fails the
    error is surfaced as StoreUnavailableError / ConflictError.
    """
    for attempt in range(attempts):
        try:
            return func()
        except OperationalError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise StoreUnavailableError("Database unavailable") from exc
        except StaleDataError as exc:
            db.session.rollback()
            if attempt >= attempts - 1:
                raise ConflictError("Record was modified concurrently; retry the request") from exc
        time.sleep(backoff_base * (2 ** attempt))

