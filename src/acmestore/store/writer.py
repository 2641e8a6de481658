"""Background writer persisting store snapshots to the object backend.

A single daemon thread drains a FIFO queue of :class:`StoredData`
references, one at a time, in submission order.  Each item is encoded
as a whole and written with create-or-update; partial updates never
happen.

Queue items are references to the live record, not copies, so a write
carries whatever the record holds when the item is dequeued.  Several
rapid mutations may therefore land in one physical write.  Consecutive
queued references to the same record are drained together and written
once, so the backend can see fewer writes than mutations, and an
intermediate state that is superseded quickly may never be persisted
on its own.

A failed write is logged and dropped: it is neither retried nor
re-enqueued.  The next mutation's write carries the latest state
forward.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from typing import TYPE_CHECKING

from acmestore.backends.base import Blob
from acmestore.core import codec
from acmestore.core.errors import StoreError

if TYPE_CHECKING:
    from contextlib import AbstractContextManager

    from acmestore.backends.base import ObjectBackend
    from acmestore.models import StoredData

log = logging.getLogger(__name__)

_STOP = object()

# Re-check for a stop while waiting on a full queue
_FULL_POLL_SECONDS = 0.1


class PersistenceWriter:
    """Daemon thread that serially writes snapshots to the backend.

    Parameters
    ----------
    backend:
        The remote object backend.
    namespace:
        Namespace of the backing object.
    name:
        Name of the backing object.
    data_key:
        Key inside the object holding the encoded payload.
    lock:
        The store lock; held while a snapshot is encoded so the writer
        never reads a half-mutated record.  Never held across I/O.
    queue_size:
        Maximum number of pending writes; ``0`` means unbounded.  A full
        queue blocks the submitting caller rather than dropping a write.

    """

    def __init__(
        self,
        backend: ObjectBackend,
        namespace: str,
        name: str,
        data_key: str,
        lock: AbstractContextManager,
        queue_size: int = 0,
    ) -> None:
        self._backend = backend
        self._namespace = namespace
        self._name = name
        self._data_key = data_key
        self._lock = lock
        self._queue: queue.Queue = queue.Queue(maxsize=queue_size)
        self._thread: threading.Thread | None = None
        self._state_lock = threading.Lock()
        self._closed = False
        self._stats_lock = threading.Lock()
        self._writes_ok = 0
        self._writes_failed = 0

    # -- metrics properties ------------------------------------------------

    @property
    def writes_ok(self) -> int:
        """Number of snapshots written successfully."""
        with self._stats_lock:
            return self._writes_ok

    @property
    def writes_failed(self) -> int:
        """Number of snapshots whose write failed."""
        with self._stats_lock:
            return self._writes_failed

    @property
    def pending(self) -> int:
        """Approximate number of snapshots waiting to be written."""
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    # -- lifecycle ---------------------------------------------------------

    def start(self) -> None:
        """Start the background writer thread."""
        if self.is_running:
            return
        if self._closed:
            msg = f"writer for {self._namespace}/{self._name} is closed"
            raise StoreError(msg)
        self._thread = threading.Thread(
            target=self._run,
            name=f"acmestore-writer-{self._namespace}",
            daemon=True,
        )
        self._thread.start()
        log.info(
            "Persistence writer started for %s/%s",
            self._namespace,
            self._name,
        )

    def stop(self, timeout: float | None = None) -> None:
        """Write everything already queued, then stop the thread.

        Once stopped the writer refuses new submissions; callers blocked
        on a full queue are released with :class:`StoreError`.
        """
        with self._state_lock:
            if self._closed:
                return
            self._closed = True
        if not self.is_running:
            return
        try:
            self._queue.put(_STOP, timeout=timeout)
        except queue.Full:
            log.warning(
                "Persistence writer for %s/%s still busy after %ss (%d pending)",
                self._namespace,
                self._name,
                timeout,
                self.pending,
            )
            return
        self._thread.join(timeout=timeout)  # type: ignore[union-attr]
        if self._thread.is_alive():  # type: ignore[union-attr]
            log.warning(
                "Persistence writer for %s/%s did not stop within %ss (%d pending)",
                self._namespace,
                self._name,
                timeout,
                self.pending,
            )
        else:
            log.info("Persistence writer stopped for %s/%s", self._namespace, self._name)

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, data: StoredData) -> None:
        """Queue *data* for persistence.

        Blocks while the queue is full.  Raises :class:`StoreError` once
        the writer has been stopped.
        """
        while True:
            with self._state_lock:
                if self._closed:
                    msg = f"store {self._namespace}/{self._name} is closed"
                    raise StoreError(msg)
                try:
                    self._queue.put_nowait(data)
                except queue.Full:
                    pass
                else:
                    return
            with self._queue.not_full:
                if self._queue.full():
                    self._queue.not_full.wait(_FULL_POLL_SECONDS)

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every submitted snapshot has been handled.

        Returns ``False`` if *timeout* elapsed first.
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        with self._queue.all_tasks_done:
            while self._queue.unfinished_tasks:
                if deadline is None:
                    self._queue.all_tasks_done.wait()
                    continue
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    return False
                self._queue.all_tasks_done.wait(remaining)
        return True

    # -- worker ------------------------------------------------------------

    def _run(self) -> None:
        """Main worker loop."""
        carry = None
        while True:
            item = self._queue.get() if carry is None else carry
            carry = None
            if item is _STOP:
                self._queue.task_done()
                return

            # Later requests for the same record are served by this write.
            taken = 1
            while True:
                try:
                    nxt = self._queue.get_nowait()
                except queue.Empty:
                    break
                if nxt is not item:
                    carry = nxt
                    break
                taken += 1

            try:
                self._write(item, taken)
            finally:
                for _ in range(taken):
                    self._queue.task_done()

    def _write(self, data: StoredData, requests: int = 1) -> None:
        if requests > 1:
            log.debug("Coalescing %d queued writes into one", requests)
        try:
            with self._lock:
                payload = codec.encode(data)
            self.store(payload)
        except Exception:
            with self._stats_lock:
                self._writes_failed += 1
            log.exception(
                "Failed to persist ACME state to %s/%s",
                self._namespace,
                self._name,
                extra={"namespace": self._namespace, "secret": self._name},
            )
        else:
            with self._stats_lock:
                self._writes_ok += 1

    def store(self, payload: bytes) -> None:
        """Create or wholesale-update the backing object with *payload*."""
        blob = Blob(
            name=self._name,
            namespace=self._namespace,
            data={self._data_key: payload},
        )
        if self._backend.exists(self._namespace, self._name):
            self._backend.update(blob)
            log.debug("Updated %s/%s (%d bytes)", self._namespace, self._name, len(payload))
        else:
            self._backend.create(blob)
            log.info("Created %s/%s (%d bytes)", self._namespace, self._name, len(payload))
