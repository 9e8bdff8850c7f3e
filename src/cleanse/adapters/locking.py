"""In-process implementation of the analysis run lock.

Suitable when a single process runs passes (the CLI, tests). Deployments with
several workers need a lock backed by shared storage implementing the same port.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING, Self
from uuid import uuid4

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import timedelta
    from types import TracebackType

log = getLogger(__name__)


@dataclass(slots=True)
class _Lease:
    owner: str
    expires_at: float


class InProcessRunLock:
    """Named locks held until released or until their lease expires."""

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._guard = threading.Lock()
        self._leases: dict[str, _Lease] = {}

    def try_acquire(self, name: str, duration: timedelta) -> InProcessRunLockHandle | None:
        if not name:
            raise ValueError("Lock name is required")
        now = self._clock()
        with self._guard:
            lease = self._leases.get(name)
            if lease is not None and lease.expires_at > now:
                return None
            owner = str(uuid4())
            self._leases[name] = _Lease(owner=owner, expires_at=now + duration.total_seconds())
        log.debug("Acquired lock %r", name)
        return InProcessRunLockHandle(self, name, owner)

    def is_held(self, name: str) -> bool:
        with self._guard:
            lease = self._leases.get(name)
            return lease is not None and lease.expires_at > self._clock()

    def _renew(self, name: str, owner: str, extension: timedelta) -> bool:
        now = self._clock()
        with self._guard:
            lease = self._leases.get(name)
            if lease is None or lease.owner != owner or lease.expires_at <= now:
                return False
            lease.expires_at = now + extension.total_seconds()
            return True

    def _release(self, name: str, owner: str) -> None:
        with self._guard:
            lease = self._leases.get(name)
            # an expired lease may already belong to someone else
            if lease is not None and lease.owner == owner:
                del self._leases[name]
                log.debug("Released lock %r", name)


class InProcessRunLockHandle:
    def __init__(self, lock: InProcessRunLock, name: str, owner: str) -> None:
        self._lock = lock
        self._name = name
        self._owner = owner
        self._released = False

    @property
    def name(self) -> str:
        return self._name

    def try_renew(self, extension: timedelta) -> bool:
        if self._released:
            return False
        return self._lock._renew(self._name, self._owner, extension)  # noqa: SLF001

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._lock._release(self._name, self._owner)  # noqa: SLF001

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        self.release()


if TYPE_CHECKING:
    from cleanse.domain.ports import RunLock

    _lock_check: RunLock = InProcessRunLock()
