"""Ports for the named, expiring lock that serialises analysis passes."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Self, runtime_checkable

if TYPE_CHECKING:
    from datetime import timedelta
    from types import TracebackType


@runtime_checkable
class RunLockHandle(Protocol):
    """An acquired lock. Releasing it twice is a no-op."""

    @property
    def name(self) -> str: ...

    def try_renew(self, extension: timedelta) -> bool: ...

    def release(self) -> None: ...

    def __enter__(self) -> Self: ...

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None: ...


@runtime_checkable
class RunLock(Protocol):
    """Acquire a named lock for a bounded duration, or return ``None`` if held."""

    def try_acquire(self, name: str, duration: timedelta) -> RunLockHandle | None: ...
