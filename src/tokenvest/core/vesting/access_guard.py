"""
Access guard for vester entry points.

Every mutating vester operation runs inside ``AccessGuard.guard``, which:
1. Checks that the caller is the principal the operation requires
   (administrator or beneficiary); addresses compare case-insensitively
2. Takes a single-entry fence for the vester, so a nested call made from a
   transfer callback, or a call from another thread, fails immediately
   with ConcurrentAccess instead of interleaving with the operation in flight

The fence is a non-blocking, non-reentrant ``threading.Lock``; the thread
holding it cannot enter a second time either.
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from enum import Enum
from typing import Iterator

from ..vesting_exceptions import ConcurrentAccess, Unauthorized

logger = logging.getLogger(__name__)


class Role(Enum):
    """Principals recognised by vesters."""
    ADMINISTRATOR = "administrator"
    BENEFICIARY = "beneficiary"


class AccessGuard:
    def __init__(self, administrator: str, vester: str = ""):
        if not administrator:
            raise ValueError("Administrator address cannot be empty.")
        self.administrator = administrator.lower()
        self.vester = vester
        self._fence = threading.Lock()

    @property
    def locked(self) -> bool:
        """True while a mutating operation is in flight."""
        return self._fence.locked()

    def require_principal(self, caller: str, principal: str, role: Role) -> None:
        caller_norm = (caller or "").lower()
        if not principal or caller_norm != principal.lower():
            logger.warning(
                "Access denied: caller is not the %s",
                role.value,
                extra={
                    "event": "access_guard.denied",
                    "vester": self.vester[:10],
                    "role": role.value,
                    "caller": caller_norm[:10],
                },
            )
            raise Unauthorized(
                f"Caller is not the {role.value}",
                details={"role": role.value, "caller": caller_norm},
            )

    @contextmanager
    def guard(self, caller: str, principal: str, role: Role) -> Iterator[None]:
        """Authorize ``caller`` as ``principal`` and hold the fence for the block."""
        self.require_principal(caller, principal, role)

        if not self._fence.acquire(blocking=False):
            logger.error(
                "Re-entrant call rejected",
                extra={"event": "access_guard.reentry", "vester": self.vester[:10], "role": role.value},
            )
            raise ConcurrentAccess("Another operation is already in progress on this vester")
        try:
            yield
        finally:
            self._fence.release()

    def as_administrator(self, caller: str):
        return self.guard(caller, self.administrator, Role.ADMINISTRATOR)
