"""
tokenvest - Collaborator Protocol Interfaces

A vester depends on two collaborators it does not own:
- Clock: supplies a monotonically non-decreasing integer timestamp
- AssetLedger: holds the custodied balance and executes transfers

Both are Protocols so tests and deployments can inject their own
implementations. Concrete adapters for the wall clock, a deterministic
simulation clock and the in-process ERC20 token live here as well.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from ..vesting_exceptions import TokenOperationError

if TYPE_CHECKING:
    from ..contracts.erc20 import ERC20Token

logger = logging.getLogger(__name__)


@runtime_checkable
class Clock(Protocol):
    """
    Protocol for the external time source.

    Implementations must never return a value smaller than one they
    returned before.
    """

    def now(self) -> int:
        """Current timestamp in whole seconds."""
        ...


@runtime_checkable
class AssetLedger(Protocol):
    """
    Protocol for the custodian of the distributable asset.

    ``transfer`` moves units out of the vester's custody. A ``False`` return
    is a hard failure: the vester aborts the whole transition.
    """

    def balance_of(self, holder: str) -> int:
        """Balance currently held by ``holder``."""
        ...

    def transfer(self, to: str, amount: int) -> bool:
        """Transfer ``amount`` from custody to ``to``. Returns success."""
        ...


class SystemClock:
    """Wall clock, truncated to whole seconds."""

    def now(self) -> int:
        return int(time.time())


class ManualClock:
    """
    Deterministic clock for simulations and tests.

    Refuses to move backwards, matching the contract of ``Clock``.
    """

    def __init__(self, start: int = 0):
        if start < 0:
            raise ValueError("Clock start must be non-negative")
        self._now = int(start)
        self._lock = threading.Lock()

    def now(self) -> int:
        return self._now

    def set(self, timestamp: int) -> int:
        with self._lock:
            if timestamp < self._now:
                raise ValueError(f"Clock cannot move backwards ({timestamp} < {self._now})")
            self._now = int(timestamp)
            return self._now

    def advance(self, seconds: int) -> int:
        if seconds < 0:
            raise ValueError("Clock cannot move backwards")
        return self.set(self._now + seconds)


class TokenCustody:
    """
    AssetLedger adapter over an in-process ERC20 token.

    Binds the token to one custody address (the vester's own address) so
    ``transfer`` always moves units out of that custody. Token-level
    failures are logged and reported as ``False``.
    """

    def __init__(self, token: "ERC20Token", holder: str):
        self.token = token
        self.holder = holder.lower()

    def balance_of(self, holder: str) -> int:
        return self.token.balance_of(holder)

    def transfer(self, to: str, amount: int) -> bool:
        try:
            return self.token.transfer(self.holder, to, amount)
        except TokenOperationError as exc:
            logger.warning(
                "Token transfer rejected: %s",
                exc,
                extra={
                    "event": "custody.transfer_rejected",
                    "token": self.token.symbol,
                    "holder": self.holder[:10],
                    "to": to[:10],
                    "amount": amount,
                },
            )
            return False
