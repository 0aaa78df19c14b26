"""
Per-vester schedule record.

One ``ScheduleState`` exists per vester. Cliff schedules use the period
fields, annual schedules the window fields; the unused group stays at its
zero value. The ClaimEngine never mutates a state it was handed, it works on
a ``copy()`` and returns the copy, which is what makes rollback trivial.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, fields, replace
from typing import Any, Dict, Optional

from ..vesting_exceptions import ConfigurationError


@dataclass
class ScheduleState:
    # Cliff schedules
    period_amount: int = 0
    period_length: int = 0
    halving_every: Optional[int] = None
    periods_until_halving: int = 0
    next_eligible_time: int = 0
    enabled: bool = False
    starting_balance: int = 0

    # Annual schedules
    cap: int = 0
    available_amount: int = 0
    withdrawn_this_window: int = 0
    window_anchor: int = 0
    window_length: int = 0
    burned: int = 0
    paused: bool = False

    withdrawn_all_time: int = 0
    beneficiary: str = ""

    @classmethod
    def for_cliff(
        cls,
        period_amount: int,
        period_length: int,
        halving_every: Optional[int] = None,
        starting_balance: int = 0,
    ) -> "ScheduleState":
        """Inactive cliff schedule; the countdown starts at ``halving_every``."""
        if period_amount < 0:
            raise ConfigurationError("period_amount cannot be negative")
        if period_length <= 0:
            raise ConfigurationError("period_length must be positive")
        if halving_every is not None and halving_every < 1:
            raise ConfigurationError("halving_every must be at least 1")
        if starting_balance < 0:
            raise ConfigurationError("starting_balance cannot be negative")

        return cls(
            period_amount=period_amount,
            period_length=period_length,
            halving_every=halving_every,
            periods_until_halving=halving_every or 0,
            starting_balance=starting_balance,
        )

    @classmethod
    def for_annual(
        cls,
        cap: int,
        window_anchor: int,
        window_length: int,
        beneficiary: str = "",
    ) -> "ScheduleState":
        """Active annual schedule whose first window opens at ``window_anchor``."""
        if cap <= 0:
            raise ConfigurationError("cap must be positive")
        if window_length <= 0:
            raise ConfigurationError("window_length must be positive")
        if window_anchor < 0:
            raise ConfigurationError("window_anchor cannot be negative")

        return cls(
            cap=cap,
            available_amount=cap,
            window_anchor=window_anchor,
            window_length=window_length,
            enabled=True,
            beneficiary=beneficiary.lower(),
        )

    @property
    def has_halving(self) -> bool:
        return self.halving_every is not None

    def copy(self) -> "ScheduleState":
        return replace(self)

    def check_invariants(self) -> None:
        """Raise ConfigurationError if the record is internally inconsistent."""
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, int) and not isinstance(value, bool) and value < 0:
                raise ConfigurationError(f"{f.name} cannot be negative")
        if self.cap:
            if self.withdrawn_this_window > self.cap:
                raise ConfigurationError("withdrawn_this_window exceeds cap")
            if self.available_amount != self.cap - self.withdrawn_this_window:
                raise ConfigurationError("available_amount out of step with withdrawn_this_window")
        if self.has_halving and self.periods_until_halving > self.halving_every:
            raise ConfigurationError("periods_until_halving exceeds halving_every")

    # ==================== Serialization ====================

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ScheduleState":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigurationError(f"Unknown schedule fields: {sorted(unknown)}")
        state = cls(**data)
        state.check_invariants()
        return state
