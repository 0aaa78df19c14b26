"""
Vesters: the public surface of a vesting schedule.

A vester owns one ScheduleState and wires the collaborators together:

    caller -> AccessGuard -> ClaimEngine -> commit state -> AssetLedger.transfer -> events

State is committed before the transfer. If the transfer reports failure or
raises, the previous state is restored and TransferFailed is raised, so a
call either applies completely (every period of a batch, any window
rollover) or not at all. Events, metrics and the success log line are only
produced after the transfer went through.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import Any, Optional

from .. import vesting_metrics
from ..constants import HALF_DAY_OFFSET, SECONDS_PER_DAY, SECONDS_PER_YEAR
from ..vesting_exceptions import (
    ConfigurationError,
    InvalidAmount,
    TransferFailed,
    VestingError,
    get_error_context,
)
from .access_guard import AccessGuard, Role
from .claim_engine import ClaimEngine, Transition, VestingPolicy
from .events import EventListener, VestingEvent, VestingEventType
from .interfaces import AssetLedger, Clock, SystemClock
from .schedule_state import ScheduleState

logger = logging.getLogger(__name__)


class BaseVester:
    """Shared plumbing for every policy; subclasses add the entry points."""

    policy: VestingPolicy

    def __init__(
        self,
        administrator: str,
        ledger: AssetLedger,
        state: ScheduleState,
        clock: Optional[Clock] = None,
        address: str = "",
        name: str = "",
        day_length: int = SECONDS_PER_DAY,
        half_day_offset: int = HALF_DAY_OFFSET,
    ):
        if not address:
            addr_hash = hashlib.sha3_256(
                f"vester:{self.policy.value}:{administrator}:{time.time()}".encode()
            ).digest()
            address = f"0x{addr_hash[-20:].hex()}"

        self.address = address.lower()
        self.name = name or f"{self.policy.value}:{self.address[:10]}"
        self.ledger = ledger
        self.clock = clock or SystemClock()
        self.engine = ClaimEngine(self.policy, day_length=day_length, half_day_offset=half_day_offset)
        self.guard = AccessGuard(administrator, vester=self.address)
        self.state = state
        self.events: list[VestingEvent] = []
        self._listeners: list[EventListener] = []

    # ==================== Views ====================

    @property
    def administrator(self) -> str:
        return self.guard.administrator

    @property
    def beneficiary(self) -> str:
        return self.state.beneficiary

    @property
    def withdrawn_all_time(self) -> int:
        return self.state.withdrawn_all_time

    def custodied_balance(self) -> int:
        return self.ledger.balance_of(self.address)

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "name": self.name,
            "policy": self.policy.value,
            "administrator": self.administrator,
            "state": self.state.to_dict(),
        }

    # ==================== Internals ====================

    def _now(self) -> int:
        timestamp = self.clock.now()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError("Clock must return an integer timestamp") from exc

    def _as_beneficiary(self, caller: str):
        return self.guard.guard(caller, self.state.beneficiary, Role.BENEFICIARY)

    def _commit(self, transition: Transition, events: list[VestingEvent], payout: int = 0) -> None:
        """Commit ``transition``, pay ``payout`` to the beneficiary, then emit ``events``."""
        previous = self.state
        self.state = transition.state

        if payout > 0:
            try:
                ok = self.ledger.transfer(self.state.beneficiary, payout)
            except Exception as exc:
                self.state = previous
                raise TransferFailed(
                    f"Transfer of {payout} raised {type(exc).__name__}: {exc}",
                    details={"amount": payout},
                ) from exc
            if not ok:
                self.state = previous
                raise TransferFailed(
                    f"Asset ledger rejected transfer of {payout}",
                    details={"amount": payout},
                )

        for event in events:
            self._emit(event)

    def _emit(self, event: VestingEvent) -> None:
        self.events.append(event)
        for listener in self._listeners:
            try:
                listener(event)
            except Exception as e:
                logger.error(
                    "Vesting event listener failed for %s",
                    event.event_type.value,
                    extra={"event": "vesting.listener_failed", "vester": self.address[:10], "error": str(e)},
                )

    def _event(self, event_type: VestingEventType, now: int, amount: int = 0,
               beneficiary: Optional[str] = None, **details: Any) -> VestingEvent:
        return VestingEvent(
            event_type=event_type,
            vester=self.address,
            timestamp=now,
            beneficiary=self.state.beneficiary if beneficiary is None else beneficiary,
            amount=amount,
            details=details,
        )

    def _log_failure(self, operation: str, exc: VestingError) -> None:
        vesting_metrics.record_claim_failure(self.policy.value, exc)
        logger.warning(
            "%s failed: %s",
            operation,
            exc,
            extra={
                "event": f"vesting.{operation}_failed",
                "vester": self.address[:10],
                "policy": self.policy.value,
                **get_error_context(exc),
            },
        )

    def _log_release(self, amount: int, **extra: Any) -> None:
        vesting_metrics.record_release(self.name, self.policy.value, amount, self.state.withdrawn_all_time)
        logger.info(
            "Released %d units to %s",
            amount,
            self.state.beneficiary[:10],
            extra={
                "event": "vesting.release",
                "vester": self.address[:10],
                "policy": self.policy.value,
                "amount": amount,
                "withdrawn_all_time": self.state.withdrawn_all_time,
                **extra,
            },
        )


# ==================== Cliff Vesters ====================


class CliffVester(BaseVester):
    """
    Releases ``period_amount`` for every fully elapsed period.

    The schedule is inactive until the administrator activates it, which
    needs a beneficiary and at least ``starting_balance`` units in custody.
    Activation aligns the period clock to the half-day offset of the current
    day; the first period becomes claimable ``period_length`` after that.
    """

    def __init__(
        self,
        administrator: str,
        ledger: AssetLedger,
        period_amount: int,
        period_length: int,
        starting_balance: int = 0,
        halving_every: Optional[int] = None,
        beneficiary: str = "",
        clock: Optional[Clock] = None,
        address: str = "",
        name: str = "",
        day_length: int = SECONDS_PER_DAY,
        half_day_offset: int = HALF_DAY_OFFSET,
    ):
        state = ScheduleState.for_cliff(
            period_amount=period_amount,
            period_length=period_length,
            halving_every=halving_every,
            starting_balance=starting_balance,
        )
        state.beneficiary = beneficiary.lower()
        super().__init__(
            administrator,
            ledger,
            state,
            clock=clock,
            address=address,
            name=name,
            day_length=day_length,
            half_day_offset=half_day_offset,
        )

    @property
    def is_active(self) -> bool:
        return self.state.enabled

    def claimable_periods(self) -> int:
        return self.engine.elapsed_periods(self.state, self._now())

    def claimable_amount(self) -> int:
        """Total ``claim_all`` would release right now."""
        if not self.state.enabled:
            return 0
        return self.engine.release(self.state, self._now()).total

    def next_claim_time(self) -> Optional[int]:
        """Timestamp the next period becomes claimable, None before activation."""
        if not self.state.enabled:
            return None
        return self.engine.next_claim_time(self.state)

    def current_period_amount(self) -> int:
        """Amount the next period will release."""
        return self.engine.pending_period_amount(self.state)

    def assign_beneficiary(self, caller: str, beneficiary: str) -> bool:
        """Assign the beneficiary (administrator only, before activation)."""
        if not beneficiary:
            raise ValueError("Beneficiary address cannot be empty.")

        with self.guard.as_administrator(caller):
            now = self._now()
            transition = self.engine.assign_beneficiary(self.state, beneficiary)
            self._commit(transition, [self._event(VestingEventType.BENEFICIARY_ASSIGNED, now,
                                                  beneficiary=transition.state.beneficiary)])

        logger.info(
            "Beneficiary assigned",
            extra={"event": "vesting.beneficiary_assigned", "vester": self.address[:10],
                   "beneficiary": self.state.beneficiary[:10]},
        )
        return True

    def activate(self, caller: str) -> int:
        """
        Activate the schedule (administrator only).

        Returns:
            The aligned period start stored in ``next_eligible_time``
        """
        try:
            with self.guard.as_administrator(caller):
                now = self._now()
                transition = self.engine.activate(self.state, now, self.custodied_balance())
                self._commit(
                    transition,
                    [self._event(
                        VestingEventType.ACTIVATED,
                        now,
                        next_eligible_time=transition.state.next_eligible_time,
                    )],
                )
        except VestingError as exc:
            self._log_failure("activate", exc)
            raise

        logger.info(
            "Schedule activated",
            extra={
                "event": "vesting.activated",
                "vester": self.address[:10],
                "policy": self.policy.value,
                "next_eligible_time": self.state.next_eligible_time,
            },
        )
        return self.state.next_eligible_time

    def claim_one(self, caller: str) -> int:
        """Release exactly one elapsed period. Returns the amount released."""
        return self._claim(caller, single=True)

    def claim_all(self, caller: str) -> int:
        """Release every elapsed period as one batch. Returns the total released."""
        return self._claim(caller, single=False)

    def _claim(self, caller: str, single: bool) -> int:
        operation = "claim_one" if single else "claim_all"
        try:
            with self._as_beneficiary(caller):
                now = self._now()
                if single:
                    transition = self.engine.release_one(self.state, now)
                else:
                    transition = self.engine.release(self.state, now)
                if not transition.amounts:
                    return 0

                events = []
                period_end = self.state.next_eligible_time
                for amount in transition.amounts:
                    period_end += self.state.period_length
                    events.append(self._event(VestingEventType.RELEASED, now, amount, period_end=period_end))

                self._commit(transition, events, payout=transition.total)
        except VestingError as exc:
            self._log_failure(operation, exc)
            raise

        self._log_release(transition.total, periods=len(transition.amounts))
        return transition.total


class HalvingCliffVester(CliffVester):
    """Cliff vester whose period amount halves every ``halving_every`` periods."""

    policy = VestingPolicy.HALVING_CLIFF

    def __init__(self, administrator: str, ledger: AssetLedger, period_amount: int,
                 period_length: int, halving_every: int, **kwargs: Any):
        if halving_every is None:
            raise ConfigurationError("halving_every is required for a halving schedule")
        super().__init__(administrator, ledger, period_amount, period_length,
                         halving_every=halving_every, **kwargs)


class FlatCliffVester(CliffVester):
    """Cliff vester releasing the same amount every period."""

    policy = VestingPolicy.FLAT_CLIFF

    def __init__(self, administrator: str, ledger: AssetLedger, period_amount: int,
                 period_length: int, **kwargs: Any):
        if kwargs.get("halving_every") is not None:
            raise ConfigurationError("A flat schedule does not halve")
        kwargs.pop("halving_every", None)
        super().__init__(administrator, ledger, period_amount, period_length, **kwargs)


# ==================== Annual Cap Vesters ====================


class AnnualCapVester(BaseVester):
    """
    Lets the beneficiary withdraw up to ``cap`` units per window.

    The first window opens at construction. When a claim arrives after the
    window has ended, the anchor jumps forward by as many whole windows as
    have passed and the quota is restored, in a single step.
    """

    def __init__(
        self,
        administrator: str,
        ledger: AssetLedger,
        beneficiary: str,
        cap: int,
        window_length: int = SECONDS_PER_YEAR,
        clock: Optional[Clock] = None,
        address: str = "",
        name: str = "",
        **timing: int,
    ):
        if not beneficiary:
            raise ConfigurationError("Beneficiary address cannot be empty.")
        clock = clock or SystemClock()
        state = ScheduleState.for_annual(
            cap=cap,
            window_anchor=int(clock.now()),
            window_length=window_length,
            beneficiary=beneficiary,
        )
        super().__init__(administrator, ledger, state, clock=clock, address=address, name=name, **timing)

    @property
    def withdrawn_this_window(self) -> int:
        return self.engine.project(self.state, self._now()).withdrawn_this_window

    def remaining_quota(self) -> int:
        """Quota left in the current window, before any funding check."""
        return self.engine.remaining_quota(self.state, self._now())

    def next_rollover_time(self) -> int:
        return self.engine.next_rollover_time(self.state, self._now())

    def claim(self, caller: str, amount: int) -> int:
        """Withdraw ``amount`` from the current window. Returns ``amount``."""
        try:
            with self._as_beneficiary(caller):
                return self._grant(self._now(), amount)
        except VestingError as exc:
            self._log_failure("claim", exc)
            raise

    def claim_all(self, caller: str) -> int:
        """Withdraw whatever quota is left in the current window."""
        try:
            with self._as_beneficiary(caller):
                now = self._now()
                quota = self.engine.remaining_quota(self.state, now)
                if quota <= 0:
                    raise InvalidAmount(
                        "No quota left in the current window",
                        details={"next_rollover": self.engine.next_rollover_time(self.state, now)},
                    )
                return self._grant(now, quota)
        except VestingError as exc:
            self._log_failure("claim_all", exc)
            raise

    def _grant(self, now: int, amount: int) -> int:
        transition = self.engine.grant(self.state, now, amount, self.custodied_balance())

        events = []
        if transition.windows_rolled:
            events.append(self._event(
                VestingEventType.WINDOW_ROLLED,
                now,
                windows=transition.windows_rolled,
                window_anchor=transition.state.window_anchor,
            ))
        events.append(self._event(
            VestingEventType.RELEASED,
            now,
            amount,
            withdrawn_this_window=transition.state.withdrawn_this_window,
        ))

        self._commit(transition, events, payout=amount)

        if transition.windows_rolled:
            vesting_metrics.record_rollover(self.name, transition.windows_rolled)
            logger.info(
                "Window rolled over",
                extra={
                    "event": "vesting.window_rolled",
                    "vester": self.address[:10],
                    "windows": transition.windows_rolled,
                    "window_anchor": self.state.window_anchor,
                },
            )
        self._log_release(amount, withdrawn_this_window=self.state.withdrawn_this_window)
        return amount


class AnnualCapBurnVester(AnnualCapVester):
    """
    Annual vester with burnable custody and a reassignable beneficiary.

    Burned units stay in custody but are never claimable again; claims
    require the unburned custody to cover the window's remaining quota.
    """

    policy = VestingPolicy.ANNUAL_CAP_BURN

    @property
    def burned(self) -> int:
        return self.state.burned

    def available_amount(self) -> int:
        """Remaining quota, or 0 when unburned custody cannot cover it."""
        return self.engine.spendable_quota(self.state, self._now(), self.custodied_balance())

    def burn(self, caller: str, amount: int) -> int:
        """Permanently exclude ``amount`` custodied units (beneficiary only)."""
        try:
            with self._as_beneficiary(caller):
                now = self._now()
                transition = self.engine.burn(self.state, amount, self.custodied_balance())
                self._commit(
                    transition,
                    [self._event(VestingEventType.BURNED, now, amount, burned=transition.state.burned)],
                )
        except VestingError as exc:
            self._log_failure("burn", exc)
            raise

        vesting_metrics.record_burn(self.name, amount)
        logger.info(
            "Burned %d units",
            amount,
            extra={"event": "vesting.burn", "vester": self.address[:10], "amount": amount,
                   "burned": self.state.burned},
        )
        return amount

    def assign_beneficiary(self, caller: str, beneficiary: str) -> bool:
        """Reassign the beneficiary (administrator only, any time)."""
        if not beneficiary:
            raise ValueError("Beneficiary address cannot be empty.")

        with self.guard.as_administrator(caller):
            now = self._now()
            previous = self.state.beneficiary
            transition = self.engine.assign_beneficiary(self.state, beneficiary)
            self._commit(transition, [self._event(VestingEventType.BENEFICIARY_ASSIGNED, now,
                                                  beneficiary=transition.state.beneficiary,
                                                  previous=previous)])

        logger.info(
            "Beneficiary reassigned",
            extra={"event": "vesting.beneficiary_assigned", "vester": self.address[:10],
                   "beneficiary": self.state.beneficiary[:10]},
        )
        return True


class AnnualCapPauseVester(AnnualCapVester):
    """Annual vester with a fixed beneficiary and an administrative claim pause."""

    policy = VestingPolicy.ANNUAL_CAP_PAUSE

    @property
    def is_paused(self) -> bool:
        return self.state.paused

    def pause_claims(self, caller: str) -> bool:
        """Pause claims. Returns False if they were already paused."""
        return self._set_paused(caller, True)

    def resume_claims(self, caller: str) -> bool:
        """Resume claims. Returns False if they were not paused."""
        return self._set_paused(caller, False)

    def _set_paused(self, caller: str, paused: bool) -> bool:
        with self.guard.as_administrator(caller):
            if self.state.paused == paused:
                return False
            now = self._now()
            event_type = VestingEventType.CLAIMS_PAUSED if paused else VestingEventType.CLAIMS_RESUMED
            self._commit(self.engine.set_paused(self.state, paused), [self._event(event_type, now)])

        logger.info(
            "Claims %s",
            "paused" if paused else "resumed",
            extra={"event": f"vesting.claims_{'paused' if paused else 'resumed'}", "vester": self.address[:10]},
        )
        return True
