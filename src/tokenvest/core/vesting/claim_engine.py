"""
Claim engine for all vesting policies.

One engine covers the closed set of release policies:

- HALVING_CLIFF: fixed amount per period, halved every ``halving_every`` periods
- FLAT_CLIFF: fixed amount per period
- ANNUAL_CAP_BURN: renewing yearly quota, with burnable custody
- ANNUAL_CAP_PAUSE: renewing yearly quota, with an administrative pause

The engine is pure: every operation takes a ScheduleState plus the current
time (and, where relevant, the custodied balance), validates, and returns a
``Transition`` holding a new state. The input state is never modified, so a
failure at any step leaves the caller's state exactly as it was.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..constants import HALF_DAY_OFFSET, SECONDS_PER_DAY
from ..vesting_exceptions import (
    AlreadyActive,
    ClaimsPaused,
    InsufficientFunding,
    InvalidAmount,
    MissingBeneficiary,
    NotActivated,
    NotYetEligible,
)
from .schedule_state import ScheduleState


class VestingPolicy(Enum):
    """Release policies supported by the engine."""
    HALVING_CLIFF = "halving_cliff"
    FLAT_CLIFF = "flat_cliff"
    ANNUAL_CAP_BURN = "annual_cap_burn"
    ANNUAL_CAP_PAUSE = "annual_cap_pause"

    @property
    def is_cliff(self) -> bool:
        return self in (VestingPolicy.HALVING_CLIFF, VestingPolicy.FLAT_CLIFF)

    @property
    def is_annual(self) -> bool:
        return not self.is_cliff


class BeneficiaryPolicy(Enum):
    """When the administrator may (re)assign the beneficiary."""
    UNTIL_ACTIVATION = "until_activation"
    ADMIN_REASSIGNABLE = "admin_reassignable"
    FIXED = "fixed"


BENEFICIARY_POLICIES = {
    VestingPolicy.HALVING_CLIFF: BeneficiaryPolicy.UNTIL_ACTIVATION,
    VestingPolicy.FLAT_CLIFF: BeneficiaryPolicy.UNTIL_ACTIVATION,
    VestingPolicy.ANNUAL_CAP_BURN: BeneficiaryPolicy.ADMIN_REASSIGNABLE,
    VestingPolicy.ANNUAL_CAP_PAUSE: BeneficiaryPolicy.FIXED,
}


@dataclass
class Transition:
    """Result of an engine operation: the new state and what it released."""

    state: ScheduleState
    # One entry per released period (cliff) or per claim (annual)
    amounts: list[int] = field(default_factory=list)
    windows_rolled: int = 0

    @property
    def total(self) -> int:
        return sum(self.amounts)


class ClaimEngine:
    """
    Entitlement arithmetic and state transitions for one policy.

    Args:
        policy: Release policy this engine applies
        day_length: Length of a day used for activation alignment
        half_day_offset: Offset into the day at which cliff periods start
    """

    def __init__(
        self,
        policy: VestingPolicy,
        day_length: int = SECONDS_PER_DAY,
        half_day_offset: int = HALF_DAY_OFFSET,
    ):
        self.policy = policy
        self.day_length = day_length
        self.half_day_offset = half_day_offset

    @property
    def beneficiary_policy(self) -> BeneficiaryPolicy:
        return BENEFICIARY_POLICIES[self.policy]

    # ==================== Cliff Policies ====================

    def aligned_start(self, now: int) -> int:
        """Align ``now`` down to its day boundary, then forward to the half-day offset."""
        return now - (now % self.day_length) + self.half_day_offset

    def activate(self, state: ScheduleState, now: int, custodied: int) -> Transition:
        self._require_cliff()
        if state.enabled:
            raise AlreadyActive("Schedule is already active")
        if not state.beneficiary:
            raise MissingBeneficiary("A beneficiary must be assigned before activation")
        if custodied < state.starting_balance:
            raise InsufficientFunding(
                f"Custodied balance {custodied} is below the starting balance {state.starting_balance}",
                details={"custodied": custodied, "required": state.starting_balance},
            )

        work = state.copy()
        work.enabled = True
        work.next_eligible_time = self.aligned_start(now)
        return Transition(work)

    def elapsed_periods(self, state: ScheduleState, now: int) -> int:
        """Number of whole periods elapsed since ``next_eligible_time``."""
        self._require_cliff()
        if not state.enabled or now <= state.next_eligible_time:
            return 0
        return (now - state.next_eligible_time) // state.period_length

    def next_claim_time(self, state: ScheduleState) -> int:
        """Earliest timestamp at which the next period becomes claimable."""
        self._require_cliff()
        return state.next_eligible_time + state.period_length

    def pending_period_amount(self, state: ScheduleState) -> int:
        """Amount the next period will release, with a due halving applied."""
        self._require_cliff()
        if self._halves(state) and state.periods_until_halving == 0:
            return state.period_amount // 2
        return state.period_amount

    def release(
        self,
        state: ScheduleState,
        now: int,
        max_periods: Optional[int] = None,
    ) -> Transition:
        """
        Apply every elapsed period (or at most ``max_periods``) in order.

        Zero elapsed periods is a valid result with no amounts; callers that
        need at least one period check ``Transition.amounts`` themselves.
        """
        self._require_cliff()
        if not state.enabled:
            raise NotActivated("Schedule has not been activated")

        periods = self.elapsed_periods(state, now)
        if max_periods is not None:
            periods = min(periods, max_periods)

        work = state.copy()
        amounts = [self._apply_period(work) for _ in range(periods)]
        return Transition(work, amounts)

    def release_one(self, state: ScheduleState, now: int) -> Transition:
        transition = self.release(state, now, max_periods=1)
        if not transition.amounts:
            eligible_at = self.next_claim_time(state)
            raise NotYetEligible(
                f"Next period is claimable at {eligible_at}",
                eligible_at=eligible_at,
                details={"now": now},
            )
        return transition

    def _apply_period(self, work: ScheduleState) -> int:
        if self._halves(work):
            if work.periods_until_halving == 0:
                work.periods_until_halving = work.halving_every - 1
                work.period_amount //= 2
            else:
                work.periods_until_halving -= 1
        work.next_eligible_time += work.period_length
        work.withdrawn_all_time += work.period_amount
        return work.period_amount

    def _halves(self, state: ScheduleState) -> bool:
        return self.policy is VestingPolicy.HALVING_CLIFF and state.has_halving

    # ==================== Annual Policies ====================

    def project(self, state: ScheduleState, now: int) -> ScheduleState:
        """Copy of ``state`` with any due window rollover applied."""
        self._require_annual()
        work = state.copy()
        self._roll_window(work, now)
        return work

    def next_rollover_time(self, state: ScheduleState, now: int) -> int:
        return self.project(state, now).window_anchor + state.window_length

    def remaining_quota(self, state: ScheduleState, now: int) -> int:
        """Quota left in the window that is current at ``now``."""
        return self.project(state, now).available_amount

    def spendable_quota(self, state: ScheduleState, now: int, custodied: int) -> int:
        """
        Tracked quota, or 0 when the custody cannot cover it.

        For the burn policy, burned units are not counted as custodied.
        """
        quota = self.remaining_quota(state, now)
        if self.policy is VestingPolicy.ANNUAL_CAP_BURN:
            custodied -= state.burned
        return 0 if custodied < quota else quota

    def grant(self, state: ScheduleState, now: int, amount: int, custodied: int) -> Transition:
        """Withdraw ``amount`` from the current window's quota."""
        self._require_annual()
        if state.paused:
            raise ClaimsPaused("Claims are paused by the administrator")
        self._check_amount(amount, "Claim")
        if amount > state.cap:
            raise InvalidAmount(
                f"Claim amount {amount} exceeds the cap {state.cap}",
                details={"amount": amount, "cap": state.cap},
            )

        work = state.copy()
        rolled = self._roll_window(work, now)

        if work.withdrawn_this_window + amount > work.cap:
            raise InvalidAmount(
                f"Claim of {amount} would exceed the window cap "
                f"({work.withdrawn_this_window} already withdrawn of {work.cap})",
                details={
                    "amount": amount,
                    "withdrawn_this_window": work.withdrawn_this_window,
                    "cap": work.cap,
                },
            )

        if self.policy is VestingPolicy.ANNUAL_CAP_BURN:
            spendable = custodied - work.burned
            if spendable < work.available_amount:
                raise InsufficientFunding(
                    f"Unburned custody {spendable} is below the available quota {work.available_amount}",
                    details={"custodied": custodied, "burned": work.burned,
                             "available_amount": work.available_amount},
                )
        elif custodied < amount:
            raise InsufficientFunding(
                f"Custodied balance {custodied} is below the claim amount {amount}",
                details={"custodied": custodied, "amount": amount},
            )

        work.available_amount -= amount
        work.withdrawn_this_window += amount
        work.withdrawn_all_time += amount
        return Transition(work, [amount], rolled)

    def burn(self, state: ScheduleState, amount: int, custodied: int) -> Transition:
        """Permanently exclude ``amount`` custodied units from availability."""
        self._require(VestingPolicy.ANNUAL_CAP_BURN)
        unburned = custodied - state.burned
        self._check_amount(amount, "Burn")
        if amount > unburned:
            raise InvalidAmount(
                f"Burn amount {amount} exceeds unburned custody {unburned}",
                details={"amount": amount, "unburned": unburned},
            )

        work = state.copy()
        work.burned += amount
        return Transition(work)

    def set_paused(self, state: ScheduleState, paused: bool) -> Transition:
        self._require(VestingPolicy.ANNUAL_CAP_PAUSE)
        work = state.copy()
        work.paused = paused
        return Transition(work)

    def _roll_window(self, work: ScheduleState, now: int) -> int:
        if now < work.window_anchor + work.window_length:
            return 0
        windows = (now - work.window_anchor) // work.window_length
        work.window_anchor += windows * work.window_length
        work.withdrawn_this_window = 0
        work.available_amount = work.cap
        return windows

    # ==================== Shared ====================

    def assign_beneficiary(self, state: ScheduleState, beneficiary: str) -> Transition:
        policy = self.beneficiary_policy
        if policy is BeneficiaryPolicy.FIXED:
            raise AlreadyActive("Beneficiary is fixed at creation")
        if policy is BeneficiaryPolicy.UNTIL_ACTIVATION and state.enabled:
            raise AlreadyActive("Beneficiary cannot change after activation")

        work = state.copy()
        work.beneficiary = beneficiary.lower()
        return Transition(work)

    @staticmethod
    def _check_amount(amount: int, operation: str) -> None:
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise InvalidAmount(
                f"{operation} amount must be a whole number of units",
                details={"amount": repr(amount)},
            )
        if amount <= 0:
            raise InvalidAmount(f"{operation} amount must be positive")

    def _require_cliff(self) -> None:
        if not self.policy.is_cliff:
            raise ValueError(f"{self.policy.value} is not a cliff policy")

    def _require_annual(self) -> None:
        if not self.policy.is_annual:
            raise ValueError(f"{self.policy.value} is not an annual policy")

    def _require(self, policy: VestingPolicy) -> None:
        if self.policy is not policy:
            raise ValueError(f"Operation requires the {policy.value} policy, not {self.policy.value}")
