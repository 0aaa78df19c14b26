"""
tokenvest Vesting Schedules.

- Halving / Flat cliff vesters: per-period releases after activation
- Annual cap vesters: yearly renewing quota with burn or pause controls
- ClaimEngine: pure release arithmetic shared by all policies
- AccessGuard: principal checks and the single-entry fence
- VesterFactory: validated construction and registry
"""

from .access_guard import AccessGuard, Role
from .claim_engine import BeneficiaryPolicy, ClaimEngine, Transition, VestingPolicy
from .events import VestingEvent, VestingEventType
from .factory import VesterFactory
from .interfaces import AssetLedger, Clock, ManualClock, SystemClock, TokenCustody
from .schedule_state import ScheduleState
from .vesters import (
    AnnualCapBurnVester,
    AnnualCapPauseVester,
    AnnualCapVester,
    BaseVester,
    CliffVester,
    FlatCliffVester,
    HalvingCliffVester,
)

__all__ = [
    # Vesters
    "BaseVester",
    "CliffVester",
    "HalvingCliffVester",
    "FlatCliffVester",
    "AnnualCapVester",
    "AnnualCapBurnVester",
    "AnnualCapPauseVester",
    "VesterFactory",
    # Engine
    "ClaimEngine",
    "Transition",
    "VestingPolicy",
    "BeneficiaryPolicy",
    "ScheduleState",
    # Access
    "AccessGuard",
    "Role",
    # Collaborators
    "AssetLedger",
    "Clock",
    "SystemClock",
    "ManualClock",
    "TokenCustody",
    # Events
    "VestingEvent",
    "VestingEventType",
]
