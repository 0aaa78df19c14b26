"""
Observable vesting events.

Vesters append one event per completed state transition and push it to any
subscribers. Nothing is emitted for a call that fails.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Callable


class VestingEventType(Enum):
    ACTIVATED = "activated"
    BENEFICIARY_ASSIGNED = "beneficiary_assigned"
    RELEASED = "released"
    BURNED = "burned"
    WINDOW_ROLLED = "window_rolled"
    CLAIMS_PAUSED = "claims_paused"
    CLAIMS_RESUMED = "claims_resumed"


@dataclass
class VestingEvent:
    """Represents a vesting event."""

    event_type: VestingEventType
    vester: str
    timestamp: int
    beneficiary: str = ""
    amount: int = 0
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["event_type"] = self.event_type.value
        return data


EventListener = Callable[[VestingEvent], None]
