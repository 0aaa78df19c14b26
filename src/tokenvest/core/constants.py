"""
tokenvest Constants

Default schedule timing and address constants. The timing values are the
defaults of the ``schedule`` configuration section; deployments may override
them, but an active schedule never changes them after construction.
"""

from typing import Final

# =============================================================================
# TIME CONSTANTS (in seconds)
# =============================================================================

SECONDS_PER_DAY: Final[int] = 86400  # 60 * 60 * 24

# Cliff activation aligns the first period to noon of the activation day
HALF_DAY_OFFSET: Final[int] = 43200  # 12 hours

# Julian year, 365.25 days
SECONDS_PER_YEAR: Final[int] = 31557600

# =============================================================================
# ADDRESSES
# =============================================================================

ZERO_ADDRESS: Final[str] = "0x" + "0" * 40
