"""
tokenvest - Time-gated token vesting

Decides, for a single beneficiary, how much of a fixed or replenishing token
allotment may be released at a given moment.

Main Components:
- Cliff vesters: fixed amount per elapsed period, optionally halving
- Annual cap vesters: renewing yearly quota, with burn or pause controls
- Claim engine: the shared release arithmetic behind every vester
- Configuration, structured logging and Prometheus metrics
"""

__version__ = "0.1.0"
__author__ = "tokenvest Development Team"

__all__ = []
