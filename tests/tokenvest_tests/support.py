"""
Addresses and timestamps shared by the vesting tests.

BASE_TIME sits 50 000 seconds into its day, so cliff activation at
BASE_TIME aligns to noon of the same day, 6 800 seconds earlier.
"""

from tokenvest.core.constants import HALF_DAY_OFFSET, SECONDS_PER_DAY, SECONDS_PER_YEAR

ADMIN = "0x" + "aa" * 20
BENEFICIARY = "0x" + "bb" * 20
STRANGER = "0x" + "cc" * 20
VESTER_ADDRESS = "0x" + "dd" * 20

DAY = SECONDS_PER_DAY
YEAR = SECONDS_PER_YEAR
BASE_TIME = 19675 * DAY + 50_000
ALIGNED_START = BASE_TIME - (BASE_TIME % DAY) + HALF_DAY_OFFSET


class RejectingLedger:
    """Ledger with plenty of balance that refuses every transfer."""

    def __init__(self, balance=10_000):
        self.balance = balance
        self.transfers = []

    def balance_of(self, holder):
        return self.balance

    def transfer(self, to, amount):
        self.transfers.append((to, amount))
        return False


class ExplodingLedger(RejectingLedger):
    def transfer(self, to, amount):
        raise RuntimeError("ledger offline")
