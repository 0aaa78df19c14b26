"""
Shared fixtures for vesting tests.
"""

import pytest

from tokenvest.core.contracts.erc20 import ERC20Token
from tokenvest.core.vesting.interfaces import ManualClock, TokenCustody
from tokenvest.core.vesting.vesters import (
    AnnualCapBurnVester,
    AnnualCapPauseVester,
    FlatCliffVester,
    HalvingCliffVester,
)

from .support import ADMIN, BASE_TIME, BENEFICIARY, DAY, VESTER_ADDRESS, YEAR


@pytest.fixture
def clock():
    return ManualClock(BASE_TIME)


@pytest.fixture
def token():
    return ERC20Token(name="Test Token", symbol="TST", owner=ADMIN)


@pytest.fixture
def make_halving(clock, token):
    """Build a funded halving vester with a beneficiary assigned."""

    def _make(period_amount=100, period_length=DAY, halving_every=2,
              starting_balance=1_000, funding=1_000, beneficiary=BENEFICIARY,
              address=VESTER_ADDRESS, ledger_token=None):
        ledger_token = ledger_token or token
        vester = HalvingCliffVester(
            ADMIN,
            TokenCustody(ledger_token, address),
            period_amount=period_amount,
            period_length=period_length,
            halving_every=halving_every,
            starting_balance=starting_balance,
            beneficiary=beneficiary,
            clock=clock,
            address=address,
        )
        if funding:
            ledger_token.mint(ADMIN, address, funding)
        return vester

    return _make


@pytest.fixture
def make_flat(clock, token):
    def _make(period_amount=10, period_length=DAY, starting_balance=100, funding=100,
              beneficiary=BENEFICIARY, address=VESTER_ADDRESS):
        vester = FlatCliffVester(
            ADMIN,
            TokenCustody(token, address),
            period_amount=period_amount,
            period_length=period_length,
            starting_balance=starting_balance,
            beneficiary=beneficiary,
            clock=clock,
            address=address,
        )
        if funding:
            token.mint(ADMIN, address, funding)
        return vester

    return _make


@pytest.fixture
def make_annual(clock, token):
    """Build a funded annual vester of either flavour."""

    def _make(cls=AnnualCapPauseVester, cap=1_000, funding=5_000, window_length=YEAR,
              address=VESTER_ADDRESS):
        vester = cls(
            ADMIN,
            TokenCustody(token, address),
            beneficiary=BENEFICIARY,
            cap=cap,
            window_length=window_length,
            clock=clock,
            address=address,
        )
        if funding:
            token.mint(ADMIN, address, funding)
        return vester

    return _make


@pytest.fixture
def burn_vester(make_annual):
    return make_annual(cls=AnnualCapBurnVester)


@pytest.fixture
def pause_vester(make_annual):
    return make_annual(cls=AnnualCapPauseVester)
