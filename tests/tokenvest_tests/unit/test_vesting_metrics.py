"""
Unit tests for vesting Prometheus metrics.
"""

import pytest
from prometheus_client import REGISTRY

from tokenvest.core import vesting_metrics
from tokenvest.core.vesting_exceptions import ConcurrentAccess, NotYetEligible, Unauthorized

from ..support import ADMIN, ALIGNED_START, BENEFICIARY, DAY, STRANGER


def _sample(name, **labels):
    return REGISTRY.get_sample_value(name, labels) or 0


@pytest.fixture(autouse=True)
def metrics_enabled():
    vesting_metrics.set_metrics_enabled(True)
    yield
    vesting_metrics.set_metrics_enabled(True)


def test_release_updates_counters_and_gauge(make_flat, clock):
    vester = make_flat()
    vester.activate(ADMIN)
    clock.set(ALIGNED_START + 2 * DAY)
    labels = {"vester": vester.name, "policy": "flat_cliff"}
    before = _sample("tokenvest_released_units_total", **labels)

    vester.claim_all(BENEFICIARY)

    assert _sample("tokenvest_released_units_total", **labels) - before == 20
    assert _sample("tokenvest_withdrawn_all_time", **labels) == 20


def test_failed_claim_counted_by_type(make_flat):
    vester = make_flat()
    vester.activate(ADMIN)
    labels = {"policy": "flat_cliff", "outcome": "NotYetEligible"}
    before = _sample("tokenvest_claims_total", **labels)

    with pytest.raises(NotYetEligible):
        vester.claim_one(BENEFICIARY)

    assert _sample("tokenvest_claims_total", **labels) - before == 1


def test_burn_and_rollover_counters(burn_vester, clock):
    before_burn = _sample("tokenvest_burned_units_total", vester=burn_vester.name)
    before_roll = _sample("tokenvest_window_rollovers_total", vester=burn_vester.name)

    burn_vester.burn(BENEFICIARY, 25)
    clock.advance(2 * burn_vester.state.window_length)
    burn_vester.claim(BENEFICIARY, 1)

    assert _sample("tokenvest_burned_units_total", vester=burn_vester.name) - before_burn == 25
    assert _sample("tokenvest_window_rollovers_total", vester=burn_vester.name) - before_roll == 2


def test_disabled_metrics_record_nothing(make_flat, clock):
    vester = make_flat()
    vester.activate(ADMIN)
    clock.set(ALIGNED_START + DAY)
    labels = {"vester": vester.name, "policy": "flat_cliff"}
    before = _sample("tokenvest_released_units_total", **labels)

    vesting_metrics.set_metrics_enabled(False)
    vester.claim_all(BENEFICIARY)

    assert _sample("tokenvest_released_units_total", **labels) == before


def test_unauthorized_claim_counted(make_flat):
    vester = make_flat()
    vester.activate(ADMIN)
    labels = {"policy": "flat_cliff", "outcome": "Unauthorized"}
    before = _sample("tokenvest_claims_total", **labels)

    with pytest.raises(Unauthorized):
        vester.claim_all(STRANGER)

    assert _sample("tokenvest_claims_total", **labels) - before == 1


def test_unauthorized_burn_and_activation_counted(burn_vester, make_halving):
    vester = make_halving()
    burn_labels = {"policy": "annual_cap_burn", "outcome": "Unauthorized"}
    activate_labels = {"policy": "halving_cliff", "outcome": "Unauthorized"}
    before_burn = _sample("tokenvest_claims_total", **burn_labels)
    before_activate = _sample("tokenvest_claims_total", **activate_labels)

    with pytest.raises(Unauthorized):
        burn_vester.burn(ADMIN, 1)
    with pytest.raises(Unauthorized):
        vester.activate(STRANGER)

    assert _sample("tokenvest_claims_total", **burn_labels) - before_burn == 1
    assert _sample("tokenvest_claims_total", **activate_labels) - before_activate == 1


def test_reentrant_claim_counted(pause_vester, token):
    labels = {"policy": "annual_cap_pause", "outcome": "ConcurrentAccess"}
    before = _sample("tokenvest_claims_total", **labels)

    def hook(sender, amount):
        with pytest.raises(ConcurrentAccess):
            pause_vester.claim(BENEFICIARY, 1)

    token.register_receive_hook(BENEFICIARY, hook)
    pause_vester.claim(BENEFICIARY, 10)

    assert _sample("tokenvest_claims_total", **labels) - before == 1
