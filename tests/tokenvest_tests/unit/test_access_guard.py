"""
Unit tests for AccessGuard principal checks and the re-entrancy fence.
"""

import threading

import pytest

from tokenvest.core.vesting.access_guard import AccessGuard, Role
from tokenvest.core.vesting_exceptions import ConcurrentAccess, TransferFailed, Unauthorized

from ..support import ADMIN, ALIGNED_START, BENEFICIARY, DAY, STRANGER


class TestPrincipalChecks:
    def test_empty_administrator_rejected(self):
        with pytest.raises(ValueError):
            AccessGuard("")

    def test_administrator_normalized(self):
        guard = AccessGuard(ADMIN.upper())
        assert guard.administrator == ADMIN.upper().lower()

    def test_matching_principal(self):
        guard = AccessGuard(ADMIN)
        guard.require_principal(BENEFICIARY.upper(), BENEFICIARY, Role.BENEFICIARY)

    def test_wrong_caller(self):
        guard = AccessGuard(ADMIN)
        with pytest.raises(Unauthorized) as exc_info:
            guard.require_principal(STRANGER, BENEFICIARY, Role.BENEFICIARY)
        assert exc_info.value.details["role"] == "beneficiary"

    def test_unset_principal_rejects_everyone(self):
        """An empty beneficiary matches no caller, not even an empty one"""
        guard = AccessGuard(ADMIN)
        with pytest.raises(Unauthorized):
            guard.require_principal("", "", Role.BENEFICIARY)


class TestFence:
    def test_fence_released_after_block(self):
        guard = AccessGuard(ADMIN)
        with guard.as_administrator(ADMIN):
            assert guard.locked
        assert not guard.locked

    def test_fence_released_after_exception(self):
        guard = AccessGuard(ADMIN)
        with pytest.raises(RuntimeError):
            with guard.as_administrator(ADMIN):
                raise RuntimeError("boom")
        assert not guard.locked

    def test_nested_entry_rejected(self):
        guard = AccessGuard(ADMIN)
        with guard.as_administrator(ADMIN):
            with pytest.raises(ConcurrentAccess):
                with guard.as_administrator(ADMIN):
                    pass
        assert not guard.locked

    def test_unauthorized_checked_before_fence(self):
        """A wrong caller gets Unauthorized even while the fence is held"""
        guard = AccessGuard(ADMIN)
        with guard.as_administrator(ADMIN):
            with pytest.raises(Unauthorized):
                with guard.as_administrator(STRANGER):
                    pass


class TestVesterReentrancy:
    """Re-entry through the token's receive hook during a claim"""

    def test_reentrant_claim_from_receive_hook(self, make_flat, clock, token):
        vester = make_flat()
        vester.activate(ADMIN)
        clock.set(ALIGNED_START + 3 * DAY)
        observed = {}

        def hook(sender, amount):
            observed["next_eligible_time"] = vester.state.next_eligible_time
            with pytest.raises(ConcurrentAccess):
                vester.claim_one(BENEFICIARY)
            observed["rejected"] = True

        token.register_receive_hook(BENEFICIARY, hook)

        assert vester.claim_all(BENEFICIARY) == 30
        assert observed["rejected"] is True
        # state was committed before the transfer ran
        assert observed["next_eligible_time"] == ALIGNED_START + 3 * DAY
        assert token.balance_of(BENEFICIARY) == 30
        assert not vester.guard.locked

    def test_reentrant_burn_during_annual_claim(self, burn_vester, token):
        def hook(sender, amount):
            with pytest.raises(ConcurrentAccess):
                burn_vester.burn(BENEFICIARY, 1)

        token.register_receive_hook(BENEFICIARY, hook)
        burn_vester.claim(BENEFICIARY, 10)
        assert burn_vester.burned == 0

    def test_call_from_other_thread_rejected(self, make_flat, clock, token):
        vester = make_flat()
        vester.activate(ADMIN)
        clock.set(ALIGNED_START + DAY)
        errors = []

        def other_thread():
            try:
                vester.claim_all(BENEFICIARY)
            except ConcurrentAccess as exc:
                errors.append(exc)

        def hook(sender, amount):
            worker = threading.Thread(target=other_thread)
            worker.start()
            worker.join()

        token.register_receive_hook(BENEFICIARY, hook)
        vester.claim_all(BENEFICIARY)

        assert len(errors) == 1
        assert vester.withdrawn_all_time == 10

    def test_unhandled_reentry_fails_outer_call(self, make_flat, clock, token):
        """A hook that lets ConcurrentAccess escape fails the outer claim"""
        vester = make_flat()
        vester.activate(ADMIN)
        clock.set(ALIGNED_START + DAY)

        token.register_receive_hook(BENEFICIARY, lambda sender, amount: vester.claim_one(BENEFICIARY))

        with pytest.raises(TransferFailed) as exc_info:
            vester.claim_one(BENEFICIARY)
        assert isinstance(exc_info.value.__cause__, ConcurrentAccess)
        assert vester.withdrawn_all_time == 0
