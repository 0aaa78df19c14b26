"""
Factory for creating vesters.

Validates construction parameters with pydantic, applies the configured
schedule timing, binds the custody adapter to the new vester's address and
keeps a registry of everything it deployed.
"""

from __future__ import annotations

import hashlib
import logging
import time
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, ConfigDict, ValidationError, conint, constr

from ..vesting_exceptions import ConfigurationError
from .claim_engine import VestingPolicy
from .interfaces import AssetLedger, Clock, SystemClock, TokenCustody
from .vesters import (
    AnnualCapBurnVester,
    AnnualCapPauseVester,
    BaseVester,
    FlatCliffVester,
    HalvingCliffVester,
)

if TYPE_CHECKING:
    from ...config_manager import ScheduleConfig, VestingConfigManager
    from ..contracts.erc20 import ERC20Token

logger = logging.getLogger(__name__)


class FlatCliffParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    period_amount: conint(ge=0)
    period_length: conint(gt=0)
    starting_balance: conint(ge=0) = 0
    beneficiary: str = ""


class HalvingCliffParams(FlatCliffParams):
    halving_every: conint(ge=1)


class AnnualCapParams(BaseModel):
    model_config = ConfigDict(extra="forbid")

    beneficiary: constr(min_length=1)
    cap: conint(gt=0)
    window_length: Optional[conint(gt=0)] = None


PARAMETER_MODELS: dict[VestingPolicy, type[BaseModel]] = {
    VestingPolicy.HALVING_CLIFF: HalvingCliffParams,
    VestingPolicy.FLAT_CLIFF: FlatCliffParams,
    VestingPolicy.ANNUAL_CAP_BURN: AnnualCapParams,
    VestingPolicy.ANNUAL_CAP_PAUSE: AnnualCapParams,
}

VESTER_CLASSES: dict[VestingPolicy, type[BaseVester]] = {
    VestingPolicy.HALVING_CLIFF: HalvingCliffVester,
    VestingPolicy.FLAT_CLIFF: FlatCliffVester,
    VestingPolicy.ANNUAL_CAP_BURN: AnnualCapBurnVester,
    VestingPolicy.ANNUAL_CAP_PAUSE: AnnualCapPauseVester,
}


def parse_policy(value: Any) -> VestingPolicy:
    if isinstance(value, VestingPolicy):
        return value
    try:
        return VestingPolicy(str(value).lower())
    except ValueError as exc:
        valid = ", ".join(p.value for p in VestingPolicy)
        raise ConfigurationError(f"Unknown vesting policy '{value}'. Expected one of: {valid}") from exc


class VesterFactory:
    """
    Factory for creating vesters.

    Args:
        config: Configuration manager supplying the ``schedule`` section
        clock: Clock shared by every vester this factory creates
    """

    def __init__(
        self,
        config: Optional["VestingConfigManager"] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        if config is not None:
            self.schedule: "ScheduleConfig" = config.schedule
        else:
            from ...config_manager import ScheduleConfig

            self.schedule = ScheduleConfig()
        self.clock = clock or SystemClock()
        self.deployed: dict[str, BaseVester] = {}

    def create_vester(
        self,
        policy: Any,
        administrator: str,
        params: dict[str, Any],
        ledger: Optional[AssetLedger] = None,
        token: Optional["ERC20Token"] = None,
        address: str = "",
        name: str = "",
    ) -> BaseVester:
        """
        Create a vester for ``policy`` from a raw parameter mapping.

        Exactly one of ``ledger`` or ``token`` must be given; a token is wrapped
        in a TokenCustody bound to the new vester's address.

        Raises:
            ConfigurationError: If the policy or parameters are invalid
        """
        policy = parse_policy(policy)
        if not administrator:
            raise ConfigurationError("VesterFactory: administrator cannot be empty")
        if (ledger is None) == (token is None):
            raise ConfigurationError("VesterFactory: provide exactly one of ledger or token")

        try:
            validated = PARAMETER_MODELS[policy].model_validate(params)
        except ValidationError as exc:
            raise ConfigurationError(
                f"VesterFactory: invalid {policy.value} parameters",
                details={"errors": exc.errors(include_url=False)},
            ) from exc

        if not address:
            addr_hash = hashlib.sha3_256(
                f"vester:{policy.value}:{administrator}:{len(self.deployed)}:{time.time()}".encode()
            ).digest()
            address = f"0x{addr_hash[-20:].hex()}"
        address = address.lower()
        if address in self.deployed:
            raise ConfigurationError(f"VesterFactory: address {address} already deployed")

        if token is not None:
            ledger = TokenCustody(token, address)

        kwargs = validated.model_dump()
        if policy.is_annual and kwargs.get("window_length") is None:
            kwargs["window_length"] = self.schedule.window_length

        vester = VESTER_CLASSES[policy](
            administrator,
            ledger,
            clock=self.clock,
            address=address,
            name=name,
            day_length=self.schedule.day_length,
            half_day_offset=self.schedule.half_day_offset,
            **kwargs,
        )
        self.deployed[vester.address] = vester

        logger.info(
            "Vester created",
            extra={
                "event": "vesting.created",
                "vester": vester.address,
                "policy": policy.value,
                "administrator": administrator[:10],
            },
        )
        return vester

    def create_from_spec(
        self,
        spec: dict[str, Any],
        administrator: str,
        ledger: Optional[AssetLedger] = None,
        token: Optional["ERC20Token"] = None,
    ) -> BaseVester:
        """Create a vester from a mapping holding ``policy`` plus its parameters."""
        params = dict(spec)
        if "policy" not in params:
            raise ConfigurationError("Schedule spec is missing 'policy'")
        policy = params.pop("policy")
        name = params.pop("name", "")
        return self.create_vester(policy, administrator, params, ledger=ledger, token=token, name=name)

    def get_vester(self, address: str) -> Optional[BaseVester]:
        return self.deployed.get(address.lower())

    def list_vesters(self) -> list[dict[str, Any]]:
        return [
            {
                "address": address,
                "name": vester.name,
                "policy": vester.policy.value,
                "beneficiary": vester.beneficiary,
                "withdrawn_all_time": vester.withdrawn_all_time,
            }
            for address, vester in self.deployed.items()
        ]
