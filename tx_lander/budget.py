import asyncio
import logging
import statistics
from typing import Optional, Sequence

from solders.pubkey import Pubkey

from .config import FeePolicy, FeeSettings
from .exceptions import EmptyFeeSampleError, EstimationError, RPCError, SimulationError, TransactionBuildError
from .models import ComputeBudget, PriorityFeeSample, TransactionSkeleton
from .rpc import RpcGateway
from .signer import unsigned_transaction

logger = logging.getLogger(__name__)

MIN_CU_PRICE = 10_000
MAX_CU_PRICE = 10_000_000
COMPUTE_UNIT_MARGIN = 1.2


def scale_compute_units(units_consumed: Optional[int], margin: float = COMPUTE_UNIT_MARGIN) -> int:
    return round((units_consumed or 0) * margin)


def select_priority_fee(
    samples: Sequence[PriorityFeeSample],
    policy: FeePolicy = FeePolicy.MAX
) -> int:
    if not samples:
        raise EmptyFeeSampleError("No recent prioritization fees to estimate from")

    fees = [sample.fee for sample in samples]
    if policy == FeePolicy.MEDIAN:
        return int(statistics.median(fees))
    return max(fees)


def clamp_priority_fee(
    fee: int,
    min_price: int = MIN_CU_PRICE,
    max_price: int = MAX_CU_PRICE
) -> int:
    return min(max(fee, min_price), max_price)


class BudgetEstimator:
    """
    Sizes a transaction's compute budget from live network signals.

    The unit limit comes from simulating the unsigned transaction, scaled by
    a safety margin for state drift between simulation and landing. The unit
    price is the largest recent prioritization fee, clamped into
    [min_price, max_price].
    """

    def __init__(
        self,
        gateway: RpcGateway,
        min_price: int = MIN_CU_PRICE,
        max_price: int = MAX_CU_PRICE,
        compute_unit_margin: float = COMPUTE_UNIT_MARGIN,
        fee_policy: FeePolicy = FeePolicy.MAX,
    ):
        if min_price > max_price:
            raise ValueError("min_price must be <= max_price")
        self.gateway = gateway
        self.min_price = min_price
        self.max_price = max_price
        self.compute_unit_margin = compute_unit_margin
        self.fee_policy = fee_policy

    @classmethod
    def from_settings(cls, gateway: RpcGateway, settings: FeeSettings) -> "BudgetEstimator":
        return cls(
            gateway,
            min_price=settings.min_cu_price,
            max_price=settings.max_cu_price,
            compute_unit_margin=settings.compute_unit_margin,
            fee_policy=settings.policy,
        )

    async def estimate_compute_units(self, skeleton: TransactionSkeleton) -> int:
        try:
            tx = unsigned_transaction(skeleton)
        except TransactionBuildError as e:
            raise SimulationError(f"Cannot simulate transaction: {e.message}") from e

        try:
            result = await self.gateway.simulate_transaction(tx)
        except RPCError as e:
            raise SimulationError(f"Simulation unreachable: {e.message}") from e

        if not result.success:
            logger.warning(f"Simulation reported an error, using consumed units anyway: {result.error}")

        units = scale_compute_units(result.units_consumed, self.compute_unit_margin)
        logger.debug(f"Compute units: simulated={result.units_consumed} limit={units}")
        return units

    async def estimate_priority_fee(self, accounts: Optional[Sequence[Pubkey]] = None) -> int:
        try:
            samples = await self.gateway.get_recent_prioritization_fees(accounts)
        except RPCError as e:
            raise EstimationError(f"Prioritization fees unavailable: {e.message}") from e

        selected = select_priority_fee(samples, self.fee_policy)
        price = clamp_priority_fee(selected, self.min_price, self.max_price)
        logger.debug(
            f"Priority fee: samples={len(samples)} {self.fee_policy.value}={selected} price={price}"
        )
        return price

    async def estimate(self, skeleton: TransactionSkeleton) -> ComputeBudget:
        results = await asyncio.gather(
            self.estimate_compute_units(skeleton),
            self.estimate_priority_fee(),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        unit_limit, price = results
        budget = ComputeBudget(unit_limit=unit_limit, micro_lamport_price=price)
        logger.info(
            f"Compute budget: limit={budget.unit_limit} CU, price={budget.micro_lamport_price} micro-lamports"
        )
        return budget


__all__ = [
    "MIN_CU_PRICE",
    "MAX_CU_PRICE",
    "COMPUTE_UNIT_MARGIN",
    "scale_compute_units",
    "select_priority_fee",
    "clamp_priority_fee",
    "BudgetEstimator",
]
