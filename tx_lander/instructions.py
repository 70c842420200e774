import struct
from typing import List, Sequence

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from .models import ComputeBudget, TransactionSkeleton

COMPUTE_BUDGET_PROGRAM_ID = Pubkey.from_string("ComputeBudget111111111111111111111111111111")

SET_COMPUTE_UNIT_LIMIT_TAG = 0x02
SET_COMPUTE_UNIT_PRICE_TAG = 0x03


def create_set_compute_unit_limit_instruction(units: int) -> Instruction:
    data = bytes([SET_COMPUTE_UNIT_LIMIT_TAG]) + struct.pack("<I", units)
    return Instruction(
        program_id=COMPUTE_BUDGET_PROGRAM_ID,
        accounts=[],
        data=data
    )


def create_set_compute_unit_price_instruction(micro_lamports: int) -> Instruction:
    data = bytes([SET_COMPUTE_UNIT_PRICE_TAG]) + struct.pack("<Q", micro_lamports)
    return Instruction(
        program_id=COMPUTE_BUDGET_PROGRAM_ID,
        accounts=[],
        data=data
    )


def budget_instructions(budget: ComputeBudget) -> List[Instruction]:
    return [
        create_set_compute_unit_limit_instruction(budget.unit_limit),
        create_set_compute_unit_price_instruction(budget.micro_lamport_price),
    ]


def is_budget_instruction(instruction: Instruction) -> bool:
    return instruction.program_id == COMPUTE_BUDGET_PROGRAM_ID


def strip_budget_instructions(skeleton: TransactionSkeleton) -> TransactionSkeleton:
    """Drop every compute-budget instruction, keeping the rest in order."""
    remaining: Sequence[Instruction] = [
        ix for ix in skeleton.instructions if not is_budget_instruction(ix)
    ]
    return skeleton.with_instructions(remaining)


def inject_budget_instructions(
    skeleton: TransactionSkeleton,
    budget: ComputeBudget
) -> TransactionSkeleton:
    """Prepend the unit-limit and unit-price instructions."""
    return skeleton.with_instructions(budget_instructions(budget) + list(skeleton.instructions))


def apply_compute_budget(
    skeleton: TransactionSkeleton,
    budget: ComputeBudget
) -> TransactionSkeleton:
    return inject_budget_instructions(strip_budget_instructions(skeleton), budget)


__all__ = [
    "COMPUTE_BUDGET_PROGRAM_ID",
    "create_set_compute_unit_limit_instruction",
    "create_set_compute_unit_price_instruction",
    "budget_instructions",
    "is_budget_instruction",
    "strip_budget_instructions",
    "inject_budget_instructions",
    "apply_compute_budget",
]
