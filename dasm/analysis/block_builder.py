"""
Basic block boundary detection and linear sweep over a disassembly session.
"""

from typing import List, Optional

import structlog

from ..core.basic_block import BasicBlock
from ..core.instruction import Instruction
from ..core.session import DisassemblySession

logger = structlog.get_logger()


def ends_block(instruction: Instruction, successors: List[int], next_address: int) -> bool:
    """
    True when ``instruction`` must be the last one of its block.

    Jumps, conditional branches, calls, returns and halts always end a
    block. Any other instruction ends it too if its successors are not just
    the next instruction.
    """
    if instruction.flow.transfers_control:
        return True
    return successors != [next_address]


def build_block(
    session: DisassemblySession,
    start_address: int,
    end_bound: Optional[int] = None,
) -> BasicBlock:
    """
    Disassemble one basic block starting at ``start_address``.

    Instructions are decoded until a control-transfer instruction is
    reached, or until the running end reaches ``end_bound`` when one is
    given. Decoding errors propagate unchanged; nothing is returned for a
    block that fails part way.

    Args:
        session: Session to decode with; its cursor is moved.
        start_address: Address of the first instruction.
        end_bound: Optional address at which to close the block early.

    Returns:
        The completed BasicBlock.
    """
    session.set_cursor(start_address)
    rva_begin = session.current_address()
    rva_end = rva_begin
    instructions = []

    while True:
        instruction, length = session.decode_at_cursor()
        instructions.append(instruction)
        address = rva_end
        rva_end += length

        successors = session.successors_of(instruction, address)
        if ends_block(instruction, successors, rva_end):
            break
        if end_bound is not None and rva_end >= end_bound:
            logger.debug(
                "Block closed at bound",
                begin=hex(rva_begin),
                bound=hex(end_bound),
            )
            break
        session.set_cursor(rva_end)

    return BasicBlock(
        rva_begin=rva_begin,
        rva_end=rva_end,
        successors=tuple(successors),
        instructions=tuple(instructions),
    )


def dump_section(session: DisassemblySession, begin: int, end: int) -> List[Instruction]:
    """
    Linearly decode every instruction starting in ``[begin, end)``.

    Control flow is ignored. The last instruction is kept whole even when
    its encoding runs past ``end``.
    """
    instructions = []
    session.set_cursor(begin)
    current = begin

    while current < end:
        instruction, length = session.decode_at_cursor()
        instructions.append(instruction)
        current += length
        session.set_cursor(current)

    logger.debug(
        "Section dumped",
        begin=hex(begin),
        end=hex(end),
        instructions=len(instructions),
    )
    return instructions
