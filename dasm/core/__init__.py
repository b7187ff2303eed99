from .basic_block import BasicBlock
from .errors import (
    BoundsError,
    DecodeError,
    DisassemblyError,
    TruncatedInstructionError,
)
from .instruction import FlowKind, Instruction
from .session import Decoder, DisassemblySession

__all__ = [
    "BasicBlock",
    "BoundsError",
    "DecodeError",
    "Decoder",
    "DisassemblyError",
    "DisassemblySession",
    "FlowKind",
    "Instruction",
    "TruncatedInstructionError",
]
