import dataclasses
from typing import Any, Dict, Tuple

from .instruction import Instruction


@dataclasses.dataclass(frozen=True)
class BasicBlock:
    """
    A straight-line run of instructions with a single entry.

    The block starts at ``rva_begin`` and ends immediately before
    ``rva_end``; its instructions cover that range with no gaps. Successor
    order follows the session convention: for a conditional branch index 0
    is the fallthrough and index 1 the taken target.
    """

    rva_begin: int
    rva_end: int
    successors: Tuple[int, ...] = ()
    instructions: Tuple[Instruction, ...] = ()

    def __post_init__(self):
        if self.rva_end < self.rva_begin:
            raise ValueError(
                f"block end 0x{self.rva_end:x} precedes begin 0x{self.rva_begin:x}"
            )

    @property
    def size(self) -> int:
        return self.rva_end - self.rva_begin

    @property
    def terminator(self) -> Instruction:
        return self.instructions[-1]

    def __contains__(self, address: int) -> bool:
        return self.rva_begin <= address < self.rva_end

    def __len__(self) -> int:
        return len(self.instructions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rva_begin": self.rva_begin,
            "rva_end": self.rva_end,
            "successors": list(self.successors),
            "instructions": [insn.to_dict() for insn in self.instructions],
        }

    def __repr__(self) -> str:
        return (
            f"BasicBlock(begin=0x{self.rva_begin:x}, end=0x{self.rva_end:x}, "
            f"instructions={len(self.instructions)}, "
            f"successors=[{', '.join(hex(s) for s in self.successors)}])"
        )
