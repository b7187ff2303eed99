import enum
from dataclasses import dataclass
from typing import Optional, Tuple


class FlowKind(enum.Enum):
    """How control leaves an instruction."""

    FALLTHROUGH = "fallthrough"
    JUMP = "jump"
    CONDITIONAL = "conditional"
    CALL = "call"
    RETURN = "return"
    HALT = "halt"

    @property
    def transfers_control(self) -> bool:
        return self is not FlowKind.FALLTHROUGH


@dataclass(frozen=True)
class Instruction:
    """A single decoded instruction.

    ``target`` holds the branch or call destination when the decoder can
    resolve it from the encoding alone; it stays ``None`` for indirect
    transfers.
    """

    address: int
    size: int
    mnemonic: str
    opcode: Optional[int] = None
    operands: Tuple[int, ...] = ()
    flow: FlowKind = FlowKind.FALLTHROUGH
    target: Optional[int] = None
    raw: bytes = b""

    @property
    def end_address(self) -> int:
        return self.address + self.size

    def __str__(self) -> str:
        text = self.mnemonic
        if self.operands:
            text += " " + ", ".join(f"0x{op:x}" for op in self.operands)
        return f"0x{self.address:x}: {text}"

    def to_dict(self) -> dict:
        data = {
            "address": self.address,
            "size": self.size,
            "mnemonic": self.mnemonic,
            "operands": list(self.operands),
            "flow": self.flow.value,
        }
        if self.target is not None:
            data["target"] = self.target
        return data
