"""
Ethereum Virtual Machine decoding backend.
"""

import dataclasses
from enum import IntEnum
from typing import Dict, FrozenSet, List, Optional, Tuple

from ..core.errors import DecodeError, TruncatedInstructionError
from ..core.instruction import FlowKind, Instruction
from ..core.session import BytesLike
from ..segment import SegmentDisassembler


class Opcode(IntEnum):
    """EVM Opcodes"""

    STOP = 0x00
    ADD = 0x01
    MUL = 0x02
    SUB = 0x03
    DIV = 0x04
    SDIV = 0x05
    MOD = 0x06
    SMOD = 0x07
    ADDMOD = 0x08
    MULMOD = 0x09
    EXP = 0x0A
    SIGNEXTEND = 0x0B

    LT = 0x10
    GT = 0x11
    SLT = 0x12
    SGT = 0x13
    EQ = 0x14
    ISZERO = 0x15
    AND = 0x16
    OR = 0x17
    XOR = 0x18
    NOT = 0x19
    BYTE = 0x1A
    SHL = 0x1B
    SHR = 0x1C
    SAR = 0x1D

    SHA3 = 0x20

    ADDRESS = 0x30
    BALANCE = 0x31
    ORIGIN = 0x32
    CALLER = 0x33
    CALLVALUE = 0x34
    CALLDATALOAD = 0x35
    CALLDATASIZE = 0x36
    CALLDATACOPY = 0x37
    CODESIZE = 0x38
    CODECOPY = 0x39
    GASPRICE = 0x3A
    EXTCODESIZE = 0x3B
    EXTCODECOPY = 0x3C
    RETURNDATASIZE = 0x3D
    RETURNDATACOPY = 0x3E
    EXTCODEHASH = 0x3F

    BLOCKHASH = 0x40
    COINBASE = 0x41
    TIMESTAMP = 0x42
    NUMBER = 0x43
    DIFFICULTY = 0x44
    GASLIMIT = 0x45
    CHAINID = 0x46
    SELFBALANCE = 0x47
    BASEFEE = 0x48
    BLOBHASH = 0x49
    BLOBBASEFEE = 0x4A

    POP = 0x50
    MLOAD = 0x51
    MSTORE = 0x52
    MSTORE8 = 0x53
    SLOAD = 0x54
    SSTORE = 0x55
    JUMP = 0x56
    JUMPI = 0x57
    PC = 0x58
    MSIZE = 0x59
    GAS = 0x5A
    JUMPDEST = 0x5B
    TLOAD = 0x5C
    TSTORE = 0x5D
    MCOPY = 0x5E
    PUSH0 = 0x5F

    PUSH1 = 0x60
    PUSH2 = 0x61
    PUSH3 = 0x62
    PUSH4 = 0x63
    PUSH5 = 0x64
    PUSH6 = 0x65
    PUSH7 = 0x66
    PUSH8 = 0x67
    PUSH9 = 0x68
    PUSH10 = 0x69
    PUSH11 = 0x6A
    PUSH12 = 0x6B
    PUSH13 = 0x6C
    PUSH14 = 0x6D
    PUSH15 = 0x6E
    PUSH16 = 0x6F
    PUSH17 = 0x70
    PUSH18 = 0x71
    PUSH19 = 0x72
    PUSH20 = 0x73
    PUSH21 = 0x74
    PUSH22 = 0x75
    PUSH23 = 0x76
    PUSH24 = 0x77
    PUSH25 = 0x78
    PUSH26 = 0x79
    PUSH27 = 0x7A
    PUSH28 = 0x7B
    PUSH29 = 0x7C
    PUSH30 = 0x7D
    PUSH31 = 0x7E
    PUSH32 = 0x7F

    DUP1 = 0x80
    DUP2 = 0x81
    DUP3 = 0x82
    DUP4 = 0x83
    DUP5 = 0x84
    DUP6 = 0x85
    DUP7 = 0x86
    DUP8 = 0x87
    DUP9 = 0x88
    DUP10 = 0x89
    DUP11 = 0x8A
    DUP12 = 0x8B
    DUP13 = 0x8C
    DUP14 = 0x8D
    DUP15 = 0x8E
    DUP16 = 0x8F

    SWAP1 = 0x90
    SWAP2 = 0x91
    SWAP3 = 0x92
    SWAP4 = 0x93
    SWAP5 = 0x94
    SWAP6 = 0x95
    SWAP7 = 0x96
    SWAP8 = 0x97
    SWAP9 = 0x98
    SWAP10 = 0x99
    SWAP11 = 0x9A
    SWAP12 = 0x9B
    SWAP13 = 0x9C
    SWAP14 = 0x9D
    SWAP15 = 0x9E
    SWAP16 = 0x9F

    LOG0 = 0xA0
    LOG1 = 0xA1
    LOG2 = 0xA2
    LOG3 = 0xA3
    LOG4 = 0xA4

    CREATE = 0xF0
    CALL = 0xF1
    CALLCODE = 0xF2
    RETURN = 0xF3
    DELEGATECALL = 0xF4
    CREATE2 = 0xF5
    STATICCALL = 0xFA
    REVERT = 0xFD
    INVALID = 0xFE
    SELFDESTRUCT = 0xFF


# Map from opcode value to name
OPCODE_NAMES = {int(code): name for name, code in Opcode.__members__.items()}

# Map from opcode to number of immediate bytes for PUSH operations
PUSH_BYTES = {Opcode.PUSH0: 0}
PUSH_BYTES.update({Opcode.PUSH1 + i: i + 1 for i in range(32)})

# Opcodes that move control somewhere other than the next instruction.
# CALL and friends are message calls into other accounts: execution resumes
# at the next instruction, so they fall through.
FLOW_KINDS = {
    Opcode.JUMP: FlowKind.JUMP,
    Opcode.JUMPI: FlowKind.CONDITIONAL,
    Opcode.RETURN: FlowKind.RETURN,
    Opcode.STOP: FlowKind.HALT,
    Opcode.REVERT: FlowKind.HALT,
    Opcode.INVALID: FlowKind.HALT,
    Opcode.SELFDESTRUCT: FlowKind.HALT,
}


def is_push(opcode: Optional[int]) -> bool:
    return opcode in PUSH_BYTES


class EvmDecoder:
    """Stateless decoder for a single EVM instruction."""

    def decode(self, window: BytesLike, address: int) -> Tuple[Instruction, int]:
        if len(window) == 0:
            raise TruncatedInstructionError(address, f"no bytes left at 0x{address:x}")

        opcode_value = window[0]
        if opcode_value not in OPCODE_NAMES:
            raise DecodeError(
                address, f"unassigned opcode 0x{opcode_value:02x} at 0x{address:x}"
            )
        opcode = Opcode(opcode_value)

        push_bytes = PUSH_BYTES.get(opcode, 0)
        size = 1 + push_bytes
        if size > len(window):
            raise TruncatedInstructionError(
                address,
                f"{opcode.name} at 0x{address:x} needs {push_bytes} immediate bytes, "
                f"{len(window) - 1} available",
            )

        operands = ()
        if push_bytes:
            operands = (int.from_bytes(bytes(window[1:size]), "big"),)

        instruction = Instruction(
            address=address,
            size=size,
            mnemonic=opcode.name,
            opcode=opcode_value,
            operands=operands,
            flow=FLOW_KINDS.get(opcode, FlowKind.FALLTHROUGH),
            raw=bytes(window[:size]),
        )
        return instruction, size


@dataclasses.dataclass(frozen=True)
class CodeMap:
    """Instruction-stream facts about one segment, found by a linear sweep."""

    jumpdests: FrozenSet[int]
    pushes_ending_at: Dict[int, int]  # end address -> pushed value

    @classmethod
    def sweep(cls, buffer: BytesLike, base: int, decoder: EvmDecoder) -> "CodeMap":
        jumpdests = set()
        pushes = {}
        offset = 0
        while offset < len(buffer):
            address = base + offset
            try:
                instruction, size = decoder.decode(buffer[offset:], address)
            except DecodeError:
                # Unassigned opcodes still occupy one byte
                offset += 1
                continue
            except TruncatedInstructionError:
                break
            if instruction.opcode == Opcode.JUMPDEST:
                jumpdests.add(address)
            elif is_push(instruction.opcode):
                pushes[address + size] = instruction.operands[0] if instruction.operands else 0
            offset += size
        return cls(jumpdests=frozenset(jumpdests), pushes_ending_at=pushes)


class EvmSegmentDisassembler(SegmentDisassembler):
    """
    EVM session that resolves the ``PUSH <dest>; JUMP`` idiom.

    EVM jumps take their destination from the stack, so the decoder alone
    never knows it. When the instruction ending at a JUMP or JUMPI is a
    PUSH in the segment's instruction stream, the pushed constant is used
    as the target, provided it is a JUMPDEST of that same stream. Anything
    else is left unresolved.
    """

    def __init__(self, buffer, base, decoder=None, size=None, follow_calls=True, code_map=None):
        super().__init__(
            buffer,
            base,
            decoder if decoder is not None else EvmDecoder(),
            size=size,
            follow_calls=follow_calls,
        )
        self._code_map: Optional[CodeMap] = code_map

    @property
    def code_map(self) -> CodeMap:
        if self._code_map is None:
            self._code_map = CodeMap.sweep(self._buffer, self.base, self.decoder)
        return self._code_map

    def fork(self) -> "EvmSegmentDisassembler":
        return type(self)(
            self._buffer,
            self.base,
            self.decoder,
            follow_calls=self.follow_calls,
            code_map=self.code_map,
        )

    def _pushed_destination(self, address: int) -> Optional[int]:
        pushed = self.code_map.pushes_ending_at.get(address)
        if pushed is None:
            return None
        # PUSH operands are code offsets, counted from the segment base
        destination = self.base + pushed
        if destination not in self.code_map.jumpdests:
            return None
        return destination

    def successors_of(self, instruction: Instruction, address: int) -> List[int]:
        if instruction.opcode in (Opcode.JUMP, Opcode.JUMPI) and instruction.target is None:
            destination = self._pushed_destination(address)
            if destination is not None:
                instruction = dataclasses.replace(instruction, target=destination)
        return super().successors_of(instruction, address)
