import struct

from dasm.core.errors import DecodeError, TruncatedInstructionError
from dasm.core.instruction import FlowKind, Instruction

# A tiny x86-flavoured instruction set used to drive the generic machinery.
#   90        NOP            fallthrough
#   E9 rel32  JMP rel32      unconditional, target = next + rel
#   EB rel8   JMP rel8       unconditional
#   74 rel8   JZ rel8        conditional
#   E8 rel32  CALL rel32     call
#   FF xx     JMP indirect   unconditional, target unknown
#   C3        RET
#   F4        HLT
NOP = 0x90
JMP32 = 0xE9
JMP8 = 0xEB
JZ8 = 0x74
CALL32 = 0xE8
JMPIND = 0xFF
RET = 0xC3
HLT = 0xF4

_LAYOUT = {
    NOP: ("nop", 1, FlowKind.FALLTHROUGH),
    JMP32: ("jmp", 5, FlowKind.JUMP),
    JMP8: ("jmp", 2, FlowKind.JUMP),
    JZ8: ("jz", 2, FlowKind.CONDITIONAL),
    CALL32: ("call", 5, FlowKind.CALL),
    JMPIND: ("jmp", 2, FlowKind.JUMP),
    RET: ("ret", 1, FlowKind.RETURN),
    HLT: ("hlt", 1, FlowKind.HALT),
}


class ToyDecoder:
    """Decoder for the toy instruction set; records every address it sees."""

    def __init__(self):
        self.calls = []

    def decode(self, window, address):
        self.calls.append(address)
        if len(window) == 0:
            raise TruncatedInstructionError(address)
        opcode = window[0]
        if opcode not in _LAYOUT:
            raise DecodeError(address, f"bad opcode 0x{opcode:02x} at 0x{address:x}")
        mnemonic, size, flow = _LAYOUT[opcode]
        if size > len(window):
            raise TruncatedInstructionError(address)

        target = None
        operands = ()
        if opcode in (JMP32, CALL32):
            rel = struct.unpack("<i", bytes(window[1:5]))[0]
            target = address + size + rel
            operands = (target,)
        elif opcode in (JMP8, JZ8):
            rel = struct.unpack("<b", bytes(window[1:2]))[0]
            target = address + size + rel
            operands = (target,)

        instruction = Instruction(
            address=address,
            size=size,
            mnemonic=mnemonic,
            opcode=opcode,
            operands=operands,
            flow=flow,
            target=target,
            raw=bytes(window[:size]),
        )
        return instruction, size


def jmp32(at, target):
    return bytes([JMP32]) + struct.pack("<i", target - (at + 5))


def call32(at, target):
    return bytes([CALL32]) + struct.pack("<i", target - (at + 5))


def jmp8(at, target):
    return bytes([JMP8]) + struct.pack("<b", target - (at + 2))


def jz8(at, target):
    return bytes([JZ8]) + struct.pack("<b", target - (at + 2))


def assemble(base, pieces, fill=NOP):
    """Place ``{address: bytes}`` pieces into one buffer starting at ``base``."""
    end = max(address + len(code) for address, code in pieces.items())
    buffer = bytearray([fill]) * (end - base)
    for address, code in pieces.items():
        buffer[address - base:address - base + len(code)] = code
    return bytes(buffer)

