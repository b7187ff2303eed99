"""
Capability contracts between the block-walking algorithms and the
architecture-specific decoding backends.
"""

from typing import List, Protocol, Tuple, Union, runtime_checkable

from .instruction import Instruction

BytesLike = Union[bytes, bytearray, memoryview]


@runtime_checkable
class Decoder(Protocol):
    """Turns raw bytes into one instruction.

    ``decode`` receives the bytes from ``address`` up to the end of the
    segment and must never look past them. It raises ``DecodeError`` for
    bytes that are not an instruction and ``TruncatedInstructionError``
    when the window ends before the encoding does.
    """

    def decode(self, window: BytesLike, address: int) -> Tuple[Instruction, int]:
        ...


@runtime_checkable
class DisassemblySession(Protocol):
    """A cursor over an address space that can decode and classify."""

    def decode_at_cursor(self) -> Tuple[Instruction, int]:
        """Decode the instruction at the cursor without moving it."""
        ...

    def successors_of(self, instruction: Instruction, address: int) -> List[int]:
        """
        Return the addresses control may reach after ``instruction``.

        Fallthrough and unconditional branches yield one address, a
        conditional branch yields ``[fallthrough, taken]`` and terminal
        instructions yield nothing. Targets that cannot be resolved are
        left out.
        """
        ...

    def current_address(self) -> int:
        ...

    def set_cursor(self, address: int) -> int:
        """Move the cursor and return where it was."""
        ...
