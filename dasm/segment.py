"""
Disassembly session bound to one contiguous in-memory segment.
"""

from typing import List, Optional, Tuple

from .core.errors import BoundsError, DecodeError, TruncatedInstructionError
from .core.instruction import FlowKind, Instruction
from .core.session import BytesLike, Decoder


class SegmentDisassembler:
    """
    Decodes instructions out of ``buffer`` mapped at ``[base, base + size)``.

    The instance owns a single cursor. It must not be walked by two block
    builds at the same time; use :meth:`fork` to get an independent cursor
    over the same bytes.
    """

    def __init__(
        self,
        buffer: BytesLike,
        base: int,
        decoder: Decoder,
        size: Optional[int] = None,
        follow_calls: bool = True,
    ):
        view = memoryview(buffer)
        if view.ndim != 1 or view.itemsize != 1:
            view = view.cast("B")
        if size is None:
            size = len(view)
        if size < 0 or size > len(view):
            raise ValueError(f"segment size {size} does not fit a {len(view)}-byte buffer")
        if base < 0:
            raise ValueError(f"negative base address {base}")

        self._buffer = view[:size].toreadonly()
        self.base = base
        self.size = size
        self.decoder = decoder
        self.follow_calls = follow_calls
        self._cursor = base

    @property
    def end(self) -> int:
        return self.base + self.size

    def contains(self, address: int) -> bool:
        return self.base <= address < self.end

    def fork(self) -> "SegmentDisassembler":
        """Return a new session sharing this buffer, with its own cursor."""
        return type(self)(
            self._buffer,
            self.base,
            self.decoder,
            follow_calls=self.follow_calls,
        )

    def current_address(self) -> int:
        return self._cursor

    def set_cursor(self, address: int) -> int:
        previous = self._cursor
        self._cursor = address
        return previous

    def _offset_of(self, address: int) -> int:
        if not self.contains(address):
            raise BoundsError(
                address,
                f"address 0x{address:x} outside segment [0x{self.base:x}, 0x{self.end:x})",
            )
        return address - self.base

    def read(self, address: int, count: int) -> bytes:
        """Return up to ``count`` bytes starting at ``address``."""
        offset = self._offset_of(address)
        return bytes(self._buffer[offset:offset + count])

    def decode_at_cursor(self) -> Tuple[Instruction, int]:
        address = self._cursor
        offset = self._offset_of(address)
        window = self._buffer[offset:]

        instruction, length = self.decoder.decode(window, address)

        if length <= 0:
            raise DecodeError(address, f"decoder returned length {length} at 0x{address:x}")
        if length > len(window):
            raise TruncatedInstructionError(
                address,
                f"{length}-byte instruction at 0x{address:x} runs past segment end 0x{self.end:x}",
            )
        return instruction, length

    def successors_of(self, instruction: Instruction, address: int) -> List[int]:
        fallthrough = address + instruction.size
        flow = instruction.flow
        target = instruction.target

        if flow is FlowKind.FALLTHROUGH:
            return [fallthrough]
        if flow is FlowKind.JUMP:
            return [target] if target is not None else []
        if flow is FlowKind.CONDITIONAL:
            return [fallthrough, target] if target is not None else [fallthrough]
        if flow is FlowKind.CALL:
            if self.follow_calls and target is not None:
                return [fallthrough, target]
            return [fallthrough]
        # RETURN and HALT end the path
        return []

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base=0x{self.base:x}, end=0x{self.end:x}, "
            f"cursor=0x{self._cursor:x})"
        )
