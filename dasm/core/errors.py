class DisassemblyError(Exception):
    """Base class for failures raised while decoding at an address."""

    kind = "disassembly"

    def __init__(self, address, message=None):
        self.address = address
        if message is None:
            message = f"{self.kind} failure at 0x{address:x}"
        super().__init__(message)


class BoundsError(DisassemblyError):
    """Address lies outside the segment's [base, base+size) range."""

    kind = "bounds"


class DecodeError(DisassemblyError):
    """The bytes at an address do not form a valid instruction."""

    kind = "decode"


class TruncatedInstructionError(DisassemblyError):
    """The instruction's encoding runs past the end of the buffer."""

    kind = "truncated"
