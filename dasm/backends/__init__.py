"""
Architecture backends.

Each backend is a factory ``(buffer, base, size=None, follow_calls=True)``
returning a fresh disassembly session over the buffer.
"""

from typing import Callable, Dict

from ..segment import SegmentDisassembler
from .evm import EvmDecoder, EvmSegmentDisassembler, Opcode

BACKENDS: Dict[str, Callable[..., SegmentDisassembler]] = {
    "evm": EvmSegmentDisassembler,
}


def get_backend(name: str) -> Callable[..., SegmentDisassembler]:
    """Look up a backend factory by architecture name."""
    try:
        return BACKENDS[name.lower()]
    except KeyError:
        raise KeyError(
            f"Unknown architecture '{name}'. Available: {', '.join(sorted(BACKENDS))}"
        ) from None


__all__ = ["BACKENDS", "EvmDecoder", "EvmSegmentDisassembler", "Opcode", "get_backend"]
