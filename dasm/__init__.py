"""
Control flow recovery from raw code images.

A disassembly session decodes instructions out of a buffer, the block
builder cuts them into basic blocks, and the graph explorer walks the
successors breadth-first from a seed address.
"""

from .analysis.block_builder import build_block, dump_section
from .analysis.explorer import (
    BlockFailure,
    ExplorationContext,
    ExplorationResult,
    ExplorationState,
    GraphExplorer,
    explore,
)
from .backends import EvmDecoder, EvmSegmentDisassembler, get_backend
from .config import ExplorerConfig
from .core import (
    BasicBlock,
    BoundsError,
    DecodeError,
    Decoder,
    DisassemblyError,
    DisassemblySession,
    FlowKind,
    Instruction,
    TruncatedInstructionError,
)
from .loader import LoadedImage, load_bytecode, load_file
from .segment import SegmentDisassembler

__version__ = "0.1.0"

__all__ = [
    # Core types
    "BasicBlock",
    "Instruction",
    "FlowKind",
    "Decoder",
    "DisassemblySession",
    # Errors
    "DisassemblyError",
    "BoundsError",
    "DecodeError",
    "TruncatedInstructionError",
    # Sessions
    "SegmentDisassembler",
    "EvmDecoder",
    "EvmSegmentDisassembler",
    "get_backend",
    # Analysis
    "build_block",
    "dump_section",
    "GraphExplorer",
    "ExplorationContext",
    "ExplorationResult",
    "ExplorationState",
    "BlockFailure",
    "ExplorerConfig",
    "explore",
    # Loading
    "LoadedImage",
    "load_bytecode",
    "load_file",
]
