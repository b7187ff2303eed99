from .block_builder import build_block, dump_section, ends_block
from .explorer import (
    BlockFailure,
    ExplorationContext,
    ExplorationResult,
    ExplorationState,
    GraphExplorer,
    explore,
)

__all__ = [
    "BlockFailure",
    "ExplorationContext",
    "ExplorationResult",
    "ExplorationState",
    "GraphExplorer",
    "build_block",
    "dump_section",
    "ends_block",
    "explore",
]
