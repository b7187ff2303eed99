"""
Configuration defaults for exploration runs and the command line.

Every setting can be overridden through a ``DASM_*`` environment variable;
command line flags take precedence over both.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

DEFAULT_ARCH = "evm"
DEFAULT_BASE = 0
DEFAULT_LOG_LEVEL = "INFO"
DEFAULT_WORKERS = 1
DEFAULT_FORMAT = "text"


def parse_int(text: str) -> int:
    """Parse a decimal or ``0x``-prefixed integer."""
    return int(text, 0)


def parse_fence(text: str) -> Tuple[int, int]:
    """Parse ``LO:HI`` into a half-open address range."""
    lo, sep, hi = text.partition(":")
    if not sep:
        raise ValueError(f"fence must look like LO:HI, got '{text}'")
    fence = (parse_int(lo), parse_int(hi))
    if fence[1] <= fence[0]:
        raise ValueError(f"empty fence {text}")
    return fence


def _env_flag(value: Optional[str]) -> bool:
    return (value or "false").strip().lower() in ("1", "true", "yes", "on")


@dataclass
class ExplorerConfig:
    """Options controlling one graph exploration run."""

    strict: bool = False  # re-raise the first block failure
    max_blocks: Optional[int] = None
    fence: Optional[Tuple[int, int]] = None  # [lo, hi) addresses allowed in the worklist
    workers: int = DEFAULT_WORKERS

    def __post_init__(self):
        if self.max_blocks is not None and self.max_blocks < 0:
            raise ValueError("max_blocks must be non-negative")
        if self.workers < 1:
            raise ValueError("workers must be at least 1")

    def in_fence(self, address: int) -> bool:
        if self.fence is None:
            return True
        lo, hi = self.fence
        return lo <= address < hi

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ExplorerConfig":
        env = os.environ if environ is None else environ
        max_blocks = env.get("DASM_MAX_BLOCKS")
        fence = env.get("DASM_FENCE")
        return cls(
            strict=_env_flag(env.get("DASM_STRICT")),
            max_blocks=parse_int(max_blocks) if max_blocks else None,
            fence=parse_fence(fence) if fence else None,
            workers=int(env.get("DASM_WORKERS", DEFAULT_WORKERS)),
        )
