"""
Breadth-first control flow graph recovery driven by a worklist.
"""

import enum
import threading
from collections import deque
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Union

import structlog

from ..config import ExplorerConfig
from ..core.basic_block import BasicBlock
from ..core.errors import DisassemblyError
from ..core.session import DisassemblySession
from .block_builder import build_block

logger = structlog.get_logger()

SessionFactory = Callable[[], DisassemblySession]


class ExplorationState(enum.Enum):
    PENDING = "pending"
    EXPLORING = "exploring"
    DONE = "done"


@dataclass(frozen=True)
class BlockFailure:
    """An address whose block could not be built."""

    address: int
    kind: str
    message: str

    @classmethod
    def from_error(cls, address: int, error: DisassemblyError) -> "BlockFailure":
        return cls(address=address, kind=error.kind, message=str(error))


@dataclass
class ExplorationResult:
    """Everything one exploration run produced."""

    seed: int
    blocks: List[BasicBlock] = field(default_factory=list)
    discovered: FrozenSet[int] = frozenset()
    failures: List[BlockFailure] = field(default_factory=list)
    pending: List[int] = field(default_factory=list)  # left over when max_blocks was hit
    fenced: List[int] = field(default_factory=list)  # successors outside the fence

    @property
    def complete(self) -> bool:
        return not self.pending

    def block_at(self, address: int) -> Optional[BasicBlock]:
        for block in self.blocks:
            if block.rva_begin == address:
                return block
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "seed": self.seed,
            "blocks": [block.to_dict() for block in self.blocks],
            "discovered": sorted(self.discovered),
            "failures": [
                {"address": f.address, "kind": f.kind, "message": f.message}
                for f in self.failures
            ],
            "pending": list(self.pending),
            "fenced": list(self.fenced),
        }


class ExplorationContext:
    """
    Worklist and discovered set for a single exploration run.

    ``claim`` is the only way an address enters the worklist: it inserts
    into the discovered set and enqueues in one locked step, so an address
    is explored at most once even when blocks are built concurrently.
    """

    def __init__(self, seed: int):
        self.seed = seed
        self.state = ExplorationState.PENDING
        self.worklist = deque([seed])
        self.discovered = {seed}
        self._lock = threading.Lock()

    def claim(self, address: int) -> bool:
        with self._lock:
            if address in self.discovered:
                return False
            self.discovered.add(address)
            self.worklist.append(address)
            return True

    def has_pending(self) -> bool:
        with self._lock:
            return bool(self.worklist)

    def pop(self) -> int:
        return self.take(1)[0]

    def take(self, limit: int) -> List[int]:
        """Remove up to ``limit`` addresses from the front of the worklist."""
        with self._lock:
            count = min(limit, len(self.worklist))
            if count and self.state is ExplorationState.PENDING:
                self.state = ExplorationState.EXPLORING
            return [self.worklist.popleft() for _ in range(count)]

    def finish(self):
        self.state = ExplorationState.DONE


class GraphExplorer:
    """
    Recovers the blocks reachable from a seed address.

    ``session_factory`` returns a fresh disassembly session each time it is
    called. A sequential run uses one session for the whole walk; with
    ``workers > 1`` every concurrent block build gets its own.
    """

    def __init__(self, session_factory: SessionFactory, config: Optional[ExplorerConfig] = None):
        self.session_factory = session_factory
        self.config = config or ExplorerConfig()
        self.context: Optional[ExplorationContext] = None

    def explore(self, seed: int) -> ExplorationResult:
        context = ExplorationContext(seed)
        self.context = context
        result = ExplorationResult(seed=seed)
        log = logger.bind(seed=hex(seed))
        log.info(
            "Exploration started",
            strict=self.config.strict,
            max_blocks=self.config.max_blocks,
            workers=self.config.workers,
        )

        try:
            if self.config.workers > 1:
                self._explore_waves(context, result, log)
            else:
                self._explore_sequential(context, result, log)
        finally:
            context.finish()

        result.discovered = frozenset(context.discovered)
        result.pending = list(context.worklist)
        log.info(
            "Exploration finished",
            blocks=len(result.blocks),
            failures=len(result.failures),
            discovered=len(result.discovered),
            pending=len(result.pending),
        )
        return result

    def _budget(self, result: ExplorationResult) -> Optional[int]:
        if self.config.max_blocks is None:
            return None
        return max(self.config.max_blocks - len(result.blocks), 0)

    def _explore_sequential(self, context, result, log):
        session = self.session_factory()
        while context.has_pending():
            if self._budget(result) == 0:
                log.warning("Block limit reached", max_blocks=self.config.max_blocks)
                break
            address = context.pop()
            self._absorb(context, result, address, self._build(session, address), log)

    def _explore_waves(self, context, result, log):
        # Blocks of one wave are built in parallel and merged in worklist
        # order, which reproduces the sequential visiting order exactly.
        with ThreadPoolExecutor(max_workers=self.config.workers) as executor:
            while context.has_pending():
                budget = self._budget(result)
                if budget == 0:
                    log.warning("Block limit reached", max_blocks=self.config.max_blocks)
                    break
                wave = context.take(budget if budget is not None else len(context.worklist))
                outcomes = list(executor.map(self._build_fresh, wave))
                for address, outcome in zip(wave, outcomes):
                    self._absorb(context, result, address, outcome, log)

    def _build(self, session, address) -> Union[BasicBlock, DisassemblyError]:
        try:
            return build_block(session, address)
        except DisassemblyError as e:
            return e

    def _build_fresh(self, address):
        return self._build(self.session_factory(), address)

    def _absorb(self, context, result, address, outcome, log):
        if isinstance(outcome, DisassemblyError):
            failure = BlockFailure.from_error(address, outcome)
            log.warning(
                "Block failed",
                address=hex(address),
                kind=failure.kind,
                error=failure.message,
            )
            if self.config.strict:
                raise outcome
            result.failures.append(failure)
            return

        block = outcome
        for successor in block.successors:
            if not self.config.in_fence(successor):
                if successor not in result.fenced:
                    result.fenced.append(successor)
                continue
            if context.claim(successor):
                log.debug("Address discovered", address=hex(successor), source=hex(address))
        result.blocks.append(block)
        log.debug(
            "Block built",
            begin=hex(block.rva_begin),
            end=hex(block.rva_end),
            instructions=len(block),
        )


def explore(
    session_factory: SessionFactory,
    seed: int,
    config: Optional[ExplorerConfig] = None,
) -> ExplorationResult:
    """Run one exploration from ``seed`` and return its result."""
    return GraphExplorer(session_factory, config).explore(seed)
