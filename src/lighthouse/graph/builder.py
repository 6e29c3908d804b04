"""Step-chain reconstruction from parent-pointer records.

Exports list steps in arbitrary order with each step naming its parent. The
builder indexes steps by identifier, finds the single entry step and walks
parent -> child links layer by layer until the chain ends.

Known precision limit: when a step has several children only the first child
in canonical identifier order is followed. Alternate branches are reported via
`StepChain.has_branches` but are not analysed on their own.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from lighthouse.core.exceptions import MalformedGraphError
from lighthouse.core.models import Step
from lighthouse.utils.logging import get_logger

logger = get_logger(__name__)


class ChainStatus(str, Enum):
    OK = "ok"
    EMPTY = "empty"
    NO_ENTRY = "no_entry"
    MULTIPLE_ENTRIES = "multiple_entries"


@dataclass(frozen=True)
class StepChain:
    """Ordered steps from the entry step to the deepest reachable descendant."""
    steps: Tuple[Step, ...] = ()
    status: ChainStatus = ChainStatus.OK
    has_branches: bool = False
    cycle_detected: bool = False
    unreachable_step_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __len__(self) -> int:
        return len(self.steps)

    def __iter__(self):
        return iter(self.steps)

    @property
    def is_conclusive(self) -> bool:
        """False when the structure could not be reconstructed.

        An inconclusive chain means "could not analyse", never "no issues".
        """
        return self.status in (ChainStatus.OK, ChainStatus.EMPTY)

    @property
    def entry(self) -> Optional[Step]:
        return self.steps[0] if self.steps else None


def step_sort_key(step_id: str) -> Tuple[int, int, str]:
    """Canonical identifier order: numeric ids numerically, then the rest lexically."""
    if step_id.isdigit():
        return (0, int(step_id), step_id)
    return (1, 0, step_id)


def _index_steps(steps: Iterable[Step]) -> Dict[str, Step]:
    arena: Dict[str, Step] = {}
    for step in steps:
        # First occurrence wins for duplicated identifiers.
        arena.setdefault(step.id, step)
    return arena


def _children_by_parent(arena: Dict[str, Step]) -> Dict[str, List[str]]:
    children: Dict[str, List[str]] = {}
    for step in arena.values():
        if step.parent_id is None:
            continue
        children.setdefault(step.parent_id, []).append(step.id)
    for ids in children.values():
        ids.sort(key=step_sort_key)
    return children


def build_step_chain(steps: Sequence[Step]) -> StepChain:
    """Reconstruct the ordered chain for one workflow.

    Never raises. Zero or several parentless steps yield an empty chain with a
    status describing why; callers must treat that as inconclusive.
    """
    if not steps:
        return StepChain(status=ChainStatus.EMPTY)

    arena = _index_steps(steps)
    entries = sorted(
        (s.id for s in arena.values() if s.parent_id is None), key=step_sort_key
    )
    if len(entries) != 1:
        status = ChainStatus.NO_ENTRY if not entries else ChainStatus.MULTIPLE_ENTRIES
        logger.debug(
            "Cannot determine entry step",
            extra={"entry_candidates": entries, "step_count": len(arena)},
        )
        return StepChain(
            status=status,
            unreachable_step_ids=tuple(sorted(arena, key=step_sort_key)),
        )

    children = _children_by_parent(arena)
    ordered: List[Step] = []
    visited: Set[str] = set()
    has_branches = False
    cycle_detected = False

    current: Optional[str] = entries[0]
    while current is not None:
        if current in visited:
            cycle_detected = True
            break
        visited.add(current)
        ordered.append(arena[current])

        next_layer = children.get(current, [])
        if len(next_layer) > 1:
            has_branches = True
        current = next_layer[0] if next_layer else None

    unreachable = tuple(sorted((sid for sid in arena if sid not in visited), key=step_sort_key))
    return StepChain(
        steps=tuple(ordered),
        status=ChainStatus.OK,
        has_branches=has_branches,
        cycle_detected=cycle_detected,
        unreachable_step_ids=unreachable,
    )


def require_step_chain(steps: Sequence[Step]) -> StepChain:
    """Strict variant of `build_step_chain` for callers that cannot proceed without a chain."""
    chain = build_step_chain(steps)
    if not chain.is_conclusive:
        raise MalformedGraphError(
            "Workflow has no unique entry step",
            context={"status": chain.status.value, "step_ids": list(chain.unreachable_step_ids)},
        )
    return chain
