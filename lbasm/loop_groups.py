"""
Loop Group Tracking

Numeric for loops need their control registers in one contiguous run:

    base + 0   index
    base + 1   limit
    base + 2   step
    base + 3   body-visible loop variable

FORPREP and FORLOOP both address `base`. Inside the loop the variable is read
from `base + 3`, under the index name as well. Unrolled or repeated IR may name the
same logical loop variable differently per occurrence (i_0, i_1, ...), so
occurrences are grouped by stem and all converge on base + 3.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

from .errors import MalformedInput
from .lir import Operand, Register, Constant, Upvalue
from .register_allocation import RegisterAllocator, LOOP_GROUP_SIZE

logger = logging.getLogger(__name__)


@dataclass
class Materialization:
    """A value that must be moved into a loop control slot before FORPREP."""
    target: int
    source: Operand
    token: str  # Resolved source token at the time of setup


@dataclass
class LoopSetup:
    """Result of laying out one loop group."""
    stem: str
    base: int
    materializations: list[Materialization] = field(default_factory=list)
    # Unrelated names whose slots fall inside the group
    overwritten: list[str] = field(default_factory=list)


class LoopGroupTracker:
    """Assigns contiguous register groups to for_prep/for_loop pairs."""

    def __init__(self, allocator: RegisterAllocator):
        self.allocator = allocator

    @property
    def groups(self) -> dict[str, int]:
        return self.allocator.loop_groups

    def base_for(self, op) -> Optional[int]:
        """Loop base for a register operand's stem, if one is established."""
        if not isinstance(op, Register):
            return None
        return self.groups.get(self.allocator.stem(op.name))

    def setup(self, index, limit, step) -> LoopSetup:
        """Lay out the loop group for a for_prep instruction."""
        if not isinstance(index, Register):
            raise MalformedInput(f"for_prep index must be a register, got {index!r}")

        alloc = self.allocator

        # Step 1: reuse the index's slot if it has one
        base = alloc.lookup(index.name)
        if base is None:
            base = alloc.next_free()

        stem = alloc.stem(index.name)
        body_slot = base + LOOP_GROUP_SIZE - 1
        range_names = {op.name for op in (limit, step) if isinstance(op, Register)}

        # Names outside the loop that already hold a slot the group will write
        overwritten = []
        for name, slot in alloc.bindings.items():
            if base < slot <= body_slot and name not in range_names and alloc.stem(name) != stem:
                overwritten.append(name)
                logger.debug("loop '%s' takes R%d from '%s'", stem, slot, name)

        # Step 2: hold the whole group
        alloc.reserve_range(base, LOOP_GROUP_SIZE)

        # Where each control value lives before it is forced into place
        controls = [(index, base), (limit, base + 1), (step, base + 2)]
        prior = [(op, target, self._prior_token(op)) for op, target in controls]

        # Step 3: pin control registers to their slots
        for op, target in controls:
            if isinstance(op, Register):
                alloc.force(op.name, target)

        # Step 4: record the group
        self.groups[stem] = base

        # Step 5: every occurrence of the loop variable, the index included,
        # reads the body slot. FORPREP and FORLOOP reach `base` through the group.
        for name in alloc.names():
            if name not in range_names and alloc.stem(name) == stem:
                alloc.force(name, body_slot)

        # Step 6: copies needed to fill the control slots
        result = LoopSetup(stem=stem, base=base, overwritten=overwritten)
        for op, target, token in prior:
            if token is None or token == f"R{target}":
                continue
            result.materializations.append(Materialization(target, op, token))

        return result

    def _prior_token(self, op) -> Optional[str]:
        if isinstance(op, (Constant, Upvalue)):
            return self.allocator.resolve(op)
        if isinstance(op, Register):
            slot = self.allocator.peek(op.name)
            return f"R{slot}" if slot is not None else None
        # Raises UnknownOperandKind
        return self.allocator.resolve(op)
