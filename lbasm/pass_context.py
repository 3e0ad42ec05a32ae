"""
Codegen Pass Context

State for lowering one function: the register allocator, the loop group
tracker built on it, and the line buffer of the block being emitted.
A new context is created for every function pass.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional

from .loop_groups import LoopGroupTracker
from .register_allocation import RegisterAllocator, make_stem, DEFAULT_OCCURRENCE_SUFFIX


@dataclass
class PassContext:
    """Per-function codegen state."""
    allocator: RegisterAllocator
    loops: LoopGroupTracker
    lines: list[str] = field(default_factory=list)
    current_block: Optional[str] = None

    @classmethod
    def create(
        cls,
        occurrence_suffix: str = DEFAULT_OCCURRENCE_SUFFIX,
        locals: Iterable[str] = ()
    ) -> "PassContext":
        """Create a fresh context, pre-binding declared locals."""
        allocator = RegisterAllocator(make_stem(occurrence_suffix))
        allocator.seed(locals)
        return cls(allocator=allocator, loops=LoopGroupTracker(allocator))

    def resolve(self, op) -> str:
        """Resolve an operand to its assembly token."""
        return self.allocator.resolve(op)

    def emit(self, line: str):
        """Append a line to the current block's output."""
        self.lines.append(line)

    def begin_block(self, name: str):
        """Start collecting lines for a new block."""
        self.current_block = name
        self.lines = []

    def take_lines(self) -> list[str]:
        """Return and clear the collected lines."""
        lines, self.lines = self.lines, []
        return lines
