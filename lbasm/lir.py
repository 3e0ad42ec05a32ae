"""
LIR (Low-Level IR) - Normalized Function Representation

The low-level intermediate representation consumed by the LBASM backend.
A function is an ordered list of labelled basic blocks plus a constant pool
and an upvalue list. Operands are named virtual registers, constant-pool
indices, or upvalue indices; register slots are assigned during codegen.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


class LIROpcode(Enum):
    """LIR opcodes."""
    # Loads and moves
    LOADK = "const"
    MOVE = "move"

    # Upvalue table access
    GETTABUP = "getfield_env"
    SETTABUP = "settabup"

    # Tables
    NEWTABLE = "newtable"
    SETTABLE = "settable"

    # Calls
    CALL = "call"
    RETURN = "return"

    # Arithmetic
    ADD = "add"
    SUB = "sub"
    MUL = "mul"
    DIV = "div"
    MOD = "mod"
    POW = "pow"
    IDIV = "idiv"

    # Numeric for loops
    FORPREP = "for_prep"
    FORLOOP = "for_loop"

    @classmethod
    def from_tag(cls, tag: str) -> Optional["LIROpcode"]:
        """Map an instruction tag (or one of its aliases) to an opcode."""
        tag = _OPCODE_ALIASES.get(tag, tag)
        try:
            return cls(tag)
        except ValueError:
            return None


_OPCODE_ALIASES = {
    "loadk": "const",
    "copy": "move",
    "gettabup": "getfield_env",
    "ret": "return",
    "forloop": "for_loop",
}

BINARY_OPCODES = frozenset({
    LIROpcode.ADD, LIROpcode.SUB, LIROpcode.MUL, LIROpcode.DIV,
    LIROpcode.MOD, LIROpcode.POW, LIROpcode.IDIV,
})


@dataclass(frozen=True)
class Register:
    """A named virtual register."""
    name: str

    def __repr__(self):
        return f"%{self.name}"


@dataclass(frozen=True)
class Constant:
    """A constant-pool reference."""
    index: int

    def __repr__(self):
        return f"K{self.index}"


@dataclass(frozen=True)
class Upvalue:
    """An upvalue-list reference."""
    index: int

    def __repr__(self):
        return f"U{self.index}"


Operand = Union[Register, Constant, Upvalue]


@dataclass
class LIRInst:
    """A single LIR instruction.

    opcode is the raw tag so that unknown tags survive until codegen, where
    they either fall back to meta["raw"] or fail.

    meta carries opcode-specific fields:
      - for_prep: "target" (jump label)
      - for_loop: "body" (loop body label)
      - call: "nret"
      - getfield_env: "key"
      - newtable: "array_size", "hash_size"
      - any: "raw" (verbatim fallback text)
    """
    opcode: str
    dest: Optional[Operand] = None
    operands: list = field(default_factory=list)
    meta: dict[str, Any] = field(default_factory=dict)

    def __repr__(self):
        ops_str = ", ".join(repr(o) for o in self.operands)
        if self.dest is not None:
            return f"{self.dest!r} = {self.opcode}({ops_str})"
        return f"{self.opcode}({ops_str})"


@dataclass
class BasicBlock:
    """A labelled basic block."""
    name: str
    instructions: list[LIRInst] = field(default_factory=list)

    def __repr__(self):
        return f"BasicBlock({self.name}, {len(self.instructions)} insts)"


@dataclass
class UpvalueDecl:
    """An upvalue declaration: display name and storage descriptor."""
    storage: str
    name: Optional[str] = None


@dataclass
class LIRFunction:
    """A complete LIR function."""
    name: str = "anonymous"
    header: dict[str, Any] = field(default_factory=dict)
    blocks: list[BasicBlock] = field(default_factory=list)
    consts: list[Any] = field(default_factory=list)
    upvalues: list[UpvalueDecl] = field(default_factory=list)
    locals: list[str] = field(default_factory=list)  # Pre-bound to R0..Rn-1 in order
