"""Shared fixtures and imports for backend tests."""

import os
import sys

# Add repo root to path for imports
_this_dir = os.path.dirname(os.path.abspath(__file__))
_repo_root = os.path.dirname(os.path.dirname(_this_dir))
sys.path.insert(0, _repo_root)

import pytest

from lbasm import (
    LIRFunction,
    BasicBlock,
    LIRInst,
    Register,
    Constant,
    PassContext,
    lower_instruction,
)


def R(name: str) -> Register:
    """Shorthand for a register operand."""
    return Register(name)


def K(index: int) -> Constant:
    """Shorthand for a constant operand."""
    return Constant(index)


def make_function(blocks: dict, consts=None, header=None, upvalues=None,
                  name: str = "main", locals=None) -> LIRFunction:
    """Helper to create LIR from a dict of block name -> instruction list."""
    return LIRFunction(
        name=name,
        header=header if header is not None else {},
        blocks=[BasicBlock(label, list(insts)) for label, insts in blocks.items()],
        consts=consts if consts is not None else [],
        upvalues=upvalues if upvalues is not None else [],
        locals=locals if locals is not None else [],
    )


def hello_function() -> LIRFunction:
    """load "hello" into a, copy to b, return b."""
    return make_function(
        {"entry": [
            LIRInst("const", R("a"), [K(0)]),
            LIRInst("move", R("b"), [R("a")]),
            LIRInst("return", None, [R("b")]),
        ]},
        consts=["hello"],
        header={"numparams": 1, "is_vararg": 0, "maxstack": 3},
    )


HELLO_LBASM = "\n".join([
    ".fn @main",
    ".header",
    "numparams=1, is_vararg=0, maxstack=3",
    "",
    ".instruction",
    "entry:",
    ".scope",
    "LOADK R0 K0",
    "MOVE R1 R0",
    "RETURN R1 2",
    ".endscope",
    "",
    ".const",
    'K0 = "hello"',
    ".upvalue",
    "U0 = L0 R0",
    ".endfn",
])


def lower(ctx: PassContext, *insts: LIRInst) -> list[str]:
    """Lower instructions into ctx and return the lines they produced."""
    for inst in insts:
        lower_instruction(inst, ctx)
    return ctx.take_lines()


@pytest.fixture
def ctx() -> PassContext:
    return PassContext.create()
