"""
LIR -> LBASM Instruction Lowering

Turns each LIR instruction into one or more LBASM assembly lines, resolving
operands through the pass context's register allocator. Loop instructions go
through the loop group tracker so their control registers stay contiguous.
"""

from typing import Callable

from .errors import LoweringError, ArityError, MissingMetadata, UnknownOpcode
from .lir import LIROpcode, LIRInst, BasicBlock, Register, Constant, Upvalue, BINARY_OPCODES
from .pass_context import PassContext

# Fixed line for a return with no values
ZERO_RETURN = "RETURN 0 0"


def emit_block(block: BasicBlock, ctx: PassContext) -> list[str]:
    """Lower one basic block to its scoped assembly lines."""
    ctx.begin_block(block.name)
    ctx.emit(f"{block.name}:")
    ctx.emit(".scope")
    for inst in block.instructions:
        try:
            lower_instruction(inst, ctx)
        except LoweringError as e:
            e.annotate(block.name, repr(inst))
            raise
    ctx.emit(".endscope")
    return ctx.take_lines()


def lower_instruction(inst: LIRInst, ctx: PassContext):
    """Lower a single LIR instruction into ctx."""
    opcode = LIROpcode.from_tag(inst.opcode)

    if opcode in BINARY_OPCODES:
        _lower_binary(inst, ctx, opcode)
        return

    handler = _HANDLERS.get(opcode)
    if handler is not None:
        handler(inst, ctx)
        return

    raw = inst.meta.get("raw")
    if raw is None:
        raise UnknownOpcode(f"Unknown opcode: {inst.opcode!r}")
    ctx.emit(raw)


# ---------------------------------------------------------------------------
# Operand helpers
# ---------------------------------------------------------------------------

def _dest(inst: LIRInst, ctx: PassContext) -> str:
    if inst.dest is None:
        raise ArityError(f"'{inst.opcode}' requires a destination")
    return ctx.resolve(inst.dest)


def _operand(inst: LIRInst, i: int, what: str):
    if i >= len(inst.operands) or inst.operands[i] is None:
        raise ArityError(f"'{inst.opcode}' is missing its {what} operand")
    return inst.operands[i]


def _as_operand(value):
    """Bare names stand for registers."""
    if isinstance(value, str):
        return Register(value)
    return value


# ---------------------------------------------------------------------------
# Lowering rules
# ---------------------------------------------------------------------------

def _lower_loadk(inst: LIRInst, ctx: PassContext):
    if inst.operands:
        src = inst.operands[0]
    elif "c" in inst.meta:
        src = Constant(inst.meta["c"])
    else:
        raise ArityError(f"'{inst.opcode}' is missing its constant operand")
    ctx.emit(f"LOADK {_dest(inst, ctx)} {ctx.resolve(src)}")


def _lower_move(inst: LIRInst, ctx: PassContext):
    src = _operand(inst, 0, "source")
    ctx.emit(f"MOVE {_dest(inst, ctx)} {ctx.resolve(src)}")


def _lower_gettabup(inst: LIRInst, ctx: PassContext):
    upval = inst.operands[0] if inst.operands else Upvalue(0)
    key = inst.meta.get("key", inst.meta.get("key_c", 0))
    ctx.emit(f"GETTABUP {_dest(inst, ctx)} {ctx.resolve(upval)} K{key}")


def _lower_settabup(inst: LIRInst, ctx: PassContext):
    upval = _operand(inst, 0, "upvalue")
    key = _as_operand(_operand(inst, 1, "key"))
    value = _as_operand(_operand(inst, 2, "value"))
    ctx.emit(f"SETTABUP {ctx.resolve(upval)} {ctx.resolve(key)} {ctx.resolve(value)}")


def _lower_newtable(inst: LIRInst, ctx: PassContext):
    array_size = inst.meta.get("array_size", 0)
    hash_size = inst.meta.get("hash_size", 0)
    ctx.emit(f"NEWTABLE {_dest(inst, ctx)} {array_size} {hash_size}")


def _lower_settable(inst: LIRInst, ctx: PassContext):
    table = _dest(inst, ctx)
    key = _as_operand(_operand(inst, 0, "key"))
    value = _as_operand(_operand(inst, 1, "value"))
    ctx.emit(f"SETTABLE {table} {ctx.resolve(key)} {ctx.resolve(value)}")


def _lower_call(inst: LIRInst, ctx: PassContext):
    callee = _operand(inst, 0, "callee")
    nargs = len(inst.operands) - 1
    nret = inst.meta.get("nret", 1)
    ctx.emit(f"CALL {ctx.resolve(callee)} {nargs + 1} {nret}")


def _lower_return(inst: LIRInst, ctx: PassContext):
    regs = []
    for op in inst.operands:
        if isinstance(op, Constant):
            # RETURN takes registers only
            scratch = ctx.allocator.allocate_scratch()
            ctx.emit(f"LOADK R{scratch} {ctx.resolve(op)}")
            regs.append(f"R{scratch}")
        else:
            regs.append(ctx.resolve(op))

    if not regs:
        ctx.emit(ZERO_RETURN)
    else:
        ctx.emit(f"RETURN {' '.join(regs)} {len(regs) + 1}")


def _lower_binary(inst: LIRInst, ctx: PassContext, opcode: LIROpcode):
    left = _operand(inst, 0, "left")
    right = _operand(inst, 1, "right")
    dest = _dest(inst, ctx)
    ctx.emit(f"{opcode.name} {dest} {ctx.resolve(left)} {ctx.resolve(right)}")


def _lower_forprep(inst: LIRInst, ctx: PassContext):
    target = inst.meta.get("target", inst.meta.get("loop"))
    if target is None:
        raise MissingMetadata(f"'{inst.opcode}' requires a branch target")
    index = _operand(inst, 0, "index")
    limit = _operand(inst, 1, "limit")
    step = _operand(inst, 2, "step")

    setup = ctx.loops.setup(index, limit, step)
    for m in setup.materializations:
        if isinstance(m.source, Constant):
            ctx.emit(f"LOADK R{m.target} {m.token}")
        else:
            ctx.emit(f"MOVE R{m.target} {m.token}")
    ctx.emit(f"FORPREP R{setup.base} {target}")


def _lower_forloop(inst: LIRInst, ctx: PassContext):
    body = inst.meta.get("body")
    if body is None:
        raise MissingMetadata(f"'{inst.opcode}' requires a body label")
    index = _operand(inst, 0, "index")

    # The surface index may have been re-aliased to base + 3; step the base
    base = ctx.loops.base_for(index)
    reg = f"R{base}" if base is not None else ctx.resolve(index)
    ctx.emit(f"FORLOOP {reg} {body}")


_HANDLERS: dict[LIROpcode, Callable[[LIRInst, PassContext], None]] = {
    LIROpcode.LOADK: _lower_loadk,
    LIROpcode.MOVE: _lower_move,
    LIROpcode.GETTABUP: _lower_gettabup,
    LIROpcode.SETTABUP: _lower_settabup,
    LIROpcode.NEWTABLE: _lower_newtable,
    LIROpcode.SETTABLE: _lower_settable,
    LIROpcode.CALL: _lower_call,
    LIROpcode.RETURN: _lower_return,
    LIROpcode.FORPREP: _lower_forprep,
    LIROpcode.FORLOOP: _lower_forloop,
}
