"""
LBASM Assembly Serializer

Builds the final assembly document for one function:

    .fn @name
    .header
    numparams=.., is_vararg=.., maxstack=..

    .instruction
    <block>:
    .scope
    ...
    .endscope

    .const
    K0 = ...
    .upvalue
    U0 = L0 R0
    .endfn
"""

import json
from typing import Any

from .emitter import emit_block
from .lir import LIRFunction, UpvalueDecl
from .pass_context import PassContext

HEADER_ORDER = ("numparams", "is_vararg", "maxstack")

DEFAULT_UPVALUE = "L0 R0"


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "nil"
    return str(value)


def build_header_line(header: dict[str, Any]) -> str:
    """Render header fields: preferred fields first, then the rest in order."""
    parts = [f"{k}={_format_scalar(header[k])}" for k in HEADER_ORDER if k in header]
    parts.extend(
        f"{k}={_format_scalar(v)}" for k, v in header.items() if k not in HEADER_ORDER
    )
    return ", ".join(parts)


def escape_string(s: str) -> str:
    return s.replace("\\", "\\\\").replace('"', '\\"')


def format_constant(value: Any) -> str:
    """Render a constant-pool value as it appears on the right of `K<n> =`."""
    if isinstance(value, (list, tuple, dict)):
        return json.dumps(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return f'"{escape_string(_format_scalar(value))}"'


def format_upvalue(index: int, uv: UpvalueDecl) -> str:
    name = uv.name if uv.name else f"U{index}"
    return f"{name} = {uv.storage}"


def serialize_function(
    func: LIRFunction,
    ctx: PassContext,
    default_upvalue: str = DEFAULT_UPVALUE
) -> str:
    """Lower every block of func and assemble the complete document.

    Nothing is returned unless every block lowers cleanly; errors propagate.
    """
    out = [f".fn @{func.name}", ".header", build_header_line(func.header), ""]

    out.append(".instruction")
    for block in func.blocks:
        out.extend(emit_block(block, ctx))
        out.append("")

    # Identical constants keep their own lines and indices
    out.append(".const")
    for i, value in enumerate(func.consts):
        out.append(f"K{i} = {format_constant(value)}")

    out.append(".upvalue")
    if func.upvalues:
        for i, uv in enumerate(func.upvalues):
            out.append(format_upvalue(i, uv))
    else:
        out.append(f"U0 = {default_upvalue}")

    out.append(".endfn")
    return "\n".join(out)
