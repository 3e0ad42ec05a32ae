"""
LIR JSON Decoder

Reads the `.lir` JSON document format into an LIRFunction:

    {
      "function": "main",
      "header": {"numparams": 0, "is_vararg": 1, "maxstack": 2},
      "locals": ["a", "b"],
      "blocks": [
        {"name": "entry", "instrs": [
          {"op": "const", "dst": "a", "c": 0},
          {"op": "return", "args": ["a"]}
        ]}
      ],
      "consts": ["hello"],
      "upvalues": ["L0 R0"]
    }

String operands: "K<n>" and "U<n>" are pool references, "$name" and plain
names are registers. Dict operands carry an explicit kind: reg, const, or up.

Register operands are always virtual. A string such as "R5" and the pinned form
{"kind": "reg", "idx": 5} both decode to a register *named* "R5", which the
allocator places first-fit like any other name; the emitted slot need not be 5.
A "raw" field is kept in the instruction metadata and is emitted verbatim only
for opcodes the emitter does not know.

Malformed documents raise MalformedInput; operands of an unknown kind raise
UnknownOperandKind.
"""

import json
import re
from pathlib import Path
from typing import Any, Union

from .errors import MalformedInput, UnknownOperandKind
from .lir import LIRFunction, BasicBlock, LIRInst, UpvalueDecl, Register, Constant, Upvalue

_POOL_REF = re.compile(r"^([KU])(\d+)$")

# Instruction fields holding operands, in operand order.
# "settable" names its table as "dst" (written through) and its key/value as operands.
_OPERAND_FIELDS = ("upval", "func", "idx", "src", "lhs", "rhs", "limit", "step", "key", "value")

# Ops whose integer "key" is a constant index rather than an operand
_KEY_INDEX_OPS = {"getfield_env", "gettabup"}


def _operand_index(value: dict) -> int:
    """The non-negative "idx" of a dict operand."""
    if "idx" not in value:
        raise MalformedInput(f"{value.get('kind')} operand needs an 'idx': {value!r}")
    idx = value["idx"]
    if isinstance(idx, bool) or not isinstance(idx, (int, str)):
        raise MalformedInput(f"operand index must be an integer: {idx!r}")
    try:
        idx = int(idx)
    except ValueError as e:
        raise MalformedInput(f"operand index must be an integer: {idx!r}") from e
    if idx < 0:
        raise MalformedInput(f"operand index must be non-negative: {idx}")
    return idx


def _list_field(data: dict, name: str) -> list:
    value = data.get(name)
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedInput(f"'{name}' must be a list, got {type(value).__name__}")
    return value


def decode_operand(value: Any):
    """Decode a single operand from its JSON form."""
    if isinstance(value, dict):
        kind = value.get("kind")
        if kind == "reg":
            name = value.get("name")
            if name is None:
                name = f"R{_operand_index(value)}"
            return Register(name)
        if kind == "const":
            return Constant(_operand_index(value))
        if kind == "up":
            return Upvalue(_operand_index(value))
        raise UnknownOperandKind(f"unknown operand kind: {kind!r}")

    if isinstance(value, str):
        m = _POOL_REF.match(value)
        if m:
            cls = Constant if m.group(1) == "K" else Upvalue
            return cls(int(m.group(2)))
        if value.startswith("$"):
            return Register(value[1:])
        return Register(value)

    raise UnknownOperandKind(f"unknown operand: {value!r}")


def decode_instruction(data: dict) -> LIRInst:
    if not isinstance(data, dict) or "op" not in data:
        raise MalformedInput(f"instruction must be an object with an 'op': {data!r}")

    dest = decode_operand(data["dst"]) if data.get("dst") is not None else None

    operands = []
    meta: dict[str, Any] = {}
    for name in _OPERAND_FIELDS:
        if name not in data:
            continue
        value = data[name]
        if name == "key" and isinstance(value, int):
            if data["op"] in _KEY_INDEX_OPS:
                meta["key"] = value
            else:
                operands.append(Constant(value))
            continue
        operands.append(decode_operand(value))
    for arg in _list_field(data, "args"):
        operands.append(decode_operand(arg))

    skip = set(_OPERAND_FIELDS) | {"op", "dst", "args"}
    for k, v in data.items():
        if k not in skip:
            meta[k] = v

    return LIRInst(opcode=data["op"], dest=dest, operands=operands, meta=meta)


def decode_upvalue(index: int, data: Union[str, dict]) -> UpvalueDecl:
    if isinstance(data, str):
        return UpvalueDecl(storage=data)
    if isinstance(data, dict):
        storage = data.get("info") or data.get("ref") or ""
        return UpvalueDecl(storage=storage, name=data.get("name"))
    raise MalformedInput(f"upvalue {index} must be a string or an object")


def decode_function(data: dict) -> LIRFunction:
    """Decode a `.lir` JSON document into an LIRFunction."""
    if not isinstance(data, dict):
        raise MalformedInput("LIR document must be a JSON object")

    blocks = []
    for b in _list_field(data, "blocks"):
        if not isinstance(b, dict) or not b.get("name"):
            raise MalformedInput(f"block must be an object with a 'name': {b!r}")
        insts = [decode_instruction(i) for i in _list_field(b, "instrs")]
        blocks.append(BasicBlock(name=b["name"], instructions=insts))

    header = data.get("header") or {}
    if not isinstance(header, dict):
        raise MalformedInput(f"'header' must be an object, got {type(header).__name__}")

    upvalues = [decode_upvalue(i, uv) for i, uv in enumerate(_list_field(data, "upvalues"))]

    return LIRFunction(
        name=data.get("function") or "anonymous",
        header=dict(header),
        blocks=blocks,
        consts=list(_list_field(data, "consts")),
        upvalues=upvalues,
        locals=list(_list_field(data, "locals")),
    )


def load_lir(path: Union[str, Path]) -> LIRFunction:
    """Read and decode a `.lir` file."""
    with open(path, encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise MalformedInput(f"{path}: invalid JSON: {e}") from e
        except UnicodeDecodeError as e:
            raise MalformedInput(f"{path}: not valid UTF-8: {e}") from e
    return decode_function(data)
