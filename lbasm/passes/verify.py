"""
LIR Verification Pass

Rejects functions that are not validly normalized before codegen starts.
"""

from ..errors import MalformedInput
from ..lir import LIRFunction, LIRInst
from ..pass_manager import LIRPass, PassConfig


class LIRVerifierPass(LIRPass):
    """
    Pass that checks LIR structure and returns it unchanged.

    Checks:
      - the function has at least one block
      - every block has a non-empty, unique label
      - every instruction has a string opcode tag and a metadata dict
      - the constant pool and upvalue list are lists
    """

    @property
    def name(self) -> str:
        return "lir-verify"

    def run(self, lir: LIRFunction, config: PassConfig) -> LIRFunction:
        self._init_metrics()

        if not lir.blocks:
            raise MalformedInput(f"function '{lir.name}' has no blocks")

        if not isinstance(lir.consts, list):
            raise MalformedInput("constant pool must be a list")
        if not isinstance(lir.upvalues, list):
            raise MalformedInput("upvalue list must be a list")

        seen: set[str] = set()
        n_insts = 0
        for block in lir.blocks:
            if not block.name:
                raise MalformedInput("block without a label")
            if block.name in seen:
                raise MalformedInput(f"duplicate block label '{block.name}'")
            seen.add(block.name)

            for inst in block.instructions:
                _verify_inst(inst, block.name)
                n_insts += 1

        if self._metrics:
            self._metrics.custom = {
                "blocks": len(lir.blocks),
                "instructions": n_insts,
            }

        return lir


def _verify_inst(inst: LIRInst, block_name: str):
    if not isinstance(inst, LIRInst):
        raise MalformedInput(f"not an instruction: {inst!r}", block=block_name)
    if not isinstance(inst.opcode, str) or not inst.opcode:
        raise MalformedInput(f"instruction without an opcode tag: {inst!r}", block=block_name)
    if not isinstance(inst.meta, dict):
        raise MalformedInput(f"instruction metadata must be a dict: {inst!r}", block=block_name)
