"""
LIR to LBASM Codegen Pass

Allocates registers and emits the LBASM document for one function.
"""

from ..lir import LIRFunction
from ..pass_context import PassContext
from ..pass_manager import CodegenPass, PassConfig
from ..register_allocation import DEFAULT_OCCURRENCE_SUFFIX
from ..serializer import serialize_function, DEFAULT_UPVALUE


class LBASMCodegenPass(CodegenPass):
    """
    Pass that lowers LIR to LBASM assembly text.

    A fresh PassContext is built on every run, so allocation state never
    leaks between functions.

    Options:
        occurrence_suffix: Regex for the trailing occurrence suffix stripped
                           to find a loop variable's stem.
        default_upvalue: Storage descriptor for the synthetic U0 entry
                         emitted when the function declares no upvalues.
    """

    @property
    def name(self) -> str:
        return "lbasm-codegen"

    def run(self, lir: LIRFunction, config: PassConfig) -> str:
        """Generate the LBASM document."""
        self._init_metrics()

        ctx = PassContext.create(
            occurrence_suffix=config.options.get("occurrence_suffix", DEFAULT_OCCURRENCE_SUFFIX),
            locals=lir.locals,
        )
        text = serialize_function(
            lir, ctx,
            default_upvalue=config.options.get("default_upvalue", DEFAULT_UPVALUE),
        )

        if self._metrics:
            self._metrics.custom = {
                "registers_used": ctx.allocator.registers_used,
                "named_registers": len(ctx.allocator.names()),
                "loop_groups": len(ctx.loops.groups),
            }
            for stem, base in ctx.loops.groups.items():
                self._add_metric_message(f"loop '{stem}' -> R{base}..R{base + 3}")

        return text
