"""
LBASM Backend

Lowers a normalized, block-structured LIR function to LBASM, the textual
assembly of a register-based virtual machine.

Pipeline: LIR -> lir-verify -> lbasm-codegen -> LBASM text
"""

# LIR types
from .lir import (
    LIROpcode,
    LIRInst,
    BasicBlock,
    LIRFunction,
    UpvalueDecl,
    Register,
    Constant,
    Upvalue,
    Operand,
)

# Errors
from .errors import (
    LoweringError,
    MalformedInput,
    UnknownOperandKind,
    UnknownOpcode,
    MissingMetadata,
    ArityError,
)

# Register allocation
from .register_allocation import RegisterAllocator, make_stem, LOOP_GROUP_SIZE
from .loop_groups import LoopGroupTracker, LoopSetup
from .pass_context import PassContext

# Codegen
from .emitter import emit_block, lower_instruction
from .serializer import serialize_function, build_header_line, format_constant

# Pass infrastructure
from .pass_manager import (
    PassConfig,
    PassMetrics,
    CompilerPass,
    LIRPass,
    CodegenPass,
    CompilerPipeline,
)
from .passes import LIRVerifierPass, LBASMCodegenPass

# Decoding
from .decoder import decode_function, load_lir

# Main entry points
from .compile import compile_lir_to_lbasm, compile_function, AssemblyResult

# Printing utilities
from .printing import print_lir, print_lbasm


# Public API
def assemble(lir, **kwargs):
    """Compile an LIR function to LBASM text, raising on the first fatal error."""
    return compile_lir_to_lbasm(lir, **kwargs)


__all__ = [
    # LIR
    'LIROpcode', 'LIRInst', 'BasicBlock', 'LIRFunction', 'UpvalueDecl',
    'Register', 'Constant', 'Upvalue', 'Operand',
    # Errors
    'LoweringError', 'MalformedInput', 'UnknownOperandKind', 'UnknownOpcode',
    'MissingMetadata', 'ArityError',
    # Register allocation
    'RegisterAllocator', 'make_stem', 'LOOP_GROUP_SIZE',
    'LoopGroupTracker', 'LoopSetup', 'PassContext',
    # Codegen
    'emit_block', 'lower_instruction',
    'serialize_function', 'build_header_line', 'format_constant',
    # Pass infrastructure
    'PassConfig', 'PassMetrics', 'CompilerPass', 'LIRPass', 'CodegenPass',
    'CompilerPipeline', 'LIRVerifierPass', 'LBASMCodegenPass',
    # Decoding
    'decode_function', 'load_lir',
    # Compilation
    'compile_lir_to_lbasm', 'compile_function', 'AssemblyResult',
    # Printing
    'print_lir', 'print_lbasm',
    # Public API
    'assemble',
]
