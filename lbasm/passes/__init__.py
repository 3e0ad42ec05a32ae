"""
Compiler Passes

This module contains passes for the LBASM backend pipeline:
- LIR verification
- Codegen pass (LIR -> LBASM)
"""

from .verify import LIRVerifierPass
from .codegen import LBASMCodegenPass

__all__ = [
    'LIRVerifierPass',
    'LBASMCodegenPass',
]
