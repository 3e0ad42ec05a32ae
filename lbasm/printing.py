"""
IR Printing Utilities

Pretty-printing functions for LIR and LBASM output.
"""

from .lir import LIRFunction


def print_lir(lir: LIRFunction):
    """Pretty-print LIR function."""
    print(f"=== LIR: {lir.name} ({len(lir.blocks)} blocks, {len(lir.consts)} consts) ===")
    if lir.header:
        print(f"header: {lir.header}")
    if lir.locals:
        print(f"locals: {', '.join(lir.locals)}")
    for block in lir.blocks:
        print(f"\n{block.name}:")
        for inst in block.instructions:
            meta = f"  {inst.meta}" if inst.meta else ""
            print(f"  {inst}{meta}")
    print()


def print_lbasm(text: str):
    """Pretty-print an LBASM document with line numbers."""
    lines = text.splitlines()
    print(f"=== LBASM ({len(lines)} lines) ===")
    for i, line in enumerate(lines):
        print(f"[{i:4d}] {line}")
    print()
