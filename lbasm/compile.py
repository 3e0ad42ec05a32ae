"""
Main Compilation Entry Point

Provides compile_lir_to_lbasm, which runs the pass pipeline from LIR to LBASM
text, and compile_function, the single top-level error handler that turns a
fatal lowering error into a result value with no output text.
"""

import json
import logging
import os
from dataclasses import dataclass
from typing import Optional

from .errors import LoweringError
from .lir import LIRFunction
from .pass_manager import CompilerPipeline
from .passes import LIRVerifierPass, LBASMCodegenPass

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join(os.path.dirname(__file__), "pass_config.json")


@dataclass
class AssemblyResult:
    """Outcome of compiling one function: the document, or the error."""
    text: Optional[str] = None
    error: Optional[LoweringError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def build_pipeline(
    config_path: Optional[str] = None,
    print_after_all: bool = False,
    print_metrics: bool = False
) -> CompilerPipeline:
    """Create the LIR -> LBASM pipeline with its pass configuration loaded."""
    pipeline = CompilerPipeline(
        print_after_all=print_after_all,
        print_metrics=print_metrics,
    )

    with open(DEFAULT_CONFIG_PATH) as f:
        pipeline.set_config(json.load(f))
    if config_path is not None:
        pipeline.load_config(config_path)

    pipeline.add_pass(LIRVerifierPass())    # LIR -> LIR
    pipeline.add_pass(LBASMCodegenPass())   # LIR -> LBASM
    return pipeline


def compile_lir_to_lbasm(
    lir: LIRFunction,
    config_path: Optional[str] = None,
    print_after_all: bool = False,
    print_metrics: bool = False
) -> str:
    """
    Full compilation from LIR to LBASM text.

    Args:
        lir: The LIR function to compile
        config_path: Optional JSON pass config layered over the defaults
        print_after_all: If True, print IR after each compilation phase
        print_metrics: If True, print pass metrics and diagnostics

    Returns:
        The LBASM document

    Raises:
        LoweringError: on the first fatal lowering error
    """
    pipeline = build_pipeline(config_path, print_after_all, print_metrics)
    return pipeline.run(lir)


def compile_function(lir: LIRFunction, **kwargs) -> AssemblyResult:
    """Compile a function, converting a fatal error into a failed result."""
    try:
        text = compile_lir_to_lbasm(lir, **kwargs)
    except LoweringError as e:
        logger.debug("Lowering of '%s' failed: %s", lir.name, e)
        return AssemblyResult(error=e)
    return AssemblyResult(text=text)
