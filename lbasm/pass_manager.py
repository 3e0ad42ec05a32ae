"""
Pass Manager Infrastructure

Provides the framework for running passes over LIR and the CompilerPipeline
that drives a function from LIR to LBASM assembly text.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional, Any
import json
import logging

from .lir import LIRFunction

logger = logging.getLogger(__name__)


@dataclass
class PassConfig:
    """Configuration for a single pass."""
    name: str
    enabled: bool = True
    options: dict[str, Any] = field(default_factory=dict)


@dataclass
class PassMetrics:
    """Metrics collected by a pass during execution."""
    ir_size_before: int = 0
    ir_size_after: int = 0
    custom: dict[str, Any] = field(default_factory=dict)
    messages: list[str] = field(default_factory=list)


def count_lir_instructions(lir: LIRFunction) -> int:
    """Count total instructions in LIR."""
    return sum(len(block.instructions) for block in lir.blocks)


def count_lines(text: str) -> int:
    """Count lines in an assembly document."""
    return len(text.splitlines())


class CompilerPass(ABC):
    """Base class for all compiler passes."""

    def __init__(self):
        self._metrics: Optional[PassMetrics] = None

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the pass name for config matching."""
        pass

    @property
    @abstractmethod
    def input_type(self) -> str:
        """Return the input IR type: 'lir' or 'lbasm'."""
        pass

    @property
    @abstractmethod
    def output_type(self) -> str:
        """Return the output IR type: 'lir' or 'lbasm'."""
        pass

    @abstractmethod
    def run(self, ir, config: PassConfig):
        pass

    def get_metrics(self) -> Optional[PassMetrics]:
        """Return metrics from the last run, if collected."""
        return self._metrics

    def _init_metrics(self):
        """Initialize metrics for a new run."""
        self._metrics = PassMetrics()

    def _add_metric_message(self, msg: str):
        """Add a diagnostic message to metrics."""
        if self._metrics:
            self._metrics.messages.append(msg)


class LIRPass(CompilerPass):
    """Base class for LIR transformation and checking passes."""

    @property
    def input_type(self) -> str:
        return "lir"

    @property
    def output_type(self) -> str:
        return "lir"

    @abstractmethod
    def run(self, lir: LIRFunction, config: PassConfig) -> LIRFunction:
        """Transform LIR and return an LIRFunction."""
        pass


class CodegenPass(CompilerPass):
    """Base class for passes that convert LIR to LBASM text."""

    @property
    def input_type(self) -> str:
        return "lir"

    @property
    def output_type(self) -> str:
        return "lbasm"

    @abstractmethod
    def run(self, lir: LIRFunction, config: PassConfig) -> str:
        """Generate the LBASM document from LIR."""
        pass


def _parse_config(data: dict) -> dict[str, PassConfig]:
    configs = {}
    for pass_name, opts in data.get("passes", {}).items():
        configs[pass_name] = PassConfig(
            name=pass_name,
            enabled=opts.get("enabled", True),
            options=opts.get("options", {})
        )
    return configs


@dataclass
class CompilerPipeline:
    """
    Manages the compilation pipeline from LIR to LBASM.

    Validates type compatibility between adjacent passes and requires the
    final state to be LBASM text.
    """
    passes: list[CompilerPass] = field(default_factory=list)
    config: dict[str, PassConfig] = field(default_factory=dict)
    print_after_all: bool = False
    print_metrics: bool = False

    def add_pass(self, p: CompilerPass) -> None:
        """Register a pass in the pipeline."""
        self.passes.append(p)

    def set_config(self, data: dict) -> None:
        """Apply pass configs from an already-parsed config document."""
        self.config.update(_parse_config(data))

    def load_config(self, config_path: str) -> None:
        """Load pass configs from JSON file."""
        with open(config_path) as f:
            data = json.load(f)
        self.set_config(data)

    def _print_lir_metrics(self, p: CompilerPass, cfg: PassConfig,
                           before_size: int, after_lir: LIRFunction):
        """Print metrics for LIR -> LIR pass."""
        after_size = count_lir_instructions(after_lir)

        print(f"\n=== Pass: {p.name} (LIR → LIR) ===")
        print(f"Config: {', '.join(f'{k}={v}' for k, v in cfg.options.items()) or '(default)'}")
        print(f"Instructions: {before_size} -> {after_size}")
        print(f"Blocks: {len(after_lir.blocks)}")

        self._print_custom_metrics(p)

    def _print_codegen_metrics(self, p: CompilerPass, cfg: PassConfig,
                               lir_size: int, text: str):
        """Print metrics for LIR -> LBASM codegen pass."""
        print(f"\n=== Pass: {p.name} (LIR → LBASM) ===")
        print(f"Config: {', '.join(f'{k}={v}' for k, v in cfg.options.items()) or '(default)'}")
        print(f"LIR instructions: {lir_size} -> LBASM lines: {count_lines(text)}")

        self._print_custom_metrics(p)

    def _print_custom_metrics(self, p: CompilerPass):
        """Print pass-specific custom metrics."""
        metrics = p.get_metrics()
        if metrics:
            if metrics.custom:
                print(f"Custom metrics: {metrics.custom}")
            if metrics.messages:
                print("Diagnostics:")
                for msg in metrics.messages:
                    print(f"  - {msg}")

    def run(self, lir: LIRFunction) -> str:
        """
        Run the full compilation pipeline.

        Args:
            lir: The LIR function to compile

        Returns:
            The LBASM document
        """
        from .printing import print_lir, print_lbasm

        if self.print_after_all:
            print("\n" + "=" * 60)
            print("COMPILATION START")
            print("=" * 60)
            print_lir(lir)

        state: dict[str, Any] = {"type": "lir", "ir": lir}

        for p in self.passes:
            cfg = self.config.get(p.name, PassConfig(name=p.name))

            if not cfg.enabled:
                logger.debug("Skipping disabled pass %s", p.name)
                if self.print_metrics:
                    print(f"\n=== Pass: {p.name} === (SKIPPED - disabled)")
                continue

            if p.input_type != state["type"]:
                raise TypeError(
                    f"Pass '{p.name}' expects input type '{p.input_type}' "
                    f"but current state is '{state['type']}'"
                )

            before_size = 0
            if self.print_metrics and p.input_type == "lir":
                before_size = count_lir_instructions(state["ir"])

            logger.debug("Running pass %s (%s -> %s)", p.name, p.input_type, p.output_type)
            result = p.run(state["ir"], cfg)

            if self.print_metrics:
                if p.output_type == "lir":
                    self._print_lir_metrics(p, cfg, before_size, result)
                elif p.output_type == "lbasm":
                    self._print_codegen_metrics(p, cfg, before_size, result)

            if self.print_after_all:
                print("-" * 60)
                print(f"After {p.name}:")
                print("-" * 60)
                if p.output_type == "lir":
                    print_lir(result)
                elif p.output_type == "lbasm":
                    print_lbasm(result)

            state = {"type": p.output_type, "ir": result}

        if self.print_after_all:
            print("=" * 60)
            print("COMPILATION END")
            print("=" * 60 + "\n")

        if state["type"] != "lbasm":
            raise RuntimeError(
                f"Pipeline did not produce LBASM output, got '{state['type']}' instead"
            )

        return state["ir"]
