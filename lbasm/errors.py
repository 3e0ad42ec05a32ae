"""Fatal lowering errors. None of these are recovered from inside a pass."""

from typing import Optional


class LoweringError(Exception):
    """Base exception for LBASM lowering errors with optional location context."""

    def __init__(
        self,
        message: str,
        block: Optional[str] = None,
        instruction: Optional[str] = None
    ):
        """
        Initialize lowering error.

        Args:
            message: Core error description
            block: Label of the block being lowered, if known
            instruction: Text form of the offending instruction, if known
        """
        self.message = message
        self.block = block
        self.instruction = instruction

        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.block is not None:
            parts.append(f"in block '{self.block}'")
        if self.instruction is not None:
            parts.append(f"at {self.instruction}")
        return " ".join(parts)

    def annotate(self, block: str, instruction: Optional[str] = None) -> None:
        """Attach block/instruction context unless an inner frame already did."""
        if self.block is not None:
            return
        self.block = block
        self.instruction = instruction
        self.args = (self._format_message(),)


class MalformedInput(LoweringError):
    """The supplied structure is not a validly normalized function."""


class UnknownOperandKind(LoweringError):
    """An operand that is not a Register, Constant, or Upvalue."""


class UnknownOpcode(LoweringError):
    """An instruction with no lowering rule and no verbatim fallback."""


class MissingMetadata(LoweringError):
    """An instruction is missing a required metadata field."""


class ArityError(LoweringError):
    """An instruction is missing required operands."""
