#!/usr/bin/env python3
"""Compile a `.lir` JSON function to an `.lbasm` assembly file."""

import argparse
import logging
import os
import sys
import tempfile
from pathlib import Path

from .compile import compile_function
from .decoder import load_lir
from .errors import LoweringError

logger = logging.getLogger(__name__)


def write_atomic(path: Path, text: str) -> None:
    """Write text to path via a temp file in the same directory and a rename."""
    fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        os.unlink(tmp)
        raise


def main(argv=None):
    parser = argparse.ArgumentParser(description='Lower a LIR function to LBASM assembly')
    parser.add_argument('input', help='Input .lir file (JSON)')
    parser.add_argument('-o', '--output', help='Output file (default: INPUT with .lbasm suffix)')
    parser.add_argument('--config', help='JSON pass config layered over the defaults')
    parser.add_argument('--print-after-all', action='store_true', help='Print IR after each pass')
    parser.add_argument('--print-metrics', action='store_true', help='Print per-pass metrics')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    input_path = Path(args.input)
    output_path = Path(args.output) if args.output else input_path.with_suffix(".lbasm")

    try:
        lir = load_lir(input_path)
    except OSError as e:
        print(f"error: cannot open {input_path}: {e.strerror}", file=sys.stderr)
        return 1
    except LoweringError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    result = compile_function(
        lir,
        config_path=args.config,
        print_after_all=args.print_after_all,
        print_metrics=args.print_metrics,
    )
    if not result.ok:
        print(f"error: {result.error}", file=sys.stderr)
        return 1

    write_atomic(output_path, result.text + "\n")
    logger.debug("wrote %d bytes to %s", len(result.text) + 1, output_path)
    print(f"wrote {output_path}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
