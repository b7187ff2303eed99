#!/usr/bin/env python3
"""
Command line entry point for control flow recovery.

Examples:
    dasm --bytecode 0x6003565b00 --format json
    dasm --file contract.bin --seed 0x0 --max-blocks 500 --output blocks.yaml --format yaml
    dasm --file code.bin --raw --dump
"""

import argparse
import os
import sys
from functools import partial

import structlog

from .analysis.block_builder import dump_section
from .analysis.explorer import GraphExplorer
from .backends import BACKENDS, get_backend
from .config import (
    DEFAULT_ARCH,
    DEFAULT_BASE,
    DEFAULT_FORMAT,
    DEFAULT_LOG_LEVEL,
    ExplorerConfig,
    parse_fence,
    parse_int,
)
from .core.errors import DisassemblyError
from .loader import load_bytecode, load_file
from .logging_config import configure_logging
from .render import OUTPUT_FORMATS, render_dump, render_result, write_output

logger = structlog.get_logger()


def build_parser(env_config: ExplorerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="dasm",
        description="Recover basic blocks and control flow from a raw code image",
    )

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--bytecode", help="Code as a hex string (0x prefix optional)")
    source.add_argument("--file", help="File holding hex text or raw bytes")

    parser.add_argument(
        "--raw",
        action="store_true",
        help="Read --file as raw bytes even if it looks like hex",
    )
    parser.add_argument(
        "--arch",
        default=os.environ.get("DASM_ARCH", DEFAULT_ARCH),
        choices=sorted(BACKENDS),
        help=f"Instruction set (default: {DEFAULT_ARCH})",
    )
    parser.add_argument(
        "--base",
        type=parse_int,
        default=parse_int(os.environ.get("DASM_BASE", str(DEFAULT_BASE))),
        help="Address of the first byte of the image (default: 0)",
    )
    parser.add_argument(
        "--seed",
        type=parse_int,
        help="Address to start exploring from (default: the base address)",
    )
    parser.add_argument(
        "--strict",
        action=argparse.BooleanOptionalAction,
        default=env_config.strict,
        help="Abort on the first block that fails to decode (--no-strict overrides DASM_STRICT)",
    )
    parser.add_argument(
        "--max-blocks",
        type=parse_int,
        default=env_config.max_blocks,
        help="Stop after recovering this many blocks",
    )
    parser.add_argument(
        "--fence",
        type=parse_fence,
        default=env_config.fence,
        help="Only explore addresses inside LO:HI",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=env_config.workers,
        help="Number of threads building blocks (default: 1)",
    )
    parser.add_argument(
        "--no-follow-calls",
        action="store_true",
        help="Do not explore the targets of direct calls",
    )
    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print a linear sweep from the seed instead of exploring",
    )
    parser.add_argument(
        "--end",
        type=parse_int,
        help="End address for --dump (default: end of the image)",
    )
    parser.add_argument(
        "--format",
        choices=OUTPUT_FORMATS,
        default=DEFAULT_FORMAT,
        help=f"Output format (default: {DEFAULT_FORMAT})",
    )
    parser.add_argument("--output", help="Write the result to this file instead of stdout")
    parser.add_argument(
        "--log-level",
        default=os.environ.get("DASM_LOG_LEVEL", DEFAULT_LOG_LEVEL),
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help=f"Logging level (default: {DEFAULT_LOG_LEVEL})",
    )
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    return parser


def main(argv=None) -> int:
    try:
        parser = build_parser(ExplorerConfig.from_env())
    except ValueError as e:
        print(f"dasm: invalid DASM_* environment setting: {e}", file=sys.stderr)
        return 2

    args = parser.parse_args(argv)

    configure_logging("DEBUG" if args.verbose else args.log_level, json_output=args.json_logs)

    try:
        if args.bytecode:
            image = load_bytecode(args.bytecode, base=args.base)
        else:
            image = load_file(args.file, base=args.base, raw=True if args.raw else None)

        backend = get_backend(args.arch)
        session_factory = partial(
            backend,
            image.buffer,
            image.base,
            follow_calls=not args.no_follow_calls,
        )
        seed = image.base if args.seed is None else args.seed

        if args.dump:
            end = image.end if args.end is None else args.end
            text = render_dump(dump_section(session_factory(), seed, end), args.format)
        else:
            config = ExplorerConfig(
                strict=args.strict,
                max_blocks=args.max_blocks,
                fence=args.fence,
                workers=args.workers,
            )
            result = GraphExplorer(session_factory, config).explore(seed)
            text = render_result(result, args.format)

        if args.output:
            write_output(text, args.output)
            logger.info("Result written", path=args.output, format=args.format)
        else:
            print(text)
        return 0

    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130

    except DisassemblyError as e:
        logger.error("Disassembly failed", address=hex(e.address), kind=e.kind, error=str(e))
        return 1

    except (OSError, ValueError, KeyError) as e:
        logger.error("Error", error=str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
