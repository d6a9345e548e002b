#!/usr/bin/env python3
import argparse
import json
import sys
from typing import Iterable, Iterator, Set, TypeVar

import intrange
from intrange.ir.check_ir import check_ir_ctx
from intrange.ir.parser import parse_ir
from intrange.passes import ComparisonDiagnostic, RangePass
from intrange.settings import INTRANGE_MAX_ITERATIONS, RangeSettings
from intrange.warnings import warnings_filter

"""
Standalone entry point into the range analysis. Parses IR input and
prints the computed ranges.
"""

T = TypeVar("T")

format_options_help = """Format to print, one or more of:
ranges (default) - Range of every symbolic id, one per line
json             - Range of every symbolic id as a JSON object
diagnostics      - Comparisons whose outcome is fixed by the bounds of their operands
"""

OUTPUT_FORMATS = ("ranges", "json", "diagnostics")


def _parse_cli_args():
    return _parse_args(sys.argv[1:])


def _parse_args(argv: list[str]):
    parser = argparse.ArgumentParser(
        description="Whole-program integer range analysis",
        formatter_class=argparse.RawTextHelpFormatter,
    )
    parser.add_argument("input_file", help="IR sourcefile", nargs="?")
    parser.add_argument("--version", action="version", version=intrange.__version__)
    parser.add_argument("--stdin", action="store_true", help="whether to pull IR input from stdin")
    parser.add_argument("-f", help=format_options_help, default="ranges", dest="format")
    parser.add_argument("-o", help="Set the output path", dest="output_path")
    parser.add_argument(
        "--cbor", help="Write the ranges to the output path as CBOR", action="store_true"
    )
    parser.add_argument(
        "--max-iterations",
        help=f"Sweeps before changing ids are widened (default {INTRANGE_MAX_ITERATIONS})",
        type=int,
        dest="max_iterations",
    )
    parser.add_argument("--watch", help="Trace updates of a symbolic id to stderr", dest="watch_id")
    parser.add_argument(
        "--taint",
        help="Treat a symbolic id as attacker controlled (can be repeated)",
        action="append",
        dest="taint_sources",
        default=[],
    )
    parser.add_argument(
        "-W", help="Control warnings", choices=["error", "none"], dest="warnings_control"
    )

    args = parser.parse_args(argv)

    output_formats = tuple(uniq(args.format.split(",")))
    for fmt in output_formats:
        if fmt not in OUTPUT_FORMATS:
            parser.error(f"unknown output format `{fmt}`")

    if args.cbor and args.output_path is None:
        print("Error: --cbor needs an output path, use -o")
        sys.exit(1)

    if args.stdin:
        if not sys.stdin.isatty():
            source = sys.stdin.read()
        else:
            # No input provided
            print("Error: --stdin flag used but no input provided")
            sys.exit(1)
    else:
        if args.input_file is None:
            print("Error: No input file provided, either use --stdin or provide a path")
            sys.exit(1)
        with open(args.input_file, "r") as f:
            source = f.read()

    settings = RangeSettings.from_env(
        max_iterations=args.max_iterations,
        watch_id=args.watch_id,
        taint_sources=tuple(args.taint_sources) or None,
    )

    with warnings_filter(args.warnings_control):
        ctx = parse_ir(source)
        check_ir_ctx(ctx)
        rp = intrange.analyze_context(ctx, settings)
        diagnostics = []
        if "diagnostics" in output_formats:
            diagnostics = intrange.check_comparisons(ctx)

    if args.cbor:
        with open(args.output_path, "wb") as fb:
            fb.write(rp.table.to_cbor())
        return

    output = _format_output(output_formats, rp, diagnostics)
    if args.output_path is not None:
        with open(args.output_path, "w") as f:
            print(output, file=f)
    else:
        print(output)


def _format_output(
    output_formats: tuple[str, ...], rp: RangePass, diagnostics: list[ComparisonDiagnostic]
) -> str:
    ret = []
    for fmt in output_formats:
        if fmt == "ranges":
            ret.append(str(rp.table))
        elif fmt == "json":
            ret.append(json.dumps(rp.table.to_dict()))
        elif fmt == "diagnostics":
            ret.extend(str(d) for d in diagnostics)
    return "\n".join(ret)


def uniq(seq: Iterable[T]) -> Iterator[T]:
    """
    Yield unique items in ``seq`` in order.
    """
    seen: Set[T] = set()

    for x in seq:
        if x in seen:
            continue

        seen.add(x)
        yield x


if __name__ == "__main__":
    _parse_args(sys.argv[1:])
