"""
Command-line entry point.

Usage:
    python -m befunge program.bf
    python -m befunge --debug program.bf
    python -m befunge --tui program.bf
"""

from __future__ import annotations

import argparse
import random
import sys

from .errors import BefungeError
from .ports import ConsolePort, ScriptedPort
from .program_runner import ConsoleTracer, ProgramRunner


USAGE = """befunge is an esoteric programming language.
Usage:
\tbefunge [flags] file.bf
Flags:"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="befunge",
        description="Befunge-93 interpreter for the fixed 80x25 canvas.",
        usage="%(prog)s [flags] file.bf",
    )
    parser.add_argument("file", nargs="?", help="Path to .bf program file")
    parser.add_argument("--debug", action="store_true",
                        help="pause the program and show the PC and stack "
                             "after every step.")
    parser.add_argument("--tui", action="store_true",
                        help="open the Textual debugger instead of running")
    parser.add_argument("--max-cycles", type=int, default=None,
                        help="fail if the program has not halted after N cycles")
    parser.add_argument("--seed", type=int, default=None,
                        help="seed for the ? instruction")
    parser.add_argument("--stats", action="store_true",
                        help="print machine counters to stderr on exit")
    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.file:
        print(USAGE)
        parser.print_help()
        return 0

    rng = random.Random(args.seed) if args.seed is not None else None

    if args.tui:
        from .debugger import BefungeDebugger
        runner = ProgramRunner(port=ScriptedPort(), rng=rng,
                               max_cycles=args.max_cycles)
        try:
            runner.load_file(args.file)
        except BefungeError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 1
        BefungeDebugger(runner).run()
        return 0

    tracer = ConsoleTracer() if args.debug else None
    runner = ProgramRunner(port=ConsolePort(), rng=rng,
                           max_cycles=args.max_cycles, tracer=tracer)
    try:
        runner.load_file(args.file)
        runner.run()
    except BefungeError as e:
        print(f"\nError: {e}", file=sys.stderr, flush=True)
        return 1
    finally:
        if args.stats and runner.machine is not None:
            print(runner.machine.stats_summary(), file=sys.stderr, flush=True)
    return 0


if __name__ == "__main__":
    sys.exit(main())
