"""Befunge-93 machine: 80×25 self-modifying canvas, operand stack, IP."""

from .chips import Canvas, OperandStack, WIDTH, HEIGHT
from .errors import (
    BefungeError, LoadError, InputError, UnrecognizedInstruction,
    DivisionByZero, OutOfBoundsAccess, CycleLimitExceeded,
)
from .loader import load_bytes, load_text, load_file, program_listing
from .machine import BefungeMachine, step
from .ports import IOPort, ConsolePort, ScriptedPort
from .program_runner import ProgramRunner, ConsoleTracer, Snapshot


def run_text(text: str, inputs=(), rng=None, max_cycles: int | None = None) -> str:
    """Run program text against scripted input; return what it printed."""
    runner = ProgramRunner(port=ScriptedPort(inputs), rng=rng,
                           max_cycles=max_cycles)
    runner.load_text(text)
    runner.run()
    return runner.output
