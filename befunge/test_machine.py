"""
Verification suite for the Befunge machine.

Runs small programs through the dispatcher and checks output, stack and IP
against the Befunge-93 semantics for the 80×25 canvas.
"""

from __future__ import annotations

import pytest

from befunge.chips import INT_MAX, INT_MIN
from befunge.errors import (
    DivisionByZero, InputError, OutOfBoundsAccess, UnrecognizedInstruction,
)
from befunge.loader import load_text
from befunge.machine import (
    BefungeMachine, DIRECTIONS, EAST, WEST, SOUTH, NORTH,
    M_NORMAL, M_SKIP, M_STRING, step, trunc_div, trunc_mod,
)
from befunge.ports import ScriptedPort


class SequenceRng:
    """Deterministic stand-in for random.Random.randrange."""

    def __init__(self, values):
        self.values = list(values)
        self.calls = 0

    def randrange(self, n):
        self.calls += 1
        return self.values.pop(0) % n


def _machine(src: str, inputs=(), rng=None, stack=()) -> BefungeMachine:
    m = BefungeMachine(load_text(src), port=ScriptedPort(inputs), rng=rng)
    for v in stack:
        m.stack.push(v)
    return m


def _run(src: str, inputs=(), rng=None, stack=()) -> tuple[BefungeMachine, str]:
    m = _machine(src, inputs, rng, stack)
    m.run()
    return m, m.port.output


# ---------------------------------------------------------------------------
# IP stepping
# ---------------------------------------------------------------------------

def test_step_east_full_lap_returns_to_origin():
    x, y = 0, 7
    for _ in range(80):
        x, y = step(x, y, *EAST)
    assert (x, y) == (0, 7)


def test_step_wraps_at_every_edge():
    assert step(0, 3, *WEST) == (79, 3)
    assert step(79, 3, *EAST) == (0, 3)
    assert step(5, 0, *NORTH) == (5, 24)
    assert step(5, 24, *SOUTH) == (5, 0)


def test_step_south_full_lap_returns_to_origin():
    x, y = 12, 0
    for _ in range(25):
        x, y = step(x, y, *SOUTH)
    assert (x, y) == (12, 0)


def test_directions_are_cardinal():
    for dx, dy in DIRECTIONS:
        assert abs(dx) + abs(dy) == 1


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("src, expected", [
    ("54+.@", "9 "),
    ("12-.@", "-1 "),
    ("23*.@", "6 "),
    ("72/.@", "3 "),
    ("72%.@", "1 "),
    ("07-2/.@", "-3 "),
    ("07-2%.@", "-1 "),
    ("702-%.@", "1 "),
    ("0!.5!.@", "1 0 "),
])
def test_arithmetic(src, expected):
    _, out = _run(src)
    assert out == expected


def test_truncating_division_helpers():
    assert trunc_div(7, 2) == 3
    assert trunc_div(-7, 2) == -3
    assert trunc_div(7, -2) == -3
    assert trunc_div(-7, -2) == 3
    assert trunc_mod(-7, 2) == -1
    assert trunc_mod(7, -2) == 1


@pytest.mark.parametrize("a, b, expected", [
    (3, 2, 1), (2, 3, 0), (2, 2, 0), (0, 0, 0),
    (-1, -2, 1), (-2, -1, 0), (-5, 3, 0), (3, -5, 1), (-4, -4, 0),
])
def test_greater_than(a, b, expected):
    m, _ = _run("`@", stack=(a, b))
    assert m.stack.snapshot() == (expected,)


@pytest.mark.parametrize("src, op", [("10/@", "/"), ("10%@", "%")])
def test_division_by_zero_is_fatal(src, op):
    m = _machine(src)
    with pytest.raises(DivisionByZero) as exc:
        m.run()
    assert exc.value.op == op
    assert (exc.value.x, exc.value.y) == (2, 0)
    assert m.halted


def test_repeated_squaring_wraps_to_zero():
    # 2 squared six times is 2**64
    _, out = _run("2" + ":*" * 6 + ".@")
    assert out == "0 "


def test_long_squaring_chain_stays_wrapped():
    _, out = _run("2" + ":*" * 14 + ".@")
    assert out == "0 "


@pytest.mark.parametrize("src, stack, expected", [
    ("1+@", (INT_MAX,), INT_MIN),
    ("1-@", (INT_MIN,), INT_MAX),
    ("2*@", (INT_MAX,), -2),
    ("01-/@", (INT_MIN,), INT_MIN),
    ("01-%@", (INT_MIN,), 0),
])
def test_arithmetic_wraps_at_64_bits(src, stack, expected):
    m, _ = _run(src, stack=stack)
    assert m.stack.snapshot() == (expected,)


# ---------------------------------------------------------------------------
# Stack manipulation
# ---------------------------------------------------------------------------

def test_dup_then_discard_is_noop():
    m, _ = _run(":$@", stack=(4, 9))
    assert m.stack.snapshot() == (4, 9)


def test_dup_on_empty_stack_pushes_two_zeros():
    m, _ = _run(":@")
    assert m.stack.snapshot() == (0, 0)


def test_swap_exchanges_top_two():
    m, _ = _run("\\@", stack=(1, 2))
    assert m.stack.snapshot() == (2, 1)


def test_swap_twice_restores_order():
    m, _ = _run("\\\\@", stack=(1, 2, 3))
    assert m.stack.snapshot() == (1, 2, 3)


def test_output_on_empty_stack_prints_zero():
    _, out = _run(".@")
    assert out == "0 "


# ---------------------------------------------------------------------------
# Control flow
# ---------------------------------------------------------------------------

def test_west_arrow_wraps_around_row():
    _, out = _run("<@.9")
    assert out == "9 "


def test_south_then_east():
    _, out = _run("v\n>1.@")
    assert out == "1 "


def test_north_wraps_to_bottom_row():
    m, _ = _run("^\n@")
    assert m.halted
    assert (m.x, m.y) == (0, 1)


def test_horizontal_if_zero_goes_east():
    _, out = _run("0_1.@")
    assert out == "1 "


def test_horizontal_if_nonzero_goes_west():
    _, out = _run("1_@.2")
    assert out == "2 "


def test_horizontal_if_clears_vertical_motion():
    m, out = _run("v\n_1.@")
    assert out == "1 "
    assert m.direction == EAST


def test_vertical_if_zero_goes_south():
    _, out = _run("0|\n 1\n .\n @")
    assert out == "1 "


def test_vertical_if_nonzero_goes_north():
    src = "1|\n" + "\n" * 22 + " @\n"
    m, _ = _run(src)
    assert (m.x, m.y) == (1, 23)
    assert m.direction == NORTH


@pytest.mark.parametrize("idx", range(4))
def test_random_direction_uses_injected_source(idx):
    rng = SequenceRng([idx])
    m = _machine("?", rng=rng)
    m.tick()
    assert m.direction == DIRECTIONS[idx]
    assert rng.calls == 1


def test_trampoline_skips_next_cell():
    m, out = _run("1#2.@")
    assert out == "1 "
    assert m.stack.snapshot() == ()


def test_trampoline_over_digit_on_empty_stack_prints_zero():
    _, out = _run("#2.@")
    assert out == "0 "


def test_trampoline_mode_lasts_one_cycle():
    m = _machine("#2")
    m.tick()
    assert m.mode == M_SKIP
    m.tick()
    assert m.mode == M_NORMAL
    assert (m.x, m.y) == (2, 0)


def test_trampoline_wraps_across_edge():
    # `<` at 0 sends the IP to column 79, where `#` skips column 78
    m = _machine("<" + " " * 76 + "@7#")
    m.run()
    assert m.stack.snapshot() == ()
    assert (m.x, m.y) == (77, 0)


def test_halt_stops_ticking():
    m = _machine("@")
    assert m.tick() is False
    assert m.halted
    assert m.tick() is False
    assert m.cycles == 1
    assert (m.x, m.y) == (0, 0)


def test_space_is_noop():
    m = _machine("  @")
    m.run()
    assert m.cycles == 3
    assert m.stack.snapshot() == ()


def test_unrecognized_instruction_reports_char_and_position():
    m = _machine("  x")
    with pytest.raises(UnrecognizedInstruction) as exc:
        m.run()
    assert exc.value.char == "x"
    assert (exc.value.x, exc.value.y) == (2, 0)
    assert "Invalid character: 'x' at (2, 0)" in str(exc.value)
    assert m.halted


# ---------------------------------------------------------------------------
# String mode
# ---------------------------------------------------------------------------

def test_string_mode_pushes_codes():
    m, out = _run('"54+."@')
    assert out == ""
    assert m.stack.snapshot() == (ord("5"), ord("4"), ord("+"), ord("."))


def test_string_mode_keeps_spaces():
    m, _ = _run('"a b"@')
    assert m.stack.snapshot() == (97, 32, 98)


def test_string_mode_latch():
    m = _machine('"a"')
    m.tick()
    assert m.mode == M_STRING
    m.tick()
    m.tick()
    assert m.mode == M_NORMAL


def test_hello_world():
    _, out = _run('"!olleH",,,,,,@')
    assert out == "Hello!"


# ---------------------------------------------------------------------------
# IO
# ---------------------------------------------------------------------------

def test_input_integers():
    _, out = _run("&&+.@", inputs=["3", "-4"])
    assert out == "-1 "


def test_input_character():
    _, out = _run("~.@", inputs=["A"])
    assert out == "65 "


def test_input_character_discards_extra():
    m, out = _run("~,@", inputs=["xyz"])
    assert out == "x"
    assert m.port.discarded == ["yz"]


@pytest.mark.parametrize("src, inputs", [
    ("&@", []),
    ("&@", ["abc"]),
    ("~@", []),
    ("~@", [""]),
])
def test_input_errors_are_fatal(src, inputs):
    m = _machine(src, inputs)
    with pytest.raises(InputError):
        m.run()
    assert m.halted


def test_output_character_invalid_code():
    _, out = _run("01-,@")
    assert out == "\ufffd"


# ---------------------------------------------------------------------------
# Self-modification
# ---------------------------------------------------------------------------

def test_get_reads_program_text():
    m, out = _run("00g.@")
    assert out == "48 "
    assert m.grid_reads == 1


def test_put_rewrites_code_ahead_of_ip():
    m, _ = _run('"@"90p   x')
    assert m.halted
    assert (m.x, m.y) == (9, 0)
    assert m.canvas.read(9, 0) == ord("@")
    assert m.grid_writes == 1


@pytest.mark.parametrize("x, y, v, expected", [
    (0, 0, 65, 65),
    (79, 24, 300, 44),
    (40, 12, -1, 255),
    (10, 3, 32, 32),
])
def test_put_then_get_round_trip(x, y, v, expected):
    m, _ = _run("pg@", stack=(v, x, y, x, y))
    assert m.stack.snapshot() == (expected,)


@pytest.mark.parametrize("src, op, cell", [
    ("01-0g@", "g", (-1, 0)),
    ("0001-p@", "p", (0, -1)),
])
def test_out_of_bounds_access_is_fatal(src, op, cell):
    m = _machine(src)
    with pytest.raises(OutOfBoundsAccess) as exc:
        m.run()
    assert exc.value.op == op
    assert (exc.value.cell_x, exc.value.cell_y) == cell
    assert m.halted


def test_get_past_right_edge_is_fatal():
    m = _machine("g@", stack=(80, 0))
    with pytest.raises(OutOfBoundsAccess):
        m.run()


def test_put_past_bottom_edge_is_fatal():
    m = _machine("p@", stack=(1, 0, 25))
    with pytest.raises(OutOfBoundsAccess):
        m.run()


# ---------------------------------------------------------------------------
# Counters
# ---------------------------------------------------------------------------

def test_stats():
    m, _ = _run("12+.@")
    s = m.stats()
    assert s["cycles"] == 5
    assert s["io_ops"] == 1
    assert s["stack_peak"] == 2
    assert s["stack_depth"] == 0
    assert "Cycles: 5" in m.stats_summary()
    m.reset_counters()
    assert m.cycles == 0


def main():
    raise SystemExit(pytest.main([__file__, "-q"]))


if __name__ == "__main__":
    main()
