import io

import pytest

from bf_config import InterpreterConfig
from brainfuck import (POINTER_MASK, BrainfuckInterpreter, CellOutOfBounds, CellOverflow,
                       CellUnderflow, ExecutionError, ExecutionState, InputError,
                       StepLimitExceeded, UnexpectedLoopEnd, UnterminatedLoop)

HELLO_WORLD = (
    "++++++++[>++++[>++>+++>+++>+<<<<-]>+>+>->>+[<]<-]"
    ">>.>---.+++++++..+++.>>.<-.<.+++.------.--------.>>+.>++."
)


def make(stdin=b"", **settings):
    out = io.BytesIO()
    itp = BrainfuckInterpreter(InterpreterConfig(**settings), input_stream=io.BytesIO(stdin),
                               output_stream=out)
    return itp, out


def run(code, stdin=b"", **settings):
    itp, out = make(stdin, **settings)
    itp.run(code)
    return itp, out.getvalue()


def test_empty_script_succeeds():
    itp, out = run("")
    assert itp.state is ExecutionState.SUCCEEDED
    assert out == b""


@pytest.mark.parametrize("code", [
    "+++++--+-",
    "---+",
    "+-+-+-",
    "+" * 100 + "-" * 30,
    "-" * 128 + "+" * 255,
    "a+b-c-",
])
def test_net_effect_on_cell_zero(code):
    itp, _ = run(code)
    assert itp.tape.value(0) == code.count("+") - code.count("-")


def test_reaches_both_extremes():
    itp, _ = run("-" * 128)
    assert itp.tape.value(0) == -128
    itp, _ = run("+" * 127)
    assert itp.tape.value(0) == 127


def test_overflow_on_128th_increment():
    itp, _ = make()
    with pytest.raises(CellOverflow) as info:
        itp.run("+" * 128)
    assert info.value.script_pos == 127
    assert info.value.cell_index == 0
    assert itp.tape.value(0) == 127
    assert itp.state is ExecutionState.FAILED
    assert itp.error is info.value


def test_checks_each_step_not_net_effect():
    itp, _ = make()
    with pytest.raises(CellOverflow) as info:
        itp.run("+" * 128 + "--")
    assert info.value.script_pos == 127


def test_underflow():
    itp, _ = make()
    with pytest.raises(CellUnderflow) as info:
        itp.run(">" + "-" * 129)
    assert info.value.cell_index == 1
    assert info.value.script_pos == 129


@pytest.mark.parametrize("op", ["+", "-", ".", ",", "["])
def test_left_of_first_cell_is_out_of_bounds(op):
    itp, _ = make(stdin=b"x")
    with pytest.raises(CellOutOfBounds) as info:
        itp.run("<" + op)
    assert info.value.cell_index == POINTER_MASK
    assert info.value.script_pos == 1


def test_pointer_can_come_back_before_access():
    itp, _ = run("<>+")
    assert itp.tape.value(0) == 1


def test_right_of_last_cell_is_out_of_bounds():
    itp, _ = make(tape_size=4)
    with pytest.raises(CellOutOfBounds) as info:
        itp.run(">>>>+")
    assert info.value.cell_index == 4
    assert info.value.script_pos == 4


def test_lone_loop_end():
    itp, _ = make()
    with pytest.raises(UnexpectedLoopEnd) as info:
        itp.run("]")
    assert info.value.script_pos == 0
    assert "position 0" in str(info.value)


def test_clear_loop():
    itp, _ = run("+[-]")
    assert itp.tape.value(0) == 0
    assert itp.loop_stack == []
    assert itp.state is ExecutionState.SUCCEEDED


def test_echo():
    itp, out = run(",.", stdin=b"A")
    assert out == b"A"
    assert itp.input_reads == 1
    assert itp.output_writes == 1


def test_output_is_unsigned_byte():
    _, out = run("-.")
    assert out == b"\xff"


def test_input_high_byte_stored_signed():
    itp, _ = run(",", stdin=b"\xf0")
    assert itp.tape.value(0) == -16


def test_input_exhausted():
    itp, _ = make(stdin=b"")
    with pytest.raises(InputError) as info:
        itp.run("+,")
    assert info.value.script_pos == 1


def test_input_read_failure():
    class Broken:
        def read(self, n):
            raise OSError("gone")

    itp = BrainfuckInterpreter(input_stream=Broken(), output_stream=io.BytesIO())
    with pytest.raises(InputError) as info:
        itp.run(",")
    assert isinstance(info.value.__cause__, OSError)


def test_comments_are_ignored():
    itp, out = run("add two: + and + then print nothing")
    assert itp.tape.value(0) == 2
    assert out == b""


def test_multiply_loop():
    itp, _ = run("++[>+++<-]>")
    assert itp.tape.snapshot(0, 2) == [0, 6]
    assert itp.tape.pointer == 1


def test_hello_world():
    _, out = run(HELLO_WORLD)
    assert out == b"Hello World!\n"


def test_nested_skip_jumps_past_outer_loop():
    itp, _ = run("[[+]+]+")
    assert itp.tape.value(0) == 1
    assert itp.state is ExecutionState.SUCCEEDED


def test_naive_skip_stops_at_first_loop_end():
    itp, _ = make(loop_skip="naive")
    with pytest.raises(UnexpectedLoopEnd) as info:
        itp.run("[[+]+]+")
    assert info.value.script_pos == 5
    assert itp.tape.value(0) == 1


def test_skip_without_loop_end_runs_off_script():
    itp, _ = run("[+")
    assert itp.tape.value(0) == 0
    assert itp.state is ExecutionState.SUCCEEDED


def test_unterminated_loop_is_success_by_default():
    itp, _ = run("+[")
    assert itp.state is ExecutionState.SUCCEEDED
    assert itp.loop_stack == [1]


def test_unterminated_loop_strict():
    itp, _ = make(strict_loops=True)
    with pytest.raises(UnterminatedLoop) as info:
        itp.run("+[>+[")
    assert info.value.script_pos == 4


def test_step_limit():
    itp, _ = make(max_steps=50)
    with pytest.raises(StepLimitExceeded) as info:
        itp.run("+[]")
    assert info.value.steps == 50
    assert itp.steps == 50
    assert isinstance(info.value, ExecutionError)


def test_step_limit_not_hit():
    itp, _ = run("+++", max_steps=3)
    assert itp.steps == 3


def test_str_and_bytes_scripts_agree():
    a, _ = run("++>+")
    b, _ = run(b"++>+")
    assert a.tape.snapshot(0, 3) == b.tape.snapshot(0, 3)


def test_rerun_keeps_tape_and_pointer():
    itp, _ = make()
    itp.run(">>+")
    itp.run("+")
    assert itp.tape.pointer == 2
    assert itp.tape.snapshot(0, 3) == [0, 0, 2]
    assert itp.cursor >= 1


def test_rerun_with_tape_reset_matches_fresh_runs():
    itp, _ = make()
    itp.run("+++>++")
    itp.reset(tape=True)
    itp.run("+++>++")

    fresh, _ = run("+++>++")
    assert itp.tape.snapshot() == fresh.tape.snapshot()
    assert itp.tape.pointer == fresh.tape.pointer
    assert itp.cursor == fresh.cursor


def test_reset_clears_failure():
    itp, _ = make()
    with pytest.raises(UnexpectedLoopEnd):
        itp.run("+]")
    itp.reset()
    assert itp.state is ExecutionState.RUNNING
    assert itp.error is None
    assert itp.tape.value(0) == 1


def test_step_hook_sees_every_position():
    seen = []

    class Recorder(BrainfuckInterpreter):
        def _on_step(self, pos, cmd):
            seen.append((pos, cmd))

    Recorder(output_stream=io.BytesIO()).run("+>x-")
    assert seen == [(0, "+"), (1, ">"), (2, "x"), (3, "-")]


def test_flushes_after_each_output():
    class Counting(io.BytesIO):
        flushes = 0

        def flush(self):
            self.flushes += 1
            super().flush()

    out = Counting()
    BrainfuckInterpreter(output_stream=out).run("..")
    assert out.getvalue() == b"\x00\x00"
    assert out.flushes >= 2


class BrokenPipe(io.BytesIO):
    def write(self, data):
        raise BrokenPipeError(32, "Broken pipe")


class FailingFlush(io.BytesIO):
    def flush(self):
        raise BrokenPipeError(32, "Broken pipe")

    def close(self):
        # BytesIO.close itself does not flush
        io.BytesIO.close(self)


def test_failed_write_ends_the_run():
    itp = BrainfuckInterpreter(output_stream=BrokenPipe())
    with pytest.raises(BrokenPipeError):
        itp.run("+.")
    assert itp.state is ExecutionState.FAILED
    assert itp.error is None


def test_flush_failure_does_not_hide_execution_error():
    itp = BrainfuckInterpreter(InterpreterConfig(flush_output=False), output_stream=FailingFlush())
    with pytest.raises(UnexpectedLoopEnd):
        itp.run(".]")
    assert itp.state is ExecutionState.FAILED
    assert isinstance(itp.error, UnexpectedLoopEnd)


def test_final_flush_failure_is_a_failed_run():
    itp = BrainfuckInterpreter(InterpreterConfig(flush_output=False), output_stream=FailingFlush())
    with pytest.raises(BrokenPipeError):
        itp.run(".")
    assert itp.state is ExecutionState.FAILED
