#!/usr/bin/env python3
"""
Brainfuck Interpreter (checked)

Brainfuck is an esoteric programming language with only 8 commands:
    >   Move the pointer to the right
    <   Move the pointer to the left
    +   Increment the memory cell at the pointer
    -   Decrement the memory cell at the pointer
    .   Output the byte in the cell at the pointer
    ,   Input a byte and store it in the cell at the pointer
    [   Jump past the matching ] if the cell at the pointer is 0
    ]   Jump back to the matching [

All other characters are treated as comments and ignored.

Cells are signed 8-bit integers on a fixed-size tape. Nothing wraps
silently: stepping a cell past 127 or below -128, or touching a cell
outside the tape, stops the program with an ExecutionError.
"""

import sys
from enum import Enum
from typing import List, Optional, Union

import numpy as np

from bf_config import InterpreterConfig

CELL_MIN = -128
CELL_MAX = 127

# The pointer behaves like an unsigned machine word.
POINTER_MASK = (1 << 64) - 1


class ExecutionError(Exception):
    """Base class of every failure raised while a script runs."""

    kind = "ExecutionError"

    def __init__(self, script_pos: int):
        self.script_pos = script_pos
        super().__init__(self.describe())

    def describe(self) -> str:
        return f"{self.kind} at script position {self.script_pos}"


class CellOutOfBounds(ExecutionError):
    kind = "CellOutOfBounds"

    def __init__(self, cell_index: int, script_pos: int):
        self.cell_index = cell_index
        super().__init__(script_pos)

    def describe(self) -> str:
        return (f"Cell {self.cell_index} is outside the tape "
                f"(script position {self.script_pos})")


class CellOverflow(ExecutionError):
    kind = "CellOverflow"

    def __init__(self, cell_index: int, script_pos: int):
        self.cell_index = cell_index
        super().__init__(script_pos)

    def describe(self) -> str:
        return (f"Cell {self.cell_index} overflowed above {CELL_MAX} "
                f"(script position {self.script_pos})")


class CellUnderflow(ExecutionError):
    kind = "CellUnderflow"

    def __init__(self, cell_index: int, script_pos: int):
        self.cell_index = cell_index
        super().__init__(script_pos)

    def describe(self) -> str:
        return (f"Cell {self.cell_index} underflowed below {CELL_MIN} "
                f"(script position {self.script_pos})")


class UnexpectedLoopEnd(ExecutionError):
    kind = "UnexpectedLoopEnd"

    def describe(self) -> str:
        return f"Unexpected loop end at script position {self.script_pos}"


class InputError(ExecutionError):
    kind = "InputError"

    def describe(self) -> str:
        return f"Couldn't read input (script position {self.script_pos})"


class UnterminatedLoop(ExecutionError):
    """Only raised when the interpreter runs with strict_loops."""

    kind = "UnterminatedLoop"

    def describe(self) -> str:
        return f"Loop opened at script position {self.script_pos} is never closed"


class StepLimitExceeded(ExecutionError):
    kind = "StepLimitExceeded"

    def __init__(self, script_pos: int, steps: int):
        self.steps = steps
        super().__init__(script_pos)

    def describe(self) -> str:
        return (f"Step limit of {self.steps} reached "
                f"(script position {self.script_pos})")


class ExecutionState(Enum):
    RUNNING = "running"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


class Tape:
    """Fixed-size array of signed 8-bit cells plus the cell pointer."""

    def __init__(self, capacity: int):
        self.cells = np.zeros(capacity, dtype=np.int8)
        self.pointer = 0

    @property
    def capacity(self) -> int:
        return len(self.cells)

    def _index(self, pos: int) -> int:
        if self.pointer >= self.capacity:
            raise CellOutOfBounds(self.pointer, pos)
        return self.pointer

    def check(self, pos: int) -> None:
        """Fail with CellOutOfBounds unless the pointer is on the tape."""
        self._index(pos)

    def increment(self, pos: int) -> None:
        i = self._index(pos)
        if self.cells[i] == CELL_MAX:
            raise CellOverflow(i, pos)
        self.cells[i] += 1

    def decrement(self, pos: int) -> None:
        i = self._index(pos)
        if self.cells[i] == CELL_MIN:
            raise CellUnderflow(i, pos)
        self.cells[i] -= 1

    def value(self, pos: int) -> int:
        """Raw signed value of the current cell."""
        return int(self.cells[self._index(pos)])

    def read(self, pos: int) -> int:
        """Current cell as an unsigned byte."""
        return self.value(pos) & 0xFF

    def write(self, byte: int, pos: int) -> None:
        i = self._index(pos)
        byte &= 0xFF
        self.cells[i] = byte - 256 if byte > CELL_MAX else byte

    def move_right(self) -> None:
        self.pointer = (self.pointer + 1) & POINTER_MASK

    def move_left(self) -> None:
        self.pointer = (self.pointer - 1) & POINTER_MASK

    def reset(self) -> None:
        self.cells[:] = 0
        self.pointer = 0

    def snapshot(self, start: int = 0, end: Optional[int] = None) -> List[int]:
        return [int(v) for v in self.cells[start:end]]


class BrainfuckInterpreter:
    def __init__(self, config: Optional[InterpreterConfig] = None,
                 input_stream=None, output_stream=None):
        self.config = config or InterpreterConfig()
        self.tape = Tape(self.config.tape_size)
        # Streams are resolved on use so that a replaced sys.stdin/sys.stdout is honoured.
        self.input_stream = input_stream
        self.output_stream = output_stream
        self.script = b""
        self.cursor = 0
        self.loop_stack: List[int] = []
        self.steps = 0
        self.input_reads = 0
        self.output_writes = 0
        self.state = ExecutionState.RUNNING
        self.error: Optional[ExecutionError] = None

    def reset(self, tape: bool = False) -> None:
        """Rewind to the start of the script.

        The tape and the pointer survive unless tape=True, so a second run
        continues from whatever the previous run left in memory.
        """
        self.cursor = 0
        self.loop_stack = []
        self.steps = 0
        self.input_reads = 0
        self.output_writes = 0
        self.state = ExecutionState.RUNNING
        self.error = None
        if tape:
            self.tape.reset()

    def run(self, script: Union[bytes, str]) -> None:
        """Execute the whole script, raising the first ExecutionError hit."""
        if isinstance(script, str):
            script = script.encode("utf-8")
        self.script = script
        self.reset()

        try:
            while self.cursor < len(script):
                if self.config.max_steps is not None and self.steps >= self.config.max_steps:
                    raise StepLimitExceeded(self.cursor, self.steps)
                pos = self.cursor
                cmd = chr(script[pos])
                self._before_step(pos, cmd)
                self._execute(cmd, pos)
                self.steps += 1
                self._on_step(pos, cmd)
                self.cursor += 1

            if self.loop_stack and self.config.strict_loops:
                raise UnterminatedLoop(self.loop_stack[-1])
            self._flush()
        except ExecutionError as e:
            self.state = ExecutionState.FAILED
            self.error = e
            try:
                self._flush()
            except OSError:
                # The execution error is what gets reported.
                pass
            raise
        except Exception:
            # Output stream failures (e.g. a broken pipe) end the run too.
            self.state = ExecutionState.FAILED
            raise

        self.state = ExecutionState.SUCCEEDED

    def _execute(self, cmd: str, pos: int) -> None:
        tape = self.tape

        if cmd == '>':
            tape.move_right()

        elif cmd == '<':
            tape.move_left()

        elif cmd == '+':
            tape.increment(pos)

        elif cmd == '-':
            tape.decrement(pos)

        elif cmd == '.':
            self._write_byte(tape.read(pos))

        elif cmd == ',':
            tape.check(pos)
            tape.write(self._read_byte(pos), pos)

        elif cmd == '[':
            if tape.value(pos) != 0:
                self.loop_stack.append(pos)
            else:
                self.cursor = self._find_loop_end(pos)

        elif cmd == ']':
            if not self.loop_stack:
                raise UnexpectedLoopEnd(pos)
            # Land just before the '[' so it is tested again after the cursor advances.
            self.cursor = self.loop_stack.pop() - 1

    def _find_loop_end(self, start: int) -> int:
        """Position of the ']' closing the '[' at start, or the script length."""
        script = self.script
        if self.config.loop_skip == "naive":
            # Next ']' regardless of nesting.
            end = script.find(b"]", start)
            return len(script) if end < 0 else end

        depth = 0
        for i in range(start, len(script)):
            if script[i] == ord('['):
                depth += 1
            elif script[i] == ord(']'):
                depth -= 1
                if depth == 0:
                    return i
        return len(script)

    def _before_step(self, pos: int, cmd: str) -> None:
        """Called before every instruction is dispatched, including one that fails."""

    def _on_step(self, pos: int, cmd: str) -> None:
        """Called after every dispatched instruction."""

    def _read_byte(self, pos: int) -> int:
        stream = self.input_stream if self.input_stream is not None else sys.stdin.buffer
        try:
            data = stream.read(1)
        except OSError as e:
            raise InputError(pos) from e
        if not data:
            raise InputError(pos)
        self.input_reads += 1
        return data[0]

    def _write_byte(self, byte: int) -> None:
        stream = self._output()
        stream.write(bytes([byte]))
        self.output_writes += 1
        if self.config.flush_output:
            stream.flush()

    def _output(self):
        return self.output_stream if self.output_stream is not None else sys.stdout.buffer

    def _flush(self) -> None:
        if self.output_writes:
            self._output().flush()
