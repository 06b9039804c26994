#!/usr/bin/env python3
"""
Brainfuck Step-by-Step Tracer

Runs a program exactly like BrainfuckInterpreter. Before each instruction it
prints the step number, the instruction and its position; after it, a window
of the memory tape around the pointer. A failing instruction still gets its
step line.
"""

import sys

from brainfuck import BrainfuckInterpreter


class BrainfuckDebugger(BrainfuckInterpreter):
    """Interpreter that reports its state around every instruction."""

    def __init__(self, config=None, input_stream=None, output_stream=None,
                 trace_stream=None, show_memory_range=8):
        super().__init__(config, input_stream=input_stream, output_stream=output_stream)
        self.trace_stream = trace_stream
        self.show_memory_range = show_memory_range

    def _trace_out(self):
        return self.trace_stream if self.trace_stream is not None else sys.stderr

    def _before_step(self, pos, cmd):
        if cmd in '><+-.,[]':
            print(f"Step {self.steps + 1}: Execute '{cmd}' at position {pos}", file=self._trace_out())

    def _on_step(self, pos, cmd):
        if cmd not in '><+-.,[]':
            return
        out = self._trace_out()
        print(f"  {self._show_memory()}", file=out)
        if self.loop_stack:
            print(f"  Loops:   {self.loop_stack}", file=out)

    def _show_memory(self):
        """Memory window focused around the pointer, e.g. [  0|  3|  0] with ^ under the pointer."""
        tape = self.tape
        if tape.pointer >= tape.capacity:
            return f"Memory:  (pointer {tape.pointer} is off the tape)"

        start = max(0, tape.pointer - self.show_memory_range // 2)
        end = min(tape.capacity, start + self.show_memory_range)
        # Adjust start if we're near the end
        if end - start < self.show_memory_range:
            start = max(0, end - self.show_memory_range)

        memory_vals = []
        for i, value in enumerate(tape.snapshot(start, end), start):
            cell = f"{value:4d}"
            memory_vals.append(f"{cell}^" if i == tape.pointer else f"{cell} ")
        return f"Memory:  @{start} [" + "|".join(memory_vals) + f"] PTR={tape.pointer}"
