from typing import Optional

from bf_config import InterpreterConfig
from brainfuck import BrainfuckInterpreter
from brainfuck_debugger import BrainfuckDebugger


class ScriptLoadError(Exception):
    """The script file could not be opened or read. Raised before anything runs."""

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Couldn't open file {path}, error: {reason}")


def load_script(path: str) -> bytes:
    """Read the whole script as bytes. Non-instruction bytes are kept (they are comments)."""
    try:
        with open(path, "rb") as f:
            return f.read()
    except OSError as e:
        raise ScriptLoadError(path, e.strerror or str(e)) from e


def make_interpreter(config: Optional[InterpreterConfig] = None, input_stream=None,
                     output_stream=None, trace: bool = False,
                     trace_stream=None) -> BrainfuckInterpreter:
    if trace:
        return BrainfuckDebugger(config, input_stream=input_stream,
                                 output_stream=output_stream, trace_stream=trace_stream)
    return BrainfuckInterpreter(config, input_stream=input_stream, output_stream=output_stream)


def run_script(script: bytes, config: Optional[InterpreterConfig] = None, input_stream=None,
               output_stream=None, trace: bool = False,
               trace_stream=None) -> BrainfuckInterpreter:
    """Run a script on a fresh interpreter and return it for inspection.
    The first ExecutionError propagates unchanged.
    """
    itp = make_interpreter(config, input_stream, output_stream, trace, trace_stream)
    itp.run(script)
    return itp


def run_file(path: str, config: Optional[InterpreterConfig] = None, input_stream=None,
             output_stream=None, trace: bool = False,
             trace_stream=None) -> BrainfuckInterpreter:
    return run_script(load_script(path), config, input_stream, output_stream, trace, trace_stream)
