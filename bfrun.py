#!/usr/bin/env python3
"""
Run a Brainfuck script file.

Usage:
    bfrun hello.bf
    bfrun --trace --tape-size 64 program.bf < input.txt

Program output goes to stdout, diagnostics and the final status to stderr.
Exit status: 0 on success, 1 when the script fails, 2 when it can't be started.
"""

import argparse
import sys

from bf_config import LOOP_SKIP_MODES, ConfigError, load_config
from bf_runner import ScriptLoadError, load_script, run_script
from brainfuck import ExecutionError

EXIT_OK = 0
EXIT_EXECUTION_ERROR = 1
EXIT_STARTUP_ERROR = 2


def log(msg):
    print(f"[bfrun] {msg}", file=sys.stderr)


def report(msg):
    print(msg, file=sys.stderr)


def build_parser():
    ap = argparse.ArgumentParser(prog="bfrun", description="Checked Brainfuck interpreter")
    ap.add_argument("script", help="Path to the script file")
    ap.add_argument("--config", default=None, help="YAML file with interpreter settings")
    ap.add_argument("--tape-size", type=int, default=None, help="Number of cells on the tape")
    ap.add_argument("--loop-skip", choices=LOOP_SKIP_MODES, default=None,
                    help="How '[' on a zero cell finds its ']'")
    ap.add_argument("--strict-loops", action="store_true", default=None,
                    help="Fail if a '[' is still open when the script ends")
    ap.add_argument("--max-steps", type=int, default=None, help="Stop after this many instructions")
    ap.add_argument("--trace", action="store_true", help="Print interpreter state after every instruction")
    ap.add_argument("--verbose", "-v", action="store_true", help="Print diagnostics to stderr")
    return ap


def main(argv=None):
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config, overrides={
            "tape_size": args.tape_size,
            "loop_skip": args.loop_skip,
            "strict_loops": args.strict_loops,
            "max_steps": args.max_steps,
        })
        script = load_script(args.script)
    except (ConfigError, ScriptLoadError) as e:
        report(f"Error. {e}")
        return EXIT_STARTUP_ERROR

    if args.verbose:
        log(f"Loaded {len(script)} bytes from {args.script}")
        log(f"Config: {config}")

    try:
        itp = run_script(script, config, trace=args.trace)
    except ExecutionError as e:
        report(f"Error. {e.describe()}")
        return EXIT_EXECUTION_ERROR
    except OSError as e:
        report(f"Error. Couldn't write output: {e}")
        return EXIT_EXECUTION_ERROR

    if args.verbose:
        log(f"{itp.steps} steps, {itp.input_reads} bytes read, {itp.output_writes} bytes written")
        if itp.loop_stack:
            log(f"Unclosed loops at positions {itp.loop_stack}")
    report("Executed successfully.")
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
