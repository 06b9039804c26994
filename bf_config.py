"""Interpreter settings.

Values are layered: dataclass defaults, then an optional YAML file, then the
environment (a local .env file is read first), then explicit overrides such
as command line flags.

Environment variables:
    BF_TAPE_SIZE      number of cells on the tape
    BF_LOOP_SKIP      'nested' or 'naive'
    BF_STRICT_LOOPS   treat a '[' left open at the end of the script as an error
    BF_STEP_LIMIT     stop after this many instructions
    BF_FLUSH_OUTPUT   flush stdout after every '.'
"""

import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

DEFAULT_TAPE_SIZE = 1024
MAX_TAPE_SIZE = 1 << 24
LOOP_SKIP_MODES = ("nested", "naive")

ENV_VARS = {
    "tape_size": "BF_TAPE_SIZE",
    "loop_skip": "BF_LOOP_SKIP",
    "strict_loops": "BF_STRICT_LOOPS",
    "max_steps": "BF_STEP_LIMIT",
    "flush_output": "BF_FLUSH_OUTPUT",
}

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


class ConfigError(ValueError):
    pass


@dataclass
class InterpreterConfig:
    tape_size: int = DEFAULT_TAPE_SIZE
    loop_skip: str = "nested"
    strict_loops: bool = False
    max_steps: Optional[int] = None
    flush_output: bool = True

    def validate(self) -> "InterpreterConfig":
        if not _is_int(self.tape_size) or not 1 <= self.tape_size <= MAX_TAPE_SIZE:
            raise ConfigError(f"tape_size must be an integer from 1 to {MAX_TAPE_SIZE}, "
                              f"got {self.tape_size!r}")
        if isinstance(self.loop_skip, str):
            self.loop_skip = self.loop_skip.strip().lower()
        if self.loop_skip not in LOOP_SKIP_MODES:
            raise ConfigError(f"loop_skip must be one of {LOOP_SKIP_MODES}, got {self.loop_skip!r}")
        if self.max_steps is not None and (not _is_int(self.max_steps) or self.max_steps < 1):
            raise ConfigError(f"max_steps must be a positive integer, got {self.max_steps!r}")
        for name in ("strict_loops", "flush_output"):
            if not isinstance(getattr(self, name), bool):
                raise ConfigError(f"{name} must be true or false, got {getattr(self, name)!r}")
        return self


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _parse_bool(name: str, raw: str) -> bool:
    text = raw.strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ConfigError(f"{name}: expected a boolean, got {raw!r}")


def _parse_int(name: str, raw: str) -> int:
    try:
        return int(raw.strip())
    except ValueError:
        raise ConfigError(f"{name}: expected an integer, got {raw!r}") from None


def load_config_file(path: str) -> Dict[str, Any]:
    """Read settings from a YAML mapping. An empty file yields no settings."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Couldn't read config file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in config file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")

    known = {f.name for f in fields(InterpreterConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigError(f"Unknown settings in {path}: {', '.join(map(str, unknown))}")
    return data


def config_from_env(environ: Optional[Mapping[str, str]] = None) -> Dict[str, Any]:
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}
    for key, var in ENV_VARS.items():
        raw = environ.get(var)
        if raw is None or raw.strip() == "":
            continue
        if key in ("tape_size", "max_steps"):
            values[key] = _parse_int(var, raw)
        elif key in ("strict_loops", "flush_output"):
            values[key] = _parse_bool(var, raw)
        else:
            values[key] = raw.strip()
    return values


def load_config(path: Optional[str] = None,
                overrides: Optional[Mapping[str, Any]] = None,
                environ: Optional[Mapping[str, str]] = None,
                dotenv: bool = True) -> InterpreterConfig:
    """Build a validated InterpreterConfig. Overrides set to None are ignored."""
    if dotenv and environ is None:
        load_dotenv()

    values: Dict[str, Any] = {}
    if path:
        values.update(load_config_file(path))
    values.update(config_from_env(environ))
    if overrides:
        values.update({k: v for k, v in overrides.items() if v is not None})

    return InterpreterConfig(**values).validate()
