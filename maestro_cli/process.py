from __future__ import annotations

import shlex
import subprocess
from collections.abc import Mapping
from pathlib import Path

from .cli_shared import OpError, _say


class ProcessError(OpError):
    def __init__(self, message: str, *, returncode: int | None = None) -> None:
        super().__init__(message)
        self.returncode = returncode


def command_line(executable: str, *args: str) -> str:
    return shlex.join([executable, *args])


def run_command(
    executable: str,
    *args: str,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    quiet: bool = False,
) -> None:
    """Run ``executable`` with inherited stdio and wait for it.

    Raises ProcessError when the executable cannot be started or exits
    non-zero.
    """
    cmd = [executable, *args]
    if not quiet:
        _say(f"$ {command_line(executable, *args)}")
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(env) if env is not None else None,
            check=False,
        )
    except (OSError, ValueError) as e:
        # ValueError: NUL bytes in argv or env
        raise ProcessError(f"failed to start {executable!r}: {e}") from e
    if proc.returncode != 0:
        raise ProcessError(
            f"{command_line(executable, *args)} exited with status {proc.returncode}",
            returncode=proc.returncode,
        )
