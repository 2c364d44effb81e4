from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape


class MaestroError(Exception):
    pass


class UsageError(MaestroError):
    pass


class OpError(MaestroError):
    pass


class FatalError(MaestroError):
    """Raised for conditions that terminate the process with a non-zero status."""


MAESTRO_GO_BIN = "MAESTRO_GO_BIN"
MAESTRO_NPM_BIN = "MAESTRO_NPM_BIN"
MAESTRO_NPX_BIN = "MAESTRO_NPX_BIN"
MAESTRO_ENV_FILE = "MAESTRO_ENV_FILE"
MAESTRO_NO_FRONTEND = "MAESTRO_NO_FRONTEND"
MAESTRO_QUIET = "MAESTRO_QUIET"

_CONSOLE = Console(highlight=False, emoji=False, soft_wrap=True)
_ERROR_CONSOLE = Console(stderr=True, highlight=False, emoji=False, soft_wrap=True)


def _eprint(msg: str) -> None:
    print(msg, file=sys.stderr)


def _say(msg: str) -> None:
    _CONSOLE.print(msg, markup=False)


def _rich_error(msg: str) -> None:
    _ERROR_CONSOLE.print(f"[bold red]error:[/bold red] {escape(msg)}")


def _truthy(raw: str | None) -> bool:
    return str(raw or "").strip().lower() in {"1", "true", "yes", "on"}


def _env_or_none(*names: str) -> str | None:
    for n in names:
        v = (os.environ.get(n) or "").strip()
        if v:
            return v
    return None


@dataclass(frozen=True)
class GlobalOpts:
    workdir: Path = field(default_factory=Path.cwd)
    go_bin: str = "go"
    npm_bin: str = "npm"
    npx_bin: str = "npx"
    env_file: str = ".env"
    frontend: bool = True
    quiet: bool = False

    def path(self, *parts: str) -> Path:
        return self.workdir.joinpath(*parts)


def _apply_global_env(workdir: Path | None = None) -> GlobalOpts:
    return GlobalOpts(
        workdir=(workdir or Path.cwd()),
        go_bin=_env_or_none(MAESTRO_GO_BIN) or "go",
        npm_bin=_env_or_none(MAESTRO_NPM_BIN) or "npm",
        npx_bin=_env_or_none(MAESTRO_NPX_BIN) or "npx",
        env_file=_env_or_none(MAESTRO_ENV_FILE) or ".env",
        frontend=not _truthy(os.environ.get(MAESTRO_NO_FRONTEND)),
        quiet=_truthy(os.environ.get(MAESTRO_QUIET)),
    )


def _require_arg(args: list[str], index: int, message: str) -> str:
    if len(args) <= index or not str(args[index]).strip():
        raise UsageError(message)
    return str(args[index]).strip()


def _write_text(*, path: Path, text: str) -> None:
    try:
        path.write_text(text, encoding="utf-8")
    except OSError as e:
        raise OpError(f"failed to write {path}: {e}") from e
