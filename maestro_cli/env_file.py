"""Reader for the `KEY=VALUE` environment files written into generated projects.

Parsing rules:

* blank lines and lines starting with ``#`` are skipped;
* a line is split on the first ``=`` only, lines without ``=`` are skipped;
* key and value are stripped of surrounding whitespace;
* a value that both starts and ends with ``"`` has every leading and trailing
  ``"`` removed (``'""a""'`` becomes ``'a'``, interior quotes survive);
* a later definition of a key overwrites an earlier one;
* an empty key or a NUL byte anywhere on the line is an error, since neither
  can be passed to a child process environment.

Loaded values are returned as an :class:`EnvSettings` object instead of being
written into ``os.environ``; callers hand them to subprocesses explicitly.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from pathlib import Path

from .cli_shared import OpError


class EnvFileError(OpError):
    pass


def parse_env_value(raw: str) -> str:
    value = raw.strip()
    if value.startswith('"') and value.endswith('"'):
        value = value.strip('"')
    return value


def parse_env_lines(lines: Iterable[str]) -> dict[str, str]:
    out: dict[str, str] = {}
    for lineno, line in enumerate(lines, start=1):
        line = line.rstrip("\r\n")
        if line.startswith("#") or not line.strip():
            continue
        key, sep, raw_value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key:
            raise EnvFileError(f"line {lineno}: empty variable name")
        if "\0" in line:
            raise EnvFileError(f"line {lineno}: NUL byte in {key!r}")
        out[key] = parse_env_value(raw_value)
    return out


class EnvSettings(Mapping[str, str]):
    def __init__(self, values: Mapping[str, str] | None = None, *, source: Path | None = None) -> None:
        self._values = dict(values or {})
        self.source = source

    def __getitem__(self, key: str) -> str:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"EnvSettings(source={self.source!s}, keys={sorted(self._values)!r})"

    def value(self, key: str, default: str = "") -> str:
        """Return the value for ``key``, or ``default`` when unset or empty."""
        v = self._values.get(key, "")
        return v if v else default

    def as_environ(self, base: Mapping[str, str] | None = None, **extra: str) -> dict[str, str]:
        env = dict(base or {})
        env.update(self._values)
        env.update(extra)
        return env


def load_env_file(path: str | Path) -> EnvSettings:
    p = Path(path)
    try:
        with p.open("r", encoding="utf-8") as fh:
            values = parse_env_lines(fh)
    except UnicodeDecodeError as e:
        raise EnvFileError(f"error reading .env file {p}: {e}") from e
    except OSError as e:
        raise EnvFileError(f"failed to open .env file {p}: {e}") from e
    return EnvSettings(values, source=p)
