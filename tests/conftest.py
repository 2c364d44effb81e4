from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest

from maestro_cli.process import ProcessError


class FakeRunner:
    """Stands in for run_command; emulates the files the real tools create."""

    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []
        self.fail_on: list[str] | None = None
        self.fail_with: BaseException | None = None

    @property
    def argvs(self) -> list[list[str]]:
        return [c["argv"] for c in self.calls]

    def __call__(self, executable: str, *args: str, cwd=None, env=None, quiet: bool = False) -> None:
        argv = [executable, *args]
        self.calls.append({"argv": argv, "cwd": Path(cwd) if cwd is not None else None, "env": env})
        if self.fail_on and argv[: len(self.fail_on)] == self.fail_on:
            if self.fail_with is not None:
                raise self.fail_with
            raise ProcessError(f"{' '.join(argv)} exited with status 1", returncode=1)
        if argv[:3] == ["go", "mod", "init"]:
            (Path(cwd) / "go.mod").write_text(f"module {args[2]}\n\ngo 1.22\n", encoding="utf-8")
        if argv[:2] == ["npx", "create-react-app"]:
            frontend = Path(cwd) / args[1]
            (frontend / "src").mkdir(parents=True)
            (frontend / "package.json").write_text("{}", encoding="utf-8")


@pytest.fixture
def fake_runner(monkeypatch) -> FakeRunner:
    runner = FakeRunner()
    monkeypatch.setattr("maestro_cli.commands.run_command", runner)
    monkeypatch.setattr("maestro_cli.scaffold.run_command", runner)
    return runner


@pytest.fixture(autouse=True)
def _clean_maestro_env(monkeypatch) -> None:
    for name in (
        "MAESTRO_GO_BIN",
        "MAESTRO_NPM_BIN",
        "MAESTRO_NPX_BIN",
        "MAESTRO_ENV_FILE",
        "MAESTRO_NO_FRONTEND",
        "MAESTRO_QUIET",
    ):
        monkeypatch.delenv(name, raising=False)
