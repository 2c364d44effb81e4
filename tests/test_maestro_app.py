from __future__ import annotations

import re
from pathlib import Path

import pytest
from typer.testing import CliRunner

from maestro_cli import __version__
from maestro_cli.apps.maestro_app import UNKNOWN_COMMAND, USAGE_PROMPT, app, main
from maestro_cli.registry import COMMANDS, CommandKind, command_names, help_lines, lookup

_ANSI_RE = re.compile(r"\x1b\[[0-9;]*m")


def _plain(s: str) -> str:
    return _ANSI_RE.sub("", s)


def test_no_arguments_prints_usage_prompt(capsys) -> None:
    assert main([]) == 0
    assert capsys.readouterr().out.strip() == USAGE_PROMPT


def test_unknown_command_is_reported_with_status_zero(capsys) -> None:
    assert main(["frobnicate", "now"]) == 0
    assert capsys.readouterr().out.strip() == UNKNOWN_COMMAND


def test_help_lists_every_command(capsys) -> None:
    assert main(["help"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == "Available commands:"
    listed = [line[2:].split()[0] for line in lines[1:]]
    assert listed == [kind.value for kind in CommandKind]
    assert "- make:schema" in lines[-1]
    assert "Initializes the database schema using GORM." in lines[-1]


def test_version_flag(capsys) -> None:
    assert main(["--version"]) == 0
    assert capsys.readouterr().out.strip() == f"maestro {__version__}"


def test_reported_error_exits_zero(tmp_path: Path, monkeypatch, fake_runner, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["add", "yarn", "left-pad"]) == 0
    assert "Unknown environment. Use 'go' or 'npm'." in capsys.readouterr().err
    assert fake_runner.calls == []


def test_fatal_error_exits_one(tmp_path: Path, monkeypatch, fake_runner, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["migrate"]) == 1
    assert "Error loading .env file" in capsys.readouterr().err
    assert fake_runner.calls == []


def test_nul_byte_in_env_file_exits_one(tmp_path: Path, monkeypatch, fake_runner, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    (tmp_path / ".env").write_text("DB_HOST=a\x00b\n", encoding="utf-8")
    assert main(["migrate"]) == 1
    assert "NUL byte" in capsys.readouterr().err
    assert fake_runner.calls == []


def test_help_ignores_extra_arguments(capsys) -> None:
    assert main(["help", "extra", "--verbose"]) == 0
    assert capsys.readouterr().out.startswith("Available commands:")


def test_unknown_option_is_a_usage_error(capsys) -> None:
    assert main(["--bogus"]) == 2
    assert "--bogus" in capsys.readouterr().err


def test_add_passes_package_through(tmp_path: Path, monkeypatch, fake_runner) -> None:
    monkeypatch.chdir(tmp_path)
    assert main(["add", "go", "github.com/gin-gonic/gin"]) == 0
    assert fake_runner.argvs == [["go", "get", "github.com/gin-gonic/gin"]]
    assert fake_runner.calls[0]["cwd"] == Path.cwd()


def test_environment_overrides_reach_commands(tmp_path: Path, monkeypatch, fake_runner) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MAESTRO_NPM_BIN", "pnpm")
    monkeypatch.setenv("MAESTRO_QUIET", "1")
    assert main(["add", "npm", "axios"]) == 0
    assert fake_runner.argvs == [["pnpm", "install", "axios", "--prefix", "frontend"]]


def test_new_without_frontend_from_environment(tmp_path: Path, monkeypatch, fake_runner, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MAESTRO_NO_FRONTEND", "true")
    assert main(["new", "shop"]) == 0
    assert [argv[:3] for argv in fake_runner.argvs] == [["go", "mod", "init"], ["go", "mod", "tidy"]]
    assert (tmp_path / "shop" / ".env").is_file()
    assert "Project setup completed successfully!" in capsys.readouterr().out


@pytest.mark.parametrize(
    ("command", "expected"),
    [
        ("add", "Adds a new dependency to backend or frontend."),
        ("migrate", "Runs the database migrations."),
        ("make:model", "Creates a new model file with GORM support."),
    ],
)
def test_command_help(command: str, expected: str) -> None:
    runner = CliRunner()
    result = runner.invoke(app, [command, "--help"])
    assert result.exit_code == 0
    assert expected in _plain(result.output)


def test_registry_covers_every_kind() -> None:
    assert set(COMMANDS) == set(CommandKind)
    assert command_names() == [kind.value for kind in CommandKind]
    assert all(spec.kind is kind for kind, spec in COMMANDS.items())


def test_registry_is_read_only() -> None:
    with pytest.raises(TypeError):
        COMMANDS[CommandKind.NEW] = COMMANDS[CommandKind.ADD]  # type: ignore[index]


def test_lookup() -> None:
    spec = lookup("make:migrate")
    assert spec is not None and spec.kind is CommandKind.MAKE_MIGRATE
    assert lookup("make:controller") is None
    assert lookup("") is None


def test_help_lines_are_aligned() -> None:
    lines = help_lines()[1:]
    starts = {len(line) - len(line.split(" ", 2)[2].lstrip()) for line in lines}
    assert len(starts) == 1
