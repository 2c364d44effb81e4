from __future__ import annotations

import sys

import click
import typer

from .. import __version__
from ..cli_shared import (
    FatalError,
    OpError,
    UsageError,
    _apply_global_env,
    _eprint,
    _rich_error,
    _say,
)
from ..registry import COMMANDS, CommandSpec, help_lines, lookup

USAGE_PROMPT = "Please provide a command (use 'help' to see available commands)."
UNKNOWN_COMMAND = "Unknown command. Use 'help' to see available commands."

_PASSTHROUGH_CONTEXT = {"allow_extra_args": True, "ignore_unknown_options": True}


class _InsertionOrderTyperGroup(typer.core.TyperGroup):
    def list_commands(self, ctx: click.Context) -> list[str]:
        names = list(self.commands)
        tail = [n for n in ("help",) if n in names]
        head = [n for n in names if n not in set(tail)]
        return head + tail


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"maestro {__version__}")
        raise typer.Exit(code=0)


app = typer.Typer(
    name="maestro",
    help="Scaffold and run Go + React web projects.",
    add_completion=False,
    cls=_InsertionOrderTyperGroup,
)


@app.callback()
def app_callback(
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    del version


def _invoke(spec: CommandSpec, args: list[str]) -> None:
    g = _apply_global_env()
    try:
        spec.handler(list(args), g)
    except FatalError as e:
        _rich_error(str(e))
        raise typer.Exit(code=1)
    except (UsageError, OpError) as e:
        _rich_error(str(e))


def _register(spec: CommandSpec) -> None:
    def _command(args: list[str] | None = typer.Argument(None, help=spec.usage or "No arguments")) -> None:
        _invoke(spec, list(args or []))

    _command.__name__ = "cmd_" + spec.name.replace(":", "_")
    app.command(spec.name, help=spec.description, context_settings=_PASSTHROUGH_CONTEXT)(_command)


for _spec in COMMANDS.values():
    _register(_spec)


@app.command("help", help="List the available commands.", context_settings=_PASSTHROUGH_CONTEXT)
def help_command(args: list[str] | None = typer.Argument(None, hidden=True)) -> None:
    del args
    for line in help_lines():
        _say(line)


def _render_usage_error_with_help(*, message: str, ctx: click.Context | None = None) -> None:
    _rich_error(message)
    help_text = ""
    if isinstance(ctx, click.Context):
        try:
            help_text = str(ctx.get_help() or "").strip()
        except Exception:
            help_text = ""
    if help_text:
        _eprint("")
        _eprint(help_text)


def _run_cli(*, root_app: typer.Typer, prog_name: str, argv: list[str] | None = None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv:
        _say(USAGE_PROMPT)
        return 0
    head = argv[0]
    if not head.startswith("-") and head != "help" and lookup(head) is None:
        _say(UNKNOWN_COMMAND)
        return 0

    try:
        result = root_app(args=argv, prog_name=prog_name, standalone_mode=False)
        if result is None:
            return 0
        return int(result)
    except typer.Exit as e:
        return int(e.exit_code)
    except click.exceptions.Abort:
        _eprint("")
        return 130
    except click.ClickException as e:
        if isinstance(e, click.UsageError):
            _render_usage_error_with_help(message=e.format_message(), ctx=getattr(e, "ctx", None))
            return int(e.exit_code)
        _rich_error(e.format_message())
        return int(e.exit_code)


def main(argv: list[str] | None = None) -> int:
    return _run_cli(root_app=app, prog_name="maestro", argv=argv)


if __name__ == "__main__":
    raise SystemExit(main())
