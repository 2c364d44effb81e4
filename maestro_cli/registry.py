from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType

from . import commands
from .cli_shared import GlobalOpts


class CommandKind(str, Enum):
    NEW = "new"
    INSTALL = "install"
    ADD = "add"
    MIGRATE = "migrate"
    SERVE = "serve"
    MAKE_MODEL = "make:model"
    MAKE_MIGRATE = "make:migrate"
    MAKE_SCHEMA = "make:schema"


Handler = Callable[[list[str], GlobalOpts], None]


@dataclass(frozen=True)
class CommandSpec:
    kind: CommandKind
    handler: Handler
    description: str
    usage: str = ""

    @property
    def name(self) -> str:
        return self.kind.value


def _spec(kind: CommandKind, handler: Handler, description: str, usage: str = "") -> tuple[CommandKind, CommandSpec]:
    return kind, CommandSpec(kind=kind, handler=handler, description=description, usage=usage)


COMMANDS: Mapping[CommandKind, CommandSpec] = MappingProxyType(
    dict(
        [
            _spec(CommandKind.NEW, commands.cmd_new, "Creates a new project with a default structure.", "<name>"),
            _spec(CommandKind.INSTALL, commands.cmd_install, "Installs backend and frontend dependencies."),
            _spec(CommandKind.ADD, commands.cmd_add, "Adds a new dependency to backend or frontend.", "<go|npm> <package>"),
            _spec(CommandKind.MIGRATE, commands.cmd_migrate, "Runs the database migrations.", "[up|down]"),
            _spec(
                CommandKind.SERVE,
                commands.cmd_serve,
                "Starts the development server for both backend and frontend.",
                "[host] [port]",
            ),
            _spec(CommandKind.MAKE_MODEL, commands.cmd_make_model, "Creates a new model file with GORM support.", "<name>"),
            _spec(CommandKind.MAKE_MIGRATE, commands.cmd_make_migrate, "Creates a new migration file.", "<name>"),
            _spec(CommandKind.MAKE_SCHEMA, commands.cmd_make_schema, "Initializes the database schema using GORM."),
        ]
    )
)

_missing = [k.value for k in CommandKind if k not in COMMANDS]
if _missing:
    raise RuntimeError(f"commands without a handler: {', '.join(_missing)}")


def lookup(name: str) -> CommandSpec | None:
    try:
        return COMMANDS[CommandKind(name)]
    except ValueError:
        return None


def command_names() -> list[str]:
    return [spec.name for spec in COMMANDS.values()]


def help_lines() -> list[str]:
    width = max(len(n) for n in command_names())
    return ["Available commands:"] + [f"- {spec.name:<{width}} {spec.description}" for spec in COMMANDS.values()]
