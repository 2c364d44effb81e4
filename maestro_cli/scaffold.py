from __future__ import annotations

import shutil
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from .cli_shared import GlobalOpts, MaestroError, OpError, UsageError, _rich_error, _say
from .process import run_command

BACKEND_FOLDERS: tuple[str, ...] = (
    "backend/cmd",
    "backend/pkg",
    "backend/internal",
    "backend/configs",
    "backend/migrations",
    "backend/routes",
    "backend/controllers",
    "backend/models",
    "backend/middleware",
)

FRONTEND_FOLDERS: tuple[str, ...] = (
    "frontend/public",
    "frontend/src/components",
    "frontend/src/pages",
    "frontend/src/services",
    "frontend/src/styles",
    "frontend/src/utils",
    "frontend/src/assets",
)


class StepError(OpError):
    def __init__(self, message: str, *, step: str) -> None:
        super().__init__(message)
        self.step = step


@dataclass(frozen=True)
class Step:
    description: str
    action: Callable[[], None]
    undo: Callable[[], None] | None = None
    announce: str | None = None


class ProvisionPlan:
    """Ordered steps; a failing step rolls back every committed step in reverse."""

    def __init__(self) -> None:
        self._steps: list[Step] = []
        self.committed: list[Step] = []

    def add(
        self,
        description: str,
        action: Callable[[], None],
        *,
        undo: Callable[[], None] | None = None,
        announce: str | None = None,
    ) -> "ProvisionPlan":
        self._steps.append(Step(description=description, action=action, undo=undo, announce=announce))
        return self

    def run(self) -> None:
        for step in self._steps:
            if step.announce:
                _say(step.announce)
            try:
                step.action()
            except (MaestroError, OSError) as e:
                self.rollback()
                raise StepError(f"failed to {step.description}: {e}", step=step.description) from e
            except BaseException:
                # Ctrl+C and unexpected errors still leave no partial work behind.
                self.rollback()
                raise
            self.committed.append(step)

    def rollback(self) -> None:
        while self.committed:
            step = self.committed.pop()
            if step.undo is None:
                continue
            try:
                step.undo()
            except (MaestroError, OSError) as e:
                _say(f"Failed to undo '{step.description}': {e}")


def validate_project_name(name: str) -> str:
    n = (name or "").strip()
    if not n:
        raise UsageError("Please provide a project name.")
    if n in {".", ".."} or Path(n).name != n or "\\" in n:
        raise UsageError(f"invalid project name {name!r}: expected a single directory name")
    return n


def make_folders(root: Path, folders: Sequence[str]) -> None:
    for folder in folders:
        try:
            (root / folder).mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OpError(f"failed to create folder {folder}: {e}") from e


def cleanup_project(root: Path) -> None:
    _say(f"Cleaning up incomplete project '{root.name}'...")
    try:
        shutil.rmtree(root)
    except FileNotFoundError:
        _say("Project cleanup completed.")
    except OSError as e:
        _rich_error(f"Failed to clean up project directory: {e}")
    else:
        _say("Project cleanup completed.")


def _create_root(root: Path) -> None:
    try:
        root.mkdir()
    except FileExistsError as e:
        raise OpError(f"project directory already exists: {root}") from e
    except OSError as e:
        raise OpError(f"failed to create project directory: {e}") from e
    if not root.is_dir():
        raise OpError("project directory does not exist after creation attempt")


def add_initialize_steps(plan: ProvisionPlan, *, name: str, root: Path, g: GlobalOpts) -> ProvisionPlan:
    """Append the project initializer steps to ``plan``.

    Every later step treats ``root`` as its working directory. The root
    directory step carries the undo that removes the whole tree.
    """
    plan.add("create project directory", lambda: _create_root(root), undo=lambda: cleanup_project(root))
    plan.add(
        "initialize Go module",
        lambda: run_command(g.go_bin, "mod", "init", name, cwd=root, quiet=g.quiet),
    )
    plan.add("create backend folders", lambda: make_folders(root, BACKEND_FOLDERS))
    return plan


def prepare_project_root(name: str, g: GlobalOpts) -> tuple[str, Path]:
    name = validate_project_name(name)
    root = g.path(name)
    if root.exists() or root.is_symlink():
        raise UsageError(f"A project named '{name}' already exists. Aborting.")
    return name, root


def initialize_project(
    name: str,
    g: GlobalOpts,
    *,
    extend: Callable[[ProvisionPlan, str, Path], None] | None = None,
) -> Path:
    """Create the project root and backend skeleton, then run any steps ``extend`` appends.

    All steps share one plan, so a failure anywhere removes the whole root.
    """
    name, root = prepare_project_root(name, g)
    _say(f"Initializing a new Go project: {name}")
    plan = add_initialize_steps(ProvisionPlan(), name=name, root=root, g=g)
    if extend is not None:
        extend(plan, name, root)
    plan.run()
    return root
