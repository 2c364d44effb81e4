from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from .cli_shared import (
    FatalError,
    GlobalOpts,
    OpError,
    UsageError,
    _require_arg,
    _rich_error,
    _say,
    _write_text,
)
from .env_file import EnvFileError, EnvSettings, load_env_file
from .listener import PlaceholderListener, start_placeholder_listener
from .migrations import (
    MIGRATIONS_DIR,
    SCHEMA_RUNNER,
    MigrationError,
    database_dsn,
    discover_migrations,
    read_module_path,
)
from .process import ProcessError, run_command
from .scaffold import (
    FRONTEND_FOLDERS,
    ProvisionPlan,
    initialize_project,
    make_folders,
)
from .templates import (
    render_backend_env,
    render_frontend_env,
    render_migration,
    render_model,
    render_schema_runner,
)

MODELS_DIR = "backend/models"
FRONTEND_DIR = "frontend"

DEFAULT_ENV = "production"
DEFAULT_HOST = "localhost"
DEFAULT_APP_PORT = 8080
DEFAULT_API_PORT = 8001


def _now() -> datetime:
    return datetime.now()


def _load_settings(g: GlobalOpts) -> EnvSettings:
    try:
        return load_env_file(g.path(g.env_file))
    except EnvFileError as e:
        raise FatalError(f"Error loading .env file: {e}") from e


def parse_port(raw: str | None, default: int) -> int:
    value = (raw or "").strip()
    if not value:
        return default
    try:
        port = int(value)
    except ValueError:
        port = -1
    # 0 lets the OS pick a free port
    if not 0 <= port < 65536:
        _say(f"Invalid port number '{value}', using default: {default}")
        return default
    return port


def add_new_project_steps(plan: ProvisionPlan, name: str, root: Path, g: GlobalOpts) -> None:
    plan.add(
        "install backend dependencies",
        lambda: run_command(g.go_bin, "mod", "tidy", cwd=root, quiet=g.quiet),
        announce="Installing backend dependencies...",
    )
    if g.frontend:
        plan.add(
            "initialize React frontend",
            lambda: run_command(g.npx_bin, "create-react-app", FRONTEND_DIR, cwd=root, quiet=g.quiet),
            announce="Initializing frontend...",
        )
        plan.add(
            "install frontend dependencies",
            lambda: run_command(g.npm_bin, "install", "--prefix", FRONTEND_DIR, cwd=root, quiet=g.quiet),
            announce="Installing frontend dependencies...",
        )
        plan.add("create frontend folders", lambda: make_folders(root, FRONTEND_FOLDERS))
    plan.add(
        "create backend .env file",
        lambda: _write_text(path=root / ".env", text=render_backend_env(name)),
        announce="Creating backend .env file...",
    )
    if g.frontend:
        plan.add(
            "create frontend .env file",
            lambda: _write_text(path=root / FRONTEND_DIR / ".env", text=render_frontend_env(name)),
            announce="Creating frontend .env file...",
        )


def cmd_new(args: list[str], g: GlobalOpts) -> None:
    initialize_project(
        args[0] if args else "",
        g,
        extend=lambda plan, name, root: add_new_project_steps(plan, name, root, g),
    )
    _say("Project setup completed successfully!")


def cmd_install(args: list[str], g: GlobalOpts) -> None:
    del args
    _say("Installing backend dependencies...")
    try:
        run_command(g.go_bin, "mod", "tidy", cwd=g.workdir, quiet=g.quiet)
    except ProcessError as e:
        raise OpError(f"Failed to install backend dependencies: {e}") from e

    if g.frontend:
        _say("Installing frontend dependencies...")
        try:
            run_command(g.npm_bin, "install", "--prefix", FRONTEND_DIR, cwd=g.workdir, quiet=g.quiet)
        except ProcessError as e:
            raise OpError(f"Failed to install frontend dependencies: {e}") from e

    _say("Dependencies installed successfully!")


def cmd_add(args: list[str], g: GlobalOpts) -> None:
    if len(args) < 2:
        raise UsageError("Please specify the environment (go/npm) and the package name.")
    environment = args[0].strip()
    package = args[1].strip()

    if environment == "go":
        _say(f"Adding Go package: {package}")
        try:
            run_command(g.go_bin, "get", package, cwd=g.workdir, quiet=g.quiet)
        except ProcessError as e:
            raise OpError(f"Failed to add Go package: {e}") from e
    elif environment == "npm":
        _say(f"Adding npm package: {package}")
        try:
            run_command(g.npm_bin, "install", package, "--prefix", FRONTEND_DIR, cwd=g.workdir, quiet=g.quiet)
        except ProcessError as e:
            raise OpError(f"Failed to add npm package: {e}") from e
    else:
        raise UsageError("Unknown environment. Use 'go' or 'npm'.")

    _say("Dependency added successfully!")


def cmd_migrate(args: list[str], g: GlobalOpts) -> None:
    direction = (args[0] if args else "up").strip().lower()
    if direction not in {"up", "down"}:
        raise UsageError(f"Unknown migration direction {direction!r}. Use 'up' or 'down'.")

    settings = _load_settings(g)
    runner = g.path(MIGRATIONS_DIR, SCHEMA_RUNNER)
    if not runner.is_file():
        raise FatalError(f"schema runner {MIGRATIONS_DIR}/{SCHEMA_RUNNER} not found (run 'maestro make:schema' first)")
    try:
        migrations = discover_migrations(g.path(MIGRATIONS_DIR))
    except MigrationError as e:
        raise FatalError(f"Failed to apply migrations: {e}") from e
    if not migrations:
        _say("No migrations found.")
        return

    if direction == "up":
        for mig in migrations:
            _say(f"Applying migration: {mig.path.name}")
    else:
        for mig in reversed(migrations):
            _say(f"Reverting migration: {mig.path.name}")

    env = settings.as_environ(os.environ, DATABASE_DSN=database_dsn(settings))
    try:
        run_command(g.go_bin, "run", f"./{MIGRATIONS_DIR}", direction, cwd=g.workdir, env=env, quiet=g.quiet)
    except ProcessError as e:
        raise FatalError(f"Failed to apply migrations: {e}") from e

    _say("Migrations completed successfully!")


def _hold(listener: PlaceholderListener) -> None:
    _say("Press Ctrl+C to stop the backend server.")
    try:
        listener.wait()
    except KeyboardInterrupt:
        listener.stop()


def cmd_serve(args: list[str], g: GlobalOpts) -> None:
    settings = _load_settings(g)

    env = settings.value("APP_ENV", DEFAULT_ENV)
    host = (args[0].strip() if args and args[0].strip() else "") or settings.value("APP_HOST", DEFAULT_HOST)
    app_port = parse_port(settings.value("APP_PORT"), DEFAULT_APP_PORT)
    api_port = parse_port(args[1] if len(args) > 1 else settings.value("API_PORT"), DEFAULT_API_PORT)

    if env == "development":
        _say(
            f"Starting the development server on {host}:{app_port} (frontend) and {host}:{api_port} (backend)..."
        )

    listener = start_placeholder_listener(host, api_port)

    frontend = g.path(FRONTEND_DIR)
    if not frontend.is_dir():
        _rich_error("Frontend directory not found. Please ensure the frontend project is set up correctly.")
        _hold(listener)
        return
    if not (frontend / "package.json").is_file():
        _rich_error(
            "package.json not found in the frontend directory. "
            "Please initialize a React project in the 'frontend' folder."
        )
        _hold(listener)
        return

    _say("Starting frontend server...")
    try:
        run_command(
            g.npm_bin,
            "start",
            "--prefix",
            FRONTEND_DIR,
            "--",
            "--port",
            str(app_port),
            cwd=g.workdir,
            env=settings.as_environ(os.environ),
            quiet=g.quiet,
        )
    except ProcessError as e:
        _rich_error(f"Failed to start frontend development server: {e}")
        return

    _say("Server started successfully!")


def cmd_make_model(args: list[str], g: GlobalOpts) -> None:
    name = _require_arg(args, 0, "Please provide a model name.")
    snake, source = render_model(name)
    path = g.path(MODELS_DIR, f"{snake}.go")
    try:
        _write_text(path=path, text=source)
    except OpError as e:
        raise OpError(f"Failed to create model file: {e}") from e
    _say(f"Model file created: {MODELS_DIR}/{path.name}")


def cmd_make_migrate(args: list[str], g: GlobalOpts) -> None:
    name = _require_arg(args, 0, "Please provide a migration name.")
    module = read_module_path(g.workdir)
    filename, source = render_migration(name, key=_now().strftime("%Y%m%d%H%M%S"), module=module)
    path = g.path(MIGRATIONS_DIR, filename)
    try:
        _write_text(path=path, text=source)
    except OpError as e:
        raise OpError(f"Failed to create migration file: {e}") from e
    _say(f"Migration file created: {MIGRATIONS_DIR}/{filename}")


def cmd_make_schema(args: list[str], g: GlobalOpts) -> None:
    del args
    module = read_module_path(g.workdir)
    path = g.path(MIGRATIONS_DIR, SCHEMA_RUNNER)
    try:
        _write_text(path=path, text=render_schema_runner(module))
    except OpError as e:
        raise OpError(f"Failed to create schema runner: {e}") from e
    _say(f"Schema runner created: {MIGRATIONS_DIR}/{SCHEMA_RUNNER}")
