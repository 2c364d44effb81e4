from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from .cli_shared import OpError
from .env_file import EnvSettings

MIGRATIONS_DIR = "backend/migrations"
SCHEMA_RUNNER = "main.go"

_MIGRATION_FILE_RE = re.compile(r"^(?P<key>\d{14})_(?P<name>\w+)\.go$")
_GO_MODULE_RE = re.compile(r"^\s*module\s+(?P<module>\S+)\s*$", re.MULTILINE)


class MigrationError(OpError):
    pass


@dataclass(frozen=True)
class MigrationFile:
    key: str
    name: str
    path: Path


def database_dsn(settings: EnvSettings) -> str:
    return "{user}:{password}@tcp({host}:{port})/{database}?charset=utf8mb4&parseTime=True&loc=Local".format(
        user=settings.get("DB_USERNAME", ""),
        password=settings.get("DB_PASSWORD", ""),
        host=settings.get("DB_HOST", ""),
        port=settings.get("DB_PORT", ""),
        database=settings.get("DB_DATABASE", ""),
    )


def _registration_marker(key: str) -> str:
    return f'registerMigration("{key}"'


def read_migration(path: Path) -> MigrationFile:
    m = _MIGRATION_FILE_RE.match(path.name)
    if not m:
        raise MigrationError(f"invalid migration file name {path.name!r}: expected <YYYYmmddHHMMSS>_<name>.go")
    key = m.group("key")
    try:
        source = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise MigrationError(f"failed to read migration {path}: {e}") from e
    if _registration_marker(key) not in source:
        raise MigrationError(f"migration {path.name} does not register itself with key {key}")
    return MigrationFile(key=key, name=m.group("name"), path=path)


def discover_migrations(directory: Path) -> list[MigrationFile]:
    """Return the migrations in ``directory`` ordered by key.

    The schema runner and Go test files are ignored. Any other ``.go`` file
    must follow the naming and registration convention, otherwise the whole
    discovery fails.
    """
    if not directory.is_dir():
        raise MigrationError(f"migrations directory not found: {directory}")
    found: list[MigrationFile] = []
    seen: dict[str, Path] = {}
    for path in sorted(directory.glob("*.go")):
        if path.name == SCHEMA_RUNNER or path.name.endswith("_test.go"):
            continue
        mig = read_migration(path)
        if mig.key in seen:
            raise MigrationError(f"duplicate migration key {mig.key}: {seen[mig.key].name} and {path.name}")
        seen[mig.key] = path
        found.append(mig)
    return sorted(found, key=lambda mig: mig.key)


def read_module_path(root: Path) -> str:
    go_mod = root / "go.mod"
    try:
        text = go_mod.read_text(encoding="utf-8")
    except OSError as e:
        raise OpError(f"failed to read {go_mod} (run this command from the project root): {e}") from e
    m = _GO_MODULE_RE.search(text)
    if not m:
        raise OpError(f"no module directive found in {go_mod}")
    return m.group("module")
