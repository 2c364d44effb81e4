from __future__ import annotations

import base64
import re
import secrets
from string import Template

from .casing import to_pascal_case, to_snake_case
from .cli_shared import UsageError

APP_VERSION = "1.3.0"

_GO_FILE_NAME_RE = re.compile(r"^[a-z][a-z0-9_]*$")

BACKEND_ENV = Template(
    """# Environment Configuration
APP_NAME=${project_name}
APP_ENV=development
APP_HOST=localhost
APP_PORT=8000
API_PORT=8001
APP_KEY=${app_key}
APP_DEBUG=true
APP_URL=http://localhost
APP_VERSION=${app_version}
APP_TIMEZONE="America/Sao_Paulo"

LOG_CHANNEL=stack
LOG_DEPRECATIONS_CHANNEL=null
LOG_LEVEL=debug

DB_CONNECTION=mysql
DB_HOST=localhost
DB_PORT=3306
DB_DATABASE=
DB_USERNAME=
DB_PASSWORD=

REDIS_HOST=127.0.0.1
REDIS_PASSWORD=null
REDIS_PORT=6379
"""
)

FRONTEND_ENV = Template(
    """# React Environment Configuration
REACT_APP_NAME=${project_name}
REACT_APP_ENV=development
REACT_APP_API_URL=http://localhost:8000
REACT_APP_VERSION=${app_version}
REACT_APP_DEBUG=true
"""
)

MODEL_GO = Template(
    """package models

import (
	"gorm.io/gorm"
)

type ${type_name} struct {
	gorm.Model
}
"""
)

MIGRATION_GO = Template(
    """package main

import (
	"fmt"

	"gorm.io/gorm"

	"${module}/backend/models"
)

func init() {
	registerMigration("${key}", "create_${table}_table", up${key}, down${key})
}

// up${key} is executed when this migration is applied.
func up${key}(db *gorm.DB) error {
	fmt.Println("Applying migration: create ${table} table")
	return db.AutoMigrate(&models.${type_name}{})
}

// down${key} is executed when this migration is reverted.
func down${key}(db *gorm.DB) error {
	fmt.Println("Reverting migration: drop ${table} table")
	return db.Migrator().DropTable(&models.${type_name}{})
}
"""
)

SCHEMA_RUNNER_GO = Template(
    """// Schema runner for ${module}.
//
// Every migration file in this directory registers itself from init() with a
// timestamp key. Migrations are applied in ascending key order and reverted
// in descending key order.
package main

import (
	"fmt"
	"log"
	"os"
	"sort"

	"gorm.io/driver/mysql"
	"gorm.io/gorm"
)

type migration struct {
	Key  string
	Name string
	Up   func(*gorm.DB) error
	Down func(*gorm.DB) error
}

var registry = map[string]migration{}

func registerMigration(key, name string, up, down func(*gorm.DB) error) {
	if _, exists := registry[key]; exists {
		log.Fatalf("duplicate migration key %s", key)
	}
	registry[key] = migration{Key: key, Name: name, Up: up, Down: down}
}

func orderedKeys() []string {
	keys := make([]string, 0, len(registry))
	for key := range registry {
		keys = append(keys, key)
	}
	sort.Strings(keys)
	return keys
}

func main() {
	direction := "up"
	if len(os.Args) > 1 {
		direction = os.Args[1]
	}

	dsn := os.Getenv("DATABASE_DSN")
	if dsn == "" {
		log.Fatal("DATABASE_DSN is not set")
	}
	db, err := gorm.Open(mysql.Open(dsn), &gorm.Config{})
	if err != nil {
		log.Fatalf("Failed to connect to the database: %s", err)
	}

	keys := orderedKeys()
	switch direction {
	case "up":
		for _, key := range keys {
			m := registry[key]
			if err := m.Up(db); err != nil {
				log.Fatalf("migration %s_%s failed: %s", m.Key, m.Name, err)
			}
			fmt.Printf("Applied %s_%s\\n", m.Key, m.Name)
		}
	case "down":
		for i := len(keys) - 1; i >= 0; i-- {
			m := registry[keys[i]]
			if err := m.Down(db); err != nil {
				log.Fatalf("revert of %s_%s failed: %s", m.Key, m.Name, err)
			}
			fmt.Printf("Reverted %s_%s\\n", m.Key, m.Name)
		}
	default:
		log.Fatalf("unknown migration direction %q (expected up or down)", direction)
	}
}
"""
)


def new_app_key() -> str:
    return "base64:" + base64.b64encode(secrets.token_bytes(32)).decode("ascii")


def render_backend_env(project_name: str, *, app_key: str | None = None) -> str:
    return BACKEND_ENV.substitute(
        project_name=project_name,
        app_key=app_key or new_app_key(),
        app_version=APP_VERSION,
    )


def render_frontend_env(project_name: str) -> str:
    return FRONTEND_ENV.substitute(project_name=project_name, app_version=APP_VERSION)


def go_names(name: str) -> tuple[str, str]:
    """Return ``(snake_name, type_name)`` for a user supplied model name.

    Raises UsageError unless the snake form is usable as a Go file name and
    the type name is a valid exported Go identifier.
    """
    snake = to_snake_case(name.strip())
    type_name = to_pascal_case(snake)
    # go build skips "_test" files
    if not _GO_FILE_NAME_RE.match(snake) or snake.endswith("_test"):
        raise UsageError(f"invalid name {name!r}: use ASCII letters, digits and underscores, starting with a letter")
    return snake, type_name


def render_model(name: str) -> tuple[str, str]:
    """Return ``(snake_name, source)`` for a GORM model called ``name``."""
    snake, type_name = go_names(name)
    return snake, MODEL_GO.substitute(type_name=type_name)


def render_migration(name: str, *, key: str, module: str) -> tuple[str, str]:
    table, type_name = go_names(name)
    filename = f"{key}_create_{table}_table.go"
    source = MIGRATION_GO.substitute(
        key=key,
        table=table,
        module=module,
        type_name=type_name,
    )
    return filename, source


def render_schema_runner(module: str) -> str:
    return SCHEMA_RUNNER_GO.substitute(module=module)
