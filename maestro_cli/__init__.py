"""Project scaffolding and task-runner CLI.

The command surface is implemented with Typer and Rich; every command is a
short sequence of filesystem writes and external process invocations.
"""

__all__ = ["__version__"]

__version__ = "0.1.0"
