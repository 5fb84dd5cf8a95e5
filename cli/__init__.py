"""Operator CLI for the weather monitor service."""

from importlib import import_module
from types import ModuleType


# ``cli.app`` is the command module; the Typer instance is ``cli.app.app``.
def __getattr__(name: str) -> ModuleType:
    if name == "app":
        return import_module("cli.app")
    raise AttributeError(name)
