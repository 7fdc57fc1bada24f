"""User-facing notifications."""

from __future__ import annotations

from typing import Protocol

import click


class Notifier(Protocol):
    def info(self, message: str) -> None: ...

    def warning(self, message: str) -> None: ...

    def error(self, message: str) -> None: ...


class ConsoleNotifier:
    """Show notifications as colored terminal lines."""

    def info(self, message: str) -> None:
        click.secho(message, fg="green", bold=True)

    def warning(self, message: str) -> None:
        click.secho(message, fg="yellow")

    def error(self, message: str) -> None:
        click.secho(message, fg="red", bold=True, err=True)


__all__ = ["ConsoleNotifier", "Notifier"]
