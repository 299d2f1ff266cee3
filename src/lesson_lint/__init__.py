"""Linter and snippet runner for Markdown SQL lessons."""

from .cli import cli

__all__ = ["cli", "main"]


def main() -> None:
    """Entry point for the lesson-lint CLI."""
    cli()
