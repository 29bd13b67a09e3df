"""Output formatting utilities for CLI commands."""

import click

# Colors for agent health statuses
STATUS_COLORS = {
    "passing": "green",
    "warning": "yellow",
    "critical": "red",
    "maintenance": "blue",
}


def success(message: str) -> None:
    """Print a success message in green."""
    click.secho(f"✓ {message}", fg="green")


def error(message: str) -> None:
    """Print an error message in red."""
    click.secho(f"✗ {message}", fg="red", err=True)


def warning(message: str) -> None:
    """Print a warning message in yellow."""
    click.secho(f"⚠ {message}", fg="yellow")


def header(message: str) -> None:
    """Print a header message in cyan bold."""
    click.secho(f"\n{message}", fg="cyan", bold=True)


def status_label(status: str) -> str:
    """Return a health status styled with its color."""
    return click.style(status, fg=STATUS_COLORS.get(status, "white"))
