"""CLI output styling.

Headers and labels are cyan bold, success green with a checkmark, errors
red with a cross, warnings yellow. Unset or defaulted values are dim.
Callers echo the returned strings; click strips the styling when output
is not a terminal.
"""

from __future__ import annotations

__all__ = [
    "format_error_list",
    "style_default",
    "style_dim",
    "style_error",
    "style_field",
    "style_header",
    "style_label",
    "style_success",
    "style_warning",
]

from collections.abc import Iterable

import click

INDENT = "  "


def style_header(title: str) -> str:
    """e.g. "--- SSO Server ---"."""
    return click.style(f"--- {title} ---", fg="cyan", bold=True)


def style_label(label: str) -> str:
    return click.style(f"{label}:", fg="cyan", bold=True)


def style_success(message: str) -> str:
    return click.style(f"✓ {message}", fg="green")


def style_error(message: str) -> str:
    return click.style(f"✗ {message}", fg="red")


def style_warning(message: str) -> str:
    return click.style(f"Warning: {message}", fg="yellow", bold=True)


def style_dim(message: str) -> str:
    return click.style(message, dim=True)


def style_default() -> str:
    """Marker appended to values that come from built-in defaults."""
    return style_dim(" (default)")


def style_field(name: str, value: object, *, level: int = 1, default: bool = False) -> str:
    """One "name: value" line of config output, indented by level.

    None renders as a dim "(not set)".
    """
    shown = style_dim("(not set)") if value is None else str(value)
    return f"{INDENT * level}{name}: {shown}" + (style_default() if default else "")


def format_error_list(title: str, errors: Iterable[str]) -> str:
    """Red title followed by one "  - error" line per problem."""
    return "\n".join([style_error(title), *(f"{INDENT}- {error}" for error in errors)])
