"""Terminal UI helpers for dbcompare."""

from __future__ import annotations

import questionary

from dbcompare.cli.common.tui_style import QUESTIONARY_STYLE_SELECT


def select_key_columns(columns: list[str]) -> list[int]:
    """Display a checkbox prompt to pick the key columns of a result.

    Args:
        columns: Column names of the source result.

    Returns:
        Positions of the picked columns in column order, or an empty list
        (rows are then matched by position).
    """
    choices = [questionary.Choice(title=name, value=i) for i, name in enumerate(columns)]
    picked = (
        questionary.checkbox(
            "Select key columns:",
            choices=choices,
            style=QUESTIONARY_STYLE_SELECT,
        ).ask()
        or []
    )
    return sorted(picked)
