"""Interactive prompts used by the save, rename and delete flows."""

from collections.abc import Sequence

import click


class ClickPrompter:
    """Text, confirm and pick-one prompts on the terminal.

    Every prompt returns None when the user cancels (empty answer or Ctrl-C).
    """

    def ask_text(self, prompt: str, placeholder: str = "", initial: str | None = None) -> str | None:
        label = f"{prompt} ({placeholder})" if placeholder and initial is None else prompt
        try:
            value = click.prompt(label, default=initial or "", show_default=initial is not None)
        except click.Abort:
            return None
        value = value.strip()
        return value or None

    def confirm(self, message: str) -> bool:
        try:
            return click.confirm(message, default=False)
        except click.Abort:
            return False

    def pick_one(self, items: Sequence[str], label: str = "Select") -> int | None:
        """Index of the chosen item, or None."""
        if not items:
            return None
        for i, item in enumerate(items, start=1):
            click.echo(f"  {i}) {item}")
        try:
            choice = click.prompt(label, type=click.IntRange(1, len(items)))
        except click.Abort:
            return None
        return choice - 1
