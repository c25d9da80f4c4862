"""Output-redirection guard.

Refuses commands that would write process output to a file through an
unquoted ``>`` or ``>>``.  A ``>`` counts as redirection only when it
starts a word (preceded by whitespace or at the very start of the text),
so ``-name=file>1`` or ``"a > b"`` are ordinary arguments.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class Redirection:
    """An output-redirection operator found in a command."""

    operator: str
    position: int

    @property
    def mode(self) -> str:
        """``"append"`` for ``>>``, ``"overwrite"`` for ``>``."""
        return "append" if self.operator == ">>" else "overwrite"

    def describe(self) -> str:
        return (
            "Output redirection is not allowed. "
            f"{self.mode} redirection operator ({self.operator}) detected."
        )


def find_redirection(text: str) -> Redirection | None:
    """Return the first unquoted output redirection in *text*, if any."""
    quote: str | None = None
    i = 0
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and quote != "'":
            i += 2
            continue
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == ">":
            at_word_start = i == 0 or text[i - 1].isspace()
            operator = ">>" if text[i + 1:i + 2] == ">" else ">"
            if at_word_start:
                return Redirection(operator=operator, position=i)
            i += len(operator)
            continue
        i += 1
    return None


def check_redirection(text: str) -> str | None:
    """Return a denial message if *text* redirects output, else ``None``."""
    found = find_redirection(text)
    return found.describe() if found is not None else None
