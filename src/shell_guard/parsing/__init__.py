"""shell-guard command parsing.

* **CommandExtractor** -- splits a command string into the individual
  commands the shell would run, resolving ``$(...)`` and backtick
  substitutions depth-first.
* **find_redirection** / **check_redirection** -- detect unquoted output
  redirection (``>`` and ``>>``).
"""
from __future__ import annotations

from shell_guard.parsing.redirection import (
    Redirection,
    check_redirection,
    find_redirection,
)
from shell_guard.parsing.tokenizer import (
    CommandExtractor,
    Extraction,
    base_command_of,
    extract_commands,
    subcommand_of,
)

__all__ = [
    "CommandExtractor",
    "Extraction",
    "Redirection",
    "base_command_of",
    "check_redirection",
    "extract_commands",
    "find_redirection",
    "subcommand_of",
]
