"""Exec-introducer handling -- commands that launch other commands.

``xargs rm`` and ``find . -exec rm {} \\;`` run ``rm`` although their base
command is ``xargs``/``find``.  The handler extracts every nested command,
runs each through the deny and allow checks, and descends again when a
nested program is itself an introducer (``xargs xargs rm``,
``xargs find . -exec rm {} \\;``).  A failure is reported against the
*outer* command.
"""
from __future__ import annotations

import re
from collections import deque
from collections.abc import Iterable

from shell_guard.core.config import DEFAULT_EXEC_INTRODUCERS
from shell_guard.core.types import (
    BlockLocation,
    DenialKind,
    PolicyConfig,
    Verdict,
)
from shell_guard.parsing.tokenizer import DEFAULT_MAX_DEPTH, base_command_of
from shell_guard.policy.matcher import PolicyMatcher

# -exec/-execdir (and the interactive -ok/-okdir) name a program to run.
_FIND_EXEC_RE = re.compile(r"\s-(?:exec|execdir|ok|okdir)\s+([^\s;\\]+)")

NESTING_TOO_DEEP_MESSAGE = "Exec introducers are nested too deeply to be validated."


def extract_from_xargs(command: str) -> list[str]:
    """Return the command ``xargs`` would run: everything after the ``xargs`` token."""
    parts = command.split()
    try:
        index = parts.index("xargs")
    except ValueError:
        return []
    rest = parts[index + 1:]
    return [" ".join(rest)] if rest else []


def extract_from_find_exec(command: str) -> list[str]:
    """Return one command per ``-exec``/``-execdir``/``-ok``/``-okdir`` clause.

    Each clause runs from its program up to the start of the next clause.
    """
    matches = list(_FIND_EXEC_RE.finditer(command))
    clauses = []
    for i, match in enumerate(matches):
        end = matches[i + 1].start() if i + 1 < len(matches) else len(command)
        clauses.append(command[match.start(1):end].strip())
    return clauses


def extract_nested_commands(base_command: str, command: str) -> list[str]:
    """Return the commands *command* would launch, in order."""
    if base_command == "xargs":
        return extract_from_xargs(command)
    if base_command == "find":
        return extract_from_find_exec(command)
    return []


class ExecIntroducerHandler:
    """Validates the programs launched by an exec-introducing command.

    Parameters
    ----------
    matcher:
        The :class:`PolicyMatcher` used for the nested deny/allow checks.
    introducers:
        Base commands treated as exec introducers.  Names without an
        extraction routine are accepted but never yield a nested command.
    max_depth:
        Maximum chain of introducers launching introducers that is
        followed.  Deeper chains are refused.
    """

    def __init__(
        self,
        matcher: PolicyMatcher,
        introducers: Iterable[str] = DEFAULT_EXEC_INTRODUCERS,
        *,
        max_depth: int = DEFAULT_MAX_DEPTH,
    ) -> None:
        self._matcher = matcher
        self._introducers = frozenset(introducers)
        self._max_depth = max_depth

    @property
    def introducers(self) -> frozenset[str]:
        return self._introducers

    def is_introducer(self, base_command: str) -> bool:
        return base_command in self._introducers

    def check(
        self,
        command: str,
        base_command: str,
        policy: PolicyConfig,
    ) -> Verdict | None:
        """Return a denial for any program *command* launches, or ``None``.

        ``None`` means either there is no nested program or every nested
        program passed both the deny and the allow check.
        """
        if not self.is_introducer(base_command):
            return None

        pending = deque(
            (text, 1) for text in extract_nested_commands(base_command, command)
        )
        while pending:
            text, depth = pending.popleft()
            nested = base_command_of(text)
            if not nested:
                continue

            denial = self._check_program(command, base_command, text, policy)
            if denial is not None:
                return denial

            if self.is_introducer(nested):
                inner = extract_nested_commands(nested, text)
                if inner and depth >= self._max_depth:
                    return Verdict.denied(
                        command,
                        base_command,
                        NESTING_TOO_DEEP_MESSAGE,
                        location=BlockLocation.EXEC_NESTING_DEPTH,
                        kind=DenialKind.SUBSTITUTION_TOO_DEEP,
                        nested_command=nested,
                    )
                pending.extend((t, depth + 1) for t in inner)
        return None

    def _check_program(
        self,
        command: str,
        base_command: str,
        text: str,
        policy: PolicyConfig,
    ) -> Verdict | None:
        nested = base_command_of(text)
        rule = self._matcher.match_deny(text, policy.deny_rules)
        if rule is not None:
            return Verdict.denied(
                command,
                base_command,
                self._matcher.deny_message(rule, policy),
                location=BlockLocation.BLACKLISTED_COMMAND_IN_EXEC,
                kind=DenialKind.NESTED_COMMAND_DENIED,
                matched_rule=rule,
                nested_command=nested,
            )

        if self._matcher.match_allow(nested, policy.allow_rules) is None:
            return Verdict.denied(
                command,
                base_command,
                f"{policy.default_error_message}: {nested} (in {base_command})",
                location=BlockLocation.COMMAND_IN_EXEC_NOT_IN_ALLOWLIST,
                kind=DenialKind.NESTED_COMMAND_NOT_IN_ALLOWLIST,
                nested_command=nested,
            )
        return None
