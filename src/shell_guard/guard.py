"""shell-guard policy holder.

:class:`ShellGuard` owns the *current* :class:`PolicyConfig` for a process
and lets an operator swap it at run time.  Each validation call reads the
policy reference exactly once, so it completes against one consistent
snapshot even while :meth:`ShellGuard.reload` runs concurrently.

Usage
-----
::

    from shell_guard import ShellGuard, policy_from_mapping

    guard = ShellGuard(policy_from_mapping(document))
    guard.check("git status")          # returns the Verdict
    guard.check("rm -rf /")            # raises CommandDenied
"""
from __future__ import annotations

import logging
import threading
from typing import Protocol, runtime_checkable

from shell_guard.core.config import DEFAULT_POLICY, GuardSettings
from shell_guard.core.errors import CommandDenied
from shell_guard.core.types import PolicyConfig, Verdict
from shell_guard.validator import CommandValidator

logger = logging.getLogger(__name__)


@runtime_checkable
class CommandPolicy(Protocol):
    """What an execution collaborator needs from a command policy."""

    def validate(self, command: str) -> Verdict:
        """Return the verdict for *command*."""
        ...

    def check(self, command: str) -> Verdict:
        """Return the verdict for *command*, raising if it is denied.

        Raises
        ------
        CommandDenied
            If the command is refused.
        """
        ...


class ShellGuard:
    """Validates commands against a swappable policy snapshot.

    Parameters
    ----------
    policy:
        Initial policy.  Defaults to :data:`DEFAULT_POLICY`.
    settings:
        Engine settings shared by every call.
    """

    def __init__(
        self,
        policy: PolicyConfig | None = None,
        settings: GuardSettings | None = None,
    ) -> None:
        self._policy = policy if policy is not None else DEFAULT_POLICY
        self._validator = CommandValidator(settings)
        self._lock = threading.Lock()

    @property
    def policy(self) -> PolicyConfig:
        """The policy snapshot new calls are evaluated against."""
        return self._policy

    @property
    def settings(self) -> GuardSettings:
        return self._validator.settings

    def reload(self, policy: PolicyConfig) -> PolicyConfig:
        """Publish *policy* for subsequent calls and return the previous one.

        Calls already in progress finish against the snapshot they started
        with.
        """
        if not isinstance(policy, PolicyConfig):
            msg = f"policy must be a PolicyConfig, got {type(policy).__name__}"
            raise TypeError(msg)
        with self._lock:
            previous = self._policy
            self._policy = policy
        logger.info(
            "shell policy reloaded (%d allow rules, %d deny rules)",
            len(policy.allow_rules),
            len(policy.deny_rules),
        )
        return previous

    def validate(self, command: str) -> Verdict:
        """Validate *command* against the current policy snapshot."""
        policy = self._policy
        return self._validator.validate(command, policy)

    def check(self, command: str) -> Verdict:
        """Like :meth:`validate` but raise :class:`CommandDenied` on refusal.

        Raises
        ------
        CommandDenied
            With ``details`` equal to :meth:`Verdict.log_fields`.
        InvalidCommandInput
            If *command* is not a ``str``.
        """
        verdict = self.validate(command)
        if not verdict.is_valid:
            raise CommandDenied(verdict.message, details=verdict.log_fields())
        return verdict
