"""shell-guard validation orchestrator.

Evaluates a raw shell command string against a :class:`PolicyConfig` and
returns a single :class:`Verdict`.

Pipeline
--------

1. **Redirection (whole string)** -- an unquoted ``>``/``>>`` anywhere
   refuses the entire input, even in a branch that would never run.
2. **Extraction** -- split into the commands the shell would run,
   substitution contents first.  Blank input is refused as empty; input
   nested deeper than ``max_substitution_depth`` is refused outright.
3. **Per command**, in extraction order:

   a. redirection check,
   b. deny rules (literal, then pattern, in policy order),
   c. exec introducers (``xargs``, ``find -exec``),
   d. allow rules and the subcommand policy.

   The first failure becomes the verdict for the whole input.
4. **Valid** -- every command passed.

Usage
-----
::

    from shell_guard import DEFAULT_POLICY, validate

    verdict = validate("git status && ls -la", DEFAULT_POLICY)
    if not verdict.is_valid:
        print(verdict.message)
"""
from __future__ import annotations

import logging
from typing import Any

from shell_guard.core.config import GuardSettings
from shell_guard.core.errors import InvalidCommandInput
from shell_guard.core.types import (
    BlockLocation,
    DenialKind,
    PatternDenyRule,
    PolicyConfig,
    Verdict,
)
from shell_guard.parsing.redirection import check_redirection
from shell_guard.parsing.tokenizer import (
    CommandExtractor,
    base_command_of,
    subcommand_of,
)
from shell_guard.policy.exec_introducers import ExecIntroducerHandler
from shell_guard.policy.matcher import PolicyMatcher
from shell_guard.policy.pattern_engine import PatternEngine

logger = logging.getLogger(__name__)

EMPTY_COMMAND_MESSAGE = "empty command"
ALL_ALLOWED_MESSAGE = "all commands are allowed"
SUBSTITUTION_TOO_DEEP_MESSAGE = (
    "Command substitutions are nested too deeply to be validated."
)


class CommandValidator:
    """Runs the validation pipeline with one set of :class:`GuardSettings`.

    Holds no policy of its own; the policy is an argument of every call,
    so a single validator serves any number of policies and threads.

    Parameters
    ----------
    settings:
        Engine settings.  Defaults to ``GuardSettings()``.
    """

    def __init__(self, settings: GuardSettings | None = None) -> None:
        self._settings = settings or GuardSettings()
        self._extractor = CommandExtractor(
            max_depth=self._settings.max_substitution_depth,
        )
        self._matcher = PolicyMatcher(
            PatternEngine(
                timeout_ms=self._settings.pattern_timeout_ms,
                prefer_re2=self._settings.prefer_re2,
            ),
            pattern_scope=self._settings.pattern_scope,
        )
        self._exec_handler = ExecIntroducerHandler(
            self._matcher,
            self._settings.exec_introducers,
            max_depth=self._settings.max_substitution_depth,
        )

    @property
    def settings(self) -> GuardSettings:
        return self._settings

    # -- public API ---------------------------------------------------------

    def validate(self, command: Any, policy: PolicyConfig) -> Verdict:
        """Validate a full command string.

        Parameters
        ----------
        command:
            Raw shell command text.
        policy:
            The policy to evaluate against.

        Returns
        -------
        Verdict
            Valid only if every extracted command passes.

        Raises
        ------
        InvalidCommandInput
            If *command* is not a ``str``.
        """
        _require_str(command)

        if self._settings.check_redirection:
            message = check_redirection(command)
            if message is not None:
                return self._deny(Verdict.denied(
                    command,
                    base_command_of(command),
                    message,
                    location=BlockLocation.REDIRECTION,
                    kind=DenialKind.OUTPUT_REDIRECTION_DETECTED,
                ))

        extraction = self._extractor.scan(command)
        if not extraction.commands:
            return self._deny(Verdict.denied(
                command,
                "",
                EMPTY_COMMAND_MESSAGE,
                location=BlockLocation.EMPTY_COMMAND,
                kind=DenialKind.EMPTY_COMMAND,
            ))
        if extraction.truncated:
            return self._deny(Verdict.denied(
                command,
                base_command_of(extraction.commands[0]),
                SUBSTITUTION_TOO_DEEP_MESSAGE,
                location=BlockLocation.SUBSTITUTION_DEPTH,
                kind=DenialKind.SUBSTITUTION_TOO_DEEP,
            ))

        for extracted in extraction.commands:
            verdict = self._check(extracted, policy)
            if not verdict.is_valid:
                return self._deny(verdict)

        return Verdict.allowed(
            command,
            base_command_of(extraction.commands[0]),
            ALL_ALLOWED_MESSAGE,
        )

    def validate_command(self, command: Any, policy: PolicyConfig) -> Verdict:
        """Validate one already-extracted command (no splitting).

        Raises
        ------
        InvalidCommandInput
            If *command* is not a ``str``.
        """
        _require_str(command)
        verdict = self._check(command.strip(), policy)
        if not verdict.is_valid:
            self._deny(verdict)
        return verdict

    # -- internals ----------------------------------------------------------

    def _check(self, command: str, policy: PolicyConfig) -> Verdict:
        base = base_command_of(command)
        if not base:
            return Verdict.denied(
                command,
                "",
                EMPTY_COMMAND_MESSAGE,
                location=BlockLocation.EMPTY_COMMAND,
                kind=DenialKind.EMPTY_COMMAND,
            )

        if self._settings.check_redirection:
            message = check_redirection(command)
            if message is not None:
                return Verdict.denied(
                    command,
                    base,
                    message,
                    location=BlockLocation.COMMAND_REDIRECTION,
                    kind=DenialKind.OUTPUT_REDIRECTION_DETECTED,
                )

        rule = self._matcher.match_deny(command, policy.deny_rules)
        if rule is not None:
            location = (
                BlockLocation.PATTERN_MATCH
                if isinstance(rule, PatternDenyRule)
                else BlockLocation.BLACKLISTED_BASE_COMMAND
            )
            return Verdict.denied(
                command,
                base,
                self._matcher.deny_message(rule, policy),
                location=location,
                kind=self._matcher.deny_kind(rule),
                matched_rule=rule,
            )

        nested = self._exec_handler.check(command, base, policy)
        if nested is not None:
            return nested

        allow = self._matcher.match_allow(base, policy.allow_rules)
        if allow is None:
            return Verdict.denied(
                command,
                base,
                f"{policy.default_error_message}: {base}",
                location=BlockLocation.COMMAND_NOT_IN_ALLOWLIST,
                kind=DenialKind.NOT_IN_ALLOWLIST,
            )

        subcommand = subcommand_of(command)
        denial = self._matcher.check_subcommand(allow, subcommand)
        if denial is not None:
            location = (
                BlockLocation.DENIED_SUBCOMMAND
                if denial is DenialKind.SUBCOMMAND_DENIED
                else BlockLocation.SUBCOMMAND_NOT_IN_ALLOWLIST
            )
            return Verdict.denied(
                command,
                base,
                f"{policy.default_error_message}: {base} {subcommand}",
                location=location,
                kind=denial,
            )

        return Verdict.allowed(command, base, "allowed command")

    @staticmethod
    def _deny(verdict: Verdict) -> Verdict:
        reason = verdict.block_reason
        if reason is not None:
            logger.info(
                "command denied: %r (location=%s, kind=%s)",
                verdict.command,
                reason.location,
                reason.kind,
            )
        return verdict


def _require_str(command: Any) -> None:
    if not isinstance(command, str):
        raise InvalidCommandInput(
            f"Command must be a string, got {type(command).__name__}",
            details={"type": type(command).__name__},
        )


_DEFAULT_VALIDATOR = CommandValidator()


def validate(
    command: str,
    policy: PolicyConfig,
    *,
    settings: GuardSettings | None = None,
) -> Verdict:
    """Validate *command* against *policy*.

    Convenience wrapper around :meth:`CommandValidator.validate`.  Without
    *settings* the module-level default validator is used.
    """
    if settings is None:
        return _DEFAULT_VALIDATOR.validate(command, policy)
    return CommandValidator(settings).validate(command, policy)
