"""Conformance tests -- externally observable guarantees of the validator.

Each class pins one guarantee a caller may rely on: deny rules are
authoritative, allow rules are the only way in, every command a string
would run is checked, and verdicts are deterministic.
"""
from __future__ import annotations

import pytest

from shell_guard.core.types import (
    BlockLocation,
    DenialKind,
    LiteralDenyRule,
    PolicyConfig,
    SimpleAllowRule,
)
from shell_guard.parsing import extract_commands
from shell_guard.validator import CommandValidator

# ===================================================================
# Deny rules
# ===================================================================

class TestDenyRules:
    """A base command matching a literal deny rule MUST be refused."""

    def test_MUST_deny_literal_base_command(
        self, validator: CommandValidator, rm_denied_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("rm -rf /", rm_denied_policy)
        assert verdict.is_valid is False
        assert verdict.message == "use trash"
        assert verdict.block_reason is not None
        assert verdict.block_reason.matched_rule == LiteralDenyRule(
            name="rm", message="use trash"
        )

    def test_MUST_deny_even_when_allowlisted(self, validator: CommandValidator) -> None:
        policy = PolicyConfig(
            allow_rules=(SimpleAllowRule(name="rm"),),
            deny_rules=(LiteralDenyRule(name="rm"),),
        )
        assert validator.validate("rm x", policy).is_valid is False

    @pytest.mark.parametrize(
        "command",
        [
            "ls; rm -rf /",
            "ls && rm -rf /",
            "ls || rm -rf /",
            "ls | rm -rf /",
            "ls & rm -rf /",
            "(rm -rf /)",
            "{ rm -rf /; }",
            "ls $(rm -rf /)",
            "ls `rm -rf /`",
            'ls "$(rm -rf /)"',
            "ls\nrm -rf /",
        ],
    )
    def test_MUST_deny_in_every_position(
        self,
        validator: CommandValidator,
        rm_denied_policy: PolicyConfig,
        command: str,
    ) -> None:
        verdict = validator.validate(command, rm_denied_policy)
        assert verdict.is_valid is False
        assert verdict.base_command == "rm"


# ===================================================================
# Allow rules
# ===================================================================

class TestAllowRules:
    """Only allowlisted base commands may pass."""

    def test_MUST_allow_simple_rule_with_any_arguments(
        self, validator: CommandValidator, ls_policy: PolicyConfig
    ) -> None:
        assert validator.validate("ls -la", ls_policy).is_valid
        assert validator.validate("ls -R /var/log", ls_policy).is_valid

    def test_MUST_deny_unlisted_command(
        self, validator: CommandValidator, ls_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("cat /etc/passwd", ls_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.kind is DenialKind.NOT_IN_ALLOWLIST
        assert verdict.message.endswith(": cat")

    def test_MUST_enforce_subcommand_allowlist(
        self, validator: CommandValidator, git_policy: PolicyConfig
    ) -> None:
        assert validator.validate("git status", git_policy).is_valid
        verdict = validator.validate("git push", git_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.kind is DenialKind.SUBCOMMAND_NOT_IN_ALLOWLIST

    def test_MUST_deny_empty_input(
        self, validator: CommandValidator, ls_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("", ls_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.kind is DenialKind.EMPTY_COMMAND


# ===================================================================
# Exec introducers
# ===================================================================

class TestExecIntroducers:
    """Programs launched through xargs or find -exec MUST be checked."""

    def test_MUST_deny_xargs_payload(
        self, validator: CommandValidator, exec_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("xargs rm", exec_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.nested_command == "rm"
        assert verdict.block_reason.location is BlockLocation.BLACKLISTED_COMMAND_IN_EXEC

    def test_MUST_deny_find_exec_payload(
        self, validator: CommandValidator, exec_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("find . -exec rm {} \\;", exec_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.nested_command == "rm"

    def test_MUST_allow_allowlisted_payload(
        self, validator: CommandValidator, exec_policy: PolicyConfig
    ) -> None:
        assert validator.validate("find . -type f | xargs ls -l", exec_policy).is_valid

    @pytest.mark.parametrize(
        "command",
        ["ls | xargs xargs rm", "ls | xargs find . -exec rm {} \\;"],
    )
    def test_MUST_deny_payload_of_chained_introducers(
        self, validator: CommandValidator, exec_policy: PolicyConfig, command: str
    ) -> None:
        verdict = validator.validate(command, exec_policy)
        assert verdict.is_valid is False
        assert verdict.base_command == "xargs"
        assert verdict.block_reason.nested_command == "rm"

    def test_MUST_check_every_find_exec_clause(
        self, validator: CommandValidator, exec_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("find . -exec ls {} \\; -exec rm {} \\;", exec_policy)
        assert verdict.is_valid is False
        assert verdict.block_reason.nested_command == "rm"


# ===================================================================
# Redirection
# ===================================================================

class TestRedirection:
    """Unquoted output redirection MUST be refused; quoted text is data."""

    def test_MUST_allow_quoted_operator(
        self, validator: CommandValidator, echo_policy: PolicyConfig
    ) -> None:
        assert validator.validate('echo "a > b"', echo_policy).is_valid

    def test_MUST_deny_overwrite(
        self, validator: CommandValidator, echo_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("ls > out.txt", echo_policy)
        assert verdict.is_valid is False
        assert "overwrite" in verdict.message

    def test_MUST_deny_append(
        self, validator: CommandValidator, echo_policy: PolicyConfig
    ) -> None:
        verdict = validator.validate("echo x >> out.txt", echo_policy)
        assert verdict.is_valid is False
        assert "append" in verdict.message


# ===================================================================
# Extraction and determinism
# ===================================================================

class TestExtraction:
    def test_MUST_split_on_separators(self) -> None:
        assert extract_commands("a; b; c") == ["a", "b", "c"]

    def test_MUST_keep_quoted_separators(self) -> None:
        assert extract_commands('echo "a;b"') == ['echo "a;b"']


class TestDeterminism:
    @pytest.mark.parametrize(
        "command", ["ls -la", "rm -rf /", "ls; cat x", "", "ls > x", "ls $(ls)"]
    )
    def test_MUST_be_idempotent(
        self,
        validator: CommandValidator,
        rm_denied_policy: PolicyConfig,
        command: str,
    ) -> None:
        first = validator.validate(command, rm_denied_policy)
        second = validator.validate(command, rm_denied_policy)
        assert first == second

    def test_MUST_not_depend_on_validator_instance(
        self, rm_denied_policy: PolicyConfig
    ) -> None:
        command = "ls && rm -rf /"
        assert CommandValidator().validate(
            command, rm_denied_policy
        ) == CommandValidator().validate(command, rm_denied_policy)
