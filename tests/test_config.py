"""Tests for shell_guard.core -- configuration, policy documents and errors."""
from __future__ import annotations

import pydantic
import pytest

from shell_guard.core.config import (
    DEFAULT_POLICY,
    DEFAULT_POLICY_DOCUMENT,
    GuardSettings,
    is_regex_pattern,
    policy_from_mapping,
)
from shell_guard.core.errors import (
    CommandDenied,
    InvalidCommandInput,
    InvalidPatternRule,
    InvalidPolicy,
    PolicyError,
    ShellGuardError,
)
from shell_guard.core.types import (
    AllowList,
    BlockLocation,
    DenialKind,
    DenyList,
    LiteralDenyRule,
    PatternDenyRule,
    PatternScope,
    PolicyConfig,
    ScopedAllowRule,
    SimpleAllowRule,
    Unrestricted,
    Verdict,
)

# ===================================================================
# Test: GuardSettings
# ===================================================================


class TestGuardSettings:
    def test_defaults(self) -> None:
        settings = GuardSettings()
        assert settings.max_substitution_depth == 32
        assert settings.pattern_scope is PatternScope.BASE_COMMAND
        assert settings.pattern_timeout_ms == 100.0
        assert settings.prefer_re2 is True
        assert settings.exec_introducers == frozenset({"xargs", "find"})
        assert settings.check_redirection is True

    @pytest.mark.parametrize("depth", [0, 257])
    def test_depth_bounds(self, depth: int) -> None:
        with pytest.raises(pydantic.ValidationError):
            GuardSettings(max_substitution_depth=depth)

    def test_strict(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            GuardSettings(max_substitution_depth="8")  # type: ignore[arg-type]

    def test_frozen(self) -> None:
        settings = GuardSettings()
        with pytest.raises(pydantic.ValidationError):
            settings.check_redirection = False  # type: ignore[misc]


# ===================================================================
# Test: policy_from_mapping
# ===================================================================


class TestPolicyFromMapping:
    def test_string_entries(self) -> None:
        policy = policy_from_mapping(
            {"allowCommands": ["ls", "cat"], "denyCommands": ["rm"]}
        )
        assert policy.allow_rules == (
            SimpleAllowRule(name="ls"),
            SimpleAllowRule(name="cat"),
        )
        assert policy.deny_rules == (LiteralDenyRule(name="rm"),)

    def test_object_entries(self) -> None:
        policy = policy_from_mapping(
            {
                "allowCommands": [
                    {"command": "git", "subCommands": ["status", "log"]},
                    {"command": "npm", "denySubCommands": ["install"]},
                    {"command": "make"},
                ],
                "denyCommands": [{"command": "rm", "message": "use trash"}],
            }
        )
        git, npm, make = policy.allow_rules
        assert git == ScopedAllowRule(
            name="git", subcommands=AllowList(names=frozenset({"status", "log"}))
        )
        assert npm == ScopedAllowRule(
            name="npm", subcommands=DenyList(names=frozenset({"install"}))
        )
        assert make == ScopedAllowRule(name="make", subcommands=Unrestricted())
        assert policy.deny_rules == (LiteralDenyRule(name="rm", message="use trash"),)

    def test_both_subcommand_lists(self) -> None:
        policy = policy_from_mapping(
            {
                "allowCommands": [
                    {
                        "command": "git",
                        "subCommands": ["status", "push"],
                        "denySubCommands": ["push"],
                    }
                ]
            }
        )
        (rule,) = policy.allow_rules
        assert rule.subcommands == AllowList(names=frozenset({"status"}))

    def test_regex_entry(self) -> None:
        policy = policy_from_mapping(
            {"denyCommands": ["regex:^sudo", {"command": "regex:.*su$", "message": "m"}]}
        )
        assert policy.deny_rules == (
            PatternDenyRule(pattern="^sudo"),
            PatternDenyRule(pattern=".*su$", message="m"),
        )

    def test_default_error_message(self) -> None:
        policy = policy_from_mapping({"defaultErrorMessage": "blocked"})
        assert policy.default_error_message == "blocked"
        assert policy_from_mapping({}).default_error_message == (
            PolicyConfig().default_error_message
        )

    def test_unknown_keys_ignored(self) -> None:
        policy = policy_from_mapping(
            {"allowCommands": ["ls"], "allowedDirectories": ["/tmp"], "mergeMode": "merge"}
        )
        assert len(policy.allow_rules) == 1

    def test_invalid_regex(self) -> None:
        with pytest.raises(InvalidPatternRule) as exc_info:
            policy_from_mapping({"denyCommands": ["regex:(["]})
        assert exc_info.value.details["index"] == 0
        assert exc_info.value.details["pattern"] == "(["

    @pytest.mark.parametrize(
        "document",
        [
            {"allowCommands": [42]},
            {"allowCommands": [{"name": "ls"}]},
            {"allowCommands": [{"command": ""}]},
            {"allowCommands": "ls"},
            {"denyCommands": [{"message": "no command"}]},
            {"denyCommands": [""]},
            {"allowCommands": [{"command": "git", "subCommands": 5}]},
        ],
    )
    def test_malformed_documents(self, document: dict) -> None:
        with pytest.raises(InvalidPolicy):
            policy_from_mapping(document)

    def test_not_a_mapping(self) -> None:
        with pytest.raises(InvalidPolicy):
            policy_from_mapping(["ls"])  # type: ignore[arg-type]

    def test_is_regex_pattern(self) -> None:
        assert is_regex_pattern("regex:.*")
        assert not is_regex_pattern("rm")


class TestDefaultPolicy:
    def test_built_from_document(self) -> None:
        assert DEFAULT_POLICY == policy_from_mapping(DEFAULT_POLICY_DOCUMENT)

    def test_contents(self) -> None:
        names = {rule.name for rule in DEFAULT_POLICY.allow_rules}
        assert {"ls", "cat", "git", "npm"} <= names
        assert any(isinstance(r, PatternDenyRule) for r in DEFAULT_POLICY.deny_rules)

    def test_policy_is_immutable(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            DEFAULT_POLICY.default_error_message = "x"  # type: ignore[misc]


# ===================================================================
# Test: rule models
# ===================================================================


class TestRuleModels:
    def test_pattern_rule_must_compile(self) -> None:
        with pytest.raises(pydantic.ValidationError):
            PatternDenyRule(pattern="([")

    def test_rule_labels(self) -> None:
        assert LiteralDenyRule(name="rm").label == "rm"
        assert PatternDenyRule(pattern="sudo").label == "regex:sudo"

    def test_policy_from_dict_with_discriminators(self) -> None:
        policy = PolicyConfig.model_validate(
            {
                "allow_rules": [
                    {"kind": "simple", "name": "ls"},
                    {
                        "kind": "scoped",
                        "name": "git",
                        "subcommands": {"mode": "allow", "names": ["status"]},
                    },
                ],
                "deny_rules": [{"kind": "pattern", "pattern": "sudo"}],
            }
        )
        assert isinstance(policy.allow_rules[1], ScopedAllowRule)
        assert isinstance(policy.deny_rules[0], PatternDenyRule)

    def test_verdict_log_fields(self) -> None:
        verdict = Verdict.denied(
            "xargs rm",
            "xargs",
            "use trash",
            location=BlockLocation.BLACKLISTED_COMMAND_IN_EXEC,
            kind=DenialKind.NESTED_COMMAND_DENIED,
            matched_rule=LiteralDenyRule(name="rm", message="use trash"),
            nested_command="rm",
        )
        assert verdict.log_fields() == {
            "command": "xargs rm",
            "base_command": "xargs",
            "message": "use trash",
            "is_valid": False,
            "location": "exec_introducer:blacklisted_command_in_exec",
            "kind": "nested_command_denied",
            "deny_rule": "rm",
            "deny_message": "use trash",
            "nested_command": "rm",
        }

    def test_allowed_verdict_log_fields(self) -> None:
        fields = Verdict.allowed("ls", "ls", "ok").log_fields()
        assert fields == {
            "command": "ls",
            "base_command": "ls",
            "message": "ok",
            "is_valid": True,
        }


# ===================================================================
# Test: error hierarchy
# ===================================================================


class TestErrors:
    def test_class_defaults(self) -> None:
        exc = InvalidPolicy()
        assert exc.code == "SG-E100"
        assert exc.message == "Policy definition is invalid"
        assert str(exc) == exc.message
        assert isinstance(exc, PolicyError)
        assert isinstance(exc, ShellGuardError)

    def test_to_dict(self) -> None:
        exc = InvalidPatternRule("bad pattern", details={"pattern": "(["})
        assert exc.to_dict() == {
            "error": {
                "code": "SG-E101",
                "message": "bad pattern",
                "detail": {"pattern": "(["},
                "resolution": InvalidPatternRule.resolution,
            }
        }

    def test_resolution_override(self) -> None:
        exc = CommandDenied("no", resolution="ask an admin")
        assert exc.to_dict()["error"]["resolution"] == "ask an admin"

    def test_input_error_is_type_error(self) -> None:
        assert issubclass(InvalidCommandInput, TypeError)

    def test_repr(self) -> None:
        assert repr(InvalidPolicy("x")) == "InvalidPolicy(code='SG-E100', message='x')"
