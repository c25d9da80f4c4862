"""shell-guard shared domain types.

Every value type, enum and Pydantic model shared across the engine lives
here.

Key design decisions:
* Allow and deny rules are *tagged unions* (Pydantic discriminated unions
  on a ``kind`` field), so every match site dispatches over a closed set of
  variants instead of inspecting ``str`` vs ``dict`` at run time.
* All models are frozen: a :class:`PolicyConfig` is shared by reference
  between concurrent validation calls and must never change underneath
  them.
* Enums use *string* values so verdicts serialise cleanly to JSON.
"""
from __future__ import annotations

import enum
import re
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------

class DenialKind(enum.StrEnum):
    """Every way a command can be refused.

    This is the complete error taxonomy of the engine; none of these are
    raised as exceptions.
    """

    EMPTY_COMMAND = "empty_command"
    OUTPUT_REDIRECTION_DETECTED = "output_redirection_detected"
    DENIED_BY_LITERAL_RULE = "denied_by_literal_rule"
    DENIED_BY_PATTERN_RULE = "denied_by_pattern_rule"
    NOT_IN_ALLOWLIST = "not_in_allowlist"
    SUBCOMMAND_DENIED = "subcommand_denied"
    SUBCOMMAND_NOT_IN_ALLOWLIST = "subcommand_not_in_allowlist"
    NESTED_COMMAND_DENIED = "nested_command_denied"
    NESTED_COMMAND_NOT_IN_ALLOWLIST = "nested_command_not_in_allowlist"
    SUBSTITUTION_TOO_DEEP = "substitution_too_deep"


class BlockLocation(enum.StrEnum):
    """Which validation phase produced a denial (``<phase>:<reason>``)."""

    EMPTY_COMMAND = "validate:empty_command"
    REDIRECTION = "validate:redirection"
    COMMAND_REDIRECTION = "validate:command_redirection"
    SUBSTITUTION_DEPTH = "extract:substitution_depth_exceeded"
    BLACKLISTED_BASE_COMMAND = "deny_check:blacklisted_base_command"
    PATTERN_MATCH = "deny_check:pattern_match"
    BLACKLISTED_COMMAND_IN_EXEC = "exec_introducer:blacklisted_command_in_exec"
    COMMAND_IN_EXEC_NOT_IN_ALLOWLIST = "exec_introducer:command_in_exec_not_in_allowlist"
    EXEC_NESTING_DEPTH = "exec_introducer:nesting_depth_exceeded"
    COMMAND_NOT_IN_ALLOWLIST = "allow_check:command_not_in_allowlist"
    DENIED_SUBCOMMAND = "allow_check:denied_subcommand"
    SUBCOMMAND_NOT_IN_ALLOWLIST = "allow_check:subcommand_not_in_allowlist"


class PatternScope(enum.StrEnum):
    """What a :class:`PatternDenyRule` regular expression is searched against.

    * **BASE_COMMAND** -- only the first token of each extracted command.
    * **COMMAND_TEXT** -- the whole text of each extracted command,
      arguments included.
    """

    BASE_COMMAND = "base_command"
    COMMAND_TEXT = "command_text"


# ---------------------------------------------------------------------------
# Deny rules
# ---------------------------------------------------------------------------

class LiteralDenyRule(BaseModel):
    """Forbid a base command by exact name."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["literal"] = "literal"
    name: str = Field(min_length=1)
    message: str | None = None

    @property
    def label(self) -> str:
        return self.name


class PatternDenyRule(BaseModel):
    """Forbid any command matching a regular expression (``regex:`` in policy files)."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["pattern"] = "pattern"
    pattern: str = Field(min_length=1)
    message: str | None = None

    @field_validator("pattern")
    @classmethod
    def _pattern_compiles(cls, value: str) -> str:
        try:
            re.compile(value)
        except re.error as exc:
            msg = f"invalid regular expression {value!r}: {exc}"
            raise ValueError(msg) from exc
        return value

    @property
    def label(self) -> str:
        return f"regex:{self.pattern}"


DenyRule = Annotated[LiteralDenyRule | PatternDenyRule, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Allow rules and subcommand policies
# ---------------------------------------------------------------------------

class AllowList(BaseModel):
    """Closed subcommand policy: only the listed subcommands are permitted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal["allow"] = "allow"
    names: frozenset[str]


class DenyList(BaseModel):
    """Open subcommand policy: every subcommand except the listed ones."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal["deny"] = "deny"
    names: frozenset[str]


class Unrestricted(BaseModel):
    """Every subcommand is permitted."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    mode: Literal["unrestricted"] = "unrestricted"


SubcommandPolicy = Annotated[
    AllowList | DenyList | Unrestricted, Field(discriminator="mode")
]


class SimpleAllowRule(BaseModel):
    """Permit a base command with any arguments."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["simple"] = "simple"
    name: str = Field(min_length=1)


class ScopedAllowRule(BaseModel):
    """Permit a base command, restricted by a subcommand policy."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    kind: Literal["scoped"] = "scoped"
    name: str = Field(min_length=1)
    subcommands: SubcommandPolicy = Field(default_factory=Unrestricted)


AllowRule = Annotated[SimpleAllowRule | ScopedAllowRule, Field(discriminator="kind")]


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------

class PolicyConfig(BaseModel):
    """The complete allow/deny policy evaluated by the engine.

    Built once per process (or per reload) and passed by reference into
    every validation call.  Deny rules are always evaluated before allow
    rules; a command with no matching allow rule is denied.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    allow_rules: tuple[AllowRule, ...] = ()
    deny_rules: tuple[DenyRule, ...] = ()
    default_error_message: str = Field(
        default="This command is not in the allowlist and cannot be executed.",
        description="Message used when no rule carries a specific message.",
    )


# ---------------------------------------------------------------------------
# Verdict
# ---------------------------------------------------------------------------

class BlockReason(BaseModel):
    """Why a command was denied."""

    model_config = ConfigDict(frozen=True)

    location: BlockLocation
    kind: DenialKind
    matched_rule: DenyRule | None = None
    nested_command: str | None = Field(
        default=None,
        description="Program launched through xargs/find -exec that caused the denial.",
    )


class Verdict(BaseModel):
    """The allow/deny decision for one command string.

    ``command`` is the exact (sub-)command text that was evaluated, so a
    denial inside ``ls; rm -rf /`` reports ``rm -rf /``.
    """

    model_config = ConfigDict(frozen=True)

    is_valid: bool
    command: str
    base_command: str
    message: str
    block_reason: BlockReason | None = None

    @classmethod
    def allowed(cls, command: str, base_command: str, message: str) -> Verdict:
        return cls(
            is_valid=True,
            command=command,
            base_command=base_command,
            message=message,
        )

    @classmethod
    def denied(
        cls,
        command: str,
        base_command: str,
        message: str,
        *,
        location: BlockLocation,
        kind: DenialKind,
        matched_rule: LiteralDenyRule | PatternDenyRule | None = None,
        nested_command: str | None = None,
    ) -> Verdict:
        return cls(
            is_valid=False,
            command=command,
            base_command=base_command,
            message=message,
            block_reason=BlockReason(
                location=location,
                kind=kind,
                matched_rule=matched_rule,
                nested_command=nested_command,
            ),
        )

    def log_fields(self) -> dict[str, Any]:
        """Flatten the verdict for structured logging of denied attempts."""
        fields: dict[str, Any] = {
            "command": self.command,
            "base_command": self.base_command,
            "message": self.message,
            "is_valid": self.is_valid,
        }
        reason = self.block_reason
        if reason is not None:
            fields["location"] = str(reason.location)
            fields["kind"] = str(reason.kind)
            if reason.matched_rule is not None:
                fields["deny_rule"] = reason.matched_rule.label
                if reason.matched_rule.message:
                    fields["deny_message"] = reason.matched_rule.message
            if reason.nested_command is not None:
                fields["nested_command"] = reason.nested_command
        return fields
