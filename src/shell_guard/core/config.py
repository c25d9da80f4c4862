"""shell-guard configuration.

Two kinds of configuration live here:

* :class:`GuardSettings` -- engine tuning knobs (recursion limit, pattern
  scope, exec-introducer set).  Validated by Pydantic in strict mode.
* :func:`policy_from_mapping` -- turns the JSON-shaped policy document used
  by shell-tool deployments (``allowCommands`` / ``denyCommands`` /
  ``defaultErrorMessage``) into an immutable :class:`PolicyConfig`.
  Locating, reading and merging policy files is left to the caller.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from shell_guard.core.errors import InvalidPatternRule, InvalidPolicy
from shell_guard.core.types import (
    AllowList,
    DenyList,
    LiteralDenyRule,
    PatternDenyRule,
    PatternScope,
    PolicyConfig,
    ScopedAllowRule,
    SimpleAllowRule,
    Unrestricted,
)

REGEX_PREFIX = "regex:"

DEFAULT_EXEC_INTRODUCERS: frozenset[str] = frozenset({"xargs", "find"})


class GuardSettings(BaseModel):
    """Tuning knobs for the validation engine.

    All fields carry defaults so ``GuardSettings()`` is a complete,
    production-suitable configuration.
    """

    model_config = ConfigDict(strict=True, frozen=True)

    max_substitution_depth: int = Field(
        default=32,
        ge=1,
        le=256,
        description=(
            "Maximum nesting of $(...) / backtick substitutions resolved "
            "before the input is refused."
        ),
    )
    pattern_scope: PatternScope = Field(
        default=PatternScope.BASE_COMMAND,
        description="Text that regex deny rules are searched against.",
    )
    pattern_timeout_ms: float | None = Field(
        default=100.0,
        gt=0,
        description=(
            "Wall-clock limit for a single regex evaluation.  A timed-out "
            "evaluation counts as a match.  None disables the limit."
        ),
    )
    prefer_re2: bool = Field(
        default=True,
        description="Use google-re2 for pattern rules when it is installed.",
    )
    exec_introducers: frozenset[str] = Field(
        default=DEFAULT_EXEC_INTRODUCERS,
        description="Base commands whose arguments name another program to run.",
    )
    check_redirection: bool = Field(
        default=True,
        description="Refuse commands containing unquoted > or >> redirection.",
    )


# ---------------------------------------------------------------------------
# Policy document parsing
# ---------------------------------------------------------------------------


def is_regex_pattern(command: str) -> bool:
    """Return ``True`` if a deny entry uses the ``regex:`` prefix."""
    return command.startswith(REGEX_PREFIX)


def _deny_rule(entry: Any, index: int) -> LiteralDenyRule | PatternDenyRule:
    if isinstance(entry, str):
        name, message = entry, None
    elif isinstance(entry, Mapping) and isinstance(entry.get("command"), str):
        name, message = entry["command"], entry.get("message")
    else:
        raise InvalidPolicy(
            f"denyCommands[{index}] must be a string or an object with 'command'",
            details={"index": index, "entry": repr(entry)},
        )

    if is_regex_pattern(name):
        pattern = name[len(REGEX_PREFIX):]
        try:
            return PatternDenyRule(pattern=pattern, message=message)
        except ValidationError as exc:
            raise InvalidPatternRule(
                f"denyCommands[{index}] pattern does not compile: {pattern!r}",
                details={"index": index, "pattern": pattern, "errors": exc.errors()},
            ) from exc
    try:
        return LiteralDenyRule(name=name, message=message)
    except ValidationError as exc:
        raise InvalidPolicy(
            f"denyCommands[{index}] is invalid",
            details={"index": index, "errors": exc.errors()},
        ) from exc


def _allow_rule(entry: Any, index: int) -> SimpleAllowRule | ScopedAllowRule:
    if isinstance(entry, str):
        return SimpleAllowRule(name=entry)
    if not (isinstance(entry, Mapping) and isinstance(entry.get("command"), str)):
        raise InvalidPolicy(
            f"allowCommands[{index}] must be a string or an object with 'command'",
            details={"index": index, "entry": repr(entry)},
        )

    allowed = entry.get("subCommands")
    denied = entry.get("denySubCommands")
    try:
        if allowed is not None:
            # Deny entries win when both lists name the same subcommand.
            names = frozenset(allowed) - frozenset(denied or ())
            policy: AllowList | DenyList | Unrestricted = AllowList(names=names)
        elif denied is not None:
            policy = DenyList(names=frozenset(denied))
        else:
            policy = Unrestricted()
        return ScopedAllowRule(name=entry["command"], subcommands=policy)
    except (TypeError, ValidationError) as exc:
        raise InvalidPolicy(
            f"allowCommands[{index}] is invalid",
            details={"index": index, "entry": repr(entry)},
        ) from exc


def policy_from_mapping(data: Mapping[str, Any]) -> PolicyConfig:
    """Build a :class:`PolicyConfig` from a policy document.

    Accepted shape::

        {
            "allowCommands": ["ls", {"command": "git", "subCommands": ["status"]}],
            "denyCommands": ["rm", {"command": "regex:.*sudo.*", "message": "..."}],
            "defaultErrorMessage": "..."
        }

    Missing keys fall back to an empty rule list and the model default
    message.  Unknown keys (``allowedDirectories``, ``mergeMode``, ...)
    belong to other collaborators and are ignored.

    Raises
    ------
    InvalidPolicy
        If an entry has the wrong shape.
    InvalidPatternRule
        If a ``regex:`` deny entry does not compile.
    """
    if not isinstance(data, Mapping):
        raise InvalidPolicy("Policy document must be a mapping")

    allow = data.get("allowCommands") or []
    deny = data.get("denyCommands") or []
    if isinstance(allow, str | bytes) or isinstance(deny, str | bytes):
        raise InvalidPolicy("allowCommands and denyCommands must be lists")

    kwargs: dict[str, Any] = {
        "allow_rules": tuple(_allow_rule(e, i) for i, e in enumerate(allow)),
        "deny_rules": tuple(_deny_rule(e, i) for i, e in enumerate(deny)),
    }
    message = data.get("defaultErrorMessage")
    if message:
        kwargs["default_error_message"] = message
    try:
        return PolicyConfig(**kwargs)
    except ValidationError as exc:
        raise InvalidPolicy(
            "Policy document is invalid", details={"errors": exc.errors()}
        ) from exc


# ---------------------------------------------------------------------------
# Built-in default policy
# ---------------------------------------------------------------------------

DEFAULT_POLICY_DOCUMENT: dict[str, Any] = {
    "allowCommands": [
        # file inspection
        "ls", "dir", "cat", "more", "less", "head", "tail",
        # navigation
        "cd", "pwd", "mkdir",
        # search
        "grep", "which", "whereis",
        # file information
        "file", "stat", "wc",
        # misc
        "echo", "date", "cal",
        {
            "command": "git",
            "subCommands": [
                "status", "log", "diff", "grep", "show",
                "branch", "checkout", "fetch", "pull", "clone",
            ],
        },
        {
            "command": "npm",
            "denySubCommands": ["install", "uninstall", "update", "audit"],
        },
    ],
    "denyCommands": [
        {"command": "rm", "message": "rm is dangerous; move files to the trash instead."},
        {"command": "rmdir", "message": "rmdir is dangerous and cannot be used."},
        {"command": "del", "message": "del is dangerous and cannot be used."},
        {"command": "mkfs", "message": "mkfs formats disks and cannot be used."},
        {"command": "dd", "message": "dd performs low-level disk operations and cannot be used."},
        {"command": "chmod", "message": "chmod changes file permissions and cannot be used."},
        {"command": "chown", "message": "chown changes file ownership and cannot be used."},
        {"command": "regex:.*sudo.*", "message": "sudo escalates privileges and cannot be used."},
        {"command": "su", "message": "su switches users and cannot be used."},
        {"command": "exec", "message": "exec allows arbitrary code execution and cannot be used."},
        {"command": "eval", "message": "eval allows arbitrary code evaluation and cannot be used."},
        {"command": "write", "message": "write sends to other users' terminals and cannot be used."},
        {"command": "wall", "message": "wall broadcasts to all users and cannot be used."},
        {"command": "shutdown", "message": "shutdown stops the system and cannot be used."},
        {"command": "reboot", "message": "reboot restarts the system and cannot be used."},
        {"command": "init", "message": "init controls system initialisation and cannot be used."},
        {"command": "install", "message": "install is used to install programs and is not allowed."},
        {"command": "brew", "message": "brew manages packages and is not allowed."},
        {"command": "find", "message": "Use git grep instead of find."},
    ],
    "defaultErrorMessage": (
        "This command is not in the allowlist and cannot be executed. "
        "Contact your system administrator."
    ),
}

DEFAULT_POLICY: PolicyConfig = policy_from_mapping(DEFAULT_POLICY_DOCUMENT)
