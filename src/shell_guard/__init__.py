"""shell-guard -- policy validation for shell commands.

Decides whether a shell command string may be executed under an allow/deny
policy.  Every command the string would run is checked: commands joined by
``;``, ``&&``, ``||`` and pipes, the contents of ``$(...)`` and backtick
substitutions, and programs launched through ``xargs`` or ``find -exec``.

Packages
--------
* :mod:`shell_guard.parsing` -- command extraction and redirection detection
* :mod:`shell_guard.policy` -- rule matching and exec introducers
* :mod:`shell_guard.validator` -- the validation pipeline
* :mod:`shell_guard.guard` -- run-time policy holder
"""
from __future__ import annotations

__version__ = "0.1.0"

# ---------------------------------------------------------------------------
# Core types, errors, config
# ---------------------------------------------------------------------------
from shell_guard.core.config import (
    DEFAULT_POLICY,
    DEFAULT_POLICY_DOCUMENT,
    GuardSettings,
    policy_from_mapping,
)
from shell_guard.core.errors import (
    CommandDenied,
    DenialError,
    InputError,
    InvalidCommandInput,
    InvalidPatternRule,
    InvalidPolicy,
    PolicyError,
    ShellGuardError,
)
from shell_guard.core.types import (
    AllowList,
    BlockLocation,
    BlockReason,
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

# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------
from shell_guard.guard import CommandPolicy, ShellGuard
from shell_guard.parsing import CommandExtractor, check_redirection, extract_commands
from shell_guard.policy import ExecIntroducerHandler, PatternEngine, PolicyMatcher
from shell_guard.validator import CommandValidator, validate

__all__ = [
    "__version__",
    # Errors
    "ShellGuardError",
    "PolicyError",
    "InputError",
    "DenialError",
    "InvalidPolicy",
    "InvalidPatternRule",
    "InvalidCommandInput",
    "CommandDenied",
    # Types
    "DenialKind",
    "BlockLocation",
    "PatternScope",
    "LiteralDenyRule",
    "PatternDenyRule",
    "AllowList",
    "DenyList",
    "Unrestricted",
    "SimpleAllowRule",
    "ScopedAllowRule",
    "PolicyConfig",
    "BlockReason",
    "Verdict",
    # Config
    "GuardSettings",
    "policy_from_mapping",
    "DEFAULT_POLICY",
    "DEFAULT_POLICY_DOCUMENT",
    # Parsing
    "CommandExtractor",
    "extract_commands",
    "check_redirection",
    # Policy
    "PolicyMatcher",
    "PatternEngine",
    "ExecIntroducerHandler",
    # Orchestrator
    "CommandValidator",
    "validate",
    "ShellGuard",
    "CommandPolicy",
]
