"""shell-guard error-code hierarchy.

Policy *outcomes* (a command being denied) are never exceptions; they are
expressed as :class:`~shell_guard.core.types.Verdict` values.  The classes
below cover the remaining failure modes: broken policies, contract
violations by the caller, and the opt-in raising entry point
:meth:`~shell_guard.guard.ShellGuard.check`.

Hierarchy
---------
::

    ShellGuardError
    +-- PolicyError      (SG-E1xx)
    +-- InputError       (SG-E2xx)
    +-- DenialError      (SG-E3xx)

Usage
-----
Raise concrete subclasses directly::

    raise InvalidPatternRule(f"Pattern does not compile: {pattern!r}")

Catch by category::

    try:
        guard.check(command)
    except DenialError as exc:
        log.info("refused: %s", exc.details["location"])
"""
from __future__ import annotations

from typing import Any

# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------

class ShellGuardError(Exception):
    """Base exception for all shell-guard errors.

    Attributes
    ----------
    code : str
        Error code, e.g. ``"SG-E100"``.
    message : str
        Human-readable description.
    details : dict[str, Any]
        Machine-readable context specific to the error instance.
    resolution : str
        Suggested action for the caller.
    """

    code: str = "SG-E000"
    message: str = "Unknown shell-guard error"
    resolution: str = ""

    def __init__(
        self,
        message: str | None = None,
        *,
        details: dict[str, Any] | None = None,
        resolution: str | None = None,
    ) -> None:
        self.details: dict[str, Any] = details or {}
        if message is not None:
            self.message = message
        if resolution is not None:
            self.resolution = resolution
        super().__init__(self.message)

    def to_dict(self) -> dict[str, Any]:
        """Serialise the error to a JSON-friendly ``{"error": {...}}`` mapping."""
        payload: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            payload["detail"] = self.details
        if self.resolution:
            payload["resolution"] = self.resolution
        return {"error": payload}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"


# ===================================================================
# Category base classes
# ===================================================================

class PolicyError(ShellGuardError):
    """SG-E1xx -- The supplied policy is malformed."""

    code = "SG-E1XX"


class InputError(ShellGuardError):
    """SG-E2xx -- The caller violated the validation contract."""

    code = "SG-E2XX"


class DenialError(ShellGuardError):
    """SG-E3xx -- A command was refused by the policy."""

    code = "SG-E3XX"


# ===================================================================
# SG-E1xx  Policy errors
# ===================================================================

class InvalidPolicy(PolicyError):
    """SG-E100 -- A policy mapping could not be turned into a PolicyConfig."""

    code = "SG-E100"
    message = "Policy definition is invalid"
    resolution = (
        "Check allowCommands/denyCommands entries: each must be a command "
        "name or an object with a 'command' key."
    )


class InvalidPatternRule(PolicyError):
    """SG-E101 -- A ``regex:`` deny rule does not compile."""

    code = "SG-E101"
    message = "Deny rule pattern is not a valid regular expression"
    resolution = "Fix the regular expression after the 'regex:' prefix."


# ===================================================================
# SG-E2xx  Input errors
# ===================================================================

class InvalidCommandInput(InputError, TypeError):
    """SG-E200 -- The command to validate is not a string."""

    code = "SG-E200"
    message = "Command must be a string"
    resolution = "Pass the raw shell command text as a str."


# ===================================================================
# SG-E3xx  Denials
# ===================================================================

class CommandDenied(DenialError):
    """SG-E300 -- Command refused by the shell policy.

    Raised only by :meth:`~shell_guard.guard.ShellGuard.check`; the
    ``details`` mapping mirrors :meth:`Verdict.log_fields`.
    """

    code = "SG-E300"
    message = "Command refused by shell policy"
    resolution = (
        "Rewrite the command using allowed programs only, or ask an "
        "administrator to extend the policy."
    )
