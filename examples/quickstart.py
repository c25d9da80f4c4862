#!/usr/bin/env python3
"""shell-guard quickstart.

Demonstrates the core workflow:

1. Build a policy from a JSON-shaped policy document.
2. Validate a handful of commands and print the verdicts.
3. Swap the policy at run time through ShellGuard.
4. Use the raising entry point for an execution collaborator.

Run:
    python examples/quickstart.py
"""
from __future__ import annotations

import logging

from shell_guard import CommandDenied, ShellGuard, policy_from_mapping

POLICY_DOCUMENT = {
    "allowCommands": [
        "ls",
        "cat",
        "grep",
        "xargs",
        {"command": "git", "subCommands": ["status", "log", "diff"]},
    ],
    "denyCommands": [
        {"command": "rm", "message": "rm is dangerous; move files to the trash instead."},
        "regex:.*sudo.*",
    ],
    "defaultErrorMessage": "Not permitted by the workspace policy",
}

COMMANDS = [
    "ls -la",
    "git status && git log --oneline",
    "git push origin main",
    "cat notes.txt | grep TODO",
    "ls; rm -rf /",
    "echo $(whoami)",
    "ls | xargs rm",
    "cat notes.txt > copy.txt",
]


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # -- Step 1: Build the policy ---------------------------------------------
    guard = ShellGuard(policy_from_mapping(POLICY_DOCUMENT))
    print(f"[1] Policy loaded: {len(guard.policy.allow_rules)} allow rules, "
          f"{len(guard.policy.deny_rules)} deny rules")

    # -- Step 2: Validate commands --------------------------------------------
    print("[2] Verdicts:")
    for command in COMMANDS:
        verdict = guard.validate(command)
        status = "ALLOW" if verdict.is_valid else "DENY "
        print(f"    {status} {command!r}")
        if not verdict.is_valid:
            print(f"           -> {verdict.message}")

    # -- Step 3: Reload -------------------------------------------------------
    guard.reload(policy_from_mapping({"allowCommands": ["echo", "whoami"]}))
    print(f"[3] After reload, 'echo $(whoami)' valid: "
          f"{guard.validate('echo $(whoami)').is_valid}")

    # -- Step 4: Raising entry point ------------------------------------------
    try:
        guard.check("ls -la")
    except CommandDenied as exc:
        print(f"[4] Refused: [{exc.code}] {exc.message}")
        print(f"    details: {exc.details}")


if __name__ == "__main__":
    main()
