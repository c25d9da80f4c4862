"""Command extraction -- split a shell command string into sub-commands.

The scanner walks the input with an explicit cursor instead of chained
regex replacements:

* Single- and double-quoted spans are opaque; their contents are never
  split points.  A backslash outside single quotes escapes the next
  character.
* ``$(...)`` and backtick substitutions are resolved depth-first.  Their
  inner commands are emitted *before* the commands of the enclosing text,
  and the span is replaced by a ``__SUBST<n>__`` placeholder in the
  enclosing command.  Substitutions inside double quotes are resolved too,
  because the shell runs them.
* The remaining text is split on ``;``, ``|``, ``||``, ``&``, ``&&``,
  ``(``, ``)``, standalone ``{``/``}`` words and newlines.

``find ... -exec ... \\;`` gets its own mode: braces and parentheses are
literal there, so ``{}`` and the escaped terminator stay inside the
``find`` command.

Nesting is bounded by ``max_depth``.  Deeper substitutions are emitted
verbatim and the extraction is flagged as truncated.
"""
from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 32

PLACEHOLDER_TEMPLATE = "__SUBST{}__"
_PLACEHOLDER_ONLY_RE = re.compile(r"^__SUBST\d+__$")

# `{` and `}` are grouping operators only as standalone words.
_BRACE_OPEN_PREV = frozenset(" \t\n;|&({")
_BRACE_CLOSE_PREV = frozenset(" \t\n;|&)}")
_BRACE_CLOSE_FOLLOW = frozenset(" \t\n;|&)}")


# ---------------------------------------------------------------------------
# Token helpers
# ---------------------------------------------------------------------------


def base_command_of(command: str) -> str:
    """Return the first whitespace-delimited token of *command* (or ``""``)."""
    parts = command.split(maxsplit=1)
    return parts[0] if parts else ""


def subcommand_of(command: str) -> str | None:
    """Return the second whitespace-delimited token of *command*, if any."""
    parts = command.split(maxsplit=2)
    return parts[1] if len(parts) > 1 else None


def is_find_exec(command: str) -> bool:
    """Return ``True`` for a ``find`` command carrying ``-exec``/``-execdir``."""
    return base_command_of(command) == "find" and "-exec" in command


# ---------------------------------------------------------------------------
# Result
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Extraction:
    """Outcome of :meth:`CommandExtractor.scan`.

    ``truncated`` is set when substitution nesting exceeded the depth
    limit; callers must not treat such an extraction as complete.
    """

    commands: tuple[str, ...]
    truncated: bool = False


@dataclass(slots=True)
class _ScanState:
    """Mutable bookkeeping shared by one top-level scan and its recursions."""

    substitutions: int = 0
    truncated: bool = False

    def next_placeholder(self) -> str:
        placeholder = PLACEHOLDER_TEMPLATE.format(self.substitutions)
        self.substitutions += 1
        return placeholder


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


def _find_closing_paren(text: str, start: int) -> int | None:
    """Return the index of the ``)`` closing a ``$(`` whose body starts at *start*."""
    depth = 1
    quote: str | None = None
    i = start
    n = len(text)
    while i < n:
        ch = text[i]
        if ch == "\\" and quote != "'":
            i += 2
            continue
        if quote is not None:
            if ch == quote:
                quote = None
        elif ch in "'\"":
            quote = ch
        elif ch == "(":
            depth += 1
        elif ch == ")":
            depth -= 1
            if depth == 0:
                return i
        i += 1
    return None


def _find_closing_backtick(text: str, start: int) -> int | None:
    i = start
    n = len(text)
    while i < n:
        if text[i] == "\\":
            i += 2
            continue
        if text[i] == "`":
            return i
        i += 1
    return None


@dataclass(slots=True)
class _Scanner:
    """Single pass over one command string at one nesting depth."""

    extractor: CommandExtractor
    text: str
    depth: int
    state: _ScanState
    find_mode: bool = False
    pos: int = 0
    buffer: list[str] = field(default_factory=list)
    segments: list[str] = field(default_factory=list)
    nested: list[str] = field(default_factory=list)

    def run(self) -> list[str]:
        text = self.text
        n = len(text)
        quote: str | None = None

        while self.pos < n:
            ch = text[self.pos]

            if ch == "\\" and quote != "'":
                self.buffer.append(text[self.pos:self.pos + 2])
                self.pos += 2
                continue

            if quote == "'":
                if ch == "'":
                    quote = None
                self._take(ch)
                continue

            if ch == "$" and self._peek(1) == "(":
                self._substitute(self.pos + 2, _find_closing_paren)
                continue

            if ch == "`":
                self._substitute(self.pos + 1, _find_closing_backtick)
                continue

            if quote == '"':
                if ch == '"':
                    quote = None
                self._take(ch)
                continue

            if ch in "'\"":
                quote = ch
                self._take(ch)
                continue

            if self._consume_operator(ch):
                continue

            self._take(ch)

        # An unterminated quote runs to the end of the input; the shell
        # refuses to execute anything after it.
        self._flush()
        return self.nested + self.segments

    # -- cursor helpers -----------------------------------------------------

    def _peek(self, offset: int) -> str:
        index = self.pos + offset
        return self.text[index] if 0 <= index < len(self.text) else ""

    def _take(self, ch: str) -> None:
        self.buffer.append(ch)
        self.pos += 1

    def _flush(self) -> None:
        segment = "".join(self.buffer).strip()
        self.buffer.clear()
        if segment and not _PLACEHOLDER_ONLY_RE.match(segment):
            self.segments.append(segment)

    # -- operators ----------------------------------------------------------

    def _consume_operator(self, ch: str) -> bool:
        nxt = self._peek(1)
        prev = self._peek(-1)

        if ch in ";\n":
            width = 1
        elif ch == "&":
            if nxt == "&":
                width = 2
            elif nxt == ">" or prev in ("<", ">"):
                # &> and >& belong to a redirection, not a separator.
                return False
            else:
                width = 1
        elif ch == "|":
            width = 2 if nxt == "|" else 1
        elif self.find_mode:
            return False
        elif ch in "()":
            width = 1
        elif ch == "{":
            if prev and prev not in _BRACE_OPEN_PREV:
                return False
            if nxt and not nxt.isspace():
                return False
            width = 1
        elif ch == "}":
            if prev and prev not in _BRACE_CLOSE_PREV:
                return False
            if nxt and nxt not in _BRACE_CLOSE_FOLLOW:
                return False
            width = 1
        else:
            return False

        self._flush()
        self.pos += width
        return True

    # -- substitutions ------------------------------------------------------

    def _substitute(
        self, body_start: int, find_close: Callable[[str, int], int | None]
    ) -> None:
        end = find_close(self.text, body_start)
        if end is None:
            inner = self.text[body_start:]
            self.pos = len(self.text)
        else:
            inner = self.text[body_start:end]
            self.pos = end + 1

        if self.depth + 1 > self.extractor.max_depth:
            self.state.truncated = True
            logger.warning(
                "substitution nesting exceeds %d levels; remaining text kept verbatim",
                self.extractor.max_depth,
            )
            if inner.strip():
                self.nested.append(inner.strip())
        else:
            self.nested.extend(
                self.extractor._extract(inner, self.depth + 1, self.state)
            )
        self.buffer.append(self.state.next_placeholder())


# ---------------------------------------------------------------------------
# CommandExtractor
# ---------------------------------------------------------------------------


class CommandExtractor:
    """Splits command strings into the individual commands the shell would run.

    Parameters
    ----------
    max_depth:
        Maximum nesting of command substitutions that is resolved.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH) -> None:
        if max_depth < 1:
            msg = f"max_depth must be >= 1, got {max_depth}"
            raise ValueError(msg)
        self.max_depth = max_depth

    def extract(self, command: str) -> list[str]:
        """Return the commands in *command*, substitution contents first.

        Returns an empty list only for blank input.
        """
        return list(self.scan(command).commands)

    def scan(self, command: str) -> Extraction:
        """Like :meth:`extract` but also reports depth truncation."""
        state = _ScanState()
        commands = self._extract(command, 0, state)
        return Extraction(commands=tuple(commands), truncated=state.truncated)

    def _extract(self, text: str, depth: int, state: _ScanState) -> list[str]:
        text = text.strip()
        if not text:
            return []
        scanner = _Scanner(
            extractor=self,
            text=text,
            depth=depth,
            state=state,
            find_mode=is_find_exec(text),
        )
        return scanner.run()


def extract_commands(command: str, *, max_depth: int = DEFAULT_MAX_DEPTH) -> list[str]:
    """Convenience wrapper around :meth:`CommandExtractor.extract`."""
    return CommandExtractor(max_depth=max_depth).extract(command)
