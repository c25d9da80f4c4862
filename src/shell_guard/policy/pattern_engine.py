"""Regular-expression engine for pattern deny rules.

Patterns come from operator-supplied policy files and, with
``PatternScope.COMMAND_TEXT``, are searched against caller-controlled
text.  The engine therefore:

* prefers ``google-re2`` (linear-time matching, no ReDoS) and falls back
  to the standard library ``re`` module when it is not installed;
* bounds each evaluation by a wall-clock timeout (100 ms by default),
  treating a timed-out evaluation as a match (fail-closed);
* caches compiled patterns (policies are evaluated on every call).
"""
from __future__ import annotations

import re
import threading
from functools import lru_cache
from typing import Any

DEFAULT_TIMEOUT_MS = 100.0

# ---------------------------------------------------------------------------
# Attempt to import google-re2; fall back to ``re`` if unavailable
# ---------------------------------------------------------------------------

_RE2_AVAILABLE = False
_re2_module: Any = None

try:
    import re2 as _re2_module  # type: ignore[no-redef]

    _RE2_AVAILABLE = True
except ImportError:
    pass


# ---------------------------------------------------------------------------
# Compiled pattern cache (module-level)
# ---------------------------------------------------------------------------

@lru_cache(maxsize=512)
def _compile_pattern(pattern: str, use_re2: bool, ignore_case: bool) -> Any:
    """Compile and cache a regex pattern.

    Patterns using syntax RE2 rejects (backreferences, lookaround) are
    compiled with ``re`` and stay bounded by the engine timeout.

    Raises
    ------
    re.error
        If the pattern is syntactically invalid.
    """
    if use_re2 and _RE2_AVAILABLE:
        try:
            return _re2_module.compile(f"(?i){pattern}" if ignore_case else pattern)
        except _re2_module.error:
            pass
    return re.compile(pattern, re.IGNORECASE if ignore_case else 0)


# ---------------------------------------------------------------------------
# PatternEngine
# ---------------------------------------------------------------------------

class PatternEngine:
    """Cached regex matching with a fail-closed timeout.

    Parameters
    ----------
    timeout_ms:
        Maximum wall-clock time in milliseconds for a single evaluation.
        Defaults to 100 ms.  ``None`` evaluates inline without a timeout.
    prefer_re2:
        If ``True`` (the default), use ``google-re2`` when available.
    ignore_case:
        Match case-insensitively.  Off by default because command names
        are case-sensitive.
    """

    def __init__(
        self,
        timeout_ms: float | None = DEFAULT_TIMEOUT_MS,
        prefer_re2: bool = True,
        *,
        ignore_case: bool = False,
    ) -> None:
        self._timeout_s = None if timeout_ms is None else timeout_ms / 1000.0
        self._use_re2 = prefer_re2 and _RE2_AVAILABLE
        self._ignore_case = ignore_case

    # -- public properties --------------------------------------------------

    @property
    def engine_name(self) -> str:
        """Return the name of the active regex engine."""
        return "google-re2" if self._use_re2 else "re (stdlib)"

    @property
    def timeout_ms(self) -> float | None:
        """Return the configured timeout in milliseconds."""
        if self._timeout_s is None:
            return None
        return self._timeout_s * 1000.0

    # -- compilation --------------------------------------------------------

    def compile(self, pattern: str) -> Any:
        """Compile *pattern* with the active engine.  Raises ``re.error`` if invalid."""
        return _compile_pattern(pattern, self._use_re2, self._ignore_case)

    # -- matching -----------------------------------------------------------

    def search(self, pattern: str, text: str) -> bool:
        """Return ``True`` if *pattern* matches anywhere in *text*.

        On timeout, returns ``True`` (fail-closed).
        """
        compiled = self.compile(pattern)
        if self._timeout_s is None:
            return compiled.search(text) is not None
        return self._run_with_timeout(lambda: compiled.search(text) is not None)

    # -- internal timeout helper --------------------------------------------

    def _run_with_timeout(self, fn: Any) -> bool:
        """Execute *fn* with a wall-clock timeout.

        Returns ``True`` if the function times out (fail-closed).
        """
        result_box: list[bool] = [True]  # default: fail-closed
        exception_box: list[BaseException | None] = [None]

        def _worker() -> None:
            try:
                result_box[0] = fn()
            except Exception as exc:
                exception_box[0] = exc

        thread = threading.Thread(target=_worker, daemon=True)
        thread.start()
        thread.join(timeout=self._timeout_s)

        if thread.is_alive():
            return True

        if exception_box[0] is not None:
            raise exception_box[0]

        return result_box[0]

    # -- cache management ---------------------------------------------------

    @staticmethod
    def clear_cache() -> None:
        """Clear the compiled pattern cache."""
        _compile_pattern.cache_clear()

    @staticmethod
    def cache_info() -> Any:
        """Return cache statistics."""
        return _compile_pattern.cache_info()
