"""SQL clause fragment sanitizer.

Applied to every caller-supplied fragment (projection entries, ``where``,
``group_by``, ``having``, ``order_by``) before it is spliced into a statement.
Fragments are clause bodies without their keyword, so a statement terminator
or a trailing comment never belongs in one.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

from table_mapper.core.exceptions import ClauseSanitizationError

# Android's SQLiteQueryBuilder limit pattern: "n" or "offset, n"
_LIMIT_PATTERN = re.compile(r"\s*\d+\s*(,\s*\d+\s*)?")

_QUOTES = {"'": "string", '"': "identifier", "`": "identifier", "[": "identifier"}


# ---------------------------------------------------------------------------
# Internal tokenizer
# ---------------------------------------------------------------------------


def _tokenize(clause: str, fragment: str) -> list[tuple[str, str]]:
    """Split *fragment* into ``('string', …)``, ``('identifier', …)`` and ``('code', …)`` tokens.

    Single-quoted literals and double-quoted, backtick-quoted or bracketed
    identifiers are kept intact, so comment-like or ``;`` characters inside
    them are not treated as code.

    Raises:
        ClauseSanitizationError: If a literal or identifier is unterminated.
    """
    tokens: list[tuple[str, str]] = []
    i = 0
    n = len(fragment)
    last = 0

    while i < n:
        opener = fragment[i]
        if opener not in _QUOTES:
            i += 1
            continue
        closer = "]" if opener == "[" else opener
        if i > last:
            tokens.append(("code", fragment[last:i]))
        j = i + 1
        terminated = False
        while j < n:
            if fragment[j] == closer:
                j += 1
                # doubled quote is an escape, except for brackets
                if closer != "]" and j < n and fragment[j] == closer:
                    j += 1
                    continue
                terminated = True
                break
            j += 1
        if not terminated:
            raise ClauseSanitizationError(
                clause, f"unterminated {_QUOTES[opener]} starting at offset {i}"
            )
        tokens.append((_QUOTES[opener], fragment[i:j]))
        last = j
        i = j

    if last < n:
        tokens.append(("code", fragment[last:]))

    return tokens


# ---------------------------------------------------------------------------
# Individual sanitization checks
# ---------------------------------------------------------------------------


def _check_no_terminator(clause: str, tokens: list[tuple[str, str]]) -> None:
    for kind, content in tokens:
        if kind == "code" and ";" in content:
            raise ClauseSanitizationError(clause, "statement terminator ';' is not permitted")


def _check_no_comment(clause: str, tokens: list[tuple[str, str]]) -> None:
    for kind, content in tokens:
        if kind == "code" and ("--" in content or "/*" in content):
            raise ClauseSanitizationError(clause, "SQL comments are not permitted")


def _check_balanced(clause: str, tokens: list[tuple[str, str]]) -> None:
    depth = 0
    for kind, content in tokens:
        if kind != "code":
            continue
        for ch in content:
            if ch == "(":
                depth += 1
            elif ch == ")":
                depth -= 1
                if depth < 0:
                    raise ClauseSanitizationError(clause, "unbalanced ')'")
    if depth:
        raise ClauseSanitizationError(clause, "unbalanced '('")


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


@dataclass
class ClauseSanitizer:
    """Configurable checks for SQL clause fragments.

    **This is not an injection defence.** Values must be passed through
    ``args`` and bound to ``?`` placeholders; never format user data into a
    fragment. The checks only stop a fragment from escaping its clause.

    Attributes:
        block_terminators: Reject ``;`` outside literals.
        block_comments: Reject ``--`` and ``/*`` outside literals.
        require_balanced_parens: Reject unbalanced parentheses.
    """

    block_terminators: bool = True
    block_comments: bool = True
    require_balanced_parens: bool = True

    def check(self, clause: str, fragment: str | None) -> str | None:
        """Validate *fragment* for *clause* and return it stripped.

        ``None`` and blank fragments return ``None`` (the clause is omitted).

        Raises:
            ClauseSanitizationError: If any enabled check fails.
        """
        if fragment is None or not fragment.strip():
            return None
        tokens = _tokenize(clause, fragment)
        if self.block_terminators:
            _check_no_terminator(clause, tokens)
        if self.block_comments:
            _check_no_comment(clause, tokens)
        if self.require_balanced_parens:
            _check_balanced(clause, tokens)
        return fragment.strip()

    def check_limit(self, limit: str | int | None) -> str | None:
        """Validate a ``LIMIT`` body (``"n"`` or ``"offset, n"``)."""
        if limit is None:
            return None
        if isinstance(limit, bool) or not isinstance(limit, (str, int)):
            raise ClauseSanitizationError("LIMIT", f"unsupported type {type(limit).__name__}")
        text = str(limit)
        if not text.strip():
            return None
        if not _LIMIT_PATTERN.fullmatch(text):
            raise ClauseSanitizationError("LIMIT", f"invalid value {text!r}")
        return text.strip()


DEFAULT_SANITIZER = ClauseSanitizer()
