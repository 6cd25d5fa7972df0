"""Validation of glob patterns used in workflow branch, tag and path filters."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

_CONTROL_ESCAPES = {
    "\a": "\\a",
    "\b": "\\b",
    "\f": "\\f",
    "\n": "\\n",
    "\r": "\\r",
    "\t": "\\t",
    "\v": "\\v",
}

_REF_CHARS_WHY = "ref name cannot contain spaces, ~, ^, :, [, ?, *"


def _escape_char(ch: str, quote: str) -> str:
    if ch == quote or ch == "\\":
        return "\\" + ch
    if ch in _CONTROL_ESCAPES:
        return _CONTROL_ESCAPES[ch]
    if ch.isprintable():
        return ch
    code = ord(ch)
    if code < 0x20 or code == 0x7F:
        return f"\\x{code:02x}"
    if code < 0x10000:
        return f"\\u{code:04x}"
    return f"\\U{code:08x}"


def _quote_char(ch: str | None) -> str:
    """Quote a single character in single quotes; end of input shows as U+FFFD."""
    if ch is None:
        ch = "\ufffd"
    return "'" + _escape_char(ch, "'") + "'"


def _quote_string(text: str) -> str:
    return '"' + "".join(_escape_char(ch, '"') for ch in text) + '"'


def _is_print(ch: str | None) -> bool:
    return ch is not None and ch.isprintable()


@dataclass(frozen=True)
class InvalidGlobPattern:
    """An error found in a glob pattern.

    ``column`` is 1-based; zero means the error occurred before the first
    character was read, or the pattern spans several lines.
    """

    message: str
    column: int

    def __str__(self) -> str:
        return f"{self.column}: {self.message}"


class _Scanner:
    """Character reader with one character of look-ahead and position tracking.

    ``None`` stands for the end of input.
    """

    _UNREAD = object()

    def __init__(self, text: str, on_error: Callable[[str], None]) -> None:
        self._text = text
        self._idx = 0
        self._ch: object = self._UNREAD
        self._line = 1
        self._column = 0
        self._last_line_len = 0
        self._last_char_len = 0
        self._on_error = on_error

    def _read(self) -> str | None:
        if self._idx >= len(self._text):
            if self._last_char_len > 0:
                self._column += 1
            self._last_char_len = 0
            return None
        ch = self._text[self._idx]
        self._idx += 1
        self._last_char_len = 1
        self._column += 1
        if ch == "\x00":
            self._on_error("invalid character NUL")
        elif ch == "\n":
            self._line += 1
            self._last_line_len = self._column
            self._column = 0
        return ch

    def peek(self) -> str | None:
        if self._ch is self._UNREAD:
            self._ch = self._read()
            if self._ch == "\ufeff":
                self._ch = self._read()
        return self._ch  # type: ignore[return-value]

    def next(self) -> str | None:
        ch = self.peek()
        if ch is not None:
            self._ch = self._read()
        return ch

    def pos(self) -> tuple[int, int]:
        """Return the line and column just after the last character read."""
        if self._column > 0:
            return self._line, self._column
        if self._last_line_len > 0:
            return self._line - 1, self._last_line_len
        return 1, 1


class _GlobValidator:
    def __init__(self, pattern: str, is_ref: bool) -> None:
        self._is_ref = is_ref
        self._prec = False
        self.errors: list[InvalidGlobPattern] = []
        self._scan = _Scanner(
            pattern,
            lambda msg: self._error(
                f"error while scanning glob pattern {_quote_string(pattern)}: {msg}"
            ),
        )
        self._pattern = pattern

    def _error(self, message: str) -> None:
        line, column = self._scan.pos()
        # The character at the error position has already been read.
        col = 0 if line > 1 else column - 1
        self.errors.append(InvalidGlobPattern(message, col))

    def _unexpected(self, ch: str | None, what: str, why: str) -> None:
        found = "unexpected EOF" if ch is None else f"unexpected character {_quote_char(ch)}"
        while_ = f" while checking {what}" if what else ""
        self._error(f"invalid glob pattern. {found}{while_}. {why}")

    def _invalid_ref_char(self, ch: str | None, why: str) -> None:
        shown = f"'{ch}'" if _is_print(ch) else _quote_char(ch)
        self._error(
            f"character {shown} is invalid for branch and tag names. {why}. "
            "see `man git-check-ref-format` for more details. "
            "note that regular expression is unavailable"
        )

    def _validate_char_match(self) -> tuple[str | None, bool]:
        """Check the body of ``[...]``; return the last character and whether to go on."""
        scan = self._scan
        if scan.peek() == "]":
            c = scan.next()
            self._unexpected("]", "content of character match []", "character match must not be empty")
            return c, True

        chars = 0
        while True:
            c = scan.next()
            if c == "]":
                break
            if c is None:
                self._unexpected(c, "end of character match []", "missing ]")
                return c, False
            if scan.peek() != "-":
                chars += 1
                continue
            # A range such as 0-9; counted as two since only chars == 1 matters.
            chars += 2
            start = c
            c = scan.next()  # '-'
            following = scan.peek()
            if following == "]":
                c = scan.next()
                self._unexpected(c, "character range in []", "end of range is missing")
                break
            if following is not None:
                c = scan.next()
                if ord(start) > ord(c):
                    why = (
                        f"start of range {_quote_char(start)} ({ord(start)}) is larger "
                        f"than end of range {_quote_char(c)} ({ord(c)})"
                    )
                    self._unexpected(c, "character range in []", why)

        if chars == 1:
            self._unexpected(
                c,
                "character match []",
                "character match with single character is useless. simply use x instead of [x]",
            )
        return c, True

    def _validate_next(self) -> bool:
        scan = self._scan
        c = scan.next()
        prec = True

        if c == "\\":
            escaped = scan.peek()
            if escaped in ("[", "?", "*"):
                c = scan.next()
                if self._is_ref:
                    self._invalid_ref_char(scan.peek(), _REF_CHARS_WHY)
            elif escaped in ("+", "\\", "!"):
                c = scan.next()
            elif self._is_ref:
                # File paths may contain a plain backslash; ref names may not.
                self._invalid_ref_char(
                    "\\", "only special characters [, ?, +, *, \\ ! can be escaped with \\"
                )
                c = scan.next()
        elif c == "?":
            if not self._prec:
                self._unexpected(
                    "?",
                    "special character ? (zero or one)",
                    "the preceding character must not be special character",
                )
            prec = False
        elif c == "+":
            if not self._prec:
                self._unexpected(
                    "+",
                    "special character + (one or more)",
                    "the preceding character must not be special character",
                )
            prec = False
        elif c == "*":
            prec = False
        elif c == "[":
            c, go_on = self._validate_char_match()
            if not go_on:
                return False
        elif c == "\r":
            if scan.peek() == "\n":
                c = scan.next()
            self._unexpected(c, "", "newline cannot be contained")
        elif c == "\n":
            self._unexpected("\n", "", "newline cannot be contained")
        elif c in (" ", "\t", "~", "^", ":"):
            if self._is_ref:
                self._invalid_ref_char(c, _REF_CHARS_WHY)
        self._prec = prec

        if scan.peek() is None:
            if self._is_ref and c in ("/", "."):
                self._invalid_ref_char(c, "ref name must not end with / and .")
            return False
        return True

    def validate(self) -> list[InvalidGlobPattern]:
        scan = self._scan
        if self._pattern == "":
            self._error("glob pattern cannot be empty")
            return self.errors

        first = scan.peek()
        if first == "/":
            if self._is_ref:
                scan.next()
                self._invalid_ref_char("/", "ref name must not start with /")
                self._prec = True
        elif first == "!":
            scan.next()
            if scan.peek() is None:
                self._unexpected(
                    "!",
                    "! at first character (negate pattern)",
                    "at least one character must follow !",
                )
                return self.errors
            self._prec = False

        while self._validate_next():
            pass
        return self.errors


def validate_ref_glob(pat: str) -> list[InvalidGlobPattern]:
    """Validate a glob pattern for Git branch and tag names; return the errors found."""
    return _GlobValidator(pat, True).validate()


def validate_path_glob(pat: str) -> list[InvalidGlobPattern]:
    """Validate a glob pattern for file paths; return the errors found."""
    return _GlobValidator(pat, False).validate()