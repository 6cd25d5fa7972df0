"""Syntax tree and parser for workflow expressions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator


class TokenKind(Enum):
    """Kind of an expression token; the value is its display name."""

    UNKNOWN = "UNKNOWN"
    END = "END"
    IDENT = "IDENT"
    STRING = "STRING"
    INT = "INTEGER"
    FLOAT = "FLOAT"
    LEFT_PAREN = "("
    RIGHT_PAREN = ")"
    LEFT_BRACKET = "["
    RIGHT_BRACKET = "]"
    DOT = "."
    NOT = "!"
    LESS = "<"
    LESS_EQ = "<="
    GREATER = ">"
    GREATER_EQ = ">="
    EQ = "=="
    NOT_EQ = "!="
    AND = "&&"
    OR = "||"
    STAR = "*"
    COMMA = ","

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class Token:
    """A lexed token with its 0-based offset and 1-based line and column."""

    kind: TokenKind
    value: str
    offset: int = 0
    line: int = 0
    column: int = 0


class ExprError(Exception):
    """Error found while parsing or checking an expression."""

    def __init__(self, message: str, offset: int = 0, line: int = 0, column: int = 0):
        super().__init__(message)
        self.message = message
        self.offset = offset
        self.line = line
        self.column = column

    @classmethod
    def at_token(cls, token: Token, message: str) -> ExprError:
        return cls(message, token.offset, token.line, token.column)

    def __str__(self) -> str:
        return f"{self.line}:{self.column}:{self.offset}: {self.message}"


class ExprNode:
    """Base of expression syntax tree nodes. Every node exposes ``token``."""

    token: Token | None


def _token_field():
    return field(default=None, compare=False, repr=False)


@dataclass
class VariableNode(ExprNode):
    """Access to a context variable such as ``github``."""

    name: str
    token: Token | None = _token_field()


@dataclass
class NullNode(ExprNode):
    """The ``null`` literal."""

    token: Token | None = _token_field()


@dataclass
class BoolNode(ExprNode):
    """A ``true`` or ``false`` literal."""

    value: bool
    token: Token | None = _token_field()


@dataclass
class IntNode(ExprNode):
    """An integer literal."""

    value: int
    token: Token | None = _token_field()


@dataclass
class FloatNode(ExprNode):
    """A float literal."""

    value: float
    token: Token | None = _token_field()


@dataclass
class StringNode(ExprNode):
    """A string literal with quotes removed and escapes resolved."""

    value: str
    token: Token | None = _token_field()


@dataclass
class ObjectDerefNode(ExprNode):
    """Property access like ``a.b``."""

    receiver: ExprNode
    property: str

    @property
    def token(self) -> Token | None:
        return self.receiver.token


@dataclass
class ArrayDerefNode(ExprNode):
    """Object filter like ``a.*``."""

    receiver: ExprNode

    @property
    def token(self) -> Token | None:
        return self.receiver.token


@dataclass
class IndexAccessNode(ExprNode):
    """Index access like ``a[b]``."""

    operand: ExprNode
    index: ExprNode

    @property
    def token(self) -> Token | None:
        return self.operand.token


@dataclass
class NotOpNode(ExprNode):
    """The ``!`` prefix operator."""

    operand: ExprNode
    token: Token | None = _token_field()


class CompareOpKind(Enum):
    """Kind of a comparison operator."""

    INVALID = "INVALID"
    LESS = "<"
    LESS_EQ = "<="
    GREATER = ">"
    GREATER_EQ = ">="
    EQ = "=="
    NOT_EQ = "!="


@dataclass
class CompareOpNode(ExprNode):
    """A binary comparison."""

    kind: CompareOpKind
    left: ExprNode
    right: ExprNode

    @property
    def token(self) -> Token | None:
        return self.left.token


class LogicalOpKind(Enum):
    """Kind of a logical operator."""

    INVALID = "INVALID"
    AND = "&&"
    OR = "||"


@dataclass
class LogicalOpNode(ExprNode):
    """A ``&&`` or ``||`` operation."""

    kind: LogicalOpKind
    left: ExprNode
    right: ExprNode

    @property
    def token(self) -> Token | None:
        return self.left.token


@dataclass
class FuncCallNode(ExprNode):
    """A call of a built-in function."""

    callee: str
    args: list[ExprNode]
    token: Token | None = _token_field()


_COMPARE_OPS = {
    TokenKind.LESS: CompareOpKind.LESS,
    TokenKind.LESS_EQ: CompareOpKind.LESS_EQ,
    TokenKind.GREATER: CompareOpKind.GREATER,
    TokenKind.GREATER_EQ: CompareOpKind.GREATER_EQ,
    TokenKind.EQ: CompareOpKind.EQ,
    TokenKind.NOT_EQ: CompareOpKind.NOT_EQ,
}

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _quotes(items: Iterable[str]) -> str:
    return ", ".join(_quote(item) for item in items)


def _split_sign(text: str) -> tuple[int, str]:
    if text.startswith("-"):
        return -1, text[1:]
    if text.startswith("+"):
        return 1, text[1:]
    return 1, text


def _parse_int_literal(text: str) -> int:
    """Parse an integer literal with base prefixes, limited to 32 bits."""
    sign, body = _split_sign(text)
    lower = body.lower()
    if lower.startswith("0x"):
        base, digits, prefixed = 16, body[2:], True
    elif lower.startswith("0o"):
        base, digits, prefixed = 8, body[2:], True
    elif lower.startswith("0b"):
        base, digits, prefixed = 2, body[2:], True
    elif len(body) > 1 and body.startswith("0"):
        base, digits, prefixed = 8, body[1:], True
    else:
        base, digits, prefixed = 10, body, False

    valid = (
        digits != ""
        and digits.isascii()
        and all(c.isalnum() or c == "_" for c in digits)
        and (prefixed or "_" not in digits)
    )
    if not valid:
        raise ValueError("invalid syntax")
    try:
        value = sign * int(digits, base)
    except ValueError:
        raise ValueError("invalid syntax") from None
    if not _INT32_MIN <= value <= _INT32_MAX:
        raise ValueError("value out of range")
    return value


def _parse_float_literal(text: str) -> float:
    """Parse a float literal, rejecting forms the expression syntax never allows."""
    if text != text.strip() or "_" in text or text == "":
        raise ValueError("invalid syntax")
    sign, body = _split_sign(text)
    try:
        if body.lower().startswith("0x"):
            value = sign * float.fromhex(body)
        else:
            value = float(text)
    except (ValueError, OverflowError):
        raise ValueError("invalid syntax") from None
    if value in (float("inf"), float("-inf")) and "inf" not in text.lower():
        raise ValueError("value out of range")
    return value


class ExprParser:
    """Recursive descent parser turning a token sequence into a syntax tree."""

    def __init__(self) -> None:
        self._tokens: Iterator[Token] = iter(())
        self._cur = Token(TokenKind.END, "")
        self._last: Token | None = None

    def parse(self, tokens: Iterable[Token]) -> ExprNode:
        """Parse ``tokens`` into a syntax tree, raising ``ExprError`` on the first error.

        The sequence is read up to its END token; an exhausted sequence counts as ended.
        """
        self._tokens = iter(tokens)
        self._last = None
        self._cur = self._pull()

        root = self._parse_logical_or()

        if self._cur.kind is not TokenKind.END:
            first = self._cur
            kinds = [first.kind.value]
            while (t := self._pull()).kind is not TokenKind.END:
                kinds.append(t.kind.value)
            raise ExprError.at_token(
                first,
                "parser did not reach end of input after parsing the expression. "
                f"{len(kinds)} remaining token(s) in the input: {_quotes(kinds)}",
            )
        return root

    def _pull(self) -> Token:
        if self._last is not None and self._last.kind is TokenKind.END:
            return self._last
        token = next(self._tokens, None)
        if token is None:
            last = self._last
            if last is None:
                token = Token(TokenKind.END, "", 0, 1, 1)
            else:
                n = len(last.value)
                token = Token(TokenKind.END, "", last.offset + n, last.line, last.column + n)
        self._last = token
        return token

    def _next(self) -> Token:
        ret = self._cur
        self._cur = self._pull()
        return ret

    def _error(self, message: str) -> ExprError:
        return ExprError.at_token(self._cur, message)

    def _unexpected(self, where: str, expected: Iterable[TokenKind]) -> ExprError:
        if self._cur.kind is TokenKind.END:
            what = "end of input"
        else:
            what = f"token {_quote(self._cur.kind.value)}"
        expecting = _quotes(k.value for k in expected)
        return self._error(f"unexpected {what} while parsing {where}. expecting {expecting}")

    def _parse_ident(self) -> ExprNode:
        ident = self._next()
        if self._cur.kind is TokenKind.LEFT_PAREN:
            # Only built-in functions can be called, so the callee is always a name.
            self._next()
            args: list[ExprNode] = []
            if self._cur.kind is TokenKind.RIGHT_PAREN:
                self._next()
            else:
                while True:
                    args.append(self._parse_logical_or())
                    if self._cur.kind is TokenKind.COMMA:
                        self._next()
                    elif self._cur.kind is TokenKind.RIGHT_PAREN:
                        self._next()
                        break
                    else:
                        raise self._unexpected(
                            "arguments of function call",
                            (TokenKind.COMMA, TokenKind.RIGHT_PAREN),
                        )
            return FuncCallNode(ident.value, args, ident)

        # Keywords are case sensitive; variable names are not.
        if ident.value == "null":
            return NullNode(ident)
        if ident.value == "true":
            return BoolNode(True, ident)
        if ident.value == "false":
            return BoolNode(False, ident)
        return VariableNode(ident.value.lower(), ident)

    def _parse_nested(self) -> ExprNode:
        self._next()
        nested = self._parse_logical_or()
        if self._cur.kind is not TokenKind.RIGHT_PAREN:
            raise self._unexpected(
                "closing ')' of nested expression (...)", (TokenKind.RIGHT_PAREN,)
            )
        self._next()
        return nested

    def _parse_int(self) -> ExprNode:
        t = self._cur
        try:
            value = _parse_int_literal(t.value)
        except ValueError as err:
            raise self._error(f"parsing invalid integer literal {_quote(t.value)}: {err}") from None
        self._next()
        return IntNode(value, t)

    def _parse_float(self) -> ExprNode:
        t = self._cur
        try:
            value = _parse_float_literal(t.value)
        except ValueError as err:
            raise self._error(f"parsing invalid float literal {_quote(t.value)}: {err}") from None
        self._next()
        return FloatNode(value, t)

    def _parse_string(self) -> ExprNode:
        t = self._next()
        return StringNode(t.value[1:-1].replace("''", "'"), t)

    def _parse_primary(self) -> ExprNode:
        kind = self._cur.kind
        if kind is TokenKind.IDENT:
            return self._parse_ident()
        if kind is TokenKind.LEFT_PAREN:
            return self._parse_nested()
        if kind is TokenKind.INT:
            return self._parse_int()
        if kind is TokenKind.FLOAT:
            return self._parse_float()
        if kind is TokenKind.STRING:
            return self._parse_string()
        raise self._unexpected(
            "variable access, function call, null, bool, int, float or string",
            (
                TokenKind.IDENT,
                TokenKind.LEFT_PAREN,
                TokenKind.INT,
                TokenKind.FLOAT,
                TokenKind.STRING,
            ),
        )

    def _parse_postfix(self) -> ExprNode:
        ret = self._parse_primary()
        while True:
            if self._cur.kind is TokenKind.DOT:
                self._next()
                if self._cur.kind is TokenKind.STAR:
                    self._next()
                    ret = ArrayDerefNode(ret)
                elif self._cur.kind is TokenKind.IDENT:
                    prop = self._next()
                    ret = ObjectDerefNode(ret, prop.value.lower())
                else:
                    raise self._unexpected(
                        "object property dereference like 'a.b' or array element "
                        "dereference like 'a.*'",
                        (TokenKind.IDENT, TokenKind.STAR),
                    )
            elif self._cur.kind is TokenKind.LEFT_BRACKET:
                self._next()
                idx = self._parse_logical_or()
                ret = IndexAccessNode(ret, idx)
                if self._cur.kind is not TokenKind.RIGHT_BRACKET:
                    raise self._unexpected(
                        "closing bracket ']' for index access", (TokenKind.RIGHT_BRACKET,)
                    )
                self._next()
            else:
                return ret

    def _parse_prefix(self) -> ExprNode:
        t = self._cur
        if t.kind is not TokenKind.NOT:
            return self._parse_postfix()
        self._next()
        return NotOpNode(self._parse_prefix(), t)

    def _parse_compare(self) -> ExprNode:
        left = self._parse_prefix()
        kind = _COMPARE_OPS.get(self._cur.kind)
        if kind is None:
            return left
        self._next()
        right = self._parse_compare()
        return CompareOpNode(kind, left, right)

    def _parse_logical_and(self) -> ExprNode:
        left = self._parse_compare()
        if self._cur.kind is not TokenKind.AND:
            return left
        self._next()
        right = self._parse_logical_and()
        return LogicalOpNode(LogicalOpKind.AND, left, right)

    def _parse_logical_or(self) -> ExprNode:
        left = self._parse_logical_and()
        if self._cur.kind is not TokenKind.OR:
            return left
        self._next()
        right = self._parse_logical_or()
        return LogicalOpNode(LogicalOpKind.OR, left, right)