# flowlint

A small library for checking the expressions and filter patterns used in CI
workflow files. It has no runtime dependencies.

It provides:

- **An expression type system** (`flowlint.exprtype`): `AnyType`, `NullType`,
  `NumberType`, `BoolType`, `StringType`, `ObjectType` and `ArrayType`. Each
  type supports `assignable`, `merge` and `deep_copy`. `equal_types` tells
  whether two types can each be assigned to the other. Object types can be
  loose (`ObjectType.loose`, `ObjectType.empty`), strict (`ObjectType.strict`,
  `ObjectType.empty_strict`), or maps from string keys to one type
  (`ObjectType.mapping`).
- **An expression parser** (`flowlint.exprparser`): `ExprParser.parse` takes an
  iterable of `Token` objects and returns a syntax tree of `ExprNode` objects,
  such as `VariableNode`, `FuncCallNode`, `ObjectDerefNode`, `CompareOpNode` and
  `LogicalOpNode`. Parsing stops at the first error, which is raised as an
  `ExprError` carrying the offset, line and column of the offending token.
- **A semantics checker** (`flowlint.exprsema`):
  `ExprSemanticsChecker.check(expr)` returns a tuple of the expression's type
  and the list of every `ExprError` found. It checks the following:
  - built-in function calls and their overloads;
  - the placeholders of `format()`;
  - property and index access against the types of the built-in contexts
    (`github`, `env`, `job`, `steps`, `runner`, `secrets`, `strategy`,
    `matrix`, `needs`, `inputs`).

  You can narrow the contexts with `update_matrix`, `update_steps`,
  `update_needs`, `update_secrets`, `update_inputs`, `update_dispatch_inputs`
  and `update_jobs`. These changes affect only that checker instance. The
  constructor also accepts its own table of function signatures.
- **Glob validation** (`flowlint.globcheck`): `validate_ref_glob` checks a
  pattern for branch and tag names, and `validate_path_glob` checks a pattern
  for file paths. Each returns a list of `InvalidGlobPattern` records, each with
  a `message` and a 1-based `column`. A column of 0 means either the pattern is
  empty or it spans several lines.

## Installation

```
pip install flowlint
```

## Examples

Validating a glob pattern:

```python
from flowlint.globcheck import validate_ref_glob

for err in validate_ref_glob("v[12].[0-9]+.x/"):
    print(err)          # "<column>: <message>"
```

Working with types:

```python
from flowlint.exprtype import ObjectType, StringType, NumberType, equal_types

a = ObjectType.strict({"foo": StringType()})
b = ObjectType.mapping(StringType())
print(equal_types(a, b))                  # True
print(NumberType().merge(StringType()))   # string
```

Parsing and checking an expression from tokens you supply:

```python
from flowlint.exprparser import ExprParser, Token, TokenKind
from flowlint.exprsema import ExprSemanticsChecker

tokens = [
    Token(TokenKind.IDENT, "github", 0, 1, 1),
    Token(TokenKind.DOT, ".", 6, 1, 7),
    Token(TokenKind.IDENT, "event_name", 7, 1, 8),
    Token(TokenKind.EQ, "==", 18, 1, 19),
    Token(TokenKind.STRING, "'push'", 21, 1, 22),
    Token(TokenKind.END, "", 27, 1, 28),
]
tree = ExprParser().parse(tokens)
ty, errors = ExprSemanticsChecker().check(tree)
print(ty, errors)   # bool []
```

## What it does not do

- There is no lexer. `ExprParser.parse` expects tokens that are already lexed.
  String tokens keep their surrounding single quotes.
- It does not read or parse workflow files. It does not run any lint rules over
  whole workflows.
- There is no command-line program. Everything is used as a library.

## Running the tests

```
pip install -e ".[test]"
pytest
```