"""Type and semantics checking of workflow expression syntax trees."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from typing import Iterable

from .exprparser import (
    ArrayDerefNode,
    BoolNode,
    CompareOpNode,
    ExprError,
    ExprNode,
    FloatNode,
    FuncCallNode,
    IndexAccessNode,
    IntNode,
    LogicalOpNode,
    NotOpNode,
    NullNode,
    ObjectDerefNode,
    StringNode,
    VariableNode,
)
from .exprtype import (
    AnyType,
    ArrayType,
    BoolType,
    ExprType,
    NullType,
    NumberType,
    ObjectType,
    StringType,
)

_FORMAT_PLACEHOLDER = re.compile(r"\{[0-9]+\}")


def ordinal(i: int) -> str:
    """Return ``i`` with its English ordinal suffix, such as ``1st`` or ``12th``."""
    suffix = "th"
    if i % 10 == 1 and i % 100 != 11:
        suffix = "st"
    elif i % 10 == 2 and i % 100 != 12:
        suffix = "nd"
    elif i % 10 == 3 and i % 100 != 13:
        suffix = "rd"
    return f"{i}{suffix}"


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


def _sorted_quotes(items: Iterable[str]) -> str:
    return ", ".join(_quote(item) for item in sorted(items))


@dataclass
class FuncSignature:
    """Signature of a built-in function.

    When ``variable_length_params`` is set, the last parameter type may be
    repeated any number of times after the others.
    """

    name: str
    ret: ExprType
    params: list[ExprType] = field(default_factory=list)
    variable_length_params: bool = False

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        ellipsis = "..." if self.variable_length_params else ""
        return f"{self.name}({params}{ellipsis}) -> {self.ret}"


# Keys are lower case since function names are compared case-insensitively.
BUILTIN_FUNC_SIGNATURES: dict[str, list[FuncSignature]] = {
    "contains": [
        FuncSignature("contains", BoolType(), [StringType(), StringType()]),
        FuncSignature("contains", BoolType(), [ArrayType(AnyType()), AnyType()]),
    ],
    "startswith": [
        FuncSignature("startsWith", BoolType(), [StringType(), StringType()]),
    ],
    "endswith": [
        FuncSignature("endsWith", BoolType(), [StringType(), StringType()]),
    ],
    "format": [
        FuncSignature("format", StringType(), [StringType(), AnyType()], True),
    ],
    "join": [
        FuncSignature("join", StringType(), [ArrayType(StringType()), StringType()]),
        FuncSignature("join", StringType(), [StringType(), StringType()]),
        # Without the separator, values are joined with ','.
        FuncSignature("join", StringType(), [ArrayType(StringType())]),
        FuncSignature("join", StringType(), [StringType()]),
    ],
    "tojson": [FuncSignature("toJSON", StringType(), [AnyType()])],
    "fromjson": [FuncSignature("fromJSON", AnyType(), [StringType()])],
    "hashfiles": [FuncSignature("hashFiles", StringType(), [StringType()], True)],
    "success": [FuncSignature("success", BoolType(), [])],
    "always": [FuncSignature("always", BoolType(), [])],
    "cancelled": [FuncSignature("cancelled", BoolType(), [])],
    "failure": [FuncSignature("failure", BoolType(), [])],
}


BUILTIN_GLOBAL_VARIABLE_TYPES: dict[str, ExprType] = {
    "github": ObjectType.strict(
        {
            "action": StringType(),
            "action_path": StringType(),
            "actor": StringType(),
            "base_ref": StringType(),
            "event": ObjectType.empty(),
            "event_name": StringType(),
            "event_path": StringType(),
            "head_ref": StringType(),
            "job": StringType(),
            "ref": StringType(),
            "ref_name": StringType(),
            "ref_protected": StringType(),
            "ref_type": StringType(),
            "repository": StringType(),
            "repository_owner": StringType(),
            "run_id": StringType(),
            "run_number": StringType(),
            "run_attempt": StringType(),
            "server_url": StringType(),
            "sha": StringType(),
            "token": StringType(),
            "workflow": StringType(),
            "workspace": StringType(),
            # Undocumented but present at runtime.
            "action_ref": StringType(),
            "action_repository": StringType(),
            "api_url": StringType(),
            "env": StringType(),
            "graphql_url": StringType(),
            "path": StringType(),
            "repositoryurl": StringType(),
            "retention_days": NumberType(),
        }
    ),
    "env": ObjectType.mapping(StringType()),
    "job": ObjectType.strict(
        {
            "container": ObjectType.strict(
                {"id": StringType(), "network": StringType()}
            ),
            "services": ObjectType.mapping(
                ObjectType.strict(
                    {
                        "id": StringType(),
                        "network": StringType(),
                        "ports": ObjectType.empty(),
                    }
                )
            ),
            "status": StringType(),
        }
    ),
    "steps": ObjectType.empty_strict(),
    "runner": ObjectType.strict(
        {
            "name": StringType(),
            "os": StringType(),
            "arch": StringType(),
            "temp": StringType(),
            "tool_cache": StringType(),
            "workspace": StringType(),
        }
    ),
    "secrets": ObjectType.mapping(StringType()),
    "strategy": ObjectType.loose(
        {
            "fail-fast": BoolType(),
            "job-index": NumberType(),
            "job-total": NumberType(),
            "max-parallel": NumberType(),
        }
    ),
    "matrix": ObjectType.empty_strict(),
    "needs": ObjectType.empty_strict(),
    "inputs": ObjectType.empty_strict(),
}


def _error_at(node: ExprNode, message: str) -> ExprError:
    token = node.token
    if token is None:
        return ExprError(message)
    return ExprError.at_token(token, message)


def _not_assignable(node: ExprNode, index: int, arg: ExprType, param: ExprType, sig: FuncSignature) -> ExprError:
    return _error_at(
        node,
        f"{ordinal(index + 1)} argument of function call is not assignable. "
        f"{_quote(str(arg))} cannot be assigned to {_quote(str(param))}. "
        f"called function type is {_quote(str(sig))}",
    )


def _check_signature(node: FuncCallNode, sig: FuncSignature, args: list[ExprType]) -> ExprError | None:
    lp, la = len(sig.params), len(args)
    variadic = sig.variable_length_params
    if (variadic and lp > la) or (not variadic and lp != la):
        at_least = "at least " if variadic else ""
        return _error_at(
            node,
            f"number of arguments is wrong. function {_quote(str(sig))} takes "
            f"{at_least}{lp} parameters but {la} arguments are given",
        )

    for i, (param, arg) in enumerate(zip(sig.params, args)):
        if not param.assignable(arg):
            return _not_assignable(node.args[i], i, arg, param, sig)

    # Zero arguments for the variable length part is rejected above on purpose.
    if variadic:
        param = sig.params[-1]
        for i, arg in enumerate(args[lp:], start=lp):
            if not param.assignable(arg):
                return _not_assignable(node.args[i], i, arg, param, sig)

    return None


class ExprSemanticsChecker:
    """Checks types of expression syntax trees and other semantics such as format() arguments."""

    def __init__(self, funcs: dict[str, list[FuncSignature]] | None = None) -> None:
        self.funcs = BUILTIN_FUNC_SIGNATURES if funcs is None else funcs
        self.variables: dict[str, ExprType] = BUILTIN_GLOBAL_VARIABLE_TYPES
        self._vars_copied = False
        self._github_copied = False
        self._errors: list[ExprError] = []

    def _ensure_vars_copied(self) -> None:
        if self._vars_copied:
            return
        # Shallow copy so that the shared global table is never modified.
        self.variables = dict(self.variables)
        self._vars_copied = True

    def _ensure_github_copied(self) -> None:
        if self._github_copied:
            return
        self._ensure_vars_copied()
        self.variables["github"] = self.variables["github"].deep_copy()
        self._github_copied = True

    def update_matrix(self, ty: ObjectType) -> None:
        """Set the type of the ``matrix`` context."""
        self._ensure_vars_copied()
        self.variables["matrix"] = ty

    def update_steps(self, ty: ObjectType) -> None:
        """Set the type of the ``steps`` context."""
        self._ensure_vars_copied()
        self.variables["steps"] = ty

    def update_needs(self, ty: ObjectType) -> None:
        """Set the type of the ``needs`` context."""
        self._ensure_vars_copied()
        self.variables["needs"] = ty

    def update_secrets(self, ty: ObjectType) -> None:
        """Set the ``secrets`` context, merged with the automatically supplied secrets."""
        self._ensure_vars_copied()
        merged = ObjectType.strict(
            {
                "github_token": StringType(),
                "actions_step_debug": StringType(),
                "actions_runner_debug": StringType(),
            }
        )
        merged.props.update(ty.props)
        self.variables["secrets"] = merged

    def update_inputs(self, ty: ObjectType) -> None:
        """Set the type of the ``inputs`` context."""
        self._ensure_vars_copied()
        self.variables["inputs"] = ty

    def update_dispatch_inputs(self, ty: ObjectType) -> None:
        """Set the type of ``github.event.inputs``."""
        self._ensure_github_copied()
        github = self.variables["github"]
        assert isinstance(github, ObjectType)
        event = github.props["event"]
        assert isinstance(event, ObjectType)
        event.props["inputs"] = ty

    def update_jobs(self, ty: ObjectType) -> None:
        """Set the type of the ``jobs`` context."""
        self._ensure_github_copied()
        self.variables["jobs"] = ty

    def _error(self, node: ExprNode, message: str) -> None:
        self._errors.append(_error_at(node, message))

    def _check_variable(self, node: VariableNode) -> ExprType:
        ty = self.variables.get(node.name)
        if ty is None:
            name = node.token.value if node.token is not None else node.name
            self._error(
                node,
                f"undefined variable {_quote(name)}. available variables are "
                f"{_sorted_quotes(self.variables)}",
            )
            return AnyType()
        return ty

    def _check_object_deref(self, node: ObjectDerefNode) -> ExprType:
        ty = self._check(node.receiver)
        prop = node.property
        if isinstance(ty, AnyType):
            return AnyType()
        if isinstance(ty, ObjectType):
            if prop in ty.props:
                return ty.props[prop]
            if ty.mapped is not None:
                return ty.mapped
            if ty.is_strict():
                self._error(node, f"property {_quote(prop)} is not defined in object type {ty}")
            return AnyType()
        if isinstance(ty, ArrayType):
            if not ty.deref:
                self._error(
                    node,
                    f"receiver of object dereference {_quote(prop)} must be type of "
                    f"object but got {_quote(str(ty))}",
                )
                return AnyType()
            elem = ty.elem
            if isinstance(elem, AnyType):
                return ty
            if isinstance(elem, ObjectType):
                mapped: ExprType = AnyType()
                if prop in elem.props:
                    mapped = elem.props[prop]
                elif elem.mapped is not None:
                    mapped = elem.mapped
                elif elem.is_strict():
                    self._error(
                        node,
                        f"property {_quote(prop)} is not defined in object type {elem} "
                        "as element of filtered array",
                    )
                return ArrayType(mapped, True)
            self._error(
                node,
                f"property filtered by {_quote(prop)} at object filtering must be type "
                f"of object but got {_quote(str(elem))}",
            )
            return AnyType()
        self._error(
            node,
            f"receiver of object dereference {_quote(prop)} must be type of object "
            f"but got {_quote(str(ty))}",
        )
        return AnyType()

    def _check_array_deref(self, node: ArrayDerefNode) -> ExprType:
        ty = self._check(node.receiver)
        if isinstance(ty, AnyType):
            return ArrayType(AnyType(), True)
        if isinstance(ty, ArrayType):
            return ArrayType(ty.elem, True)
        if isinstance(ty, ObjectType):
            # Object filtering works on objects as well as arrays.
            if ty.mapped is not None:
                mapped = ty.mapped
                if isinstance(mapped, AnyType):
                    return ArrayType(AnyType(), True)
                if isinstance(mapped, ObjectType):
                    return ArrayType(mapped, True)
                self._error(
                    node,
                    "elements of object at receiver of object filtering `.*` must be "
                    f"type of object but got {_quote(str(mapped))}. the type of receiver "
                    f"was {_quote(str(ty))}",
                )
                return AnyType()
            if not any(isinstance(t, ObjectType) for t in ty.props.values()):
                self._error(
                    node,
                    f"object type {_quote(str(ty))} cannot be filtered by object "
                    "filtering `.*` since it has no object element",
                )
                return AnyType()
            return ArrayType(AnyType(), True)
        self._error(
            node,
            "receiver of object filtering `.*` must be type of array or object but "
            f"got {_quote(str(ty))}",
        )
        return AnyType()

    def _check_index_access(self, node: IndexAccessNode) -> ExprType:
        # The index is checked before the operand so nested accesses are visited bottom-up.
        idx = self._check(node.index)
        ty = self._check(node.operand)
        if isinstance(ty, AnyType):
            return AnyType()
        if isinstance(ty, ArrayType):
            if isinstance(idx, (AnyType, NumberType)):
                return ty.elem
            self._error(
                node.index,
                f"index access of array must be type of number but got {_quote(str(idx))}",
            )
            return AnyType()
        if isinstance(ty, ObjectType):
            if isinstance(idx, AnyType):
                return AnyType()
            if isinstance(idx, StringType):
                lit = node.index
                if isinstance(lit, StringNode):
                    if lit.value in ty.props:
                        return ty.props[lit.value]
                    if ty.mapped is not None:
                        return ty.mapped
                    if ty.is_strict():
                        self._error(
                            node,
                            f"property {_quote(lit.value)} is not defined in object type {ty}",
                        )
                if ty.mapped is not None:
                    return ty.mapped
                return AnyType()
            self._error(
                node.index,
                f"property access of object must be type of string but got {_quote(str(idx))}",
            )
            return AnyType()
        self._error(
            node,
            f"index access operand must be type of object or array but got {_quote(str(ty))}",
        )
        return AnyType()

    def _check_format_call(self, node: FuncCallNode) -> None:
        lit = node.args[0]
        if not isinstance(lit, StringNode):
            return
        count = len(node.args) - 1
        holders = {int(m[1:-1]) for m in _FORMAT_PLACEHOLDER.findall(lit.value)}
        for i in range(count):
            if i not in holders:
                self._error(
                    node,
                    f"format string {_quote(lit.value)} does not contain placeholder {{{i}}}. "
                    "remove argument which is unused in the format string",
                )
                continue
            holders.discard(i)
        for i in sorted(holders):
            self._error(
                node,
                f"format string {_quote(lit.value)} contains placeholder {{{i}}} but only "
                f"{count} arguments are given to format",
            )

    def _check_func_call(self, node: FuncCallNode) -> ExprType:
        sigs = self.funcs.get(node.callee.lower())
        if sigs is None:
            self._error(
                node,
                f"undefined function {_quote(node.callee)}. available functions are "
                f"{_sorted_quotes(self.funcs)}",
            )
            return AnyType()

        args = [self._check(a) for a in node.args]

        failures: list[ExprError] = []
        for sig in sigs:
            err = _check_signature(node, sig, args)
            if err is None:
                if node.callee == "format":
                    self._check_format_call(node)
                return sig.ret
            failures.append(err)

        self._errors.extend(failures)
        return AnyType()

    def _check_not(self, node: NotOpNode) -> ExprType:
        ty = self._check(node.operand)
        if not BoolType().assignable(ty):
            self._error(
                node,
                f'type of operand of ! operator {_quote(str(ty))} is not assignable to type "bool"',
            )
        return BoolType()

    def _check(self, expr: ExprNode) -> ExprType:
        match expr:
            case VariableNode():
                return self._check_variable(expr)
            case NullNode():
                return NullType()
            case BoolNode():
                return BoolType()
            case StringNode():
                return StringType()
            case IntNode() | FloatNode():
                return NumberType()
            case ObjectDerefNode():
                return self._check_object_deref(expr)
            case ArrayDerefNode():
                return self._check_array_deref(expr)
            case IndexAccessNode():
                return self._check_index_access(expr)
            case FuncCallNode():
                return self._check_func_call(expr)
            case NotOpNode():
                return self._check_not(expr)
            case CompareOpNode():
                # Any value can be compared with any value.
                self._check(expr.left)
                self._check(expr.right)
                return BoolType()
            case LogicalOpNode():
                left = self._check(expr.left)
                right = self._check(expr.right)
                return left.merge(right)
        raise TypeError(f"unknown expression node: {expr!r}")

    def check(self, expr: ExprNode) -> tuple[ExprType, list[ExprError]]:
        """Return the type of ``expr`` and every error found while checking it."""
        self._errors = []
        ty = self._check(expr)
        errors, self._errors = self._errors, []
        return ty, errors