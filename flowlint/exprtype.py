"""Static types of values that appear in workflow expressions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


class ExprType(ABC):
    """Type of a value in an expression."""

    @abstractmethod
    def __str__(self) -> str:
        """Return the human readable form of the type."""

    @abstractmethod
    def assignable(self, other: ExprType) -> bool:
        """Return whether a value of ``other`` type can be assigned to this type."""

    @abstractmethod
    def merge(self, other: ExprType) -> ExprType:
        """Merge ``other`` into this type; conflicting types fall back to any."""

    @abstractmethod
    def deep_copy(self) -> ExprType:
        """Return a copy of this type with all child types copied recursively."""


@dataclass(frozen=True)
class AnyType(ExprType):
    """Type which can be anything; such values cannot be checked statically."""

    def __str__(self) -> str:
        return "any"

    def assignable(self, other: ExprType) -> bool:
        return True

    def merge(self, other: ExprType) -> ExprType:
        return self

    def deep_copy(self) -> ExprType:
        return self


@dataclass(frozen=True)
class NullType(ExprType):
    """Type of the null value."""

    def __str__(self) -> str:
        return "null"

    def assignable(self, other: ExprType) -> bool:
        return isinstance(other, (NullType, AnyType))

    def merge(self, other: ExprType) -> ExprType:
        if isinstance(other, NullType):
            return self
        return AnyType()

    def deep_copy(self) -> ExprType:
        return self


@dataclass(frozen=True)
class NumberType(ExprType):
    """Type of integer and float values."""

    def __str__(self) -> str:
        return "number"

    def assignable(self, other: ExprType) -> bool:
        return isinstance(other, (NumberType, AnyType))

    def merge(self, other: ExprType) -> ExprType:
        if isinstance(other, NumberType):
            return self
        if isinstance(other, StringType):
            return other
        return AnyType()

    def deep_copy(self) -> ExprType:
        return self


@dataclass(frozen=True)
class BoolType(ExprType):
    """Type of boolean values."""

    def __str__(self) -> str:
        return "bool"

    def assignable(self, other: ExprType) -> bool:
        # Every value can be coerced into bool.
        return True

    def merge(self, other: ExprType) -> ExprType:
        if isinstance(other, BoolType):
            return self
        if isinstance(other, StringType):
            return other
        return AnyType()

    def deep_copy(self) -> ExprType:
        return self


@dataclass(frozen=True)
class StringType(ExprType):
    """Type of string values."""

    def __str__(self) -> str:
        return "string"

    def assignable(self, other: ExprType) -> bool:
        # Bool and null could be coerced too, but that is almost always a mistake.
        return isinstance(other, (StringType, NumberType, AnyType))

    def merge(self, other: ExprType) -> ExprType:
        if isinstance(other, (StringType, NumberType, BoolType)):
            return self
        return AnyType()

    def deep_copy(self) -> ExprType:
        return self


@dataclass
class ObjectType(ExprType):
    """Type of objects holding key-value pairs.

    ``mapped`` is the type of properties not listed in ``props``: ``AnyType``
    makes a loose object, ``None`` a strict one which allows no unknown props.
    """

    props: dict[str, ExprType] = field(default_factory=dict)
    mapped: ExprType | None = None

    @classmethod
    def empty(cls) -> ObjectType:
        """Create a loose object without known properties."""
        return cls({}, AnyType())

    @classmethod
    def loose(cls, props: dict[str, ExprType]) -> ObjectType:
        """Create a loose object with the given properties."""
        return cls(dict(props), AnyType())

    @classmethod
    def empty_strict(cls) -> ObjectType:
        """Create a strict object without properties."""
        return cls({}, None)

    @classmethod
    def strict(cls, props: dict[str, ExprType]) -> ObjectType:
        """Create a strict object with the given properties."""
        return cls(dict(props), None)

    @classmethod
    def mapping(cls, mapped: ExprType) -> ObjectType:
        """Create an object which maps every key to ``mapped``."""
        return cls({}, mapped)

    def is_strict(self) -> bool:
        return self.mapped is None

    def is_loose(self) -> bool:
        return isinstance(self.mapped, AnyType)

    def make_strict(self) -> None:
        self.mapped = None

    def make_loose(self) -> None:
        self.mapped = AnyType()

    def __str__(self) -> str:
        if not self.is_strict():
            if self.is_loose():
                return "object"
            return f"{{string => {self.mapped}}}"
        body = "; ".join(f"{name}: {ty}" for name, ty in self.props.items())
        return f"{{{body}}}"

    def assignable(self, other: ExprType) -> bool:
        if isinstance(other, AnyType):
            return True
        if not isinstance(other, ObjectType):
            return False
        if not self.is_strict():
            if not other.is_strict():
                return self.mapped.assignable(other.mapped)
            return all(self.mapped.assignable(t) for t in other.props.values())
        if not other.is_strict():
            return all(t.assignable(other.mapped) for t in self.props.values())
        return all(
            name in self.props and self.props[name].assignable(r)
            for name, r in other.props.items()
        )

    def merge(self, other: ExprType) -> ExprType:
        if not isinstance(other, ObjectType):
            return AnyType()
        if not self.props and other.is_loose():
            return other
        if not other.props and self.is_loose():
            return self

        mapped = self.mapped
        if mapped is None:
            mapped = other.mapped
        elif other.mapped is not None:
            mapped = mapped.merge(other.mapped)

        props = dict(self.props)
        for name, right in other.props.items():
            if name in props:
                props[name] = props[name].merge(right)
            else:
                props[name] = right
                if mapped is not None:
                    mapped = mapped.merge(right)

        return ObjectType(props, mapped)

    def deep_copy(self) -> ExprType:
        props = {name: ty.deep_copy() for name, ty in self.props.items()}
        mapped = self.mapped.deep_copy() if self.mapped is not None else None
        return ObjectType(props, mapped)


@dataclass
class ArrayType(ExprType):
    """Type of arrays. ``deref`` is set when derived from object filtering (``foo.*``)."""

    elem: ExprType
    deref: bool = False

    def __str__(self) -> str:
        return f"array<{self.elem}>"

    def assignable(self, other: ExprType) -> bool:
        if isinstance(other, AnyType):
            return True
        if isinstance(other, ArrayType):
            return self.elem.assignable(other.elem)
        return False

    def merge(self, other: ExprType) -> ExprType:
        if not isinstance(other, ArrayType):
            return AnyType()
        if isinstance(self.elem, AnyType):
            return self
        if isinstance(other.elem, AnyType):
            return other
        # Merging breaks a property dereference chain, so deref is reset.
        return ArrayType(self.elem.merge(other.elem), False)

    def deep_copy(self) -> ExprType:
        return ArrayType(self.elem.deep_copy(), self.deref)


def equal_types(left: ExprType, right: ExprType) -> bool:
    """Return whether two types are assignable to each other."""
    return left.assignable(right) and right.assignable(left)