import pytest

from flowlint.exprtype import (
    AnyType,
    ArrayType,
    BoolType,
    NullType,
    NumberType,
    ObjectType,
    StringType,
    equal_types,
)


def test_mapping_object_type():
    o = ObjectType.mapping(StringType())
    assert o.props == {}
    assert o.mapped == StringType()
    assert not o.is_strict()


def test_object_type_set_strict_and_loose():
    o = ObjectType.empty()
    assert not o.is_strict() and o.is_loose()
    o.make_strict()
    assert o.is_strict() and not o.is_loose()
    o.make_loose()
    assert not o.is_strict() and o.is_loose()


SIMPLE_TYPES = [
    AnyType(),
    NullType(),
    NumberType(),
    BoolType(),
    StringType(),
    ObjectType.loose({"n": NumberType()}),
    ObjectType.strict({"b": BoolType()}),
    ObjectType.mapping(NullType()),
    ArrayType(StringType()),
]


@pytest.mark.parametrize("ty", SIMPLE_TYPES, ids=str)
def test_assignable_simple(ty):
    assert ty.assignable(ty)
    if not isinstance(ty, (NullType, AnyType)):
        assert not NullType().assignable(ty)
    assert AnyType().assignable(ty)


@pytest.mark.parametrize(
    "source, target, ok",
    [
        (ObjectType.mapping(NumberType()), ObjectType.mapping(StringType()), True),
        (ObjectType.empty(), ObjectType.mapping(StringType()), True),
        (ObjectType.mapping(StringType()), ObjectType.empty(), True),
        (
            ObjectType.strict({"a": NumberType(), "b": StringType()}),
            ObjectType.mapping(StringType()),
            True,
        ),
        (ObjectType.strict({"a": NullType()}), ObjectType.mapping(StringType()), False),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.strict({"a": AnyType(), "b": StringType()}),
            True,
        ),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.strict({"a": NullType(), "b": StringType()}),
            False,
        ),
        (
            ObjectType.strict({"a": NumberType()}),
            ObjectType.strict({"a": StringType()}),
            True,
        ),
        (
            ObjectType.strict({"a": StringType()}),
            ObjectType.strict({"b": StringType()}),
            False,
        ),
        (
            ObjectType.strict({"a": NullType()}),
            ObjectType.strict({"a": StringType()}),
            False,
        ),
    ],
)
def test_assignable_object(source, target, ok):
    assert target.assignable(source) is ok


@pytest.mark.parametrize(
    "ty, neq, eq",
    [
        (NullType(), StringType(), None),
        (NumberType(), StringType(), None),
        (BoolType(), StringType(), None),
        (StringType(), BoolType(), None),
        (ObjectType.empty(), ArrayType(AnyType()), None),
        (ObjectType.empty_strict(), ArrayType(AnyType()), None),
        (
            ObjectType.loose({"foo": ObjectType.loose({"bar": StringType()})}),
            ArrayType(AnyType()),
            None,
        ),
        (
            ObjectType.strict({"foo": ObjectType.strict({"bar": StringType()})}),
            ArrayType(AnyType()),
            None,
        ),
        (
            ObjectType.strict({"foo": StringType()}),
            ObjectType.strict({"bar": StringType()}),
            None,
        ),
        (
            ObjectType.strict({"foo": StringType()}),
            ObjectType.strict({"foo": BoolType()}),
            None,
        ),
        (
            ObjectType.strict({"foo": NullType()}),
            None,
            ObjectType.loose({"foo": NullType()}),
        ),
        (
            ObjectType.loose({"foo": NullType()}),
            None,
            ObjectType.loose({"foo": NullType()}),
        ),
        (
            ObjectType.mapping(NullType()),
            ObjectType.mapping(NumberType()),
            ObjectType.mapping(NullType()),
        ),
        (ObjectType.mapping(StringType()), None, ObjectType.empty()),
        (ObjectType.empty(), None, ObjectType.mapping(StringType())),
        (
            ObjectType.mapping(StringType()),
            ObjectType.strict({"foo": NullType()}),
            ObjectType.strict({"foo": StringType()}),
        ),
        (
            ObjectType.mapping(StringType()),
            ObjectType.strict({"foo": NullType(), "bar": AnyType()}),
            ObjectType.strict({"foo": StringType(), "bar": AnyType()}),
        ),
        (
            ObjectType.strict({"foo": StringType()}),
            ObjectType.mapping(NullType()),
            ObjectType.mapping(StringType()),
        ),
        (ArrayType(StringType()), ObjectType.empty(), None),
        (ArrayType(StringType()), ArrayType(BoolType()), None),
        (
            ArrayType(ArrayType(StringType())),
            ArrayType(ArrayType(BoolType())),
            None,
        ),
    ],
)
def test_equal_types(ty, neq, eq):
    assert equal_types(ty, ty)
    if neq is not None:
        assert not equal_types(ty, neq)
    if eq is not None:
        assert equal_types(ty, eq)
    assert equal_types(ty, AnyType())
    assert equal_types(AnyType(), ty)


@pytest.mark.parametrize(
    "ty, want",
    [
        (AnyType(), "any"),
        (NullType(), "null"),
        (NumberType(), "number"),
        (BoolType(), "bool"),
        (StringType(), "string"),
        (ObjectType.empty(), "object"),
        (ObjectType.empty_strict(), "{}"),
        (ObjectType.strict({"foo": StringType()}), "{foo: string}"),
        (ObjectType.loose({"foo": StringType()}), "object"),
        (ArrayType(AnyType()), "array<any>"),
        (ArrayType(ArrayType(BoolType(), True)), "array<array<bool>>"),
        (
            ObjectType.strict(
                {"foo": ArrayType(ObjectType.strict({"bar": ArrayType(StringType())}))}
            ),
            "{foo: array<{bar: array<string>}>}",
        ),
        (ObjectType.mapping(NumberType()), "{string => number}"),
    ],
)
def test_type_to_string(ty, want):
    assert str(ty) == want


MERGE_SIMPLE = [
    AnyType(),
    NullType(),
    NumberType(),
    BoolType(),
    StringType(),
    ObjectType.empty(),
    ObjectType.empty_strict(),
    ObjectType.mapping(NullType()),
    ArrayType(StringType()),
]


@pytest.mark.parametrize("ty", MERGE_SIMPLE, ids=str)
def test_merge_with_any(ty):
    assert ty.merge(AnyType()) == AnyType()
    assert AnyType().merge(ty) == AnyType()


@pytest.mark.parametrize("ty", MERGE_SIMPLE, ids=str)
def test_merge_incompatible(ty):
    other = StringType() if ty == NullType() else NullType()
    assert ty.merge(other) == AnyType()


@pytest.mark.parametrize("ty", MERGE_SIMPLE, ids=str)
def test_merge_self(ty):
    merged = ty.merge(ty)
    assert merged == ty
    assert equal_types(merged, ty)


@pytest.mark.parametrize(
    "ty, with_, want",
    [
        (NumberType(), StringType(), StringType()),
        (StringType(), NumberType(), StringType()),
        (BoolType(), StringType(), StringType()),
        (StringType(), BoolType(), StringType()),
        (
            ObjectType.loose({"foo": NumberType()}),
            ObjectType.loose({"bar": StringType()}),
            ObjectType.loose({"foo": NumberType(), "bar": StringType()}),
        ),
        (
            ObjectType.loose({"foo": NumberType()}),
            ObjectType.strict({"bar": StringType()}),
            ObjectType.loose({"foo": NumberType(), "bar": StringType()}),
        ),
        (
            ObjectType.strict({"foo": NumberType()}),
            ObjectType.strict({"bar": StringType()}),
            ObjectType.strict({"foo": NumberType(), "bar": StringType()}),
        ),
        (
            ObjectType.loose({"foo": NumberType()}),
            ObjectType.loose({"foo": StringType()}),
            ObjectType.loose({"foo": StringType()}),
        ),
        (
            ObjectType.loose({"foo": AnyType()}),
            ObjectType.loose({"foo": StringType()}),
            ObjectType.loose({"foo": AnyType()}),
        ),
        (
            ObjectType.loose({"foo": StringType()}),
            ObjectType.loose({"foo": AnyType()}),
            ObjectType.loose({"foo": AnyType()}),
        ),
        (
            ObjectType.loose({"foo": NullType()}),
            ObjectType.loose({"foo": StringType()}),
            ObjectType.loose({"foo": AnyType()}),
        ),
        (ArrayType(NumberType()), ArrayType(StringType()), ArrayType(StringType())),
        (ArrayType(NullType()), ArrayType(StringType()), ArrayType(AnyType())),
        (ArrayType(AnyType()), ArrayType(StringType()), ArrayType(AnyType())),
        (ArrayType(StringType()), ArrayType(AnyType()), ArrayType(AnyType())),
        (
            ArrayType(StringType(), False),
            ArrayType(StringType(), True),
            ArrayType(StringType(), False),
        ),
        (
            ArrayType(StringType(), True),
            ArrayType(StringType(), False),
            ArrayType(StringType(), False),
        ),
        (
            ArrayType(StringType(), True),
            ArrayType(StringType(), True),
            ArrayType(StringType(), False),
        ),
        (
            ObjectType.empty(),
            ObjectType.loose({"foo": StringType()}),
            ObjectType.loose({"foo": StringType()}),
        ),
        (
            ObjectType.loose({"foo": StringType()}),
            ObjectType.empty(),
            ObjectType.loose({"foo": StringType()}),
        ),
        (
            ArrayType(AnyType(), False),
            ArrayType(StringType(), False),
            ArrayType(AnyType(), False),
        ),
        (
            ArrayType(StringType(), False),
            ArrayType(AnyType(), False),
            ArrayType(AnyType(), False),
        ),
        (
            ArrayType(ArrayType(NumberType())),
            ArrayType(ArrayType(StringType())),
            ArrayType(ArrayType(StringType())),
        ),
        (
            ObjectType.loose(
                {
                    "foo": ObjectType.loose({"foo": NumberType(), "piyo": NumberType()}),
                    "aaa": NumberType(),
                    "ccc": NumberType(),
                }
            ),
            ObjectType.loose(
                {
                    "foo": ObjectType.loose({"bar": StringType(), "piyo": StringType()}),
                    "bbb": StringType(),
                    "ccc": StringType(),
                }
            ),
            ObjectType.loose(
                {
                    "foo": ObjectType.loose(
                        {"foo": NumberType(), "bar": StringType(), "piyo": StringType()}
                    ),
                    "aaa": NumberType(),
                    "bbb": StringType(),
                    "ccc": StringType(),
                }
            ),
        ),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.mapping(StringType()),
            ObjectType.mapping(StringType()),
        ),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.mapping(NullType()),
            ObjectType.empty(),
        ),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.loose({"foo": NumberType()}),
            ObjectType.loose({"foo": NumberType()}),
        ),
        (
            ObjectType.mapping(NumberType()),
            ObjectType.loose({"foo": BoolType()}),
            ObjectType.loose({"foo": BoolType()}),
        ),
    ],
)
def test_merge_complicated(ty, with_, want):
    assert with_.merge(ty) == want


def test_merge_array_creates_new_instance():
    ty = ArrayType(NumberType())
    merged = ty.merge(ArrayType(StringType()))
    assert merged is not ty
    assert ty.elem == NumberType()
    assert merged == ArrayType(StringType())


def test_merge_object_creates_new_instance():
    ty = ObjectType.loose({"foo": NumberType()})
    merged = ty.merge(ObjectType.loose({"foo": StringType(), "bar": BoolType()}))
    assert merged is not ty
    assert ty.props == {"foo": NumberType()}
    assert merged == ObjectType.loose({"foo": StringType(), "bar": BoolType()})


@pytest.mark.parametrize(
    "ty", [AnyType(), NullType(), BoolType(), StringType(), NumberType()], ids=str
)
def test_deep_copy_simple(ty):
    assert ty.deep_copy() == ty


def test_deep_copy_object():
    nested = ObjectType.loose({"piyo": StringType()})
    o = ObjectType.loose({"foo": NumberType(), "bar": nested})

    o2 = o.deep_copy()
    assert o2.props["foo"] == NumberType()
    nested2 = o2.props["bar"]
    assert nested2.props["piyo"] == StringType()
    assert o2.mapped == AnyType()

    o2.props["foo"] = BoolType()
    o2.mapped = NumberType()
    nested2.props["piyo"] = NullType()
    assert o.props["foo"] == NumberType()
    assert nested.props["piyo"] == StringType()
    assert o.mapped == AnyType()


def test_deep_copy_array():
    nested = ArrayType(StringType(), False)
    arr = ArrayType(nested, False)

    arr2 = arr.deep_copy()
    nested2 = arr2.elem
    assert nested2.elem == StringType()

    nested2.elem = NullType()
    assert nested.elem == StringType()