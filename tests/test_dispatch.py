import pytest

from composed import (
    AmbiguousMatchError,
    DiscriminatorUnresolvedError,
    NoMatchError,
    NullNotAllowedError,
    UnresolvedTypeIdError,
)
from composed.codec import DecodeError
from composed.dispatch import dispatch, resolve
from petstore import (
    BasquePig,
    EquilateralTriangle,
    FruitReq,
    Mammal,
    MatchedMammal,
    NullableShape,
    Pig,
    Quadrilateral,
    Shape,
    ShapeOrNull,
    SimpleQuadrilateral,
    StrictMammal,
    Triangle,
    Whale,
    Zebra,
    ZebraType,
)


# ----- mapped discriminator -----


def test_dispatch_whale():
    mammal = Mammal.decode({"className": "whale", "hasBaleen": True, "hasTeeth": False})
    assert mammal.variant == "Whale"
    assert mammal.instance == Whale(hasBaleen=True, hasTeeth=False, className="whale")


def test_dispatch_wins_over_matching():
    mammal = Mammal.decode({"className": "zebra", "hasBaleen": True, "hasTeeth": False})
    assert mammal.variant == "Zebra"
    zebra = mammal.instance
    assert isinstance(zebra, Zebra)
    assert zebra.className == "zebra"
    assert zebra.additional_properties == {"hasBaleen": True, "hasTeeth": False}


def test_dispatch_enum():
    mammal = Mammal.decode({"className": "zebra", "type": "plains"})
    assert mammal.instance.type is ZebraType.PLAINS


def test_dispatch_candidate_error_propagates():
    with pytest.raises(DecodeError) as excinfo:
        Mammal.decode({"className": "zebra", "type": "garbage_value"})
    assert excinfo.value.path == ["type"]


def test_dispatch_case_sensitive():
    with pytest.raises(DiscriminatorUnresolvedError):
        StrictMammal.decode({"className": "Whale", "hasBaleen": True})


def test_dispatch_returns_candidate():
    descriptor = Mammal.descriptor()
    candidate, value = dispatch(descriptor, {"className": "whale"})
    assert candidate.name == "Whale"
    assert value == Whale(hasBaleen=None, hasTeeth=None, className="whale")


# ----- fallback -----


def test_miss_falls_through_to_matching():
    with pytest.raises(AmbiguousMatchError) as excinfo:
        Mammal.decode({"className": "orca", "hasBaleen": False, "hasTeeth": True})
    assert excinfo.value.count == 2


def test_missing_property_falls_through_to_matching():
    with pytest.raises(NoMatchError) as excinfo:
        Mammal.decode({"hasBaleen": True})
    assert str(excinfo.value) == (
        "Failed deserialization for Mammal: 0 classes match result, expected 1"
    )


def test_non_string_tag_is_a_miss():
    with pytest.raises(DiscriminatorUnresolvedError) as excinfo:
        StrictMammal.decode({"className": 1})
    assert excinfo.value.type_id is None


def test_miss_fails():
    with pytest.raises(DiscriminatorUnresolvedError) as excinfo:
        StrictMammal.decode({"className": "Garbage"})
    assert excinfo.value.type_id == "Garbage"
    assert str(excinfo.value) == "Failed to lookup discriminator value 'Garbage' for StrictMammal"


def test_missing_property_fails():
    with pytest.raises(DiscriminatorUnresolvedError) as excinfo:
        StrictMammal.decode({"hasBaleen": True})
    assert str(excinfo.value) == (
        "Failed to lookup discriminator property 'className' for StrictMammal"
    )


def test_unresolved_is_unresolved_type_id():
    with pytest.raises(UnresolvedTypeIdError):
        StrictMammal.decode({"className": "Garbage"})


def test_lookup_disabled():
    with pytest.raises(AmbiguousMatchError) as excinfo:
        MatchedMammal.decode({"className": "zebra", "hasBaleen": True, "hasTeeth": False})
    assert excinfo.value.count == 2
    assert "Failed deserialization for MatchedMammal: 2 classes match result" in str(
        excinfo.value
    )


def test_lookup_disabled_ignores_tag():
    mammal = MatchedMammal.decode({"className": "whale", "hasBaleen": "yes"})
    assert mammal.variant == "Zebra"
    assert mammal.instance.additional_properties == {"hasBaleen": "yes"}


def test_resolve_without_discriminator():
    candidate, value = resolve(FruitReq.descriptor(), {"lengthCm": 3})
    assert candidate.name == "BananaReq"


def test_null_not_dispatched():
    with pytest.raises(NullNotAllowedError):
        Mammal.decode(None)


# ----- nested composed candidates -----


def test_dispatch_nested_composed():
    mammal = Mammal.decode({"className": "BasquePig"})
    assert mammal.variant == "Pig"
    pig = mammal.instance
    assert isinstance(pig, Pig)
    assert pig.variant == "BasquePig"
    assert pig.instance == BasquePig(className="BasquePig")


def test_dispatch_nested_strict():
    with pytest.raises(DecodeError) as excinfo:
        Mammal.decode({"className": "BasquePig", "color": "pink"})
    assert "unexpected properties: color" in str(excinfo.value)


def test_dispatch_multiple_levels():
    shape = Shape.decode({"shapeType": "Triangle", "triangleType": "EquilateralTriangle"})
    assert shape.variant == "Triangle"
    assert shape.instance.variant == "EquilateralTriangle"
    assert shape.instance.instance == EquilateralTriangle(
        shapeType="Triangle", triangleType="EquilateralTriangle"
    )


def test_dispatch_multiple_levels_quadrilateral():
    shape = Shape.decode({"shapeType": "Quadrilateral", "quadrilateralType": "SimpleQuadrilateral"})
    assert shape.instance.instance == SimpleQuadrilateral(
        shapeType="Quadrilateral", quadrilateralType="SimpleQuadrilateral"
    )


def test_dispatch_nested_error_names_nested_schema():
    with pytest.raises(AmbiguousMatchError) as excinfo:
        Shape.decode({"shapeType": "Triangle", "triangleType": "Garbage"})
    assert excinfo.value.schema == "Triangle"
    assert excinfo.value.count == 3


def test_dispatch_wrong_level():
    with pytest.raises(NoMatchError) as excinfo:
        Quadrilateral.decode({"shapeType": "Triangle", "triangleType": "EquilateralTriangle"})
    assert str(excinfo.value) == (
        "Failed deserialization for Quadrilateral: 0 classes match result, expected 1"
    )


def test_triangle_directly():
    triangle = Triangle.decode({"shapeType": "Triangle", "triangleType": "IsoscelesTriangle"})
    assert triangle.variant == "IsoscelesTriangle"


# ----- nullable -----


def test_shape_null():
    with pytest.raises(NullNotAllowedError) as excinfo:
        Shape.decode(None)
    assert str(excinfo.value) == "Shape cannot be null"


def test_nullable_shape_null():
    assert NullableShape.decode(None).instance is None


def test_shape_or_null_null():
    shape = ShapeOrNull.decode(None)
    assert shape.instance is None
    assert shape.variant is None
    assert ShapeOrNull.descriptor().nullable
