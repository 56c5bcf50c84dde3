import pytest

from composed.data import datacls
from dataclasses import field
from typing import Optional


def test_datacls_optional():
    @datacls
    class Foo:
        x: Optional[int]

    foo = Foo()
    assert foo.x == None


def test_datacls_default():
    @datacls
    class Foo:
        x: int = 1

    foo = Foo()
    assert foo.x == 1


def test_datacls_field_default():
    @datacls
    class Foo:
        x: int = field(default=1)

    foo = Foo()
    assert foo.x == 1


def test_datacls_field_default_factory():
    @datacls
    class Foo:
        x: dict = field(default_factory=dict)

    foo = Foo()
    assert foo.x == {}


def test_datacls_any_order():
    @datacls
    class Foo:
        x: int = 1
        y: str

    foo = Foo(y="a")
    assert (foo.x, foo.y) == (1, "a")


def test_datacls_missing_required():
    @datacls
    class Foo:
        x: int
        y: str

    with pytest.raises(TypeError) as excinfo:
        Foo()
    assert "missing 2 required keyword-only arguments: 'x' and 'y'" in str(excinfo.value)


def test_datacls_unexpected_keyword():
    @datacls
    class Foo:
        x: Optional[int]

    with pytest.raises(TypeError):
        Foo(y=1)


def test_datacls_keyword_only():
    @datacls
    class Foo:
        x: Optional[int]

    with pytest.raises(TypeError):
        Foo(1)


def test_datacls_permissive_default():
    @datacls
    class Foo:
        x: Optional[int]

    assert Foo.__strict__ is False


def test_datacls_strict():
    @datacls(strict=True)
    class Foo:
        x: Optional[int]

    assert Foo.__strict__ is True
    assert Foo(x=1).x == 1


def test_datacls_strict_inherited():
    @datacls(strict=True)
    class Foo:
        x: Optional[int]

    @datacls
    class Bar(Foo):
        y: Optional[int]

    @datacls(strict=False)
    class Qux(Foo):
        z: Optional[int]

    assert Bar.__strict__ is True
    assert Qux.__strict__ is False


def test_datacls_init_false():
    @datacls(init=False)
    class Foo:
        x: Optional[int]

    foo = Foo()
    assert not hasattr(foo, "x")
