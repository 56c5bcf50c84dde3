import pytest
import threading

from composed import Kind
from composed.data import datacls
from composed.registry import Registry, RegistryError
from composed.schema import CompositionDescriptor, TypeDescriptor
from types import MappingProxyType


class Fruit:
    pass


@datacls
class Apple:
    cultivar: str | None


@datacls
class Banana:
    lengthCm: int | None


@datacls
class Pet:
    pet_type: str | None


@datacls
class Cat(Pet):
    name: str | None


@datacls
class Kitten(Cat):
    age: int | None


def _fruit(python_type=Fruit, kind=Kind.ONE_OF):
    return CompositionDescriptor(
        name=python_type.__name__,
        python_type=python_type,
        kind=kind,
        candidates=(TypeDescriptor.of(Apple), TypeDescriptor.of(Banana)),
    )


# ----- composed types -----


def test_register_get():
    registry = Registry()
    descriptor = _fruit()
    registry.register(descriptor)
    assert registry.get(Fruit) is descriptor
    assert Fruit in registry
    assert list(registry) == [Fruit]
    assert len(registry) == 1


def test_get_unregistered():
    registry = Registry()
    with pytest.raises(LookupError):
        registry.get(Fruit)
    assert Fruit not in registry


def test_get_unhashable():
    registry = Registry()
    with pytest.raises(LookupError):
        registry.get([])
    assert [] not in registry


def test_register_duplicate():
    registry = Registry()
    registry.register(_fruit())
    with pytest.raises(RegistryError):
        registry.register(_fruit())


def test_register_all_of():
    registry = Registry()
    with pytest.raises(RegistryError):
        registry.register(_fruit(kind=Kind.ALL_OF))


def test_duplicate_candidate_names():
    with pytest.raises(ValueError):
        CompositionDescriptor(
            name="Fruit",
            python_type=Fruit,
            kind=Kind.ANY_OF,
            candidates=(TypeDescriptor.of(Apple), TypeDescriptor.of(Apple)),
        )


def test_candidate():
    descriptor = _fruit()
    assert descriptor.candidate("Banana").python_type is Banana
    assert descriptor.candidate("Cherry") is None


# ----- lifecycle -----


def test_freeze():
    registry = Registry()
    registry.register(_fruit())
    assert not registry.frozen
    registry.freeze()
    assert registry.frozen
    assert registry.get(Fruit).name == "Fruit"

    class Vegetable:
        pass

    with pytest.raises(RegistryError):
        registry.register(_fruit(Vegetable))
    with pytest.raises(RegistryError):
        registry.register_subtype(Pet, "Pet", "pet_type")
    assert Vegetable not in registry


def test_snapshot_read_only():
    registry = Registry()
    registry.register(_fruit())
    snapshot = registry._snapshot
    assert isinstance(snapshot, MappingProxyType)
    with pytest.raises(TypeError):
        snapshot[Apple] = None


def test_snapshot_not_replaced_entries():
    registry = Registry()
    descriptor = _fruit()
    registry.register(descriptor)
    before = registry._snapshot

    class Vegetable:
        pass

    registry.register(_fruit(Vegetable))
    assert Vegetable not in before
    assert registry.get(Fruit) is descriptor


def test_concurrent_registration():
    registry = Registry()
    types = [type(f"Fruit{n}", (), {}) for n in range(50)]
    threads = [
        threading.Thread(target=registry.register, args=(_fruit(t),)) for t in types
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()
    assert len(registry) == 50
    assert all(t in registry for t in types)


# ----- subtypes -----


def test_register_subtypes():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    registry.register_subtype(Kitten, "Kitten", "pet_type")
    descriptor = registry.get(Pet)
    assert descriptor.kind is Kind.ALL_OF
    assert [c.name for c in descriptor.candidates] == ["Pet", "Cat", "Kitten"]
    assert descriptor.discriminator.property_name == "pet_type"
    assert descriptor.discriminator.resolve({"pet_type": "Kitten"}).python_type is Kitten


def test_subtree():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    registry.register_subtype(Kitten, "Kitten", "pet_type")
    assert set(registry.get(Cat).discriminator.mapping) == {"Cat", "Kitten"}
    assert set(registry.get(Kitten).discriminator.mapping) == {"Kitten"}


def test_nested_discriminator():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    registry.register_subtype(Kitten, "Kitten", "pet_type")
    mapping = registry.get(Pet).discriminator.mapping
    assert set(mapping["Cat"].discriminator.mapping) == {"Cat", "Kitten"}
    assert mapping["Kitten"].discriminator is None


def test_descriptors_derived_on_registration():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    before = registry.get(Pet)
    registry.register_subtype(Cat, "Cat", "pet_type")
    assert set(before.discriminator.mapping) == {"Pet"}
    assert set(registry.get(Pet).discriminator.mapping) == {"Pet", "Cat"}


def test_duplicate_type_id():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    with pytest.raises(RegistryError):
        registry.register_subtype(Kitten, "Cat", "pet_type")
    assert Kitten not in registry


def test_duplicate_subtype():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    with pytest.raises(RegistryError):
        registry.register_subtype(Pet, "Animal", "pet_type")


def test_intermediate_is_leaf_of_own_mapping():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    registry.register_subtype(Kitten, "Kitten", "pet_type")
    assert registry.get(Cat).discriminator.mapping["Cat"].discriminator is None
    nested = registry.get(Pet).discriminator.mapping["Cat"].discriminator
    assert nested.mapping["Cat"].discriminator is None
    assert nested.mapping["Kitten"].python_type is Kitten


def test_deep_hierarchy():
    registry = Registry()
    chain = [Pet]
    registry.register_subtype(Pet, "Level0", "pet_type")
    for n in range(1, 60):
        chain.append(type(f"Level{n}", (chain[-1],), {}))
        registry.register_subtype(chain[-1], f"Level{n}", "pet_type")
    descriptor = registry.get(Pet)
    assert len(descriptor.candidates) == 60
    assert descriptor.discriminator.resolve({"pet_type": "Level59"}).python_type is chain[-1]
    assert len(registry.get(chain[30]).discriminator.mapping) == 30


def test_failed_subtype_leaves_registry_unchanged():
    registry = Registry()
    registry.register_subtype(Pet, "Pet", "pet_type")
    registry.register_subtype(Cat, "Cat", "pet_type")
    before = registry._snapshot
    impostor = type("Cat", (Pet,), {})
    with pytest.raises(ValueError):
        registry.register_subtype(impostor, "Tabby", "pet_type")
    assert impostor not in registry
    assert registry._snapshot is before
    registry.register_subtype(Kitten, "Kitten", "pet_type")
    assert set(registry.get(Pet).discriminator.mapping) == {"Pet", "Cat", "Kitten"}
