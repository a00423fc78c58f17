from __future__ import annotations

import unittest
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

import pytest

from ioclite import Container


class Named(Protocol):
    first: str


class InitName:
    def __init__(self):
        self.first = "Ada"


@dataclass
class DataName:
    first: str


class Nameless: ...


@runtime_checkable
class Greeter(Protocol):
    def greet(self, person: str) -> str: ...


class FriendlyGreeter:
    def greet(self, person: str) -> str:
        return f"Hello, {person}"


class PoliteGreeter:
    def greet(self, person: str, punctuation: str = ".") -> str:
        return f"Good day, {person}{punctuation}"


class MuteGreeter:
    def greet(self) -> str:
        return "..."


class FormalGreeter:
    def greet(self, person: str, title: str) -> str:
        return f"Dear {title} {person}"


class CountingGreeter:
    def greet(self, person: str) -> int:
        return len(person)


class Describable(Protocol):
    def describe(self) -> str: ...


class PersonRecord(Describable, Protocol):
    def age(self) -> int: ...


class AgeOnly:
    def age(self) -> int:
        return 36


class FullRecord:
    def describe(self) -> str:
        return "Ada, 36"

    def age(self) -> int:
        return 36


class INameSource(ABC):
    @abstractmethod
    def first(self) -> str: ...


class LookalikeSource:
    def first(self) -> str:
        return "Ada"


class TestDataMemberProtocols(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_register_instance_accepts_attribute_set_in_init(self):
        name = InitName()
        self.cont.register_instance(Named, name)
        assert self.cont.resolve(Named) is name

    def test_register_instance_accepts_dataclass_field_without_default(self):
        self.cont.register_instance(Named, DataName("Grace"))
        assert self.cont.resolve(Named).first == "Grace"

    def test_register_instance_rejects_object_without_member(self):
        with pytest.raises(TypeError, match="missing member 'first'"):
            self.cont.register_instance(Named, Nameless())

    def test_register_accepts_dataclass_implementation(self):
        self.cont.register(Named, DataName)
        assert self.cont.is_registered(Named)

    def test_register_accepts_class_assigning_member_in_init(self):
        self.cont.register(Named, InitName)
        assert self.cont.resolve(Named).first == "Ada"

    def test_register_rejects_class_without_member(self):
        with pytest.raises(TypeError):
            self.cont.register(Named, Nameless)

    def test_factory_returning_instance_with_init_attribute_resolves(self):
        self.cont.register(Named, factory=lambda _: InitName())
        assert self.cont.resolve(Named).first == "Ada"


class TestMethodProtocols(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_register_accepts_matching_method(self):
        self.cont.register(Greeter, FriendlyGreeter)
        assert self.cont.resolve(Greeter).greet("Ada") == "Hello, Ada"

    def test_register_accepts_extra_optional_parameters(self):
        self.cont.register(Greeter, PoliteGreeter)
        assert self.cont.resolve(Greeter).greet("Ada") == "Good day, Ada."

    def test_register_rejects_method_accepting_too_few_arguments(self):
        with pytest.raises(TypeError, match="greet"):
            self.cont.register(Greeter, MuteGreeter)

    def test_register_rejects_method_requiring_more_arguments(self):
        with pytest.raises(TypeError, match="greet"):
            self.cont.register(Greeter, FormalGreeter)

    def test_register_rejects_incompatible_return_type(self):
        with pytest.raises(TypeError, match="returns"):
            self.cont.register(Greeter, CountingGreeter)

    def test_register_instance_rejects_non_callable_member(self):
        class GreetingText:
            greet = "hello"

        with pytest.raises(TypeError, match="not callable"):
            self.cont.register_instance(Greeter, GreetingText())

    def test_register_checks_methods_inherited_from_parent_protocol(self):
        with pytest.raises(TypeError, match="missing method 'describe'"):
            self.cont.register(PersonRecord, AgeOnly)

    def test_register_accepts_implementation_of_whole_protocol_hierarchy(self):
        self.cont.register(PersonRecord, FullRecord)
        assert self.cont.resolve(PersonRecord).describe() == "Ada, 36"

    def test_string_return_annotations_are_evaluated_before_comparison(self):
        # this module postpones annotations, so both sides below are stored as strings
        class TextAgeRecord(FullRecord):
            def age(self) -> str:
                return "36"

        with pytest.raises(TypeError, match="returns"):
            self.cont.register(PersonRecord, TextAgeRecord)

    def test_evaluated_annotation_matches_postponed_protocol_annotation(self):
        def age(self):
            return 36

        age.__annotations__ = {"return": int}
        EagerRecord = type("EagerRecord", (FullRecord,), {"age": age})  # noqa: N806

        self.cont.register(PersonRecord, EagerRecord)
        assert self.cont.resolve(PersonRecord).age() == 36

    def test_register_accepts_nominal_protocol_subclass(self):
        class ExplicitGreeter(Greeter):
            def greet(self, person: str) -> str:
                return person

        self.cont.register(Greeter, ExplicitGreeter)
        assert isinstance(self.cont.resolve(Greeter), ExplicitGreeter)

    def test_register_accepts_any_class_for_empty_protocol(self):
        class Marker(Protocol): ...

        self.cont.register(Marker, Nameless)
        assert isinstance(self.cont.resolve(Marker), Nameless)


class TestFactoryResults(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_factory_result_checked_structurally_for_plain_protocol(self):
        self.cont.register(Describable, factory=lambda _: AgeOnly())

        with pytest.raises(TypeError, match="Factory for Describable"):
            self.cont.resolve(Describable)

    def test_factory_result_conforming_to_plain_protocol_resolves(self):
        record = FullRecord()
        self.cont.register(Describable, factory=lambda _: record)
        assert self.cont.resolve(Describable) is record

    def test_factory_result_conforming_to_runtime_protocol_resolves(self):
        self.cont.register(Greeter, factory=lambda _: FriendlyGreeter())
        assert isinstance(self.cont.resolve(Greeter), FriendlyGreeter)

    def test_factory_result_failing_runtime_protocol_raises(self):
        self.cont.register(Greeter, factory=lambda _: Nameless())

        with pytest.raises(TypeError):
            self.cont.resolve(Greeter)

    def test_factory_result_with_wrong_arity_raises(self):
        self.cont.register(Greeter, factory=lambda _: MuteGreeter())

        with pytest.raises(TypeError):
            self.cont.resolve(Greeter)

    def test_failed_factory_result_is_not_cached(self):
        results = iter([Nameless(), FriendlyGreeter()])
        self.cont.register(Greeter, factory=lambda _: next(results))

        with pytest.raises(TypeError):
            self.cont.resolve(Greeter)
        assert isinstance(self.cont.resolve(Greeter), FriendlyGreeter)


class TestNominalContracts(unittest.TestCase):
    cont: Container

    def setUp(self):
        self.cont = Container()

    def test_register_rejects_lookalike_of_abc(self):
        with pytest.raises(TypeError, match="must be a subclass of INameSource"):
            self.cont.register(INameSource, LookalikeSource)

    def test_register_instance_rejects_lookalike_of_abc(self):
        with pytest.raises(TypeError):
            self.cont.register_instance(INameSource, LookalikeSource())

    def test_register_rejects_non_class_implementation(self):
        with pytest.raises(TypeError, match="must be a class"):
            self.cont.register(INameSource, LookalikeSource())  # type: ignore[call-overload]

    def test_rejected_registration_leaves_table_untouched(self):
        with pytest.raises(TypeError):
            self.cont.register(Greeter, MuteGreeter)
        assert not self.cont.is_registered(Greeter)
