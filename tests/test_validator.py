"""Tests for the recursive validation engine."""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

import pytest

import mocks
from bvalid import (
    ArgumentError,
    DispatchError,
    InvocationError,
    ObjectResult,
    RuleResult,
    ValidatorBuilder,
)


class TestPersonScenario:
    """Test the Person/phones end-to-end scenario."""

    def test_person_with_bad_country_code_is_invalid(self, person_validator):
        """Test the second phone fails on its country code."""
        result = person_validator.validate(mocks.john())

        assert isinstance(result, ObjectResult)
        assert result.is_valid() is False
        rule_result = result.get_rule_result("Person.phones[1] [countryCodeValid]")
        assert rule_result is not None
        assert rule_result.is_valid() is False
        assert result.get_rule_result("Person.phones[0] [countryCodeValid]").is_valid() is True

    def test_result_tree_shape(self, person_validator):
        """Test names and rule counts of the result tree."""
        result = person_validator.validate(mocks.john())

        assert result.name == "Person"
        assert [r.id for r in result.get_rule_results()] == ["ageValid", "NameNotEmpty"]
        assert [m.name for m in result.get_member_results()] == ["phones[0]", "phones[1]"]
        assert result.get_nb_of_tests() == 6

    def test_invalid_rules(self, person_validator):
        """Test only the failing country code is reported."""
        result = person_validator.validate(mocks.john())

        assert result.get_invalid_rules() == [
            RuleResult("countryCodeValid", "Country code must start with +", False)
        ]

    def test_report_lines(self, person_validator):
        """Test the textual report of the whole tree."""
        result = person_validator.validate(mocks.john())

        assert str(result) == (
            "Person [ageValid] Age must be between 1 and 149 => valid\n"
            "Person [NameNotEmpty] Name must not be empty => valid\n"
            "Person.phones[0] [numberValid] Number must be defined => valid\n"
            "Person.phones[0] [countryCodeValid] Country code must start with + => valid\n"
            "Person.phones[1] [numberValid] Number must be defined => valid\n"
            "Person.phones[1] [countryCodeValid] Country code must start with + => invalid\n"
        )

    def test_full_person_is_valid(self, full_person_validator):
        """Test a person valid at every depth."""
        result = full_person_validator.validate(mocks.valid_person())

        assert result.is_valid() is True
        assert result.get_invalid_rules() == []
        # Person 2, phone 2, address 1, city 2, email 1
        assert result.get_nb_of_tests() == 8
        assert result.get_rule_result("Person.address.city [zipCodeValid]").is_valid() is True

    def test_nested_failure(self, full_person_validator):
        """Test a failure deep in the graph invalidates the root."""
        person = mocks.valid_person()
        person.address.city.zip_code = "ABC"

        result = full_person_validator.validate(person)

        assert result.is_valid() is False
        assert result.get_rule_result("Person.address.city [zipCodeValid]").is_valid() is False
        assert [r.id for r in result.get_invalid_rules()] == ["zipCodeValid"]

    def test_none_members_are_skipped(self, full_person_validator):
        """Test absent members produce no result."""
        person = mocks.Person("Bob", 20)

        result = full_person_validator.validate(person)

        assert result.get_member_results() == []
        assert result.get_nb_of_tests() == 2

    def test_validation_is_idempotent(self, person_validator):
        """Test two validations of equal graphs give equal results."""
        first = person_validator.validate(mocks.john())
        second = person_validator.validate(mocks.john())

        assert first == second
        assert str(first) == str(second)


class TestRulesEvaluation:
    """Test rule outcomes match their predicates."""

    def test_predicate_outcome(self):
        """Test each rule result equals the predicate value."""
        validator = (ValidatorBuilder(mocks.Phone)
                     .add_rule("always", lambda p: True, "Always true")
                     .add_rule("never", lambda p: False, "Always false")
                     .build())

        result = validator.validate(mocks.Phone("1", "+1"))

        assert [r.valid for r in result.get_rule_results()] == [True, False]

    def test_truthy_values_are_coerced(self):
        """Test non-bool predicate values are coerced to bool."""
        validator = (ValidatorBuilder(mocks.Phone)
                     .add_rule("number", lambda p: p.number, "Number is truthy")
                     .build())

        assert validator.validate(mocks.Phone("12", None)).get_rule_results()[0].valid is True
        assert validator.validate(mocks.Phone("", None)).get_rule_results()[0].valid is False

    def test_rule_order_is_declaration_order(self):
        """Test rules are evaluated in declaration order."""
        calls = []
        validator = (ValidatorBuilder(mocks.Phone)
                     .add_rule("b", lambda p: calls.append("b") or True, "B")
                     .add_rule("a", lambda p: calls.append("a") or True, "A")
                     .build())

        validator.validate(mocks.Phone("1", "+1"))

        assert calls == ["b", "a"]


class TestCycles:
    """Test cycle safety of the engine."""

    def test_self_loop(self, node_validator):
        """Test a node pointing to itself is validated once."""
        node = mocks.Node("a")
        node.next = node

        result = node_validator.validate(node)

        assert result.get_nb_of_tests() == 2
        assert result.get_member_results() == []

    def test_mutual_loop(self, node_validator):
        """Test two nodes pointing to each other are validated once each."""
        a = mocks.Node("a")
        b = mocks.Node("b", next=a)
        a.next = b

        result = node_validator.validate(a)

        assert result.get_nb_of_tests() == 4
        assert [m.name for m in result.get_member_results()] == ["next"]
        assert result.get_rule_result("Node.next [labelDefined]").is_valid() is True

    def test_loop_through_collection(self, node_validator):
        """Test a child list containing the root does not recurse."""
        root = mocks.Node("root")
        child = mocks.Node("child", children=[root])
        root.children = [child]

        result = node_validator.validate(root)

        assert result.get_nb_of_tests() == 4
        assert [m.name for m in result.get_member_results()] == ["children[0]"]

    def test_shared_object_validated_once(self, node_validator):
        """Test an object reachable twice produces a single result."""
        shared = mocks.Node("shared")
        root = mocks.Node("root", next=shared, children=[shared])

        result = node_validator.validate(root)

        assert result.get_nb_of_tests() == 4
        assert [m.name for m in result.get_member_results()] == ["next"]

    def test_repeated_element_skipped_without_index(self, person_validator):
        """Test the same phone twice in the list is validated once."""
        phone = mocks.Phone("1", "+1")
        other = mocks.Phone("2", "-2")
        person = mocks.Person("Ann", 30, phones=[phone, phone, other])

        result = person_validator.validate(person)

        assert [m.name for m in result.get_member_results()] == ["phones[0]", "phones[1]"]
        assert result.get_rule_result("Person.phones[1] [countryCodeValid]").is_valid() is False

    def test_visited_set_not_shared_between_calls(self, node_validator):
        """Test a second call validates the same graph in full."""
        a = mocks.Node("a")
        a.next = mocks.Node("b")

        assert node_validator.validate(a).get_nb_of_tests() == 4
        assert node_validator.validate(a).get_nb_of_tests() == 4

    def test_long_chain(self, node_validator):
        """Test a moderately deep acyclic chain."""
        head = mocks.Node("n0")
        current = head
        for i in range(1, 50):
            current.next = mocks.Node(f"n{i}")
            current = current.next

        assert node_validator.validate(head).get_nb_of_tests() == 100


class TestCollections:
    """Test iterable members and top-level iterables."""

    def test_none_elements_skipped(self, person_validator):
        """Test None elements neither produce results nor consume an index."""
        person = mocks.Person("Ann", 30, phones=[None, mocks.Phone("1", "+1"), None, mocks.Phone("2", "+2")])

        result = person_validator.validate(person)

        assert [m.name for m in result.get_member_results()] == ["phones[0]", "phones[1]"]

    def test_tuple_member(self, person_validator):
        """Test tuples are iterated like lists."""
        person = mocks.Person("Ann", 30, phones=(mocks.Phone("1", "+1"),))

        result = person_validator.validate(person)

        assert [m.name for m in result.get_member_results()] == ["phones[0]"]

    def test_generator_member(self):
        """Test any iterable member is iterated."""
        validator = (ValidatorBuilder(mocks.Person)
                     .add_rule("ageValid", lambda p: p.age > 0, "Age positive")
                     .add_member("phones", lambda p: (ph for ph in p.phones),
                                 mocks.phone_builder())
                     .build())

        result = validator.validate(mocks.john())

        assert result.get_nb_of_tests() == 5

    def test_validate_list(self, person_validator):
        """Test validating a list yields one result per element."""
        results = person_validator.validate([mocks.john(), None, mocks.valid_person()])

        assert isinstance(results, list)
        assert [r.name for r in results] == ["Person[0]", "Person[1]"]
        assert [r.is_valid() for r in results] == [False, True]

    def test_validate_all_independent_runs(self, node_validator):
        """Test each element of a top-level list gets its own visited set."""
        node = mocks.Node("a")

        results = node_validator.validate_all([node, node])

        assert [r.get_nb_of_tests() for r in results] == [2, 2]

    def test_validate_all_empty(self, person_validator):
        """Test an empty iterable yields no result."""
        assert person_validator.validate_all([]) == []

    def test_iterable_business_object_member(self):
        """Test an iterable member value of a validated type is validated as one object."""

        @dataclass(eq=False)
        class Bag:
            label: str
            items: list

            def __iter__(self):
                return iter(self.items)

        @dataclass(eq=False)
        class Holder:
            bag: Bag

        bag_builder = ValidatorBuilder(Bag).add_rule("labelDefined", lambda b: bool(b.label), "Label defined")
        validator = ValidatorBuilder(Holder).add_member("bag", "bag", bag_builder).build()

        result = validator.validate(Holder(Bag("", ["x", "y"])))

        assert [m.name for m in result.get_member_results()] == ["bag"]
        assert result.get_rule_result("Holder.bag [labelDefined]").is_valid() is False


class TestPolymorphism:
    """Test runtime-type dispatch of member validators."""

    def test_dispatch_by_exact_type(self, graphic_validator):
        """Test each shape is validated by the validator of its own type."""
        graphic = mocks.Graphic("g", [mocks.Square(2), mocks.Rectangle(2, 3), mocks.Circle(1)])

        result = graphic_validator.validate(graphic)

        assert result.is_valid() is True
        squares, rectangles, circles = result.get_member_results()
        assert [r.id for r in squares.get_rule_results()] == ["widthPositive"]
        assert [r.id for r in rectangles.get_rule_results()] == ["widthPositive", "heightPositive"]
        assert [r.id for r in circles.get_rule_results()] == ["radiusPositive"]
        assert result.get_nb_of_tests() == 5

    def test_rectangle_uses_its_own_rules(self, graphic_validator):
        """Test a Rectangle is not validated as a Square."""
        graphic = mocks.Graphic("g", [mocks.Rectangle(2, 0)])

        result = graphic_validator.validate(graphic)

        assert result.get_rule_result("Graphic.shapes[0] [heightPositive]").is_valid() is False

    def test_subclass_falls_back_to_ancestor(self, graphic_validator):
        """Test a subclass without a validator uses the closest ancestor's."""

        @dataclass(eq=False)
        class RoundedSquare(mocks.Square):
            corner: float = 1.0

        result = graphic_validator.validate(mocks.Graphic("g", [RoundedSquare(3)]))

        assert [r.id for r in result.get_member_results()[0].get_rule_results()] == ["widthPositive"]

    def test_unknown_type_raises(self, graphic_validator):
        """Test a value with no validator for its type raises DispatchError."""
        graphic = mocks.Graphic("g", [mocks.Square(1), mocks.Triangle(1, 1)])

        with pytest.raises(DispatchError) as exc_info:
            graphic_validator.validate(graphic)

        assert exc_info.value.value_type is mocks.Triangle
        assert exc_info.value.member == "shapes"
        assert isinstance(exc_info.value, TypeError)

    def test_scalar_member_value_raises(self):
        """Test a member returning a non business object raises DispatchError."""
        validator = (ValidatorBuilder(mocks.Person)
                     .add_member("name", "name", mocks.phone_builder())
                     .build())

        with pytest.raises(DispatchError, match="no validator found for type str"):
            validator.validate(mocks.john())


class TestErrors:
    """Test error propagation during validation."""

    def test_none_root(self, person_validator):
        """Test validating None raises ArgumentError."""
        with pytest.raises(ArgumentError):
            person_validator.validate(None)

    def test_none_iterable(self, person_validator):
        """Test validate_all(None) raises ArgumentError."""
        with pytest.raises(ArgumentError):
            person_validator.validate_all(None)

    def test_raising_rule(self):
        """Test a predicate raising is wrapped in InvocationError."""
        validator = ValidatorBuilder(mocks.Phone).add_rule("boom", lambda p: 1 / 0, "Divides by zero").build()

        with pytest.raises(InvocationError) as exc_info:
            validator.validate(mocks.Phone("1", "+1"))

        assert isinstance(exc_info.value.cause, ZeroDivisionError)
        assert exc_info.value.__cause__ is exc_info.value.cause
        assert "boom" in str(exc_info.value)

    def test_raising_accessor(self):
        """Test an accessor raising is wrapped in InvocationError."""
        validator = (ValidatorBuilder(mocks.Person)
                     .add_member("phones", "missing_attribute", mocks.phone_builder())
                     .build())

        with pytest.raises(InvocationError) as exc_info:
            validator.validate(mocks.john())

        assert isinstance(exc_info.value.cause, AttributeError)

    def test_error_deep_in_graph_aborts(self, person_validator):
        """Test an error in a member aborts the whole call."""
        person = mocks.Person("Ann", 30, phones=[mocks.Phone("1", "+1"), mocks.Triangle(1, 1)])

        with pytest.raises(DispatchError):
            person_validator.validate(person)

    def test_library_errors_are_not_wrapped(self):
        """Test errors of the library raised by user code propagate unchanged."""
        def predicate(phone):
            raise ArgumentError("bad phone")

        validator = ValidatorBuilder(mocks.Phone).add_rule("x", predicate, "Raises").build()

        with pytest.raises(ArgumentError, match="bad phone"):
            validator.validate(mocks.Phone("1", "+1"))


class TestConcurrency:
    """Test a validator graph is shareable between threads."""

    def test_concurrent_validations(self, node_validator):
        """Test concurrent calls do not interfere with each other."""
        def run(i):
            a = mocks.Node(f"a{i}")
            a.next = mocks.Node(f"b{i}", next=a)
            return node_validator.validate(a).get_nb_of_tests()

        with ThreadPoolExecutor(max_workers=8) as executor:
            counts = list(executor.map(run, range(40)))

        assert counts == [4] * 40
