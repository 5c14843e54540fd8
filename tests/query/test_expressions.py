import pytest

from queryguide.query import Q


def test_keyword_lookups_are_anded():
    q = Q(title="a", body="b")
    assert q.connector == "AND"
    assert q.children == [("title", "a"), ("body", "b")]
    assert str(q) == "(AND: ('title', 'a'), ('body', 'b'))"


def test_or_combines_two_conditions():
    q = Q(title__istartswith="who") | Q(title__istartswith="why")
    assert q.connector == "OR"
    assert q.children == [("title__istartswith", "who"), ("title__istartswith", "why")]


def test_same_connector_chains_are_flattened():
    q = Q(a=1) | Q(b=2) | Q(c=3)
    assert q.connector == "OR"
    assert len(q.children) == 3


def test_mixed_connectors_nest():
    q = (Q(a=1) | Q(b=2)) & Q(c=3)
    assert q.connector == "AND"
    assert isinstance(q.children[0], Q)
    assert q.children[0].connector == "OR"
    assert q.children[1] == ("c", 3)


def test_invert_negates_without_mutating():
    original = Q(a=1)
    negated = ~original
    assert negated.negated is True
    assert original.negated is False
    assert repr(negated) == "<Q: NOT (AND: ('a', 1))>"
    assert ~negated == original


def test_negated_side_is_kept_as_child():
    q = Q(a=1) & ~Q(b=2)
    assert q.children[0] == ("a", 1)
    assert q.children[1] == ~Q(b=2)


def test_empty_q_is_identity():
    q = Q(a=1)
    assert (Q() & q) == q
    assert (q | Q()) == q
    assert Q().is_empty()


def test_combining_with_non_q_raises():
    with pytest.raises(TypeError):
        Q(a=1) | {"b": 2}


def test_positional_arguments_must_be_q_objects():
    with pytest.raises(TypeError):
        Q(("a", 1))
    nested = Q(Q(a=1), b=2)
    assert nested.children == [Q(a=1), ("b", 2)]
