"""
Unit tests for index equivalence.
"""

import pytest
from bson.regex import Regex

from mdb_index_sync.indexes.comparator import equivalent, keys_equal
from mdb_index_sync.indexes.descriptor import IndexDescriptor


def idx(**kwargs) -> IndexDescriptor:
    kwargs.setdefault("key", {"a": 1})
    return IndexDescriptor(**kwargs)


class TestEquivalence:
    """Test equivalent() semantics."""

    def test_reflexive(self):
        descriptor = idx(
            key={"title": "text"},
            unique=True,
            weights={"title": 3},
            partial_filter_expression={"status": {"$eq": "active"}},
        )
        assert equivalent(descriptor, descriptor)

    def test_name_and_background_are_ignored(self):
        a = idx(name="first", background=True)
        b = idx(name="second", background=False)
        assert equivalent(a, b)
        assert equivalent(b, a)

    def test_key_order_matters(self):
        a = idx(key={"a": 1, "b": 1})
        b = idx(key={"b": 1, "a": 1})
        assert not keys_equal(a, b)
        assert not equivalent(a, b)

    def test_direction_matters(self):
        assert not equivalent(idx(key={"a": 1}), idx(key={"a": -1}))

    def test_float_direction_equals_int(self):
        assert equivalent(idx(key={"a": 1.0}), idx(key={"a": 1}))

    @pytest.mark.parametrize("option", ["unique", "sparse"])
    def test_boolean_options_matter(self, option):
        assert not equivalent(idx(**{option: True}), idx(**{option: False}))

    def test_ttl_absent_differs_from_zero(self):
        assert not equivalent(idx(expire_after_seconds=0), idx())
        assert not equivalent(idx(), idx(expire_after_seconds=0))
        assert equivalent(idx(expire_after_seconds=0), idx(expire_after_seconds=0))

    def test_ttl_values_matter(self):
        assert not equivalent(idx(expire_after_seconds=60), idx(expire_after_seconds=120))

    def test_text_weights_absent_equals_empty(self):
        a = idx(key={"body": "text"})
        b = idx(key={"body": "text"}, weights={})
        assert equivalent(a, b)

    def test_text_weights_differ(self):
        a = idx(key={"body": "text"}, weights={"body": 1})
        b = idx(key={"body": "text"}, weights={"body": 10})
        assert not equivalent(a, b)

    def test_weights_ignored_without_text_field(self):
        a = idx(weights={"a": 1})
        b = idx(weights={"a": 2})
        assert equivalent(a, b)

    def test_partial_filter_absent_equals_empty(self):
        assert equivalent(idx(), idx(partial_filter_expression={}))

    def test_partial_filter_compared_structurally(self):
        a = idx(partial_filter_expression={"age": {"$gt": 18}, "active": True})
        b = idx(partial_filter_expression={"active": True, "age": {"$gt": 18}})
        c = idx(partial_filter_expression={"age": {"$gt": 21}, "active": True})
        assert equivalent(a, b)
        assert not equivalent(a, c)

    def test_bool_never_equals_number_in_filters(self):
        a = idx(partial_filter_expression={"flag": True})
        b = idx(partial_filter_expression={"flag": 1})
        assert not equivalent(a, b)
        assert not equivalent(b, a)


class TestIdentity:
    """Test the identity key that equivalence is defined on."""

    def test_identity_is_hashable_and_deduplicates(self):
        variants = [
            idx(name="a_1"),
            idx(name="by_a", background=True),
            idx(key={"a": 1.0}),
            idx(partial_filter_expression={}),
        ]
        assert len({descriptor.identity() for descriptor in variants}) == 1

    def test_bool_and_number_have_distinct_identities(self):
        a = idx(partial_filter_expression={"flag": True})
        b = idx(partial_filter_expression={"flag": 1})
        assert a.identity() != b.identity()
        assert hash(a.identity()) is not None

    def test_identity_agrees_with_equivalent(self):
        descriptors = [
            idx(),
            idx(unique=True),
            idx(expire_after_seconds=0),
            idx(key={"a": 1, "b": -1}),
            idx(key={"body": "text"}, weights={"body": 2}),
            idx(partial_filter_expression={"flag": True}),
            idx(partial_filter_expression={"flag": 1}),
        ]
        for a in descriptors:
            for b in descriptors:
                assert equivalent(a, b) == (a.identity() == b.identity())
                assert equivalent(a, b) == equivalent(b, a)

    def test_regex_filter_values_are_supported(self):
        a = idx(partial_filter_expression={"email": Regex("@example\\.com$")})
        b = idx(partial_filter_expression={"email": Regex("@example\\.com$")})
        assert equivalent(a, b)
