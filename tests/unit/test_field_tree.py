"""Tests for the field tree walk and first-sample-wins map."""

from __future__ import annotations

from academy.discovery.field_tree import FieldLeaf, FieldNode, FieldSamples, build_tree, iter_leaves


class TestBuildTree:
    def test_skips_internal_keys_at_every_level(self):
        tree = build_tree({"_id": "x", "__v": 0, "name": "A", "address": {"_id": "y", "city": "Pune"}})
        assert set(tree.children) == {"name", "address"}
        address = tree.children["address"]
        assert isinstance(address, FieldNode)
        assert set(address.children) == {"city"}

    def test_sequences_and_none_are_leaves(self):
        tree = build_tree({"tags": [1, 2], "dob": None})
        assert tree.children["tags"] == FieldLeaf([1, 2])
        assert tree.children["dob"] == FieldLeaf(None)

    def test_skip_keys(self):
        tree = build_tree({"testId": "T1", "students": {"a": {"marks": 1}}}, skip_keys=frozenset({"students"}))
        assert set(tree.children) == {"testId"}


class TestIterLeaves:
    def test_dotted_paths_in_document_order(self):
        tree = build_tree({"name": "A", "address": {"city": "Pune", "pin": 411001}})
        assert list(iter_leaves(tree)) == [("name", "A"), ("address.city", "Pune"), ("address.pin", 411001)]

    def test_prefix(self):
        tree = build_tree({"testId": "T1"})
        assert list(iter_leaves(tree, "marks")) == [("marks.testId", "T1")]


class TestFieldSamples:
    def test_first_non_null_sample_wins(self):
        samples = FieldSamples()
        samples.offer("dob", None)
        samples.offer("dob", "2010-01-01")
        samples.offer("dob", "2011-02-02")
        assert samples["dob"] == "2010-01-01"

    def test_keeps_first_seen_order(self):
        samples = FieldSamples()
        for path in ("b", "a", "c", "a"):
            samples.offer(path, 1)
        assert [path for path, _ in samples.items()] == ["b", "a", "c"]
        assert len(samples) == 3
        assert "a" in samples

    def test_offer_tree_merges_documents(self):
        samples = FieldSamples()
        samples.offer_tree(build_tree({"name": "A", "phone": None}))
        samples.offer_tree(build_tree({"name": "B", "phone": "98", "email": "b@x"}))
        assert dict(samples.items()) == {"name": "A", "phone": "98", "email": "b@x"}
