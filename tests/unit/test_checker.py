"""
Unit tests for the consistency checker.
"""

from __future__ import annotations

from conftest import as_snapshot, make_node

from cnet.checker import Defect, DefectKind, check, reachable_from
from cnet.graph import build
from cnet.markup import parse_node
from cnet.models import FLAG_UNDECODABLE, Classification
from cnet.navigation import BreadthFirst, traverse


def _check(*nodes, root_id=None):
    snapshot = as_snapshot(*nodes)
    return check(build(snapshot), snapshot, root_id=root_id)


class TestInverseConsistency:
    """Tests for MissingInverse / WrongInverseType / DanglingRelationship."""

    def test_consistent_pair(self):
        report = _check(
            make_node("a", ("is-parent-of", "b")),
            make_node("b", ("is-child-of", "a")),
        )
        assert report.is_clean

    def test_missing_inverse_reported_on_target(self):
        report = _check(make_node("a", ("is-parent-of", "b")), make_node("b"))
        assert len(report) == 1
        defect = report.defects[0]
        assert defect.kind == DefectKind.MISSING_INVERSE
        assert defect.node_id == "b"
        assert "is-child-of" in defect.detail

    def test_dangling_relationship(self):
        report = _check(make_node("a", ("depends-on", "c")))
        assert len(report) == 1
        defect = report.defects[0]
        assert defect.kind == DefectKind.DANGLING_RELATIONSHIP
        assert defect.node_id == "a"
        assert "c" in defect.detail

    def test_wrong_inverse_type(self):
        report = _check(
            make_node("a", ("depends-on", "b")),
            make_node("b", ("relates-to", "a")),
        )
        wrong = report.by_kind(DefectKind.WRONG_INVERSE_TYPE)
        # each side declares something the other does not mirror
        assert {d.node_id for d in wrong} == {"a", "b"}
        on_b = report.for_node("b")
        assert len(on_b) == 1
        assert "is-depended-on-by" in on_b[0].detail
        assert "relates-to" in on_b[0].detail
        assert not report.by_kind(DefectKind.MISSING_INVERSE)

    def test_self_inverse_needs_mirror(self):
        report = _check(make_node("a", ("relates-to", "b")), make_node("b"))
        assert [(d.kind, d.node_id) for d in report] == [(DefectKind.MISSING_INVERSE, "b")]

    def test_self_loop_of_self_inverse_type_is_consistent(self):
        assert _check(make_node("a", ("relates-to", "a"))).is_clean

    def test_unknown_relationship_type(self):
        report = _check(make_node("a", ("inspired-by", "b")), make_node("b"))
        assert [(d.kind, d.node_id) for d in report] == [(DefectKind.UNKNOWN_RELATIONSHIP_TYPE, "a")]


class TestNodeDefects:
    """Tests for UnclassifiedNode / MalformedRelationship."""

    def test_unclassified(self):
        report = _check(make_node("a", classification=Classification(domain="Runtime")))
        assert len(report) == 1
        defect = report.defects[0]
        assert defect.kind == DefectKind.UNCLASSIFIED_NODE
        assert "stability" in defect.detail
        assert "domain" not in defect.detail

    def test_missing_stability_loaded_node(self, node_text: str):
        node = parse_node("index", node_text.replace("- **Stability:** semi-stable\n", "")
                          .replace("- [[index]] — is-child-of — Root of the network\n", "")
                          .replace("- `foundation/architecture` — relates-to\n", ""))
        report = check(build({"index": node}), {"index": node})
        assert [(d.kind, d.node_id) for d in report] == [(DefectKind.UNCLASSIFIED_NODE, "index")]

    def test_malformed_relationship(self):
        node = make_node("a")
        node.malformed_relationships.append("- ???")
        report = _check(node)
        assert report.by_kind(DefectKind.MALFORMED_RELATIONSHIP) == [
            Defect(DefectKind.MALFORMED_RELATIONSHIP, "a", "cannot parse: - ???")
        ]

    def test_undecodable_node_reported(self):
        node = make_node("a")
        node.flags.add(FLAG_UNDECODABLE)
        report = _check(node)
        assert [(d.kind, d.node_id) for d in report] == [(DefectKind.UNDECODABLE_NODE, "a")]
        assert "UTF-8" in report.defects[0].detail


class TestReachability:
    """Tests for UnreachableNode / MissingRoot."""

    def test_chain_reachable(self):
        report = _check(
            make_node("a", ("relates-to", "b")),
            make_node("b", ("relates-to", "a"), ("relates-to", "c")),
            make_node("c", ("relates-to", "b")),
            root_id="a",
        )
        assert report.is_clean

    def test_forward_only_chain(self):
        snapshot = as_snapshot(
            make_node("a", ("relates-to", "b")),
            make_node("b", ("relates-to", "c")),
            make_node("c"),
        )
        graph = build(snapshot)
        report = check(graph, snapshot, root_id="a")
        assert not report.by_kind(DefectKind.UNREACHABLE_NODE)
        assert list(traverse(graph, "a", BreadthFirst())) == ["a", "b", "c"]

    def test_one_directional_edges_count_for_reachability(self):
        report = _check(
            make_node("a"),
            make_node("b", ("relates-to", "a")),
            root_id="a",
        )
        assert not report.by_kind(DefectKind.UNREACHABLE_NODE)

    def test_unreachable_island(self):
        report = _check(
            make_node("a"),
            make_node("x", ("relates-to", "y")),
            make_node("y", ("relates-to", "x")),
            root_id="a",
        )
        assert [d.node_id for d in report.by_kind(DefectKind.UNREACHABLE_NODE)] == ["x", "y"]

    def test_missing_root(self):
        report = _check(make_node("a"), root_id="index")
        assert [(d.kind, d.node_id) for d in report] == [(DefectKind.MISSING_ROOT, "index")]

    def test_no_root_skips_reachability(self):
        assert _check(make_node("a"), make_node("b")).is_clean

    def test_reachable_from_handles_cycles(self):
        graph = build(as_snapshot(
            make_node("a", ("is-parent-of", "b")),
            make_node("b", ("is-child-of", "a"), ("relates-to", "c")),
            make_node("c", ("relates-to", "b"), ("relates-to", "a")),
        ))
        assert reachable_from(graph, "a") == {"a", "b", "c"}
        assert reachable_from(graph, "missing") == set()


class TestReport:
    """Tests for Report helpers and degenerate inputs."""

    def test_empty_snapshot(self):
        report = check(build({}), {}, root_id="index")
        assert report.is_clean
        assert len(report) == 0

    def test_counts(self):
        report = _check(
            make_node("a", ("is-parent-of", "b"), ("depends-on", "ghost")),
            make_node("b", classification=Classification()),
        )
        assert report.counts() == {
            "DanglingRelationship": 1,
            "MissingInverse": 1,
            "UnclassifiedNode": 1,
        }

    def test_sorted_and_deduplicated(self):
        report = _check(
            make_node("a", ("relates-to", "b"), ("relates-to", "b")),
            make_node("b"),
        )
        assert len(report.by_kind(DefectKind.MISSING_INVERSE)) == 1
        assert list(report.defects) == sorted(report.defects)
