"""Tests for snapshot diffing and id deduplication."""

from __future__ import annotations

from opportunities.diff import dedupe, diff_snapshots
from opportunities.models import Direction, opportunity_id


def _snap(*opps):
    return {o.id: o for o in opps}


class TestDiffSnapshots:
    def test_classifies_every_id(self, make_opp):
        """A{1,2,3} -> B{2',3,4}: 4 added, 2 updated, 1 removed, 3 unchanged."""
        one, two, three = make_opp("one"), make_opp("two", edge=5.0), make_opp("three")
        two_moved, four = make_opp("two", edge=6.0), make_opp("four")
        d = diff_snapshots(_snap(one, two, three), [two_moved, three, four])
        assert d.added == {four.id}
        assert d.updated == {two.id}
        assert d.removed == {one.id}
        assert d.unchanged == {three.id}
        assert d.changes[two.id].edge is Direction.UP
        assert d.changes[two.id].price is None
        assert d.order == [two.id, three.id, four.id]

    def test_order_independent(self, make_opp):
        prev = _snap(make_opp("one"), make_opp("two"))
        incoming = [make_opp("two", price=170), make_opp("three"), make_opp("four")]
        a = diff_snapshots(prev, incoming)
        b = diff_snapshots(prev, list(reversed(incoming)))
        assert (a.added, a.updated, a.removed, a.unchanged) == (b.added, b.updated, b.removed, b.unchanged)

    def test_does_not_mutate_previous(self, make_opp):
        prev = _snap(make_opp("one"))
        before = dict(prev)
        diff_snapshots(prev, [make_opp("two")])
        assert prev == before

    def test_small_edge_move_is_unchanged(self, make_opp):
        d = diff_snapshots(_snap(make_opp("one", edge=5.0)), [make_opp("one", edge=5.005)])
        assert d.unchanged == {make_opp("one").id}
        assert d.is_empty

    def test_price_move(self, make_opp):
        d = diff_snapshots(_snap(make_opp("one", price=150)), [make_opp("one", price=140)])
        rec = d.changes[make_opp("one").id]
        assert rec.price is Direction.DOWN
        assert rec.to_dict() == {"price": "down"}

    def test_empty_incoming_removes_all(self, make_opp):
        d = diff_snapshots(_snap(make_opp("one"), make_opp("two")), [])
        assert len(d.removed) == 2
        assert d.snapshot == {}


class TestDedupe:
    def test_keeps_best_edge_in_first_position(self, make_opp):
        rows = [make_opp("a", edge=3.0), make_opp("b"), make_opp("a", edge=4.0)]
        snap, order = dedupe(rows)
        assert order == [rows[0].id, rows[1].id]
        assert snap[rows[0].id].edge == 4.0

    def test_tie_breaks_on_price(self, make_opp):
        snap, _ = dedupe([make_opp("a", price=120), make_opp("a", price=135)])
        assert snap[make_opp("a").id].price == 135


class TestOpportunityId:
    def test_normalised(self):
        assert opportunity_id("E1", "LeBron James", "Points", 25.0, "Over") == "e1:lebron james:points:25:over"

    def test_missing_line(self):
        assert opportunity_id("e1", "", "moneyline", None, "home") == "e1::moneyline::home"
