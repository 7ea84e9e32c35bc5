from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Mapping, Tuple

from .models import ChangeRecord, Direction, Opportunity

EDGE_EPSILON = 0.01


@dataclass(frozen=True)
class SnapshotDiff:
    snapshot: Dict[str, Opportunity]
    order: List[str]
    added: FrozenSet[str] = frozenset()
    updated: FrozenSet[str] = frozenset()
    removed: FrozenSet[str] = frozenset()
    unchanged: FrozenSet[str] = frozenset()
    changes: Dict[str, ChangeRecord] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.updated or self.removed)


def _better(a: Opportunity, b: Opportunity) -> bool:
    return (a.edge, a.price) > (b.edge, b.price)


def dedupe(items: Iterable[Opportunity]) -> Tuple[Dict[str, Opportunity], List[str]]:
    """Collapse duplicate ids, keeping the row with the best edge.

    Order follows the first occurrence of each id.
    """
    out: Dict[str, Opportunity] = {}
    order: List[str] = []
    for opp in items:
        cur = out.get(opp.id)
        if cur is None:
            out[opp.id] = opp
            order.append(opp.id)
        elif _better(opp, cur):
            out[opp.id] = opp
    return out, order


def has_moved(before: Opportunity, after: Opportunity) -> bool:
    return before.price != after.price or abs(after.edge - before.edge) > EDGE_EPSILON


def change_record(before: Opportunity, after: Opportunity) -> ChangeRecord:
    return ChangeRecord(
        edge=Direction.between(before.edge, after.edge, EDGE_EPSILON),
        price=Direction.between(before.price, after.price),
    )


def diff_snapshots(previous: Mapping[str, Opportunity], incoming: Iterable[Opportunity]) -> SnapshotDiff:
    """Classify every id of ``incoming`` against ``previous``.

    Pure: neither argument is modified. The classification sets do not depend
    on the order of ``incoming``.
    """
    snapshot, order = dedupe(incoming)
    added, updated, unchanged = set(), set(), set()
    changes: Dict[str, ChangeRecord] = {}
    for oid, opp in snapshot.items():
        before = previous.get(oid)
        if before is None:
            added.add(oid)
        elif has_moved(before, opp):
            updated.add(oid)
            changes[oid] = change_record(before, opp)
        else:
            unchanged.add(oid)
    removed = {oid for oid in previous if oid not in snapshot}
    return SnapshotDiff(
        snapshot=snapshot,
        order=order,
        added=frozenset(added),
        updated=frozenset(updated),
        removed=frozenset(removed),
        unchanged=frozenset(unchanged),
        changes=changes,
    )
