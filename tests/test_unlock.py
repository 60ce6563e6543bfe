# tests/test_unlock.py

import pytest

from skill_engine.errors import LockedNode, NotFound
from skill_engine.models import NodeType, SkillEdge, SkillNode
from skill_engine.unlock import (
    LockUpdate,
    apply_exp_gain,
    apply_lock_updates,
    compute_lock_updates,
    increment_exp,
    newly_unlocked,
)


def _node(node_id, node_type=NodeType.SKILL, required=100, current=0, locked=False):
    return SkillNode(
        id=node_id,
        graph_id="g1",
        node_type=node_type,
        label=node_id,
        required_exp=required,
        current_exp=current,
        is_locked=locked,
    )


def _edge(parent, child):
    return SkillEdge(id=f"{parent}->{child}", graph_id="g1", from_node_id=parent, to_node_id=child)


@pytest.mark.parametrize("parent_exp, child_locked", [(50, False), (49, True), (100, False), (0, True)])
def test_threshold_is_half_of_parent_requirement(parent_exp, child_locked):
    parent = _node("p", current=parent_exp)
    child = _node("ch", locked=not child_locked)

    updates = compute_lock_updates([parent, child], [_edge("p", "ch")])

    assert updates == [LockUpdate(node_id="ch", locked=child_locked)]


def test_child_of_current_node_unlocks_without_exp():
    center = _node("C", NodeType.CENTER, required=0)
    current = _node("A", NodeType.CURRENT, required=0)
    b1 = _node("B1", required=100, locked=True)

    updates = compute_lock_updates([center, current, b1], [_edge("C", "A"), _edge("A", "B1")])

    assert updates == [LockUpdate(node_id="B1", locked=False)]


def test_center_and_current_are_never_locked():
    center = _node("C", NodeType.CENTER, required=0, locked=True)
    parent = _node("p", current=0)
    current = _node("A", NodeType.CURRENT, locked=True)

    updates = compute_lock_updates([center, parent, current], [_edge("p", "A")])

    assert {u.node_id for u in updates} == {"C", "A"}
    assert all(not u.locked for u in updates)


def test_orphan_defaults_to_unlocked_and_missing_parent_is_skipped():
    orphan = _node("orphan", locked=True)
    dangling = _node("dangling", locked=True)

    updates = compute_lock_updates([orphan, dangling], [_edge("ghost", "dangling")])

    assert updates == [LockUpdate(node_id="orphan", locked=False)]


def test_parent_with_zero_requirement_counts_as_complete():
    parent = _node("p", required=0)
    child = _node("ch", locked=True)

    assert compute_lock_updates([parent, child], [_edge("p", "ch")]) == [
        LockUpdate(node_id="ch", locked=False)
    ]


def test_updates_are_idempotent():
    parent = _node("p", current=10)
    child = _node("ch", locked=False)
    edges = [_edge("p", "ch")]

    first = compute_lock_updates([parent, child], edges)
    relocked = child.model_copy(update={"is_locked": first[0].locked})

    assert first == [LockUpdate(node_id="ch", locked=True)]
    assert compute_lock_updates([parent, relocked], edges) == []


def test_more_exp_never_locks_an_unlocked_node():
    edges = [_edge("p", "ch")]
    for exp in range(0, 101, 10):
        parent = _node("p", current=exp)
        child = _node("ch", locked=False)
        more = _node("p", current=exp + 10)

        before = {u.node_id: u.locked for u in compute_lock_updates([parent, child], edges)}
        after = {u.node_id: u.locked for u in compute_lock_updates([more, child], edges)}

        if not before.get("ch", False):
            assert not after.get("ch", False)


def test_newly_unlocked_only_reports_locked_to_unlocked():
    a = _node("a", locked=True)
    b = _node("b", locked=False)
    updates = [LockUpdate(node_id="a", locked=False), LockUpdate(node_id="b", locked=True)]

    res = newly_unlocked([a, b], updates)

    assert [n.id for n in res] == ["a"]
    assert res[0].is_locked is False


def test_newly_unlocked_leaves_out_center_and_current():
    center = _node("c", NodeType.CENTER, locked=True)
    current = _node("cur", NodeType.CURRENT, locked=True)
    skill = _node("s", locked=True)
    updates = [LockUpdate(node_id=n, locked=False) for n in ("c", "cur", "s")]

    assert [n.id for n in newly_unlocked([center, current, skill], updates)] == ["s"]


def test_apply_lock_updates_persists_and_reports(store, seeded_graph):
    graph, nodes = seeded_graph
    store.update_node(nodes["Python"].id, current_exp=100)

    report = apply_lock_updates(store, graph.id)

    assert report.updated_count == 1
    assert [n.label for n in report.unlocked_nodes] == ["Django"]
    assert store.get_node(nodes["Django"].id).is_locked is False
    assert apply_lock_updates(store, graph.id).updated_count == 0


def test_apply_lock_updates_counts_but_does_not_report_current_nodes(store, seeded_graph):
    graph, nodes = seeded_graph
    store.update_node(nodes["Backend Dev"].id, is_locked=True)

    report = apply_lock_updates(store, graph.id)

    assert report.updated_count == 1
    assert report.unlocked_nodes == []
    assert store.get_node(nodes["Backend Dev"].id).is_locked is False


def test_exp_gain_adds_ten_and_clamps():
    gain = apply_exp_gain(_node("n", required=100, current=95))

    assert gain.current_exp == 100
    assert gain.exp_gain == 5
    assert gain.reached_max


def test_exp_gain_without_requirement_is_not_clamped():
    gain = apply_exp_gain(_node("n", NodeType.CURRENT, required=0, current=30))

    assert gain.current_exp == 40
    assert gain.exp_gain == 10
    assert not gain.reached_max


def test_locked_node_rejects_exp(store, seeded_graph):
    _, nodes = seeded_graph
    django = nodes["Django"]

    with pytest.raises(LockedNode):
        increment_exp(store, django.id)

    assert store.get_node(django.id).current_exp == 0


def test_increment_exp_writes_the_new_value(store, seeded_graph):
    _, nodes = seeded_graph

    node, gain = increment_exp(store, nodes["Python"].id)

    assert node.current_exp == 10
    assert gain.exp_gain == 10
    assert store.get_node(nodes["Python"].id).current_exp == 10


def test_increment_exp_unknown_node(store):
    with pytest.raises(NotFound):
        increment_exp(store, "missing")
