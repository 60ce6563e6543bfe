# tests/test_tree_builder.py

import pytest

from skill_engine.errors import NotFound, SkillGraphError
from skill_engine.models import NodeCreate, NodeType
from skill_engine.proposals import Classification, TreeProposal
from skill_engine.tree_builder import center_node_create, delete_subtree, grow_classification, splice_tree


def _generated(label, parents=(), node_type="skill", required=100):
    return {
        "nodeType": node_type,
        "label": label,
        "requiredExp": required,
        "parentLabels": list(parents),
    }


def _tree(*nodes):
    return TreeProposal.model_validate({"nodes": list(nodes), "reasoning": "because"})


def test_parents_resolve_to_created_nodes_or_the_anchor(store, seeded_graph):
    graph, nodes = seeded_graph
    anchor = nodes["Backend Dev"]
    proposal = _tree(
        _generated("SQL", ["Backend Dev"]),
        _generated("PostgreSQL", ["SQL (skill)"]),
        _generated("Redis", ["Nonexistent"]),
        _generated("Caching", []),
    )

    report = splice_tree(graph.id, proposal, anchor, store)

    by_label = {n.label: n for n in report.created_nodes}
    assert by_label["SQL"].parent_ids == [anchor.id]
    assert by_label["PostgreSQL"].parent_ids == [by_label["SQL"].id]
    assert by_label["Redis"].parent_ids == [anchor.id]
    assert by_label["Caching"].parent_ids == [anchor.id]
    assert report.failed_labels == []
    assert report.reasoning == "because"

    inbound = [e for e in store.edges if e.to_node_id in {n.id for n in report.created_nodes}]
    assert len(inbound) == 4


def test_only_anchor_and_new_nodes_are_parent_candidates(store, seeded_graph):
    graph, nodes = seeded_graph

    report = splice_tree(graph.id, _tree(_generated("Flask", ["Python"])), nodes["Backend Dev"], store)

    assert report.created_nodes[0].parent_ids == [nodes["Backend Dev"].id]


def test_lock_state_follows_the_parent(store, seeded_graph):
    graph, nodes = seeded_graph
    proposal = _tree(_generated("SQL", required=100), _generated("PostgreSQL", ["SQL"]))

    report = splice_tree(graph.id, proposal, nodes["Backend Dev"], store)

    sql, postgres = report.created_nodes
    assert sql.is_locked is False
    assert postgres.is_locked is True
    assert sql.color == "#7ED321"


def test_failed_node_is_reported_and_children_fall_back(store, seeded_graph):
    graph, nodes = seeded_graph
    store.fail_node_labels.add("Broken")
    proposal = _tree(_generated("Broken"), _generated("Child", ["Broken"]))

    report = splice_tree(graph.id, proposal, nodes["Python"], store)

    assert report.failed_labels == ["Broken"]
    assert [n.label for n in report.created_nodes] == ["Child"]
    assert report.created_nodes[0].parent_ids == [nodes["Python"].id]


def test_grow_classification_adds_current_node_under_center(store):
    graph = store.create_graph(user_id=1)
    center = store.insert_node(center_node_create(graph.id))
    classification = Classification(category="Cooking", current_position="Line Cook", reasoning="r")

    report = grow_classification(
        store, graph.id, center, classification, _tree(_generated("Sauces", ["Line Cook"]))
    )

    current, sauces = report.created_nodes
    assert current.node_type == NodeType.CURRENT
    assert current.metadata == {"category": "Cooking"}
    assert current.parent_ids == [center.id]
    assert sauces.parent_ids == [current.id]
    assert sauces.is_locked is False
    assert report.anchor_id == current.id


def test_delete_subtree_removes_descendants(store, seeded_graph):
    graph, nodes = seeded_graph

    deleted = delete_subtree(store, nodes["Python"].id)

    assert deleted == [nodes["Python"].id, nodes["Django"].id]
    assert {n.label for n in store.list_nodes(graph.id)} == {"You", "Backend Dev"}
    assert all(e.to_node_id not in deleted for e in store.edges)


def test_delete_subtree_rejects_the_center(store, seeded_graph):
    _, nodes = seeded_graph

    with pytest.raises(SkillGraphError):
        delete_subtree(store, nodes["You"].id)

    assert nodes["You"].id in store.nodes


def test_delete_subtree_unknown_node(store, seeded_graph):
    graph, _ = seeded_graph

    with pytest.raises(NotFound):
        delete_subtree(store, "nope")

    other = store.insert_node(NodeCreate(graph_id="other", node_type=NodeType.SKILL, label="X"))
    with pytest.raises(NotFound):
        delete_subtree(store, other.id, graph_id=graph.id)
