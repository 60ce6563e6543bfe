# tests/test_graph_store.py

from unittest.mock import MagicMock

import pytest
from neo4j.exceptions import ServiceUnavailable

from pathfinder import graph_crud
from pathfinder.graph_store import Neo4jGraphStore
from skill_engine.errors import StoreError
from skill_engine.models import NodeCreate, NodeType


@pytest.fixture
def session():
    return MagicMock()


@pytest.fixture
def graph_store(session):
    driver = MagicMock()
    driver.session.return_value.__enter__.return_value = session
    return Neo4jGraphStore(driver)


def test_insert_node_runs_a_write(graph_store, session):
    node = NodeCreate(graph_id="g1", node_type=NodeType.SKILL, label="SQL")
    session.execute_write.return_value = {**node.model_dump(mode="json"), "created_at": None}

    res = graph_store.insert_node(node)

    fn, props = session.execute_write.call_args.args
    assert fn is graph_crud.create_node
    assert props["node_type"] == "skill"
    assert res.id == node.id
    assert res.node_type == NodeType.SKILL


def test_list_nodes_runs_a_read(graph_store, session):
    session.execute_read.return_value = [
        {"id": "a", "graph_id": "g1", "node_type": "center", "label": "You", "metadata": {}}
    ]

    res = graph_store.list_nodes("g1")

    assert session.execute_read.call_args.args == (graph_crud.get_nodes, "g1")
    assert res[0].node_type == NodeType.CENTER


def test_missing_node_is_none(graph_store, session):
    session.execute_read.return_value = None

    assert graph_store.get_node("nope") is None


def test_missing_edge_endpoint_is_a_store_error(graph_store, session):
    session.execute_write.return_value = None

    with pytest.raises(StoreError) as excinfo:
        graph_store.insert_edge("g1", "a", "b")

    assert excinfo.value.context == {"from_node_id": "a", "to_node_id": "b"}


def test_update_of_missing_node_is_a_store_error(graph_store, session):
    session.execute_write.return_value = None

    with pytest.raises(StoreError):
        graph_store.update_node("nope", current_exp=10)


def test_driver_errors_become_store_errors(graph_store, session):
    session.execute_read.side_effect = ServiceUnavailable("connection refused")

    with pytest.raises(StoreError) as excinfo:
        graph_store.list_edges("g1")

    assert isinstance(excinfo.value.__cause__, ServiceUnavailable)


def test_snapshot_builds_a_skill_graph(graph_store, session):
    session.execute_read.side_effect = [
        [
            {"id": "c", "graph_id": "g1", "node_type": "center", "label": "You"},
            {"id": "a", "graph_id": "g1", "node_type": "current", "label": "Dev"},
        ],
        [{"id": "e", "graph_id": "g1", "from_node_id": "c", "to_node_id": "a"}],
    ]

    graph = graph_store.snapshot("g1")

    assert graph.parent("a").id == "c"
    assert graph.center.id == "c"
