# conftest.py

import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from skill_engine.errors import StoreError
from skill_engine.models import Goal, Graph, NodeCreate, NodeType, SkillEdge, SkillNode
from skill_engine.store import GraphStore

# --- Environment Configuration ---


def pytest_configure(config):
    """
    Forcefully sets the environment variables for the entire test session.
    SQL runs on in-memory SQLite; Neo4j and OpenAI are never contacted.
    """
    os.environ["DATABASE_URL"] = "sqlite://"
    os.environ["NEO4J_URI"] = "neo4j://localhost:7687"
    os.environ["NEO4J_USERNAME"] = "neo4j"
    os.environ["NEO4J_PASSWORD"] = "testpassword"
    os.environ["OPENAI_API_KEY"] = "sk-testplaceholderkey"
    os.environ["SECRET_KEY"] = "testsecretkey"
    os.environ["ACCESS_TOKEN_EXPIRE_MINUTES"] = "30"
    os.environ["LOG_LEVEL"] = "WARNING"


# --- In-memory graph store ---


class InMemoryGraphStore(GraphStore):
    """
    Dict-backed GraphStore for tests. ``fail_node_labels`` and
    ``fail_edges_to`` make single writes fail with StoreError.
    """

    def __init__(self):
        self.graphs = {}
        self.nodes = {}
        self.edges = []
        self.goals = {}
        self.fail_node_labels = set()
        self.fail_edges_to = set()
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _now(self):
        self._clock += timedelta(seconds=1)
        return self._clock

    def _fail(self, message, **context):
        raise StoreError(message, **context)

    # Graphs

    def create_graph(self, user_id):
        graph = Graph(id=str(uuid.uuid4()), user_id=user_id, version=1, created_at=self._now())
        self.graphs[graph.id] = graph
        return graph

    def get_graph(self, graph_id):
        return self.graphs.get(graph_id)

    def latest_graph(self, user_id):
        owned = [g for g in self.graphs.values() if g.user_id == user_id]
        return max(owned, key=lambda g: g.created_at) if owned else None

    def delete_graph(self, graph_id):
        self.graphs.pop(graph_id, None)
        doomed = {k for k, n in self.nodes.items() if n.graph_id == graph_id}
        self.goals = {k: g for k, g in self.goals.items() if g.target_node_id not in doomed}
        self.nodes = {k: n for k, n in self.nodes.items() if n.graph_id != graph_id}
        self.edges = [e for e in self.edges if e.graph_id != graph_id]

    # Nodes

    def insert_node(self, node):
        if node.label in self.fail_node_labels:
            self._fail("insert failed", label=node.label)
        created = SkillNode(**node.model_dump(), created_at=self._now())
        self.nodes[created.id] = created
        return created

    def get_node(self, node_id):
        return self.nodes.get(node_id)

    def list_nodes(self, graph_id):
        return [n for n in self.nodes.values() if n.graph_id == graph_id]

    def update_node(self, node_id, **patch):
        if node_id not in self.nodes:
            self._fail("update failed", node_id=node_id)
        self.nodes[node_id] = self.nodes[node_id].model_copy(update=patch)
        return self.nodes[node_id]

    def delete_nodes(self, node_ids):
        ids = set(node_ids)
        deleted = len(ids & set(self.nodes))
        self.nodes = {k: n for k, n in self.nodes.items() if k not in ids}
        self.edges = [e for e in self.edges if e.from_node_id not in ids and e.to_node_id not in ids]
        return deleted

    # Edges

    def insert_edge(self, graph_id, from_node_id, to_node_id):
        if to_node_id in self.fail_edges_to:
            self._fail("edge failed", to_node_id=to_node_id)
        edge = SkillEdge(
            id=str(uuid.uuid4()),
            graph_id=graph_id,
            from_node_id=from_node_id,
            to_node_id=to_node_id,
        )
        self.edges.append(edge)
        return edge

    def list_edges(self, graph_id):
        return [e for e in self.edges if e.graph_id == graph_id]

    # Goals

    def insert_goal(self, goal):
        created = Goal(**goal.model_dump(), created_at=self._now())
        self.goals[created.id] = created
        return created

    def get_goal(self, goal_id):
        return self.goals.get(goal_id)

    def list_goals(self, user_id):
        owned = [g for g in self.goals.values() if g.user_id == user_id]
        return sorted(owned, key=lambda g: g.created_at, reverse=True)

    def delete_goal(self, goal_id):
        self.goals.pop(goal_id, None)


# --- Fixtures ---


@pytest.fixture
def store():
    return InMemoryGraphStore()


@pytest.fixture
def seeded_graph(store):
    """
    center -> current "Backend Dev" -> skill "Python" -> skill "Django"
    Returns (graph, nodes by label).
    """
    graph = store.create_graph(user_id=1)
    center = store.insert_node(
        NodeCreate(graph_id=graph.id, node_type=NodeType.CENTER, label="You", required_exp=0)
    )
    current = store.insert_node(
        NodeCreate(
            graph_id=graph.id,
            node_type=NodeType.CURRENT,
            label="Backend Dev",
            required_exp=0,
            parent_ids=[center.id],
            metadata={"category": "Technology"},
        )
    )
    python = store.insert_node(
        NodeCreate(
            graph_id=graph.id,
            node_type=NodeType.SKILL,
            label="Python",
            required_exp=100,
            parent_ids=[current.id],
        )
    )
    django = store.insert_node(
        NodeCreate(
            graph_id=graph.id,
            node_type=NodeType.SKILL,
            label="Django",
            required_exp=200,
            parent_ids=[python.id],
            is_locked=True,
        )
    )
    store.insert_edge(graph.id, center.id, current.id)
    store.insert_edge(graph.id, current.id, python.id)
    store.insert_edge(graph.id, python.id, django.id)
    return graph, {n.label: n for n in (center, current, python, django)}


@pytest.fixture
def mock_user():
    from pathfinder.schemas import User

    return User(id=1, email="testuser@example.com", is_active=True)


@pytest.fixture
def client(store, mock_user):
    """
    TestClient with the graph store replaced by the in-memory fake and the
    current user fixed to ``mock_user``.
    """
    from pathfinder.main import create_app
    from pathfinder.graph_store import get_graph_store
    from pathfinder.routers.auth import get_current_user
    import pathfinder.database

    app = create_app()
    pathfinder.database.metadata.create_all(pathfinder.database.engine)

    async def override_get_current_user():
        return mock_user

    app.dependency_overrides[get_graph_store] = lambda: store
    app.dependency_overrides[get_current_user] = override_get_current_user
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def auth_client():
    """TestClient with real authentication against a fresh SQLite database."""
    from pathfinder.main import create_app
    import pathfinder.database

    app = create_app()
    pathfinder.database.metadata.create_all(pathfinder.database.engine)
    yield TestClient(app)
