# pathfinder/graph_store.py

import logging
import uuid
from typing import Iterable, List, Optional

from neo4j import Driver
from neo4j.exceptions import DriverError, Neo4jError

from skill_engine.errors import StoreError
from skill_engine.models import Goal, GoalCreate, Graph, NodeCreate, SkillEdge, SkillNode
from skill_engine.store import GraphStore

from . import graph_crud
from .database import get_graph_db_driver

logger = logging.getLogger(__name__)


class Neo4jGraphStore(GraphStore):
    """GraphStore backed by Neo4j. Every call runs in its own transaction."""

    def __init__(self, driver: Driver):
        self.driver = driver

    def _execute(self, write: bool, fn, *args):
        try:
            with self.driver.session() as session:
                if write:
                    return session.execute_write(fn, *args)
                return session.execute_read(fn, *args)
        except (Neo4jError, DriverError) as e:
            logger.error("Neo4j %s failed: %s", fn.__name__, e)
            raise StoreError(f"Graph store operation '{fn.__name__}' failed") from e

    def _read(self, fn, *args):
        return self._execute(False, fn, *args)

    def _write(self, fn, *args):
        return self._execute(True, fn, *args)

    # Graphs

    def create_graph(self, user_id: int) -> Graph:
        return Graph.model_validate(self._write(graph_crud.create_graph, str(uuid.uuid4()), user_id))

    def get_graph(self, graph_id: str) -> Optional[Graph]:
        data = self._read(graph_crud.get_graph, graph_id)
        return Graph.model_validate(data) if data else None

    def latest_graph(self, user_id: int) -> Optional[Graph]:
        data = self._read(graph_crud.get_latest_graph, user_id)
        return Graph.model_validate(data) if data else None

    def delete_graph(self, graph_id: str) -> None:
        self._write(graph_crud.delete_graph, graph_id)

    # Nodes

    def insert_node(self, node: NodeCreate) -> SkillNode:
        data = self._write(graph_crud.create_node, node.model_dump(mode="json"))
        return SkillNode.model_validate(data)

    def get_node(self, node_id: str) -> Optional[SkillNode]:
        data = self._read(graph_crud.get_node, node_id)
        return SkillNode.model_validate(data) if data else None

    def list_nodes(self, graph_id: str) -> List[SkillNode]:
        return [SkillNode.model_validate(d) for d in self._read(graph_crud.get_nodes, graph_id)]

    def update_node(self, node_id: str, **patch) -> SkillNode:
        data = self._write(graph_crud.update_node, node_id, patch)
        if data is None:
            raise StoreError("Node to update does not exist", node_id=node_id)
        return SkillNode.model_validate(data)

    def delete_nodes(self, node_ids: Iterable[str]) -> int:
        return self._write(graph_crud.delete_nodes, list(node_ids))

    # Edges

    def insert_edge(self, graph_id: str, from_node_id: str, to_node_id: str) -> SkillEdge:
        data = self._write(
            graph_crud.create_edge, str(uuid.uuid4()), graph_id, from_node_id, to_node_id
        )
        if data is None:
            raise StoreError(
                "Edge endpoints do not exist", from_node_id=from_node_id, to_node_id=to_node_id
            )
        return SkillEdge.model_validate(data)

    def list_edges(self, graph_id: str) -> List[SkillEdge]:
        return [SkillEdge.model_validate(d) for d in self._read(graph_crud.get_edges, graph_id)]

    # Goals

    def insert_goal(self, goal: GoalCreate) -> Goal:
        return Goal.model_validate(self._write(graph_crud.create_goal, goal.model_dump()))

    def get_goal(self, goal_id: str) -> Optional[Goal]:
        data = self._read(graph_crud.get_goal, goal_id)
        return Goal.model_validate(data) if data else None

    def list_goals(self, user_id: int) -> List[Goal]:
        return [Goal.model_validate(d) for d in self._read(graph_crud.get_goals_for_user, user_id)]

    def delete_goal(self, goal_id: str) -> None:
        self._write(graph_crud.delete_goal, goal_id)


def get_graph_store() -> GraphStore:
    """FastAPI dependency returning the Neo4j-backed store."""
    return Neo4jGraphStore(get_graph_db_driver())
