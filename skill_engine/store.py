# skill_engine/store.py

from abc import ABC, abstractmethod
from typing import Iterable, List, Optional

from .models import Goal, GoalCreate, Graph, NodeCreate, SkillEdge, SkillGraph, SkillNode


class GraphStore(ABC):
    """Per-entity persistence for graphs, nodes, edges and goals.

    Every call is independent: there are no multi-entity transactions, so
    callers running several writes in a row must tolerate partial completion.
    Failed reads and writes raise ``StoreError``.
    """

    # Graphs

    @abstractmethod
    def create_graph(self, user_id: int) -> Graph: ...

    @abstractmethod
    def get_graph(self, graph_id: str) -> Optional[Graph]: ...

    @abstractmethod
    def latest_graph(self, user_id: int) -> Optional[Graph]: ...

    @abstractmethod
    def delete_graph(self, graph_id: str) -> None:
        """Delete the graph record together with all of its nodes and edges."""

    # Nodes

    @abstractmethod
    def insert_node(self, node: NodeCreate) -> SkillNode: ...

    @abstractmethod
    def get_node(self, node_id: str) -> Optional[SkillNode]: ...

    @abstractmethod
    def list_nodes(self, graph_id: str) -> List[SkillNode]: ...

    @abstractmethod
    def update_node(self, node_id: str, **patch) -> SkillNode: ...

    @abstractmethod
    def delete_nodes(self, node_ids: Iterable[str]) -> int:
        """Delete the given nodes and every edge touching them. Returns the count."""

    # Edges

    @abstractmethod
    def insert_edge(self, graph_id: str, from_node_id: str, to_node_id: str) -> SkillEdge: ...

    @abstractmethod
    def list_edges(self, graph_id: str) -> List[SkillEdge]: ...

    # Goals

    @abstractmethod
    def insert_goal(self, goal: GoalCreate) -> Goal: ...

    @abstractmethod
    def get_goal(self, goal_id: str) -> Optional[Goal]: ...

    @abstractmethod
    def list_goals(self, user_id: int) -> List[Goal]:
        """Goals of the user, newest first."""

    @abstractmethod
    def delete_goal(self, goal_id: str) -> None: ...

    def snapshot(self, graph_id: str) -> SkillGraph:
        """Load all nodes and edges of a graph once."""
        return SkillGraph(self.list_nodes(graph_id), self.list_edges(graph_id))
