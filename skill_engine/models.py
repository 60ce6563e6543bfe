# skill_engine/models.py

import uuid
from collections import deque
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator


class NodeType(str, Enum):
    CENTER = "center"
    CURRENT = "current"
    SKILL = "skill"
    CERT = "cert"
    POSITION = "position"
    GOAL = "goal"


# Node types that are never gated by their parent's progress.
ALWAYS_UNLOCKED_TYPES = frozenset({NodeType.CENTER, NodeType.CURRENT})

NODE_TYPE_COLORS = {
    NodeType.CENTER: "#FFD700",
    NodeType.CURRENT: "#4A90E2",
    NodeType.SKILL: "#7ED321",
    NodeType.CERT: "#9013FE",
    NodeType.POSITION: "#F5A623",
    NodeType.GOAL: "#FF6B9D",
}

# Path steps only get a dedicated color for these types.
PATH_STEP_COLORS = {
    NodeType.SKILL: "#7ED321",
    NodeType.CERT: "#9013FE",
    NodeType.POSITION: "#F5A623",
}
DEFAULT_NODE_COLOR = "#4A90E2"
GOAL_ORIGINATED_CURRENT_COLOR = "#FF6B6B"


def _new_id() -> str:
    return str(uuid.uuid4())


def _to_native_datetime(value):
    # Neo4j returns neo4j.time.DateTime, which pydantic does not understand.
    if hasattr(value, "to_native"):
        return value.to_native()
    return value


class Graph(BaseModel):
    id: str
    user_id: int
    version: int = 1
    created_at: Optional[datetime] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def native_created_at(cls, value):
        return _to_native_datetime(value)


class SkillNode(BaseModel):
    """A persisted node of a user's skill tree."""

    id: str
    graph_id: str
    node_type: NodeType
    label: str
    description: str = ""
    required_exp: float = Field(default=0, ge=0)
    current_exp: float = Field(default=0, ge=0)
    parent_ids: List[str] = Field(default_factory=list)
    position_x: float = 0.0
    position_y: float = 0.0
    color: str = DEFAULT_NODE_COLOR
    is_locked: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[datetime] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def native_created_at(cls, value):
        return _to_native_datetime(value)

    @property
    def parent_id(self) -> Optional[str]:
        return self.parent_ids[0] if self.parent_ids else None


class NodeCreate(BaseModel):
    """A node staged for insertion. The id is assigned before the write."""

    id: str = Field(default_factory=_new_id)
    graph_id: str
    node_type: NodeType
    label: str
    description: str = ""
    required_exp: float = Field(default=100, ge=0)
    current_exp: float = Field(default=0, ge=0)
    parent_ids: List[str] = Field(default_factory=list, max_length=1)
    position_x: float = 0.0
    position_y: float = 0.0
    color: str = DEFAULT_NODE_COLOR
    is_locked: bool = False
    metadata: Dict[str, Any] = Field(default_factory=dict)


class SkillEdge(BaseModel):
    id: str
    graph_id: str
    from_node_id: str
    to_node_id: str


class Goal(BaseModel):
    id: str
    user_id: int
    description: str
    target_node_id: str
    recommended_path: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None

    @field_validator("created_at", mode="before")
    @classmethod
    def native_created_at(cls, value):
        return _to_native_datetime(value)


class GoalCreate(BaseModel):
    id: str = Field(default_factory=_new_id)
    user_id: int
    description: str
    target_node_id: str
    recommended_path: List[str]


class SkillGraph:
    """An in-memory snapshot of one graph's nodes and edges.

    Built once per operation from a single store read; every traversal after
    that is local. The edge set is authoritative: a node's parent is the
    source of its first inbound edge, whatever its ``parent_ids`` say.
    """

    def __init__(self, nodes: Iterable[SkillNode], edges: Iterable[SkillEdge]):
        self.nodes: Dict[str, SkillNode] = {}
        for node in nodes:
            self.nodes.setdefault(node.id, node)

        self.parent_of: Dict[str, str] = {}
        self.children_of: Dict[str, List[str]] = {}
        for edge in edges:
            self.children_of.setdefault(edge.from_node_id, []).append(edge.to_node_id)
            self.parent_of.setdefault(edge.to_node_id, edge.from_node_id)

    def __contains__(self, node_id) -> bool:
        return node_id in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    @property
    def center(self) -> Optional[SkillNode]:
        return next(
            (n for n in self.nodes.values() if n.node_type == NodeType.CENTER), None
        )

    def parent(self, node_id: str) -> Optional[SkillNode]:
        parent_id = self.parent_of.get(node_id)
        return self.nodes.get(parent_id) if parent_id else None

    def has_parent(self, node_id: str) -> bool:
        return node_id in self.parent_of

    def descendants(self, node_id: str) -> List[str]:
        """Breadth-first list of every node reachable below ``node_id``."""
        visited = {node_id}
        queue = deque([node_id])
        res = []

        while queue:
            curr = queue.popleft()
            for child in self.children_of.get(curr, []):
                if child not in visited:
                    visited.add(child)
                    res.append(child)
                    queue.append(child)
        return res

    def subtree_ids(self, node_id: str) -> List[str]:
        """The node itself followed by all of its descendants."""
        return [node_id] + self.descendants(node_id)

    def ancestors(self, node_id: str) -> List[str]:
        """Parent chain from the direct parent up to the root, cycle-safe."""
        res = []
        seen = {node_id}
        curr = self.parent_of.get(node_id)
        while curr is not None and curr not in seen:
            res.append(curr)
            seen.add(curr)
            curr = self.parent_of.get(curr)
        return res

    def path_from_root(self, node_id: str) -> List[str]:
        return list(reversed(self.ancestors(node_id))) + [node_id]
