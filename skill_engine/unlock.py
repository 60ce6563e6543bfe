# skill_engine/unlock.py

import logging
from typing import Iterable, List, Tuple

from pydantic import BaseModel

from .errors import LockedNode, NotFound
from .models import ALWAYS_UNLOCKED_TYPES, SkillEdge, SkillGraph, SkillNode
from .store import GraphStore

logger = logging.getLogger(__name__)

UNLOCK_THRESHOLD = 0.5
EXP_INCREMENT = 10


class LockUpdate(BaseModel):
    node_id: str
    locked: bool


class UnlockReport(BaseModel):
    updated_count: int
    unlocked_nodes: List[SkillNode]


class ExpGain(BaseModel):
    current_exp: float
    exp_gain: float
    reached_max: bool


def parent_unlocks_children(parent: SkillNode) -> bool:
    """True once ``parent`` has enough progress for its children to open."""
    if parent.node_type in ALWAYS_UNLOCKED_TYPES:
        return True
    if parent.required_exp <= 0:
        return True
    return parent.current_exp / parent.required_exp >= UNLOCK_THRESHOLD


def compute_lock_updates(
    nodes: Iterable[SkillNode], edges: Iterable[SkillEdge]
) -> List[LockUpdate]:
    """
    Computes the lock state every node should have and returns only the
    nodes whose persisted state differs. Running it again on the same
    snapshot after applying the result yields an empty list.
    """
    graph = SkillGraph(nodes, edges)
    updates = []

    for node in graph.nodes.values():
        if node.node_type in ALWAYS_UNLOCKED_TYPES or not graph.has_parent(node.id):
            should_lock = False
        else:
            parent = graph.parent(node.id)
            if parent is None:
                # Dangling edge; left as is.
                logger.warning(
                    "Node %s points at missing parent %s", node.id, graph.parent_of[node.id]
                )
                continue
            should_lock = not parent_unlocks_children(parent)

        if should_lock != node.is_locked:
            updates.append(LockUpdate(node_id=node.id, locked=should_lock))

    return updates


def newly_unlocked(
    nodes: Iterable[SkillNode], updates: Iterable[LockUpdate]
) -> List[SkillNode]:
    """
    Nodes that go from locked to unlocked under ``updates``. Center and
    current nodes are always unlocked and are not reported.
    """
    by_id = {node.id: node for node in nodes}
    res = []
    for update in updates:
        node = by_id.get(update.node_id)
        if node is None or node.node_type in ALWAYS_UNLOCKED_TYPES:
            continue
        if node.is_locked and not update.locked:
            res.append(node.model_copy(update={"is_locked": False}))
    return res


def apply_lock_updates(store: GraphStore, graph_id: str) -> UnlockReport:
    """Loads one snapshot of the graph, recomputes lock state and writes the changes."""
    nodes = store.list_nodes(graph_id)
    edges = store.list_edges(graph_id)
    updates = compute_lock_updates(nodes, edges)

    written = {}
    for update in updates:
        written[update.node_id] = store.update_node(update.node_id, is_locked=update.locked)
    unlocked = [written[node.id] for node in newly_unlocked(nodes, updates)]

    if updates:
        logger.info(
            "Graph %s: %d lock updates, %d newly unlocked",
            graph_id,
            len(updates),
            len(unlocked),
        )
    return UnlockReport(updated_count=len(updates), unlocked_nodes=unlocked)


def apply_exp_gain(node: SkillNode, amount: float = EXP_INCREMENT) -> ExpGain:
    """
    Works out the EXP a node ends up with after one increment.

    Locked nodes are rejected. ``current_exp`` is clamped to ``required_exp``
    whenever the node has a positive requirement.
    """
    if node.is_locked:
        raise LockedNode("Node is locked", node_id=node.id)

    new_exp = node.current_exp + amount
    if node.required_exp > 0:
        new_exp = min(new_exp, node.required_exp)
    reached_max = node.required_exp > 0 and new_exp >= node.required_exp
    return ExpGain(
        current_exp=new_exp,
        exp_gain=new_exp - node.current_exp,
        reached_max=reached_max,
    )


def increment_exp(store: GraphStore, node_id: str) -> Tuple[SkillNode, ExpGain]:
    node = store.get_node(node_id)
    if node is None:
        raise NotFound("Node not found", node_id=node_id)

    gain = apply_exp_gain(node)
    updated = store.update_node(node_id, current_exp=gain.current_exp)
    return updated, gain
