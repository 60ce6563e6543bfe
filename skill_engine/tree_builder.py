# skill_engine/tree_builder.py

import logging
from typing import List, Optional

from pydantic import BaseModel

from .errors import NotFound, SkillGraphError, StoreError
from .labels import LabelIndex
from .models import NODE_TYPE_COLORS, NodeCreate, NodeType, SkillNode
from .proposals import Classification, TreeProposal, color_for
from .store import GraphStore
from .unlock import parent_unlocks_children

logger = logging.getLogger(__name__)

CENTER_LABEL = "You"
CENTER_DESCRIPTION = "The center of your skill tree"


class SpliceReport(BaseModel):
    anchor_id: str
    created_nodes: List[SkillNode]
    failed_labels: List[str]
    failed_edges: int
    reasoning: str = ""


def center_node_create(graph_id: str) -> NodeCreate:
    return NodeCreate(
        graph_id=graph_id,
        node_type=NodeType.CENTER,
        label=CENTER_LABEL,
        description=CENTER_DESCRIPTION,
        required_exp=0,
        parent_ids=[],
        color=NODE_TYPE_COLORS[NodeType.CENTER],
        is_locked=False,
    )


def current_node_create(graph_id: str, classification: Classification, center_id: str) -> NodeCreate:
    return NodeCreate(
        graph_id=graph_id,
        node_type=NodeType.CURRENT,
        label=classification.current_position,
        description=classification.reasoning,
        required_exp=0,
        parent_ids=[center_id],
        color=NODE_TYPE_COLORS[NodeType.CURRENT],
        is_locked=False,
        metadata={"category": classification.category},
    )


def splice_tree(
    graph_id: str, proposal: TreeProposal, anchor: SkillNode, store: GraphStore
) -> SpliceReport:
    """
    Writes the proposed nodes under ``anchor``, one at a time and in order.

    Each node hangs under the first of its parent labels that names the
    anchor or a node created earlier in this call; otherwise under the
    anchor. Only one parent edge is ever written. A node that cannot be
    created is skipped, and children naming it fall back to the anchor.
    """
    labels = LabelIndex([anchor])
    by_id = {anchor.id: anchor}
    created = []
    failed_labels = []
    failed_edges = 0

    for proposed in proposal.nodes:
        parent = next(
            (p for p in (labels.resolve(label) for label in proposed.parent_labels) if p),
            anchor,
        )
        if parent is anchor and proposed.parent_labels and anchor.label not in proposed.parent_labels:
            logger.debug(
                "Parent labels %s of %r did not resolve; using %r",
                proposed.parent_labels,
                proposed.label,
                anchor.label,
            )

        try:
            node = store.insert_node(
                NodeCreate(
                    graph_id=graph_id,
                    node_type=proposed.node_type,
                    label=proposed.label,
                    description=proposed.description,
                    required_exp=proposed.required_exp,
                    parent_ids=[parent.id],
                    color=color_for(proposed.node_type),
                    is_locked=not parent_unlocks_children(by_id[parent.id]),
                    metadata={"suggestedResources": proposed.suggested_resources},
                )
            )
        except StoreError as e:
            logger.error("Proposed node %r was not created: %s", proposed.label, e.message)
            failed_labels.append(proposed.label)
            continue

        labels.add(node)
        by_id[node.id] = node
        created.append(node)

        try:
            store.insert_edge(graph_id, parent.id, node.id)
        except StoreError as e:
            logger.error("Edge %s -> %s failed: %s", parent.id, node.id, e.message)
            failed_edges += 1

    return SpliceReport(
        anchor_id=anchor.id,
        created_nodes=created,
        failed_labels=failed_labels,
        failed_edges=failed_edges,
        reasoning=proposal.reasoning,
    )


def grow_classification(
    store: GraphStore,
    graph_id: str,
    center: SkillNode,
    classification: Classification,
    proposal: TreeProposal,
) -> SpliceReport:
    """Adds one current node under the center and splices its proposed tree below it."""
    current = store.insert_node(current_node_create(graph_id, classification, center.id))
    edge_failed = 0
    try:
        store.insert_edge(graph_id, center.id, current.id)
    except StoreError as e:
        logger.error("Edge to current node %s failed: %s", current.id, e.message)
        edge_failed = 1

    report = splice_tree(graph_id, proposal, current, store)
    report.failed_edges += edge_failed
    report.created_nodes.insert(0, current)
    return report


def delete_subtree(store: GraphStore, node_id: str, graph_id: Optional[str] = None) -> List[str]:
    """
    Deletes a node and everything below it. Returns the deleted ids.

    The descendants come from one snapshot of the graph walked breadth-first
    in memory.
    """
    node = store.get_node(node_id)
    if node is None or (graph_id is not None and node.graph_id != graph_id):
        raise NotFound("Node not found", node_id=node_id)
    if node.node_type == NodeType.CENTER:
        raise SkillGraphError(
            "The center node cannot be deleted; delete the graph instead", node_id=node_id
        )

    ids = store.snapshot(node.graph_id).subtree_ids(node_id)
    deleted = store.delete_nodes(ids)
    logger.info("Deleted subtree of %s: %d nodes", node_id, deleted)
    return ids
