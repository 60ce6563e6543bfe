# pathfinder/routers/nodes.py

import logging

from fastapi import APIRouter, Depends

from skill_engine.store import GraphStore
from skill_engine.tree_builder import delete_subtree, splice_tree
from skill_engine.unlock import apply_lock_updates, increment_exp

from .. import schemas
from ..ai.tree_generator import propose_expansion
from ..graph_store import get_graph_store
from .auth import get_current_user
from .graphs import get_owned_graph, get_owned_node

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/nodes",
    tags=["nodes"],
)


@router.post("/unlock-check", response_model=schemas.UnlockCheckResponse)
def unlock_check(
    request: schemas.UnlockCheckRequest,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """
    Recomputes lock state for the whole graph and persists the changes.
    ``unlocked_nodes`` lists every node that just opened up.
    """
    get_owned_graph(store, request.graph_id, current_user)
    report = apply_lock_updates(store, request.graph_id)
    return {"updated_count": report.updated_count, "unlocked_nodes": report.unlocked_nodes}


@router.post("/{node_id}/increment-exp", response_model=schemas.IncrementExpResponse)
def increment_node_exp(
    node_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Adds a fixed 10 EXP. Locked nodes are rejected with 409."""
    get_owned_node(store, node_id, current_user)
    node, gain = increment_exp(store, node_id)
    return {"node": node, "exp_gain": gain.exp_gain, "reached_max": gain.reached_max}


@router.post("/{node_id}/expand", response_model=schemas.ExpandResponse, tags=["AI"])
async def expand_node(
    node_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Asks the oracle for follow-up nodes and splices them under this node."""
    node = get_owned_node(store, node_id, current_user)

    # The category lives on the current node this branch grows from.
    graph = store.snapshot(node.graph_id)
    category = ""
    for ancestor_id in reversed(graph.path_from_root(node.id)):
        ancestor = graph.nodes.get(ancestor_id)
        if ancestor is not None and ancestor.metadata.get("category"):
            category = ancestor.metadata["category"]
            break

    proposal = await propose_expansion(node, category)
    report = splice_tree(node.graph_id, proposal, node, store)
    logger.info("Expanded node %s with %d nodes", node_id, len(report.created_nodes))
    return {
        "created_nodes": report.created_nodes,
        "failed_labels": report.failed_labels,
        "failed_edges": report.failed_edges,
        "reasoning": report.reasoning,
    }


@router.delete("/{node_id}", response_model=schemas.DeleteSubtreeResponse)
def delete_node(
    node_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Deletes the node and its whole subtree."""
    get_owned_node(store, node_id, current_user)
    return {"deleted_ids": delete_subtree(store, node_id)}
