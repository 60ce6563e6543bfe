# pathfinder/routers/goals.py

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from skill_engine.errors import NotFound
from skill_engine.goal_resolver import resolve_goal
from skill_engine.models import Goal
from skill_engine.store import GraphStore

from .. import schemas
from ..ai.goal_planner import propose_goal_path
from ..graph_store import get_graph_store
from .auth import get_current_user
from .graphs import get_owned_graph

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/goals",
    tags=["goals"],
)


@router.post(
    "",
    response_model=schemas.GoalResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["AI"],
)
async def create_goal(
    request: schemas.GoalRequest,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """
    Turns a free-text goal into a path of nodes ending in a goal node.

    The oracle picks the start (an existing node or a new current node
    under the center) and the steps; the path is written step by step and
    a step that cannot be stored is skipped rather than rolled back.
    """
    graph = get_owned_graph(store, request.graph_id, current_user)
    nodes = store.list_nodes(graph.id)
    if not nodes:
        raise NotFound("The graph has no nodes", graph_id=graph.id)
    edges = store.list_edges(graph.id)

    proposal = await propose_goal_path(request.goal_description, nodes)
    resolution = resolve_goal(
        request.goal_description,
        nodes,
        proposal,
        store,
        graph.id,
        current_user.id,
        existing_edges=edges,
    )
    logger.info(
        "Goal %s: %d new nodes, new center: %s",
        resolution.goal.id,
        resolution.new_nodes_count,
        resolution.created_new_center,
    )

    return {
        "goal": resolution.goal,
        "goal_node": resolution.goal_node,
        "new_nodes": resolution.new_nodes_count,
        "reasoning": resolution.reasoning,
        "path_steps_count": resolution.path_steps_count,
        "created_new_center": resolution.created_new_center,
        "current_node": resolution.current_node,
        "failed_steps": resolution.failed_steps,
        "failed_edges": resolution.failed_edges,
    }


@router.get("", response_model=List[Goal])
def list_goals(
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Goals of the current user, newest first."""
    return store.list_goals(current_user.id)


@router.delete("/{goal_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_goal(
    goal_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    goal = store.get_goal(goal_id)
    if goal is None:
        raise NotFound("Goal not found", goal_id=goal_id)
    if goal.user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your goal")
    store.delete_goal(goal_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
