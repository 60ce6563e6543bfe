# pathfinder/routers/graphs.py

from fastapi import APIRouter, Depends, HTTPException, Response, status

from skill_engine.errors import NotFound
from skill_engine.layout import layout
from skill_engine.models import Graph, SkillNode
from skill_engine.store import GraphStore

from .. import schemas
from ..graph_store import get_graph_store
from .auth import get_current_user

router = APIRouter(
    tags=["graphs"],
)


def get_owned_graph(store: GraphStore, graph_id: str, user: schemas.User) -> Graph:
    graph = store.get_graph(graph_id)
    if graph is None:
        raise NotFound("Graph not found", graph_id=graph_id)
    if graph.user_id != user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not your graph")
    return graph


def get_owned_node(store: GraphStore, node_id: str, user: schemas.User) -> SkillNode:
    node = store.get_node(node_id)
    if node is None:
        raise NotFound("Node not found", node_id=node_id)
    get_owned_graph(store, node.graph_id, user)
    return node


def build_graph_view(store: GraphStore, graph: Graph) -> schemas.GraphView:
    """Loads one snapshot of the graph and lays it out."""
    nodes = store.list_nodes(graph.id)
    edges = store.list_edges(graph.id)
    node_ids = {node.id for node in nodes}
    goals = [g for g in store.list_goals(graph.user_id) if g.target_node_id in node_ids]
    return schemas.GraphView(
        graph_id=graph.id,
        nodes=layout(nodes, edges),
        edges=edges,
        goals=goals,
    )


@router.get("/graphs/me", response_model=schemas.GraphView)
def read_my_graph(
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Returns the user's latest graph with positions filled in."""
    graph = store.latest_graph(current_user.id)
    if graph is None:
        raise NotFound("No graph yet; complete onboarding first", user_id=current_user.id)
    return build_graph_view(store, graph)


@router.get("/graphs/{graph_id}", response_model=schemas.GraphView)
def read_graph(
    graph_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    return build_graph_view(store, get_owned_graph(store, graph_id, current_user))


@router.delete("/graphs/{graph_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_graph(
    graph_id: str,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """Deletes the graph together with its nodes and edges."""
    get_owned_graph(store, graph_id, current_user)
    store.delete_graph(graph_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/layout", response_model=schemas.LayoutResponse, tags=["layout"])
def compute_layout(request: schemas.LayoutRequest):
    """
    Lays out a (nodes, edges) snapshot without touching the store.
    Always answers with a position for every node.
    """
    return {"nodes": layout(request.nodes, request.edges)}
