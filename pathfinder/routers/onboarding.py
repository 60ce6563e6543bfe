# pathfinder/routers/onboarding.py

import logging

from fastapi import APIRouter, Depends, status

from skill_engine.errors import BadOracleResponse, StoreError
from skill_engine.store import GraphStore
from skill_engine.tree_builder import center_node_create, grow_classification

from .. import schemas
from ..ai.classifier import classify_answers
from ..ai.tree_generator import propose_tree
from ..graph_store import get_graph_store
from .auth import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/onboarding",
    tags=["onboarding"],
)


@router.post("/classify", response_model=schemas.ClassifyResponse, tags=["AI"])
async def classify(
    request: schemas.ClassifyRequest,
    current_user: schemas.User = Depends(get_current_user),
):
    """Classifies where the user stands today from their onboarding answers."""
    result = await classify_answers(request.answers)
    return {"classifications": result.classifications}


@router.post(
    "/graph",
    response_model=schemas.BuildGraphResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["AI"],
)
async def build_initial_tree(
    request: schemas.BuildGraphRequest,
    store: GraphStore = Depends(get_graph_store),
    current_user: schemas.User = Depends(get_current_user),
):
    """
    Creates a new graph with its center node, then one current node and a
    proposed tree per classification. A classification whose tree cannot be
    proposed or stored is skipped and reported; the rest still go in.
    """
    graph = store.create_graph(current_user.id)
    center = store.insert_node(center_node_create(graph.id))

    node_count = 1
    skipped = []
    for classification in request.classifications:
        try:
            proposal = await propose_tree(classification)
            report = grow_classification(store, graph.id, center, classification, proposal)
        except (BadOracleResponse, StoreError) as e:
            logger.warning(
                "Skipping classification %r: %s", classification.current_position, e.message
            )
            skipped.append(
                {"current_position": classification.current_position, "reason": e.message}
            )
            continue
        node_count += len(report.created_nodes)

    return {
        "graph_id": graph.id,
        "center": center,
        "node_count": node_count,
        "skipped": skipped,
    }
