# skill_engine/goal_resolver.py
#
# Turns a goal proposal into a single path of nodes spliced into the tree.
# Planning is pure; committing writes to the store one entity at a time and
# tolerates partial completion.

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from .errors import NotFound, StoreError
from .labels import LabelIndex
from .models import (
    GOAL_ORIGINATED_CURRENT_COLOR,
    NODE_TYPE_COLORS,
    Goal,
    GoalCreate,
    NodeCreate,
    NodeType,
    SkillEdge,
    SkillGraph,
    SkillNode,
)
from .proposals import GoalProposal, PathStep, color_for
from .store import GraphStore

logger = logging.getLogger(__name__)

NEW_CURRENT_REQUIRED_EXP = 100


@dataclass
class GoalPlan:
    """Everything decided before the first write."""

    graph_id: str
    goal_text: str
    proposal: GoalProposal
    labels: LabelIndex
    steps: List[PathStep]
    parent_of: Dict[str, str]
    start_node: Optional[SkillNode] = None
    new_start: Optional[NodeCreate] = None

    @property
    def start_id(self) -> str:
        return self.start_node.id if self.start_node is not None else self.new_start.id


@dataclass(frozen=True)
class PathState:
    """The fold accumulator: where the next step hangs and what happened so far."""

    graph_id: str
    cursor: str
    path: Tuple[str, ...]
    parent_of: Dict[str, str] = field(default_factory=dict)
    created: Tuple[SkillNode, ...] = ()
    failed_steps: Tuple[int, ...] = ()
    failed_edges: int = 0


@dataclass(frozen=True)
class StagedStep:
    """Mutations one path step wants to make. Exactly one of the two is set."""

    existing: Optional[SkillNode] = None
    link_existing: bool = False
    new_node: Optional[NodeCreate] = None


class GoalResolution(BaseModel):
    goal: Goal
    goal_node: SkillNode
    current_node: Optional[SkillNode] = None
    created_nodes: List[SkillNode]
    failed_steps: List[int]
    failed_edges: int
    reasoning: str
    path_steps_count: int

    @property
    def created_new_center(self) -> bool:
        return self.current_node is not None

    @property
    def new_nodes_count(self) -> int:
        # Path nodes plus the goal node plus the new current node, if any.
        return len(self.created_nodes) + 1 + (1 if self.current_node is not None else 0)


def _would_cycle(parent_of: Dict[str, str], parent_id: str, child_id: str) -> bool:
    """True when ``child_id`` is ``parent_id`` or one of its ancestors."""
    seen = set()
    curr = parent_id
    while curr is not None and curr not in seen:
        if curr == child_id:
            return True
        seen.add(curr)
        curr = parent_of.get(curr)
    return False


def plan_goal(
    goal_text: str,
    existing_nodes: Iterable[SkillNode],
    proposal: GoalProposal,
    graph_id: str,
    existing_edges: Iterable[SkillEdge] = (),
) -> GoalPlan:
    """
    Resolves where the goal path starts and fixes the step order.

    Raises NotFound when a new current node is needed but the graph has no
    center, or when the starting label matches nothing. The latter carries
    the requested label and every available label.
    """
    graph = SkillGraph(existing_nodes, existing_edges)
    nodes = list(graph.nodes.values())
    labels = LabelIndex(nodes)
    steps = sorted(proposal.path_steps, key=lambda step: step.step_number)

    plan = GoalPlan(
        graph_id=graph_id,
        goal_text=goal_text,
        proposal=proposal,
        labels=labels,
        steps=steps,
        parent_of=dict(graph.parent_of),
    )

    if proposal.needs_new_center:
        center = graph.center
        if center is None:
            raise NotFound("Center node not found", graph_id=graph_id)
        spec = proposal.new_current_node
        plan.new_start = NodeCreate(
            graph_id=graph_id,
            node_type=NodeType.CURRENT,
            label=spec.label,
            description=spec.description,
            required_exp=NEW_CURRENT_REQUIRED_EXP,
            parent_ids=[center.id],
            color=GOAL_ORIGINATED_CURRENT_COLOR,
            is_locked=False,
            metadata={"isGoalOriented": True, "originalGoal": goal_text},
        )
        return plan

    start = labels.resolve(proposal.starting_node_label)
    if start is None:
        logger.warning(
            "Starting node %r not found in graph %s", proposal.starting_node_label, graph_id
        )
        raise NotFound(
            "Starting node not found",
            requested_label=proposal.starting_node_label,
            available_labels=[n.label for n in nodes],
        )
    plan.start_node = start
    return plan


def stage_step(state: PathState, step: PathStep, labels: LabelIndex) -> StagedStep:
    """Decides what a step does given the cursor, without touching the store."""
    if step.is_existing_node and step.existing_node_label:
        existing = labels.resolve(step.existing_node_label)
        # The path only moves forward: the center, nodes already on the path
        # and ancestors of the cursor are treated like an unknown label.
        if existing is not None and (
            existing.node_type == NodeType.CENTER
            or existing.id in state.path
            or _would_cycle(state.parent_of, state.cursor, existing.id)
        ):
            logger.info(
                "Existing node %r would take the path backwards; creating step %d as a new node",
                step.existing_node_label,
                step.step_number,
            )
        elif existing is not None:
            # Single parent per node: only orphans get linked.
            return StagedStep(existing=existing, link_existing=existing.id not in state.parent_of)
        else:
            logger.info(
                "Existing node %r not found; creating step %d as a new node",
                step.existing_node_label,
                step.step_number,
            )

    new_node = NodeCreate(
        graph_id=state.graph_id,
        node_type=step.node_type,
        label=step.label,
        description=step.node_text,
        required_exp=step.required_exp,
        parent_ids=[state.cursor],
        color=color_for(step.node_type),
        is_locked=True,
        metadata={
            "suggestedResources": step.suggested_resources,
            "stepNumber": step.step_number,
            "stepDescription": step.description,
        },
    )
    return StagedStep(new_node=new_node)


def _link(store: GraphStore, state: PathState, child_id: str) -> Tuple[Dict[str, str], int]:
    parent_of = dict(state.parent_of)
    parent_of[child_id] = state.cursor
    try:
        store.insert_edge(state.graph_id, state.cursor, child_id)
    except StoreError as e:
        logger.error("Edge %s -> %s failed: %s", state.cursor, child_id, e.message)
        return parent_of, state.failed_edges + 1
    return parent_of, state.failed_edges


def advance_path(
    state: PathState, step: PathStep, store: GraphStore, labels: LabelIndex
) -> PathState:
    """
    One step of the path fold. Takes the previous state, applies this
    step's staged mutations and returns the next state.

    When the new node cannot be created the step is skipped and the cursor
    stays where it was, so the following step parents onto the last node
    that was actually written.
    """
    staged = stage_step(state, step, labels)

    if staged.existing is not None:
        node_id = staged.existing.id
        parent_of, failed_edges = state.parent_of, state.failed_edges
        if staged.link_existing:
            parent_of, failed_edges = _link(store, state, node_id)
        return replace(
            state,
            cursor=node_id,
            path=state.path + (node_id,),
            parent_of=parent_of,
            failed_edges=failed_edges,
        )

    try:
        created = store.insert_node(staged.new_node)
    except StoreError as e:
        logger.error("Step %d (%s) was not created: %s", step.step_number, step.label, e.message)
        return replace(state, failed_steps=state.failed_steps + (step.step_number,))

    parent_of, failed_edges = _link(store, state, created.id)
    return replace(
        state,
        cursor=created.id,
        path=state.path + (created.id,),
        parent_of=parent_of,
        created=state.created + (created,),
        failed_edges=failed_edges,
    )


def commit_goal_plan(plan: GoalPlan, store: GraphStore, user_id: int) -> GoalResolution:
    """Writes the plan: start node, path steps in order, goal node, goal record."""
    current_node = None
    failed_edges = 0
    parent_of = dict(plan.parent_of)

    if plan.new_start is not None:
        current_node = store.insert_node(plan.new_start)
        center_id = plan.new_start.parent_ids[0]
        parent_of[current_node.id] = center_id
        try:
            store.insert_edge(plan.graph_id, center_id, current_node.id)
        except StoreError as e:
            logger.error("Edge to new current node failed: %s", e.message)
            failed_edges += 1
        start_id = current_node.id
    else:
        start_id = plan.start_node.id

    state = PathState(
        graph_id=plan.graph_id,
        cursor=start_id,
        path=(start_id,),
        parent_of=parent_of,
        failed_edges=failed_edges,
    )
    for step in plan.steps:
        state = advance_path(state, step, store, plan.labels)

    spec = plan.proposal.goal_node
    goal_node = store.insert_node(
        NodeCreate(
            graph_id=plan.graph_id,
            node_type=NodeType.GOAL,
            label=spec.label,
            description=spec.description,
            required_exp=0,
            parent_ids=[state.cursor],
            color=NODE_TYPE_COLORS[NodeType.GOAL],
            is_locked=True,
            metadata={
                "reasoning": spec.reasoning,
                "originalDescription": plan.goal_text,
                "pathReasoning": plan.proposal.reasoning,
            },
        )
    )
    parent_of, failed_edges = _link(store, state, goal_node.id)
    state = replace(
        state,
        cursor=goal_node.id,
        path=state.path + (goal_node.id,),
        parent_of=parent_of,
        failed_edges=failed_edges,
    )

    goal = store.insert_goal(
        GoalCreate(
            user_id=user_id,
            description=plan.goal_text,
            target_node_id=goal_node.id,
            recommended_path=list(state.path),
        )
    )

    if state.failed_steps or state.failed_edges:
        logger.warning(
            "Goal %s committed partially: %d steps skipped, %d edges failed",
            goal.id,
            len(state.failed_steps),
            state.failed_edges,
        )

    return GoalResolution(
        goal=goal,
        goal_node=goal_node,
        current_node=current_node,
        created_nodes=list(state.created),
        failed_steps=list(state.failed_steps),
        failed_edges=state.failed_edges,
        reasoning=plan.proposal.reasoning,
        path_steps_count=len(plan.steps),
    )


def resolve_goal(
    goal_text: str,
    existing_nodes: Iterable[SkillNode],
    proposal: GoalProposal,
    store: GraphStore,
    graph_id: str,
    user_id: int,
    existing_edges: Iterable[SkillEdge] = (),
) -> GoalResolution:
    plan = plan_goal(goal_text, existing_nodes, proposal, graph_id, existing_edges)
    return commit_goal_plan(plan, store, user_id)
