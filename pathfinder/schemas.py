# pathfinder/schemas.py

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from skill_engine.models import Goal, SkillEdge, SkillNode
from skill_engine.proposals import Classification


# ---- Users ----


class UserBase(BaseModel):
    email: EmailStr


class UserCreate(UserBase):
    password: str = Field(min_length=8)


class User(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    is_active: bool = True


class Token(BaseModel):
    access_token: str
    token_type: str


# ---- Onboarding ----


class OnboardingAnswer(BaseModel):
    question: str
    answer: Any


class ClassifyRequest(BaseModel):
    answers: List[OnboardingAnswer] = Field(min_length=1)


class ClassifyResponse(BaseModel):
    classifications: List[Classification]


class BuildGraphRequest(BaseModel):
    classifications: List[Classification] = Field(min_length=1)


class SkippedClassification(BaseModel):
    current_position: str
    reason: str


class BuildGraphResponse(BaseModel):
    graph_id: str
    center: SkillNode
    node_count: int
    skipped: List[SkippedClassification]


# ---- Graphs and nodes ----


class GraphView(BaseModel):
    graph_id: str
    nodes: List[SkillNode]
    edges: List[SkillEdge]
    goals: List[Goal]


class LayoutRequest(BaseModel):
    nodes: List[SkillNode]
    edges: List[SkillEdge] = Field(default_factory=list)


class LayoutResponse(BaseModel):
    nodes: List[SkillNode]


class UnlockCheckRequest(BaseModel):
    graph_id: str


class UnlockCheckResponse(BaseModel):
    updated_count: int
    unlocked_nodes: List[SkillNode]


class IncrementExpResponse(BaseModel):
    node: SkillNode
    exp_gain: float
    reached_max: bool


class ExpandResponse(BaseModel):
    created_nodes: List[SkillNode]
    failed_labels: List[str]
    failed_edges: int
    reasoning: str


class DeleteSubtreeResponse(BaseModel):
    deleted_ids: List[str]


# ---- Goals ----


class GoalRequest(BaseModel):
    goal_description: str = Field(min_length=1)
    graph_id: str


class GoalResponse(BaseModel):
    goal: Goal
    goal_node: SkillNode
    new_nodes: int
    reasoning: str
    path_steps_count: int
    created_new_center: bool
    current_node: Optional[SkillNode] = None
    failed_steps: List[int]
    failed_edges: int
