# skill_engine/proposals.py
#
# Typed shapes of what the node proposal oracle returns. Oracle output is
# validated into these models before any graph logic sees it.

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from .models import DEFAULT_NODE_COLOR, PATH_STEP_COLORS, NodeType

DEFAULT_REQUIRED_EXP = 100


class OracleModel(BaseModel):
    # The oracle speaks camelCase; code uses snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _default_required_exp(value):
    if value is None:
        return DEFAULT_REQUIRED_EXP
    return value


def _default_list(value):
    return [] if value is None else value


def color_for(node_type: NodeType) -> str:
    return PATH_STEP_COLORS.get(node_type, DEFAULT_NODE_COLOR)


class GeneratedNode(OracleModel):
    node_type: NodeType = Field(description="One of 'skill', 'cert' or 'position'.")
    label: str = Field(min_length=1, description="Short unique name of the node.")
    description: str = Field(default="", description="Two or three sentences describing the node.")
    required_exp: float = Field(
        default=DEFAULT_REQUIRED_EXP, ge=0, description="EXP needed to complete the node (50-1000)."
    )
    parent_labels: List[str] = Field(
        default_factory=list,
        description="Exactly one label: the parent node this one grows from.",
    )
    suggested_resources: List[str] = Field(
        default_factory=list, description="Hints for learning resources."
    )

    @field_validator("required_exp", mode="before")
    @classmethod
    def default_required_exp(cls, value):
        return _default_required_exp(value)

    @field_validator("parent_labels", "suggested_resources", mode="before")
    @classmethod
    def default_lists(cls, value):
        return _default_list(value)

    @field_validator("node_type")
    @classmethod
    def growth_types_only(cls, value: NodeType) -> NodeType:
        if value not in PATH_STEP_COLORS:
            raise ValueError(f"node type '{value.value}' cannot be proposed")
        return value


class TreeProposal(OracleModel):
    nodes: List[GeneratedNode] = Field(description="Nodes of the proposed tree, parents first.")
    reasoning: str = Field(default="", description="Why this tree was proposed.")


class PathStep(OracleModel):
    step_number: int = Field(description="Position of the step on the path, starting at 1.")
    description: str = Field(default="", description="What is achieved in this step.")
    node_type: NodeType = Field(description="One of 'skill', 'cert' or 'position'.")
    label: str = Field(min_length=1, description="Name of the node for this step.")
    node_description: str = Field(default="", description="Detailed description of the node.")
    required_exp: float = Field(default=DEFAULT_REQUIRED_EXP, ge=0)
    suggested_resources: List[str] = Field(default_factory=list)
    is_existing_node: bool = Field(
        default=False, description="True when an existing node covers this step."
    )
    existing_node_label: Optional[str] = Field(
        default=None, description="Label of the existing node, only when is_existing_node is true."
    )

    @field_validator("required_exp", mode="before")
    @classmethod
    def default_required_exp(cls, value):
        return _default_required_exp(value)

    @field_validator("suggested_resources", mode="before")
    @classmethod
    def default_lists(cls, value):
        return _default_list(value)

    @field_validator("node_type")
    @classmethod
    def no_center_steps(cls, value: NodeType) -> NodeType:
        if value == NodeType.CENTER:
            raise ValueError("a path step cannot be a center node")
        return value

    @property
    def node_text(self) -> str:
        return self.node_description or self.description


class GoalNodeSpec(OracleModel):
    label: str = Field(min_length=1, description="Concise name of the goal (30 characters max).")
    description: str = Field(default="", description="The goal and how to tell it is reached.")
    reasoning: str = Field(default="", description="Why this is the right reading of the goal.")


class NewCurrentNodeSpec(OracleModel):
    label: str = Field(min_length=1)
    description: str = ""


class GoalProposal(OracleModel):
    goal_node: GoalNodeSpec
    needs_new_center: bool = Field(
        default=False,
        description="True when the goal belongs to a domain the existing tree cannot grow into.",
    )
    new_current_node: Optional[NewCurrentNodeSpec] = Field(
        default=None, description="The new starting point, only when needs_new_center is true."
    )
    starting_node_label: Optional[str] = Field(
        default=None,
        description="Label of the existing node to start from, only when needs_new_center is false.",
    )
    path_steps: List[PathStep] = Field(
        default_factory=list,
        description="Intermediate steps only; neither the start nor the goal itself.",
    )
    reasoning: str = Field(default="", description="Why the path is designed this way.")

    @field_validator("path_steps", mode="before")
    @classmethod
    def default_lists(cls, value):
        return _default_list(value)

    @model_validator(mode="after")
    def start_is_given(self):
        if self.needs_new_center and self.new_current_node is None:
            raise ValueError("needsNewCenter is true but newCurrentNode is missing")
        if not self.needs_new_center and not self.starting_node_label:
            raise ValueError("startingNodeLabel is required when needsNewCenter is false")
        return self


class Classification(OracleModel):
    category: str = Field(min_length=1, description="Axis of the classification, e.g. Technology.")
    current_position: str = Field(
        min_length=1, description="Where the user stands today on this axis."
    )
    reasoning: str = Field(default="", description="Short reason for the classification.")


class ClassificationResult(OracleModel):
    classifications: List[Classification] = Field(
        min_length=1, description="Two to four independent classifications."
    )
