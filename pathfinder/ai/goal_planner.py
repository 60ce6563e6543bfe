from typing import List

from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import PydanticOutputParser

from skill_engine.models import SkillNode
from skill_engine.proposals import GoalProposal

from .oracle import invoke_oracle, model, summarize_nodes

# 1. Set up a parser
parser = PydanticOutputParser(pydantic_object=GoalProposal)

# 2. Create the Prompt Template
prompt_template = """
You are a life and career coach helping the user reach a goal.

1. Interpret the goal: define it as a concrete state to reach, including the abilities and level it requires.
2. Choose the starting point:
   - If the goal grows naturally from the existing skill tree, set needsNewCenter to false and put the label of the best existing node in startingNodeLabel, exactly as written below.
   - If the goal belongs to a clearly different domain (for example the tree is about programming and the goal is a language exam score), set needsNewCenter to true and describe a new starting point in newCurrentNode.
3. Design the steps from the starting point to the goal, three to seven of them, getting harder as they go. pathSteps only holds the intermediate steps, never the start or the goal itself. Each step builds on the previous one.
4. When an existing node already covers a step, set isExistingNode to true and put its label in existingNodeLabel. pathSteps may be empty when the existing nodes already reach the goal.

Return the plan as a JSON object that strictly follows the provided schema.

{format_instructions}

User's Goal:
"{goal}"

Existing skill tree nodes:
{nodes}
"""

prompt = ChatPromptTemplate.from_template(
    template=prompt_template,
    partial_variables={"format_instructions": parser.get_format_instructions()},
)

# 3. Create the Chain
goal_planner_chain = prompt | model | parser


async def propose_goal_path(goal: str, nodes: List[SkillNode]) -> GoalProposal:
    """
    Asks the oracle where a goal starts and which steps lead there.
    Validation of the proposal shape happens in the parser.
    """
    return await invoke_oracle(goal_planner_chain, {"goal": goal, "nodes": summarize_nodes(nodes)})
