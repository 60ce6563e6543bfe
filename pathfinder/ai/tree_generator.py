from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import PydanticOutputParser

from skill_engine.models import SkillNode
from skill_engine.proposals import Classification, TreeProposal

from .oracle import invoke_oracle, model

# 1. Set up a parser shared by generation and expansion
parser = PydanticOutputParser(pydantic_object=TreeProposal)

# 2. Create the Prompt Templates
# Both prompts insist on a single parent per node so the result stays a tree.
generation_template = """
You are an expert in career and skill development. Generate a skill tree the user can grow along, starting from their current position.

Current position:
- Category: {category}
- Position: {current_position}
- Reason: {reasoning}

Build a tree three to five levels deep using these node types:
1. skill - an ability or technique to learn
2. cert - a certification that can be obtained
3. position - a job or role that can be reached

Rules:
- Go step by step from beginner to advanced, with a difficulty (requiredExp between 50 and 1000) on every node.
- Every node has exactly one parent and there are no cycles.
- parentLabels holds exactly one label. Nodes growing straight from the current position use ["{current_position}"]; every other node names a node generated earlier in the list.
- Give each node a few learning resource hints.
- Generate between five and ten nodes.

Return the tree as a JSON object that strictly follows the provided schema.

{format_instructions}
"""

expansion_template = """
You are an expert in career and skill development. Suggest the next steps after the selected node of an existing skill tree.

Selected node:
- Name: {node_label}
- Description: {node_description}
- Type: {node_type}
- Category: {category}

Propose a growth path that can span several levels (for example beginner, intermediate, advanced), five to twelve nodes in total, using the node types skill, cert and position.

Rules:
- Every node has exactly one parent.
- parentLabels holds exactly one label. The first node uses ["{node_label}"]; later nodes may name any node generated earlier in the list.
- Grow outward from parent to child like branches of a tree.

Return the nodes as a JSON object that strictly follows the provided schema.

{format_instructions}
"""

generation_prompt = ChatPromptTemplate.from_template(
    template=generation_template,
    partial_variables={"format_instructions": parser.get_format_instructions()},
)
expansion_prompt = ChatPromptTemplate.from_template(
    template=expansion_template,
    partial_variables={"format_instructions": parser.get_format_instructions()},
)

# 3. Create the Chains
tree_generation_chain = generation_prompt | model | parser
tree_expansion_chain = expansion_prompt | model | parser


async def propose_tree(classification: Classification) -> TreeProposal:
    """Proposes the initial tree grown from one classified current position."""
    return await invoke_oracle(
        tree_generation_chain,
        {
            "category": classification.category,
            "current_position": classification.current_position,
            "reasoning": classification.reasoning,
        },
    )


async def propose_expansion(node: SkillNode, category: str) -> TreeProposal:
    """Proposes the nodes that follow ``node``."""
    return await invoke_oracle(
        tree_expansion_chain,
        {
            "node_label": node.label,
            "node_description": node.description,
            "node_type": node.node_type.value,
            "category": category,
        },
    )
