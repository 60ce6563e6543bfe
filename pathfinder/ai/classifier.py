import json
from typing import List

from langchain_core.prompts import ChatPromptTemplate
from langchain_core.output_parsers import PydanticOutputParser

from skill_engine.proposals import ClassificationResult

from ..schemas import OnboardingAnswer
from .oracle import invoke_oracle, model

# 1. Set up a parser for the classification result
parser = PydanticOutputParser(pydantic_object=ClassificationResult)

# 2. Create the Prompt Template
prompt_template = """
You are a life and career coach. Analyse the user's onboarding answers and classify where the user currently stands along several independent axes.

Pick two to four different axes (categories) such as career, hobbies, skills or interests. For each axis, name the user's current position and give a short reason for the classification.

Return the classifications as a JSON object that strictly follows the provided schema.

{format_instructions}

User's Answers:
{answers}
"""

prompt = ChatPromptTemplate.from_template(
    template=prompt_template,
    partial_variables={"format_instructions": parser.get_format_instructions()},
)

# 3. Create the Chain
classifier_chain = prompt | model | parser


def format_answers(answers: List[OnboardingAnswer]) -> str:
    return "\n\n".join(f"Q: {a.question}\nA: {json.dumps(a.answer)}" for a in answers)


async def classify_answers(answers: List[OnboardingAnswer]) -> ClassificationResult:
    """Classifies the user's current positions from their onboarding answers."""
    return await invoke_oracle(classifier_chain, {"answers": format_answers(answers)})
