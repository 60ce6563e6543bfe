# pathfinder/ai/oracle.py
#
# Shared model and invocation for every node proposal chain.

import logging
from typing import Iterable

import openai
from langchain_core.exceptions import OutputParserException
from langchain_openai import ChatOpenAI

from skill_engine.errors import BadOracleResponse, UpstreamUnavailable
from skill_engine.models import SkillNode

from .. import config

logger = logging.getLogger(__name__)

# Status codes the provider uses for "overloaded, come back later".
OVERLOADED_STATUS_CODES = {502, 503, 504, 529}

model = ChatOpenAI(temperature=0.7, model=config.OPENAI_MODEL, api_key=config.OPENAI_API_KEY)


async def invoke_oracle(chain, inputs: dict):
    """
    Runs a ``prompt | model | parser`` chain and maps its failures onto the
    engine's error types. The oracle is never retried here.
    """
    try:
        return await chain.ainvoke(inputs)
    except OutputParserException as e:
        logger.warning("Unparseable oracle response: %s", e)
        raise BadOracleResponse("The oracle returned a malformed response") from e
    except (openai.RateLimitError, openai.APIConnectionError) as e:
        logger.warning("Oracle unavailable: %s", e)
        raise UpstreamUnavailable("The oracle is busy, retry later") from e
    except openai.APIStatusError as e:
        if e.status_code in OVERLOADED_STATUS_CODES:
            logger.warning("Oracle overloaded (%s)", e.status_code)
            raise UpstreamUnavailable("The oracle is busy, retry later") from e
        raise


def summarize_nodes(nodes: Iterable[SkillNode]) -> str:
    """One line per node, the way the prompts list existing nodes."""
    lines = [f"- {n.label} ({n.node_type.value}): {n.description}" for n in nodes]
    return "\n".join(lines) or "(no nodes yet)"
