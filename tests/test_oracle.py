# tests/test_oracle.py

import asyncio
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest
from langchain_core.exceptions import OutputParserException

from pathfinder import config
from pathfinder.ai import oracle
from pathfinder.ai.classifier import format_answers
from pathfinder.ai.oracle import invoke_oracle, summarize_nodes
from pathfinder.schemas import OnboardingAnswer
from skill_engine.errors import BadOracleResponse, UpstreamUnavailable
from skill_engine.models import NodeType, SkillNode

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _chain(**kwargs):
    chain = MagicMock()
    chain.ainvoke = AsyncMock(**kwargs)
    return chain


def _status_error(cls, status_code):
    return cls("upstream said no", response=httpx.Response(status_code, request=REQUEST), body=None)


def test_returns_the_parsed_value():
    chain = _chain(return_value="parsed")

    assert asyncio.run(invoke_oracle(chain, {"goal": "x"})) == "parsed"
    chain.ainvoke.assert_awaited_once_with({"goal": "x"})


def test_parser_failure_is_bad_oracle_response():
    chain = _chain(side_effect=OutputParserException("not json"))

    with pytest.raises(BadOracleResponse):
        asyncio.run(invoke_oracle(chain, {}))


@pytest.mark.parametrize(
    "error",
    [
        _status_error(openai.RateLimitError, 429),
        openai.APIConnectionError(request=REQUEST),
        _status_error(openai.InternalServerError, 503),
        _status_error(openai.APIStatusError, 529),
    ],
)
def test_overload_is_upstream_unavailable(error):
    chain = _chain(side_effect=error)

    with pytest.raises(UpstreamUnavailable):
        asyncio.run(invoke_oracle(chain, {}))


def test_other_provider_errors_propagate():
    chain = _chain(side_effect=_status_error(openai.AuthenticationError, 401))

    with pytest.raises(openai.AuthenticationError):
        asyncio.run(invoke_oracle(chain, {}))


def test_model_uses_the_configured_api_key():
    assert oracle.model.openai_api_key.get_secret_value() == config.OPENAI_API_KEY
    assert oracle.model.model_name == config.OPENAI_MODEL


def test_summarize_nodes():
    nodes = [
        SkillNode(id="a", graph_id="g", node_type=NodeType.CURRENT, label="Dev", description="Writes code"),
        SkillNode(id="b", graph_id="g", node_type=NodeType.SKILL, label="SQL"),
    ]

    assert summarize_nodes(nodes) == "- Dev (current): Writes code\n- SQL (skill): "
    assert summarize_nodes([]) == "(no nodes yet)"


def test_format_answers():
    answers = [OnboardingAnswer(question="Job?", answer="Engineer")]

    assert format_answers(answers) == 'Q: Job?\nA: "Engineer"'
